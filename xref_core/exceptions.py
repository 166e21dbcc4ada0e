"""
Custom exceptions for the cross-reference engine.

Parse-level problems never surface here: the parser discards malformed
matches with a warning. These exceptions cover malformed caller input,
lookups of unknown entities, and writes that would break a stored invariant.
"""


class XrefError(Exception):
    """Base exception for cross-reference errors."""
    pass


class InvalidIdentityError(XrefError, ValueError):
    """Instrument identity or standard code is malformed."""
    pass


class NotFoundError(XrefError, LookupError):
    """Requested instrument, document or provision is unknown."""
    pass


class InvalidDateError(XrefError, ValueError):
    """Date passed to a temporal query could not be parsed."""
    pass


class InvariantViolationError(XrefError):
    """A write would leave the stores in an inconsistent state."""
    pass


class VersionOverlapError(InvariantViolationError):
    """New provision version overlaps an existing validity window."""
    pass


class AmendmentDateError(InvariantViolationError):
    """Amendment takes effect before the target provision was enacted."""
    pass


class EdgeConflictError(InvariantViolationError):
    """Citation edge already stored with diverging attributes."""
    pass
