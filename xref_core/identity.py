"""
Canonical identity of a foreign (EU) instrument.

Two string forms are derivable from the {kind, year, number} triple:

- canonical id: "regulation:2016/679" (matches ^(directive|regulation):\\d{4}/\\d+$)
- standard code (CELEX-style): sector "3" + 4-digit year + kind letter
  ("L" directive, "R" regulation) + number zero-padded to 4 digits,
  e.g. "32016R0679"

Both mappings are total over valid triples and invertible.

Usage:
    identity = InstrumentIdentity(InstrumentKind.REGULATION, 2016, 679)
    str(identity)                                  # "regulation:2016/679"
    identity.standard_code                         # "32016R0679"
    InstrumentIdentity.from_standard_code("32016R0679") == identity
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from xref_core.exceptions import InvalidIdentityError


class InstrumentKind(str, Enum):
    DIRECTIVE = "directive"
    REGULATION = "regulation"


SECTOR_MARKER = "3"

KIND_TO_LETTER: dict[InstrumentKind, str] = {
    InstrumentKind.DIRECTIVE: "L",
    InstrumentKind.REGULATION: "R",
}
LETTER_TO_KIND: dict[str, InstrumentKind] = {v: k for k, v in KIND_TO_LETTER.items()}

CANONICAL_ID_PATTERN = re.compile(r"^(directive|regulation):(\d{4})/(\d+)$")
STANDARD_CODE_PATTERN = re.compile(r"^3(\d{4})([LR])(\d{4,})$")


@dataclass(frozen=True, order=True)
class InstrumentIdentity:
    """
    Value type for {kind, year, number}.

    Construction validates the triple, so an InstrumentIdentity in hand is
    always serializable to both string forms. Directive and regulation
    identities with equal year/number are distinct values.
    """
    kind: InstrumentKind
    year: int
    number: int

    def __post_init__(self):
        try:
            kind = InstrumentKind(self.kind)
        except ValueError:
            raise InvalidIdentityError(f"Unknown instrument kind: {self.kind!r}") from None
        object.__setattr__(self, "kind", kind)

        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise InvalidIdentityError(f"Year must be an integer, got {self.year!r}")
        if isinstance(self.number, bool) or not isinstance(self.number, int):
            raise InvalidIdentityError(f"Number must be an integer, got {self.number!r}")
        if not 1000 <= self.year <= 9999:
            raise InvalidIdentityError(f"Year must have four digits, got {self.year}")
        if self.number <= 0:
            raise InvalidIdentityError(f"Number must be positive, got {self.number}")

    @classmethod
    def parse(cls, value: Union[str, "InstrumentIdentity"]) -> "InstrumentIdentity":
        """Parse a canonical id string ("directive:1995/46")."""
        if isinstance(value, InstrumentIdentity):
            return value
        match = CANONICAL_ID_PATTERN.match(value.strip()) if isinstance(value, str) else None
        if not match:
            raise InvalidIdentityError(
                f"Invalid instrument id: {value!r}. Expected format 'regulation:2016/679'"
            )
        return cls(InstrumentKind(match.group(1)), int(match.group(2)), int(match.group(3)))

    @classmethod
    def from_standard_code(cls, code: str) -> "InstrumentIdentity":
        """Inverse of `standard_code`."""
        match = STANDARD_CODE_PATTERN.match(code.strip().upper()) if isinstance(code, str) else None
        if not match:
            raise InvalidIdentityError(
                f"Invalid standard code: {code!r}. Expected format '32016R0679'"
            )
        return cls(LETTER_TO_KIND[match.group(2)], int(match.group(1)), int(match.group(3)))

    @property
    def standard_code(self) -> str:
        return f"{SECTOR_MARKER}{self.year:04d}{KIND_TO_LETTER[self.kind]}{self.number:04d}"

    @property
    def short_id(self) -> str:
        return f"{self.year}/{self.number}"

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.year:04d}/{self.number}"
