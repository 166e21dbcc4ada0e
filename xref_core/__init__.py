# Statute cross-reference core library
# Main entry point: from xref_core.ingest import IngestionPipeline

from .config import load_config, XrefConfig, DEFAULT_XREF_CONFIG

from .identity import InstrumentIdentity, InstrumentKind

from .models import (
    Locus,
    DocumentRecord,
    ForeignInstrument,
    CitationEdge,
    ProvisionVersion,
    AmendmentRecord,
    Community,
    ReferenceType,
    AmendmentKind,
    TemporalStatus,
)

from .exceptions import (
    XrefError,
    InvalidIdentityError,
    NotFoundError,
    InvalidDateError,
    InvariantViolationError,
    VersionOverlapError,
    AmendmentDateError,
    EdgeConflictError,
)

from .graph import CrossReferenceGraph, QueryEngine, check_reference_currency
from .versioning import VersioningEngine
from .ingest import IngestionPipeline, BatchReport

__all__ = [
    # Config
    "load_config",
    "XrefConfig",
    "DEFAULT_XREF_CONFIG",
    # Identity
    "InstrumentIdentity",
    "InstrumentKind",
    # Models
    "Locus",
    "DocumentRecord",
    "ForeignInstrument",
    "CitationEdge",
    "ProvisionVersion",
    "AmendmentRecord",
    "Community",
    "ReferenceType",
    "AmendmentKind",
    "TemporalStatus",
    # Errors
    "XrefError",
    "InvalidIdentityError",
    "NotFoundError",
    "InvalidDateError",
    "InvariantViolationError",
    "VersionOverlapError",
    "AmendmentDateError",
    "EdgeConflictError",
    # Engines
    "CrossReferenceGraph",
    "QueryEngine",
    "check_reference_currency",
    "VersioningEngine",
    "IngestionPipeline",
    "BatchReport",
]
