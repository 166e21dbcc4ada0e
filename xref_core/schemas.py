"""
Pydantic models for ingestion input and query results.

Design Decisions:
- Upstream documents are validated at the boundary (SourceDocument)
- Query results are plain, serializable models; the protocol layer that
  exposes them only needs `model_dump()`
- Empty lookups carry a `reason` instead of raising
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from xref_core.identity import InstrumentKind
from xref_core.models import AmendmentKind, Community, ReferenceType, TemporalStatus


# =============================================================================
# UPSTREAM INPUT
# =============================================================================

class SourceProvision(BaseModel):
    """One addressable provision with its extracted plain text."""
    provision_ref: str = Field(..., min_length=1, description="Provision reference (e.g., '1:3', '5 a')")
    content: str = Field(..., description="Plain provision text")
    chapter: Optional[str] = Field(None, description="Chapter number if the statute has chapters")
    section: Optional[str] = Field(None, description="Section number")
    title: Optional[str] = Field(None, description="Section heading")
    valid_from: Optional[date] = Field(None, description="Date this wording took effect (None = original)")


class SourceDocument(BaseModel):
    """Domestic document as supplied by the ingestion collaborator."""
    document_id: str = Field(..., min_length=1, description="SFS-like id (e.g., '2018:218')")
    doc_type: str = Field("statute", description="Document type")
    title: str = Field(..., description="Document title")
    issued_date: Optional[date] = Field(None, description="Issue/enactment date")
    in_force: bool = Field(True, description="False once the document is repealed")
    full_text: Optional[str] = Field(None, description="Unsegmented document text")
    provisions: List[SourceProvision] = Field(default_factory=list)

    @field_validator("provisions")
    @classmethod
    def unique_provision_refs(cls, v):
        refs = [p.provision_ref for p in v]
        if len(refs) != len(set(refs)):
            raise ValueError("Duplicate provision_ref in document")
        return v


# =============================================================================
# GRAPH QUERY RESULTS
# =============================================================================

class BasisEntry(BaseModel):
    """One edge from a domestic locus to a foreign instrument."""
    id: str = Field(..., description="Canonical id (e.g., 'regulation:2016/679')")
    type: InstrumentKind
    year: int
    number: int
    community: Community
    celex_number: str = Field(..., description="Standard code (e.g., '32016R0679')")
    title: Optional[str] = None
    short_name: Optional[str] = None
    instrument_in_force: bool = True
    document_id: str
    provision_ref: Optional[str] = Field(None, description="None for document-level edges")
    reference_type: ReferenceType
    article: Optional[str] = None
    articles: List[str] = Field(default_factory=list, description="Expanded article list")
    is_primary: bool = False
    full_citation: str = ""
    context: str = ""
    implementation_keyword: Optional[str] = None
    low_confidence: bool = False


class BasisResult(BaseModel):
    document_id: str
    document_title: Optional[str] = None
    provision_ref: Optional[str] = None
    entries: List[BasisEntry] = Field(default_factory=list)
    reason: Optional[str] = Field(None, description="Why the result is empty")

    @property
    def total(self) -> int:
        return len(self.entries)


class Implementation(BaseModel):
    """A domestic locus with an edge to the queried instrument."""
    document_id: str
    document_title: str
    provision_ref: Optional[str] = None
    document_in_force: bool = True
    reference_type: ReferenceType
    article: Optional[str] = None
    is_primary: bool = False
    low_confidence: bool = False


class ImplementationsResult(BaseModel):
    id: str
    celex_number: str
    community: Community
    title: Optional[str] = None
    instrument_in_force: bool = True
    implementations: List[Implementation] = Field(default_factory=list)
    statute_count: int = 0
    reason: Optional[str] = None


class SearchFilters(BaseModel):
    """Filters for instrument search. All are optional and combined with AND."""
    query: Optional[str] = Field(None, description="Text matched against id, title, short name, description")
    keyword: Optional[str] = Field(None, description="Implementation keyword recorded on an edge")
    type: Optional[InstrumentKind] = None
    reference_type: Optional[ReferenceType] = None
    year_from: Optional[int] = Field(None, ge=1000, le=9999)
    year_to: Optional[int] = Field(None, ge=1000, le=9999)
    community: Optional[Community] = None
    has_domestic_implementation: Optional[bool] = None
    limit: Optional[int] = Field(None, ge=1, description="Page size, capped at the configured maximum")
    offset: int = Field(0, ge=0)


class InstrumentSummary(BaseModel):
    id: str
    type: InstrumentKind
    year: int
    number: int
    community: Community
    celex_number: str
    title: Optional[str] = None
    short_name: Optional[str] = None
    in_force: bool = True
    statute_count: int = Field(0, description="Distinct documents referencing the instrument")
    edge_count: int = 0
    primary_implementations: int = 0
    low_confidence: bool = False


class SearchResult(BaseModel):
    results: List[InstrumentSummary] = Field(default_factory=list)
    total_results: int = Field(0, description="Matches before pagination")
    limit: int
    offset: int = 0


# =============================================================================
# TEMPORAL RESULTS
# =============================================================================

class AmendmentEntry(BaseModel):
    document_id: str
    provision_ref: Optional[str] = None
    amended_by: str = Field(..., description="Amending act (e.g., '2021:1174')")
    effective_date: date
    kind: AmendmentKind
    version_before_id: Optional[str] = None
    version_after_id: Optional[str] = None


class TemporalResolution(BaseModel):
    document_id: str
    provision_ref: str
    as_of: date = Field(..., description="Query date")
    status: TemporalStatus
    content: Optional[str] = None
    version_id: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    next_valid_from: Optional[date] = Field(None, description="Set for 'future': first later version start")
    amended_by: List[AmendmentEntry] = Field(default_factory=list, description="Amendments after this version took effect")
    reason: Optional[str] = None


class VersionDiff(BaseModel):
    document_id: str
    provision_ref: str
    date_from: date
    date_to: date
    before: TemporalResolution
    after: TemporalResolution
    changed: bool
    amendments: List[AmendmentEntry] = Field(default_factory=list)
    text_diff: str = ""


# =============================================================================
# REFERENCE CURRENCY
# =============================================================================

class OutdatedReference(BaseModel):
    id: str
    celex_number: str
    document_id: str
    provision_ref: Optional[str] = None
    article: Optional[str] = None
    superseded_by: Optional[str] = None


class CurrencyReport(BaseModel):
    """Freshness of a document's references. Not a compliance verdict."""
    document_id: str
    provision_ref: Optional[str] = None
    status: str = Field(..., description="current | outdated | no_references")
    references_checked: int = 0
    outdated: List[OutdatedReference] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
