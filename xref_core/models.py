from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from xref_core.identity import InstrumentIdentity, InstrumentKind
from xref_core.utils import expand_articles


# =============================================================================
# CLOSED ENUMERATIONS
# =============================================================================

class Community(str, Enum):
    """Issuing-body era marker attached to an EU citation."""
    EU = "EU"
    EG = "EG"
    EEG = "EEG"
    EURATOM = "Euratom"


class ReferenceType(str, Enum):
    IMPLEMENTS = "implements"
    SUPPLEMENTS = "supplements"
    APPLIES = "applies"
    REFERENCES = "references"
    COMPLIES_WITH = "complies_with"
    DEROGATES_FROM = "derogates_from"
    CITES_ARTICLE = "cites_article"


# Lower value sorts first in basis listings
REFERENCE_TYPE_PRIORITY: dict[ReferenceType, int] = {
    ReferenceType.IMPLEMENTS: 0,
    ReferenceType.SUPPLEMENTS: 1,
    ReferenceType.APPLIES: 2,
}
OTHER_REFERENCE_PRIORITY = 3


class AmendmentKind(str, Enum):
    CHANGED = "changed"
    NEW_WORDING = "new_wording"
    INTRODUCED = "introduced"
    REPEALED = "repealed"
    DELAYED_EFFECT = "delayed_effect"


class TemporalStatus(str, Enum):
    CURRENT = "current"
    HISTORICAL = "historical"
    FUTURE = "future"
    NOT_FOUND = "not_found"


# =============================================================================
# CORE DATA MODELS
# =============================================================================

@dataclass(frozen=True, order=True)
class Locus:
    """A document, optionally narrowed to one provision (e.g. "1:3")."""
    document_id: str
    provision_ref: Optional[str] = None

    @property
    def is_provision(self) -> bool:
        return self.provision_ref is not None

    @property
    def key(self) -> str:
        if self.provision_ref is None:
            return self.document_id
        return f"{self.document_id}#{self.provision_ref}"

    def document(self) -> "Locus":
        return Locus(self.document_id)

    @classmethod
    def from_key(cls, key: str) -> "Locus":
        document_id, _, provision_ref = key.partition("#")
        return cls(document_id, provision_ref or None)

    def __str__(self) -> str:
        return self.key


@dataclass
class DocumentRecord:
    """Domestic source document as registered by ingestion."""
    document_id: str               # "2018:218"
    title: str
    doc_type: str = "statute"
    in_force: bool = True
    issued_date: Optional[date] = None
    provisions: set = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "title": self.title,
            "doc_type": self.doc_type,
            "in_force": self.in_force,
            "issued_date": self.issued_date.isoformat() if self.issued_date else None,
            "provisions": sorted(self.provisions),
        }


@dataclass
class ForeignInstrument:
    """Canonical EU directive or regulation.

    Identity fields never change after the first commit; the remaining
    attributes are filled by enrichment. `ambiguities` records community
    designations that disagreed with the first one seen."""
    identity: InstrumentIdentity
    community: Community
    title: Optional[str] = None
    short_name: Optional[str] = None
    description: Optional[str] = None
    in_force: bool = True
    supersedes: set = field(default_factory=set)
    superseded_by: set = field(default_factory=set)
    ambiguities: list = field(default_factory=list)

    @property
    def kind(self) -> InstrumentKind:
        return self.identity.kind

    @property
    def year(self) -> int:
        return self.identity.year

    @property
    def number(self) -> int:
        return self.identity.number

    @property
    def standard_code(self) -> str:
        return self.identity.standard_code

    @property
    def low_confidence(self) -> bool:
        return bool(self.ambiguities)

    def to_dict(self) -> dict:
        return {
            "id": str(self.identity),
            "type": self.kind.value,
            "year": self.year,
            "number": self.number,
            "community": self.community.value,
            "celex_number": self.standard_code,
            "title": self.title,
            "short_name": self.short_name,
            "description": self.description,
            "in_force": self.in_force,
            "supersedes": sorted(str(i) for i in self.supersedes),
            "superseded_by": sorted(str(i) for i in self.superseded_by),
            "ambiguities": list(self.ambiguities),
        }


@dataclass
class CitationEdge:
    """Reference from a domestic locus to a foreign instrument."""
    locus: Locus
    identity: InstrumentIdentity
    reference_type: ReferenceType
    article: Optional[str] = None
    is_primary: bool = False
    full_citation: str = ""
    context: str = ""
    implementation_keyword: Optional[str] = None
    low_confidence: bool = False

    @property
    def key(self) -> tuple:
        return (self.locus, self.identity, self.article)

    @property
    def articles(self) -> list[str]:
        return expand_articles(self.article) if self.article else []

    def same_attributes(self, other: "CitationEdge") -> bool:
        return (
            self.reference_type == other.reference_type
            and self.is_primary == other.is_primary
        )

    def to_dict(self) -> dict:
        return {
            "source_type": "provision" if self.locus.is_provision else "document",
            "source_id": self.locus.key,
            "document_id": self.locus.document_id,
            "provision_ref": self.locus.provision_ref,
            "eu_document_id": str(self.identity),
            "eu_article": self.article,
            "reference_type": self.reference_type.value,
            "reference_context": self.context,
            "full_citation": self.full_citation,
            "implementation_keyword": self.implementation_keyword,
            "is_primary_implementation": self.is_primary,
            "low_confidence": self.low_confidence,
        }


@dataclass
class ProvisionVersion:
    """One recorded wording of a provision and its validity window.

    valid_from None means "since original enactment"; valid_to None means
    the version is still current."""
    document_id: str
    provision_ref: str
    content: str
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None

    @property
    def version_id(self) -> str:
        start = self.valid_from.isoformat() if self.valid_from else "original"
        return f"{self.document_id}#{self.provision_ref}@{start}"

    @property
    def is_open(self) -> bool:
        return self.valid_to is None

    def contains(self, when: date) -> bool:
        if self.valid_from is not None and when < self.valid_from:
            return False
        return self.valid_to is None or when < self.valid_to

    def to_dict(self) -> dict:
        return {
            "version_id": self.version_id,
            "document_id": self.document_id,
            "provision_ref": self.provision_ref,
            "content": self.content,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_to": self.valid_to.isoformat() if self.valid_to else None,
        }


@dataclass
class AmendmentRecord:
    """Links a provision's version change to the amending domestic act."""
    locus: Locus
    amending_id: str               # "2021:1174"
    effective_date: date
    kind: AmendmentKind
    version_before_id: Optional[str] = None
    version_after_id: Optional[str] = None
    citation: str = ""

    @property
    def key(self) -> tuple:
        return (self.locus, self.amending_id, self.effective_date)

    def to_dict(self) -> dict:
        return {
            "document_id": self.locus.document_id,
            "provision_ref": self.locus.provision_ref,
            "amended_by": self.amending_id,
            "effective_date": self.effective_date.isoformat(),
            "kind": self.kind.value,
            "version_before_id": self.version_before_id,
            "version_after_id": self.version_after_id,
            "citation": self.citation,
        }
