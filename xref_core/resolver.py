"""
Identity Resolver.

Stages everything one document yields into a DocumentExtraction before any
shared state is touched. Within a document:
- one ForeignInstrument per identity (first mention wins)
- one CitationEdge per (locus, identity, article) (first mention wins)
- a community designation disagreeing with the first one seen is recorded
  as an ambiguity and flags the edge low-confidence; it never raises

Directive and regulation identities with equal year/number are different
InstrumentIdentity values, so they can never be merged here.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from xref_core.models import CitationEdge, Community, DocumentRecord, ForeignInstrument, Locus
from xref_core.parsing.classifier import ClassifiedReference

logger = logging.getLogger(__name__)


def merge_community(instrument: ForeignInstrument, community: Community, citation: str = "") -> bool:
    """
    Record a community designation seen for an existing instrument.

    The first designation stays; a different one is appended to
    `instrument.ambiguities` once.

    Returns:
        True if the designation conflicted with the stored one
    """
    if community == instrument.community:
        return False
    note = f"community {community.value} conflicts with {instrument.community.value}"
    if citation:
        note = f"{note} in {citation!r}"
    if note not in instrument.ambiguities:
        instrument.ambiguities.append(note)
        logger.warning("Ambiguous community for %s: %s", instrument.identity, note)
    return True


@dataclass
class StagedVersion:
    """Provision wording to hand to the versioning engine on commit."""
    provision_ref: str
    content: str
    valid_from: Optional[date] = None


@dataclass
class DocumentExtraction:
    """
    Complete, uncommitted output for one document.

    Attributes:
        document: Document metadata and provision refs
        instruments: Staged instruments keyed by identity
        edges: Staged edges keyed by (locus, identity, article)
        versions: Provision wordings to record
        discarded: Parser DiscardedMatch records
    """
    document: DocumentRecord
    instruments: dict = field(default_factory=dict)
    edges: dict = field(default_factory=dict)
    versions: list = field(default_factory=list)
    discarded: list = field(default_factory=list)

    @property
    def document_id(self) -> str:
        return self.document.document_id

    def provision_identities(self) -> set:
        return {e.identity for e in self.edges.values() if e.locus.is_provision}

    def edge_list(self) -> list[CitationEdge]:
        return list(self.edges.values())


class IdentityResolver:
    """Canonicalize classified references into staged instruments and edges."""

    def stage(self, extraction: DocumentExtraction, reference: ClassifiedReference,
              locus: Locus, is_primary: bool = False) -> Optional[CitationEdge]:
        """
        Stage one classified reference.

        Args:
            extraction: Target extraction for the reference's document
            reference: Classified foreign citation
            locus: Document or provision the citation was found in
            is_primary: Identity also appears in the document title

        Returns:
            The new edge, or None when the edge key was already staged
        """
        identity = reference.identity
        instrument = extraction.instruments.get(identity)
        conflict = False
        if instrument is None:
            extraction.instruments[identity] = ForeignInstrument(
                identity=identity,
                community=reference.community,
            )
        else:
            conflict = merge_community(instrument, reference.community, reference.full_citation)

        edge = CitationEdge(
            locus=locus,
            identity=identity,
            reference_type=reference.reference_type,
            article=reference.article,
            is_primary=is_primary,
            full_citation=reference.full_citation,
            context=reference.context,
            implementation_keyword=reference.implementation_keyword,
            low_confidence=reference.low_confidence or conflict,
        )
        if edge.key in extraction.edges:
            return None
        extraction.edges[edge.key] = edge
        return edge

    def stage_all(self, extraction: DocumentExtraction, references: list[ClassifiedReference],
                  locus: Locus, primary_identities: set) -> list[CitationEdge]:
        staged = []
        for reference in references:
            edge = self.stage(extraction, reference, locus, reference.identity in primary_identities)
            if edge is not None:
                staged.append(edge)
        return staged
