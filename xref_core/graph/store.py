"""
Cross-Reference Graph Store.

Holds documents, canonical foreign instruments and citation edges, with
bidirectional indices:
- by document: every edge whose locus belongs to the document
- by locus: edges of exactly one document or provision locus
- by instrument: every edge pointing at an identity

Writes arrive one document at a time through `commit`, which validates the
whole extraction before mutating anything, so a rejected document leaves no
trace. Instruments and edges are never deleted; instruments can only be
enriched or marked out of force.
"""
import logging
import threading
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Union

from xref_core.exceptions import EdgeConflictError, NotFoundError
from xref_core.identity import InstrumentIdentity
from xref_core.models import CitationEdge, Community, DocumentRecord, ForeignInstrument, Locus
from xref_core.resolver import DocumentExtraction, merge_community

logger = logging.getLogger(__name__)

IdentityLike = Union[InstrumentIdentity, str]


@dataclass
class CommitResult:
    document_id: str
    edges_added: int = 0
    instruments_added: int = 0
    ambiguities: int = 0
    reclassified: int = 0


class CrossReferenceGraph:
    """In-memory graph of domestic loci and the EU instruments they cite."""

    def __init__(self):
        self.documents: dict[str, DocumentRecord] = {}
        self.instruments: dict[InstrumentIdentity, ForeignInstrument] = {}
        self.edges: dict[tuple, CitationEdge] = {}
        self._by_document: dict[str, list[tuple]] = {}
        self._by_locus: dict[Locus, list[tuple]] = {}
        self._by_instrument: dict[InstrumentIdentity, list[tuple]] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # =========================================================================
    # WRITES
    # =========================================================================

    def validate(self, extraction: DocumentExtraction) -> None:
        """
        Check a staged extraction against stored edges.

        Raises:
            EdgeConflictError: An edge key is already stored with a different
                primary flag. A different reference type is not a conflict;
                `apply` keeps the stored type and flags the edge low-confidence.
        """
        with self._lock:
            for key, edge in extraction.edges.items():
                stored = self.edges.get(key)
                if stored is not None and stored.is_primary != edge.is_primary:
                    raise EdgeConflictError(
                        f"Edge {edge.locus} -> {edge.identity} (article {edge.article}) already stored "
                        f"as {stored.reference_type.value}/primary={stored.is_primary}, "
                        f"got {edge.reference_type.value}/primary={edge.is_primary}"
                    )

    def apply(self, extraction: DocumentExtraction) -> CommitResult:
        """
        Apply a validated extraction. Identical edges are no-ops; an edge whose
        stored reference type differs keeps the first type and is marked
        low-confidence.
        """
        result = CommitResult(document_id=extraction.document_id)
        with self._lock:
            self._upsert_document(extraction.document)

            conflicted = set()
            for identity, staged in extraction.instruments.items():
                stored = self.instruments.get(identity)
                if stored is None:
                    self.instruments[identity] = replace(
                        staged,
                        supersedes=set(staged.supersedes),
                        superseded_by=set(staged.superseded_by),
                        ambiguities=list(staged.ambiguities),
                    )
                    result.instruments_added += 1
                    continue
                if merge_community(stored, staged.community, f"document {extraction.document_id}"):
                    conflicted.add(identity)
                for note in staged.ambiguities:
                    if note not in stored.ambiguities:
                        stored.ambiguities.append(note)
            result.ambiguities = len(conflicted)

            for key, edge in extraction.edges.items():
                stored = self.edges.get(key)
                if stored is not None:
                    if not stored.same_attributes(edge) and not stored.low_confidence:
                        logger.warning(
                            "Edge %s -> %s (article %s) stored as %s, now classified %s; keeping %s",
                            edge.locus, edge.identity, edge.article, stored.reference_type.value,
                            edge.reference_type.value, stored.reference_type.value,
                        )
                        stored.low_confidence = True
                        result.reclassified += 1
                    continue
                if edge.identity in conflicted and not edge.low_confidence:
                    edge = replace(edge, low_confidence=True)
                self._index_edge(edge)
                result.edges_added += 1

        logger.info(
            "Committed %s: %d new edges, %d new instruments",
            extraction.document_id, result.edges_added, result.instruments_added,
        )
        return result

    def commit(self, extraction: DocumentExtraction) -> CommitResult:
        """Validate and apply one document's extraction atomically."""
        with self._lock:
            self.validate(extraction)
            return self.apply(extraction)

    def restore(self, documents: Iterable[DocumentRecord], instruments: Iterable[ForeignInstrument],
                edges: Iterable[CitationEdge]) -> None:
        """Load previously persisted entities without re-validation."""
        with self._lock:
            for document in documents:
                self.documents[document.document_id] = document
                self._by_document.setdefault(document.document_id, [])
            for instrument in instruments:
                self.instruments[instrument.identity] = instrument
            for edge in edges:
                if edge.key not in self.edges:
                    self._index_edge(edge)

    def _upsert_document(self, document: DocumentRecord) -> None:
        stored = self.documents.get(document.document_id)
        if stored is None:
            self.documents[document.document_id] = replace(document, provisions=set(document.provisions))
            self._by_document.setdefault(document.document_id, [])
            return
        stored.title = document.title or stored.title
        stored.doc_type = document.doc_type
        stored.in_force = document.in_force
        stored.issued_date = document.issued_date or stored.issued_date
        stored.provisions.update(document.provisions)

    def _index_edge(self, edge: CitationEdge) -> None:
        key = edge.key
        self.edges[key] = edge
        self._by_document.setdefault(edge.locus.document_id, []).append(key)
        self._by_locus.setdefault(edge.locus, []).append(key)
        self._by_instrument.setdefault(edge.identity, []).append(key)

    # =========================================================================
    # ENRICHMENT & LIFECYCLE
    # =========================================================================

    def register_instrument(self, identity: IdentityLike, community: Union[Community, str] = Community.EU,
                            **metadata) -> ForeignInstrument:
        """Create an instrument not yet cited by any document (e.g. seeded metadata)."""
        identity = InstrumentIdentity.parse(identity)
        with self._lock:
            instrument = self.instruments.get(identity)
            if instrument is None:
                instrument = ForeignInstrument(identity=identity, community=Community(community))
                self.instruments[identity] = instrument
            else:
                merge_community(instrument, Community(community), "registration")
        if metadata:
            self.enrich_instrument(identity, **metadata)
        return instrument

    def enrich_instrument(self, identity: IdentityLike, title: Optional[str] = None,
                          short_name: Optional[str] = None, description: Optional[str] = None,
                          in_force: Optional[bool] = None,
                          superseded_by: Optional[Iterable[IdentityLike]] = None,
                          supersedes: Optional[Iterable[IdentityLike]] = None) -> ForeignInstrument:
        """
        Fill enrichment metadata. Identity fields are never touched.

        Raises:
            NotFoundError: Unknown identity
        """
        identity = InstrumentIdentity.parse(identity)
        with self._lock:
            instrument = self.get_instrument(identity)
            if title is not None:
                instrument.title = title
            if short_name is not None:
                instrument.short_name = short_name
            if description is not None:
                instrument.description = description
            if in_force is not None:
                instrument.in_force = in_force
            for newer in superseded_by or ():
                self._link_supersession(older=identity, newer=InstrumentIdentity.parse(newer))
            for older in supersedes or ():
                self._link_supersession(older=InstrumentIdentity.parse(older), newer=identity)
            return instrument

    def mark_out_of_force(self, identity: IdentityLike,
                          superseded_by: Optional[IdentityLike] = None) -> ForeignInstrument:
        """Flag an instrument as no longer in force, optionally naming its successor."""
        return self.enrich_instrument(
            identity,
            in_force=False,
            superseded_by=[superseded_by] if superseded_by is not None else None,
        )

    def _link_supersession(self, older: InstrumentIdentity, newer: InstrumentIdentity) -> None:
        if older in self.instruments:
            self.instruments[older].superseded_by.add(newer)
        if newer in self.instruments:
            self.instruments[newer].supersedes.add(older)

    # =========================================================================
    # READS
    # =========================================================================

    def has_instrument(self, identity: IdentityLike) -> bool:
        return InstrumentIdentity.parse(identity) in self.instruments

    def get_instrument(self, identity: IdentityLike) -> ForeignInstrument:
        identity = InstrumentIdentity.parse(identity)
        instrument = self.instruments.get(identity)
        if instrument is None:
            raise NotFoundError(f"Instrument {identity} not found")
        return instrument

    def get_document(self, document_id: str) -> DocumentRecord:
        document = self.documents.get(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def edges_for_document(self, document_id: str) -> list[CitationEdge]:
        return [self.edges[k] for k in self._by_document.get(document_id, [])]

    def edges_for_locus(self, locus: Locus) -> list[CitationEdge]:
        return [self.edges[k] for k in self._by_locus.get(locus, [])]

    def edges_for_instrument(self, identity: IdentityLike) -> list[CitationEdge]:
        identity = InstrumentIdentity.parse(identity)
        return [self.edges[k] for k in self._by_instrument.get(identity, [])]

    def __len__(self) -> int:
        return len(self.edges)
