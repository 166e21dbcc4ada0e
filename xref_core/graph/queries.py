"""
Query Engine.

Read-only operations over the CrossReferenceGraph and, when attached, the
VersioningEngine. Results are pydantic models from xref_core.schemas.

Failure semantics:
- unknown identity / document / provision -> NotFoundError
- valid lookup with no matches -> empty result carrying a `reason`
"""
import logging
from collections import Counter
from typing import Optional, Union

from xref_core.config import DEFAULT_XREF_CONFIG, XrefConfig
from xref_core.exceptions import NotFoundError
from xref_core.graph.store import CrossReferenceGraph, IdentityLike
from xref_core.identity import InstrumentKind
from xref_core.models import (
    OTHER_REFERENCE_PRIORITY,
    REFERENCE_TYPE_PRIORITY,
    CitationEdge,
    ForeignInstrument,
    Locus,
)
from xref_core.schemas import (
    BasisEntry,
    BasisResult,
    Implementation,
    ImplementationsResult,
    InstrumentSummary,
    SearchFilters,
    SearchResult,
)

logger = logging.getLogger(__name__)


def basis_sort_key(edge: CitationEdge) -> tuple:
    """Primary first, then implements > supplements > applies > others, then newest instrument."""
    return (
        not edge.is_primary,
        REFERENCE_TYPE_PRIORITY.get(edge.reference_type, OTHER_REFERENCE_PRIORITY),
        -edge.identity.year,
        -edge.identity.number,
        edge.locus.provision_ref or "",
        edge.article or "",
    )


class QueryEngine:
    """Bidirectional lookups between domestic loci and EU instruments."""

    def __init__(self, graph: CrossReferenceGraph, versions=None,
                 config: XrefConfig = DEFAULT_XREF_CONFIG):
        self.graph = graph
        self.versions = versions
        self.config = config

    # =========================================================================
    # DOMESTIC -> FOREIGN
    # =========================================================================

    def basis_for(self, locus: Union[Locus, str], provision_ref: Optional[str] = None) -> BasisResult:
        """
        EU basis of a document or of one provision.

        A document locus returns every edge of the document (document-level
        and provision-level); a provision locus returns exactly that
        provision's edges.

        Raises:
            NotFoundError: Unknown document or provision
        """
        if not isinstance(locus, Locus):
            locus = Locus(locus, provision_ref)
        document = self.graph.get_document(locus.document_id)

        if locus.is_provision:
            if locus.provision_ref not in document.provisions:
                raise NotFoundError(
                    f"Provision {locus.provision_ref} not found in {locus.document_id}"
                )
            edges = self.graph.edges_for_locus(locus)
        else:
            edges = self.graph.edges_for_document(locus.document_id)

        entries = [self._basis_entry(e) for e in sorted(edges, key=basis_sort_key)]
        reason = None
        if not entries:
            reason = f"No EU references recorded for {locus}"
        return BasisResult(
            document_id=locus.document_id,
            document_title=document.title,
            provision_ref=locus.provision_ref,
            entries=entries,
            reason=reason,
        )

    def provision_basis(self, document_id: str, provision_ref: str) -> BasisResult:
        """Edges whose locus is exactly the given provision."""
        return self.basis_for(Locus(document_id, provision_ref))

    def _basis_entry(self, edge: CitationEdge) -> BasisEntry:
        instrument = self.graph.get_instrument(edge.identity)
        return BasisEntry(
            id=str(edge.identity),
            type=edge.identity.kind,
            year=edge.identity.year,
            number=edge.identity.number,
            community=instrument.community,
            celex_number=edge.identity.standard_code,
            title=instrument.title,
            short_name=instrument.short_name,
            instrument_in_force=instrument.in_force,
            document_id=edge.locus.document_id,
            provision_ref=edge.locus.provision_ref,
            reference_type=edge.reference_type,
            article=edge.article,
            articles=edge.articles,
            is_primary=edge.is_primary,
            full_citation=edge.full_citation,
            context=edge.context,
            implementation_keyword=edge.implementation_keyword,
            low_confidence=edge.low_confidence or instrument.low_confidence,
        )

    # =========================================================================
    # FOREIGN -> DOMESTIC
    # =========================================================================

    def implementations_of(self, identity: IdentityLike, primary_only: bool = False,
                           in_force_only: bool = False) -> ImplementationsResult:
        """
        Domestic loci citing an instrument.

        Args:
            identity: InstrumentIdentity or canonical id string
            primary_only: Keep only primary-implementation edges
            in_force_only: Keep only edges from documents still in force

        Raises:
            NotFoundError: Identity was never seen
        """
        instrument = self.graph.get_instrument(identity)
        all_edges = self.graph.edges_for_instrument(instrument.identity)

        edges = all_edges
        if primary_only:
            edges = [e for e in edges if e.is_primary]
        if in_force_only:
            edges = [e for e in edges if self.graph.get_document(e.locus.document_id).in_force]

        implementations = []
        for edge in sorted(edges, key=lambda e: (not e.is_primary, e.locus.document_id, e.locus.provision_ref or "")):
            document = self.graph.get_document(edge.locus.document_id)
            implementations.append(Implementation(
                document_id=document.document_id,
                document_title=document.title,
                provision_ref=edge.locus.provision_ref,
                document_in_force=document.in_force,
                reference_type=edge.reference_type,
                article=edge.article,
                is_primary=edge.is_primary,
                low_confidence=edge.low_confidence,
            ))

        return ImplementationsResult(
            id=str(instrument.identity),
            celex_number=instrument.standard_code,
            community=instrument.community,
            title=instrument.title,
            instrument_in_force=instrument.in_force,
            implementations=implementations,
            statute_count=len({i.document_id for i in implementations}),
            reason=self._empty_reason(instrument, all_edges) if not implementations else None,
        )

    @staticmethod
    def _empty_reason(instrument: ForeignInstrument, all_edges: list) -> str:
        if all_edges:
            return "No recorded domestic references match the filters"
        if instrument.kind == InstrumentKind.REGULATION:
            return "Instrument applies directly with no recorded domestic implementation"
        return "No recorded domestic implementation"

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search(self, filters: Optional[Union[SearchFilters, dict]] = None) -> SearchResult:
        """
        Bounded, paginated instrument search.

        Page size defaults to `search_default_limit` and never exceeds
        `search_max_limit`. Results are ordered newest instrument first.
        """
        if filters is None:
            filters = SearchFilters()
        elif isinstance(filters, dict):
            filters = SearchFilters(**filters)

        limit = min(filters.limit or self.config.search_default_limit, self.config.search_max_limit)

        matched = [
            i for i in self.graph.instruments.values()
            if self._matches(i, filters)
        ]
        matched.sort(key=lambda i: (-i.year, -i.number, i.kind.value))
        page = matched[filters.offset:filters.offset + limit]

        return SearchResult(
            results=[self._summary(i) for i in page],
            total_results=len(matched),
            limit=limit,
            offset=filters.offset,
        )

    def _matches(self, instrument: ForeignInstrument, filters: SearchFilters) -> bool:
        if filters.type is not None and instrument.kind != filters.type:
            return False
        if filters.community is not None and instrument.community != filters.community:
            return False
        if filters.year_from is not None and instrument.year < filters.year_from:
            return False
        if filters.year_to is not None and instrument.year > filters.year_to:
            return False

        edges = self.graph.edges_for_instrument(instrument.identity)
        if filters.has_domestic_implementation is not None:
            if bool(edges) != filters.has_domestic_implementation:
                return False
        if filters.reference_type is not None:
            if not any(e.reference_type == filters.reference_type for e in edges):
                return False
        if filters.keyword:
            needle = filters.keyword.lower()
            if not any(e.implementation_keyword and needle in e.implementation_keyword.lower() for e in edges):
                return False
        if filters.query:
            needle = filters.query.lower()
            haystack = [
                str(instrument.identity),
                instrument.identity.short_id,
                instrument.standard_code,
                instrument.title or "",
                instrument.short_name or "",
                instrument.description or "",
            ]
            if not any(needle in h.lower() for h in haystack):
                return False
        return True

    def _summary(self, instrument: ForeignInstrument) -> InstrumentSummary:
        edges = self.graph.edges_for_instrument(instrument.identity)
        return InstrumentSummary(
            id=str(instrument.identity),
            type=instrument.kind,
            year=instrument.year,
            number=instrument.number,
            community=instrument.community,
            celex_number=instrument.standard_code,
            title=instrument.title,
            short_name=instrument.short_name,
            in_force=instrument.in_force,
            statute_count=len({e.locus.document_id for e in edges}),
            edge_count=len(edges),
            primary_implementations=len({e.locus.document_id for e in edges if e.is_primary}),
            low_confidence=instrument.low_confidence,
        )

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def statistics(self, top: int = 10) -> dict:
        """Totals for reporting."""
        graph = self.graph
        by_kind = Counter(i.kind.value for i in graph.instruments.values())
        by_type = Counter(e.reference_type.value for e in graph.edges.values())
        documents_with_refs = {e.locus.document_id for e in graph.edges.values()}

        reference_counts = []
        for identity, instrument in graph.instruments.items():
            edges = graph.edges_for_instrument(identity)
            if not edges:
                continue
            reference_counts.append({
                "id": str(identity),
                "celex_number": identity.standard_code,
                "short_name": instrument.short_name,
                "statute_count": len({e.locus.document_id for e in edges}),
                "edge_count": len(edges),
            })
        reference_counts.sort(key=lambda r: (-r["statute_count"], -r["edge_count"], r["id"]))

        return {
            "documents": len(graph.documents),
            "documents_with_references": len(documents_with_refs),
            "instruments": len(graph.instruments),
            "directives": by_kind.get(InstrumentKind.DIRECTIVE.value, 0),
            "regulations": by_kind.get(InstrumentKind.REGULATION.value, 0),
            "edges": len(graph.edges),
            "low_confidence_edges": sum(1 for e in graph.edges.values() if e.low_confidence),
            "edges_by_reference_type": dict(by_type),
            "ambiguous_instruments": sum(1 for i in graph.instruments.values() if i.low_confidence),
            "top_instruments": reference_counts[:top],
        }

    # =========================================================================
    # TEMPORAL (delegated to the versioning engine)
    # =========================================================================

    def _require_versions(self):
        if self.versions is None:
            raise RuntimeError("QueryEngine has no VersioningEngine attached")
        return self.versions

    def resolve_at(self, document_id: str, provision_ref: str, when):
        return self._require_versions().resolve_at(document_id, provision_ref, when)

    def amendment_chain(self, document_id: str, provision_ref: Optional[str] = None):
        return self._require_versions().amendment_chain(document_id, provision_ref)

    def diff(self, document_id: str, provision_ref: str, date_a, date_b):
        return self._require_versions().diff(document_id, provision_ref, date_a, date_b)

    def amended_between(self, date_from, date_to) -> dict:
        return self._require_versions().amended_between(date_from, date_to)
