"""
Cross-reference graph.

Components:
- CrossReferenceGraph: canonical instruments, edges and bidirectional indices
- QueryEngine: read-only lookups (basis, implementations, search, statistics)
- check_reference_currency: out-of-force reference report
"""
from xref_core.graph.store import CommitResult, CrossReferenceGraph
from xref_core.graph.queries import QueryEngine, basis_sort_key
from xref_core.graph.currency import check_reference_currency

__all__ = [
    "CommitResult",
    "CrossReferenceGraph",
    "QueryEngine",
    "basis_sort_key",
    "check_reference_currency",
]
