"""
Reference currency check.

Reports whether a document (or one provision) still cites EU instruments
that have been marked out of force, and names the superseding instrument
when one is recorded. This is a freshness report over stored references,
not an assessment of substantive compliance.
"""
import logging
from typing import Optional

from xref_core.graph.store import CrossReferenceGraph, IdentityLike
from xref_core.identity import InstrumentIdentity
from xref_core.models import Locus
from xref_core.schemas import CurrencyReport, OutdatedReference

logger = logging.getLogger(__name__)

STATUS_CURRENT = "current"
STATUS_OUTDATED = "outdated"
STATUS_NO_REFERENCES = "no_references"


def check_reference_currency(graph: CrossReferenceGraph, document_id: str,
                             provision_ref: Optional[str] = None,
                             identity: Optional[IdentityLike] = None) -> CurrencyReport:
    """
    Check the currency of a document's EU references.

    Args:
        graph: Graph to read from
        document_id: Document to check
        provision_ref: Narrow to one provision's edges
        identity: Narrow to references to one instrument

    Returns:
        CurrencyReport with status current | outdated | no_references

    Raises:
        NotFoundError: Unknown document
    """
    graph.get_document(document_id)

    if provision_ref is not None:
        edges = graph.edges_for_locus(Locus(document_id, provision_ref))
    else:
        edges = graph.edges_for_document(document_id)
    if identity is not None:
        wanted = InstrumentIdentity.parse(identity)
        edges = [e for e in edges if e.identity == wanted]

    report = CurrencyReport(
        document_id=document_id,
        provision_ref=provision_ref,
        status=STATUS_NO_REFERENCES,
        references_checked=len(edges),
    )
    if not edges:
        report.warnings.append("No EU references found for this document")
        return report

    for edge in edges:
        instrument = graph.get_instrument(edge.identity)
        if instrument.in_force:
            continue
        successor = min(instrument.superseded_by) if instrument.superseded_by else None
        report.outdated.append(OutdatedReference(
            id=str(instrument.identity),
            celex_number=instrument.standard_code,
            document_id=edge.locus.document_id,
            provision_ref=edge.locus.provision_ref,
            article=edge.article,
            superseded_by=str(successor) if successor else None,
        ))

    if report.outdated:
        report.status = STATUS_OUTDATED
        for ref in {(o.id, o.superseded_by) for o in report.outdated}:
            old, new = ref
            if new:
                report.recommendations.append(f"Update references from {old} to {new}")
            else:
                report.warnings.append(f"{old} is no longer in force")
        report.recommendations.sort()
        report.warnings.sort()
    else:
        report.status = STATUS_CURRENT

    logger.debug("Currency check %s: %s", document_id, report.status)
    return report
