"""
Ingestion pipeline.

Pipeline stages:
1. extract: parse, classify and stage one document (pure, parallel-safe)
2. commit: validate staged edges and versions, then apply both atomically
3. ingest_batch: extract in a thread pool, commit serially, report failures

A document whose commit is rejected leaves neither graph edges nor versions
behind; the rest of the batch continues.

Usage:
    pipeline = IngestionPipeline()
    report = pipeline.ingest_batch(documents)
    print(report.summary())
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from xref_core.config import DEFAULT_XREF_CONFIG, XrefConfig
from xref_core.graph.store import CrossReferenceGraph
from xref_core.models import DocumentRecord, Locus
from xref_core.parsing.citation_parser import CitationParser
from xref_core.parsing.classifier import ReferenceClassifier
from xref_core.parsing.patterns import CitationFamily
from xref_core.resolver import DocumentExtraction, IdentityResolver, StagedVersion
from xref_core.schemas import SourceDocument
from xref_core.utils import DocumentStats, IngestStats
from xref_core.versioning.engine import VersioningEngine

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Outcome of a batch: committed documents, failures and counts."""
    succeeded: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    stats: IngestStats = field(default_factory=IngestStats)

    def record_failure(self, document_id: str, stage: str, error: Exception) -> None:
        self.failed.append({
            "document_id": document_id,
            "stage": stage,
            "error_type": type(error).__name__,
            "error": str(error),
        })

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    def summary(self) -> dict:
        return {
            "total": self.total,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            **self.stats.summary(),
        }


class IngestionPipeline:
    """Turns SourceDocuments into graph edges and provision versions."""

    def __init__(self, graph: Optional[CrossReferenceGraph] = None,
                 versions: Optional[VersioningEngine] = None,
                 config: XrefConfig = DEFAULT_XREF_CONFIG,
                 parser: Optional[CitationParser] = None):
        self.config = config
        self.parser = parser or CitationParser(config=config)
        self.classifier = ReferenceClassifier(parser=self.parser, config=config)
        self.resolver = IdentityResolver()
        self.graph = graph if graph is not None else CrossReferenceGraph()
        self.versions = versions if versions is not None else VersioningEngine(parser=self.parser, config=config)

    # =========================================================================
    # EXTRACTION (pure)
    # =========================================================================

    def extract(self, document: Union[SourceDocument, dict]) -> DocumentExtraction:
        """
        Parse one document into a staged extraction.

        Provision texts yield provision-level edges; the title and full text
        yield document-level edges only for instruments no provision cites.
        Touches no shared state.
        """
        if isinstance(document, dict):
            document = SourceDocument(**document)

        record = DocumentRecord(
            document_id=document.document_id,
            title=document.title,
            doc_type=document.doc_type,
            in_force=document.in_force,
            issued_date=document.issued_date,
            provisions={p.provision_ref for p in document.provisions},
        )
        extraction = DocumentExtraction(document=record)
        primary = self.classifier.primary_identities(document.title)

        for provision in document.provisions:
            locus = Locus(document.document_id, provision.provision_ref)
            scan = self.parser.scan(provision.content, CitationFamily.FOREIGN)
            extraction.discarded.extend(scan.discarded)
            references = [
                self.classifier.classify(m, provision.content)
                for m in scan.matches
            ]
            self.resolver.stage_all(extraction, references, locus, primary)
            extraction.versions.append(
                StagedVersion(provision.provision_ref, provision.content, provision.valid_from)
            )

        cited_by_provisions = extraction.provision_identities()
        document_text = "\n".join(t for t in (document.title, document.full_text) if t)
        document_refs = [
            r for r in self.classifier.classify_text(document_text)
            if r.identity not in cited_by_provisions
        ]
        self.resolver.stage_all(extraction, document_refs, Locus(document.document_id), primary)

        logger.debug(
            "Extracted %s: %d edges, %d instruments, %d discarded",
            document.document_id, len(extraction.edges), len(extraction.instruments),
            len(extraction.discarded),
        )
        return extraction

    # =========================================================================
    # COMMIT (serialized)
    # =========================================================================

    def commit(self, extraction: DocumentExtraction) -> DocumentStats:
        """
        Apply one extraction to graph and versions as a unit.

        Raises:
            InvariantViolationError: Edge conflict, overlapping version or
                amendment before enactment; nothing is applied
        """
        document = extraction.document
        with self.graph.lock, self.versions.lock:
            plans = []
            for staged in extraction.versions:
                plan = self.versions.plan_version(
                    document.document_id, staged.provision_ref, staged.content, staged.valid_from,
                    issued_date=document.issued_date,
                )
                if plan is not None:
                    plans.append(plan)
            self.graph.validate(extraction)

            self.versions.register_document(document.document_id, document.issued_date)
            result = self.graph.apply(extraction)
            for plan in plans:
                self.versions.apply_plan(plan)

        return DocumentStats(
            document_id=document.document_id,
            edges_added=result.edges_added,
            instruments_added=result.instruments_added,
            versions_added=len(plans),
            discarded_matches=len(extraction.discarded),
        )

    def ingest(self, document: Union[SourceDocument, dict]) -> DocumentStats:
        return self.commit(self.extract(document))

    def ingest_batch(self, documents: Iterable[Union[SourceDocument, dict]],
                     max_workers: Optional[int] = None) -> BatchReport:
        """
        Extract documents in parallel and commit them one at a time.

        Failures (validation, extraction or commit) are logged and recorded
        per document; they never abort the batch.
        """
        documents = list(documents)
        report = BatchReport()
        workers = max(1, min(max_workers or self.config.max_workers, len(documents) or 1))

        def worker(document):
            try:
                return document, self.extract(document), None
            except Exception as e:
                return document, None, e

        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(worker, documents))

        for document, extraction, error in results:
            document_id = _document_id(document)
            if error is not None:
                logger.error("Extraction failed for %s: %s", document_id, error, exc_info=error)
                report.record_failure(document_id, "extract", error)
                continue
            try:
                stats = self.commit(extraction)
            except Exception as e:
                logger.error("Commit failed for %s: %s", document_id, e, exc_info=True)
                report.record_failure(document_id, "commit", e)
                continue
            report.stats.documents.append(stats)
            report.succeeded.append(document_id)

        logger.info(
            "Batch complete: %d succeeded, %d failed", len(report.succeeded), len(report.failed)
        )
        return report


def _document_id(document) -> str:
    if isinstance(document, SourceDocument):
        return document.document_id
    if isinstance(document, dict):
        return str(document.get("document_id", "<unknown>"))
    return "<unknown>"
