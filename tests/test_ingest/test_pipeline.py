"""
Ingestion pipeline tests.

Extraction is pure and parallel-safe; commits are atomic per document; a
batch records failures per document and never aborts.
"""
import pytest
from pydantic import ValidationError

from xref_core.exceptions import AmendmentDateError, VersionOverlapError
from xref_core.ingest import IngestionPipeline
from xref_core.models import Locus
from xref_core.schemas import SourceDocument


class TestExtraction:
    """Tests for the pure extraction stage."""

    def test_extract_touches_no_shared_state(self, pipeline, directive_implementation_document):
        extraction = pipeline.extract(directive_implementation_document)
        assert len(extraction.edges) == 2
        assert len(pipeline.graph) == 0
        assert pipeline.graph.documents == {}

    def test_provision_versions_staged(self, pipeline, gdpr_supplement_document):
        extraction = pipeline.extract(gdpr_supplement_document)
        assert [v.provision_ref for v in extraction.versions] == ["1:1", "2:1"]

    def test_title_citation_marks_primary(self, pipeline, directive_implementation_document):
        extraction = pipeline.extract(directive_implementation_document)
        primary = [e for e in extraction.edge_list() if e.is_primary]
        assert [str(e.identity) for e in primary] == ["directive:2019/1152"]
        assert primary[0].locus == Locus("2019:1182", "1")

    def test_full_text_citation_becomes_document_edge(self, pipeline):
        extraction = pipeline.extract({
            "document_id": "2022:300",
            "title": "Lag (2022:300) om kompletterande bestämmelser",
            "full_text": "Lagen kompletterar förordning (EU) 2022/868.",
            "provisions": [{"provision_ref": "1", "content": "Allmänna bestämmelser."}],
        })
        edges = extraction.edge_list()
        assert len(edges) == 1
        assert edges[0].locus == Locus("2022:300")

    def test_discarded_matches_collected(self, pipeline):
        extraction = pipeline.extract({
            "document_id": "2022:301",
            "title": "Lag (2022:301)",
            "provisions": [{"provision_ref": "1", "content": "Se direktiv 1850/12/EG."}],
        })
        assert len(extraction.discarded) == 1
        assert extraction.edges == {}

    def test_accepts_source_document(self, pipeline, gdpr_supplement_document):
        extraction = pipeline.extract(SourceDocument(**gdpr_supplement_document))
        assert extraction.document_id == "2018:218"

    def test_duplicate_provision_refs_rejected(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.extract({
                "document_id": "2022:302",
                "title": "Lag (2022:302)",
                "provisions": [
                    {"provision_ref": "1", "content": "A."},
                    {"provision_ref": "1", "content": "B."},
                ],
            })


class TestCommitStats:

    def test_stats(self, pipeline, gdpr_supplement_document):
        stats = pipeline.ingest(gdpr_supplement_document)
        assert stats.document_id == "2018:218"
        assert stats.edges_added == 1
        assert stats.instruments_added == 1
        assert stats.versions_added == 2

    def test_versions_recorded(self, pipeline, gdpr_supplement_document):
        pipeline.ingest(gdpr_supplement_document)
        resolution = pipeline.versions.resolve_at("2018:218", "1:1", "2020-01-01")
        assert resolution.status == "current"

    def test_amended_wording_on_reingest(self, pipeline, gdpr_supplement_document):
        pipeline.ingest(gdpr_supplement_document)
        amended = dict(gdpr_supplement_document)
        amended["provisions"] = [
            {
                "provision_ref": "2:1",
                "content": "Personuppgifter får behandlas om det är nödvändigt. Lag (2021:1174).",
                "valid_from": "2021-12-01",
            },
        ]
        stats = pipeline.ingest(amended)
        assert stats.versions_added == 1
        chain = pipeline.versions.amendment_chain("2018:218", "2:1")
        assert [r.amending_id for r in chain] == ["2021:1174"]

    def test_rejected_commit_leaves_issue_date_unregistered(self, pipeline, gdpr_supplement_document):
        pipeline.ingest(gdpr_supplement_document)
        rejected = dict(gdpr_supplement_document)
        rejected["issued_date"] = "2030-01-01"
        rejected["provisions"] = [
            {"provision_ref": "1:1", "content": "Annan lydelse.", "valid_from": "2018-01-01"},
        ]
        with pytest.raises(VersionOverlapError):
            pipeline.ingest(rejected)

        amended = dict(gdpr_supplement_document)
        amended["provisions"] = [{
            "provision_ref": "1:1",
            "content": (
                "Denna lag kompletterar Europaparlamentets och rådets förordning (EU) 2016/679 "
                "(EU:s dataskyddsförordning). Lag (2021:1174)."
            ),
            "valid_from": "2021-12-01",
        }]
        stats = pipeline.ingest(amended)
        assert stats.versions_added == 1
        assert [r.amending_id for r in pipeline.versions.amendment_chain("2018:218", "1:1")] == ["2021:1174"]

    def test_issue_date_checked_within_commit(self, pipeline):
        with pytest.raises(AmendmentDateError):
            pipeline.ingest({
                "document_id": "2019:10",
                "title": "Lag (2019:10)",
                "issued_date": "2019-02-01",
                "provisions": [
                    {"provision_ref": "1", "content": "Lydelse. Lag (2018:900).", "valid_from": "2018-12-01"},
                ],
            })
        assert pipeline.versions.versions("2019:10", "1") == []
        assert "2019:10" not in pipeline.graph.documents


class TestBatch:
    """Batch ingestion with parallel extraction."""

    def test_bad_document_does_not_abort_batch(self, pipeline, gdpr_supplement_document,
                                               directive_implementation_document):
        report = pipeline.ingest_batch([
            gdpr_supplement_document,
            {"document_id": "bad", "title": None},
            directive_implementation_document,
        ])
        assert report.succeeded == ["2018:218", "2019:1182"]
        assert len(report.failed) == 1
        failure = report.failed[0]
        assert failure["document_id"] == "bad"
        assert failure["stage"] == "extract"
        assert failure["error_type"] == "ValidationError"

    def test_reclassification_does_not_block_versions(self, pipeline):
        pipeline.ingest({
            "document_id": "2020:1",
            "title": "Lag (2020:1)",
            "provisions": [{"provision_ref": "1", "content": "Denna lag kompletterar förordning (EU) 2016/679."}],
        })
        report = pipeline.ingest_batch([{
            "document_id": "2020:1",
            "title": "Lag (2020:1)",
            "provisions": [{
                "provision_ref": "1",
                "content": "Denna lag genomför förordning (EU) 2016/679.",
                "valid_from": "2021-01-01",
            }],
        }])
        assert report.succeeded == ["2020:1"]
        assert report.failed == []
        assert report.summary()["versions_added"] == 1
        assert pipeline.graph.edges_for_locus(Locus("2020:1", "1"))[0].low_confidence

    def test_commit_failure_recorded(self, pipeline):
        pipeline.ingest({
            "document_id": "2020:1",
            "title": "Lag (2020:1)",
            "provisions": [{
                "provision_ref": "1",
                "content": "Denna lag kompletterar förordning (EU) 2016/679.",
                "valid_from": "2020-07-01",
            }],
        })
        report = pipeline.ingest_batch([{
            "document_id": "2020:1",
            "title": "Lag (2020:1)",
            "provisions": [{
                "provision_ref": "1",
                "content": "Ändrad lydelse.",
                "valid_from": "2020-03-01",
            }],
        }])
        assert report.succeeded == []
        assert report.failed[0]["stage"] == "commit"
        assert report.failed[0]["error_type"] == "VersionOverlapError"

    def test_parallel_matches_serial(self):
        documents = [
            {
                "document_id": f"2023:{n}",
                "title": f"Lag (2023:{n}) om genomförande av direktiv (EU) 2023/{n}",
                "provisions": [
                    {"provision_ref": "1", "content": f"Lagen genomför direktiv (EU) 2023/{n}."},
                    {"provision_ref": "2", "content": "Uppgifter ska lämnas i enlighet med förordning (EU) 2016/679."},
                ],
            }
            for n in range(1, 11)
        ]
        serial = IngestionPipeline()
        for document in documents:
            serial.ingest(document)
        parallel = IngestionPipeline()
        report = parallel.ingest_batch(documents, max_workers=4)
        assert len(report.succeeded) == 10
        assert set(parallel.graph.edges) == set(serial.graph.edges)
        assert report.summary()["edges_added"] == len(serial.graph)

    def test_summary(self, pipeline, gdpr_supplement_document):
        report = pipeline.ingest_batch([gdpr_supplement_document])
        summary = report.summary()
        assert summary["total"] == 1
        assert summary["succeeded"] == 1
        assert summary["failed"] == 0
        assert summary["documents"] == 1
        assert summary["versions_added"] == 2

    def test_empty_batch(self, pipeline):
        report = pipeline.ingest_batch([])
        assert report.total == 0
