"""
Cross-reference graph store tests.

Tests ensure canonical instruments are unique per identity, community
conflicts are recorded rather than raised, a reclassified edge keeps
its first reference type, and a conflicting primary flag is rejected before
anything is written.
"""
import pytest

from xref_core.exceptions import EdgeConflictError, NotFoundError
from xref_core.identity import InstrumentIdentity
from xref_core.models import Community, Locus, ReferenceType


class TestCommit:
    """Tests for per-document commits."""

    def test_instruments_and_edges_created(self, loaded_pipeline):
        graph = loaded_pipeline.graph
        assert set(graph.documents) == {"2018:218", "2019:1182", "2020:500"}
        assert {str(i) for i in graph.instruments} == {
            "regulation:2016/679",
            "directive:2019/1152",
            "regulation:2019/1020",
        }
        assert len(graph) == 4

    def test_instrument_shared_across_documents(self, loaded_pipeline):
        edges = loaded_pipeline.graph.edges_for_instrument("regulation:2016/679")
        assert {e.locus.document_id for e in edges} == {"2018:218", "2019:1182"}

    def test_reingest_is_idempotent(self, pipeline, gdpr_supplement_document):
        first = pipeline.ingest(gdpr_supplement_document)
        edge_count = len(pipeline.graph)
        second = pipeline.ingest(gdpr_supplement_document)
        assert first.edges_added == 1
        assert second.edges_added == 0
        assert second.instruments_added == 0
        assert second.versions_added == 0
        assert len(pipeline.graph) == edge_count

    def test_reclassified_edge_keeps_first_type(self, pipeline):
        pipeline.ingest({
            "document_id": "2020:1",
            "title": "Lag (2020:1) om personuppgifter",
            "provisions": [{
                "provision_ref": "1",
                "content": "Denna lag kompletterar förordning (EU) 2016/679.",
                "valid_from": "2020-01-01",
            }],
        })
        stats = pipeline.ingest({
            "document_id": "2020:1",
            "title": "Lag (2020:1) om personuppgifter",
            "provisions": [{
                "provision_ref": "1",
                "content": "Denna lag genomför förordning (EU) 2016/679. Lag (2021:5).",
                "valid_from": "2022-01-01",
            }],
        })
        edge = pipeline.graph.edges_for_locus(Locus("2020:1", "1"))[0]
        assert edge.reference_type == ReferenceType.SUPPLEMENTS
        assert edge.low_confidence
        assert stats.edges_added == 0
        assert stats.versions_added == 1
        assert len(pipeline.versions.versions("2020:1", "1")) == 2
        assert [r.amending_id for r in pipeline.versions.amendment_chain("2020:1", "1")] == ["2021:5"]

    def test_primary_flag_conflict_rejected_atomically(self, pipeline):
        pipeline.ingest({
            "document_id": "2020:1",
            "title": "Lag (2020:1) om personuppgifter",
            "provisions": [{"provision_ref": "1", "content": "Denna lag kompletterar förordning (EU) 2016/679."}],
        })
        with pytest.raises(EdgeConflictError):
            pipeline.ingest({
                "document_id": "2020:1",
                "title": "Lag (2020:1) med kompletterande bestämmelser till förordning (EU) 2016/679",
                "provisions": [{
                    "provision_ref": "1",
                    "content": "Denna lag kompletterar förordning (EU) 2016/679. Lag (2021:5).",
                    "valid_from": "2021-01-01",
                }],
            })
        edge = pipeline.graph.edges_for_locus(Locus("2020:1", "1"))[0]
        assert not edge.is_primary
        assert not edge.low_confidence
        assert pipeline.graph.get_document("2020:1").title == "Lag (2020:1) om personuppgifter"
        assert len(pipeline.versions.versions("2020:1", "1")) == 1


class TestCommunityConflicts:
    """First community designation wins; later ones are recorded ambiguities."""

    def test_conflict_within_document(self, pipeline):
        pipeline.ingest({
            "document_id": "1998:204",
            "title": "Personuppgiftslag (1998:204)",
            "provisions": [
                {"provision_ref": "1", "content": "Lagen genomför direktiv 95/46/EG."},
                {"provision_ref": "2", "content": "Lagen genomför även direktiv (EU) 95/46."},
            ],
        })
        instrument = pipeline.graph.get_instrument("directive:1995/46")
        assert instrument.community == Community.EG
        assert instrument.low_confidence
        assert len(instrument.ambiguities) == 1
        edge = pipeline.graph.edges_for_locus(Locus("1998:204", "2"))[0]
        assert edge.low_confidence

    def test_conflict_across_documents(self, pipeline):
        pipeline.ingest({
            "document_id": "1998:204",
            "title": "Personuppgiftslag (1998:204)",
            "provisions": [{"provision_ref": "1", "content": "Lagen genomför direktiv 95/46/EG."}],
        })
        stats = pipeline.ingest({
            "document_id": "2001:1",
            "title": "Lag (2001:1) om behandling av uppgifter",
            "provisions": [{"provision_ref": "1", "content": "Lagen genomför direktiv (EU) 95/46."}],
        })
        assert stats.instruments_added == 0
        instrument = pipeline.graph.get_instrument("directive:1995/46")
        assert instrument.community == Community.EG
        assert instrument.ambiguities
        assert pipeline.graph.edges_for_locus(Locus("2001:1", "1"))[0].low_confidence

    def test_equal_numbers_different_kinds_not_merged(self, pipeline):
        pipeline.ingest({
            "document_id": "2021:5",
            "title": "Lag (2021:5) om arbetsvillkor",
            "provisions": [{
                "provision_ref": "1",
                "content": "Lagen genomför direktiv (EU) 2019/1152 och tillämpar förordning (EG) 2019/1152.",
            }],
        })
        directive = pipeline.graph.get_instrument("directive:2019/1152")
        regulation = pipeline.graph.get_instrument("regulation:2019/1152")
        assert directive.community == Community.EU
        assert regulation.community == Community.EG
        assert not directive.ambiguities
        assert not regulation.ambiguities


class TestEnrichment:
    """Tests for metadata and lifecycle updates."""

    def test_enrich_instrument(self, loaded_pipeline):
        graph = loaded_pipeline.graph
        graph.enrich_instrument("regulation:2016/679", short_name="GDPR", title="Dataskyddsförordningen")
        instrument = graph.get_instrument("regulation:2016/679")
        assert instrument.short_name == "GDPR"
        assert str(instrument.identity) == "regulation:2016/679"

    def test_enrich_unknown_raises(self, loaded_pipeline):
        with pytest.raises(NotFoundError):
            loaded_pipeline.graph.enrich_instrument("directive:1990/1", title="Okänd")

    def test_mark_out_of_force_links_both_directions(self, loaded_pipeline):
        graph = loaded_pipeline.graph
        graph.register_instrument("directive:1995/46", "EG")
        graph.mark_out_of_force("directive:1995/46", superseded_by="regulation:2016/679")
        old = graph.get_instrument("directive:1995/46")
        new = graph.get_instrument("regulation:2016/679")
        assert not old.in_force
        assert InstrumentIdentity.parse("regulation:2016/679") in old.superseded_by
        assert InstrumentIdentity.parse("directive:1995/46") in new.supersedes

    def test_register_existing_keeps_community(self, loaded_pipeline):
        graph = loaded_pipeline.graph
        instrument = graph.register_instrument("regulation:2016/679", "EG")
        assert instrument.community == Community.EU
        assert instrument.ambiguities


class TestReads:

    def test_unknown_instrument(self, loaded_pipeline):
        with pytest.raises(NotFoundError):
            loaded_pipeline.graph.get_instrument("directive:2001/1")

    def test_unknown_document(self, loaded_pipeline):
        with pytest.raises(NotFoundError):
            loaded_pipeline.graph.get_document("1900:1")

    def test_has_instrument(self, loaded_pipeline):
        assert loaded_pipeline.graph.has_instrument("directive:2019/1152")
        assert not loaded_pipeline.graph.has_instrument("directive:2019/1153")
