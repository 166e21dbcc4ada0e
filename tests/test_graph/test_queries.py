"""
Query engine tests.

Tests cover both lookup directions (statute -> EU basis, EU instrument ->
domestic implementations), bounded search and reporting statistics.
Unknown keys raise NotFoundError; valid lookups with no matches return
empty results carrying a reason.
"""
import pytest

from xref_core.exceptions import NotFoundError
from xref_core.graph import QueryEngine
from xref_core.models import Locus, ReferenceType


@pytest.fixture
def queries(loaded_pipeline) -> QueryEngine:
    return QueryEngine(loaded_pipeline.graph, loaded_pipeline.versions)


class TestBasisFor:
    """Statute -> EU basis."""

    def test_title_instrument_listed_first_as_primary(self, queries):
        result = queries.basis_for("2019:1182")
        assert [e.id for e in result.entries] == ["directive:2019/1152", "regulation:2016/679"]
        assert result.entries[0].is_primary
        assert result.entries[0].reference_type == ReferenceType.IMPLEMENTS
        assert not result.entries[1].is_primary
        assert result.entries[1].reference_type == ReferenceType.COMPLIES_WITH

    def test_provision_basis(self, queries):
        result = queries.provision_basis("2018:218", "1:1")
        assert result.total == 1
        entry = result.entries[0]
        assert entry.id == "regulation:2016/679"
        assert entry.celex_number == "32016R0679"
        assert entry.reference_type == ReferenceType.SUPPLEMENTS
        assert entry.provision_ref == "1:1"

    def test_provision_without_references(self, queries):
        result = queries.basis_for(Locus("2018:218", "2:1"))
        assert result.entries == []
        assert result.reason == "No EU references recorded for 2018:218#2:1"

    def test_document_level_edge_from_title(self, queries):
        result = queries.basis_for("2020:500")
        assert len(result.entries) == 1
        entry = result.entries[0]
        assert entry.id == "regulation:2019/1020"
        assert entry.provision_ref is None
        assert entry.is_primary
        assert entry.reference_type == ReferenceType.APPLIES

    def test_unknown_document(self, queries):
        with pytest.raises(NotFoundError):
            queries.basis_for("1900:1")

    def test_unknown_provision(self, queries):
        with pytest.raises(NotFoundError):
            queries.basis_for("2018:218", "9:9")

    def test_enrichment_shows_in_basis(self, queries, loaded_pipeline):
        loaded_pipeline.graph.enrich_instrument("regulation:2016/679", short_name="GDPR")
        entry = queries.provision_basis("2018:218", "1:1").entries[0]
        assert entry.short_name == "GDPR"


class TestImplementationsOf:
    """EU instrument -> domestic loci."""

    def test_loci_citing_instrument(self, queries):
        result = queries.implementations_of("regulation:2016/679")
        assert result.statute_count == 2
        assert {(i.document_id, i.provision_ref) for i in result.implementations} == {
            ("2018:218", "1:1"),
            ("2019:1182", "2"),
        }
        assert result.reason is None

    def test_primary_only(self, queries):
        result = queries.implementations_of("directive:2019/1152", primary_only=True)
        assert [i.document_id for i in result.implementations] == ["2019:1182"]

    def test_filters_remove_all(self, queries):
        result = queries.implementations_of("regulation:2016/679", primary_only=True)
        assert result.implementations == []
        assert result.reason == "No recorded domestic references match the filters"

    def test_in_force_only(self, pipeline, data_protection_directive_document):
        pipeline.ingest(data_protection_directive_document)
        queries = QueryEngine(pipeline.graph)
        assert queries.implementations_of("directive:1995/46").statute_count == 1
        result = queries.implementations_of("directive:1995/46", in_force_only=True)
        assert result.implementations == []

    def test_regulation_without_edges(self, queries, loaded_pipeline):
        loaded_pipeline.graph.register_instrument("regulation:2014/910")
        result = queries.implementations_of("regulation:2014/910")
        assert result.implementations == []
        assert result.reason == "Instrument applies directly with no recorded domestic implementation"

    def test_directive_without_edges(self, queries, loaded_pipeline):
        loaded_pipeline.graph.register_instrument("directive:2022/2555")
        result = queries.implementations_of("directive:2022/2555")
        assert result.reason == "No recorded domestic implementation"

    def test_unknown_identity(self, queries):
        with pytest.raises(NotFoundError):
            queries.implementations_of("directive:2001/1")


class TestSearch:
    """Bounded, paginated instrument search."""

    @pytest.fixture
    def crowded(self, pipeline) -> QueryEngine:
        for n in range(1, 121):
            pipeline.graph.register_instrument(f"directive:2000/{n}")
        return QueryEngine(pipeline.graph)

    def test_default_page_size(self, crowded):
        result = crowded.search()
        assert result.limit == 20
        assert len(result.results) == 20
        assert result.total_results == 120

    def test_limit_capped(self, crowded):
        result = crowded.search({"limit": 500})
        assert result.limit == 100
        assert len(result.results) == 100

    def test_offset(self, crowded):
        result = crowded.search({"limit": 50, "offset": 110})
        assert len(result.results) == 10

    def test_newest_first(self, crowded):
        result = crowded.search({"limit": 3})
        assert [r.id for r in result.results] == ["directive:2000/120", "directive:2000/119", "directive:2000/118"]

    def test_type_filter(self, queries):
        result = queries.search({"type": "regulation"})
        assert {r.id for r in result.results} == {"regulation:2016/679", "regulation:2019/1020"}

    def test_year_range(self, queries):
        result = queries.search({"year_from": 2017, "year_to": 2019})
        assert {r.id for r in result.results} == {"directive:2019/1152", "regulation:2019/1020"}

    def test_query_matches_short_name(self, queries, loaded_pipeline):
        loaded_pipeline.graph.enrich_instrument("regulation:2016/679", short_name="GDPR")
        result = queries.search({"query": "gdpr"})
        assert [r.id for r in result.results] == ["regulation:2016/679"]
        assert result.results[0].statute_count == 2

    def test_query_matches_standard_code(self, queries):
        result = queries.search({"query": "32019L1152"})
        assert [r.id for r in result.results] == ["directive:2019/1152"]

    def test_reference_type_and_keyword(self, queries):
        assert [r.id for r in queries.search({"reference_type": "supplements"}).results] == ["regulation:2016/679"]
        assert [r.id for r in queries.search({"keyword": "genomför"}).results] == ["directive:2019/1152"]

    def test_has_domestic_implementation(self, queries, loaded_pipeline):
        loaded_pipeline.graph.register_instrument("regulation:2014/910")
        result = queries.search({"has_domestic_implementation": False})
        assert [r.id for r in result.results] == ["regulation:2014/910"]

    def test_invalid_limit_rejected(self, queries):
        from pydantic import ValidationError
        with pytest.raises(ValidationError):
            queries.search({"limit": 0})


class TestStatistics:

    def test_totals(self, queries):
        stats = queries.statistics()
        assert stats["documents"] == 3
        assert stats["documents_with_references"] == 3
        assert stats["instruments"] == 3
        assert stats["directives"] == 1
        assert stats["regulations"] == 2
        assert stats["edges"] == 4
        assert stats["edges_by_reference_type"]["supplements"] == 1

    def test_top_instruments(self, queries):
        top = queries.statistics(top=1)["top_instruments"]
        assert len(top) == 1
        assert top[0]["id"] == "regulation:2016/679"
        assert top[0]["statute_count"] == 2
        assert top[0]["celex_number"] == "32016R0679"
