"""
Version write tests.

Tests ensure every write keeps a provision's windows partitioning time:
no gaps, no overlaps, at most one open window, and no amendment taking
effect before the provision was enacted.
"""
from datetime import date

import pytest

from xref_core.config import XrefConfig
from xref_core.exceptions import AmendmentDateError, InvalidDateError, VersionOverlapError
from xref_core.models import AmendmentKind
from xref_core.versioning import VersioningEngine


class TestWindowPartition:
    """Inserting a version closes the open one in the same step."""

    def test_open_version_closed_on_insert(self, versioned_engine):
        first, second = versioned_engine.versions("2018:218", "1:1")
        assert first.valid_to == date(2021, 12, 1)
        assert second.valid_from == date(2021, 12, 1)
        assert second.is_open

    def test_single_open_window(self, versioned_engine):
        versioned_engine.add_version("2018:218", "1:1", "Tredje lydelsen.", valid_from="2024-01-01")
        versions = versioned_engine.versions("2018:218", "1:1")
        assert sum(1 for v in versions if v.is_open) == 1
        assert versioned_engine.check_timeline("2018:218", "1:1") == []
        assert versioned_engine.validate() == {}

    def test_identical_wording_is_noop(self, versioned_engine):
        current = versioned_engine.versions("2018:218", "1:1")[-1]
        assert versioned_engine.add_version("2018:218", "1:1", current.content, valid_from="2025-01-01") is None
        assert len(versioned_engine.versions("2018:218", "1:1")) == 2

    def test_first_version_may_be_undated(self):
        engine = VersioningEngine()
        version = engine.add_version("2010:1", "1", "Ursprunglig lydelse.")
        assert version.valid_from is None
        assert version.version_id == "2010:1#1@original"


class TestOverlapRejection:
    """valid_from values that would overlap an existing window are rejected."""

    def test_same_start_as_open_window(self, versioned_engine):
        with pytest.raises(VersionOverlapError):
            versioned_engine.add_version("2018:218", "1:1", "Annan lydelse.", valid_from="2021-12-01")

    def test_start_inside_closed_window(self, versioned_engine):
        with pytest.raises(VersionOverlapError):
            versioned_engine.add_version("2018:218", "1:1", "Annan lydelse.", valid_from="2019-01-01")

    def test_current_wording_inside_closed_window(self, versioned_engine):
        current = versioned_engine.versions("2018:218", "1:1")[-1]
        with pytest.raises(VersionOverlapError):
            versioned_engine.add_version("2018:218", "1:1", current.content, valid_from="2019-01-01")

    def test_earlier_wording_at_later_date(self, versioned_engine):
        first = versioned_engine.versions("2018:218", "1:1")[0]
        with pytest.raises(VersionOverlapError):
            versioned_engine.add_version("2018:218", "1:1", first.content, valid_from="2020-01-01")

    def test_exact_resubmission_is_noop(self, versioned_engine):
        first = versioned_engine.versions("2018:218", "1:1")[0]
        assert versioned_engine.add_version(
            "2018:218", "1:1", first.content, valid_from=first.valid_from
        ) is None
        assert len(versioned_engine.versions("2018:218", "1:1")) == 2

    def test_undated_version_after_existing(self, versioned_engine):
        with pytest.raises(VersionOverlapError):
            versioned_engine.add_version("2018:218", "1:1", "Annan lydelse.")

    def test_rejected_write_leaves_timeline_untouched(self, versioned_engine):
        before = [v.to_dict() for v in versioned_engine.versions("2018:218", "1:1")]
        with pytest.raises(VersionOverlapError):
            versioned_engine.add_version("2018:218", "1:1", "Annan lydelse.", valid_from="2019-01-01")
        assert [v.to_dict() for v in versioned_engine.versions("2018:218", "1:1")] == before

    def test_invalid_valid_from(self, versioned_engine):
        with pytest.raises(InvalidDateError):
            versioned_engine.add_version("2018:218", "1:1", "Annan lydelse.", valid_from="1 december")


class TestAmendmentExtraction:
    """Amending acts read from version text."""

    def test_trailing_act_creates_record(self, versioned_engine):
        chain = versioned_engine.amendment_chain("2018:218", "1:1")
        assert len(chain) == 1
        assert chain[0].amending_id == "2021:1174"
        assert chain[0].kind == AmendmentKind.CHANGED
        assert chain[0].effective_date == date(2021, 12, 1)

    def test_repeal_notice(self, versioned_engine):
        versioned_engine.add_version(
            "2018:218", "1:1", "Har upphävts genom lag (2023:50).", valid_from="2023-07-01"
        )
        record = versioned_engine.amendment_chain("2018:218", "1:1")[-1]
        assert record.amending_id == "2023:50"
        assert record.kind == AmendmentKind.REPEALED

    def test_last_marker_wins(self):
        engine = VersioningEngine()
        engine.add_version("2005:551", "1", "Lydelse.", valid_from="2006-01-01")
        engine.add_version(
            "2005:551", "1", "Ny lydelse enligt lag (2019:50). Lydelse. Lag (2021:1174).",
            valid_from="2022-01-01",
        )
        assert engine.amendment_chain("2005:551", "1")[0].amending_id == "2021:1174"

    def test_explicit_amending_act(self):
        engine = VersioningEngine()
        engine.add_version("2005:551", "1", "Lydelse.", valid_from="2006-01-01")
        engine.add_version("2005:551", "1", "Ny text.", valid_from="2010-01-01",
                           amending="2009:99", kind="ny_lydelse")
        record = engine.amendment_chain("2005:551", "1")[0]
        assert record.amending_id == "2009:99"
        assert record.kind == AmendmentKind.NEW_WORDING

    def test_undated_version_creates_no_record(self):
        engine = VersioningEngine()
        engine.add_version("2005:551", "1", "Lydelse. Lag (2004:10).")
        assert engine.amendment_chain("2005:551", "1") == []

    def test_fallback_numbers_ignored_by_default(self):
        engine = VersioningEngine()
        engine.add_version("2005:551", "1", "Lydelse.", valid_from="2006-01-01")
        engine.add_version("2005:551", "1", "Se 2020:5 för övergångsbestämmelser.", valid_from="2021-01-01")
        assert engine.amendment_chain("2005:551", "1") == []

    def test_fallback_numbers_accepted_when_configured(self):
        engine = VersioningEngine(config=XrefConfig(accept_fallback_amendments=True))
        engine.add_version("2005:551", "1", "Lydelse.", valid_from="2006-01-01")
        engine.add_version("2005:551", "1", "Se 2020:5 för övergångsbestämmelser.", valid_from="2021-01-01")
        assert [r.amending_id for r in engine.amendment_chain("2005:551", "1")] == ["2020:5"]


class TestAmendmentDates:
    """An amendment cannot take effect before enactment."""

    def test_before_first_version(self, versioned_engine):
        with pytest.raises(AmendmentDateError):
            versioned_engine.record_amendment("2018:218", "1:1", "2010:1", "2010-01-01")

    def test_before_issue_date(self):
        engine = VersioningEngine()
        engine.register_document("2018:218", "2018-04-19")
        engine.add_version("2018:218", "3:1", "Ursprunglig lydelse.")
        with pytest.raises(AmendmentDateError):
            engine.add_version("2018:218", "3:1", "Ny lydelse. Lag (2017:10).", valid_from="2018-01-01")
        assert len(engine.versions("2018:218", "3:1")) == 1

    def test_record_amendment_for_document(self, versioned_engine):
        record = versioned_engine.record_amendment(
            "2018:218", None, "2022:1", "2022-02-01", kind=AmendmentKind.INTRODUCED
        )
        assert record.locus.provision_ref is None
        assert "2022:1" in [r.amending_id for r in versioned_engine.amendment_chain("2018:218")]

    def test_record_amendment_is_idempotent(self, versioned_engine):
        first = versioned_engine.record_amendment("2018:218", "1:1", "2022:1", "2022-02-01")
        second = versioned_engine.record_amendment("2018:218", "1:1", "2022:1", "2022-02-01")
        assert first is second
        assert len(versioned_engine.amendment_chain("2018:218", "1:1")) == 2

    def test_record_amendment_invalid_date(self, versioned_engine):
        with pytest.raises(InvalidDateError):
            versioned_engine.record_amendment("2018:218", "1:1", "2022:1", "snart")
