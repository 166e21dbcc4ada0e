"""
Temporal Versioning Engine.

Keeps, per (document, provision_ref), a timeline of ProvisionVersions and the
AmendmentRecords linking consecutive versions.

Timeline invariants (enforced at write time):
- versions are ordered by valid_from; only the first may have valid_from None
- windows are contiguous: each closed version's valid_to is the next valid_from
- at most one version is open (valid_to None), always the last
- a new version must start strictly after the open version's start;
  anything else would overlap an existing window and is rejected
- an amendment cannot take effect before the provision (or document) was enacted

Status is derived at query time:

    date inside a closed window  -> historical
    date inside the open window  -> current
    date before every window     -> future
    no versions at all           -> not_found
"""
import difflib
import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Union

from xref_core.config import DEFAULT_XREF_CONFIG, XrefConfig
from xref_core.exceptions import AmendmentDateError, VersionOverlapError
from xref_core.models import AmendmentKind, AmendmentRecord, Locus, ProvisionVersion, TemporalStatus
from xref_core.parsing.citation_parser import CitationParser
from xref_core.schemas import AmendmentEntry, TemporalResolution, VersionDiff
from xref_core.utils import normalize_amendment_kind, parse_date, parse_optional_date

logger = logging.getLogger(__name__)

DateLike = Union[str, date, None]


def compute_text_diff(old_text: Optional[str], new_text: Optional[str],
                      from_label: str = "Previous Version", to_label: str = "Current Version") -> str:
    """
    Generate unified diff between two provision texts.

    Returns:
        Unified diff string ("" when the texts are equal)
    """
    if old_text is None or new_text is None:
        return "Full text comparison not available"

    diff = difflib.unified_diff(
        old_text.splitlines(),
        new_text.splitlines(),
        lineterm="",
        fromfile=from_label,
        tofile=to_label,
    )
    return "\n".join(diff)


def coerce_kind(kind: Union[AmendmentKind, str]) -> AmendmentKind:
    if isinstance(kind, AmendmentKind):
        return kind
    return AmendmentKind(normalize_amendment_kind(kind))


def to_entry(record: AmendmentRecord) -> AmendmentEntry:
    return AmendmentEntry(
        document_id=record.locus.document_id,
        provision_ref=record.locus.provision_ref,
        amended_by=record.amending_id,
        effective_date=record.effective_date,
        kind=record.kind,
        version_before_id=record.version_before_id,
        version_after_id=record.version_after_id,
    )


@dataclass
class VersionPlan:
    """Validated, not yet applied, version write."""
    locus: Locus
    version: ProvisionVersion
    closes: Optional[ProvisionVersion] = None
    amendment: Optional[AmendmentRecord] = None


class VersioningEngine:
    """Per-provision version timelines with point-in-time resolution."""

    def __init__(self, parser: Optional[CitationParser] = None, config: XrefConfig = DEFAULT_XREF_CONFIG):
        self.config = config
        self.parser = parser or CitationParser(config=config)
        self._timelines: dict[Locus, list[ProvisionVersion]] = {}
        self._amendments: dict[Locus, list[AmendmentRecord]] = {}
        self._issued: dict[str, date] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def register_document(self, document_id: str, issued_date: DateLike = None) -> None:
        """Record a document's issue date; amendments may not precede it."""
        issued = parse_optional_date(issued_date)
        if issued is not None:
            with self._lock:
                self._issued[document_id] = issued

    # =========================================================================
    # WRITES
    # =========================================================================

    def plan_version(self, document_id: str, provision_ref: str, content: str,
                     valid_from: DateLike = None, amending: Optional[str] = None,
                     kind: Union[AmendmentKind, str, None] = None,
                     citation: str = "", issued_date: DateLike = None) -> Optional[VersionPlan]:
        """
        Validate a new version without changing any state.

        When `amending` is not given, the amending act is read from the
        version text (last-positioned domestic citation). `issued_date` checks
        amendments against a document issue date not yet registered.

        Returns:
            VersionPlan, or None when the wording is already recorded with
            this valid_from, or a later valid_from repeats the current wording

        Raises:
            VersionOverlapError: valid_from overlaps an existing window
            AmendmentDateError: amendment precedes the provision's enactment
        """
        valid_from = parse_optional_date(valid_from)
        issued_date = parse_optional_date(issued_date)
        locus = Locus(document_id, provision_ref)

        with self._lock:
            timeline = self._timelines.get(locus, [])
            if any(v.valid_from == valid_from and v.content == content for v in timeline):
                return None

            current = timeline[-1] if timeline else None
            if current is not None:
                if valid_from is None:
                    raise VersionOverlapError(
                        f"{locus} already has versions; a new version needs valid_from"
                    )
                if current.valid_from is not None and valid_from <= current.valid_from:
                    raise VersionOverlapError(
                        f"valid_from {valid_from} for {locus} overlaps the window starting "
                        f"{current.valid_from}"
                    )
                if current.content == content:
                    return None

            version = ProvisionVersion(document_id, provision_ref, content, valid_from=valid_from)
            plan = VersionPlan(locus=locus, version=version, closes=current)

            if amending is None:
                amending, kind, citation = self._amendment_from_text(content)
            if amending is None or valid_from is None:
                return plan

            first_from = timeline[0].valid_from if timeline else None
            self._check_effective_date(locus, valid_from, first_from, issued_date)
            kind = coerce_kind(kind) if kind is not None else AmendmentKind.CHANGED
            plan.amendment = AmendmentRecord(
                locus=locus,
                amending_id=amending,
                effective_date=valid_from,
                kind=kind,
                version_before_id=current.version_id if current else None,
                version_after_id=version.version_id,
                citation=citation,
            )
            return plan

    def apply_plan(self, plan: VersionPlan) -> ProvisionVersion:
        """Apply a plan from plan_version: close the open version and append."""
        with self._lock:
            if plan.closes is not None:
                plan.closes.valid_to = plan.version.valid_from
            self._timelines.setdefault(plan.locus, []).append(plan.version)
            if plan.amendment is not None:
                self._store_amendment(plan.amendment)
        logger.debug("Recorded %s", plan.version.version_id)
        return plan.version

    def add_version(self, document_id: str, provision_ref: str, content: str,
                    valid_from: DateLike = None, amending: Optional[str] = None,
                    kind: Union[AmendmentKind, str, None] = None,
                    citation: str = "") -> Optional[ProvisionVersion]:
        """
        Insert a version, closing the open one in the same step.

        Returns:
            The new version, or None if this wording was already recorded
        """
        with self._lock:
            plan = self.plan_version(document_id, provision_ref, content, valid_from, amending, kind, citation)
            if plan is None:
                return None
            return self.apply_plan(plan)

    def ingest_version(self, document_id: str, provision_ref: str, content: str,
                       valid_from: DateLike = None, amending: Optional[str] = None,
                       kind: Union[AmendmentKind, str, None] = None) -> Optional[ProvisionVersion]:
        """Alias of add_version for text arriving from ingestion."""
        return self.add_version(document_id, provision_ref, content, valid_from, amending, kind)

    def record_amendment(self, document_id: str, provision_ref: Optional[str], amending_id: str,
                         effective_date: DateLike, kind: Union[AmendmentKind, str] = AmendmentKind.CHANGED,
                         citation: str = "") -> AmendmentRecord:
        """
        Record an amendment without a new version (e.g. whole-document amendments).

        Raises:
            InvalidDateError: effective_date is not an ISO date
            AmendmentDateError: effective date precedes enactment
        """
        effective = parse_date(effective_date)
        locus = Locus(document_id, provision_ref)
        kind = coerce_kind(kind)
        with self._lock:
            timeline = self._timelines.get(locus, [])
            self._check_effective_date(locus, effective, timeline[0].valid_from if timeline else None)
            record = AmendmentRecord(locus, amending_id, effective, kind, citation=citation)
            return self._store_amendment(record)

    def restore(self, versions: Iterable[ProvisionVersion], amendments: Iterable[AmendmentRecord]) -> None:
        """Load persisted versions and records without re-validation."""
        with self._lock:
            for version in versions:
                self._timelines.setdefault(Locus(version.document_id, version.provision_ref), []).append(version)
            for timeline in self._timelines.values():
                timeline.sort(key=lambda v: (v.valid_from is not None, v.valid_from or date.min))
            for record in amendments:
                self._store_amendment(record)

    def _amendment_from_text(self, content: str) -> tuple:
        candidates = [
            m for m in self.parser.parse_domestic(content)
            if not m.low_confidence or self.config.accept_fallback_amendments
        ]
        if not candidates:
            return None, None, ""
        latest = max(candidates, key=lambda m: m.start_offset)
        return latest.identity, latest.normalized["amendment_kind"], latest.matched_text

    def _check_effective_date(self, locus: Locus, effective: date, first_from: Optional[date],
                              issued: Optional[date] = None) -> None:
        issued = issued or self._issued.get(locus.document_id)
        if first_from is not None and effective < first_from:
            raise AmendmentDateError(
                f"Amendment effective {effective} precedes first version of {locus} ({first_from})"
            )
        if issued is not None and effective < issued:
            raise AmendmentDateError(
                f"Amendment effective {effective} precedes issue date of {locus.document_id} ({issued})"
            )

    def _store_amendment(self, record: AmendmentRecord) -> AmendmentRecord:
        records = self._amendments.setdefault(record.locus, [])
        for existing in records:
            if existing.key == record.key:
                return existing
        records.append(record)
        records.sort(key=lambda r: r.effective_date)
        return record

    # =========================================================================
    # READS
    # =========================================================================

    def versions(self, document_id: str, provision_ref: str) -> list[ProvisionVersion]:
        return list(self._timelines.get(Locus(document_id, provision_ref), []))

    def all_versions(self) -> list[ProvisionVersion]:
        return [v for timeline in self._timelines.values() for v in timeline]

    def all_amendments(self) -> list[AmendmentRecord]:
        return [r for records in self._amendments.values() for r in records]

    def resolve_at(self, document_id: str, provision_ref: str, when: DateLike) -> TemporalResolution:
        """
        Which wording of a provision was in force on a date.

        Raises:
            InvalidDateError: `when` is not an ISO date
        """
        when = parse_date(when)
        locus = Locus(document_id, provision_ref)
        timeline = self._timelines.get(locus, [])

        if not timeline:
            return TemporalResolution(
                document_id=document_id,
                provision_ref=provision_ref,
                as_of=when,
                status=TemporalStatus.NOT_FOUND,
                reason=f"No versions recorded for {locus}",
            )

        for version in timeline:
            if version.contains(when):
                status = TemporalStatus.CURRENT if version.is_open else TemporalStatus.HISTORICAL
                later = [
                    to_entry(r) for r in self._amendments.get(locus, [])
                    if version.valid_from is None or r.effective_date > version.valid_from
                ]
                return TemporalResolution(
                    document_id=document_id,
                    provision_ref=provision_ref,
                    as_of=when,
                    status=status,
                    content=version.content,
                    version_id=version.version_id,
                    valid_from=version.valid_from,
                    valid_to=version.valid_to,
                    amended_by=later,
                )

        upcoming = [v.valid_from for v in timeline if v.valid_from is not None and v.valid_from > when]
        if upcoming:
            return TemporalResolution(
                document_id=document_id,
                provision_ref=provision_ref,
                as_of=when,
                status=TemporalStatus.FUTURE,
                next_valid_from=min(upcoming),
                reason=f"{locus} takes effect {min(upcoming)}",
            )

        # Unreachable while the timeline partitions time
        return TemporalResolution(
            document_id=document_id,
            provision_ref=provision_ref,
            as_of=when,
            status=TemporalStatus.NOT_FOUND,
            reason=f"No version of {locus} covers {when}",
        )

    def amendment_chain(self, document_id: str, provision_ref: Optional[str] = None) -> list[AmendmentRecord]:
        """
        Amendment records ordered by effective date.

        With provision_ref None, every record of the document is returned,
        ordered by (effective_date, provision_ref).
        """
        if provision_ref is not None:
            return list(self._amendments.get(Locus(document_id, provision_ref), []))
        records = [
            r for locus, rs in self._amendments.items()
            if locus.document_id == document_id
            for r in rs
        ]
        return sorted(records, key=lambda r: (r.effective_date, r.locus.provision_ref or ""))

    def diff(self, document_id: str, provision_ref: str, date_a: DateLike, date_b: DateLike) -> VersionDiff:
        """
        Compare a provision at two dates.

        Amendments are those effective in (earlier, later].
        """
        first, second = parse_date(date_a), parse_date(date_b)
        earlier, later = min(first, second), max(first, second)

        before = self.resolve_at(document_id, provision_ref, earlier)
        after = self.resolve_at(document_id, provision_ref, later)
        amendments = [
            to_entry(r) for r in self.amendment_chain(document_id, provision_ref)
            if earlier < r.effective_date <= later
        ]
        return VersionDiff(
            document_id=document_id,
            provision_ref=provision_ref,
            date_from=earlier,
            date_to=later,
            before=before,
            after=after,
            changed=before.content != after.content,
            amendments=amendments,
            text_diff=compute_text_diff(before.content, after.content, str(earlier), str(later)),
        )

    def amended_between(self, date_from: DateLike, date_to: DateLike) -> dict:
        """
        Documents amended with effect inside [date_from, date_to].

        Returns:
            {document_id: {"count": int, "amended_by": [amending ids]}}
        """
        start, end = parse_date(date_from), parse_date(date_to)
        summary: dict = {}
        for record in self.all_amendments():
            if not start <= record.effective_date <= end:
                continue
            entry = summary.setdefault(record.locus.document_id, {"count": 0, "amended_by": set()})
            entry["count"] += 1
            entry["amended_by"].add(record.amending_id)
        return {
            doc: {"count": e["count"], "amended_by": sorted(e["amended_by"])}
            for doc, e in sorted(summary.items())
        }

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def check_timeline(self, document_id: str, provision_ref: str) -> list[str]:
        """Describe every partition violation of one timeline (empty when valid)."""
        problems = []
        timeline = self._timelines.get(Locus(document_id, provision_ref), [])
        open_versions = [v for v in timeline if v.is_open]
        if len(open_versions) > 1:
            problems.append(f"{len(open_versions)} open versions")
        for i, version in enumerate(timeline):
            if i > 0 and version.valid_from is None:
                problems.append(f"{version.version_id} lacks valid_from but is not first")
            if version.valid_from and version.valid_to and version.valid_to <= version.valid_from:
                problems.append(f"{version.version_id} has an empty window")
            if i + 1 < len(timeline):
                following = timeline[i + 1]
                if version.valid_to != following.valid_from:
                    problems.append(
                        f"{version.version_id} ends {version.valid_to}, next starts {following.valid_from}"
                    )
        return problems

    def validate(self) -> dict:
        """Timeline problems for every locus that has any."""
        report = {}
        for locus in self._timelines:
            problems = self.check_timeline(locus.document_id, locus.provision_ref)
            if problems:
                report[locus.key] = problems
        return report
