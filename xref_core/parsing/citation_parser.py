"""
Citation Parser.

Applies a PatternLibrary to a block of legal text and emits RawMatch records
with offsets, captured groups and normalized fields. Pure: no state is kept
between calls, so one parser can be shared by worker threads.

Detection strategy:
1. Walk rules in descending priority (single dispatch loop)
2. Skip any match overlapping a span already claimed in the same family
3. Normalize captured groups; discard failures with a warning
4. Deduplicate by (normalized identity, inline article)
5. Return matches in text order

Usage:
    parser = CitationParser()
    for match in parser.parse_foreign(provision_text):
        print(match.identity, match.start_offset, match.pattern_id)
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from xref_core.config import DEFAULT_XREF_CONFIG, XrefConfig
from xref_core.parsing.patterns import DEFAULT_PATTERN_LIBRARY, CitationFamily, PatternLibrary

logger = logging.getLogger(__name__)


@dataclass
class RawMatch:
    """
    One recognized citation.

    Attributes:
        pattern_id: Rule that produced the match
        family: FOREIGN or DOMESTIC
        matched_text: Citation text as written
        start_offset: Offset of the first character in the source text
        end_offset: Offset one past the last character
        captured_groups: Named groups exactly as captured
        normalized: Normalizer output; always holds "identity"
            (InstrumentIdentity for FOREIGN, "YYYY:N" for DOMESTIC)
        priority: Priority of the producing rule
        low_confidence: True for fallback shapes
    """
    pattern_id: str
    family: CitationFamily
    matched_text: str
    start_offset: int
    end_offset: int
    captured_groups: dict
    normalized: dict
    priority: int = 0
    low_confidence: bool = False

    @property
    def identity(self):
        return self.normalized["identity"]

    @property
    def article(self) -> Optional[str]:
        return self.normalized.get("article")

    @property
    def dedup_key(self) -> tuple:
        return (self.family, self.identity, self.article)

    def overlaps(self, start: int, end: int) -> bool:
        return self.start_offset < end and start < self.end_offset


@dataclass
class DiscardedMatch:
    """Match dropped because its captures could not be normalized."""
    pattern_id: str
    matched_text: str
    start_offset: int
    reason: str


@dataclass
class ParseResult:
    matches: list = field(default_factory=list)
    discarded: list = field(default_factory=list)


class CitationParser:
    """Run a PatternLibrary over text."""

    def __init__(self, library: PatternLibrary = DEFAULT_PATTERN_LIBRARY,
                 config: XrefConfig = DEFAULT_XREF_CONFIG):
        self.library = library
        self.config = config

    def parse(self, text: str, family: Optional[CitationFamily] = None) -> list[RawMatch]:
        """Return deduplicated matches for `family` (or all families) in text order."""
        return self.scan(text, family).matches

    def parse_foreign(self, text: str) -> list[RawMatch]:
        return self.parse(text, CitationFamily.FOREIGN)

    def parse_domestic(self, text: str) -> list[RawMatch]:
        return self.parse(text, CitationFamily.DOMESTIC)

    def identities_in(self, text: str) -> set:
        """Distinct foreign identities cited anywhere in text."""
        return {m.identity for m in self.parse_foreign(text)}

    def scan(self, text: str, family: Optional[CitationFamily] = None) -> ParseResult:
        """
        Apply every rule of the library and keep the first claim on each span.

        Args:
            text: Plain UTF-8 legal text
            family: Restrict to one citation family (None = all)

        Returns:
            ParseResult with kept matches (text order) and discarded ones
        """
        result = ParseResult()
        if not text:
            return result

        claimed: dict[CitationFamily, list[RawMatch]] = {}
        seen: set = set()

        for rule in self.library.ordered(family):
            family_claims = claimed.setdefault(rule.family, [])

            for match in rule.regex.finditer(text):
                start, end = match.start(), match.end()
                if any(c.overlaps(start, end) for c in family_claims):
                    continue

                groups = {k: v for k, v in match.groupdict().items() if v is not None}
                try:
                    normalized = rule.normalizer(groups, self.config)
                except ValueError as e:
                    # InvalidIdentityError is a ValueError
                    logger.warning(
                        "Discarding %s match %r at offset %d: %s",
                        rule.pattern_id, match.group(0), start, e,
                    )
                    result.discarded.append(
                        DiscardedMatch(rule.pattern_id, match.group(0), start, str(e))
                    )
                    continue

                raw = RawMatch(
                    pattern_id=rule.pattern_id,
                    family=rule.family,
                    matched_text=match.group(0).strip(),
                    start_offset=start,
                    end_offset=end,
                    captured_groups=groups,
                    normalized=normalized,
                    priority=rule.priority,
                    low_confidence=rule.low_confidence,
                )
                # The span stays claimed even when the identity is a repeat,
                # so a weaker rule cannot re-match the same citation.
                family_claims.append(raw)
                if raw.dedup_key in seen:
                    continue
                seen.add(raw.dedup_key)
                result.matches.append(raw)

        result.matches.sort(key=lambda m: (m.start_offset, -m.priority))
        return result

    def extract_context(self, text: str, start: int, end: int, window: Optional[int] = None) -> str:
        """
        Extract surrounding context for a match.

        Args:
            text: Full source text
            start: Match start position
            end: Match end position
            window: Characters to include on each side (config default)
        """
        window = self.config.context_window if window is None else window
        context_start = max(0, start - window)
        context_end = min(len(text), end + window)
        return text[context_start:context_end].strip()
