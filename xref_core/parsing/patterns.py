"""
Pattern Library for legislative citations.

Each PatternRule carries its own priority and normalizer, so precedence is
data rather than source order. The parser walks rules in descending priority
and the first (highest) rule to claim a span of text wins it.

Families:
1. FOREIGN: EU directives and regulations
   "Europaparlamentets och rådets förordning (EU) 2016/679"
   "direktiv 95/46/EG", "Directive (EU) 2016/680", "Regulation (EU) No 910/2014"
2. DOMESTIC: amendment markers attached to an SFS number
   "Lag (2021:1174).", "Upphävd genom lag (2019:100)", "amended by 2020:5"

Normalizers return a dict of normalized fields and raise ValueError when the
captured groups cannot be normalized; the parser turns that into a warning
and drops the match.

Usage:
    library = DEFAULT_PATTERN_LIBRARY
    for rule in library.ordered(CitationFamily.FOREIGN):
        ...
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from xref_core.config import XrefConfig
from xref_core.identity import InstrumentIdentity, InstrumentKind
from xref_core.models import AmendmentKind, Community
from xref_core.utils import collapse_whitespace, normalize_article, normalize_community, normalize_year


class CitationFamily(str, Enum):
    FOREIGN = "foreign"
    DOMESTIC = "domestic"


Normalizer = Callable[[dict, XrefConfig], dict]


@dataclass(frozen=True)
class PatternRule:
    """
    One citation shape.

    Attributes:
        pattern_id: Stable identifier reported on every match
        family: FOREIGN or DOMESTIC
        priority: Higher wins when matches overlap
        regex: Compiled pattern using named groups
        normalizer: Maps captured groups to normalized fields
        low_confidence: Matches are kept but flagged (fallback shapes)
    """
    pattern_id: str
    family: CitationFamily
    priority: int
    regex: re.Pattern
    normalizer: Normalizer
    low_confidence: bool = False
    description: str = ""


class PatternLibrary:
    """Immutable, priority-ordered collection of PatternRules."""

    def __init__(self, rules: Iterable[PatternRule]):
        rules = list(rules)
        ids = [r.pattern_id for r in rules]
        if len(ids) != len(set(ids)):
            raise ValueError("Pattern ids must be unique")
        # sorted() is stable: equal priorities keep declaration order
        self._rules = tuple(sorted(rules, key=lambda r: -r.priority))

    def ordered(self, family: Optional[CitationFamily] = None) -> tuple[PatternRule, ...]:
        if family is None:
            return self._rules
        return tuple(r for r in self._rules if r.family == family)

    def get(self, pattern_id: str) -> PatternRule:
        for rule in self._rules:
            if rule.pattern_id == pattern_id:
                return rule
        raise KeyError(pattern_id)

    def with_rules(self, *rules: PatternRule) -> "PatternLibrary":
        return PatternLibrary(self._rules + rules)

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


# =============================================================================
# SHARED FRAGMENTS
# =============================================================================

# "2016/679", "95/46"
_YEAR_NUMBER = r"(?P<year>\d{2,4})/(?P<number>\d+)\b"

# "(EU)", "(EG)", "(EU, Euratom)"
_COMMUNITY_PARENS = r"\((?P<community>[A-Za-zÅÄÖåäö,\s]{2,20})\)"

# "/EG" suffix after the number
_COMMUNITY_SUFFIX = r"(?:/(?P<suffix>Euratom|EEG|EEC|EG|EC|EU)\b)?"

# "6", "6.1", "6.1.c", "13-15", "83.4, 83.5 och 83.6"; a following "2018/1725" is a citation, not an article
ARTICLE_BODY = (
    r"\d+(?:\.\d+)*(?:\.[a-z]\b)?"
    r"(?:\s*(?:,|-|–|\boch\b|\band\b)\s*\d+(?:\.\d+)*(?:\.[a-z]\b)?(?![\d/]))*"
)

# Article reference directly trailing the citation
_ARTICLE_TAIL = rf"(?:,?\s+(?:artikel|artiklarna|article|articles)\s+(?P<article>{ARTICLE_BODY}))?"

_SV_ISSUING_BODY = r"(?P<issuing_body>Europaparlamentets\s+och\s+rådets|rådets|kommissionens)"

# "2021:1174"
_SFS_NUMBER = r"(?P<year>\d{2,4}):(?P<number>\d+)\b"
_ACT_WORD = r"(?:(?:lag(?:en)?|förordning(?:en)?|act|law|ordinance|SFS)\s*)?"
_SFS_CITATION = rf"{_ACT_WORD}\(?{_SFS_NUMBER}\)?"

_FLAGS = re.IGNORECASE | re.UNICODE


# =============================================================================
# NORMALIZERS
# =============================================================================

def split_year_number(kind: InstrumentKind, first: str, second: str) -> tuple:
    """Return (year, number) text for a "first/second" pair.

    Directives are always year/number. Regulations adopted before 2015 are
    cited number/year ("nr 765/2008", "nr 1408/71"); those are recognised
    by a four-digit second part after a shorter first part, or by a
    four-digit first part that cannot be a year.
    """
    if kind is not InstrumentKind.REGULATION:
        return first, second
    if len(second) == 4 and len(first) < 4:
        return second, first
    if len(first) == 4 and len(second) <= 2 and not first.startswith(("19", "20")):
        return second, first
    return first, second


def foreign_normalizer(kind: InstrumentKind) -> Normalizer:
    """Build the normalizer for an EU citation shape of the given kind."""

    def normalize(groups: dict, config: XrefConfig) -> dict:
        year_text, number_text = split_year_number(
            kind,
            (groups.get("year") or "").strip(),
            (groups.get("number") or "").strip(),
        )
        year = normalize_year(year_text, pivot=config.year_pivot)
        if not number_text.isdigit():
            raise ValueError(f"Non-numeric number: {number_text!r}")
        if not config.min_year <= year <= config.max_year:
            raise ValueError(f"Year {year} outside {config.min_year}-{config.max_year}")

        identity = InstrumentIdentity(kind, year, int(number_text))
        community = Community(normalize_community(groups.get("community") or groups.get("suffix")))
        issuing_body = groups.get("issuing_body")
        article = groups.get("article")
        return {
            "identity": identity,
            "community": community,
            "issuing_body": collapse_whitespace(issuing_body) if issuing_body else None,
            "article": normalize_article(article) if article else None,
        }

    return normalize


def domestic_normalizer(kind: AmendmentKind) -> Normalizer:
    """Build the normalizer for a domestic amendment marker."""

    def normalize(groups: dict, config: XrefConfig) -> dict:
        year = normalize_year(groups.get("year") or "", pivot=config.year_pivot)
        number_text = (groups.get("number") or "").strip()
        if not number_text.isdigit() or int(number_text) <= 0:
            raise ValueError(f"Invalid SFS number: {number_text!r}")
        return {
            "identity": f"{year}:{int(number_text)}",
            "amendment_kind": kind,
        }

    return normalize


# =============================================================================
# FOREIGN RULES
# =============================================================================

FOREIGN_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        pattern_id="sv.directive.issuing_body",
        family=CitationFamily.FOREIGN,
        priority=100,
        regex=re.compile(
            rf"{_SV_ISSUING_BODY}\s+direktiv\s+(?:{_COMMUNITY_PARENS}\s+)?(?:nr\s+)?"
            rf"{_YEAR_NUMBER}{_COMMUNITY_SUFFIX}{_ARTICLE_TAIL}",
            _FLAGS,
        ),
        normalizer=foreign_normalizer(InstrumentKind.DIRECTIVE),
        description="rådets direktiv 93/13/EEG",
    ),
    PatternRule(
        pattern_id="sv.regulation.issuing_body",
        family=CitationFamily.FOREIGN,
        priority=100,
        regex=re.compile(
            rf"{_SV_ISSUING_BODY}\s+(?P<form>genomförandeförordning|delegerade\s+förordning|förordning)\s+"
            rf"{_COMMUNITY_PARENS}\s+(?:nr\s+)?{_YEAR_NUMBER}{_ARTICLE_TAIL}",
            _FLAGS,
        ),
        normalizer=foreign_normalizer(InstrumentKind.REGULATION),
        description="Europaparlamentets och rådets förordning (EU) 2016/679",
    ),
    PatternRule(
        pattern_id="sv.directive.parenthesized",
        family=CitationFamily.FOREIGN,
        priority=80,
        regex=re.compile(
            rf"\bdirektiv\s+{_COMMUNITY_PARENS}\s+(?:nr\s+)?{_YEAR_NUMBER}{_ARTICLE_TAIL}",
            _FLAGS,
        ),
        normalizer=foreign_normalizer(InstrumentKind.DIRECTIVE),
        description="direktiv (EU) 2019/1152",
    ),
    PatternRule(
        pattern_id="sv.regulation.parenthesized",
        family=CitationFamily.FOREIGN,
        priority=80,
        regex=re.compile(
            rf"\b(?:genomförandeförordning|förordning)\s+{_COMMUNITY_PARENS}\s+(?:nr\s+)?"
            rf"{_YEAR_NUMBER}{_ARTICLE_TAIL}",
            _FLAGS,
        ),
        normalizer=foreign_normalizer(InstrumentKind.REGULATION),
        description="förordning (EG) nr 765/2008",
    ),
    PatternRule(
        pattern_id="en.directive.parenthesized",
        family=CitationFamily.FOREIGN,
        priority=80,
        regex=re.compile(
            rf"\bDirective\s+{_COMMUNITY_PARENS}\s+(?:No\.?\s+)?{_YEAR_NUMBER}{_ARTICLE_TAIL}",
            _FLAGS,
        ),
        normalizer=foreign_normalizer(InstrumentKind.DIRECTIVE),
        description="Directive (EU) 2016/680",
    ),
    PatternRule(
        pattern_id="en.regulation.parenthesized",
        family=CitationFamily.FOREIGN,
        priority=80,
        regex=re.compile(
            rf"\bRegulation\s+{_COMMUNITY_PARENS}\s+(?:No\.?\s+)?{_YEAR_NUMBER}{_ARTICLE_TAIL}",
            _FLAGS,
        ),
        normalizer=foreign_normalizer(InstrumentKind.REGULATION),
        description="Regulation (EU) No 910/2014",
    ),
    PatternRule(
        pattern_id="sv.directive.suffix",
        family=CitationFamily.FOREIGN,
        priority=60,
        regex=re.compile(
            rf"\bdirektiv\s+(?:nr\s+)?{_YEAR_NUMBER}{_COMMUNITY_SUFFIX}{_ARTICLE_TAIL}",
            _FLAGS,
        ),
        normalizer=foreign_normalizer(InstrumentKind.DIRECTIVE),
        description="direktiv 95/46/EG",
    ),
    PatternRule(
        pattern_id="en.directive.suffix",
        family=CitationFamily.FOREIGN,
        priority=60,
        regex=re.compile(
            rf"\bDirective\s+(?:No\.?\s+)?{_YEAR_NUMBER}{_COMMUNITY_SUFFIX}{_ARTICLE_TAIL}",
            _FLAGS,
        ),
        normalizer=foreign_normalizer(InstrumentKind.DIRECTIVE),
        description="Directive 95/46/EC",
    ),
)


# =============================================================================
# DOMESTIC RULES
# =============================================================================

def _marker(words: str, links: str) -> str:
    return rf"\b(?:{words})\s+(?:{links})\s+{_SFS_CITATION}"


DOMESTIC_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        pattern_id="domestic.repealed",
        family=CitationFamily.DOMESTIC,
        priority=100,
        regex=re.compile(_marker(r"upphävd|har\s+upphävts|upphävs|repealed", r"genom|enligt|by"), _FLAGS),
        normalizer=domestic_normalizer(AmendmentKind.REPEALED),
        description="Har upphävts genom lag (2021:1174)",
    ),
    PatternRule(
        pattern_id="domestic.introduced",
        family=CitationFamily.DOMESTIC,
        priority=95,
        regex=re.compile(_marker(r"införd|har\s+införts|introduced|inserted", r"genom|by"), _FLAGS),
        normalizer=domestic_normalizer(AmendmentKind.INTRODUCED),
        description="Införd genom lag (2025:256)",
    ),
    PatternRule(
        pattern_id="domestic.new_wording",
        family=CitationFamily.DOMESTIC,
        priority=90,
        regex=re.compile(_marker(r"ny\s+lydelse|new\s+wording", r"enligt|genom|by"), _FLAGS),
        normalizer=domestic_normalizer(AmendmentKind.NEW_WORDING),
        description="Ny lydelse enligt lag (2018:2002)",
    ),
    PatternRule(
        pattern_id="domestic.delayed_effect",
        family=CitationFamily.DOMESTIC,
        priority=90,
        regex=re.compile(
            _marker(r"ikraftträdande|träder\s+i\s+kraft|entry\s+into\s+force", r"enligt|genom|by"), _FLAGS
        ),
        normalizer=domestic_normalizer(AmendmentKind.DELAYED_EFFECT),
        description="Ikraftträdande enligt lag (2022:444)",
    ),
    PatternRule(
        pattern_id="domestic.changed",
        family=CitationFamily.DOMESTIC,
        priority=85,
        regex=re.compile(_marker(r"ändrad|har\s+ändrats|amended", r"genom|by"), _FLAGS),
        normalizer=domestic_normalizer(AmendmentKind.CHANGED),
        description="Ändrad genom lag (2018:1248)",
    ),
    PatternRule(
        pattern_id="domestic.trailing_act",
        family=CitationFamily.DOMESTIC,
        priority=70,
        # Case-sensitive: the consolidation marker is capitalized and starts a sentence
        regex=re.compile(rf"(?:^|(?<=[\s.;:!?]))(?P<act>Lag|Förordning)\s+\({_SFS_NUMBER}\)\s*\.", re.UNICODE),
        normalizer=domestic_normalizer(AmendmentKind.CHANGED),
        description="... Lag (2021:1174).",
    ),
    PatternRule(
        pattern_id="domestic.bare_number",
        family=CitationFamily.DOMESTIC,
        priority=10,
        regex=re.compile(r"\b(?P<year>\d{4}):(?P<number>\d+)\b", re.UNICODE),
        normalizer=domestic_normalizer(AmendmentKind.CHANGED),
        low_confidence=True,
        description="any YYYY:N",
    ),
)


DEFAULT_PATTERN_LIBRARY = PatternLibrary(FOREIGN_RULES + DOMESTIC_RULES)
