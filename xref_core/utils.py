import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

from xref_core.exceptions import InvalidDateError


# =============================================================================
# COMMUNITY DESIGNATION NORMALIZATION
# =============================================================================
#
# Swedish and English texts name the same issuing-body era differently:
#
#   Swedish      English     Canonical
#   -------      -------     ---------
#   EU           EU          EU
#   EG           EC          EG
#   EEG          EEC         EEG
#   Euratom      Euratom     Euratom
#
# Mixed designations such as "EU, Euratom" resolve to the most specific era
# marker present (Euratom > EEG > EG > EU).
# =============================================================================

COMMUNITY_ALIASES: dict[str, str] = {
    "EURATOM": "Euratom",
    "EEG": "EEG",
    "EEC": "EEG",
    "EWG": "EEG",
    "EG": "EG",
    "EC": "EG",
    "EU": "EU",
    "UE": "EU",
}

# Checked in this order so "EEG" is not mistaken for "EG"
_COMMUNITY_PRECEDENCE = ["EURATOM", "EEG", "EEC", "EWG", "EG", "EC", "EU", "UE"]


def normalize_community(raw: Optional[str], default: str = "EU") -> str:
    """
    Map a raw community designation to its canonical label.

    Args:
        raw: Designation as written ("EG", "EC", "EU, Euratom") or None
        default: Value returned when nothing recognizable is present

    Returns:
        One of "EU", "EG", "EEG", "Euratom"
    """
    if not raw:
        return default
    tokens = set(re.findall(r"[A-Za-z]+", raw.upper()))
    for alias in _COMMUNITY_PRECEDENCE:
        if alias in tokens:
            return COMMUNITY_ALIASES[alias]
    return default


# =============================================================================
# AMENDMENT KIND NORMALIZATION
# =============================================================================
# Consolidated Swedish statutes label amendments with their own vocabulary.
# Canonical values match models.AmendmentKind.

AMENDMENT_LABEL_MAP: dict[str, str] = {
    "ändrad": "changed",
    "ändr": "changed",
    "ny_lydelse": "new_wording",
    "ny lydelse": "new_wording",
    "införd": "introduced",
    "upphävd": "repealed",
    "upph": "repealed",
    "ikraftträdande": "delayed_effect",
    "changed": "changed",
    "amended": "changed",
    "new_wording": "new_wording",
    "introduced": "introduced",
    "repealed": "repealed",
    "delayed_effect": "delayed_effect",
}


def normalize_amendment_kind(raw: str) -> str:
    """
    Normalize an amendment label ("ändrad", "ny_lydelse", "repealed") to the
    canonical amendment kind value.

    Raises:
        ValueError: If the label is not part of the closed vocabulary
    """
    key = raw.strip().lower()
    if key not in AMENDMENT_LABEL_MAP:
        raise ValueError(f"Unknown amendment kind: {raw!r}")
    return AMENDMENT_LABEL_MAP[key]


# =============================================================================
# NUMERIC / DATE NORMALIZATION
# =============================================================================

def normalize_year(raw: Union[str, int], pivot: int = 50) -> int:
    """
    Expand two-digit years using the corpus numbering convention.

    Values below `pivot` map to the 2000s, values at or above it to the 1900s
    ("95" -> 1995, "04" -> 2004). Four-digit years pass through unchanged.

    Raises:
        ValueError: If the value is not numeric
    """
    text = str(raw).strip()
    if not text.isdigit():
        raise ValueError(f"Non-numeric year: {raw!r}")
    year = int(text)
    if len(text) <= 2:
        return 2000 + year if year < pivot else 1900 + year
    return year


def parse_date(value: Union[str, date, datetime, None]) -> date:
    """
    Parse an ISO date ("2021-12-01") or full ISO datetime into a date.

    Raises:
        InvalidDateError: If the value is missing or not an ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateError(f"Invalid date: {value!r}. Expected format YYYY-MM-DD")
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise InvalidDateError(f"Invalid date: {value!r}. Expected format YYYY-MM-DD") from None


def parse_optional_date(value: Union[str, date, None]) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_date(value)


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


# =============================================================================
# ARTICLE REFERENCES
# =============================================================================

_ARTICLE_SEPARATORS = re.compile(r"\s*(?:,|\boch\b|\band\b)\s*")
_ARTICLE_RANGE = re.compile(r"^(\d+)\s*[-–]\s*(\d+)$")


def normalize_article(raw: str) -> str:
    """Collapse whitespace and unify dashes ("13 – 15" -> "13-15")."""
    text = collapse_whitespace(raw).strip(" ,.")
    text = re.sub(r"\s*[-–]\s*", "-", text)
    return text


def expand_articles(article: str) -> list[str]:
    """
    Split an article reference into its individual article citations.

    "6.1"               -> ["6.1"]
    "83.4, 83.5 och 83.6" -> ["83.4", "83.5", "83.6"]
    "13-15"             -> ["13", "14", "15"]

    Ranges are only expanded between plain integers; dotted ranges are kept
    as written.
    """
    parts: list[str] = []
    for piece in _ARTICLE_SEPARATORS.split(normalize_article(article)):
        if not piece:
            continue
        match = _ARTICLE_RANGE.match(piece)
        if match and int(match.group(1)) <= int(match.group(2)):
            parts.extend(str(n) for n in range(int(match.group(1)), int(match.group(2)) + 1))
        else:
            parts.append(piece)
    return parts


# =============================================================================
# INGESTION STATISTICS
# =============================================================================

@dataclass
class DocumentStats:
    """Counts for one committed document."""
    document_id: str
    edges_added: int
    instruments_added: int
    versions_added: int = 0
    discarded_matches: int = 0
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class IngestStats:
    """Accumulate ingestion counts across a session."""
    documents: list = field(default_factory=list)

    def add(self, document_id: str, edges_added: int, instruments_added: int,
            versions_added: int = 0, discarded_matches: int = 0) -> DocumentStats:
        stats = DocumentStats(
            document_id=document_id,
            edges_added=edges_added,
            instruments_added=instruments_added,
            versions_added=versions_added,
            discarded_matches=discarded_matches,
        )
        self.documents.append(stats)
        return stats

    @property
    def total_edges(self) -> int:
        return sum(d.edges_added for d in self.documents)

    @property
    def total_instruments(self) -> int:
        return sum(d.instruments_added for d in self.documents)

    def summary(self) -> dict:
        return {
            "documents": len(self.documents),
            "edges_added": self.total_edges,
            "instruments_added": self.total_instruments,
            "versions_added": sum(d.versions_added for d in self.documents),
            "discarded_matches": sum(d.discarded_matches for d in self.documents),
        }
