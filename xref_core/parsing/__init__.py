"""
Citation parsing.

Components:
- PatternLibrary / PatternRule: priority-ordered citation shapes with normalizers
- CitationParser: applies the library to text, emits RawMatch records
- ReferenceClassifier: assigns reference type, article and primary flag inputs
"""
from xref_core.parsing.patterns import (
    ARTICLE_BODY,
    DEFAULT_PATTERN_LIBRARY,
    DOMESTIC_RULES,
    FOREIGN_RULES,
    CitationFamily,
    PatternLibrary,
    PatternRule,
)
from xref_core.parsing.citation_parser import (
    CitationParser,
    DiscardedMatch,
    ParseResult,
    RawMatch,
)
from xref_core.parsing.classifier import (
    KEYWORD_TABLE,
    ClassifiedReference,
    ReferenceClassifier,
)

__all__ = [
    "ARTICLE_BODY",
    "DEFAULT_PATTERN_LIBRARY",
    "DOMESTIC_RULES",
    "FOREIGN_RULES",
    "CitationFamily",
    "PatternLibrary",
    "PatternRule",
    "CitationParser",
    "DiscardedMatch",
    "ParseResult",
    "RawMatch",
    "KEYWORD_TABLE",
    "ClassifiedReference",
    "ReferenceClassifier",
]
