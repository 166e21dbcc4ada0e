"""
Reference Classifier.

Turns a foreign RawMatch plus its surrounding context into a classified
reference: semantic reference type, cited article and the keyword that
decided the type.

Decision order:
1. First keyword of KEYWORD_TABLE found in the context window
2. Otherwise an article reference in the window forces cites_article
3. Otherwise the default for the instrument kind (low confidence):
   directive -> implements, regulation -> applies

Usage:
    classifier = ReferenceClassifier()
    refs = classifier.classify_text(provision_text)
    primary = classifier.primary_identities(document_title)
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from xref_core.config import DEFAULT_XREF_CONFIG, XrefConfig
from xref_core.identity import InstrumentIdentity, InstrumentKind
from xref_core.models import Community, ReferenceType
from xref_core.parsing.citation_parser import CitationParser, RawMatch
from xref_core.parsing.patterns import ARTICLE_BODY
from xref_core.utils import normalize_article

logger = logging.getLogger(__name__)


# Ordered keyword -> type table. Keywords match at a word start, so
# "genomför" also covers "genomförs" and "genomförandet".
KEYWORD_TABLE: list[tuple[str, ReferenceType]] = [
    ("genomförande", ReferenceType.IMPLEMENTS),
    ("genomför", ReferenceType.IMPLEMENTS),
    ("implementing", ReferenceType.IMPLEMENTS),
    ("implements", ReferenceType.IMPLEMENTS),
    ("transpos", ReferenceType.IMPLEMENTS),
    ("kompletterar", ReferenceType.SUPPLEMENTS),
    ("komplettering", ReferenceType.SUPPLEMENTS),
    ("supplement", ReferenceType.SUPPLEMENTS),
    ("tillämpning", ReferenceType.APPLIES),
    ("tillämpas", ReferenceType.APPLIES),
    ("application of", ReferenceType.APPLIES),
    ("applies", ReferenceType.APPLIES),
    ("i enlighet med", ReferenceType.COMPLIES_WITH),
    ("överensstämmelse med", ReferenceType.COMPLIES_WITH),
    ("in accordance with", ReferenceType.COMPLIES_WITH),
    ("in compliance with", ReferenceType.COMPLIES_WITH),
    ("undantag från", ReferenceType.DEROGATES_FROM),
    ("avvikelse från", ReferenceType.DEROGATES_FROM),
    ("derogat", ReferenceType.DEROGATES_FROM),
    ("med stöd av", ReferenceType.CITES_ARTICLE),
    ("enligt", ReferenceType.CITES_ARTICLE),
    ("pursuant to", ReferenceType.CITES_ARTICLE),
]

DEFAULT_TYPE_BY_KIND: dict[InstrumentKind, ReferenceType] = {
    InstrumentKind.DIRECTIVE: ReferenceType.IMPLEMENTS,
    InstrumentKind.REGULATION: ReferenceType.APPLIES,
}

ARTICLE_PATTERN = re.compile(
    rf"\b(?:artikel|artiklarna|article|articles)\s+(?P<article>{ARTICLE_BODY})",
    re.IGNORECASE | re.UNICODE,
)


@dataclass
class ClassifiedReference:
    """A foreign citation with its semantic classification."""
    match: RawMatch
    identity: InstrumentIdentity
    community: Community
    reference_type: ReferenceType
    article: Optional[str] = None
    implementation_keyword: Optional[str] = None
    issuing_body: Optional[str] = None
    context: str = ""
    low_confidence: bool = False

    @property
    def full_citation(self) -> str:
        return self.match.matched_text


class ReferenceClassifier:
    """Classify foreign citations by the keywords surrounding them."""

    def __init__(self, parser: Optional[CitationParser] = None,
                 keyword_table: Optional[list[tuple[str, ReferenceType]]] = None,
                 config: XrefConfig = DEFAULT_XREF_CONFIG):
        self.config = config
        self.parser = parser or CitationParser(config=config)
        table = keyword_table if keyword_table is not None else KEYWORD_TABLE
        self._keywords = [
            (keyword, ref_type, re.compile(r"\b" + re.escape(keyword), re.IGNORECASE | re.UNICODE))
            for keyword, ref_type in table
        ]

    def match_keyword(self, context: str) -> Optional[tuple[str, ReferenceType]]:
        """First table keyword present in the context, with its type."""
        for keyword, ref_type, pattern in self._keywords:
            if pattern.search(context):
                return keyword, ref_type
        return None

    def find_article(self, context: str) -> Optional[str]:
        match = ARTICLE_PATTERN.search(context)
        if not match:
            return None
        return normalize_article(match.group("article"))

    def classify(self, match: RawMatch, text: str) -> ClassifiedReference:
        """
        Classify one foreign match found in `text`.

        Args:
            match: Foreign RawMatch produced from `text`
            text: The full text the match was found in

        Returns:
            ClassifiedReference; low_confidence is set when the type came
            from the per-kind default
        """
        identity = match.identity
        window = self.parser.extract_context(text, match.start_offset, match.end_offset)

        article = match.article or self.find_article(window)
        keyword_hit = self.match_keyword(window)
        low_confidence = False

        if keyword_hit:
            keyword, reference_type = keyword_hit
        elif article:
            keyword, reference_type = None, ReferenceType.CITES_ARTICLE
        else:
            keyword, reference_type = None, DEFAULT_TYPE_BY_KIND[identity.kind]
            low_confidence = True
            logger.debug("No keyword near %s; defaulting to %s", identity, reference_type.value)

        snippet_max = self.config.context_snippet_max
        return ClassifiedReference(
            match=match,
            identity=identity,
            community=match.normalized["community"],
            reference_type=reference_type,
            article=article,
            implementation_keyword=keyword,
            issuing_body=match.normalized.get("issuing_body"),
            context=window[:snippet_max],
            low_confidence=low_confidence,
        )

    def classify_text(self, text: str) -> list[ClassifiedReference]:
        """Parse and classify every foreign citation in text."""
        return [self.classify(m, text) for m in self.parser.parse_foreign(text)]

    def primary_identities(self, title: Optional[str]) -> set:
        """Identities cited in a document title (primary implementations)."""
        if not title:
            return set()
        return self.parser.identities_in(title)
