"""
Pytest fixtures and configuration.

Following TDD principles:
- Fixtures provide real-world-like statute text (Swedish SFS excerpts)
- No mocks: parsing, graph and versioning are pure in-memory components
- Each test should be independent and fast
"""
import pytest
from typing import Any
from dotenv import load_dotenv

from xref_core.config import XrefConfig
from xref_core.ingest import IngestionPipeline
from xref_core.parsing import CitationParser, ReferenceClassifier
from xref_core.versioning import VersioningEngine

load_dotenv()


# =============================================================================
# SAMPLE STATUTE FIXTURES
# =============================================================================

@pytest.fixture
def gdpr_supplement_document() -> dict[str, Any]:
    """Statute supplementing the GDPR; one provision has no EU citation."""
    return {
        "document_id": "2018:218",
        "title": "Lag (2018:218) med kompletterande bestämmelser till EU:s dataskyddsförordning",
        "issued_date": "2018-04-19",
        "provisions": [
            {
                "provision_ref": "1:1",
                "chapter": "1",
                "section": "1",
                "content": (
                    "Denna lag kompletterar Europaparlamentets och rådets förordning (EU) 2016/679 "
                    "(EU:s dataskyddsförordning)."
                ),
                "valid_from": "2018-05-25",
            },
            {
                "provision_ref": "2:1",
                "chapter": "2",
                "section": "1",
                "content": "Personuppgifter får behandlas av en myndighet om behandlingen är nödvändig.",
                "valid_from": "2018-05-25",
            },
        ],
    }


@pytest.fixture
def directive_implementation_document() -> dict[str, Any]:
    """Statute whose title names the directive it implements."""
    return {
        "document_id": "2019:1182",
        "title": "Lag (2019:1182) om genomförande av direktiv (EU) 2019/1152",
        "issued_date": "2019-12-12",
        "provisions": [
            {
                "provision_ref": "1",
                "content": (
                    "Genom denna lag genomförs Europaparlamentets och rådets direktiv (EU) 2019/1152 "
                    "av den 20 juni 2019 om öppna och förutsägbara arbetsvillkor i Europeiska unionen."
                ),
            },
            {
                "provision_ref": "2",
                "content": "Uppgifter ska lämnas i enlighet med förordning (EU) 2016/679.",
            },
        ],
    }


@pytest.fixture
def market_surveillance_document() -> dict[str, Any]:
    """Ordinance citing an EU regulation only in its title."""
    return {
        "document_id": "2020:500",
        "title": "Förordning (2020:500) om tillämpning av förordning (EU) 2019/1020",
        "provisions": [
            {
                "provision_ref": "1",
                "content": "Denna förordning innehåller bestämmelser om marknadskontroll.",
            },
        ],
    }


@pytest.fixture
def data_protection_directive_document() -> dict[str, Any]:
    """Repealed statute still citing the 1995 data protection directive."""
    return {
        "document_id": "1998:204",
        "title": "Personuppgiftslag (1998:204)",
        "in_force": False,
        "provisions": [
            {
                "provision_ref": "1",
                "content": "Syftet med denna lag är att genomföra direktiv 95/46/EG.",
            },
        ],
    }


# =============================================================================
# COMPONENT FIXTURES
# =============================================================================

@pytest.fixture
def config() -> XrefConfig:
    return XrefConfig()


@pytest.fixture
def parser(config) -> CitationParser:
    return CitationParser(config=config)


@pytest.fixture
def classifier(parser, config) -> ReferenceClassifier:
    return ReferenceClassifier(parser=parser, config=config)


@pytest.fixture
def pipeline(config) -> IngestionPipeline:
    return IngestionPipeline(config=config)


@pytest.fixture
def loaded_pipeline(pipeline, gdpr_supplement_document, directive_implementation_document,
                    market_surveillance_document) -> IngestionPipeline:
    """Pipeline with three statutes committed."""
    for document in (gdpr_supplement_document, directive_implementation_document, market_surveillance_document):
        pipeline.ingest(document)
    return pipeline


@pytest.fixture
def versioned_engine() -> VersioningEngine:
    """
    One provision with two versions:
    [2018-05-25, 2021-12-01) original wording
    [2021-12-01, open)       amended by 2021:1174
    """
    engine = VersioningEngine()
    engine.register_document("2018:218", "2018-04-19")
    engine.add_version(
        "2018:218", "1:1",
        "Denna lag kompletterar förordning (EU) 2016/679.",
        valid_from="2018-05-25",
    )
    engine.add_version(
        "2018:218", "1:1",
        "Denna lag kompletterar förordning (EU) 2016/679 och förordning (EU) 2018/1725. Lag (2021:1174).",
        valid_from="2021-12-01",
    )
    return engine
