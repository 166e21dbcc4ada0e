import json
import sqlite3
from datetime import date
from typing import Optional

from xref_core.config import DEFAULT_XREF_CONFIG, XrefConfig
from xref_core.graph.store import CrossReferenceGraph
from xref_core.identity import InstrumentIdentity
from xref_core.models import (
    AmendmentKind,
    AmendmentRecord,
    CitationEdge,
    Community,
    DocumentRecord,
    ForeignInstrument,
    Locus,
    ProvisionVersion,
    ReferenceType,
)
from xref_core.versioning.engine import VersioningEngine

# SQLite treats NULLs as distinct in UNIQUE constraints, so optional key
# columns (article, provision_ref) are stored as '' and mapped back to None.
_NONE = ""


def init_database(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS documents (
            document_id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            doc_type TEXT NOT NULL DEFAULT 'statute',
            in_force INTEGER NOT NULL DEFAULT 1,
            issued_date TEXT,
            provisions_json TEXT,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS foreign_instruments (
            id TEXT PRIMARY KEY,
            type TEXT NOT NULL CHECK(type IN ('directive', 'regulation')),
            year INTEGER NOT NULL,
            number INTEGER NOT NULL,
            community TEXT NOT NULL,
            celex_number TEXT UNIQUE NOT NULL,
            title TEXT,
            short_name TEXT,
            description TEXT,
            in_force INTEGER NOT NULL DEFAULT 1,
            supersedes_json TEXT,
            superseded_by_json TEXT,
            ambiguities_json TEXT,
            UNIQUE(type, year, number)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS citation_edges (
            edge_id INTEGER PRIMARY KEY AUTOINCREMENT,
            locus_key TEXT NOT NULL,
            document_id TEXT NOT NULL,
            provision_ref TEXT NOT NULL DEFAULT '',
            eu_document_id TEXT NOT NULL,
            eu_article TEXT NOT NULL DEFAULT '',
            reference_type TEXT NOT NULL,
            is_primary INTEGER NOT NULL DEFAULT 0,
            full_citation TEXT,
            reference_context TEXT,
            implementation_keyword TEXT,
            low_confidence INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(locus_key, eu_document_id, eu_article),
            FOREIGN KEY (document_id) REFERENCES documents(document_id),
            FOREIGN KEY (eu_document_id) REFERENCES foreign_instruments(id)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS provision_versions (
            version_id TEXT PRIMARY KEY,
            document_id TEXT NOT NULL,
            provision_ref TEXT NOT NULL,
            content TEXT NOT NULL,
            valid_from TEXT,
            valid_to TEXT,
            FOREIGN KEY (document_id) REFERENCES documents(document_id)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS amendment_records (
            record_id INTEGER PRIMARY KEY AUTOINCREMENT,
            document_id TEXT NOT NULL,
            provision_ref TEXT NOT NULL DEFAULT '',
            amending_id TEXT NOT NULL,
            effective_date TEXT NOT NULL,
            kind TEXT NOT NULL CHECK(kind IN ('changed', 'new_wording', 'introduced', 'repealed', 'delayed_effect')),
            version_before_id TEXT,
            version_after_id TEXT,
            citation TEXT,
            UNIQUE(document_id, provision_ref, amending_id, effective_date)
        )
    ''')

    # Indexes
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_edges_document ON citation_edges(document_id)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_edges_instrument ON citation_edges(eu_document_id)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_versions_locus ON provision_versions(document_id, provision_ref)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_amendments_date ON amendment_records(effective_date)')

    conn.commit()
    return conn


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


# =============================================================================
# WRITES
# =============================================================================

def _upsert_document(cursor: sqlite3.Cursor, document: DocumentRecord) -> None:
    cursor.execute('''
        INSERT INTO documents (document_id, title, doc_type, in_force, issued_date, provisions_json)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(document_id) DO UPDATE SET
            title = excluded.title,
            doc_type = excluded.doc_type,
            in_force = excluded.in_force,
            issued_date = excluded.issued_date,
            provisions_json = excluded.provisions_json,
            updated_at = CURRENT_TIMESTAMP
    ''', (
        document.document_id,
        document.title,
        document.doc_type,
        int(document.in_force),
        _iso(document.issued_date),
        json.dumps(sorted(document.provisions)),
    ))


def _upsert_instrument(cursor: sqlite3.Cursor, instrument: ForeignInstrument) -> None:
    # Identity columns are fixed on first insert; only enrichment columns update
    cursor.execute('''
        INSERT INTO foreign_instruments
            (id, type, year, number, community, celex_number, title, short_name, description,
             in_force, supersedes_json, superseded_by_json, ambiguities_json)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            title = excluded.title,
            short_name = excluded.short_name,
            description = excluded.description,
            in_force = excluded.in_force,
            supersedes_json = excluded.supersedes_json,
            superseded_by_json = excluded.superseded_by_json,
            ambiguities_json = excluded.ambiguities_json
    ''', (
        str(instrument.identity),
        instrument.kind.value,
        instrument.year,
        instrument.number,
        instrument.community.value,
        instrument.standard_code,
        instrument.title,
        instrument.short_name,
        instrument.description,
        int(instrument.in_force),
        json.dumps(sorted(str(i) for i in instrument.supersedes)),
        json.dumps(sorted(str(i) for i in instrument.superseded_by)),
        json.dumps(instrument.ambiguities),
    ))


def _insert_edge(cursor: sqlite3.Cursor, edge: CitationEdge) -> None:
    cursor.execute('''
        INSERT INTO citation_edges
            (locus_key, document_id, provision_ref, eu_document_id, eu_article, reference_type,
             is_primary, full_citation, reference_context, implementation_keyword, low_confidence)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(locus_key, eu_document_id, eu_article) DO UPDATE SET
            low_confidence = MAX(citation_edges.low_confidence, excluded.low_confidence)
    ''', (
        edge.locus.key,
        edge.locus.document_id,
        edge.locus.provision_ref or _NONE,
        str(edge.identity),
        edge.article or _NONE,
        edge.reference_type.value,
        int(edge.is_primary),
        edge.full_citation,
        edge.context,
        edge.implementation_keyword,
        int(edge.low_confidence),
    ))


def _upsert_version(cursor: sqlite3.Cursor, version: ProvisionVersion) -> None:
    cursor.execute('''
        INSERT INTO provision_versions (version_id, document_id, provision_ref, content, valid_from, valid_to)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(version_id) DO UPDATE SET valid_to = excluded.valid_to
    ''', (
        version.version_id,
        version.document_id,
        version.provision_ref,
        version.content,
        _iso(version.valid_from),
        _iso(version.valid_to),
    ))


def _insert_amendment(cursor: sqlite3.Cursor, record: AmendmentRecord) -> None:
    cursor.execute('''
        INSERT INTO amendment_records
            (document_id, provision_ref, amending_id, effective_date, kind,
             version_before_id, version_after_id, citation)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(document_id, provision_ref, amending_id, effective_date) DO NOTHING
    ''', (
        record.locus.document_id,
        record.locus.provision_ref or _NONE,
        record.amending_id,
        record.effective_date.isoformat(),
        record.kind.value,
        record.version_before_id,
        record.version_after_id,
        record.citation,
    ))


def save_document(conn: sqlite3.Connection, graph: CrossReferenceGraph, document_id: str,
                  versions: Optional[VersioningEngine] = None) -> None:
    """Persist one document's graph entities and versions in a single transaction."""
    document = graph.get_document(document_id)
    edges = graph.edges_for_document(document_id)

    with conn:
        cursor = conn.cursor()
        _upsert_document(cursor, document)
        for identity in {e.identity for e in edges}:
            _upsert_instrument(cursor, graph.get_instrument(identity))
        for edge in edges:
            _insert_edge(cursor, edge)
        if versions is not None:
            for version in versions.all_versions():
                if version.document_id == document_id:
                    _upsert_version(cursor, version)
            for record in versions.amendment_chain(document_id):
                _insert_amendment(cursor, record)


def save_instruments(conn: sqlite3.Connection, graph: CrossReferenceGraph) -> None:
    """Persist every instrument, including enrichment metadata."""
    with conn:
        cursor = conn.cursor()
        for instrument in graph.instruments.values():
            _upsert_instrument(cursor, instrument)


def save_all(conn: sqlite3.Connection, graph: CrossReferenceGraph,
             versions: Optional[VersioningEngine] = None) -> None:
    save_instruments(conn, graph)
    for document_id in sorted(graph.documents):
        save_document(conn, graph, document_id, versions)


# =============================================================================
# READS
# =============================================================================

def load_graph(conn: sqlite3.Connection) -> CrossReferenceGraph:
    """Rebuild an in-memory graph from the database."""
    cursor = conn.cursor()

    documents = []
    cursor.execute('SELECT document_id, title, doc_type, in_force, issued_date, provisions_json FROM documents')
    for row in cursor.fetchall():
        documents.append(DocumentRecord(
            document_id=row[0],
            title=row[1],
            doc_type=row[2],
            in_force=bool(row[3]),
            issued_date=_date(row[4]),
            provisions=set(json.loads(row[5] or "[]")),
        ))

    instruments = []
    cursor.execute('''
        SELECT id, community, title, short_name, description, in_force,
               supersedes_json, superseded_by_json, ambiguities_json
        FROM foreign_instruments
    ''')
    for row in cursor.fetchall():
        instruments.append(ForeignInstrument(
            identity=InstrumentIdentity.parse(row[0]),
            community=Community(row[1]),
            title=row[2],
            short_name=row[3],
            description=row[4],
            in_force=bool(row[5]),
            supersedes={InstrumentIdentity.parse(i) for i in json.loads(row[6] or "[]")},
            superseded_by={InstrumentIdentity.parse(i) for i in json.loads(row[7] or "[]")},
            ambiguities=json.loads(row[8] or "[]"),
        ))

    edges = []
    cursor.execute('''
        SELECT document_id, provision_ref, eu_document_id, eu_article, reference_type, is_primary,
               full_citation, reference_context, implementation_keyword, low_confidence
        FROM citation_edges ORDER BY edge_id
    ''')
    for row in cursor.fetchall():
        edges.append(CitationEdge(
            locus=Locus(row[0], row[1] or None),
            identity=InstrumentIdentity.parse(row[2]),
            reference_type=ReferenceType(row[4]),
            article=row[3] or None,
            is_primary=bool(row[5]),
            full_citation=row[6] or "",
            context=row[7] or "",
            implementation_keyword=row[8],
            low_confidence=bool(row[9]),
        ))

    graph = CrossReferenceGraph()
    graph.restore(documents, instruments, edges)
    return graph


def load_versions(conn: sqlite3.Connection, config: XrefConfig = DEFAULT_XREF_CONFIG) -> VersioningEngine:
    """Rebuild a versioning engine (timelines, amendments, issue dates) from the database."""
    cursor = conn.cursor()

    cursor.execute('SELECT document_id, provision_ref, content, valid_from, valid_to FROM provision_versions')
    versions = [
        ProvisionVersion(row[0], row[1], row[2], valid_from=_date(row[3]), valid_to=_date(row[4]))
        for row in cursor.fetchall()
    ]

    cursor.execute('''
        SELECT document_id, provision_ref, amending_id, effective_date, kind,
               version_before_id, version_after_id, citation
        FROM amendment_records ORDER BY effective_date
    ''')
    amendments = [
        AmendmentRecord(
            locus=Locus(row[0], row[1] or None),
            amending_id=row[2],
            effective_date=date.fromisoformat(row[3]),
            kind=AmendmentKind(row[4]),
            version_before_id=row[5],
            version_after_id=row[6],
            citation=row[7] or "",
        )
        for row in cursor.fetchall()
    ]

    engine = VersioningEngine(config=config)
    engine.restore(versions, amendments)

    cursor.execute('SELECT document_id, issued_date FROM documents WHERE issued_date IS NOT NULL')
    for document_id, issued in cursor.fetchall():
        engine.register_document(document_id, issued)
    return engine
