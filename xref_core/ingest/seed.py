"""
Seed file loading.

Upstream tooling drops one JSON file per document into a seed directory:

    {
      "id": "2018:218",
      "type": "statute",
      "title": "Lag (2018:218) med kompletterande bestämmelser till EU:s dataskyddsförordning",
      "issued_date": "2018-04-19",
      "provisions": [
        {"provision_ref": "1:1", "chapter": "1", "section": "1", "content": "..."}
      ]
    }

Files are validated against STATUTE_SEED_SCHEMA before conversion. Only
statutes are ingested; case law and preparatory works in the same directory
are skipped.
"""
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Union

from jsonschema import ValidationError, validate

from xref_core.exceptions import NotFoundError
from xref_core.graph.store import CrossReferenceGraph
from xref_core.schemas import SourceDocument, SourceProvision

logger = logging.getLogger(__name__)

STATUTE_SEED_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "type", "title"],
    "properties": {
        "id": {"type": "string", "pattern": r"^\d{4}:\d+"},
        "type": {"type": "string"},
        "title": {"type": "string"},
        "issued_date": {"type": ["string", "null"], "format": "date"},
        "status": {"type": "string"},
        "in_force": {"type": "boolean"},
        "full_text": {"type": ["string", "null"]},
        "provisions": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["provision_ref", "content"],
                "properties": {
                    "provision_ref": {"type": "string", "minLength": 1},
                    "chapter": {"type": ["string", "null"]},
                    "section": {"type": ["string", "null"]},
                    "title": {"type": ["string", "null"]},
                    "content": {"type": "string"},
                    "valid_from": {"type": ["string", "null"]},
                },
            },
        },
    },
}

INSTRUMENT_SEED_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id"],
    "properties": {
        "id": {"type": "string", "pattern": r"^(directive|regulation):\d{4}/\d+$"},
        "community": {"type": "string", "enum": ["EU", "EG", "EEG", "Euratom"]},
        "title": {"type": "string"},
        "short_name": {"type": "string"},
        "description": {"type": "string"},
        "in_force": {"type": "boolean"},
        "superseded_by": {"type": "array", "items": {"type": "string"}},
        "supersedes": {"type": "array", "items": {"type": "string"}},
    },
}

SKIPPED_PREFIXES = ("case-", "prep-")


def seed_to_document(data: dict[str, Any]) -> SourceDocument:
    """
    Validate a seed dict and convert it to a SourceDocument.

    Raises:
        jsonschema.ValidationError: Seed does not match STATUTE_SEED_SCHEMA
    """
    validate(instance=data, schema=STATUTE_SEED_SCHEMA)
    in_force = data.get("in_force")
    if in_force is None:
        in_force = data.get("status", "in_force") != "repealed"
    return SourceDocument(
        document_id=data["id"],
        doc_type=data["type"],
        title=data["title"],
        issued_date=data.get("issued_date") or None,
        in_force=in_force,
        full_text=data.get("full_text"),
        provisions=[
            SourceProvision(**{k: v for k, v in p.items() if v is not None})
            for p in data.get("provisions", [])
        ],
    )


def load_seed_file(path: Union[str, Path]) -> SourceDocument:
    with open(path, "r", encoding="utf-8") as f:
        return seed_to_document(json.load(f))


def load_seed_directory(seed_dir: Union[str, Path]) -> tuple[list[SourceDocument], list[dict]]:
    """
    Load every statute seed in a directory.

    Returns:
        (documents, failures) where failures are {"file", "error"} dicts
        for unreadable or invalid files. Non-statute files are skipped.
    """
    seed_dir = Path(seed_dir)
    documents: list[SourceDocument] = []
    failures: list[dict] = []

    for path in sorted(seed_dir.glob("*.json")):
        if path.name.startswith(SKIPPED_PREFIXES):
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if data.get("type") != "statute":
                logger.debug("Skipping %s (type %r)", path.name, data.get("type"))
                continue
            documents.append(seed_to_document(data))
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning("Invalid seed file %s: %s", path.name, e)
            failures.append({"file": path.name, "error": str(e).splitlines()[0]})

    logger.info("Loaded %d statutes from %s (%d invalid)", len(documents), seed_dir, len(failures))
    return documents, failures


def apply_instrument_metadata(graph: CrossReferenceGraph, entries: Iterable[dict[str, Any]],
                              create_missing: bool = False) -> int:
    """
    Apply enrichment metadata (config.yaml `seed_instruments`) to the graph.

    Args:
        graph: Graph to enrich
        entries: Dicts matching INSTRUMENT_SEED_SCHEMA
        create_missing: Register instruments no document cites yet

    Returns:
        Number of instruments enriched
    """
    enriched = 0
    for entry in entries:
        validate(instance=entry, schema=INSTRUMENT_SEED_SCHEMA)
        metadata = {
            k: entry[k]
            for k in ("title", "short_name", "description", "in_force", "superseded_by", "supersedes")
            if k in entry
        }
        if create_missing and not graph.has_instrument(entry["id"]):
            graph.register_instrument(entry["id"], entry.get("community", "EU"))
        try:
            graph.enrich_instrument(entry["id"], **metadata)
        except NotFoundError:
            logger.debug("No instrument %s in graph; metadata not applied", entry["id"])
            continue
        enriched += 1
    return enriched
