from .pipeline import BatchReport, IngestionPipeline
from .seed import (
    INSTRUMENT_SEED_SCHEMA,
    STATUTE_SEED_SCHEMA,
    apply_instrument_metadata,
    load_seed_directory,
    load_seed_file,
    seed_to_document,
)

__all__ = [
    "BatchReport",
    "IngestionPipeline",
    "INSTRUMENT_SEED_SCHEMA",
    "STATUTE_SEED_SCHEMA",
    "apply_instrument_metadata",
    "load_seed_directory",
    "load_seed_file",
    "seed_to_document",
]
