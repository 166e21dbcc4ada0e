from .store import (
    init_database,
    save_document,
    save_instruments,
    save_all,
    load_graph,
    load_versions,
)

__all__ = [
    "init_database",
    "save_document",
    "save_instruments",
    "save_all",
    "load_graph",
    "load_versions",
]
