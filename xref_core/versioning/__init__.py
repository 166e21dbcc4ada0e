from .engine import VersioningEngine, VersionPlan, compute_text_diff, to_entry

__all__ = [
    "VersioningEngine",
    "VersionPlan",
    "compute_text_diff",
    "to_entry",
]
