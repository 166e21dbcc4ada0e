from .markdown import generate_markdown_report, write_batch_section
from .display import display_basis, display_batch_summary, display_currency, display_resolution

__all__ = [
    "generate_markdown_report",
    "write_batch_section",
    "display_basis",
    "display_batch_summary",
    "display_currency",
    "display_resolution",
]
