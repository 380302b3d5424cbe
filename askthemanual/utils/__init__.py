"""
Utilities package.

Contains logging, markdown rendering, and other utility functions.
"""

from askthemanual.utils.formatters import (
    MarkdownRenderer,
    format_sources,
    render_markdown,
)
from askthemanual.utils.logger import (
    get_app_logger,
    get_session_logger,
    get_store_logger,
    setup_logger,
)

__all__ = [
    "MarkdownRenderer",
    "render_markdown",
    "format_sources",
    "setup_logger",
    "get_app_logger",
    "get_session_logger",
    "get_store_logger",
]
