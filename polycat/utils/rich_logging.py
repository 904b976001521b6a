"""Rich logging integration for polycat.

Provides the Rich console handler and a file formatter that strips markup.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

_MARKUP_PATTERN = re.compile(r"\[/?[^\]]+\]")


class CorrelationRichHandler(RichHandler):
    """RichHandler that prefixes records with their correlation ID."""

    def __init__(
        self,
        *args: Any,
        console: Console | None = None,
        show_correlation_id: bool = True,
        **kwargs: Any,
    ) -> None:
        """Initialize handler.

        Args:
            *args: Positional arguments for RichHandler
            console: Optional Rich Console instance
            show_correlation_id: Prefix messages with the record's correlation ID
            **kwargs: Keyword arguments for RichHandler

        """
        if console is None:
            console = Console(file=sys.stderr, markup=True)
        self.show_correlation_id = show_correlation_id
        kwargs.setdefault("markup", False)
        super().__init__(*args, console=console, **kwargs)

    def render_message(self, record: logging.LogRecord, message: str) -> Any:
        """Render the message, prefixed with the correlation ID when one is set."""
        corr_id = getattr(record, "correlation_id", None)
        if self.show_correlation_id and corr_id and corr_id != "no-correlation-id":
            message = f"[{corr_id[:8]}] {message}"
        return super().render_message(record, message)


def strip_rich_markup(text: str) -> str:
    """Strip Rich markup from text for file logging.

    Args:
        text: Text with Rich markup

    Returns:
        Text without Rich markup

    """
    return _MARKUP_PATTERN.sub("", text)


class FileFormatter(logging.Formatter):
    """Formatter for file output that strips Rich markup."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, stripping Rich markup for file output."""
        return strip_rich_markup(super().format(record))


def create_rich_handler(
    console: Console | None = None,
    level: int | str = logging.INFO,
    show_path: bool = False,
    rich_tracebacks: bool = True,
) -> logging.Handler:
    """Create a RichHandler with correlation ID support.

    Args:
        console: Optional Rich Console instance
        level: Log level
        show_path: Whether to show file paths in log output
        rich_tracebacks: Whether to use rich tracebacks

    Returns:
        Configured RichHandler instance

    """
    return CorrelationRichHandler(
        console=console,
        level=level,
        show_path=show_path,
        rich_tracebacks=rich_tracebacks,
    )
