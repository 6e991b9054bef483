"""Logging setup and token redaction for CLI runs."""

import logging

from rich.console import Console
from rich.logging import RichHandler

REDACTED = "***REDACTED***"


class TokenRedactionFilter(logging.Filter):
    """Logging filter that replaces a raw token with ``***REDACTED***``."""

    def __init__(self, token: str) -> None:
        super().__init__()
        self._token = token

    def _scrub(self, value: object) -> object:
        if self._token and self._token in str(value):
            return str(value).replace(self._token, REDACTED)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if self._token and self._token in str(record.msg):
            record.msg = str(record.msg).replace(self._token, REDACTED)
        if record.args:
            args = record.args
            if isinstance(args, tuple):
                record.args = tuple(self._scrub(a) for a in args)
            elif isinstance(args, dict):
                record.args = {k: self._scrub(v) for k, v in args.items()}
        return True


def redact_token(token: str) -> str:
    """Redact token for display (shows first 4 and last 4 chars)."""
    if len(token) <= 8:
        return "*" * len(token)
    return token[:4] + "*" * (len(token) - 8) + token[-4:]


def setup_logging(
    verbose: bool = False,
    console: Console | None = None,
    secret: str | None = None,
) -> None:
    """Configure logging with RichHandler.

    When *secret* is given, every handler on the root logger masks it.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=console, rich_tracebacks=True)
    if secret:
        handler.addFilter(TokenRedactionFilter(secret))
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # Suppress httpx HTTP request logging unless verbose
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
