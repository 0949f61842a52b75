"""Logging setup for the recital-sync CLI.

`recital-sync watch stories | head` closes stdout/stderr under a running
process. logging.StreamHandler reports write failures through
handleError(), which prints a "--- Logging error ---" block to stderr for
every later record. SafeStreamHandler drops those records instead.
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Write failures that mean the reader has gone away
_CLOSED_STREAM_ERRORS = (BrokenPipeError, ValueError)


def resolve_level(level) -> int:
    """Map a level name ("debug", "WARNING") or number to a logging level.

    Unknown names resolve to INFO.
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that stays quiet once its stream is closed."""

    def handleError(self, record):
        _, error, _ = sys.exc_info()
        if isinstance(error, _CLOSED_STREAM_ERRORS):
            return
        super().handleError(record)


def configure_safe_logging(level=logging.INFO) -> SafeStreamHandler:
    """Attach a SafeStreamHandler to the root logger.

    Repeat calls reuse the installed handler and only ever lower the root
    level.

    Args:
        level: Logging level, as an int or a level name (default: INFO)

    Returns:
        The root logger's SafeStreamHandler
    """
    level = resolve_level(level)
    root = logging.getLogger()

    handler = next((h for h in root.handlers if isinstance(h, SafeStreamHandler)), None)
    if handler is None:
        handler = SafeStreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    handler.setLevel(min(handler.level or level, level))

    if root.level == logging.NOTSET or root.level > level:
        root.setLevel(level)
    return handler


def remove_safe_logging() -> None:
    """Detach every SafeStreamHandler from the root logger."""
    root = logging.getLogger()
    for handler in [h for h in root.handlers if isinstance(h, SafeStreamHandler)]:
        root.removeHandler(handler)
        handler.close()
