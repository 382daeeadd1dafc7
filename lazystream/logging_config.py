"""Logging helpers for lazystream.

Every lazystream module logs under the ``lazystream`` logger hierarchy. Stream
lifecycle records (open, close, probe, rollback, unlink) are emitted through
``stream_logger()``, which attaches the stream ``uri`` and ``mode`` plus an
``event`` name to each record. The formatters below know about those fields.

Nothing is configured on import. Applications that want lazystream's output
formatted call ``setup_logging()``, which only touches the ``lazystream``
logger.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import IO, Any, Dict, MutableMapping, Optional, Tuple, Union

LOGGER_NAME = "lazystream"
STREAM_FIELDS = ("event", "uri", "mode")

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_installed_handler: Optional[logging.Handler] = None


class StreamAdapter(logging.LoggerAdapter):
    """Logger adapter carrying the context of one stream.

    Per-call ``extra`` values are merged over the stream context instead of
    replacing it, so ``logger.debug("...", extra={"event": "open"})`` keeps
    the ``uri`` and ``mode``.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


def stream_logger(name: str, uri: str, mode: str) -> StreamAdapter:
    """Logger for ``name`` whose records carry ``uri`` and ``mode``."""
    return StreamAdapter(logging.getLogger(name), {"uri": uri, "mode": mode})


def log_exception(
    logger: Union[logging.Logger, logging.LoggerAdapter], message: str, exc: BaseException
) -> None:
    """Log a suppressed exception with its traceback.

    Example:
        >>> try:
        ...     resource.close()
        ... except Exception as e:
        ...     log_exception(logger, "Failed to close stream after error", e)
    """
    logger.error(
        "%s: %s",
        message,
        exc,
        exc_info=exc,
        extra={"event": "suppressed_error", "error_type": type(exc).__name__},
    )


class JSONFormatter(logging.Formatter):
    """One JSON object per record with the stream fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in STREAM_FIELDS + ("error_type",):
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class StreamTextFormatter(logging.Formatter):
    """Single-line text; records tied to a stream end with ``[mode uri]``."""

    def __init__(self) -> None:
        super().__init__("[%(levelname)s] %(asctime)s - %(name)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        text = super().formatMessage(record)
        uri = getattr(record, "uri", None)
        if uri is None:
            return text
        return f"{text} [{getattr(record, 'mode', '?')} {uri}]"


def setup_logging(
    level: Optional[int] = None,
    format_type: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """Attach a formatted handler to the ``lazystream`` logger.

    The root logger is left alone. Calling this again replaces the handler
    installed by the previous call.

    Args:
        level: Logging level (defaults to LAZYSTREAM_LOG_LEVEL, then INFO)
        format_type: 'json' or 'text' (defaults to LAZYSTREAM_LOG_FORMAT, then 'text')
        stream: Output stream (defaults to stderr)

    Returns:
        The installed handler

    Examples:
        >>> setup_logging(level=logging.DEBUG, format_type="json")
    """
    global _installed_handler

    if level is None:
        level = _LEVELS.get(os.environ.get("LAZYSTREAM_LOG_LEVEL", "INFO").upper(), logging.INFO)
    if format_type is None:
        format_type = os.environ.get("LAZYSTREAM_LOG_FORMAT", "text")

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter() if format_type.lower() == "json" else StreamTextFormatter())

    logger = logging.getLogger(LOGGER_NAME)
    if _installed_handler is not None:
        logger.removeHandler(_installed_handler)
    logger.addHandler(handler)
    logger.setLevel(level)
    _installed_handler = handler
    return handler
