"""Lazy stream lifecycle and writer interface.

This module provides:
- LazyResource: open/close state machine and cached metadata for one URI
- StreamWriter: abstract interface implemented by every writer
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from lazystream import transport
from lazystream.exceptions import StreamOpenError
from lazystream.logging_config import log_exception, stream_logger


class LazyResource:
    """A stream URI that is only opened when an operation needs it.

    Construction performs no I/O. The handle exists only between a successful
    ``open()`` and the next ``close()``; the metadata captured at open time
    survives the close and stays queryable.

    Example:
        >>> resource = LazyResource("memory://scratch.bin", "wb")
        >>> resource.handle is None
        True
        >>> resource.get_metadata()["stream_type"]
        'MEMORY'
        >>> resource.handle is None
        True
    """

    def __init__(
        self,
        uri: str,
        mode: str,
        storage_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._uri = uri
        self._mode = mode
        self._log = stream_logger(type(self).__module__, uri, mode)
        self.storage_options: Dict[str, Any] = dict(storage_options or {})
        self._handle: Any = None
        self._metadata: Optional[Dict[str, Any]] = None
        self._opened = False

    def __del__(self) -> None:
        if getattr(self, "_handle", None) is not None:
            self.close()

    def __enter__(self) -> "LazyResource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"{type(self).__name__}({self._uri!r}, mode={self._mode!r}, {state})"

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def handle(self) -> Any:
        """The open file object, or None when the stream is not open."""
        return self._handle

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    @property
    def opened(self) -> bool:
        """Whether the stream has been successfully opened at least once."""
        return self._opened

    def open(self) -> None:
        """Acquire the handle if it is not already held.

        Raises:
            StreamOpenError: if the transport cannot open ``uri`` with ``mode``
        """
        if self._handle is not None:
            return

        try:
            handle, fs, path = transport.open_stream(self._uri, self._mode, self.storage_options)
        except transport.OPEN_ERRORS as exc:
            raise StreamOpenError(self._uri, self._mode, original_error=exc) from exc

        self._handle = handle
        self._opened = True
        self._metadata = transport.describe(handle, self._uri, self._mode, fs, path)
        self._log.debug("Opened stream", extra={"event": "open"})

    def close(self) -> None:
        """Flush and release the handle. No-op when not open."""
        if self._handle is None:
            return

        handle = self._handle
        self._handle = None
        transport.flush_and_close(handle, self._mode)
        self._log.debug("Closed stream", extra={"event": "close"})

    def get_metadata(self) -> Dict[str, Any]:
        """Return transport metadata, probing the stream if it was never opened.

        A probe is an ``open()`` immediately followed by ``close()``; it runs at
        most once per instance.
        """
        if self._metadata is None:
            self._log.debug("Probing stream for metadata", extra={"event": "probe"})
            self.open()
            self.close()

        return self._metadata  # type: ignore[return-value]

    def _cleanup(self, failed: bool) -> None:
        """Close as part of an operation's cleanup.

        When the operation already failed, any close error is logged instead of
        raised so it cannot replace the original exception.
        """
        if not failed:
            self.close()
            return

        try:
            self.close()
        except Exception as exc:
            log_exception(self._log, "Failed to close stream after error", exc)


class StreamWriter(ABC):
    """Interface shared by every lazy writer."""

    @abstractmethod
    def trigger(self) -> None:
        """Write the whole data sequence to the target stream(s)."""
        raise NotImplementedError

    @abstractmethod
    def unlink(self) -> bool:
        """Delete the written target(s).

        Returns:
            True if the target has been unlinked (or was never created)
        """
        raise NotImplementedError
