"""Lazy single-target writers.

This module provides:
- BulkWriter: drains a caller-supplied iterator into one stream on trigger()
- IncrementalChunkWriter: append-mode sink fed one buffer per send() call
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from lazystream import transport
from lazystream.base import LazyResource, StreamWriter
from lazystream.exceptions import StreamWriteError, UsageError


class BulkWriter(LazyResource, StreamWriter):
    """Writes to a stream lazily.

    The stream is only opened when ``trigger()`` is called. Data comes from an
    iterator (typically a generator) owned by the caller, so it can be
    produced on the fly while it is written. The iterator is consumed at most
    once; a generator's return value is kept in ``return_value``.

    Example:
        >>> def rows():
        ...     yield b"id,name\\n"
        ...     yield b"1,ada\\n"
        ...     return 2
        >>> writer = BulkWriter("memory://export.csv", rows())
        >>> writer.trigger()
        >>> writer.return_value
        2
    """

    def __init__(
        self,
        uri: str,
        data_provider: Iterable[bytes],
        auto_close: bool = True,
        storage_options: Optional[Dict[str, Any]] = None,
        mode: str = "wb",
    ) -> None:
        """
        Args:
            uri: A stream URI understood by fsspec.
            data_provider: Iterator (or iterable) of byte buffers to write.
            auto_close: Whether the stream is closed once ``trigger()`` is done,
                including when it fails.
            storage_options: Extra options forwarded to the fsspec filesystem.
            mode: Opening mode.
        """
        super().__init__(uri, mode, storage_options)
        self.data_provider: Optional[Iterable[bytes]] = data_provider
        self._data = iter(data_provider)
        self.auto_close = auto_close
        self.return_value: Any = None

    def trigger(self) -> None:
        """Open the stream and write every buffer of the data provider.

        Raises:
            StreamOpenError: if the stream cannot be opened; nothing is written
            StreamWriteError: if a write fails or the data provider raises
        """
        self.open()

        failed = False
        try:
            while True:
                try:
                    data = next(self._data)
                except StopIteration as stop:
                    self.return_value = stop.value
                    break

                transport.write_all(self.handle, data)
        except Exception as exc:
            failed = True
            raise StreamWriteError(uri=self.uri, original_error=exc) from exc
        finally:
            if self.auto_close:
                self._cleanup(failed)

    def unlink(self) -> bool:
        """Close the stream and delete its target.

        Returns:
            True if the stream was never opened or has been deleted, False if
            the deletion failed
        """
        if not self.opened:
            return True

        self.close()

        try:
            transport.delete(self.uri, self.storage_options)
        except (OSError, ValueError) as exc:
            self._log.warning("Failed to unlink stream: %s", exc, extra={"event": "unlink_failed"})
            return False

        self._log.debug("Unlinked stream", extra={"event": "unlink"})
        return True

    def equals(self, other: "BulkWriter") -> bool:
        """Same data provider object and same URI."""
        return self.data_provider is other.data_provider and self.uri == other.uri


class IncrementalChunkWriter(BulkWriter):
    """Appends data to a stream one ``send()`` call at a time.

    Unlike :class:`BulkWriter` no data provider is needed, so data can be
    written in whatever order the caller produces it. The stream opens on the
    first ``send()`` and, once auto-closed, reopens on the next one.
    """

    def __init__(
        self,
        uri: str,
        auto_close: bool = False,
        storage_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            uri: A stream URI understood by fsspec.
            auto_close: Whether the stream is closed after every ``send()``.
            storage_options: Extra options forwarded to the fsspec filesystem.
        """
        # send() takes the place of the data provider, so BulkWriter's iterator
        # and return value are not set up.
        LazyResource.__init__(self, uri, "ab", storage_options)
        self.data_provider = None
        self.auto_close = auto_close

    def send(self, data: bytes) -> None:
        """Write one buffer, opening the stream first if needed.

        Raises:
            StreamOpenError: if the stream cannot be opened
            StreamWriteError: if the write fails
        """
        failed = False
        try:
            self.open()
            try:
                transport.write_all(self.handle, data)
            except Exception as exc:
                raise StreamWriteError(uri=self.uri, original_error=exc) from exc
        except Exception:
            failed = True
            raise
        finally:
            if self.auto_close:
                self._cleanup(failed)

    def trigger(self) -> None:
        raise UsageError(
            f'You must provide data to write to the stream by calling "{type(self).__name__}.send()".'
        )

    def equals(self, other: "BulkWriter") -> bool:
        return self.uri == other.uri
