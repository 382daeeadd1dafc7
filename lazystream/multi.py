"""Fan-out writer replicating one data provider to several streams."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from lazystream import transport
from lazystream.base import LazyResource, StreamWriter
from lazystream.exceptions import StreamOpenError, StreamWriteError
from lazystream.logging_config import log_exception


class FanOutWriter(StreamWriter):
    """
    Writes the same data to multiple streams at once.

    Every buffer produced by the data provider is written to each target, in
    URI order, before the provider is advanced. Duplicate URIs share a single
    stream and receive each buffer once.

    Opening is all-or-nothing: if one target cannot be opened, the targets
    opened earlier in the same pass are closed again before the error
    propagates. Writing is not atomic across targets; a failure part-way
    through a buffer can leave earlier targets one buffer ahead.

    Usage:
        writer = FanOutWriter(["file:///srv/a.log", "memory://mirror.log"], lines())
        writer.trigger()
    """

    def __init__(
        self,
        uris: Iterable[str],
        data_provider: Iterable[bytes],
        mode: str = "wb",
        auto_close: bool = False,
        storage_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            uris: Stream URIs understood by fsspec.
            data_provider: Iterator (or iterable) of byte buffers to write.
            mode: A writing mode (``wb``, ``ab``, ``xb``, ...).
            auto_close: Whether the streams are closed once ``trigger()`` is
                done, including when it fails.
            storage_options: Extra options forwarded to every fsspec filesystem.
        """
        if not transport.is_writing_mode(mode):
            raise ValueError(f"mode must be a writing mode, got {mode!r}")

        self.uris: List[str] = list(uris)
        self.data_provider = data_provider
        self._data = iter(data_provider)
        self.mode = mode
        self.auto_close = auto_close
        self.return_value: Any = None
        self.handles: Dict[str, LazyResource] = {
            uri: LazyResource(uri, mode, storage_options) for uri in dict.fromkeys(self.uris)
        }
        self._metadata: Optional[Dict[str, Dict[str, Any]]] = None

    def __del__(self) -> None:
        if getattr(self, "handles", None):
            self.close_all()

    def __enter__(self) -> "FanOutWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_all()

    def get_handles(self) -> Dict[str, Any]:
        """Open file objects indexed by URI (None for closed streams)."""
        return {uri: resource.handle for uri, resource in self.handles.items()}

    @property
    def is_open(self) -> bool:
        return any(resource.is_open for resource in self.handles.values())

    def open_all(self) -> None:
        """Open every target, closing any that are already open first.

        Raises:
            StreamOpenError: for the first URI that cannot be opened
        """
        if self.is_open:
            self.close_all()

        opened: List[LazyResource] = []
        for resource in self.handles.values():
            try:
                resource.open()
            except StreamOpenError:
                resource._log.debug(
                    "Open failed, rolling back %d earlier stream(s)", len(opened), extra={"event": "rollback"}
                )
                for previous in opened:
                    previous._cleanup(failed=True)
                raise

            opened.append(resource)

        self._metadata = {uri: resource.get_metadata() for uri, resource in self.handles.items()}

    def close_all(self) -> None:
        """Close every target, even if closing one of them fails.

        Raises:
            Exception: the first close error, once every target has been closed
        """
        first_error: Optional[Exception] = None
        for resource in self.handles.values():
            try:
                resource.close()
            except Exception as exc:
                if first_error is None:
                    first_error = exc
                else:
                    log_exception(resource._log, "Failed to close stream", exc)

        if first_error is not None:
            raise first_error

    def _cleanup(self, failed: bool) -> None:
        if not failed:
            self.close_all()
            return

        for resource in self.handles.values():
            resource._cleanup(failed=True)

    def trigger(self) -> None:
        """Open every target and write each buffer to all of them.

        Raises:
            StreamOpenError: if any target cannot be opened; nothing is written
            StreamWriteError: if a write fails or the data provider raises
        """
        self.open_all()

        failed = False
        uri: Optional[str] = None
        try:
            while True:
                uri = None
                try:
                    data = next(self._data)
                except StopIteration as stop:
                    self.return_value = stop.value
                    break

                for uri, resource in self.handles.items():
                    transport.write_all(resource.handle, data)
        except Exception as exc:
            failed = True
            raise StreamWriteError(uri=uri, original_error=exc) from exc
        finally:
            if self.auto_close:
                self._cleanup(failed)

    def get_metadata(self) -> Dict[str, Dict[str, Any]]:
        """Transport metadata indexed by URI, probing every target if needed."""
        if self._metadata is None:
            self.open_all()
            self.close_all()

        return self._metadata  # type: ignore[return-value]

    def unlink(self) -> bool:
        """Close all streams and delete every target that was ever opened.

        Returns:
            True if every opened target has been deleted
        """
        self.close_all()

        success = True
        for uri, resource in self.handles.items():
            if not resource.opened:
                continue
            try:
                transport.delete(uri, resource.storage_options)
            except (OSError, ValueError) as exc:
                resource._log.warning("Failed to unlink stream: %s", exc, extra={"event": "unlink_failed"})
                success = False

        return success
