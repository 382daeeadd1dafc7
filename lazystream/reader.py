"""Lazy chunked reader."""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional, Union

from lazystream import transport
from lazystream.base import LazyResource


class ChunkedReader(LazyResource):
    """
    Reads a stream as a lazy sequence of fixed-size chunks.

    Nothing is opened until iteration starts. With ``auto_close`` enabled the
    file handle is released after every chunk and reacquired (with a seek back
    to where the last read stopped) before the next read, so a descriptor is
    only held while a read is actually happening.

    Usage:
        reader = ChunkedReader("s3://bucket/dump.bin", chunk_size=1 << 20)
        for chunk in reader:
            process(chunk)

    Chunks are ``bytes`` by default. With ``binary=False`` the stream is opened
    in text mode and chunks are ``str`` of at most ``chunk_size`` characters.

    ``position`` is the number of bytes (characters in text mode) yielded so
    far. Iterating again after exhaustion yields nothing; the sequence is
    single-pass per instance.
    """

    def __init__(
        self,
        uri: str,
        chunk_size: int,
        auto_close: bool = True,
        storage_options: Optional[Dict[str, Any]] = None,
        binary: bool = True,
    ) -> None:
        """
        Initializes the reader.

        Args:
            uri: A stream URI understood by fsspec.
            chunk_size: Maximum number of bytes (or characters) per chunk.
            auto_close: Whether the stream is closed between chunks.
            storage_options: Extra options forwarded to the fsspec filesystem.
            binary: Open with ``rb`` and yield bytes; text mode (``r``) otherwise.
        """
        if not isinstance(chunk_size, int) or isinstance(chunk_size, bool) or chunk_size <= 0:
            raise ValueError(f"chunk_size must be a positive integer, got {chunk_size!r}")

        super().__init__(uri, "rb" if binary else "r", storage_options)
        self.chunk_size = chunk_size
        self.auto_close = auto_close
        self.binary = binary
        self._position = 0
        # Where a reopened handle resumes. Equal to position in binary mode;
        # in text mode it is the handle's tell() cookie.
        self._resume_at: Any = 0

    @property
    def position(self) -> int:
        """Bytes (or characters) yielded so far."""
        return self._position

    def __iter__(self) -> Iterator[Union[bytes, str]]:
        return self._read()

    def _open_at_position(self) -> None:
        self.open()
        if self._resume_at:
            transport.seek(self.handle, self._resume_at)

    def _read(self) -> Iterator[Union[bytes, str]]:
        self._open_at_position()

        try:
            while True:
                data = transport.read_chunk(self.handle, self.chunk_size)
                if not data:
                    break

                self._position += len(data)
                self._resume_at = self._position if self.binary else transport.tell(self.handle)

                if self.auto_close:
                    self.close()
                    yield data

                    self._open_at_position()
                    continue

                yield data
        finally:
            self.close()
            self._log.debug("Finished reading at position %d", self._position, extra={"event": "exhausted"})

    def read_all(self) -> Union[bytes, str]:
        """Read every remaining chunk and return them joined."""
        empty = b"" if self.binary else ""
        return empty.join(self)
