"""Transport primitives backed by fsspec.

This module is the only place that talks to fsspec. It provides:
- open_stream(): resolve a URI and acquire an open file object
- read_chunk() / write_all() / seek() / tell(): primitives on an open handle
- flush_and_close(): release a handle, flushing first when it writes
- describe(): metadata mapping for an open handle
- delete(): remove the addressable resource behind a URI
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union

import fsspec  # type: ignore[import-untyped]

# Errors fsspec raises when a URI cannot be turned into an open handle:
# OSError for missing paths/permissions, ValueError for unknown protocols,
# ImportError when the protocol driver is not installed.
OPEN_ERRORS = (OSError, ValueError, ImportError)

WRITE_FLAGS = ("w", "a", "x", "+")


def is_writing_mode(mode: str) -> bool:
    """Return True if the opening mode allows writing."""
    return any(flag in mode for flag in WRITE_FLAGS)


def resolve(
    uri: str, storage_options: Optional[Dict[str, Any]] = None
) -> Tuple[fsspec.AbstractFileSystem, str]:
    """Resolve a URI to an fsspec filesystem and the path inside it.

    Example:
        >>> fs, path = resolve("memory://reports/out.bin")
        >>> type(fs).__name__
        'MemoryFileSystem'
    """
    return fsspec.core.url_to_fs(uri, **(storage_options or {}))


def open_stream(
    uri: str, mode: str, storage_options: Optional[Dict[str, Any]] = None
) -> Tuple[Any, fsspec.AbstractFileSystem, str]:
    """Acquire an open handle for ``uri``.

    Returns:
        Tuple of (handle, filesystem, resolved_path)

    Raises:
        OSError, ValueError, ImportError: propagated from fsspec
    """
    fs, path = resolve(uri, storage_options)
    handle = fs.open(path, mode)
    return handle, fs, path


def read_chunk(handle: Any, size: int) -> Union[bytes, str]:
    """Read at most ``size`` units; returns an empty buffer at end of stream."""
    data = handle.read(size)
    return b"" if data is None else data


def write_all(handle: Any, data: bytes) -> None:
    """Write the whole buffer or fail.

    Raises:
        OSError: if the handle reports a short write
    """
    written = handle.write(data)
    if written is not None and written != len(data):
        raise OSError(f"Short write: {written} of {len(data)} bytes written")


def seek(handle: Any, offset: Any) -> None:
    handle.seek(offset)


def tell(handle: Any) -> Any:
    """Current position; an opaque cookie for text-mode handles."""
    return handle.tell()


def flush_and_close(handle: Any, mode: str) -> None:
    """Flush pending writes when ``mode`` writes, then always close."""
    try:
        if is_writing_mode(mode):
            handle.flush()
    finally:
        handle.close()


def _protocol_name(fs: fsspec.AbstractFileSystem) -> str:
    protocol = fs.protocol
    if isinstance(protocol, (tuple, list)):
        protocol = protocol[0]
    return str(protocol)


def describe(handle: Any, uri: str, mode: str, fs: fsspec.AbstractFileSystem, path: str) -> Dict[str, Any]:
    """Build the metadata mapping for an open handle.

    Keys:
        stream_type: upper-cased transport protocol (MEMORY, FILE, S3, ...)
        wrapper_type: filesystem implementation class name
        mode: opening mode
        seekable: whether the handle supports seek
        uri: URI as supplied by the caller
        path: path inside the filesystem
    """
    seekable = getattr(handle, "seekable", None)
    return {
        "stream_type": _protocol_name(fs).upper(),
        "wrapper_type": type(fs).__name__,
        "mode": mode,
        "seekable": bool(seekable()) if callable(seekable) else False,
        "uri": uri,
        "path": path,
    }


def delete(uri: str, storage_options: Optional[Dict[str, Any]] = None) -> None:
    """Remove the resource behind ``uri``.

    Raises:
        FileNotFoundError: if nothing exists at ``uri``
        OSError: if the transport refuses the deletion
    """
    fs, path = resolve(uri, storage_options)
    fs.rm(path)
