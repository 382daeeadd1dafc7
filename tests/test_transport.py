"""Tests for the fsspec transport primitives."""

from pathlib import Path

import pytest

from lazystream import transport


class _ShortWriteHandle:
    def write(self, data):
        return len(data) - 1


class _RecordingHandle:
    def __init__(self, fail_flush=False):
        self.calls = []
        self.fail_flush = fail_flush

    def flush(self):
        self.calls.append("flush")
        if self.fail_flush:
            raise OSError("flush failed")

    def close(self):
        self.calls.append("close")


@pytest.mark.parametrize(
    "mode, expected",
    [("wb", True), ("ab", True), ("xb", True), ("r+b", True), ("rb", False), ("r", False)],
)
def test_is_writing_mode(mode, expected):
    assert transport.is_writing_mode(mode) is expected


def test_open_stream_memory(memory_uri, write_uri):
    uri = memory_uri()
    write_uri(uri, b"payload")

    handle, fs, path = transport.open_stream(uri, "rb")

    assert transport.read_chunk(handle, 3) == b"pay"
    assert "memory" in fs.protocol
    assert path.endswith("/stream.bin")
    transport.flush_and_close(handle, "rb")


def test_open_stream_unknown_protocol():
    with pytest.raises(transport.OPEN_ERRORS):
        transport.open_stream("invalid://memory", "rb")


def test_open_stream_missing_local_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        transport.open_stream(str(tmp_path / "missing.bin"), "rb")


def test_read_chunk_at_end_returns_empty(tmp_path: Path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    handle, _, _ = transport.open_stream(str(path), "rb")

    try:
        assert transport.read_chunk(handle, 10) == b""
    finally:
        handle.close()


def test_write_all_rejects_short_write():
    with pytest.raises(OSError, match="Short write: 2 of 3"):
        transport.write_all(_ShortWriteHandle(), b"abc")


def test_flush_and_close_flushes_writers():
    handle = _RecordingHandle()
    transport.flush_and_close(handle, "wb")
    assert handle.calls == ["flush", "close"]


def test_flush_and_close_skips_flush_for_readers():
    handle = _RecordingHandle()
    transport.flush_and_close(handle, "rb")
    assert handle.calls == ["close"]


def test_flush_and_close_closes_when_flush_fails():
    handle = _RecordingHandle(fail_flush=True)

    with pytest.raises(OSError, match="flush failed"):
        transport.flush_and_close(handle, "ab")

    assert handle.calls == ["flush", "close"]


def test_describe_local_file(tmp_path: Path):
    uri = str(tmp_path / "out.bin")
    handle, fs, path = transport.open_stream(uri, "wb")

    try:
        metadata = transport.describe(handle, uri, "wb", fs, path)
    finally:
        handle.close()

    assert metadata["stream_type"] == "FILE"
    assert metadata["wrapper_type"] == "LocalFileSystem"
    assert metadata["mode"] == "wb"
    assert metadata["seekable"] is True
    assert metadata["uri"] == uri


def test_delete(tmp_path: Path):
    path = tmp_path / "doomed.bin"
    path.write_bytes(b"x")

    transport.delete(str(path))

    assert not path.exists()


def test_delete_missing(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        transport.delete(str(tmp_path / "missing.bin"))
