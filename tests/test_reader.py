"""Tests for the lazy chunked reader."""

import math
import re

import fsspec
import pytest

from lazystream.exceptions import StreamOpenError
from lazystream.reader import ChunkedReader


@pytest.fixture
def chunky(memory_uri, write_uri):
    uri = memory_uri("chunky.txt")
    write_uri(uri, b"chunky")
    return uri


def test_stream_is_lazily_opened(chunky, open_calls):
    reader = ChunkedReader(chunky, chunk_size=2)

    assert reader.handle is None
    assert reader.position == 0
    assert open_calls == []


@pytest.mark.parametrize("auto_close", [True, False])
def test_reads_in_chunks(chunky, auto_close):
    reader = ChunkedReader(chunky, chunk_size=2, auto_close=auto_close)

    chunks = list(reader)

    assert chunks == [b"ch", b"un", b"ky"]
    assert reader.position == 6
    assert reader.handle is None


@pytest.mark.parametrize("auto_close", [True, False])
@pytest.mark.parametrize("chunk_size", [1, 4, 5, 6, 100])
def test_chunks_reconstruct_content(chunky, auto_close, chunk_size):
    reader = ChunkedReader(chunky, chunk_size=chunk_size, auto_close=auto_close)

    chunks = list(reader)

    assert len(chunks) == math.ceil(6 / chunk_size)
    assert all(len(chunk) <= chunk_size for chunk in chunks)
    assert b"".join(chunks) == b"chunky"


def test_position_counts_bytes_actually_read(chunky):
    reader = ChunkedReader(chunky, chunk_size=4)
    iterator = iter(reader)

    assert next(iterator) == b"chun"
    assert reader.position == 4
    assert next(iterator) == b"ky"
    assert reader.position == 6


def test_auto_close_releases_handle_between_chunks(chunky):
    reader = ChunkedReader(chunky, chunk_size=2, auto_close=True)
    iterator = iter(reader)

    next(iterator)

    assert reader.handle is None


def test_without_auto_close_handle_stays_open_between_chunks(chunky):
    reader = ChunkedReader(chunky, chunk_size=2, auto_close=False)
    iterator = iter(reader)

    next(iterator)

    assert reader.handle is not None
    list(iterator)
    assert reader.handle is None


def test_auto_close_reopens_for_every_chunk(chunky, open_calls):
    list(ChunkedReader(chunky, chunk_size=2, auto_close=True))

    # one initial open, one reopen after each of the three chunks
    assert open_calls == [(chunky, "rb")] * 4


def test_keeps_single_handle_without_auto_close(chunky, open_calls):
    list(ChunkedReader(chunky, chunk_size=2, auto_close=False))

    assert len(open_calls) == 1


def test_auto_close_can_be_toggled(chunky):
    reader = ChunkedReader(chunky, chunk_size=2, auto_close=True)
    assert reader.auto_close is True

    reader.auto_close = False
    iterator = iter(reader)
    next(iterator)

    assert reader.handle is not None
    iterator.close()


def test_second_iteration_yields_nothing(chunky):
    reader = ChunkedReader(chunky, chunk_size=2)

    assert reader.read_all() == b"chunky"
    assert list(reader) == []
    assert reader.position == 6


def test_abandoned_iteration_closes_stream(chunky):
    reader = ChunkedReader(chunky, chunk_size=2, auto_close=False)
    iterator = iter(reader)
    next(iterator)

    iterator.close()

    assert reader.handle is None
    assert reader.position == 2


def test_empty_stream_yields_nothing(memory_uri, write_uri):
    uri = memory_uri("empty.bin")
    write_uri(uri, b"")
    reader = ChunkedReader(uri, chunk_size=8)

    assert list(reader) == []
    assert reader.handle is None


def test_reads_local_file(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(bytes(range(256)) * 4)

    reader = ChunkedReader(str(path), chunk_size=100, auto_close=True)

    assert reader.read_all() == path.read_bytes()
    assert reader.position == 1024


def test_invalid_stream_raises_on_first_read():
    reader = ChunkedReader("invalid://memory", chunk_size=2)

    with pytest.raises(StreamOpenError, match=re.escape('Unable to open "invalid://memory" with mode "rb".')):
        next(iter(reader))


def test_missing_memory_file_raises(memory_uri):
    reader = ChunkedReader(memory_uri("missing.bin"), chunk_size=2)

    with pytest.raises(StreamOpenError):
        list(reader)


def test_reopen_failure_propagates(chunky):
    reader = ChunkedReader(chunky, chunk_size=2, auto_close=True)
    iterator = iter(reader)
    assert next(iterator) == b"ch"

    fs = fsspec.filesystem("memory")
    fs.rm(chunky)

    with pytest.raises(StreamOpenError):
        next(iterator)
    assert list(iterator) == []


def test_metadata_probe_does_not_move_position(chunky):
    reader = ChunkedReader(chunky, chunk_size=2)

    metadata = reader.get_metadata()

    assert metadata["mode"] == "rb"
    assert metadata["stream_type"] == "MEMORY"
    assert reader.position == 0
    assert reader.read_all() == b"chunky"


@pytest.mark.parametrize("chunk_size", [0, -1, 2.5, True])
def test_rejects_invalid_chunk_size(chunky, chunk_size):
    with pytest.raises(ValueError, match="chunk_size"):
        ChunkedReader(chunky, chunk_size=chunk_size)


@pytest.mark.parametrize("auto_close", [True, False])
def test_text_mode_yields_strings(tmp_path, auto_close):
    path = tmp_path / "notes.txt"
    path.write_text("first line\nsecond line\n", encoding="ascii")

    reader = ChunkedReader(str(path), chunk_size=5, auto_close=auto_close, binary=False)
    chunks = list(reader)

    assert reader.mode == "r"
    assert chunks[0] == "first"
    assert all(isinstance(chunk, str) for chunk in chunks)
    assert "".join(chunks) == "first line\nsecond line\n"
    assert reader.position == 23
    assert reader.handle is None


def test_text_mode_read_all(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("a\nb\nc\n", encoding="ascii")

    assert ChunkedReader(str(path), chunk_size=2, binary=False).read_all() == "a\nb\nc\n"


def test_binary_is_default(chunky):
    reader = ChunkedReader(chunky, chunk_size=2)

    assert reader.binary is True
    assert reader.mode == "rb"
