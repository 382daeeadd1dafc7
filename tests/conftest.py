"""Pytest configuration and fixtures."""

import uuid
from typing import Callable, Iterator, List

import fsspec
import pytest

from lazystream import transport


@pytest.fixture
def memory_uri() -> Iterator[Callable[..., str]]:
    """Provide a factory of unique memory:// URIs, removed after the test."""
    created: List[str] = []
    prefix = f"memory://lazystream-tests/{uuid.uuid4().hex}"

    def factory(name: str = "stream.bin") -> str:
        uri = f"{prefix}/{name}"
        created.append(uri)
        return uri

    yield factory

    fs = fsspec.filesystem("memory")
    for uri in created:
        fs.store.pop(fs._strip_protocol(uri), None)


@pytest.fixture
def read_uri() -> Callable[[str], bytes]:
    """Read back the full content stored at a URI."""

    def reader(uri: str) -> bytes:
        fs, path = transport.resolve(uri)
        return fs.cat_file(path)

    return reader


@pytest.fixture
def write_uri() -> Callable[[str, bytes], None]:
    """Seed a URI with content."""

    def writer(uri: str, data: bytes) -> None:
        fs, path = transport.resolve(uri)
        fs.pipe_file(path, data)

    return writer


@pytest.fixture
def open_calls(monkeypatch) -> List[tuple]:
    """Record every (uri, mode) passed to the transport's open."""
    calls: List[tuple] = []
    original = transport.open_stream

    def counting_open(uri, mode, storage_options=None):
        calls.append((uri, mode))
        return original(uri, mode, storage_options)

    monkeypatch.setattr(transport, "open_stream", counting_open)
    return calls

