"""Shared helpers for lazystream tests."""


def handle_content(handle) -> bytes:
    """Full content of an open handle, restoring its position afterwards."""
    position = handle.tell()
    handle.seek(0)
    data = handle.read()
    handle.seek(position)
    return data


def failing_after(first: bytes, error: Exception):
    """Generator yielding ``first`` once, then raising ``error``."""
    yield first
    raise error
