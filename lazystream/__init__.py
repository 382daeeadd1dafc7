"""
Lazily opened byte streams: readers and writers that defer I/O until data flows.
"""

from .base import LazyResource, StreamWriter
from .config import StreamSettings
from .exceptions import (
    ConfigValidationError,
    LazyStreamError,
    StreamOpenError,
    StreamWriteError,
    UsageError,
)
from .multi import FanOutWriter
from .reader import ChunkedReader
from .writer import BulkWriter, IncrementalChunkWriter

__version__ = "1.0.0"

__all__ = [
    'LazyResource',
    'StreamWriter',
    'ChunkedReader',
    'BulkWriter',
    'IncrementalChunkWriter',
    'FanOutWriter',
    'StreamSettings',
    'LazyStreamError',
    'StreamOpenError',
    'StreamWriteError',
    'UsageError',
    'ConfigValidationError',
    '__version__',
]
