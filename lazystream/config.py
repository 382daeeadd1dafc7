"""Library-wide defaults for lazy readers and writers.

Settings can be built from a dictionary, a YAML file or ``LAZYSTREAM_*``
environment variables, and then used as a factory so every component created
by an application shares the same chunk size, auto-close policies and fsspec
storage options.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

from lazystream import transport
from lazystream.exceptions import ConfigValidationError
from lazystream.multi import FanOutWriter
from lazystream.reader import ChunkedReader
from lazystream.writer import BulkWriter, IncrementalChunkWriter

logger = logging.getLogger(__name__)

ENV_PREFIX = "LAZYSTREAM_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

_PLACEHOLDER = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<default>[^}]*))?\}")


def _expand_placeholders(value: Any, key: str) -> Any:
    """Expand ``${NAME}`` and ``${NAME:default}`` in every string inside ``value``.

    All unset variables without a default are reported together.
    """
    if isinstance(value, dict):
        return {k: _expand_placeholders(v, key) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_placeholders(item, key) for item in value]
    if not isinstance(value, str):
        return value

    unset = [
        match["name"]
        for match in _PLACEHOLDER.finditer(value)
        if match["default"] is None and match["name"] not in os.environ
    ]
    if unset:
        raise ConfigValidationError(
            f"Environment variable(s) not set for {key}: {', '.join(unset)}", key=key
        )

    return _PLACEHOLDER.sub(lambda match: os.environ.get(match["name"], match["default"]), value)


def _require_bool(value: Any, key: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    if not isinstance(value, bool):
        raise ConfigValidationError(f"{key} must be a boolean", key=key)
    return value


def _require_positive_int(value: Any, key: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ConfigValidationError(f"{key} must be a positive integer", key=key)
    return value


@dataclass
class StreamSettings:
    """Defaults applied to components built through this settings object.

    Attributes:
        chunk_size: Bytes per chunk for readers
        reader_auto_close: Close readers between chunks
        writer_auto_close: Close bulk writers after trigger
        chunk_writer_auto_close: Close incremental writers after every send
        fan_out_mode: Opening mode for fan-out targets
        fan_out_auto_close: Close fan-out targets after trigger
        storage_options: Options forwarded to fsspec (credentials, endpoints)
    """

    chunk_size: int = 8192
    reader_auto_close: bool = True
    writer_auto_close: bool = True
    chunk_writer_auto_close: bool = False
    fan_out_mode: str = "wb"
    fan_out_auto_close: bool = False
    storage_options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamSettings":
        """Create settings from a dictionary, resolving ${VAR} placeholders.

        Raises:
            ConfigValidationError: if a value is invalid or a key is unknown
        """
        if not isinstance(data, dict):
            raise ConfigValidationError("Settings must be a dictionary")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigValidationError(f"Unknown settings: {', '.join(unknown)}", key=unknown[0])

        data = {key: _expand_placeholders(value, key) for key, value in data.items()}

        defaults = cls()
        storage_options = data.get("storage_options") or {}
        if not isinstance(storage_options, dict):
            raise ConfigValidationError("storage_options must be a mapping", key="storage_options")

        fan_out_mode = data.get("fan_out_mode", defaults.fan_out_mode)
        if not isinstance(fan_out_mode, str) or not transport.is_writing_mode(fan_out_mode):
            raise ConfigValidationError("fan_out_mode must be a writing mode", key="fan_out_mode")

        return cls(
            chunk_size=_require_positive_int(data.get("chunk_size"), "chunk_size", defaults.chunk_size),
            reader_auto_close=_require_bool(data.get("reader_auto_close"), "reader_auto_close", defaults.reader_auto_close),
            writer_auto_close=_require_bool(data.get("writer_auto_close"), "writer_auto_close", defaults.writer_auto_close),
            chunk_writer_auto_close=_require_bool(
                data.get("chunk_writer_auto_close"), "chunk_writer_auto_close", defaults.chunk_writer_auto_close
            ),
            fan_out_mode=fan_out_mode,
            fan_out_auto_close=_require_bool(data.get("fan_out_auto_close"), "fan_out_auto_close", defaults.fan_out_auto_close),
            storage_options=dict(storage_options),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "StreamSettings":
        """Load settings from a YAML file.

        A top-level ``lazystream`` key is unwrapped if present, so the settings
        can live inside a larger application config.

        Raises:
            FileNotFoundError: If the settings file doesn't exist
            ConfigValidationError: If the settings file is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigValidationError(f"Invalid YAML: {exc}", config_path=str(path)) from exc

        if not data:
            raise ConfigValidationError(f"Settings file is empty: {path}", config_path=str(path))

        if isinstance(data, dict) and "lazystream" in data:
            data = data["lazystream"]

        logger.debug("Loaded stream settings from %s", path)
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "StreamSettings":
        """Build settings from ``LAZYSTREAM_*`` environment variables.

        ``LAZYSTREAM_CHUNK_SIZE=65536`` sets ``chunk_size``, and so on.
        ``storage_options`` cannot be set this way.
        """
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name == "storage_options":
                continue
            value = environ.get(ENV_PREFIX + f.name.upper())
            if value is not None:
                data[f.name] = value
        return cls.from_dict(data)

    def with_overrides(self, **overrides: Any) -> "StreamSettings":
        """Copy of these settings with ``overrides`` applied and validated.

        Raises:
            ConfigValidationError: if an override is invalid or unknown
        """
        return self.from_dict({**asdict(self), **overrides})

    def reader(self, uri: str, **overrides: Any) -> ChunkedReader:
        """Build a ChunkedReader using these defaults."""
        overrides.setdefault("chunk_size", self.chunk_size)
        overrides.setdefault("auto_close", self.reader_auto_close)
        overrides.setdefault("storage_options", self.storage_options)
        return ChunkedReader(uri, **overrides)

    def writer(self, uri: str, data_provider: Iterable[bytes], **overrides: Any) -> BulkWriter:
        """Build a BulkWriter using these defaults."""
        overrides.setdefault("auto_close", self.writer_auto_close)
        overrides.setdefault("storage_options", self.storage_options)
        return BulkWriter(uri, data_provider, **overrides)

    def chunk_writer(self, uri: str, **overrides: Any) -> IncrementalChunkWriter:
        """Build an IncrementalChunkWriter using these defaults."""
        overrides.setdefault("auto_close", self.chunk_writer_auto_close)
        overrides.setdefault("storage_options", self.storage_options)
        return IncrementalChunkWriter(uri, **overrides)

    def fan_out(self, uris: Iterable[str], data_provider: Iterable[bytes], **overrides: Any) -> FanOutWriter:
        """Build a FanOutWriter using these defaults."""
        overrides.setdefault("mode", self.fan_out_mode)
        overrides.setdefault("auto_close", self.fan_out_auto_close)
        overrides.setdefault("storage_options", self.storage_options)
        return FanOutWriter(uris, data_provider, **overrides)
