"""Custom exception classes for lazystream.

Every error carries an ``error_code`` and a ``details`` mapping so callers can
tell "open failed" from "write failed mid-stream" without parsing messages.
"""

from typing import Any, Dict, Optional


class LazyStreamError(Exception):
    """Base exception for all lazystream errors."""

    error_code: str = "LS000"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, error_code: Optional[str] = None):
        """
        Initialize lazystream exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context
            error_code: Optional error code override
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def __str__(self) -> str:
        """Return string representation with error code and details."""
        parts = [f"[{self.error_code}] {self.message}"]
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)


class StreamOpenError(LazyStreamError):
    """Raised when a stream cannot be acquired for the requested mode.

    Examples:
        - Unknown protocol in the URI
        - Missing parent directory or file for the mode
        - Transport driver not installed
    """

    error_code = "LS100"

    def __init__(self, uri: str, mode: str, original_error: Optional[Exception] = None):
        """
        Initialize stream open error.

        Args:
            uri: URI that failed to open, exactly as supplied
            mode: Opening mode that was requested
            original_error: Error raised by the transport
        """
        details: Dict[str, Any] = {}
        if original_error:
            details['error_type'] = type(original_error).__name__
        super().__init__(f'Unable to open "{uri}" with mode "{mode}".', details)
        self.uri = uri
        self.mode = mode
        self.original_error = original_error


class StreamWriteError(LazyStreamError):
    """Raised when writing to an open stream fails.

    Also covers faults raised by the data provider while it is being drained.
    """

    error_code = "LS200"

    def __init__(
        self,
        message: Optional[str] = None,
        uri: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize stream write error.

        Args:
            message: Description of the failure
            uri: Target URI the write was headed for, when known
            original_error: Original exception that caused this error
        """
        details: Dict[str, Any] = {}
        if uri:
            details['uri'] = uri
        if original_error:
            details['original_error'] = str(original_error)
            details['error_type'] = type(original_error).__name__
        if message is None:
            message = f'Unable to write to stream with URI "{uri}".' if uri else "Unable to write to stream."
        super().__init__(message, details)
        self.uri = uri
        self.original_error = original_error


class UsageError(LazyStreamError):
    """Raised for illegal API usage, e.g. calling an unsupported operation."""

    error_code = "LS300"


class ConfigValidationError(LazyStreamError):
    """Raised when settings validation fails.

    Examples:
        - Non-positive chunk size
        - Non-boolean auto-close flag
        - Unreadable or empty settings file
    """

    error_code = "CFG001"

    def __init__(self, message: str, config_path: Optional[str] = None, key: Optional[str] = None):
        """
        Initialize configuration validation error.

        Args:
            message: Description of validation failure
            config_path: Path to settings file that failed validation
            key: Specific settings key that caused the error
        """
        details = {}
        if config_path:
            details['config_path'] = config_path
        if key:
            details['config_key'] = key
        super().__init__(message, details)
