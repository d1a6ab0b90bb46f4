"""Exception hierarchy for offscreen.

Every error raised by the library derives from OffscreenError so the CLI can
report any failure with a single handler.
"""

from typing import Any, Dict, Optional


class OffscreenError(Exception):
    """Base exception for all offscreen errors."""


class ConfigError(OffscreenError):
    """Configuration file could not be read or is invalid."""


class DisplayError(OffscreenError):
    """The X server could not be reached or a request to it failed."""


class ExtensionMissingError(DisplayError):
    """The X server does not provide a required extension."""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"X server does not support the {extension} extension")


class EdidError(OffscreenError):
    """Monitor identification (EDID) data is malformed."""


class WatchError(OffscreenError):
    """The screen watch loop stopped because of an error."""


class InputNotFoundError(OffscreenError):
    """The TV has no input with the requested label."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"TV set does not have labelled input: {label}")


class BraviaError(OffscreenError):
    """Base error for Bravia REST IP control requests."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class TransportError(BraviaError):
    """The HTTP exchange with the TV did not complete."""


class HTTPStatusError(BraviaError):
    """The TV answered with an HTTP status other than 200."""

    def __init__(self, status_code: int, reason: str = "", context: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        message = f"HTTP {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message, context)


class ProtocolError(BraviaError):
    """The TV returned an error in the response body.

    Errors are returned like ``{"error": [40005, "Display Is Turned Off"]}``.
    """

    def __init__(self, code: int, message: str, context: Optional[Dict[str, Any]] = None):
        self.code = code
        super().__init__(message, context)

    def __str__(self) -> str:
        return f"{self.message} (code {self.code})"


class InvalidResponseError(BraviaError):
    """The response body could not be parsed into the expected result."""

    def __init__(self, message: str, body: bytes = b"", context: Optional[Dict[str, Any]] = None):
        self.body = body
        super().__init__(message, context)

    def __str__(self) -> str:
        return f"{self.message}\nBody: {self.body.decode('utf-8', errors='replace')}"


class ReconcileError(OffscreenError):
    """A TV operation failed while bringing the TV in line with the screen."""

    def __init__(self, operation: str, params: Optional[Dict[str, Any]] = None, cause: Optional[BaseException] = None):
        self.operation = operation
        self.params = params or {}
        message = f"could not {operation}"
        if self.params:
            args = ", ".join(f"{k}={v!r}" for k, v in self.params.items())
            message = f"{message} ({args})"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
