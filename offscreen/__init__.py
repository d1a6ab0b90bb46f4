"""Turn a Sony Bravia TV off and on with the X screen saver.

Watches the X server's screen saver and the presence of the TV as a monitor,
and drives the TV over the Bravia REST IP control protocol.
"""

__version__ = "0.1.0"

from .bravia import BraviaClient, PowerStatus, PlayingContent
from .edid import Edid, parse_edid
from .exceptions import (
    OffscreenError,
    ConfigError,
    DisplayError,
    ExtensionMissingError,
    EdidError,
    WatchError,
    InputNotFoundError,
    BraviaError,
    TransportError,
    HTTPStatusError,
    ProtocolError,
    InvalidResponseError,
    ReconcileError,
)
from .inputs import (
    ExternalInput,
    InputMap,
    INPUT_URI_PREFIX,
    MAX_LABEL_LENGTH,
    truncate_label,
    default_input_label,
    resolve_input_uri,
)
from .reconcile import Outcome, Reconciler, toggle
from .screen import Monitor, Screen, ScreenState, detect_presence, list_monitors

__all__ = [
    # Client
    "BraviaClient",
    "PowerStatus",
    "PlayingContent",
    # Inputs
    "ExternalInput",
    "InputMap",
    "INPUT_URI_PREFIX",
    "MAX_LABEL_LENGTH",
    "truncate_label",
    "default_input_label",
    "resolve_input_uri",
    # Screen
    "Screen",
    "ScreenState",
    "Monitor",
    "detect_presence",
    "list_monitors",
    "Edid",
    "parse_edid",
    # Reconciliation
    "Reconciler",
    "Outcome",
    "toggle",
    # Errors
    "OffscreenError",
    "ConfigError",
    "DisplayError",
    "ExtensionMissingError",
    "EdidError",
    "WatchError",
    "InputNotFoundError",
    "BraviaError",
    "TransportError",
    "HTTPStatusError",
    "ProtocolError",
    "InvalidResponseError",
    "ReconcileError",
]
