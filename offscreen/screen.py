"""X server screen saver and monitor presence watching.

A Screen holds a connection to an X server and tracks two things: whether the
screen saver is on, and whether a particular monitor (identified by the
manufacturer ID and product code in its EDID) is plugged in. Screen saver
changes are reported to a handler only while that monitor is present, and the
monitor appearing reports the screen saver state at that moment.

Requires the RANDR and MIT-SCREEN-SAVER extensions.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Iterator, List, Optional, Tuple

import Xlib.threaded  # noqa: F401  (makes the connection safe to close from another thread)
from Xlib import X
from Xlib import display as xdisplay
from Xlib import error as xerror
from Xlib.ext import randr, screensaver

from .config import (
    DEFAULT_MANUFACTURER_ID,
    DEFAULT_PRODUCT_CODE,
    EDID_PROPERTY,
    EDID_PROPERTY_LENGTH,
    RANDR_EXTENSION,
    SCREENSAVER_EXTENSION,
)
from .edid import Edid, EDID_MAX_SIZE, parse_edid
from .exceptions import DisplayError, EdidError, ExtensionMissingError, WatchError

_LOGGER = logging.getLogger(__name__)

# ConnectionClosedError is not an XError
_X_ERRORS = (xerror.XError, xerror.ConnectionClosedError)

# Called with the new screen saver state (True = on). Raising stops the watch.
ScreenSaverHandler = Callable[[bool], object]


@dataclass(frozen=True)
class ScreenState:
    """Snapshot of the watched state."""

    screensaver_on: bool = False
    present: bool = False


@dataclass(frozen=True)
class Monitor:
    """A connected output with EDID data."""

    output: int
    output_name: str
    edid: Edid


def iter_edids(display, root) -> Iterator[Tuple[int, Edid]]:
    """Yield (output, Edid) for every RANDR output that has EDID data.

    Outputs without an EDID property are skipped. Stopping the iteration
    early stops querying further outputs.

    Raises:
        EdidError: if an output's EDID is oversized or cannot be decoded
    """
    resources = root.xrandr_get_screen_resources_current()
    edid_atom = display.intern_atom(EDID_PROPERTY)

    for output in resources.outputs:
        prop = display.xrandr_get_output_property(
            output, edid_atom, X.AnyPropertyType, 0, EDID_PROPERTY_LENGTH, False, False
        )
        if prop.bytes_after:
            raise EdidError(
                f"EDID data too large. Max is {EDID_MAX_SIZE} bytes, "
                f"got {EDID_MAX_SIZE + prop.bytes_after} bytes"
            )
        data = bytes(prop.value or b"")
        if not data:
            continue
        yield output, parse_edid(data)


def detect_presence(display, root, manufacturer_id: str, product_code: int) -> bool:
    """Return whether a monitor with the given EDID identity is connected.

    Every output is re-checked on each call; the first match ends the scan.
    A malformed EDID on any output scanned is an error rather than a
    non-match.
    """
    for output, edid in iter_edids(display, root):
        if edid.matches(manufacturer_id, product_code):
            _LOGGER.debug("Found %s/%d on output %s", manufacturer_id, product_code, output)
            return True
    return False


def list_monitors(display, root) -> List[Monitor]:
    """Return all connected outputs that have EDID data."""
    resources = root.xrandr_get_screen_resources_current()
    monitors = []
    for output, edid in iter_edids(display, root):
        info = display.xrandr_get_output_info(output, resources.config_timestamp)
        monitors.append(Monitor(output=output, output_name=_output_name(info.name), edid=edid))
    return monitors


def _output_name(name) -> str:
    if isinstance(name, bytes):
        return name.decode("utf-8", errors="replace")
    return str(name)


class Screen:
    """Connection to an X server watching the screen saver and one monitor."""

    def __init__(
        self,
        display,
        manufacturer_id: str = DEFAULT_MANUFACTURER_ID,
        product_code: int = DEFAULT_PRODUCT_CODE,
    ):
        """Initialize from an open X display.

        Args:
            display: Open Xlib display with RANDR and MIT-SCREEN-SAVER
            manufacturer_id: EDID manufacturer ID of the monitor to watch
            product_code: EDID product code of the monitor to watch

        Raises:
            DisplayError: if the initial state cannot be queried
            EdidError: if a connected monitor has malformed EDID data
        """
        self._display = display
        self._root = display.screen().root
        self.manufacturer_id = manufacturer_id
        self.product_code = product_code

        self._lock = threading.Lock()
        self._closed = threading.Event()

        # Registered by the extension modules under their event class names;
        # OutputChangeNotify is a RRNotify sub-event, stored as (code, subcode)
        events = display.extension_event
        self._screensaver_event = events.Notify
        self._randr_event = events.OutputChangeNotify[0]

        try:
            screensaver_on = self._query_screensaver()
        except _X_ERRORS as e:
            raise DisplayError(f"could not query screen saver state: {e}") from e
        try:
            present = self._query_presence()
        except xerror.ConnectionClosedError as e:
            raise DisplayError(f"could not query outputs: {e}") from e
        self._state = ScreenState(screensaver_on=screensaver_on, present=present)

        _LOGGER.info(
            "Screen saver %s, monitor %s/%d %s",
            "on" if self._state.screensaver_on else "off",
            manufacturer_id,
            product_code,
            "present" if self._state.present else "absent",
        )

    @classmethod
    def open(
        cls,
        display_name: Optional[str] = None,
        manufacturer_id: str = DEFAULT_MANUFACTURER_ID,
        product_code: int = DEFAULT_PRODUCT_CODE,
    ) -> "Screen":
        """Connect to an X server and check it has the required extensions.

        Args:
            display_name: X display such as ":0", or None for $DISPLAY

        Raises:
            DisplayError: if the display cannot be opened
            ExtensionMissingError: if RANDR or MIT-SCREEN-SAVER is missing
        """
        try:
            display = xdisplay.Display(display_name)
        except (xerror.DisplayError, OSError) as e:
            raise DisplayError(f"could not open display {display_name or ''}: {e}") from e

        try:
            for extension in (RANDR_EXTENSION, SCREENSAVER_EXTENSION):
                if not display.has_extension(extension):
                    raise ExtensionMissingError(extension)
            return cls(display, manufacturer_id, product_code)
        except Exception:
            display.close()
            raise

    @property
    def state(self) -> ScreenState:
        """Current screen saver/presence state. Safe to read from any thread."""
        with self._lock:
            return self._state

    def is_screensaver_on(self) -> bool:
        return self.state.screensaver_on

    def is_present(self) -> bool:
        return self.state.present

    def monitors(self) -> List[Monitor]:
        """Return all connected outputs that have EDID data."""
        try:
            return list_monitors(self._display, self._root)
        except _X_ERRORS as e:
            raise DisplayError(f"could not query outputs: {e}") from e

    def close(self) -> None:
        """Close the X connection. A running watch() returns normally."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._display.close()

    def blank(self) -> None:
        """Force the screen saver on."""
        catcher = xerror.CatchError()
        try:
            self._display.force_screen_saver(X.ScreenSaverActive, onerror=catcher)
            self._display.sync()
        except _X_ERRORS as e:
            raise DisplayError(f"could not blank screen: {e}") from e
        if catcher.get_error():
            raise DisplayError(f"could not blank screen: {catcher.get_error()}")

    def watch(self, handler: ScreenSaverHandler) -> None:
        """Watch for screen saver and monitor changes until the connection closes.

        The handler is called with the screen saver state when it changes
        while the monitor is present, and when the monitor becomes present.
        Events are handled one at a time; the next event is not read until
        the handler returns.

        Raises:
            DisplayError: if subscribing to events fails
            WatchError: if reading events, re-checking presence, or the
                handler fails. The original exception is the __cause__.
        """
        self._subscribe()

        while True:
            try:
                event = self._display.next_event()
            except xerror.ConnectionClosedError:
                _LOGGER.info("X connection closed")
                return
            except Exception as e:
                if self._closed.is_set():
                    _LOGGER.info("X connection closed")
                    return
                raise WatchError(f"could not wait for events: {e}") from e

            if event.type == self._screensaver_event:
                self._on_screensaver_event(event, handler)
            elif event.type == self._randr_event:
                try:
                    self._on_output_change(handler)
                except xerror.ConnectionClosedError:
                    _LOGGER.info("X connection closed while checking outputs")
                    return
            else:
                _LOGGER.debug("Ignoring X event type %s", event.type)

    def _subscribe(self) -> None:
        try:
            self._root.xrandr_select_input(randr.RROutputChangeNotifyMask)
            self._root.screensaver_select_input(screensaver.NotifyMask)
            self._display.sync()
        except _X_ERRORS as e:
            raise DisplayError(f"could not watch RANDR and SCREENSAVER events: {e}") from e

    def _on_screensaver_event(self, event, handler: ScreenSaverHandler) -> None:
        is_on = event.state in (screensaver.StateOn, screensaver.StateCycle)
        with self._lock:
            was_on = self._state.screensaver_on
            present = self._state.present
            self._state = replace(self._state, screensaver_on=is_on)

        _LOGGER.debug("Screen saver event: state=%s", event.state)
        if is_on == was_on:
            return
        _LOGGER.info("Screen saver turned %s", "on" if is_on else "off")
        if present:
            self._call(handler, is_on)

    def _on_output_change(self, handler: ScreenSaverHandler) -> None:
        # A RANDR notification does not reliably say whether an output was
        # connected or disconnected, so re-scan all of them.
        try:
            present = self._query_presence()
        except (EdidError, DisplayError) as e:
            raise WatchError(f"could not query TV presence: {e}") from e

        with self._lock:
            was_present = self._state.present
            self._state = replace(self._state, present=present)
            screensaver_on = self._state.screensaver_on

        if present == was_present:
            return
        _LOGGER.info("Monitor %s/%d %s", self.manufacturer_id, self.product_code,
                     "connected" if present else "disconnected")
        if present:
            self._call(handler, screensaver_on)

    def _call(self, handler: ScreenSaverHandler, screensaver_on: bool) -> None:
        try:
            handler(screensaver_on)
        except Exception as e:
            raise WatchError(f"screen saver handler failed: {e}") from e

    def _query_screensaver(self) -> bool:
        info = self._root.screensaver_query_info()
        return info.state == screensaver.StateOn

    def _query_presence(self) -> bool:
        # ConnectionClosedError is left to the caller
        try:
            return detect_presence(self._display, self._root, self.manufacturer_id, self.product_code)
        except xerror.XError as e:
            raise DisplayError(f"could not query outputs: {e}") from e
