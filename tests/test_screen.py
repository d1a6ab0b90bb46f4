"""Tests for monitor presence detection and the screen watcher."""

from __future__ import annotations

import itertools
from unittest.mock import MagicMock, patch

import pytest
from Xlib import X
from Xlib import error as xerror
from Xlib.ext import randr, screensaver

from offscreen.exceptions import (
    DisplayError,
    EdidError,
    ExtensionMissingError,
    WatchError,
)
from offscreen.screen import (
    Screen,
    ScreenState,
    detect_presence,
    list_monitors,
)

from .conftest import (
    TV_MANUFACTURER,
    TV_PRODUCT_CODE,
    make_display,
    make_edid,
    output_property,
    plug,
    randr_event,
    screensaver_event,
    unplug,
)

MATCH = make_edid(TV_MANUFACTURER, TV_PRODUCT_CODE)
OTHER = make_edid("DEL", 0xA0C3, name="DELL U2720Q")

ON = screensaver.StateOn
OFF = screensaver.StateOff
CYCLE = screensaver.StateCycle


def _presence(display: MagicMock) -> bool:
    root = display.screen.return_value.root
    return detect_presence(display, root, TV_MANUFACTURER, TV_PRODUCT_CODE)


def _watch(display: MagicMock) -> tuple[Screen, list]:
    """Watch the display to the end of its events, recording handler calls."""
    calls: list = []
    screen = Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)
    screen.watch(calls.append)
    return screen, calls


@pytest.mark.parametrize(
    "payloads",
    list(itertools.permutations([MATCH, OTHER, b""])),
)
def test_presence_independent_of_order(payloads) -> None:
    """Test a matching monitor is found wherever it is in the output list."""
    display = make_display(dict(enumerate(payloads, start=1)))

    assert _presence(display) is True


@pytest.mark.parametrize(
    "payloads",
    list(itertools.permutations([OTHER, b"", b""])),
)
def test_presence_absent(payloads) -> None:
    """Test no match when only other monitors or empty outputs exist."""
    display = make_display(dict(enumerate(payloads, start=1)))

    assert _presence(display) is False


def test_presence_no_outputs() -> None:
    """Test no outputs means not present."""
    assert _presence(make_display({})) is False


def test_presence_stops_at_first_match() -> None:
    """Test outputs after the first match are not queried."""
    display = make_display({1: OTHER, 2: MATCH, 3: MATCH})

    assert _presence(display) is True

    queried = [c[0][0] for c in display.xrandr_get_output_property.call_args_list]
    assert queried == [1, 2]


def test_presence_reads_256_byte_edid_property() -> None:
    """Test the EDID property is fetched as 64 32-bit units of any type."""
    display = make_display({1: MATCH})

    _presence(display)

    display.intern_atom.assert_called_with("EDID")
    display.xrandr_get_output_property.assert_called_with(1, 123, X.AnyPropertyType, 0, 64, False, False)


def test_presence_malformed_edid_is_error() -> None:
    """Test a malformed EDID is an error, not a non-match."""
    display = make_display({1: b"\x00" * 128, 2: MATCH})

    with pytest.raises(EdidError):
        _presence(display)


def test_presence_oversized_edid_is_error() -> None:
    """Test an EDID longer than 256 bytes is an error."""
    display = make_display({1: MATCH})
    display.xrandr_get_output_property.side_effect = lambda *args: output_property(MATCH + bytes(128), bytes_after=16)

    with pytest.raises(EdidError, match="too large"):
        _presence(display)


def test_list_monitors() -> None:
    """Test connected outputs are listed with their EDID identity."""
    display = make_display({1: MATCH, 2: b"", 3: OTHER})
    root = display.screen.return_value.root

    monitors = list_monitors(display, root)

    assert [m.output_name for m in monitors] == ["HDMI-1", "HDMI-3"]
    assert monitors[1].edid.manufacturer_id == "DEL"
    assert monitors[1].edid.name == "DELL U2720Q"


def test_initial_state() -> None:
    """Test the initial screen saver and presence state is queried."""
    screen = Screen(make_display({1: MATCH}, screensaver_state=ON), TV_MANUFACTURER, TV_PRODUCT_CODE)

    assert screen.state == ScreenState(screensaver_on=True, present=True)
    assert screen.is_screensaver_on() is True
    assert screen.is_present() is True


def test_initial_cycle_state_counts_as_off() -> None:
    """Test only StateOn counts as on for the initial query."""
    screen = Screen(make_display({}, screensaver_state=CYCLE), TV_MANUFACTURER, TV_PRODUCT_CODE)

    assert screen.state == ScreenState(screensaver_on=False, present=False)


def test_watch_subscribes_to_events() -> None:
    """Test watch selects RANDR output changes and screen saver notifications."""
    display = make_display({1: MATCH})

    _watch(display)

    root = display.screen.return_value.root
    root.xrandr_select_input.assert_called_once_with(randr.RROutputChangeNotifyMask)
    root.screensaver_select_input.assert_called_once_with(screensaver.NotifyMask)


def test_screensaver_changes_reported_when_present() -> None:
    """Test each screen saver change is passed to the handler."""
    display = make_display({1: MATCH}, events=[
        screensaver_event(ON),
        screensaver_event(OFF),
        screensaver_event(CYCLE),
        screensaver_event(OFF),
    ])

    screen, calls = _watch(display)

    assert calls == [True, False, True, False]
    assert screen.state == ScreenState(screensaver_on=False, present=True)


def test_repeated_screensaver_state_not_reported() -> None:
    """Test the handler only runs on a change of state."""
    display = make_display({1: MATCH}, events=[
        screensaver_event(OFF),
        screensaver_event(ON),
        screensaver_event(ON),
        screensaver_event(CYCLE),
    ])

    _, calls = _watch(display)

    assert calls == [True]


def test_screensaver_changes_not_reported_when_absent() -> None:
    """Test the state is tracked but not reported without the monitor."""
    display = make_display({1: OTHER}, events=[
        screensaver_event(ON),
        screensaver_event(OFF),
        screensaver_event(ON),
    ])

    screen, calls = _watch(display)

    assert calls == []
    assert screen.state == ScreenState(screensaver_on=True, present=False)


def test_monitor_connect_reports_current_state() -> None:
    """Test plugging in the monitor reports the cached screen saver state."""
    display = make_display({1: OTHER, 2: b""})
    events = [screensaver_event(ON), plug(display, 2, MATCH)]
    display.next_event.side_effect = _event_source(events)

    screen, calls = _watch(display)

    assert calls == [True]
    assert screen.state == ScreenState(screensaver_on=True, present=True)


def test_monitor_disconnect_not_reported() -> None:
    """Test unplugging the monitor does not call the handler."""
    display = make_display({1: MATCH})
    display.next_event.side_effect = _event_source([unplug(display, 1)])

    screen, calls = _watch(display)

    assert calls == []
    assert screen.is_present() is False


def test_unplug_and_replug_while_screensaver_on() -> None:
    """Test replugging reports the screen saver state cached at that time."""
    display = make_display({1: MATCH})
    display.next_event.side_effect = _event_source([
        screensaver_event(ON),   # reported
        unplug(display, 1),      # not reported
        randr_event(),           # no change
        plug(display, 1, MATCH), # reported with the cached state
        randr_event(),           # no change
    ])

    _, calls = _watch(display)

    assert calls == [True, True]


def test_changes_while_absent_reported_on_connect() -> None:
    """Test the state at connect time is reported, not the state at unplug."""
    display = make_display({1: MATCH})
    display.next_event.side_effect = _event_source([
        unplug(display, 1),
        screensaver_event(ON),
        screensaver_event(OFF),
        screensaver_event(ON),
        plug(display, 1, MATCH),
    ])

    _, calls = _watch(display)

    assert calls == [True]


def test_unrelated_events_ignored() -> None:
    """Test events of other types are skipped."""
    display = make_display({1: MATCH}, events=[MagicMock(type=X.Expose), screensaver_event(ON)])

    _, calls = _watch(display)

    assert calls == [True]


def test_handler_failure_stops_watch() -> None:
    """Test a handler error ends the watch with WatchError."""
    display = make_display({1: MATCH}, events=[screensaver_event(ON), screensaver_event(OFF)])
    failure = RuntimeError("tv unreachable")
    handler = MagicMock(side_effect=failure)
    screen = Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)

    with pytest.raises(WatchError) as exc_info:
        screen.watch(handler)

    assert exc_info.value.__cause__ is failure
    handler.assert_called_once_with(True)
    # The second event is never read
    assert display.next_event.call_count == 1


def test_presence_error_stops_watch() -> None:
    """Test a malformed EDID seen during watch ends the watch."""
    display = make_display({1: MATCH})
    display.next_event.side_effect = _event_source([plug(display, 2, b"\x00" * 128)])

    with pytest.raises(WatchError, match="presence"):
        _watch(display)


def test_event_read_failure_stops_watch() -> None:
    """Test an unexpected error reading events is a WatchError."""
    display = make_display({1: MATCH})
    display.next_event.side_effect = OSError("bad file descriptor")
    screen = Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)

    with pytest.raises(WatchError):
        screen.watch(MagicMock())


def test_close_ends_watch_normally() -> None:
    """Test closing the connection while waiting returns from watch."""
    display = make_display({1: MATCH})
    screen = Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)

    def next_event():
        screen.close()
        raise OSError("bad file descriptor")

    display.next_event.side_effect = next_event

    assert screen.watch(MagicMock()) is None
    display.close.assert_called_once()


def test_close_idempotent() -> None:
    """Test closing twice closes the display once."""
    display = make_display({})
    screen = Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)

    screen.close()
    screen.close()

    display.close.assert_called_once()


def test_blank() -> None:
    """Test blank forces the screen saver active."""
    display = make_display({})
    screen = Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)

    screen.blank()

    args, kwargs = display.force_screen_saver.call_args
    assert args == (X.ScreenSaverActive,)
    display.sync.assert_called()


def test_blank_error() -> None:
    """Test an X error from blanking is raised."""
    display = make_display({})
    display.sync.side_effect = xerror.ConnectionClosedError("server")
    screen = Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)

    with pytest.raises(DisplayError):
        screen.blank()


def test_open_missing_extension() -> None:
    """Test a server without MIT-SCREEN-SAVER is rejected and closed."""
    display = make_display({})
    display.has_extension.side_effect = lambda name: name == "RANDR"

    with patch("offscreen.screen.xdisplay.Display", return_value=display):
        with pytest.raises(ExtensionMissingError) as exc_info:
            Screen.open(":0")

    assert exc_info.value.extension == "MIT-SCREEN-SAVER"
    display.close.assert_called_once()


def test_open_connection_failure() -> None:
    """Test an unreachable display raises DisplayError."""
    with patch(
        "offscreen.screen.xdisplay.Display",
        side_effect=xerror.DisplayConnectionError(":9", "connection refused"),
    ):
        with pytest.raises(DisplayError):
            Screen.open(":9")


def test_open() -> None:
    """Test opening a display with both extensions."""
    display = make_display({1: MATCH}, screensaver_state=ON)
    display.has_extension.return_value = True

    with patch("offscreen.screen.xdisplay.Display", return_value=display) as mock_display:
        screen = Screen.open(":1", TV_MANUFACTURER, TV_PRODUCT_CODE)

    mock_display.assert_called_once_with(":1")
    assert screen.state == ScreenState(screensaver_on=True, present=True)


def _event_source(events: list):
    """Return a next_event side effect yielding events then closing."""
    queue = list(events)

    def next_event():
        if not queue:
            raise xerror.ConnectionClosedError("server")
        item = queue.pop(0)
        return item() if callable(item) and not isinstance(item, MagicMock) else item

    return next_event


def test_event_codes_match_extension_registration() -> None:
    """Test event types are looked up under the names the Xlib extensions register."""
    display = make_display({1: MATCH}, events=[screensaver_event(ON)])

    assert set(display.extension_event._data) == {"Notify", "OutputChangeNotify"}

    _, calls = _watch(display)

    assert calls == [True]


def test_connection_closed_during_rescan_ends_watch() -> None:
    """Test the server dropping the connection while outputs are rescanned ends the watch."""
    display = make_display({1: MATCH}, events=[randr_event(), screensaver_event(ON)])
    screen = Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)
    display.xrandr_get_output_property.side_effect = xerror.ConnectionClosedError("server")
    handler = MagicMock()

    assert screen.watch(handler) is None

    handler.assert_not_called()
    assert display.next_event.call_count == 1


@pytest.mark.parametrize("query", ["screensaver_query_info", "xrandr_get_screen_resources_current"])
def test_connection_closed_during_initial_query(query: str) -> None:
    """Test a connection closed before the initial state is known is a DisplayError."""
    display = make_display({1: MATCH})
    root = display.screen.return_value.root
    getattr(root, query).side_effect = xerror.ConnectionClosedError("server")

    with pytest.raises(DisplayError):
        Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)


def test_monitors_connection_closed() -> None:
    """Test listing monitors on a closed connection is a DisplayError."""
    display = make_display({1: MATCH})
    screen = Screen(display, TV_MANUFACTURER, TV_PRODUCT_CODE)
    display.xrandr_get_output_property.side_effect = xerror.ConnectionClosedError("server")

    with pytest.raises(DisplayError):
        screen.monitors()
