"""Fixtures for offscreen tests."""

from __future__ import annotations

import inspect
import json
import struct
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from Xlib import display as xdisplay
from Xlib import error as xerror
from Xlib.ext import randr, screensaver
from Xlib.protocol import rq

from offscreen.edid import EDID_HEADER, encode_manufacturer_id

# First event codes the mock display gives its extensions
SCREENSAVER_EVENT = 90
RANDR_EVENT = 91 + randr.RRNotify

TV_MANUFACTURER = "SNY"
TV_PRODUCT_CODE = 63747

# Inputs as returned by getCurrentExternalInputsStatus
MOCK_INPUTS = [
    {"uri": "extInput:hdmi?port=1", "title": "HDMI 1", "connection": True, "label": "palantr", "icon": "", "status": ""},
    {"uri": "extInput:hdmi?port=2", "title": "HDMI 2", "connection": True, "label": "laptop", "icon": "", "status": ""},
    {"uri": "extInput:hdmi?port=3", "title": "HDMI 3", "connection": False, "label": "", "icon": "", "status": ""},
    {"uri": "extInput:composite?port=1", "title": "AV", "connection": False, "label": "", "icon": "", "status": ""},
]

OUR_INPUT = "extInput:hdmi?port=1"
OTHER_INPUT = "extInput:hdmi?port=2"


def make_edid(
    manufacturer_id: str = TV_MANUFACTURER,
    product_code: int = TV_PRODUCT_CODE,
    serial_number: int = 0,
    name: str | None = None,
) -> bytes:
    """Build a 128 byte EDID block with the given identity."""
    block = bytearray(128)
    block[0:8] = EDID_HEADER
    struct.pack_into(">H", block, 8, encode_manufacturer_id(manufacturer_id))
    struct.pack_into("<HI", block, 10, product_code, serial_number)
    if name is not None:
        descriptor = b"\x00\x00\x00\xfc\x00" + (name.encode("ascii") + b"\n").ljust(13, b" ")
        block[54:72] = descriptor
    block[127] = (-sum(block[:127])) % 256
    return bytes(block)


class FakeHTTPResponse:
    """Stand-in for the object returned by urllib.request.urlopen."""

    def __init__(self, body: Any, status: int = 200, reason: str = "OK"):
        if not isinstance(body, bytes):
            body = json.dumps(body).encode("utf-8")
        self.body = body
        self.status = status
        self.reason = reason

    def read(self) -> bytes:
        return self.body

    def __enter__(self) -> "FakeHTTPResponse":
        return self

    def __exit__(self, *exc_info) -> None:
        return None


@pytest.fixture
def mock_urlopen() -> Generator[MagicMock, None, None]:
    """Patch urlopen in the Bravia client; set return_value/side_effect per test."""
    with patch("offscreen.bravia.urllib.request.urlopen") as mock:
        mock.return_value = FakeHTTPResponse({"result": []})
        yield mock


def sent_payload(mock_urlopen: MagicMock, call_index: int = -1) -> dict:
    """Decode the JSON body of a request passed to the patched urlopen."""
    request = mock_urlopen.call_args_list[call_index][0][0]
    return json.loads(request.data)


def output_property(data: bytes, bytes_after: int = 0) -> MagicMock:
    prop = MagicMock()
    prop.value = list(data)
    prop.bytes_after = bytes_after
    return prop


def output_info(name: str) -> MagicMock:
    info = MagicMock()
    info.name = name  # MagicMock(name=...) would name the mock itself
    return info


def make_display(
    outputs: dict[int, bytes] | None = None,
    screensaver_state: int = screensaver.StateOff,
    events: list | None = None,
) -> MagicMock:
    """Create a mock Xlib display.

    Args:
        outputs: Map of RANDR output id to its EDID bytes (b"" for none).
            Replace display.outputs to change what later scans see.
        screensaver_state: State reported by the screen saver query
        events: Events returned in order by next_event(); after the last
            one the connection reports itself closed.
    """
    display = MagicMock()
    display.outputs = dict(outputs or {})

    # Register events the same way screensaver.init and randr.init do
    display.extension_event = rq.DictWrapper({})
    xdisplay.Display.extension_add_event(display, SCREENSAVER_EVENT, screensaver.Notify)
    xdisplay.Display.extension_add_subevent(
        display, RANDR_EVENT, randr.RRNotify_OutputChange, randr.OutputChangeNotify
    )

    root = display.screen.return_value.root
    root.screensaver_query_info.return_value = MagicMock(state=screensaver_state)
    root.xrandr_get_screen_resources_current.side_effect = lambda: MagicMock(
        outputs=list(display.outputs), config_timestamp=0
    )
    display.intern_atom.return_value = 123

    def get_output_property(output, atom, prop_type, offset, length, delete, pending):
        return output_property(display.outputs.get(output, b""))

    display.xrandr_get_output_property.side_effect = get_output_property
    display.xrandr_get_output_info.side_effect = lambda output, ts: output_info(f"HDMI-{output}")

    queue = list(events or [])

    def next_event():
        if not queue:
            raise xerror.ConnectionClosedError("server")
        item = queue.pop(0)
        if inspect.isfunction(item):
            return item()
        return item

    display.next_event.side_effect = next_event
    return display


def screensaver_event(state: int) -> MagicMock:
    return MagicMock(type=SCREENSAVER_EVENT, state=state)


def randr_event() -> MagicMock:
    return MagicMock(type=RANDR_EVENT, sub_code=randr.RRNotify_OutputChange)


@pytest.fixture
def mock_client() -> MagicMock:
    """Mock BraviaClient recording calls on a single parent mock."""
    client = MagicMock()
    client.hostname = "bravia.local"
    return client


def plug(display: MagicMock, output: int, edid: bytes):
    """Event step: connect a monitor to an output, then notify RANDR."""
    def step():
        display.outputs[output] = edid
        return randr_event()
    return step


def unplug(display: MagicMock, output: int):
    """Event step: disconnect the monitor on an output, then notify RANDR."""
    def step():
        display.outputs[output] = b""
        return randr_event()
    return step
