"""Keeping the TV in line with the screen saver.

The Reconciler is the handler given to Screen.watch(). On every screen saver
change it reads the TV's power state and input, then makes the smallest
change needed: turn the TV on and select our input when the screen wakes,
turn it off when the screen blanks - but only if it is showing our input.
A TV showing another machine's input is left alone.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .bravia import BraviaClient, PowerStatus
from .exceptions import BraviaError, ReconcileError

_LOGGER = logging.getLogger(__name__)


class Outcome(Enum):
    """What a reconciliation or toggle did to the TV."""
    UNCHANGED = "unchanged"
    POWERED_ON = "powered on"
    POWERED_ON_SWITCHED_INPUT = "powered on and switched input"
    POWERED_OFF = "powered off"
    FOREIGN_INPUT = "left alone, showing another input"
    SWITCHED_INPUT = "switched input"
    BLANKED = "blanked screen"


def _tv_call(operation: str, func: Callable, *args, params: Optional[Dict[str, Any]] = None) -> Any:
    try:
        return func(*args)
    except BraviaError as e:
        raise ReconcileError(operation, params, e) from e


class Reconciler:
    """Screen saver handler that drives the TV's power and input."""

    def __init__(self, client: BraviaClient, target_uri: str):
        """Initialize the reconciler.

        Args:
            client: Client for the TV
            target_uri: URI of the TV input this host is connected to
        """
        self.client = client
        self.target_uri = target_uri

    def __call__(self, screensaver_on: bool) -> Outcome:
        outcome = self.reconcile(screensaver_on)
        _LOGGER.info("Screen saver %s: TV %s", "on" if screensaver_on else "off", outcome.value)
        return outcome

    def reconcile(self, screensaver_on: bool) -> Outcome:
        """Bring the TV in line with the screen saver state.

        Raises:
            ReconcileError: if any TV request fails; no further requests
                are made after a failure
        """
        client = self.client
        status = _tv_call("get power status", client.power_status)

        if status is PowerStatus.STANDBY and screensaver_on:
            return Outcome.UNCHANGED

        powered_on = False
        if status is PowerStatus.STANDBY:
            # The input cannot be read or set until the TV is on, so that
            # waits until after the power status has been set.
            _tv_call("set power status", client.set_power_status, True, params={"status": True})
            powered_on = True

        current = _tv_call("get selected input", client.selected_input)

        if powered_on:
            if current != self.target_uri:
                _tv_call("set input", client.set_input, self.target_uri, params={"uri": self.target_uri})
                return Outcome.POWERED_ON_SWITCHED_INPUT
            return Outcome.POWERED_ON

        if screensaver_on:
            if current != self.target_uri:
                # Another machine's input: not ours to turn off.
                return Outcome.FOREIGN_INPUT
            _tv_call("set power status", client.set_power_status, False, params={"status": False})
            return Outcome.POWERED_OFF

        return Outcome.UNCHANGED


def toggle(client: BraviaClient, screen, target_uri: str) -> Outcome:
    """Toggle the TV for a user action such as a hot key.

    If the TV is off, turn it on and select our input. If it is on and
    showing another input, select ours. If it is on and showing our input,
    blank the local screen and let the running watcher turn the TV off.

    Args:
        client: Client for the TV
        screen: Screen to blank
        target_uri: URI of the TV input this host is connected to

    Raises:
        ReconcileError: if a TV request fails
        DisplayError: if the screen cannot be blanked
    """
    status = _tv_call("get power status", client.power_status)

    if status is PowerStatus.ACTIVE:
        current = _tv_call("get selected input", client.selected_input)
        if current == target_uri:
            screen.blank()
            outcome = Outcome.BLANKED
        else:
            _tv_call("select input", client.set_input, target_uri, params={"uri": target_uri})
            outcome = Outcome.SWITCHED_INPUT
    else:
        _tv_call("turn on TV", client.set_power_status, True, params={"status": True})
        _tv_call("select input", client.set_input, target_uri, params={"uri": target_uri})
        outcome = Outcome.POWERED_ON_SWITCHED_INPUT

    _LOGGER.info("Toggle: %s", outcome.value)
    return outcome
