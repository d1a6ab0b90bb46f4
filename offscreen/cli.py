#!/usr/bin/env python3
"""Command-line interface for offscreen."""

import argparse
import logging
import signal
import sys
from typing import Any, Dict, Optional

from . import __version__
from .bravia import BraviaClient
from .config import apply_overrides, load_config, validate_config
from .exceptions import OffscreenError
from .inputs import default_input_label, resolve_input_uri
from .reconcile import Reconciler, toggle
from .screen import Screen

_LOGGER = logging.getLogger(__name__)

DESCRIPTION = "offscreen turns off/on your Sony Bravia when the screen saver turns on/off"


class UsageError(OffscreenError):
    """Invalid combination of command-line arguments."""


def setup_logging(level: str = "INFO"):
    """Set up logging configuration."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_config(args) -> Dict[str, Any]:
    """Load config file and environment, then apply command-line flags."""
    config = load_config(getattr(args, "config", None))
    overrides = {
        "tv": {
            "hostname": getattr(args, "hostname", None),
            "psk": getattr(args, "psk", None),
            "input": getattr(args, "input", None),
        },
        "screen": {
            "display": getattr(args, "display", None),
            "manufacturer": getattr(args, "manufacturer", None),
            "product_code": getattr(args, "product_code", None),
        },
    }
    return apply_overrides(config, overrides)


def check_config(config: Dict[str, Any], need_tv: bool = True) -> None:
    errors = validate_config(config, need_tv=need_tv)
    if errors:
        raise UsageError("; ".join(errors))


def create_client(config: Dict[str, Any]) -> BraviaClient:
    """Create TV client with config settings."""
    tv = config["tv"]
    return BraviaClient(tv["hostname"], psk=tv.get("psk"), timeout=tv["timeout"])


def open_screen(config: Dict[str, Any]) -> Screen:
    """Open the X display with config settings."""
    screen = config["screen"]
    return Screen.open(screen.get("display"), screen["manufacturer"], screen["product_code"])


def target_input(config: Dict[str, Any]) -> str:
    """Input label or URI for this host; defaults to the truncated hostname."""
    return config["tv"].get("input") or default_input_label()


def cmd_run(args, config):
    """Turn the TV on and off with the screen saver."""
    check_config(config)
    client = create_client(config)
    label = target_input(config)
    uri = resolve_input_uri(client, label)
    _LOGGER.info("offscreen %s watching for %s (input %s)", __version__, client.hostname, uri)

    screen = open_screen(config)

    def stop(signum, frame):
        _LOGGER.info("Received signal %d, stopping", signum)
        screen.close()

    signal.signal(signal.SIGTERM, stop)
    try:
        screen.watch(Reconciler(client, uri))
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted, stopping")
    finally:
        screen.close()
    return 0


def cmd_list(args, config):
    """List connected monitors and their EDID identity."""
    check_config(config, need_tv=False)
    screen = open_screen(config)
    try:
        monitors = screen.monitors()
    finally:
        screen.close()

    if not monitors:
        print("No monitors with EDID data found.")
        return 0

    print(f"{'OUTPUT':10}  {'MANUFACTURER':12}  {'PRODUCT':7}  NAME")
    for monitor in monitors:
        edid = monitor.edid
        print(f"{monitor.output_name:10}  {edid.manufacturer_id:12}  {edid.product_code:<7}  {edid.name or ''}")
    return 0


def cmd_power(args, config):
    """Get or set the TV power state."""
    check_config(config)
    client = create_client(config)
    if not args.state:
        print(client.power_status().value)
        return 0
    client.set_power_status(args.state == "on")
    return 0


def cmd_input(args, config):
    """Show, list or select TV inputs."""
    if args.label and args.list:
        raise UsageError("cannot use --list with a label")
    check_config(config)
    client = create_client(config)
    inputs = client.inputs()

    if args.list:
        print(f"{'URI':30}  LABEL")
        for item in inputs.external_inputs():
            print(f"{item.uri:30}  {item.label}")
    elif not args.label:
        uri = client.selected_input()
        print(inputs.label_for(uri) or f"unlabelled: {uri}")
    else:
        client.set_input(inputs.resolve(args.label))
    return 0


def cmd_toggle(args, config):
    """Toggle the TV between this host's input and a blank screen."""
    check_config(config)
    client = create_client(config)
    uri = resolve_input_uri(client, target_input(config))
    screen = open_screen(config)
    try:
        outcome = toggle(client, screen, uri)
    finally:
        screen.close()
    print(outcome.value)
    return 0


def _add_tv_flags(parser, default=None):
    parser.add_argument("--hostname", default=default, help="Hostname of Sony Bravia TV (env: OFFSCREEN_HOSTNAME)")
    parser.add_argument("--psk", default=default, help="Pre-shared key (env: OFFSCREEN_PSK)")


def _add_screen_flags(parser, default=None):
    parser.add_argument("--display", default=default, help="X11 display to connect to (env: DISPLAY)")
    parser.add_argument("--manufacturer", default=default, help="EDID manufacturer ID of screen to manage (default: SNY)")
    parser.add_argument("--product-code", type=int, default=default, help="EDID product code of screen to manage (default: 63747)")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="offscreen", description=DESCRIPTION)
    parser.add_argument("-V", "--version", action="version", version=f"offscreen {__version__}")
    parser.add_argument("-c", "--config", help="Path to config file (default: search config.yaml)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    _add_tv_flags(parser)
    _add_screen_flags(parser)

    # TV and screen flags are accepted before or after the command. The
    # sub-command copies default to SUPPRESS so they never reset a value
    # given before the command.
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run
    p_run = subparsers.add_parser("run", help="Run offscreen")
    _add_tv_flags(p_run, argparse.SUPPRESS)
    _add_screen_flags(p_run, argparse.SUPPRESS)
    p_run.add_argument("-i", "--input", help="The TV input (label or URI) we are connected to")
    p_run.set_defaults(func=cmd_run)

    # List
    p_list = subparsers.add_parser("list", help="List connected monitor IDs")
    _add_screen_flags(p_list, argparse.SUPPRESS)
    p_list.set_defaults(func=cmd_list)

    # TV
    p_tv = subparsers.add_parser("tv", help="Query/control TV set")
    tv_commands = p_tv.add_subparsers(dest="tv_command", help="TV commands")
    tv_commands.required = True

    p_power = tv_commands.add_parser("power", help="Get/set power state")
    _add_tv_flags(p_power, argparse.SUPPRESS)
    p_power.add_argument("state", nargs="?", choices=["on", "off"], help="Power state to set")
    p_power.set_defaults(func=cmd_power)

    p_input = tv_commands.add_parser("input", help="Get/set input")
    _add_tv_flags(p_input, argparse.SUPPRESS)
    p_input.add_argument("--list", action="store_true", help="List available inputs")
    p_input.add_argument("label", nargs="?", help="Input label or URI to select")
    p_input.set_defaults(func=cmd_input)

    p_toggle = tv_commands.add_parser("toggle", help="Toggle TV between this host and a blank screen")
    _add_tv_flags(p_toggle, argparse.SUPPRESS)
    _add_screen_flags(p_toggle, argparse.SUPPRESS)
    p_toggle.add_argument("-i", "--input", help="Specify host input, do not autodetect")
    p_toggle.set_defaults(func=cmd_toggle)

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 0

    try:
        config = build_config(args)
        level = "DEBUG" if args.debug else config["options"]["log_level"]
        setup_logging(level)
        return args.func(args, config)
    except OffscreenError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
