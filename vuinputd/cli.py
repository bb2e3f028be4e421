"""Command-line arguments of the daemon and their validation."""

from __future__ import annotations

import argparse
import base64
import binascii
from typing import Sequence

from .global_config import DevicePolicy, Placement

DEV_PREFIX = "/dev/"
DEVNAME_MAX_LEN = 128 - len(DEV_PREFIX)

_VT_GUARD_HELP = (
    "Prevent all keyboard input from reaching the VT by setting K_OFF on /dev/tty0. "
    "This disables all keyboard input on the virtual terminals, including physical "
    "keyboards. Loss of local access may require recovery via SSH or a rescue boot."
)


class ArgumentError(ValueError):
    """Raised for invalid command-line arguments."""


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise ArgumentError(message)


def _u32(text: str) -> int:
    value = int(text)
    if not 0 <= value < 2**32:
        raise ValueError(text)
    return value


_u32.__name__ = "u32"


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser of the daemon."""
    parser = _Parser(
        prog="vuinputd",
        description="Container-safe mediation daemon for /dev/uinput.",
    )
    parser.add_argument("--major", type=_u32, help="Major device number")
    parser.add_argument("--minor", type=_u32, help="Minor device number")
    parser.add_argument("--devname", help="Device name (without /dev/)")
    parser.add_argument(
        "--action",
        metavar="JSON",
        help="Action to execute (JSON encoded). Excludes all other options.",
    )
    parser.add_argument(
        "--action-base64",
        metavar="BASE64",
        help="Action to execute (base64-encoded JSON). Excludes all other options.",
    )
    parser.add_argument(
        "--target-namespace",
        metavar="NS_PATH",
        help="Path to /proc/<pid>/ns used as the namespace source "
        "(e.g. /proc/1234/ns or /proc/self/ns)",
    )
    parser.add_argument("--vt-guard", action="store_true", help=_VT_GUARD_HELP)
    parser.add_argument(
        "--device-policy",
        type=DevicePolicy,
        choices=list(DevicePolicy),
        default=DevicePolicy.MUTE_SYS_RQ,
        metavar="{" + ",".join(p.value for p in DevicePolicy) + "}",
        help="Enforce a device policy on created devices",
    )
    parser.add_argument(
        "--placement",
        type=Placement,
        choices=list(Placement),
        default=Placement.IN_CONTAINER,
        metavar="{" + ",".join(p.value for p in Placement) + "}",
        help="Placement of device nodes and udev data",
    )
    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Check the combinations of arguments; raise ArgumentError if they conflict."""
    if args.action is not None and args.action_base64 is not None:
        raise ArgumentError("--action and --action-base64 may not be used together")
    action = args.action if args.action is not None else args.action_base64

    device_args_absent = args.major is None and args.minor is None and args.devname is None
    if not (
        (device_args_absent and action is not None)
        or (action is None and args.target_namespace is None)
    ):
        raise ArgumentError(
            "--action or --action-base64 must not be used in combination with any "
            "other argument other than target-namespace"
        )

    if (args.major is None) != (args.minor is None):
        raise ArgumentError("--major and --minor must be specified together or not at all")

    if args.devname is not None and len(args.devname.encode()) >= DEVNAME_MAX_LEN:
        raise ArgumentError(f"--devname must be shorter than {DEVNAME_MAX_LEN} bytes")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse and validate the command line."""
    args = build_parser().parse_args(argv)
    validate_args(args)
    return args


def decode_action(args: argparse.Namespace) -> str | None:
    """Return the action JSON given on the command line, decoding base64 if needed."""
    if args.action is not None and args.action_base64 is not None:
        raise ArgumentError("--action and --action-base64 may not be used together")
    if args.action is not None:
        return args.action
    if args.action_base64 is None:
        return None
    try:
        raw = base64.b64decode(args.action_base64, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ArgumentError(f"invalid base64 in --action-base64: {err}") from err
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as err:
        raise ArgumentError(f"--action-base64 is not valid UTF-8: {err}") from err