"""Inspect and change the keyboard mode of the virtual terminal."""

from __future__ import annotations

import fcntl
import logging
import os
import struct

log = logging.getLogger(__name__)

# include/uapi/linux/kd.h
KDSKBMODE = 0x4B45  # sets current keyboard mode
KDGKBMODE = 0x4B44  # gets current keyboard mode
K_OFF = 0x04

DEFAULT_TTY = "/dev/tty1"


def check_vt_status(tty_path: str = DEFAULT_TTY) -> int | None:
    """Log the keyboard mode of the terminal and return it, or None if unknown."""
    try:
        fd = os.open(tty_path, os.O_RDONLY | os.O_NOCTTY)
    except FileNotFoundError:
        log.info("%s not present — no VT-related input problem", tty_path)
        return None
    except OSError as err:
        log.error("failed to open %s: %s", tty_path, err)
        return None

    try:
        raw = fcntl.ioctl(fd, KDGKBMODE, bytes(4))
    except OSError as err:
        log.error("KDGKBMODE ioctl failed: %s", err)
        return None
    finally:
        os.close(fd)

    (mode,) = struct.unpack("=i", raw)
    if mode == K_OFF:
        log.info("tty keyboard mode is K_OFF — VT input is disabled")
    else:
        log.warning("tty keyboard mode is active (mode=%d) — VT may consume input", mode)
    return mode


def mute_keyboard(tty_path: str = DEFAULT_TTY) -> None:
    """Set the terminal keyboard to K_OFF so no keyboard input reaches the VT."""
    fd = os.open(tty_path, os.O_RDWR | os.O_NOCTTY)
    try:
        fcntl.ioctl(fd, KDSKBMODE, K_OFF)
    except OSError as err:
        raise OSError(err.errno, "Failed to mute keyboard. Are you root?") from err
    finally:
        os.close(fd)
    print("Keyboard muted.")