"""udev runtime data under /run/udev."""

from __future__ import annotations

import logging
import os
from pathlib import Path

log = logging.getLogger(__name__)

UDEV_ROOT = "/run/udev"

_REPLACEMENTS = (
    ("ID_VUINPUT_KEYBOARD=1", "ID_INPUT_KEYBOARD=1"),
    ("ID_VUINPUT_MOUSE=1", "ID_INPUT_MOUSE=1"),
)


def ensure_udev_structure(root: str | os.PathLike = UDEV_ROOT) -> bool:
    """Create `<root>/data` and `<root>/control`; return True if control was missing."""
    root = Path(root)
    # Must exist before a service using libinput is run; device creation may be too late.
    (root / "data").mkdir(parents=True, exist_ok=True)
    control = root / "control"
    if control.exists():
        return False
    log.warning(
        "VUI-UDEV-001 — %s not available. Keyboard or mouse might be unusable.", control
    )
    log.warning("See the troubleshooting documentation for details")
    log.info("Creating file %s anyway for subsequent runs.", control)
    control.touch()
    return True


def _lines(content: str):
    parts = content.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    for part in parts:
        yield part[:-1] if part.endswith("\r") else part


def clean_udev_data(content: str) -> str:
    """Drop seat-related lines and rename ID_VUINPUT_* markers to ID_INPUT_*."""
    cleaned = []
    for line in _lines(content):
        if "ID_SEAT=" in line or "seat_" in line:
            continue
        for old, new in _REPLACEMENTS:
            line = line.replace(old, new)
        cleaned.append(line + "\n")
    return "".join(cleaned)


def _data_path(path_prefix: str | os.PathLike, major: int, minor: int) -> Path:
    return Path(path_prefix) / "udev" / "data" / f"c{major}:{minor}"


def write_udev_data(path_prefix: str | os.PathLike, content: str, major: int, minor: int) -> None:
    """Write cleaned udev data to `<prefix>/udev/data/c<major>:<minor>`."""
    _data_path(path_prefix, major, minor).write_text(clean_udev_data(content))


def delete_udev_data(path_prefix: str | os.PathLike, major: int, minor: int) -> None:
    """Remove `<prefix>/udev/data/c<major>:<minor>`."""
    _data_path(path_prefix, major, minor).unlink()


def read_udev_data(major: int, minor: int, root: str | os.PathLike = UDEV_ROOT) -> str:
    """Read `<root>/data/c<major>:<minor>`."""
    return (Path(root) / "data" / f"c{major}:{minor}").read_text()