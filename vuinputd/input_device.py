"""Create and remove character device nodes for input devices."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

log = logging.getLogger(__name__)

EXPECTED_MODE = 0o666


class InputDeviceError(Exception):
    """Raised when a device node is not the one expected."""


def _is_expected_node(path: Path, rdev: int) -> bool:
    try:
        st = os.stat(path)
    except OSError:
        return False
    return stat.S_ISCHR(st.st_mode) and st.st_rdev == rdev


def ensure_input_device(dev_path: str | os.PathLike, major: int, minor: int) -> bool:
    """Make `dev_path` a character device major:minor with mode 0666.

    Returns True if the node had to be (re)created.
    """
    path = Path(dev_path)
    parent = path.parent
    if not parent.exists():
        print(f"Create {parent}")
        parent.mkdir(parents=True, exist_ok=True)

    expected_dev = os.makedev(major, minor)
    needs_replacement = not _is_expected_node(path, expected_dev)

    if needs_replacement:
        print(f"Replacing {dev_path}")
        try:
            path.unlink()
        except OSError:
            pass
        os.mknod(path, stat.S_IFCHR | EXPECTED_MODE, expected_dev)
    else:
        print(f"{dev_path} is already correct device")

    try:
        perms = stat.S_IMODE(os.stat(path).st_mode) & 0o777
    except OSError:
        return needs_replacement
    if perms != EXPECTED_MODE:
        print(f"Fixing mode of {dev_path} (was {perms:o})")
        os.chmod(path, EXPECTED_MODE)
    return needs_replacement


def remove_input_device(dev_path: str | os.PathLike, major: int, minor: int) -> None:
    """Remove `dev_path` if it is the character device major:minor."""
    path = Path(dev_path)
    if not os.path.lexists(path):
        raise InputDeviceError("Device does not exist")
    try:
        st = os.stat(path)
    except OSError as err:
        raise InputDeviceError("Could not execute stat on device file") from err
    if not (stat.S_ISCHR(st.st_mode) and st.st_rdev == os.makedev(major, minor)):
        raise InputDeviceError("Device that should be deleted has wrong major and minor")
    try:
        path.unlink()
    except OSError:
        pass