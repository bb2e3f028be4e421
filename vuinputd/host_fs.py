"""Directory layout for artifacts placed on the host."""

from __future__ import annotations

import logging
import os
from pathlib import Path

log = logging.getLogger(__name__)

MOUNTINFO_PATH = "/proc/self/mountinfo"


def ensure_host_fs_structure(path_prefix: str | os.PathLike) -> None:
    """Create the dev-input and udev directories and the udev control file."""
    prefix = Path(path_prefix)
    try:
        check_if_path_allows_char_devs(str(prefix))
    except OSError as err:
        log.debug("could not inspect mounts: %s", err)

    (prefix / "dev-input").mkdir(parents=True, exist_ok=True)
    # Must exist before any service using libinput is started.
    (prefix / "udev" / "data").mkdir(parents=True, exist_ok=True)
    control = prefix / "udev" / "control"
    if not control.exists():
        control.touch()


def check_if_path_allows_char_devs(
    path: str, mountinfo_path: str | os.PathLike = MOUNTINFO_PATH
) -> bool | None:
    """Heuristically tell whether a mount covering `path` permits device nodes.

    Returns True if such a mount exists without ``nodev``, False if it is
    mounted ``nodev``, and None if no matching mount was found.
    """
    with open(mountinfo_path, encoding="utf-8", errors="replace") as mountinfo:
        for line in mountinfo:
            left, sep, _ = line.rstrip("\n").partition(" - ")
            if not sep:
                continue
            fields = left.split()
            mount_point = fields[4] if len(fields) > 4 else ""
            options = fields[5] if len(fields) > 5 else ""
            if path in mount_point:
                if "nodev" in options.split(","):
                    log.warning(
                        "mount %s is present but mounted with nodev; device nodes will not work",
                        path,
                    )
                    return False
                log.info("mount %s is present and allows device nodes", path)
                return True

    log.warning(
        "expected mount %s not found; user likely forgot to mount tmpfs with dev-option on it",
        path,
    )
    return None