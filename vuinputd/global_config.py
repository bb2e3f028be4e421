"""Process-wide configuration: device policy, artifact placement and device name."""

from __future__ import annotations

import enum
from dataclasses import dataclass

DEFAULT_VUDEVNAME = "vuinput"


class DevicePolicy(enum.Enum):
    """Decides which events are passed through and which are filtered out."""

    NONE = "none"
    """Allow all device capabilities."""
    MUTE_SYS_RQ = "mute-sys-rq"
    """Default: block SysRq."""
    SANITIZED = "sanitized"
    """Allow keyboards and mice but block dangerous keys (SysRq, VT switching)."""
    STRICT_GAMEPAD = "strict-gamepad"
    """Only allow gamepad-like devices; block mice and keyboards."""


class Placement(enum.Enum):
    """Where runtime artifacts (device nodes and udev data) are created."""

    IN_CONTAINER = "in-container"
    """Default: create inside the container."""
    ON_HOST = "on-host"
    """Create on the host; the user is expected to bind-mount them."""
    NONE = "none"
    """Create no artifacts (the netlink message in the container is unaffected)."""


@dataclass(frozen=True)
class GlobalConfig:
    policy: DevicePolicy
    placement: Placement
    vudevname: str


_config: GlobalConfig | None = None


def initialize_global_config(
    device_policy: DevicePolicy = DevicePolicy.MUTE_SYS_RQ,
    placement: Placement = Placement.IN_CONTAINER,
    devname: str | None = None,
) -> GlobalConfig:
    """Set the global configuration once; a second call raises RuntimeError."""
    global _config
    if _config is not None:
        raise RuntimeError("Failed to initialize global config: already initialized")
    _config = GlobalConfig(
        policy=DevicePolicy(device_policy),
        placement=Placement(placement),
        vudevname=devname if devname is not None else DEFAULT_VUDEVNAME,
    )
    return _config


def reset_global_config() -> GlobalConfig | None:
    """Forget the global configuration so it can be initialized again.

    Returns the configuration that was in effect, or None if there was none.
    """
    global _config
    previous, _config = _config, None
    return previous


def _current() -> GlobalConfig:
    if _config is None:
        raise RuntimeError("global config has not been initialized")
    return _config


def get_device_policy() -> DevicePolicy:
    return _current().policy


def get_placement() -> Placement:
    return _current().placement


def get_vudevname() -> str:
    return _current().vudevname