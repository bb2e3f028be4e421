"""udev monitor messages sent over NETLINK_KOBJECT_UEVENT."""

from __future__ import annotations

import logging
import socket
import struct
from dataclasses import dataclass
from typing import ClassVar, Mapping

log = logging.getLogger(__name__)

UDEV_EVENT_MODE = 2
UDEV_MONITOR_MAGIC = 0xFEEDCAFE
MAX_NETLINK_PAYLOAD = 64 * 1024
NETLINK_KOBJECT_UEVENT = 15

_PREFIX = b"libudev\x00"

# Layout of systemd's monitor_netlink_header: magic and filter hashes are
# stored in network byte order, the remaining fields in host byte order.
_LAYOUT = struct.Struct("=8s4sIII4s4sII")


class NetlinkError(Exception):
    """Raised when a udev monitor message cannot be sent."""


def string_hash32(s: str) -> int:
    """Murmur hash 2 of the subsystem names this daemon uses."""
    if s == "input":
        return 3248653424
    if s == "":
        return 0
    raise ValueError(f"no hash known for {s!r}")


@dataclass(frozen=True)
class MonitorNetlinkHeader:
    SIZE: ClassVar[int] = _LAYOUT.size

    properties_len: int
    prefix: bytes = _PREFIX
    magic: int = UDEV_MONITOR_MAGIC
    header_size: int = _LAYOUT.size
    properties_off: int = _LAYOUT.size
    filter_subsystem_hash: int = 0
    filter_devtype_hash: int = 0
    filter_tag_bloom_hi: int = 0
    filter_tag_bloom_lo: int = 0

    @classmethod
    def build(
        cls, properties_len: int, subsystem: str | None = None, devtype: str | None = None
    ) -> "MonitorNetlinkHeader":
        return cls(
            properties_len=properties_len,
            filter_subsystem_hash=string_hash32(subsystem) if subsystem is not None else 0,
            filter_devtype_hash=string_hash32(devtype) if devtype is not None else 0,
        )

    def to_bytes(self) -> bytes:
        return _LAYOUT.pack(
            self.prefix,
            self.magic.to_bytes(4, "big"),
            self.header_size,
            self.properties_off,
            self.properties_len,
            self.filter_subsystem_hash.to_bytes(4, "big"),
            self.filter_devtype_hash.to_bytes(4, "big"),
            self.filter_tag_bloom_hi,
            self.filter_tag_bloom_lo,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "MonitorNetlinkHeader":
        if len(data) < _LAYOUT.size:
            raise ValueError(f"header needs {_LAYOUT.size} bytes, got {len(data)}")
        (prefix, magic, header_size, off, length, sub, dev, hi, lo) = _LAYOUT.unpack_from(data)
        return cls(
            properties_len=length,
            prefix=prefix,
            magic=int.from_bytes(magic, "big"),
            header_size=header_size,
            properties_off=off,
            filter_subsystem_hash=int.from_bytes(sub, "big"),
            filter_devtype_hash=int.from_bytes(dev, "big"),
            filter_tag_bloom_hi=hi,
            filter_tag_bloom_lo=lo,
        )


def encode_properties(properties: Mapping[str, str]) -> bytes:
    """Encode properties as NUL-terminated KEY=VALUE records."""
    return b"".join(f"{key}={value}".encode() + b"\x00" for key, value in properties.items())


def send_udev_monitor_message(
    payload: bytes,
    subsystem: str | None = None,
    devtype: str | None = None,
    groups: int = UDEV_EVENT_MODE,
) -> None:
    """Send header plus raw property payload to the given netlink multicast groups."""
    total = len(payload) + MonitorNetlinkHeader.SIZE
    if total > MAX_NETLINK_PAYLOAD:
        raise NetlinkError(
            f"Total payload too large: {total} bytes (max {MAX_NETLINK_PAYLOAD})"
        )

    header = MonitorNetlinkHeader.build(len(payload), subsystem, devtype).to_bytes()

    family = getattr(socket, "AF_NETLINK", None)
    if family is None:
        raise NetlinkError("Could not create netlink socket: AF_NETLINK unsupported")
    try:
        sock = socket.socket(family, socket.SOCK_RAW, NETLINK_KOBJECT_UEVENT)
    except OSError as err:
        raise NetlinkError(f"Could not create netlink socket: {err}") from err

    with sock:
        try:
            sock.bind((0, groups))
        except OSError as err:
            raise NetlinkError(f"Could not bind netlink socket: {err}") from err
        try:
            sock.sendmsg([header, bytes(payload)], [], 0, (0, groups))
        except OSError as err:
            log.debug("Could not send message: %s", err)
    log.debug("udev message sent")


def send_udev_monitor_message_with_properties(properties: Mapping[str, str]) -> None:
    """Announce a device with the given udev properties on the input subsystem."""
    log.debug(
        "Sending udev message over netlink for %s",
        properties.get("DEVNAME", "unknown device"),
    )
    send_udev_monitor_message(encode_properties(properties), "input", None, UDEV_EVENT_MODE)