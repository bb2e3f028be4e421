"""Watch udev events for input devices and keep the latest state per device."""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import re
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Protocol

from .job import Job, JobTarget
from .netlink_message import (
    NETLINK_KOBJECT_UEVENT,
    UDEV_EVENT_MODE,
    UDEV_MONITOR_MAGIC,
    MonitorNetlinkHeader,
)

log = logging.getLogger(__name__)

DEFAULT_TTL = 60.0
CLEANUP_INTERVAL = 60.0
MONITORED_SUBSYSTEM = "input"

_PREFIX = b"libudev\x00"
_RECV_SIZE = 128 * 1024
_DEVPATH_RE = re.compile(r"^/devices/virtual/input/input(\d+)/event(\d+)$")
_RENAMED_KEYS = {
    "ID_VUINPUT_KEYBOARD": "ID_INPUT_KEYBOARD",
    "ID_VUINPUT_MOUSE": "ID_INPUT_MOUSE",
}
_DROPPED_KEYS = frozenset({"ID_SEAT"})


class EventKind(enum.Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass
class UdevEvent:
    syspath: str
    seqnum: int
    kind: EventKind
    payload: dict[str, str]


@dataclass
class Entry:
    syspath: str
    seqnum: int
    add_data: dict[str, str] | None = None
    remove_data: dict[str, str] | None = None
    add_processed: bool = False
    tombstone: bool = False
    last_update: float = 0.0

    def _copy(self) -> "Entry":
        return dataclasses.replace(
            self,
            add_data=dict(self.add_data) if self.add_data is not None else None,
            remove_data=dict(self.remove_data) if self.remove_data is not None else None,
        )


class EventStore:
    """Latest add/remove data per syspath, with expiry of stale entries."""

    def __init__(
        self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, syspath: object) -> bool:
        return syspath in self._entries

    def on_event(self, event: UdevEvent) -> None:
        """Record an add or remove event for its syspath."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(event.syspath)
            if entry is None:
                entry = Entry(syspath=event.syspath, seqnum=event.seqnum, last_update=now)
                self._entries[event.syspath] = entry
            entry.seqnum = event.seqnum
            entry.last_update = now
            entry.tombstone = False
            if event.kind is EventKind.ADD:
                entry.add_data = event.payload
                entry.add_processed = False
                entry.remove_data = None
            else:
                entry.remove_data = event.payload

    def take(self, syspath: str) -> Entry | None:
        """Return a snapshot of the entry and mark it as processed."""
        with self._lock:
            entry = self._entries.get(syspath)
            if entry is None:
                return None
            result = entry._copy()
            if entry.tombstone:
                return result
            entry.add_processed = True
            if entry.remove_data is not None:
                entry.tombstone = True
            return result

    def cleanup(self) -> None:
        """Drop tombstoned entries and entries older than the ttl."""
        now = self._clock()
        with self._lock:
            self._entries = {
                key: entry
                for key, entry in self._entries.items()
                if not entry.tombstone and now - entry.last_update < self.ttl
            }


def translate_properties(properties: Mapping[str, str]) -> dict[str, str]:
    """Rename ID_VUINPUT_* markers to ID_INPUT_* and drop ID_SEAT."""
    result: dict[str, str] = {}
    for key, value in properties.items():
        key = _RENAMED_KEYS.get(key, key)
        if key not in _DROPPED_KEYS:
            result[key] = value
    return result


def parse_monitor_message(data: bytes) -> dict[str, str]:
    """Parse a udev monitor message (header plus KEY=VALUE records)."""
    header = MonitorNetlinkHeader.from_bytes(data)
    if header.prefix != _PREFIX:
        raise ValueError("not a udev monitor message")
    if header.magic != UDEV_MONITOR_MAGIC:
        raise ValueError(f"unexpected magic {header.magic:#x}")
    start = header.properties_off
    end = start + header.properties_len
    if start < MonitorNetlinkHeader.SIZE or end > len(data):
        raise ValueError("properties lie outside the message")

    properties: dict[str, str] = {}
    for record in data[start:end].split(b"\x00"):
        if not record:
            continue
        key, sep, value = record.decode("utf-8", errors="replace").partition("=")
        if sep:
            properties[key] = value
    return properties


def event_from_properties(properties: Mapping[str, str]) -> UdevEvent | None:
    """Build an event for a virtual input event node, or None for other devices."""
    match = _DEVPATH_RE.match(properties["DEVPATH"])
    if match is None:
        return None
    syspath = f"/sys/devices/virtual/input/input{int(match.group(1))}"
    seqnum = int(properties["SEQNUM"])
    kind = EventKind.REMOVE if properties["ACTION"] == "REMOVE" else EventKind.ADD
    return UdevEvent(syspath=syspath, seqnum=seqnum, kind=kind, payload=dict(properties))


_store: EventStore | None = None
_store_lock = threading.Lock()


def get_event_store() -> EventStore:
    """Return the process-wide event store, creating it on first use."""
    global _store
    with _store_lock:
        if _store is None:
            _store = EventStore(DEFAULT_TTL)
        return _store


class _Cancellation(Protocol):
    def is_set(self) -> bool: ...


def _open_monitor_socket() -> socket.socket:
    family = getattr(socket, "AF_NETLINK", None)
    if family is None:
        raise OSError("AF_NETLINK is not supported on this platform")
    sock = socket.socket(family, socket.SOCK_RAW, NETLINK_KOBJECT_UEVENT)
    try:
        sock.bind((0, UDEV_EVENT_MODE))
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return sock


def _handle_message(store: EventStore, data: bytes) -> None:
    try:
        raw = parse_monitor_message(data)
    except ValueError as err:
        log.debug("ignoring malformed udev message: %s", err)
        return
    if raw.get("SUBSYSTEM") != MONITORED_SUBSYSTEM:
        return
    try:
        event = event_from_properties(translate_properties(raw))
    except (KeyError, ValueError) as err:
        log.debug("ignoring incomplete udev event: %s", err)
        return
    if event is not None:
        store.on_event(event)


async def udev_monitor_loop(cancel_event: _Cancellation | None = None) -> None:
    """Record udev input events in the global store until cancelled."""
    store = get_event_store()
    log.debug("Monitor started")
    next_cleanup = time.monotonic() + CLEANUP_INTERVAL
    loop = asyncio.get_running_loop()

    with _open_monitor_socket() as sock:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                log.debug("Cancellation requested, shutting down udev monitor.")
                break
            log.debug("Waiting for event")
            data = await loop.sock_recv(sock, _RECV_SIZE)
            log.debug("Event registered")
            _handle_message(store, data)

            if time.monotonic() > next_cleanup:
                next_cleanup = time.monotonic() + CLEANUP_INTERVAL
                store.cleanup()

    log.debug("udev monitor exiting.")


class MonitorBackgroundLoop(Job):
    """Background job that runs the udev monitor loop."""

    def __init__(self) -> None:
        self.cancel_event = threading.Event()

    def desc(self) -> str:
        return "Monitor udev events"

    def job_target(self) -> JobTarget:
        return JobTarget.background_loop()

    def execute_after_cancellation(self) -> bool:
        return False

    def create_task(self):
        return udev_monitor_loop(self.cancel_event)