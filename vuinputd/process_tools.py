"""Process and namespace helpers: identify requesting processes and run actions in them."""

from __future__ import annotations

import asyncio
import base64
import dataclasses
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)

# include/uapi/linux/sched.h
CLONE_NEWNS = 0x00020000
CLONE_NEWNET = 0x40000000

_EI_CLASS = 4
_ELFCLASS32 = 1
_ELFCLASS64 = 2
_ELF_MAGIC = b"\x7fELF"


@dataclass(frozen=True)
class Pid:
    """A process id, or the calling process itself when `number` is None."""

    number: int | None = None

    @classmethod
    def self_pid(cls) -> "Pid":
        return cls(None)

    @property
    def is_self(self) -> bool:
        return self.number is None

    def path(self) -> str:
        if self.number is None:
            return "/proc/self"
        return f"/proc/{self.number}"

    def _require_concrete(self) -> int:
        if self.number is None:
            raise ValueError("a concrete process id is required, not the calling process")
        return self.number


@dataclass(frozen=True)
class Namespaces:
    """Inode numbers of the namespaces a process belongs to."""

    net: int | None = None
    uts: int | None = None
    ipc: int | None = None
    pid: int | None = None
    pid_for_children: int | None = None
    user: int | None = None
    mnt: int | None = None
    cgroup: int | None = None
    time: int | None = None
    time_for_children: int | None = None

    def equal_mnt_and_net(self, other: "Namespaces") -> bool:
        return self.mnt == other.mnt and self.net == other.net


_NAMESPACE_NAMES = frozenset(field.name for field in dataclasses.fields(Namespaces))


@dataclass(frozen=True)
class RequestingProcess:
    """The process that opened the device, with the root of its container."""

    nspath: str = ""
    nsroot: str = ""
    namespaces: Namespaces = Namespaces()
    is_compat: bool = False

    def equal_mnt_and_net(self, other: "RequestingProcess") -> bool:
        return self.namespaces.equal_mnt_and_net(other.namespaces)

    def equal_mnt_and_net_ns(self, other: Namespaces) -> bool:
        return self.namespaces.equal_mnt_and_net(other)

    def __str__(self) -> str:
        lines = ["Namespaces:"]
        for field in dataclasses.fields(Namespaces):
            lines.append(f"  {field.name}:  {getattr(self.namespaces, field.name)}")
        return "\n".join(lines) + "\n"


def classify_elf_header(data: bytes) -> bool | None:
    """Return True for a 32-bit ELF header, False for 64-bit, None otherwise."""
    if len(data) <= _EI_CLASS or data[:4] != _ELF_MAGIC:
        return None
    elf_class = data[_EI_CLASS]
    if elf_class == _ELFCLASS32:
        return True
    if elf_class == _ELFCLASS64:
        return False
    return None


def is_compat_process(pid: Pid) -> bool | None:
    """Tell whether the process runs a 32-bit executable; None if unsure."""
    number = pid._require_concrete()
    try:
        with open(f"/proc/{number}/exe", "rb") as exe:
            header = exe.read(_EI_CLASS + 1)
    except OSError:
        return None
    if len(header) < _EI_CLASS + 1:
        return None
    return classify_elf_header(header)


def _parse_inode(link: str) -> int | None:
    start = link.find("[")
    end = link.find("]")
    if start < 0 or end < 0:
        return None
    try:
        return int(link[start + 1 : end])
    except ValueError:
        return None


def get_namespace(pid: Pid) -> Namespaces:
    """Read the namespace inodes of a process from /proc/<pid>/ns."""
    nspath = Path(pid.path()) / "ns"
    found: dict[str, int] = {}
    for entry in nspath.iterdir():
        inode = _parse_inode(os.readlink(entry))
        if inode is not None and entry.name in _NAMESPACE_NAMES:
            found[entry.name] = inode
    return Namespaces(**found)


def get_ppid(pid: Pid) -> Pid | None:
    """Return the parent of a process, or None if it cannot be determined."""
    try:
        content = Path(pid.path(), "status").read_text()
    except OSError:
        return None
    for line in content.splitlines():
        if line.startswith("PPid:"):
            parts = line.split()
            if len(parts) < 2:
                return None
            try:
                return Pid(int(parts[1]))
            except ValueError:
                return None
    return None


def get_requesting_process(pid: Pid) -> RequestingProcess:
    """Describe a process and find the outermost ancestor sharing its mnt and net namespaces."""
    pid._require_concrete()
    is_compat = is_compat_process(pid)
    if is_compat is None:
        log.debug(
            "could not identify bitness of process %s. Assume 64 bit process", pid.path()
        )
        is_compat = False
    else:
        log.debug(
            "identified process %s as %s bit process", pid.path(), 32 if is_compat else 64
        )

    nsinodes = get_namespace(pid)
    root = pid
    while (candidate := get_ppid(root)) is not None:
        try:
            candidate_ns = get_namespace(candidate)
        except OSError:
            break
        if not nsinodes.equal_mnt_and_net(candidate_ns):
            break
        root = candidate
    log.debug("identified process %s as root of process id %s", root.path(), pid.path())

    return RequestingProcess(
        nspath=f"{pid.path()}/ns",
        nsroot=f"{root.path()}/ns",
        namespaces=nsinodes,
        is_compat=is_compat,
    )


def debug_command(action_json: str, process: RequestingProcess) -> str:
    """Return a hint on how to rerun an action by hand under strace."""
    action_base64 = base64.b64encode(action_json.encode()).decode("ascii")
    return (
        "In case you need to debug the system calls, call `strace vuinputd"
        f" --target-namespace {process.nsroot} --action-base64 {action_base64}`"
    )


def _default_command() -> list[str]:
    program = sys.argv[0] if sys.argv and sys.argv[0] else "vuinputd"
    if program.endswith(".py"):
        return [sys.executable, os.path.abspath(program)]
    if os.sep in program:
        return [os.path.abspath(program)]
    return [program]


def start_action(action_json: str, process: RequestingProcess) -> int:
    """Start this program again to run `action_json` inside the process's namespaces.

    Returns the child's pid; pass it to :func:`await_process`.
    """
    log.debug("%s", debug_command(action_json, process))
    argv = _default_command()
    argv += ["--action", action_json, "--target-namespace", process.nsroot]
    return os.posix_spawnp(argv[0], argv, dict(os.environ))


def run_in_net_and_mnt_namespace(target_namespace: str) -> None:
    """Enter the network and mount namespaces found under `target_namespace`."""
    log.debug(
        "Entering namespaces of process %s. We assume this is the root process of the container.",
        target_namespace,
    )
    if not os.path.exists(target_namespace):
        raise FileNotFoundError(
            "the root process of the container whose namespaces we want to enter "
            f"does not exist anymore: {target_namespace}"
        )
    setns = getattr(os, "setns", None)
    net = os.open(os.path.join(target_namespace, "net"), os.O_RDONLY)
    try:
        mnt = os.open(os.path.join(target_namespace, "mnt"), os.O_RDONLY)
        try:
            if setns is None:
                raise RuntimeError("entering namespaces requires Python 3.12 or newer")
            setns(net, CLONE_NEWNET)
            setns(mnt, CLONE_NEWNS)
        finally:
            os.close(mnt)
    finally:
        os.close(net)


async def await_process(pid: Pid) -> int:
    """Wait without blocking the event loop for a child to exit; return its status."""
    number = pid._require_concrete()
    loop = asyncio.get_running_loop()
    pidfd = os.pidfd_open(number)
    try:
        ready = loop.create_future()

        def _on_readable() -> None:
            if not ready.done():
                ready.set_result(None)

        loop.add_reader(pidfd, _on_readable)
        try:
            await ready
        finally:
            loop.remove_reader(pidfd)
    finally:
        os.close(pidfd)

    result = os.waitid(os.P_PID, number, os.WEXITED)
    if result is None:
        raise ChildProcessError(f"process {number} has not exited")
    return result.si_status


def check_permissions() -> list[str]:
    """Log and return the capability lines of this process's status."""
    status = Path("/proc/self/status").read_text()
    log.debug("Capabilities of vuinputd process:")
    lines = [line for line in status.splitlines() if line.startswith("Cap")]
    for line in lines:
        log.debug("%s", line)
    return lines