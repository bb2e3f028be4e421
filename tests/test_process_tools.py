import base64
import os
import subprocess
import sys

import pytest

from vuinputd.process_tools import (
    Namespaces,
    Pid,
    RequestingProcess,
    await_process,
    check_permissions,
    classify_elf_header,
    debug_command,
    get_namespace,
    get_ppid,
    get_requesting_process,
    is_compat_process,
    run_in_net_and_mnt_namespace,
)

MISSING_PID = Pid(2**31 - 1)


def _spawn(code):
    proc = subprocess.Popen([sys.executable, "-c", code])
    return proc


def test_pid_paths():
    assert Pid.self_pid().path() == "/proc/self"
    assert Pid(1234).path() == "/proc/1234"
    assert Pid.self_pid() == Pid(None)


def test_classify_elf_header():
    assert classify_elf_header(b"\x7fELF\x01") is True
    assert classify_elf_header(b"\x7fELF\x02") is False
    assert classify_elf_header(b"\x7fELF\x07") is None
    assert classify_elf_header(b"MZ\x90\x00\x02") is None
    assert classify_elf_header(b"\x7fEL") is None


def test_is_compat_process_matches_interpreter_binary():
    with open(sys.executable, "rb") as exe:
        header = exe.read(5)
    assert is_compat_process(Pid(os.getpid())) == classify_elf_header(header)


def test_is_compat_process_missing_pid_is_unknown():
    assert is_compat_process(MISSING_PID) is None


def test_is_compat_process_rejects_self():
    with pytest.raises(ValueError):
        is_compat_process(Pid.self_pid())


def test_get_namespace_matches_stat_inodes():
    ns = get_namespace(Pid.self_pid())
    assert ns.net == os.stat("/proc/self/ns/net").st_ino
    assert ns.mnt == os.stat("/proc/self/ns/mnt").st_ino


def test_get_namespace_same_for_self_and_own_pid():
    assert get_namespace(Pid.self_pid()) == get_namespace(Pid(os.getpid()))


def test_get_namespace_missing_pid():
    with pytest.raises(FileNotFoundError):
        get_namespace(MISSING_PID)


def test_get_ppid():
    assert get_ppid(Pid(os.getpid())) == Pid(os.getppid())
    assert get_ppid(Pid.self_pid()) == Pid(os.getppid())
    assert get_ppid(MISSING_PID) is None


def test_namespaces_equal_mnt_and_net():
    a = Namespaces(net=1, mnt=2, uts=3)
    assert a.equal_mnt_and_net(Namespaces(net=1, mnt=2, uts=9))
    assert not a.equal_mnt_and_net(Namespaces(net=5, mnt=2, uts=3))
    assert not a.equal_mnt_and_net(Namespaces(net=1, mnt=5, uts=3))


def test_requesting_process_equality_helpers():
    a = RequestingProcess("/proc/1/ns", "/proc/1/ns", Namespaces(net=1, mnt=2), False)
    b = RequestingProcess("/proc/2/ns", "/proc/1/ns", Namespaces(net=1, mnt=2, ipc=4), True)
    c = RequestingProcess("/proc/3/ns", "/proc/3/ns", Namespaces(net=7, mnt=2), False)
    assert a.equal_mnt_and_net(b)
    assert not a.equal_mnt_and_net(c)
    assert a.equal_mnt_and_net_ns(Namespaces(net=1, mnt=2))
    assert not a.equal_mnt_and_net_ns(c.namespaces)
    assert len({a, b, c}) == 3


def test_requesting_process_str_lists_namespaces():
    text = str(RequestingProcess(namespaces=Namespaces(net=11)))
    assert text.startswith("Namespaces:\n")
    assert "  net:  11" in text
    assert "  time_for_children:  None" in text


def test_get_requesting_process_for_current_process():
    pid = Pid(os.getpid())
    process = get_requesting_process(pid)
    assert process.nspath == f"/proc/{os.getpid()}/ns"
    assert process.namespaces == get_namespace(pid)
    assert process.nsroot.startswith("/proc/") and process.nsroot.endswith("/ns")
    root_pid = Pid(int(process.nsroot.split("/")[2]))
    assert get_namespace(root_pid).equal_mnt_and_net(process.namespaces)


def test_get_requesting_process_rejects_self():
    with pytest.raises(ValueError):
        get_requesting_process(Pid.self_pid())


def test_debug_command_round_trip():
    action = '{"EmitNetlinkMessage":{"netlink_message":{}}}'
    process = RequestingProcess(nsroot="/proc/42/ns")
    text = debug_command(action, process)
    assert "--target-namespace /proc/42/ns" in text
    encoded = text.split("--action-base64 ")[1].rstrip("`")
    assert base64.b64decode(encoded).decode() == action


@pytest.mark.asyncio
async def test_await_process_returns_exit_status():
    proc = _spawn("import sys; sys.exit(3)")
    status = await await_process(Pid(proc.pid))
    proc.returncode = status
    assert status == 3


@pytest.mark.asyncio
async def test_await_process_returns_zero_on_success():
    proc = _spawn("pass")
    status = await await_process(Pid(proc.pid))
    proc.returncode = status
    assert status == 0


@pytest.mark.asyncio
async def test_await_process_missing_pid():
    with pytest.raises(ProcessLookupError):
        await await_process(MISSING_PID)


@pytest.mark.asyncio
async def test_await_process_rejects_self():
    with pytest.raises(ValueError):
        await await_process(Pid.self_pid())


def test_run_in_namespace_missing_path():
    with pytest.raises(FileNotFoundError):
        run_in_net_and_mnt_namespace("/nonexistent/vuinputd/ns")


def test_check_permissions_returns_capability_lines():
    lines = check_permissions()
    assert lines
    assert all(line.startswith("Cap") for line in lines)
    assert any(line.startswith("CapEff:") for line in lines)