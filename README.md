# vuinputd

A library of building blocks for making virtual input devices created through
`/dev/uinput` on a Linux host visible and usable inside containers. It has no
dependencies outside the standard library.

## What is in the package

- `vuinputd.input_device`
  - `ensure_input_device(dev_path, major, minor)` makes `dev_path` a character
    device `major:minor` with mode `0666`. It creates the parent directory if
    needed and replaces a wrong node. It returns `True` if the node had to be
    (re)created.
  - `remove_input_device(dev_path, major, minor)` deletes the node only if it
    still is that character device. Otherwise it raises `InputDeviceError`.
- `vuinputd.runtime_data`
  - `clean_udev_data(content)` drops every line that contains `ID_SEAT=` or
    `seat_`, and turns `ID_VUINPUT_KEYBOARD=1` / `ID_VUINPUT_MOUSE=1` into
    `ID_INPUT_KEYBOARD=1` / `ID_INPUT_MOUSE=1`.
  - `write_udev_data(prefix, content, major, minor)` writes the cleaned text to
    `<prefix>/udev/data/c<major>:<minor>`.
  - `delete_udev_data(prefix, major, minor)` removes that file.
  - `read_udev_data(major, minor, root="/run/udev")` reads
    `<root>/data/c<major>:<minor>`.
  - `ensure_udev_structure(root="/run/udev")` creates `data/` and an empty
    `control` file.
- `vuinputd.host_fs`
  - `ensure_host_fs_structure(prefix)` creates `dev-input/`, `udev/data/` and
    `udev/control` below a prefix such as `/run/vuinputd/vuinput`.
  - `check_if_path_allows_char_devs(path, mountinfo_path)` reads
    `/proc/self/mountinfo`. It returns `True`, `False` (mounted `nodev`) or
    `None` (no matching mount) and logs a warning where needed.
- `vuinputd.netlink_message`
  - `MonitorNetlinkHeader` builds, packs (`to_bytes`) and parses (`from_bytes`)
    the libudev monitor header.
  - `encode_properties` encodes `KEY=VALUE\0` records.
  - `send_udev_monitor_message` and `send_udev_monitor_message_with_properties`
    send an announcement over `NETLINK_KOBJECT_UEVENT`.
  - Errors raise `NetlinkError`.
  - `string_hash32` knows only the subsystem names `"input"` and `""`.
- `vuinputd.process_tools`
  - `Pid`, `Namespaces` and `RequestingProcess` describe processes.
  - `get_namespace` and `get_ppid` read `/proc`.
  - `is_compat_process` and `classify_elf_header` detect 32-bit executables.
  - `get_requesting_process(pid)` walks up to the outermost ancestor that
    shares the mount and network namespaces.
  - `start_action(action_json, process)` starts the current program again with
    `--action <json> --target-namespace <nsroot>` and returns the child's pid.
    `debug_command` gives the matching `strace` hint.
  - `await_process(pid)` waits on a pidfd inside asyncio and returns the exit
    status.
  - `run_in_net_and_mnt_namespace(path)` enters the `net` and `mnt`
    namespaces. This needs `os.setns`, which is available from Python 3.12.
  - `check_permissions()` logs and returns the `Cap*` lines of
    `/proc/self/status`.
- `vuinputd.job`
  - `Dispatcher` runs jobs on its own thread. Jobs for the same `JobTarget` run
    one after another, in the order they were dispatched. The target can be
    `JobTarget.host()` or one `JobTarget.container(process)` per container.
  - Jobs for `JobTarget.background_loop()` run concurrently and are cancelled
    on `close()`.
  - `dispatch` after `close()` raises `DispatcherClosedError`.
  - `wait_until_finished()` closes the dispatcher and joins its thread.
  - Subclass `Job` to define your own jobs.
- `vuinputd.closure_job.ClosureJob(desc, target, execute_after_cancellation, task_creator)`
  wraps a callable that receives the job and returns an awaitable.
- `vuinputd.monitor_udev`
  - `EventStore` keeps the latest add/remove data per sysfs path:
    - `on_event` records an event.
    - `take` returns a snapshot and marks the entry as processed, tombstoning
      it once removed.
    - `cleanup` expires entries.
  - `parse_monitor_message`, `translate_properties` and `event_from_properties`
    turn raw monitor messages into `UdevEvent`s.
  - `udev_monitor_loop` and the `MonitorBackgroundLoop` job feed the shared
    store returned by `get_event_store()`.
- `vuinputd.global_config`
  - `initialize_global_config(device_policy, placement, devname)` sets the
    process-wide configuration once. A second call raises `RuntimeError`. The
    device name defaults to `vuinput`.
  - `get_device_policy`, `get_placement` and `get_vudevname` read the
    configuration.
  - `reset_global_config` clears it.
  - The values are `DevicePolicy` (`none`, `mute-sys-rq`, `sanitized`,
    `strict-gamepad`) and `Placement` (`in-container`, `on-host`, `none`).
- `vuinputd.cli`
  - `build_parser`, `parse_args`, `validate_args` and `decode_action` handle
    the daemon options: `--major`, `--minor`, `--devname`, `--action`,
    `--action-base64`, `--target-namespace`, `--vt-guard`, `--device-policy`
    and `--placement`.
  - Invalid combinations raise `ArgumentError`.
- `vuinputd.vt_tools`
  - `check_vt_status(tty_path="/dev/tty1")` logs and returns the keyboard mode.
  - `mute_keyboard(tty_path)` sets it to `K_OFF`.

Most operations need Linux and root privileges (mknod, setns, netlink, ioctl).

## Example: dispatching jobs

```python
from vuinputd.closure_job import ClosureJob
from vuinputd.job import Dispatcher, JobTarget

results = []

async def step(value):
    results.append(value)

dispatcher = Dispatcher()
for i in range(3):
    dispatcher.dispatch(
        ClosureJob(f"step {i}", JobTarget.host(), False, lambda job, i=i: step(i))
    )
dispatcher.close()
dispatcher.wait_until_finished()
assert results == [0, 1, 2]
```

## Example: cleaning udev data

```python
from vuinputd.runtime_data import clean_udev_data

print(clean_udev_data("E:ID_VUINPUT_MOUSE=1\nE:ID_SEAT=seat_vuinput\nV:1"))
# E:ID_INPUT_MOUSE=1
# V:1
```

## What the package does not do

- There is no daemon and no installed command. The package does not expose a
  `/dev/uinput` character device to containers and does not forward ioctls or
  writes to the host's `/dev/uinput`.
- `vuinputd.cli` parses and validates options but does not run anything.
- Nothing in the package handles the `--action` that `start_action` passes to
  the child process.
- There are no ready-made jobs that create device nodes, write udev data or
  emit netlink messages for a container. The functions above are the pieces
  such jobs would call.
- `DevicePolicy` is stored in the configuration, but no event filtering is
  applied anywhere in the package.