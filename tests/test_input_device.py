import os

import pytest

from vuinputd.input_device import InputDeviceError, ensure_input_device, remove_input_device


def _null_numbers():
    rdev = os.stat("/dev/null").st_rdev
    return os.major(rdev), os.minor(rdev)


def test_remove_missing_device(tmp_path):
    with pytest.raises(InputDeviceError, match="does not exist"):
        remove_input_device(tmp_path / "event9", 13, 73)


def test_remove_regular_file_is_refused(tmp_path):
    node = tmp_path / "event9"
    node.write_text("")
    with pytest.raises(InputDeviceError, match="wrong major and minor"):
        remove_input_device(node, 13, 73)
    assert node.exists()


def test_remove_wrong_numbers_is_refused():
    major, minor = _null_numbers()
    with pytest.raises(InputDeviceError):
        remove_input_device("/dev/null", major + 1, minor)
    assert os.path.exists("/dev/null")


def test_ensure_existing_correct_device_is_kept():
    major, minor = _null_numbers()
    assert ensure_input_device("/dev/null", major, minor) is False
    assert os.stat("/dev/null").st_rdev == os.makedev(major, minor)