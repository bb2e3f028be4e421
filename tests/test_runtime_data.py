import logging

import pytest

from vuinputd.runtime_data import (
    clean_udev_data,
    delete_udev_data,
    ensure_udev_structure,
    read_udev_data,
    write_udev_data,
)

INPUT = """I:16429403327735
E:ID_VUINPUT_KEYBOARD=1
E:ID_INPUT=1
E:ID_INPUT_KEY=1
E:ID_SERIAL=noserial
E:ID_SEAT=seat_vuinput
G:seat_vuinput
G:power-switch
Q:seat_vuinput
Q:power-switch
V:1"""

EXPECTED = """I:16429403327735
E:ID_INPUT_KEYBOARD=1
E:ID_INPUT=1
E:ID_INPUT_KEY=1
E:ID_SERIAL=noserial
G:power-switch
Q:power-switch
V:1
"""


def test_replacement_and_filter():
    assert clean_udev_data(INPUT) == EXPECTED


def test_mouse_marker_replaced():
    assert clean_udev_data("E:ID_VUINPUT_MOUSE=1\n") == "E:ID_INPUT_MOUSE=1\n"


def test_clean_is_idempotent():
    assert clean_udev_data(clean_udev_data(INPUT)) == EXPECTED


def test_write_read_delete_round_trip(tmp_path):
    (tmp_path / "udev" / "data").mkdir(parents=True)
    write_udev_data(tmp_path, INPUT, 13, 73)
    assert read_udev_data(13, 73, root=tmp_path / "udev") == EXPECTED
    delete_udev_data(tmp_path, 13, 73)
    with pytest.raises(FileNotFoundError):
        read_udev_data(13, 73, root=tmp_path / "udev")


def test_delete_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        delete_udev_data(tmp_path, 13, 99)


def test_ensure_udev_structure(tmp_path, caplog):
    caplog.set_level(logging.INFO)
    root = tmp_path / "udev"
    assert ensure_udev_structure(root) is True
    assert (root / "data").is_dir()
    assert (root / "control").is_file()
    assert "VUI-UDEV-001" in caplog.text
    assert ensure_udev_structure(root) is False