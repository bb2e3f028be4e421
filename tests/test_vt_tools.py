import logging

import pytest

from vuinputd.vt_tools import check_vt_status, mute_keyboard


def test_check_missing_tty_returns_none(tmp_path, caplog):
    caplog.set_level(logging.INFO)
    assert check_vt_status(str(tmp_path / "tty1")) is None
    assert "not present" in caplog.text


def test_check_regular_file_fails_ioctl(tmp_path, caplog):
    fake = tmp_path / "tty1"
    fake.write_text("")
    assert check_vt_status(str(fake)) is None
    assert "KDGKBMODE ioctl failed" in caplog.text


def test_mute_missing_tty_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        mute_keyboard(str(tmp_path / "tty1"))


def test_mute_regular_file_raises(tmp_path):
    fake = tmp_path / "tty1"
    fake.write_text("")
    with pytest.raises(OSError, match="Failed to mute keyboard"):
        mute_keyboard(str(fake))