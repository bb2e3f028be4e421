import pytest

from vuinputd.global_config import (
    DevicePolicy,
    GlobalConfig,
    Placement,
    get_device_policy,
    get_placement,
    get_vudevname,
    initialize_global_config,
    reset_global_config,
)


@pytest.fixture(autouse=True)
def clean_config():
    reset_global_config()
    yield
    reset_global_config()


def test_getters_before_initialization_raise():
    with pytest.raises(RuntimeError):
        get_device_policy()
    with pytest.raises(RuntimeError):
        get_placement()
    with pytest.raises(RuntimeError):
        get_vudevname()


def test_initialize_and_read_back():
    cfg = initialize_global_config(DevicePolicy.SANITIZED, Placement.ON_HOST, "mydev")
    assert cfg == GlobalConfig(DevicePolicy.SANITIZED, Placement.ON_HOST, "mydev")
    assert get_device_policy() is DevicePolicy.SANITIZED
    assert get_placement() is Placement.ON_HOST
    assert get_vudevname() == "mydev"


def test_default_devname():
    initialize_global_config(DevicePolicy.NONE, Placement.NONE, None)
    assert get_vudevname() == "vuinput"


def test_defaults():
    initialize_global_config()
    assert get_device_policy() is DevicePolicy.MUTE_SYS_RQ
    assert get_placement() is Placement.IN_CONTAINER


def test_double_initialization_raises():
    initialize_global_config(DevicePolicy.NONE, Placement.NONE, None)
    with pytest.raises(RuntimeError):
        initialize_global_config(DevicePolicy.SANITIZED, Placement.ON_HOST, "x")
    assert get_device_policy() is DevicePolicy.NONE


def test_reset_allows_reinitialization():
    initialize_global_config(DevicePolicy.NONE, Placement.NONE, "a")
    reset_global_config()
    initialize_global_config(DevicePolicy.STRICT_GAMEPAD, Placement.IN_CONTAINER, "b")
    assert get_vudevname() == "b"


def test_accepts_kebab_case_values():
    initialize_global_config("strict-gamepad", "on-host", None)
    assert get_device_policy() is DevicePolicy.STRICT_GAMEPAD
    assert get_placement() is Placement.ON_HOST


def test_unknown_policy_rejected():
    with pytest.raises(ValueError):
        initialize_global_config("bogus", Placement.NONE, None)