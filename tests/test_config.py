import json

import pytest

from instrumented_tests import config as config_module
from instrumented_tests.config import (
    Config,
    load_config,
    random_port,
    serial_for_port,
    MIN_PORT,
    MAX_PORT,
)
from instrumented_tests.utils import RunCmdError
from instrumented_tests.errors import InvalidConfig


def base_values(tmp_path):
    return {
        "avd_name": "test_avd",
        "avd_package": "system-images;android-29;default;x86",
        "sdk_path": str(tmp_path),
        "project_dir": str(tmp_path),
    }


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "_check_port_is_available", lambda port: True)
    config = load_config(base_values(tmp_path), environ={}).validate()

    assert config.task == "connectedCheck"
    assert config.project_dir == str(tmp_path)
    assert config.boot_timeout == 500
    assert config.show_window is False
    assert config.gradle_path == "./gradlew"
    assert config.port % 2 == 0
    assert MIN_PORT <= config.port <= MAX_PORT
    assert config.serial == "emulator-{}".format(config.port)


def test_environment_variables(tmp_path):
    environ = {
        "AVD_NAME": "ci_avd",
        "TARGET_ID": "system-images;android-30;google_apis;x86_64",
        "AVD_PORT": "5570",
        "AVD_BOOT_TIMEOUT": "120",
        "AVD_SHOW_WINDOW": "true",
        "ANDROID_SDK_ROOT": str(tmp_path),
        "FL_GRADLE_TASK": "connectedDebugAndroidTest",
        "FL_GRADLE_FLAGS": "--info",
        "FL_GRADLE_PROJECT_DIR": str(tmp_path),
    }
    config = load_config(environ=environ).validate()

    assert config.avd_name == "ci_avd"
    assert config.avd_package == "system-images;android-30;google_apis;x86_64"
    assert config.port == 5570
    assert config.boot_timeout == 120.0
    assert config.show_window is True
    assert config.sdk_path == str(tmp_path)
    assert config.task == "connectedDebugAndroidTest"
    assert config.flags == "--info"


def test_explicit_values_override_file_and_environment(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"port": 5560, "task": "cAT", "avd_name": "from_file"}))
    values = base_values(tmp_path)
    values["avd_name"] = "explicit"
    values["port"] = None

    config = load_config(values, config_path=str(config_path),
                         environ={"FL_GRADLE_TASK": "fromEnv"}).validate()

    assert config.avd_name == "explicit"
    assert config.port == 5560
    assert config.task == "fromEnv"


def test_unknown_key_in_config_file(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"snapshot": "x"}))

    with pytest.raises(InvalidConfig):
        load_config(config_path=str(config_path), environ={})


def test_missing_config_file(tmp_path):
    with pytest.raises(InvalidConfig):
        load_config(config_path=str(tmp_path / "missing.json"), environ={})


@pytest.mark.parametrize("port", [5553, 5586, 5552, 5554.5, "5555", "x"])
def test_validate_rejects_bad_ports(tmp_path, port):
    values = base_values(tmp_path)
    values["port"] = port
    with pytest.raises(InvalidConfig):
        Config(**values).validate()


@pytest.mark.parametrize("port", [5554, "5556", 5584])
def test_validate_accepts_even_ports_in_range(tmp_path, port):
    values = base_values(tmp_path)
    values["port"] = port
    assert Config(**values).validate().port == int(port)


@pytest.mark.parametrize("key", ["avd_name", "avd_package", "sdk_path"])
def test_validate_requires_values(tmp_path, key):
    values = base_values(tmp_path)
    values["port"] = 5554
    values[key] = None
    with pytest.raises(InvalidConfig):
        Config(**values).validate()


def test_validate_rejects_non_positive_timeout(tmp_path):
    values = base_values(tmp_path)
    values.update(port=5554, boot_timeout=0)
    with pytest.raises(InvalidConfig):
        Config(**values).validate()


def test_unknown_constructor_key():
    with pytest.raises(InvalidConfig):
        Config(snapshot="x")


def test_sdk_tool_paths_fall_back_to_tools_dir(tmp_path):
    values = base_values(tmp_path)
    values["port"] = 5554
    config = Config(**values)

    assert config.adb_path == str(tmp_path / "platform-tools" / "adb")
    assert config.avdmanager_path == str(tmp_path / "tools" / "bin" / "avdmanager")
    assert config.emulator_path == str(tmp_path / "tools" / "emulator")

    (tmp_path / "emulator").mkdir()
    (tmp_path / "emulator" / "emulator").write_text("")
    assert config.emulator_path == str(tmp_path / "emulator" / "emulator")


def test_serial_for_port():
    assert serial_for_port(5554) == "emulator-5554"


def test_random_port_skips_ports_in_use(monkeypatch):
    # only 5570 and its adb port are free
    checked = []

    def fake_run_cmd(cmd, timeout=None):
        port = int(cmd.rsplit(":", 1)[1])
        checked.append(port)
        if port in (5570, 5571):
            raise RunCmdError(cmd, "", "", returncode=1)
        return "COMMAND PID USER\nqemu 42 root"

    monkeypatch.setattr(config_module, "run_cmd", fake_run_cmd)

    assert random_port() == 5570
    assert all(port % 2 == 0 for port in checked if port != 5571)


def test_random_port_needs_free_adb_port(monkeypatch):
    busy = {5555, 5557}
    monkeypatch.setattr(config_module, "_check_port_is_available", lambda port: port not in busy)
    monkeypatch.setattr(config_module, "MAX_PORT", 5558)

    assert random_port() == 5558


def test_random_port_fails_when_every_port_is_taken(monkeypatch):
    monkeypatch.setattr(config_module, "_check_port_is_available", lambda port: False)

    with pytest.raises(InvalidConfig):
        random_port()


def test_explicit_port_skips_availability_check(tmp_path, monkeypatch):
    def fail(port):
        raise AssertionError("port {} checked".format(port))

    monkeypatch.setattr(config_module, "_check_port_is_available", fail)
    values = base_values(tmp_path)
    values["port"] = 5566

    assert load_config(values, environ={}).validate().port == 5566
