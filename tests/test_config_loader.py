from __future__ import annotations

from pathlib import Path

import pytest

from switchbotctl.core.config_loader import CONFIG_ENV_VAR, load_config
from switchbotctl.core.errors import ConfigLoadError, ConfigValidationError
from switchbotctl.core.model import RetryPolicy, TimingSettings


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


def _write_config(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_packaged_defaults() -> None:
    loaded = load_config()
    assert loaded.settings.timing == TimingSettings()
    assert loaded.settings.retry == RetryPolicy()
    assert loaded.settings.devices == ()
    assert loaded.warnings == ()
    assert len(loaded.sources) == 1


def test_user_config_overrides_defaults(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "switchbotctl" / "config.yaml",
        """
retry:
  max_retries: 2
scan:
  duration_s: 10
devices:
  - name: Desk Lamp
    device_id: AA-BB-CC-DD-EE-FF
    mode: press
    auto_off: true
    auto_off_delay: 2.5
    status_check: true
    status_check_interval: 120
""",
    )

    settings = load_config().settings

    assert settings.retry.max_retries == 2
    assert settings.retry.base_delay_s == 0.5
    assert settings.timing.scan_duration_s == 10.0
    assert settings.timing.status_duration_s == 5.0
    device = settings.device_by_name("desk lamp")
    assert device is not None
    assert device.device_id == "aa:bb:cc:dd:ee:ff"
    assert device.mode == "press"
    assert device.auto_off is True
    assert device.auto_off_delay_s == 2.5
    assert device.status_check is True
    assert device.status_check_interval_s == 120.0


def test_env_config_redefining_device_warns(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "switchbotctl" / "config.yml",
        """
devices:
  - name: Lamp
    device_id: aa:bb:cc:dd:ee:ff
""",
    )
    explicit = _write_config(
        tmp_path / "other.yaml",
        """
devices:
  - name: lamp
    device_id: "112233445566"
""",
    )
    monkeypatch.setenv(CONFIG_ENV_VAR, str(explicit))

    loaded = load_config()

    assert len(loaded.sources) == 3
    assert [d.device_id for d in loaded.settings.devices] == ["11:22:33:44:55:66"]
    assert len(loaded.warnings) == 1
    assert "overrides an earlier definition" in loaded.warnings[0]


def test_missing_env_config_rejected(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "nope.yaml"))
    with pytest.raises(ConfigLoadError):
        load_config()


def test_duplicate_keys_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "switchbotctl" / "config.yaml",
        """
retry:
  max_retries: 1
  max_retries: 2
""",
    )
    with pytest.raises(ConfigValidationError):
        load_config()


def test_unknown_section_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "switchbotctl" / "config.yaml", "colour: red\n")
    with pytest.raises(ConfigValidationError):
        load_config()


def test_invalid_mode_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "switchbotctl" / "config.yaml",
        """
devices:
  - name: Lamp
    device_id: aa:bb:cc:dd:ee:ff
    mode: toggle
""",
    )
    with pytest.raises(ConfigValidationError):
        load_config()


def test_partial_device_id_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "switchbotctl" / "config.yaml",
        """
devices:
  - name: Lamp
    device_id: c339
""",
    )
    with pytest.raises(ConfigValidationError):
        load_config()


def test_duplicate_name_in_one_file_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "switchbotctl" / "config.yaml",
        """
devices:
  - name: Lamp
    device_id: aa:bb:cc:dd:ee:ff
  - name: LAMP
    device_id: "11:22:33:44:55:66"
""",
    )
    with pytest.raises(ConfigValidationError):
        load_config()


def test_root_must_be_mapping(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "switchbotctl" / "config.yaml", "- just\n- a list\n")
    with pytest.raises(ConfigValidationError):
        load_config()
