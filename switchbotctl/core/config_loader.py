"""Config loading and validation for YAML-based switchbotctl settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from switchbotctl.core import mac
from switchbotctl.core.errors import ConfigLoadError, ConfigValidationError
from switchbotctl.core.model import DeviceConfig, RetryPolicy, Settings, TimingSettings

CONFIG_ENV_VAR = "SWITCHBOTCTL_CONFIG"
_SECTIONS = ("scan", "discovery", "retry", "timeouts")
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedConfig:
    settings: Settings
    warnings: tuple[str, ...]
    sources: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("switchbotctl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _user_config_paths() -> list[Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    paths = [
        path
        for path in (xdg_config / "switchbotctl/config.yaml", xdg_config / "switchbotctl/config.yml")
        if path.is_file()
    ][:1]

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        explicit_path = Path(explicit).expanduser()
        if not explicit_path.is_file():
            raise ConfigLoadError(f"{CONFIG_ENV_VAR} points to missing file {explicit_path}")
        paths.append(explicit_path)
    return paths


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _validate(doc: dict[str, Any], source: Path | Traversable) -> None:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _build_device(entry: dict[str, Any], source: Path | Traversable) -> DeviceConfig:
    device_id = mac.normalize(entry["device_id"].strip())
    if not mac.is_full_address(device_id):
        raise ConfigValidationError(
            f"Device '{entry['name']}' in {source} has invalid device_id '{entry['device_id']}'"
        )
    return DeviceConfig(
        name=entry["name"].strip(),
        device_id=device_id,
        mode=entry.get("mode", "switch"),
        auto_off=bool(entry.get("auto_off", False)),
        auto_off_delay_s=float(entry.get("auto_off_delay", 1.0)),
        status_check=bool(entry.get("status_check", False)),
        status_check_interval_s=float(entry.get("status_check_interval", 60.0)),
    )


def _build_settings(sections: dict[str, dict[str, Any]], devices: list[DeviceConfig]) -> Settings:
    scan = sections.get("scan", {})
    discovery = sections.get("discovery", {})
    retry = sections.get("retry", {})
    timeouts = sections.get("timeouts", {})
    defaults = TimingSettings()
    retry_defaults = RetryPolicy()
    return Settings(
        timing=TimingSettings(
            scan_duration_s=float(scan.get("duration_s", defaults.scan_duration_s)),
            status_duration_s=float(scan.get("status_duration_s", defaults.status_duration_s)),
            discover_duration_s=float(discovery.get("duration_s", defaults.discover_duration_s)),
            quick_discover=bool(discovery.get("quick", defaults.quick_discover)),
            cache_ttl_s=float(discovery.get("cache_ttl_s", defaults.cache_ttl_s)),
            connect_timeout_s=float(timeouts.get("connect_s", defaults.connect_timeout_s)),
            notify_timeout_s=float(timeouts.get("notify_s", defaults.notify_timeout_s)),
            command_timeout_s=float(timeouts.get("command_s", defaults.command_timeout_s)),
        ),
        retry=RetryPolicy(
            max_retries=int(retry.get("max_retries", retry_defaults.max_retries)),
            base_delay_s=float(retry.get("base_delay_s", retry_defaults.base_delay_s)),
            backoff_factor=float(retry.get("backoff_factor", retry_defaults.backoff_factor)),
            max_delay_s=float(retry.get("max_delay_s", retry_defaults.max_delay_s)),
            jitter_s=float(retry.get("jitter_s", retry_defaults.jitter_s)),
        ),
        devices=tuple(devices),
    )


def load_config() -> LoadedConfig:
    """Layer the packaged defaults, the XDG user file and ``$SWITCHBOTCTL_CONFIG``."""
    sections: dict[str, dict[str, Any]] = {name: {} for name in _SECTIONS}
    devices: dict[str, DeviceConfig] = {}
    warnings: list[str] = []
    sources: list[str] = []

    packaged = resources.files("switchbotctl.config").joinpath("default.yaml")
    for path in [packaged, *_user_config_paths()]:
        doc = _read_yaml(path)
        _validate(doc, path)
        sources.append(str(path))

        for name in _SECTIONS:
            sections[name].update(doc.get(name) or {})

        seen_here: set[str] = set()
        for entry in doc.get("devices") or []:
            device = _build_device(entry, path)
            key = device.name.lower()
            if key in seen_here:
                raise ConfigValidationError(f"Duplicate device name '{device.name}' in {path}")
            seen_here.add(key)
            if key in devices:
                warning = f"Device '{device.name}' from {path} overrides an earlier definition"
                LOGGER.warning(warning)
                warnings.append(warning)
            devices[key] = device

    return LoadedConfig(
        settings=_build_settings(sections, list(devices.values())),
        warnings=tuple(warnings),
        sources=tuple(sources),
    )
