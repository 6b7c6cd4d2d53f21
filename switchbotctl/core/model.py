"""Core data models used across scanner, executor, service, and CLI."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DeviceType(str, Enum):
    BOT = "Bot"
    METER = "Meter"
    CONTACT_SENSOR = "Contact Sensor"
    UNKNOWN = "Unknown"


class BotMode(str, Enum):
    SWITCH = "Switch"
    PRESS = "Press"


class LogicalState(str, Enum):
    ON = "ON"
    OFF = "OFF"
    UNKNOWN = "UNKNOWN"


class Capability(str, Enum):
    PRESS = "press"
    SWITCH = "switch"


class BotCommand(str, Enum):
    PRESS = "press"
    TURN_ON = "turn_on"
    TURN_OFF = "turn_off"

    @property
    def label(self) -> str:
        return _COMMAND_LABELS[self]

    @property
    def capability(self) -> Capability:
        return Capability.PRESS if self is BotCommand.PRESS else Capability.SWITCH

    @property
    def target_state(self) -> LogicalState | None:
        """State implied by the command; a press leaves state unchanged."""
        return _COMMAND_STATES.get(self)


_COMMAND_LABELS = {
    BotCommand.PRESS: "Press",
    BotCommand.TURN_ON: "Turn On",
    BotCommand.TURN_OFF: "Turn Off",
}

_COMMAND_STATES = {
    BotCommand.TURN_ON: LogicalState.ON,
    BotCommand.TURN_OFF: LogicalState.OFF,
}


@dataclass(frozen=True)
class RawAdvertisement:
    address: str
    raw_id: str | None
    service_data: bytes | None
    rssi: int | None = None


@dataclass(frozen=True)
class DeviceAdvertisement:
    address: str
    raw_id: str | None
    device_type: DeviceType = DeviceType.UNKNOWN
    model_code: str | None = None
    mode: BotMode | None = None
    state: LogicalState = LogicalState.UNKNOWN
    battery: int | None = None
    temperature: float | None = None
    humidity: int | None = None
    contact: bool | None = None
    rssi: int | None = None


@dataclass
class CachedPeripheral:
    """Per-address cache entry.

    ``logical_state`` is the last commanded state, kept for UI consistency.
    It is not a reading from the hardware.
    """

    peripheral: Any | None = None
    last_discovered_at: float | None = None
    logical_state: LogicalState = LogicalState.UNKNOWN
    last_updated_at: float | None = None


@dataclass(frozen=True)
class DiscoveryResult:
    address: str | None
    peripheral: Any | None = None
    from_cache: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.peripheral is not None


@dataclass(frozen=True)
class CommandOutcome:
    """Result of one command attempt.

    ``reported_success`` is always ``True``: command callers are never shown a
    failure. ``actually_executed`` tells a confirmed write from a virtual one.
    """

    command: BotCommand
    address: str | None
    command_sent: bool = True
    virtually_executed: bool = False
    error: str | None = None
    attempts: int = 0
    reported_success: bool = field(default=True, init=False)

    @property
    def actually_executed(self) -> bool:
        return self.command_sent and not self.virtually_executed


@dataclass(frozen=True)
class DeviceStatus:
    device_id: str | None
    device_type: DeviceType = DeviceType.BOT
    state: LogicalState | None = None
    mode: BotMode | None = None
    battery: int | None = None
    error: str | None = None
    source: str | None = None


@dataclass(frozen=True)
class ServerStatus:
    platform: str
    runtime_version: str
    uptime_s: float
    has_elevated_privileges: bool

    @property
    def message(self) -> str:
        if self.has_elevated_privileges:
            return "Running with elevated privileges"
        return "Not running with elevated privileges, Bluetooth access may fail"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 5
    base_delay_s: float = 0.5
    backoff_factor: float = 1.5
    max_delay_s: float = 5.0
    jitter_s: float = 0.25

    def delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        if attempt <= 0:
            return 0.0
        delay = min(self.max_delay_s, self.base_delay_s * self.backoff_factor ** (attempt - 1))
        if self.jitter_s > 0:
            delay += random.uniform(0, self.jitter_s)
        return delay


@dataclass(frozen=True)
class TimingSettings:
    scan_duration_s: float = 3.0
    status_duration_s: float = 5.0
    discover_duration_s: float = 1.5
    quick_discover: bool = True
    cache_ttl_s: float = 60.0
    connect_timeout_s: float = 3.0
    notify_timeout_s: float = 1.0
    command_timeout_s: float = 8.0


@dataclass(frozen=True)
class DeviceConfig:
    name: str
    device_id: str
    mode: str = "switch"
    auto_off: bool = False
    auto_off_delay_s: float = 1.0
    status_check: bool = False
    status_check_interval_s: float = 60.0


@dataclass(frozen=True)
class Settings:
    timing: TimingSettings = TimingSettings()
    retry: RetryPolicy = RetryPolicy()
    devices: tuple[DeviceConfig, ...] = ()

    def device_by_name(self, name: str) -> DeviceConfig | None:
        lowered = name.lower()
        for device in self.devices:
            if device.name.lower() == lowered:
                return device
        return None
