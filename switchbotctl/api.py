"""Stable public API for building tooling on top of switchbotctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.

`Client` is synchronous; each call runs the async core to completion. Async
callers (host plugins, services) should use `BotService` directly.
"""

from __future__ import annotations

import asyncio

from switchbotctl.accessory import BotSwitch
from switchbotctl.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    DeviceDiscoveryError,
    DeviceNotFoundError,
    DeviceSelectionError,
    SwitchbotctlError,
    TransportConnectError,
    TransportError,
    TransportSendError,
    TransportTimeoutError,
)
from switchbotctl.core.mac import equals as mac_equals
from switchbotctl.core.mac import normalize as normalize_mac
from switchbotctl.core.model import (
    BotCommand,
    BotMode,
    CommandOutcome,
    DeviceAdvertisement,
    DeviceConfig,
    DeviceStatus,
    DeviceType,
    LogicalState,
    ServerStatus,
    Settings,
)
from switchbotctl.core.service import BotService
from switchbotctl.core.status import switch_is_on
from switchbotctl.transports.base import BotPeripheral, PeripheralClient
from switchbotctl.transports.ble_gatt import BleakPeripheralClient

__all__ = [
    "SwitchbotctlError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceDiscoveryError",
    "DeviceNotFoundError",
    "DeviceSelectionError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "TransportTimeoutError",
    "BotCommand",
    "BotMode",
    "CommandOutcome",
    "DeviceAdvertisement",
    "DeviceConfig",
    "DeviceStatus",
    "DeviceType",
    "LogicalState",
    "ServerStatus",
    "Settings",
    "BotPeripheral",
    "PeripheralClient",
    "BleakPeripheralClient",
    "BotService",
    "BotSwitch",
    "Client",
    "mac_equals",
    "normalize_mac",
    "switch_is_on",
]


class Client:
    """Public client for interacting with switchbotctl core capabilities.

    A `Client` instance wraps config loading, scanning, status lookup, and
    command execution behind a stable API intended for third-party tools
    (GUI/TUI/services/scripts). Command methods never raise for device
    failures; inspect `CommandOutcome.actually_executed` instead.
    """

    def __init__(
        self,
        *,
        client: PeripheralClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._service = BotService(client=client, settings=settings)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def runtime_warnings(self) -> tuple[str, ...]:
        return self._service.runtime_warnings

    @property
    def settings(self) -> Settings:
        return self._service.settings

    def scan(self, duration_s: float | None = None) -> list[DeviceAdvertisement]:
        return asyncio.run(self._service.scan(duration_s))

    def find_device(self, user_input: str) -> str | None:
        return asyncio.run(self._service.find_device(user_input, unattended=True))

    def status(self, device_id: str) -> DeviceStatus:
        return asyncio.run(self._service.status(device_id))

    def press(self, device_id: str) -> CommandOutcome:
        return asyncio.run(self._service.press(device_id))

    def turn_on(self, device_id: str) -> CommandOutcome:
        return asyncio.run(self._service.turn_on(device_id))

    def turn_off(self, device_id: str) -> CommandOutcome:
        return asyncio.run(self._service.turn_off(device_id))

    def server_status(self) -> ServerStatus:
        return asyncio.run(self._service.server_status())

    def logical_state(self, device_id: str) -> LogicalState:
        return self._service.logical_state(device_id)
