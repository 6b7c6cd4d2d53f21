"""Service layer used by the CLI, the public API, and the host adapter."""

from __future__ import annotations

import asyncio
import importlib.util
import logging
import os
import platform
import sys
import time
from collections.abc import Callable

from switchbotctl.core import device_match, mac
from switchbotctl.core.cache import DiscoveryCache
from switchbotctl.core.config_loader import load_config
from switchbotctl.core.device_match import Chooser
from switchbotctl.core.executor import CommandExecutor, Sleep
from switchbotctl.core.model import (
    BotCommand,
    CommandOutcome,
    DeviceAdvertisement,
    DeviceStatus,
    LogicalState,
    ServerStatus,
    Settings,
)
from switchbotctl.core.scanner import DeviceScanner
from switchbotctl.core.status import StatusResolver
from switchbotctl.transports.base import PeripheralClient
from switchbotctl.transports.ble_gatt import BleakPeripheralClient

_STARTED_AT = time.monotonic()
LOGGER = logging.getLogger(__name__)


class BotService:
    """Owns the BLE client and serializes all radio work through one lock.

    Concurrent callers queue on the lock instead of interleaving scan windows
    on the shared adapter. Address normalization and matching run outside it.
    """

    def __init__(
        self,
        *,
        client: PeripheralClient | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if settings is None:
            loaded = load_config()
            settings = loaded.settings
            self.load_warnings = loaded.warnings
            self.config_sources = loaded.sources
        else:
            self.load_warnings = ()
            self.config_sources = ()
        self.settings = settings
        self.runtime_warnings = _runtime_warnings()

        timing = settings.timing
        self.client = client or BleakPeripheralClient(
            connect_timeout_s=timing.connect_timeout_s,
            notify_timeout_s=timing.notify_timeout_s,
        )
        self.cache = DiscoveryCache(ttl_s=timing.cache_ttl_s, clock=clock)
        self.scanner = DeviceScanner(self.client)
        self.executor = CommandExecutor(
            self.client,
            self.cache,
            retry=settings.retry,
            discover_duration_s=timing.discover_duration_s,
            quick_discover=timing.quick_discover,
            sleep=sleep,
        )
        self.status_resolver = StatusResolver(
            self.scanner,
            self.executor,
            duration_s=timing.status_duration_s,
        )
        self._radio = asyncio.Lock()

    async def scan(
        self,
        duration_s: float | None = None,
        target_address: str | None = None,
    ) -> list[DeviceAdvertisement]:
        duration_s = self.settings.timing.scan_duration_s if duration_s is None else duration_s
        async with self._radio:
            return await self.scanner.scan(duration_s, target_address=target_address)

    async def find_device(
        self,
        user_input: str,
        *,
        unattended: bool = False,
        choose: Chooser | None = None,
        duration_s: float | None = None,
    ) -> str | None:
        """Resolve a full or partial id to the address to operate on."""
        target = mac.normalize(user_input)
        if target is None:
            return None
        results = await self.scan(
            duration_s,
            target_address=target if mac.is_full_address(target) else None,
        )
        if not results:
            LOGGER.info("No devices found, using provided address: %s", target)
            return target
        return device_match.resolve(user_input, results, unattended=unattended, choose=choose)

    async def status(self, device_id: str | None, duration_s: float | None = None) -> DeviceStatus:
        async with self._radio:
            return await self.status_resolver.get_status(device_id, duration_s)

    async def send(
        self,
        device_id: str | None,
        command: BotCommand,
        *,
        max_retries: int | None = None,
    ) -> CommandOutcome:
        LOGGER.info("Trying to %s device: %s", command.label.lower(), device_id)
        async with self._radio:
            return await self.executor.run(device_id, command, max_retries=max_retries)

    async def press(self, device_id: str | None, *, max_retries: int | None = None) -> CommandOutcome:
        return await self.send(device_id, BotCommand.PRESS, max_retries=max_retries)

    async def turn_on(self, device_id: str | None, *, max_retries: int | None = None) -> CommandOutcome:
        return await self.send(device_id, BotCommand.TURN_ON, max_retries=max_retries)

    async def turn_off(self, device_id: str | None, *, max_retries: int | None = None) -> CommandOutcome:
        return await self.send(device_id, BotCommand.TURN_OFF, max_retries=max_retries)

    def logical_state(self, device_id: str | None) -> LogicalState:
        address = mac.normalize(device_id)
        if address is None:
            return LogicalState.UNKNOWN
        return self.cache.logical_state(address)

    async def server_status(self) -> ServerStatus:
        return ServerStatus(
            platform=sys.platform,
            runtime_version=platform.python_version(),
            uptime_s=round(time.monotonic() - _STARTED_AT, 2),
            has_elevated_privileges=has_elevated_privileges(),
        )


def has_elevated_privileges() -> bool:
    if hasattr(os, "geteuid"):
        return os.geteuid() == 0
    if sys.platform == "win32":
        import ctypes

        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return False


def _runtime_warnings() -> tuple[str, ...]:
    warnings: list[str] = []
    if importlib.util.find_spec("bleak") is None:
        warnings.append("Python package 'bleak' is not installed; BLE scan and control commands will fail.")
    return tuple(warnings)
