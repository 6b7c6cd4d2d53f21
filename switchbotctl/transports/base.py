"""Transport interfaces for the BLE radio boundary."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from switchbotctl.core.model import Capability, DeviceAdvertisement, RawAdvertisement

AdvertisementHandler = Callable[[RawAdvertisement], None]


class BotPeripheral(Protocol):
    address: str
    capabilities: frozenset[Capability]
    advertisement: DeviceAdvertisement | None

    async def press(self) -> None:
        """Momentarily actuate the arm."""

    async def turn_on(self) -> None:
        """Move the arm to the on position (Switch mode)."""

    async def turn_off(self) -> None:
        """Move the arm to the off position (Switch mode)."""


class PeripheralClient(Protocol):
    def set_advertisement_handler(self, handler: AdvertisementHandler | None) -> None:
        """Register the callback invoked for every received advertisement."""

    async def start_scan(self) -> None:
        """Begin passive advertisement scanning."""

    async def stop_scan(self) -> None:
        """End the scan session started by `start_scan`."""

    async def discover(
        self,
        *,
        model: str,
        device_id: str | None,
        quick: bool,
        duration_s: float,
    ) -> list[BotPeripheral]:
        """Return connectable handles for devices of ``model``."""
