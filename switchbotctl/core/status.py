"""Bot status lookup from advertisements, with a discovery fallback."""

from __future__ import annotations

import logging

from switchbotctl.core import mac
from switchbotctl.core.executor import CommandExecutor
from switchbotctl.core.model import DeviceAdvertisement, DeviceStatus, DeviceType, LogicalState
from switchbotctl.core.scanner import DeviceScanner

NO_RESPONSE_ERROR = "Device did not respond to advertisement"
LOGGER = logging.getLogger(__name__)


def switch_is_on(state: LogicalState | None) -> bool:
    """Map an advertised Bot state onto a binary switch.

    The Bot advertises OFF while its arm is released, which is the toggle's
    on position in Switch mode.
    """
    return state is LogicalState.OFF


def _status_from(snapshot: DeviceAdvertisement, source: str) -> DeviceStatus:
    return DeviceStatus(
        device_id=snapshot.address,
        device_type=DeviceType.BOT,
        state=snapshot.state,
        mode=snapshot.mode,
        battery=snapshot.battery,
        source=source,
    )


class StatusResolver:
    def __init__(
        self,
        scanner: DeviceScanner,
        executor: CommandExecutor,
        *,
        duration_s: float = 5.0,
    ) -> None:
        self.scanner = scanner
        self.executor = executor
        self.duration_s = duration_s

    async def get_status(self, device_id: str | None, duration_s: float | None = None) -> DeviceStatus:
        address = mac.normalize(device_id)
        if address is None:
            return DeviceStatus(device_id=device_id, error="Invalid device ID")

        duration_s = self.duration_s if duration_s is None else duration_s
        for snapshot in await self.scanner.scan(duration_s, target_address=address):
            if snapshot.address == address and snapshot.device_type is DeviceType.BOT:
                return _status_from(snapshot, source="advertisement")

        LOGGER.info("No advertisement from %s, falling back to discovery", address)
        discovery = await self.executor.discover(address, max_retries=0)
        snapshot = getattr(discovery.peripheral, "advertisement", None)
        if snapshot is not None and snapshot.device_type is DeviceType.BOT:
            return _status_from(snapshot, source="discovery")

        return DeviceStatus(device_id=address, error=NO_RESPONSE_ERROR)
