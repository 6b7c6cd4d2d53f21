"""Timed advertisement scanning with optional early exit on a target address."""

from __future__ import annotations

import asyncio
import logging

from switchbotctl.core import advertisement, mac
from switchbotctl.core.model import DeviceAdvertisement, DeviceType, RawAdvertisement
from switchbotctl.transports.base import PeripheralClient

LOGGER = logging.getLogger(__name__)


class DeviceScanner:
    def __init__(self, client: PeripheralClient) -> None:
        self.client = client

    async def scan(
        self,
        duration_s: float,
        target_address: str | None = None,
    ) -> list[DeviceAdvertisement]:
        """Collect one snapshot per address for up to ``duration_s`` seconds.

        Packets that do not decode to a SwitchBot model are ignored, so a
        plain packet seen first does not shadow a later SwitchBot one.

        Returns as soon as ``target_address`` is seen, when given. Scan
        failures are logged and whatever was collected is returned; the scan
        session is stopped on every exit path, including cancellation.
        """
        target = mac.normalize(target_address)
        found: dict[str, DeviceAdvertisement] = {}
        target_seen = asyncio.Event()

        def _on_advertisement(raw: RawAdvertisement) -> None:
            snapshot = advertisement.decode(raw)
            if snapshot.device_type is DeviceType.UNKNOWN or snapshot.address in found:
                return
            found[snapshot.address] = snapshot
            LOGGER.debug("Device found: %s (%s)", snapshot.address, snapshot.device_type.value)
            if target is not None and snapshot.address == target:
                LOGGER.info("Target device found: %s, stopping scan early", snapshot.address)
                target_seen.set()

        LOGGER.info(
            "Scanning for %.1fs%s",
            duration_s,
            f", targeting {target}" if target else "",
        )
        self.client.set_advertisement_handler(_on_advertisement)
        try:
            await self.client.start_scan()
            await asyncio.wait_for(target_seen.wait(), timeout=duration_s)
        except asyncio.TimeoutError:
            if target is not None:
                LOGGER.debug("Scan window ended without seeing %s", target)
        except Exception as exc:
            LOGGER.error("Scan error: %s", exc)
        finally:
            self.client.set_advertisement_handler(None)
            try:
                await self.client.stop_scan()
            except Exception as exc:
                LOGGER.warning("Failed to stop scan: %s", exc)

        LOGGER.info("Scan complete, found %d devices", len(found))
        return list(found.values())
