"""BLE transport implementation on top of bleak."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from switchbotctl.core import advertisement, mac
from switchbotctl.core.errors import (
    DeviceDiscoveryError,
    TransportConnectError,
    TransportError,
    TransportSendError,
    TransportTimeoutError,
)
from switchbotctl.core.model import (
    BotCommand,
    BotMode,
    Capability,
    DeviceAdvertisement,
    RawAdvertisement,
)
from switchbotctl.transports.base import AdvertisementHandler

WRITE_CHAR_UUID = "cba20002-224d-11e6-9fb8-0002a5d5c51b"
NOTIFY_CHAR_UUID = "cba20003-224d-11e6-9fb8-0002a5d5c51b"
SERVICE_DATA_UUIDS = (
    "00000d00-0000-1000-8000-00805f9b34fb",
    "0000fd3d-0000-1000-8000-00805f9b34fb",
)

COMMAND_FRAMES = {
    BotCommand.PRESS: bytes.fromhex("570100"),
    BotCommand.TURN_ON: bytes.fromhex("570101"),
    BotCommand.TURN_OFF: bytes.fromhex("570102"),
}
_ACCEPTED_STATUS = {0x01}
LOGGER = logging.getLogger(__name__)


def _import_bleak() -> Any:
    try:
        import bleak  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise TransportConnectError(
            "BLE transport requires 'bleak'. Install dependency and retry."
        ) from exc
    return bleak


def raw_advertisement(device: Any, advertisement_data: Any) -> RawAdvertisement:
    service_data: bytes | None = None
    for uuid in SERVICE_DATA_UUIDS:
        payload = (advertisement_data.service_data or {}).get(uuid)
        if payload:
            service_data = bytes(payload)
            break
    return RawAdvertisement(
        address=device.address,
        raw_id=device.address,
        service_data=service_data,
        rssi=getattr(advertisement_data, "rssi", None),
    )


def capabilities_for(snapshot: DeviceAdvertisement | None) -> frozenset[Capability]:
    if snapshot is not None and snapshot.mode is BotMode.SWITCH:
        return frozenset({Capability.PRESS, Capability.SWITCH})
    return frozenset({Capability.PRESS})


def check_response(address: str, response: bytes | None) -> None:
    if not response:
        raise TransportTimeoutError(f"Timed out waiting for BLE notification from {address}")
    if response[0] not in _ACCEPTED_STATUS:
        raise TransportSendError(
            f"GATT operation failed: {address} returned status 0x{response[0]:02x}"
        )


class BleakBotPeripheral:
    def __init__(
        self,
        device: Any,
        snapshot: DeviceAdvertisement,
        *,
        connect_timeout_s: float = 3.0,
        notify_timeout_s: float = 1.0,
    ) -> None:
        self.device = device
        self.advertisement = snapshot
        self.address = snapshot.address
        self.capabilities = capabilities_for(snapshot)
        self._connect_timeout_s = connect_timeout_s
        self._notify_timeout_s = notify_timeout_s

    async def press(self) -> None:
        await self._send(BotCommand.PRESS)

    async def turn_on(self) -> None:
        await self._send(BotCommand.TURN_ON)

    async def turn_off(self) -> None:
        await self._send(BotCommand.TURN_OFF)

    async def _send(self, command: BotCommand) -> None:
        bleak = _import_bleak()
        payload = COMMAND_FRAMES[command]
        response: bytes | None = None
        received = asyncio.Event()

        def _notify_handler(_: Any, data: bytearray) -> None:
            nonlocal response
            response = bytes(data)
            received.set()

        try:
            async with bleak.BleakClient(self.device, timeout=self._connect_timeout_s) as client:
                if not client.is_connected:
                    raise TransportConnectError(f"BLE connect failed for {self.address}")

                await client.start_notify(NOTIFY_CHAR_UUID, _notify_handler)
                try:
                    await client.write_gatt_char(WRITE_CHAR_UUID, payload, response=True)
                    try:
                        await asyncio.wait_for(received.wait(), self._notify_timeout_s)
                    except asyncio.TimeoutError:
                        LOGGER.debug("No notification from %s within %.1fs", self.address, self._notify_timeout_s)
                finally:
                    try:
                        await client.stop_notify(NOTIFY_CHAR_UUID)
                    except Exception as exc:
                        LOGGER.debug("stop_notify failed for %s: %s", self.address, exc)
        except TransportError:
            raise
        except asyncio.TimeoutError as exc:
            raise TransportTimeoutError(f"BLE connect timeout for {self.address}") from exc
        except Exception as exc:
            raise TransportSendError(f"BLE GATT send failed: {exc}") from exc

        check_response(self.address, response)


class BleakPeripheralClient:
    """Owns the local BLE adapter for scans and discovery passes."""

    def __init__(self, *, connect_timeout_s: float = 3.0, notify_timeout_s: float = 1.0) -> None:
        self._connect_timeout_s = connect_timeout_s
        self._notify_timeout_s = notify_timeout_s
        self._handler: AdvertisementHandler | None = None
        self._scanner: Any | None = None

    def set_advertisement_handler(self, handler: AdvertisementHandler | None) -> None:
        self._handler = handler

    def _on_detection(self, device: Any, advertisement_data: Any) -> None:
        if self._handler is None:
            return
        raw = raw_advertisement(device, advertisement_data)
        if advertisement.is_switchbot(raw):
            self._handler(raw)

    async def start_scan(self) -> None:
        if self._scanner is not None:
            return
        bleak = _import_bleak()
        scanner = bleak.BleakScanner(detection_callback=self._on_detection)
        try:
            await scanner.start()
        except Exception as exc:
            raise DeviceDiscoveryError(f"Could not start BLE scan: {exc}") from exc
        self._scanner = scanner

    async def stop_scan(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is not None:
            await scanner.stop()

    async def discover(
        self,
        *,
        model: str,
        device_id: str | None,
        quick: bool,
        duration_s: float,
    ) -> list[BleakBotPeripheral]:
        bleak = _import_bleak()
        target = mac.normalize(device_id)
        found: dict[str, tuple[Any, DeviceAdvertisement]] = {}
        done = asyncio.Event()

        def _callback(device: Any, advertisement_data: Any) -> None:
            snapshot = advertisement.decode(raw_advertisement(device, advertisement_data))
            if snapshot.model_code != model:
                return
            if target and snapshot.address != target:
                return
            found.setdefault(snapshot.address, (device, snapshot))
            if quick:
                done.set()

        scanner = bleak.BleakScanner(detection_callback=_callback)
        try:
            await scanner.start()
        except Exception as exc:
            raise DeviceDiscoveryError(f"Could not start BLE scan: {exc}") from exc
        try:
            await asyncio.wait_for(done.wait(), duration_s)
        except asyncio.TimeoutError:
            pass
        finally:
            await scanner.stop()

        return [
            BleakBotPeripheral(
                device,
                snapshot,
                connect_timeout_s=self._connect_timeout_s,
                notify_timeout_s=self._notify_timeout_s,
            )
            for device, snapshot in found.values()
        ]
