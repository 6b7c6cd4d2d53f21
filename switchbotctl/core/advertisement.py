"""Decoding of SwitchBot service-data payloads into device snapshots.

The first byte carries the model code in its low seven bits. The remaining
bytes are model specific:

    Bot ('H')            byte1: bit7 mode (set = Switch), bit6 state (set = OFF)
                         byte2: battery percentage in the low seven bits
    Meter ('T')          byte2: battery, byte3: temperature tenths (low nibble),
                         byte4: whole degrees (bit7 set = above zero),
                         byte5: relative humidity
    Contact sensor ('s') byte1: bit6 contact flag, byte2: battery
"""

from __future__ import annotations

from dataclasses import replace

from switchbotctl.core import mac
from switchbotctl.core.model import (
    BotMode,
    DeviceAdvertisement,
    DeviceType,
    LogicalState,
    RawAdvertisement,
)

BOT_MODEL = "H"
METER_MODEL = "T"
CONTACT_MODEL = "s"


def model_code(data: bytes | None) -> str | None:
    if not data:
        return None
    return chr(data[0] & 0x7F)


def is_switchbot(raw: RawAdvertisement) -> bool:
    """True when the service data decodes to a known SwitchBot model."""
    return decode(raw).device_type is not DeviceType.UNKNOWN


def decode(raw: RawAdvertisement) -> DeviceAdvertisement:
    address = mac.normalize(raw.address) or raw.address
    base = DeviceAdvertisement(address=address, raw_id=raw.raw_id, rssi=raw.rssi)
    data = raw.service_data
    code = model_code(data)

    if code == BOT_MODEL and len(data) >= 3:
        return replace(
            base,
            device_type=DeviceType.BOT,
            model_code=code,
            mode=BotMode.SWITCH if data[1] & 0x80 else BotMode.PRESS,
            state=LogicalState.OFF if data[1] & 0x40 else LogicalState.ON,
            battery=data[2] & 0x7F,
        )
    if code == METER_MODEL and len(data) >= 6:
        temperature = (data[4] & 0x7F) + (data[3] & 0x0F) / 10
        if not data[4] & 0x80:
            temperature = -temperature
        return replace(
            base,
            device_type=DeviceType.METER,
            model_code=code,
            temperature=round(temperature, 1),
            humidity=data[5] & 0x7F,
            battery=data[2] & 0x7F,
        )
    if code == CONTACT_MODEL and len(data) >= 3:
        return replace(
            base,
            device_type=DeviceType.CONTACT_SENSOR,
            model_code=code,
            contact=bool(data[1] & 0x40),
            battery=data[2] & 0x7F,
        )
    return base

