from __future__ import annotations

import asyncio

from fakes import NO_JITTER, FakeClient, FakeClock, FakePeripheral, FakeSleep, bot_advert

from switchbotctl.core.cache import DiscoveryCache
from switchbotctl.core.executor import CommandExecutor
from switchbotctl.core.model import BotMode, LogicalState
from switchbotctl.core.scanner import DeviceScanner
from switchbotctl.core.status import NO_RESPONSE_ERROR, StatusResolver, switch_is_on

ADDRESS = "aa:bb:cc:dd:ee:ff"


def _resolver(client: FakeClient) -> StatusResolver:
    executor = CommandExecutor(client, DiscoveryCache(clock=FakeClock()), retry=NO_JITTER, sleep=FakeSleep())
    return StatusResolver(DeviceScanner(client), executor, duration_s=0.02)


def test_status_from_advertisement() -> None:
    client = FakeClient(adverts=[bot_advert("AA:BB:CC:DD:EE:FF", off=True, battery=77)])

    status = asyncio.run(_resolver(client).get_status("aabbccddeeff"))

    assert status.error is None
    assert status.device_id == ADDRESS
    assert status.mode is BotMode.SWITCH
    assert status.state is LogicalState.OFF
    assert status.battery == 77
    assert status.source == "advertisement"
    assert client.discover_calls == []


def test_status_falls_back_to_single_discovery() -> None:
    client = FakeClient(discover_results=[[FakePeripheral(ADDRESS, state=LogicalState.ON)]])

    status = asyncio.run(_resolver(client).get_status(ADDRESS))

    assert status.source == "discovery"
    assert status.state is LogicalState.ON
    assert client.discover_calls == [ADDRESS]


def test_status_reports_no_response() -> None:
    client = FakeClient()
    status = asyncio.run(_resolver(client).get_status("AA-BB-CC-DD-EE-FF"))
    assert status.device_id == ADDRESS
    assert status.error == NO_RESPONSE_ERROR
    assert len(client.discover_calls) == 1


def test_status_rejects_missing_id() -> None:
    status = asyncio.run(_resolver(FakeClient()).get_status(None))
    assert status.error == "Invalid device ID"


def test_switch_is_on_inverts_advertised_state() -> None:
    assert switch_is_on(LogicalState.OFF) is True
    assert switch_is_on(LogicalState.ON) is False
    assert switch_is_on(LogicalState.UNKNOWN) is False
    assert switch_is_on(None) is False
