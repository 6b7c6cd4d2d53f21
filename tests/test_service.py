from __future__ import annotations

import asyncio
import sys

from fakes import FakeClient, FakePeripheral, FakeSleep, bot_advert, fast_settings

from switchbotctl.core.model import BotCommand, LogicalState
from switchbotctl.core.service import BotService

ADDRESS = "aa:bb:cc:dd:c3:39"


def _service(client: FakeClient) -> BotService:
    return BotService(client=client, settings=fast_settings(), sleep=FakeSleep())


def test_explicit_settings_skip_config_loading() -> None:
    service = _service(FakeClient())
    assert service.load_warnings == ()
    assert service.config_sources == ()
    assert service.settings.timing.scan_duration_s == 0.02


def test_find_device_resolves_partial_id() -> None:
    client = FakeClient(adverts=[bot_advert(ADDRESS), bot_advert("11:22:33:44:55:66")])
    assert asyncio.run(_service(client).find_device("C339")) == ADDRESS


def test_find_device_without_results_uses_input() -> None:
    assert asyncio.run(_service(FakeClient()).find_device("AABBCCDDC339")) == ADDRESS
    assert asyncio.run(_service(FakeClient()).find_device("")) is None


def test_send_updates_logical_state() -> None:
    peripheral = FakePeripheral(ADDRESS)
    service = _service(FakeClient(discover_results=[[peripheral]]))

    outcome = asyncio.run(service.turn_off(ADDRESS))

    assert outcome.command is BotCommand.TURN_OFF
    assert outcome.actually_executed
    assert service.logical_state("AA-BB-CC-DD-C3-39") is LogicalState.OFF
    assert service.logical_state(None) is LogicalState.UNKNOWN


def test_radio_work_is_serialized() -> None:
    class TrackingClient(FakeClient):
        def __init__(self) -> None:
            super().__init__()
            self.active = 0
            self.max_active = 0

        async def discover(self, *, model, device_id, quick, duration_s):
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            await asyncio.sleep(0.01)
            self.active -= 1
            return [FakePeripheral(device_id)]

    client = TrackingClient()
    service = _service(client)

    async def _both():
        return await asyncio.gather(
            service.press("aa:bb:cc:dd:ee:01"),
            service.press("aa:bb:cc:dd:ee:02"),
        )

    outcomes = asyncio.run(_both())

    assert all(o.actually_executed for o in outcomes)
    assert client.max_active == 1


def test_server_status() -> None:
    status = asyncio.run(_service(FakeClient()).server_status())
    assert status.platform == sys.platform
    assert status.uptime_s >= 0
    assert status.message


def test_loaded_config_sources_are_exposed(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    monkeypatch.delenv("SWITCHBOTCTL_CONFIG", raising=False)

    service = BotService(client=FakeClient())

    assert len(service.config_sources) == 1
    assert service.config_sources[0].endswith("default.yaml")
