from __future__ import annotations

from fakes import FakeClient, FakePeripheral, bot_advert, fast_settings

from switchbotctl.api import Client, CommandOutcome, DeviceType, LogicalState, normalize_mac
from switchbotctl.core.model import RetryPolicy

ADDRESS = "aa:bb:cc:dd:ee:ff"


def test_public_client_scan() -> None:
    client = Client(client=FakeClient(adverts=[bot_advert(ADDRESS)]), settings=fast_settings())
    devices = client.scan()
    assert [d.address for d in devices] == [ADDRESS]
    assert devices[0].device_type is DeviceType.BOT


def test_public_client_find_device() -> None:
    client = Client(client=FakeClient(adverts=[bot_advert(ADDRESS)]), settings=fast_settings())
    assert client.find_device("EEFF") == ADDRESS


def test_public_client_commands_never_raise() -> None:
    peripheral = FakePeripheral(ADDRESS)
    client = Client(
        client=FakeClient(discover_results=[[peripheral]]),
        settings=fast_settings(retry=RetryPolicy(max_retries=0, jitter_s=0)),
    )

    outcome = client.turn_on(ADDRESS)
    assert isinstance(outcome, CommandOutcome)
    assert outcome.actually_executed
    assert client.logical_state(ADDRESS) is LogicalState.ON

    missing = client.press("11:22:33:44:55:66")
    assert missing.reported_success
    assert not missing.actually_executed


def test_public_client_status_and_server() -> None:
    client = Client(client=FakeClient(adverts=[bot_advert(ADDRESS, off=True)]), settings=fast_settings())
    assert client.status(ADDRESS).state is LogicalState.OFF
    assert client.server_status().runtime_version
    assert client.load_warnings == ()


def test_normalize_reexport() -> None:
    assert normalize_mac("AABBCCDDEEFF") == ADDRESS
