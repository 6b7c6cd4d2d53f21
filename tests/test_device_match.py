from __future__ import annotations

from switchbotctl.core.device_match import exact_match, partial_match, resolve
from switchbotctl.core.model import DeviceAdvertisement

FIRST = DeviceAdvertisement(address="aa:bb:cc:dd:c3:39", raw_id="aa:bb:cc:dd:c3:39")
SECOND = DeviceAdvertisement(address="11:22:33:44:c3:39", raw_id="11:22:33:44:c3:39")
OTHER = DeviceAdvertisement(address="11:22:33:44:55:66", raw_id="11:22:33:44:55:66")


def test_exact_match_ignores_format() -> None:
    assert exact_match("AA-BB-CC-DD-C3-39", FIRST)
    assert resolve("AABBCCDDC339", [OTHER, FIRST]) == FIRST.address


def test_partial_match_on_hex_fragment() -> None:
    assert partial_match("C339", FIRST)
    assert not partial_match("C339", OTHER)
    assert resolve("C339", [FIRST, OTHER]) == FIRST.address


def test_no_match_falls_back_to_normalized_input() -> None:
    assert resolve("C339", [OTHER]) == "c339"
    assert resolve("C339", []) == "c339"


def test_ambiguous_match_unattended_takes_first() -> None:
    assert resolve("c3:39", [FIRST, SECOND], unattended=True) == FIRST.address


def test_ambiguous_match_uses_chooser() -> None:
    seen = []

    def _choose(candidates):
        seen.extend(candidates)
        return candidates[1]

    assert resolve("C339", [FIRST, SECOND], choose=_choose) == SECOND.address
    assert seen == [FIRST, SECOND]


def test_ambiguous_match_without_choice_uses_input() -> None:
    assert resolve("C339", [FIRST, SECOND], choose=lambda _: None) == "c339"
    assert resolve("C339", [FIRST, SECOND]) == "c339"


def test_empty_input_resolves_to_none() -> None:
    assert resolve("", [FIRST]) is None
    assert resolve(None, [FIRST]) is None
