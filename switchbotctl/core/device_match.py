"""Resolution of user-supplied, possibly partial, device ids against scan results."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from switchbotctl.core import mac
from switchbotctl.core.model import DeviceAdvertisement

Chooser = Callable[[Sequence[DeviceAdvertisement]], DeviceAdvertisement | None]
LOGGER = logging.getLogger(__name__)


def exact_match(user_input: str, device: DeviceAdvertisement) -> bool:
    return mac.equals(device.address, user_input) or mac.equals(device.raw_id, user_input)


def partial_match(user_input: str, device: DeviceAdvertisement) -> bool:
    target = mac.hex_digits(user_input)
    if not target:
        return False
    for candidate in (mac.hex_digits(device.address), mac.hex_digits(device.raw_id)):
        if candidate and (target in candidate or candidate in target):
            return True
    return False


def resolve(
    user_input: str | None,
    scan_results: Sequence[DeviceAdvertisement],
    *,
    unattended: bool = False,
    choose: Chooser | None = None,
) -> str | None:
    """Return the address to operate on for ``user_input``.

    Falls back to the normalized input when nothing, or nothing unambiguous,
    matches, so the operation is still attempted.
    """
    normalized = mac.normalize(user_input)
    if normalized is None:
        return None

    for device in scan_results:
        if exact_match(user_input, device):
            LOGGER.info("Found exact match: %s", device.address)
            return device.address

    candidates = [device for device in scan_results if partial_match(user_input, device)]
    if not candidates:
        LOGGER.info("No match found, using provided address: %s", normalized)
        return normalized
    if len(candidates) == 1:
        LOGGER.info("Found partial match: %s", candidates[0].address)
        return candidates[0].address

    LOGGER.info("Found %d possible matches for %s", len(candidates), user_input)
    if unattended:
        return candidates[0].address
    if choose is not None:
        picked = choose(candidates)
        if picked is not None:
            return picked.address
    return normalized
