from __future__ import annotations

from fakes import FakeClock

from switchbotctl.core.cache import DiscoveryCache
from switchbotctl.core.model import LogicalState

ADDRESS = "aa:bb:cc:dd:ee:ff"


def test_entry_expires_at_ttl() -> None:
    clock = FakeClock(100.0)
    cache = DiscoveryCache(ttl_s=60.0, clock=clock)
    handle = object()

    assert cache.get(ADDRESS) is None
    cache.put(ADDRESS, handle)

    clock.now = 159.9
    hit = cache.get(ADDRESS)
    assert hit is not None
    assert hit.peripheral is handle

    clock.now = 160.0
    assert cache.get(ADDRESS) is None


def test_invalidate_handle_keeps_logical_state() -> None:
    cache = DiscoveryCache(clock=FakeClock())
    cache.put(ADDRESS, object())
    cache.set_logical_state(ADDRESS, LogicalState.ON)

    cache.invalidate_handle(ADDRESS)

    assert cache.get(ADDRESS) is None
    assert cache.logical_state(ADDRESS) is LogicalState.ON


def test_logical_state_defaults_to_unknown() -> None:
    cache = DiscoveryCache()
    assert cache.logical_state(ADDRESS) is LogicalState.UNKNOWN
    assert cache.entry(ADDRESS) is None


def test_set_logical_state_without_handle_is_not_a_hit() -> None:
    cache = DiscoveryCache(clock=FakeClock())
    cache.set_logical_state(ADDRESS, LogicalState.OFF)
    assert cache.get(ADDRESS) is None
    assert cache.entry(ADDRESS).last_updated_at == 0.0
