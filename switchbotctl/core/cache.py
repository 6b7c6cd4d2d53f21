"""Short-lived cache of discovered peripheral handles, keyed by normalized MAC."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from switchbotctl.core.model import CachedPeripheral, LogicalState

DEFAULT_TTL_S = 60.0


class DiscoveryCache:
    """Process-lifetime map of normalized address to `CachedPeripheral`.

    Not safe for concurrent writers; `BotService` serializes access through
    its radio lock.
    """

    def __init__(
        self,
        *,
        ttl_s: float = DEFAULT_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_s = ttl_s
        self._clock = clock
        self._entries: dict[str, CachedPeripheral] = {}

    def get(self, address: str) -> CachedPeripheral | None:
        entry = self._entries.get(address)
        if entry is None or entry.peripheral is None or entry.last_discovered_at is None:
            return None
        if self._clock() - entry.last_discovered_at >= self.ttl_s:
            return None
        return entry

    def put(self, address: str, peripheral: Any) -> CachedPeripheral:
        entry = self._entries.setdefault(address, CachedPeripheral())
        entry.peripheral = peripheral
        entry.last_discovered_at = self._clock()
        return entry

    def invalidate_handle(self, address: str) -> None:
        entry = self._entries.get(address)
        if entry is not None:
            entry.peripheral = None

    def set_logical_state(self, address: str, state: LogicalState) -> CachedPeripheral:
        entry = self._entries.setdefault(address, CachedPeripheral())
        entry.logical_state = state
        entry.last_updated_at = self._clock()
        return entry

    def logical_state(self, address: str) -> LogicalState:
        entry = self._entries.get(address)
        return entry.logical_state if entry else LogicalState.UNKNOWN

    def entry(self, address: str) -> CachedPeripheral | None:
        """Raw entry lookup, ignoring TTL."""
        return self._entries.get(address)
