"""Discovery with bounded retries, and best-effort command execution.

Every command resolves to a `CommandOutcome` whose ``reported_success`` is
``True``. Hosts penalize slow or failing command handlers, so the real result
travels in ``command_sent``, ``virtually_executed`` and ``error`` instead of
an exception.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from switchbotctl.core import mac
from switchbotctl.core.advertisement import BOT_MODEL
from switchbotctl.core.cache import DiscoveryCache
from switchbotctl.core.errors import DeviceNotFoundError, TransportTimeoutError
from switchbotctl.core.model import BotCommand, CommandOutcome, DiscoveryResult, RetryPolicy
from switchbotctl.transports.base import BotPeripheral, PeripheralClient

Sleep = Callable[[float], Awaitable[None]]

_NO_DEVICES_PATTERN = "no devices found"
_TRANSIENT_PATTERNS = (
    _NO_DEVICES_PATTERN,
    "disconnected",
    "timeout",
    "timed out",
    "gatt operation failed",
)
LOGGER = logging.getLogger(__name__)


def is_no_devices_error(exc: BaseException) -> bool:
    return isinstance(exc, DeviceNotFoundError) or _NO_DEVICES_PATTERN in str(exc).lower()


def is_transient_error(exc: BaseException) -> bool:
    if isinstance(exc, (DeviceNotFoundError, TransportTimeoutError, asyncio.TimeoutError)):
        return True
    message = str(exc).lower()
    return any(pattern in message for pattern in _TRANSIENT_PATTERNS)


async def _invoke(peripheral: BotPeripheral, command: BotCommand) -> None:
    if command is BotCommand.PRESS:
        await peripheral.press()
    elif command is BotCommand.TURN_ON:
        await peripheral.turn_on()
    else:
        await peripheral.turn_off()


class CommandExecutor:
    def __init__(
        self,
        client: PeripheralClient,
        cache: DiscoveryCache,
        *,
        retry: RetryPolicy | None = None,
        discover_duration_s: float = 1.5,
        quick_discover: bool = True,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self.cache = cache
        self.retry = retry or RetryPolicy()
        self.discover_duration_s = discover_duration_s
        self.quick_discover = quick_discover
        self._sleep = sleep

    async def discover(
        self,
        device_id: str | None,
        *,
        quick: bool | None = None,
        duration_s: float | None = None,
        max_retries: int | None = None,
    ) -> DiscoveryResult:
        address = mac.normalize(device_id)
        if address is None:
            LOGGER.error("Invalid device ID: %r", device_id)
            return DiscoveryResult(address=None, error="Invalid device ID")

        cached = self.cache.get(address)
        if cached is not None:
            LOGGER.info("Using cached device instance: %s", address)
            return DiscoveryResult(address=address, peripheral=cached.peripheral, from_cache=True)

        quick = self.quick_discover if quick is None else quick
        duration_s = self.discover_duration_s if duration_s is None else duration_s
        retries = self.retry.max_retries if max_retries is None else max_retries
        last_error: str | None = None

        for attempt in range(retries + 1):
            if attempt:
                LOGGER.info("Retry discovering device (attempt %d): %s", attempt, address)
                await self._sleep(self.retry.delay(attempt))
            else:
                LOGGER.info("Trying to discover device: %s", address)

            try:
                peripherals = await self.client.discover(
                    model=BOT_MODEL,
                    device_id=address,
                    quick=quick,
                    duration_s=duration_s,
                )
            except Exception as exc:
                if is_no_devices_error(exc):
                    LOGGER.warning("Error discovering device (will retry): %s", exc)
                    last_error = str(exc)
                    continue
                LOGGER.error("Error discovering device: %s (attempt %d)", exc, attempt + 1)
                return DiscoveryResult(address=address, error=f"Error discovering device: {exc}")

            if not peripherals:
                last_error = f"Device not found: {address} (retry {attempt}/{retries})"
                continue

            self.cache.put(address, peripherals[0])
            LOGGER.info(
                "Discovered device: %s%s",
                address,
                f" (after {attempt} retries)" if attempt else "",
            )
            return DiscoveryResult(address=address, peripheral=peripherals[0])

        LOGGER.warning("Device not found: %s (retried %d times)", address, retries)
        return DiscoveryResult(
            address=address,
            error=last_error or f"Device not found: {address} (retries exhausted)",
        )

    async def execute(
        self,
        discovery: DiscoveryResult,
        command: BotCommand,
        *,
        max_retries: int | None = None,
    ) -> CommandOutcome:
        address = discovery.address
        peripheral = discovery.peripheral

        if peripheral is None:
            error = discovery.error or "Device not found"
            LOGGER.warning(
                "Device not found or unreachable (%s), treating %s as executed",
                error,
                command.label,
            )
            self._record_commanded_state(address, command)
            return CommandOutcome(
                command=command,
                address=address,
                command_sent=True,
                virtually_executed=True,
                error=error,
            )

        if discovery.from_cache:
            LOGGER.info("Using cached device instance to execute %s", command.label)

        if command.capability not in peripheral.capabilities:
            error = f"{command.label} not supported by {address} (capabilities: {_describe(peripheral)})"
            LOGGER.warning("%s, treating as executed", error)
            self._record_commanded_state(address, command)
            return CommandOutcome(
                command=command,
                address=address,
                command_sent=True,
                virtually_executed=True,
                error=error,
            )

        retries = self.retry.max_retries if max_retries is None else max_retries
        attempt = 0
        while True:
            if attempt:
                LOGGER.info("Retry executing %s (attempt %d)", command.label, attempt)
                await self._sleep(self.retry.delay(attempt))
            else:
                LOGGER.info("Executing %s on %s", command.label, address)

            try:
                await _invoke(peripheral, command)
            except Exception as exc:
                if is_transient_error(exc) and attempt < retries:
                    LOGGER.warning("%s failed (will retry): %s", command.label, exc)
                    attempt += 1
                    continue

                LOGGER.warning("%s failed: %s, treating as executed", command.label, exc)
                self._record_commanded_state(address, command)
                if address is not None:
                    self.cache.invalidate_handle(address)
                return CommandOutcome(
                    command=command,
                    address=address,
                    command_sent=True,
                    virtually_executed=True,
                    error=str(exc),
                    attempts=attempt + 1,
                )

            self._record_commanded_state(address, command)
            LOGGER.info(
                "%s successful%s",
                command.label,
                f" (after {attempt} retries)" if attempt else "",
            )
            return CommandOutcome(
                command=command,
                address=address,
                command_sent=True,
                attempts=attempt + 1,
            )

    async def run(
        self,
        device_id: str | None,
        command: BotCommand,
        *,
        max_retries: int | None = None,
    ) -> CommandOutcome:
        discovery = await self.discover(device_id, max_retries=max_retries)
        return await self.execute(discovery, command, max_retries=max_retries)

    def _record_commanded_state(self, address: str | None, command: BotCommand) -> None:
        if address is None or command.target_state is None:
            return
        self.cache.set_logical_state(address, command.target_state)
        LOGGER.info("[Status updated] %s set to %s", address, command.target_state.value)


def _describe(peripheral: BotPeripheral) -> str:
    return ", ".join(sorted(c.value for c in peripheral.capabilities)) or "none"
