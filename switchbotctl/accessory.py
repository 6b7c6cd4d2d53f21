"""Binary-switch adapter for smart-home hosts.

A host exposes each configured Bot as an on/off characteristic. `BotSwitch`
backs that characteristic with `BotService`: reads return the tracked state,
writes issue the matching command, and neither ever raises or stalls past the
command timeout, since hosts degrade a plugin that errors or hangs.
With ``status_check`` enabled, `start()` polls the device every
``status_check_interval_s`` seconds until `close()`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from switchbotctl.core.errors import SwitchbotctlError
from switchbotctl.core.executor import Sleep
from switchbotctl.core.model import BotCommand, DeviceConfig
from switchbotctl.core.service import BotService
from switchbotctl.core.status import switch_is_on

StateListener = Callable[[bool], None]
LOGGER = logging.getLogger(__name__)


class BotSwitch:
    def __init__(
        self,
        config: DeviceConfig,
        service: BotService,
        *,
        command_timeout_s: float | None = None,
        on_state_change: StateListener | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self.service = service
        self.command_timeout_s = (
            service.settings.timing.command_timeout_s if command_timeout_s is None else command_timeout_s
        )
        self.current_state = False
        self._on_state_change = on_state_change
        self._auto_off_task: asyncio.Task[None] | None = None
        self._status_task: asyncio.Task[None] | None = None
        self._sleep = sleep
        self._log_prefix = f"[{config.name}] "

    @property
    def is_press_mode(self) -> bool:
        return self.config.mode == "press"

    def start(self) -> None:
        """Begin periodic status checks when the device config enables them."""
        if not self.config.status_check or self._status_task is not None:
            return
        LOGGER.info(
            "%sAutomatic status check enabled, interval: %.0fs",
            self._log_prefix,
            self.config.status_check_interval_s,
        )
        self._status_task = asyncio.create_task(self._poll_status())

    async def get_on(self) -> bool:
        return self.current_state

    async def set_on(self, value: bool) -> bool:
        LOGGER.info("%sSetting switch state to %s", self._log_prefix, "ON" if value else "OFF")
        if self.is_press_mode:
            command = BotCommand.PRESS
        else:
            command = BotCommand.TURN_ON if value else BotCommand.TURN_OFF

        try:
            outcome = await asyncio.wait_for(
                self.service.send(self.config.device_id, command),
                timeout=self.command_timeout_s,
            )
        except asyncio.TimeoutError:
            LOGGER.error(
                "%sCommand execution timed out after %.1fs",
                self._log_prefix,
                self.command_timeout_s,
            )
        else:
            if outcome.actually_executed:
                LOGGER.info("%sCommand sent to Bot: %s", self._log_prefix, command.label)
            else:
                LOGGER.warning(
                    "%sCommand acknowledged without confirmation: %s",
                    self._log_prefix,
                    outcome.error or "unknown error",
                )

        self._set_state(value)
        if value and (self.is_press_mode or self.config.auto_off):
            self._schedule_auto_off()
        return self.current_state

    async def refresh(self) -> bool:
        """Poll the device and adopt its advertised state."""
        status = await self.service.status(self.config.device_id)
        if status.error or status.state is None:
            LOGGER.warning(
                "%sStatus check returned no state: %s",
                self._log_prefix,
                status.error or "no state",
            )
            return self.current_state

        device_is_on = switch_is_on(status.state)
        if device_is_on != self.current_state:
            LOGGER.info(
                "%sDevice state changed externally: %s",
                self._log_prefix,
                "ON" if device_is_on else "OFF",
            )
            self._set_state(device_is_on)
        return self.current_state

    async def close(self) -> None:
        auto_off, self._auto_off_task = self._auto_off_task, None
        status, self._status_task = self._status_task, None
        if status is not None:
            LOGGER.info("%sStatus check timer stopped", self._log_prefix)
        for task in (auto_off, status):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    def _set_state(self, value: bool) -> None:
        changed = value != self.current_state
        self.current_state = value
        if changed and self._on_state_change is not None:
            self._on_state_change(value)

    def _schedule_auto_off(self) -> None:
        if self._auto_off_task is not None and not self._auto_off_task.done():
            self._auto_off_task.cancel()
        LOGGER.debug("%sAuto-off scheduled in %.1fs", self._log_prefix, self.config.auto_off_delay_s)
        self._auto_off_task = asyncio.create_task(self._auto_off())

    async def _auto_off(self) -> None:
        await self._sleep(self.config.auto_off_delay_s)
        LOGGER.debug("%sAuto-off triggered", self._log_prefix)
        self._set_state(False)

    async def _poll_status(self) -> None:
        while True:
            await self._sleep(self.config.status_check_interval_s)
            LOGGER.info("%sRunning scheduled status check", self._log_prefix)
            try:
                await self.refresh()
            except SwitchbotctlError as exc:
                LOGGER.error("%sScheduled status check failed: %s", self._log_prefix, exc)


def build_switches(service: BotService) -> list[BotSwitch]:
    return [BotSwitch(device, service) for device in service.settings.devices]
