"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass

import typer

from switchbotctl.accessory import BotSwitch
from switchbotctl.core import mac
from switchbotctl.core.errors import DeviceSelectionError, SwitchbotctlError
from switchbotctl.core.model import (
    BotCommand,
    BotMode,
    CommandOutcome,
    DeviceAdvertisement,
    DeviceConfig,
    DeviceStatus,
    DeviceType,
    LogicalState,
)
from switchbotctl.core.service import BotService
from switchbotctl.core.status import switch_is_on

app = typer.Typer(help="SwitchBot Bot control over Bluetooth LE")

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]  %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# Pause between devices in auto-on/auto-off so the radio is not flooded.
_BETWEEN_DEVICES_S = 1.0


@dataclass
class CliOptions:
    api_mode: bool = False


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr"),
    api_mode: bool = typer.Option(
        False,
        "--api-mode",
        envvar="SWITCHBOTCTL_API_MODE",
        help="Unattended use: never prompt, pick the first of several matches",
    ),
) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
    ctx.obj = CliOptions(api_mode=api_mode)


def _build_service() -> BotService:
    service = BotService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    for warning in getattr(service, "runtime_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _options(ctx: typer.Context) -> CliOptions:
    return ctx.obj if isinstance(ctx.obj, CliOptions) else CliOptions()


def _describe_state(state: LogicalState | None) -> str:
    if state is LogicalState.ON:
        return "On"
    if state is LogicalState.OFF:
        return "Off"
    return "Unknown"


def _echo_device(device: DeviceAdvertisement) -> None:
    typer.echo(f"  Device ID: {device.address}")
    typer.echo(f"  Type: {device.device_type.value}")
    if device.device_type is DeviceType.BOT:
        typer.echo(f"  Mode: {device.mode.value if device.mode else 'Unknown'}")
        typer.echo(f"  State: {_describe_state(device.state)}")
    elif device.device_type is DeviceType.METER:
        typer.echo(f"  Temperature: {device.temperature}°C")
        typer.echo(f"  Humidity: {device.humidity}%")
    elif device.device_type is DeviceType.CONTACT_SENSOR:
        typer.echo(f"  Contact: {'Open' if device.contact else 'Closed'}")
    typer.echo(f"  Battery: {f'{device.battery}%' if device.battery is not None else 'Unknown'}")


def _echo_status(status: DeviceStatus) -> None:
    if status.error:
        typer.echo(f"Error: {status.error}", err=True)
        return
    typer.echo(f"Device ID: {status.device_id}")
    typer.echo(f"Type: {status.device_type.value}")
    typer.echo(f"Mode: {status.mode.value if status.mode else 'Unknown'}")
    typer.echo(f"State: {_describe_state(status.state)}")
    typer.echo(f"Battery: {f'{status.battery}%' if status.battery is not None else 'Unknown'}")


def _echo_outcome(outcome: CommandOutcome) -> None:
    typer.echo(f"Sent {outcome.command.label} to {outcome.address}")
    if outcome.virtually_executed:
        typer.echo(
            f"Warning: device did not confirm the command ({outcome.error or 'unknown error'})",
            err=True,
        )


def _prompt_choice(candidates: Sequence[DeviceAdvertisement]) -> DeviceAdvertisement | None:
    typer.echo(f"Found {len(candidates)} possible matches:")
    for index, device in enumerate(candidates, start=1):
        typer.echo(f"[{index}] {device.address} ({device.device_type.value})")
    answer = typer.prompt("Select a device (number) or q to use the id as given", default="q")
    if answer.strip().isdigit() and 1 <= int(answer) <= len(candidates):
        return candidates[int(answer) - 1]
    return None


def _scan_and_select(service: BotService) -> str | None:
    typer.echo("Scanning for nearby SwitchBot devices...")
    devices = asyncio.run(service.scan())
    if not devices:
        typer.echo("No SwitchBot devices found")
        return None

    typer.echo(f"Found {len(devices)} SwitchBot devices:")
    for index, device in enumerate(devices, start=1):
        typer.echo(f"[{index}]")
        _echo_device(device)

    answer = typer.prompt("Select the device to operate (number) or q to exit", default="q")
    if answer.strip().isdigit() and 1 <= int(answer) <= len(devices):
        return devices[int(answer) - 1].address
    return None


def _resolve_target(ctx: typer.Context, service: BotService, device: str | None) -> str | None:
    options = _options(ctx)
    if device:
        return asyncio.run(
            service.find_device(
                device,
                unattended=options.api_mode,
                choose=None if options.api_mode else _prompt_choice,
            )
        )
    if options.api_mode:
        raise DeviceSelectionError("A device id is required in API mode")
    return _scan_and_select(service)


def _send_command(ctx: typer.Context, device: str | None, command: BotCommand) -> None:
    try:
        service = _build_service()
        target = _resolve_target(ctx, service, device)
        if target is None:
            typer.echo("Operation cancelled")
            return

        if command is not BotCommand.PRESS:
            status = asyncio.run(service.status(target))
            if not status.error and status.mode is BotMode.PRESS:
                typer.echo(
                    f"Error: cannot {command.label.lower()} {target}: device is in Press mode, "
                    "use 'press' instead",
                    err=True,
                )
                raise typer.Exit(code=1)

        _echo_outcome(asyncio.run(service.send(target, command)))
    except SwitchbotctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("scan")
def scan_devices(
    duration: float | None = typer.Option(None, "--duration", "-d", help="Scan window in seconds"),
) -> None:
    """Scan for nearby SwitchBot devices."""
    try:
        service = _build_service()
        devices = asyncio.run(service.scan(duration))
        if not devices:
            typer.echo("No SwitchBot devices found")
            return

        typer.echo(f"Found {len(devices)} SwitchBot devices:")
        for index, device in enumerate(devices, start=1):
            typer.echo(f"Device {index}:")
            _echo_device(device)
    except SwitchbotctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("normalize")
def normalize_address(address: str) -> None:
    """Print the canonical form of a MAC address."""
    typer.echo(f"Original MAC: {address}")
    typer.echo(f"Normalized MAC: {mac.normalize(address)}")


@app.command("find")
def find_device(ctx: typer.Context, address: str) -> None:
    """Find a device by full or partial MAC address and show its status."""
    try:
        service = _build_service()
        target = _resolve_target(ctx, service, address)
        if target is None:
            typer.echo("No matching device found")
            return
        typer.echo(f"Device: {target}")
        _echo_status(asyncio.run(service.status(target)))
    except SwitchbotctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("status")
def device_status(
    ctx: typer.Context,
    device: str | None = typer.Argument(None, help="MAC address, full or partial"),
    as_json: bool = typer.Option(False, "--json", help="Print a JSON document for scripts"),
) -> None:
    """Show mode, state, and battery of a Bot.

    If DEVICE is omitted, scans and asks which device to query.
    """
    try:
        service = _build_service()
        target = _resolve_target(ctx, service, device)
        if target is None:
            typer.echo("Operation cancelled")
            return
        status = asyncio.run(service.status(target))
        if as_json:
            typer.echo(
                json.dumps(
                    {
                        "device_id": status.device_id,
                        "type": status.device_type.value,
                        "mode": status.mode.value if status.mode else "unknown",
                        "is_on": switch_is_on(status.state),
                        "battery": status.battery,
                        "error": status.error,
                    },
                    indent=2,
                )
            )
            return
        _echo_status(status)
    except SwitchbotctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("press")
def press(ctx: typer.Context, device: str | None = typer.Argument(None)) -> None:
    """Press the Bot's button."""
    _send_command(ctx, device, BotCommand.PRESS)


@app.command("on")
def turn_on(ctx: typer.Context, device: str | None = typer.Argument(None)) -> None:
    """Turn a Switch-mode Bot on."""
    _send_command(ctx, device, BotCommand.TURN_ON)


@app.command("off")
def turn_off(ctx: typer.Context, device: str | None = typer.Argument(None)) -> None:
    """Turn a Switch-mode Bot off."""
    _send_command(ctx, device, BotCommand.TURN_OFF)


async def _operate_all(
    service: BotService,
    bots: Sequence[DeviceAdvertisement],
    command: BotCommand,
) -> tuple[list[str], list[str], list[str]]:
    sent: list[str] = []
    unconfirmed: list[str] = []
    skipped: list[str] = []
    for index, bot in enumerate(bots, start=1):
        if bot.mode is not BotMode.SWITCH:
            typer.echo(f"[{index}/{len(bots)}] Skipping {bot.address}: not in Switch mode")
            skipped.append(bot.address)
            continue
        typer.echo(f"[{index}/{len(bots)}] {command.label}: {bot.address}")
        outcome = await service.send(bot.address, command)
        if outcome.actually_executed:
            sent.append(bot.address)
        else:
            unconfirmed.append(f"{bot.address} - {outcome.error or 'unknown error'}")
        await asyncio.sleep(_BETWEEN_DEVICES_S)
    return sent, unconfirmed, skipped


def _auto_operate(ctx: typer.Context, command: BotCommand, yes: bool) -> None:
    try:
        service = _build_service()
        devices = asyncio.run(service.scan())
        bots = [device for device in devices if device.device_type is DeviceType.BOT]
        if not bots:
            typer.echo("No SwitchBot Bot devices found")
            return

        typer.echo(f"Found {len(bots)} Bot devices:")
        for bot in bots:
            typer.echo(f"  {bot.address} ({bot.mode.value if bot.mode else 'Unknown'} mode)")
        if not yes and not _options(ctx).api_mode:
            typer.confirm(f"{command.label} all of these devices?", abort=True)

        sent, unconfirmed, skipped = asyncio.run(_operate_all(service, bots, command))
        typer.echo("Operation summary:")
        typer.echo(f"  Confirmed: {len(sent)}")
        typer.echo(f"  Unconfirmed: {len(unconfirmed)}")
        typer.echo(f"  Skipped (not in Switch mode): {len(skipped)}")
        for line in unconfirmed:
            typer.echo(f"    {line}")
    except SwitchbotctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("auto-on")
def auto_on(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Turn on every Switch-mode Bot in range."""
    _auto_operate(ctx, BotCommand.TURN_ON, yes)


@app.command("auto-off")
def auto_off(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Turn off every Switch-mode Bot in range."""
    _auto_operate(ctx, BotCommand.TURN_OFF, yes)


@app.command("server")
def server_status() -> None:
    """Show runtime information relevant to Bluetooth access."""
    try:
        service = _build_service()
        status = asyncio.run(service.server_status())
        typer.echo(f"Platform: {status.platform}")
        typer.echo(f"Python version: {status.runtime_version}")
        typer.echo(f"Uptime: {status.uptime_s:.2f} seconds")
        typer.echo(f"Elevated privileges: {'Yes' if status.has_elevated_privileges else 'No'}")
        typer.echo(status.message)
    except SwitchbotctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("devices")
def list_devices(
    sources: bool = typer.Option(False, "--sources", help="Also list the config files that were loaded"),
) -> None:
    """List devices from the config file."""
    try:
        service = _build_service()
        if sources:
            typer.echo("Config sources:")
            for source in service.config_sources:
                typer.echo(f"  {source}")
        if not service.settings.devices:
            typer.echo("No devices configured")
            return
        for device in service.settings.devices:
            auto_off = f", auto-off after {device.auto_off_delay_s:g}s" if device.auto_off else ""
            typer.echo(f"{device.name}: {device.device_id} ({device.mode} mode{auto_off})")
    except SwitchbotctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


async def _switch(service: BotService, config: DeviceConfig, value: bool) -> bool:
    switch = BotSwitch(config, service)
    try:
        return await switch.set_on(value)
    finally:
        await switch.close()


@app.command("switch")
def switch_device(name: str, state: str = typer.Argument(..., help="on or off")) -> None:
    """Drive a configured device the way a smart-home host would."""
    try:
        service = _build_service()
        config = service.settings.device_by_name(name)
        if config is None:
            raise DeviceSelectionError(
                f"No configured device named '{name}'. Use 'switchbotctl devices' to list them."
            )
        lowered = state.strip().lower()
        if lowered not in {"on", "off"}:
            raise DeviceSelectionError(f"State must be 'on' or 'off', not '{state}'")
        result = asyncio.run(_switch(service, config, lowered == "on"))
        typer.echo(f"{config.name} is now {'ON' if result else 'OFF'}")
    except SwitchbotctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
