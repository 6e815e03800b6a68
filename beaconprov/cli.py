"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer

from beaconprov.core.cancel import CancellationToken
from beaconprov.core.errors import BeaconprovError, CancelledError
from beaconprov.core.model import BatchReport, ProvisioningOutcome
from beaconprov.core.service import ProvisioningService

app = typer.Typer(help="Batch flashing and configuration of BLE beacons")

EXIT_CANCELLED = 130

SettingsOption = typer.Option(None, "--settings", help="Station settings YAML overriding the defaults")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress details"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_service(settings: Path | None, token: CancellationToken | None = None) -> ProvisioningService:
    service = ProvisioningService(settings_path=settings, token=token, notify=typer.echo)
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    for warning in getattr(service, "runtime_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


@contextmanager
def _cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    def _handler(signum: int, frame: object) -> None:
        token.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _describe(outcome: ProvisioningOutcome) -> str:
    text = f"#{outcome.index} {outcome.status.value}"
    if outcome.mac:
        text += f" {outcome.mac}"
    if outcome.error is not None:
        text += f": {outcome.error}"
    return text


@app.command("preview")
def preview(
    source: Path = typer.Argument(..., help="CSV file with one row per device"),
    index: int | None = typer.Option(None, "--index", help="Only show this 1-based entry"),
    settings: Path | None = SettingsOption,
) -> None:
    """Validate a batch file and print the frames each entry would get."""
    try:
        service = _build_service(settings)
        entries = service.preview(source)
        for entry in entries:
            config = entry.config
            if index is not None and config.index != index:
                continue
            typer.echo(
                f"#{config.index} {config.name}: mode={config.mode} rate={config.rate} "
                f"txpower={config.txpower_label} ({config.txpower_code})"
            )
            for slot, frame in entry.frames.items():
                typer.echo(f"  {slot}: {frame}")
        typer.echo(f"{len(entries)} entries valid")
    except BeaconprovError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("firmware")
def firmware(settings: Path | None = SettingsOption) -> None:
    """Download (if needed) and check the firmware image."""
    try:
        service = _build_service(settings)
        path = service.prepare_firmware()
        typer.echo(f"Firmware ready: {path}")
    except BeaconprovError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("flash")
def flash(settings: Path | None = SettingsOption) -> None:
    """Flash a single device and exit."""
    token = CancellationToken()
    try:
        service = _build_service(settings, token)
        with _cancel_on_interrupt(token):
            outcome = service.flash_once()
    except CancelledError:
        typer.echo("Cancelled", err=True)
        raise typer.Exit(code=EXIT_CANCELLED) from None
    except BeaconprovError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(_describe(outcome))
    if not outcome.ok:
        raise typer.Exit(code=1)


@app.command("watch")
def watch(settings: Path | None = SettingsOption) -> None:
    """Flash every inserted device until interrupted."""
    token = CancellationToken()
    try:
        service = _build_service(settings, token)
        with _cancel_on_interrupt(token):
            outcomes = service.watch()
    except BeaconprovError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    flashed = sum(1 for outcome in outcomes if outcome.ok)
    typer.echo(f"Flashed {flashed} of {len(outcomes)} device(s)")


@app.command("batch")
def batch(
    source: Path = typer.Argument(..., help="CSV file with one row per device"),
    resume: bool = typer.Option(False, "--resume", help="Continue from the saved cursor"),
    ledger: Path | None = typer.Option(None, "--ledger", help="Resume cursor file"),
    settings: Path | None = SettingsOption,
) -> None:
    """Flash, configure, verify and label every device in SOURCE."""
    token = CancellationToken()
    try:
        service = _build_service(settings, token)
        with _cancel_on_interrupt(token):
            report = service.run_batch(source, resume=resume, ledger_path=ledger)
    except CancelledError:
        typer.echo("Cancelled; rerun with --resume to continue", err=True)
        raise typer.Exit(code=EXIT_CANCELLED) from None
    except BeaconprovError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    _print_report(report)
    if report.error is not None:
        typer.echo(f"Error: {report.error}", err=True)
        typer.echo(f"Fix the problem and rerun with --resume to continue at entry {report.next_index}", err=True)
        raise typer.Exit(code=1)


def _print_report(report: BatchReport) -> None:
    for outcome in report.outcomes:
        typer.echo(_describe(outcome))
    done = report.next_index - report.start
    typer.echo(f"Provisioned {done} device(s); next entry {report.next_index} of {report.total}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
