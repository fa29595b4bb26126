"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import typer

from zclpoke.core.errors import ZclpokeError
from zclpoke.core.service import FIELDS, ExplorerService
from zclpoke.core.target_loader import load_targets
from zclpoke.transports.simulated import load_device

app = typer.Typer(help="Read, write, scan, and snapshot manufacturer-specific Zigbee attributes")

_EXIT_WORDS = {"quit", "exit"}


@dataclass
class _Options:
    device_file: Path | None
    target: str | None
    endpoint: int
    raw_hex: bool


@app.callback()
def main(
    ctx: typer.Context,
    device_file: Path | None = typer.Option(
        None,
        "--device-file",
        envvar="ZCLPOKE_DEVICE_FILE",
        help="YAML description of the (simulated) device to talk to",
    ),
    target: str | None = typer.Option(None, "--target", help="Target profile ID (default: match device model)"),
    endpoint: int = typer.Option(1, "--endpoint", min=1, help="Endpoint to address"),
    raw_hex: bool = typer.Option(False, "--raw-hex", help="Show values as raw hex only"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log each request"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = _Options(device_file=device_file, target=target, endpoint=endpoint, raw_hex=raw_hex)


def _build_service(options: _Options) -> ExplorerService:
    if options.device_file is None:
        raise typer.BadParameter("--device-file is required for device commands", param_hint="--device-file")
    device = load_device(options.device_file)
    service = ExplorerService.for_device(device, options.target)
    for warning in service.load_warnings:
        typer.echo(f"Warning: {warning}", err=True)
    service.set_endpoint(options.endpoint)
    service.set_raw_hex(options.raw_hex)
    return service


def _echo_fields(fields: dict[str, str]) -> None:
    for key, value in fields.items():
        if "\n" in value:
            typer.echo(f"{key}:\n{value}")
        else:
            typer.echo(f"{key}: {value}")


def _run_field(ctx: typer.Context, field: str, value: str) -> None:
    try:
        service = _build_service(ctx.obj)
        _echo_fields(asyncio.run(service.handle(field, value)))
    except ZclpokeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("targets")
def list_targets() -> None:
    """List available target profiles."""
    try:
        loaded = load_targets()
    except ZclpokeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    for warning in loaded.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    if not loaded.targets:
        typer.echo("No targets loaded")
        raise typer.Exit(code=1)

    for target in sorted(loaded.targets.values(), key=lambda t: t.id):
        code = f"0x{target.manufacturer_code:04X}" if target.manufacturer_code is not None else "none"
        typer.echo(f"{target.id}: {target.name}")
        typer.echo(f"  cluster: {target.cluster}, manufacturer code: {code}")
        typer.echo(f"  models: {', '.join(target.match.models)}")


@app.command("clusters")
def discover_clusters(ctx: typer.Context, which: str = typer.Argument("all", help='"all" or endpoint number')) -> None:
    """List input and output clusters per endpoint."""
    _run_field(ctx, "discover_clusters", which)


@app.command("read")
def read_attribute(ctx: typer.Context, attribute: str = typer.Argument(..., help='Attribute id, e.g. "0515"')) -> None:
    """Read a single attribute."""
    _run_field(ctx, "read_attribute", attribute)


@app.command("read-list")
def read_list(ctx: typer.Context, ids: str = typer.Argument(..., help='e.g. "0515,0516,0517"')) -> None:
    """Read a comma-separated list of attributes (max 64)."""
    _run_field(ctx, "read_list", ids)


@app.command("write")
def write_attribute(
    ctx: typer.Context,
    spec: str = typer.Argument(..., help='"ATTR:VALUE" or "ATTR:TYPE:VALUE", e.g. "0524:uint16:0014"'),
) -> None:
    """Write one attribute, then read it back."""
    _run_field(ctx, "write_attribute", spec)


@app.command("bulk-write")
def bulk_write(ctx: typer.Context, specs: str = typer.Argument(..., help='e.g. "0515:0a,0516:uint8:ff"')) -> None:
    """Write a comma-separated list of write specs (max 32)."""
    _run_field(ctx, "bulk_write", specs)


@app.command("scan")
def scan_range(ctx: typer.Context, attribute_range: str = typer.Argument(..., help='e.g. "0515-0530"')) -> None:
    """Read every attribute in an inclusive range (max 128)."""
    _run_field(ctx, "scan_range", attribute_range)


@app.command("snapshot")
def snapshot(
    ctx: typer.Context,
    command: str = typer.Argument(..., help='"snapshot:START-END", "compare", "export", "import:{json}" or "clear"'),
    input_file: Path | None = typer.Option(None, "--input", help="Load an exported snapshot before running"),
    output_file: Path | None = typer.Option(None, "--output", help="Write the resulting snapshot as JSON"),
) -> None:
    """Capture, compare, export or import attribute snapshots."""
    try:
        service = _build_service(ctx.obj)
        if input_file is not None:
            service.import_snapshot(input_file.read_text(encoding="utf-8"))
        _echo_fields(asyncio.run(service.handle("snapshot", command)))
        if output_file is not None:
            output_file.write_text(service.export_snapshot(), encoding="utf-8")
            typer.echo(f"Snapshot written to {output_file}")
    except OSError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    except ZclpokeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


async def _shell(service: ExplorerService, stream: TextIO) -> None:
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            return
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.lower() in _EXIT_WORDS:
            return
        if line.lower() == "help":
            typer.echo(f"Fields: {', '.join(FIELDS)}")
            continue

        field, _, value = line.partition(" ")
        try:
            _echo_fields(await service.handle(field, value.strip()))
        except ZclpokeError as exc:
            typer.echo(f"Error: {exc}", err=True)


@app.command("shell")
def shell(ctx: typer.Context) -> None:
    """Read "FIELD VALUE" lines from stdin and run them against one shared session."""
    try:
        service = _build_service(ctx.obj)
    except ZclpokeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    asyncio.run(_shell(service, sys.stdin))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
