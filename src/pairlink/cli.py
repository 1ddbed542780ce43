"""CLI entry point for pairlink."""

import asyncio
import dataclasses
from pathlib import Path

import click

from pairlink import __version__
from pairlink.config import load_config
from pairlink.logging import setup_logging
from pairlink.pairing.qr_generator import QrGenerator, connect_uri


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None) -> None:
    """pairlink - Pair a PC and a phone with a code and relay messages."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["logger"] = setup_logging(ctx.obj["config"])


@main.command()
@click.option("--host", default=None, help="Address to bind (default: all interfaces).")
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    envvar="PORT",
    help="Port to listen on. Also read from $PORT.",
)
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the pairing server."""
    from pairlink.server import RelayServer

    config = ctx.obj["config"]
    if host is not None:
        config = dataclasses.replace(config, bind_address=host)
    if port is not None:
        config = dataclasses.replace(config, port=port)

    async def _serve():
        server = RelayServer(config=config)
        try:
            await server.start()
        except OSError as e:
            click.echo(f"Startup error: {e}", err=True)
            await server.close()
            raise SystemExit(1)
        click.echo(f"Server running on port {server.get_port()}")
        click.echo("Press Ctrl+C to stop")
        await server.run_forever()

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        pass


@main.command()
@click.argument("code")
def qr(code: str) -> None:
    """Print the QR code a PC would show for CODE."""
    click.echo(QrGenerator().to_terminal(connect_uri(code)))


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"pairlink version {__version__}")
