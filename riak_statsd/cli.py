"""Command-line interface for the Riak statsd relay."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import Settings
from .relay import LivenessCheckError, MetricEncoder, RiakClient, StatsFetchError, run_relay
from .relay.metrics import format_value
from .utils import get_logger, setup_logging

app = typer.Typer(
    name="riak-statsd",
    help="Send Riak stats to statsd every 60s",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="YAML config file")
NODENAME_OPTION = typer.Option(None, "-nodename", "--nodename", help="Riak node name [default: riak]")
RIAK_HOST_OPTION = typer.Option(None, "-riak_host", "--riak-host", help="Riak host [default: 127.0.0.1]")
RIAK_PORT_OPTION = typer.Option(None, "-riak_http_port", "--riak-http-port", help="Riak HTTP port [default: 8098]")


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


def load_settings(config: Optional[Path] = None, **overrides) -> Settings:
    """Build settings from defaults, environment, YAML file and CLI flags."""
    base = Settings.from_yaml(config) if config else Settings()
    return base.with_overrides(**overrides)


@app.command()
def run(
    config: Optional[Path] = CONFIG_OPTION,
    nodename: Optional[str] = NODENAME_OPTION,
    riak_host: Optional[str] = RIAK_HOST_OPTION,
    riak_http_port: Optional[int] = RIAK_PORT_OPTION,
    statsd_host: Optional[str] = typer.Option(None, "-statsd_host", "--statsd-host", help="Statsd host [default: 127.0.0.1]"),
    statsd_port: Optional[int] = typer.Option(None, "-statsd_port", "--statsd-port", help="Statsd port [default: 8125]"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file"),
):
    """Relay Riak stats to statsd until terminated."""
    settings = load_settings(
        config,
        nodename=nodename,
        riak_host=riak_host,
        riak_http_port=riak_http_port,
        statsd_host=statsd_host,
        statsd_port=statsd_port,
        log_level=log_level,
        log_file=log_file,
    )
    setup_logging(settings.log_level, settings.log_file)
    if config:
        logger.info(f"Loaded config from {config}")

    exit_code = run_relay(settings)
    if exit_code:
        raise typer.Exit(exit_code)


@app.command()
def check(
    config: Optional[Path] = CONFIG_OPTION,
    riak_host: Optional[str] = RIAK_HOST_OPTION,
    riak_http_port: Optional[int] = RIAK_PORT_OPTION,
):
    """Ping the Riak node once."""
    settings = load_settings(config, riak_host=riak_host, riak_http_port=riak_http_port)

    async def ping():
        async with RiakClient(settings.riak_host, settings.riak_http_port, settings.riak_timeout) as client:
            await client.check_liveness()

    try:
        run_async(ping())
    except LivenessCheckError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Riak at {settings.riak_host}:{settings.riak_http_port} is alive[/green]")


@app.command()
def dump(
    config: Optional[Path] = CONFIG_OPTION,
    nodename: Optional[str] = NODENAME_OPTION,
    riak_host: Optional[str] = RIAK_HOST_OPTION,
    riak_http_port: Optional[int] = RIAK_PORT_OPTION,
    raw: bool = typer.Option(False, "--raw", help="Print statsd lines only"),
):
    """Fetch stats once and show what would be sent, without sending."""
    settings = load_settings(
        config,
        nodename=nodename,
        riak_host=riak_host,
        riak_http_port=riak_http_port,
    )

    async def fetch():
        async with RiakClient(settings.riak_host, settings.riak_http_port, settings.riak_timeout) as client:
            return await client.fetch_stats()

    try:
        status = run_async(fetch())
    except StatsFetchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    encoder = MetricEncoder()

    if raw:
        for line in encoder.encode(settings.nodename, status):
            typer.echo(line)
        return

    table = Table(title=f"Metrics for {settings.nodename}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_column("Type")

    for name, metric_type in encoder.metric_types.items():
        table.add_row(f"{settings.nodename}.{name}", format_value(status.get(name)), metric_type.value)

    console.print(table)


if __name__ == "__main__":
    app()
