"""
sapnwrfc-exporter entry point.

Usage:
    sapnwrfc-exporter --config config.yaml web --port 9663   Serve /metrics
    sapnwrfc-exporter --config config.yaml collect           One scrape, printed
    sapnwrfc-exporter fake-gateway --port 8000               Fake SAP gateway
"""

from __future__ import annotations

import logging
import threading

import click

from sapnwrfc_exporter import __version__
from sapnwrfc_exporter.collector.discovery import discover_servers
from sapnwrfc_exporter.collector.gateway import DEFAULT_URL_TEMPLATE, GatewayConnector
from sapnwrfc_exporter.collector.invoker import TargetInvoker
from sapnwrfc_exporter.config import load_config
from sapnwrfc_exporter.engine.orchestrator import Orchestrator
from sapnwrfc_exporter.errors import ConfigurationError

log = logging.getLogger("sapnwrfc_exporter")


@click.group()
@click.version_option(version=__version__, prog_name="sapnwrfc-exporter")
@click.option("--config", "config_path", default="config.yaml", envvar="SAPNWRFC_CONFIG",
              type=click.Path(dir_okay=False), help="YAML file with metrics and systems")
@click.option("--gateway-url", default=DEFAULT_URL_TEMPLATE, envvar="SAPNWRFC_GATEWAY_URL",
              help="RFC gateway URL template, {host} and {sysnr} are filled in per server")
@click.option("--timeout", default=10.0, envvar="SAPNWRFC_TIMEOUT",
              help="Timeout in seconds for each remote call")
@click.option("--scrape-timeout", default=0.0, envvar="SAPNWRFC_SCRAPE_TIMEOUT",
              help="Give up on a scrape after this many seconds (0 = wait for all targets)")
@click.option("--max-in-flight", default=0, envvar="SAPNWRFC_MAX_IN_FLIGHT",
              help="Max concurrent remote calls per scrape (0 = unbounded)")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path: str, gateway_url: str, timeout: float, scrape_timeout: float,
        max_in_flight: int, verbose: bool):
    """Prometheus exporter for SAP table data read via RFC."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["gateway_url"] = gateway_url
    ctx.obj["timeout"] = timeout
    ctx.obj["scrape_timeout"] = scrape_timeout
    ctx.obj["max_in_flight"] = max_in_flight


def _build_orchestrator(obj: dict) -> tuple:
    try:
        config = load_config(obj["config_path"])
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    connector = GatewayConnector(url_template=obj["gateway_url"], timeout_seconds=obj["timeout"])
    discover_servers(connector, config.systems)

    invoker = TargetInvoker(connector, max_in_flight=obj["max_in_flight"] or None)
    orchestrator = Orchestrator(
        config.metrics,
        config.systems,
        invoker,
        scrape_timeout=obj["scrape_timeout"] or None,
    )
    return orchestrator, connector


@cli.command()
@click.option("--port", default=9663, envvar="SAPNWRFC_PORT", help="Port for the /metrics endpoint")
@click.option("--address", default="0.0.0.0", help="Address to listen on")
@click.pass_context
def web(ctx, port: int, address: str):
    """Discover servers, then serve metrics until interrupted."""
    from prometheus_client import start_http_server

    from sapnwrfc_exporter.exporter import register

    orchestrator, connector = _build_orchestrator(ctx.obj)
    register(orchestrator.collect)

    start_http_server(port, addr=address)
    log.info("Serving metrics on http://%s:%d/metrics via %s", address, port, connector.name())
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        connector.close()


@cli.command()
@click.option("--output", type=click.Choice(["table", "jsonl"]), default="table",
              help="Output mode: table (Rich) or jsonl (one JSON line per sample)")
@click.pass_context
def collect(ctx, output: str):
    """Run a single scrape and print the samples."""
    from sapnwrfc_exporter.dashboard.terminal import print_table, write_jsonl

    orchestrator, connector = _build_orchestrator(ctx.obj)
    try:
        result = orchestrator.collect()
    finally:
        connector.close()

    if output == "jsonl":
        write_jsonl(result, connector.name())
    else:
        print_table(result, connector.name())


@cli.command("fake-gateway")
@click.option("--host", default="127.0.0.1", help="Address to bind")
@click.option("--port", default=8000, help="Port to bind")
def fake_gateway(host: str, port: int):
    """Run a fake RFC gateway backed by simulated tables."""
    from sapnwrfc_exporter.mock.fake_gateway import run_fake_gateway

    run_fake_gateway(host=host, port=port)


if __name__ == "__main__":
    cli()
