"""
Application server discovery.

At startup every system is asked for its server list (TH_SERVER_LIST) via
its configured message/application server. Entries look like
"sapapp01_P01_00": host, SID and instance number. Systems that can't be
reached keep their configured server so they are still scraped.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from sapnwrfc_exporter.collector.base import Connector
from sapnwrfc_exporter.collector.payload import RfcValue, extract_table
from sapnwrfc_exporter.errors import CallError, ConnectError
from sapnwrfc_exporter.metrics import ServerTarget, SystemTarget

log = logging.getLogger(__name__)

SERVER_LIST_FUMO = "TH_SERVER_LIST"
SERVER_LIST_TABLE = "LIST"


def parse_server_name(name: str) -> ServerTarget:
    """Split "host_SID_NN" into a ServerTarget(host, NN)."""
    parts = name.strip().split("_")
    if len(parts) < 3:
        raise ValueError(f"unexpected server name {name!r}")
    return ServerTarget(name=parts[0].strip(), sysnr=parts[2].strip())


def list_servers(connector: Connector, system: SystemTarget) -> List[ServerTarget]:
    """Ask one system for its application servers. Raises ConnectError/CallError."""
    with connector.connect(system, system.default_server) as session:
        response = session.call(SERVER_LIST_FUMO, {})

    servers = []
    for row in extract_table(response, SERVER_LIST_TABLE):
        name = RfcValue(row.get("NAME")).as_string()
        try:
            server = parse_server_name(name)
        except ValueError as e:
            log.warning("Skipping server entry of system %s: %s", system.name, e)
            continue
        if server not in servers:
            servers.append(server)
    return servers


def discover_servers(connector: Connector, systems: Iterable[SystemTarget]) -> None:
    """Fill in SystemTarget.servers for every system. Run once, before the first scrape."""
    for system in systems:
        try:
            servers = list_servers(connector, system)
        except (ConnectError, CallError) as e:
            log.error("Can't retrieve server list (system=%s): %s", system.name, e)
            servers = []

        if not servers:
            log.warning("No servers found for system %s, using %s", system.name, system.server)
            servers = [system.default_server]

        system.servers = servers
        log.info("System %s: %d application server(s)", system.name, len(servers))
