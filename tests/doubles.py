"""Connector doubles that answer from fixed tables and record every call."""

import threading

from sapnwrfc_exporter.collector.base import Connector, Session
from sapnwrfc_exporter.errors import CallError, ConnectError
from sapnwrfc_exporter.metrics import MetricDefinition, ServerTarget, SystemTarget


class FakeSession(Session):

    def __init__(self, connector, system, server):
        self._connector = connector
        self._system = system
        self._server = server
        self.closed = False

    def call(self, fumo, params):
        with self._connector.lock:
            self._connector.calls.append((self._system.name, self._server.name, fumo))
        if self._server.name in self._connector.failing_calls:
            raise CallError(f"{fumo} failed")
        response = self._connector.responses[fumo]
        return response(self._system, self._server) if callable(response) else response

    def close(self):
        self.closed = True
        with self._connector.lock:
            self._connector.closed += 1


class FakeConnector(Connector):

    def __init__(self, responses, unreachable=(), failing_calls=()):
        self.responses = dict(responses)
        self.unreachable = set(unreachable)
        self.failing_calls = set(failing_calls)
        self.connects = []
        self.calls = []
        self.closed = 0
        self.lock = threading.Lock()

    def connect(self, system, server):
        with self.lock:
            self.connects.append((system.name, server.name))
        if server.name in self.unreachable:
            raise ConnectError(f"{server.name} unreachable")
        return FakeSession(self, system, server)

    def name(self):
        return "fake"


def make_metric(**overrides) -> MetricDefinition:
    defaults = dict(
        name="sap_status",
        help="Rows by status",
        fumo="Z_STATUS",
        table="ROWS",
        row_count={"status": ("open", "closed", "total")},
    )
    defaults.update(overrides)
    return MetricDefinition(**defaults)


def make_system(name="P01", servers=("app01",), **overrides) -> SystemTarget:
    defaults = dict(
        name=name,
        server=servers[0] if servers else "app01",
        sysnr="00",
        usage="Production",
        tags=("prod",),
        servers=[ServerTarget(name=s, sysnr="00") for s in servers],
    )
    defaults.update(overrides)
    return SystemTarget(**defaults)
