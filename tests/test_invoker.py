"""Tests for the target invoker: relevance check, session handling, failures."""

import threading
import time

from doubles import FakeConnector, make_metric, make_system

from sapnwrfc_exporter.collector.invoker import TargetInvoker, tags_match
from sapnwrfc_exporter.metrics import ServerTarget

ROWS = {"ROWS": [{"STATUS": "Open"}, {"STATUS": "closed"}]}


def _server(name="app01"):
    return ServerTarget(name=name, sysnr="00")


def test_invoke_returns_aggregated_rows():
    connector = FakeConnector({"Z_STATUS": ROWS})
    stats = TargetInvoker(connector).invoke(make_metric(), make_system(), _server())

    values = {s.label_values[3]: s.value for s in stats}
    assert values == {"status_open": 1, "status_closed": 1, "status_total": 2}
    assert connector.calls == [("P01", "app01", "Z_STATUS")]


def test_irrelevant_metric_never_connects():
    connector = FakeConnector({"Z_STATUS": ROWS})
    metric = make_metric(tag_filter=("prod",))
    system = make_system(tags=("dev",))

    assert TargetInvoker(connector).invoke(metric, system, _server()) is None
    assert connector.connects == []
    assert connector.calls == []


def test_tag_filter_is_case_insensitive():
    assert tags_match(["PROD", "erp"], ["Erp", "prod", "eu"])
    assert not tags_match(["prod", "erp"], ["prod"])
    assert tags_match([], [])


def test_connect_failure_returns_none_and_logs(caplog):
    connector = FakeConnector({"Z_STATUS": ROWS}, unreachable={"app01"})
    assert TargetInvoker(connector).invoke(make_metric(), make_system(), _server()) is None
    assert connector.calls == []
    assert "Can't connect" in caplog.text
    assert "server=app01" in caplog.text


def test_call_failure_closes_session():
    connector = FakeConnector({"Z_STATUS": ROWS}, failing_calls={"app01"})
    assert TargetInvoker(connector).invoke(make_metric(), make_system(), _server()) is None
    assert connector.closed == 1


def test_missing_table_is_skipped(caplog):
    connector = FakeConnector({"Z_STATUS": {"OTHER": []}})
    assert TargetInvoker(connector).invoke(make_metric(), make_system(), _server()) is None
    assert connector.closed == 1
    assert "Unexpected response" in caplog.text


def test_malformed_table_is_skipped():
    connector = FakeConnector({"Z_STATUS": {"ROWS": ["not", "rows"]}})
    assert TargetInvoker(connector).invoke(make_metric(), make_system(), _server()) is None


def test_table_name_lookup_ignores_case():
    connector = FakeConnector({"Z_STATUS": ROWS})
    stats = TargetInvoker(connector).invoke(make_metric(table="rows"), make_system(), _server())
    assert stats is not None


def test_session_closed_after_success():
    connector = FakeConnector({"Z_STATUS": ROWS})
    TargetInvoker(connector).invoke(make_metric(), make_system(), _server())
    assert connector.closed == 1


def test_max_in_flight_bounds_concurrent_calls():
    active = 0
    peak = 0
    lock = threading.Lock()

    def slow_rows(system, server):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.05)
        with lock:
            active -= 1
        return ROWS

    connector = FakeConnector({"Z_STATUS": slow_rows})
    invoker = TargetInvoker(connector, max_in_flight=2)
    threads = [
        threading.Thread(target=invoker.invoke, args=(make_metric(), make_system(), _server(f"app{i}")))
        for i in range(6)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(connector.calls) == 6
    assert peak <= 2
