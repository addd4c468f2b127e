"""Tests for the prometheus_client bridge, using a private registry."""

from prometheus_client import CollectorRegistry, generate_latest

from sapnwrfc_exporter.exporter import SnapshotCollector, build_family, register
from sapnwrfc_exporter.metrics import STAT_LABELS, CollectionResult, MetricSnapshot, StatRow


def _stat(value, system="p01", server="app01", count="status_open"):
    return StatRow(value=value, labels=STAT_LABELS, label_values=(system, "production", server, count))


def _result():
    return CollectionResult(metrics=[
        MetricSnapshot(name="SAP_Status", help="Rows by status", kind="gauge",
                       stats=[_stat(2), _stat(0, count="status_closed")]),
        MetricSnapshot(name="sap_dumps", help="Short dumps", kind="counter",
                       stats=[_stat(7, count="type_total")]),
        MetricSnapshot(name="sap_empty", help="Nothing here", kind="gauge", stats=[]),
    ])


def test_exposition_contains_every_stat():
    registry = CollectorRegistry()
    register(_result, registry=registry)
    text = generate_latest(registry).decode()

    assert "# TYPE sap_status gauge" in text
    assert 'sap_status{system="p01",usage="production",server="app01",count="status_open"} 2.0' in text
    assert 'sap_status{system="p01",usage="production",server="app01",count="status_closed"} 0.0' in text
    assert "# TYPE sap_dumps_total counter" in text
    assert 'sap_dumps_total{system="p01",usage="production",server="app01",count="type_total"} 7.0' in text
    assert "sap_empty" not in text


def test_every_scrape_collects_again():
    calls = []

    def stats():
        calls.append(1)
        return _result()

    registry = CollectorRegistry()
    register(stats, registry=registry)
    after_register = len(calls)

    generate_latest(registry)
    generate_latest(registry)
    assert len(calls) == after_register + 2


def test_describe_collects_once():
    calls = []

    def stats():
        calls.append(1)
        return _result()

    families = SnapshotCollector(stats).describe()
    assert len(calls) == 1
    assert sorted(f.name for f in families) == ["sap_dumps", "sap_status"]


def test_family_samples():
    family = build_family(_result().metrics[0])

    assert family.name == "sap_status"
    assert family.documentation == "Rows by status"
    assert [s.value for s in family.samples] == [2, 0]
    assert family.samples[0].labels == {
        "system": "p01", "usage": "production", "server": "app01", "count": "status_open",
    }


def test_unknown_kind_is_dropped():
    snapshot = MetricSnapshot(name="x", help="x", kind="histogram", stats=[_stat(1)])
    assert build_family(snapshot) is None


def test_mismatched_labels_are_dropped():
    odd = StatRow(value=5, labels=("system",), label_values=("p01",))
    snapshot = MetricSnapshot(name="x", help="x", kind="gauge", stats=[_stat(1), odd])
    family = build_family(snapshot)
    assert [s.value for s in family.samples] == [1]


def test_counter_total_suffix_is_not_doubled():
    snapshot = MetricSnapshot(name="sap_dumps_total", help="Short dumps", kind="counter",
                              stats=[_stat(3, count="type_total")])
    registry = CollectorRegistry()
    register(lambda: CollectionResult(metrics=[snapshot]), registry=registry)
    text = generate_latest(registry).decode()

    assert "# TYPE sap_dumps_total counter" in text
    assert "sap_dumps_total_total" not in text
