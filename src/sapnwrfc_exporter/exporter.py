"""
Bridge from CollectionResult to prometheus_client.

SnapshotCollector is a custom collector: every registry scrape triggers one
fresh Orchestrator.collect() and turns each StatRow into a sample. Families
are built on the fly because label values are only known after aggregation.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Optional

from prometheus_client import REGISTRY, CollectorRegistry
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from sapnwrfc_exporter.metrics import CollectionResult, MetricSnapshot

log = logging.getLogger(__name__)

_FAMILY_TYPES = {
    "gauge": GaugeMetricFamily,
    "counter": CounterMetricFamily,
}


class SnapshotCollector:
    """Custom collector that scrapes all systems on every collect()."""

    def __init__(self, stats: Callable[[], CollectionResult]):
        # Must be safe to call from concurrent scrapes
        self._stats = stats

    def describe(self) -> List[Metric]:
        # Descriptors depend on the data, so describe by collecting once
        return list(self.collect())

    def collect(self) -> Iterator[Metric]:
        result = self._stats()
        for snapshot in result.metrics:
            family = build_family(snapshot)
            if family is not None:
                yield family


def build_family(snapshot: MetricSnapshot) -> Optional[Metric]:
    """One metric family for a snapshot, or None when it has no samples."""
    if not snapshot.stats:
        return None

    family_type = _FAMILY_TYPES.get(snapshot.kind.lower())
    if family_type is None:
        log.error("Unknown metric type %r for metric %s", snapshot.kind, snapshot.name)
        return None

    labels = list(snapshot.stats[0].labels)
    family = family_type(snapshot.name.lower(), snapshot.help, labels=labels)
    for stat in snapshot.stats:
        if list(stat.labels) != labels:
            log.error(
                "Label names %s don't match %s for metric %s, sample dropped",
                stat.labels, labels, snapshot.name,
            )
            continue
        family.add_metric(list(stat.label_values), stat.value)
    return family


def register(
    stats: Callable[[], CollectionResult],
    registry: CollectorRegistry = REGISTRY,
) -> SnapshotCollector:
    """Create the collector and register it. Call once per process."""
    collector = SnapshotCollector(stats)
    registry.register(collector)
    return collector
