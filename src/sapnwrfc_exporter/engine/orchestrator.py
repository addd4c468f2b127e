"""
Collection orchestrator.

Fans out metrics x systems x servers, one task per leaf call, and merges the
results back into a CollectionResult. Holds no per-scrape state, so collect()
may be called from several scrape threads at once.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence

from sapnwrfc_exporter.collector.invoker import TargetInvoker
from sapnwrfc_exporter.engine.fanout import parallel_map
from sapnwrfc_exporter.metrics import (
    CollectionResult,
    MetricDefinition,
    MetricSnapshot,
    StatRow,
    SystemTarget,
)

log = logging.getLogger(__name__)


class Orchestrator:

    def __init__(
        self,
        metrics: Sequence[MetricDefinition],
        systems: Sequence[SystemTarget],
        invoker: TargetInvoker,
        scrape_timeout: Optional[float] = None,
    ):
        self._metrics = tuple(metrics)
        self._systems = tuple(systems)
        self._invoker = invoker
        self._scrape_timeout = scrape_timeout

    def collect(self) -> CollectionResult:
        """Run one full scrape."""
        start = time.monotonic()
        deadline = start + self._scrape_timeout if self._scrape_timeout else None

        # Only the server level waits on the deadline, outer levels just join
        snapshots = parallel_map(
            lambda metric: self._collect_metric(metric, deadline),
            self._metrics,
            name="metric",
        )
        result = CollectionResult(metrics=snapshots)

        log.debug(
            "Scrape finished in %.3fs: %d metrics, %d samples",
            time.monotonic() - start, len(result.metrics), result.sample_count(),
        )
        return result

    def _collect_metric(self, metric: MetricDefinition, deadline: Optional[float]) -> MetricSnapshot:
        return MetricSnapshot(
            name=metric.name,
            help=metric.help,
            kind=metric.kind,
            stats=self._collect_systems(metric, deadline),
        )

    def _collect_systems(self, metric: MetricDefinition, deadline: Optional[float]) -> List[StatRow]:
        per_system = parallel_map(
            lambda system: self._collect_servers(metric, system, deadline),
            self._systems,
            name="system",
        )
        return [stat for stats in per_system for stat in stats]

    def _collect_servers(
        self,
        metric: MetricDefinition,
        system: SystemTarget,
        deadline: Optional[float],
    ) -> List[StatRow]:
        servers = system.servers if metric.all_servers else system.servers[:1]
        per_server = parallel_map(
            lambda server: self._invoker.invoke(metric, system, server),
            servers,
            deadline=deadline,
            name="server",
        )
        return [stat for stats in per_server for stat in stats]
