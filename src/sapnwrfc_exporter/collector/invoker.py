"""
Target invoker: one function module call against one application server.

Every failure here (logon, call, malformed response) is logged and turned
into None, so a single unreachable server never takes down a scrape.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Iterable, List, Optional

from sapnwrfc_exporter.collector.aggregator import aggregate
from sapnwrfc_exporter.collector.base import Connector
from sapnwrfc_exporter.collector.payload import extract_table
from sapnwrfc_exporter.errors import CallError, ConnectError, PayloadError
from sapnwrfc_exporter.metrics import MetricDefinition, ServerTarget, StatRow, SystemTarget

log = logging.getLogger(__name__)


class TargetInvoker:

    def __init__(self, connector: Connector, max_in_flight: Optional[int] = None):
        self._connector = connector
        # Caps concurrent sessions across the whole fan-out tree
        self._slots = (
            threading.BoundedSemaphore(max_in_flight) if max_in_flight else None
        )

    def invoke(
        self,
        metric: MetricDefinition,
        system: SystemTarget,
        server: ServerTarget,
    ) -> Optional[List[StatRow]]:
        if not tags_match(metric.tag_filter, system.tags):
            log.debug("Metric %s not relevant for system %s", metric.name, system.name)
            return None

        slot = self._slots if self._slots is not None else contextlib.nullcontext()
        with slot:
            try:
                session = self._connector.connect(system, server)
            except ConnectError as e:
                log.error(
                    "Can't connect to system (metric=%s, system=%s, server=%s): %s",
                    metric.name, system.name, server.name, e,
                )
                return None

            with session:
                try:
                    response = session.call(metric.fumo, metric.params)
                    rows = extract_table(response, metric.table)
                except PayloadError as e:
                    log.error(
                        "Unexpected response from %s (metric=%s, system=%s, server=%s, table=%s): %s",
                        metric.fumo, metric.name, system.name, server.name, metric.table, e,
                    )
                    return None
                except CallError as e:
                    log.error(
                        "Can't call function module %s (metric=%s, system=%s, server=%s): %s",
                        metric.fumo, metric.name, system.name, server.name, e,
                    )
                    return None

        return aggregate(rows, metric, system.name, system.usage, server.name)


def tags_match(required: Iterable[str], tags: Iterable[str]) -> bool:
    """True if every required tag is present, ignoring case."""
    have = {t.lower() for t in tags}
    return all(t.lower() in have for t in required)
