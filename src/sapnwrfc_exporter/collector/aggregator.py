"""
Row filter and aggregator.

Turns one table returned by a function module into labeled counts. Every
(field, bucket) pair declared in a metric's row_count yields exactly one
StatRow, even when nothing matched, so a series never disappears from the
exposition just because a table happened to be empty.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from sapnwrfc_exporter.collector.payload import label_text
from sapnwrfc_exporter.metrics import STAT_LABELS, TOTAL_BUCKET, MetricDefinition, StatRow

log = logging.getLogger(__name__)


def aggregate(
    rows: Iterable[Mapping[str, Any]],
    metric: MetricDefinition,
    system_label: str,
    usage_label: str,
    server_label: str,
) -> List[StatRow]:
    """Count rows per row_count bucket for one (system, server) target."""
    buckets = valid_buckets(metric, system_label)
    counts: Dict[Tuple[str, str], float] = {key: 0.0 for key in buckets}

    for row in rows:
        line = {str(k).upper(): v for k, v in row.items()}
        if metric.row_filter and not in_filter(line, metric.row_filter):
            continue
        for field, bucket in buckets:
            if bucket.lower() == TOTAL_BUCKET:
                counts[(field, bucket)] += 1
                continue
            value = label_text(line.get(field.upper()))
            if value is not None and value.lower().startswith(bucket.lower()):
                counts[(field, bucket)] += 1

    return [
        StatRow(
            value=counts[(field, bucket)],
            labels=STAT_LABELS,
            label_values=(
                system_label.lower(),
                usage_label.lower(),
                server_label.lower(),
                count_label(field, bucket),
            ),
        )
        for field, bucket in buckets
    ]


def valid_buckets(metric: MetricDefinition, system_label: str = "") -> List[Tuple[str, str]]:
    """(field, bucket) pairs of row_count, in config order, minus unusable values.

    Only strings and integers can form a label; anything else is logged and
    dropped.
    """
    buckets = []
    for field, values in metric.row_count.items():
        for value in values:
            bucket = label_text(value)
            if not bucket:
                log.error(
                    "Invalid row_count value %r for field %s (metric=%s, system=%s): "
                    "only string and int types are allowed",
                    value, field, metric.name, system_label,
                )
                continue
            buckets.append((field, bucket))
    return buckets


def in_filter(line: Mapping[str, Any], row_filter: Mapping[str, Iterable[Any]]) -> bool:
    """True if any configured field/value pair matches the row, ignoring case."""
    for field, values in row_filter.items():
        actual = label_text(line.get(field.upper()))
        if actual is None:
            continue
        for value in values:
            wanted = label_text(value)
            if wanted is not None and actual.lower() == wanted.lower():
                return True
    return False


def count_label(field: str, bucket: str) -> str:
    return f"{field}_{bucket}".lower()
