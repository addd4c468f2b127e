"""
Core data model for the exporter.

Metric definitions and system targets come from the config file and are
read-only once the exporter is up. Everything else (StatRow, MetricSnapshot,
CollectionResult) is rebuilt from scratch on every scrape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

METRIC_KINDS = ("gauge", "counter")

# Every aggregated sample carries exactly these labels, in this order
STAT_LABELS = ("system", "usage", "server", "count")

# Bucket value that matches every row that passes the row filter
TOTAL_BUCKET = "total"


@dataclass(frozen=True)
class MetricDefinition:
    """One table metric: which function module to call and how to count its rows."""

    name: str
    help: str
    fumo: str
    table: str
    kind: str = "gauge"
    params: Mapping[str, Any] = field(default_factory=dict)
    tag_filter: Tuple[str, ...] = ()
    row_filter: Mapping[str, Tuple[Any, ...]] = field(default_factory=dict)
    row_count: Mapping[str, Tuple[Any, ...]] = field(default_factory=dict)
    all_servers: bool = False


@dataclass(frozen=True)
class ServerTarget:
    """One application server instance of a system."""

    name: str
    sysnr: str


@dataclass
class SystemTarget:
    """A SAP system to scrape.

    `servers` is filled in by server discovery at startup and must not be
    touched after the first scrape.
    """

    name: str
    server: str
    sysnr: str
    client: str = ""
    lang: str = "en"
    user: str = ""
    password: str = field(default="", repr=False)
    usage: str = ""
    tags: Tuple[str, ...] = ()
    servers: List[ServerTarget] = field(default_factory=list)

    @property
    def default_server(self) -> ServerTarget:
        return ServerTarget(name=self.server, sysnr=self.sysnr)


@dataclass(frozen=True)
class StatRow:
    """One aggregated measurement with its label set."""

    value: float
    labels: Tuple[str, ...]
    label_values: Tuple[str, ...]

    def __post_init__(self):
        if len(self.labels) != len(self.label_values):
            raise ValueError(
                f"label count mismatch: {len(self.labels)} names, "
                f"{len(self.label_values)} values"
            )

    def label_dict(self) -> Dict[str, str]:
        return dict(zip(self.labels, self.label_values))


@dataclass
class MetricSnapshot:
    """All samples of one metric definition for a single scrape."""

    name: str
    help: str
    kind: str
    stats: List[StatRow] = field(default_factory=list)

    def summary(self) -> List[dict]:
        """Return plain dicts for display or JSON output."""
        return [
            {"metric": self.name.lower(), "type": self.kind, "value": s.value, **s.label_dict()}
            for s in self.stats
        ]


@dataclass
class CollectionResult:
    """Everything gathered by one scrape."""

    metrics: List[MetricSnapshot] = field(default_factory=list)

    def sample_count(self) -> int:
        return sum(len(m.stats) for m in self.metrics)

    def get(self, name: str) -> MetricSnapshot:
        for metric in self.metrics:
            if metric.name.lower() == name.lower():
                return metric
        raise KeyError(f"Metric '{name}' not in collection result.")
