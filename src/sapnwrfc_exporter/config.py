"""
Config file loading.

The exporter reads one YAML file with a `metrics` list (table metric
definitions) and a `systems` list (SAP systems to scrape). Everything is
validated here so that a bad file stops the exporter at startup instead of
producing broken series later.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from sapnwrfc_exporter.collector.aggregator import count_label, valid_buckets
from sapnwrfc_exporter.errors import ConfigurationError
from sapnwrfc_exporter.metrics import METRIC_KINDS, MetricDefinition, SystemTarget

log = logging.getLogger(__name__)


@dataclass
class ExporterConfig:
    metrics: List[MetricDefinition] = field(default_factory=list)
    systems: List[SystemTarget] = field(default_factory=list)


def load_config(path: str | Path, environ: Optional[Mapping[str, str]] = None) -> ExporterConfig:
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Can't read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Can't parse config file {path}: {e}") from e

    config = parse_config(data or {}, environ=os.environ if environ is None else environ)
    log.info(
        "Loaded %s: %d metrics, %d systems", path, len(config.metrics), len(config.systems)
    )
    return config


def parse_config(data: Mapping[str, Any], environ: Mapping[str, str]) -> ExporterConfig:
    if not isinstance(data, Mapping):
        raise ConfigurationError("config root must be a mapping")

    metrics = [parse_metric(raw) for raw in _list(data, "metrics")]
    systems = [parse_system(raw, environ) for raw in _list(data, "systems")]

    _check_unique([m.name.lower() for m in metrics], "metric name")
    _check_unique([s.name.lower() for s in systems], "system name")
    check_exposed_names(metrics)
    return ExporterConfig(metrics=metrics, systems=systems)


def parse_metric(raw: Mapping[str, Any]) -> MetricDefinition:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"metric entry must be a mapping, got {raw!r}")
    name = _required(raw, "name", "metric")

    kind = str(raw.get("type", "gauge")).lower()
    if kind not in METRIC_KINDS:
        raise ConfigurationError(f"metric {name}: type must be one of {METRIC_KINDS}, got {kind!r}")

    params = raw.get("params") or {}
    if not isinstance(params, Mapping):
        raise ConfigurationError(f"metric {name}: params must be a mapping")

    metric = MetricDefinition(
        name=name,
        help=_required(raw, "help", f"metric {name}"),
        kind=kind,
        fumo=_required(raw, "fumo", f"metric {name}").upper(),
        table=_required(raw, "table", f"metric {name}"),
        params=dict(params),
        tag_filter=tuple(str(t) for t in _as_list(raw.get("tag_filter"))),
        row_filter=_value_map(raw.get("row_filter"), name, "row_filter"),
        row_count=_value_map(raw.get("row_count"), name, "row_count"),
        all_servers=bool(raw.get("all_servers", False)),
    )
    check_label_collisions(metric)
    return metric


def check_label_collisions(metric: MetricDefinition) -> None:
    """Reject row_count entries whose "field_bucket" labels end up identical."""
    seen: Dict[str, Tuple[str, str]] = {}
    for field_name, bucket in valid_buckets(metric):
        label = count_label(field_name, bucket)
        if label in seen:
            raise ConfigurationError(
                f"metric {metric.name}: row_count {field_name}/{bucket} and "
                f"{seen[label][0]}/{seen[label][1]} both produce count label {label!r}"
            )
        seen[label] = (field_name, bucket)


def exposed_names(metric: MetricDefinition) -> Tuple[str, ...]:
    """Sample names prometheus_client reserves for the metric.

    Counters are exposed as <name>_total with a trailing _total in the
    configured name stripped first, and also claim <name>_created.
    """
    name = metric.name.lower()
    if metric.kind != "counter":
        return (name,)
    if name.endswith("_total"):
        name = name[: -len("_total")]
    return (name, f"{name}_total", f"{name}_created")


def check_exposed_names(metrics: List[MetricDefinition]) -> None:
    owners: Dict[str, str] = {}
    for metric in metrics:
        for exposed in exposed_names(metric):
            other = owners.setdefault(exposed, metric.name)
            if other != metric.name:
                raise ConfigurationError(
                    f"metrics {other} and {metric.name} are both exposed as {exposed!r}"
                )


def parse_system(raw: Mapping[str, Any], environ: Mapping[str, str]) -> SystemTarget:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"system entry must be a mapping, got {raw!r}")
    name = _required(raw, "name", "system")

    password = ""
    password_env = raw.get("password_env")
    if password_env:
        password = environ.get(str(password_env), "")
        if not password:
            log.error("Password variable %s not set for system %s", password_env, name)

    return SystemTarget(
        name=name,
        server=_required(raw, "server", f"system {name}"),
        sysnr=_sysnr(raw.get("sysnr"), name),
        client=str(raw.get("client", "") or ""),
        lang=str(raw.get("lang", "en") or ""),
        user=str(raw.get("user", "") or ""),
        password=password,
        usage=str(raw.get("usage", "") or ""),
        tags=tuple(str(t) for t in _as_list(raw.get("tags"))),
    )


def _sysnr(value: Any, system: str) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value:02d}"
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise ConfigurationError(f"system {system}: sysnr is required")


def _required(raw: Mapping[str, Any], key: str, where: str) -> str:
    value = raw.get(key)
    if value is None or str(value).strip() == "":
        raise ConfigurationError(f"{where}: missing required key {key!r}")
    return str(value).strip()


def _list(data: Mapping[str, Any], key: str) -> list:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ConfigurationError(f"{key} must be a list")
    return value


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _value_map(value: Any, metric: str, key: str) -> Dict[str, Tuple[Any, ...]]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"metric {metric}: {key} must be a mapping of field -> values")
    return {str(k): tuple(_as_list(v)) for k, v in value.items()}


def _check_unique(names: List[str], what: str) -> None:
    seen = set()
    for name in names:
        if name in seen:
            raise ConfigurationError(f"duplicate {what} {name!r}")
        seen.add(name)
