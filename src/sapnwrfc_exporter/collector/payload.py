"""
Typed access to function module responses.

Responses arrive as decoded JSON: scalars, tables (lists of row dicts) and
structures (dicts). RfcValue wraps one such value and exposes fallible
accessors that raise PayloadError on a shape mismatch instead of letting a
KeyError/TypeError escape from deep inside the aggregation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from sapnwrfc_exporter.errors import PayloadError


class RfcValue:

    def __init__(self, raw: Any):
        self._raw = raw

    @property
    def raw(self) -> Any:
        return self._raw

    @property
    def kind(self) -> str:
        raw = self._raw
        if raw is None:
            return "empty"
        if isinstance(raw, str):
            return "string"
        if isinstance(raw, bool):
            return "unknown"
        if isinstance(raw, (int, float)):
            return "number"
        if isinstance(raw, Mapping):
            return "mapping"
        if isinstance(raw, (list, tuple)):
            return "table"
        return "unknown"

    def as_string(self) -> str:
        text = label_text(self._raw)
        if text is None:
            raise PayloadError(f"expected string or integer, got {self.kind}")
        return text

    def as_mapping(self) -> Dict[str, Any]:
        if self.kind != "mapping":
            raise PayloadError(f"expected structure, got {self.kind}")
        return dict(self._raw)

    def as_table(self) -> List[Dict[str, Any]]:
        """Return the rows of a table value, field names upper-cased."""
        if self.kind != "table":
            raise PayloadError(f"expected table, got {self.kind}")
        rows = []
        for i, row in enumerate(self._raw):
            if not isinstance(row, Mapping):
                raise PayloadError(f"table row {i} is {type(row).__name__}, not a structure")
            rows.append({str(k).upper(): v for k, v in row.items()})
        return rows

    def field(self, name: str) -> "RfcValue":
        mapping = self.as_mapping()
        if name in mapping:
            return RfcValue(mapping[name])
        # exported names are upper-case on the wire, config may not be
        for key, value in mapping.items():
            if str(key).upper() == name.upper():
                return RfcValue(value)
        raise PayloadError(f"missing field {name!r}")

    def __repr__(self) -> str:
        return f"RfcValue({self.kind})"


def label_text(value: Any) -> Optional[str]:
    """Strings pass through, integers are formatted, anything else is None."""
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def extract_table(response: Mapping[str, Any], table: str) -> List[Dict[str, Any]]:
    """Pull one named table out of a function module response."""
    return RfcValue(response).field(table).as_table()
