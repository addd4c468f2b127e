"""
Connector and session interfaces.

A connector opens a logon session to one application server of a SAP system.
The invoker, the server discovery and the tests only talk to these
interfaces, so the transport (HTTP gateway, fake doubles) stays swappable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping

from sapnwrfc_exporter.metrics import ServerTarget, SystemTarget


class Session(ABC):
    """An open logon session. Use as a context manager so it always gets closed."""

    @abstractmethod
    def call(self, fumo: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Call a function module and return its exported tables/values.

        Raises CallError when the call fails.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Connector(ABC):
    """Factory for sessions."""

    @abstractmethod
    def connect(self, system: SystemTarget, server: ServerTarget) -> Session:
        """Open a session. Raises ConnectError when logon fails."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this transport."""
        ...

    def close(self) -> None:
        pass
