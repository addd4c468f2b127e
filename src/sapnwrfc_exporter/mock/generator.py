"""
Simulated SAP system tables for local development and tests.

Produces believable TH_WPINFO / TH_USER_LIST / TH_SERVER_LIST results:
a dialog-heavy work process mix whose load drifts a little on every call,
and a logged-on user list that grows and shrinks.
"""

from __future__ import annotations

import math
import random
from typing import Any, Dict, List, Optional, Sequence

# Work process layout of a typical small application server
WP_LAYOUT = [("DIA", 10), ("BTC", 4), ("UPD", 2), ("UP2", 1), ("SPO", 1), ("ENQ", 1)]

WP_STATES = ["Waiting", "Running", "On Hold", "Stopped"]

TRANSACTIONS = ["SE38", "SM50", "VA01", "ME21N", "FB01", "SU01", "ST22", "SESSION_MANAGER"]


class MockSapSystem:
    """Generates function module results for one fake system."""

    def __init__(self, sid: str = "P01", hosts: Optional[Sequence[str]] = None, sysnr: str = "00", seed: int = 42):
        self.sid = sid
        self.hosts = list(hosts or ["sapapp01", "sapapp02"])
        self.sysnr = sysnr
        self._rng = random.Random(seed)
        self._tick = 0

    def call(self, fumo: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Answer a function module call. Raises KeyError for unknown modules."""
        handlers = {
            "RFC_PING": lambda: {},
            "TH_SERVER_LIST": lambda: {"LIST": self.server_list()},
            "TH_WPINFO": lambda: {"WPLIST": self.work_processes()},
            "TH_USER_LIST": lambda: {"USRLIST": self.users()},
        }
        return handlers[fumo.upper()]()

    def server_list(self) -> List[Dict[str, Any]]:
        return [
            {"NAME": f"{host}_{self.sid}_{self.sysnr}", "HOST": host, "SERV": f"sapdp{self.sysnr}"}
            for host in self.hosts
        ]

    def work_processes(self) -> List[Dict[str, Any]]:
        self._tick += 1
        # Dialog load follows a slow wave with occasional spikes
        load = 0.3 + 0.25 * math.sin(self._tick * 0.2)
        if self._rng.random() > 0.9:
            load += 0.3

        rows = []
        no = 0
        for wp_type, count in WP_LAYOUT:
            for _ in range(count):
                busy = self._rng.random() < (load if wp_type == "DIA" else load / 2)
                status = "Running" if busy else "Waiting"
                if self._rng.random() > 0.98:
                    status = self._rng.choice(["On Hold", "Stopped"])
                rows.append({
                    "WP_NO": no,
                    "WP_TYP": wp_type,
                    "WP_STATUS": status,
                    "WP_BNAME": self._user_name() if status == "Running" else "",
                    "WP_REPORT": self._rng.choice(TRANSACTIONS) if status == "Running" else "",
                })
                no += 1
        return rows

    def users(self) -> List[Dict[str, Any]]:
        active = max(1, int(20 + 15 * math.sin(self._tick * 0.1) + self._rng.gauss(0, 3)))
        return [
            {
                "MANDT": self._rng.choice(["100", "100", "100", "000"]),
                "BNAME": self._user_name(),
                "TCODE": self._rng.choice(TRANSACTIONS),
                "TYPE": self._rng.choice(["GUI", "GUI", "RFC", "HTTP"]),
            }
            for _ in range(active)
        ]

    def _user_name(self) -> str:
        return f"USER{self._rng.randint(1, 60):03d}"
