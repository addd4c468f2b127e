"""
Fake RFC gateway for testing without a SAP system.

    sapnwrfc-exporter fake-gateway --port 8000
    sapnwrfc-exporter --config config.example.yaml \
        --gateway-url "http://127.0.0.1:8000/sap/rfc" collect
"""

from __future__ import annotations

import base64
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Tuple

from sapnwrfc_exporter.mock.generator import MockSapSystem

PATH_PREFIX = "/sap/rfc/"


class _RfcHandler(BaseHTTPRequestHandler):
    server: "FakeGatewayServer"

    def do_POST(self):
        if not self.path.startswith(PATH_PREFIX):
            self._reply(404, {"error": "not found"})
            return

        if not self._authorized():
            self._reply(401, {"error": "logon failed"})
            return

        length = int(self.headers.get("Content-Length") or 0)
        try:
            params = json.loads(self.rfile.read(length) or b"{}")
        except ValueError:
            self._reply(400, {"error": "parameters are not JSON"})
            return

        fumo = self.path[len(PATH_PREFIX):].split("?", 1)[0]
        with self.server.lock:
            self.server.calls.append(fumo)
            try:
                result = self.server.backend.call(fumo, params)
            except KeyError:
                self._reply(500, {"error": f"function module {fumo} not found"})
                return
        self._reply(200, result)

    def _authorized(self) -> bool:
        if self.server.credentials is None:
            return True
        header = self.headers.get("Authorization", "")
        if not header.startswith("Basic "):
            return False
        user, _, password = base64.b64decode(header[6:]).decode().partition(":")
        return (user, password) == self.server.credentials

    def _reply(self, status: int, payload: dict):
        body = json.dumps(payload).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


class FakeGatewayServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(
        self,
        address: Tuple[str, int],
        backend: Optional[MockSapSystem] = None,
        credentials: Optional[Tuple[str, str]] = None,
    ):
        super().__init__(address, _RfcHandler)
        self.backend = backend or MockSapSystem()
        self.credentials = credentials
        self.calls = []
        self.lock = threading.Lock()

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}/sap/rfc"


def run_fake_gateway(host: str = "127.0.0.1", port: int = 8000):
    server = FakeGatewayServer((host, port))
    print(f"Fake RFC gateway running at {server.url}")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_gateway()
