"""
Connector for an HTTP/JSON RFC gateway in front of the SAP application servers.

Each function module is exposed as POST {base_url}/{FUMO} with the importing
parameters as a JSON object; the reply is a JSON object of exported tables
and values. The default base URL follows the ICM convention of HTTP port
80<sysnr> on every application server. A session is one httpx.Client with
basic auth, validated with RFC_PING when it is opened.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

import httpx

from sapnwrfc_exporter.collector.base import Connector, Session
from sapnwrfc_exporter.errors import CallError, ConnectError, PayloadError
from sapnwrfc_exporter.metrics import ServerTarget, SystemTarget

DEFAULT_URL_TEMPLATE = "http://{host}:80{sysnr}/sap/rfc"


class GatewaySession(Session):

    def __init__(self, client: httpx.Client, destination: str):
        self._client = client
        self._destination = destination

    def call(self, fumo: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.post(f"/{fumo}", json=dict(params))
        except httpx.HTTPError as e:
            raise CallError(f"{fumo} on {self._destination}: {e}") from e

        if response.status_code >= 400:
            raise CallError(f"{fumo} on {self._destination}: {_error_text(response)}")

        try:
            data = response.json()
        except ValueError as e:
            raise PayloadError(f"{fumo} on {self._destination}: response is not JSON") from e
        if not isinstance(data, dict):
            raise PayloadError(f"{fumo} on {self._destination}: response is not an object")
        return data

    def close(self) -> None:
        self._client.close()


class GatewayConnector(Connector):

    def __init__(self, url_template: str = DEFAULT_URL_TEMPLATE, timeout_seconds: float = 10.0):
        self._url_template = url_template
        self._timeout = timeout_seconds

    def base_url(self, server: ServerTarget) -> str:
        return self._url_template.format(host=server.name, sysnr=server.sysnr).rstrip("/")

    def connect(self, system: SystemTarget, server: ServerTarget) -> Session:
        params = {}
        if system.client:
            params["sap-client"] = system.client
        if system.lang:
            params["sap-language"] = system.lang

        client = httpx.Client(
            base_url=self.base_url(server),
            auth=(system.user, system.password),
            params=params,
            timeout=self._timeout,
        )
        session = GatewaySession(client, f"{system.name}/{server.name}")
        try:
            session.call("RFC_PING", {})
        except CallError as e:
            session.close()
            raise ConnectError(str(e)) from e
        return session

    def name(self) -> str:
        return f"RFC gateway ({self._url_template})"


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return f"HTTP {response.status_code}: {body['error']}"
    return f"HTTP {response.status_code}"
