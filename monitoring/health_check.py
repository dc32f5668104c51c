"""Health checks for running Light-GTP front-ends.

Every check speaks the protocol of the front-end it watches and asks for
``protocol_version``:

- the TCP server gets ``1 protocol_version`` followed by ``2 quit`` so that
  it is free for the next controller;
- the REST API runs a one-line script through ``POST /gtp``;
- the WebSocket API gets the request as a single text message.

A check never raises.  Unreachable services are reported ``DOWN`` and
services answering something other than protocol version ``2`` are
reported ``WARN``.

:class:`HealthCheckDashboard` runs the registered checks concurrently and
serves the results as JSON (``/status``) and as an HTML page (``/``).
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx
import websockets
from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from jinja2 import Template
from websockets.exceptions import WebSocketException

from api.gtp_interface import HOST, PORT, PROTOCOL_VERSION

logger = logging.getLogger(__name__)

CheckCallable = Callable[[], Awaitable["CheckResult"]]

_STATUS_PAGE = Template(
    """
    <html>
    <head><title>Light-GTP Status</title></head>
    <body>
    <h1>Light-GTP Status: {{ 'healthy' if healthy else 'degraded' }}</h1>
    <table border="1" cellpadding="5">
      <tr><th>Front-end</th><th>Status</th><th>Latency(ms)</th><th>Detail</th></tr>
      {% for name, r in results.items() %}
      <tr>
        <td>{{name}}</td>
        <td>{{r.status}}</td>
        <td>{{ '%.2f' % (r.latency*1000) }}</td>
        <td>{{ r.error or '' }}</td>
      </tr>
      {% endfor %}
    </table>
    </body>
    </html>
    """
)


@dataclass
class CheckResult:
    """Outcome of one check: ``OK``, ``WARN`` or ``DOWN``."""

    status: str
    latency: float
    error: Optional[str] = None


def _judge(reply: str, expected: str, start: float) -> CheckResult:
    elapsed = time.perf_counter() - start
    if reply == expected:
        return CheckResult("OK", elapsed)
    return CheckResult("WARN", elapsed, f"unexpected reply {reply!r}")


def _down(exc: BaseException, start: float) -> CheckResult:
    return CheckResult("DOWN", time.perf_counter() - start, str(exc) or type(exc).__name__)


async def check_gtp_server(host: str = HOST, port: int = PORT, timeout: float = 5.0) -> CheckResult:
    """Ask a GTP TCP server for its protocol version."""
    start = time.perf_counter()
    try:
        reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        try:
            writer.write(b"1 protocol_version\n2 quit\n")
            await writer.drain()
            first = await asyncio.wait_for(reader.readline(), timeout)
        finally:
            writer.close()
    except (OSError, asyncio.TimeoutError) as exc:
        return _down(exc, start)
    reply = first.decode("utf-8", "replace").strip()
    return _judge(reply, f"=1 {PROTOCOL_VERSION}", start)


async def check_rest_api(
    base_url: str,
    timeout: float = 5.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CheckResult:
    """Run ``protocol_version`` as a script through ``POST /gtp``.

    ``transport`` lets callers talk to an in-process ASGI app.
    """
    start = time.perf_counter()
    try:
        async with httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport) as client:
            resp = await client.post("/gtp", json={"commands": ["protocol_version"]})
            resp.raise_for_status()
            responses = resp.json()["responses"]
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
        return _down(exc, start)
    reply = responses[0].strip() if responses else ""
    return _judge(reply, f"= {PROTOCOL_VERSION}", start)


async def check_websocket(url: str, timeout: float = 5.0) -> CheckResult:
    """Send ``protocol_version`` over a GTP WebSocket and read one frame."""
    start = time.perf_counter()
    try:
        async with websockets.connect(url, open_timeout=timeout) as ws:
            await ws.send("protocol_version")
            frame = await asyncio.wait_for(ws.recv(), timeout)
    except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
        return _down(exc, start)
    if isinstance(frame, bytes):
        frame = frame.decode("utf-8", "replace")
    return _judge(frame.strip(), f"= {PROTOCOL_VERSION}", start)


class HealthCheckDashboard:
    """Named checks, their latest results and a small FastAPI app serving them."""

    def __init__(self) -> None:
        self.checks: Dict[str, CheckCallable] = {}
        self.results: Dict[str, CheckResult] = {}
        self.app = FastAPI(title="Light-GTP status")
        self.app.get("/status")(self.api_status)
        self.app.get("/")(self.html_status)

    def register(self, name: str, check: CheckCallable) -> None:
        self.checks[name] = check

    @property
    def healthy(self) -> bool:
        """``True`` when every check has run and reported ``OK``."""
        return set(self.results) == set(self.checks) and all(
            r.status == "OK" for r in self.results.values()
        )

    async def run_check(self, name: str) -> CheckResult:
        """Run the check registered as ``name`` and record its result."""
        start = time.perf_counter()
        try:
            result = await self.checks[name]()
        except Exception as exc:
            logger.warning("Health check %s failed: %s", name, exc)
            result = _down(exc, start)
        if result.status != "OK":
            logger.warning("%s is %s: %s", name, result.status, result.error)
        self.results[name] = result
        return result

    async def run_all(self) -> Dict[str, CheckResult]:
        """Run every registered check concurrently."""
        await asyncio.gather(*(self.run_check(name) for name in self.checks))
        return self.results

    async def api_status(self) -> Dict[str, Any]:
        await self.run_all()
        return {
            "healthy": self.healthy,
            "checks": {name: asdict(res) for name, res in self.results.items()},
        }

    async def html_status(self) -> HTMLResponse:
        await self.run_all()
        return HTMLResponse(_STATUS_PAGE.render(results=self.results, healthy=self.healthy))


def build_dashboard(settings: Mapping[str, Any]) -> HealthCheckDashboard:
    """Return a dashboard watching the front-ends named in ``settings``.

    The TCP server at ``host``/``port`` is always checked; the REST and
    WebSocket front-ends only when ``rest_url`` or ``ws_url`` is set.
    """
    dash = HealthCheckDashboard()
    host = settings.get("host", HOST)
    port = int(settings.get("port", PORT))
    dash.register("gtp", lambda: check_gtp_server(host, port))
    rest_url = settings.get("rest_url")
    if rest_url:
        dash.register("rest_api", lambda: check_rest_api(rest_url))
    ws_url = settings.get("ws_url")
    if ws_url:
        dash.register("websocket", lambda: check_websocket(ws_url))
    return dash


__all__ = [
    "CheckResult",
    "HealthCheckDashboard",
    "build_dashboard",
    "check_gtp_server",
    "check_rest_api",
    "check_websocket",
]
