"""Entry point for the Light-GTP command line interface.

The tool connects the reference engine to a GTP controller.  Four serving
modes are supported:

``stdio``  - speak GTP on standard input/output (what GoGui, Sabaki and
             most match runners expect).
``tcp``    - listen on a TCP port and serve one controller at a time.
``rest``   - serve the batch REST API (:mod:`api.rest_api`) with uvicorn.
``ws``     - serve the WebSocket API (:mod:`api.websocket_api`) with uvicorn.

``health`` checks running front-ends instead: the TCP server at
``--host``/``--port`` and, when given, ``--rest-url`` and ``--ws-url``.  It
prints one line per check and exits non-zero unless all are ``OK``.  With
``--dashboard-port`` it serves the status page instead.

Log records always go to standard error so that standard output stays
reserved for the protocol.
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import yaml

from api.gtp_interface import HOST, PORT, GTPServer, GTPSession
from core.engine import SimpleEngine

DEFAULTS: Dict[str, Any] = {
    "mode": "stdio",
    "host": HOST,
    "port": PORT,
    "log_level": "WARNING",
    "board_size": 19,
    "komi": 0.0,
    "rest_url": None,
    "ws_url": None,
    "dashboard_port": None,
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _load_config(path: str | None) -> Dict[str, Any]:
    """Load optional YAML/JSON configuration file."""

    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except FileNotFoundError:
        logging.warning("Config file %s not found", path)
        return {}
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logging.warning("Failed to load config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logging.warning("Ignoring config %s: expected a mapping", path)
        return {}
    return data


def _resolve_settings(args: argparse.Namespace, config: Dict[str, Any]) -> Dict[str, Any]:
    """Merge defaults, the config file and command line flags, in that order."""
    settings = dict(DEFAULTS)
    settings.update({k: v for k, v in config.items() if k in DEFAULTS})
    for key in DEFAULTS:
        value = getattr(args, key, None)
        if value is not None:
            settings[key] = value
    return settings


def _engine_factory(settings: Dict[str, Any]):
    board_size = int(settings["board_size"])
    komi = float(settings["komi"])
    return lambda: SimpleEngine(board_size=board_size, komi=komi)


def _run_stdio(settings: Dict[str, Any]) -> int:
    """Serve a single session on stdin/stdout; return the exit status."""
    session = GTPSession(_engine_factory(settings)())
    fatal = session.run(sys.stdin, sys.stdout)
    return 0 if fatal is None else 1


def _run_tcp(settings: Dict[str, Any]) -> int:
    server = GTPServer(settings["host"], int(settings["port"]), _engine_factory(settings))
    server.serve(max_sessions=None)
    return 0


def _run_asgi(module_name: str, settings: Dict[str, Any]) -> int:
    """Serve ``api.<module_name>`` with engines built from ``settings``."""
    import uvicorn

    module = importlib.import_module(f"api.{module_name}")
    module.engine_factory = _engine_factory(settings)
    uvicorn.run(
        module.app,
        host=settings["host"],
        port=int(settings["port"]),
        log_level=str(settings["log_level"]).lower(),
    )
    return 0


def _run_health(settings: Dict[str, Any]) -> int:
    from monitoring.health_check import build_dashboard

    dash = build_dashboard(settings)
    if settings["dashboard_port"]:
        import uvicorn

        uvicorn.run(
            dash.app,
            host=HOST,
            port=int(settings["dashboard_port"]),
            log_level=str(settings["log_level"]).lower(),
        )
        return 0

    results = asyncio.run(dash.run_all())
    for name, res in results.items():
        print(name, json.dumps(asdict(res)))
    return 0 if dash.healthy else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Light-GTP")
    parser.add_argument("--mode", choices=["stdio", "tcp", "rest", "ws", "health"])
    parser.add_argument("--host", help="Listen address, or the GTP server to check")
    parser.add_argument("--port", type=int, help="Listen port, or the GTP server port to check")
    parser.add_argument("--config", help="Optional configuration YAML/JSON")
    parser.add_argument("--log-level", dest="log_level", help="Logging level, e.g. DEBUG")
    parser.add_argument("--board-size", dest="board_size", type=int, help="Initial board size")
    parser.add_argument("--komi", type=float, help="Initial komi")
    parser.add_argument("--rest-url", dest="rest_url", help="REST front-end to check, e.g. http://localhost:8000")
    parser.add_argument("--ws-url", dest="ws_url", help="WebSocket front-end to check, e.g. ws://localhost:8000/ws/gtp")
    parser.add_argument("--dashboard-port", dest="dashboard_port", type=int, help="Serve the status page on this port")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``light-gtp`` command line tool."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configured before the config file is read so its warnings are formatted too.
    logging.basicConfig(
        level=str(args.log_level or DEFAULTS["log_level"]).upper(),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    config = _load_config(args.config)
    settings = _resolve_settings(args, config)
    logging.getLogger().setLevel(str(settings["log_level"]).upper())
    logging.debug("Resolved settings: %s", settings)

    mode = settings["mode"]
    if mode == "stdio":
        return _run_stdio(settings)
    if mode == "tcp":
        return _run_tcp(settings)
    if mode == "rest":
        return _run_asgi("rest_api", settings)
    if mode == "ws":
        return _run_asgi("websocket_api", settings)
    if mode == "health":
        return _run_health(settings)
    parser.error(f"unknown mode: {mode}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
