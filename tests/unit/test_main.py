import io
import json
import logging
import pathlib
import sys
import threading
from unittest.mock import MagicMock, patch

# Put project root on sys.path so we can load the CLI module
ROOT = pathlib.Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

import importlib.util

spec = importlib.util.spec_from_file_location("cli_main", ROOT / "main.py")
cli_main = importlib.util.module_from_spec(spec)
sys.modules["cli_main"] = cli_main
spec.loader.exec_module(cli_main)

from api import rest_api, websocket_api
from api.gtp_interface import GTPServer

import pytest


def test_stdio_mode_plays_a_session(capsys):
    script = "boardsize 5\nname\nplay b c3\ngenmove w\nfinal_score\nquit\n"
    with patch.object(sys, "stdin", io.StringIO(script)):
        status = cli_main.main([])
    assert status == 0
    out = capsys.readouterr().out
    assert out == "=\n\n= Light-GTP\n\n=\n\n= a1\n\n= 0\n\n=\n\n"


def test_stdio_mode_uses_configured_komi(capsys):
    with patch.object(sys, "stdin", io.StringIO("final_score\n")):
        cli_main.main(["--komi", "7.5", "--board-size", "9"])
    assert capsys.readouterr().out == "= W+7.5\n\n"


def test_tcp_mode_starts_server():
    server = MagicMock()
    with patch("cli_main.GTPServer", return_value=server) as server_cls:
        assert cli_main.main(["--mode", "tcp", "--host", "127.0.0.1", "--port", "7000"]) == 0
    args = server_cls.call_args.args
    assert args[:2] == ("127.0.0.1", 7000)
    server.serve.assert_called_once_with(max_sessions=None)


def test_rest_mode_runs_uvicorn(monkeypatch):
    monkeypatch.setattr(rest_api, "engine_factory", rest_api.engine_factory)
    with patch("uvicorn.run") as run:
        cli_main.main(["--mode", "rest", "--port", "9000", "--board-size", "9", "--komi", "6.5"])
    assert run.call_args.args[0] is rest_api.app
    assert run.call_args.kwargs["port"] == 9000
    engine = rest_api.engine_factory()
    assert engine.board.size == 9
    assert engine.komi == 6.5


def test_config_file_supplies_defaults(tmp_path, monkeypatch):
    monkeypatch.setattr(websocket_api, "engine_factory", websocket_api.engine_factory)
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("mode: ws\nport: 8123\nlog_level: info\nboard_size: 13\n")
    with patch("uvicorn.run") as run:
        cli_main.main(["--config", str(cfg)])
    assert run.call_args.args[0] is websocket_api.app
    assert run.call_args.kwargs["port"] == 8123
    assert websocket_api.engine_factory().board.size == 13


def test_flags_override_config(tmp_path, monkeypatch):
    monkeypatch.setattr(websocket_api, "engine_factory", websocket_api.engine_factory)
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"mode": "ws", "port": 8123}))
    with patch("uvicorn.run") as run:
        cli_main.main(["--config", str(cfg), "--port", "8124"])
    assert run.call_args.kwargs["port"] == 8124


def test_missing_config_is_ignored(tmp_path):
    assert cli_main._load_config(str(tmp_path / "nope.yaml")) == {}


def test_non_mapping_config_is_ignored(tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("- just\n- a list\n")
    assert cli_main._load_config(str(cfg)) == {}


def test_engine_failure_sets_exit_status(capsys):
    engine = MagicMock()
    engine.can_score.return_value = False
    engine.new_game.side_effect = RuntimeError("boom")
    with patch.object(sys, "stdin", io.StringIO("clear_board\n")), \
         patch("cli_main.SimpleEngine", return_value=engine):
        assert cli_main.main([]) == 1
    assert capsys.readouterr().out == ""


def test_invalid_mode_errors():
    with pytest.raises(SystemExit):
        cli_main.main(["--mode", "carrier-pigeon"])


@pytest.fixture(autouse=True)
def restore_root_level():
    """main() sets the root level; keep it from leaking into other tests."""
    root = logging.getLogger()
    level = root.level
    yield root
    root.setLevel(level)


def test_log_level_survives_missing_config(tmp_path, restore_root_level):
    missing = tmp_path / "missing.yaml"
    with patch.object(sys, "stdin", io.StringIO("")):
        cli_main.main(["--config", str(missing), "--log-level", "DEBUG"])
    assert restore_root_level.level == logging.DEBUG


def test_log_level_from_config(tmp_path, restore_root_level):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("log_level: error\n")
    with patch.object(sys, "stdin", io.StringIO("")):
        cli_main.main(["--config", str(cfg)])
    assert restore_root_level.level == logging.ERROR


def _start_gtp_server():
    server = GTPServer(host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve, daemon=True)
    thread.start()
    assert server.ready.wait(timeout=5)
    return server, thread


def test_health_mode_reports_running_server(capsys):
    server, thread = _start_gtp_server()
    status = cli_main.main(["--mode", "health", "--host", "127.0.0.1", "--port", str(server.port)])
    thread.join(timeout=5)
    assert status == 0
    name, payload = capsys.readouterr().out.strip().split(" ", 1)
    assert name == "gtp"
    assert json.loads(payload)["status"] == "OK"


def test_health_mode_fails_when_server_is_gone(capsys):
    server, thread = _start_gtp_server()
    port = server.port
    cli_main.main(["--mode", "health", "--host", "127.0.0.1", "--port", str(port)])
    thread.join(timeout=5)
    capsys.readouterr()

    assert cli_main.main(["--mode", "health", "--host", "127.0.0.1", "--port", str(port)]) == 1
    assert '"DOWN"' in capsys.readouterr().out


def test_health_mode_serves_dashboard():
    with patch("uvicorn.run") as run:
        cli_main.main(["--mode", "health", "--dashboard-port", "8001", "--rest-url", "http://x"])
    app = run.call_args.args[0]
    assert {route.path for route in app.routes} >= {"/", "/status"}
    assert run.call_args.kwargs["port"] == 8001
