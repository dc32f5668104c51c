import pathlib
import sys
import asyncio
from unittest.mock import MagicMock

import httpx
import pytest

# Allow importing from project root
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[2]))

from api import rest_api


def _request(method: str, url: str, **kwargs) -> httpx.Response:
    async def _call() -> httpx.Response:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=rest_api.app), base_url="http://test") as client:
            return await client.request(method, url, **kwargs)
    return asyncio.run(_call())


def test_health_endpoint() -> None:
    response = _request("GET", "/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_script_runs_in_order() -> None:
    payload = {"commands": ["1 boardsize 9", "2 name", "# comment", "3 play b e5", "4 play w e5"]}
    response = _request("POST", "/gtp", json=payload)
    assert response.status_code == 200
    assert response.json() == {
        "responses": ["=1\n\n", "=2 Light-GTP\n\n", "=3\n\n", "?4 illegal move\n\n"],
        "terminated": False,
    }


def test_script_stops_after_quit() -> None:
    response = _request("POST", "/gtp", json={"commands": ["quit", "name"]})
    assert response.json() == {"responses": ["=\n\n"], "terminated": False}


def test_script_reports_fatal_failure(monkeypatch) -> None:
    engine = MagicMock()
    engine.can_score.return_value = False
    engine.get_name.return_value = "mock"
    engine.new_game.side_effect = RuntimeError("boom")
    monkeypatch.setattr(rest_api, "engine_factory", lambda: engine)
    response = _request("POST", "/gtp", json={"commands": ["name", "clear_board", "name"]})
    assert response.json() == {"responses": ["= mock\n\n"], "terminated": True}


def test_multi_line_entries_are_split() -> None:
    response = _request("POST", "/gtp", json={"commands": ["protocol_version\nversion"]})
    assert response.json()["responses"] == ["= 2\n\n", "= 0.1\n\n"]


def test_invalid_payload() -> None:
    response = _request("POST", "/gtp", json={})
    assert response.status_code == 422
