"""FastAPI-based batch runner for GTP scripts.

This module exposes two routes:
 - ``/gtp`` accepts POST requests with JSON ``{"commands": [...]}``, runs the
   lines in order against a fresh session and engine, and returns
   ``{"responses": [...], "terminated": bool}``.
 - ``/health`` is a simple GET route for health checks.

``responses`` holds one frame per request line that produced one.  Running
stops early after ``quit`` or a fatal engine failure; ``terminated`` is true
only in the latter case.

It also enables CORS and can be run directly with Uvicorn.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from api.gtp_interface import GTPSession
from core.engine import GoEngine, SimpleEngine

# Replaced in tests to inject a different engine.
engine_factory: Callable[[], GoEngine] = SimpleEngine


class ScriptRequest(BaseModel):
    """Request model for the ``/gtp`` endpoint."""

    commands: List[str]


class ScriptResponse(BaseModel):
    """Response model returned by the ``/gtp`` endpoint."""

    responses: List[str]
    terminated: bool = False


app = FastAPI(title="Light-GTP REST API")

# Configure very permissive CORS by default
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/gtp", response_model=ScriptResponse)
def run_script(req: ScriptRequest) -> ScriptResponse:
    """Run ``req.commands`` as one GTP session.

    Parameters
    ----------
    req:
        Parsed request payload; every entry is one request line.

    Returns
    -------
    ScriptResponse
        The response frames in request order.
    """

    session = GTPSession(engine_factory())
    responses: List[str] = []
    lines = [line for cmd in req.commands for line in cmd.split("\n")]
    for line in lines:
        frame, keep_going = session.execute(line)
        if frame:
            responses.append(frame)
        if not keep_going:
            return ScriptResponse(responses=responses, terminated=not frame)
    return ScriptResponse(responses=responses)


@app.get("/health")
async def health() -> Dict[str, str]:
    """Simple liveness probe."""

    return {"status": "ok"}


if __name__ == "__main__":  # pragma: no cover - manual start
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
