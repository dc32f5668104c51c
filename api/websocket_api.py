"""GTP over WebSocket using FastAPI.

Every connection to ``/ws/gtp`` gets its own :class:`api.gtp_interface.GTPSession`
and its own engine, so sessions never share game state.  Each text message is
treated as one GTP request line and answered with exactly one response frame
(``"=...\\n\\n"`` or ``"?...\\n\\n"``).  Blank or comment-only messages get no
answer, as on a plain GTP stream.

After ``quit`` the reply is sent and the socket is closed normally.  A fatal
engine failure closes the socket with code 1011 and no reply; the client
must open a new connection to start over.

Messages with the literal text ``"ping"`` receive ``"pong"``.

Running the module directly will start the service using ``uvicorn``.
"""
from __future__ import annotations

import logging
from typing import Callable, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from api.gtp_interface import GTPSession
from core.engine import GoEngine, SimpleEngine


logger = logging.getLogger(__name__)
app = FastAPI(title="Light-GTP WebSocket API")

# Replaced in tests to inject a different engine.
engine_factory: Callable[[], GoEngine] = SimpleEngine


class ConnectionManager:
    """Manage active WebSocket connections."""

    def __init__(self) -> None:
        """Create a new manager with an empty connection set."""
        self.active_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept ``websocket`` and track the connection."""
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info("Client connected. Active: %d", len(self.active_connections))

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove ``websocket`` from the active set."""
        self.active_connections.discard(websocket)
        logger.info(
            "Client disconnected. Active: %d", len(self.active_connections)
        )


manager = ConnectionManager()


@app.websocket("/ws/gtp")
async def ws_gtp(websocket: WebSocket) -> None:
    """Run one GTP session for the lifetime of ``websocket``."""

    await manager.connect(websocket)
    session = GTPSession(engine_factory())
    try:
        while True:
            text = await websocket.receive_text()

            if text == "ping":
                await websocket.send_text("pong")
                continue

            # Engines are synchronous and may think for a while.
            frame, keep_going = await run_in_threadpool(session.execute, text)
            if frame:
                await websocket.send_text(frame)
            if not keep_going:
                await websocket.close(code=1000 if frame else 1011)
                break
    except WebSocketDisconnect:
        logger.info("Client disconnected from /ws/gtp")
    finally:
        manager.disconnect(websocket)


if __name__ == "__main__":  # pragma: no cover - manual start
    logging.basicConfig(level=logging.INFO)
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
