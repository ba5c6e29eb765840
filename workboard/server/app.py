"""FastAPI application — the query API and the real-time refresh channel.

Every request reads the Coordinator's currently published Snapshot once and
answers from it, so a rebuild running in the background never shows through
as a half-built board.

Endpoints
---------
GET  /api/health                  liveness + data-loaded indicator
GET  /api/stats                   counts by type and by status
GET  /api/warnings                warnings of the current Snapshot
GET  /api/work-items              flat (default) or ``view=tree`` listing
GET  /api/work-items/grouped      column view with per-column stats
GET  /api/work-items/{id}         full detail (loads doc/context lazily)
GET  /api/work-items/{id}/doc     rendered documentation body
GET  /api/work-items/{id}/context rendered context body
POST /api/refresh                 manual rebuild (works without the watcher)
WS   /ws                          ``init`` greeting, ``refresh`` signals
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from workboard.board.projection import BoardProjection
from workboard.core.coordinator import ItemNotFoundError, SyncCoordinator
from workboard.models.events import RefreshSignal
from workboard.models.work_items import WorkItemDetail
from workboard.server.markdown import render_markdown

logger = logging.getLogger(__name__)


class WebSocketListener:
    """Adapts a WebSocket connection to the broadcaster's listener protocol."""

    def __init__(self, websocket: WebSocket, listener_name: str) -> None:
        self.websocket = websocket
        self.listener_name = listener_name

    async def send_refresh(self, signal: RefreshSignal) -> None:
        await self.websocket.send_json(signal.model_dump(mode="json"))


def _split(value: str | None) -> list[str] | None:
    return [part for part in value.split(",") if part] if value else None


def create_app(coordinator: SyncCoordinator, *, manage_lifecycle: bool = True) -> FastAPI:
    """Build the API around a Coordinator.

    Parameters
    ----------
    coordinator:
        Owner of the published Snapshot.
    manage_lifecycle:
        Start and stop the Coordinator with the application.
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if manage_lifecycle:
            await coordinator.start()
        try:
            yield
        finally:
            if manage_lifecycle:
                await coordinator.stop()

    app = FastAPI(title="Workboard", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=coordinator.config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        logger.debug("%s %s", request.method, request.url.path)
        return await call_next(request)

    def projection() -> BoardProjection:
        return BoardProjection(coordinator.snapshot)

    def detail_for(item_id: str) -> WorkItemDetail:
        try:
            return coordinator.load_detail(item_id)
        except ItemNotFoundError:
            raise HTTPException(status_code=404, detail="Work item not found") from None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "loaded": coordinator.loaded,
            "timestamp": int(time.time() * 1000),
            "project_root": str(coordinator.config.descriptor_root),
            "watching": coordinator.watch_active,
            "generation": coordinator.generation,
        }

    @app.get("/api/stats")
    async def stats() -> dict[str, Any]:
        if not coordinator.loaded:
            raise HTTPException(status_code=503, detail="Data not loaded yet")
        return projection().stats().model_dump()

    @app.get("/api/warnings")
    async def warnings() -> dict[str, Any]:
        snapshot = coordinator.snapshot
        return {
            "total": snapshot.warning_count,
            "warnings": [w.model_dump(mode="json") for w in snapshot.warnings],
        }

    @app.post("/api/refresh")
    async def refresh() -> dict[str, Any]:
        await coordinator.refresh()
        return coordinator.status()

    # ------------------------------------------------------------------
    # Work items
    # ------------------------------------------------------------------

    @app.get("/api/work-items")
    async def list_work_items(
        type: str | None = Query(None, description="Comma-separated types."),
        status: str | None = Query(None, description="Comma-separated statuses."),
        search: str | None = Query(None),
        view: Literal["flat", "tree"] = Query("flat"),
    ) -> dict[str, Any]:
        proj = projection()
        items = proj.list_items(types=_split(type), statuses=_split(status), search=search)
        return proj.listing_payload(items, hierarchical=view == "tree")

    @app.get("/api/work-items/grouped")
    async def grouped_work_items() -> dict[str, Any]:
        return projection().grouped_payload()

    @app.get("/api/work-items/{item_id}")
    async def work_item(item_id: str) -> dict[str, Any]:
        detail = detail_for(item_id)
        return projection().item_payload(detail.record, detail)

    @app.get("/api/work-items/{item_id}/doc", response_class=HTMLResponse)
    async def work_item_doc(item_id: str) -> HTMLResponse:
        detail = detail_for(item_id)
        if not detail.documentation:
            raise HTTPException(status_code=404, detail="Documentation not found")
        return HTMLResponse(render_markdown(detail.documentation))

    @app.get("/api/work-items/{item_id}/context", response_class=HTMLResponse)
    async def work_item_context(item_id: str) -> HTMLResponse:
        detail = detail_for(item_id)
        if not detail.context:
            raise HTTPException(status_code=404, detail="Context not found")
        return HTMLResponse(render_markdown(detail.context))

    # ------------------------------------------------------------------
    # Real-time channel
    # ------------------------------------------------------------------

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        client = websocket.client
        name = f"ws:{client.host}:{client.port}" if client else f"ws:{id(websocket)}"
        listener = WebSocketListener(websocket, name)
        coordinator.broadcaster.register(listener)
        try:
            await websocket.send_json(
                {
                    "type": "init",
                    "data": {
                        "message": "Connected to Workboard",
                        "generation": coordinator.generation,
                        "timestamp": int(time.time() * 1000),
                    },
                }
            )
            while True:
                raw = await websocket.receive_text()
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    logger.debug("Ignoring non-JSON message from %s", name)
                    continue
                if isinstance(message, dict) and message.get("type") == "ping":
                    await websocket.send_json(
                        {"type": "pong", "timestamp": int(time.time() * 1000)}
                    )
        except WebSocketDisconnect:
            pass
        finally:
            coordinator.broadcaster.unregister(listener)

    return app
