"""
Schema Explorer Backend - FastAPI Application

This is the main entry point for the schema explorer backend.
It provides:
- REST API to load schema text and drive focus, search, drag and layout
- WebSocket endpoint streaming layout frames and explorer events
- CORS configuration for local frontend development

Every explorer id addresses an independent diagram instance.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .explorer_manager import OperationResult, SchemaExplorer, explorer_registry
from .models import (
    DepthRequest, DragEndRequest, DragRequest, LoadSchemaRequest,
    SearchRequest, StepRequest, ViewportRequest
)
from .settings import settings
from .simulation_runner import SimulationRunner
from .websocket_manager import ws_manager

logger = logging.getLogger(__name__)


# --- Async event notification ---
# Bridge between sync SchemaExplorer callbacks and async WebSocket broadcasts

_runners: dict[str, SimulationRunner] = {}
_event_queue: asyncio.Queue | None = None


def _publish(notify: Callable[..., Awaitable[None]], *args):
    """Queue a broadcast from a synchronous callback."""
    if _event_queue is None:
        logger.debug("Event broadcaster not running, dropping %s", notify.__name__)
        return
    _event_queue.put_nowait((notify, args))


async def event_broadcaster(queue: asyncio.Queue):
    """Background task that forwards queued events to WebSocket clients."""
    while True:
        notify, args = await queue.get()
        try:
            await notify(*args)
        except Exception:
            logger.exception("Broadcast of %s failed", notify.__name__)


def attach_explorer(explorer_id: str, explorer: SchemaExplorer):
    """Wire a new explorer to its tick runner and to the WebSocket clients."""
    async def send_frame(frame: dict):
        await ws_manager.notify_frame(explorer_id, frame)

    runner = SimulationRunner(
        explorer,
        on_frame=send_frame,
        frame_interval=settings.frame_interval,
        ticks_per_frame=settings.ticks_per_frame
    )
    _runners[explorer_id] = runner

    explorer.on_layout(runner.schedule)
    explorer.on_node_selected(lambda name: _publish(ws_manager.notify_node_selected, explorer_id, name))
    explorer.on_error(lambda message: _publish(ws_manager.notify_error, explorer_id, message))
    explorer.on_rendered(lambda nodes, edges: _publish(ws_manager.notify_rendered, explorer_id, nodes, edges))


def remove_explorer(explorer_id: str) -> bool:
    runner = _runners.pop(explorer_id, None)
    if runner is not None:
        runner.cancel()
    return explorer_registry.remove(explorer_id)


def reset_explorers():
    """Cancel every runner and drop every explorer."""
    for runner in _runners.values():
        runner.cancel()
    _runners.clear()
    explorer_registry.clear()


explorer_registry.configure(include_scalars=settings.include_scalars)
explorer_registry.on_create(attach_explorer)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    global _event_queue
    _event_queue = asyncio.Queue()

    # Start background broadcaster
    broadcaster_task = asyncio.create_task(event_broadcaster(_event_queue))

    yield

    # Cleanup
    for runner in _runners.values():
        runner.cancel()
    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass
    _event_queue = None
    ws_manager.reset()


# --- FastAPI App ---

app = FastAPI(
    title="Schema Explorer API",
    description="Schema relationship diagram with focus navigation and live layout",
    version="1.0.0",
    lifespan=lifespan
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_explorer(explorer_id: str) -> SchemaExplorer:
    explorer = explorer_registry.get(explorer_id)
    if explorer is None:
        raise HTTPException(status_code=404, detail="Explorer not found")
    return explorer


def _respond(explorer: SchemaExplorer, result: OperationResult) -> dict:
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return {**result.to_dict(), "state": explorer.get_state()}


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "connections": ws_manager.connection_count,
        "explorers": len(explorer_registry.ids())
    }


# --- Explorers ---

@app.get("/api/explorers")
async def list_explorers():
    """List explorer instances."""
    return {"success": True, "explorers": explorer_registry.ids()}


@app.delete("/api/explorers/{explorer_id}")
async def delete_explorer(explorer_id: str):
    """Drop an explorer instance and stop its layout."""
    if remove_explorer(explorer_id):
        return {"success": True}
    raise HTTPException(status_code=404, detail="Explorer not found")


@app.put("/api/explorers/{explorer_id}/schema")
async def load_schema(explorer_id: str, request: LoadSchemaRequest):
    """
    Load schema text, creating the explorer if needed.

    A parse error is returned as 400; the previous diagram stays in place.
    """
    explorer = explorer_registry.get_or_create(explorer_id)
    return _respond(explorer, explorer.load_schema(request.schema_text))


@app.get("/api/explorers/{explorer_id}/graph")
async def get_graph(explorer_id: str):
    """Get the visible graph with current positions."""
    explorer = _require_explorer(explorer_id)
    return {"success": True, "state": explorer.get_state()}


@app.get("/api/explorers/{explorer_id}/diagnostics")
async def get_diagnostics(explorer_id: str):
    """
    Validate the full schema graph.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    explorer = _require_explorer(explorer_id)
    return {"success": True, **explorer.validate()}


@app.get("/api/explorers/{explorer_id}/summary")
async def get_summary(explorer_id: str):
    """Get a structural summary of the full schema graph."""
    explorer = _require_explorer(explorer_id)
    summary = explorer.summarize()
    if summary is None:
        raise HTTPException(status_code=400, detail="No schema loaded")
    return {"success": True, "summary": summary}


# --- Focus Navigation ---

@app.post("/api/explorers/{explorer_id}/nodes/{node_id}/click")
async def click_node(explorer_id: str, node_id: str):
    """Focus a type, or leave focus mode when clicking the focused type."""
    explorer = _require_explorer(explorer_id)
    visible = explorer.visible_graph
    if visible is None or node_id not in visible.nodes:
        raise HTTPException(status_code=404, detail="Type not found")
    return _respond(explorer, explorer.click_node(node_id))


@app.post("/api/explorers/{explorer_id}/canvas/click")
async def click_canvas(explorer_id: str):
    """Leave focus mode."""
    explorer = _require_explorer(explorer_id)
    return _respond(explorer, explorer.click_canvas())


@app.post("/api/explorers/{explorer_id}/depth")
async def change_depth(explorer_id: str, request: DepthRequest):
    """Grow or shrink the focus neighbourhood."""
    explorer = _require_explorer(explorer_id)
    return _respond(explorer, explorer.change_depth(request.delta))


@app.post("/api/explorers/{explorer_id}/search")
async def search(explorer_id: str, request: SearchRequest):
    """Filter visible types by name or field name."""
    explorer = _require_explorer(explorer_id)
    return _respond(explorer, explorer.set_search(request.query))


# --- Drag ---

@app.post("/api/explorers/{explorer_id}/drag/start")
async def drag_start(explorer_id: str, request: DragRequest):
    explorer = _require_explorer(explorer_id)
    return _respond(explorer, explorer.drag_start(request.node_id, request.x, request.y))


@app.post("/api/explorers/{explorer_id}/drag/move")
async def drag_move(explorer_id: str, request: DragRequest):
    explorer = _require_explorer(explorer_id)
    result = explorer.drag_move(request.node_id, request.x, request.y)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result.to_dict()


@app.post("/api/explorers/{explorer_id}/drag/end")
async def drag_end(explorer_id: str, request: DragEndRequest):
    explorer = _require_explorer(explorer_id)
    return _respond(explorer, explorer.drag_end(request.node_id))


# --- Layout ---

@app.post("/api/explorers/{explorer_id}/layout/improve")
async def improve_layout(explorer_id: str):
    """Spread the layout with stronger repulsion and longer links."""
    explorer = _require_explorer(explorer_id)
    return _respond(explorer, explorer.improve_layout())


@app.post("/api/explorers/{explorer_id}/layout/reset")
async def reset_layout(explorer_id: str):
    """Restore default forces and release pins."""
    explorer = _require_explorer(explorer_id)
    return _respond(explorer, explorer.reset_layout())


@app.post("/api/explorers/{explorer_id}/layout/step")
async def step_layout(explorer_id: str, request: StepRequest):
    """Advance the layout synchronously (for renderers without a WebSocket)."""
    explorer = _require_explorer(explorer_id)
    ticks = explorer.step(request.ticks)
    return {"success": True, "ticks": ticks, "frame": explorer.frame()}


@app.patch("/api/explorers/{explorer_id}/viewport")
async def update_viewport(explorer_id: str, request: ViewportRequest):
    """Update canvas size, zoom and pan."""
    explorer = _require_explorer(explorer_id)
    return _respond(explorer, explorer.resize(**request.model_dump()))


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Clients connect here to receive positions, node_selected, error and
    rendered events.
    """
    await ws_manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text('{"type": "pong"}')
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)
    except Exception:
        logger.exception("WebSocket connection failed")
        await ws_manager.disconnect(websocket)


# --- Run with uvicorn ---

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=settings.host, port=settings.port)
