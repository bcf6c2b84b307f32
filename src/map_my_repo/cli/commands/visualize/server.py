"""HTTP server exposing a GraphEngine to a browser renderer.

The renderer polls ``GET /api/snapshot`` for positions (the engine ticks in
a background task for the lifetime of the app) and posts interactions back.
Node ids contain slashes, so routes take them as ``path`` parameters.
"""

import socket
import webbrowser
from contextlib import asynccontextmanager
from typing import Any

import typer
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel

from ....core.exceptions import GraphNodeNotFoundError, TreeNodeNotFoundError
from ....visualization.engine import GraphEngine

console = Console()


class PointerPosition(BaseModel):
    x: float
    y: float


class DragStart(BaseModel):
    x: float | None = None
    y: float | None = None


class CameraDelta(BaseModel):
    dx: float = 0.0
    dy: float = 0.0
    scale: float = 1.0
    anchor_x: float | None = None
    anchor_y: float | None = None


class HoverTarget(BaseModel):
    node_id: str | None = None


class LocateQuery(BaseModel):
    query: str


def find_free_port(start_port: int = 8080, end_port: int = 8099) -> int:
    """Find a free port in the given range.

    Args:
        start_port: Starting port number to check
        end_port: Ending port number to check

    Returns:
        First available port in the range

    Raises:
        OSError: If no free ports available in range
    """
    for test_port in range(start_port, end_port + 1):
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(("", test_port))
                return test_port
        except OSError:
            continue
    raise OSError(f"No free ports available in range {start_port}-{end_port}")


def create_app(engine: GraphEngine) -> FastAPI:
    """Create the FastAPI application around an engine.

    Args:
        engine: Engine to expose; its animation loop runs while the app is up

    Returns:
        Configured FastAPI application

    Error Handling:
    - Unknown node id: 404
    - Known but hidden node id: 409
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine.loop.start()
        logger.info("Graph engine animation loop running")
        yield
        await engine.loop.stop()

    app = FastAPI(title="map-my-repo", lifespan=lifespan)

    @app.exception_handler(TreeNodeNotFoundError)
    async def node_not_found(request: Request, exc: TreeNodeNotFoundError) -> JSONResponse:
        status = 409 if isinstance(exc, GraphNodeNotFoundError) else 404
        return JSONResponse(
            status_code=status, content={"detail": str(exc), **exc.context}
        )

    def snapshot() -> dict[str, Any]:
        return engine.snapshot().to_dict()

    @app.get("/api/snapshot")
    async def get_snapshot() -> dict[str, Any]:
        """Visible nodes, edges and camera transform."""
        return snapshot()

    @app.get("/api/nodes/{node_id:path}")
    async def get_node(node_id: str) -> dict[str, Any]:
        return engine.node_details(node_id)

    @app.post("/api/nodes/{node_id:path}/click")
    async def click_node(node_id: str) -> dict[str, Any]:
        action = await engine.click(node_id)
        return {"action": action.value, "node": engine.node_details(node_id)}

    @app.post("/api/nodes/{node_id:path}/expand")
    async def expand_node(node_id: str) -> dict[str, Any]:
        expanded = await engine.expand(node_id)
        return {"expanded": expanded, "snapshot": snapshot()}

    @app.post("/api/nodes/{node_id:path}/collapse")
    async def collapse_node(node_id: str) -> dict[str, Any]:
        collapsed = await engine.collapse(node_id)
        return {"collapsed": collapsed, "snapshot": snapshot()}

    @app.post("/api/nodes/{node_id:path}/reveal")
    async def reveal_node(node_id: str) -> dict[str, Any]:
        revealed = await engine.reveal(node_id)
        return {"revealed": revealed, "snapshot": snapshot()}

    @app.post("/api/nodes/{node_id:path}/summary")
    async def summarize_node(node_id: str) -> dict[str, Any]:
        return {"summary": await engine.summarize(node_id)}

    @app.post("/api/nodes/{node_id:path}/focus")
    async def focus_node(node_id: str) -> dict[str, Any]:
        engine.focus(node_id)
        return {"focus": node_id}

    @app.post("/api/nodes/{node_id:path}/drag/start")
    async def drag_start(node_id: str, body: DragStart | None = None) -> dict[str, Any]:
        body = body or DragStart()
        engine.start_drag(node_id, body.x, body.y)
        return {"dragging": node_id}

    @app.post("/api/nodes/{node_id:path}/drag/move")
    async def drag_move(node_id: str, body: PointerPosition) -> dict[str, Any]:
        engine.drag(node_id, body.x, body.y)
        return {"dragging": node_id}

    @app.post("/api/nodes/{node_id:path}/drag/end")
    async def drag_end(node_id: str) -> dict[str, Any]:
        engine.end_drag(node_id)
        return {"dragging": None}

    @app.post("/api/hover")
    async def hover(body: HoverTarget) -> dict[str, Any]:
        engine.hover(body.node_id)
        return {"hovered": engine.interaction.hovered}

    @app.post("/api/camera")
    async def camera(body: CameraDelta) -> dict[str, Any]:
        anchor = None
        if body.anchor_x is not None and body.anchor_y is not None:
            anchor = (body.anchor_x, body.anchor_y)
        transform = engine.pan_zoom(body.dx, body.dy, body.scale, anchor)
        return transform.to_dict()

    @app.post("/api/locate")
    async def locate(body: LocateQuery) -> dict[str, Any]:
        return {"node_id": await engine.locate(body.query)}

    return app


def start_visualization_server(
    engine: GraphEngine, port: int, source: str, auto_open: bool = False
) -> None:
    """Start the HTTP server for an engine.

    Args:
        engine: Engine to serve
        port: Port number to use
        source: Where the tree came from (shown in the banner)
        auto_open: Whether to automatically open browser

    Raises:
        typer.Exit: If server fails to start
    """
    try:
        app = create_app(engine)
        url = f"http://localhost:{port}"

        console.print()
        console.print(
            Panel.fit(
                f"[green]✓[/green] Graph server running\n\n"
                f"API: [cyan]{url}/api/snapshot[/cyan]\n"
                f"Source: [dim]{source}[/dim]\n"
                f"Nodes in tree: [dim]{len(engine.tree)}[/dim]\n\n"
                f"[dim]Press Ctrl+C to stop[/dim]",
                title="Server Started",
                border_style="green",
            )
        )

        if auto_open:
            webbrowser.open(f"{url}/docs")

        config = uvicorn.Config(
            app,
            host="127.0.0.1",
            port=port,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)
        server.run()

    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping server...[/yellow]")
    except OSError as e:
        if "Address already in use" in str(e):
            console.print(
                f"[red]✗ Port {port} is already in use. Try a different port with --port[/red]"
            )
        else:
            console.print(f"[red]✗ Server error: {e}[/red]")
        raise typer.Exit(1)
