"""
Explorer Manager - Focus/navigation state and layout control for schema diagrams.

This module implements:
- One SchemaExplorer per diagram instance (no shared mutable globals)
- Focus mode state machine: Unfocused <-> Focused(type, depth)
- Re-layout on every change of the visible node set, keeping positions
- Drag, improve and reset routed through the layout engine
- Callbacks for node selection, errors, render counts and layout restarts

Public methods never raise: they return an OperationResult and report
failures through the error callbacks.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from schemagraph.analysis import search_types, summarize_graph
from schemagraph.builder import build_graph
from schemagraph.distance import compute_distances, filter_by_depth
from schemagraph.layout import LayoutEngine
from schemagraph.models import FocusState, GraphModel, LayoutParams, ViewportContext
from schemagraph.parser import ParseError, parse_schema
from schemagraph.validation import validate_graph, validation_summary

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of a public explorer operation."""
    success: bool
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, message: Optional[str] = None) -> "OperationResult":
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        result = {"success": self.success}
        if self.error:
            result["error"] = self.error
        if self.message:
            result["message"] = self.message
        return result


def _guarded(method=None, *, fallback: Optional[Callable[["SchemaExplorer"], Any]] = None):
    """
    Turn unexpected exceptions into failed results at the public boundary.

    Methods that do not return an OperationResult pass `fallback`, which
    builds their return value from the explorer after a failure.
    """
    if method is None:
        return functools.partial(_guarded, fallback=fallback)

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except Exception as e:
            logger.exception("Explorer operation %s failed", method.__name__)
            self._notify_error(str(e))
            if fallback is not None:
                return fallback(self)
            return OperationResult.fail(str(e))
    return wrapper


class SchemaExplorer:
    """
    Interactive schema relationship diagram.

    The full graph is rebuilt from text on every load. The visible graph is
    the full graph, narrowed by focus depth and then by the search query.
    Whenever the visible node set changes the layout engine restarts with
    continuity: surviving nodes keep their positions.
    """

    def __init__(
        self,
        params: Optional[LayoutParams] = None,
        include_scalars: bool = True,
        context: Optional[ViewportContext] = None
    ):
        self.context = context or ViewportContext()
        layout_params = (params or LayoutParams()).model_copy(
            update={"width": self.context.width, "height": self.context.height}
        )
        self._engine = LayoutEngine(layout_params)
        self._include_scalars = include_scalars

        self._graph: Optional[GraphModel] = None      # Full graph
        self._visible: Optional[GraphModel] = None    # After focus + search filters
        self._focus = FocusState()
        self._search = ""
        self._last_error: Optional[str] = None

        self._on_node_selected_callbacks: list[Callable[[str], None]] = []
        self._on_error_callbacks: list[Callable[[str], None]] = []
        self._on_rendered_callbacks: list[Callable[[int, int], None]] = []
        self._on_layout_callbacks: list[Callable[[int], None]] = []

    # --- Properties ---

    @property
    def graph(self) -> Optional[GraphModel]:
        """The full graph of the last successfully parsed schema."""
        return self._graph

    @property
    def visible_graph(self) -> Optional[GraphModel]:
        return self._visible

    @property
    def focus(self) -> FocusState:
        return self._focus

    @property
    def search_query(self) -> str:
        return self._search

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def generation(self) -> int:
        return self._engine.generation

    @property
    def is_running(self) -> bool:
        return self._engine.is_running

    @property
    def layout_params(self) -> LayoutParams:
        return self._engine.params

    def positions(self) -> dict[str, tuple[float, float]]:
        """Copy of the current node positions."""
        return self._engine.positions()

    # --- Callbacks ---

    def on_node_selected(self, callback: Callable[[str], None]):
        """Register a callback receiving the name of a newly focused type."""
        self._on_node_selected_callbacks.append(callback)

    def on_error(self, callback: Callable[[str], None]):
        """Register a callback receiving user-facing error messages."""
        self._on_error_callbacks.append(callback)

    def on_rendered(self, callback: Callable[[int, int], None]):
        """Register a callback receiving (node_count, edge_count) after each refilter."""
        self._on_rendered_callbacks.append(callback)

    def on_layout(self, callback: Callable[[int], None]):
        """Register a callback receiving the generation of each new layout run."""
        self._on_layout_callbacks.append(callback)

    def _emit(self, callbacks: list[Callable], *args):
        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                logger.exception("Explorer callback %r failed", callback)

    def _notify_error(self, message: str):
        self._last_error = message
        self._emit(self._on_error_callbacks, message)

    def _notify_layout(self):
        self._emit(self._on_layout_callbacks, self._engine.generation)

    # --- Schema loading ---

    @_guarded
    def load_schema(self, text: str) -> OperationResult:
        """
        Parse schema text and rebuild the diagram.

        On a parse error the previous graph, focus and layout stay as they
        were. The current focus survives a reload if the type still exists.
        """
        try:
            parsed = parse_schema(text)
        except ParseError as e:
            logger.warning("Schema parse failed: %s", e.message)
            self._notify_error(e.message)
            return OperationResult.fail(e.message)

        graph = build_graph(parsed, include_scalars=self._include_scalars)
        for ref in graph.unresolved:
            logger.info("Field %s.%s refers to undeclared type %s", ref.type_name, ref.field, ref.target)

        self._graph = graph
        self._last_error = None

        if self._focus.is_focused and self._focus.focused_id not in graph.nodes:
            logger.debug("Focused type %s no longer exists, leaving focus mode", self._focus.focused_id)
            self._focus = FocusState()

        self._refresh()
        return OperationResult.ok(f"Loaded {graph.node_count} types and {graph.edge_count} relationships")

    # --- Focus state machine ---

    @_guarded
    def click_node(self, node_id: str) -> OperationResult:
        """
        Handle a click on a node.

        Clicking the focused node leaves focus mode; clicking any other
        visible node focuses it (depth 1 from unfocused, depth kept when
        moving focus between nodes).
        """
        if self._visible is None or node_id not in self._visible.nodes:
            return OperationResult.fail(f"Type not found: {node_id}")

        if self._focus.focused_id == node_id:
            self._focus = FocusState()
            self._refresh()
            return OperationResult.ok(f"Left focus on {node_id}")

        depth = self._focus.depth if self._focus.is_focused else 1
        self._focus = FocusState(focused_id=node_id, depth=depth)
        self._refresh()
        self._emit(self._on_node_selected_callbacks, node_id)
        return OperationResult.ok(f"Focused {node_id}")

    @_guarded
    def click_canvas(self) -> OperationResult:
        """Handle a click on empty canvas: leave focus mode if active."""
        if not self._focus.is_focused:
            return OperationResult.ok()
        self._focus = FocusState()
        self._refresh()
        return OperationResult.ok("Left focus mode")

    @_guarded
    def change_depth(self, delta: int) -> OperationResult:
        """Grow or shrink the focus neighbourhood. Depth never drops below 1."""
        if not self._focus.is_focused:
            return OperationResult.fail("No type is focused")

        depth = max(1, self._focus.depth + delta)
        if depth == self._focus.depth:
            return OperationResult.ok(f"Depth unchanged at {depth}")

        self._focus = FocusState(focused_id=self._focus.focused_id, depth=depth)
        self._refresh()
        return OperationResult.ok(f"Depth set to {depth}")

    @_guarded
    def set_search(self, query: str) -> OperationResult:
        """Show only types whose name or fields match the query."""
        query = query.strip()
        if query == self._search:
            return OperationResult.ok()
        self._search = query
        if self._graph is not None:
            self._refresh()
        return OperationResult.ok()

    # --- Layout control ---

    @_guarded
    def drag_start(self, node_id: str, x: float, y: float) -> OperationResult:
        if node_id == self._focus.focused_id:
            return OperationResult.fail("The focused type cannot be dragged")
        generation = self._engine.generation
        if not self._engine.drag_start(node_id, x, y):
            return OperationResult.fail(f"Type not found: {node_id}")
        if self._engine.generation != generation:
            self._notify_layout()
        return OperationResult.ok()

    @_guarded
    def drag_move(self, node_id: str, x: float, y: float) -> OperationResult:
        if not self._engine.drag_move(node_id, x, y):
            return OperationResult.fail(f"Type is not being dragged: {node_id}")
        return OperationResult.ok()

    @_guarded
    def drag_end(self, node_id: str) -> OperationResult:
        if not self._engine.drag_end(node_id):
            return OperationResult.fail(f"Type cannot be released: {node_id}")
        return OperationResult.ok()

    @_guarded
    def improve_layout(self) -> OperationResult:
        """Spread nodes further apart, starting from the current positions."""
        if not self._engine.node_count:
            return OperationResult.fail("Nothing to lay out")
        self._engine.improve()
        self._notify_layout()
        return OperationResult.ok("Layout improved")

    @_guarded
    def reset_layout(self) -> OperationResult:
        """Restore default forces and release every pin except the focus."""
        if not self._engine.node_count:
            return OperationResult.fail("Nothing to lay out")
        self._engine.reset()
        self._notify_layout()
        return OperationResult.ok("Layout reset")

    @_guarded
    def resize(
        self,
        width: Optional[float] = None,
        height: Optional[float] = None,
        zoom: Optional[float] = None,
        pan_x: Optional[float] = None,
        pan_y: Optional[float] = None
    ) -> OperationResult:
        """Update the viewport; a new canvas size moves the layout center."""
        updates = {
            key: value for key, value in
            {"width": width, "height": height, "zoom": zoom, "pan_x": pan_x, "pan_y": pan_y}.items()
            if value is not None
        }
        self.context = self.context.model_copy(update=updates)
        if width is not None or height is not None:
            self._engine.set_canvas_size(self.context.width, self.context.height)
        return OperationResult.ok()

    @_guarded(fallback=lambda self: False)
    def tick(self, generation: Optional[int] = None) -> bool:
        """Advance the layout one step; False if stale or converged."""
        return self._engine.tick(generation)

    @_guarded(fallback=lambda self: 0)
    def step(self, ticks: int) -> int:
        """Advance the layout synchronously by up to `ticks` steps."""
        return self._engine.run(max_ticks=ticks)

    # --- Filtering ---

    def _refresh(self):
        """Recompute the visible graph and restart the layout over it."""
        graph = self._graph
        if graph is None:
            return

        visible = graph
        focus_id = self._focus.focused_id
        if focus_id is not None:
            distances = compute_distances(graph, focus_id)
            visible = filter_by_depth(graph, distances, self._focus.depth)

        if self._search:
            keep = set(search_types(visible, self._search))
            if focus_id is not None:
                keep.add(focus_id)
            visible = visible.subgraph(keep)

        self._visible = visible

        if visible.node_count == 0:
            self._engine.clear()
        else:
            self._engine.start(list(visible.nodes.values()), visible.links(), anchor_id=focus_id)

        self._emit(self._on_rendered_callbacks, visible.node_count, visible.edge_count)
        self._notify_layout()

    # --- State for renderers ---

    @_guarded(fallback=lambda self: self._bare_state())
    def get_state(self) -> dict:
        """Get the full current state for API responses and renderers."""
        if self._visible is None:
            return self._bare_state()

        positions = self._engine.positions()
        graph = self._visible.to_json_dict()
        for node in graph["nodes"]:
            node["x"], node["y"] = positions.get(node["id"], (node["x"], node["y"]))
            node["pinned"] = self._engine.is_pinned(node["id"])

        return {
            **self._bare_state(),
            "graph": graph,
            "empty": self._visible.node_count == 0,
            "node_count": self._visible.node_count,
            "edge_count": self._visible.edge_count,
            "total_node_count": self._graph.node_count if self._graph else 0,
            "total_edge_count": self._graph.edge_count if self._graph else 0,
        }

    def _bare_state(self) -> dict:
        """State without graph content (before the first load, or after a failure)."""
        return {
            "graph": None,
            "empty": True,
            "focus": self._focus.model_dump(),
            "search": self._search,
            "error": self._last_error,
            "layout": self._layout_state(),
            "viewport": self.context.model_dump(),
        }

    def _layout_state(self) -> dict:
        return {
            "generation": self._engine.generation,
            "alpha": self._engine.alpha,
            "running": self._engine.is_running,
            "ticks": self._engine.tick_count,
        }

    @_guarded(fallback=lambda self: {**self._layout_state(), "running": False, "positions": {}})
    def frame(self) -> dict:
        """Lightweight position update for streaming to renderers."""
        return {
            "generation": self._engine.generation,
            "alpha": self._engine.alpha,
            "running": self._engine.is_running,
            "positions": {nid: [x, y] for nid, (x, y) in self._engine.positions().items()},
        }

    # --- Diagnostics ---

    @_guarded(fallback=lambda self: {"issues": [], "summary": validation_summary([])})
    def validate(self) -> dict:
        """Structural issues of the full graph."""
        if self._graph is None:
            return {"issues": [], "summary": validation_summary([])}
        issues = validate_graph(self._graph)
        return {
            "issues": [issue.to_dict() for issue in issues],
            "summary": validation_summary(issues),
        }

    @_guarded(fallback=lambda self: None)
    def summarize(self) -> Optional[dict]:
        """Structural summary of the full graph, or None before the first load."""
        if self._graph is None:
            return None
        return summarize_graph(self._graph).to_dict()


class ExplorerRegistry:
    """
    Independent explorer instances keyed by id.

    Each instance owns its own graph, focus, layout and viewport.
    """

    def __init__(self, include_scalars: bool = True):
        self._include_scalars = include_scalars
        self._explorers: dict[str, SchemaExplorer] = {}
        self._on_create_callbacks: list[Callable[[str, SchemaExplorer], None]] = []

    def on_create(self, callback: Callable[[str, SchemaExplorer], None]):
        """Register a callback run for every newly created explorer."""
        self._on_create_callbacks.append(callback)

    def configure(self, include_scalars: bool):
        """Set the scalar policy for explorers created from now on."""
        self._include_scalars = include_scalars

    def get(self, explorer_id: str) -> Optional[SchemaExplorer]:
        return self._explorers.get(explorer_id)

    def get_or_create(self, explorer_id: str) -> SchemaExplorer:
        explorer = self._explorers.get(explorer_id)
        if explorer is None:
            explorer = SchemaExplorer(include_scalars=self._include_scalars)
            self._explorers[explorer_id] = explorer
            for callback in self._on_create_callbacks:
                callback(explorer_id, explorer)
            logger.info("Created explorer %s", explorer_id)
        return explorer

    def remove(self, explorer_id: str) -> bool:
        return self._explorers.pop(explorer_id, None) is not None

    def ids(self) -> list[str]:
        return list(self._explorers)

    def clear(self):
        self._explorers.clear()


# Global instance for the application
explorer_registry = ExplorerRegistry()
