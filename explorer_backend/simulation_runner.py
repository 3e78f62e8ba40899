"""
Simulation Runner - Drives layout ticks from the asyncio event loop.

One task per explorer runs a few ticks per frame and yields between
frames, so HTTP and WebSocket traffic keeps flowing while a layout
converges. Scheduling a new run cancels the pending task first; a task
whose generation has been superseded stops without writing positions.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .explorer_manager import SchemaExplorer

logger = logging.getLogger(__name__)

FrameCallback = Callable[[dict], Awaitable[None]]


class SimulationRunner:
    """Cooperative tick loop for a single SchemaExplorer."""

    def __init__(
        self,
        explorer: SchemaExplorer,
        on_frame: Optional[FrameCallback] = None,
        frame_interval: float = 1 / 60,
        ticks_per_frame: int = 1
    ):
        self._explorer = explorer
        self._on_frame = on_frame
        self._frame_interval = frame_interval
        self._ticks_per_frame = max(1, ticks_per_frame)
        self._task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, generation: Optional[int] = None):
        """
        Start ticking the explorer's current run.

        Any pending task for an earlier run is cancelled. Outside a running
        event loop this is a no-op; callers can step the explorer directly.
        """
        self.cancel()
        if generation is None:
            generation = self._explorer.generation

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, layout run %d not scheduled", generation)
            return

        self._task = loop.create_task(self._run(generation))

    def cancel(self):
        """Cancel the pending tick task, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self):
        """Wait for the current task to finish (converged, stale or cancelled)."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self, generation: int):
        frames = 0
        while True:
            advanced = False
            for _ in range(self._ticks_per_frame):
                if not self._explorer.tick(generation):
                    break
                advanced = True

            if not advanced:
                # Converged, or superseded by a newer run
                break

            frames += 1
            if self._on_frame is not None:
                try:
                    await self._on_frame(self._explorer.frame())
                except Exception:
                    logger.exception("Frame callback failed for layout run %d", generation)

            await asyncio.sleep(self._frame_interval)

        logger.debug("Layout run %d finished after %d frames", generation, frames)
