"""Simulation clock: per-frame particle advance with throttled publishing."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trafficflow.engine.state import FlowState
    from trafficflow.projection.surface import RenderSurface

logger = logging.getLogger(__name__)


class SimulationClock:
    """Drives the particle simulation from a single asyncio task.

    Every tick advances the pool; every ``publish_every``-th tick pushes a full
    snapshot to the render surface. Stopping flips the running flag and the
    loop exits at its next check.
    """

    def __init__(
        self,
        state: FlowState,
        surface: RenderSurface,
        frame_interval: float = 1.0 / 60.0,
        publish_every: int = 2,
    ) -> None:
        if publish_every < 1:
            raise ValueError(f"publish_every must be >= 1, got {publish_every}")
        self._state = state
        self._surface = surface
        self._frame_interval = frame_interval
        self._publish_every = publish_every
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._run_id = 0
        self.frame_count = 0

    @property
    def running(self) -> bool:
        """Whether the loop will keep ticking."""
        return self._running

    def tick(self) -> bool:
        """Execute one frame.

        Returns:
            False if the visualization is disabled (the loop should exit),
            True otherwise.
        """
        state = self._state
        if not state.enabled:
            self._running = False
            return False

        state.pool.advance(state.store)
        self.frame_count += 1

        if self.frame_count % self._publish_every == 0:
            self._surface.set_points(state.pool.sample(state.store))

        # Debug log every 600 frames to avoid log spam
        if self.frame_count % 600 == 0:
            logger.debug(
                "Frame %d: segments=%d, particles=%d",
                self.frame_count,
                state.store.count(),
                len(state.pool),
            )
        return True

    def start(self) -> SimulationClock:
        """Schedule the frame loop on the running event loop (idempotent)."""
        if self._running and self._task is not None and not self._task.done():
            return self
        self._running = True
        self._run_id += 1
        self.frame_count = 0
        self._task = asyncio.get_running_loop().create_task(self._run(self._run_id))
        logger.info("Simulation clock started at %.1f fps", 1.0 / self._frame_interval)
        return self

    def stop(self) -> None:
        """Ask the loop to exit at its next check."""
        if not self._running:
            return
        self._running = False
        logger.info("Simulation clock stopped after %d frames", self.frame_count)

    async def wait_stopped(self) -> None:
        """Wait for the loop task to finish."""
        if self._task is not None:
            await self._task

    async def _run(self, run_id: int) -> None:
        # A loop left over from before a stop/start cycle sees a newer run_id.
        while self._running and run_id == self._run_id:
            if not self.tick():
                break
            await asyncio.sleep(self._frame_interval)
