"""Acquisition controller: viewport-driven road fetch, densify, install.

One acquisition cycle fetches major and minor roads for a bounding box,
densifies them into segments and installs them into the shared FlowState,
re-seeding the particle pool in the same step.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from trafficflow.acquisition.debounce import Debouncer
from trafficflow.acquisition.overpass import GeodataError
from trafficflow.engine.segment_store import build_segments

if TYPE_CHECKING:
    from trafficflow.acquisition.overpass import OverpassClient
    from trafficflow.config import FlowConfig
    from trafficflow.engine.state import FlowState
    from trafficflow.model.segment import BoundingBox

logger = logging.getLogger(__name__)


class AcquisitionController:
    """Decides when to refetch road geometry and applies the results.

    Guards:
    - de-duplication: an unchanged bbox key with segments present is a no-op
    - re-entrancy: a request while a fetch is in flight is dropped, not queued
    - liveness: results are discarded if the visualization was disabled (or
      re-enabled) while the fetch was in flight
    """

    def __init__(
        self,
        state: FlowState,
        client: OverpassClient,
        config: FlowConfig,
    ) -> None:
        self._state = state
        self._client = client
        self._config = config
        self._debouncer = Debouncer(config.debounce_seconds, self._on_quiet)
        self._tasks: set[asyncio.Task[bool]] = set()
        self.cycles_completed = 0

    @property
    def debounce_pending(self) -> bool:
        """Whether a debounced acquisition is waiting for its quiet window."""
        return self._debouncer.pending

    def start(self) -> AcquisitionController:
        """Start accepting viewport notifications."""
        logger.debug("Acquisition controller started (epoch %d)", self._state.epoch)
        return self

    def stop(self) -> None:
        """Cancel any pending debounced acquisition.

        In-flight fetches are left to finish; the liveness check discards them.
        """
        self._debouncer.cancel()

    def viewport_moved(self, bbox: BoundingBox) -> None:
        """Record the latest viewport and restart the debounce window."""
        self._state.viewport = bbox
        if not self._state.enabled:
            return
        self._debouncer.trigger()

    def schedule(self, bbox: BoundingBox) -> asyncio.Task[bool]:
        """Run acquire(bbox) as a task on the running loop."""
        task = asyncio.get_running_loop().create_task(self.acquire(bbox))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    async def drain(self) -> None:
        """Wait for all scheduled acquisitions to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def acquire(self, bbox: BoundingBox) -> bool:
        """Run one acquisition cycle for ``bbox``.

        Returns:
            True if new segments were installed, False if the cycle was
            skipped, dropped, discarded or failed.
        """
        state = self._state
        config = self._config

        if state.fetching:
            logger.debug("Acquisition already in flight, dropping request")
            return False

        key = bbox.key(config.bbox_key_precision)
        if key == state.last_key and state.store.count() > 0:
            logger.debug("Viewport %s unchanged, skipping fetch", key)
            return False

        epoch = state.epoch
        state.fetching_epoch = epoch
        try:
            major = await self._client.fetch_ways(bbox, config.major_road_classes)
            minor = await self._client.fetch_ways(
                bbox, config.minor_road_classes, limit=config.minor_road_limit
            )
        except GeodataError as e:
            logger.error("Failed to fetch roads for %s: %s", key, e)
            return False
        finally:
            if state.fetching_epoch == epoch:
                state.fetching_epoch = None

        if not state.enabled or state.epoch != epoch:
            logger.debug("Visualization toggled during fetch, discarding roads for %s", key)
            return False

        segments = build_segments([*major, *minor], config.sample_spacing)
        state.install(segments, config.particle_target_count, config.particle_hard_cap)
        state.last_key = key
        self.cycles_completed += 1

        logger.info(
            "Installed %d segments (%d major, %d minor ways) and %d particles for %s",
            state.store.count(),
            len(major),
            len(minor),
            len(state.pool),
            key,
        )
        return True

    def _task_done(self, task: asyncio.Task[bool]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Acquisition task crashed", exc_info=task.exception())

    def _on_quiet(self) -> None:
        viewport = self._state.viewport
        if viewport is None or not self._state.enabled:
            return
        self.schedule(viewport)
