"""Traffic flow visualization lifecycle.

Wires the shared FlowState, the simulation clock and the acquisition
controller to a render surface, and exposes the enable/disable and viewport
signals the map layer sends.

Usage (inside a running event loop):
    flow = start(surface)
    await flow.enable(bbox)  # awaits the initial acquisition
    flow.viewport_moved(new_bbox)
    ...
    await flow.stop()
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from trafficflow.acquisition.controller import AcquisitionController
from trafficflow.acquisition.overpass import OverpassClient
from trafficflow.config import FlowConfig, get_flow_config
from trafficflow.engine.clock import SimulationClock
from trafficflow.engine.particle_pool import ParticlePool
from trafficflow.engine.state import FlowState

if TYPE_CHECKING:
    from trafficflow.model.segment import BoundingBox
    from trafficflow.projection.surface import RenderSurface

logger = logging.getLogger(__name__)


@dataclass
class FlowStatus:
    """Snapshot of the visualization for status displays."""

    enabled: bool
    loading: bool
    segment_count: int
    particle_count: int
    frame_count: int
    last_key: str


class TrafficFlow:
    """Handle for one running traffic flow visualization.

    Enabling always starts from a fresh acquisition; disabling is a full
    teardown of segments, particles and the published collection.
    """

    def __init__(
        self,
        surface: RenderSurface,
        config: FlowConfig | None = None,
        client: OverpassClient | None = None,
    ) -> None:
        self._config = config or get_flow_config()
        self._surface = surface
        self._owns_client = client is None
        self._client = client or OverpassClient(self._config)

        rng = random.Random(self._config.random_seed)
        self.state = FlowState(
            pool=ParticlePool((self._config.speed_min, self._config.speed_max), rng=rng)
        )
        self.clock = SimulationClock(
            self.state,
            surface,
            frame_interval=self._config.frame_interval,
            publish_every=self._config.publish_every,
        )
        self.controller = AcquisitionController(self.state, self._client, self._config)

    @property
    def config(self) -> FlowConfig:
        """The configuration this flow was started with."""
        return self._config

    @property
    def enabled(self) -> bool:
        """Whether the visualization is on."""
        return self.state.enabled

    def enable(self, bbox: BoundingBox) -> asyncio.Task[bool] | None:
        """Turn the visualization on for the given viewport.

        Returns:
            The task running the initial acquisition, or None if the
            visualization was already enabled.
        """
        if self.state.enabled:
            return None

        self.state.epoch += 1
        self.state.enabled = True
        self.state.viewport = bbox
        self._surface.set_visible(True)
        self.controller.start()
        self.clock.start()
        logger.info("Traffic flow enabled for %s", bbox.key(self._config.bbox_key_precision))
        return self.controller.schedule(bbox)

    def disable(self) -> None:
        """Turn the visualization off and tear down all simulation state."""
        if not self.state.enabled:
            return

        self.state.epoch += 1
        self.state.enabled = False
        self.controller.stop()
        self.clock.stop()
        self._surface.clear()
        self._surface.set_visible(False)
        self.state.clear()
        logger.info("Traffic flow disabled")

    def viewport_moved(self, bbox: BoundingBox) -> None:
        """Viewport settled at ``bbox``; refetch after the debounce window."""
        if not self.state.enabled:
            return
        self.controller.viewport_moved(bbox)

    def status(self) -> FlowStatus:
        """Current counts and flags."""
        return FlowStatus(
            enabled=self.state.enabled,
            loading=self.state.loading,
            segment_count=self.state.store.count(),
            particle_count=len(self.state.pool),
            frame_count=self.clock.frame_count,
            last_key=self.state.last_key,
        )

    async def stop(self) -> None:
        """Disable, let outstanding work finish, and release the client."""
        self.disable()
        await self.clock.wait_stopped()
        await self.controller.drain()
        if self._owns_client:
            await self._client.aclose()


def start(
    surface: RenderSurface,
    config: FlowConfig | None = None,
    client: OverpassClient | None = None,
) -> TrafficFlow:
    """Create a traffic flow handle bound to ``surface``.

    Nothing runs until enable() is called.
    """
    return TrafficFlow(surface, config=config, client=client)
