"""FastAPI server exposing the traffic flow visualization.

Provides:
- WebSocket /ws/particles: stream the particle FeatureCollection
- REST API to enable/disable the layer, report viewport moves and read status
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, Field, model_validator

from trafficflow import __version__
from trafficflow.acquisition.overpass import OverpassClient
from trafficflow.config import FlowConfig
from trafficflow.model.segment import BoundingBox
from trafficflow.projection.projector import layer_style
from trafficflow.projection.surface import FeatureCollectionSurface
from trafficflow.visualization import TrafficFlow, start

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

# Streaming rate for /ws/particles; the clock publishes at frame_rate / publish_every.
STREAM_FPS = 30.0


class BoundingBoxRequest(BaseModel):
    """A viewport rectangle in degrees."""

    west: float = Field(ge=-180.0, le=180.0, description="Western edge (longitude)")
    south: float = Field(ge=-90.0, le=90.0, description="Southern edge (latitude)")
    east: float = Field(ge=-180.0, le=180.0, description="Eastern edge (longitude)")
    north: float = Field(ge=-90.0, le=90.0, description="Northern edge (latitude)")

    @model_validator(mode="after")
    def check_orientation(self) -> BoundingBoxRequest:
        """Reject inverted boxes."""
        if self.south > self.north:
            raise ValueError("south must not exceed north")
        if self.west > self.east:
            raise ValueError("west must not exceed east")
        return self

    def to_bbox(self) -> BoundingBox:
        """Convert to the domain BoundingBox."""
        return BoundingBox(west=self.west, south=self.south, east=self.east, north=self.north)


class FlowStatusResponse(BaseModel):
    """Response model for the visualization status."""

    enabled: bool = Field(description="Whether the particle layer is on")
    loading: bool = Field(description="True while the first road fetch is running")
    visible: bool = Field(description="Layer visibility flag on the render surface")
    segment_count: int = Field(description="Road segments in the current generation")
    particle_count: int = Field(description="Particles in the pool")
    frame_count: int = Field(description="Ticks since the clock started")
    last_key: str = Field(description="Viewport key of the last installed acquisition")


class ControlCommandResponse(BaseModel):
    """Response for control commands."""

    success: bool = Field(description="Whether command succeeded")
    message: str = Field(description="Status message")


class FlowService:
    """Owns the surface and the TrafficFlow handle for the app's lifetime."""

    def __init__(
        self,
        config: FlowConfig | None = None,
        client: OverpassClient | None = None,
    ) -> None:
        self.surface = FeatureCollectionSurface()
        self._config = config
        self._client = client
        self._flow: TrafficFlow | None = None

    @property
    def flow(self) -> TrafficFlow:
        """The running flow; created lazily inside the event loop."""
        if self._flow is None:
            self._flow = start(self.surface, config=self._config, client=self._client)
        return self._flow

    async def shutdown(self) -> None:
        """Stop the flow and release its resources."""
        if self._flow is not None:
            await self._flow.stop()
            self._flow = None


_service: FlowService | None = None


def get_service() -> FlowService:
    """Get or create the global flow service."""
    global _service
    if _service is None:
        _service = FlowService()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager: tear the flow down on shutdown."""
    service = get_service()
    yield
    await service.shutdown()


app = FastAPI(
    title="Traffic Flow",
    description="Decorative traffic particle layer over live road geometry",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/api/traffic/status", response_model=FlowStatusResponse, tags=["traffic"])
async def get_status() -> FlowStatusResponse:
    """Get the visualization status (drives the loading indicator)."""
    service = get_service()
    flow_status = service.flow.status()
    return FlowStatusResponse(visible=service.surface.visible, **asdict(flow_status))


@app.post("/api/traffic/enable", response_model=ControlCommandResponse, tags=["traffic"])
async def enable_traffic(bbox: BoundingBoxRequest) -> ControlCommandResponse:
    """Turn the particle layer on for a viewport and start the first fetch."""
    flow = get_service().flow
    if flow.enabled:
        return ControlCommandResponse(success=True, message="Traffic flow already enabled")
    flow.enable(bbox.to_bbox())
    return ControlCommandResponse(success=True, message="Traffic flow enabled")


@app.post("/api/traffic/disable", response_model=ControlCommandResponse, tags=["traffic"])
async def disable_traffic() -> ControlCommandResponse:
    """Turn the particle layer off and clear all state."""
    get_service().flow.disable()
    return ControlCommandResponse(success=True, message="Traffic flow disabled")


@app.post("/api/viewport", response_model=ControlCommandResponse, tags=["traffic"])
async def viewport_moved(bbox: BoundingBoxRequest) -> ControlCommandResponse:
    """Report that the map viewport settled; refetch is debounced."""
    flow = get_service().flow
    if not flow.enabled:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Traffic flow is not enabled",
        )
    flow.viewport_moved(bbox.to_bbox())
    return ControlCommandResponse(success=True, message="Viewport update accepted")


@app.get("/api/traffic/particles", tags=["traffic"])
async def get_particles() -> dict[str, Any]:
    """Get the most recently published particle FeatureCollection."""
    return get_service().surface.collection


@app.get("/api/traffic/layer", tags=["traffic"])
async def get_layer() -> dict[str, Any]:
    """Get the map-layer definition for the particle source."""
    return layer_style()


@app.websocket("/ws/particles")
async def websocket_particles(websocket: WebSocket) -> None:
    """Stream the particle FeatureCollection at ~30 FPS.

    Only sends when the surface has published something new since the last
    message.
    """
    await websocket.accept()
    surface = get_service().surface
    logger.info("Particle stream client connected")

    try:
        interval = 1.0 / STREAM_FPS
        last_sent = -1
        loop = asyncio.get_running_loop()

        while True:
            started = loop.time()
            if surface.publish_count != last_sent:
                last_sent = surface.publish_count
                await websocket.send_json(
                    {
                        "source": surface.source_id,
                        "visible": surface.visible,
                        "data": surface.collection,
                    }
                )
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, interval - elapsed))

    except WebSocketDisconnect:
        logger.info("Particle stream client disconnected")
    except Exception as e:
        logger.error("Particle streaming error: %s", str(e))


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
