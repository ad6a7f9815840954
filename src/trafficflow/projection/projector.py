"""Particle projector: simulation samples to GeoJSON for the map layer.

The map surface consumes a GeoJSON FeatureCollection of Point features. Each
publish replaces the whole collection.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from trafficflow.model.segment import Coordinate

SOURCE_ID = "traffic-particles"


@dataclass
class ParticleLayerStyle:
    """Circle layer paint used to draw particles."""

    radius: float = 2.0
    color: str = "#00ff88"
    opacity: float = 0.8


def empty_collection() -> dict[str, Any]:
    """A FeatureCollection with no features."""
    return {"type": "FeatureCollection", "features": []}


def project_points(samples: Iterable[tuple[int, Coordinate, float]]) -> dict[str, Any]:
    """Build a FeatureCollection from ``(index, coordinate, speed)`` samples.

    Features carry the particle's pool index as ``id``, so a dot keeps its id
    across publishes even when other particles are skipped, and the particle
    ``speed`` so the layer can style by speed.
    """
    features = [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [lon, lat]},
            "properties": {"id": index, "speed": speed},
        }
        for index, (lon, lat), speed in samples
    ]
    return {"type": "FeatureCollection", "features": features}


def layer_style(style: ParticleLayerStyle | None = None) -> dict[str, Any]:
    """Map-layer definition for the particle source."""
    style = style or ParticleLayerStyle()
    return {
        "id": SOURCE_ID,
        "type": "circle",
        "source": SOURCE_ID,
        "paint": {
            "circle-radius": style.radius,
            "circle-color": style.color,
            "circle-opacity": style.opacity,
        },
    }
