"""Projection: particle samples to GeoJSON, plus render surface sinks."""

from trafficflow.projection.projector import (
    SOURCE_ID,
    ParticleLayerStyle,
    empty_collection,
    layer_style,
    project_points,
)
from trafficflow.projection.surface import FeatureCollectionSurface, RenderSurface

__all__ = [
    "SOURCE_ID",
    "FeatureCollectionSurface",
    "ParticleLayerStyle",
    "RenderSurface",
    "empty_collection",
    "layer_style",
    "project_points",
]
