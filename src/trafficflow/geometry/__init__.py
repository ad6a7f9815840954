"""Geometry helpers: polyline densification and segment position lookup."""

from trafficflow.geometry.sampler import (
    planar_distance,
    polyline_length,
    position_on_segment,
    sample_line,
)

__all__ = [
    "planar_distance",
    "polyline_length",
    "position_on_segment",
    "sample_line",
]
