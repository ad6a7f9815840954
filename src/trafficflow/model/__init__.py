"""Domain model: Coordinate, BoundingBox, Way, RoadSegment, Particle."""

from trafficflow.model.particle import Particle
from trafficflow.model.segment import BoundingBox, Coordinate, RoadSegment, Way

__all__ = [
    "BoundingBox",
    "Coordinate",
    "Particle",
    "RoadSegment",
    "Way",
]
