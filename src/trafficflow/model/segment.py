"""Road geometry dataclasses: Coordinate, BoundingBox, Way, RoadSegment."""

from __future__ import annotations

from dataclasses import dataclass, field

# (longitude, latitude) in degrees. No altitude.
Coordinate = tuple[float, float]


@dataclass(frozen=True)
class BoundingBox:
    """A viewport rectangle in geographic degrees.

    Edges are validated on construction; a box may be degenerate (zero area)
    but never inverted.
    """

    west: float
    south: float
    east: float
    north: float

    def __post_init__(self) -> None:
        if self.south > self.north:
            raise ValueError(f"south ({self.south}) must not exceed north ({self.north})")
        if self.west > self.east:
            raise ValueError(f"west ({self.west}) must not exceed east ({self.east})")

    def key(self, precision: int = 3) -> str:
        """Canonical de-duplication key: the four edges at fixed precision.

        Viewports that differ by less than the chosen precision share a key,
        so jitter from the map surface does not trigger a refetch.
        """
        return ",".join(
            f"{edge:.{precision}f}" for edge in (self.west, self.south, self.east, self.north)
        )

    def overpass_filter(self) -> str:
        """Bounding box in Overpass QL order: south,west,north,east."""
        return f"{self.south},{self.west},{self.north},{self.east}"


@dataclass
class Way:
    """A raw road record from the geodata source."""

    points: list[Coordinate] = field(default_factory=list)
    road_class: str = "unknown"  # the OSM highway=* tag
    osm_id: int | None = None


@dataclass
class RoadSegment:
    """A densified road polyline the particles travel along.

    Segments are rebuilt in bulk on every successful acquisition; no identity
    is kept between refreshes.
    """

    coordinates: list[Coordinate]
    length: float = 0.0  # planar length in degrees, informational only
    road_class: str = "unknown"  # not consumed by the simulation
