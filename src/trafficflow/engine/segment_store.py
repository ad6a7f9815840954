"""Segment store: the authoritative list of road segments for the viewport."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from trafficflow.geometry.sampler import polyline_length, sample_line
from trafficflow.model.segment import RoadSegment, Way

logger = logging.getLogger(__name__)


class SegmentStore:
    """Holds the current generation of RoadSegments.

    Single writer: only the acquisition path replaces the list. Readers use
    get(), which answers None for indices that do not exist in the current
    generation instead of raising.
    """

    def __init__(self, segments: Iterable[RoadSegment] = ()) -> None:
        self._segments: list[RoadSegment] = list(segments)
        self._generation = 0

    @property
    def generation(self) -> int:
        """Incremented on every replace_all()."""
        return self._generation

    def replace_all(self, segments: Iterable[RoadSegment]) -> None:
        """Swap in a complete new segment list."""
        self._segments = list(segments)
        self._generation += 1

    def get(self, index: int) -> RoadSegment | None:
        """Return the segment at ``index``, or None if it is out of range."""
        if 0 <= index < len(self._segments):
            return self._segments[index]
        return None

    def count(self) -> int:
        """Number of segments in the current generation."""
        return len(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[RoadSegment]:
        return iter(self._segments)


def build_segments(ways: Iterable[Way], spacing: float) -> list[RoadSegment]:
    """Densify raw ways into RoadSegments.

    Ways with fewer than two points cannot carry a particle and are dropped.

    Args:
        ways: Raw road records from the geodata source.
        spacing: Densification spacing in degrees.

    Returns:
        One RoadSegment per usable way, in input order.
    """
    segments: list[RoadSegment] = []
    skipped = 0
    for way in ways:
        if len(way.points) < 2:
            skipped += 1
            continue
        coords = sample_line(way.points, spacing)
        segments.append(
            RoadSegment(
                coordinates=coords,
                length=polyline_length(coords),
                road_class=way.road_class,
            )
        )

    if skipped:
        logger.debug("Skipped %d degenerate ways with fewer than 2 points", skipped)
    return segments
