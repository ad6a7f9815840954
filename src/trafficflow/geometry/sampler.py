"""Polyline densification and position lookup in planar degree space.

Distances are plain Euclidean distances between (lon, lat) pairs. This is a
small-region approximation: no geodesic correction is applied, so spacing in
metres shrinks with latitude.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trafficflow.model.segment import Coordinate

# Relative slack on L / spacing so float noise on an exact multiple
# does not add an extra step.
_STEP_TOLERANCE = 1e-9


def planar_distance(a: Coordinate, b: Coordinate) -> float:
    """Euclidean distance between two coordinates, in degrees."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def sample_line(coords: Sequence[Coordinate], spacing: float) -> list[Coordinate]:
    """Densify a polyline so consecutive points are at most ``spacing`` apart.

    Every original vertex is kept, in order. Edges longer than ``spacing`` are
    split into equal parametric steps; shorter edges (including zero-length
    ones) pass through unchanged.

    Args:
        coords: Ordered (lon, lat) points.
        spacing: Maximum gap between consecutive output points, in degrees.

    Returns:
        New list of points. Inputs with fewer than two points come back as-is.

    Raises:
        ValueError: If spacing is not positive.
    """
    if spacing <= 0:
        raise ValueError(f"spacing must be positive, got {spacing}")
    if len(coords) < 2:
        return list(coords)

    result: list[Coordinate] = [coords[0]]
    for start, end in zip(coords, coords[1:]):
        dist = planar_distance(start, end)
        if dist > spacing:
            steps = math.ceil(dist / spacing * (1 - _STEP_TOLERANCE))
            dx = end[0] - start[0]
            dy = end[1] - start[1]
            for j in range(1, steps):
                t = j / steps
                result.append((start[0] + dx * t, start[1] + dy * t))
        result.append(end)

    return result


def polyline_length(coords: Sequence[Coordinate]) -> float:
    """Sum of consecutive planar distances along a polyline."""
    return sum(planar_distance(a, b) for a, b in zip(coords, coords[1:]))


def position_on_segment(coords: Sequence[Coordinate], t: float) -> Coordinate | None:
    """Resolve normalized progress ``t`` to a coordinate on a polyline.

    Progress is spread evenly over the polyline's points (not its arc length),
    which is close enough once the line has been densified.

    Returns:
        The interpolated coordinate, the only point of a one-point line, or
        None for an empty line.
    """
    n = len(coords)
    if n == 0:
        return None
    if n == 1:
        return coords[0]

    t = min(1.0, max(0.0, t))
    scaled = t * (n - 1)
    index = math.floor(scaled)
    if index >= n - 1:
        return coords[-1]

    local_t = scaled - index
    start = coords[index]
    end = coords[index + 1]
    return (
        start[0] + (end[0] - start[0]) * local_t,
        start[1] + (end[1] - start[1]) * local_t,
    )
