"""Particle dataclass: one decorative flow dot bound to a road segment."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Particle:
    """A flow particle moving along one RoadSegment.

    When position reaches either end of the segment the particle is respawned
    in place on a random segment; slots are reused until the next re-seed.
    """

    segment_index: int  # index into the current segment generation
    position: float = 0.0  # 0.0 (segment start) to 1.0 (segment end)
    speed: float = 0.001  # position units per tick
    direction: int = 1  # +1 or -1
