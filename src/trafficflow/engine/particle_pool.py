"""Particle pool: fixed-size, continuously recycled population of flow dots."""

from __future__ import annotations

import random
from collections.abc import Iterator
from typing import TYPE_CHECKING

from trafficflow.geometry.sampler import position_on_segment
from trafficflow.model.particle import Particle

if TYPE_CHECKING:
    from trafficflow.engine.segment_store import SegmentStore
    from trafficflow.model.segment import Coordinate

DEFAULT_SPEED_RANGE = (0.0005, 0.0015)


class ParticleSample:
    """Lazy view of particle positions for one render push.

    Iterating yields ``(index, coordinate, speed)`` for each particle whose
    segment resolves in the store, where ``index`` is the particle's slot in
    the pool. Each iteration starts over and reads current state.
    """

    def __init__(self, particles: list[Particle], store: SegmentStore) -> None:
        self._particles = particles
        self._store = store

    def __iter__(self) -> Iterator[tuple[int, Coordinate, float]]:
        for index, particle in enumerate(self._particles):
            segment = self._store.get(particle.segment_index)
            if segment is None:
                continue
            coord = position_on_segment(segment.coordinates, particle.position)
            if coord is None:
                continue
            yield index, coord, particle.speed


class ParticlePool:
    """Owns the Particle records.

    The pool is sized at seed time and its membership never changes until the
    next seed() or clear(). advance() only mutates fields in place.
    """

    def __init__(
        self,
        speed_range: tuple[float, float] = DEFAULT_SPEED_RANGE,
        rng: random.Random | None = None,
    ) -> None:
        low, high = speed_range
        if low > high:
            raise ValueError(f"Invalid speed range: {speed_range}")
        self._speed_range = (low, high)
        self._rng = rng or random.Random()
        self._particles: list[Particle] = []

    @property
    def particles(self) -> list[Particle]:
        """The live particle records (not a copy)."""
        return self._particles

    def seed(self, segment_count: int, target_count: int, hard_cap: int) -> None:
        """Re-initialize the pool against a new segment generation.

        Args:
            segment_count: Number of segments particles may bind to.
            target_count: Desired particle count.
            hard_cap: Upper bound on the pool size.

        Raises:
            ValueError: If any count is negative.
        """
        if segment_count < 0 or target_count < 0 or hard_cap < 0:
            raise ValueError(
                f"Counts must be non-negative: segments={segment_count}, "
                f"target={target_count}, cap={hard_cap}"
            )
        if segment_count == 0:
            self._particles = []
            return

        low, high = self._speed_range
        rng = self._rng
        self._particles = [
            Particle(
                segment_index=rng.randrange(segment_count),
                position=rng.random(),
                speed=rng.uniform(low, high),
                direction=self._random_direction(),
            )
            for _ in range(min(target_count, hard_cap))
        ]

    def advance(self, store: SegmentStore) -> None:
        """Move every particle one tick; respawn those that leave their segment.

        Does nothing while the store is empty. Particles whose segment cannot be
        found are left untouched for this tick.
        """
        segment_count = store.count()
        if segment_count == 0:
            return

        rng = self._rng
        for particle in self._particles:
            if store.get(particle.segment_index) is None:
                continue
            particle.position += particle.speed * particle.direction
            if particle.position >= 1.0 or particle.position <= 0.0:
                particle.segment_index = rng.randrange(segment_count)
                particle.position = rng.random()
                particle.direction = self._random_direction()

    def sample(self, store: SegmentStore) -> ParticleSample:
        """Positions and speeds for the render surface."""
        return ParticleSample(self._particles, store)

    def clear(self) -> None:
        """Drop all particles."""
        self._particles = []

    def _random_direction(self) -> int:
        return 1 if self._rng.random() > 0.5 else -1

    def __len__(self) -> int:
        return len(self._particles)

    def __iter__(self) -> Iterator[Particle]:
        return iter(self._particles)
