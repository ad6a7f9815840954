"""FlowState: the state shared by the simulation clock and the acquisition path."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from trafficflow.engine.particle_pool import ParticlePool
from trafficflow.engine.segment_store import SegmentStore

if TYPE_CHECKING:
    from trafficflow.model.segment import BoundingBox, RoadSegment


@dataclass
class FlowState:
    """Container for everything the running visualization owns.

    Ownership: the acquisition controller is the only caller of install();
    the clock only calls pool.advance() and pool.sample().
    """

    store: SegmentStore = field(default_factory=SegmentStore)
    pool: ParticlePool = field(default_factory=ParticlePool)

    enabled: bool = False
    epoch: int = 0  # bumped on every enable/disable; in-flight fetches compare against it
    fetching_epoch: int | None = None  # epoch of the fetch currently in flight
    last_key: str = ""  # bbox key of the last successfully installed acquisition
    viewport: BoundingBox | None = None  # most recent viewport reported

    @property
    def fetching(self) -> bool:
        """True while an acquisition for the current epoch is in flight."""
        return self.fetching_epoch is not None and self.fetching_epoch == self.epoch

    @property
    def loading(self) -> bool:
        """True during the first acquisition after enable (nothing to draw yet)."""
        return self.enabled and self.fetching and self.store.count() == 0

    def install(
        self,
        segments: Iterable[RoadSegment],
        target_count: int,
        hard_cap: int,
    ) -> None:
        """Replace the segments and re-seed the pool against them.

        Both happen in one synchronous call, so a tick never sees particles
        seeded for a different segment generation.
        """
        self.store.replace_all(segments)
        self.pool.seed(self.store.count(), target_count, hard_cap)

    def clear(self) -> None:
        """Full teardown: no segments, no particles, no remembered viewport key."""
        self.store.replace_all([])
        self.pool.clear()
        self.last_key = ""
