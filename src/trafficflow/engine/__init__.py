"""Simulation core: segment store, particle pool, shared state, frame clock."""

from trafficflow.engine.clock import SimulationClock
from trafficflow.engine.particle_pool import ParticlePool, ParticleSample
from trafficflow.engine.segment_store import SegmentStore, build_segments
from trafficflow.engine.state import FlowState

__all__ = [
    "FlowState",
    "ParticlePool",
    "ParticleSample",
    "SegmentStore",
    "SimulationClock",
    "build_segments",
]
