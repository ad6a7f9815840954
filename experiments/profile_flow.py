"""Profile the per-frame particle work (advance + sample + GeoJSON projection)."""

import cProfile
import pstats
import random
import time
from io import StringIO

from trafficflow.engine.particle_pool import ParticlePool
from trafficflow.engine.segment_store import SegmentStore, build_segments
from trafficflow.model.segment import Way
from trafficflow.projection.projector import project_points

SPACING = 1e-4
TARGET_FPS = 60


def create_grid_ways(rows: int = 40, cols: int = 40, step: float = 0.005) -> list[Way]:
    """A Manhattan-style street grid around Tampa, one way per street."""
    lon0, lat0 = -82.4572, 27.9506
    ways = []
    for r in range(rows):
        lat = lat0 + r * step
        ways.append(Way(points=[(lon0, lat), (lon0 + cols * step, lat)], road_class="residential"))
    for c in range(cols):
        lon = lon0 + c * step
        ways.append(Way(points=[(lon, lat0), (lon, lat0 + rows * step)], road_class="primary"))
    return ways


def create_flow(particles: int) -> tuple[SegmentStore, ParticlePool]:
    store = SegmentStore()
    store.replace_all(build_segments(create_grid_ways(), SPACING))
    pool = ParticlePool(rng=random.Random(7))
    pool.seed(store.count(), particles, particles)
    return store, pool


def measure_frame_rate(particles: int, frames: int, publish_every: int = 2) -> float:
    """Frames per second for a pool of the given size."""
    store, pool = create_flow(particles)
    start_time = time.perf_counter()
    for frame in range(1, frames + 1):
        pool.advance(store)
        if frame % publish_every == 0:
            project_points(pool.sample(store))
    elapsed = time.perf_counter() - start_time
    return frames / elapsed if elapsed > 0 else 0


def profile_frames(particles: int, frames: int) -> str:
    """Profile advance + publish and return the top entries."""
    store, pool = create_flow(particles)
    profiler = cProfile.Profile()

    profiler.enable()
    for frame in range(1, frames + 1):
        pool.advance(store)
        if frame % 2 == 0:
            project_points(pool.sample(store))
    profiler.disable()

    stats_stream = StringIO()
    stats = pstats.Stats(profiler, stream=stats_stream)
    stats.sort_stats("cumulative")
    stats.print_stats(20)
    return stats_stream.getvalue()


def main():
    print("=" * 60)
    print("Performance Profiling: particle frame loop")
    print("=" * 60)

    start_time = time.perf_counter()
    store, _ = create_flow(0)
    points = sum(len(s.coordinates) for s in store)
    print(f"\nSegment build: {store.count()} segments, {points} points "
          f"in {time.perf_counter() - start_time:.3f}s")

    results = {}
    for particles in (500, 1000, 2000):
        fps = measure_frame_rate(particles, 1000)
        results[particles] = fps
        print(f"{particles:5d} particles: {fps:8.1f} frames/sec")

    print("\n--- Profiling Breakdown (2000 particles, 500 frames) ---")
    print(profile_frames(2000, 500))

    print("=" * 60)
    for particles, fps in results.items():
        verdict = "PASS" if fps >= TARGET_FPS else "FAIL"
        print(f"{verdict}: {fps:.0f} frames/sec with {particles} particles (target: {TARGET_FPS})")


if __name__ == "__main__":
    main()
