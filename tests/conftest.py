"""Shared fixtures: a fake Overpass endpoint and a fast test configuration."""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from trafficflow.config import FlowConfig


def way_element(way_id: int, highway: str, points: list[tuple[float, float]]) -> dict[str, Any]:
    """An Overpass way element with inline geometry."""
    return {
        "type": "way",
        "id": way_id,
        "tags": {"highway": highway},
        "geometry": [{"lat": lat, "lon": lon} for lon, lat in points],
    }


class FakeOverpass:
    """Stands in for the Overpass interpreter behind an httpx.MockTransport.

    Major and minor queries are told apart by their highway pattern. Set
    ``status_code`` to simulate failures and ``gate`` to hold requests open.
    """

    def __init__(self) -> None:
        self.major: list[dict[str, Any]] = [
            way_element(1, "primary", [(-82.46, 27.95), (-82.45, 27.95)]),
            way_element(2, "motorway", [(-82.46, 27.94), (-82.46, 27.96)]),
            {"type": "node", "id": 99, "lat": 27.95, "lon": -82.46},
        ]
        self.minor: list[dict[str, Any]] = [
            way_element(3, "residential", [(-82.455, 27.945), (-82.455, 27.946)]),
        ]
        self.queries: list[str] = []
        self.status_code = 200
        self.gate: asyncio.Event | None = None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        query = parse_qs(request.content.decode())["data"][0]
        self.queries.append(query)
        if self.gate is not None:
            await self.gate.wait()
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="Too busy")
        elements = self.minor if "residential" in query else self.major
        return httpx.Response(200, json={"elements": elements})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_overpass() -> FakeOverpass:
    """A fresh fake Overpass endpoint."""
    return FakeOverpass()


@pytest.fixture
def flow_config() -> FlowConfig:
    """Configuration with short timers and a fixed random seed."""
    return FlowConfig(
        _env_file=None,
        debounce_seconds=0.05,
        frame_rate=200.0,
        random_seed=1,
        geodata_retry_wait=0.0,
    )
