"""Configuration loading for the traffic flow engine.

Settings come from environment variables and an optional .env file, parsed
and validated by pydantic-settings.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

OVERPASS_URL = "https://overpass-api.de/api/interpreter"


class FlowConfig(BaseSettings):
    """Tunables for acquisition, sampling and the particle simulation.

    Environment Variables:
        PARTICLE_TARGET_COUNT: Particles seeded per acquisition (default: 500)
        PARTICLE_HARD_CAP: Upper bound on pool size (default: 2000)
        PUBLISH_EVERY: Publish a snapshot every N ticks (default: 2)
        SAMPLE_SPACING: Densification spacing in degrees (default: 1e-4, ~10 m)
        DEBOUNCE_SECONDS: Quiet window after viewport moves (default: 1.0)
        FRAME_RATE: Simulation ticks per second (default: 60)
        OVERPASS_URL: Geodata source endpoint
        MAJOR_ROAD_CLASSES, MINOR_ROAD_CLASSES: highway values, comma or pipe
            separated ('motorway,trunk') or a JSON array
        GEODATA_TIMEOUT: Request timeout in seconds (default: transport default)
        GEODATA_MAX_RETRIES: Attempts per query, 1 disables retries (default: 1)
        RANDOM_SEED: Seed for particle randomness (default: unseeded)

    Example:
        >>> config = FlowConfig()  # Loads from environment
        >>> config = FlowConfig(particle_target_count=200)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Particle pool
    particle_target_count: int = Field(
        default=500,
        ge=0,
        description="Particles seeded per acquisition cycle",
    )
    particle_hard_cap: int = Field(
        default=2000,
        ge=1,
        description="Pool size never exceeds this, whatever the target",
    )
    speed_min: float = Field(
        default=0.0005,
        gt=0,
        description="Lower bound of per-particle speed (position units per tick)",
    )
    speed_max: float = Field(
        default=0.0015,
        gt=0,
        description="Upper bound of per-particle speed (position units per tick)",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for particle randomness; None for an unseeded generator",
    )

    # Simulation clock
    frame_rate: float = Field(
        default=60.0,
        gt=0,
        le=240,
        description="Simulation ticks per second",
    )
    publish_every: int = Field(
        default=2,
        ge=1,
        description="Push a snapshot to the render surface every N ticks",
    )

    # Geometry
    sample_spacing: float = Field(
        default=1e-4,
        gt=0,
        description="Maximum gap between densified points, in degrees",
    )

    # Acquisition
    debounce_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Quiet period after the last viewport move before fetching",
    )
    bbox_key_precision: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Decimals used when building the viewport de-duplication key",
    )
    overpass_url: str = Field(
        default=OVERPASS_URL,
        description="Overpass API interpreter endpoint",
    )
    major_road_classes: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["motorway", "trunk", "primary", "secondary"],
        description="highway=* values fetched without a result cap",
    )
    minor_road_classes: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["tertiary", "residential"],
        description="highway=* values fetched with minor_road_limit",
    )
    minor_road_limit: int = Field(
        default=500,
        ge=1,
        description="Server-side result cap for the minor road query",
    )
    geodata_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Request timeout in seconds; None keeps the transport default",
    )
    geodata_max_retries: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Attempts per geodata query (1 = no retry)",
    )
    geodata_retry_wait: float = Field(
        default=1.0,
        ge=0,
        le=60.0,
        description="Initial backoff between geodata retries, in seconds",
    )

    @field_validator("major_road_classes", "minor_road_classes", mode="before")
    @classmethod
    def split_classes(cls, v: object) -> object:
        """Accept a JSON array or a comma or pipe separated string as well as a list."""
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                return json.loads(v)
            return [part.strip() for part in v.replace("|", ",").split(",") if part.strip()]
        return v

    @model_validator(mode="after")
    def check_speed_range(self) -> FlowConfig:
        """Reject an inverted speed range."""
        if self.speed_max < self.speed_min:
            raise ValueError("speed_max must be >= speed_min")
        return self

    @property
    def pool_size(self) -> int:
        """Effective pool size: target count bounded by the hard cap."""
        return min(self.particle_target_count, self.particle_hard_cap)

    @property
    def frame_interval(self) -> float:
        """Seconds between simulation ticks."""
        return 1.0 / self.frame_rate

    def __repr__(self) -> str:
        return (
            f"FlowConfig("
            f"particles={self.particle_target_count}/{self.particle_hard_cap}, "
            f"frame_rate={self.frame_rate}, "
            f"publish_every={self.publish_every}, "
            f"spacing={self.sample_spacing}, "
            f"debounce={self.debounce_seconds}s, "
            f"overpass={self.overpass_url}"
            f")"
        )


@lru_cache
def get_flow_config() -> FlowConfig:
    """Get the cached configuration singleton.

    Call ``get_flow_config.cache_clear()`` to reload from the environment.
    """
    config = FlowConfig()
    logger.info("Loaded flow configuration: %r", config)
    return config
