"""Tests for FlowConfig settings."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from trafficflow.config import OVERPASS_URL, FlowConfig, get_flow_config


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self) -> None:
        """Defaults match the documented tunables."""
        with patch.dict(os.environ, {}, clear=True):
            config = FlowConfig(_env_file=None)
        assert config.particle_target_count == 500
        assert config.particle_hard_cap == 2000
        assert config.speed_min == 0.0005
        assert config.speed_max == 0.0015
        assert config.frame_rate == 60.0
        assert config.publish_every == 2
        assert config.sample_spacing == 1e-4
        assert config.debounce_seconds == 1.0
        assert config.bbox_key_precision == 3
        assert config.overpass_url == OVERPASS_URL
        assert config.major_road_classes == ["motorway", "trunk", "primary", "secondary"]
        assert config.minor_road_classes == ["tertiary", "residential"]
        assert config.minor_road_limit == 500
        assert config.geodata_timeout is None
        assert config.geodata_max_retries == 1

    def test_pool_size_is_capped(self) -> None:
        """pool_size is the target bounded by the hard cap."""
        assert FlowConfig(_env_file=None).pool_size == 500
        config = FlowConfig(_env_file=None, particle_target_count=5000)
        assert config.pool_size == 2000

    def test_frame_interval(self) -> None:
        """frame_interval is the reciprocal of frame_rate."""
        assert FlowConfig(_env_file=None, frame_rate=50).frame_interval == pytest.approx(0.02)

    def test_repr_is_compact(self) -> None:
        """repr summarises the main tunables."""
        text = repr(FlowConfig(_env_file=None))
        assert text.startswith("FlowConfig(")
        assert "particles=500/2000" in text


class TestEnvironment:
    """Tests for environment variable loading."""

    def test_reads_environment(self) -> None:
        """Settings are picked up from environment variables."""
        env = {
            "PARTICLE_TARGET_COUNT": "250",
            "DEBOUNCE_SECONDS": "0.5",
            "OVERPASS_URL": "https://overpass.example/api",
            "GEODATA_TIMEOUT": "12.5",
            "GEODATA_MAX_RETRIES": "3",
            "RANDOM_SEED": "42",
        }
        with patch.dict(os.environ, env, clear=True):
            config = FlowConfig(_env_file=None)
        assert config.particle_target_count == 250
        assert config.debounce_seconds == 0.5
        assert config.overpass_url == "https://overpass.example/api"
        assert config.geodata_timeout == 12.5
        assert config.geodata_max_retries == 3
        assert config.random_seed == 42

    def test_road_classes_from_json_env(self) -> None:
        """List settings accept JSON arrays from the environment."""
        with patch.dict(os.environ, {"MINOR_ROAD_CLASSES": '["residential"]'}, clear=True):
            config = FlowConfig(_env_file=None)
        assert config.minor_road_classes == ["residential"]

    def test_road_classes_from_plain_env_string(self) -> None:
        """Comma and pipe separated environment values are split, not JSON-decoded."""
        env = {
            "MAJOR_ROAD_CLASSES": "motorway|trunk",
            "MINOR_ROAD_CLASSES": "tertiary,residential",
        }
        with patch.dict(os.environ, env, clear=True):
            config = FlowConfig(_env_file=None)
        assert config.major_road_classes == ["motorway", "trunk"]
        assert config.minor_road_classes == ["tertiary", "residential"]

    def test_malformed_json_road_classes_rejected(self) -> None:
        """A bracketed value that is not valid JSON fails validation."""
        with (
            patch.dict(os.environ, {"MINOR_ROAD_CLASSES": "[tertiary"}, clear=True),
            pytest.raises(ValidationError),
        ):
            FlowConfig(_env_file=None)


class TestValidation:
    """Tests for field validation."""

    def test_road_classes_from_string(self) -> None:
        """Comma or pipe separated strings are split into lists."""
        config = FlowConfig(
            _env_file=None,
            major_road_classes="motorway|trunk",
            minor_road_classes=" tertiary, residential ,",
        )
        assert config.major_road_classes == ["motorway", "trunk"]
        assert config.minor_road_classes == ["tertiary", "residential"]

    def test_inverted_speed_range_rejected(self) -> None:
        """speed_max below speed_min is an error."""
        with pytest.raises(ValidationError, match="speed_max"):
            FlowConfig(_env_file=None, speed_min=0.002, speed_max=0.001)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("sample_spacing", 0),
            ("publish_every", 0),
            ("frame_rate", 0),
            ("frame_rate", 1000),
            ("geodata_timeout", 0),
            ("geodata_max_retries", 0),
            ("particle_target_count", -1),
        ],
    )
    def test_out_of_range_rejected(self, field: str, value: float) -> None:
        """Out-of-range tunables fail validation."""
        with pytest.raises(ValidationError):
            FlowConfig(_env_file=None, **{field: value})


class TestGetFlowConfig:
    """Tests for the cached accessor."""

    def test_cached_until_cleared(self) -> None:
        """get_flow_config returns one instance until the cache is cleared."""
        get_flow_config.cache_clear()
        try:
            with patch.dict(os.environ, {"PUBLISH_EVERY": "3"}, clear=True):
                first = get_flow_config()
                assert get_flow_config() is first
                assert first.publish_every == 3
            get_flow_config.cache_clear()
            with patch.dict(os.environ, {"PUBLISH_EVERY": "4"}, clear=True):
                assert get_flow_config().publish_every == 4
        finally:
            get_flow_config.cache_clear()
