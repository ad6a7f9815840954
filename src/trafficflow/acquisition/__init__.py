"""Road acquisition: Overpass client, debounce utility, acquisition controller."""

from trafficflow.acquisition.controller import AcquisitionController
from trafficflow.acquisition.debounce import Debouncer
from trafficflow.acquisition.overpass import (
    GeodataError,
    GeodataHTTPError,
    GeodataPayloadError,
    GeodataTransientError,
    OverpassClient,
    build_road_query,
    parse_ways,
)

__all__ = [
    "AcquisitionController",
    "Debouncer",
    "GeodataError",
    "GeodataHTTPError",
    "GeodataPayloadError",
    "GeodataTransientError",
    "OverpassClient",
    "build_road_query",
    "parse_ways",
]
