"""Overpass API client for road geometry.

Queries ``way["highway"~...]`` records inside a bounding box and returns them
as Way records with (lon, lat) points.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from trafficflow.config import FlowConfig, get_flow_config
from trafficflow.model.segment import Way

if TYPE_CHECKING:
    from trafficflow.model.segment import BoundingBox

logger = logging.getLogger(__name__)


class GeodataError(Exception):
    """Raised when a geodata query fails."""


class GeodataTransientError(GeodataError):
    """A failure worth retrying: transport errors, HTTP 429 and 5xx."""


class GeodataHTTPError(GeodataError):
    """The geodata source answered with a non-success status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class GeodataTransientHTTPError(GeodataHTTPError, GeodataTransientError):
    """Non-success status that may clear up on retry."""


class GeodataPayloadError(GeodataError):
    """The response body was not a usable Overpass document."""


def build_road_query(
    bbox: BoundingBox,
    road_classes: Sequence[str],
    limit: int | None = None,
) -> str:
    """Overpass QL for ways of the given highway classes inside ``bbox``.

    ``limit`` caps the number of output elements on the server side.
    """
    if not road_classes:
        raise ValueError("At least one road class is required")
    pattern = "|".join(road_classes)
    out = f"out geom {limit};" if limit is not None else "out geom;"
    return f'[out:json];way["highway"~"^({pattern})$"]({bbox.overpass_filter()});(._;>;);{out}'


def parse_ways(data: Any) -> list[Way]:
    """Extract Way records from an Overpass JSON document.

    Only elements of type ``way`` that carry inline geometry are kept; nodes
    pulled in by the recurse step are ignored.

    Raises:
        GeodataPayloadError: If the document is not shaped like Overpass output.
    """
    if not isinstance(data, dict):
        raise GeodataPayloadError(f"Expected a JSON object, got {type(data).__name__}")
    elements = data.get("elements", [])
    if not isinstance(elements, list):
        raise GeodataPayloadError("'elements' is not a list")

    ways: list[Way] = []
    for element in elements:
        if not isinstance(element, dict) or element.get("type") != "way":
            continue
        geometry = element.get("geometry")
        if not geometry:
            continue
        try:
            points = [(float(g["lon"]), float(g["lat"])) for g in geometry]
        except (KeyError, TypeError, ValueError) as e:
            raise GeodataPayloadError(f"Malformed geometry on way {element.get('id')}") from e
        tags = element.get("tags") or {}
        if not isinstance(tags, dict):
            raise GeodataPayloadError(f"Malformed tags on way {element.get('id')}")
        ways.append(
            Way(
                points=points,
                road_class=tags.get("highway", "unknown"),
                osm_id=element.get("id"),
            )
        )
    return ways


class OverpassClient:
    """Async client for the Overpass interpreter endpoint.

    Example:
        >>> client = OverpassClient()
        >>> ways = await client.fetch_ways(bbox, ["motorway", "trunk"])
        >>> await client.aclose()
    """

    def __init__(
        self,
        config: FlowConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Optional FlowConfig. If not provided, loads from environment.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self._config = config or get_flow_config()
        self._url = self._config.overpass_url
        kwargs: dict[str, Any] = {}
        if self._config.geodata_timeout is not None:
            kwargs["timeout"] = self._config.geodata_timeout
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**kwargs)
        self.request_count = 0

    async def fetch_ways(
        self,
        bbox: BoundingBox,
        road_classes: Sequence[str],
        limit: int | None = None,
    ) -> list[Way]:
        """Fetch ways of the given classes inside ``bbox``.

        Transient failures are retried with exponential backoff up to
        ``geodata_max_retries`` attempts in total.

        Raises:
            GeodataError: If the query fails (transport, status or payload).
        """
        query = build_road_query(bbox, road_classes, limit)
        max_attempts = self._config.geodata_max_retries

        def before_sleep(retry_state: RetryCallState) -> None:
            wait = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.warning(
                "Overpass query failed, attempt %d/%d, retrying in %.1fs",
                retry_state.attempt_number,
                max_attempts,
                wait,
            )

        retryer = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=self._config.geodata_retry_wait, max=60),
            retry=retry_if_exception_type(GeodataTransientError),
            before_sleep=before_sleep,
            reraise=True,
        )
        data: Any = None
        async for attempt in retryer:
            with attempt:
                data = await self._post(query)
        ways = parse_ways(data)
        logger.debug("Overpass returned %d ways for %s", len(ways), "|".join(road_classes))
        return ways

    async def _post(self, query: str) -> Any:
        self.request_count += 1
        try:
            response = await self._client.post(self._url, data={"data": query})
        except httpx.TransportError as e:
            raise GeodataTransientError(f"Cannot reach geodata source: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise GeodataTransientHTTPError(
                f"Overpass error: {response.status_code}", response.status_code
            )
        if not response.is_success:
            raise GeodataHTTPError(f"Overpass error: {response.status_code}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise GeodataPayloadError(f"Response is not JSON: {e}") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()
