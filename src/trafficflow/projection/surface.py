"""Render surface sinks that receive particle snapshots."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, Protocol

from trafficflow.projection.projector import SOURCE_ID, empty_collection, project_points

if TYPE_CHECKING:
    from trafficflow.model.segment import Coordinate

logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], None]


class RenderSurface(Protocol):
    """What the simulation needs from a map display."""

    def set_points(self, samples: Iterable[tuple[int, Coordinate, float]]) -> None:
        """Replace the whole point collection."""
        ...

    def clear(self) -> None:
        """Replace the point collection with an empty one."""
        ...

    def set_visible(self, visible: bool) -> None:
        """Show or hide the particle layer."""
        ...


class FeatureCollectionSurface:
    """In-memory GeoJSON source keyed by a fixed identifier.

    Keeps the latest FeatureCollection and a visibility flag, and notifies
    listeners (for example WebSocket broadcasters) on every publish.
    """

    def __init__(self, source_id: str = SOURCE_ID) -> None:
        self.source_id = source_id
        self.visible = False
        self.publish_count = 0
        self._collection: dict[str, Any] = empty_collection()
        self._listeners: list[Listener] = []

    @property
    def collection(self) -> dict[str, Any]:
        """The most recently published FeatureCollection."""
        return self._collection

    def set_points(self, samples: Iterable[tuple[int, Coordinate, float]]) -> None:
        self._publish(project_points(samples))

    def clear(self) -> None:
        self._publish(empty_collection())

    def set_visible(self, visible: bool) -> None:
        self.visible = visible

    def add_listener(self, listener: Listener) -> None:
        """Register a callback receiving each published collection."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Unregister a callback; unknown callbacks are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self, collection: dict[str, Any]) -> None:
        self._collection = collection
        self.publish_count += 1
        for listener in list(self._listeners):
            try:
                listener(collection)
            except Exception:
                logger.exception("Surface listener failed; removing it")
                self.remove_listener(listener)
