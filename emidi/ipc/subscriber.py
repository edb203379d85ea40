"""Receiving and filtering events from the shared event service."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable

from emidi.ipc.channel import EMIDI_EVENTS_SERVICE, open_service
from emidi.ipc.common import AppId, DeserializationError, deserialize_from_payload
from emidi.ipc.events import Event, EventKind

_log = logging.getLogger(__name__)

_POLL_INTERVAL = 0.001


def _decode(payload: bytes) -> list[Event]:
    """Turn one zero-padded payload into the event or events it holds."""
    size = len(payload.rstrip(b"\x00"))
    data = deserialize_from_payload(payload, size)
    try:
        if isinstance(data, dict):
            return [Event.from_json(data)]
        if isinstance(data, list):
            return [Event.from_json(item) for item in data]
    except (ValueError, KeyError, TypeError) as exc:
        raise DeserializationError(
            f"Failed to deserialize event data: {exc}"
        ) from exc
    raise DeserializationError("Failed to deserialize event data")


class EventSubscriber:
    """Receives events from the shared event service.

    The service must already exist, that is, some publisher must have
    opened it; otherwise ServiceCreationError is raised.
    """

    def __init__(self, source_app: AppId, subscriber_app: AppId) -> None:
        _log.debug(
            "using service %s (source_app: %s, subscriber_app: %s)",
            EMIDI_EVENTS_SERVICE,
            source_app,
            subscriber_app,
        )
        service = open_service(EMIDI_EVENTS_SERVICE)
        self._port = service.create_subscriber()
        self.source_app = source_app
        self._app_id = subscriber_app
        self._active = True
        self._last_event = time.monotonic()

    def __enter__(self) -> EventSubscriber:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.deactivate()

    def try_receive(self) -> list[Event]:
        """Return every event waiting now, without blocking."""
        if not self._active:
            return []
        events: list[Event] = []
        while (payload := self._port.receive()) is not None:
            events.extend(_decode(payload))
        if events:
            self._last_event = time.monotonic()
        return events

    def receive_timeout(self, timeout: float) -> list[Event]:
        """Wait up to ``timeout`` seconds for events; return [] if none came."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            events = self.try_receive()
            if events:
                return events
            time.sleep(_POLL_INTERVAL)
        return []

    def is_active(self) -> bool:
        """Whether the subscriber still receives."""
        return self._active

    def deactivate(self) -> None:
        """Stop receiving; later calls to try_receive return nothing."""
        self._active = False

    def time_since_last_event(self) -> float:
        """Seconds since events last arrived (or since creation)."""
        return time.monotonic() - self._last_event

    def source_is_alive(self, timeout: float) -> bool:
        """Whether events arrived within the last ``timeout`` seconds."""
        return self.time_since_last_event() < timeout

    def app_id(self) -> AppId:
        """The application this subscriber receives for."""
        return self._app_id


_K = EventKind

_WINDOW_KINDS = frozenset({_K.WINDOW_FOCUSED, _K.WINDOW_CLOSED, _K.WINDOW_RESIZED})
_GRID_KINDS = frozenset(
    {_K.GRID_CELL_SELECTED, _K.GRID_CELL_UPDATED, _K.GRID_STATE_CHANGED}
)
_SYSTEM_KINDS = frozenset(
    {_K.SYSTEM_SHUTDOWN, _K.SYSTEM_HEARTBEAT, _K.STATE_REQUEST, _K.STATE_RESPONSE}
)


@dataclass(frozen=True)
class EventFilter:
    """Selects events by category: MIDI, window, grid or system."""

    midi_events: bool = True
    window_events: bool = True
    grid_events: bool = True
    system_events: bool = True

    @classmethod
    def midi_only(cls) -> EventFilter:
        return cls(True, False, False, False)

    @classmethod
    def system_only(cls) -> EventFilter:
        return cls(False, False, False, True)

    def _accepts(self, event: Event) -> bool:
        if event.kind in _WINDOW_KINDS:
            return self.window_events
        if event.kind in _GRID_KINDS:
            return self.grid_events
        if event.kind in _SYSTEM_KINDS:
            return self.system_events
        return self.midi_events

    def filter(self, events: Iterable[Event]) -> list[Event]:
        """Return the events whose category is enabled, in order."""
        return [event for event in events if self._accepts(event)]