"""Publishing events to the shared event service."""

from __future__ import annotations

import logging
from typing import Iterable

from emidi.ipc.channel import EMIDI_EVENTS_SERVICE, open_or_create
from emidi.ipc.common import AppId, SendError, serialize_to_payload
from emidi.ipc.events import Event

_log = logging.getLogger(__name__)

_MAX_PORTS = 16


class EventPublisher:
    """Sends serialised events on behalf of one application."""

    def __init__(self, app_id: AppId) -> None:
        _log.debug("using service %s (app_id: %s)", EMIDI_EVENTS_SERVICE, app_id)
        self._app_id = app_id
        self._active = True
        service = open_or_create(EMIDI_EVENTS_SERVICE, _MAX_PORTS, _MAX_PORTS)
        self._port = service.create_publisher()

    def __enter__(self) -> EventPublisher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.deactivate()

    def _check_active(self) -> None:
        if not self._active:
            raise SendError("Publisher is not active")

    def publish(self, event: Event) -> None:
        """Serialise and send one event."""
        self._check_active()
        payload = serialize_to_payload(event)
        self._port.send(payload)
        _log.debug("sent event %s", event.kind.value)

    def publish_batch(self, events: Iterable[Event]) -> None:
        """Send several events together in one payload."""
        self._check_active()
        payload = serialize_to_payload(list(events))
        self._port.send(payload)

    def is_active(self) -> bool:
        """Whether the publisher still sends."""
        return self._active

    def deactivate(self) -> None:
        """Stop sending; later publishes raise SendError."""
        self._active = False

    def app_id(self) -> AppId:
        """The application this publisher speaks for."""
        return self._app_id

    def heartbeat(self) -> None:
        self.publish(Event.system_heartbeat(self._app_id))

    def midi_started(self, song_index: int, song_name: str) -> None:
        self.publish(Event.midi_playback_started(song_index, song_name))

    def midi_stopped(self) -> None:
        self.publish(Event.midi_playback_stopped())

    def midi_tempo_changed(self, new_tempo: int) -> None:
        self.publish(Event.midi_tempo_changed(new_tempo))

    def midi_progress(self, progress_ms: int, total_ms: int) -> None:
        self.publish(Event.midi_progress_update(progress_ms, total_ms))