"""Publishing and receiving synchronised-playback requests.

Requests travel as the fixed wire layout of PlaySongAtHeartbeat over their
own named service, separate from the general event service.
"""

from __future__ import annotations

import time

from emidi.ipc.channel import open_or_create
from emidi.ipc.common import ReceiveError
from emidi.ipc_protocol import PlaySongAtHeartbeat

E_MIDI_MUSIC_SYNC_SERVICE = "e_midi_music_sync"


class MusicSyncPublisher:
    """Sends PlaySongAtHeartbeat requests to every connected subscriber."""

    def __init__(self) -> None:
        service = open_or_create(E_MIDI_MUSIC_SYNC_SERVICE)
        self._port = service.create_publisher()

    def publish(self, msg: PlaySongAtHeartbeat) -> None:
        """Send one request in its wire layout."""
        if not isinstance(msg, PlaySongAtHeartbeat):
            raise TypeError(
                f"expected PlaySongAtHeartbeat, got {type(msg).__name__}"
            )
        self._port.send(msg.to_bytes())


class MusicSyncSubscriber:
    """Receives PlaySongAtHeartbeat requests without blocking."""

    def __init__(self) -> None:
        service = open_or_create(E_MIDI_MUSIC_SYNC_SERVICE)
        self._port = service.create_subscriber()
        self._active = True
        self._last_message = time.monotonic()

    def try_receive(self) -> list[PlaySongAtHeartbeat]:
        """Return every request waiting now, oldest first."""
        if not self._active:
            return []
        messages: list[PlaySongAtHeartbeat] = []
        while (payload := self._port.receive()) is not None:
            try:
                messages.append(PlaySongAtHeartbeat.from_bytes(payload))
            except ValueError as exc:
                raise ReceiveError(f"Receive error: {exc}") from exc
        if messages:
            self._last_message = time.monotonic()
        return messages

    def deactivate(self) -> None:
        """Stop receiving; later calls to try_receive return nothing."""
        self._active = False

    def time_since_last_message(self) -> float:
        """Seconds since a request last arrived (or since creation)."""
        return time.monotonic() - self._last_message