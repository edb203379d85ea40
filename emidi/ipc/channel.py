"""In-process named publish-subscribe services carrying byte payloads.

A service is looked up by name. Every payload a publisher sends is copied
to each subscriber connected at that moment; subscribers see no history.
Ports release their slot when they are garbage collected.
"""

from __future__ import annotations

import threading
import weakref
from collections import deque

from emidi.ipc.common import (
    PublisherCreationError,
    ServiceCreationError,
    SubscriberCreationError,
)

EMIDI_EVENTS_SERVICE = "e_midi_events"

DEFAULT_MAX_PUBLISHERS = 16
DEFAULT_MAX_SUBSCRIBERS = 16

_services: dict[str, Service] = {}
_services_lock = threading.Lock()


class Service:
    """A named channel with limits on the number of connected ports."""

    def __init__(self, name: str, max_publishers: int, max_subscribers: int) -> None:
        self.name = name
        self.max_publishers = max_publishers
        self.max_subscribers = max_subscribers
        self._lock = threading.Lock()
        self._publishers: weakref.WeakSet[PublisherPort] = weakref.WeakSet()
        self._subscribers: weakref.WeakSet[SubscriberPort] = weakref.WeakSet()

    def create_publisher(self) -> PublisherPort:
        """Connect a new publisher to this service."""
        with self._lock:
            if len(self._publishers) >= self.max_publishers:
                raise PublisherCreationError(
                    f"service {self.name!r} already has {self.max_publishers} publishers"
                )
            port = PublisherPort(self)
            self._publishers.add(port)
            return port

    def create_subscriber(self) -> SubscriberPort:
        """Connect a new subscriber to this service."""
        with self._lock:
            if len(self._subscribers) >= self.max_subscribers:
                raise SubscriberCreationError(
                    f"service {self.name!r} already has {self.max_subscribers} subscribers"
                )
            port = SubscriberPort(self)
            self._subscribers.add(port)
            return port

    def _deliver(self, payload: bytes) -> int:
        with self._lock:
            targets = list(self._subscribers)
        for target in targets:
            target._push(payload)
        return len(targets)


class PublisherPort:
    """Sending end of a service."""

    def __init__(self, service: Service) -> None:
        self.service = service

    def send(self, payload: bytes) -> int:
        """Copy ``payload`` to every connected subscriber; return how many."""
        return self.service._deliver(bytes(payload))


class SubscriberPort:
    """Receiving end of a service with its own queue."""

    def __init__(self, service: Service) -> None:
        self.service = service
        self._queue: deque[bytes] = deque()

    def _push(self, payload: bytes) -> None:
        self._queue.append(payload)

    def receive(self) -> bytes | None:
        """Return the oldest waiting payload, or None if there is none."""
        try:
            return self._queue.popleft()
        except IndexError:
            return None


def _check_name(name: str) -> None:
    if not isinstance(name, str) or not name:
        raise ServiceCreationError("Invalid service name")


def open_or_create(
    name: str,
    max_publishers: int = DEFAULT_MAX_PUBLISHERS,
    max_subscribers: int = DEFAULT_MAX_SUBSCRIBERS,
) -> Service:
    """Return the service called ``name``, creating it if it does not exist."""
    _check_name(name)
    if max_publishers < 1 or max_subscribers < 1:
        raise ServiceCreationError("a service needs room for at least one port of each kind")
    with _services_lock:
        service = _services.get(name)
        if service is None:
            service = Service(name, max_publishers, max_subscribers)
            _services[name] = service
        return service


def open_service(name: str) -> Service:
    """Return the existing service called ``name``; never create one."""
    _check_name(name)
    with _services_lock:
        service = _services.get(name)
    if service is None:
        raise ServiceCreationError(f"Failed to open service: {name!r} does not exist")
    return service