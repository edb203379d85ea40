"""Service discovery and coordination of publishers and subscribers."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta

from emidi.ipc.common import AppId, IpcError, PublisherCreationError
from emidi.ipc.events import Event
from emidi.ipc.publisher import EventPublisher
from emidi.ipc.subscriber import EventSubscriber

_log = logging.getLogger(__name__)

CLEANUP_INTERVAL = 5.0
HEARTBEAT_INTERVAL = 5.0

_state_lock = threading.Lock()
_event_sender: queue.SimpleQueue | None = None
_service_manager: IpcServiceManager | None = None


def _seconds(value: float | timedelta) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def _wall_seconds() -> int:
    return int(time.time())


@dataclass
class ServiceInfo:
    """What an application announces about itself."""

    app_id: AppId
    service_name: str
    version: str
    capabilities: list[str] = field(default_factory=list)
    last_heartbeat: int = 0
    process_id: int = 0


class ServiceRegistry:
    """Known services, keyed by application."""

    def __init__(self) -> None:
        self._services: dict[AppId, ServiceInfo] = {}
        self._active = True
        self._last_cleanup = time.monotonic()

    def register_service(self, service_info: ServiceInfo) -> None:
        """Add or replace the entry of ``service_info.app_id``."""
        if self._active:
            self._services[service_info.app_id] = service_info

    def get_service(self, app_id: AppId) -> ServiceInfo | None:
        """Return the entry of ``app_id``, or None."""
        if not self._active:
            return None
        return self._services.get(app_id)

    def list_services(self) -> list[ServiceInfo]:
        """Return every registered entry."""
        if not self._active:
            return []
        return list(self._services.values())

    def update_heartbeat(self, app_id: AppId) -> None:
        """Record that ``app_id`` is alive now."""
        service = self._services.get(app_id)
        if service is not None:
            service.last_heartbeat = _wall_seconds()

    def cleanup_stale_services(self, max_age: float | timedelta) -> None:
        """Drop services silent for ``max_age``; runs at most every 5 seconds."""
        if time.monotonic() - self._last_cleanup < CLEANUP_INTERVAL:
            return
        now = _wall_seconds()
        limit = int(_seconds(max_age))
        self._services = {
            app: info
            for app, info in self._services.items()
            if now - info.last_heartbeat < limit
        }
        self._last_cleanup = time.monotonic()

    def is_service_alive(self, app_id: AppId, max_age: float | timedelta) -> bool:
        """Whether ``app_id`` sent a heartbeat within ``max_age``."""
        service = self.get_service(app_id)
        if service is None:
            return False
        return _wall_seconds() - service.last_heartbeat < int(_seconds(max_age))

    def deactivate(self) -> None:
        """Hide all entries and ignore later registrations."""
        self._active = False


def _relay(sender: queue.SimpleQueue, manager: IpcServiceManager) -> None:
    while True:
        event = sender.get()
        try:
            manager.publish_event(event)
        except IpcError as exc:
            _log.debug("relay could not publish %s: %s", event.kind.value, exc)


def start_ipc_event_relay(ipc_manager: IpcServiceManager) -> queue.SimpleQueue:
    """Start a thread publishing every event put on the returned queue.

    The first queue made this way also becomes the process-wide event sender.
    """
    global _event_sender
    sender: queue.SimpleQueue = queue.SimpleQueue()
    with _state_lock:
        if _event_sender is None:
            _event_sender = sender
    threading.Thread(
        target=_relay, args=(sender, ipc_manager), name="ipc-event-relay", daemon=True
    ).start()
    return sender


def install_service_manager(manager: IpcServiceManager) -> bool:
    """Make ``manager`` the process-wide manager; return False if one is set."""
    global _service_manager
    with _state_lock:
        if _service_manager is not None:
            return False
        _service_manager = manager
        return True


class IpcServiceManager:
    """Owns one application's publisher, its subscribers and a registry."""

    def __init__(self, app_id: AppId) -> None:
        _log.debug("creating service manager for %s", app_id)
        self.app_id = app_id
        self._publisher: EventPublisher | None = None
        self._subscribers: dict[AppId, EventSubscriber] = {}
        self.registry = ServiceRegistry()
        self.heartbeat_interval = HEARTBEAT_INTERVAL
        self._last_heartbeat = time.monotonic()
        self._active = True
        with _state_lock:
            needs_relay = _event_sender is None
        if needs_relay:
            start_ipc_event_relay(self)

    def __enter__(self) -> IpcServiceManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def init_publisher(self) -> None:
        """Create this application's publisher if there is none yet."""
        if self._publisher is None:
            self._publisher = EventPublisher(self.app_id)

    def subscribe_to(self, source_app: AppId) -> None:
        """Start receiving events from ``source_app`` if not already."""
        if source_app not in self._subscribers:
            self._subscribers[source_app] = EventSubscriber(source_app, self.app_id)

    def publisher(self) -> EventPublisher | None:
        return self._publisher

    def subscriber(self, source_app: AppId) -> EventSubscriber | None:
        return self._subscribers.get(source_app)

    def heartbeat(self) -> None:
        """Publish a heartbeat if the interval has passed since the last one."""
        if time.monotonic() - self._last_heartbeat < self.heartbeat_interval:
            return
        if self._publisher is not None:
            self._publisher.heartbeat()
            self.registry.update_heartbeat(self.app_id)
            self._last_heartbeat = time.monotonic()

    def process_events(self) -> list[tuple[AppId, list[Event]]]:
        """Collect waiting events from every subscriber that has some."""
        collected = []
        for source_app, subscriber in self._subscribers.items():
            events = subscriber.try_receive()
            if events:
                collected.append((source_app, events))
        return collected

    def publish_event(self, event: Event) -> None:
        """Publish through this manager's publisher."""
        if self._publisher is None:
            raise PublisherCreationError("No publisher available")
        self._publisher.publish(event)

    def shutdown(self) -> None:
        """Deactivate the publisher, every subscriber and the registry."""
        self._active = False
        if self._publisher is not None:
            self._publisher.deactivate()
        for subscriber in self._subscribers.values():
            subscriber.deactivate()
        self.registry.deactivate()

    def is_active(self) -> bool:
        return self._active

    def get_event_sender(self) -> queue.SimpleQueue | None:
        """The process-wide queue whose events are relayed, if any."""
        return _event_sender

    @staticmethod
    def publish_ipc_event(event: Event) -> bool:
        """Publish via the installed manager; return whether it was sent."""
        manager = _service_manager
        if manager is None:
            _log.debug("no manager installed, dropping %s", event.kind.value)
            return False
        try:
            manager.publish_event(event)
        except IpcError as exc:
            _log.debug("could not publish %s: %s", event.kind.value, exc)
            return False
        return True