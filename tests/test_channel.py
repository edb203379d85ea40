import uuid

import pytest

from emidi.ipc import channel
from emidi.ipc.common import (
    PublisherCreationError,
    ServiceCreationError,
    SubscriberCreationError,
)


def _name():
    return f"test_{uuid.uuid4().hex}"


def test_open_or_create_returns_same_service():
    name = _name()
    first = channel.open_or_create(name, 2, 2)
    assert channel.open_or_create(name, 2, 2) is first
    assert channel.open_service(name) is first


def test_payload_reaches_all_subscribers():
    service = channel.open_or_create(_name(), 2, 4)
    sub_a = service.create_subscriber()
    sub_b = service.create_subscriber()
    pub = service.create_publisher()
    assert pub.send(b"hello") == 2
    assert sub_a.receive() == b"hello"
    assert sub_b.receive() == b"hello"
    assert sub_a.receive() is None


def test_payloads_arrive_in_order():
    service = channel.open_or_create(_name())
    sub = service.create_subscriber()
    pub = service.create_publisher()
    pub.send(b"one")
    pub.send(b"two")
    assert [sub.receive(), sub.receive(), sub.receive()] == [b"one", b"two", None]


def test_late_subscriber_sees_no_history():
    service = channel.open_or_create(_name())
    pub = service.create_publisher()
    assert pub.send(b"early") == 0
    sub = service.create_subscriber()
    assert sub.receive() is None


def test_open_missing_service_fails():
    with pytest.raises(ServiceCreationError):
        channel.open_service(_name())


def test_empty_name_rejected():
    with pytest.raises(ServiceCreationError):
        channel.open_or_create("")


def test_subscriber_limit():
    service = channel.open_or_create(_name(), 1, 1)
    kept = service.create_subscriber()
    with pytest.raises(SubscriberCreationError):
        service.create_subscriber()
    assert kept.receive() is None


def test_publisher_limit_and_release():
    service = channel.open_or_create(_name(), 1, 1)
    pub = service.create_publisher()
    with pytest.raises(PublisherCreationError):
        service.create_publisher()
    del pub
    replacement = service.create_publisher()
    assert replacement.service is service