import json
import logging

import redis
from flask import Flask

from ms_guide.services import events
from ms_guide.services.events import (
    EXTENSION_KEY,
    GUIDE_UPDATED_TOPIC,
    EventPublisher,
    get_event_publisher,
    init_event_bus,
)


class FakeRedis:
    def __init__(self, fail=False):
        self.fail = fail
        self.published = []
        self.closed = False

    def publish(self, channel, message):
        if self.fail:
            raise redis.ConnectionError("connection refused")
        self.published.append((channel, message))
        return 1

    def close(self):
        self.closed = True


def test_publish_sends_json_envelope():
    client = FakeRedis()
    publisher = EventPublisher(client)

    assert publisher.publish(GUIDE_UPDATED_TOPIC, {"guideId": 1}) is True

    channel, message = client.published[0]
    body = json.loads(message)
    assert channel == "guide.updated"
    assert body["event"] == "guide.updated"
    assert body["data"] == {"guideId": 1}
    assert body["occurredAt"]


def test_publish_failure_is_logged_not_raised(caplog):
    publisher = EventPublisher(FakeRedis(fail=True))

    with caplog.at_level(logging.ERROR, logger="ms_guide.services.events"):
        assert publisher.publish(GUIDE_UPDATED_TOPIC, {"guideId": 1}) is False

    assert "Failed to publish event" in caplog.text


def test_disabled_publisher_is_a_no_op():
    publisher = EventPublisher()

    assert publisher.enabled is False
    assert publisher.publish(GUIDE_UPDATED_TOPIC, {}) is False


def test_from_config_requires_flag_and_url():
    assert EventPublisher.from_config({"USE_EVENT_BUS": True, "EVENT_BUS_URL": ""}).enabled is False
    assert EventPublisher.from_config({"USE_EVENT_BUS": False, "EVENT_BUS_URL": "redis://x:6379/0"}).enabled is False


def test_from_config_builds_redis_client():
    publisher = EventPublisher.from_config({"USE_EVENT_BUS": True, "EVENT_BUS_URL": "redis://localhost:6379/0"})

    assert publisher.enabled is True
    assert isinstance(publisher._client, redis.Redis)


def test_close_releases_client():
    client = FakeRedis()
    EventPublisher(client).close()

    assert client.closed is True


def test_app_registers_disabled_publisher(app):
    publisher = get_event_publisher()

    assert publisher is app.extensions[EXTENSION_KEY]
    assert publisher.enabled is False


def test_get_event_publisher_outside_app_context_is_disabled():
    assert get_event_publisher().enabled is False


def test_enabled_publisher_is_closed_at_exit(monkeypatch):
    registered = []
    monkeypatch.setattr(events.atexit, "register", registered.append)
    app = Flask(__name__)
    app.config.update(USE_EVENT_BUS=True, EVENT_BUS_URL="redis://localhost:6379/0")

    publisher = init_event_bus(app)

    assert app.extensions[EXTENSION_KEY] is publisher
    assert registered == [publisher.close]


def test_disabled_publisher_registers_no_exit_hook(monkeypatch):
    registered = []
    monkeypatch.setattr(events.atexit, "register", registered.append)
    app = Flask(__name__)
    app.config.update(USE_EVENT_BUS=False, EVENT_BUS_URL="")

    init_event_bus(app)

    assert registered == []
