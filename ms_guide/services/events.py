from __future__ import annotations

import atexit
import json
import logging
from datetime import datetime, timezone
from typing import Any

import redis
from flask import Flask, current_app, has_app_context

logger = logging.getLogger(__name__)

# Guides are created by the upstream ingestion process, which publishes this topic.
GUIDE_CREATED_TOPIC = "guide.created"
GUIDE_UPDATED_TOPIC = "guide.updated"
EXTENSION_KEY = "event_publisher"


class EventPublisher:
    """Best-effort, fire-and-forget publisher for guide notifications.

    Messages are published at most once; failures are logged and never raised.
    """

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "EventPublisher":
        url = config.get("EVENT_BUS_URL")
        if not config.get("USE_EVENT_BUS") or not url:
            logger.info("Event bus is disabled")
            return cls()
        return cls(redis.Redis.from_url(url, socket_connect_timeout=2, socket_timeout=2))

    def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        if self._client is None:
            logger.debug("Event bus not initialized, skipping event publication to %s", topic)
            return False

        message = json.dumps(
            {
                "event": topic,
                "occurredAt": datetime.now(tz=timezone.utc).isoformat(),
                "data": payload,
            },
            ensure_ascii=False,
            default=str,
        )
        try:
            self._client.publish(topic, message)
        except (redis.RedisError, OSError) as exc:
            logger.error("Failed to publish event to topic %s: %s", topic, exc)
            return False

        logger.info("Event published to topic %s", topic)
        return True

    def close(self) -> None:
        if self._client is None:
            return
        try:
            self._client.close()
        except (redis.RedisError, OSError) as exc:
            logger.warning("Error closing event bus client: %s", exc)


def init_event_bus(app: Flask) -> EventPublisher:
    publisher = EventPublisher.from_config(app.config)
    app.extensions[EXTENSION_KEY] = publisher
    if publisher.enabled:
        atexit.register(publisher.close)
    return publisher


def get_event_publisher() -> EventPublisher:
    if has_app_context():
        publisher = current_app.extensions.get(EXTENSION_KEY)
        if publisher is not None:
            return publisher
    return EventPublisher()
