"""
Reconcile event publishing to Redis Streams for dashboards.

Optional: disabled when no URL is configured, and a Redis outage never
fails a reconciliation pass.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Optional

import redis

from ..models import ResourceIdentity

logger = logging.getLogger("events")

STREAM_MAXLEN = 100
CHANNEL = "minicloneset:events"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class EventPublisher:
    def __init__(self, url: str = "", client: Optional[redis.Redis] = None):
        self.url = url
        self._client = client

    def _get_redis(self) -> Optional[redis.Redis]:
        """Lazy-init Redis client. Returns None if unavailable."""
        if self._client is not None:
            return self._client
        if not self.url:
            return None
        try:
            self._client = redis.Redis.from_url(self.url, decode_responses=True)
            self._client.ping()
            logger.info(f"Redis connected: {self.url}")
            return self._client
        except redis.RedisError as e:
            logger.warning(f"Redis unavailable (non-fatal): {e}")
            self._client = None
            return None

    def publish(self, identity: ResourceIdentity, event_type: str, message: str):
        r = self._get_redis()
        if r is None:
            return
        event = {
            "type": event_type,
            "message": message,
            "timestamp": _now(),
            "resource": str(identity),
        }
        try:
            r.xadd(f"{CHANNEL}:{identity}", event, maxlen=STREAM_MAXLEN)
            r.publish(CHANNEL, json.dumps(event))
        except redis.RedisError as e:
            logger.debug(f"Redis publish failed (non-fatal): {e}")
