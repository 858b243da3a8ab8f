import json
from unittest.mock import MagicMock

import redis

from minicloneset.models import ResourceIdentity
from minicloneset.services.events import CHANNEL, EventPublisher

WEB = ResourceIdentity("shop", "web")


def test_disabled_without_url():
    publisher = EventPublisher("")

    assert publisher._get_redis() is None
    publisher.publish(WEB, "POD_CREATED", "Created pod web-0")


def test_publishes_to_stream_and_channel():
    r = MagicMock(spec=redis.Redis)
    publisher = EventPublisher(client=r)

    publisher.publish(WEB, "POD_DELETED", "Deleted pod web-0")

    stream, event = r.xadd.call_args.args
    assert stream == "minicloneset:events:shop/web"
    assert event["type"] == "POD_DELETED"
    assert event["resource"] == "shop/web"
    assert r.xadd.call_args.kwargs["maxlen"] == 100
    channel, payload = r.publish.call_args.args
    assert channel == CHANNEL
    assert json.loads(payload)["message"] == "Deleted pod web-0"


def test_redis_failure_does_not_propagate():
    r = MagicMock(spec=redis.Redis)
    r.xadd.side_effect = redis.ConnectionError("down")

    EventPublisher(client=r).publish(WEB, "POD_CREATED", "Created pod web-0")

    r.publish.assert_not_called()


def test_unreachable_redis_degrades_to_disabled(monkeypatch):
    broken = MagicMock(spec=redis.Redis)
    broken.ping.side_effect = redis.ConnectionError("refused")
    monkeypatch.setattr(redis.Redis, "from_url", MagicMock(return_value=broken))

    publisher = EventPublisher("redis://nowhere:6379/0")

    assert publisher._get_redis() is None
    publisher.publish(WEB, "POD_CREATED", "Created pod web-0")
    broken.xadd.assert_not_called()
