import threading
import time

import pytest

from minicloneset.context import PassContext
from minicloneset.errors import PassCancelled


def test_no_deadline_means_no_request_timeout():
    ctx = PassContext()

    assert ctx.request_timeout() is None
    assert not ctx.cancelled


def test_request_timeout_is_remaining_time():
    ctx = PassContext(timeout=30)

    assert 29 < ctx.request_timeout() <= 30


def test_expired_deadline_cancels():
    ctx = PassContext(timeout=0.01)
    time.sleep(0.02)

    with pytest.raises(PassCancelled, match="deadline"):
        ctx.check()
    assert ctx.remaining() == 0.0


def test_shared_cancel_event():
    stop = threading.Event()
    ctx = PassContext(timeout=30, cancelled=stop)

    stop.set()

    assert ctx.cancelled
    with pytest.raises(PassCancelled, match="cancelled"):
        ctx.request_timeout()
