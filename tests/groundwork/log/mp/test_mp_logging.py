"""Tests for cross-process log forwarding."""

import logging
import multiprocessing.queues
import queue
import sys
import time
from unittest.mock import Mock

import pytest

from groundwork.log import LogQueueListener, Logger, MPQueueHandler
from groundwork.log.logger import EXTRA_ATTR


class _Unpicklable:
    def __repr__(self):
        return "<unpicklable>"


def _record(msg, args=(), extra=None, exc_info=None):
    return Logger("groundwork.mp").makeRecord(
        "groundwork.mp", logging.ERROR, __file__, 1, msg, args, exc_info, extra=extra
    )


@pytest.mark.unit
class TestMPQueueHandler:
    def test_formats_args_into_message(self):
        q = queue.Queue()
        MPQueueHandler(q).emit(_record("worker %s started", ("w1",)))
        record = q.get_nowait()
        assert record.msg == "worker w1 started"
        assert record.args is None

    def test_formats_exc_info(self):
        q = queue.Queue()
        try:
            raise ValueError("bad")
        except ValueError:
            record = _record("failed", exc_info=sys.exc_info())
        MPQueueHandler(q).emit(record)

        sent = q.get_nowait()
        assert sent.exc_info is None
        assert "ValueError: bad" in sent.exc_text

    def test_exception_extra_becomes_text(self):
        q = queue.Queue()
        try:
            raise KeyError("k")
        except KeyError as e:
            MPQueueHandler(q).emit(_record("failed", extra={"exception": e}))

        extra = getattr(q.get_nowait(), EXTRA_ATTR)
        assert "exception" not in extra
        assert "KeyError" in extra["exception_formatted"]

    def test_non_primitive_extra_is_repr(self):
        q = queue.Queue()
        MPQueueHandler(q).emit(
            _record("m", extra={"obj": _Unpicklable(), "n": 1, "items": [1, 2]})
        )
        extra = getattr(q.get_nowait(), EXTRA_ATTR)
        assert extra == {"obj": "<unpicklable>", "n": 1, "items": [1, 2]}

    def test_close_waits_for_feeder(self):
        q = Mock(spec=multiprocessing.queues.Queue)
        MPQueueHandler(q).close()
        q.close.assert_called_once_with()
        q.join_thread.assert_called_once_with()

    def test_close_with_plain_queue(self):
        q = queue.Queue()
        handler = MPQueueHandler(q)
        handler.emit(_record("kept"))
        handler.close()
        assert q.get_nowait().msg == "kept"


@pytest.mark.unit
class TestLogQueueListener:
    def test_dispatches_to_logger_by_name(self):
        q = queue.Queue()
        received = []
        target = logging.getLogger("groundwork.mp-listener")
        handler = logging.Handler()
        handler.emit = received.append
        target.addHandler(handler)

        listener = LogQueueListener(q)
        listener.start()
        try:
            record = _record("forwarded")
            record.name = "groundwork.mp-listener"
            q.put(record)
            deadline = time.monotonic() + 5
            while not received and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            listener.stop()
            target.removeHandler(handler)

        assert received[0].getMessage() == "forwarded"
        assert not listener.is_alive

    def test_start_is_idempotent(self):
        listener = LogQueueListener(queue.Queue())
        listener.start()
        thread = listener._thread
        listener.start()
        assert listener._thread is thread
        listener.stop()
