import threading
import time

import pytest

from canbridge.callback_queue import CallbackQueue, CallbackResult, CallResult


def recorder(log, name, result=None):
    def callback():
        log.append(name)
        return result

    return callback


class NotReady:
    def __init__(self, log):
        self.log = log

    def ready(self):
        return False

    def __call__(self):
        self.log.append("not ready")


def test_call_one_is_fifo_and_then_empty():
    queue = CallbackQueue()
    log = []
    queue.add_callback(recorder(log, "a"))
    queue.add_callback(recorder(log, "b"))
    assert queue.call_one() is CallResult.CALLED
    assert log == ["a"]
    assert queue.call_one() is CallResult.CALLED
    assert log == ["a", "b"]
    assert queue.call_one() is CallResult.EMPTY
    assert queue.is_empty()


def test_call_available_calls_everything_in_order():
    queue = CallbackQueue()
    log = []
    for name in ["x", "y", "z"]:
        queue.add_callback(recorder(log, name))
    assert not queue.is_empty()
    queue.call_available()
    assert log == ["x", "y", "z"]
    assert queue.is_empty()


def test_disabled_queue_ignores_and_refuses():
    queue = CallbackQueue()
    log = []
    queue.add_callback(recorder(log, "kept"))
    queue.disable()
    assert queue.is_enabled() is False
    assert queue.call_one() is CallResult.DISABLED
    queue.add_callback(recorder(log, "ignored"))
    queue.call_available()
    assert log == []
    queue.enable()
    assert queue.is_enabled() is True
    queue.call_available()
    assert log == ["kept"]


def test_constructed_disabled():
    queue = CallbackQueue(enabled=False)
    queue.add_callback(lambda: None)
    assert queue.is_empty()
    assert queue.call_one() is CallResult.DISABLED


def test_try_again_requeues_callback():
    queue = CallbackQueue()
    results = [CallbackResult.TRY_AGAIN, CallbackResult.CALLED]
    calls = []

    def callback():
        calls.append(1)
        return results.pop(0)

    queue.add_callback(callback)
    assert queue.call_one() is CallResult.TRY_AGAIN
    assert not queue.is_empty()
    assert queue.call_one() is CallResult.CALLED
    assert len(calls) == 2
    assert queue.is_empty()


def test_not_ready_callback_is_skipped():
    queue = CallbackQueue()
    log = []
    queue.add_callback(NotReady(log))
    assert queue.call_one() is CallResult.TRY_AGAIN
    assert log == []
    assert not queue.is_empty()


def test_ready_callback_chosen_before_unready_one():
    queue = CallbackQueue()
    log = []
    queue.add_callback(NotReady(log))
    queue.add_callback(recorder(log, "ready"))
    assert queue.call_one() is CallResult.CALLED
    assert log == ["ready"]


def test_remove_by_id_removes_only_that_id():
    queue = CallbackQueue()
    log = []
    queue.add_callback(recorder(log, "one"), removal_id=1)
    queue.add_callback(recorder(log, "two"), removal_id=2)
    queue.add_callback(recorder(log, "one again"), removal_id=1)
    queue.remove_by_id(1)
    queue.call_available()
    assert log == ["two"]


def test_remove_unknown_id_leaves_queue_alone():
    queue = CallbackQueue()
    log = []
    queue.add_callback(recorder(log, "a"), removal_id=3)
    queue.remove_by_id(99)
    queue.call_available()
    assert log == ["a"]


def test_remove_from_inside_callback_cancels_pending():
    queue = CallbackQueue()
    log = []

    def remover():
        log.append("remover")
        queue.remove_by_id(2)

    queue.add_callback(remover, removal_id=1)
    queue.add_callback(recorder(log, "victim"), removal_id=2)
    queue.add_callback(recorder(log, "survivor"), removal_id=3)
    queue.call_available()
    assert log == ["remover", "survivor"]
    assert queue.is_empty()


def test_callback_removing_its_own_id():
    queue = CallbackQueue()
    log = []

    def self_remover():
        log.append("self")
        queue.remove_by_id(5)

    queue.add_callback(self_remover, removal_id=5)
    queue.add_callback(recorder(log, "same id"), removal_id=5)
    queue.call_available()
    assert log == ["self"]


def test_clear_drops_queued():
    queue = CallbackQueue()
    log = []
    queue.add_callback(recorder(log, "a"))
    queue.clear()
    assert queue.is_empty()
    assert queue.call_one() is CallResult.EMPTY
    assert log == []


def test_call_one_waits_for_timeout_when_empty():
    queue = CallbackQueue()
    start = time.monotonic()
    assert queue.call_one(timeout=0.05) is CallResult.EMPTY
    assert time.monotonic() - start >= 0.04


def test_call_one_wakes_when_callback_added():
    queue = CallbackQueue()
    log = []

    def add_later():
        time.sleep(0.05)
        queue.add_callback(recorder(log, "late"))

    thread = threading.Thread(target=add_later)
    thread.start()
    result = queue.call_one(timeout=5.0)
    thread.join()
    assert result is CallResult.CALLED
    assert log == ["late"]


def test_exception_propagates_and_queue_recovers():
    queue = CallbackQueue()

    def boom():
        raise ValueError("boom")

    queue.add_callback(boom)
    with pytest.raises(ValueError):
        queue.call_one()
    assert queue.is_empty()


def test_exception_in_call_available_propagates():
    queue = CallbackQueue()

    def boom():
        raise RuntimeError("boom")

    queue.add_callback(boom)
    with pytest.raises(RuntimeError):
        queue.call_available()
    assert queue.is_empty()


def test_callback_added_during_call_available_waits_for_next_round():
    queue = CallbackQueue()
    log = []

    def adder():
        log.append("adder")
        queue.add_callback(recorder(log, "added"))

    queue.add_callback(adder)
    queue.call_available()
    assert log == ["adder"]
    assert queue.is_empty() is False
    queue.call_available()
    assert log == ["adder", "added"]
    assert queue.is_empty() is True
    assert queue.call_one() is CallResult.EMPTY