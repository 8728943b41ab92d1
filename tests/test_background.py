import threading
from datetime import timedelta

import pytest

from launchcore.background import BackgroundExecutor


def test_result_is_handed_to_finish():
    results = []
    executor = BackgroundExecutor(lambda abort: "done", results.append)
    executor.run()
    executor.wait()
    assert results == ["done"]
    assert not executor.is_running
    assert executor.runtime >= timedelta(0)


def test_run_while_running_discards_and_reruns():
    gate = threading.Event()
    calls = []
    aborts = []

    def parallel(abort):
        number = len(calls)
        calls.append(number)
        if number == 0:
            gate.wait(5)
            aborts.append(abort())
        return number

    results = []
    executor = BackgroundExecutor(parallel, results.append)
    executor.run()
    executor.run()
    assert executor.is_running
    gate.set()
    executor.wait()
    assert results == [1]
    assert aborts == [True]
    assert calls == [0, 1]
    assert not executor.is_running


def test_failing_task_does_not_call_finish():
    def parallel(abort):
        raise ValueError("broken")

    results = []
    executor = BackgroundExecutor(parallel, results.append)
    executor.run()
    executor.wait()
    assert results == []
    assert not executor.is_running


def test_run_requires_callables():
    with pytest.raises(ValueError):
        BackgroundExecutor().run()


def test_run_again_after_finish_produces_new_result():
    counter = iter(range(10))
    results = []
    executor = BackgroundExecutor(lambda abort: next(counter), results.append)
    executor.run()
    executor.wait()
    executor.run()
    executor.wait()
    assert results == [0, 1]


def test_abort_is_false_without_rerun():
    seen = []
    executor = BackgroundExecutor(lambda abort: abort(), seen.append)
    executor.run()
    executor.wait()
    assert seen == [False]