"""
Tests for saga compensation ordering and error propagation.
"""

from unittest.mock import patch

import pytest

from petpromise.services.saga import Saga

from fakes import client_error

pytestmark = pytest.mark.unit


def test_no_compensation_on_success():
    undone = []

    with Saga("ok") as saga:
        saga.step(lambda: 1, compensation=lambda: undone.append("one"))
        result = saga.step(lambda: 2)

    assert result == 2
    assert undone == []


def test_compensations_run_in_reverse_and_error_propagates():
    undone = []

    def fail():
        raise RuntimeError("step 3 failed")

    with pytest.raises(RuntimeError, match="step 3"):
        with Saga("partial") as saga:
            saga.compensate_with(lambda: undone.append("before"))
            saga.step(lambda: None, compensation=lambda: undone.append("one"))
            saga.step(lambda: None, compensation=lambda: undone.append("two"))
            saga.step(fail, compensation=lambda: undone.append("three"))

    assert undone == ["two", "one", "before"]


def test_failed_step_leaves_no_compensation_of_its_own():
    undone = []

    def fail():
        raise ValueError("nope")

    with pytest.raises(ValueError):
        with Saga("first-step") as saga:
            saga.step(fail, compensation=lambda: undone.append("never"))

    assert undone == []


def test_failing_compensation_does_not_stop_the_rest():
    undone = []

    def broken():
        raise RuntimeError("compensation broke")

    with patch("petpromise.services.saga._run_compensation", side_effect=lambda fn: fn()):
        with pytest.raises(KeyError):
            with Saga("messy") as saga:
                saga.step(lambda: None, compensation=lambda: undone.append("one"))
                saga.step(lambda: None, compensation=broken)
                raise KeyError("later failure")

    assert undone == ["one"]


def test_compensation_retried_on_store_errors():
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 2:
            raise client_error()

    with patch("tenacity.nap.time.sleep"):
        with pytest.raises(RuntimeError):
            with Saga("retry") as saga:
                saga.step(lambda: None, compensation=flaky)
                raise RuntimeError("boom")

    assert len(attempts) == 2
