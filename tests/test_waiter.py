"""Tests for the bounded status poll."""

import pytest

from ec2_control.errors import InstanceNotFoundError, WaitTimeoutError
from ec2_control.waiter import wait_for_state

from .conftest import FakeController


class TestWaitForState:
    def test_returns_matching_state(self) -> None:
        """Polling stops at the first target state."""
        controller = FakeController(statuses=["pending", "pending", "running"])
        sleeps: list[float] = []

        state = wait_for_state(controller, ["running"], interval=1.0, backoff=2.0, sleep=sleeps.append)

        assert state == "running"
        assert sleeps == [1.0, 2.0, 4.0]
        assert controller.calls == ["fetch_status"] * 3

    def test_interval_capped(self) -> None:
        """Backoff never exceeds max_interval."""
        controller = FakeController(statuses=["pending"] * 4 + ["running"])
        sleeps: list[float] = []

        wait_for_state(
            controller,
            ["running"],
            interval=4.0,
            backoff=3.0,
            max_interval=10.0,
            sleep=sleeps.append,
        )

        assert sleeps == [4.0, 10.0, 10.0, 10.0, 10.0]

    def test_times_out(self) -> None:
        """Running out of attempts raises WaitTimeoutError with the last state."""
        controller = FakeController(statuses=["stopping"] * 3)

        with pytest.raises(WaitTimeoutError) as exc_info:
            wait_for_state(controller, ["stopped"], max_attempts=3, sleep=lambda _: None)

        assert exc_info.value.last_state == "stopping"
        assert exc_info.value.attempts == 3

    def test_instance_disappears(self) -> None:
        """A None status raises InstanceNotFoundError."""
        controller = FakeController(statuses=[None])

        with pytest.raises(InstanceNotFoundError):
            wait_for_state(controller, ["running"], sleep=lambda _: None)

    def test_rejects_empty_targets(self) -> None:
        with pytest.raises(ValueError):
            wait_for_state(FakeController(), [], sleep=lambda _: None)

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError):
            wait_for_state(FakeController(), ["running"], max_attempts=0, sleep=lambda _: None)
