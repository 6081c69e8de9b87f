from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from typing import Protocol

from .errors import InstanceNotFoundError, WaitTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_ATTEMPTS = 15
DEFAULT_BACKOFF = 1.5
DEFAULT_MAX_INTERVAL = 15.0


class StatusSource(Protocol):
    instance_id: str

    def fetch_status(self) -> str | None: ...


def wait_for_state(
    controller: StatusSource,
    targets: Iterable[str],
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: float = DEFAULT_BACKOFF,
    max_interval: float = DEFAULT_MAX_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Poll ``fetch_status`` until the instance reports one of ``targets``.

    The first poll happens after one ``interval``; each later pause grows by
    ``backoff`` up to ``max_interval``.

    Returns:
        The state that matched.

    Raises:
        InstanceNotFoundError: The instance stopped being describable.
        WaitTimeoutError: ``max_attempts`` polls passed without a match.
    """
    wanted = tuple(targets)
    if not wanted:
        raise ValueError("targets must name at least one state")
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    delay = interval
    state = "unknown"
    for attempt in range(1, max_attempts + 1):
        sleep(delay)
        status = controller.fetch_status()
        if status is None:
            raise InstanceNotFoundError(controller.instance_id)
        state = status
        logger.debug(
            "Poll %d/%d for %s: %s",
            attempt,
            max_attempts,
            controller.instance_id,
            state,
        )
        if state in wanted:
            return state
        delay = min(delay * backoff, max_interval)

    raise WaitTimeoutError(controller.instance_id, wanted, state, max_attempts)
