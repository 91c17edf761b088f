"""Blocking poll loop used while the server holds a resource in a transient state."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import structlog

from cloudops_client.core.exceptions import PollCancelledError, PollTimeoutError

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_LOCK_STATE = "locked"


@dataclass(frozen=True)
class PollPolicy:
    """How long and how often to re-fetch a locked resource.

    The default policy waits forever, sleeping five seconds between fetches,
    for as long as the resource reports the ``locked`` state.

    Args:
        interval_seconds: Sleep between two consecutive fetches
        lock_state: State value that keeps the loop going (exact match)
        max_polls: Maximum number of re-fetches after the first one, or None
        deadline_seconds: Wall-clock budget for the whole loop, or None
    """

    interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    lock_state: str = DEFAULT_LOCK_STATE
    max_polls: Optional[int] = None
    deadline_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative")
        if self.max_polls is not None and self.max_polls < 0:
            raise ValueError("max_polls must not be negative")
        if self.deadline_seconds is not None and self.deadline_seconds < 0:
            raise ValueError("deadline_seconds must not be negative")

    @property
    def bounded(self) -> bool:
        return self.max_polls is not None or self.deadline_seconds is not None


class CancellationToken:
    """Signal shared between a caller and a running poll loop."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)


def _sleep(seconds: float, cancel_token: Optional[CancellationToken]) -> bool:
    if cancel_token is None:
        time.sleep(seconds)
        return False
    return cancel_token.wait(seconds)


def _remaining(policy: PollPolicy, start: float, description: str, state: Optional[str]) -> float:
    """Seconds left before the deadline; raise once none are left."""
    remaining = policy.deadline_seconds - (time.monotonic() - start)
    if remaining <= 0:
        raise PollTimeoutError(
            f"Gave up waiting for {description} after {policy.deadline_seconds} seconds",
            last_state=state,
        )
    return remaining


def poll_while(
    fetch: Callable[[], T],
    state_of: Callable[[T], Optional[str]],
    policy: Optional[PollPolicy] = None,
    cancel_token: Optional[CancellationToken] = None,
    description: str = "resource",
) -> T:
    """Fetch until the fetched value leaves the policy's lock state.

    The first fetch happens immediately. Every further fetch is preceded by a
    sleep of ``policy.interval_seconds``, shortened to the time left when a
    deadline is set. No fetch starts once the deadline has passed. Errors
    raised by ``fetch`` propagate unchanged.

    Returns:
        The first fetched value whose state differs from the lock state

    Raises:
        PollTimeoutError: If max_polls or deadline_seconds is exhausted
        PollCancelledError: If the cancellation token fires
    """
    policy = policy or PollPolicy()
    start = time.monotonic()
    polls = 0

    value = fetch()
    state = state_of(value)
    while state == policy.lock_state:
        if cancel_token is not None and cancel_token.cancelled:
            raise PollCancelledError(f"Cancelled while waiting for {description} to leave state {state}")
        if policy.max_polls is not None and polls >= policy.max_polls:
            raise PollTimeoutError(
                f"Gave up waiting for {description} after {polls} polls", last_state=state
            )
        sleep_for = policy.interval_seconds
        if policy.deadline_seconds is not None:
            remaining = _remaining(policy, start, description, state)
            sleep_for = min(sleep_for, remaining)

        logger.debug("Waiting on locked resource", resource=description, state=state, poll=polls + 1)
        if _sleep(sleep_for, cancel_token):
            raise PollCancelledError(f"Cancelled while waiting for {description} to leave state {state}")
        if policy.deadline_seconds is not None:
            _remaining(policy, start, description, state)

        polls += 1
        value = fetch()
        state = state_of(value)

    if polls:
        logger.info("Resource released", resource=description, state=state, polls=polls)
    return value
