"""State poller — block until a refreshed resource reaches a target state.

A refresh function returns ``(snapshot, state)`` and raises on failure. The
poller calls it until ``state`` is one of the targets, the refresh raises, or
the timeout elapses.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

RefreshFunc = Callable[[], "tuple[Any, str]"]

# Backoff between ticks when no fixed poll interval is set.
_INITIAL_WAIT = 0.1
_MAX_WAIT = 10.0


class WaitError(Exception):
    """Base class for state-wait failures."""


class WaitTimeoutError(WaitError):
    """The resource did not reach a target state before the deadline."""

    def __init__(self, last_state: str, target: Iterable[str], timeout: float):
        self.last_state = last_state
        self.target = tuple(target)
        self.timeout = timeout
        super().__init__(
            f"timeout while waiting for state to become {', '.join(self.target)!r} "
            f"(last state: {last_state!r}, timeout: {timeout:g}s)"
        )


class UnexpectedStateError(WaitError):
    """The resource entered a state that is neither pending nor a target."""

    def __init__(self, state: str, expected: Iterable[str]):
        self.state = state
        self.expected = tuple(expected)
        super().__init__(
            f"unexpected state {state!r}, wanted target {', '.join(self.expected)!r}"
        )


class WaitNotFoundError(WaitError):
    """The refresh function kept reporting no resource at all."""

    def __init__(self, checks: int):
        self.checks = checks
        super().__init__(f"couldn't find resource ({checks} retries)")


@dataclass
class StateChangeConf:
    """Configuration for one wait-for-state loop.

    Args:
        target: States that end the wait successfully.
        refresh: Callable returning ``(snapshot, state)``.
        pending: States allowed while waiting. Empty means any state is allowed.
        timeout: Overall deadline in seconds, measured from the call.
        delay: Seconds to sleep before the first refresh.
        min_timeout: Floor for the backoff between refreshes.
        poll_interval: Fixed wait between refreshes; overrides the backoff.
        not_found_checks: Consecutive ``None`` snapshots tolerated.
    """

    target: Iterable[str]
    refresh: RefreshFunc
    pending: Iterable[str] = ()
    timeout: float = 600.0
    delay: float = 0.0
    min_timeout: float = 0.0
    poll_interval: float = 0.0
    not_found_checks: int = 20
    clock: Optional[Callable[[], float]] = field(default=None, repr=False)
    sleep: Optional[Callable[[float], None]] = field(default=None, repr=False)

    def wait_for_state(self) -> Any:
        """Poll until a target state is reached. Returns the last snapshot."""
        clock = self.clock or time.monotonic
        sleep = self.sleep or time.sleep
        target = tuple(self.target)
        pending = tuple(self.pending)
        deadline = clock() + self.timeout

        if self.delay > 0:
            sleep(min(self.delay, self.timeout))

        wait = _INITIAL_WAIT
        not_found = 0
        last_state = ""

        while True:
            snapshot, state = self.refresh()

            if snapshot is None:
                not_found += 1
                if not_found > self.not_found_checks:
                    raise WaitNotFoundError(not_found - 1)
            else:
                not_found = 0
                last_state = state
                if state in target:
                    return snapshot
                if pending and state not in pending:
                    raise UnexpectedStateError(state, target)

            remaining = deadline - clock()
            if remaining <= 0:
                raise WaitTimeoutError(last_state, target, self.timeout)

            if self.poll_interval > 0:
                wait = self.poll_interval
            else:
                wait = max(self.min_timeout, min(wait * 2, _MAX_WAIT))

            logger.debug(
                "Waiting %.1fs for state %s (current: %r)",
                min(wait, remaining), "/".join(target), state,
            )
            sleep(min(wait, remaining))

