"""Retryable-task scheduling with exponential backoff.

An attempt is a coroutine function ``attempt(n) -> AttemptOutcome`` that
performs one try and reports how it went. The scheduler owns everything
else: the backoff delays, the task that runs the attempts, and cancelling
that task on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BACKOFF_BASE = 2


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of one delivery attempt."""

    succeeded: bool
    status_code: int | None = None
    error: str = ""

    @classmethod
    def success(cls, status_code: int | None = None) -> "AttemptOutcome":
        return cls(succeeded=True, status_code=status_code)

    @classmethod
    def failure(cls, error: str, status_code: int | None = None) -> "AttemptOutcome":
        return cls(succeeded=False, status_code=status_code, error=error)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = MAX_ATTEMPTS
    backoff_base: int = BACKOFF_BASE

    def delay(self, attempt: int) -> int:
        """Whole seconds to wait after failed attempt `attempt` (1-based)."""
        return self.backoff_base**attempt


Attempt = Callable[[int], Awaitable[AttemptOutcome]]
OutcomeCallback = Callable[[AttemptOutcome], None]
Sleep = Callable[[float], Awaitable[None]]


class RetryScheduler:
    """
    Runs attempts as independent asyncio tasks.

    `sleep` is injectable so tests can record delays without waiting.
    """

    def __init__(self, policy: RetryPolicy | None = None, sleep: Sleep = asyncio.sleep):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def run(self, attempt: Attempt, label: str = "task") -> AttemptOutcome:
        """Drive `attempt` until it succeeds or the policy gives up."""
        outcome = AttemptOutcome.failure("not attempted")
        for n in range(1, self.policy.max_attempts + 1):
            try:
                outcome = await attempt(n)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                outcome = AttemptOutcome.failure(f"{type(e).__name__}: {e}")

            if outcome.succeeded:
                return outcome

            logger.warning("%s attempt %d failed: %s", label, n, outcome.error)
            if n < self.policy.max_attempts:
                await self._sleep(self.policy.delay(n))

        logger.error(
            "%s failed after %d attempts: %s",
            label,
            self.policy.max_attempts,
            outcome.error,
        )
        return outcome

    def schedule(
        self,
        attempt: Attempt,
        on_done: OutcomeCallback | None = None,
        label: str = "task",
    ) -> asyncio.Task:
        """
        Start `attempt` in the background and return its task immediately.

        `on_done` receives the final outcome (success or exhausted retries).

        Raises:
            RuntimeError: If called outside a running event loop.
        """

        loop = asyncio.get_running_loop()

        async def runner() -> AttemptOutcome:
            outcome = await self.run(attempt, label)
            if on_done is not None:
                on_done(outcome)
            return outcome

        task = loop.create_task(runner(), name=label)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def join(self) -> None:
        """Wait for every scheduled task to finish."""
        pending = [t for t in self._tasks if not t.done()]
        while pending:
            await asyncio.gather(*pending, return_exceptions=True)
            pending = [t for t in self._tasks if not t.done()]

    async def shutdown(self) -> None:
        """Cancel pending tasks, including any sitting in a backoff sleep."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d pending delivery task(s)", len(tasks))
        self._tasks.clear()
