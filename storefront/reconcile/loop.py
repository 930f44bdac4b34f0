"""
Reconciliation loop state machine.

    IDLE ──start──▶ FETCHING ──ok──▶ SUCCEEDED
                      │  ▲
                 fail │  │ after retry_interval
                      ▼  │
                 RETRY_WAITING        (while attempts < max_attempts)
                      │
          attempts == max_attempts
                      ▼
              FAILED_PERMANENTLY ──retry()──▶ FETCHING (attempts reset)

A missing session handle goes straight to FAILED_PERMANENTLY and calls
``on_missing_session``. The chain runs as one asyncio task; ``cancel()`` or a
new ``start()`` stops it. Any fetch failure counts as retryable.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from enum import Enum as PyEnum
from typing import Any, Awaitable, Callable

import structlog

from storefront.shared.models import Order

logger = structlog.get_logger(__name__)

DEFAULT_RETRY_INTERVAL = 3.0
DEFAULT_MAX_ATTEMPTS = 3


class Phase(str, PyEnum):
    idle = "idle"
    fetching = "fetching"
    retry_waiting = "retry_waiting"
    succeeded = "succeeded"
    failed_permanently = "failed_permanently"


@dataclass(frozen=True)
class LoopState:
    phase: Phase = Phase.idle
    session_handle: str | None = None
    attempts: int = 0
    error: str | None = None
    order: Order | None = None

    @property
    def can_retry_manually(self) -> bool:
        return self.phase is Phase.failed_permanently and self.session_handle is not None


class ReconciliationLoop:
    def __init__(
        self,
        fetch_order: Callable[[str], Awaitable[Order]],
        *,
        on_success: Callable[[Order], Any] | None = None,
        on_missing_session: Callable[[], Any] | None = None,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._fetch_order = fetch_order
        self._on_success = on_success
        self._on_missing_session = on_missing_session
        self._retry_interval = retry_interval
        self._max_attempts = max_attempts
        self._sleep = sleep
        self._state = LoopState()
        self._task: asyncio.Task | None = None
        self._fetch_in_flight = False

    @property
    def state(self) -> LoopState:
        return self._state

    def start(self, session_handle: str | None) -> None:
        """Begin reconciling ``session_handle``; supersedes any running chain."""
        self.cancel()
        if not session_handle:
            self._state = LoopState(phase=Phase.failed_permanently, error="Missing session ID")
            logger.warning("reconcile_missing_session")
            if self._on_missing_session is not None:
                self._on_missing_session()
            return
        self._state = LoopState(session_handle=session_handle)
        self._task = asyncio.ensure_future(self._run())

    def retry(self) -> None:
        """Manual retry: reset the attempt count and resume fetching."""
        if not self._state.can_retry_manually:
            raise RuntimeError(f"manual retry not available in phase {self._state.phase.value}")
        logger.info("reconcile_manual_retry", session_handle=self._state.session_handle)
        self._state = replace(self._state, phase=Phase.idle, attempts=0, error=None)
        self._task = asyncio.ensure_future(self._run())

    def cancel(self) -> None:
        """Tear down: stop the retry chain. An in-flight request is abandoned."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._fetch_in_flight = False

    async def wait(self) -> LoopState:
        """Wait for the current chain to settle and return the resulting state."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        return self._state

    async def _run(self) -> None:
        handle = self._state.session_handle
        if handle is None:
            return
        log = logger.bind(session_handle=handle)

        while True:
            if self._fetch_in_flight:
                log.debug("reconcile_fetch_already_in_flight")
                return
            self._fetch_in_flight = True
            self._state = replace(self._state, phase=Phase.fetching)
            try:
                order = await self._fetch_order(handle)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                attempts = self._state.attempts + 1
                log.warning("reconcile_attempt_failed", attempt=attempts, error=str(exc))
                if attempts >= self._max_attempts:
                    self._state = replace(
                        self._state,
                        phase=Phase.failed_permanently,
                        attempts=attempts,
                        error=str(exc),
                    )
                    log.error("reconcile_gave_up", attempts=attempts)
                    return
                self._state = replace(
                    self._state, phase=Phase.retry_waiting, attempts=attempts, error=str(exc)
                )
            else:
                self._state = replace(
                    self._state,
                    phase=Phase.succeeded,
                    attempts=self._state.attempts + 1,
                    error=None,
                    order=order,
                )
                log.info("reconcile_succeeded", order_id=order.order_id)
                if self._on_success is not None:
                    self._on_success(order)
                return
            finally:
                # A superseded chain must not clear its successor's guard.
                if asyncio.current_task() is self._task:
                    self._fetch_in_flight = False

            await self._sleep(self._retry_interval)
