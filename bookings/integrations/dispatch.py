"""
Best-effort side-effect dispatch

Collaborator calls run after the appointment transaction commits. Each call
gets a bounded timeout; raised errors are retried up to the configured number
of attempts, then logged and dropped.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError
from typing import Any, Callable, Optional

from bookings.core import config

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=config.SIDE_EFFECT_WORKERS, thread_name_prefix='side-effects')


class SideEffectDispatcher:
    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else config.SIDE_EFFECT_TIMEOUT_SECONDS
        self.max_attempts = max(1, max_attempts if max_attempts is not None else config.SIDE_EFFECT_MAX_ATTEMPTS)
        self.executor = executor or _executor

    def run(self, description: str, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Run ``func`` and return its result, or None if it failed or timed out."""
        for attempt in range(1, self.max_attempts + 1):
            future = self.executor.submit(func, *args, **kwargs)
            try:
                return future.result(timeout=self.timeout_seconds)
            except TimeoutError:
                # a call that never started is dropped; one already running may
                # still finish, so it is not retried
                if future.cancel():
                    logger.warning('%s timed out after %.1fs before starting', description, self.timeout_seconds)
                else:
                    logger.warning(
                        '%s timed out after %.1fs while running; its result will be discarded',
                        description,
                        self.timeout_seconds,
                    )
                return None
            except Exception:
                logger.exception('%s failed (attempt %d/%d)', description, attempt, self.max_attempts)
        return None
