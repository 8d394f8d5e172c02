"""Status polling for task-based providers."""

import logging
import threading
import time
from typing import Callable, Optional
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    stop_when_event_set,
    wait_fixed,
)

from storyboard.core.errors import PollCancelled, PollTimeout, TaskFailed
from storyboard.core.models import ProviderTask, TaskStatus

logger = logging.getLogger(__name__)

StatusQuery = Callable[[str], ProviderTask]


def _is_pending(task: ProviderTask) -> bool:
    return not task.status.is_terminal


class TaskPoller:
    """Drives an asynchronous provider task to a terminal state.

    One status query is issued per attempt. Pending tasks are re-queried
    after a fixed interval until ``max_attempts`` queries have been made.
    Query errors are not retried: whatever the query callable raises
    propagates to the caller unchanged.

    Attributes:
        max_attempts: Maximum number of status queries
        interval_ms: Delay between queries in milliseconds
    """

    DEFAULT_MAX_ATTEMPTS = 60
    DEFAULT_INTERVAL_MS = 2000

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize the poller.

        Args:
            max_attempts: Maximum number of status queries (must be >= 1)
            interval_ms: Delay between queries in milliseconds
            sleep: Sleep function, replaceable in tests

        Raises:
            ValueError: If max_attempts < 1 or interval_ms < 0
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if interval_ms < 0:
            raise ValueError("interval_ms must not be negative")

        self.max_attempts = max_attempts
        self.interval_ms = interval_ms
        self._sleep = sleep

    def poll(
        self,
        task_id: str,
        query: StatusQuery,
        cancel_event: Optional[threading.Event] = None
    ) -> ProviderTask:
        """Query a task until it succeeds, fails, or the budget runs out.

        Args:
            task_id: Provider task identifier
            query: Callable returning the current ProviderTask for an id
            cancel_event: Optional event; once set, polling stops after the
                current query

        Returns:
            The terminal ProviderTask with status SUCCEEDED

        Raises:
            TaskFailed: If the provider reports the task as failed
            PollTimeout: If max_attempts queries never reached a terminal state
            PollCancelled: If cancel_event was set before completion
            ProviderUnavailable: If a status query fails
        """
        stop = stop_after_attempt(self.max_attempts)
        if cancel_event is not None:
            stop = stop | stop_when_event_set(cancel_event)

        retrying = Retrying(
            stop=stop,
            wait=wait_fixed(self.interval_ms / 1000),
            retry=retry_if_result(_is_pending),
            sleep=self._sleep,
            before_sleep=self._log_pending(task_id),
        )

        logger.info(f"Polling task {task_id} (max {self.max_attempts} attempts)")
        try:
            task = retrying(self._query_once, task_id, query)
        except RetryError as e:
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Polling cancelled for task {task_id}")
                raise PollCancelled(task_id) from None
            attempts = e.last_attempt.attempt_number
            logger.error(f"Task {task_id} timed out after {attempts} status queries")
            raise PollTimeout(task_id, attempts) from None

        logger.info(f"Task {task_id} succeeded with {len(task.results)} result(s)")
        return task

    @staticmethod
    def _query_once(task_id: str, query: StatusQuery) -> ProviderTask:
        task = query(task_id)
        if task.status == TaskStatus.FAILED:
            logger.error(f"Task {task_id} failed: {task.message}")
            raise TaskFailed(task_id, task.message)
        return task

    def _log_pending(self, task_id: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            task = retry_state.outcome.result()
            logger.debug(
                f"Task {task_id} is {task.status.value} "
                f"(attempt {retry_state.attempt_number}/{self.max_attempts})"
            )
        return before_sleep
