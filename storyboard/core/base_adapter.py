"""Provider adapter contract and its two protocol variants."""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from storyboard.core.errors import MalformedResponse, TaskFailed
from storyboard.core.models import EncodedImage, ProviderRequest, ProviderTask, TaskStatus
from storyboard.core.task_poller import TaskPoller
from storyboard.utils.image_codec import normalize_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable provider settings handed to an adapter at construction.

    Attributes:
        api_key: Credential for the provider
        model: Provider model identifier
        endpoint: Generation endpoint URL (unused by SDK-based adapters)
        task_endpoint: Base URL for task status queries
        timeout: Per-call network deadline in seconds
        poll_max_attempts: Status query budget for task-based providers
        poll_interval_ms: Delay between status queries
        watermark: Whether the provider should watermark results
    """
    api_key: str
    model: str
    endpoint: Optional[str] = None
    task_endpoint: Optional[str] = None
    timeout: float = 60.0
    poll_max_attempts: int = TaskPoller.DEFAULT_MAX_ATTEMPTS
    poll_interval_ms: int = TaskPoller.DEFAULT_INTERVAL_MS
    watermark: bool = False


class BaseAdapter(ABC):
    """Interface every image provider adapter implements.

    The orchestration layer only ever calls :meth:`submit`; whether the
    provider answers in one call or through a task that must be polled is
    hidden behind it.

    Attributes:
        config: Provider configuration
    """

    protocol = "abstract"

    def __init__(self, config: ProviderConfig):
        """Initialize the adapter.

        Args:
            config: Provider configuration

        Raises:
            ValueError: If the API key is empty
        """
        if not config.api_key:
            raise ValueError(f"{self.name} API key is required")
        self.config = config

    @abstractmethod
    def submit(
        self,
        request: ProviderRequest,
        cancel_event: Optional[threading.Event] = None
    ) -> EncodedImage:
        """Generate one image for the request.

        Args:
            request: Composed prompt plus source image
            cancel_event: Optional event that aborts an in-flight poll loop

        Returns:
            The first result, normalized

        Raises:
            ProviderUnavailable: On transport failure
            ProviderError: On non-success status from the provider
            MalformedResponse: If the response carries no usable image
            TaskFailed: If the provider reports the job as failed
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""
        pass

    def _first_image(self, task: ProviderTask) -> EncodedImage:
        if not task.results:
            raise MalformedResponse(f"{self.name} returned no results")
        return normalize_result(task.results[0], timeout=self.config.timeout)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.config.model!r})"


class SynchronousAdapter(BaseAdapter):
    """Adapter for providers that return final results from a single call."""

    protocol = "synchronous"

    @abstractmethod
    def _generate(self, request: ProviderRequest) -> ProviderTask:
        """Perform the blocking generation call and parse its response."""
        pass

    def submit(
        self,
        request: ProviderRequest,
        cancel_event: Optional[threading.Event] = None
    ) -> EncodedImage:
        logger.info(f"Submitting synchronous request to {self.name} ({len(request.prompt)} char prompt)")
        task = self._generate(request)

        if task.status == TaskStatus.FAILED:
            raise TaskFailed(task.task_id, task.message)

        image = self._first_image(task)
        logger.info(f"{self.name} returned image ({len(image.payload)} base64 chars)")
        return image


class TaskBasedAdapter(BaseAdapter):
    """Adapter for providers that create a job and expose a status endpoint.

    The first response is inspected before polling: some providers finish
    quickly enough to return terminal results straight from the submit call,
    in which case no status query is made at all.

    A first response reporting SUCCEEDED with a task id but no results is
    still polled, so it costs one status query before the task is either
    resolved or rejected as a MalformedResponse.
    """

    protocol = "task"

    def __init__(
        self,
        config: ProviderConfig,
        poller: Optional[TaskPoller] = None
    ):
        """Initialize the adapter.

        Args:
            config: Provider configuration
            poller: TaskPoller to use (built from config if omitted)
        """
        super().__init__(config)
        self.poller = poller or TaskPoller(
            max_attempts=config.poll_max_attempts,
            interval_ms=config.poll_interval_ms
        )

    @abstractmethod
    def _create_task(self, request: ProviderRequest) -> ProviderTask:
        """Submit the job and parse the immediate response."""
        pass

    @abstractmethod
    def _query_task(self, task_id: str) -> ProviderTask:
        """Fetch the current state of a job.

        Raises:
            ProviderUnavailable: On transport failure or non-success status
        """
        pass

    def submit(
        self,
        request: ProviderRequest,
        cancel_event: Optional[threading.Event] = None
    ) -> EncodedImage:
        logger.info(f"Submitting task to {self.name} ({len(request.prompt)} char prompt)")
        task = self._create_task(request)

        if task.status == TaskStatus.FAILED:
            raise TaskFailed(task.task_id, task.message)

        if task.status == TaskStatus.SUCCEEDED and task.results:
            logger.info(f"{self.name} returned results without polling")
        elif task.task_id:
            logger.info(f"{self.name} accepted task {task.task_id} ({task.status.value})")
            task = self.poller.poll(task.task_id, self._query_task, cancel_event)
        else:
            raise MalformedResponse(
                f"{self.name} response carried neither results nor a task id"
            )

        image = self._first_image(task)
        logger.info(f"{self.name} returned image ({len(image.payload)} base64 chars)")
        return image
