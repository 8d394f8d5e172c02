"""Replicate predictions adapter."""

import logging
from typing import Any, Dict, List, Optional
import httpx
import replicate
from replicate.exceptions import ReplicateError

from storyboard.core.base_adapter import ProviderConfig, TaskBasedAdapter
from storyboard.core.errors import InvalidRequest, ProviderError, ProviderUnavailable
from storyboard.core.models import ProviderRequest, ProviderTask, RawResult, TaskStatus
from storyboard.core.task_poller import TaskPoller
from storyboard.utils.image_codec import from_data_uri, to_data_uri

logger = logging.getLogger(__name__)

STATUS_MAP = {
    "starting": TaskStatus.SUBMITTED,
    "processing": TaskStatus.RUNNING,
    "succeeded": TaskStatus.SUCCEEDED,
    "failed": TaskStatus.FAILED,
    "canceled": TaskStatus.FAILED,
}


def _output_results(output: Any) -> List[RawResult]:
    """Convert a prediction's output (URL, list of URLs, or data URIs) to results."""
    if output is None:
        return []

    items = output if isinstance(output, (list, tuple)) else [output]
    results = []
    for item in items:
        value = str(getattr(item, "url", item))
        if value.startswith("data:"):
            try:
                image = from_data_uri(value)
            except InvalidRequest:
                logger.warning("Ignoring undecodable data URI in Replicate output")
                continue
            results.append(RawResult.inline(image.payload, image.media_type))
        elif value:
            results.append(RawResult.remote(value))
    return results


def prediction_to_task(prediction: Any) -> ProviderTask:
    """Map a Replicate prediction object onto a ProviderTask."""
    status = STATUS_MAP.get(str(prediction.status).lower(), TaskStatus.RUNNING)
    results = _output_results(prediction.output) if status == TaskStatus.SUCCEEDED else []
    message = getattr(prediction, "error", None)
    return ProviderTask(
        task_id=prediction.id,
        status=status,
        results=results,
        message=str(message) if message else None
    )


class ReplicateAdapter(TaskBasedAdapter):
    """Adapter that runs image edits as Replicate predictions.

    Attributes:
        client: Replicate client instance
    """

    DEFAULT_MODEL = "qwen/qwen-image-edit"

    def __init__(self, config: ProviderConfig, poller: Optional[TaskPoller] = None):
        super().__init__(config, poller)
        self.client = replicate.Client(api_token=config.api_key, timeout=config.timeout)
        logger.info(f"Initialized Replicate adapter with model: {config.model}")

    def _input_params(self, request: ProviderRequest) -> Dict[str, Any]:
        return {
            "prompt": request.prompt,
            "image": to_data_uri(request.source_image),
            "output_format": "png",
        }

    def _create_task(self, request: ProviderRequest) -> ProviderTask:
        try:
            prediction = self.client.predictions.create(
                model=self.config.model,
                input=self._input_params(request)
            )
        except ReplicateError as e:
            logger.error(f"Replicate API error: {e}")
            raise ProviderError(getattr(e, "status", None), str(e)) from e
        except httpx.HTTPError as e:
            logger.error(f"Replicate API unreachable: {e}")
            raise ProviderUnavailable(f"Replicate API unreachable: {e}") from e

        return prediction_to_task(prediction)

    def _query_task(self, task_id: str) -> ProviderTask:
        try:
            prediction = self.client.predictions.get(task_id)
        except (ReplicateError, httpx.HTTPError) as e:
            logger.error(f"Replicate status query failed for {task_id}: {e}")
            raise ProviderUnavailable(f"Replicate status query failed: {e}") from e

        return prediction_to_task(prediction)

    @property
    def name(self) -> str:
        return "Replicate"
