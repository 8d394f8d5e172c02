"""DashScope (Qwen image edit) adapters.

Two flavours share payload building and response parsing:

* :class:`DashScopeAdapter` calls the multimodal-generation endpoint and
  blocks until the image is ready.
* :class:`DashScopeTaskAdapter` submits with ``X-DashScope-Async: enable``
  and polls ``{task_endpoint}/{task_id}`` until the task finishes.
"""

import logging
from typing import Any, Dict, List, Optional
import requests
from pydantic import ValidationError

from storyboard.core.base_adapter import ProviderConfig, SynchronousAdapter, TaskBasedAdapter
from storyboard.core.errors import MalformedResponse, ProviderError, ProviderUnavailable
from storyboard.core.models import ProviderRequest, ProviderTask, RawResult, TaskStatus
from storyboard.core.task_poller import TaskPoller
from storyboard.utils.image_codec import to_data_uri

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = (
    "https://dashscope-intl.aliyuncs.com/api/v1/services/aigc/multimodal-generation/generation"
)
DEFAULT_TASK_ENDPOINT = "https://dashscope-intl.aliyuncs.com/api/v1/tasks"
DEFAULT_MODEL = "qwen-image-edit-plus"

STATUS_MAP = {
    "PENDING": TaskStatus.SUBMITTED,
    "RUNNING": TaskStatus.RUNNING,
    "SUCCEEDED": TaskStatus.SUCCEEDED,
    "FAILED": TaskStatus.FAILED,
    "CANCELED": TaskStatus.FAILED,
    "UNKNOWN": TaskStatus.FAILED,
}


def build_payload(model: str, request: ProviderRequest, watermark: bool = False) -> Dict[str, Any]:
    """Build the DashScope request body for one image."""
    return {
        "model": model,
        "input": {
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"image": to_data_uri(request.source_image)},
                        {"text": request.prompt}
                    ]
                }
            ]
        },
        "parameters": {
            "n": 1,
            "watermark": watermark
        }
    }


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _extract_results(output: Dict[str, Any]) -> List[RawResult]:
    results = []

    # Async/task responses: output.results[{url | b64_image}]
    for entry in _as_list(output.get("results")):
        if not isinstance(entry, dict):
            continue
        url, payload = _text(entry.get("url")), _text(entry.get("b64_image"))
        if url or payload:
            results.append(RawResult(url=url, payload=payload))

    # Chat-style responses: output.choices[].message.content[{image}]
    for choice in _as_list(output.get("choices")):
        message = choice.get("message") if isinstance(choice, dict) else None
        if not isinstance(message, dict):
            continue
        for item in _as_list(message.get("content")):
            image = _text(item.get("image")) if isinstance(item, dict) else None
            if image:
                results.append(RawResult.remote(image))

    return results


def parse_response(data: Dict[str, Any]) -> ProviderTask:
    """Parse a DashScope response body into a ProviderTask.

    Args:
        data: Decoded JSON body

    Returns:
        ProviderTask reflecting the status and any results

    Raises:
        MalformedResponse: If the body has no ``output`` object or carries
            fields of the wrong type
    """
    output = data.get("output")
    if not isinstance(output, dict):
        raise MalformedResponse("DashScope response has no output section", details=str(data)[:500])

    results = _extract_results(output)
    raw_status = output.get("task_status")
    if raw_status is None:
        # Synchronous responses omit task_status when they carry choices
        status = TaskStatus.SUCCEEDED if results else TaskStatus.SUBMITTED
    else:
        status = STATUS_MAP.get(str(raw_status).upper(), TaskStatus.RUNNING)

    message = output.get("message") or data.get("message")
    if status == TaskStatus.FAILED and not message:
        message = f"status {raw_status}"

    try:
        return ProviderTask(
            task_id=output.get("task_id"),
            status=status,
            results=results,
            message=message
        )
    except ValidationError as e:
        raise MalformedResponse("DashScope response has unexpected field types", details=str(data)[:500]) from e


class _DashScopeMixin:
    """HTTP plumbing shared by both DashScope adapters."""

    config: ProviderConfig

    def _headers(self, asynchronous: bool = False) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}"
        }
        if asynchronous:
            headers["X-DashScope-Async"] = "enable"
        return headers

    def _post(self, request: ProviderRequest, asynchronous: bool = False) -> ProviderTask:
        payload = build_payload(self.config.model, request, self.config.watermark)
        endpoint = self.config.endpoint or DEFAULT_ENDPOINT

        logger.debug(f"Calling DashScope API at {endpoint} (async={asynchronous})")
        try:
            response = requests.post(
                endpoint,
                json=payload,
                headers=self._headers(asynchronous),
                timeout=self.config.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"DashScope API unreachable: {e}")
            raise ProviderUnavailable(f"DashScope API unreachable: {e}") from e

        if not response.ok:
            logger.error(f"DashScope API error ({response.status_code}): {response.text}")
            raise ProviderError(response.status_code, response.text)

        return parse_response(self._json(response))

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse("DashScope returned a non-JSON body", details=response.text[:500]) from e
        if not isinstance(data, dict):
            raise MalformedResponse("DashScope returned an unexpected body", details=str(data)[:500])
        return data


class DashScopeAdapter(_DashScopeMixin, SynchronousAdapter):
    """Single-call DashScope adapter."""

    DEFAULT_MODEL = DEFAULT_MODEL

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        logger.info(f"Initialized DashScope adapter with model: {config.model}")

    def _generate(self, request: ProviderRequest) -> ProviderTask:
        return self._post(request)

    @property
    def name(self) -> str:
        return "DashScope"


class DashScopeTaskAdapter(_DashScopeMixin, TaskBasedAdapter):
    """Submit/poll DashScope adapter."""

    DEFAULT_MODEL = DEFAULT_MODEL

    def __init__(self, config: ProviderConfig, poller: Optional[TaskPoller] = None):
        super().__init__(config, poller)
        logger.info(f"Initialized DashScope task adapter with model: {config.model}")

    def _create_task(self, request: ProviderRequest) -> ProviderTask:
        return self._post(request, asynchronous=True)

    def _query_task(self, task_id: str) -> ProviderTask:
        base = (self.config.task_endpoint or DEFAULT_TASK_ENDPOINT).rstrip("/")
        url = f"{base}/{task_id}"
        try:
            response = requests.get(url, headers=self._headers(), timeout=self.config.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"DashScope status query failed for task {task_id}: {e}")
            raise ProviderUnavailable(f"DashScope status query failed: {e}") from e

        task = parse_response(self._json(response))
        if task.task_id is None:
            task = task.model_copy(update={"task_id": task_id})
        return task

    @property
    def name(self) -> str:
        return "DashScope (async)"
