"""Error taxonomy for storyboard generation.

Every failure that can reach a caller is one of these classes. Each carries
a stable machine-readable ``kind`` and a human-readable ``details`` string
holding the original provider or transport message.
"""

from typing import Optional


class StoryboardError(Exception):
    """Base class for all storyboard generation failures.

    Attributes:
        kind: Stable identifier for the failure category
        details: Human-readable description (provider message preserved)
    """

    kind = "internal_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else message

    def to_dict(self) -> dict:
        """Serialize the error into the uniform error body shape."""
        return {"kind": self.kind, "details": self.details}


class InvalidRequest(StoryboardError, ValueError):
    """Missing or malformed input. Raised before any network call."""

    kind = "invalid_request"


class ProviderUnavailable(StoryboardError, ConnectionError):
    """Transport-level failure talking to the provider."""

    kind = "provider_unavailable"


class ProviderError(StoryboardError, RuntimeError):
    """The provider answered with a non-success HTTP status."""

    kind = "provider_error"

    def __init__(self, status: Optional[int], body: str):
        super().__init__(f"Provider API error ({status}): {body}", details=body)
        self.status = status
        self.body = body


class TaskFailed(StoryboardError, RuntimeError):
    """The provider reported that the generation job failed."""

    kind = "task_failed"

    def __init__(self, task_id: Optional[str], message: Optional[str] = None):
        text = f"Task {task_id or '<inline>'} failed"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)
        self.task_id = task_id


class PollTimeout(StoryboardError, RuntimeError):
    """The job never reached a terminal state within the attempt budget."""

    kind = "poll_timeout"

    def __init__(self, task_id: str, attempts: int):
        super().__init__(
            f"Task {task_id} did not finish after {attempts} status queries"
        )
        self.task_id = task_id
        self.attempts = attempts


class PollCancelled(StoryboardError, RuntimeError):
    """Polling was abandoned because the caller signalled cancellation."""

    kind = "poll_cancelled"

    def __init__(self, task_id: str):
        super().__init__(f"Polling for task {task_id} was cancelled")
        self.task_id = task_id


class ResultFetchFailed(StoryboardError, RuntimeError):
    """A remote result URL could not be downloaded."""

    kind = "result_fetch_failed"

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to download generated image: {reason}", details=reason)
        self.url = url


class MalformedResponse(StoryboardError, RuntimeError):
    """The provider reported success but returned no usable image data."""

    kind = "malformed_response"
