"""Error taxonomy for the grading core.

Every error raised by the AI grading client, the quiz grader and the
orchestrator derives from :class:`GradingError`. Each class carries two hints
for callers:

- ``retryable``: whether repeating the same call may succeed. The retry
  policy never repeats a call whose error is not retryable.
- ``status_code``: the HTTP status the API layer should answer with.
"""


class GradingError(Exception):
    """Base exception for grading errors."""

    retryable = False
    status_code = 500

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or "Grading failed"
        super().__init__(self.message)


class EmptyInputError(GradingError):
    """Submission content is empty. Unable to grade."""

    status_code = 422


class MalformedResponseError(GradingError):
    """The AI provider returned an unusable grading payload."""

    retryable = True
    status_code = 502

    def __init__(self, message: str = "", payload: str = None):
        self.payload = payload
        super().__init__(message)


class ContentExtractionError(GradingError):
    """Unable to extract text from the submitted document."""

    status_code = 422


class AlreadyGradedError(GradingError):
    """Submission already graded."""

    status_code = 409

    def __init__(self, submission_id: str, message: str = ""):
        self.submission_id = submission_id
        super().__init__(message or f"Submission {submission_id} already graded")


class NotFoundError(GradingError):
    """Requested resource was not found."""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type.capitalize()} {resource_id} not found")


class InvalidStatusTransitionError(GradingError):
    """A submission status change violates the grading state machine."""

    status_code = 409

    def __init__(self, submission_id: str, current: str, target: str):
        self.submission_id = submission_id
        self.current = current
        self.target = target
        super().__init__(
            f"Submission {submission_id} cannot move from '{current}' to '{target}'"
        )


class ProviderError(GradingError):
    """The AI provider call failed."""

    retryable = True
    status_code = 503

    def __init__(self, message: str = "", http_status: int = None):
        self.http_status = http_status
        super().__init__(message)


class ProviderUnavailableError(ProviderError):
    """AI provider unavailable, retry later."""


class ProviderAuthError(ProviderError):
    """AI provider rejected the credentials."""

    retryable = False
    status_code = 502


class ProviderBadRequestError(ProviderError):
    """AI provider rejected the request as malformed."""

    retryable = False
    status_code = 502
