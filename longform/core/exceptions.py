"""Custom exception classes for the application."""

from typing import Any


class LongformError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# Lookup Errors
class NotFoundError(LongformError):
    """Requested record does not exist."""

    pass


class ArticleNotFoundError(NotFoundError):
    """Article not found."""

    def __init__(self, article_id: str) -> None:
        super().__init__(f"Article not found: {article_id}", {"article_id": article_id})


class JobNotFoundError(NotFoundError):
    """Job not found."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id}", {"job_id": job_id})


class SectionNotFoundError(NotFoundError):
    """Section not found for an article's current job."""

    def __init__(self, article_id: str, index: int) -> None:
        super().__init__(
            f"Section {index} not found for article: {article_id}",
            {"article_id": article_id, "index": index},
        )


# State Transition Errors
class NotAdvanceableError(LongformError):
    """Requested transition is not valid from the job's current state."""

    def __init__(
        self,
        message: str,
        *,
        job_id: str | None = None,
        status: str | None = None,
    ) -> None:
        self.job_id = job_id
        self.status = status
        super().__init__(message, {"job_id": job_id, "status": status})


class InvalidTransitionError(NotAdvanceableError):
    """Controller transition rejected for the current status."""

    def __init__(self, job_id: str, status: str, action: str) -> None:
        self.action = action
        super().__init__(
            f"Cannot {action} job {job_id} in status '{status}'",
            job_id=job_id,
            status=status,
        )


class NotResettableError(NotAdvanceableError):
    """Reset requested for a job that is still active."""

    def __init__(self, job_id: str, status: str) -> None:
        super().__init__(
            f"Job {job_id} is not resettable in status '{status}'",
            job_id=job_id,
            status=status,
        )


class ActiveJobExistsError(NotAdvanceableError):
    """Article already has a non-terminal job."""

    def __init__(self, article_id: str, job_id: str | None = None) -> None:
        self.article_id = article_id
        super().__init__(
            f"Article {article_id} already has an active job",
            job_id=job_id,
        )


# Pipeline Errors
class PipelineError(LongformError):
    """Base class for pipeline step errors."""

    pass


class StepExecutionError(PipelineError):
    """Error during step execution."""

    def __init__(self, step_name: str, message: str) -> None:
        self.step_name = step_name
        super().__init__(f"Step {step_name} execution failed: {message}", {"step": step_name})


class StepTimeoutError(StepExecutionError):
    """Step did not finish within the invocation budget."""

    def __init__(self, step_name: str, timeout_seconds: float) -> None:
        super().__init__(step_name, f"no response within {timeout_seconds:.0f}s")


class DataIntegrityError(PipelineError):
    """Persisted pipeline state violates an invariant."""

    pass


# External API Errors
class ExternalAPIError(LongformError):
    """Error calling external API."""

    def __init__(self, api_name: str, message: str) -> None:
        self.api_name = api_name
        super().__init__(f"{api_name} API error: {message}", {"api": api_name})


class RateLimitedError(ExternalAPIError):
    """Rate limit exceeded for external API."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "Rate limit exceeded")


class UnavailableError(ExternalAPIError):
    """External API unreachable or returned a server error."""

    pass


class InvalidOutputError(ExternalAPIError):
    """External API responded with output that cannot be used."""

    pass


class APIKeyMissingError(ExternalAPIError):
    """API key not configured."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "API key not configured")
