"""Error hierarchy for the image relay.

- RelayError: Base for all relay errors
- ValidationError: Malformed or empty job input, answered synchronously
- AdmissionRejected: Concurrency ceiling reached, user must re-trigger
- ProviderError: Image provider failure, tagged retryable or fatal where it originates
- DeliveryError: Posting back to the conversation failed
- TemplateLoadError: Persona template image missing on disk
"""

import asyncio


class RelayError(Exception):
    """Base exception for all relay errors."""

    pass


class ValidationError(RelayError):
    """Job request failed validation (empty prompt, prompt too long)."""

    pass


class AdmissionRejected(RelayError):
    """Concurrency ceiling reached; the job was not started."""

    def __init__(self, message: str = "Too many requests at once. Please try again in a moment."):
        super().__init__(message)


class ProviderError(RelayError):
    """Failure reported by the image provider.

    The ``retryable`` flag is set at the point the error is raised so that the
    backoff executor never has to inspect error messages.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        retryable: bool | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable


class RetryableProviderError(ProviderError):
    """Transient overload or unavailability (429, 503, network errors).

    Examples:
    - Rate limit exceeded (429)
    - Service unavailable (503)
    - RESOURCE_EXHAUSTED / UNAVAILABLE provider statuses
    """

    retryable = True


class ProviderTimeoutError(RetryableProviderError):
    """A single attempt did not settle within its timeout."""

    pass


class FatalProviderError(ProviderError):
    """Permanent provider failure that will not succeed on retry.

    Examples:
    - Authentication failures (401, 403)
    - Invalid request parameters (400)
    - Content policy blocks (no image returned)
    """

    retryable = False


class DeliveryError(RelayError):
    """Posting a message or file to the destination conversation failed."""

    pass


class TemplateLoadError(RelayError):
    """A persona template image could not be read."""

    pass


def describe_failure(exc: BaseException) -> str:
    """Convert a terminal job error into the text shown to the requester."""
    if isinstance(exc, (ValidationError, AdmissionRejected, DeliveryError)):
        return str(exc)
    if isinstance(exc, ProviderTimeoutError):
        return "Image generation timed out. Please try again in a moment."
    if isinstance(exc, RetryableProviderError):
        return f"The image service is busy right now. Please try again later. ({exc.message})"
    if isinstance(exc, ProviderError):
        return exc.message
    if isinstance(exc, TemplateLoadError):
        return "Template images are not available on the server. Please contact an admin."
    if isinstance(exc, asyncio.TimeoutError):
        return "Image generation timed out. Please try again in a moment."
    return f"An unexpected error occurred: {exc}"
