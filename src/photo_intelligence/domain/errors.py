"""Error taxonomy for the AI pipeline and feed."""

HTTP_TOO_MANY_REQUESTS = 429


class PipelineError(Exception):
    """Base error carrying a stable machine-readable code."""

    code = "INTERNAL"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(PipelineError):
    """A photo, analysis asset or job is missing."""

    code = "NOT_FOUND"


class ProviderError(PipelineError):
    """An AI provider call failed for a reason other than rate limiting."""

    code = "PROVIDER_ERROR"


class RateLimitedError(ProviderError):
    """An AI provider rejected the call with HTTP 429."""

    code = "RATE_LIMITED"

    def __init__(
        self, message: str, status_code: int | None = HTTP_TOO_MANY_REQUESTS
    ) -> None:
        super().__init__(message, status_code=status_code)


class FeedRequestError(PipelineError):
    """Invalid arguments were passed to the feed."""

    code = "BAD_REQUEST"


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return whether an error looks like a provider rate limit."""
    if isinstance(exc, RateLimitedError):
        return True
    status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if status == HTTP_TOO_MANY_REQUESTS:
        return True
    message = str(exc)
    return "429" in message or "rate limit" in message.lower()
