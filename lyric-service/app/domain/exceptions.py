# lyric-service/app/domain/exceptions.py
from typing import Optional


class LyricServiceError(Exception):
    """Base exception for every failure the ask pipeline can end in."""
    pass


class ClientInputError(LyricServiceError):
    """Missing or mistyped body field, or a question that failed sanitization."""
    pass


class RateLimitExceeded(LyricServiceError):
    """Raised when a rate limit window denies the request."""
    def __init__(self, window: str, retry_after: int):
        super().__init__(f"Rate limit window '{window}' exceeded")
        self.window = window
        self.retry_after = retry_after


class UpstreamError(LyricServiceError):
    """Base exception for failures of an external collaborator."""
    def __init__(self, message: str, dependency: Optional[str] = None):
        super().__init__(message)
        self.dependency = dependency


class UpstreamTimeout(UpstreamError):
    """An external call exceeded its time bound."""
    pass


class UpstreamConfigurationError(UpstreamError):
    """A dependency is missing required configuration (e.g. credentials)."""
    def __init__(self, dependency: str, setting: str):
        super().__init__(f"{dependency} is not configured: {setting} is missing", dependency=dependency)
        self.setting = setting


class UpstreamUnexpectedError(UpstreamError):
    """Any other downstream failure, including malformed responses."""
    pass
