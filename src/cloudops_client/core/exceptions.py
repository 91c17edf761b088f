"""Custom exceptions for the CloudOps client."""

from typing import Optional


class CloudOpsClientError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class MissingParameterError(CloudOpsClientError):
    """A required identifier or parameter was absent or empty."""

    def __init__(self, message: str):
        super().__init__(message, code="missing_parameter")


class RequestFailedError(CloudOpsClientError):
    """The server answered with a non-success status, or not at all."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        status_line: Optional[str] = None,
    ):
        super().__init__(message, code="request_failed")
        self.status_code = status_code
        self.status_line = status_line

    @property
    def null_response(self) -> bool:
        return self.status_code is None


class NameNotFoundError(CloudOpsClientError):
    """A name lookup found no matching item."""

    def __init__(self, message: str):
        super().__init__(message, code="not_found")


class ReleaseNotFoundError(CloudOpsClientError):
    """The environment has no release that can be deployed."""

    def __init__(self, message: str):
        super().__init__(message, code="release_not_found")


class PollTimeoutError(CloudOpsClientError):
    """A poll loop exhausted its attempts or deadline."""

    def __init__(self, message: str, last_state: Optional[str] = None):
        super().__init__(message, code="poll_timeout")
        self.last_state = last_state


class PollCancelledError(CloudOpsClientError):
    """A poll loop was interrupted through its cancellation token."""

    def __init__(self, message: str):
        super().__init__(message, code="poll_cancelled")
