"""Exceptions raised by the API client."""

from typing import Any, Optional


class ApiError(Exception):
    """Base class for failed backend calls."""

    retryable = True

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status: Optional[int] = None,
    ):
        self.endpoint = endpoint
        self.status = status
        super().__init__(message)


class TransportError(ApiError):
    """The request never produced an HTTP response: timeout, offline, DNS, refused."""

    def __init__(self, message: str, endpoint: Optional[str] = None, kind: str = "network"):
        self.kind = kind
        super().__init__(message, endpoint=endpoint)


class HttpStatusError(ApiError):
    """The backend answered with a non-2xx status."""

    def __init__(
        self,
        status: int,
        endpoint: Optional[str] = None,
        message: Optional[str] = None,
        body: Any = None,
    ):
        self.body = body
        super().__init__(
            message or f"HTTP error! status: {status}",
            endpoint=endpoint,
            status=status,
        )
        # Client errors will fail the same way again
        self.retryable = status >= 500 or status in (408, 429)


class AuthenticationError(HttpStatusError):
    """401 from the backend. Stored credentials are cleared before this surfaces."""

    retryable = False

    def __init__(self, endpoint: Optional[str] = None, message: Optional[str] = None, body: Any = None):
        super().__init__(401, endpoint=endpoint, message=message or "Authentication required", body=body)
        self.retryable = False


class ApplicationError(ApiError):
    """The backend rejected the request for a reason the caller must see.

    Raised instead of synthesizing data, e.g. a wrong password on sign-in.
    """

    retryable = False

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status: Optional[int] = None,
        body: Any = None,
    ):
        self.body = body
        super().__init__(message, endpoint=endpoint, status=status)
