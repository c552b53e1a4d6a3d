"""Backend API client."""

from sparkvibe.api.client import ApiClient
from sparkvibe.api.errors import (
    ApiError,
    ApplicationError,
    AuthenticationError,
    HttpStatusError,
    TransportError,
)

__all__ = [
    "ApiClient",
    "ApiError",
    "ApplicationError",
    "AuthenticationError",
    "HttpStatusError",
    "TransportError",
]
