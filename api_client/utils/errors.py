"""Errors raised by the API client."""

from __future__ import annotations


class APIClientError(Exception):
    """Base error for a failed attempt."""

    def __init__(self, message: str, *, method: str | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.method = method
        self.url = url


class SerializationError(APIClientError):
    """Request body could not be encoded as JSON."""


class RequestConstructionError(APIClientError):
    """Method, URL or headers could not form a valid request."""


class NetworkError(APIClientError):
    """Connection failure, timeout or other transport fault."""


class ResponseReadError(APIClientError):
    """Response body could not be read to the end."""
