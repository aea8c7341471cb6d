"""
Market Data Hub - Custom Exceptions
Caller-facing exceptions carrying an HTTP status for the inbound API
"""
from typing import Optional, Any, Dict
from fastapi import status


class MarketDataException(Exception):
    """Base exception for Market Data Hub."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str = "An error occurred",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class InvalidRequestError(MarketDataException):
    """Missing or malformed caller input."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message=message, code="INVALID_REQUEST")


class RateLimitExceededError(MarketDataException):
    """Inbound rate limit exhausted for a client."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str = "Rate limit exceeded. Please try again later."):
        super().__init__(message=message, code="RATE_LIMIT_EXCEEDED")


def error_body(message: str) -> Dict[str, str]:
    """Uniform error payload returned by every endpoint."""
    return {"error": message}
