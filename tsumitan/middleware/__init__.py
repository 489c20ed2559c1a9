"""Middleware package exports."""

from tsumitan.middleware.auth import FirebaseAuthMiddleware
from tsumitan.middleware.correlation_id import CorrelationIdMiddleware
from tsumitan.middleware.logging import LoggingMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "FirebaseAuthMiddleware",
    "LoggingMiddleware",
]
