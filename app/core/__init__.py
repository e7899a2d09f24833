"""Core utilities and security modules."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    DependencyFailure,
    InvalidBookingStatus,
    NotFoundError,
    RateLimitExceeded,
    ValidationError,
    VehicleNotAvailable,
)
from app.core.security import create_access_token, create_actor_token, verify_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "DependencyFailure",
    "InvalidBookingStatus",
    "NotFoundError",
    "RateLimitExceeded",
    "ValidationError",
    "VehicleNotAvailable",
    "create_access_token",
    "create_actor_token",
    "verify_token",
]
