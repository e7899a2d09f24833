"""Custom application exceptions.

Every exception carries a ``kind`` naming its error category; the HTTP
layer renders ``{"error": kind, "detail": message}``.
"""

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    kind = "InternalError"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Malformed or logically invalid input."""

    kind = "InvalidArgument"

    def __init__(self, detail: str = "Validation failed") -> None:
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    kind = "NotFound"

    def __init__(self, resource: str = "Resource", identifier: str | int | None = None) -> None:
        detail = f"{resource} not found"
        if identifier is not None:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    kind = "Unauthenticated"

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Actor may not act on this resource."""

    kind = "Forbidden"

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidBookingStatus(AppException):
    """Operation is not legal from the booking's current status or flags."""

    kind = "InvalidState"

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class VehicleNotAvailable(InvalidBookingStatus):
    """Car is held by another booking or out of service."""

    def __init__(self, detail: str = "This car is not available for booking") -> None:
        super().__init__(detail=detail)
        self.status_code = status.HTTP_409_CONFLICT


class DependencyFailure(AppException):
    """A best-effort side effect (vehicle availability, audit row) failed."""

    kind = "DependencyFailure"

    def __init__(self, dependency: str, detail: str | None = None) -> None:
        self.dependency = dependency
        message = f"Dependency '{dependency}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)


class RateLimitExceeded(AppException):
    """Rate limit exceeded exception."""

    kind = "RateLimited"

    def __init__(self, detail: str = "Too many requests. Please try again later.") -> None:
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)
