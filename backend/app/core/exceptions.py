class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class UnauthenticatedError(AppError):
    """Raised when an operation is attempted without a caller identity."""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401, details={"reason": "unauthenticated"})


class ForbiddenError(AppError):
    """Raised when the caller is known but lacks the role or ownership required."""
    def __init__(self, message: str, reason: str = "forbidden"):
        super().__init__(message, status_code=403, details={"reason": reason})


class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"reason": "not_found", "resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictError(AppError):
    """Raised when a transition collides with current state, capacity or uniqueness.

    ``reason`` is a stable machine code; clients rely on it to tell apart a shift
    that is full from a claim someone already holds.
    """
    def __init__(self, message: str, reason: str, details: dict = None):
        payload = {"reason": reason}
        payload.update(details or {})
        self.reason = reason
        super().__init__(message, status_code=409, details=payload)


class InvalidInputError(AppError):
    """Raised when a request is structurally valid but semantically malformed."""
    def __init__(self, message: str, field: str | None = None):
        details = {"reason": "invalid_input"}
        if field:
            details["field"] = field
        super().__init__(message, status_code=422, details=details)
