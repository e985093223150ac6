"""Custom exception classes for the API."""

from typing import Any


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int = 400, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} with id '{resource_id}' not found",
            status_code=404,
            details={"resource": resource, "id": resource_id},
        )


class ValidationError(APIError):
    """Validation error."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=422, details=details)


class DetectionFailedError(APIError):
    """Both local and remote detection were unusable."""

    def __init__(self, message: str = "Detection failed, try manual entry", details: Any = None):
        super().__init__(
            message=message,
            status_code=422,
            details={"error_code": "DETECTION_FAILED", **(details or {})},
        )


class ServiceUnavailableError(APIError):
    """A required collaborator is not configured or not running."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=503, details=details)
