"""Custom exception classes for the application.

Defines domain-specific exceptions that can be raised throughout the
application and handled consistently by exception handlers. Generation
errors are raised inside background jobs and recorded on the job record;
they only reach an HTTP response if raised from a synchronous route.
"""

from typing import Optional, Any, Dict


class AppException(Exception):
    """Base exception class for all application exceptions.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional additional error details.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize application exception.

        Args:
            message: Error message.
            status_code: HTTP status code (default: 500).
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Exception raised when a resource does not exist or is not owned by the caller."""

    def __init__(self, resource: str, identifier: Any):
        """Initialize not found error.

        Args:
            resource: Type of resource (e.g., 'GenerationJob', 'MealPlan').
            identifier: ID or identifier that was not found.
        """
        message = f"{resource} with id '{identifier}' not found"
        super().__init__(message, status_code=404, details={"resource": resource, "id": identifier})


class InvalidRequestError(AppException):
    """Exception raised when a request is rejected before any work is scheduled."""

    def __init__(self, message: str, field: Optional[str] = None):
        """Initialize invalid request error.

        Args:
            message: Validation error message.
            field: Optional field name that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, status_code=400, details=details)


class ConflictError(AppException):
    """Exception raised when a generation job is already in flight for the same week."""

    def __init__(self, message: str, job_id: Optional[str] = None):
        self.job_id = job_id
        details = {"job_id": job_id} if job_id else {}
        super().__init__(message, status_code=409, details=details)


class GenerationSchemaViolationError(AppException):
    """Generative output failed validation against the expected contract.

    Attributes:
        violations: Individual problems found in the output, used to build
            the repair prompt for the next attempt.
    """

    def __init__(self, message: str, stage: Optional[str] = None, violations: Optional[list] = None):
        self.stage = stage
        self.violations = list(violations or [])
        details = {"stage": stage} if stage else {}
        if self.violations:
            details["violations"] = self.violations
        super().__init__(message, status_code=502, details=details)


class GenerationUnavailableError(AppException):
    """The generative capability could not be reached or returned an error."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        details = {"stage": stage} if stage else {}
        super().__init__(message, status_code=503, details=details)


class InvalidTransitionError(AppException):
    """Exception raised when a job is moved to a state its lifecycle does not allow."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move job from '{current}' to '{target}'",
            status_code=500,
            details={"current": current, "target": target},
        )


class DatabaseError(AppException):
    """Exception raised when database operations fail."""

    def __init__(self, message: str, operation: Optional[str] = None):
        """Initialize database error.

        Args:
            message: Database error message.
            operation: Optional operation that failed (e.g., 'create', 'update').
        """
        details = {"operation": operation} if operation else {}
        super().__init__(message, status_code=500, details=details)


class ConfigurationError(AppException):
    """Exception raised when application configuration is invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        """Initialize configuration error.

        Args:
            message: Configuration error message.
            config_key: Optional configuration key that is invalid.
        """
        details = {"config_key": config_key} if config_key else {}
        super().__init__(message, status_code=500, details=details)


class JobTimedOutError(AppException):
    """Raised inside a job executor once the job has outlived the stale threshold.

    The job has already been recorded as failed when this is raised; the
    executor must stop without saving anything.
    """

    def __init__(self, job_id: str):
        super().__init__(
            f"Job '{job_id}' timed out",
            status_code=500,
            details={"job_id": job_id},
        )
