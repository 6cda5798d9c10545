"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class SerializationError(AppError):
    """Raised when a value cannot be encoded for storage."""

    def __init__(self, message="Value cannot be serialized."):
        """Initialize the error."""
        super().__init__(message, 400)


class StaleWriteError(AppError):
    """Raised when a write was based on a revision that is no longer current."""

    def __init__(self, message="Data was changed by another writer.", revision=None):
        """Initialize the error."""
        super().__init__(message, 409)
        self.revision = revision
