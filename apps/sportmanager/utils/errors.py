"""
Service-level exceptions.

Services raise ValueError for bad input and PermissionError for forbidden
access; the classes here cover the remaining cases route handlers map to
specific status codes.
"""


class NotFoundError(LookupError):
    """Record missing, or owned by another team."""

    def __init__(self, resource: str, message: str = None):
        self.resource = resource
        super().__init__(message or f"{resource} not found")


class DuplicateError(ValueError):
    """Unique key already taken."""


class ValidationErrors(ValueError):
    """Several field-level validation messages collected at once."""

    def __init__(self, errors, message: str = "Validation failed"):
        self.errors = list(errors)
        super().__init__(message)
