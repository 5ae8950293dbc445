class DomainError(Exception):
    """Base exception for business rule violations."""

    error_code = "DomainError"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    error_code = "ValidationError"


class NotFoundError(DomainError):
    """Raised when an entity does not exist for the given tenant."""

    error_code = "NotFound"


class AuthenticationError(DomainError):
    """Raised when no identity is attached to the request."""

    error_code = "Unauthenticated"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    error_code = "Unauthorized"


class InvalidStateError(DomainError):
    """Raised when an action is attempted from a status that does not allow it."""

    error_code = "InvalidState"

    def __init__(self, message: str, *, expected=None, actual=None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class AlreadyStartedError(InvalidStateError):
    error_code = "AlreadyStarted"


class MissingRequiredCompetencyError(ValidationError):
    error_code = "MissingRequiredCompetency"

    def __init__(self, competency_name: str):
        super().__init__(f"Missing rating for required competency: {competency_name}")
        self.competency_name = competency_name
