"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class UnauthorizedError(AppError):
    """Raised when a user attempts an action reserved for someone else."""

    def __init__(self, message="You are not authorized to perform this action."):
        """Initialize the error."""
        super().__init__(message, 403)


class StoreUnavailableError(AppError):
    """Raised when the document store fails or times out."""

    def __init__(self, message="The data store is unavailable. Please try again."):
        """Initialize the error."""
        super().__init__(message, 503)


class StaleWriteError(AppError):
    """Raised when a write was based on an outdated tournament version."""

    def __init__(self, message="The tournament changed. Reload and try again."):
        """Initialize the error."""
        super().__init__(message, 409)


class InsufficientParticipantsError(ValidationError):
    """Raised when a bracket is requested for fewer than two participants."""

    def __init__(self, message="At least 2 participants are required."):
        """Initialize the error."""
        super().__init__(message)


class InvalidWinnerDeclarationError(ValidationError):
    """Raised when a winner cannot be declared for a match."""

    def __init__(self, message="A winner cannot be declared for this match."):
        """Initialize the error."""
        super().__init__(message)


class InvalidStateError(ValidationError):
    """Raised when an action does not fit the tournament's current status."""

    def __init__(self, message="This action is not allowed right now."):
        """Initialize the error."""
        super().__init__(message)


class TeamFullError(ValidationError):
    """Raised when inviting a player to a team that has no room left."""

    def __init__(self, message="This team is already full."):
        """Initialize the error."""
        super().__init__(message)


class AlreadyRegisteredError(DuplicateResourceError):
    """Raised when a user is already taking part in a tournament."""

    def __init__(self, message="You are already registered in this tournament."):
        """Initialize the error."""
        super().__init__(message)


class AlreadyMemberError(DuplicateResourceError):
    """Raised when inviting someone who is already on the team."""

    def __init__(self, message="This player is already a member of the team."):
        """Initialize the error."""
        super().__init__(message)
