"""Error taxonomy shared by the service layer and the HTTP handlers."""


class BoardError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code = 500
    message = "Something went wrong!"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(BoardError):
    """Missing or malformed client input."""

    status_code = 400
    message = "Invalid request"


class DuplicateUser(BoardError):
    """A uniqueness constraint on users was violated."""

    status_code = 400
    message = "User already exists with this email or matric number"


class InvalidCredentials(BoardError):
    """Login failed.

    The message is the same whether the identifier is unknown or the
    password is wrong.
    """

    status_code = 401
    message = "Invalid credentials"

    def __init__(self):
        super().__init__()


class InvalidToken(BoardError):
    status_code = 401
    message = "Invalid token"

    def __init__(self):
        super().__init__()


class Forbidden(BoardError):
    status_code = 403
    message = "Forbidden"


class NotFound(BoardError):
    status_code = 404
    message = "Not found"


class StoreUnavailable(BoardError):
    """The database could not be reached."""

    status_code = 500
    message = "Service temporarily unavailable"

    def __init__(self):
        super().__init__()
