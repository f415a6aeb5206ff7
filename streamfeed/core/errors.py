class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Bad or missing request input. Message is safe to show to the caller."""

    status_code = 400


class InvalidRange(ValidationError):
    def __init__(self, message: str = "year_from must be <= year_to"):
        super().__init__(message)


class InvalidYear(ValidationError):
    def __init__(self, message: str = "Invalid year range"):
        super().__init__(message)


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    status_code = 409


class ServerError(AppError):
    status_code = 500
