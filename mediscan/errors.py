"""Error taxonomy shared by services and routers.

Services raise these; ``mediscan.main`` renders them into the JSON error
envelope. Messages are safe to show to callers.
"""


class AppError(Exception):
    status_code = 500
    error = "InternalServerError"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    error = "ValidationError"
    default_message = "Invalid request payload"


class UnauthorizedError(AppError):
    status_code = 401
    error = "Unauthorized"
    default_message = "Unauthorized"


class NotFoundError(AppError):
    status_code = 404
    error = "NotFound"
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    error = "Conflict"
    default_message = "Email already exists"


class InternalError(AppError):
    pass


class LoginRedirect(UnauthorizedError):
    """Raised for page requests that must be sent to the login page."""

    def __init__(self, location: str = "/login"):
        super().__init__("Login required")
        self.location = location
