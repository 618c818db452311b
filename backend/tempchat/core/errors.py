# tempchat/core/errors.py

"""
Domain errors. Each carries the HTTP status the API answers with, so routes
raise them directly and a single handler in main.py renders {"error": ...}.
"""


class ChatError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(ChatError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(ChatError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ChatError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ChatError):
    status_code = 404
    default_message = "Not found"


class DuplicateUsername(ChatError):
    status_code = 409
    default_message = "Username already exists"


class PayloadTooLarge(ChatError):
    status_code = 413
    default_message = "Payload too large"


class StorageUnavailable(ChatError):
    """The database could not be reached. The only error a caller may retry."""

    status_code = 503
    default_message = "Storage unavailable"
