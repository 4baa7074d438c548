"""Domain errors raised by the lending services.

Each error carries the HTTP status it maps to; the app-level handlers in
``main.py`` render them into the ``{"error": ...}`` envelope.
"""


class LibraryError(Exception):
    status_code = 500

    def __init__(self, message: str = "Unexpected error", details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(LibraryError):
    status_code = 404

    def __init__(self, message: str = "Not found", details=None):
        super().__init__(message, details)


class ConflictError(LibraryError):
    status_code = 409


class ForbiddenError(LibraryError):
    status_code = 403

    def __init__(self, message: str = "Forbidden", details=None):
        super().__init__(message, details)


class InvalidOperationError(LibraryError):
    status_code = 400


class AlreadyReturnedError(LibraryError):
    status_code = 400

    def __init__(self, message: str = "Already returned", details=None):
        super().__init__(message, details)


class InvalidIdError(LibraryError):
    status_code = 400
