"""Error types raised by the workflow and ledger, mapped to HTTP statuses in app.py."""


class ClubsError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class BadRequest(ClubsError):
    status_code = 400


class Conflict(ClubsError):
    """Duplicate join or registration."""
    status_code = 400


class InvalidToken(ClubsError):
    status_code = 400


class AuthenticationRequired(ClubsError):
    status_code = 401


class AuthorizationDenied(ClubsError):
    status_code = 403


class NotFound(ClubsError):
    status_code = 404


class ExternalServiceError(ClubsError):
    status_code = 502
