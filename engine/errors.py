"""Errors raised by draft engine operations.

Each error carries the HTTP status the API layer answers with and a
human readable ``reason`` that the bot echoes back to the user.
"""


class DraftError(Exception):
    status_code = 500

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class BadRequest(DraftError):
    status_code = 400


class Forbidden(DraftError):
    status_code = 403


class NotFound(DraftError):
    status_code = 404


class Conflict(DraftError):
    status_code = 409
