"""Errors raised by the game core.

Each carries the HTTP status the API layer answers with, so routes never
need to translate them by hand.
"""


class GameError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class NotFound(GameError):
    """Unknown session, player or question."""
    status_code = 404


class Unauthorised(GameError):
    """Caller does not own the quiz behind the session."""
    status_code = 403


class InvalidState(GameError):
    """Operation not permitted from the session's current state."""
    status_code = 400


class InvalidSubmission(GameError):
    """Malformed or out-of-window submission or command payload."""
    status_code = 400
