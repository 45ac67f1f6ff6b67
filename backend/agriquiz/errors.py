"""Quiz error taxonomy.

Every failure is local to one request: handlers catch ``QuizError`` and
report it to the requesting connection only.
"""


class QuizError(Exception):
    """Base class for recoverable quiz errors."""
    code = 'error'

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class RoomNotFound(QuizError):
    code = 'not_found'

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class DataUnavailable(QuizError):
    code = 'data_unavailable'


class InvalidSettings(QuizError):
    code = 'invalid_settings'


class InvalidRequest(QuizError):
    code = 'invalid_request'


class InvalidState(QuizError):
    code = 'invalid_state'


class InvalidSelection(QuizError):
    """Over-limit, duplicate or unknown country pick. Never surfaced to clients."""
    code = 'invalid_selection'
