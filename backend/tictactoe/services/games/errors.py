"""Error kinds raised by the room services.

Every error is recoverable: the session turns it into an event sent back to
the originating connection only, and shared state is left untouched.
"""


class RoomError(Exception):
    """Base class. ``event`` is the outbound event name used to report it."""

    event = 'error'
    default_message = 'Request failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'message': self.message, 'code': type(self).__name__}


class ValidationError(RoomError):
    default_message = 'Invalid request'


class RoomFull(RoomError):
    event = 'roomFull'
    default_message = 'Room is full'


class SymbolTaken(RoomError):
    event = 'symbolTaken'
    default_message = 'Symbol already taken'


class RoomNotFound(RoomError):
    default_message = 'Room not found'


class NotAMember(RoomError):
    default_message = 'Player not in room'


class MoveError(RoomError):
    default_message = 'Invalid move'


class InvalidState(MoveError):
    default_message = 'Game is not active'


class WrongTurn(MoveError):
    default_message = 'Not your turn'


class OutOfRange(MoveError):
    default_message = 'Cell index out of range'


class CellOccupied(MoveError):
    default_message = 'Cell already occupied'
