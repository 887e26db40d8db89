from dataclasses import dataclass, field
from typing import List, Optional
import time

from flask_login import UserMixin

X = 'X'
O = 'O'
SYMBOLS = (X, O)
EMPTY = ''
TIE = 'tie'
BOARD_SIZE = 9

WAITING = 'waiting'
ACTIVE = 'active'
FINISHED = 'finished'


def now_ms() -> int:
    return int(time.time() * 1000)


def empty_board() -> List[str]:
    return [EMPTY] * BOARD_SIZE


@dataclass
class Player:
    id: str  # connection id
    name: str
    avatar: str
    symbol: str
    ready: bool = False
    joined_at: int = field(default_factory=now_ms)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'avatar': self.avatar,
            'symbol': self.symbol,
            'ready': self.ready,
            'joinedAt': self.joined_at,
        }


@dataclass
class GameState:
    board: List[str] = field(default_factory=empty_board)
    current_turn: str = X
    status: str = WAITING
    winner: Optional[str] = None
    move_count: int = 0

    def copy(self) -> 'GameState':
        return GameState(
            board=list(self.board),
            current_turn=self.current_turn,
            status=self.status,
            winner=self.winner,
            move_count=self.move_count,
        )

    def to_dict(self):
        return {
            'board': list(self.board),
            'currentTurn': self.current_turn,
            'status': self.status,
            'winner': self.winner,
            'moveCount': self.move_count,
        }


class User(UserMixin):
    """Identity handed to us by the external login provider.

    Lives only in the Flask session; nothing about it is stored server side.
    """

    def __init__(self, external_id, display_name, avatar_url=None):
        self.id = str(external_id)
        self.display_name = display_name
        self.avatar_url = avatar_url

    @classmethod
    def from_dict(cls, data):
        if not data or not data.get('externalId'):
            return None
        return cls(data['externalId'], data.get('displayName'), data.get('avatarUrl'))

    def to_dict(self):
        return {
            'externalId': self.id,
            'displayName': self.display_name,
            'avatarUrl': self.avatar_url,
        }
