"""Per-connection event handling.

A ``ConnectionSession`` turns one client's inbound events into room
operations and returns the events that should go out as ``Outbound``
records. It never touches a socket; the Socket.IO layer does the writes.
"""
import functools
import uuid
from typing import Any, List, NamedTuple, Optional
from urllib.parse import quote

from tictactoe.models import FINISHED, SYMBOLS, TIE, now_ms
from tictactoe.services.games.errors import NotAMember, RoomError, ValidationError

DEFAULT_LIMITS = {
    'MAX_NAME_LENGTH': 20,
    'MAX_ROOM_ID_LENGTH': 10,
    'MAX_CHAT_LENGTH': 100,
    'DEFAULT_AVATAR_URL': 'https://cdn-icons-png.flaticon.com/512/149/149071.png',
    'PUBLIC_URL': 'http://localhost:3000',
}


class Outbound(NamedTuple):
    event: str
    payload: Any
    # None: reply to the originating connection only
    room: Optional[str] = None


def reports_errors(handler):
    """Turn RoomErrors raised by ``handler`` into a caller-only event."""
    @functools.wraps(handler)
    def wrapper(self, *args, **kwargs):
        if self.closed:
            return []
        try:
            return handler(self, *args, **kwargs)
        except RoomError as exc:
            return [Outbound(exc.event, exc.to_dict())]
    return wrapper


class ConnectionSession:

    def __init__(self, connection_id: str, registry, config=None):
        self.connection_id = connection_id
        self.registry = registry
        self.config = dict(DEFAULT_LIMITS)
        if config:
            self.config.update({k: config[k] for k in DEFAULT_LIMITS if k in config})
        self.room_id: Optional[str] = None
        self.closed = False

    @property
    def joined(self) -> bool:
        return self.room_id is not None

    def _limit(self, key):
        return int(self.config[key])

    @staticmethod
    def _payload(data) -> dict:
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError('Invalid request')
        return data

    def _member_room(self, data):
        room_id = self._payload(data).get('room') or self.room_id
        if not room_id:
            raise NotAMember()
        if not isinstance(room_id, str):
            raise ValidationError('Invalid room')
        room = self.registry.require(room_id)
        if room_id != self.room_id or room.find_player(self.connection_id) is None:
            raise NotAMember()
        return room

    def _invite_url(self, room_id, origin=None):
        base = (origin or self.config['PUBLIC_URL']).rstrip('/')
        return f"{base}/game.html?room={quote(room_id)}"

    @staticmethod
    def _departure_events(departure) -> List[Outbound]:
        if departure is None or departure.deleted:
            return []
        room_id = departure.room.id
        snapshot = departure.snapshot
        events = []
        if departure.abandoned:
            events.append(Outbound('playerLeft', {
                'player': departure.player.name,
                'gameState': snapshot['gameState'],
                'remainingPlayers': snapshot['players'],
            }, room_id))
        events.append(Outbound('roomUpdate', snapshot, room_id))
        return events

    # ---- inbound events ----

    @reports_errors
    def join_room(self, data, identity=None, origin=None) -> List[Outbound]:
        data = self._payload(data)
        room_id = data.get('room')
        name = data.get('name')
        avatar = data.get('avatar')
        symbol = data.get('symbol')
        if identity is not None:
            name = name or identity.display_name
            avatar = avatar or identity.avatar_url

        if isinstance(room_id, str):
            room_id = room_id.strip()
        if isinstance(name, str):
            name = name.strip()
        if not all(isinstance(v, str) and v for v in (room_id, name, symbol)):
            raise ValidationError('Missing required fields')
        if len(name) > self._limit('MAX_NAME_LENGTH') or len(room_id) > self._limit('MAX_ROOM_ID_LENGTH'):
            raise ValidationError('Name or room ID too long')
        if symbol not in SYMBOLS:
            raise ValidationError('Symbol must be X or O')
        is_private = data.get('isPrivate', False)
        if not isinstance(is_private, bool):
            raise ValidationError('isPrivate must be a boolean')

        result = self.registry.join_or_create(
            room_id,
            self.connection_id,
            {
                'name': name,
                'avatar': avatar if isinstance(avatar, str) and avatar else self.config['DEFAULT_AVATAR_URL'],
                'symbol': symbol,
            },
            is_private=is_private,
        )
        self.room_id = room_id

        events = []
        if result.departure is not None and result.departure.room.id != room_id:
            events.extend(self._departure_events(result.departure))
        events.append(Outbound('roomUpdate', result.snapshot, room_id))
        if result.started:
            events.append(Outbound('gameStart', {
                'players': result.snapshot['players'],
                'gameState': result.snapshot['gameState'],
            }, room_id))
        events.append(Outbound('joinSuccess', {
            'roomId': room_id,
            'player': result.player.to_dict(),
            'inviteUrl': self._invite_url(room_id, origin),
        }))
        return events

    @reports_errors
    def make_move(self, data) -> List[Outbound]:
        data = self._payload(data)
        room = self._member_room(data)
        with room.lock:
            player = room.make_move(self.connection_id, data.get('index'), data.get('symbol'))
            state = room.state.to_dict()

        if state['status'] == FINISHED:
            tie = state['winner'] == TIE
            return [Outbound('gameEnd', {
                'type': 'tie' if tie else 'win',
                'winner': None if tie else state['winner'],
                'winnerName': None if tie else player.name,
                'gameState': state,
            }, room.id)]
        return [Outbound('moveUpdate', {
            'index': data.get('index'),
            'symbol': player.symbol,
            'player': player.name,
            'gameState': state,
        }, room.id)]

    @reports_errors
    def reset_game(self, data=None) -> List[Outbound]:
        room = self._member_room(data)
        with room.lock:
            player = room.get_player(self.connection_id)
            room.reset()
            snapshot = room.snapshot()
        return [Outbound('gameReset', {
            'gameState': snapshot['gameState'],
            'players': snapshot['players'],
            'resetBy': player.name,
        }, room.id)]

    @reports_errors
    def player_ready(self, data=None) -> List[Outbound]:
        room = self._member_room(data)
        with room.lock:
            player = room.toggle_ready(self.connection_id)
            ready = player.ready
            players = room.players_dict()
        return [Outbound('playerReadyUpdate', {
            'playerId': self.connection_id,
            'ready': ready,
            'players': players,
        }, room.id)]

    @reports_errors
    def chat_message(self, data) -> List[Outbound]:
        data = self._payload(data)
        room = self._member_room(data)
        message = data.get('message')
        if not isinstance(message, str):
            return []
        text = message.strip()
        if not text or len(text) > self._limit('MAX_CHAT_LENGTH'):
            return []
        player = room.get_player(self.connection_id)
        return [Outbound('chatMessage', {
            'id': str(uuid.uuid4()),
            'player': player.name,
            'avatar': player.avatar,
            'message': text,
            'timestamp': now_ms(),
        }, room.id)]

    def disconnect(self) -> List[Outbound]:
        if self.closed:
            return []
        self.closed = True
        departure = self.registry.leave(self.connection_id)
        self.room_id = None
        return self._departure_events(departure)
