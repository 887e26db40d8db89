import logging
import threading
import time
from typing import Callable, Dict, List, NamedTuple, Optional

from tictactoe.models import Player
from .errors import RoomNotFound
from .room import Room

logger = logging.getLogger(__name__)


class Departure(NamedTuple):
    """What happened to a room when a connection left it."""
    room: Room
    player: Player
    abandoned: bool
    deleted: bool
    snapshot: dict


class JoinResult(NamedTuple):
    room: Room
    player: Player
    started: bool
    snapshot: dict
    departure: Optional[Departure]


class RoomRegistry:
    """In-memory rooms keyed by id, plus which room each connection is in.

    Lock order is registry then room. Membership only changes through the
    registry, so checks made under the registry lock stay valid until the
    matching mutation.
    """

    def __init__(self, capacity: int = 2, timeout_sec: float = 0, scheduler=None,
                 on_timeout: Optional[Callable] = None, clock: Callable[[], float] = time.time,
                 log=None):
        self.capacity = capacity
        self.timeout_sec = timeout_sec
        self.scheduler = scheduler
        self.on_timeout = on_timeout
        self.clock = clock
        self.logger = log or logger
        self._rooms: Dict[str, Room] = {}
        self._memberships: Dict[str, str] = {}
        self._lock = threading.RLock()

    def __len__(self):
        with self._lock:
            return len(self._rooms)

    def __contains__(self, room_id):
        with self._lock:
            return room_id in self._rooms

    def get(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(room_id)

    def require(self, room_id: str) -> Room:
        room = self.get(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    def room_of(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._memberships.get(connection_id)

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())

    # ---- membership ----

    def join_or_create(self, room_id: str, connection_id: str, player_info: dict,
                       is_private: bool = False) -> JoinResult:
        """Put ``connection_id`` into ``room_id``, creating the room if needed.

        ``player_info`` carries ``name``, ``avatar`` and ``symbol``. A previous
        membership is dropped first and reported in the result; if the join
        is refused (RoomFull / SymbolTaken) nothing changes at all.
        """
        symbol = player_info['symbol']
        with self._lock:
            room = self._rooms.get(room_id)
            if room is not None:
                room.check_can_join(symbol, ignore_id=connection_id)

            departure = self._leave_locked(connection_id)

            room = self._rooms.get(room_id)
            if room is None:
                room = self._create_room(room_id, is_private)
            player = Player(
                id=connection_id,
                name=player_info['name'],
                avatar=player_info['avatar'],
                symbol=symbol,
            )
            started = room.add_player(player)
            self._memberships[connection_id] = room_id
            snapshot = room.snapshot()

        self.logger.info(
            f"[join] room={room_id} conn={connection_id} symbol={symbol} players={len(snapshot['players'])} started={started}"
        )
        return JoinResult(room, player, started, snapshot, departure)

    def leave(self, connection_id: str) -> Optional[Departure]:
        with self._lock:
            return self._leave_locked(connection_id)

    def _leave_locked(self, connection_id: str) -> Optional[Departure]:
        room_id = self._memberships.pop(connection_id, None)
        if room_id is None:
            return None
        room = self._rooms.get(room_id)
        if room is None:
            return None
        player, abandoned = room.remove_player(connection_id)
        if player is None:
            return None
        deleted = room.is_empty()
        if deleted:
            room.close()
            del self._rooms[room_id]
        snapshot = room.snapshot()
        self.logger.info(
            f"[leave] room={room_id} conn={connection_id} abandoned={abandoned} deleted={deleted}"
        )
        return Departure(room, player, abandoned, deleted, snapshot)

    def _create_room(self, room_id: str, is_private: bool) -> Room:
        room = Room(
            room_id,
            private=is_private,
            capacity=self.capacity,
            created=self.clock(),
            scheduler=self.scheduler,
            timeout_sec=self.timeout_sec,
            on_timeout=self._room_timed_out,
            log=self.logger,
        )
        self._rooms[room_id] = room
        self.logger.info(f"[room-create] room={room_id} private={room.private}")
        return room

    def _room_timed_out(self, room: Room, snapshot: dict) -> None:
        if self.on_timeout is not None:
            self.on_timeout(room, snapshot)

    # ---- queries & housekeeping ----

    def list_public(self) -> List[dict]:
        return [
            room.summary()
            for room in self.rooms()
            if not room.private and not room.is_full()
        ]

    def sweep_stale(self, now: Optional[float] = None, threshold_sec: float = 1800) -> List[str]:
        """Delete empty rooms created more than ``threshold_sec`` ago."""
        now = self.clock() if now is None else now
        removed = []
        with self._lock:
            for room_id, room in list(self._rooms.items()):
                if room.is_empty() and now - room.created > threshold_sec:
                    room.close()
                    del self._rooms[room_id]
                    removed.append(room_id)
        return removed
