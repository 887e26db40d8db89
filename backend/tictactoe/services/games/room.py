import logging
import threading
import time
from typing import Callable, List, Optional, Tuple

from tictactoe.models import ACTIVE, FINISHED, WAITING, X, GameState, Player
from .engine import apply_move
from .errors import NotAMember, RoomFull, SymbolTaken, WrongTurn

logger = logging.getLogger(__name__)


class Room:
    """One match: its members, board and inactivity timer.

    All state changes go through the room lock. Callers never do I/O while
    holding it; they take a ``snapshot()`` and broadcast that afterwards.
    """

    def __init__(self, room_id: str, private: bool = False, capacity: int = 2,
                 created: Optional[float] = None, scheduler=None, timeout_sec: float = 0,
                 on_timeout: Optional[Callable] = None, log=None):
        self.id = room_id
        self.private = bool(private)
        self.capacity = capacity
        self.created = created if created is not None else time.time()
        self.players: List[Player] = []
        self.state = GameState()
        self.scheduler = scheduler
        self.timeout_sec = timeout_sec
        self.on_timeout = on_timeout
        self.logger = log or logger
        self._timer = None
        self._timer_generation = 0
        self._lock = threading.RLock()

    @property
    def lock(self):
        return self._lock

    @property
    def timer(self):
        return self._timer

    def __len__(self):
        return len(self.players)

    def is_empty(self) -> bool:
        with self._lock:
            return not self.players

    def is_full(self) -> bool:
        with self._lock:
            return len(self.players) >= self.capacity

    def find_player(self, connection_id: str) -> Optional[Player]:
        with self._lock:
            for p in self.players:
                if p.id == connection_id:
                    return p
        return None

    def get_player(self, connection_id: str) -> Player:
        player = self.find_player(connection_id)
        if player is None:
            raise NotAMember()
        return player

    # ---- membership ----

    def check_can_join(self, symbol: str, ignore_id: Optional[str] = None) -> None:
        """Raise RoomFull or SymbolTaken if a player with ``symbol`` can't join.

        ``ignore_id`` leaves one current member out of the check, for a
        connection that is about to leave and rejoin.
        """
        with self._lock:
            others = [p for p in self.players if p.id != ignore_id]
            if len(others) >= self.capacity:
                raise RoomFull()
            if any(p.symbol == symbol for p in others):
                raise SymbolTaken()

    def add_player(self, player: Player) -> bool:
        """Add ``player``; returns True when this join started the game."""
        with self._lock:
            self.check_can_join(player.symbol)
            self.players.append(player)
            if len(self.players) == self.capacity:
                # New game; a board left over from an abandoned game is dropped
                self.state = GameState(status=ACTIVE, current_turn=X)
                self._arm_timeout()
                return True
            return False

    def remove_player(self, connection_id: str) -> Tuple[Optional[Player], bool]:
        """Remove a member. Returns ``(player, abandoned)``.

        Leaving an active game ends it with no winner.
        """
        with self._lock:
            player = self.find_player(connection_id)
            if player is None:
                return None, False
            self.players = [p for p in self.players if p.id != connection_id]
            abandoned = self.state.status == ACTIVE
            if abandoned:
                self.state.status = FINISHED
                self.state.winner = None
            if abandoned or not self.players:
                self._cancel_timeout()
            return player, abandoned

    # ---- game actions ----

    def make_move(self, connection_id: str, index, symbol: Optional[str] = None) -> Player:
        with self._lock:
            player = self.get_player(connection_id)
            if symbol is not None and symbol != player.symbol:
                raise WrongTurn()
            self.state = apply_move(self.state, index, player.symbol)
            if self.state.status == FINISHED:
                self._cancel_timeout()
            return player

    def reset(self) -> None:
        with self._lock:
            self._cancel_timeout()
            self.state = GameState(status=ACTIVE if len(self.players) == self.capacity else WAITING)
            for p in self.players:
                p.ready = False

    def toggle_ready(self, connection_id: str) -> Player:
        with self._lock:
            player = self.get_player(connection_id)
            player.ready = not player.ready
            return player

    def close(self) -> None:
        """Release the timer; called when the registry drops the room."""
        with self._lock:
            self._cancel_timeout()

    # ---- inactivity timer ----

    def _arm_timeout(self) -> None:
        self._cancel_timeout()
        if self.scheduler is None or not self.timeout_sec:
            return
        self._timer_generation += 1
        self._timer = self.scheduler.call_later(self.timeout_sec, self._timeout_fired, self._timer_generation)
        self.logger.info(f"[timeout-arm] room={self.id} after={self.timeout_sec}s")

    def _cancel_timeout(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _timeout_fired(self, generation: int) -> None:
        with self._lock:
            # A handle replaced or cancelled after it started running is stale
            if self._timer is None or generation != self._timer_generation:
                return
            if self.state.status == FINISHED:
                self._timer = None
                return
            self._timer = None
            self.logger.info(f"[timeout-fire] room={self.id} moves={self.state.move_count}")
            # The timed-out game is discarded; same players, fresh board
            self.state = GameState(status=WAITING)
            for p in self.players:
                p.ready = False
            snapshot = self.snapshot()
        if self.on_timeout is not None:
            self.on_timeout(self, snapshot)

    # ---- serialization ----

    def players_dict(self):
        with self._lock:
            return [p.to_dict() for p in self.players]

    def snapshot(self):
        with self._lock:
            return {
                'roomId': self.id,
                'players': [p.to_dict() for p in self.players],
                'gameState': self.state.to_dict(),
            }

    def summary(self):
        with self._lock:
            return {
                'id': self.id,
                'playerCount': len(self.players),
                'maxPlayers': self.capacity,
                'created': int(self.created * 1000),
            }
