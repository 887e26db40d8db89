"""Game domain services: rules, rooms and timers.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics.
"""

from .registry import Departure, JoinResult, RoomRegistry  # noqa: F401
from .room import Room  # noqa: F401
from .scheduler import TaskScheduler, TimerHandle  # noqa: F401
