import os
import sys
import pytest

# Ensure the backend root (containing the `tictactoe` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from tictactoe import create_app, socketio
from tictactoe.services.games import RoomRegistry, TimerHandle


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:3000']
    PUBLIC_URL = 'http://testserver'
    PORT = 3000
    MAX_PLAYERS_PER_ROOM = 2
    GAME_TIMEOUT_SEC = 60
    STALE_ROOM_SWEEP_INTERVAL_SEC = 1800
    STALE_ROOM_THRESHOLD_SEC = 1800
    MAX_NAME_LENGTH = 20
    MAX_ROOM_ID_LENGTH = 10
    MAX_CHAT_LENGTH = 100
    DEFAULT_AVATAR_URL = 'https://example.com/default.png'
    AVATAR_CDN_URL = 'https://cdn.discordapp.com'
    AUTH_RATE_LIMIT = '5 per minute'
    IDENTITY_PROVIDER = None


class ManualScheduler:
    """Collects timers instead of running them; tests fire them by hand."""

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback, *args):
        handle = TimerHandle(delay, callback, args)
        self.handles.append(handle)
        return handle

    def pending(self):
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire_all(self):
        fired = 0
        for handle in list(self.handles):
            if handle.run():
                fired += 1
        return fired


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def timeouts():
    return []


@pytest.fixture()
def registry(scheduler, clock, timeouts):
    return RoomRegistry(
        capacity=2,
        timeout_sec=60,
        scheduler=scheduler,
        on_timeout=lambda room, snapshot: timeouts.append((room.id, snapshot)),
        clock=clock,
    )


@pytest.fixture()
def flask_app(scheduler):
    application = create_app(TestConfig)
    # Timers fire only when a test asks for it
    registry = application.extensions['room_registry']
    registry.scheduler = scheduler
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass


@pytest.fixture()
def make_sio_client(flask_app):
    clients = []

    def _make():
        c = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(c)
        return c

    yield _make
    for c in clients:
        if c.is_connected():
            c.disconnect()
