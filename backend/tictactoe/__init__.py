from flask import Flask, session
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_socketio import SocketIO
from config import Config

login_manager = LoginManager()
socketio = SocketIO(async_mode=None)
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    login_manager.init_app(flask_app)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    limiter.init_app(flask_app)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from tictactoe.services.games import RoomRegistry, TaskScheduler
    from tictactoe.services.games.scheduler import start_stale_room_sweeper
    from tictactoe.socketio_events import make_timeout_broadcaster, register_socketio_handlers

    # One registry per app; tests get a fresh one with every create_app()
    scheduler = TaskScheduler(spawn=socketio.start_background_task, sleep=socketio.sleep, log=flask_app.logger)
    registry = RoomRegistry(
        capacity=int(flask_app.config.get('MAX_PLAYERS_PER_ROOM', 2)),
        timeout_sec=int(flask_app.config.get('GAME_TIMEOUT_SEC', 300)),
        scheduler=scheduler,
        on_timeout=make_timeout_broadcaster(flask_app),
        log=flask_app.logger,
    )
    flask_app.extensions['room_scheduler'] = scheduler
    flask_app.extensions['room_registry'] = registry
    flask_app.extensions['connection_sessions'] = {}

    # Import and register blueprints here
    from tictactoe.main import main
    flask_app.register_blueprint(main)

    from tictactoe.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    register_socketio_handlers()
    start_stale_room_sweeper(flask_app, registry, scheduler)

    # Identity comes from the external provider and only lives in the session
    from tictactoe.models import User

    @login_manager.user_loader
    def load_user(user_id):
        user = User.from_dict(session.get('identity'))
        if user is None or user.id != user_id:
            return None
        return user

    return flask_app
