from typing import Iterable

from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit, join_room, leave_room

from tictactoe import socketio
from tictactoe.session import ConnectionSession, Outbound

NAMESPACE = '/'


def room_channel(room_id: str) -> str:
    return f"room:{room_id}"


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _sessions():
    return current_app.extensions['connection_sessions']


def _session() -> ConnectionSession:
    sid = _get_sid()
    sessions = _sessions()
    session = sessions.get(sid)
    if session is None:
        session = ConnectionSession(sid, current_app.extensions['room_registry'], current_app.config)
        sessions[sid] = session
    return session


def dispatch(outbound: Iterable[Outbound]) -> None:
    """Write session output: caller-only replies, then room broadcasts."""
    for item in outbound:
        if item.room is None:
            emit(item.event, item.payload)
        else:
            socketio.emit(item.event, item.payload, to=room_channel(item.room), namespace=NAMESPACE)


def _sync_channel(before, after) -> None:
    if before == after:
        return
    if before:
        leave_room(room_channel(before))
    if after:
        join_room(room_channel(after))


def _handle(event: str, failure_message: str, action) -> None:
    session = _session()
    before = session.room_id
    try:
        outbound = action(session)
    except Exception:
        current_app.logger.exception(f"[{event}-error] sid={session.connection_id}")
        emit('error', {'message': failure_message})
        return
    # Socket groups first, so the broadcasts below reach the new member and
    # skip the one that just left
    _sync_channel(before, session.room_id)
    dispatch(outbound)


def handle_connect(auth=None):
    _session()
    current_app.logger.info(f"[connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    sid = _get_sid()
    current_app.logger.info(f"[disconnect] sid={sid} reason={reason}")
    session = _sessions().pop(sid, None)
    if session is None:
        return
    try:
        outbound = session.disconnect()
    except Exception:
        current_app.logger.exception(f"[disconnect-error] sid={sid}")
        return
    dispatch(item for item in outbound if item.room is not None)


def handle_join_room(data):
    identity = current_user if current_user and current_user.is_authenticated else None
    origin = request.headers.get('Origin')
    _handle('joinRoom', 'Failed to join room',
            lambda s: s.join_room(data, identity=identity, origin=origin))


def handle_make_move(data):
    _handle('makeMove', 'Failed to make move', lambda s: s.make_move(data))


def handle_reset_game(data=None):
    _handle('resetGame', 'Failed to reset game', lambda s: s.reset_game(data))


def handle_player_ready(data=None):
    _handle('playerReady', 'Failed to update ready state', lambda s: s.player_ready(data))


def handle_chat_message(data):
    _handle('chatMessage', 'Failed to send message', lambda s: s.chat_message(data))


def make_timeout_broadcaster(app):
    """Build the registry's timeout hook; it runs on a timer task, not a request."""
    def _broadcast(room, snapshot):
        app.logger.info(f"[timeout-broadcast] room={room.id}")
        socketio.emit('gameTimeout', {
            'message': 'Game timed out due to inactivity',
            'roomId': snapshot['roomId'],
            'players': snapshot['players'],
            'gameState': snapshot['gameState'],
        }, to=room_channel(room.id), namespace=NAMESPACE)
    return _broadcast


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('joinRoom', handle_join_room, namespace=namespace)
    socketio.on_event('makeMove', handle_make_move, namespace=namespace)
    socketio.on_event('resetGame', handle_reset_game, namespace=namespace)
    socketio.on_event('playerReady', handle_player_ready, namespace=namespace)
    socketio.on_event('chatMessage', handle_chat_message, namespace=namespace)
