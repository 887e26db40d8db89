from flask import Blueprint, current_app, jsonify

rooms = Blueprint('rooms', __name__)


@rooms.route('', methods=['GET'])
def list_public_rooms():
    """
    Returns public rooms that still have a free seat.
    """
    registry = current_app.extensions['room_registry']
    return jsonify(registry.list_public()), 200
