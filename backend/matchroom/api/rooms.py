from flask import Blueprint, jsonify, current_app


rooms = Blueprint('rooms', __name__)


def _gateway():
    return current_app.extensions['room_gateway']


@rooms.route('/create', methods=['POST'])
def create_room():
    """Mint an unused room code. The room itself exists once someone joins it."""
    return jsonify({
        'message': 'New room code minted!',
        'room_id': _gateway().create_room_code()
    }), 201


@rooms.route('/<string:room_id>/state', methods=['GET'])
def get_room_state(room_id):
    snapshot = _gateway().snapshot(room_id)
    if snapshot is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(snapshot)
