from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the matchroom game server!'})

@main.route('/health')
def health():
    registry = current_app.extensions['room_gateway'].registry
    with registry.lock:
        count = len(registry)
    return jsonify({'status': 'ok', 'rooms': count})
