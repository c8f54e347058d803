from flask import current_app, request
from flask_socketio import emit
from matchroom import socketio
from typing import Any, Dict


class SocketIOEmitter:
    """Delivers gateway events through the Socket.IO server."""

    def __init__(self, socketio, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    def broadcast(self, room_id: str, event: str, payload: Dict[str, Any]) -> None:
        # Use socketio.emit since this may be called from a background task
        self.socketio.emit(event, payload, to=room_id, namespace=self.namespace)

    def send(self, sid: str, event: str, payload: Dict[str, Any]) -> None:
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def enter(self, sid: str, room_id: str) -> None:
        self.socketio.server.enter_room(sid, room_id, namespace=self.namespace)


def _gateway():
    return current_app.extensions['room_gateway']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    emit('connected', {'sid': _get_sid()})


def handle_disconnect(reason=None):
    _gateway().disconnect(_get_sid())


def handle_room_create(data=None):
    return {'roomId': _gateway().create_room_code()}


def handle_room_join(data=None):
    _gateway().join(_get_sid(), data)


def handle_board_join(data=None):
    return _gateway().watch(_get_sid(), data)


def handle_set_pin(data=None):
    _gateway().set_pin(_get_sid(), data)


def handle_set_timer(data=None):
    _gateway().set_timer(_get_sid(), data)


def handle_start(data=None):
    _gateway().start(_get_sid(), data)


def handle_new_round(data=None):
    _gateway().new_round(_get_sid(), data)


def handle_pause(data=None):
    _gateway().pause(_get_sid(), data)


def handle_resume(data=None):
    _gateway().resume(_get_sid(), data)


def handle_flip(data=None):
    _gateway().flip(_get_sid(), data)


def handle_error(exc):
    # A malformed event must not take the server down; log and move on
    current_app.logger.exception(f"[socket-error] sid={getattr(request, 'sid', None)} event={getattr(request, 'event', None)}")


_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'room:create': handle_room_create,
    'room:join': handle_room_join,
    'game:join': handle_board_join,
    'teacher:setPin': handle_set_pin,
    'teacher:setTimer': handle_set_timer,
    'game:start': handle_start,
    'game:newRound': handle_new_round,
    'game:pause': handle_pause,
    'game:resume': handle_resume,
    'game:flip': handle_flip,
}


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    for event, handler in _HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)
    socketio.on_error(namespace)(handle_error)
