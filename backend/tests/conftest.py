import os
import random
import sys
import pytest

# Ensure the backend root (containing the `matchroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from flask import Flask
from flask_bcrypt import Bcrypt

from matchroom import create_app, socketio
from matchroom.services.game.gateway import GameSettings, RoomGateway
from matchroom.services.game.registry import RoomRegistry


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    BCRYPT_LOG_ROUNDS = 4
    SETTLE_DELAY_MS = 0
    TURN_SECONDS_DEFAULT = 20
    TURN_SECONDS_MIN = 5
    TURN_SECONDS_MAX = 120
    MATCH_POINTS = 2
    MIN_PAIRS = 2
    MAX_PAIRS = 30
    ROOM_CODE_LENGTH = 5
    SOCKETIO_NAMESPACE = '/'


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class RecordingEmitter:
    def __init__(self):
        self.events = []
        self.memberships = set()

    def broadcast(self, room_id, event, payload):
        self.events.append(('room', room_id, event, payload))

    def send(self, sid, event, payload):
        self.events.append(('sid', sid, event, payload))

    def enter(self, sid, room_id):
        self.memberships.add((sid, room_id))

    def named(self, event):
        return [e[3] for e in self.events if e[2] == event]

    def last(self, event):
        found = self.named(event)
        return found[-1] if found else None


class ManualDeferrer:
    """Holds deferred callbacks until a test fires them."""

    def __init__(self):
        self.pending = []

    def defer(self, delay_sec, fn):
        self.pending.append((delay_sec, fn))

    def run_all(self):
        pending, self.pending = self.pending, []
        return [fn() for _, fn in pending]


@pytest.fixture()
def fast_bcrypt():
    app = Flask('bcrypt-tests')
    app.config['BCRYPT_LOG_ROUNDS'] = 4
    return Bcrypt(app)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def deferrer():
    return ManualDeferrer()


@pytest.fixture()
def gateway(emitter, deferrer, clock, fast_bcrypt):
    return RoomGateway(
        RoomRegistry(),
        emitter,
        fast_bcrypt,
        settings=GameSettings(settle_delay_ms=900),
        deferrer=deferrer,
        clock=clock,
        rng=random.Random(7),
    )


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass


class BackgroundConfig(TestConfig):
    ENABLE_BACKGROUND_IN_TESTS = True
    TURN_SECONDS_DEFAULT = 1
    SETTLE_DELAY_MS = 100
    TURN_SWEEP_INTERVAL_MS = 50


@pytest.fixture()
def background_app():
    application = create_app(BackgroundConfig)
    gateway = application.extensions['room_gateway']
    created = []

    def _make():
        test_client = socketio.test_client(application, flask_test_client=application.test_client())
        created.append(test_client)
        return test_client

    with application.app_context():
        yield application, _make
    gateway.sweeper_started = False
    for test_client in created:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
