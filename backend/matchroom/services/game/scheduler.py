import logging
import time
from typing import Callable


def now_ms() -> int:
    return int(time.time() * 1000)


class InlineDeferrer:
    """Runs deferred work immediately. Used in TESTING for determinism."""

    def defer(self, delay_sec: float, fn: Callable[[], None]) -> None:
        fn()


class SocketIODeferrer:
    """Runs deferred work on a Socket.IO background task after ``delay_sec``."""

    def __init__(self, socketio, logger=None):
        self.socketio = socketio
        self.logger = logger or logging.getLogger(__name__)

    def defer(self, delay_sec: float, fn: Callable[[], None]) -> None:
        def _runner():
            if delay_sec > 0:
                self.socketio.sleep(delay_sec)
            try:
                fn()
            except Exception:
                self.logger.exception('[deferred-error] deferred task failed')

        self.socketio.start_background_task(_runner)


def start_turn_sweeper(app, socketio, gateway) -> bool:
    """Start the background loop that enforces turn deadlines.

    - No-ops in TESTING mode unless ENABLE_BACKGROUND_IN_TESTS is set
    - Starts at most one loop per gateway
    - Each pass advances every room whose deadline has passed
    - The loop exits once ``gateway.sweeper_started`` is cleared
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_BACKGROUND_IN_TESTS'):
        return False
    if getattr(gateway, 'sweeper_started', False):
        return False
    gateway.sweeper_started = True

    interval = max(1, int(app.config.get('TURN_SWEEP_INTERVAL_MS', 250))) / 1000.0
    app.logger.info(f"[sweeper-start] interval={interval}s")

    def _worker():
        while gateway.sweeper_started:
            socketio.sleep(interval)
            try:
                gateway.sweep()
            except Exception:
                app.logger.exception('[sweeper-error] sweep pass failed')

    socketio.start_background_task(_worker)
    return True
