import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Turn timer (seconds)
    TURN_SECONDS_DEFAULT = int(os.environ.get('TURN_SECONDS_DEFAULT', '20'))
    TURN_SECONDS_MIN = int(os.environ.get('TURN_SECONDS_MIN', '5'))
    TURN_SECONDS_MAX = int(os.environ.get('TURN_SECONDS_MAX', '120'))
    # Pause between revealing a pair and resolving it (ms). 0 resolves right away.
    SETTLE_DELAY_MS = int(os.environ.get('SETTLE_DELAY_MS', '900'))
    # How often the turn sweeper checks deadlines (ms)
    TURN_SWEEP_INTERVAL_MS = int(os.environ.get('TURN_SWEEP_INTERVAL_MS', '250'))
    MATCH_POINTS = int(os.environ.get('MATCH_POINTS', '2'))
    # Deck size bounds (pairs)
    MIN_PAIRS = int(os.environ.get('MIN_PAIRS', '2'))
    MAX_PAIRS = int(os.environ.get('MAX_PAIRS', '30'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '5'))
    # How long a minted, not yet joined room code stays reserved (ms)
    ROOM_CODE_TTL_MS = int(os.environ.get('ROOM_CODE_TTL_MS', '600000'))
    # Work factor for room PIN hashes
    BCRYPT_LOG_ROUNDS = int(os.environ.get('BCRYPT_LOG_ROUNDS', '12'))
