"""Turn ownership and the per-turn countdown.

All functions take ``now`` as epoch milliseconds so callers (and tests)
control the clock. They mutate the room in place and report whether anything
changed; broadcasting is left to the caller.
"""
from enum import Enum
from typing import Optional

from matchroom.models import Room

# A resumed turn always gets at least this much time back
MIN_RESUME_MS = 1000


class TurnPhase(Enum):
    LOBBY = 'lobby'
    IN_TURN = 'in_turn'
    PAUSED = 'paused'


def phase(room: Room) -> TurnPhase:
    if not room.started:
        return TurnPhase.LOBBY
    if room.paused:
        return TurnPhase.PAUSED
    return TurnPhase.IN_TURN


def start_turn(room: Room, now: int) -> bool:
    """Arm the current turn's deadline. No-op unless a turn can be live."""
    if not room.started or room.paused or not room.players:
        return False
    room.turn_ends_at = now + room.turn_seconds * 1000
    return True


def restart_clock(room: Room, now: int) -> bool:
    """Give the current turn its full duration, banking it if paused."""
    if room.paused:
        room.paused_remaining_ms = room.turn_seconds * 1000
        return False
    return start_turn(room, now)


def stop_clock(room: Room) -> None:
    room.turn_ends_at = None
    room.paused_remaining_ms = None


def flip_back(room: Room) -> None:
    """Turn every buffered, unmatched card face-down and empty the buffer."""
    for card_id in room.flipped:
        card = room.card(card_id)
        if card and not card.is_matched:
            card.is_face_up = False
    room.flipped = []


def advance_turn(room: Room, now: int) -> bool:
    """Pass the turn to the next player in join order and restart the clock."""
    if not room.started or not room.players:
        return False
    flip_back(room)
    room.generation += 1
    room.turn_index = (room.turn_index + 1) % len(room.players)
    restart_clock(room, now)
    return True


def turn_expired(room: Room, now: int) -> bool:
    """True when the sweep should force this room's turn forward.

    A room with two cards revealed is waiting on its settle resolution, which
    moves the turn itself.
    """
    if phase(room) is not TurnPhase.IN_TURN or not room.players:
        return False
    if room.turn_ends_at is None or now < room.turn_ends_at:
        return False
    return len(room.flipped) < 2


def set_turn_seconds(room: Room, seconds: int, now: int) -> bool:
    """Change the turn length; a live turn restarts with the new duration."""
    room.turn_seconds = seconds
    return restart_clock(room, now)


def pause(room: Room, now: int) -> bool:
    if phase(room) is not TurnPhase.IN_TURN:
        return False
    remaining: Optional[int] = None
    if room.turn_ends_at is not None:
        remaining = max(0, room.turn_ends_at - now)
    room.paused = True
    room.turn_ends_at = None
    room.paused_remaining_ms = remaining
    return True


def resume(room: Room, now: int) -> bool:
    if phase(room) is not TurnPhase.PAUSED:
        return False
    remaining = room.paused_remaining_ms
    room.paused = False
    room.paused_remaining_ms = None
    if not room.players:
        return True
    if remaining is None:
        start_turn(room, now)
    else:
        room.turn_ends_at = now + max(MIN_RESUME_MS, remaining)
    return True


def remove_player(room: Room, player_id: str, now: int) -> bool:
    """Drop a player while keeping ``turn_index`` pointed at a valid owner.

    Players ahead of the current one shift the index down so the same player
    keeps the turn. When the current player leaves, their revealed cards go
    back down and the turn passes to whoever now holds that position.
    """
    idx = next((i for i, p in enumerate(room.players) if p.id == player_id), None)
    if idx is None:
        return False
    was_current = idx == room.turn_index
    room.players.pop(idx)
    if idx < room.turn_index:
        room.turn_index -= 1
    if room.turn_index >= len(room.players):
        room.turn_index = 0
    if not room.players:
        stop_clock(room)
        return True
    if was_current and room.started:
        flip_back(room)
        room.generation += 1
        restart_clock(room, now)
    return True
