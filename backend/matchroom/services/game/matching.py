"""Card flips, pair resolution and round setup."""
import random
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from matchroom.models import MatchedPair, Pair, Room
from . import turns
from .deck import build_deck


@dataclass(frozen=True)
class Resolution:
    """A revealed pair waiting for its settle delay to run out.

    Captures the room generation at reveal time; ``resolve`` ignores it once
    the room has moved on.
    """
    room_id: str
    generation: int
    player_id: str
    card_ids: Tuple[str, str]
    is_match: bool
    a: str
    b: str

    def animate_payload(self):
        return {'cardIds': list(self.card_ids), 'playerId': self.player_id, 'a': self.a, 'b': self.b}


def start_round(room: Room, pairs: Sequence[Pair], now: int, rng: Optional[random.Random] = None) -> None:
    """Deal a fresh board from ``pairs`` and give the first player the turn."""
    room.source_pairs = list(pairs)
    room.cards = build_deck(room.source_pairs, rng)
    for p in room.players:
        p.reset()
    room.turn_index = 0
    room.flipped = []
    room.started = True
    room.paused = False
    room.finished = False
    room.generation += 1
    turns.stop_clock(room)
    turns.start_turn(room, now)


def can_flip(room: Room, player_id: str, card_id: str) -> bool:
    if not room.started or room.paused:
        return False
    current = room.current_player
    if current is None or current.id != player_id:
        return False
    if len(room.flipped) >= 2:
        return False
    card = room.card(card_id)
    return card is not None and not card.is_matched and not card.is_face_up


def flip(room: Room, player_id: str, card_id: str) -> Tuple[bool, Optional[Resolution]]:
    """Reveal a card for the current player.

    Returns ``(accepted, resolution)``. A rejected flip changes nothing. When
    the flip completes a pair, the attempt is counted and a ``Resolution`` is
    returned for the caller to apply after the settle delay.
    """
    if not can_flip(room, player_id, card_id):
        return False, None
    card = room.card(card_id)
    card.is_face_up = True
    room.flipped.append(card_id)
    if len(room.flipped) < 2:
        return True, None

    player = room.current_player
    player.attempts += 1
    first, second = room.card(room.flipped[0]), room.card(room.flipped[1])
    is_match = first.pair_id == second.pair_id
    if is_match:
        side_a, side_b = (first, second) if first.side == 'a' else (second, first)
        a, b = side_a.text, side_b.text
    else:
        a, b = first.text, second.text
    return True, Resolution(
        room_id=room.room_id,
        generation=room.generation,
        player_id=player.id,
        card_ids=(first.id, second.id),
        is_match=is_match,
        a=a,
        b=b,
    )


def is_stale(room: Optional[Room], resolution: Resolution) -> bool:
    if room is None or room.generation != resolution.generation:
        return True
    if list(resolution.card_ids) != room.flipped:
        return True
    return any(room.card(cid) is None for cid in resolution.card_ids)


def resolve(room: Optional[Room], resolution: Resolution, now: int, points: int = 2) -> bool:
    """Apply a settled pair: score a match or pass the turn on a miss.

    Returns False, touching nothing, when the resolution is stale.
    """
    if is_stale(room, resolution):
        return False
    if not resolution.is_match:
        turns.advance_turn(room, now)
        return True

    player = room.player(resolution.player_id)
    for cid in resolution.card_ids:
        card = room.card(cid)
        card.is_matched = True
        card.is_face_up = False
    room.flipped = []
    if player is not None:
        player.score += points
        player.stack.append(MatchedPair(pair_id=room.card(resolution.card_ids[0]).pair_id, a=resolution.a, b=resolution.b))

    if all(c.is_matched for c in room.cards):
        room.started = False
        room.paused = False
        room.finished = True
        turns.stop_clock(room)
        return True
    # Same player keeps the turn after a match
    turns.restart_clock(room, now)
    return True
