from dataclasses import dataclass, field
from typing import List, Optional
import random
import string


@dataclass
class Pair:
    a: str
    b: str


@dataclass
class MatchedPair:
    pair_id: str
    a: str
    b: str

    def to_dict(self):
        return {'pairId': self.pair_id, 'a': self.a, 'b': self.b}


@dataclass
class Card:
    id: str
    pair_id: str
    text: str
    side: str  # 'a' or 'b', orientation within the source pair
    is_face_up: bool = False
    is_matched: bool = False

    def to_dict(self):
        return {
            'id': self.id,
            'pairId': self.pair_id,
            'text': self.text,
            'isFaceUp': self.is_face_up,
            'isMatched': self.is_matched,
        }


@dataclass
class Player:
    id: str
    name: str
    score: int = 0
    attempts: int = 0
    stack: List[MatchedPair] = field(default_factory=list)

    def reset(self) -> None:
        self.score = 0
        self.attempts = 0
        self.stack = []

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'attempts': self.attempts,
            'stack': [s.to_dict() for s in self.stack],
        }


@dataclass
class Room:
    """Canonical state of one game session.

    ``turn_ends_at`` is an epoch timestamp in milliseconds. ``generation``
    changes whenever the board or the turn owner changes, so work scheduled
    against an older generation can tell it is stale.
    """

    room_id: str
    host_id: Optional[str] = None
    pin_hash: str = ''
    players: List[Player] = field(default_factory=list)
    cards: List[Card] = field(default_factory=list)
    turn_index: int = 0
    flipped: List[str] = field(default_factory=list)
    started: bool = False
    paused: bool = False
    finished: bool = False
    turn_seconds: int = 20
    turn_ends_at: Optional[int] = None
    paused_remaining_ms: Optional[int] = None
    source_pairs: List[Pair] = field(default_factory=list)
    generation: int = 0

    def player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def card(self, card_id: str) -> Optional[Card]:
        for c in self.cards:
            if c.id == card_id:
                return c
        return None

    @property
    def current_player(self) -> Optional[Player]:
        if 0 <= self.turn_index < len(self.players):
            return self.players[self.turn_index]
        return None

    def to_dict(self):
        """Full snapshot broadcast as ``room:update``."""
        return {
            'roomId': self.room_id,
            'hostId': self.host_id,
            'hasPin': bool(self.pin_hash),
            'players': [p.to_dict() for p in self.players],
            'cards': [c.to_dict() for c in self.cards],
            'turnIndex': self.turn_index,
            'flipped': list(self.flipped),
            'started': self.started,
            'paused': self.paused,
            'finished': self.finished,
            'turnSeconds': self.turn_seconds,
            'turnEndsAt': self.turn_ends_at,
        }


def generate_room_code(taken, length=5):
    """Generate a short room code not present in ``taken``."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code
