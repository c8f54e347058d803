import random
import uuid
from typing import List, Optional, Sequence

from matchroom.models import Card, Pair


def build_deck(pairs: Sequence[Pair], rng: Optional[random.Random] = None) -> List[Card]:
    """Build a shuffled, face-down board with two cards per pair.

    Pair ids carry a per-build token so cards from two successive rounds never
    share an identity, even when the word list is the same.
    """
    if len(pairs) < 2:
        raise ValueError('at least 2 pairs are required to build a deck')
    build = uuid.uuid4().hex[:8]
    cards = []
    for idx, pair in enumerate(pairs):
        pair_id = f"pair_{idx}_{build}"
        cards.append(Card(id=f"c_{pair_id}_a", pair_id=pair_id, text=pair.a, side='a'))
        cards.append(Card(id=f"c_{pair_id}_b", pair_id=pair_id, text=pair.b, side='b'))
    # random.shuffle is an in-place Fisher-Yates
    (rng or random).shuffle(cards)
    return cards
