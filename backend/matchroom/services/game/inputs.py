"""Normalization of inbound client values.

Every room reference goes through ``sanitize_room_id`` before it touches the
registry, so ``abc12``, `` ABC12 `` and ``ABC12`` all name the same room.
"""
import math
import re
from typing import Any, List

from matchroom.models import Pair

ROOM_ID_MAX_LEN = 18
NAME_MAX_LEN = 18
PIN_MAX_LEN = 12
DEFAULT_NAME = 'Player'

_ROOM_ID_STRIP = re.compile(r'[^A-Z0-9_-]')


def _text(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()


def sanitize_room_id(value: Any) -> str:
    return _ROOM_ID_STRIP.sub('', _text(value).upper())[:ROOM_ID_MAX_LEN]


def sanitize_name(value: Any) -> str:
    return _text(value)[:NAME_MAX_LEN] or DEFAULT_NAME


def sanitize_pin(value: Any) -> str:
    return _text(value)[:PIN_MAX_LEN]


def unique_name(name: str, taken) -> str:
    """Suffix ``name`` with `` 2``, `` 3``... until it is not in ``taken``."""
    if name not in taken:
        return name
    n = 2
    while f"{name} {n}" in taken:
        n += 1
    return f"{name} {n}"


def clamp_seconds(value: Any, lo: int, hi: int, default: int) -> int:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(seconds):
        return default
    return max(lo, min(hi, int(math.floor(seconds))))


def parse_pairs_text(text: str) -> List[dict]:
    """Parse ``termA, termB`` lines into raw pair dicts.

    Blank lines and lines without a comma are skipped; anything after a
    second comma is ignored.
    """
    out = []
    for line in (text or '').splitlines():
        parts = line.strip().split(',')
        if len(parts) < 2:
            continue
        out.append({'a': parts[0], 'b': parts[1]})
    return out


def clean_pairs(raw: Any, max_pairs: int = 30) -> List[Pair]:
    """Turn a client-supplied pair list into distinct, trimmed ``Pair`` values.

    Accepts a list of ``{a, b}`` mappings or a text block of ``termA, termB``
    lines. Malformed entries are dropped, never the whole request.
    """
    if isinstance(raw, str):
        raw = parse_pairs_text(raw)
    if not isinstance(raw, (list, tuple)):
        return []
    pairs = []
    seen = set()
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        a = _text(entry.get('a'))
        b = _text(entry.get('b'))
        if not a or not b:
            continue
        key = (a.casefold(), b.casefold())
        if key in seen:
            continue
        seen.add(key)
        pairs.append(Pair(a=a, b=b))
        if len(pairs) >= max_pairs:
            break
    return pairs
