import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from matchroom.models import Player, Room, generate_room_code
from . import matching, turns
from .inputs import clamp_seconds, clean_pairs, sanitize_name, sanitize_pin, sanitize_room_id, unique_name
from .matching import Resolution
from .registry import RoomRegistry
from .scheduler import InlineDeferrer, now_ms


class RoomError(RuntimeError):
    """Base class for failures reported back to a single connection."""


class WrongPin(RoomError):
    """Raised when a joiner's PIN does not match the room's."""

    def __init__(self, message='Wrong room password / PIN.'):
        super().__init__(message)


@dataclass
class GameSettings:
    turn_seconds_default: int = 20
    turn_seconds_min: int = 5
    turn_seconds_max: int = 120
    settle_delay_ms: int = 900
    match_points: int = 2
    min_pairs: int = 2
    max_pairs: int = 30
    room_code_length: int = 5
    room_code_ttl_ms: int = 600_000

    @classmethod
    def from_config(cls, cfg) -> 'GameSettings':
        return cls(
            turn_seconds_default=int(cfg.get('TURN_SECONDS_DEFAULT', 20)),
            turn_seconds_min=int(cfg.get('TURN_SECONDS_MIN', 5)),
            turn_seconds_max=int(cfg.get('TURN_SECONDS_MAX', 120)),
            settle_delay_ms=int(cfg.get('SETTLE_DELAY_MS', 900)),
            match_points=int(cfg.get('MATCH_POINTS', 2)),
            min_pairs=int(cfg.get('MIN_PAIRS', 2)),
            max_pairs=int(cfg.get('MAX_PAIRS', 30)),
            room_code_length=int(cfg.get('ROOM_CODE_LENGTH', 5)),
            room_code_ttl_ms=int(cfg.get('ROOM_CODE_TTL_MS', 600_000)),
        )


def _payload(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


class RoomGateway:
    """Authorizes and routes client intents, then broadcasts room snapshots.

    ``emitter`` delivers events (``broadcast``, ``send``, ``enter``),
    ``deferrer`` runs settle-delay work later and ``bcrypt`` hashes room PINs.
    Every public method takes the caller's connection id first and holds the
    registry lock while it touches room state. bcrypt work on PINs runs with
    the lock released so other rooms keep playing.
    """

    def __init__(self, registry: RoomRegistry, emitter, bcrypt, settings: Optional[GameSettings] = None,
                 deferrer=None, clock: Callable[[], int] = now_ms, logger=None,
                 rng: Optional[random.Random] = None):
        self.registry = registry
        self.emitter = emitter
        self.bcrypt = bcrypt
        self.settings = settings or GameSettings()
        self.deferrer = deferrer or InlineDeferrer()
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.rng = rng
        self.sweeper_started = False
        self._reserved_codes: Dict[str, int] = {}

    # ---- delivery helpers ----

    def _broadcast(self, room: Room, deadline_before: Optional[int] = None) -> None:
        """Send the full snapshot, preceded by a timer update when a live
        deadline differs from ``deadline_before``."""
        if room.turn_ends_at is not None and room.turn_ends_at != deadline_before:
            self.emitter.broadcast(room.room_id, 'timer:update',
                                   {'turnEndsAt': room.turn_ends_at, 'turnSeconds': room.turn_seconds})
        self.emitter.broadcast(room.room_id, 'room:update', room.to_dict())

    def _hash_pin(self, pin: str) -> str:
        if not pin:
            return ''
        return self.bcrypt.generate_password_hash(pin).decode('utf-8')

    def _pin_matches(self, pin_hash: str, pin: str) -> bool:
        if not pin_hash:
            return True
        return bool(pin) and self.bcrypt.check_password_hash(pin_hash, pin)

    def _admit(self, room: Room, sid: str, pin_ok: bool) -> None:
        if room.player(sid) is not None or pin_ok:
            return
        raise WrongPin()

    def _host_room(self, sid: str, data: Dict[str, Any], action: str) -> Optional[Room]:
        rid = sanitize_room_id(data.get('roomId'))
        room = self.registry.get(rid) if rid else None
        if room is None:
            self.logger.debug(f"[{action}-ignored] room={rid!r} missing sid={sid}")
            return None
        if room.host_id != sid:
            self.logger.debug(f"[{action}-ignored] room={rid} sid={sid} is not host")
            return None
        return room

    # ---- room membership ----

    def create_room_code(self) -> str:
        """Mint a code that is neither live nor handed out in the last TTL window."""
        with self.registry.lock:
            now = self.clock()
            self._reserved_codes = {code: expires for code, expires in self._reserved_codes.items()
                                    if expires > now and code not in self.registry}
            taken = set(self._reserved_codes) | {room.room_id for room in self.registry.rooms()}
            code = generate_room_code(taken, self.settings.room_code_length)
            self._reserved_codes[code] = now + self.settings.room_code_ttl_ms
            return code

    def join(self, sid: str, data: Any) -> bool:
        data = _payload(data)
        rid = sanitize_room_id(data.get('roomId'))
        if not rid:
            return False
        name = sanitize_name(data.get('name'))
        pin = sanitize_pin(data.get('pin'))
        while True:
            with self.registry.lock:
                room = self.registry.get(rid)
                seen = None if room is None else room.pin_hash
            # bcrypt runs unlocked; the hash seen here must still be current below
            if seen is None:
                pin_hash, pin_ok = self._hash_pin(pin), True
            else:
                pin_hash, pin_ok = seen, self._pin_matches(seen, pin)
            with self.registry.lock:
                room = self.registry.get(rid)
                if (None if room is None else room.pin_hash) != seen:
                    continue
                return self._enter(room, rid, sid, name, pin_hash, pin_ok)

    def _enter(self, room: Optional[Room], rid: str, sid: str, name: str, pin_hash: str, pin_ok: bool) -> bool:
        """Admit ``sid`` to the room. The caller holds the registry lock."""
        if room is None:
            room = self.registry.create(rid, host_id=sid)
            room.pin_hash = pin_hash
            self._reserved_codes.pop(rid, None)
            self.logger.info(f"[room-created] room={rid} host={sid} pin={'yes' if pin_hash else 'no'}")
        try:
            self._admit(room, sid, pin_ok)
        except WrongPin as exc:
            self.logger.info(f"[pin-rejected] room={rid} sid={sid}")
            self.emitter.send(sid, 'room:error', {'message': str(exc)})
            return False
        self.emitter.enter(sid, rid)
        if room.player(sid) is None:
            final_name = unique_name(name, {p.name for p in room.players})
            room.players.append(Player(id=sid, name=final_name))
            self.logger.info(f"[join] room={rid} sid={sid} name={final_name}")
        self._broadcast(room)
        return True

    def watch(self, sid: str, data: Any) -> Dict[str, Any]:
        """Subscribe a board display to a room without adding a player."""
        rid = sanitize_room_id(_payload(data).get('roomId'))
        with self.registry.lock:
            room = self.registry.get(rid) if rid else None
            if room is None:
                return {'error': 'Room not found'}
            self.emitter.enter(sid, rid)
            self.emitter.send(sid, 'room:update', room.to_dict())
            return {'ok': True, 'roomId': rid}

    def disconnect(self, sid: str) -> None:
        with self.registry.lock:
            now = self.clock()
            for room in self.registry.rooms():
                before = room.turn_ends_at
                if not turns.remove_player(room, sid, now):
                    continue
                if room.host_id == sid:
                    room.host_id = room.players[0].id if room.players else None
                    if room.host_id:
                        self.logger.info(f"[host-transfer] room={room.room_id} from={sid} to={room.host_id}")
                if not room.players:
                    self.registry.delete(room.room_id)
                    self.logger.info(f"[room-deleted] room={room.room_id}")
                    continue
                self.logger.info(f"[leave] room={room.room_id} sid={sid}")
                self._broadcast(room, before)

    def snapshot(self, room_id: Any) -> Optional[Dict[str, Any]]:
        with self.registry.lock:
            room = self.registry.get(sanitize_room_id(room_id))
            return room.to_dict() if room else None

    # ---- host controls ----

    def set_pin(self, sid: str, data: Any) -> None:
        data = _payload(data)
        with self.registry.lock:
            if self._host_room(sid, data, 'set-pin') is None:
                return
        pin_hash = self._hash_pin(sanitize_pin(data.get('pin')))
        with self.registry.lock:
            room = self._host_room(sid, data, 'set-pin')
            if room is None:
                return
            room.pin_hash = pin_hash
            self.logger.info(f"[set-pin] room={room.room_id} pin={'yes' if room.pin_hash else 'no'}")
            self._broadcast(room)

    def set_timer(self, sid: str, data: Any) -> None:
        data = _payload(data)
        s = self.settings
        with self.registry.lock:
            room = self._host_room(sid, data, 'set-timer')
            if room is None:
                return
            seconds = clamp_seconds(data.get('seconds'), s.turn_seconds_min, s.turn_seconds_max,
                                    s.turn_seconds_default)
            before = room.turn_ends_at
            turns.set_turn_seconds(room, seconds, self.clock())
            self.logger.info(f"[set-timer] room={room.room_id} seconds={seconds}")
            self._broadcast(room, before)

    def start(self, sid: str, data: Any) -> None:
        data = _payload(data)
        with self.registry.lock:
            room = self._host_room(sid, data, 'start')
            if room is None:
                return
            pairs = clean_pairs(data.get('pairs'), self.settings.max_pairs)
            if len(pairs) < self.settings.min_pairs:
                self.logger.debug(f"[start-ignored] room={room.room_id} pairs={len(pairs)}")
                return
            self._deal(room, pairs)

    def new_round(self, sid: str, data: Any) -> None:
        with self.registry.lock:
            room = self._host_room(sid, _payload(data), 'new-round')
            if room is None:
                return
            if len(room.source_pairs) < self.settings.min_pairs:
                self.logger.debug(f"[new-round-ignored] room={room.room_id} no deck")
                return
            self._deal(room, room.source_pairs)

    def _deal(self, room: Room, pairs) -> None:
        before = room.turn_ends_at
        matching.start_round(room, pairs, self.clock(), self.rng)
        self.logger.info(
            f"[round-start] room={room.room_id} pairs={len(pairs)} players={len(room.players)} generation={room.generation}"
        )
        self._broadcast(room, before)

    def pause(self, sid: str, data: Any) -> None:
        with self.registry.lock:
            room = self._host_room(sid, _payload(data), 'pause')
            if room is None or not turns.pause(room, self.clock()):
                return
            self.logger.info(f"[pause] room={room.room_id} remaining_ms={room.paused_remaining_ms}")
            self._broadcast(room)

    def resume(self, sid: str, data: Any) -> None:
        with self.registry.lock:
            room = self._host_room(sid, _payload(data), 'resume')
            if room is None:
                return
            before = room.turn_ends_at
            if not turns.resume(room, self.clock()):
                return
            self.logger.info(f"[resume] room={room.room_id} turn_ends_at={room.turn_ends_at}")
            self._broadcast(room, before)

    # ---- play ----

    def flip(self, sid: str, data: Any) -> None:
        data = _payload(data)
        rid = sanitize_room_id(data.get('roomId'))
        card_id = data.get('cardId')
        with self.registry.lock:
            room = self.registry.get(rid) if rid else None
            if room is None or not isinstance(card_id, str):
                return
            accepted, resolution = matching.flip(room, sid, card_id)
            if not accepted:
                self.logger.debug(f"[flip-ignored] room={rid} sid={sid} card={card_id}")
                return
            self._broadcast(room)
            if resolution is None:
                return
            if resolution.is_match:
                self.emitter.broadcast(rid, 'match:animate', resolution.animate_payload())
            self.deferrer.defer(self.settings.settle_delay_ms / 1000.0, lambda: self.settle(resolution))

    def settle(self, resolution: Resolution) -> bool:
        """Apply a revealed pair once its settle delay has elapsed."""
        with self.registry.lock:
            room = self.registry.get(resolution.room_id)
            before = room.turn_ends_at if room else None
            if not matching.resolve(room, resolution, self.clock(), self.settings.match_points):
                self.logger.info(f"[settle-stale] room={resolution.room_id} generation={resolution.generation}")
                return False
            outcome = 'match' if resolution.is_match else 'miss'
            self.logger.info(
                f"[settle] room={room.room_id} player={resolution.player_id} outcome={outcome} turn_index={room.turn_index}"
            )
            if room.finished:
                self.logger.info(f"[round-finished] room={room.room_id}")
            self._broadcast(room, before)
            return True

    def sweep(self, now: Optional[int] = None) -> int:
        """Advance every room whose turn deadline has passed."""
        advanced = 0
        with self.registry.lock:
            now = self.clock() if now is None else now
            for room in self.registry.rooms():
                if not turns.turn_expired(room, now):
                    continue
                expired = room.current_player
                before = room.turn_ends_at
                turns.advance_turn(room, now)
                self.logger.info(
                    f"[turn-expired] room={room.room_id} player={expired.id if expired else None} next_index={room.turn_index}"
                )
                self._broadcast(room, before)
                advanced += 1
        return advanced
