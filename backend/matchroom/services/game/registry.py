import threading
from typing import Dict, List, Optional

from matchroom.models import Room


class RoomRegistry:
    """In-memory owner of every live room, keyed by sanitized room id.

    ``lock`` serializes all mutation of room state. Socket handlers may run
    on separate threads, so callers hold it while reading or changing a room,
    including the broadcast that follows. Slow work such as PIN hashing
    happens outside it.
    """

    def __init__(self, default_turn_seconds: int = 20):
        self._rooms: Dict[str, Room] = {}
        self.default_turn_seconds = default_turn_seconds
        self.lock = threading.RLock()

    def create(self, room_id: str, host_id: Optional[str] = None) -> Room:
        """Return the room for ``room_id``, creating it if it does not exist."""
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id, host_id=host_id, turn_seconds=self.default_turn_seconds)
            self._rooms[room_id] = room
        return room

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def delete(self, room_id: str) -> Optional[Room]:
        return self._rooms.pop(room_id, None)

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def __contains__(self, room_id) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
