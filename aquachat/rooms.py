"""Group room membership tracking."""

from .ws_constants import GENERAL_ROOMS


def is_valid_room(room) -> bool:
    return isinstance(room, str) and room in GENERAL_ROOMS


class RoomMembershipTracker:
    """Connection-id sets per fixed room name.

    Rooms are created lazily on first join and are kept when they empty out.
    """

    def __init__(self):
        self.rooms: dict[str, set[str]] = {}

    def add_member(self, room: str, connection_id: str) -> None:
        self.rooms.setdefault(room, set()).add(connection_id)

    def remove_member(self, room: str, connection_id: str) -> bool:
        """Remove a connection from a room. Returns True if it was a member."""
        members = self.rooms.get(room)
        if members is None or connection_id not in members:
            return False
        members.discard(connection_id)
        return True

    def remove_member_from_all(self, connection_id: str) -> list[str]:
        """Remove a connection from every room. Returns the rooms it left."""
        left = [room for room, members in self.rooms.items() if connection_id in members]
        for room in left:
            self.rooms[room].discard(connection_id)
        return left

    def is_member(self, room: str, connection_id: str) -> bool:
        return connection_id in self.rooms.get(room, ())

    def get_room_members(self, room: str) -> set[str]:
        return set(self.rooms.get(room, ()))

    def get_member_rooms(self, connection_id: str) -> list[str]:
        return [room for room, members in self.rooms.items() if connection_id in members]

    def clear(self) -> None:
        self.rooms.clear()
