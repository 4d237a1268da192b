"""
Player records.

Players are created and deleted by roster management, which lives
outside this package. The core only reads them to attribute programs
and logs.

The stored "password" is a plaintext shared secret inherited from the
original roster design. It is carried through as data so records
round-trip, but it is excluded from repr and never used for any check
here. A real login flow must store salted hashes instead.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .errors import ValidationError
from .store import DocumentStore, player_path


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    coach_id: str = ""
    created_at: Optional[datetime] = None
    password: str = field(default="", repr=False)

    @classmethod
    def from_document(cls, player_id: str, data: dict[str, Any]) -> "Player":
        created_at = data.get("createdAt")
        if isinstance(created_at, str):
            try:
                created_at = datetime.fromisoformat(created_at)
            except ValueError:
                created_at = None
        elif not isinstance(created_at, datetime):
            created_at = None

        return cls(
            id=player_id,
            name=str(data.get("name") or ""),
            coach_id=str(data.get("coachId") or ""),
            created_at=created_at,
            password=str(data.get("password") or ""),
        )


async def get_player(store: DocumentStore, player_id: str) -> Optional[Player]:
    """Load a player, or None if there's no such player."""
    if not player_id:
        raise ValidationError("player_id is required")
    data = await store.get(player_path(player_id))
    if data is None:
        return None
    return Player.from_document(player_id, data)
