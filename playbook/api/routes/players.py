"""
Player endpoints.

Read-only: rosters are managed elsewhere. The stored password is never
returned.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.errors import StoreReadError
from ...core.players import get_player
from ..dependencies import AuthenticatedUser, DocumentStoreDep

logger = logging.getLogger(__name__)

router = APIRouter()


class PlayerResponse(BaseModel):
    """Public player details."""
    player_id: str = Field(description="Player identifier")
    name: str
    coach_id: str
    created_at: Optional[str] = Field(None, description="When the player was added (ISO format)")


@router.get(
    "/{player_id}",
    response_model=PlayerResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a player",
)
async def read_player(
    player_id: str,
    api_key: AuthenticatedUser = None,
    store: DocumentStoreDep = None,
) -> PlayerResponse:
    try:
        player = await get_player(store, player_id)
    except StoreReadError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not read player: {e}",
        )

    if player is None:
        logger.info("Player not found", extra={"player_id": player_id})
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Player not found",
        )

    return PlayerResponse(
        player_id=player.id,
        name=player.name,
        coach_id=player.coach_id,
        created_at=player.created_at.isoformat() if player.created_at else None,
    )
