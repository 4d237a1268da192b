"""
Training program endpoints.

A program is one nested document per player and discipline. Clients
edit their own working copy and PUT the whole document back; the
stream endpoint pushes every new snapshot so an open editor can notice
that someone else saved in the meantime.
"""

import json
import logging
from typing import Any, AsyncIterator

from fastapi import APIRouter, Body, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ...core.errors import StoreReadError, ValidationError
from ...core.programs import Discipline, ProgramDocument, ProgramSubscription, program_from_document
from ..dependencies import AuthenticatedUser, ProgramStoreDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class ProgramResponse(BaseModel):
    """A player's program for one discipline."""
    player_id: str = Field(description="Player identifier")
    discipline: Discipline = Field(description="throwing or lifting")
    program: dict[str, Any] = Field(description="The full program document")


def _program_response(player_id: str, program: ProgramDocument) -> ProgramResponse:
    return ProgramResponse(
        player_id=player_id,
        discipline=program.discipline,
        program=program.to_document(),
    )


# ---------------------------------------------------------------------------
# Event Stream
# ---------------------------------------------------------------------------

async def program_events(subscription: ProgramSubscription) -> AsyncIterator[str]:
    """
    Render program snapshots as server-sent events.

    One "data:" frame per snapshot. A read failure (or a stored
    document that no longer parses) ends the stream with an "error"
    event; the client reconnects to resume.
    """
    try:
        async for program in subscription:
            yield f"data: {json.dumps(program.to_document())}\n\n"
    except (StoreReadError, ValidationError) as e:
        logger.warning(
            "Program stream failed",
            extra={"discipline": subscription.discipline.value, "error": str(e)},
        )
        yield f"event: error\ndata: {json.dumps({'detail': str(e)})}\n\n"
    finally:
        subscription.close()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/{player_id}/programs/{discipline}",
    response_model=ProgramResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a program",
    description="Current program for a player. Returns the default skeleton if none was saved yet.",
)
async def get_program(
    player_id: str,
    discipline: Discipline,
    api_key: AuthenticatedUser = None,
    programs: ProgramStoreDep = None,
) -> ProgramResponse:
    try:
        program = await programs.load(player_id, discipline)
    except StoreReadError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not read program: {e}",
        )
    except ValidationError as e:
        # Stored document no longer matches the program shape
        logger.error(
            "Stored program is malformed",
            extra={"player_id": player_id, "discipline": discipline.value, "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stored program is malformed",
        )

    return _program_response(player_id, program)


@router.put(
    "/{player_id}/programs/{discipline}",
    response_model=ProgramResponse,
    status_code=status.HTTP_200_OK,
    summary="Save a program",
    description="Replace the whole program document. Last writer wins.",
)
async def save_program(
    player_id: str,
    discipline: Discipline,
    document: dict[str, Any] = Body(description="The full program document"),
    api_key: AuthenticatedUser = None,
    programs: ProgramStoreDep = None,
) -> ProgramResponse:
    try:
        program = program_from_document(discipline, document)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    result = await programs.save(player_id, program)
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not save program: {result.message}",
        )

    return _program_response(player_id, program)


@router.get(
    "/{player_id}/programs/{discipline}/stream",
    summary="Watch a program",
    description="Server-sent events: the current program, then every saved change.",
    response_class=StreamingResponse,
)
async def stream_program(
    player_id: str,
    discipline: Discipline,
    api_key: AuthenticatedUser = None,
    programs: ProgramStoreDep = None,
) -> StreamingResponse:
    logger.info(
        "Opening program stream",
        extra={"player_id": player_id, "discipline": discipline.value},
    )
    subscription = programs.subscribe(player_id, discipline)
    return StreamingResponse(
        program_events(subscription),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
