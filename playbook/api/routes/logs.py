"""
Session log endpoints.

Each POST stages the submitted values and commits them in one request.
Validation happens before anything is written, so a rejected request
leaves no records behind. A lifting session is written as one atomic
batch: either every exercise is logged or none is.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.errors import StoreReadError, ValidationError, WriteResult
from ...core.logs import list_logs
from ...core.programs import Discipline
from ..dependencies import AuthenticatedUser, DocumentStoreDep, LogRecorderDep, ProgramStoreDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class WellnessRequest(BaseModel):
    """Daily check-in. Feel scores run 1-10."""
    overall_feel: Optional[int] = Field(None, description="How the body feels overall")
    arm_feel: Optional[int] = None
    shoulder_feel: Optional[int] = None
    back_feel: Optional[int] = None
    legs_feel: Optional[int] = None
    sleep_hours: Optional[float] = Field(None, description="Hours slept last night")
    hit_calories: bool = False
    hit_protein: bool = False
    notes: str = Field("", max_length=2000)

    def staged_fields(self) -> dict[str, Any]:
        """Field names as the recorder (and the stored record) spell them."""
        return {
            "overallFeel": self.overall_feel,
            "armFeel": self.arm_feel,
            "shoulderFeel": self.shoulder_feel,
            "backFeel": self.back_feel,
            "legsFeel": self.legs_feel,
            "sleepHours": self.sleep_hours,
            "hitCalories": self.hit_calories,
            "hitProtein": self.hit_protein,
            "notes": self.notes,
        }


class ThrowRequest(BaseModel):
    """How a throwing day went."""
    day_index: int = Field(ge=0, description="Position of the day in the throwing program")
    feel: Optional[int] = Field(None, description="Feel score, 1-10")


class LiftEntry(BaseModel):
    """Weight and reps for one exercise of the day."""
    index: int = Field(ge=0, description="Position of the exercise within the day")
    weight: Optional[float] = None
    reps: Optional[int] = None


class LiftRequest(BaseModel):
    """A lifting session for one program day."""
    day_key: str = Field(min_length=1, description="Key of the day in the lifting program")
    entries: list[LiftEntry] = Field(description="One entry per exercise performed")


class LogWriteResponse(BaseModel):
    """Identifiers of the records just written."""
    record_ids: list[str]


class LogListResponse(BaseModel):
    """A player's log records, in the order they were written."""
    records: list[dict[str, Any]]
    total: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _unprocessable(error: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=str(error),
    )


def _written(result: WriteResult) -> LogWriteResponse:
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not save log: {result.message}",
        )
    return LogWriteResponse(record_ids=list(result.record_ids))


async def _load_program(programs, player_id: str, discipline: Discipline):
    try:
        return await programs.load(player_id, discipline)
    except StoreReadError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not read {discipline.value} program: {e}",
        )
    except ValidationError as e:
        raise _unprocessable(e)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/{player_id}/logs/wellness",
    response_model=LogWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a wellness check-in",
)
async def log_wellness(
    player_id: str,
    request: WellnessRequest,
    api_key: AuthenticatedUser = None,
    recorder: LogRecorderDep = None,
) -> LogWriteResponse:
    try:
        recorder.stage_wellness(request.staged_fields())
        result = await recorder.commit_wellness()
    except ValidationError as e:
        raise _unprocessable(e)
    return _written(result)


@router.post(
    "/{player_id}/logs/throw",
    response_model=LogWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a throwing day",
    description="Day number and focus are copied from the player's current throwing program.",
)
async def log_throw(
    player_id: str,
    request: ThrowRequest,
    api_key: AuthenticatedUser = None,
    recorder: LogRecorderDep = None,
    programs: ProgramStoreDep = None,
) -> LogWriteResponse:
    program = await _load_program(programs, player_id, Discipline.THROWING)
    try:
        if request.feel is not None:
            recorder.stage_throw(request.day_index, request.feel)
        result = await recorder.commit_throw(request.day_index, program)
    except ValidationError as e:
        raise _unprocessable(e)
    return _written(result)


@router.post(
    "/{player_id}/logs/lift",
    response_model=LogWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a lifting session",
    description="Writes one record per exercise, all or nothing.",
)
async def log_lift(
    player_id: str,
    request: LiftRequest,
    api_key: AuthenticatedUser = None,
    recorder: LogRecorderDep = None,
    programs: ProgramStoreDep = None,
) -> LogWriteResponse:
    program = await _load_program(programs, player_id, Discipline.LIFTING)
    entries = {
        entry.index: entry.model_dump(include={"weight", "reps"})
        for entry in request.entries
    }
    try:
        recorder.stage_lift(request.day_key, entries)
        result = await recorder.commit_lift(request.day_key, program)
    except ValidationError as e:
        raise _unprocessable(e)
    return _written(result)


@router.get(
    "/{player_id}/logs",
    response_model=LogListResponse,
    status_code=status.HTTP_200_OK,
    summary="List log records",
)
async def get_logs(
    player_id: str,
    api_key: AuthenticatedUser = None,
    store: DocumentStoreDep = None,
) -> LogListResponse:
    try:
        records = await list_logs(store, player_id)
    except StoreReadError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not read logs: {e}",
        )
    return LogListResponse(
        records=[record.to_record() for record in records],
        total=len(records),
    )
