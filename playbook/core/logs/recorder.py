"""
Session log recorder.

Players fill in today's wellness check-in, rate their throwing day and
enter weights for the lifts they did. Those inputs are "staged" here as
plain local state and only become log records when the player commits.

Staging never touches the store. Committing validates first, so bad
input is rejected before any write is attempted. A lifting commit
writes all of its records in one atomic batch: after a failure there
are no records from that session at all, and the staged values are
still there for a retry.
"""

import logging
from datetime import date
from typing import Any, Callable, Mapping, Optional

from ..errors import StoreWriteError, ValidationError, WriteResult
from ..programs.models import LiftingProgram, ThrowingProgram
from ..store import BatchWrite, DocumentStore, log_path, logs_path
from .models import LiftLog, LogRecord, ThrowLog, WellnessLog, check_feel


logger = logging.getLogger(__name__)


FEEL_FIELDS = ("overallFeel", "armFeel", "shoulderFeel", "backFeel", "legsFeel")

WELLNESS_FIELDS = FEEL_FIELDS + ("sleepHours", "hitCalories", "hitProtein", "notes")

LIFT_FIELDS = ("weight", "reps")


Clock = Callable[[], date]


def _number(value: Any, name: str) -> float:
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if number < 0:
        raise ValidationError(f"{name} can't be negative")
    return number


def _whole_number(value: Any, name: str) -> int:
    number = _number(value, name)
    if number != int(number):
        raise ValidationError(f"{name} must be a whole number, got {value!r}")
    return int(number)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class SessionLogRecorder:
    """
    Staged buffers and commits for one player's logs.

    The store and the clock are injected. The clock returns the calendar
    date in the player's local timezone; records are stamped with it at
    commit time, not at staging time.
    """

    def __init__(
        self,
        store: DocumentStore,
        player_id: str,
        clock: Optional[Clock] = None,
    ) -> None:
        if not player_id:
            raise ValueError("player_id is required")
        self._store = store
        self._player_id = player_id
        self._clock = clock or date.today
        self._wellness: dict[str, Any] = {}
        self._throws: dict[int, Any] = {}
        self._lifts: dict[str, dict[int, dict[str, Any]]] = {}

    @property
    def player_id(self) -> str:
        return self._player_id

    # -----------------------------------------------------------------------
    # Staging
    # -----------------------------------------------------------------------

    def stage_wellness(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Stage check-in fields, overwriting earlier values for the same fields."""
        unknown = set(fields) - set(WELLNESS_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown wellness fields: {', '.join(sorted(unknown))}")
        self._wellness.update(fields)
        return dict(self._wellness)

    def stage_throw(self, day_index: int, feel: Any) -> None:
        """Stage the feel score for a throwing day (by position)."""
        self._throws[day_index] = feel

    def stage_lift(
        self,
        day_key: str,
        entries: Mapping[int, Mapping[str, Any]],
    ) -> dict[int, dict[str, Any]]:
        """
        Stage weight/reps for exercises of a lifting day.

        Entries are keyed by exercise position in that day. Staging the
        same exercise again overwrites the fields given and keeps the
        others, so weight and reps can be typed in separately.
        """
        checked = []
        for index, values in entries.items():
            if isinstance(index, bool):
                raise ValidationError(f"Exercise index must be an integer, got {index!r}")
            try:
                position = int(index)
            except (TypeError, ValueError):
                raise ValidationError(f"Exercise index must be an integer, got {index!r}")
            if position < 0:
                raise ValidationError(f"Exercise index can't be negative, got {index!r}")
            unknown = set(values) - set(LIFT_FIELDS)
            if unknown:
                raise ValidationError(f"Unknown lift fields: {', '.join(sorted(unknown))}")
            checked.append((position, values))

        # Nothing is staged unless every entry passed
        staged = self._lifts.setdefault(day_key, {})
        for position, values in checked:
            staged.setdefault(position, {}).update(values)
        return self.staged_lift(day_key)

    def staged_wellness(self) -> dict[str, Any]:
        return dict(self._wellness)

    def staged_throw(self, day_index: int) -> Optional[Any]:
        return self._throws.get(day_index)

    def staged_lift(self, day_key: str) -> dict[int, dict[str, Any]]:
        return {index: dict(values) for index, values in self._lifts.get(day_key, {}).items()}

    # -----------------------------------------------------------------------
    # Commits
    # -----------------------------------------------------------------------

    async def commit_wellness(self) -> WriteResult:
        """Validate the staged check-in and write one wellness record."""
        record = self._build_wellness()
        result = await self._add(record)
        if result.ok:
            self._wellness = {}
        return result

    async def commit_throw(self, day_index: int, program: ThrowingProgram) -> WriteResult:
        """Validate the staged feel for a throwing day and write one throw record."""
        feel = self._throws.get(day_index)
        if feel is None:
            raise ValidationError("Rate how the throwing day felt before logging it")
        score = check_feel(feel, "feel")

        if not 0 <= day_index < len(program.days):
            raise ValidationError(f"No throwing day at position {day_index}")
        day = program.days[day_index]

        record = ThrowLog(date=self._clock(), day=day.day, focus=day.focus, feel=score)
        result = await self._add(record)
        if result.ok:
            self._throws.pop(day_index, None)
        return result

    async def commit_lift(self, day_key: str, program: LiftingProgram) -> WriteResult:
        """
        Write one lift record per staged exercise of a day, atomically.

        Exercise and day names come from the program snapshot passed in,
        so the records keep the names the player actually saw.
        """
        staged = self._lifts.get(day_key)
        if not staged:
            raise ValidationError("Enter at least one weight before logging the session")

        day = program.get_day(day_key)
        if day is None:
            raise ValidationError(f"No lifting day with key {day_key!r}")

        today = self._clock()
        records = []
        for index in sorted(staged):
            if not 0 <= index < len(day.exercises):
                raise ValidationError(f"No exercise at position {index} in {day.name or day_key}")
            exercise = day.exercises[index]
            values = staged[index]
            label = exercise.name or f"exercise {index + 1}"
            records.append(LiftLog(
                date=today,
                day_name=day.name,
                exercise=exercise.name,
                weight=_number(values.get("weight"), f"weight for {label}"),
                reps=_whole_number(values.get("reps"), f"reps for {label}"),
            ))

        writes = [
            BatchWrite(path=log_path(self._player_id, self._store.new_id()), data=r.to_record())
            for r in records
        ]

        try:
            await self._store.batch_write(writes)
        except StoreWriteError as e:
            logger.warning(
                "Lift session commit failed",
                extra={"player_id": self._player_id, "day_key": day_key, "error": str(e)},
            )
            return WriteResult.failure(e)

        self._lifts.pop(day_key, None)
        ids = tuple(w.path.rsplit("/", 1)[1] for w in writes)
        logger.info(
            "Lift session logged",
            extra={"player_id": self._player_id, "day_key": day_key, "records": len(ids)},
        )
        return WriteResult.success(ids)

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _build_wellness(self) -> WellnessLog:
        staged = self._wellness
        scores = {name: check_feel(staged.get(name), name) for name in FEEL_FIELDS}
        return WellnessLog(
            date=self._clock(),
            overall_feel=scores["overallFeel"],
            arm_feel=scores["armFeel"],
            shoulder_feel=scores["shoulderFeel"],
            back_feel=scores["backFeel"],
            legs_feel=scores["legsFeel"],
            sleep_hours=_number(staged.get("sleepHours"), "sleepHours"),
            hit_calories=_flag(staged.get("hitCalories", False)),
            hit_protein=_flag(staged.get("hitProtein", False)),
            notes=str(staged.get("notes") or ""),
        )

    async def _add(self, record: LogRecord) -> WriteResult:
        try:
            log_id = await self._store.add(logs_path(self._player_id), record.to_record())
        except StoreWriteError as e:
            logger.warning(
                "Log commit failed",
                extra={"player_id": self._player_id, "type": record.type, "error": str(e)},
            )
            return WriteResult.failure(e)

        logger.info(
            "Log recorded",
            extra={"player_id": self._player_id, "type": record.type, "log_id": log_id},
        )
        return WriteResult.success((log_id,))
