"""
Log records.

A log record is an immutable, dated event for one player. There are
three kinds, told apart by the stored "type" field:

    wellness  daily check-in (how the body feels, sleep, nutrition)
    throw     how a throwing day went
    lift      one exercise from a lifting session

Each kind stores exactly its own fields. Nothing is null-filled, so a
throw record has no sleepHours key at all.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, ClassVar, Union

from ..errors import ValidationError


logger = logging.getLogger(__name__)


WELLNESS = "wellness"
THROW = "throw"
LIFT = "lift"

FEEL_MIN = 1
FEEL_MAX = 10


def check_feel(value: Any, name: str) -> int:
    """Validate a 1-10 feel score."""
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a whole number, got {value!r}")
    try:
        score = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a whole number, got {value!r}")
    if score != value and str(score) != str(value).strip():
        raise ValidationError(f"{name} must be a whole number, got {value!r}")
    if not FEEL_MIN <= score <= FEEL_MAX:
        raise ValidationError(f"{name} must be between {FEEL_MIN} and {FEEL_MAX}, got {score}")
    return score


def parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}")


@dataclass(frozen=True)
class WellnessLog:
    """A daily wellness check-in."""
    type: ClassVar[str] = WELLNESS

    date: date
    overall_feel: int
    arm_feel: int
    shoulder_feel: int
    back_feel: int
    legs_feel: int
    sleep_hours: float
    hit_calories: bool = False
    hit_protein: bool = False
    notes: str = ""

    def to_record(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "date": self.date.isoformat(),
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

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "WellnessLog":
        return cls(
            date=parse_date(data["date"]),
            overall_feel=int(data["overallFeel"]),
            arm_feel=int(data["armFeel"]),
            shoulder_feel=int(data["shoulderFeel"]),
            back_feel=int(data["backFeel"]),
            legs_feel=int(data["legsFeel"]),
            sleep_hours=float(data["sleepHours"]),
            hit_calories=bool(data.get("hitCalories", False)),
            hit_protein=bool(data.get("hitProtein", False)),
            notes=str(data.get("notes") or ""),
        )


@dataclass(frozen=True)
class ThrowLog:
    """How a throwing day felt."""
    type: ClassVar[str] = THROW

    date: date
    day: int
    focus: str
    feel: int

    def to_record(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "date": self.date.isoformat(),
            "day": self.day,
            "focus": self.focus,
            "feel": self.feel,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "ThrowLog":
        return cls(
            date=parse_date(data["date"]),
            day=int(data["day"]),
            focus=str(data.get("focus") or ""),
            feel=int(data["feel"]),
        )


@dataclass(frozen=True)
class LiftLog:
    """One exercise performed in a lifting session."""
    type: ClassVar[str] = LIFT

    date: date
    day_name: str
    exercise: str
    weight: float
    reps: int

    def to_record(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "date": self.date.isoformat(),
            "dayName": self.day_name,
            "exercise": self.exercise,
            "weight": self.weight,
            "reps": self.reps,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "LiftLog":
        return cls(
            date=parse_date(data["date"]),
            day_name=str(data.get("dayName") or ""),
            exercise=str(data.get("exercise") or ""),
            weight=float(data["weight"]),
            reps=int(data["reps"]),
        )


LogRecord = Union[WellnessLog, ThrowLog, LiftLog]

_RECORD_TYPES: dict[str, type] = {
    WELLNESS: WellnessLog,
    THROW: ThrowLog,
    LIFT: LiftLog,
}


def parse_log_record(data: dict[str, Any]) -> LogRecord:
    """Build a typed record from stored data. Raises ValidationError if malformed."""
    record_type = data.get("type")
    record_cls = _RECORD_TYPES.get(record_type)
    if record_cls is None:
        raise ValidationError(f"Unknown log type: {record_type!r}")
    try:
        return record_cls.from_record(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Malformed {record_type} record: {e}")


def parse_log_records(documents: list[tuple[str, dict[str, Any]]]) -> list[LogRecord]:
    """
    Parse a collection of stored records, keeping store order.

    Records that can't be parsed are skipped with a warning rather than
    hiding every other record from the charts.
    """
    records = []
    for log_id, data in documents:
        try:
            records.append(parse_log_record(data))
        except ValidationError as e:
            logger.warning("Skipping unreadable log record", extra={"log_id": log_id, "error": str(e)})
    return records

