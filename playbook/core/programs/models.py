"""
Domain models for training programs.

A player has one throwing program and one lifting program. Both are
nested documents that are always saved whole:

    throwing: days -> sections -> drills   (all ordered, indexed by position)
    lifting:  days (keyed by a stable day key) -> exercises (ordered)

The models are frozen. Edits build new instances (see edits.py), which
keeps local edits pure: the working copy the editor holds can't be
changed behind its back by a store callback or another edit.

Field names in to_document()/from_document() are the stored record
format. Don't rename them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Union
from uuid import uuid4

from ..errors import ValidationError


class Discipline(Enum):
    """The two program types a player can have."""
    THROWING = "throwing"
    LIFTING = "lifting"

    @classmethod
    def parse(cls, value: Union[str, "Discipline"]) -> "Discipline":
        if isinstance(value, Discipline):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(f"Unknown discipline: {value!r}")


DEFAULT_SECTION_TITLE = "Warm-up"
DEFAULT_LIFTING_DAY_KEY = "day1"


def new_day_key() -> str:
    """Stable synthetic identifier for a lifting day."""
    return f"day-{uuid4().hex[:8]}"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _sequence(data: dict, key: str, owner: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{owner}.{key} must be a list")
    return list(value)


def _mapping(value: Any, owner: str) -> dict:
    if not isinstance(value, dict):
        raise ValidationError(f"{owner} must be an object")
    return value


# ---------------------------------------------------------------------------
# Throwing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Drill:
    """A single drill inside a throwing section."""
    name: str = ""
    sets: str = ""
    reps: str = ""
    url: str = ""

    def to_document(self) -> dict[str, Any]:
        return {"name": self.name, "sets": self.sets, "reps": self.reps, "url": self.url}

    @classmethod
    def from_document(cls, data: Any) -> "Drill":
        data = _mapping(data, "drill")
        return cls(
            name=_text(data.get("name")),
            sets=_text(data.get("sets")),
            reps=_text(data.get("reps")),
            url=_text(data.get("url")),
        )


@dataclass(frozen=True)
class Section:
    """A titled group of drills, e.g. "Warm-up" or "Long toss"."""
    title: str = ""
    drills: tuple[Drill, ...] = ()

    def to_document(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "drills": [drill.to_document() for drill in self.drills],
        }

    @classmethod
    def from_document(cls, data: Any) -> "Section":
        data = _mapping(data, "section")
        return cls(
            title=_text(data.get("title")),
            drills=tuple(Drill.from_document(d) for d in _sequence(data, "drills", "section")),
        )


@dataclass(frozen=True)
class ThrowingDay:
    """
    One day of a throwing program.

    The stored day number is part of the record and is not renumbered
    when earlier days are removed. Display code numbers days by position.
    """
    day: int = 1
    focus: str = ""
    sections: tuple[Section, ...] = ()

    def to_document(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "focus": self.focus,
            "sections": [section.to_document() for section in self.sections],
        }

    @classmethod
    def from_document(cls, data: Any) -> "ThrowingDay":
        data = _mapping(data, "day")
        try:
            day = int(data.get("day", 1))
        except (TypeError, ValueError):
            raise ValidationError(f"day.day must be an integer, got {data.get('day')!r}")
        return cls(
            day=day,
            focus=_text(data.get("focus")),
            sections=tuple(
                Section.from_document(s) for s in _sequence(data, "sections", "day")
            ),
        )


@dataclass(frozen=True)
class ThrowingProgram:
    """A player's throwing program: an ordered list of days."""
    discipline: ClassVar[Discipline] = Discipline.THROWING

    days: tuple[ThrowingDay, ...] = ()

    def to_document(self) -> dict[str, Any]:
        return {"days": [day.to_document() for day in self.days]}

    @classmethod
    def from_document(cls, data: Any) -> "ThrowingProgram":
        data = _mapping(data, "program")
        return cls(
            days=tuple(ThrowingDay.from_document(d) for d in _sequence(data, "days", "program"))
        )

    @classmethod
    def default(cls) -> "ThrowingProgram":
        """Skeleton shown before the coach has saved anything."""
        return cls(days=(
            ThrowingDay(
                day=1,
                focus="",
                sections=(
                    Section(
                        title=DEFAULT_SECTION_TITLE,
                        drills=(Drill(name="Arm Circles", sets="2", reps="10"),),
                    ),
                ),
            ),
        ))


# ---------------------------------------------------------------------------
# Lifting
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Exercise:
    """A single lift inside a lifting day."""
    name: str = ""
    sets: str = ""
    reps: str = ""
    video_url: str = ""

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "sets": self.sets,
            "reps": self.reps,
            "videoUrl": self.video_url,
        }

    @classmethod
    def from_document(cls, data: Any) -> "Exercise":
        data = _mapping(data, "exercise")
        return cls(
            name=_text(data.get("name")),
            sets=_text(data.get("sets")),
            reps=_text(data.get("reps")),
            video_url=_text(data.get("videoUrl")),
        )


@dataclass(frozen=True)
class LiftingDay:
    """A named workout, e.g. "Lower Body A"."""
    name: str = ""
    exercises: tuple[Exercise, ...] = ()

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "exercises": [exercise.to_document() for exercise in self.exercises],
        }

    @classmethod
    def from_document(cls, data: Any) -> "LiftingDay":
        data = _mapping(data, "lifting day")
        return cls(
            name=_text(data.get("name")),
            exercises=tuple(
                Exercise.from_document(e)
                for e in _sequence(data, "exercises", "lifting day")
            ),
        )


@dataclass(frozen=True)
class LiftingProgram:
    """
    A player's lifting program.

    Days form an ordered map from day key to LiftingDay. Keys are
    assigned once when a day is created and never derived from position,
    so removing or reordering days can't make a staged entry or a
    pending edit point at the wrong workout.
    """
    discipline: ClassVar[Discipline] = Discipline.LIFTING

    days: tuple[tuple[str, LiftingDay], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        keys = [key for key, _ in self.days]
        if len(keys) != len(set(keys)):
            raise ValidationError("Lifting day keys must be unique")

    @property
    def day_keys(self) -> tuple[str, ...]:
        return tuple(key for key, _ in self.days)

    def get_day(self, day_key: str) -> Optional[LiftingDay]:
        for key, day in self.days:
            if key == day_key:
                return day
        return None

    def to_document(self) -> dict[str, Any]:
        # Object keys come back from the store in its own order (Snowflake
        # sorts VARIANT keys), so the display order is stored alongside.
        return {
            "days": {key: day.to_document() for key, day in self.days},
            "dayOrder": list(self.day_keys),
        }

    @classmethod
    def from_document(cls, data: Any) -> "LiftingProgram":
        data = _mapping(data, "program")
        days = data.get("days") or {}
        days = {str(key): value for key, value in _mapping(days, "program.days").items()}

        # Listed keys first in listed order, then any the list doesn't know about
        order = [str(key) for key in _sequence(data, "dayOrder", "program") if str(key) in days]
        order = list(dict.fromkeys(order))
        order += [key for key in days if key not in order]

        return cls(days=tuple(
            (key, LiftingDay.from_document(days[key])) for key in order
        ))

    @classmethod
    def default(cls) -> "LiftingProgram":
        """Skeleton shown before the coach has saved anything."""
        return cls(days=((DEFAULT_LIFTING_DAY_KEY, LiftingDay(name="Day 1")),))


ProgramDocument = Union[ThrowingProgram, LiftingProgram]

PROGRAM_TYPES: dict[Discipline, type] = {
    Discipline.THROWING: ThrowingProgram,
    Discipline.LIFTING: LiftingProgram,
}


def default_program(discipline: Discipline) -> ProgramDocument:
    return PROGRAM_TYPES[discipline].default()


def program_from_document(
    discipline: Discipline,
    data: Optional[dict[str, Any]],
) -> ProgramDocument:
    """
    Build a program from stored data.

    A missing document is a valid "uninitialized" state and maps to the
    discipline's default skeleton.
    """
    if data is None:
        return default_program(discipline)
    return PROGRAM_TYPES[discipline].from_document(data)
