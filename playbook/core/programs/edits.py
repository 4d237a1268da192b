"""
Local edits to a program working copy.

Edits are pure: apply_local_edit() takes a program and returns a new one
and never touches the store. The editor calls it on every keystroke,
button press and delete, then saves the whole document later.

Paths address nodes inside a document:

    throwing:  (day, "focus")
               (day, section, "title")
               (day, section, drill, "name" | "sets" | "reps" | "url")
    lifting:   (day_key, "name")
               (day_key, exercise, "name" | "sets" | "reps" | "video_url")

AppendChild takes the path of the parent ((), (day,), (day, section) or
(), (day_key,)); RemoveChild takes the path of the node to remove.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Optional, Union

from ..errors import InvalidEditError
from .models import (
    Drill,
    Exercise,
    LiftingDay,
    LiftingProgram,
    ProgramDocument,
    Section,
    ThrowingDay,
    ThrowingProgram,
    new_day_key,
)


PathPart = Union[int, str]
EditPath = tuple[PathPart, ...]


@dataclass(frozen=True)
class SetField:
    """Set a text field."""
    path: EditPath
    value: Any


@dataclass(frozen=True)
class AppendChild:
    """Append an empty child under the node at path."""
    path: EditPath = ()


@dataclass(frozen=True)
class RemoveChild:
    """Remove the node at path."""
    path: EditPath


Edit = Union[SetField, AppendChild, RemoveChild]


_THROWING_LEVELS = ("days", "sections", "drills")

_THROWING_FIELDS = {
    1: {"focus"},
    2: {"title"},
    3: {"name", "sets", "reps", "url"},
}

_EXERCISE_FIELDS = {"name", "sets", "reps", "video_url"}

# Stored name for the exercise video field, accepted as an alias
_FIELD_ALIASES = {"videoUrl": "video_url"}


def apply_local_edit(program: ProgramDocument, edit: Edit) -> ProgramDocument:
    """Return a copy of program with edit applied."""
    if isinstance(program, ThrowingProgram):
        return _apply_throwing(program, edit)
    if isinstance(program, LiftingProgram):
        return _apply_lifting(program, edit)
    raise TypeError(f"Unsupported program type: {type(program).__name__}")


def apply_local_edits(program: ProgramDocument, edits: Iterable[Edit]) -> ProgramDocument:
    """
    Apply a batch of edits captured against the same snapshot.

    Every path in the batch refers to the document as it was when the
    batch started. When a positional removal shifts later siblings down,
    the remaining edits are re-targeted to the new positions in the same
    pass; edits addressing the removed node itself are dropped.
    """
    pending = list(edits)
    result = program

    while pending:
        edit = pending.pop(0)
        result = apply_local_edit(result, edit)
        if isinstance(edit, RemoveChild):
            retargeted = (_retarget(other, edit.path) for other in pending)
            pending = [other for other in retargeted if other is not None]

    return result


def _retarget(edit: Edit, removed: EditPath) -> Optional[Edit]:
    parent, removed_at = removed[:-1], removed[-1]
    depth = len(parent)

    if len(edit.path) <= depth or edit.path[:depth] != parent:
        return edit

    position = edit.path[depth]
    if position == removed_at:
        return None
    if isinstance(removed_at, int) and isinstance(position, int) and position > removed_at:
        new_path = edit.path[:depth] + (position - 1,) + edit.path[depth + 1:]
        return replace(edit, path=new_path)
    return edit


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _check_index(items: tuple, index: PathPart, what: str) -> int:
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidEditError(f"{what} index must be an integer, got {index!r}")
    if not 0 <= index < len(items):
        raise InvalidEditError(f"No {what} at index {index} (have {len(items)})")
    return index


def _replace_at(items: tuple, index: PathPart, fn: Callable[[Any], Any], what: str) -> tuple:
    i = _check_index(items, index, what)
    return items[:i] + (fn(items[i]),) + items[i + 1:]


def _remove_at(items: tuple, index: PathPart, what: str) -> tuple:
    i = _check_index(items, index, what)
    return items[:i] + items[i + 1:]


# ---------------------------------------------------------------------------
# Throwing
# ---------------------------------------------------------------------------

def _update_nested(node: Any, levels: tuple[str, ...], indices: tuple, fn: Callable[[Any], Any]) -> Any:
    if not indices:
        return fn(node)
    attr = levels[0]
    children = _replace_at(
        getattr(node, attr),
        indices[0],
        lambda child: _update_nested(child, levels[1:], indices[1:], fn),
        attr[:-1],
    )
    return replace(node, **{attr: children})


def _apply_throwing(program: ThrowingProgram, edit: Edit) -> ThrowingProgram:
    if isinstance(edit, SetField):
        if len(edit.path) < 2:
            raise InvalidEditError(f"Field path too short: {edit.path!r}")
        indices, name = tuple(edit.path[:-1]), edit.path[-1]
        allowed = _THROWING_FIELDS.get(len(indices), set())
        if name not in allowed:
            raise InvalidEditError(f"Can't set {name!r} at {edit.path!r}")
        value = _text(edit.value)
        return _update_nested(
            program, _THROWING_LEVELS, indices, lambda node: replace(node, **{name: value})
        )

    if isinstance(edit, AppendChild):
        depth = len(edit.path)
        if depth > 2:
            raise InvalidEditError(f"Drills have no children: {edit.path!r}")
        attr = _THROWING_LEVELS[depth]

        def append(parent: Any) -> Any:
            children = getattr(parent, attr)
            if depth == 0:
                child = ThrowingDay(day=len(children) + 1)
            elif depth == 1:
                child = Section()
            else:
                child = Drill()
            return replace(parent, **{attr: children + (child,)})

        return _update_nested(program, _THROWING_LEVELS, tuple(edit.path), append)

    if isinstance(edit, RemoveChild):
        depth = len(edit.path)
        if not 1 <= depth <= 3:
            raise InvalidEditError(f"Invalid removal path: {edit.path!r}")
        parent_path, index = tuple(edit.path[:-1]), edit.path[-1]
        attr = _THROWING_LEVELS[depth - 1]
        return _update_nested(
            program,
            _THROWING_LEVELS,
            parent_path,
            lambda parent: replace(
                parent, **{attr: _remove_at(getattr(parent, attr), index, attr[:-1])}
            ),
        )

    raise TypeError(f"Unsupported edit: {edit!r}")


# ---------------------------------------------------------------------------
# Lifting
# ---------------------------------------------------------------------------

def _update_day(program: LiftingProgram, day_key: PathPart, fn: Callable[[LiftingDay], LiftingDay]) -> LiftingProgram:
    if program.get_day(day_key) is None:
        raise InvalidEditError(f"No lifting day with key {day_key!r}")
    return replace(program, days=tuple(
        (key, fn(day) if key == day_key else day) for key, day in program.days
    ))


def _apply_lifting(program: LiftingProgram, edit: Edit) -> LiftingProgram:
    path = tuple(edit.path)

    if isinstance(edit, SetField):
        value = _text(edit.value)
        if len(path) == 2 and path[1] == "name":
            return _update_day(program, path[0], lambda day: replace(day, name=value))
        if len(path) == 3:
            day_key, index, name = path
            name = _FIELD_ALIASES.get(name, name)
            if name not in _EXERCISE_FIELDS:
                raise InvalidEditError(f"Can't set {path[2]!r} on an exercise")
            return _update_day(program, day_key, lambda day: replace(
                day,
                exercises=_replace_at(
                    day.exercises, index, lambda ex: replace(ex, **{name: value}), "exercise"
                ),
            ))
        raise InvalidEditError(f"Invalid field path: {path!r}")

    if isinstance(edit, AppendChild):
        if not path:
            return replace(program, days=program.days + ((new_day_key(), LiftingDay()),))
        if len(path) == 1:
            return _update_day(
                program, path[0], lambda day: replace(day, exercises=day.exercises + (Exercise(),))
            )
        raise InvalidEditError(f"Exercises have no children: {path!r}")

    if isinstance(edit, RemoveChild):
        if len(path) == 1:
            if program.get_day(path[0]) is None:
                raise InvalidEditError(f"No lifting day with key {path[0]!r}")
            return replace(program, days=tuple(
                (key, day) for key, day in program.days if key != path[0]
            ))
        if len(path) == 2:
            day_key, index = path
            return _update_day(program, day_key, lambda day: replace(
                day, exercises=_remove_at(day.exercises, index, "exercise")
            ))
        raise InvalidEditError(f"Invalid removal path: {path!r}")

    raise TypeError(f"Unsupported edit: {edit!r}")
