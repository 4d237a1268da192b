"""
Analytics join engine.

Turns a player's raw, unordered log records into chart-ready series.
Everything here is a pure function of the record list, so callers simply
re-derive on every snapshot instead of maintaining anything incrementally.
Per-player record counts are small enough that this is never a problem.

Ordering: series are sorted ascending by date with a stable sort, so
records on the same date keep the order the store delivered them in
(insertion order).
"""

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Iterable

from ..logs.models import LiftLog, LogRecord, ThrowLog, WellnessLog


SQUAT_KEYWORD = "squat"


# ---------------------------------------------------------------------------
# Series points
# ---------------------------------------------------------------------------

def _chart_point(point: Any) -> dict[str, Any]:
    data = asdict(point)
    data["date"] = point.date.isoformat()
    return data


@dataclass(frozen=True)
class WeightPoint:
    date: date
    weight: float


@dataclass(frozen=True)
class FeelPoint:
    date: date
    feel: int


@dataclass(frozen=True)
class SleepArmPoint:
    """A day with both a wellness check-in and a throwing log."""
    date: date
    sleep: float
    arm_feel: int

    def to_chart(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "sleep": self.sleep, "armFeel": self.arm_feel}


@dataclass(frozen=True)
class Dashboard:
    squat_series: tuple[WeightPoint, ...]
    throw_feel_series: tuple[FeelPoint, ...]

    def to_chart(self) -> dict[str, Any]:
        return {
            "squatSeries": [_chart_point(p) for p in self.squat_series],
            "throwFeelSeries": [_chart_point(p) for p in self.throw_feel_series],
        }


@dataclass(frozen=True)
class Reports:
    wellness_series: tuple[WellnessLog, ...]
    combined_sleep_arm_series: tuple[SleepArmPoint, ...]

    def to_chart(self) -> dict[str, Any]:
        return {
            "wellnessSeries": [record.to_record() for record in self.wellness_series],
            "combinedSleepArmSeries": [p.to_chart() for p in self.combined_sleep_arm_series],
        }


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------

def _by_date(records: Iterable[Any]) -> list:
    return sorted(records, key=lambda record: record.date)


def derive_dashboard(records: Iterable[LogRecord]) -> Dashboard:
    """
    Squat progression and throwing feel over time.

    A lift counts as a squat when its exercise name contains "squat" in
    any case ("Back Squat", "front squat", "SQUAT JUMPS").
    """
    records = list(records)

    squats = [
        WeightPoint(date=r.date, weight=r.weight)
        for r in records
        if isinstance(r, LiftLog) and SQUAT_KEYWORD in r.exercise.lower()
    ]
    throws = [
        FeelPoint(date=r.date, feel=r.feel)
        for r in records
        if isinstance(r, ThrowLog)
    ]

    return Dashboard(
        squat_series=tuple(_by_date(squats)),
        throw_feel_series=tuple(_by_date(throws)),
    )


def derive_reports(records: Iterable[LogRecord]) -> Reports:
    """
    Wellness trend plus sleep vs. arm feel.

    The sleep/arm series is an inner join of wellness and throw records
    on exact date: a check-in with no throwing log that day is dropped,
    and so is a throwing log with no check-in. A date with several
    throw logs produces one point per throw log. Use wellness_series for
    wellness-only trends.
    """
    records = list(records)

    wellness = _by_date(r for r in records if isinstance(r, WellnessLog))

    throws_by_date: dict[date, list[ThrowLog]] = {}
    for r in records:
        if isinstance(r, ThrowLog):
            throws_by_date.setdefault(r.date, []).append(r)

    combined = [
        SleepArmPoint(date=w.date, sleep=w.sleep_hours, arm_feel=t.feel)
        for w in wellness
        for t in throws_by_date.get(w.date, [])
    ]

    return Reports(
        wellness_series=tuple(wellness),
        combined_sleep_arm_series=tuple(combined),
    )
