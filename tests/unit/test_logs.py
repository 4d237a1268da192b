"""
Unit tests for log records and the session log recorder.

The recorder's contract: staging is local and repeatable, commits
validate before touching the store, and a lifting session is written
all-or-nothing.
"""

import asyncio
from datetime import date

import pytest

from playbook.core.errors import ValidationError
from playbook.core.logs import (
    LiftLog,
    LogStream,
    SessionLogRecorder,
    ThrowLog,
    WellnessLog,
    list_logs,
    parse_log_record,
    parse_log_records,
)
from playbook.core.programs import (
    Exercise,
    LiftingDay,
    LiftingProgram,
    Section,
    ThrowingDay,
    ThrowingProgram,
)
from playbook.core.store import logs_path


FULL_CHECK_IN = {
    "overallFeel": 8,
    "armFeel": 7,
    "shoulderFeel": 6,
    "backFeel": 9,
    "legsFeel": 5,
    "sleepHours": 7.5,
}


def throwing_program() -> ThrowingProgram:
    return ThrowingProgram(days=(
        ThrowingDay(day=1, focus="Recovery", sections=(Section(title="Warm-up"),)),
        ThrowingDay(day=2, focus="Velocity"),
    ))


def lifting_program() -> LiftingProgram:
    return LiftingProgram(days=(
        ("lower", LiftingDay(name="Lower Body", exercises=(
            Exercise(name="Back Squat"),
            Exercise(name="RDL"),
            Exercise(name="Split Squat"),
        ))),
    ))


def stored_logs(store, player_id="p1"):
    return asyncio.run(store.list_documents(logs_path(player_id))).documents


@pytest.fixture
def recorder(store, today) -> SessionLogRecorder:
    return SessionLogRecorder(store, "p1", clock=lambda: today)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class TestLogRecords:
    """Tests for the stored record format."""

    def test_throw_record_has_only_its_own_fields(self, today):
        """Nothing is null-filled: a throw record has no wellness keys."""
        record = ThrowLog(date=today, day=2, focus="Velocity", feel=8).to_record()

        assert record == {
            "type": "throw", "date": "2024-05-01", "day": 2, "focus": "Velocity", "feel": 8,
        }

    def test_lift_record_round_trip(self, today):
        record = LiftLog(date=today, day_name="Lower", exercise="Back Squat", weight=225.0, reps=5)
        assert parse_log_record(record.to_record()) == record

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError, match="Unknown log type"):
            parse_log_record({"type": "swim", "date": "2024-05-01"})

    def test_malformed_record_is_rejected(self):
        with pytest.raises(ValidationError, match="Malformed throw"):
            parse_log_record({"type": "throw", "date": "2024-05-01"})

    def test_bad_records_are_skipped_in_collections(self, today):
        good = ThrowLog(date=today, day=1, focus="", feel=5)
        records = parse_log_records([
            ("a", {"type": "throw", "date": "not a date", "day": 1, "feel": 5}),
            ("b", good.to_record()),
        ])
        assert records == [good]


# ---------------------------------------------------------------------------
# Wellness
# ---------------------------------------------------------------------------

class TestWellness:
    """Tests for the daily check-in."""

    def test_commit_writes_one_record_stamped_with_today(self, recorder, store, today):
        recorder.stage_wellness(FULL_CHECK_IN)

        result = asyncio.run(recorder.commit_wellness())

        assert result.ok
        assert len(result.record_ids) == 1
        (_, data), = stored_logs(store)
        record = parse_log_record(data)
        assert isinstance(record, WellnessLog)
        assert record.date == today
        assert record.sleep_hours == 7.5
        assert recorder.staged_wellness() == {}

    def test_staging_merges_fields(self, recorder):
        recorder.stage_wellness({"overallFeel": 3})
        staged = recorder.stage_wellness({"overallFeel": 8, "notes": "sore"})
        assert staged == {"overallFeel": 8, "notes": "sore"}

    def test_unknown_field_is_rejected(self, recorder):
        with pytest.raises(ValidationError, match="Unknown wellness fields: mood"):
            recorder.stage_wellness({"mood": "great"})

    def test_missing_score_blocks_commit(self, recorder, store):
        recorder.stage_wellness({**FULL_CHECK_IN, "armFeel": None})

        with pytest.raises(ValidationError, match="armFeel is required"):
            asyncio.run(recorder.commit_wellness())
        assert stored_logs(store) == ()

    def test_out_of_range_score_blocks_commit(self, recorder, store):
        recorder.stage_wellness({**FULL_CHECK_IN, "legsFeel": 11})

        with pytest.raises(ValidationError, match="between 1 and 10"):
            asyncio.run(recorder.commit_wellness())
        assert stored_logs(store) == ()

    def test_store_failure_keeps_staged_values(self, flaky_store, today):
        recorder = SessionLogRecorder(flaky_store, "p1", clock=lambda: today)
        recorder.stage_wellness(FULL_CHECK_IN)
        flaky_store.fail_writes = True

        result = asyncio.run(recorder.commit_wellness())

        assert not result.ok
        assert recorder.staged_wellness() == FULL_CHECK_IN


# ---------------------------------------------------------------------------
# Throwing
# ---------------------------------------------------------------------------

class TestThrow:
    """Tests for logging a throwing day."""

    def test_commit_copies_day_and_focus_from_program(self, recorder, store, today):
        recorder.stage_throw(1, 9)

        result = asyncio.run(recorder.commit_throw(1, throwing_program()))

        assert result.ok
        (_, data), = stored_logs(store)
        assert parse_log_record(data) == ThrowLog(date=today, day=2, focus="Velocity", feel=9)
        assert recorder.staged_throw(1) is None

    def test_boolean_feel_is_rejected(self, recorder, store):
        recorder.stage_throw(0, True)

        with pytest.raises(ValidationError, match="whole number"):
            asyncio.run(recorder.commit_throw(0, throwing_program()))
        assert stored_logs(store) == ()

    def test_commit_without_feel_writes_nothing(self, recorder, store):
        with pytest.raises(ValidationError, match="Rate how the throwing day felt"):
            asyncio.run(recorder.commit_throw(0, throwing_program()))
        assert stored_logs(store) == ()

    def test_unknown_day_is_rejected(self, recorder, store):
        recorder.stage_throw(5, 7)
        with pytest.raises(ValidationError, match="No throwing day at position 5"):
            asyncio.run(recorder.commit_throw(5, throwing_program()))
        assert stored_logs(store) == ()


# ---------------------------------------------------------------------------
# Lifting
# ---------------------------------------------------------------------------

class TestLift:
    """Tests for logging a lifting session."""

    def test_commit_writes_one_record_per_staged_exercise(self, recorder, store):
        recorder.stage_lift("lower", {0: {"weight": 225, "reps": 5}, 2: {"weight": 95, "reps": 8}})

        result = asyncio.run(recorder.commit_lift("lower", lifting_program()))

        assert result.ok
        assert len(result.record_ids) == 2
        records = [parse_log_record(data) for _, data in stored_logs(store)]
        assert [(r.exercise, r.weight, r.reps) for r in records] == [
            ("Back Squat", 225.0, 5),
            ("Split Squat", 95.0, 8),
        ]
        assert all(r.day_name == "Lower Body" for r in records)
        assert recorder.staged_lift("lower") == {}

    def test_record_ids_match_stored_documents(self, recorder, store):
        recorder.stage_lift("lower", {0: {"weight": 135, "reps": 5}})

        result = asyncio.run(recorder.commit_lift("lower", lifting_program()))

        assert result.record_ids == tuple(doc_id for doc_id, _ in stored_logs(store))

    def test_restaging_keeps_only_latest_value(self, recorder, store):
        """Staging the same exercise twice leaves one entry with the last value."""
        recorder.stage_lift("lower", {0: {"weight": 200, "reps": 5}})
        recorder.stage_lift("lower", {0: {"weight": 225}})

        assert recorder.staged_lift("lower") == {0: {"weight": 225, "reps": 5}}

        asyncio.run(recorder.commit_lift("lower", lifting_program()))

        (_, data), = stored_logs(store)
        assert data["weight"] == 225.0

    def test_failure_mid_batch_writes_nothing(self, flaky_store, today):
        """Atomic: a rejected second write leaves zero records from the session."""
        recorder = SessionLogRecorder(flaky_store, "p1", clock=lambda: today)
        recorder.stage_lift("lower", {
            0: {"weight": 225, "reps": 5},
            1: {"weight": 185, "reps": 8},
            2: {"weight": 95, "reps": 8},
        })
        flaky_store.fail_from_write = 2

        result = asyncio.run(recorder.commit_lift("lower", lifting_program()))

        assert not result.ok
        assert stored_logs(flaky_store) == ()
        assert len(recorder.staged_lift("lower")) == 3

    def test_invalid_entry_blocks_the_whole_session(self, recorder, store):
        recorder.stage_lift("lower", {0: {"weight": 225, "reps": 5}, 1: {"weight": "heavy", "reps": 5}})

        with pytest.raises(ValidationError, match="weight for RDL must be a number"):
            asyncio.run(recorder.commit_lift("lower", lifting_program()))
        assert stored_logs(store) == ()

    def test_fractional_reps_are_rejected(self, recorder):
        recorder.stage_lift("lower", {0: {"weight": 225, "reps": 4.5}})
        with pytest.raises(ValidationError, match="whole number"):
            asyncio.run(recorder.commit_lift("lower", lifting_program()))

    def test_nothing_staged_is_rejected(self, recorder):
        with pytest.raises(ValidationError, match="Enter at least one weight"):
            asyncio.run(recorder.commit_lift("lower", lifting_program()))

    def test_unknown_exercise_position_is_rejected(self, recorder):
        recorder.stage_lift("lower", {7: {"weight": 100, "reps": 5}})
        with pytest.raises(ValidationError, match="No exercise at position 7"):
            asyncio.run(recorder.commit_lift("lower", lifting_program()))

    def test_unknown_lift_field_is_rejected(self, recorder):
        with pytest.raises(ValidationError, match="Unknown lift fields"):
            recorder.stage_lift("lower", {0: {"rpe": 8}})

    def test_non_integer_position_is_a_validation_error(self, recorder):
        with pytest.raises(ValidationError, match="must be an integer"):
            recorder.stage_lift("lower", {"first": {"weight": 100}})
        assert recorder.staged_lift("lower") == {}

    def test_rejected_staging_leaves_nothing_behind(self, recorder):
        """A bad entry late in the batch doesn't leave the earlier ones staged."""
        recorder.stage_lift("lower", {0: {"weight": 200}})

        with pytest.raises(ValidationError, match="Unknown lift fields"):
            recorder.stage_lift("lower", {0: {"weight": 225}, 1: {"reps": 8}, 2: {"rpe": 8}})

        assert recorder.staged_lift("lower") == {0: {"weight": 200}}


# ---------------------------------------------------------------------------
# Reading Logs
# ---------------------------------------------------------------------------

class TestReadingLogs:
    """Tests for listing and streaming a player's records."""

    def test_list_logs_keeps_store_order(self, store):
        first = ThrowLog(date=date(2024, 5, 2), day=1, focus="", feel=4)
        second = ThrowLog(date=date(2024, 5, 1), day=1, focus="", feel=6)

        async def scenario():
            await store.add(logs_path("p1"), first.to_record())
            await store.add(logs_path("p1"), second.to_record())
            return await list_logs(store, "p1")

        assert asyncio.run(scenario()) == [first, second]

    def test_stream_emits_on_every_commit(self, store, today):
        recorder = SessionLogRecorder(store, "p1", clock=lambda: today)

        async def scenario():
            async with LogStream(store, "p1") as stream:
                initial = await stream.__anext__()
                recorder.stage_throw(0, 7)
                await recorder.commit_throw(0, throwing_program())
                updated = await stream.__anext__()
            return initial, updated

        initial, updated = asyncio.run(scenario())

        assert initial == []
        assert len(updated) == 1
        assert updated[0].feel == 7

    def test_logs_are_per_player(self, store, today):
        SessionLogRecorder(store, "p2", clock=lambda: today).stage_throw(0, 7)
        recorder = SessionLogRecorder(store, "p1", clock=lambda: today)
        recorder.stage_throw(0, 7)
        asyncio.run(recorder.commit_throw(0, throwing_program()))

        assert asyncio.run(list_logs(store, "p2")) == []
