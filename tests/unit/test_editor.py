"""
Unit tests for the program editor's remote/local reconciliation.

The editor never lets a remote snapshot overwrite unsaved edits. These
tests drive it with snapshots by hand (receive_remote) and through a
real subscription on the in-memory store (follow).
"""

import asyncio
import json
import logging
from dataclasses import replace

import pytest

from playbook.core.errors import ConflictPendingError, ValidationError
from playbook.core.programs import (
    AppendChild,
    ConflictResolution,
    ProgramDocumentStore,
    ProgramEditor,
    SetField,
    ThrowingProgram,
)
from playbook.core.store import BatchWrite
from playbook.infrastructure.memory import InMemoryDocumentStore


async def settle() -> None:
    """Let queued subscription deliveries run."""
    for _ in range(10):
        await asyncio.sleep(0)


def with_focus(focus: str) -> ThrowingProgram:
    program = ThrowingProgram.default()
    return replace(program, days=(replace(program.days[0], focus=focus),))


class KeySortingStore(InMemoryDocumentStore):
    """Stores documents the way Snowflake hands VARIANTs back: object keys sorted."""

    def _apply(self, documents, write) -> None:
        data = json.loads(json.dumps(write.data, sort_keys=True))
        super()._apply(documents, BatchWrite(path=write.path, data=data))


class InterruptedPrograms(ProgramDocumentStore):
    """Delivers another writer's snapshot to an editor while a save is in flight."""

    def __init__(self, store, snapshot) -> None:
        super().__init__(store)
        self.snapshot = snapshot
        self.editor = None

    async def save(self, player_id, program):
        self.editor.receive_remote(self.snapshot)
        return await super().save(player_id, program)


@pytest.fixture
def programs(store) -> ProgramDocumentStore:
    return ProgramDocumentStore(store)


@pytest.fixture
def editor(programs) -> ProgramEditor:
    editor = ProgramEditor(programs, "p1", "throwing")
    editor.receive_remote(ThrowingProgram.default())
    return editor


class TestEditing:
    """Tests for local edits in the editor."""

    def test_edit_before_anything_loaded_is_rejected(self, programs):
        editor = ProgramEditor(programs, "p1", "throwing")
        with pytest.raises(ValidationError, match="No program loaded"):
            editor.edit(SetField((0, "focus"), "Long toss"))

    def test_edit_creates_working_copy(self, editor):
        editor.edit(SetField((0, "focus"), "Long toss"))

        assert editor.has_unsaved_changes
        assert editor.view.days[0].focus == "Long toss"
        assert editor.remote == ThrowingProgram.default()

    def test_discard_changes_shows_remote(self, editor):
        editor.edit(SetField((0, "focus"), "Long toss"))

        view = editor.discard_changes()

        assert not editor.has_unsaved_changes
        assert view == ThrowingProgram.default()

    def test_snapshot_without_local_edits_replaces_view(self, editor):
        editor.receive_remote(with_focus("Bullpen"))

        assert editor.view.days[0].focus == "Bullpen"
        assert not editor.has_conflict


class TestConflicts:
    """Tests for remote changes arriving during local edits."""

    def test_remote_change_does_not_overwrite_local(self, editor):
        editor.edit(SetField((0, "focus"), "Long toss"))

        editor.receive_remote(with_focus("Bullpen"))

        assert editor.has_conflict
        assert editor.view.days[0].focus == "Long toss"
        assert editor.remote.days[0].focus == "Bullpen"

    def test_echo_of_the_base_is_not_a_conflict(self, editor):
        """Re-delivery of the snapshot we started editing from is harmless."""
        editor.edit(SetField((0, "focus"), "Long toss"))

        editor.receive_remote(ThrowingProgram.default())

        assert not editor.has_conflict

    def test_save_with_pending_conflict_is_rejected(self, editor):
        editor.edit(SetField((0, "focus"), "Long toss"))
        editor.receive_remote(with_focus("Bullpen"))

        with pytest.raises(ConflictPendingError):
            asyncio.run(editor.save())

    def test_reload_drops_local_edits(self, editor):
        editor.edit(SetField((0, "focus"), "Long toss"))
        editor.receive_remote(with_focus("Bullpen"))

        view = editor.resolve_conflict(ConflictResolution.RELOAD)

        assert not editor.has_conflict
        assert not editor.has_unsaved_changes
        assert view.days[0].focus == "Bullpen"

    def test_overwrite_keeps_local_and_saves_over_remote(self, editor, store, programs):
        editor.edit(SetField((0, "focus"), "Long toss"))
        editor.receive_remote(with_focus("Bullpen"))

        editor.resolve_conflict(ConflictResolution.OVERWRITE)
        result = asyncio.run(editor.save())

        assert result.ok
        assert not editor.has_unsaved_changes
        assert asyncio.run(programs.load("p1", "throwing")).days[0].focus == "Long toss"

    def test_conflict_from_another_writer_via_subscription(self, programs):
        """End to end: another client saves while we have unsaved edits."""
        editor = ProgramEditor(programs, "p1", "throwing")

        async def scenario():
            async with programs.subscribe("p1", "throwing") as subscription:
                task = asyncio.create_task(editor.follow(subscription))
                await settle()

                editor.edit(SetField((0, "focus"), "Long toss"))
                await programs.save("p1", with_focus("Bullpen"))
                await settle()

                task.cancel()

        asyncio.run(scenario())

        assert editor.has_conflict
        assert editor.view.days[0].focus == "Long toss"

    def test_own_save_echo_is_not_a_conflict(self, programs):
        editor = ProgramEditor(programs, "p1", "throwing")

        async def scenario():
            async with programs.subscribe("p1", "throwing") as subscription:
                task = asyncio.create_task(editor.follow(subscription))
                await settle()

                editor.edit(SetField((0, "focus"), "Long toss"))
                result = await editor.save()
                await settle()

                task.cancel()
                return result

        result = asyncio.run(scenario())

        assert result.ok
        assert not editor.has_conflict
        assert editor.view.days[0].focus == "Long toss"


    def test_echo_with_reordered_keys_is_not_a_conflict(self):
        """The store may return lifting days in key order; the echo still matches."""
        programs = ProgramDocumentStore(KeySortingStore())
        editor = ProgramEditor(programs, "p1", "lifting")

        async def scenario():
            async with programs.subscribe("p1", "lifting") as subscription:
                task = asyncio.create_task(editor.follow(subscription))
                await settle()

                editor.edit(AppendChild(()))
                editor.edit(AppendChild(()))
                result = await editor.save()
                editor.edit(SetField((editor.view.day_keys[-1], "name"), "Arms"))
                await settle()

                task.cancel()
                return result

        result = asyncio.run(scenario())

        assert result.ok
        assert not editor.has_conflict
        assert editor.view.day_keys[0] == "day1"
        assert editor.view.get_day(editor.view.day_keys[-1]).name == "Arms"

class TestSave:
    """Tests for saving the working copy."""

    def test_failed_save_keeps_local_edits(self, flaky_store):
        """A failed save changes nothing; a later successful save clears the edits."""
        programs = ProgramDocumentStore(flaky_store)
        editor = ProgramEditor(programs, "p1", "throwing")
        editor.receive_remote(ThrowingProgram.default())
        editor.edit(SetField((0, "focus"), "Long toss"))

        flaky_store.fail_writes = True
        failed = asyncio.run(editor.save())

        assert not failed.ok
        assert editor.has_unsaved_changes
        assert editor.view.days[0].focus == "Long toss"

        flaky_store.fail_writes = False
        saved = asyncio.run(editor.save())

        assert saved.ok
        assert not editor.has_unsaved_changes
        assert editor.view.days[0].focus == "Long toss"

    def test_save_without_changes_is_a_no_op(self, editor, store):
        result = asyncio.run(editor.save())

        assert result.ok
        assert asyncio.run(store.get("players/p1/programs/throwing")) is None

    def test_follow_rejects_other_discipline(self, editor, programs):
        async def scenario():
            async with programs.subscribe("p1", "lifting") as subscription:
                await editor.follow(subscription)

        with pytest.raises(ValueError, match="different discipline"):
            asyncio.run(scenario())

    def test_save_over_a_change_that_arrived_mid_flight_is_logged(self, store, caplog):
        """Last writer wins, but the replaced remote change is reported."""
        programs = InterruptedPrograms(store, with_focus("Bullpen"))
        editor = ProgramEditor(programs, "p1", "throwing")
        programs.editor = editor
        editor.receive_remote(ThrowingProgram.default())
        editor.edit(SetField((0, "focus"), "Long toss"))

        with caplog.at_level(logging.WARNING, logger="playbook.core.programs.editor"):
            result = asyncio.run(editor.save())

        assert result.ok
        assert not editor.has_conflict
        assert any(
            "replaced a remote change" in record.getMessage() for record in caplog.records
        )
        assert asyncio.run(programs.load("p1", "throwing")).days[0].focus == "Long toss"
