"""
Editor session for one program document.

The editor keeps two slots:

    remote: the latest canonical document delivered by the store
    local:  the working copy with unsaved edits, or None

Incoming snapshots only ever replace remote. What the user sees is
local if there is one, otherwise remote. A save clears local only after
the store acknowledges the write.

If a snapshot arrives while local edits are pending and it isn't just
the echo of our own save, somebody else changed the document. The
editor doesn't pick a winner; it raises a conflict flag and waits for
the user to reload (drop local) or overwrite (keep local and save over
the remote copy).
"""

import logging
from enum import Enum
from typing import Optional, Union

from ..errors import ConflictPendingError, ValidationError, WriteResult
from .edits import Edit, apply_local_edit
from .models import Discipline, ProgramDocument
from .store import ProgramDocumentStore, ProgramSubscription, describe_program


logger = logging.getLogger(__name__)


class ConflictResolution(Enum):
    """How the user chose to settle a remote change during editing."""
    RELOAD = "reload"        # Discard local edits, show the remote copy
    OVERWRITE = "overwrite"  # Keep local edits; the next save wins


class ProgramEditor:
    """
    Working copy of one player's program, reconciled against the store.

    Usage:
        editor = ProgramEditor(programs, player_id, "throwing")
        async with programs.subscribe(player_id, "throwing") as stream:
            task = asyncio.create_task(editor.follow(stream))
            editor.edit(SetField((0, "focus"), "Long toss"))
            result = await editor.save()
    """

    def __init__(
        self,
        programs: ProgramDocumentStore,
        player_id: str,
        discipline: Union[Discipline, str],
    ) -> None:
        self._programs = programs
        self._player_id = player_id
        self._discipline = Discipline.parse(discipline)
        self._remote: Optional[ProgramDocument] = None
        self._local: Optional[ProgramDocument] = None
        self._base: Optional[ProgramDocument] = None
        self._in_flight: Optional[ProgramDocument] = None
        self._conflict = False

    # -----------------------------------------------------------------------
    # State
    # -----------------------------------------------------------------------

    @property
    def discipline(self) -> Discipline:
        return self._discipline

    @property
    def remote(self) -> Optional[ProgramDocument]:
        return self._remote

    @property
    def local(self) -> Optional[ProgramDocument]:
        return self._local

    @property
    def view(self) -> Optional[ProgramDocument]:
        """The document to render: local edits if any, else the remote copy."""
        return self._local if self._local is not None else self._remote

    @property
    def has_unsaved_changes(self) -> bool:
        return self._local is not None

    @property
    def has_conflict(self) -> bool:
        return self._conflict

    # -----------------------------------------------------------------------
    # Remote snapshots
    # -----------------------------------------------------------------------

    def receive_remote(self, program: ProgramDocument) -> None:
        """Handle a snapshot from the store."""
        self._remote = program

        if self._local is None:
            return

        # Our own edits or our own save coming back aren't a conflict
        if program == self._local or program == self._base or program == self._in_flight:
            return

        if not self._conflict:
            logger.warning(
                "Remote program changed while local edits are pending",
                extra={
                    "player_id": self._player_id,
                    "discipline": self._discipline.value,
                    "remote": describe_program(program),
                },
            )
        self._conflict = True

    async def follow(self, subscription: ProgramSubscription) -> None:
        """Feed every snapshot of a subscription into this editor."""
        if subscription.discipline != self._discipline:
            raise ValueError("Subscription is for a different discipline")
        async for program in subscription:
            self.receive_remote(program)

    def resolve_conflict(self, resolution: ConflictResolution) -> Optional[ProgramDocument]:
        """Settle a pending conflict and return the new view."""
        if resolution is ConflictResolution.RELOAD:
            self._local = None
            self._base = None
        else:
            self._base = self._remote
        self._conflict = False

        logger.info(
            "Program conflict resolved",
            extra={
                "player_id": self._player_id,
                "discipline": self._discipline.value,
                "resolution": resolution.value,
            },
        )
        return self.view

    def discard_changes(self) -> Optional[ProgramDocument]:
        """Drop the working copy and show the remote document again."""
        self._local = None
        self._base = None
        self._conflict = False
        return self.view

    # -----------------------------------------------------------------------
    # Local edits
    # -----------------------------------------------------------------------

    def edit(self, edit: Edit) -> ProgramDocument:
        """Apply one edit to the working copy."""
        return self._set_local(apply_local_edit(self._require_view(), edit))

    def _require_view(self) -> ProgramDocument:
        view = self.view
        if view is None:
            raise ValidationError("No program loaded yet")
        return view

    def _set_local(self, program: ProgramDocument) -> ProgramDocument:
        if self._local is None:
            self._base = self._remote
        self._local = program
        return program

    # -----------------------------------------------------------------------
    # Save
    # -----------------------------------------------------------------------

    async def save(self) -> WriteResult:
        """
        Write the working copy to the store.

        On failure nothing changes locally. On success the working copy
        is dropped, unless the user kept editing while the write was in
        flight; then the newer edits stay pending.
        """
        if self._conflict:
            raise ConflictPendingError(
                "The program changed remotely. Reload or overwrite before saving."
            )
        if self._local is None:
            return WriteResult.success()

        submitted = self._local
        self._in_flight = submitted
        try:
            result = await self._programs.save(self._player_id, submitted)
        finally:
            self._in_flight = None

        if not result.ok:
            return result

        if self._local is submitted:
            self._local = None
            self._base = None
        else:
            self._base = submitted

        if self._conflict and self._local is None:
            # The remote change arrived after this save was submitted
            logger.warning(
                "Save replaced a remote change that arrived while it was in flight",
                extra={
                    "player_id": self._player_id,
                    "discipline": self._discipline.value,
                    "superseded": describe_program(self._remote),
                },
            )
            self._conflict = False
        elif not self._conflict:
            self._remote = submitted

        return result
