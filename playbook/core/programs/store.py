"""
Program document store.

Mediates between program documents in the persistent store and the
editors working on them. One document per (player, discipline); every
save replaces the whole document, so a reader never sees half of one
save and half of another.
"""

import logging
from typing import Optional, Union

from ..errors import StoreWriteError, ValidationError, WriteResult
from ..store import DocumentSnapshot, DocumentStore, Subscription, program_path
from .models import Discipline, ProgramDocument, program_from_document


logger = logging.getLogger(__name__)


class ProgramSubscription:
    """
    Live stream of full program snapshots for one player and discipline.

    Wraps a store subscription and turns each document snapshot into a
    program. An absent document comes through as the discipline's
    default skeleton, so the first value is always usable.
    """

    def __init__(
        self,
        subscription: Subscription[DocumentSnapshot],
        discipline: Discipline,
    ) -> None:
        self._subscription = subscription
        self._discipline = discipline

    @property
    def discipline(self) -> Discipline:
        return self._discipline

    def __aiter__(self) -> "ProgramSubscription":
        return self

    async def __anext__(self) -> ProgramDocument:
        snapshot = await self._subscription.__anext__()
        return program_from_document(self._discipline, snapshot.data)

    def close(self) -> None:
        self._subscription.close()

    async def __aenter__(self) -> "ProgramSubscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class ProgramDocumentStore:
    """
    Reads, watches and saves program documents.

    The store handle is injected, so tests and local development run
    against the in-memory store and production runs against Snowflake
    without this class knowing the difference.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def subscribe(
        self,
        player_id: str,
        discipline: Union[Discipline, str],
    ) -> ProgramSubscription:
        """Subscribe to a player's program. The caller closes the stream."""
        discipline = Discipline.parse(discipline)
        path = program_path(player_id, discipline.value)
        logger.debug("Subscribing to program", extra={"path": path})
        return ProgramSubscription(self._store.subscribe(path), discipline)

    async def load(
        self,
        player_id: str,
        discipline: Union[Discipline, str],
    ) -> ProgramDocument:
        """Read the current program once (default skeleton if none saved)."""
        discipline = Discipline.parse(discipline)
        data = await self._store.get(program_path(player_id, discipline.value))
        return program_from_document(discipline, data)

    async def save(self, player_id: str, program: ProgramDocument) -> WriteResult:
        """
        Replace the stored program with this one.

        Store failures are returned, not raised, so the caller's working
        copy is left exactly as it was and the save can be retried.
        """
        if not player_id:
            raise ValidationError("player_id is required")

        path = program_path(player_id, program.discipline.value)

        try:
            await self._store.set(path, program.to_document())
        except StoreWriteError as e:
            logger.warning(
                "Program save failed",
                extra={"path": path, "error": str(e)},
            )
            return WriteResult.failure(e)

        logger.info("Program saved", extra={"path": path})
        return WriteResult.success()


def describe_program(program: Optional[ProgramDocument]) -> str:
    """Short human-readable summary, used in log messages."""
    if program is None:
        return "none"
    return f"{program.discipline.value} program with {len(program.days)} day(s)"
