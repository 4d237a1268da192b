"""
Training program documents: models, local edits, store and editor.
"""

from .editor import ConflictResolution, ProgramEditor
from .edits import AppendChild, Edit, RemoveChild, SetField, apply_local_edit, apply_local_edits
from .models import (
    Discipline,
    Drill,
    Exercise,
    LiftingDay,
    LiftingProgram,
    ProgramDocument,
    Section,
    ThrowingDay,
    ThrowingProgram,
    default_program,
    program_from_document,
)
from .store import ProgramDocumentStore, ProgramSubscription

__all__ = [
    "AppendChild",
    "ConflictResolution",
    "Discipline",
    "Drill",
    "Edit",
    "Exercise",
    "LiftingDay",
    "LiftingProgram",
    "ProgramDocument",
    "ProgramDocumentStore",
    "ProgramEditor",
    "ProgramSubscription",
    "RemoveChild",
    "Section",
    "SetField",
    "ThrowingDay",
    "ThrowingProgram",
    "apply_local_edit",
    "apply_local_edits",
    "default_program",
    "program_from_document",
]
