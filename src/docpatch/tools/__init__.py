"""Byte-level patch tooling used by the documentation pipeline."""

from .patch import (
    EditConflictError,
    EditPlan,
    PatchError,
    PatchResult,
    SourceReadError,
    apply_edit_plan,
    patch_file,
    read_source,
)

__all__ = [
    "EditConflictError",
    "EditPlan",
    "PatchError",
    "PatchResult",
    "SourceReadError",
    "apply_edit_plan",
    "patch_file",
    "read_source",
]
