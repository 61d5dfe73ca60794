"""Overwrite gate deciding whether an item gets an edit at all."""

from __future__ import annotations

from enum import Enum


class GateDecision(str, Enum):
    """Outcome of the overwrite gate for one item."""

    SKIP = "skip"
    INSERT = "insert"
    REPLACE = "replace"

    @property
    def produces_edit(self) -> bool:
        return self is not GateDecision.SKIP


def decide(has_existing_doc: bool, overwrite: bool) -> GateDecision:
    """Map existing-documentation state and the overwrite flag to a decision."""
    if not has_existing_doc:
        return GateDecision.INSERT
    if overwrite:
        return GateDecision.REPLACE
    return GateDecision.SKIP


__all__ = ["GateDecision", "decide"]
