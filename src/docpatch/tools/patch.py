"""Edit planning and byte-level patch application with guard rails."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Sequence

from ..structured import Edit


class PatchError(RuntimeError):
    """Raised when an edit plan fails validation or application."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class EditConflictError(PatchError):
    """Raised when two edits planned for the same file overlap."""


class SourceReadError(PatchError):
    """Raised when a source file cannot be read or decoded."""


TELEMETRY_LOGGER = logging.getLogger("docpatch.telemetry")
LOGGER = logging.getLogger(__name__)


def _serialise_event_value(value: Any) -> Any:
    """Convert telemetry payload values into JSON-friendly representations."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def _emit_patch_event(event: str, **fields: Any) -> None:
    """Log structured telemetry events while planning and applying edits."""
    if not TELEMETRY_LOGGER.isEnabledFor(logging.INFO):
        return
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


def _describe(edit: Edit) -> dict[str, Any]:
    return {"item": edit.item, "start": edit.start, "end": edit.end, "action": edit.action}


class EditPlan:
    """Edits destined for one file, applied in descending original offset."""

    def __init__(self, path: str, edits: Iterable[Edit] = ()) -> None:
        self.path = path
        self._edits: list[Edit] = []
        for edit in edits:
            self.add(edit)

    def add(self, edit: Edit) -> None:
        if edit.path != self.path:
            raise PatchError(
                f"Edit for {edit.path} added to plan for {self.path}.",
                details={"edit": _describe(edit)},
            )
        if edit.start < 0 or edit.end < edit.start:
            raise PatchError(f"Invalid edit range [{edit.start}, {edit.end}).", details={"edit": _describe(edit)})
        self._edits.append(edit)

    def __len__(self) -> int:
        return len(self._edits)

    def __iter__(self) -> Iterator[Edit]:
        return iter(self._edits)

    def validate(self) -> None:
        """Raise :class:`EditConflictError` when any two edits interfere.

        Edits conflict when their ranges intersect, when an insertion falls
        strictly inside a replaced range, or when both are anchored at the
        same offset.
        """
        ascending = sorted(self._edits, key=lambda edit: (edit.start, edit.end))
        for previous, current in zip(ascending, ascending[1:]):
            if current.start == previous.start or current.start < previous.end:
                raise EditConflictError(
                    f"Overlapping edits in {self.path}: {previous.item or '?'} and {current.item or '?'}.",
                    details={"path": self.path, "edits": [_describe(previous), _describe(current)]},
                )

    def ordered(self) -> list[Edit]:
        """Validated edits sorted by descending original start offset."""
        self.validate()
        return sorted(self._edits, key=lambda edit: (edit.start, edit.end), reverse=True)


def apply_edit_plan(original: bytes, plan: EditPlan | Sequence[Edit]) -> bytes:
    """Apply ``plan`` to ``original`` and return the new content.

    Offsets are always interpreted against ``original``; applying the highest
    offset first keeps every lower offset valid without bookkeeping.
    """
    if not isinstance(plan, EditPlan):
        edits = list(plan)
        plan = EditPlan(edits[0].path if edits else "", edits)
    ordered = plan.ordered()
    if not ordered:
        return original
    buffer = bytearray(original)
    for edit in ordered:
        if edit.end > len(original):
            raise PatchError(
                f"Edit {edit.item or '?'} ends at {edit.end}, past end of {plan.path} ({len(original)} bytes).",
                details={"path": plan.path, "edit": _describe(edit)},
            )
        buffer[edit.start : edit.end] = edit.render().encode("utf-8")
    _emit_patch_event("plan_applied", path=plan.path, edits=len(ordered), bytes_before=len(original), bytes_after=len(buffer))
    return bytes(buffer)


def read_source(path: Path) -> tuple[bytes, str]:
    """Read ``path`` once, returning raw bytes and their UTF-8 text."""
    try:
        data = path.read_bytes()
    except OSError as error:
        raise SourceReadError(f"Failed to read {path}: {error}", details={"path": path.as_posix()}) from error
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as error:
        raise SourceReadError(f"{path} is not valid UTF-8: {error}", details={"path": path.as_posix()}) from error
    return data, text


@dataclass(slots=True)
class PatchResult:
    """Outcome of applying one file's edit plan."""

    path: Path
    original: bytes
    content: bytes
    edits: int
    written: bool = False

    @property
    def changed(self) -> bool:
        return self.content != self.original


def patch_file(path: Path, original: bytes, plan: EditPlan, *, write: bool = False) -> PatchResult:
    """Apply ``plan`` and, in write mode, store the result once.

    Files without planned edits are never written.
    """
    content = apply_edit_plan(original, plan)
    result = PatchResult(path=path, original=original, content=content, edits=len(plan))
    if write and len(plan) and result.changed:
        try:
            path.write_bytes(content)
        except OSError as error:
            raise PatchError(f"Failed to write {path}: {error}", details={"path": path.as_posix()}) from error
        result.written = True
        LOGGER.debug("Wrote %d edit(s) to %s", len(plan), path)
    _emit_patch_event("file_patched", path=path, edits=len(plan), written=result.written)
    return result


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
