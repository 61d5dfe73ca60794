"""Typed records exchanged with the harvester, the generator and report writers."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

LOGGER = logging.getLogger(__name__)


class RecordModel(BaseModel):
    """Base Pydantic model that tolerates extra harvester keys."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ItemKind(str, Enum):
    """Documentable unit kinds understood by the patch engine."""

    FUNCTION = "function"
    STRUCT = "struct"
    FIELD = "field"


_KIND_ALIASES = {"fn": ItemKind.FUNCTION, "func": ItemKind.FUNCTION, "method": ItemKind.FUNCTION}


class Span(RecordModel):
    """Line (1-based) and byte (0-based) range in the original file content."""

    start_line: Optional[int] = None
    end_line: Optional[int] = None
    start_byte: Optional[int] = None
    end_byte: Optional[int] = None


class HarvestedItem(RecordModel):
    """One documentable unit produced by the external harvester."""

    kind: ItemKind
    file: str = Field(validation_alias=AliasChoices("file", "file_path"))
    fqpath: str = Field(validation_alias=AliasChoices("fqpath", "fully_qualified_name"))
    name: str = Field(default="", validation_alias=AliasChoices("name", "simple_name"))
    visibility: str = ""
    signature: str = ""
    span: Span = Field(default_factory=Span)
    doc: Optional[str] = Field(default=None, validation_alias=AliasChoices("doc", "existing_doc"))
    body_text: Optional[str] = None
    callers: Optional[List[str]] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return _KIND_ALIASES.get(lowered, lowered)
        return value

    def had_doc(self) -> bool:
        """Return True when the harvester saw non-blank documentation."""
        return bool(self.doc and self.doc.strip())


class FunctionDoc(RecordModel):
    """Generated documentation for a function: one opaque text block."""

    text: str


class FieldDoc(RecordModel):
    """Generated documentation for one named struct field."""

    name: str
    doc: str


class StructDoc(RecordModel):
    """Generated documentation for a struct and, optionally, its fields."""

    summary: Optional[str] = Field(default=None, validation_alias=AliasChoices("summary", "struct_doc"))
    fields: List[FieldDoc] = Field(default_factory=list)


GeneratedDoc = Union[FunctionDoc, StructDoc]


def parse_struct_doc(raw: Any) -> StructDoc:
    """Coerce an untrusted struct generation result into :class:`StructDoc`.

    Malformed field entries are dropped individually; text that is not JSON
    becomes the summary with no field docs; a blank summary becomes ``None``.
    """
    if isinstance(raw, StructDoc):
        return raw
    payload: Any = raw
    if isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except ValueError:
            LOGGER.debug("Struct documentation is not JSON; using raw text as summary")
            return StructDoc(summary=_clean_summary(raw))
    if not isinstance(payload, Mapping):
        return StructDoc(summary=_clean_summary(payload if isinstance(payload, str) else None))

    summary_raw = payload.get("struct_doc", payload.get("summary"))
    summary = _clean_summary(summary_raw if isinstance(summary_raw, str) else None)

    fields: list[FieldDoc] = []
    raw_fields = payload.get("fields")
    if isinstance(raw_fields, list):
        for entry in raw_fields:
            try:
                fields.append(FieldDoc.model_validate(entry))
            except ValidationError:
                LOGGER.debug("Dropping malformed field documentation entry: %r", entry)
    return StructDoc(summary=summary, fields=fields)


def parse_function_doc(raw: Any) -> FunctionDoc | None:
    """Coerce a function generation result into :class:`FunctionDoc`."""
    if isinstance(raw, FunctionDoc):
        return raw
    if isinstance(raw, str):
        return FunctionDoc(text=raw)
    if isinstance(raw, Mapping):
        for key in ("text", "doc", "llm_doc"):
            value = raw.get(key)
            if isinstance(value, str):
                return FunctionDoc(text=value)
    return None


def parse_generated_doc(kind: ItemKind, raw: Any) -> GeneratedDoc | None:
    """Dispatch ``raw`` to the parser matching ``kind``."""
    if raw is None:
        return None
    if kind is ItemKind.STRUCT:
        return parse_struct_doc(raw)
    return parse_function_doc(raw)


def _clean_summary(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


class ItemAction(str, Enum):
    """What the engine did with one item."""

    INSERTED = "inserted"
    REPLACED = "replaced"
    SKIPPED = "skipped"
    DROPPED = "dropped"
    FAILED = "failed"


class FileStatus(str, Enum):
    """Per-file result of a run."""

    PATCHED = "patched"
    DRY_RUN = "dry_run"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class ItemOutcome(RecordModel):
    """Per-item entry of the run summary."""

    fqpath: str
    kind: ItemKind
    file: str
    action: ItemAction
    had_existing_doc: bool = False
    doc: str = ""
    reason: Optional[str] = None

    @property
    def edited(self) -> bool:
        return self.action in {ItemAction.INSERTED, ItemAction.REPLACED}


class FileReport(RecordModel):
    """Per-file entry of the run summary."""

    file: str
    status: FileStatus
    edits: int = 0
    error: Optional[str] = None


class RunReport(RecordModel):
    """Machine-readable summary of a run."""

    write: bool = False
    overwrite: bool = False
    files: List[FileReport] = Field(default_factory=list)
    items: List[ItemOutcome] = Field(default_factory=list)

    @property
    def failed_files(self) -> List[FileReport]:
        return [report for report in self.files if report.status is FileStatus.FAILED]

    def counts(self) -> Dict[str, int]:
        totals = {action.value: 0 for action in ItemAction}
        for outcome in self.items:
            totals[outcome.action.value] += 1
        return totals

    def to_dict(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json")
        payload["counts"] = self.counts()
        return payload


__all__ = [
    "FieldDoc",
    "FileReport",
    "FileStatus",
    "FunctionDoc",
    "GeneratedDoc",
    "HarvestedItem",
    "ItemAction",
    "ItemKind",
    "ItemOutcome",
    "RecordModel",
    "RunReport",
    "Span",
    "StructDoc",
    "parse_function_doc",
    "parse_generated_doc",
    "parse_struct_doc",
]
