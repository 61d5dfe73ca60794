"""Plan, apply and report documentation edits across files."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import PatchConfig
from .fields import locate_field
from .gate import GateDecision, decide
from .resolver import resolve_insertion
from .sanitize import sanitize_doc
from .schema import (
    FieldDoc,
    FileReport,
    FileStatus,
    FunctionDoc,
    GeneratedDoc,
    HarvestedItem,
    ItemAction,
    ItemKind,
    ItemOutcome,
    RunReport,
    StructDoc,
)
from .structured import Edit
from .syntax import CommentStyle, LineTable, approximate_line, find_declaration_line, locate_struct_body
from .tools.patch import EditPlan, PatchError, _emit_patch_event, patch_file, read_source

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class DocumentedItem:
    """A harvested item paired with its generated documentation (if any)."""

    item: HarvestedItem
    doc: Optional[GeneratedDoc] = None


class RunLog:
    """Append-only record of per-item outcomes for one file."""

    def __init__(self) -> None:
        self._outcomes: list[ItemOutcome] = []

    def __len__(self) -> int:
        return len(self._outcomes)

    def record(
        self,
        fqpath: str,
        kind: ItemKind,
        file: str,
        action: ItemAction,
        *,
        had_existing_doc: bool = False,
        doc: str = "",
        reason: str | None = None,
    ) -> ItemOutcome:
        outcome = ItemOutcome(
            fqpath=fqpath,
            kind=kind,
            file=file,
            action=action,
            had_existing_doc=had_existing_doc,
            doc=doc,
            reason=reason,
        )
        self._outcomes.append(outcome)
        return outcome

    def outcomes(self, *, failure: str | None = None) -> list[ItemOutcome]:
        """Return recorded outcomes; with ``failure`` planned edits become failures."""
        if failure is None:
            return list(self._outcomes)
        return [
            outcome.model_copy(update={"action": ItemAction.FAILED, "reason": failure}) if outcome.edited else outcome
            for outcome in self._outcomes
        ]


def select_items(
    items: Iterable[DocumentedItem],
    only: Sequence[str] = (),
    limit: int | None = None,
) -> list[DocumentedItem]:
    """Apply the ``only`` symbol filter and the ``limit`` cap, keeping order.

    A filter entry matches an item's fully qualified path, its simple name,
    or a ``::``-separated suffix of its path.
    """
    wanted = {symbol.strip() for symbol in only if symbol and symbol.strip()}
    selected: list[DocumentedItem] = []
    for entry in items:
        if limit is not None and len(selected) >= limit:
            break
        if wanted and not _matches(entry.item, wanted):
            continue
        selected.append(entry)
    return selected


def _matches(item: HarvestedItem, wanted: set[str]) -> bool:
    if item.fqpath in wanted or (item.name and item.name in wanted):
        return True
    return any(item.fqpath.endswith(f"::{symbol}") for symbol in wanted)


class _FilePlanner:
    """Builds the edit plan for one file against one immutable snapshot."""

    def __init__(self, label: str, source: str, config: PatchConfig, log: RunLog) -> None:
        self.label = label
        self.table = LineTable(source)
        self.config = config
        self.style: CommentStyle = config.style.comment_style()
        self.plan = EditPlan(label)
        self.log = log

    def plan_entry(self, entry: DocumentedItem) -> None:
        item = entry.item
        if item.kind is ItemKind.FUNCTION:
            self._plan_function(item, entry.doc)
        elif item.kind is ItemKind.STRUCT:
            self._plan_struct(item, entry.doc)
        else:
            self._drop(item.fqpath, item.kind, item.had_doc(), "fields are documented through their struct")

    def _plan_function(self, item: HarvestedItem, doc: GeneratedDoc | None) -> None:
        had_doc = item.had_doc()
        if not isinstance(doc, FunctionDoc):
            self._drop(item.fqpath, item.kind, had_doc, "no generated documentation")
            return
        decision = decide(had_doc, self.config.overwrite)
        if not decision.produces_edit:
            self._skip(item.fqpath, item.kind, had_doc)
            return
        declaration = self._declaration_line(item)
        if declaration is None:
            self._drop(item.fqpath, item.kind, had_doc, "declaration not found near span")
            return
        self._place(item.fqpath, item.kind, declaration, decision, doc.text, had_doc)

    def _plan_struct(self, item: HarvestedItem, doc: GeneratedDoc | None) -> None:
        had_doc = item.had_doc()
        if not isinstance(doc, StructDoc):
            self._drop(item.fqpath, item.kind, had_doc, "no generated documentation")
            return
        declaration = self._declaration_line(item)
        if declaration is None:
            self._drop(item.fqpath, item.kind, had_doc, "declaration not found near span")
            for field in doc.fields:
                self._drop(f"{item.fqpath}::{field.name}", ItemKind.FIELD, False, "declaration not found near span")
            return

        if doc.summary is None:
            self._drop(item.fqpath, item.kind, had_doc, "missing struct summary")
        else:
            decision = decide(had_doc, self.config.overwrite)
            if decision.produces_edit:
                self._place(item.fqpath, item.kind, declaration, decision, doc.summary, had_doc)
            else:
                self._skip(item.fqpath, item.kind, had_doc)

        if doc.fields:
            self._plan_fields(item, declaration, doc.fields)

    def _plan_fields(self, item: HarvestedItem, declaration: int, fields: Sequence[FieldDoc]) -> None:
        body = locate_struct_body(self.table, declaration, item.body_text)
        seen: set[str] = set()
        for field in fields:
            label = f"{item.fqpath}::{field.name}"
            if body is None:
                self._drop(label, ItemKind.FIELD, False, "struct body not found")
                continue
            if field.name in seen:
                self._drop(label, ItemKind.FIELD, False, "duplicate field documentation")
                continue
            seen.add(field.name)
            location = locate_field(body.text, field.name)
            if location is None:
                LOGGER.debug("Field %s not found in %s", field.name, item.fqpath)
                self._drop(label, ItemKind.FIELD, False, "field not found in struct body")
                continue
            line = body.first_line + location.line_index
            window = resolve_insertion(
                self.table,
                line,
                ItemKind.FIELD,
                style=self.style,
                floor=body.floor,
                indentation=location.indentation,
                separate=False,
            )
            decision = decide(window.existing_block, self.config.overwrite)
            if not decision.produces_edit:
                self._skip(label, ItemKind.FIELD, True)
                continue
            self._place(
                label,
                ItemKind.FIELD,
                line,
                decision,
                field.doc,
                window.existing_block,
                floor=body.floor,
                indentation=location.indentation,
            )

    def _place(
        self,
        label: str,
        kind: ItemKind,
        declaration: int,
        decision: GateDecision,
        raw_doc: str,
        had_doc: bool,
        *,
        floor: int = 0,
        indentation: str | None = None,
    ) -> None:
        window = resolve_insertion(
            self.table,
            declaration,
            kind,
            style=self.style,
            floor=floor,
            indentation=indentation,
            separate=self.config.separate_items and kind is not ItemKind.FIELD,
        )
        if window.existing_block and decision is GateDecision.INSERT:
            decision = decide(True, self.config.overwrite)
            if not decision.produces_edit:
                self._skip(label, kind, True)
                return
        block = sanitize_doc(raw_doc, style=self.style)
        if not block:
            self._drop(label, kind, had_doc, "documentation empty after sanitising")
            return
        replacing = window.existing_block
        self.plan.add(
            Edit(
                path=self.label,
                start=window.start,
                end=window.end,
                text=block,
                indentation=window.indentation,
                leading_blank=window.leading_blank,
                newline=self.table.newline,
                item=label,
                action="replace" if replacing else "insert",
            )
        )
        self.log.record(
            label,
            kind,
            self.label,
            ItemAction.REPLACED if replacing else ItemAction.INSERTED,
            had_existing_doc=had_doc or replacing,
            doc=block,
        )

    def _declaration_line(self, item: HarvestedItem) -> int | None:
        approx = approximate_line(self.table, start_line=item.span.start_line, start_byte=item.span.start_byte)
        return find_declaration_line(self.table, approx, item.kind, signature=item.signature or None)

    def _skip(self, label: str, kind: ItemKind, had_doc: bool) -> None:
        self.log.record(label, kind, self.label, ItemAction.SKIPPED, had_existing_doc=had_doc, reason="existing documentation")

    def _drop(self, label: str, kind: ItemKind, had_doc: bool, reason: str) -> None:
        self.log.record(label, kind, self.label, ItemAction.DROPPED, had_existing_doc=had_doc, reason=reason)


def plan_file(
    label: str,
    source: str,
    entries: Sequence[DocumentedItem],
    config: PatchConfig,
    log: RunLog,
) -> EditPlan:
    """Plan every edit for one file's snapshot, recording outcomes in ``log``."""
    planner = _FilePlanner(label, source, config, log)
    for entry in entries:
        planner.plan_entry(entry)
    _emit_patch_event("file_planned", path=label, items=len(entries), edits=len(planner.plan))
    return planner.plan


def process_file(
    label: str,
    entries: Sequence[DocumentedItem],
    config: PatchConfig,
    *,
    root: Path | None = None,
) -> tuple[FileReport, List[ItemOutcome]]:
    """Read, plan, apply and (in write mode) store one file.

    Failures are confined to the file: its planned edits are reported as
    failed and nothing is written.
    """
    path = _resolve_path(label, root)
    log = RunLog()
    try:
        original, source = read_source(path)
    except PatchError as error:
        LOGGER.warning("Skipping %s: %s", label, error)
        for entry in entries:
            log.record(entry.item.fqpath, entry.item.kind, label, ItemAction.FAILED, reason=str(error))
        return FileReport(file=label, status=FileStatus.FAILED, error=str(error)), log.outcomes()

    try:
        plan = plan_file(label, source, entries, config, log)
        result = patch_file(path, original, plan, write=config.write)
    except PatchError as error:
        LOGGER.warning("Failed to patch %s: %s", label, error)
        return (
            FileReport(file=label, status=FileStatus.FAILED, error=str(error)),
            log.outcomes(failure=str(error)),
        )

    if not result.edits:
        status = FileStatus.UNCHANGED
    elif config.write:
        status = FileStatus.PATCHED if result.written else FileStatus.UNCHANGED
    else:
        status = FileStatus.DRY_RUN
    LOGGER.info("%s: %s (%d edit(s))", label, status.value, result.edits)
    return FileReport(file=label, status=status, edits=result.edits), log.outcomes()


def run(
    items: Iterable[DocumentedItem],
    config: PatchConfig,
    *,
    root: Path | None = None,
) -> RunReport:
    """Patch every file referenced by ``items`` and summarise the run.

    Files are processed concurrently; results are merged in path order.
    """
    selected = select_items(items, config.only, config.limit)
    by_file: dict[str, list[DocumentedItem]] = {}
    for entry in selected:
        by_file.setdefault(entry.item.file, []).append(entry)

    report = RunReport(write=config.write, overwrite=config.overwrite)
    if not by_file:
        return report

    workers = max(1, min(config.workers, len(by_file)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            label: executor.submit(process_file, label, entries, config, root=root)
            for label, entries in by_file.items()
        }
        for label in sorted(futures):
            file_report, outcomes = futures[label].result()
            report.files.append(file_report)
            report.items.extend(outcomes)

    _emit_patch_event("run_finished", files=len(report.files), failed=len(report.failed_files), counts=report.counts())
    return report


def _resolve_path(label: str, root: Path | None) -> Path:
    path = Path(label)
    if root is not None and not path.is_absolute():
        path = root / path
    return path


__all__ = [
    "DocumentedItem",
    "RunLog",
    "plan_file",
    "process_file",
    "run",
    "select_items",
]
