"""Read harvester and generator artifacts and write run reports."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from pydantic import ValidationError
from pydantic.type_adapter import TypeAdapter

from .pipeline import DocumentedItem
from .schema import HarvestedItem, RunReport, parse_generated_doc

LOGGER = logging.getLogger(__name__)

_DOC_KEYS = ("llm_doc", "doc", "text")


class LoadError(ValueError):
    """Raised when an input artifact cannot be read or has the wrong shape."""


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as error:
        raise LoadError(f"Failed to read {path}: {error}") from error


def _parse_records(path: Path, text: str) -> List[Any]:
    """Parse a JSON array (or a single object) or, failing that, JSON lines."""
    stripped = text.strip()
    if not stripped:
        return []
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        records: list[Any] = []
        for number, line in enumerate(stripped.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as error:
                raise LoadError(f"{path}:{number}: invalid JSON line: {error}") from error
        return records
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        items = payload.get("items")
        return items if isinstance(items, list) else [payload]
    raise LoadError(f"{path} must contain a JSON array or JSON lines of objects.")


def load_harvest(path: Path) -> List[HarvestedItem]:
    """Load harvested items, skipping records that fail validation."""
    items: list[HarvestedItem] = []
    for index, record in enumerate(_parse_records(path, _read_text(path))):
        try:
            items.append(HarvestedItem.model_validate(record))
        except ValidationError as error:
            LOGGER.warning("Skipping harvest record %d in %s: %s", index, path, error.errors()[0]["msg"])
    LOGGER.debug("Loaded %d harvested item(s) from %s", len(items), path)
    return items


_DOC_MAPPING = TypeAdapter(Dict[str, Any])


def load_generated_docs(path: Path) -> Dict[str, Any]:
    """Load generated documentation keyed by fully qualified path.

    Accepts a JSON object mapping ``fqpath`` to a text or struct payload, or
    a list of records carrying ``fqpath`` plus one of ``llm_doc``/``doc``/
    ``text`` (or struct keys).
    """
    text = _read_text(path)
    try:
        payload = json.loads(text) if text.strip() else {}
    except json.JSONDecodeError:
        payload = _parse_records(path, text)
    if isinstance(payload, list):
        return _docs_from_records(path, payload)
    try:
        return _DOC_MAPPING.validate_python(payload)
    except ValidationError as error:
        raise LoadError(f"{path} must contain a JSON object keyed by fully qualified path.") from error


def _docs_from_records(path: Path, records: Iterable[Any]) -> Dict[str, Any]:
    docs: dict[str, Any] = {}
    for index, record in enumerate(records):
        if not isinstance(record, Mapping) or not isinstance(record.get("fqpath"), str):
            LOGGER.warning("Skipping documentation record %d in %s: missing fqpath", index, path)
            continue
        if "struct_doc" in record or "fields" in record:
            docs[record["fqpath"]] = {key: record[key] for key in ("struct_doc", "fields") if key in record}
            continue
        for key in _DOC_KEYS:
            if key in record:
                docs[record["fqpath"]] = record[key]
                break
        else:
            LOGGER.warning("Skipping documentation record %d in %s: no documentation text", index, path)
    return docs


def pair_documents(items: Iterable[HarvestedItem], docs: Mapping[str, Any]) -> List[DocumentedItem]:
    """Attach parsed generated documentation to each harvested item."""
    paired: list[DocumentedItem] = []
    for item in items:
        paired.append(DocumentedItem(item=item, doc=parse_generated_doc(item.kind, docs.get(item.fqpath))))
    return paired


def write_report(report: RunReport, path: Path) -> Path:
    """Write ``report`` as indented JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path


__all__ = [
    "LoadError",
    "load_generated_docs",
    "load_harvest",
    "pair_documents",
    "write_report",
]
