"""YAML configuration for documentation patch runs."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .syntax import DEFAULT_WRAPPER_MARKERS, CommentStyle

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "docpatch.yaml"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "overwrite": False,
    "write": False,
    "workers": 4,
    "only": [],
    "limit": None,
    "separate_items": True,
    "style": {
        "comment_prefix": "///",
        "attribute_prefixes": ["#["],
        "inner_attribute_prefixes": ["#!["],
        "fence_language": "rust",
        "wrapper_markers": list(DEFAULT_WRAPPER_MARKERS),
        "strip_tags": ["think"],
    },
}


class ConfigError(ValueError):
    """Raised when a configuration file cannot be parsed or validated."""


class StyleConfig(BaseModel):
    """Comment syntax of the patched language."""

    model_config = ConfigDict(extra="forbid")

    comment_prefix: str = Field(default="///", min_length=1)
    attribute_prefixes: List[str] = Field(default_factory=lambda: ["#["])
    inner_attribute_prefixes: List[str] = Field(default_factory=lambda: ["#!["])
    fence_language: str = "rust"
    wrapper_markers: List[str] = Field(default_factory=lambda: list(DEFAULT_WRAPPER_MARKERS))
    strip_tags: List[str] = Field(default_factory=lambda: ["think"])

    def comment_style(self) -> CommentStyle:
        return CommentStyle(
            comment_prefix=self.comment_prefix,
            attribute_prefixes=tuple(self.attribute_prefixes),
            inner_attribute_prefixes=tuple(self.inner_attribute_prefixes),
            fence_language=self.fence_language,
            wrapper_markers=tuple(self.wrapper_markers),
            strip_tags=tuple(self.strip_tags),
        )


class PatchConfig(BaseModel):
    """Validated run options."""

    model_config = ConfigDict(extra="forbid")

    overwrite: bool = False
    write: bool = False
    workers: int = Field(default=4, ge=1)
    only: List[str] = Field(default_factory=list)
    limit: Optional[int] = Field(default=None, ge=0)
    separate_items: bool = True
    style: StyleConfig = Field(default_factory=StyleConfig)


def default_config_data() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def load_config(config_path: Path | None) -> PatchConfig:
    """Load ``config_path`` into :class:`PatchConfig`; defaults when absent."""
    if config_path is None or not config_path.exists():
        if config_path is not None:
            LOGGER.debug("Config %s not found; using defaults", config_path)
        return PatchConfig()

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {config_path}: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {config_path} must be a mapping at the top level.")

    try:
        return PatchConfig.model_validate(data)
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration in {config_path}: {error}") from error


def write_default_config(config_path: Path, *, force: bool = False) -> Path:
    """Persist the default configuration; refuses to clobber unless ``force``."""
    if config_path.exists() and not force:
        raise ConfigError(f"Config file already exists: {config_path}")
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(default_config_data(), handle, sort_keys=False)
    return config_path


__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_CONFIG_TEMPLATE",
    "PatchConfig",
    "StyleConfig",
    "default_config_data",
    "load_config",
    "write_default_config",
]
