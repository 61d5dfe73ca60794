from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
import yaml

from docpatch.config import (
    DEFAULT_CONFIG_TEMPLATE,
    ConfigError,
    PatchConfig,
    load_config,
    write_default_config,
)


def test_missing_file_yields_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "docpatch.yaml")

    assert config == PatchConfig()
    assert not config.write
    assert not config.overwrite
    assert config.separate_items


def test_load_config_reads_yaml_and_style(tmp_path: Path) -> None:
    path = tmp_path / "docpatch.yaml"
    path.write_text(
        textwrap.dedent(
            """
            write: true
            workers: 2
            only: ["crate::net::connect"]
            style:
              comment_prefix: "//!"
              fence_language: ""
            """
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.write
    assert config.workers == 2
    assert config.only == ["crate::net::connect"]
    style = config.style.comment_style()
    assert style.comment_prefix == "//!"
    assert style.fence_language == ""
    assert style.attribute_prefixes == ("#[",)
    assert style.inner_attribute_prefixes == ("#![",)
    assert not style.is_attribute("#![allow(dead_code)]")


@pytest.mark.parametrize(
    "body",
    [
        "- not\n- a mapping\n",
        "unknown_key: 1\n",
        "workers: 0\n",
        "write: [unclosed\n",
        "style:\n  comment_prefix: ''\n",
    ],
)
def test_invalid_configuration_raises(tmp_path: Path, body: str) -> None:
    path = tmp_path / "docpatch.yaml"
    path.write_text(body, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(path)


def test_default_config_round_trips(tmp_path: Path) -> None:
    path = write_default_config(tmp_path / "nested" / "docpatch.yaml")

    assert yaml.safe_load(path.read_text(encoding="utf-8")) == DEFAULT_CONFIG_TEMPLATE
    assert load_config(path) == PatchConfig()


def test_write_default_config_refuses_to_clobber(tmp_path: Path) -> None:
    path = tmp_path / "docpatch.yaml"
    path.write_text("write: true\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        write_default_config(path)

    write_default_config(path, force=True)
    assert not load_config(path).write
