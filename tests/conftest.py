from __future__ import annotations

import json
import os
import subprocess
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


CONFIG_SOURCE = textwrap.dedent(
    """\
    use std::net::IpAddr;

    #[derive(Debug, Clone)]
    #[serde(rename_all = "camelCase")]
    pub struct Config {
        pub host: IpAddr,
        pub port: u16,
    }

    /// Builds the default configuration.
    pub fn default_config() -> Config {
        todo!()
    }
    fn helper() {}
    """
)


@dataclass(slots=True)
class TinyCrate:
    """Fixture payload representing a synthetic source tree plus generator artifacts."""

    root: Path
    items_path: Path
    docs_path: Path
    source_path: Path
    original: str

    def write_inputs(self, items: list[dict[str, Any]], docs: dict[str, Any]) -> None:
        self.items_path.write_text(json.dumps(items), encoding="utf-8")
        self.docs_path.write_text(json.dumps(docs), encoding="utf-8")

    def run_cli(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Invoke ``python -m docpatch.cli`` with the provided arguments."""

        env = os.environ.copy()
        pythonpath = str(SRC)
        if env.get("PYTHONPATH"):
            pythonpath = os.pathsep.join([pythonpath, env["PYTHONPATH"]])
        env["PYTHONPATH"] = pythonpath

        command = [sys.executable, "-m", "docpatch.cli", *args]
        return subprocess.run(  # noqa: S603 - command constructed from known values
            command,
            cwd=self.root,
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )


@pytest.fixture()
def tiny_crate(tmp_path: Path) -> TinyCrate:
    """Create a tiny crate with one source file and matching harvest/doc inputs."""

    crate_root = tmp_path / "tiny-crate"
    (crate_root / "src").mkdir(parents=True)
    (crate_root / "src" / "config.rs").write_text(CONFIG_SOURCE, encoding="utf-8")

    crate = TinyCrate(
        root=crate_root,
        items_path=crate_root / "items.json",
        docs_path=crate_root / "docs.json",
        source_path=crate_root / "src" / "config.rs",
        original=CONFIG_SOURCE,
    )
    crate.write_inputs(
        [
            {
                "kind": "struct",
                "file": "src/config.rs",
                "fqpath": "crate::config::Config",
                "name": "Config",
                "span": {"start_line": 3},
            },
            {
                "kind": "function",
                "file": "src/config.rs",
                "fqpath": "crate::config::default_config",
                "name": "default_config",
                "span": {"start_line": 10},
                "doc": "Builds the default configuration.",
            },
            {
                "kind": "function",
                "file": "src/config.rs",
                "fqpath": "crate::config::helper",
                "name": "helper",
                "span": {"start_line": 14},
            },
        ],
        {
            "crate::config::Config": {
                "struct_doc": "Runtime configuration.",
                "fields": [{"name": "port", "doc": "Listening port."}],
            },
            "crate::config::default_config": "Replacement text.",
            "crate::config::helper": "Internal helper.",
        },
    )
    return crate
