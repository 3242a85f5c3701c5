"""Shared fixtures: small cargo workspaces written to tmp_path."""

from pathlib import Path
from textwrap import dedent

import pytest


ROOT_MANIFEST = dedent("""
    [workspace]
    members = ["services/api", "services/worker", "crates/*"]
    exclude = ["scratch"]
    resolver = "2"

    [workspace.dependencies]
    serde = { version = "1.0", features = ["derive"] }
    tokio = "1"
    shared = { path = "crates/shared" }
""")

API_MANIFEST = dedent("""
    [package]
    name = "api"
    version = "0.1.0"
    edition = "2021"

    [dependencies]
    serde = { workspace = true }
    tokio = { workspace = true, features = ["full"] }
    anyhow = "1.0"
    shared = { workspace = true }
    util = { path = "../../crates/util", optional = true }
    worker = { path = "../worker" }

    [features]
    default = ["util", "shared/extra"]
    extras = ["dep:util", "anyhow/backtrace"]
    tracing = []
""")

WORKER_MANIFEST = dedent("""
    [package]
    name = "worker"
    version = "0.1.0"
    edition = "2021"

    [dependencies]
    serde = "1.0"
    helpers = { path = "../../libs/helpers" }
""")

SHARED_MANIFEST = dedent("""
    [package]
    name = "shared"
    version = "0.1.0"
    edition = "2021"

    [dependencies]
    serde = { workspace = true }

    [features]
    extra = []
""")

UTIL_MANIFEST = dedent("""
    [package]
    name = "util"
    version = "0.1.0"
    edition = "2021"

    [dependencies]
    shared = { path = "../shared" }
""")

HELPERS_MANIFEST = dedent("""
    [package]
    name = "helpers"
    version = "0.1.0"
    edition = "2021"
""")

LOCKFILE = dedent("""
    version = 3

    [[package]]
    name = "anyhow"
    version = "1.0.75"
    source = "registry+https://github.com/rust-lang/crates.io-index"
    checksum = "a4668cab20f66d8d020e1fbc0ebe47217433c1b6c8f2040faf858554e394ace6"

    [[package]]
    name = "api"
    version = "0.1.0"
    dependencies = ["anyhow", "serde", "shared", "tokio", "util", "worker"]

    [[package]]
    name = "serde"
    version = "1.0.190"
    source = "registry+https://github.com/rust-lang/crates.io-index"
    checksum = "91d3c334ca1ee894a2c6f6ad698fe8c435b76d504b13d436f0685d648d6d96f7"

    [[package]]
    name = "shared"
    version = "0.1.0"
    dependencies = ["serde"]

    [[package]]
    name = "tokio"
    version = "1.33.0"
    source = "registry+https://github.com/rust-lang/crates.io-index"
    checksum = "4f38200e3ef7995e5ef13baec2f432a6da0aa9ac495b2c0e8f3b7eec2c92d653"

    [[package]]
    name = "util"
    version = "0.1.0"
    dependencies = ["shared"]

    [[package]]
    name = "worker"
    version = "0.1.0"
    dependencies = ["helpers", "serde"]
""")


def write_files(root: Path, files: dict) -> Path:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def workspace_files():
    """File contents of the sample workspace, keyed by relative path."""
    return {
        "Cargo.toml": ROOT_MANIFEST,
        "Cargo.lock": LOCKFILE,
        "services/api/Cargo.toml": API_MANIFEST,
        "services/api/src/main.rs": "fn main() { println!(\"api\"); }\n",
        "services/worker/Cargo.toml": WORKER_MANIFEST,
        "crates/shared/Cargo.toml": SHARED_MANIFEST,
        "crates/util/Cargo.toml": UTIL_MANIFEST,
        "libs/helpers/Cargo.toml": HELPERS_MANIFEST,
    }


@pytest.fixture
def cargo_workspace(tmp_path, workspace_files):
    """A workspace with two services, two in-repo crates and one extra local lib."""
    workspace = tmp_path / "repo"
    workspace.mkdir()
    return write_files(workspace, workspace_files)
