"""Test manifest and lock file parsing and serialization."""

from textwrap import dedent

import pytest

from cargo_prebuild.errors import ManifestIOError, ParseError
from cargo_prebuild.manifest import DependencySpec, Lockfile, Manifest
from cargo_prebuild.manifest.io import (
    dumps_lockfile,
    dumps_manifest,
    load_manifest,
    loads_lockfile,
    loads_manifest,
)


def test_dependency_spec_parsing():
    """Test bare and structured dependency specifications."""
    bare = DependencySpec.parse("1.0", "dependencies.serde")
    assert bare.is_bare
    assert bare.version == "1.0"
    assert bare.path is None

    table = DependencySpec.parse(
        {"path": "../local_a", "features": ["std"], "optional": True},
        "dependencies.local_a",
    )
    assert not table.is_bare
    assert table.path == "../local_a"
    assert table.features == ("std",)
    assert table.optional is True
    assert table.workspace is False

    inherited = DependencySpec.parse({"workspace": True}, "dependencies.foo")
    assert inherited.workspace is True
    assert inherited.to_value() == {"workspace": True}


@pytest.mark.parametrize(
    "data, field",
    [
        ({"dependencies": {"serde": {"path": 3}}}, "dependencies.serde.path"),
        ({"dependencies": {"foo": {"workspace": "true"}}}, "dependencies.foo.workspace"),
        ({"dependencies": {"foo": ["1.0"]}}, "dependencies.foo"),
        ({"dependencies": "serde"}, "dependencies"),
        ({"features": {"default": "serde"}}, "features.default"),
        ({"features": {"default": ["serde", 1]}}, "features.default[1]"),
        ({"package": ["api"]}, "package"),
        ({"workspace": {"members": "crates/*"}}, "workspace.members"),
        ({"target": {"cfg(unix)": {"dependencies": {"libc": 2}}}}, "target.cfg(unix).dependencies.libc"),
    ],
)
def test_type_errors_report_field_path(data, field):
    """Test that structurally invalid manifests raise ParseError with the field path."""
    with pytest.raises(ParseError) as exc_info:
        Manifest.from_dict(data)
    assert exc_info.value.field == field
    assert exc_info.value.code == "PARSE_ERROR"


def test_top_level_must_be_table():
    with pytest.raises(ParseError):
        Manifest.from_dict(["not", "a", "table"])


def test_invalid_toml_reports_path(tmp_path):
    """Test handling of a manifest with broken TOML syntax."""
    path = tmp_path / "Cargo.toml"
    path.write_text("[package\nname = \"broken\"\n")

    with pytest.raises(ParseError) as exc_info:
        load_manifest(path)
    assert exc_info.value.path == str(path)


def test_type_error_in_file_reports_path(tmp_path):
    path = tmp_path / "Cargo.toml"
    path.write_text("[dependencies]\nserde = 1\n")

    with pytest.raises(ParseError) as exc_info:
        load_manifest(path)
    assert exc_info.value.path == str(path)
    assert exc_info.value.field == "dependencies.serde"
    assert str(path) in exc_info.value.format()


def test_missing_manifest_is_io_error(tmp_path):
    with pytest.raises(ManifestIOError) as exc_info:
        load_manifest(tmp_path / "missing" / "Cargo.toml")
    assert isinstance(exc_info.value, OSError)
    assert "missing" in exc_info.value.path


def test_round_trip_preserves_structure():
    """Test that an unmodified manifest re-serializes to the same structure."""
    text = dedent("""
        [package]
        name = "api"
        version = "0.1.0"
        edition = "2021"
        authors = ["Platform Team"]

        [lib]
        path = "src/lib.rs"

        [dependencies]
        serde = { version = "1.0", features = ["derive", "rc"] }
        foo = { workspace = true }
        local_a = { path = "../local_a", optional = true, default-features = false }

        [target.'cfg(unix)'.dependencies]
        libc = "0.2"

        [features]
        default = ["local_a/foo", "serde"]
        full = ["dep:local_a", "default"]

        [profile.release]
        lto = true
        codegen-units = 1
    """)
    manifest = loads_manifest(text)
    reparsed = loads_manifest(dumps_manifest(manifest))

    assert reparsed.to_dict() == manifest.to_dict()
    assert reparsed.dependencies["foo"].workspace is True
    assert reparsed.to_dict()["dependencies"]["foo"]["workspace"] is True
    assert reparsed.features["default"] == ["local_a/foo", "serde"]
    assert reparsed.extra["profile"] == {"release": {"lto": True, "codegen-units": 1}}
    assert reparsed.target["cfg(unix)"]["dependencies"]["libc"].version == "0.2"


def test_to_dict_keeps_top_level_key_order():
    text = dedent("""
        [package]
        name = "api"

        [features]
        default = []

        [dependencies]
        serde = "1.0"

        [badges]
        maintenance = { status = "experimental" }
    """)
    manifest = loads_manifest(text)
    assert list(manifest.to_dict()) == ["package", "features", "dependencies", "badges"]


def test_workspace_section_round_trip():
    text = dedent("""
        [workspace]
        members = ["services/api", "crates/*"]
        exclude = ["scratch"]
        resolver = "2"

        [workspace.dependencies]
        shared = { path = "crates/shared" }

        [workspace.metadata.prebuild]
        crate-prefix = "crates/"
    """)
    manifest = loads_manifest(text)

    assert manifest.package is None
    assert manifest.workspace.members == ["services/api", "crates/*"]
    assert manifest.workspace.exclude == ["scratch"]
    assert manifest.workspace.dependencies["shared"].path == "crates/shared"
    assert manifest.workspace.metadata == {"prebuild": {"crate-prefix": "crates/"}}

    reparsed = loads_manifest(dumps_manifest(manifest))
    assert reparsed.to_dict() == manifest.to_dict()


def test_dependency_names_cover_all_tables():
    manifest = Manifest.from_dict({
        "package": {"name": "api"},
        "dependencies": {"serde": "1.0"},
        "dev-dependencies": {"insta": "1", "serde": "1.0"},
        "build-dependencies": {"cc": "1"},
        "target": {"cfg(windows)": {"dependencies": {"winapi": "0.3"}}},
    })
    assert manifest.dependency_names() == ["serde", "insta", "cc", "winapi"]
    labels = [label for label, _ in manifest.iter_dependency_tables()]
    assert labels == [
        "dependencies",
        "dev-dependencies",
        "build-dependencies",
        "target.cfg(windows).dependencies",
    ]


def test_source_text_is_kept():
    text = "[package]\nname = \"api\"\n# keep me\n"
    manifest = loads_manifest(text)
    assert manifest.source_text == text
    assert manifest.name == "api"


def test_lockfile_parsing_and_round_trip():
    text = dedent("""
        version = 3

        [[package]]
        name = "serde"
        version = "1.0.190"
        source = "registry+https://github.com/rust-lang/crates.io-index"
        checksum = "91d3"

        [[package]]
        name = "api"
        version = "0.1.0"
        dependencies = ["serde"]
    """)
    lockfile = loads_lockfile(text)

    assert lockfile.version == 3
    assert [entry.name for entry in lockfile.packages] == ["serde", "api"]
    assert lockfile.packages[0].source.startswith("registry+")
    assert lockfile.packages[1].is_local
    assert lockfile.packages[1].dependencies == ("serde",)

    reparsed = loads_lockfile(dumps_lockfile(lockfile))
    assert reparsed.to_dict() == lockfile.to_dict()


@pytest.mark.parametrize(
    "data, field",
    [
        ({"package": [{"version": "1.0"}]}, "package[0]"),
        ({"package": [{"name": "serde", "version": "1.0", "source": 1}]}, "package[0].source"),
        ({"package": {"name": "serde"}}, "package"),
        ({"version": "3"}, "version"),
    ],
)
def test_lockfile_type_errors(data, field):
    with pytest.raises(ParseError) as exc_info:
        Lockfile.from_dict(data)
    assert exc_info.value.field == field
