from cargo_prebuild.errors import (
    ManifestIOError,
    ParseError,
    PrebuildError,
    UnknownService,
    UnresolvedWorkspaceDependency,
    WorkspaceNotFoundError,
)


def test_error_format_includes_metadata() -> None:
    err = ParseError(
        "expected a string, found integer",
        path="services/api/Cargo.toml",
        field="package.name",
        hint="Quote the package name.",
    )
    formatted = err.format()
    assert "expected a string" in formatted
    assert "services/api/Cargo.toml: package.name" in formatted
    assert "PARSE_ERROR" in formatted
    assert "Quote the package name" in formatted


def test_error_format_handles_missing_location() -> None:
    err = PrebuildError("Something failed")
    formatted = err.format()
    assert formatted.startswith("Something failed")
    assert "(" not in formatted


def test_with_path_attaches_file_context() -> None:
    err = UnresolvedWorkspaceDependency("foo")
    assert err.with_path("Cargo.toml") is err
    assert err.location.describe() == "Cargo.toml: dependencies.foo"
    assert err.name == "foo"
    assert "[workspace.dependencies]" in err.hint


def test_unknown_service_lists_members() -> None:
    err = UnknownService("billing", ["api", "worker"])
    assert err.code == "UNKNOWN_SERVICE"
    assert err.hint == "Available members: api, worker"
    assert UnknownService("billing").hint is None


def test_io_errors_are_os_errors() -> None:
    assert issubclass(ManifestIOError, OSError)
    assert issubclass(WorkspaceNotFoundError, ManifestIOError)
    assert WorkspaceNotFoundError("missing").code == "WORKSPACE_NOT_FOUND"
