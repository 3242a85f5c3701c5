"""Error taxonomy for workspace projection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass
class ErrorLocation:
    path: Optional[str] = None
    field: Optional[str] = None

    def describe(self) -> str:
        if self.path and self.field:
            return f"{self.path}: {self.field}"
        if self.path:
            return self.path
        if self.field:
            return self.field
        return "unknown location"


class PrebuildError(Exception):
    """Base class for every failure surfaced to callers of the projector."""

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        field: Optional[str] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = ErrorLocation(path=path, field=field)
        self.path = path
        self.field = field
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def with_path(self, path: str) -> "PrebuildError":
        """Attach file context to an error raised by a pure parser."""
        self.path = path
        self.location.path = path
        return self

    def format(self) -> str:
        components = [self.message]
        meta_parts = []
        location_desc = self.location.describe()
        if location_desc != "unknown location":
            meta_parts.append(location_desc)
        if self.code:
            meta_parts.append(self.code)
        if meta_parts:
            components[-1] = f"{components[-1]} ({'; '.join(meta_parts)})"
        if self.hint:
            components.append(f"Hint: {self.hint}")
        return " ".join(part for part in components if part)


class ParseError(PrebuildError):
    """Raised when a manifest or lock file is structurally invalid."""

    code = "PARSE_ERROR"


class UnresolvedWorkspaceDependency(PrebuildError):
    """Raised when ``workspace = true`` has no workspace-level definition."""

    code = "UNRESOLVED_WORKSPACE_DEPENDENCY"

    def __init__(self, name: str, **kwargs) -> None:
        kwargs.setdefault("field", f"dependencies.{name}")
        kwargs.setdefault(
            "hint",
            f"Add `{name}` to [workspace.dependencies] in the root Cargo.toml",
        )
        super().__init__(
            f"Dependency '{name}' inherits from the workspace but the workspace does not define it",
            **kwargs,
        )
        self.name = name


class UnknownService(PrebuildError):
    """Raised when the requested target package is not a workspace member."""

    code = "UNKNOWN_SERVICE"

    def __init__(self, service: str, available: Sequence[str] = (), **kwargs) -> None:
        if available and "hint" not in kwargs:
            kwargs["hint"] = f"Available members: {', '.join(available)}"
        super().__init__(f"Service '{service}' is not a member of the workspace", **kwargs)
        self.service = service
        self.available = list(available)


class ManifestIOError(PrebuildError, OSError):
    """Raised when an input cannot be read or an output cannot be written."""

    code = "IO_ERROR"


class WorkspaceNotFoundError(ManifestIOError):
    """Raised when no Cargo.toml with a [workspace] table encloses a service."""

    code = "WORKSPACE_NOT_FOUND"


__all__ = [
    "ErrorLocation",
    "PrebuildError",
    "ParseError",
    "UnresolvedWorkspaceDependency",
    "UnknownService",
    "ManifestIOError",
    "WorkspaceNotFoundError",
]
