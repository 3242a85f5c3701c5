"""Reading and writing Cargo manifests and lock files."""

from __future__ import annotations

from os import PathLike
from pathlib import Path
from typing import Dict, List, Optional, Union

import toml

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from cargo_prebuild.errors import ManifestIOError, ParseError, PrebuildError, WorkspaceNotFoundError
from cargo_prebuild.logging import get_logger
from cargo_prebuild.manifest import Lockfile, Manifest

MANIFEST_FILE = "Cargo.toml"
LOCK_FILE = "Cargo.lock"

logger = get_logger(__name__)

PathType = Union[str, "PathLike[str]"]


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestIOError(f"cannot read {path}: {e.strerror or e}", path=str(path)) from e


def _parse_toml(text: str, path: Optional[Path]) -> dict:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ParseError(f"invalid TOML: {e}", path=str(path) if path else None) from e


def loads_manifest(text: str, path: Optional[Path] = None) -> Manifest:
    """Parse manifest text, keeping the original text for verbatim copies."""
    data = _parse_toml(text, path)
    try:
        manifest = Manifest.from_dict(data)
    except PrebuildError as e:
        if path is not None:
            e.with_path(str(path))
        raise
    manifest.source_text = text
    return manifest


def load_manifest(path: PathType) -> Manifest:
    path = Path(path)
    return loads_manifest(_read_text(path), path)


def dumps_manifest(manifest: Manifest) -> str:
    return toml.dumps(manifest.to_dict())


def loads_lockfile(text: str, path: Optional[Path] = None) -> Lockfile:
    data = _parse_toml(text, path)
    try:
        return Lockfile.from_dict(data)
    except PrebuildError as e:
        if path is not None:
            e.with_path(str(path))
        raise


def load_lockfile(path: PathType) -> Lockfile:
    path = Path(path)
    return loads_lockfile(_read_text(path), path)


def dumps_lockfile(lockfile: Lockfile) -> str:
    return toml.dumps(lockfile.to_dict())


def find_workspace_root(start_path: PathType) -> Path:
    """
    Find the workspace root by looking for a Cargo.toml with a [workspace]
    table, starting at ``start_path`` and walking upward.
    """
    current = Path(start_path).resolve()
    if current.is_file():
        current = current.parent

    while True:
        manifest_path = current / MANIFEST_FILE
        if manifest_path.exists():
            data = _parse_toml(_read_text(manifest_path), manifest_path)
            if "workspace" in data:
                return current
        if current == current.parent:
            break
        current = current.parent

    raise WorkspaceNotFoundError(
        f"unable to locate cargo workspace root above {start_path}",
        path=str(start_path),
        hint="Run from inside a workspace or pass --workspace",
    )


def expand_members(workspace_root: Path, members: List[str], exclude: List[str]) -> List[str]:
    """Expand member globs to concrete member directories (relative, posix style)."""
    excluded = {Path(entry).as_posix().rstrip("/") for entry in exclude}
    expanded: List[str] = []
    for member in members:
        if any(ch in member for ch in "*?["):
            candidates = sorted(
                candidate.relative_to(workspace_root).as_posix()
                for candidate in workspace_root.glob(member)
                if (candidate / MANIFEST_FILE).is_file()
            )
        else:
            candidates = [Path(member).as_posix().rstrip("/")]
        for candidate in candidates:
            if candidate in excluded or candidate in expanded:
                continue
            expanded.append(candidate)
    return expanded


def load_member_index(workspace_root: Path, workspace_manifest: Manifest) -> Dict[str, Manifest]:
    """Map each concrete member directory to its parsed manifest."""
    section = workspace_manifest.workspace
    if section is None:
        raise ParseError("root manifest has no [workspace] table", path=str(workspace_root / MANIFEST_FILE))

    index: Dict[str, Manifest] = {}
    for member in expand_members(workspace_root, section.members, section.exclude):
        manifest_path = workspace_root / member / MANIFEST_FILE
        if not manifest_path.is_file():
            logger.warning("Workspace member %s has no %s, skipping", member, MANIFEST_FILE)
            continue
        index[member] = load_manifest(manifest_path)
    return index


__all__ = [
    "MANIFEST_FILE",
    "LOCK_FILE",
    "loads_manifest",
    "load_manifest",
    "dumps_manifest",
    "loads_lockfile",
    "load_lockfile",
    "dumps_lockfile",
    "find_workspace_root",
    "expand_members",
    "load_member_index",
]
