"""Local package graph for transitive workspace member selection."""

from __future__ import annotations

import posixpath
from typing import Callable, Dict, List, Mapping, Optional, Set

from cargo_prebuild.classifier import resolve_workspace_spec
from cargo_prebuild.logging import get_logger
from cargo_prebuild.manifest import DependencySpec, Manifest

logger = get_logger(__name__)

ManifestLoader = Callable[[str], Optional[Manifest]]


def _normalize(path: str) -> str:
    normalized = posixpath.normpath(path.replace("\\", "/"))
    return "" if normalized == "." else normalized


def local_dependency_paths(
    member: str,
    manifest: Manifest,
    workspace_dependencies: Mapping[str, DependencySpec],
) -> Dict[str, str]:
    """
    Map each path dependency of ``manifest`` to its directory relative to the
    workspace root.

    Direct ``path`` entries are relative to the member's own directory;
    inherited ones are relative to the workspace root.
    """
    paths: Dict[str, str] = {}
    for label, table in manifest.iter_dependency_tables():
        for name, spec in table.items():
            resolved = resolve_workspace_spec(name, spec, workspace_dependencies, label)
            if resolved.is_bare or resolved.path is None:
                continue
            if resolved is spec:
                location = posixpath.join(member, resolved.path)
            else:
                location = resolved.path
            paths.setdefault(name, _normalize(location))
    return paths


class LocalDependencyResolver:
    """Walks path dependencies between workspace packages."""

    def __init__(
        self,
        manifests: Mapping[str, Manifest],
        workspace_dependencies: Mapping[str, DependencySpec],
        load: Optional[ManifestLoader] = None,
    ):
        self.manifests: Dict[str, Manifest] = {_normalize(k): v for k, v in manifests.items()}
        self.workspace_dependencies = workspace_dependencies
        self._load = load

    def _manifest_for(self, member: str) -> Optional[Manifest]:
        if member not in self.manifests and self._load is not None:
            manifest = self._load(member)
            if manifest is not None:
                self.manifests[member] = manifest
        return self.manifests.get(member)

    def closure(self, start: str) -> List[str]:
        """
        Return ``start`` followed by every local package directory reachable
        from it, in discovery order. Cycles are tolerated.
        """
        start = _normalize(start)
        visited: Set[str] = set()
        result: List[str] = []
        self._visit(start, visited, result)
        return result

    def _visit(self, member: str, visited: Set[str], result: List[str]) -> None:
        if member in visited:
            return
        visited.add(member)
        result.append(member)

        manifest = self._manifest_for(member)
        if manifest is None:
            logger.warning("No manifest found for local package at %s", member or ".")
            return
        for name, path in local_dependency_paths(member, manifest, self.workspace_dependencies).items():
            logger.debug("%s -> %s (%s)", member or ".", path, name)
            self._visit(path, visited, result)


def is_inside_workspace(path: str) -> bool:
    path = _normalize(path)
    return bool(path) and not posixpath.isabs(path) and path != ".." and not path.startswith("../")


__all__ = [
    "LocalDependencyResolver",
    "local_dependency_paths",
    "is_inside_workspace",
]
