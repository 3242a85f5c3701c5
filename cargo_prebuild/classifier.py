"""
Dependency classification.

A dependency is *simple* when it can be fetched and compiled without the
repository's own source tree (registry and git dependencies), and
*complex* when it points at a local package by ``path``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Tuple

from cargo_prebuild.errors import UnresolvedWorkspaceDependency
from cargo_prebuild.logging import get_logger
from cargo_prebuild.manifest import DependencySpec

logger = get_logger(__name__)


class DependencyKind(str, Enum):
    SIMPLE = "simple"
    COMPLEX = "complex"


@dataclass(frozen=True)
class Classification:
    """Partition of a dependency table. Both tuples keep manifest order."""

    simple: Tuple[str, ...] = ()
    complex: Tuple[str, ...] = ()

    def kind_of(self, name: str) -> Optional[DependencyKind]:
        if name in self.simple:
            return DependencyKind.SIMPLE
        if name in self.complex:
            return DependencyKind.COMPLEX
        return None

    @property
    def names(self) -> Tuple[str, ...]:
        return self.simple + self.complex


def _shape_kind(spec: DependencySpec) -> DependencyKind:
    if spec.is_bare:
        return DependencyKind.SIMPLE
    if spec.path is not None:
        return DependencyKind.COMPLEX
    return DependencyKind.SIMPLE


def resolve_workspace_spec(
    name: str,
    spec: DependencySpec,
    workspace_dependencies: Mapping[str, DependencySpec],
    table: str = "dependencies",
) -> DependencySpec:
    """Return the definition a ``workspace = true`` entry inherits, or ``spec`` itself."""
    if spec.is_bare or spec.path is not None or not spec.workspace:
        return spec
    resolved = workspace_dependencies.get(name)
    if resolved is None:
        raise UnresolvedWorkspaceDependency(name, field=f"{table}.{name}")
    return resolved


def classify_dependency(
    name: str,
    spec: DependencySpec,
    workspace_dependencies: Mapping[str, DependencySpec],
    table: str = "dependencies",
) -> DependencyKind:
    resolved = resolve_workspace_spec(name, spec, workspace_dependencies, table)
    kind = _shape_kind(resolved)
    if resolved is not spec:
        logger.debug("%s inherits from workspace -> %s", name, kind.value)
    else:
        logger.debug("%s -> %s", name, kind.value)
    return kind


def classify_dependencies(
    dependencies: Mapping[str, DependencySpec],
    workspace_dependencies: Optional[Mapping[str, DependencySpec]] = None,
    table: str = "dependencies",
) -> Classification:
    """Split ``dependencies`` into simple and complex names.

    ``table`` is the manifest field the entries come from, used in errors.
    """
    workspace_dependencies = workspace_dependencies or {}
    simple = []
    complex_ = []
    for name, spec in dependencies.items():
        if classify_dependency(name, spec, workspace_dependencies, table) is DependencyKind.COMPLEX:
            complex_.append(name)
        else:
            simple.append(name)
    return Classification(simple=tuple(simple), complex=tuple(complex_))


__all__ = [
    "DependencyKind",
    "Classification",
    "classify_dependency",
    "classify_dependencies",
    "resolve_workspace_spec",
]
