"""
Workspace projection.

For one target package this derives, from the root workspace manifest and
its lock file:

* a reduced workspace manifest whose members are the target plus in-repo
  crates,
* a *prebuild* manifest that keeps only dependencies buildable without the
  repository source, with its feature table cleaned of references to the
  dependencies it lost,
* the *full* manifest, unchanged,
* a lock file without local package entries.

Everything is computed in memory; :func:`write_projection` then writes all
artifacts or none of them.
"""

from __future__ import annotations

import errno
import fnmatch
import os
import posixpath
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from cargo_prebuild.classifier import classify_dependencies
from cargo_prebuild.config import (
    PLACEHOLDER_SOURCE,
    OutputLayout,
    ProjectionConfig,
    apply_cli_overrides,
    config_from_workspace,
)
from cargo_prebuild.errors import ManifestIOError, ParseError, PrebuildError, UnknownService
from cargo_prebuild.features import sanitize_features
from cargo_prebuild.graph import LocalDependencyResolver, is_inside_workspace
from cargo_prebuild.lockfile import reconcile_lockfile
from cargo_prebuild.logging import get_logger
from cargo_prebuild.manifest import DependencySpec, DependencyTable, Lockfile, Manifest, WorkspaceSection
from cargo_prebuild.manifest.io import (
    LOCK_FILE,
    MANIFEST_FILE,
    dumps_lockfile,
    dumps_manifest,
    load_lockfile,
    load_manifest,
    load_member_index,
)

logger = get_logger(__name__)


def _normalize_member(member: str) -> str:
    normalized = posixpath.normpath(member.replace("\\", "/"))
    return "" if normalized == "." else normalized


def resolve_service(service: str, members: Mapping[str, Manifest]) -> str:
    """
    Find the member directory of ``service``.

    ``service`` may be a member path, a package name or the last path
    segment of a member, tried in that order.
    """
    wanted = _normalize_member(service)
    if wanted in members:
        return wanted
    for member, manifest in members.items():
        if manifest.name == service:
            return member
    for member in members:
        if posixpath.basename(member) == wanted:
            return member
    available = sorted(
        {manifest.name or member for member, manifest in members.items()}
    )
    raise UnknownService(service, available)


def _covers(pattern: str, member: str) -> bool:
    pattern = _normalize_member(pattern)
    if pattern == member:
        return True
    return any(ch in pattern for ch in "*?[") and fnmatch.fnmatchcase(member, pattern)


def reduce_members(
    members: Sequence[str],
    service_member: str,
    crate_prefix: str,
    *,
    service_name: Optional[str] = None,
    additional: Iterable[str] = (),
) -> List[str]:
    """
    Keep the members that are the target itself or start with ``crate_prefix``.

    This is a single-level filter: local packages the target depends on
    are only kept if they match the prefix, unless passed in ``additional``.
    """
    service_member = _normalize_member(service_member)
    reduced: List[str] = []
    for member in members:
        normalized = _normalize_member(member)
        is_service = normalized == service_member or (service_name is not None and normalized == service_name)
        in_repo = member.startswith(crate_prefix) or normalized.startswith(crate_prefix)
        if (is_service or in_repo) and member not in reduced:
            reduced.append(member)

    for extra in [service_member, *additional]:
        extra = _normalize_member(extra)
        # the root package is an implicit member
        if not extra:
            continue
        if not any(_covers(member, extra) for member in reduced):
            reduced.append(extra)
    return reduced


@dataclass(frozen=True)
class PrebuildManifest:
    manifest: Manifest
    removed: Tuple[str, ...] = ()


def project_prebuild_manifest(
    manifest: Manifest,
    workspace_dependencies: Optional[Mapping[str, DependencySpec]] = None,
    *,
    omit: Iterable[str] = (),
    include: Iterable[str] = (),
) -> PrebuildManifest:
    """
    Keep the simple dependencies of ``manifest`` (plus ``include``, minus
    ``omit``) and drop feature activations of the dependencies removed.

    ``omit`` wins over ``include`` for a name listed in both.
    """
    omit = set(omit)
    include = set(include)
    known = set(manifest.dependency_names())
    for name in sorted(include - known):
        logger.warning("--include %s: %s has no such dependency", name, manifest.name or "manifest")

    tables: Dict[str, DependencyTable] = {}
    removed_anywhere: List[str] = []
    for label, table in manifest.iter_dependency_tables():
        classification = classify_dependencies(table, workspace_dependencies, table=label)
        kept: DependencyTable = {}
        for name, spec in table.items():
            keep = name in classification.simple or name in include
            if name in omit:
                keep = False
            if keep:
                kept[name] = spec
            elif name not in removed_anywhere:
                logger.debug("%s: removing %s from prebuild", label, name)
                removed_anywhere.append(name)
        tables[label] = kept

    # features can only activate normal and build dependencies
    remaining = {
        name
        for label, table in tables.items()
        if not label.endswith("dev-dependencies")
        for name in table
    }
    removed = tuple(name for name in removed_anywhere if name not in remaining)

    projected = manifest.with_dependency_tables(tables)
    projected = replace(projected, features=sanitize_features(manifest.features, set(removed)))
    return PrebuildManifest(manifest=projected, removed=removed)


def project_workspace_manifest(root_manifest: Manifest, members: Sequence[str]) -> Manifest:
    """Return the root manifest with reduced members and an empty exclude list."""
    if root_manifest.workspace is None:
        raise ParseError("root manifest has no [workspace] table")
    workspace = replace(root_manifest.workspace, members=list(members), exclude=[])
    return replace(root_manifest, workspace=workspace, source_text=None)


@dataclass(frozen=True)
class Projection:
    """Every artifact produced for one target package."""

    service: str
    member: str
    members: Tuple[str, ...]
    removed: Tuple[str, ...]
    dropped_lock_entries: Tuple[str, ...]
    workspace_manifest: Manifest
    prebuild_manifest: Manifest
    full_manifest: Manifest
    lockfile: Lockfile
    placeholder: str

    def render(self, layout: OutputLayout) -> List[Tuple[Path, str]]:
        full_text = self.full_manifest.source_text
        if full_text is None:
            full_text = dumps_manifest(self.full_manifest)
        return [
            (layout.workspace_manifest, dumps_manifest(self.workspace_manifest)),
            (layout.lockfile, dumps_lockfile(self.lockfile)),
            (layout.prebuild_manifest, dumps_manifest(self.prebuild_manifest)),
            (layout.placeholder, PLACEHOLDER_SOURCE),
            (layout.full_manifest, full_text),
        ]

    def summary(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "member": self.member,
            "members": list(self.members),
            "prebuild_dependencies": self.prebuild_manifest.dependency_names(),
            "removed_dependencies": list(self.removed),
            "dropped_lock_entries": list(self.dropped_lock_entries),
        }


class WorkspaceProjector:
    """Projects workspace members of one loaded workspace."""

    def __init__(
        self,
        workspace_root: Path,
        root_manifest: Manifest,
        members: Mapping[str, Manifest],
        lockfile: Lockfile,
        config: Optional[ProjectionConfig] = None,
    ):
        if root_manifest.workspace is None:
            raise ParseError("root manifest has no [workspace] table", path=str(workspace_root / MANIFEST_FILE))
        self.workspace_root = workspace_root
        self.root_manifest = root_manifest
        self.workspace: WorkspaceSection = root_manifest.workspace
        self.members = dict(members)
        self.lockfile = lockfile
        self.config = config or config_from_workspace(root_manifest)

    @classmethod
    def load(cls, workspace_root: Path, config: Optional[ProjectionConfig] = None) -> WorkspaceProjector:
        """Read the root manifest, its lock file and every member manifest."""
        workspace_root = Path(workspace_root)
        root_manifest = load_manifest(workspace_root / MANIFEST_FILE)
        members = load_member_index(workspace_root, root_manifest)
        lockfile = load_lockfile(workspace_root / LOCK_FILE)
        logger.debug("Loaded workspace %s with %d members", workspace_root, len(members))
        return cls(workspace_root, root_manifest, members, lockfile, config)

    @property
    def workspace_dependencies(self) -> Dict[str, DependencySpec]:
        return self.workspace.dependencies

    def _load_local(self, member: str) -> Optional[Manifest]:
        manifest_path = self.workspace_root / member / MANIFEST_FILE
        if not manifest_path.is_file():
            return None
        return load_manifest(manifest_path)

    def local_closure(self, member: str) -> List[str]:
        resolver = LocalDependencyResolver(self.members, self.workspace_dependencies, load=self._load_local)
        return [path for path in resolver.closure(member) if is_inside_workspace(path)]

    def project(
        self,
        service: str,
        *,
        omit: Iterable[str] = (),
        include: Iterable[str] = (),
    ) -> Projection:
        config = apply_cli_overrides(self.config, omit=omit, include=include)
        member = resolve_service(service, self.members)
        manifest = self.members[member]

        additional: List[str] = []
        if config.transitive:
            additional = self.local_closure(member)
        members = reduce_members(
            self.workspace.members,
            member,
            config.crate_prefix,
            service_name=manifest.name,
            additional=additional,
        )

        try:
            prebuild = project_prebuild_manifest(
                manifest,
                self.workspace_dependencies,
                omit=config.omit,
                include=config.include,
            )
        except PrebuildError as e:
            raise e.with_path(str(self.workspace_root / member / MANIFEST_FILE))
        reconciliation = reconcile_lockfile(self.lockfile)

        logger.info(
            "Projected %s: %d members, %d prebuild dependencies, %d removed",
            manifest.name or member,
            len(members),
            len(prebuild.manifest.dependency_names()),
            len(prebuild.removed),
        )
        return Projection(
            service=manifest.name or service,
            member=member,
            members=tuple(members),
            removed=prebuild.removed,
            dropped_lock_entries=tuple(entry.name for entry in reconciliation.dropped),
            workspace_manifest=project_workspace_manifest(self.root_manifest, members),
            prebuild_manifest=prebuild.manifest,
            full_manifest=manifest,
            lockfile=reconciliation.lockfile,
            placeholder=config.placeholder,
        )

    def project_many(
        self,
        services: Sequence[str],
        *,
        omit: Iterable[str] = (),
        include: Iterable[str] = (),
        max_workers: Optional[int] = None,
    ) -> List[Projection]:
        """Project several services concurrently; results follow ``services`` order."""
        omit = list(omit)
        include = list(include)
        if len(services) <= 1:
            return [self.project(service, omit=omit, include=include) for service in services]
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(self.project, service, omit=omit, include=include)
                for service in services
            ]
            return [future.result() for future in futures]


def _cleanup(paths: Iterable[Path]) -> None:
    for path in paths:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def _rollback(committed: Sequence[Tuple[Path, Optional[Path], bool]]) -> None:
    """Undo renames in reverse order: drop new files, restore backups."""
    for path, backup, placed in reversed(committed):
        if placed:
            _cleanup([path])
        if backup is not None:
            os.replace(backup, path)


def write_artifacts(artifacts: Sequence[Tuple[Path, str]]) -> List[Path]:
    """
    Write all ``(path, text)`` pairs or none of them.

    Each file is first written to a temporary sibling; the temporaries are
    renamed into place only once every one of them was written. Existing
    targets are moved aside first and restored if a later rename fails.
    """
    staged: List[Tuple[Path, Path]] = []
    committed: List[Tuple[Path, Optional[Path], bool]] = []
    current: Optional[Path] = None
    try:
        for path, _ in artifacts:
            current = path
            if path.is_dir():
                raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), str(path))
        for path, text in artifacts:
            current = path
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                newline="",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                staged.append((Path(handle.name), path))
                handle.write(text)
        for temp_path, path in staged:
            current = path
            backup = None
            if path.exists():
                backup = temp_path.with_suffix(".bak")
                os.replace(path, backup)
            committed.append((path, backup, False))
            os.replace(temp_path, path)
            committed[-1] = (path, backup, True)
    except OSError as e:
        _rollback(committed)
        _cleanup(temp for temp, _ in staged)
        raise ManifestIOError(
            f"cannot write {current}: {e.strerror or e}",
            path=str(current) if current else None,
        ) from e
    _cleanup(backup for _path, backup, _placed in committed if backup is not None)
    return [path for _, path in staged]


def write_projection(projection: Projection, layout: OutputLayout) -> List[Path]:
    written = write_artifacts(projection.render(layout))
    for path in written:
        logger.debug("wrote %s", path)
    return written


__all__ = [
    "resolve_service",
    "reduce_members",
    "PrebuildManifest",
    "project_prebuild_manifest",
    "project_workspace_manifest",
    "Projection",
    "WorkspaceProjector",
    "write_artifacts",
    "write_projection",
]
