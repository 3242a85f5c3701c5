"""
Cargo workspace projection for cacheable container builds.

Given a monorepo workspace and one target package, ``cargo_prebuild``
derives the manifests and lock file that let a container build compile
registry dependencies in an early, cacheable layer and the package's own
source (with its in-repo dependencies) in a later one:

* ``manifest``: dataclasses for manifests and lock files, plus TOML I/O.
* ``classifier``: splits dependencies into simple (registry/git) and
  complex (local path) ones.
* ``features``: removes feature activations of dropped dependencies.
* ``lockfile``: drops local package entries from the lock file.
* ``projector``: ties the above together and writes the artifacts.
* ``cli``: the ``cargo-prebuild`` command.
"""

__version__ = "0.1.0"

from cargo_prebuild.classifier import Classification, DependencyKind, classify_dependencies
from cargo_prebuild.errors import (
    ManifestIOError,
    ParseError,
    PrebuildError,
    UnknownService,
    UnresolvedWorkspaceDependency,
    WorkspaceNotFoundError,
)
from cargo_prebuild.features import sanitize_features
from cargo_prebuild.lockfile import filter_lockfile, reconcile_lockfile
from cargo_prebuild.manifest import DependencySpec, LockEntry, Lockfile, Manifest, WorkspaceSection
from cargo_prebuild.projector import Projection, WorkspaceProjector, write_projection

__all__ = [
    "__version__",
    "Classification",
    "DependencyKind",
    "classify_dependencies",
    "sanitize_features",
    "filter_lockfile",
    "reconcile_lockfile",
    "DependencySpec",
    "LockEntry",
    "Lockfile",
    "Manifest",
    "WorkspaceSection",
    "Projection",
    "WorkspaceProjector",
    "write_projection",
    "PrebuildError",
    "ParseError",
    "UnresolvedWorkspaceDependency",
    "UnknownService",
    "ManifestIOError",
    "WorkspaceNotFoundError",
]
