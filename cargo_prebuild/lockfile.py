"""Lock file filtering for the cached dependency layer."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

from cargo_prebuild.logging import get_logger
from cargo_prebuild.manifest import LockEntry, Lockfile

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reconciliation:
    lockfile: Lockfile
    dropped: Tuple[LockEntry, ...] = ()


def reconcile_lockfile(lockfile: Lockfile) -> Reconciliation:
    """
    Keep only entries with a ``source``.

    Local packages have no source and their records change with every
    local edit, so they are left out of the lock file that seeds the cached
    dependency build. Order of the remaining entries is preserved.
    """
    kept = []
    dropped = []
    for entry in lockfile.packages:
        if entry.is_local:
            logger.debug("dropping local lock entry %s %s", entry.name, entry.version)
            dropped.append(entry)
        else:
            kept.append(entry)
    logger.info("Lock file: kept %d entries, dropped %d local", len(kept), len(dropped))
    return Reconciliation(lockfile=replace(lockfile, packages=kept), dropped=tuple(dropped))


def filter_lockfile(lockfile: Lockfile) -> Lockfile:
    return reconcile_lockfile(lockfile).lockfile


__all__ = ["Reconciliation", "reconcile_lockfile", "filter_lockfile"]
