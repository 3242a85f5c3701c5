"""
cargo-prebuild command line entry point.

Projects one or more workspace packages into the artifacts a two-stage
container build needs: a reduced workspace manifest, a prebuild manifest
with a placeholder source file, the full manifest and a filtered lock file.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from cargo_prebuild import __version__
from cargo_prebuild.config import DEFAULT_OUT_DIR, OutputLayout, apply_cli_overrides, parse_name_list
from cargo_prebuild.errors import PrebuildError, UnknownService
from cargo_prebuild.logging import configure_logging, get_logger
from cargo_prebuild.manifest.io import MANIFEST_FILE, find_workspace_root, load_manifest
from cargo_prebuild.projector import Projection, WorkspaceProjector, write_artifacts

from .errors import EXIT_FAILURE, EXIT_OK, cli_reraise_enabled, cli_verbose_enabled, format_cli_error

logger = get_logger(__name__)

_LAYOUT_OVERRIDES = (
    ("workspace_manifest_out", "workspace_manifest"),
    ("lockfile_out", "lockfile"),
    ("prebuild_manifest_out", "prebuild_manifest"),
    ("placeholder_out", "placeholder"),
    ("full_manifest_out", "full_manifest"),
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cargo-prebuild",
        description="Project a cargo workspace package into cacheable prebuild artifacts.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-s",
        "--service",
        action="append",
        default=[],
        help="Target package (name or member path). Repeatable. Defaults to the package in the current directory.",
    )
    parser.add_argument(
        "-w",
        "--workspace",
        type=Path,
        default=None,
        help="Workspace root (default: nearest Cargo.toml with a [workspace] table above the service)",
    )
    parser.add_argument(
        "-p",
        "--omit",
        action="append",
        default=[],
        metavar="NAME[,NAME...]",
        help="Dependencies to leave out of the prebuild manifest even if they are simple",
    )
    parser.add_argument(
        "-i",
        "--include",
        action="append",
        default=[],
        metavar="NAME[,NAME...]",
        help="Dependencies to keep in the prebuild manifest even if they are local",
    )
    parser.add_argument("--crate-prefix", default=None, help="Path prefix of in-repo crates kept as members")
    parser.add_argument(
        "--transitive",
        action="store_true",
        default=None,
        help="Also keep every local package reachable from the service as a member",
    )
    parser.add_argument(
        "-o",
        "--out-dir",
        type=Path,
        default=None,
        help=f"Scratch build context to write into (default: <workspace>/{DEFAULT_OUT_DIR.as_posix()})",
    )
    overrides = parser.add_argument_group("artifact locations (single service only)")
    overrides.add_argument("--workspace-manifest-out", type=Path, default=None)
    overrides.add_argument("--lockfile-out", type=Path, default=None)
    overrides.add_argument("--prebuild-manifest-out", type=Path, default=None)
    overrides.add_argument("--placeholder-out", type=Path, default=None)
    overrides.add_argument("--full-manifest-out", type=Path, default=None)

    parser.add_argument("--dry-run", action="store_true", help="Print what would be produced without writing")
    parser.add_argument("--json", action="store_true", help="Print the projection summary as JSON")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every decision")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    return parser


def _default_service(cwd: Path) -> str:
    manifest_path = cwd / MANIFEST_FILE
    if manifest_path.is_file():
        name = load_manifest(manifest_path).name
        if name:
            return name
    raise UnknownService(
        str(cwd),
        hint="Pass --service or run from a package directory",
    )


def _layout_for(args: argparse.Namespace, out_dir: Path, projection: Projection) -> OutputLayout:
    layout = OutputLayout.under(out_dir, projection.member, projection.placeholder)
    for option, attribute in _LAYOUT_OVERRIDES:
        value = getattr(args, option)
        if value is not None:
            setattr(layout, attribute, value)
    return layout


def _print_summary(projections: Sequence[Projection], layouts: Sequence[OutputLayout], as_json: bool) -> None:
    if as_json:
        payload = []
        for projection, layout in zip(projections, layouts):
            summary = projection.summary()
            summary["outputs"] = [str(path) for path in layout.paths()]
            payload.append(summary)
        print(json.dumps({"projections": payload}, indent=2))
        return

    for projection, layout in zip(projections, layouts):
        print(f"{projection.service} ({projection.member or '.'})")
        print(f"  members: {', '.join(projection.members)}")
        print(f"  prebuild dependencies: {', '.join(projection.prebuild_manifest.dependency_names()) or '(none)'}")
        print(f"  removed: {', '.join(projection.removed) or '(none)'}")
        print(f"  dropped lock entries: {len(projection.dropped_lock_entries)}")
        for path in layout.paths():
            print(f"  -> {path}")


def run(args: argparse.Namespace, cwd: Optional[Path] = None) -> Tuple[List[Projection], List[OutputLayout]]:
    """Load the workspace, project every requested service and write the artifacts."""
    cwd = (cwd or Path.cwd()).resolve()
    services = parse_name_list(args.service) or [_default_service(cwd)]

    workspace_root = args.workspace
    if workspace_root is None:
        workspace_root = find_workspace_root(cwd)
    elif not workspace_root.is_absolute():
        workspace_root = cwd / workspace_root

    projector = WorkspaceProjector.load(workspace_root)
    projector.config = apply_cli_overrides(
        projector.config,
        crate_prefix=args.crate_prefix,
        transitive=args.transitive,
    )
    projections = projector.project_many(
        services,
        omit=parse_name_list(args.omit),
        include=parse_name_list(args.include),
    )

    out_dir = args.out_dir if args.out_dir is not None else workspace_root / DEFAULT_OUT_DIR
    if not out_dir.is_absolute():
        out_dir = cwd / out_dir
    if len(projections) == 1:
        layouts = [_layout_for(args, out_dir, projections[0])]
    else:
        layouts = [
            OutputLayout.under(out_dir / projection.service, projection.member, projection.placeholder)
            for projection in projections
        ]

    if not args.dry_run:
        artifacts = []
        for projection, layout in zip(projections, layouts):
            artifacts.extend(projection.render(layout))
        write_artifacts(artifacts)
    return projections, layouts


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if len(parse_name_list(args.service)) > 1 and any(getattr(args, option) is not None for option, _ in _LAYOUT_OVERRIDES):
        parser.error("artifact location overrides require a single --service")

    configure_logging(verbose=args.verbose, quiet=args.quiet)
    verbose = cli_verbose_enabled(args.verbose)

    try:
        projections, layouts = run(args)
    except PrebuildError as exc:
        if cli_reraise_enabled():
            raise
        print(format_cli_error(exc, include_traceback=verbose), file=sys.stderr)
        return EXIT_FAILURE

    if args.dry_run or args.json:
        _print_summary(projections, layouts, args.json)
    else:
        for projection, layout in zip(projections, layouts):
            logger.info("Wrote %s artifacts to %s", projection.service, layout.prebuild_manifest.parent)
    return EXIT_OK


__all__ = ["main", "run"]
