"""Projection settings: built-in defaults, workspace metadata and CLI overrides."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from cargo_prebuild.errors import ParseError
from cargo_prebuild.manifest import Manifest

DEFAULT_CRATE_PREFIX = "crates/"
DEFAULT_PLACEHOLDER = "src/main.rs"
PLACEHOLDER_SOURCE = "fn main() {}\n"
DEFAULT_OUT_DIR = Path("tmp") / "prebuild"
FULL_MANIFEST_NAME = "Cargo.full.toml"

METADATA_KEY = "prebuild"


@dataclass
class ProjectionConfig:
    """Settings applied when projecting one target package."""

    crate_prefix: str = DEFAULT_CRATE_PREFIX
    omit: List[str] = field(default_factory=list)
    include: List[str] = field(default_factory=list)
    transitive: bool = False
    placeholder: str = DEFAULT_PLACEHOLDER


@dataclass
class OutputLayout:
    """Where each projection artifact is written."""

    workspace_manifest: Path
    lockfile: Path
    prebuild_manifest: Path
    placeholder: Path
    full_manifest: Path

    @classmethod
    def under(cls, out_dir: Path, member: str, placeholder: str = DEFAULT_PLACEHOLDER) -> OutputLayout:
        """Lay artifacts out as a scratch build context rooted at ``out_dir``."""
        member_dir = out_dir / member if member else out_dir
        return cls(
            workspace_manifest=out_dir / "Cargo.toml",
            lockfile=out_dir / "Cargo.lock",
            prebuild_manifest=member_dir / "Cargo.toml",
            placeholder=member_dir / placeholder,
            full_manifest=member_dir / FULL_MANIFEST_NAME,
        )

    def paths(self) -> List[Path]:
        return [
            self.workspace_manifest,
            self.lockfile,
            self.prebuild_manifest,
            self.placeholder,
            self.full_manifest,
        ]


def parse_name_list(values: Optional[Iterable[str]]) -> List[str]:
    """Split comma separated, possibly repeated, name arguments."""
    names: List[str] = []
    for value in values or ():
        for item in value.split(","):
            item = item.strip()
            if item and item not in names:
                names.append(item)
    return names


def _metadata_list(section: Dict[str, Any], key: str) -> List[str]:
    value = section.get(key, [])
    field_path = f"workspace.metadata.{METADATA_KEY}.{key}"
    if isinstance(value, str):
        return parse_name_list([value])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ParseError("expected an array of strings", field=field_path)
    return parse_name_list(value)


def config_from_workspace(manifest: Manifest) -> ProjectionConfig:
    """Read ``[workspace.metadata.prebuild]`` from the root manifest."""
    config = ProjectionConfig()
    if manifest.workspace is None:
        return config
    section = manifest.workspace.metadata.get(METADATA_KEY)
    if section is None:
        return config
    if not isinstance(section, dict):
        raise ParseError("expected a table", field=f"workspace.metadata.{METADATA_KEY}")

    prefix = section.get("crate-prefix", config.crate_prefix)
    if not isinstance(prefix, str):
        raise ParseError("expected a string", field=f"workspace.metadata.{METADATA_KEY}.crate-prefix")
    transitive = section.get("transitive", config.transitive)
    if not isinstance(transitive, bool):
        raise ParseError("expected a boolean", field=f"workspace.metadata.{METADATA_KEY}.transitive")
    placeholder = section.get("placeholder", config.placeholder)
    if not isinstance(placeholder, str) or not placeholder:
        raise ParseError("expected a relative file path", field=f"workspace.metadata.{METADATA_KEY}.placeholder")

    return ProjectionConfig(
        crate_prefix=prefix,
        omit=_metadata_list(section, "omit"),
        include=_metadata_list(section, "include"),
        transitive=transitive,
        placeholder=placeholder,
    )


def apply_cli_overrides(
    config: ProjectionConfig,
    *,
    crate_prefix: Optional[str] = None,
    omit: Optional[Iterable[str]] = None,
    include: Optional[Iterable[str]] = None,
    transitive: Optional[bool] = None,
) -> ProjectionConfig:
    """Layer command line values over ``config``; name lists are merged."""
    return replace(
        config,
        crate_prefix=crate_prefix if crate_prefix is not None else config.crate_prefix,
        omit=parse_name_list([*config.omit, *(omit or ())]),
        include=parse_name_list([*config.include, *(include or ())]),
        transitive=config.transitive if transitive is None else transitive,
    )


__all__ = [
    "DEFAULT_CRATE_PREFIX",
    "DEFAULT_PLACEHOLDER",
    "DEFAULT_OUT_DIR",
    "PLACEHOLDER_SOURCE",
    "ProjectionConfig",
    "OutputLayout",
    "parse_name_list",
    "config_from_workspace",
    "apply_cli_overrides",
]
