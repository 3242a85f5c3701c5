"""
In-memory model of Cargo manifests and lock files.

The model only checks that fields have the right shape. Anything it does
not need to understand (``[lib]``, ``[profile]``, package metadata, ...)
is carried through untouched so that re-serializing an unmodified manifest
reproduces the same structure.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from cargo_prebuild.errors import ParseError

# Tables holding dependency specifications, at the top level and under target.<cfg>.
DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")

DependencyTable = Dict[str, "DependencySpec"]


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict):
        return "table"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def _expect_table(value: Any, field_path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ParseError(f"expected a table, found {_type_name(value)}", field=field_path)
    return value


def _expect_str(value: Any, field_path: str) -> str:
    if not isinstance(value, str):
        raise ParseError(f"expected a string, found {_type_name(value)}", field=field_path)
    return value


def _expect_bool(value: Any, field_path: str) -> bool:
    if not isinstance(value, bool):
        raise ParseError(f"expected a boolean, found {_type_name(value)}", field=field_path)
    return value


def _expect_str_list(value: Any, field_path: str) -> List[str]:
    if not isinstance(value, list):
        raise ParseError(f"expected an array of strings, found {_type_name(value)}", field=field_path)
    for index, item in enumerate(value):
        _expect_str(item, f"{field_path}[{index}]")
    return list(value)


def _optional(data: Dict[str, Any], key: str, check, field_path: str):
    if key not in data:
        return None
    return check(data[key], f"{field_path}.{key}")


@dataclass(frozen=True)
class DependencySpec:
    """One entry of a dependency table.

    ``raw`` is the value exactly as it appeared in the manifest (a version
    string or a table) and is what gets written back out.
    """

    raw: Union[str, Dict[str, Any]] = field(repr=False)
    version: Optional[str] = None
    path: Optional[str] = None
    features: Tuple[str, ...] = ()
    optional: bool = False
    workspace: bool = False
    git: Optional[str] = None
    package: Optional[str] = None

    @property
    def is_bare(self) -> bool:
        """True when written as a plain version requirement string."""
        return isinstance(self.raw, str)

    def to_value(self) -> Union[str, Dict[str, Any]]:
        return copy.deepcopy(self.raw)

    @classmethod
    def parse(cls, value: Any, field_path: str) -> DependencySpec:
        """Parse a dependency from its manifest value."""
        if isinstance(value, str):
            return cls(raw=value, version=value)
        if not isinstance(value, dict):
            raise ParseError(
                f"expected a version string or a table, found {_type_name(value)}",
                field=field_path,
            )
        features = _optional(value, "features", _expect_str_list, field_path) or []
        _optional(value, "default-features", _expect_bool, field_path)
        for key in ("branch", "tag", "rev", "registry"):
            _optional(value, key, _expect_str, field_path)
        return cls(
            raw=copy.deepcopy(value),
            version=_optional(value, "version", _expect_str, field_path),
            path=_optional(value, "path", _expect_str, field_path),
            features=tuple(features),
            optional=bool(_optional(value, "optional", _expect_bool, field_path)),
            workspace=bool(_optional(value, "workspace", _expect_bool, field_path)),
            git=_optional(value, "git", _expect_str, field_path),
            package=_optional(value, "package", _expect_str, field_path),
        )


def parse_dependency_table(value: Any, field_path: str) -> DependencyTable:
    table = _expect_table(value, field_path)
    return {
        name: DependencySpec.parse(spec, f"{field_path}.{name}")
        for name, spec in table.items()
    }


def dump_dependency_table(table: DependencyTable) -> Dict[str, Any]:
    return {name: spec.to_value() for name, spec in table.items()}


@dataclass
class WorkspaceSection:
    """The ``[workspace]`` table of a root manifest."""

    members: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    dependencies: DependencyTable = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list)

    @property
    def metadata(self) -> Dict[str, Any]:
        metadata = self.extra.get("metadata")
        return metadata if isinstance(metadata, dict) else {}

    @classmethod
    def from_dict(cls, data: Any) -> WorkspaceSection:
        data = _expect_table(data, "workspace")
        extra = {
            key: copy.deepcopy(value)
            for key, value in data.items()
            if key not in ("members", "exclude", "dependencies")
        }
        return cls(
            members=_optional(data, "members", _expect_str_list, "workspace") or [],
            exclude=_optional(data, "exclude", _expect_str_list, "workspace") or [],
            dependencies=parse_dependency_table(data.get("dependencies", {}), "workspace.dependencies"),
            extra=extra,
            key_order=list(data.keys()),
        )

    def to_dict(self) -> Dict[str, Any]:
        known = {
            "members": list(self.members),
            "exclude": list(self.exclude),
            "dependencies": dump_dependency_table(self.dependencies),
        }
        result: Dict[str, Any] = {}
        for key in self.key_order:
            if key in known:
                result[key] = known.pop(key)
            elif key in self.extra:
                result[key] = copy.deepcopy(self.extra[key])
        # Fields introduced after parsing; empty ones are left out.
        for key, value in known.items():
            if value:
                result[key] = value
        for key, value in self.extra.items():
            if key not in result:
                result[key] = copy.deepcopy(value)
        return result


@dataclass
class Manifest:
    """A parsed ``Cargo.toml``, either a package manifest or a workspace root."""

    package: Optional[Dict[str, Any]] = None
    dependencies: DependencyTable = field(default_factory=dict)
    dev_dependencies: DependencyTable = field(default_factory=dict)
    build_dependencies: DependencyTable = field(default_factory=dict)
    # cfg -> {table kind -> DependencyTable, or any other raw value}
    target: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    features: Dict[str, List[str]] = field(default_factory=dict)
    workspace: Optional[WorkspaceSection] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list)
    source_text: Optional[str] = field(default=None, repr=False, compare=False)

    @property
    def name(self) -> Optional[str]:
        if self.package is None:
            return None
        return self.package.get("name")

    def top_level_tables(self) -> Dict[str, DependencyTable]:
        return {
            "dependencies": self.dependencies,
            "dev-dependencies": self.dev_dependencies,
            "build-dependencies": self.build_dependencies,
        }

    def iter_dependency_tables(self) -> Iterator[Tuple[str, DependencyTable]]:
        """Yield ``(label, table)`` for every dependency table, including target-specific ones."""
        yield from self.top_level_tables().items()
        for cfg, section in self.target.items():
            for kind in DEPENDENCY_TABLES:
                if kind in section:
                    yield f"target.{cfg}.{kind}", section[kind]

    def dependency_names(self) -> List[str]:
        names: List[str] = []
        for _, table in self.iter_dependency_tables():
            for name in table:
                if name not in names:
                    names.append(name)
        return names

    def with_dependency_tables(self, tables: Dict[str, DependencyTable]) -> Manifest:
        """Return a copy whose dependency tables are replaced by ``tables`` (keyed by label)."""
        target = {}
        for cfg, section in self.target.items():
            new_section = dict(section)
            for kind in DEPENDENCY_TABLES:
                label = f"target.{cfg}.{kind}"
                if label in tables:
                    new_section[kind] = dict(tables[label])
            target[cfg] = new_section
        return replace(
            self,
            dependencies=dict(tables.get("dependencies", self.dependencies)),
            dev_dependencies=dict(tables.get("dev-dependencies", self.dev_dependencies)),
            build_dependencies=dict(tables.get("build-dependencies", self.build_dependencies)),
            target=target,
            source_text=None,
        )

    @classmethod
    def from_dict(cls, data: Any) -> Manifest:
        """Create a Manifest from parsed TOML data."""
        if not isinstance(data, dict):
            raise ParseError(f"manifest must be a table at the top level, found {_type_name(data)}")

        package = None
        if "package" in data:
            package = copy.deepcopy(_expect_table(data["package"], "package"))
            if "name" in package:
                _expect_str(package["name"], "package.name")

        features: Dict[str, List[str]] = {}
        for feature, activations in _expect_table(data.get("features", {}), "features").items():
            features[feature] = _expect_str_list(activations, f"features.{feature}")

        target: Dict[str, Dict[str, Any]] = {}
        for cfg, section in _expect_table(data.get("target", {}), "target").items():
            section = _expect_table(section, f"target.{cfg}")
            parsed: Dict[str, Any] = {}
            for key, value in section.items():
                if key in DEPENDENCY_TABLES:
                    parsed[key] = parse_dependency_table(value, f"target.{cfg}.{key}")
                else:
                    parsed[key] = copy.deepcopy(value)
            target[cfg] = parsed

        workspace = WorkspaceSection.from_dict(data["workspace"]) if "workspace" in data else None

        handled = {"package", "features", "target", "workspace", *DEPENDENCY_TABLES}
        extra = {key: copy.deepcopy(value) for key, value in data.items() if key not in handled}

        return cls(
            package=package,
            dependencies=parse_dependency_table(data.get("dependencies", {}), "dependencies"),
            dev_dependencies=parse_dependency_table(data.get("dev-dependencies", {}), "dev-dependencies"),
            build_dependencies=parse_dependency_table(data.get("build-dependencies", {}), "build-dependencies"),
            target=target,
            features=features,
            workspace=workspace,
            extra=extra,
            key_order=list(data.keys()),
        )

    def to_dict(self) -> Dict[str, Any]:
        known: Dict[str, Any] = {
            "dependencies": dump_dependency_table(self.dependencies),
            "dev-dependencies": dump_dependency_table(self.dev_dependencies),
            "build-dependencies": dump_dependency_table(self.build_dependencies),
            "features": {name: list(acts) for name, acts in self.features.items()},
            "target": self._dump_target(),
        }
        if self.package is not None:
            known["package"] = copy.deepcopy(self.package)
        if self.workspace is not None:
            known["workspace"] = self.workspace.to_dict()

        result: Dict[str, Any] = {}
        for key in self.key_order:
            if key in known:
                result[key] = known.pop(key)
            elif key in self.extra:
                result[key] = copy.deepcopy(self.extra[key])
        for key, value in known.items():
            if value or key in ("package", "workspace"):
                result[key] = value
        for key, value in self.extra.items():
            if key not in result:
                result[key] = copy.deepcopy(value)
        return result

    def _dump_target(self) -> Dict[str, Any]:
        dumped: Dict[str, Any] = {}
        for cfg, section in self.target.items():
            dumped[cfg] = {
                key: dump_dependency_table(value) if key in DEPENDENCY_TABLES else copy.deepcopy(value)
                for key, value in section.items()
            }
        return dumped


@dataclass(frozen=True)
class LockEntry:
    """One ``[[package]]`` record of a resolved lock file."""

    name: str
    version: str
    source: Optional[str] = None
    checksum: Optional[str] = None
    dependencies: Tuple[str, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_local(self) -> bool:
        """Entries without a source are resolved from the workspace itself."""
        return self.source is None

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self.raw)

    @classmethod
    def from_dict(cls, data: Any, field_path: str) -> LockEntry:
        data = _expect_table(data, field_path)
        if "name" not in data:
            raise ParseError("lock entry is missing `name`", field=field_path)
        if "version" not in data:
            raise ParseError("lock entry is missing `version`", field=field_path)
        return cls(
            name=_expect_str(data["name"], f"{field_path}.name"),
            version=_expect_str(data["version"], f"{field_path}.version"),
            source=_optional(data, "source", _expect_str, field_path),
            checksum=_optional(data, "checksum", _expect_str, field_path),
            dependencies=tuple(_optional(data, "dependencies", _expect_str_list, field_path) or ()),
            raw=copy.deepcopy(data),
        )


@dataclass
class Lockfile:
    """A parsed ``Cargo.lock``."""

    packages: List[LockEntry] = field(default_factory=list)
    version: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Lockfile:
        if not isinstance(data, dict):
            raise ParseError(f"lock file must be a table at the top level, found {_type_name(data)}")
        version = data.get("version")
        if version is not None and (isinstance(version, bool) or not isinstance(version, int)):
            raise ParseError(f"expected an integer, found {_type_name(version)}", field="version")
        raw_packages = data.get("package", [])
        if not isinstance(raw_packages, list):
            raise ParseError(f"expected an array of tables, found {_type_name(raw_packages)}", field="package")
        packages = [
            LockEntry.from_dict(entry, f"package[{index}]")
            for index, entry in enumerate(raw_packages)
        ]
        extra = {
            key: copy.deepcopy(value)
            for key, value in data.items()
            if key not in ("version", "package")
        }
        return cls(packages=packages, version=version, extra=extra, key_order=list(data.keys()))

    def to_dict(self) -> Dict[str, Any]:
        known: Dict[str, Any] = {"package": [entry.to_dict() for entry in self.packages]}
        if self.version is not None:
            known["version"] = self.version
        result: Dict[str, Any] = {}
        for key in self.key_order:
            if key in known:
                result[key] = known.pop(key)
            elif key in self.extra:
                result[key] = copy.deepcopy(self.extra[key])
        result.update(known)
        for key, value in self.extra.items():
            if key not in result:
                result[key] = copy.deepcopy(value)
        return result


__all__ = [
    "DEPENDENCY_TABLES",
    "DependencySpec",
    "DependencyTable",
    "WorkspaceSection",
    "Manifest",
    "LockEntry",
    "Lockfile",
    "parse_dependency_table",
    "dump_dependency_table",
]
