"""Typed release-note configuration.

``Config`` describes *what* to diff (repositories, the pinned dependency,
label tables) and is read from an optional ``relnotes.toml`` at the
workspace root. ``Settings`` is everything a single run needs, passed to the
pipeline explicitly; nothing below the CLI reads the process environment.

Example ``relnotes.toml``::

    [repos]
    primary = "purestake/thales"
    checkout = "thales"
    dependency = "paritytech/substrate"
    dependency_prefix = "substrate#"

    [dependency]
    name = "sp-runtime"
    lockfile = "Cargo.lock"

    [categories]
    misc = "B1-releasenotes"

    [priorities]
    "C9-critical" = "critical"
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from relnotes.core.result import Err, Ok, Result
from relnotes.core.structured import StrDict, as_str_dict, get_str, get_table
from relnotes.release.classify import (
    DEFAULT_CATEGORIES,
    DEFAULT_PRIORITIES,
    ClassificationRules,
    Priority,
)
from relnotes.release.lockfile import TagPrefixResolution

__all__ = [
    "CONFIG_FILENAME",
    "Config",
    "ConfigError",
    "DependencyConfig",
    "ReposConfig",
    "Settings",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "relnotes.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReposConfig:
    """Repository slugs (owner/name) and the client checkout location.

    ``checkout`` is relative to the workspace root.
    """

    primary: str = "purestake/thales"
    checkout: str = "thales"
    dependency: str = "paritytech/substrate"
    dependency_prefix: str = "substrate#"


@dataclass(frozen=True, slots=True)
class DependencyConfig:
    """The lockfile entry that pins the dependency repository."""

    name: str = "sp-runtime"
    lockfile: str = "Cargo.lock"
    table: str = "package"
    tag_prefix: str = "v"

    def resolution(self) -> TagPrefixResolution:
        return TagPrefixResolution(prefix=self.tag_prefix)


@dataclass(frozen=True, slots=True)
class Config:
    repos: ReposConfig = field(default_factory=ReposConfig)
    dependency: DependencyConfig = field(default_factory=DependencyConfig)
    runtime_source: str = "runtime/src/lib.rs"
    # Relative to the client checkout; None uses the bundled template.
    template: str | None = None
    categories: Mapping[str, str] = field(default_factory=lambda: DEFAULT_CATEGORIES)
    priorities: Mapping[str, Priority] = field(default_factory=lambda: DEFAULT_PRIORITIES)

    def rules(self) -> ClassificationRules:
        return ClassificationRules(categories=self.categories, priorities=self.priorities)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: On an unknown priority rank or a non-string label.
        """
        repos: StrDict = get_table(data, "repos") or {}
        dep: StrDict = get_table(data, "dependency") or {}
        runtime: StrDict = get_table(data, "runtime") or {}
        template: StrDict = get_table(data, "template") or {}

        defaults_repos = ReposConfig()
        defaults_dep = DependencyConfig()

        return cls(
            repos=ReposConfig(
                primary=get_str(repos, "primary") or defaults_repos.primary,
                checkout=get_str(repos, "checkout") or defaults_repos.checkout,
                dependency=get_str(repos, "dependency") or defaults_repos.dependency,
                dependency_prefix=get_str(repos, "dependency_prefix")
                or defaults_repos.dependency_prefix,
            ),
            dependency=DependencyConfig(
                name=get_str(dep, "name") or defaults_dep.name,
                lockfile=get_str(dep, "lockfile") or defaults_dep.lockfile,
                table=get_str(dep, "table") or defaults_dep.table,
                # An empty prefix is meaningful (bare X.Y.Z tags).
                tag_prefix=_raw_str(dep, "tag_prefix", defaults_dep.tag_prefix),
            ),
            runtime_source=get_str(runtime, "source") or "runtime/src/lib.rs",
            template=get_str(template, "path"),
            categories=_categories(get_table(data, "categories")),
            priorities=_priorities(get_table(data, "priorities")),
        )


def _raw_str(table: Mapping[str, object], key: str, default: str) -> str:
    value = table.get(key)
    return value.strip() if isinstance(value, str) else default


def _categories(table: StrDict | None) -> Mapping[str, str]:
    if not table:
        return DEFAULT_CATEGORIES
    out: dict[str, str] = {}
    for name in table:
        label = get_str(table, name)
        if label is None:
            raise ValueError(f"categories.{name} must be a label string")
        out[name] = label
    return MappingProxyType(out)


def _priorities(table: StrDict | None) -> Mapping[str, Priority]:
    if not table:
        return DEFAULT_PRIORITIES
    out: dict[str, Priority] = {}
    for label in table:
        rank = get_str(table, label)
        if rank is None or rank.upper() not in Priority.__members__:
            names = ", ".join(p.name.lower() for p in Priority)
            raise ValueError(f"priorities.{label} must be one of: {names}")
        out[label] = Priority[rank.upper()]
    return MappingProxyType(out)


@dataclass(frozen=True, slots=True)
class Settings:
    """Explicit inputs of one release-note run.

    Attributes:
        workspace: Directory holding the client checkout.
        version: Target version tag (may not be tagged yet).
        token: GitHub token handed to ``gh``; None uses gh's own login.
        rustc: Stable compiler version used for the build.
        wasm_toolchain: Nightly toolchain used for the runtime build.
        runtime: Runtime identifier; read from the runtime source when None.
        artifacts: Build artifact references passed through to the template.
        config: Repository and label configuration.
    """

    workspace: Path
    version: str
    token: str | None = None
    rustc: str | None = None
    wasm_toolchain: str | None = None
    runtime: str | None = None
    artifacts: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    config: Config = field(default_factory=Config)

    @property
    def checkout(self) -> Path:
        return self.workspace / self.config.repos.checkout


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relnotes.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Like load_config, but a missing file yields the default Config."""
    if not path.exists():
        return Ok(Config())
    return load_config(path)
