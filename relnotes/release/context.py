"""Assembly of the flat context handed to the template renderer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from relnotes.core.result import Err, Ok, Result
from relnotes.release.changes import Change
from relnotes.release.classify import Classification, Priority
from relnotes.release.errors import ReleaseError
from relnotes.release.lockfile import DependencyRange


@dataclass(frozen=True, slots=True)
class ReleaseInputs:
    """Values produced outside the changelog (toolchains, runtime, artifacts)."""

    rustc: str | None = None
    wasm_toolchain: str | None = None
    runtime: str | None = None
    artifacts: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def missing(self) -> tuple[str, ...]:
        required = {
            "rustc": self.rustc,
            "wasm_toolchain": self.wasm_toolchain,
            "runtime": self.runtime,
        }
        return tuple(name for name, value in required.items() if not (value and value.strip()))


@dataclass(frozen=True, slots=True)
class ReleaseContext:
    version: str
    previous_version: str
    dependency: DependencyRange
    categories: Mapping[str, tuple[Change, ...]]
    overall_priority: Priority
    rustc: str
    wasm_toolchain: str
    runtime: str
    artifacts: Mapping[str, str]

    @property
    def misc(self) -> tuple[Change, ...]:
        return self.categories.get("misc", ())

    @property
    def client(self) -> tuple[Change, ...]:
        return self.categories.get("client", ())

    @property
    def runtime_changes(self) -> tuple[Change, ...]:
        return self.categories.get("runtime", ())

    def as_template_vars(self) -> dict[str, object]:
        """Flatten into the key -> value mapping templates are rendered with.

        Each category ``name`` is exposed as ``<name>_changes``.
        """
        out: dict[str, object] = {
            "version": self.version,
            "previous_version": self.previous_version,
            "dependency_name": self.dependency.name,
            "dependency_previous": self.dependency.previous_ref,
            "dependency_current": self.dependency.current_ref,
            "release_priority": self.overall_priority,
            "release_priority_text": self.overall_priority.text,
            "rustc": self.rustc,
            "toolchain_nightly": self.wasm_toolchain,
            "runtime": self.runtime,
            "artifacts": dict(self.artifacts),
        }
        for name, changes in self.categories.items():
            out[f"{name}_changes"] = list(changes)
        return out


def build_release_context(
    *,
    version: str,
    previous_version: str,
    dependency: DependencyRange,
    classification: Classification,
    inputs: ReleaseInputs,
) -> Result[ReleaseContext, ReleaseError]:
    missing = inputs.missing()
    if missing:
        return Err(
            ReleaseError(
                kind="missing_release_input",
                message=f"missing release input: {missing[0]}",
                hint=", ".join(missing) if len(missing) > 1 else None,
                subject=missing[0],
            )
        )

    # missing() guarantees these are set.
    assert inputs.rustc and inputs.wasm_toolchain and inputs.runtime
    return Ok(
        ReleaseContext(
            version=version,
            previous_version=previous_version,
            dependency=dependency,
            categories=MappingProxyType(dict(classification.buckets)),
            overall_priority=classification.overall_priority,
            rustc=inputs.rustc.strip(),
            wasm_toolchain=inputs.wasm_toolchain.strip(),
            runtime=inputs.runtime.strip(),
            artifacts=MappingProxyType(dict(inputs.artifacts)),
        )
    )
