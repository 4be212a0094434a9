"""Runtime identifier lookup.

The release note names the runtime it ships, as ``<spec_name>-<spec_version>``
taken from the ``RuntimeVersion`` declaration in the runtime crate.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from relnotes.core.result import Err, Ok, Result
from relnotes.release.errors import ReleaseError
from relnotes.release.lockfile import RevisionReader

_SPEC_NAME_RE = re.compile(r"spec_name\s*:\s*create_runtime_str!\(\s*\"([^\"]+)\"\s*\)")
_SPEC_VERSION_RE = re.compile(r"spec_version\s*:\s*(\d+)")


@dataclass(frozen=True, slots=True)
class RuntimeVersion:
    spec_name: str
    spec_version: int

    @property
    def identifier(self) -> str:
        return f"{self.spec_name}-{self.spec_version}"


def parse_runtime_version(source: str) -> RuntimeVersion | None:
    name = _SPEC_NAME_RE.search(source)
    version = _SPEC_VERSION_RE.search(source)
    if name is None or version is None:
        return None
    return RuntimeVersion(spec_name=name.group(1), spec_version=int(version.group(1)))


def read_runtime_version(
    repo: RevisionReader,
    revision: str,
    path: str,
) -> Result[RuntimeVersion, ReleaseError]:
    shown = repo.show(revision, path)
    if isinstance(shown, Err):
        return Err(
            ReleaseError(
                kind="revision_not_found",
                message=f"{path} not found at {revision}",
                hint=shown.error.message or None,
                subject=f"{path}@{revision}",
            )
        )

    parsed = parse_runtime_version(shown.value)
    if parsed is None:
        return Err(
            ReleaseError(
                kind="runtime_version_not_found",
                message=f"no RuntimeVersion spec_name/spec_version in {path}@{revision}",
                subject=f"{path}@{revision}",
            )
        )
    return Ok(parsed)
