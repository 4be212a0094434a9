"""Pinned dependency lookup in lockfile snapshots.

The dependency repository's changelog range is not an input: it is read out
of the client's lockfile at the previous and current tags. A pinned version
then maps to a tag in the dependency repository through a
``DependencyResolution`` rule.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from typing import Protocol

from relnotes.core.result import Err, Ok, Result
from relnotes.core.structured import StrDict, as_str_dict, get_list, get_str
from relnotes.release.errors import ReleaseError


class SnapshotError(Protocol):
    @property
    def message(self) -> str: ...


class RevisionReader(Protocol):
    """Anything that can return a file's content as of a revision."""

    def show(self, revision: str, path: str) -> Result[str, SnapshotError]: ...


@dataclass(frozen=True, slots=True)
class ManifestDocument:
    revision: str
    path: str
    data: StrDict


class DependencyResolution(Protocol):
    def to_ref(self, version: str) -> str: ...


@dataclass(frozen=True, slots=True)
class TagPrefixResolution:
    """Dependency version ``X.Y.Z`` maps to tag ``<prefix>X.Y.Z``.

    This only holds while the dependency repository tags its releases that
    way; swap the resolution if it stops doing so.
    """

    prefix: str = "v"

    def to_ref(self, version: str) -> str:
        return f"{self.prefix}{version}"


@dataclass(frozen=True, slots=True)
class DependencyRange:
    name: str
    previous_version: str
    current_version: str
    previous_ref: str
    current_ref: str

    @property
    def changed(self) -> bool:
        return self.previous_version != self.current_version


def parse_manifest(text: str, *, revision: str, path: str) -> Result[ManifestDocument, ReleaseError]:
    try:
        obj: object = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        return Err(
            ReleaseError(
                kind="invalid_manifest",
                message=f"invalid TOML in {path}@{revision}: {e}",
                subject=f"{path}@{revision}",
            )
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(
            ReleaseError(
                kind="invalid_manifest",
                message=f"manifest root is not a table: {path}@{revision}",
                subject=f"{path}@{revision}",
            )
        )
    return Ok(ManifestDocument(revision=revision, path=path, data=data))


def read_manifest(
    repo: RevisionReader,
    revision: str,
    path: str,
) -> Result[ManifestDocument, ReleaseError]:
    """Read ``path`` exactly as committed at ``revision``."""
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
    return parse_manifest(shown.value, revision=revision, path=path)


def extract_version(
    doc: ManifestDocument,
    name: str,
    *,
    table: str = "package",
) -> Result[str, ReleaseError]:
    """Return the version pinned for ``name``.

    The first entry whose name matches exactly wins; later duplicates are
    ignored.
    """
    entries = get_list(doc.data, table) or []
    for item in entries:
        entry = as_str_dict(item)
        if entry is None or get_str(entry, "name") != name:
            continue
        version = get_str(entry, "version")
        if version is None:
            break
        return Ok(version)

    return Err(
        ReleaseError(
            kind="dependency_not_pinned",
            message=f"{name} is not pinned in {doc.path}@{doc.revision}",
            subject=name,
        )
    )


def read_pinned_version(
    repo: RevisionReader,
    revision: str,
    *,
    lockfile: str,
    name: str,
    table: str = "package",
) -> Result[str, ReleaseError]:
    doc = read_manifest(repo, revision, lockfile)
    if isinstance(doc, Err):
        return doc
    return extract_version(doc.value, name, table=table)


def resolve_dependency_range(
    *,
    name: str,
    previous_version: str,
    current_version: str,
    resolution: DependencyResolution,
) -> DependencyRange:
    return DependencyRange(
        name=name,
        previous_version=previous_version,
        current_version=current_version,
        previous_ref=resolution.to_ref(previous_version),
        current_ref=resolution.to_ref(current_version),
    )
