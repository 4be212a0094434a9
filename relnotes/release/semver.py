"""Version tags and previous-release selection.

Only tags shaped like ``v<major>.<minor>.<patch>[-prerelease][+build]``
take part; anything else in a repository's tag list is ignored.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import total_ordering

from relnotes.core.result import Err, Ok, Result
from relnotes.release.errors import ReleaseError

_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_TAG_RE = re.compile(
    rf"^v(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-({_IDENT}))?(?:\+({_IDENT}))?$"
)


def _ident_key(ident: str) -> tuple[int, int, str]:
    # Numeric identifiers sort before alphanumeric ones.
    if ident.isdigit():
        return (0, int(ident), "")
    return (1, 0, ident)


@total_ordering
@dataclass(frozen=True, slots=True, eq=False)
class Version:
    """A parsed tag. Build metadata is kept but never compared."""

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: str | None = None

    def _key(self) -> tuple[int, int, int, tuple[object, ...]]:
        if not self.prerelease:
            pre: tuple[object, ...] = (1,)
        else:
            pre = (0, tuple(_ident_key(i) for i in self.prerelease))
        return (self.major, self.minor, self.patch, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def to_tag(self) -> str:
        tag = f"v{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            tag += "-" + ".".join(self.prerelease)
        if self.build:
            tag += "+" + self.build
        return tag


def parse_tag(tag: str) -> Version | None:
    m = _TAG_RE.match(tag.strip())
    if m is None:
        return None
    pre = tuple(m.group(4).split(".")) if m.group(4) else ()
    return Version(int(m.group(1)), int(m.group(2)), int(m.group(3)), pre, m.group(5))


@dataclass(frozen=True, slots=True)
class TagSelection:
    """A selected tag plus any other tags that normalize to the same version."""

    tag: str
    version: Version
    ambiguous_with: tuple[str, ...] = ()

    @property
    def is_ambiguous(self) -> bool:
        return bool(self.ambiguous_with)

    def warning(self) -> str | None:
        if not self.ambiguous_with:
            return None
        others = ", ".join(self.ambiguous_with)
        return f"tag {self.tag} has the same version as {others}; using {self.tag}"


@dataclass(frozen=True, slots=True)
class _Rank:
    version: Version
    tags: tuple[str, ...]

    def selection(self) -> TagSelection:
        # Equal versions: the lexicographically greatest tag represents the rank.
        chosen = self.tags[-1]
        return TagSelection(
            tag=chosen,
            version=parse_tag(chosen) or self.version,
            ambiguous_with=self.tags[:-1],
        )


class VersionSeries:
    """Ordered view over a repository's release tags.

    Args:
        tags: Every tag name in the repository, in any order.
        current: The version the run is for. It may not be tagged yet.
    """

    def __init__(self, tags: Iterable[str], current: str) -> None:
        self._current = current
        grouped: dict[Version, set[str]] = {}
        for tag in tags:
            version = parse_tag(tag)
            if version is None:
                continue
            grouped.setdefault(version, set()).add(tag.strip())
        self._ranks = sorted(
            (_Rank(version=v, tags=tuple(sorted(names))) for v, names in grouped.items()),
            key=lambda r: r.version,
        )

    def current(self) -> str:
        return self._current

    def __len__(self) -> int:
        return len(self._ranks)

    def tags(self) -> list[str]:
        """Matching tags, oldest first, one per distinct version."""
        return [r.selection().tag for r in self._ranks]

    def select_previous(self, n: int) -> Result[TagSelection, ReleaseError]:
        """Return the tag ranked ``n`` positions before the most recent one."""
        if n < 0:
            raise ValueError(f"n must be >= 0, got {n}")
        if len(self._ranks) < n + 1:
            return Err(
                ReleaseError(
                    kind="insufficient_history",
                    message=f"need {n + 1} release tags, found {len(self._ranks)}",
                    subject=self._current,
                )
            )
        return Ok(self._ranks[-1 - n].selection())

    def select_before(self, version: str | Version) -> Result[TagSelection, ReleaseError]:
        """Return the newest tag strictly older than ``version``."""
        target = parse_tag(version) if isinstance(version, str) else version
        if target is None:
            return Err(
                ReleaseError(
                    kind="invalid_tag",
                    message=f"not a release tag: {version}",
                    hint="expected v<major>.<minor>.<patch>[-suffix]",
                    subject=str(version),
                )
            )

        older = [r for r in self._ranks if r.version < target]
        if not older:
            return Err(
                ReleaseError(
                    kind="insufficient_history",
                    message=f"no release tag older than {target.to_tag()}",
                    subject=target.to_tag(),
                )
            )
        return Ok(older[-1].selection())
