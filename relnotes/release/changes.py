"""Change records and the cross-repository merge."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Protocol

from relnotes.core.result import Result
from relnotes.release.errors import ReleaseError


@dataclass(frozen=True, slots=True)
class Change:
    """A merged pull request.

    ``id`` is the repository-scoped request number and is never rewritten.
    ``prefix`` is set only on entries merged in from a secondary repository
    and only affects ``display_id``.
    """

    id: int
    title: str
    labels: frozenset[str] = field(default_factory=frozenset)
    repo: str = ""
    merged_at: str | None = None
    url: str | None = None
    prefix: str | None = None

    @property
    def display_id(self) -> str:
        if self.prefix is not None:
            return f"{self.prefix}{self.id}"
        return f"#{self.id}"

    @property
    def pretty_title(self) -> str:
        return f"{self.title} ({self.display_id})"

    def has_label(self, label: str) -> bool:
        return label in self.labels


def merge(
    primary: Sequence[Change],
    secondary: Sequence[Change],
    secondary_prefix: str,
) -> tuple[Change, ...]:
    """Concatenate primary then secondary changes.

    Secondary entries are copied with ``secondary_prefix`` as their display
    prefix. Nothing is deduplicated: request numbers are scoped to their own
    repository.
    """
    decorated = tuple(replace(c, prefix=secondary_prefix) for c in secondary)
    return (*primary, *decorated)


class ChangeSource(Protocol):
    """Provider of merged changes between two refs of one repository.

    Implementations return changes oldest-merged first and do not retry;
    retry policy belongs to the caller.
    """

    def fetch(
        self, repo: str, from_ref: str, to_ref: str
    ) -> Result[tuple[Change, ...], ReleaseError]: ...
