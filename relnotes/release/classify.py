"""Label-driven classification of merged changes.

Both the category table (category name -> required label) and the priority
table (label -> Priority) are plain data, so new categories or priority
labels only need a config change.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType

from relnotes.release.changes import Change


class Priority(IntEnum):
    """Upgrade priority of a release, highest wins."""

    NONE = 0
    LOW = 1
    MEDIUM = 3
    HIGH = 7
    CRITICAL = 9

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def text(self) -> str:
        return _PRIORITY_TEXT[self]


_PRIORITY_TEXT: dict[Priority, str] = {
    Priority.NONE: "No upgrade priority",
    Priority.LOW: "Low: upgrade at your convenience",
    Priority.MEDIUM: "Medium: upgrade within a few days",
    Priority.HIGH: "High: upgrade as soon as possible",
    Priority.CRITICAL: "Critical: upgrade immediately",
}

DEFAULT_CATEGORIES: Mapping[str, str] = MappingProxyType(
    {
        "misc": "B1-releasenotes",
        "client": "B5-clientnoteworthy",
        "runtime": "B7-runtimenoteworthy",
    }
)

DEFAULT_PRIORITIES: Mapping[str, Priority] = MappingProxyType(
    {
        "C1-low": Priority.LOW,
        "C3-medium": Priority.MEDIUM,
        "C7-high": Priority.HIGH,
        "C9-critical": Priority.CRITICAL,
    }
)


@dataclass(frozen=True, slots=True)
class ClassificationRules:
    categories: Mapping[str, str] = field(default_factory=lambda: DEFAULT_CATEGORIES)
    priorities: Mapping[str, Priority] = field(default_factory=lambda: DEFAULT_PRIORITIES)


@dataclass(frozen=True, slots=True)
class Classification:
    buckets: Mapping[str, tuple[Change, ...]]
    overall_priority: Priority

    def bucket(self, name: str) -> tuple[Change, ...]:
        return self.buckets.get(name, ())


def changes_with_label(changes: Iterable[Change], label: str) -> tuple[Change, ...]:
    return tuple(c for c in changes if c.has_label(label))


def priority_of(change: Change, rules: ClassificationRules) -> Priority:
    """Highest priority among a change's labels, NONE if it has none."""
    ranks = [rules.priorities[label] for label in change.labels if label in rules.priorities]
    return max(ranks, default=Priority.NONE)


def highest_priority(changes: Iterable[Change], rules: ClassificationRules) -> Priority:
    return max((priority_of(c, rules) for c in changes), default=Priority.NONE)


def classify(
    changes: Sequence[Change],
    rules: ClassificationRules | None = None,
) -> Classification:
    rules = rules or ClassificationRules()
    buckets = {name: changes_with_label(changes, label) for name, label in rules.categories.items()}
    return Classification(
        buckets=MappingProxyType(buckets),
        overall_priority=highest_priority(changes, rules),
    )
