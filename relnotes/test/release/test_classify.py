from __future__ import annotations

from types import MappingProxyType

from relnotes.release.changes import Change, merge
from relnotes.release.classify import (
    ClassificationRules,
    Priority,
    changes_with_label,
    classify,
    highest_priority,
    priority_of,
)


def _change(id: int, *labels: str) -> Change:
    return Change(id=id, title=f"change {id}", labels=frozenset(labels))


_RULES = ClassificationRules(
    categories=MappingProxyType({"misc": "B1", "runtime": "B7"}),
)


def test_scenario_merge_then_classify() -> None:
    merged = merge([_change(1, "B1")], [_change(9, "B7")], "substrate#")

    result = classify(merged, _RULES)

    assert [c.id for c in result.bucket("misc")] == [1]
    assert [c.display_id for c in result.bucket("runtime")] == ["substrate#9"]


def test_change_in_several_buckets_or_none() -> None:
    both = _change(1, "B1", "B7")
    neither = _change(2, "X9")

    result = classify([both, neither], _RULES)

    assert result.bucket("misc") == (both,)
    assert result.bucket("runtime") == (both,)
    assert result.bucket("unknown") == ()


def test_bucket_order_follows_input() -> None:
    changes = [_change(i, "B1") for i in (5, 2, 9)]
    result = classify(changes, _RULES)
    assert [c.id for c in result.bucket("misc")] == [5, 2, 9]


def test_classify_is_idempotent_per_bucket() -> None:
    changes = [_change(1, "B1"), _change(2, "B7"), _change(3, "B1", "B7")]
    first = classify(changes, _RULES)
    again = classify(first.bucket("misc"), _RULES)
    assert again.bucket("misc") == first.bucket("misc")


def test_default_categories() -> None:
    changes = [
        _change(1, "B1-releasenotes"),
        _change(2, "B5-clientnoteworthy"),
        _change(3, "B7-runtimenoteworthy"),
    ]
    result = classify(changes)
    assert [c.id for c in result.bucket("misc")] == [1]
    assert [c.id for c in result.bucket("client")] == [2]
    assert [c.id for c in result.bucket("runtime")] == [3]


class TestPriority:
    def test_ordering(self) -> None:
        assert Priority.NONE < Priority.LOW < Priority.MEDIUM < Priority.HIGH < Priority.CRITICAL

    def test_empty_collection_is_lowest(self) -> None:
        assert classify([]).overall_priority == Priority.NONE

    def test_no_priority_labels_is_lowest(self) -> None:
        assert classify([_change(1, "B1-releasenotes")]).overall_priority == Priority.NONE

    def test_highest_wins_regardless_of_count(self) -> None:
        changes = [_change(i, "C1-low") for i in range(20)]
        changes.insert(7, _change(99, "C9-critical"))
        changes += [_change(100, "C3-medium"), _change(101, "C7-high")]
        assert classify(changes).overall_priority == Priority.CRITICAL

    def test_priority_of_change_with_several_labels(self) -> None:
        rules = ClassificationRules()
        assert priority_of(_change(1, "C1-low", "C7-high"), rules) == Priority.HIGH
        assert priority_of(_change(1), rules) == Priority.NONE

    def test_custom_priority_table(self) -> None:
        rules = ClassificationRules(priorities=MappingProxyType({"urgent": Priority.HIGH}))
        assert highest_priority([_change(1, "urgent"), _change(2, "C9-critical")], rules) == (
            Priority.HIGH
        )

    def test_text_and_str(self) -> None:
        assert str(Priority.CRITICAL) == "critical"
        assert Priority.NONE.text == "No upgrade priority"


def test_changes_with_label() -> None:
    changes = [_change(1, "a"), _change(2, "b"), _change(3, "a", "b")]
    assert [c.id for c in changes_with_label(changes, "a")] == [1, 3]
