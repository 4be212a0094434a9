from __future__ import annotations

import random

import pytest

from relnotes.core.result import Err, Ok
from relnotes.release.semver import Version, VersionSeries, parse_tag


class TestParseTag:
    def test_release(self) -> None:
        assert parse_tag("v1.2.3") == Version(1, 2, 3)

    def test_prerelease_and_build(self) -> None:
        v = parse_tag("v1.2.3-rc.1+build.7")
        assert v is not None
        assert v.prerelease == ("rc", "1")
        assert v.build == "build.7"
        assert v.is_prerelease

    @pytest.mark.parametrize(
        "tag",
        ["1.2.3", "v1.2", "v01.2.3", "v1.2.3-", "release-v1.2.3", "v1.2.3 extra", "latest"],
    )
    def test_rejects_non_release_tags(self, tag: str) -> None:
        assert parse_tag(tag) is None

    def test_to_tag(self) -> None:
        assert Version(1, 0, 0, ("beta", "2")).to_tag() == "v1.0.0-beta.2"


class TestOrdering:
    def test_numeric_not_lexical(self) -> None:
        assert parse_tag("v0.9.0") < parse_tag("v0.10.0")  # type: ignore[operator]

    def test_prerelease_before_release(self) -> None:
        assert parse_tag("v1.0.0-rc.1") < parse_tag("v1.0.0")  # type: ignore[operator]

    def test_prerelease_identifiers(self) -> None:
        ordered = [
            "v1.0.0-alpha",
            "v1.0.0-alpha.1",
            "v1.0.0-alpha.beta",
            "v1.0.0-beta",
            "v1.0.0-beta.2",
            "v1.0.0-beta.11",
            "v1.0.0-rc.1",
            "v1.0.0",
        ]
        shuffled = ordered[:]
        random.Random(7).shuffle(shuffled)
        assert sorted(shuffled, key=lambda t: parse_tag(t)) == ordered  # type: ignore[arg-type,return-value]

    def test_build_metadata_ignored(self) -> None:
        a = parse_tag("v1.0.0+a")
        b = parse_tag("v1.0.0+b")
        assert a == b
        assert hash(a) == hash(b)


class TestVersionSeries:
    def test_select_previous_one(self) -> None:
        series = VersionSeries(["v1.0.0", "v1.1.0", "v1.2.0"], current="v1.2.0")
        result = series.select_previous(1)
        assert isinstance(result, Ok)
        assert result.value.tag == "v1.1.0"
        assert series.current() == "v1.2.0"

    def test_select_previous_zero_is_latest(self) -> None:
        series = VersionSeries(["v1.2.0", "v1.0.0", "v1.1.0"], current="v1.3.0")
        result = series.select_previous(0)
        assert isinstance(result, Ok)
        assert result.value.tag == "v1.2.0"

    def test_ignores_non_matching_tags(self) -> None:
        tags = ["v1.0.0", "nightly", "v2.0.0-garbage!", "foo-v9.9.9", "v1.1.0"]
        series = VersionSeries(tags, current="v1.1.0")
        assert series.tags() == ["v1.0.0", "v1.1.0"]
        result = series.select_previous(1)
        assert isinstance(result, Ok)
        assert result.value.tag == "v1.0.0"

    def test_insufficient_history(self) -> None:
        series = VersionSeries(["v1.0.0", "not-a-tag"], current="v1.0.0")
        result = series.select_previous(1)
        assert isinstance(result, Err)
        assert result.error.kind == "insufficient_history"

    def test_negative_rank_rejected(self) -> None:
        with pytest.raises(ValueError):
            VersionSeries(["v1.0.0"], current="v1.0.0").select_previous(-1)

    def test_earlier_rank_is_strictly_older(self) -> None:
        tags = ["v0.1.0", "v0.2.0-rc.1", "v0.2.0", "v0.10.0", "v1.0.0-beta.1"]
        series = VersionSeries(tags, current="v1.0.0-beta.1")
        picks = [series.select_previous(n) for n in range(len(series))]
        versions = [p.value.version for p in picks if isinstance(p, Ok)]
        assert len(versions) == len(tags)
        assert all(later > earlier for later, earlier in zip(versions, versions[1:]))

    def test_equal_versions_pick_greatest_tag_and_flag_ambiguity(self) -> None:
        series = VersionSeries(["v1.0.0", "v1.1.0+b", "v1.1.0+a", "v1.2.0"], current="v1.2.0")
        result = series.select_previous(1)
        assert isinstance(result, Ok)
        assert result.value.tag == "v1.1.0+b"
        assert result.value.ambiguous_with == ("v1.1.0+a",)
        assert result.value.is_ambiguous
        warning = result.value.warning()
        assert warning is not None and "v1.1.0+a" in warning

    def test_equal_versions_count_as_one_rank(self) -> None:
        series = VersionSeries(["v1.0.0", "v1.0.0+x"], current="v1.0.0")
        assert len(series) == 1
        assert isinstance(series.select_previous(1), Err)

    def test_unambiguous_selection_has_no_warning(self) -> None:
        result = VersionSeries(["v1.0.0", "v1.1.0"], current="v1.1.0").select_previous(1)
        assert isinstance(result, Ok)
        assert result.value.warning() is None


class TestSelectBefore:
    def test_current_tagged(self) -> None:
        series = VersionSeries(["v1.0.0", "v1.1.0", "v1.2.0"], current="v1.2.0")
        result = series.select_before(series.current())
        assert isinstance(result, Ok)
        assert result.value.tag == "v1.1.0"

    def test_current_not_tagged_yet(self) -> None:
        series = VersionSeries(["v1.0.0", "v1.1.0"], current="v1.2.0")
        result = series.select_before("v1.2.0")
        assert isinstance(result, Ok)
        assert result.value.tag == "v1.1.0"

    def test_release_after_its_prereleases(self) -> None:
        series = VersionSeries(["v1.0.0", "v1.1.0-rc.1", "v1.1.0-rc.2"], current="v1.1.0")
        result = series.select_before("v1.1.0")
        assert isinstance(result, Ok)
        assert result.value.tag == "v1.1.0-rc.2"

    def test_nothing_older(self) -> None:
        result = VersionSeries(["v1.0.0"], current="v1.0.0").select_before("v1.0.0")
        assert isinstance(result, Err)
        assert result.error.kind == "insufficient_history"

    def test_invalid_target(self) -> None:
        result = VersionSeries(["v1.0.0"], current="main").select_before("main")
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_tag"
