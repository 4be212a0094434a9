"""Tests for relnotes.core.result."""

import pytest

from relnotes.core.result import Err, Ok, Result, is_err, is_ok


class TestOk:
    def test_unwrap(self) -> None:
        assert Ok(42).unwrap() == 42

    def test_unwrap_or_ignores_default(self) -> None:
        assert Ok(42).unwrap_or(0) == 42

    def test_map(self) -> None:
        assert Ok(2).map(lambda v: v * 3) == Ok(6)

    def test_map_err_is_noop(self) -> None:
        result = Ok(1)
        assert result.map_err(str) is result


class TestErr:
    def test_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="called unwrap on Err"):
            Err("boom").unwrap()

    def test_unwrap_or_returns_default(self) -> None:
        assert Err("boom").unwrap_or(7) == 7

    def test_map_err(self) -> None:
        assert Err("boom").map_err(str.upper) == Err("BOOM")


def test_type_guards() -> None:
    ok: Result[int, str] = Ok(1)
    err: Result[int, str] = Err("x")
    assert is_ok(ok) and not is_err(ok)
    assert is_err(err) and not is_ok(err)


def test_pattern_matching() -> None:
    match Ok("v1.2.0"):
        case Ok(value):
            assert value == "v1.2.0"
        case Err(_):
            pytest.fail("expected Ok")
