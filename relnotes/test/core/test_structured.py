from __future__ import annotations

from relnotes.core.structured import as_obj_list, as_str_dict, get_int, get_list, get_str, get_table


def test_as_str_dict_rejects_non_string_keys() -> None:
    assert as_str_dict({"a": 1}) == {"a": 1}
    assert as_str_dict({1: "a"}) is None
    assert as_str_dict(["a"]) is None


def test_as_obj_list() -> None:
    assert as_obj_list([1, "a"]) == [1, "a"]
    assert as_obj_list({"a": 1}) is None


def test_get_str_strips_and_rejects_blank() -> None:
    table: dict[str, object] = {"a": "  x ", "b": "   ", "c": 3}
    assert get_str(table, "a") == "x"
    assert get_str(table, "b") is None
    assert get_str(table, "c") is None
    assert get_str(table, "missing") is None


def test_get_int_rejects_bool() -> None:
    table: dict[str, object] = {"n": 3, "flag": True, "s": "3"}
    assert get_int(table, "n") == 3
    assert get_int(table, "flag") is None
    assert get_int(table, "s") is None


def test_get_table_and_list() -> None:
    table: dict[str, object] = {"t": {"k": "v"}, "l": [1], "x": "y"}
    assert get_table(table, "t") == {"k": "v"}
    assert get_table(table, "x") is None
    assert get_list(table, "l") == [1]
    assert get_list(table, "t") is None
