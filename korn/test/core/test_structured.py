"""Tests for korn.core.structured module."""

from korn.core.structured import (
    as_obj_list,
    as_str_dict,
    get_bool,
    get_int,
    get_list,
    get_str,
    get_str_map,
    get_table,
)


def test_as_str_dict() -> None:
    assert as_str_dict({"a": 1}) == {"a": 1}
    assert as_str_dict({1: "a"}) is None
    assert as_str_dict(["a"]) is None


def test_as_obj_list() -> None:
    assert as_obj_list([1, "a"]) == [1, "a"]
    assert as_obj_list("a") is None


def test_get_str_strips_and_drops_empty() -> None:
    data = {"a": "  x ", "b": "   ", "c": 3}
    assert get_str(data, "a") == "x"
    assert get_str(data, "b") is None
    assert get_str(data, "c") is None
    assert get_str(data, "missing") is None


def test_get_bool_and_int() -> None:
    data = {"flag": True, "n": 3}
    assert get_bool(data, "flag") is True
    assert get_bool(data, "n") is None
    assert get_int(data, "n") == 3
    assert get_int(data, "flag") is None


def test_get_table_and_list() -> None:
    data = {"t": {"k": "v"}, "l": [1]}
    assert get_table(data, "t") == {"k": "v"}
    assert get_table(data, "l") is None
    assert get_list(data, "l") == [1]
    assert get_list(data, "t") is None


def test_get_str_map_keeps_only_strings() -> None:
    data = {"labels": {"a": "1", "b": 2}}
    assert get_str_map(data, "labels") == {"a": "1"}
    assert get_str_map(data, "missing") == {}
