"""Tests for chatfn.tools.sanitize"""

import json
from dataclasses import dataclass
from enum import Enum

import pytest

from chatfn.tools.sanitize import sanitize


class Color(Enum):
    RED = 1


@dataclass
class Point:
    x: int
    y: int


class Thing:
    def __init__(self):
        self.visible = "yes"
        self._hidden = "no"
        self.callback = lambda: None


class TestSanitize:

    @pytest.mark.parametrize("value", [
        None,
        True,
        0,
        -3,
        2.5,
        "text",
        [],
        {},
        {"nested": {"list": [1, "two", None, False]}},
        [{"a": 1}, [2, [3]]],
    ])
    def test_json_values_round_trip(self, value):
        assert sanitize(value) == value

    def test_circular_dict(self):
        data = {"name": "loop"}
        data["self"] = data
        result = sanitize(data)
        assert result == {"name": "loop", "self": "[Circular]"}
        json.dumps(result)

    def test_circular_list(self):
        items = [1]
        items.append(items)
        assert sanitize(items) == [1, "[Circular]"]

    def test_shared_reference_is_not_circular(self):
        shared = {"v": 1}
        assert sanitize([shared, shared]) == [{"v": 1}, {"v": 1}]

    def test_functions(self):
        assert sanitize(print) == "[Function]"
        assert sanitize({"f": print, "keep": 1}) == {"keep": 1}
        assert sanitize([print]) == ["[Function]"]

    def test_exception(self):
        assert sanitize(ValueError("bad")) == {"error": True, "name": "ValueError", "message": "bad"}

    def test_enum(self):
        assert sanitize(Color.RED) == "<Color.RED>"

    def test_non_finite(self):
        assert sanitize([float("nan"), float("inf")]) == [None, None]

    def test_tuple_and_set(self):
        assert sanitize((1, 2)) == [1, 2]
        assert sanitize({3}) == [3]

    def test_non_string_keys(self):
        assert sanitize({1: "a"}) == {"1": "a"}

    def test_dataclass(self):
        assert sanitize(Point(1, 2)) == {"x": 1, "y": 2}

    def test_object_public_attributes(self):
        assert sanitize(Thing()) == {"visible": "yes"}

    def test_other_falls_back_to_str(self):
        assert sanitize(b"raw") == "b'raw'"

    def test_result_is_json_serializable(self):
        data = {"when": Color.RED, "err": KeyError("k"), "obj": Thing(), "fn": len}
        json.dumps(sanitize(data))
