"""Tests for primitive conversions and operator tables."""

import math

import pytest

from visualizer.runtime.operators import (
    Operators,
    default_to_string,
    loose_equals,
    number_to_string,
    same_value_zero,
    strict_equals,
    string_to_number,
    to_boolean,
    to_int32,
    to_number,
)
from visualizer.runtime.values import UNDEFINED, JSArray, JSObject, to_python, type_of


def _identity(value):
    return value


class TestNumberToString:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (5.0, "5"),
            (-0.0, "0"),
            (0.1, "0.1"),
            (1.5, "1.5"),
            (1e21, "1e+21"),
            (1.2345e21, "1.2345e+21"),
            (1e20, "100000000000000000000"),
            (123456789012345680000.0, "123456789012345680000"),
            (-1.5e17, "-150000000000000000"),
            (2.0**53 + 2, "9007199254740994"),
            (1e-7, "1e-7"),
            (0.000001, "0.000001"),
            (math.nan, "NaN"),
            (-math.inf, "-Infinity"),
        ],
    )
    def test_formats_like_javascript(self, value, expected):
        assert number_to_string(value) == expected


class TestConversions:
    def test_string_to_number(self):
        assert string_to_number("  42 ") == 42.0
        assert string_to_number("") == 0.0
        assert string_to_number("0x1f") == 31.0
        assert math.isnan(string_to_number("12px"))

    def test_to_number(self):
        assert to_number(True) == 1.0
        assert to_number(None) == 0.0
        assert math.isnan(to_number(UNDEFINED))
        assert to_number(JSArray([7.0])) == 7.0

    def test_to_boolean(self):
        assert not to_boolean("")
        assert not to_boolean(0.0)
        assert not to_boolean(math.nan)
        assert not to_boolean(UNDEFINED)
        assert to_boolean("0")
        assert to_boolean(JSObject())

    def test_default_to_string(self):
        assert default_to_string(UNDEFINED) == "undefined"
        assert default_to_string(None) == "null"
        assert default_to_string(True) == "true"
        assert default_to_string(JSArray([1.0, None, "a"])) == "1,,a"
        assert default_to_string(JSObject()) == "[object Object]"

    def test_to_int32_wraps(self):
        assert to_int32(2.0**31) == -(2**31)
        assert to_int32(-1.5) == -1


class TestEquality:
    def test_strict_equals(self):
        assert strict_equals(1.0, 1.0)
        assert not strict_equals(1.0, "1")
        assert not strict_equals(math.nan, math.nan)
        obj = JSObject()
        assert strict_equals(obj, obj)
        assert not strict_equals(obj, JSObject())

    def test_same_value_zero_nan(self):
        assert same_value_zero(math.nan, math.nan)
        assert same_value_zero(0.0, -0.0)

    def test_loose_equals(self):
        assert loose_equals(None, UNDEFINED, _identity)
        assert loose_equals(1.0, "1", _identity)
        assert loose_equals(True, 1.0, _identity)
        assert not loose_equals(None, 0.0, _identity)


class TestOperators:
    def test_add_concatenates_strings(self):
        assert Operators.add("a", 1.0) == "a1"
        assert Operators.add(1.0, 2.0) == 3.0

    def test_division_by_zero(self):
        assert Operators.eval_numeric("/", 1.0, 0.0) == math.inf
        assert Operators.eval_numeric("/", -1.0, 0.0) == -math.inf
        assert math.isnan(Operators.eval_numeric("/", 0.0, 0.0))

    def test_remainder_keeps_dividend_sign(self):
        assert Operators.eval_numeric("%", -7.0, 3.0) == -1.0

    def test_bitwise(self):
        assert Operators.eval_bitwise("&", 6.0, 3.0) == 2.0
        assert Operators.eval_bitwise(">>>", -1.0, 28.0) == 15.0
        assert Operators.eval_bitwise("<<", 1.0, 31.0) == -(2.0**31)

    def test_compare(self):
        assert Operators.compare("<", "a", "b")
        assert Operators.compare(">=", 2.0, "2")
        assert not Operators.compare("<", math.nan, 1.0)

    def test_unary(self):
        assert Operators.eval_unary("!", "") is True
        assert Operators.eval_unary("-", "3") == -3.0
        assert Operators.eval_unary("~", 0.0) == -1.0
        assert Operators.eval_unary("void", 1.0) is UNDEFINED


class TestValues:
    def test_type_of(self):
        assert type_of(UNDEFINED) == "undefined"
        assert type_of(None) == "object"
        assert type_of(1.0) == "number"
        assert type_of(JSArray()) == "object"

    def test_to_python(self):
        arr = JSArray([1.0, 2.5, UNDEFINED])
        obj = JSObject()
        obj.properties["items"] = arr
        obj.properties["self"] = obj
        assert to_python(obj) == {"items": [1, 2.5, None], "self": "[Circular]"}
