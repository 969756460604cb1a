import math
from datetime import date, timedelta

import pytest

from dvframework import MISSING, ConfigError, is_
from dvframework.raw import moment_to_strptime, stringify, to_number


class TestRawPredicates:
    @pytest.mark.parametrize(
        "predicate, args, expected",
        [
            ("array", ([1, 2],), True),
            ("array", ("1,2",), False),
            ("boolean", (False,), True),
            ("boolean", (1,), True),
            ("boolean", ("true",), False),
            ("date", ("2020-01-31",), True),
            ("date", ("not a date",), False),
            ("function", (len,), True),
            ("null", (None,), True),
            ("number", (12.5,), True),
            ("number", ("12",), False),
            ("number", (True,), False),
            ("numeric", ("12.5",), True),
            ("numeric", ("12a",), False),
            ("object", ({"a": 1},), True),
            ("json", ('{"a": 1}',), True),
            ("json", ("{",), False),
            ("string", ("a",), True),
            ("same_type", (1, 2), True),
            ("same_type", (1, "1"), False),
            ("empty", ("",), True),
            ("empty", ([],), True),
            ("empty", (MISSING,), True),
            ("empty", (0,), False),
            ("existy", (0,), True),
            ("existy", (None,), False),
            ("truthy", ("yes",), True),
            ("truthy", (0,), False),
            ("falsy", (False,), True),
            ("url", ("https://example.com/path?query=1",), True),
            ("url", ("example",), False),
            ("email", ("foo@bar.com",), True),
            ("email", ("foo@bar",), False),
            ("phone", ("555-123-4567",), True),
            ("credit_card", ("4111 1111 1111 1111",), True),
            ("credit_card", ("1234",), False),
            ("alpha", ("abc",), True),
            ("alpha", ("ab1",), False),
            ("alpha_numeric", ("ab1",), True),
            ("affirmative", ("Yes",), True),
            ("affirmative", ("no",), False),
            ("ip", ("127.0.0.1",), True),
            ("ipv4", ("::1",), False),
            ("ipv6", ("::1",), True),
            ("uuid", ("c9bf9e57-1685-4c89-bafb-ff5af830be8a",), True),
            ("uuid", ("c9bf9e57",), False),
            ("regex", ("ABC", "^[a-z]+$", "i"), True),
            ("regex", ("ABC", "^[a-z]+$"), False),
            ("same", (1, 1.0), True),
            ("same", ("1", 1), False),
            ("even", (4,), True),
            ("odd", (3,), True),
            ("positive", (-1,), False),
            ("negative", (-1,), True),
            ("above", (5, "4"), True),
            ("under", (5, 4), False),
            ("between", (5, 1, 10), True),
            ("between", (10, 1, 10), True),
            ("between", (11, 1, 10), False),
            ("in_array", (10, ["10", "20"]), True),
            ("in_array", ("30", ["10", "20"]), False),
            ("sorted", ([1, 2, 2, 3],), True),
            ("sorted", ([3, 1],), False),
            ("intersect_any", ([1, 2], [2, 3]), True),
            ("intersect_all", ([1, 2], [2, 3]), False),
            ("after", ("2020-01-02", "2020-01-01"), True),
            ("before", ("2020-01-02", "2020-01-01"), False),
            ("in_date_range", ("2020-01-15", "2020-01-01", "2020-02-01"), True),
            ("past", ("2000-01-01",), True),
            ("future", ("2000-01-01",), False),
            ("date_format", ("2020-01-31", "YYYY-MM-DD"), True),
            ("date_format", ("31-01-2020", "YYYY-MM-DD"), False),
            ("date_format", ("31-01-2020", ["YYYY-MM-DD", "DD-MM-YYYY"]), True),
            ("time", ("10:30:15",), True),
            ("time", ("25:00",), False),
        ],
    )
    def test_predicates(self, predicate, args, expected):
        assert is_.get(predicate)(*args) is expected

    def test_relative_days(self):
        assert is_.today(date.today().isoformat())
        assert is_.yesterday((date.today() - timedelta(days=1)).isoformat())
        assert is_.tomorrow(date.today() + timedelta(days=1))

    def test_attribute_access_in_any_spelling(self):
        assert is_.alpha_numeric is is_.alphaNumeric
        assert is_.inArray(2, [1, 2])
        assert "alphaNumeric" in is_

    def test_unknown_predicate(self):
        with pytest.raises(AttributeError):
            is_.foo  # pylint: disable=pointless-statement

    def test_extend(self):
        is_.extend("isDivisibleBy3", lambda value: value % 3 == 0)
        assert is_.is_divisible_by3(9)
        assert is_.isDivisibleBy3(9)
        assert not is_.is_divisible_by3(10)

    def test_extend_with_non_callable(self):
        with pytest.raises(ConfigError, match="is_.extend expects 2nd parameter as a function"):
            is_.extend("foo", "bar")

    def test_builtin_predicates_are_documented(self):
        undocumented = [name for name in is_ if not is_.get(name).__doc__]
        assert undocumented == []


class TestValueHelpers:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (True, "true"),
            (None, "null"),
            (MISSING, "undefined"),
            (10.0, "10"),
            (10.5, "10.5"),
            ([1, None, "a"], "1,,a"),
        ],
    )
    def test_stringify(self, value, expected):
        assert stringify(value) == expected

    def test_to_number(self):
        assert to_number(" 12.5 ") == 12.5
        assert to_number(True) == 1.0
        assert math.isnan(to_number("abc"))
        assert math.isnan(to_number(None))

    def test_moment_to_strptime(self):
        assert moment_to_strptime("YYYY-MM-DD HH:mm:ss") == "%Y-%m-%d %H:%M:%S"
        assert moment_to_strptime("hh:mm A") == "%I:%M %p"
