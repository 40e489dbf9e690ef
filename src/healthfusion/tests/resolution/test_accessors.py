import pytest

from healthfusion.resolution import (
    coerce_bool,
    coerce_float,
    coerce_int,
    coerce_string,
    find_key,
    first_coercible,
    get_value,
    try_bool,
    try_float,
    try_int,
    try_list,
    try_mapping,
    try_string,
)
from healthfusion.resolution.accessors import MISSING


class TestCoercions:

    def test_float_from_numeric_strings(self):
        assert coerce_float("12.5") == pytest.approx(12.5)
        assert coerce_float(" 12,5 ") == pytest.approx(12.5)
        assert coerce_float("abc") is None
        assert coerce_float("nan") is None
        assert coerce_float(True) is None

    def test_numbers_beyond_float_range_do_not_coerce(self):
        huge = 10 ** 400
        assert coerce_float(huge) is None
        assert coerce_int(huge) is None
        assert coerce_int(-huge) is None
        assert coerce_float(str(huge)) is None
        assert coerce_int(42) == 42

    @pytest.mark.parametrize("raw, expected", [
        (True, True), ("yes", True), ("TRUE", True), ("1", True), (1, True),
        (False, False), ("No", False), ("0", False), (0, False),
        ("maybe", None), (2, None), (None, None),
    ])
    def test_bool_words(self, raw, expected):
        assert coerce_bool(raw) is expected

    def test_string(self):
        assert coerce_string("x") == "x"
        assert coerce_string("  ") is None
        assert coerce_string(False) == "false"
        assert coerce_string(3) == "3"
        assert coerce_string([1]) is None


class TestAliasAccess:

    def test_find_key_exact_then_case_insensitive(self):
        assert find_key({"PendingCount": 3}, "pendingcount") == 3
        assert find_key({"a": 1}, "b") is MISSING
        assert find_key("not a mapping", "a") is MISSING

    def test_get_value_returns_first_present_alias(self):
        data = {"PendingUpdatesCount": 4}
        assert get_value(data, "PendingCount", "PendingUpdatesCount") == 4
        assert get_value({"pendingCount": None}, "PendingCount", "x") is None
        assert get_value(data, "nothing") is None

    def test_first_alias_that_coerces_wins(self):
        data = {"PendingCount": "n/a", "PendingUpdatesCount": "7"}
        assert try_int(data, "PendingCount", "PendingUpdatesCount") == 7

    def test_alias_order_is_respected(self):
        data = {"b": 2, "a": 1}
        assert try_int(data, "a", "b") == 1
        assert try_int(data, "b", "a") == 2

    def test_typed_accessors(self):
        data = {"temp": "41.5", "ok": "yes", "name": "Disk", "items": [1], "info": {"x": 1}}
        assert try_float(data, "temp") == pytest.approx(41.5)
        assert try_bool(data, "ok") is True
        assert try_string(data, "name") == "Disk"
        assert try_list(data, "items") == [1]
        assert try_mapping(data, "info") == {"x": 1}
        assert try_mapping(data, "items") is None

    def test_first_coercible_accepts_single_alias(self):
        assert first_coercible({"a": "5"}, "a", coerce_float) == pytest.approx(5.0)

    def test_int_truncates_float_strings(self):
        assert try_int({"n": "3.9"}, "n") == 3
