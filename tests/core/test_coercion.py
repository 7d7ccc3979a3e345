"""
Tests for bound-value coercion.
"""

from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from focusflow.core.coercion import (
    UNSET,
    coerce_params,
    coerce_value,
    is_date_only_string,
    is_timestamp_string,
    parse_timestamp,
    sanitize_value,
    to_server_date,
    to_server_datetime,
)
from focusflow.core.errors import CoercionError


class TestSanitize:
    def test_nan_becomes_zero(self):
        assert sanitize_value(float("nan")) == 0

    def test_decimal_nan_becomes_zero(self):
        assert sanitize_value(Decimal("NaN")) == 0

    def test_unset_becomes_none(self):
        assert sanitize_value(UNSET) is None

    def test_other_values_unchanged(self):
        assert sanitize_value(1.5) == 1.5
        assert sanitize_value("x") == "x"
        assert sanitize_value(True) is True

    def test_nan_replacement_is_logged(self):
        with capture_logs() as logs:
            sanitize_value(float("nan"))
        assert logs[0]["event"] == "coercion.nan_replaced"
        assert logs[0]["log_level"] == "warning"

    def test_unset_is_falsy_singleton(self):
        assert not UNSET
        assert repr(UNSET) == "UNSET"
        assert type(UNSET)() is UNSET


class TestTimestampDetection:
    @pytest.mark.parametrize(
        "value",
        ["2026-01-19T12:36:56", "2026-01-19T12:36:56.984Z", "2026-01-19T12:36:56+02:00"],
    )
    def test_timestamp_strings(self, value):
        assert is_timestamp_string(value)

    @pytest.mark.parametrize("value", ["2026-01-19", "12:36:56", "hello", "2026-01-19 12:36:56"])
    def test_not_timestamp_strings(self, value):
        assert not is_timestamp_string(value)

    def test_date_only(self):
        assert is_date_only_string("2026-01-19")
        assert not is_date_only_string("2026-01-19T00:00:00")

    def test_parse_invalid_raises(self):
        with pytest.raises(CoercionError):
            parse_timestamp("2026-13-45T99:99:99")


class TestServerLiterals:
    def test_utc_string(self):
        assert to_server_datetime("2026-01-19T12:36:56.984Z") == "2026-01-19 12:36:56"

    def test_offset_string_converted_to_utc(self):
        assert to_server_datetime("2026-01-19T14:36:56+02:00") == "2026-01-19 12:36:56"

    def test_naive_datetime_kept_as_is(self):
        assert to_server_datetime(datetime(2026, 1, 19, 12, 36, 56, 500)) == "2026-01-19 12:36:56"

    def test_aware_datetime(self):
        tz = timezone(timedelta(hours=-5))
        assert to_server_datetime(datetime(2026, 1, 19, 7, 0, 0, tzinfo=tz)) == "2026-01-19 12:00:00"

    def test_server_date(self):
        assert to_server_date(date(2026, 1, 19)) == "2026-01-19"
        assert to_server_date("2026-01-19") == "2026-01-19"

    def test_server_date_rejects_garbage(self):
        with pytest.raises(CoercionError):
            to_server_date("19/01/2026")

    def test_round_trip_loses_only_sub_second_precision(self):
        original = datetime(2026, 1, 19, 12, 36, 56, 984000, tzinfo=UTC)
        literal = to_server_datetime(original)
        assert datetime.fromisoformat(literal) == original.replace(microsecond=0, tzinfo=None)


class TestCoerceValue:
    def test_iso_string_for_server_engines(self):
        assert coerce_value("2026-01-19T12:36:56.984Z", timestamp_literals=True) == "2026-01-19 12:36:56"

    def test_iso_string_untouched_for_sqlite(self):
        value = "2026-01-19T12:36:56.984Z"
        assert coerce_value(value, timestamp_literals=False) == value

    def test_date_only_string_passes_through(self):
        assert coerce_value("2026-01-19", timestamp_literals=True) == "2026-01-19"

    def test_datetime_for_sqlite_uses_isoformat(self):
        dt = datetime(2026, 1, 19, 12, 36, 56, 984000)
        assert coerce_value(dt, timestamp_literals=False) == "2026-01-19T12:36:56.984000"

    def test_date_for_server_engines(self):
        assert coerce_value(date(2026, 1, 19), timestamp_literals=True) == "2026-01-19"

    def test_unparseable_timestamp_is_kept_and_logged(self):
        value = "2026-13-45T99:99:99"
        with capture_logs() as logs:
            assert coerce_value(value, timestamp_literals=True) == value
        assert any(entry["event"] == "coercion.failed" for entry in logs)

    def test_plain_values_unchanged(self):
        assert coerce_value(42, timestamp_literals=True) == 42
        assert coerce_value("hello", timestamp_literals=True) == "hello"
        assert coerce_value(None, timestamp_literals=True) is None


class TestCoerceParams:
    def test_mixed_list(self):
        assert coerce_params([float("nan"), "x", UNSET], timestamp_literals=True) == (0, "x", None)

    def test_order_and_length_preserved(self):
        values = ["2026-01-19T12:00:00Z", 1, None, "2026-01-19"]
        coerced = coerce_params(values, timestamp_literals=True)
        assert coerced == ("2026-01-19 12:00:00", 1, None, "2026-01-19")

    def test_one_bad_value_does_not_abort(self):
        coerced = coerce_params(["2026-13-45T99:99:99", float("nan")], timestamp_literals=True)
        assert coerced == ("2026-13-45T99:99:99", 0)

    def test_empty(self):
        assert coerce_params([], timestamp_literals=False) == ()
