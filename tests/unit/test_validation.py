"""Unit tests for shared input checks."""

from datetime import datetime, timedelta, timezone

import pytest

from treasury.services.errors import ValidationError
from treasury.services.validation import to_utc, validate_window


@pytest.mark.unit
class TestToUtc:
    """Timestamp normalization before storage and range filters."""

    def test_naive_value_is_taken_as_utc(self) -> None:
        assert to_utc(datetime(2024, 2, 1, 9)) == datetime(2024, 2, 1, 9, tzinfo=timezone.utc)
        assert to_utc(datetime(2024, 2, 1, 9)).tzinfo is timezone.utc

    def test_offset_value_is_converted(self) -> None:
        local = datetime(2024, 2, 1, tzinfo=timezone(timedelta(hours=7)))

        converted = to_utc(local)

        assert converted.tzinfo is timezone.utc
        assert (converted.year, converted.month, converted.day, converted.hour) == (2024, 1, 31, 17)

    def test_none_passes_through(self) -> None:
        assert to_utc(None) is None


@pytest.mark.unit
class TestValidateWindow:
    """Trailing window lengths."""

    def test_positive_window(self) -> None:
        assert validate_window(1) == 1

    @pytest.mark.parametrize("months", [0, -1, True, 2.5])
    def test_rejects_non_positive_or_non_integer(self, months) -> None:
        with pytest.raises(ValidationError):
            validate_window(months)
