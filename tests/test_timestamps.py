from __future__ import annotations

from datetime import datetime, timezone

import pytest

from jwt_forge.timestamps import parse_duration, resolve_timestamp

NOW = 1_700_000_000.75


def test_datetime_is_floored_to_epoch_seconds() -> None:
    moment = datetime(2024, 1, 2, 3, 4, 5, 900000, tzinfo=timezone.utc)
    assert resolve_timestamp(moment, now=NOW) == 1704164645


def test_epoch_milliseconds_are_converted() -> None:
    assert resolve_timestamp(1_700_000_123_999, now=NOW) == 1_700_000_123
    assert resolve_timestamp(946080000000, now=NOW) == 946080000


def test_epoch_seconds_are_kept() -> None:
    assert resolve_timestamp(1_800_000_000, now=NOW) == 1_800_000_000
    assert resolve_timestamp(1_800_000_000.9, now=NOW) == 1_800_000_000
    assert resolve_timestamp(946080000, now=NOW) == 946080000


def test_small_numbers_are_relative_offsets() -> None:
    assert resolve_timestamp(3600, now=NOW) == 1_700_000_000 + 3600
    assert resolve_timestamp(-30, now=NOW) == 1_700_000_000 - 30
    assert resolve_timestamp(946079999, now=NOW) == 1_700_000_000 + 946079999


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1h", 1_700_003_600),
        ("1H", 1_700_003_600),
        (" 15 m ", 1_700_000_900),
        ("1.5h", 1_700_005_400),
        ("-1s", 1_699_999_999),
        ("500ms", 1_700_000_001),
        ("2d", 1_700_172_800),
        ("1w", 1_700_604_800),
        ("1y", 1_731_536_000),
        ("30s", 1_700_000_030),
    ],
)
def test_duration_strings_are_relative_to_now(text: str, expected: int) -> None:
    assert resolve_timestamp(text, now=NOW) == expected


@pytest.mark.parametrize("value", ["3600", "1x", "h", "", "1 hour", True])
def test_unsupported_inputs_raise(value: object) -> None:
    with pytest.raises(ValueError):
        resolve_timestamp(value, now=NOW)  # type: ignore[arg-type]


def test_parse_duration_distinguishes_ms_from_minutes() -> None:
    assert parse_duration("2ms") == pytest.approx(0.002)
    assert parse_duration("2m") == 120


def test_default_now_is_wall_clock() -> None:
    import time

    before = int(time.time())
    resolved = resolve_timestamp("10s")
    assert before + 9 <= resolved <= int(time.time()) + 10
