from datetime import datetime, timedelta, timezone

import pytest

from reaper.moderation.duration import Duration

DAY = 24 * 60 * 60


@pytest.mark.parametrize(
    "text, seconds",
    [
        ("30d", 30 * DAY),
        ("1d12h", DAY + 12 * 60 * 60),
        ("2w 3d", 17 * DAY),
        ("1mo", 30 * DAY),
        ("1y", 365 * DAY),
        ("10m", 600),
        ("5m30s", 330),
        ("1D", DAY),
        ("  2H ", 2 * 60 * 60),
    ],
)
def test_parse_sums_tokens(text, seconds):
    assert Duration.parse(text).seconds == seconds


def test_month_is_not_minute():
    assert Duration.parse("1mo").seconds != Duration.parse("1m").seconds


@pytest.mark.parametrize("text", ["", "abc", "d30", "forever", None])
def test_unparsable_text_degrades_to_zero(text):
    duration = Duration.parse(text)

    assert duration.seconds == 0
    assert duration.is_zero
    assert not duration.is_permanent


def test_zero_duration_instant_is_now():
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)

    assert Duration.parse("nonsense").to_instant(now) == now


def test_to_instant_adds_duration():
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)

    assert Duration.parse("1d12h").to_instant(now) == now + timedelta(days=1, hours=12)


def test_permanent_has_no_instant():
    duration = Duration.permanent()

    assert duration.is_permanent
    assert not duration.is_zero
    assert duration.to_instant() is None
    assert duration.to_timedelta() is None
    assert str(duration) == "permanent"


def test_str_is_normalised_text():
    assert str(Duration.parse(" 1D12H ")) == "1d12h"


def test_span_past_the_calendar_has_no_instant():
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    duration = Duration.parse("10000y")

    assert not duration.is_zero
    assert duration.to_timedelta() is not None
    assert duration.to_instant(now) is None
    assert not duration.is_usable


def test_span_too_large_for_timedelta_is_unusable():
    duration = Duration.parse("99999999999999y")

    assert duration.to_timedelta() is None
    assert duration.to_instant() is None
    assert not duration.is_usable


@pytest.mark.parametrize("text, usable", [("1d", True), ("nonsense", False), ("10000y", False)])
def test_is_usable(text, usable):
    assert Duration.parse(text).is_usable is usable


def test_permanent_is_usable():
    assert Duration.permanent().is_usable


@pytest.mark.parametrize(
    "shorter, longer",
    [
        ("1s", "1m"),
        ("1m", "1h"),
        ("1h", "1d"),
        ("1d", "1w"),
        ("1w", "1mo"),
        ("1mo", "1y"),
        ("1y", "2y"),
        ("1d", "1d1s"),
        ("59m", "1h"),
        ("1d23h", "2d"),
    ],
)
def test_longer_durations_reach_later_instants(shorter, longer):
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)

    assert Duration.parse(shorter).to_instant(now) < Duration.parse(longer).to_instant(now)
