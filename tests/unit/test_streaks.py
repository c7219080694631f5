from datetime import date, datetime, timedelta, timezone

from fitpulse.core.streaks import compute_streak, utc_day

TODAY = date(2024, 3, 15)


def _days_ago(*offsets: int) -> list[date]:
    return [TODAY - timedelta(days=offset) for offset in offsets]


def test_no_checkins_is_zero() -> None:
    assert compute_streak([], today=TODAY) == 0


def test_only_today() -> None:
    assert compute_streak(_days_ago(0), today=TODAY) == 1


def test_consecutive_run_ending_today() -> None:
    assert compute_streak(_days_ago(0, 1, 2, 3), today=TODAY) == 4


def test_gap_ends_the_run() -> None:
    assert compute_streak(_days_ago(0, 1, 3, 4, 5), today=TODAY) == 2


def test_gap_at_yesterday() -> None:
    assert compute_streak(_days_ago(0, 2), today=TODAY) == 1


def test_missing_today_means_no_streak() -> None:
    assert compute_streak(_days_ago(1, 2, 3), today=TODAY) == 0


def test_order_does_not_matter() -> None:
    assert compute_streak(_days_ago(2, 0, 1), today=TODAY) == 3


def test_same_day_entries_count_once() -> None:
    morning = datetime(2024, 3, 15, 7, 30)
    evening = datetime(2024, 3, 15, 21, 5)
    yesterday = datetime(2024, 3, 14, 12, 0)
    assert compute_streak([morning, evening, yesterday], today=TODAY) == 2


def test_aware_timestamps_use_utc_day() -> None:
    # 23:30 at UTC-5 on the 14th is already the 15th in UTC.
    late_evening = datetime(2024, 3, 14, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert utc_day(late_evening) == date(2024, 3, 15)
    assert compute_streak([late_evening], today=TODAY) == 1


def test_naive_timestamps_are_taken_as_utc() -> None:
    assert utc_day(datetime(2024, 3, 15, 0, 1)) == date(2024, 3, 15)
