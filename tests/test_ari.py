"""Tests for per-night rate resolution (pure, no DB)."""

from datetime import date, datetime

from hotelero.domain.ari import (
    NO_RATE,
    RatePlanInterval,
    as_date,
    build_ari_grid,
    iter_nights,
    resolve_ari_cell,
    resolve_night_rate,
    weekday_bit,
)

MONDAY = date(2024, 1, 1)
SATURDAY = date(2024, 1, 6)
SUNDAY = date(2024, 1, 7)


def make_interval(
    start: str = "2024-01-01",
    end: str = "2024-01-08",
    *,
    room_type_id: str = "A",
    rate: int = 10000,
    priority: int = 0,
    dow_mask: int = 0b1111111,
    closed: bool = False,
    id: str = "",
    min_los: int | None = None,
) -> RatePlanInterval:
    return RatePlanInterval(
        id=id,
        room_type_id=room_type_id,
        start_date=date.fromisoformat(start),
        end_date=date.fromisoformat(end),
        base_rate_cents=rate,
        dow_mask=dow_mask,
        closed=closed,
        priority=priority,
        min_los=min_los,
    )


class TestResolveNightRate:
    """Tests for resolve_night_rate()."""

    def test_end_to_end_priority_and_coverage(self):
        intervals = [
            make_interval("2024-01-01", "2024-01-08", priority=1, rate=100),
            make_interval("2024-01-03", "2024-01-05", priority=5, rate=150),
        ]
        assert resolve_night_rate("A", "2024-01-03", intervals).base_rate_cents == 150
        assert resolve_night_rate("A", "2024-01-06", intervals).base_rate_cents == 100

    def test_total_equals_base(self):
        rate = resolve_night_rate("A", MONDAY, [make_interval(rate=12345)])
        assert rate.base_rate_cents == 12345
        assert rate.total_rate_cents == 12345
        assert rate.is_priced

    def test_higher_priority_wins(self):
        intervals = [
            make_interval(priority=5, rate=500),
            make_interval(priority=10, rate=1000),
        ]
        assert resolve_night_rate("A", MONDAY, intervals).base_rate_cents == 1000

    def test_closed_interval_never_selected(self):
        intervals = [
            make_interval(priority=99, rate=1, closed=True),
            make_interval(priority=0, rate=200),
        ]
        assert resolve_night_rate("A", MONDAY, intervals).base_rate_cents == 200

    def test_only_closed_interval_means_no_rate(self):
        intervals = [make_interval(closed=True)]
        assert resolve_night_rate("A", MONDAY, intervals) == NO_RATE

    def test_start_date_is_covered(self):
        intervals = [make_interval("2024-01-03", "2024-01-05")]
        assert resolve_night_rate("A", "2024-01-03", intervals).is_priced

    def test_end_date_is_exclusive(self):
        intervals = [make_interval("2024-01-03", "2024-01-05")]
        assert resolve_night_rate("A", "2024-01-04", intervals).is_priced
        assert resolve_night_rate("A", "2024-01-05", intervals) == NO_RATE

    def test_before_start_not_covered(self):
        intervals = [make_interval("2024-01-03", "2024-01-05")]
        assert resolve_night_rate("A", "2024-01-02", intervals) == NO_RATE

    def test_monday_matches_bit_zero(self):
        assert resolve_night_rate("A", MONDAY, [make_interval(dow_mask=0b0000001)]).is_priced
        assert not resolve_night_rate("A", MONDAY, [make_interval(dow_mask=0b0000010)]).is_priced

    def test_sunday_matches_bit_six(self):
        sunday_only = make_interval("2024-01-01", "2024-01-15", dow_mask=0b1000000)
        bit_zero = make_interval("2024-01-01", "2024-01-15", dow_mask=0b0000001)
        assert resolve_night_rate("A", SUNDAY, [sunday_only]).is_priced
        assert not resolve_night_rate("A", SUNDAY, [bit_zero]).is_priced

    def test_weekend_surcharge_interval(self):
        intervals = [
            make_interval("2024-01-01", "2024-02-01", rate=100),
            make_interval("2024-01-01", "2024-02-01", rate=180, priority=1, dow_mask=0b1100000),
        ]
        assert resolve_night_rate("A", date(2024, 1, 5), intervals).base_rate_cents == 100
        assert resolve_night_rate("A", SATURDAY, intervals).base_rate_cents == 180
        assert resolve_night_rate("A", SUNDAY, intervals).base_rate_cents == 180

    def test_other_room_type_ignored(self):
        intervals = [make_interval(room_type_id="B", rate=999)]
        assert resolve_night_rate("A", MONDAY, intervals) == NO_RATE

    def test_no_intervals_returns_null_pair(self):
        rate = resolve_night_rate("A", MONDAY, [])
        assert rate.base_rate_cents is None
        assert rate.total_rate_cents is None
        assert not rate.is_priced

    def test_missing_room_type_does_not_inspect_intervals(self):
        class Exploding(list):
            def __iter__(self):
                raise AssertionError("intervals should not be read")

        assert resolve_night_rate(None, MONDAY, Exploding()) == NO_RATE

    def test_accepts_iso_string_and_date(self):
        intervals = [make_interval()]
        assert resolve_night_rate("A", "2024-01-02", intervals) == resolve_night_rate(
            "A", date(2024, 1, 2), intervals
        )


class TestTieBreak:
    """Equal priority must resolve the same way whatever the input order."""

    def test_latest_start_wins(self):
        older = make_interval("2024-01-01", "2024-01-31", rate=100, id="1")
        newer = make_interval("2024-01-02", "2024-01-31", rate=200, id="2")
        for intervals in ([older, newer], [newer, older]):
            assert resolve_night_rate("A", "2024-01-10", intervals).base_rate_cents == 200

    def test_narrowest_range_wins_on_same_start(self):
        wide = make_interval("2024-01-01", "2024-01-31", rate=100)
        narrow = make_interval("2024-01-01", "2024-01-10", rate=200)
        for intervals in ([wide, narrow], [narrow, wide]):
            assert resolve_night_rate("A", "2024-01-05", intervals).base_rate_cents == 200

    def test_greatest_id_wins_on_identical_ranges(self):
        a = make_interval(rate=100, id="aaa")
        b = make_interval(rate=200, id="bbb")
        for intervals in ([a, b], [b, a]):
            assert resolve_night_rate("A", MONDAY, intervals).base_rate_cents == 200

    def test_priority_beats_specificity(self):
        broad_high = make_interval("2024-01-01", "2024-12-31", rate=100, priority=2)
        narrow_low = make_interval("2024-01-05", "2024-01-06", rate=200, priority=1)
        assert resolve_night_rate("A", "2024-01-05", [narrow_low, broad_high]).base_rate_cents == 100


class TestAriCell:
    """Tests for grid cell resolution (closed intervals visible)."""

    def test_closed_winner_shows_closed_without_rate(self):
        intervals = [
            make_interval(rate=100),
            make_interval("2024-01-03", "2024-01-04", closed=True, priority=1, min_los=2),
        ]
        cell = resolve_ari_cell("A", date(2024, 1, 3), intervals)
        assert cell.closed is True
        assert cell.base_rate_cents is None
        assert cell.min_los == 2

    def test_open_winner(self):
        cell = resolve_ari_cell("A", MONDAY, [make_interval(rate=100, min_los=3)])
        assert cell.closed is False
        assert cell.base_rate_cents == 100
        assert cell.min_los == 3

    def test_empty_cell(self):
        cell = resolve_ari_cell("A", MONDAY, [])
        assert (cell.base_rate_cents, cell.min_los, cell.closed) == (None, None, False)

    def test_build_grid_covers_half_open_range(self):
        intervals = [
            make_interval("2024-01-01", "2024-01-03", rate=100),
            make_interval(room_type_id="B", rate=300),
        ]
        grid = build_ari_grid(["A", "B"], date(2024, 1, 1), date(2024, 1, 4), intervals)

        assert set(grid) == {"A", "B"}
        assert list(grid["A"]) == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
        assert grid["A"][date(2024, 1, 2)].base_rate_cents == 100
        assert grid["A"][date(2024, 1, 3)].base_rate_cents is None
        assert grid["B"][date(2024, 1, 3)].base_rate_cents == 300


class TestHelpers:
    def test_weekday_bit(self):
        assert weekday_bit(MONDAY) == 1
        assert weekday_bit(SATURDAY) == 1 << 5
        assert weekday_bit(SUNDAY) == 1 << 6

    def test_iter_nights_excludes_checkout(self):
        nights = list(iter_nights(date(2024, 2, 28), date(2024, 3, 2)))
        assert nights == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]

    def test_iter_nights_empty_when_same_day(self):
        assert list(iter_nights(MONDAY, MONDAY)) == []

    def test_as_date_accepts_datetime(self):
        assert as_date(datetime(2024, 1, 6, 23, 30)) == SATURDAY
        assert type(as_date(datetime(2024, 1, 6, 23, 30))) is date

    def test_as_date_accepts_iso_string(self):
        assert as_date("2024-01-07") == SUNDAY

    def test_resolve_with_datetime_night(self):
        interval = make_interval(rate=12300)
        rate = resolve_night_rate("A", datetime(2024, 1, 3, 15, 0), [interval])
        assert rate.base_rate_cents == 12300
