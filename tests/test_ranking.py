"""Tests for ranking and multi-day scoring."""

import pytest

from ou_skier.config import DEFAULT_WEIGHTS
from ou_skier.fetch import DailySeries, HourlySeries, WeatherResponse
from ou_skier.metrics import extract_day_metrics
from ou_skier.ranking import (
    DayRankings,
    ResortWeatherMismatchError,
    calculate_resort_scores_for_all_days,
    clamp_day_index,
    rank_resorts,
    score_all_days,
    score_resorts,
    score_resorts_for_day,
    top_resorts,
)
from ou_skier.resorts import Coordinates, PisteInfo, Resort
from ou_skier.score import ScoreBreakdown, ScoredResort, calculate_score

DATES = ["2025-01-15", "2025-01-16", "2025-01-17", "2025-01-18", "2025-01-19"]


def make_resort(id: str, open_km: float = 50) -> Resort:
    """Create a minimal resort for testing."""
    return Resort(
        id=id,
        name=f"Resort {id}",
        region="Valais",
        coordinates=Coordinates(lat=46.1, lon=7.5),
        elevation=1800,
        piste_info=PisteInfo(total=100, open=open_km),
    )


def make_weather(daily_sunshine_h=(0, 0, 0, 0, 0), daily_snowfall=(0, 0, 0, 0, 0), wind=0.0) -> WeatherResponse:
    return WeatherResponse(
        latitude=46.1,
        longitude=7.5,
        timezone="Europe/Zurich",
        hourly=HourlySeries(
            time=[f"h{i}" for i in range(120)],
            temperature_2m=[-6.0] * 120,
            snowfall=[0.0] * 120,
            snow_depth=[100.0] * 120,
            windspeed_10m=[wind] * 120,
        ),
        daily=DailySeries(
            time=list(DATES),
            snowfall_sum=[float(v) for v in daily_snowfall],
            sunshine_duration=[h * 3600.0 for h in daily_sunshine_h],
            temperature_2m_max=[-2.0] * 5,
            temperature_2m_min=[-10.0] * 5,
        ),
    )


BREAKDOWN = ScoreBreakdown(
    recent_snowfall=0, snow_depth=0, forecast_snowfall=0,
    piste_openings=0, wind=0, temperature=0, sunshine=0,
)


def make_scored(id: str, score: int) -> ScoredResort:
    return ScoredResort(resort=make_resort(id), score=score, breakdown=BREAKDOWN, weather=make_weather())


class TestRankResorts:
    def test_sorted_descending(self):
        ranked = rank_resorts([make_scored("a", 40), make_scored("b", 90), make_scored("c", 65)])
        assert [r.resort.id for r in ranked] == ["b", "c", "a"]

    def test_ranks_contiguous(self):
        """Ranks are 1..N with no gaps or duplicates."""
        ranked = rank_resorts([make_scored(str(i), s) for i, s in enumerate([5, 50, 50, 20, 99, 0])])
        assert [r.rank for r in ranked] == [1, 2, 3, 4, 5, 6]

    def test_ties_keep_input_order(self):
        ranked = rank_resorts([
            make_scored("first", 70),
            make_scored("top", 80),
            make_scored("second", 70),
            make_scored("third", 70),
        ])
        assert [r.resort.id for r in ranked] == ["top", "first", "second", "third"]

    def test_input_not_mutated(self):
        scored = [make_scored("a", 10), make_scored("b", 20)]
        rank_resorts(scored)
        assert [r.rank for r in scored] == [0, 0]
        assert [r.resort.id for r in scored] == ["a", "b"]

    def test_empty(self):
        assert rank_resorts([]) == []


class TestTopResorts:
    def test_first_n(self):
        ranked = rank_resorts([make_scored(str(i), i) for i in range(6)])
        top = top_resorts(ranked, 3)
        assert [r.score for r in top] == [5, 4, 3]

    def test_fewer_than_n(self):
        ranked = rank_resorts([make_scored("a", 1)])
        assert len(top_resorts(ranked)) == 1


class TestScoreResorts:
    def test_mismatch_raises(self):
        """Resort and weather counts must match."""
        with pytest.raises(ResortWeatherMismatchError, match="Mismatch"):
            score_resorts([make_resort("a"), make_resort("b")], [make_weather()])

    def test_mismatch_is_value_error(self):
        assert issubclass(ResortWeatherMismatchError, ValueError)

    def test_scores_and_ranks(self):
        resorts = [make_resort("cloudy"), make_resort("sunny")]
        weather = [make_weather(), make_weather(daily_sunshine_h=(8, 8, 8, 8, 8))]
        ranked = score_resorts(resorts, weather)
        assert [r.resort.id for r in ranked] == ["sunny", "cloudy"]
        assert [r.rank for r in ranked] == [1, 2]
        assert ranked[0].weather is weather[1]

    def test_empty(self):
        assert score_resorts([], []) == []


class TestMultiDay:
    def test_five_day_scores(self):
        weather = make_weather(daily_sunshine_h=(0, 10, 20, 30, 40))
        multi = calculate_resort_scores_for_all_days(make_resort("a"), weather)
        assert [d.day for d in multi.day_scores] == [0, 1, 2, 3, 4]
        assert [d.date for d in multi.day_scores] == DATES
        assert multi.weather is weather
        scores = [d.score for d in multi.day_scores]
        assert scores == sorted(scores)
        assert scores[0] < scores[4]

    def test_day_score_matches_direct_scoring(self):
        """Each day is scored with that day's metrics and snowfall only."""
        resort = make_resort("a")
        weather = make_weather(daily_sunshine_h=(1, 2, 3, 4, 5), daily_snowfall=(0, 5, 10, 15, 20))
        multi = calculate_resort_scores_for_all_days(resort, weather)
        for day in range(5):
            expected = calculate_score(
                resort, extract_day_metrics(weather, day), [weather.daily.snowfall_sum[day]], DEFAULT_WEIGHTS,
            )
            assert multi.day_scores[day].score == expected.total
            assert multi.day_scores[day].breakdown == expected.breakdown

    def test_single_day_forecast_snowfall(self):
        weather = make_weather(daily_snowfall=(0, 0, 0, 0, 30))
        multi = calculate_resort_scores_for_all_days(make_resort("a"), weather)
        assert multi.day_scores[4].breakdown.forecast_snowfall == 30.0
        assert multi.day_scores[0].breakdown.forecast_snowfall == 0.0

    def test_short_daily_arrays(self):
        """Missing days score with zeros instead of failing."""
        weather = make_weather()
        truncated = WeatherResponse(
            latitude=weather.latitude,
            longitude=weather.longitude,
            timezone=weather.timezone,
            hourly=weather.hourly,
            daily=DailySeries(
                time=DATES[:3], snowfall_sum=[1.0] * 3, sunshine_duration=[0.0] * 3,
                temperature_2m_max=[0.0] * 3, temperature_2m_min=[0.0] * 3,
            ),
        )
        multi = calculate_resort_scores_for_all_days(make_resort("a"), truncated)
        assert len(multi.day_scores) == 5
        assert multi.day_scores[4].date == ""
        assert multi.day_scores[4].breakdown.forecast_snowfall == 0.0

    def test_score_all_days_mismatch(self):
        with pytest.raises(ResortWeatherMismatchError):
            score_all_days([make_resort("a")], [])


class TestScoreResortsForDay:
    def setup_method(self):
        # "early" is sunny at the start of the window, "late" at the end
        self.multi = score_all_days(
            [make_resort("early"), make_resort("late")],
            [
                make_weather(daily_sunshine_h=(10, 10, 0, 0, 0)),
                make_weather(daily_sunshine_h=(0, 0, 0, 10, 10)),
            ],
        )

    def test_rankings_change_with_day(self):
        day0 = score_resorts_for_day(self.multi, 0)
        day4 = score_resorts_for_day(self.multi, 4)
        assert [r.resort.id for r in day0.resorts] == ["early", "late"]
        assert [r.resort.id for r in day4.resorts] == ["late", "early"]

    def test_day_and_date(self):
        rankings = score_resorts_for_day(self.multi, 3)
        assert isinstance(rankings, DayRankings)
        assert rankings.day == 3
        assert rankings.date == "2025-01-18"

    def test_projects_precomputed_scores(self):
        rankings = score_resorts_for_day(self.multi, 1)
        by_id = {r.resort.id: r for r in rankings.resorts}
        assert by_id["early"].score == self.multi[0].day_scores[1].score
        assert by_id["late"].breakdown == self.multi[1].day_scores[1].breakdown
        assert [r.rank for r in rankings.resorts] == [1, 2]

    def test_equal_day_scores_keep_input_order(self):
        rankings = score_resorts_for_day(self.multi, 2)
        assert [r.resort.id for r in rankings.resorts] == ["early", "late"]

    def test_empty(self):
        rankings = score_resorts_for_day([], 0)
        assert rankings.resorts == []
        assert rankings.date is None

    def test_clamped_out_of_range_day(self):
        """Callers clamp day 7 to 4 before ranking."""
        rankings = score_resorts_for_day(self.multi, clamp_day_index(7))
        assert rankings.day == 4
        assert rankings.date == "2025-01-19"


class TestClampDayIndex:
    @pytest.mark.parametrize("day,expected", [(-3, 0), (0, 0), (2, 2), (4, 4), (7, 4)])
    def test_clamp(self, day, expected):
        assert clamp_day_index(day) == expected
