import pytest
from datetime import date, timedelta

from habits.domain import FormationStage, HabitCompletionData, PatternType, TrendDirection
from habits.exceptions import InvalidDateRangeError, InvalidInputError
from habits.tests.factories import HABIT_A, MONDAY, USER_2, daily_records, day, record

AS_OF = date(2025, 6, 30)


class TestSuccessRate:

    def test_all_days_completed_is_one(self, analytics_engine):
        records = daily_records(MONDAY, [True] * 10)
        assert analytics_engine.calculate_success_rate(records, MONDAY, day(9)) == 1.0

    def test_empty_completions_is_zero(self, analytics_engine):
        assert analytics_engine.calculate_success_rate([], MONDAY, day(30)) == 0.0

    def test_reversed_range_is_zero(self, analytics_engine):
        records = daily_records(MONDAY, [True] * 3)
        assert analytics_engine.calculate_success_rate(records, day(5), MONDAY) == 0.0

    def test_half_completed(self, analytics_engine):
        records = daily_records(MONDAY, [True, False] * 5)
        assert analytics_engine.calculate_success_rate(records, MONDAY, day(9)) == pytest.approx(0.5)

    def test_records_outside_window_ignored(self, analytics_engine):
        records = daily_records(MONDAY - timedelta(days=5), [True] * 10)
        # Only days 0..4 of the window are covered
        assert analytics_engine.calculate_success_rate(records, MONDAY, day(9)) == pytest.approx(0.5)

    def test_null_record_rejected(self, analytics_engine):
        with pytest.raises(InvalidInputError):
            analytics_engine.calculate_success_rate([record(MONDAY), None], MONDAY, day(1))


class TestConsistencyScore:

    def test_steady_weeks_score_one(self, analytics_engine):
        records = daily_records(MONDAY, [True] * 14)
        assert analytics_engine.calculate_consistency_score(records, MONDAY, day(13)) == pytest.approx(1.0)

    def test_empty_is_zero(self, analytics_engine):
        assert analytics_engine.calculate_consistency_score([], MONDAY, day(13)) == 0.0

    def test_no_completions_is_zero(self, analytics_engine):
        records = daily_records(MONDAY, [False] * 14)
        assert analytics_engine.calculate_consistency_score(records, MONDAY, day(13)) == 0.0

    def test_all_then_nothing_is_zero(self, analytics_engine):
        records = daily_records(MONDAY, [True] * 7 + [False] * 7)
        assert analytics_engine.calculate_consistency_score(records, MONDAY, day(13)) == pytest.approx(0.0)

    def test_partial_drop(self, analytics_engine):
        records = daily_records(MONDAY, [True] * 7 + [True] * 4 + [False] * 3)
        # weekly rates 1.0 and 4/7, population stddev 3/14
        expected = 1 - (3 / 14) / 0.5
        assert analytics_engine.calculate_consistency_score(records, MONDAY, day(13)) == pytest.approx(expected)

    def test_short_window_single_bucket(self, analytics_engine):
        records = daily_records(MONDAY, [True, False, True])
        score = analytics_engine.calculate_consistency_score(records, MONDAY, day(2))
        assert 0.0 <= score <= 1.0

    def test_reversed_range_rejected(self, analytics_engine):
        with pytest.raises(InvalidDateRangeError):
            analytics_engine.calculate_consistency_score(daily_records(MONDAY, [True] * 14), day(13), MONDAY)


class TestCompletionTrends:

    def test_improving(self, analytics_engine):
        records = daily_records(MONDAY, [False] * 7 + [True] * 7)
        result = analytics_engine.detect_completion_trends(records, MONDAY, day(13))
        assert result.overall_trend == TrendDirection.IMPROVING
        assert result.trend_strength > 0

    def test_declining(self, analytics_engine):
        records = daily_records(MONDAY, [True] * 7 + [False] * 7)
        result = analytics_engine.detect_completion_trends(records, MONDAY, day(13))
        assert result.overall_trend == TrendDirection.DECLINING
        assert result.trend_strength > 0

    def test_stable_when_constant(self, analytics_engine):
        records = daily_records(MONDAY, [True] * 14)
        result = analytics_engine.detect_completion_trends(records, MONDAY, day(13))
        assert result.overall_trend == TrendDirection.STABLE
        assert result.trend_strength == pytest.approx(0.0, abs=1e-9)

    def test_empty_has_all_weekdays(self, analytics_engine):
        result = analytics_engine.detect_completion_trends([], MONDAY, day(13))
        assert result.overall_trend == TrendDirection.STABLE
        assert result.trend_strength == 0.0
        assert result.day_of_week_patterns == {d: 0.0 for d in range(7)}
        assert result.patterns == []

    def test_weekday_weekend_split(self, analytics_engine):
        flags = [day(i).weekday() < 5 for i in range(14)]
        records = daily_records(MONDAY, flags)
        result = analytics_engine.detect_completion_trends(records, MONDAY, day(13))

        assert set(result.day_of_week_patterns) == set(range(7))
        assert result.day_of_week_patterns[0] == 1.0
        assert result.day_of_week_patterns[6] == 0.0
        assert result.overall_trend == TrendDirection.STABLE
        assert [p.pattern_type for p in result.patterns] == ['WEEKEND_WEEKDAY']
        assert result.patterns[0].significance == pytest.approx(1.0)

    def test_single_day_is_stable(self, analytics_engine):
        result = analytics_engine.detect_completion_trends(daily_records(MONDAY, [True]), MONDAY, MONDAY)
        assert result.overall_trend == TrendDirection.STABLE
        assert result.trend_strength == 0.0
        assert result.day_of_week_patterns[0] == 1.0

    def test_reversed_range_rejected(self, analytics_engine):
        with pytest.raises(InvalidDateRangeError):
            analytics_engine.detect_completion_trends(daily_records(MONDAY, [True] * 14), day(13), MONDAY)


class TestHabitFormation:

    def test_start_after_as_of_rejected(self, analytics_engine):
        with pytest.raises(InvalidInputError):
            analytics_engine.analyze_habit_formation([], AS_OF + timedelta(days=1), as_of=AS_OF)

    def test_mastery_after_long_streak(self, analytics_engine):
        start = AS_OF - timedelta(days=99)
        result = analytics_engine.analyze_habit_formation(daily_records(start, [True] * 100), start, as_of=AS_OF)

        assert result.stage == FormationStage.MASTERY
        assert result.current_streak == 100
        assert result.progress == pytest.approx(1.0)
        assert result.milestone_types == ['FIRST_STREAK', 'WEEK_STREAK', 'HABIT_FORMING', 'HABIT_FORMED']

    def test_initiation_for_new_habit(self, analytics_engine):
        start = AS_OF - timedelta(days=3)
        result = analytics_engine.analyze_habit_formation(daily_records(start, [True] * 4), start, as_of=AS_OF)

        assert result.stage == FormationStage.INITIATION
        assert result.current_streak == 4
        assert result.milestone_types == ['FIRST_STREAK']

    def test_initiation_for_low_success(self, analytics_engine):
        start = AS_OF - timedelta(days=20)
        flags = [True, True, True] + [False] * 18
        result = analytics_engine.analyze_habit_formation(daily_records(start, flags), start, as_of=AS_OF)
        assert result.stage == FormationStage.INITIATION
        assert result.current_streak == 0

    def test_start_day_counts_toward_success(self, analytics_engine):
        # 3 of 11 days (10 elapsed + start day) is below the 0.3 floor; 3 of 10 would not be
        start = AS_OF - timedelta(days=10)
        flags = [True] * 3 + [False] * 8
        result = analytics_engine.analyze_habit_formation(daily_records(start, flags), start, as_of=AS_OF)
        assert result.stage == FormationStage.INITIATION
        assert result.progress == pytest.approx(0.3 * 10 / 66 + 0.3 * 3 / 11)

    def test_development(self, analytics_engine):
        start = AS_OF - timedelta(days=14)
        result = analytics_engine.analyze_habit_formation(daily_records(start, [True] * 15), start, as_of=AS_OF)
        assert result.stage == FormationStage.DEVELOPMENT
        assert result.milestone_types == ['FIRST_STREAK', 'WEEK_STREAK']

    def test_stabilization(self, analytics_engine):
        start = AS_OF - timedelta(days=40)
        result = analytics_engine.analyze_habit_formation(daily_records(start, [True] * 41), start, as_of=AS_OF)
        assert result.stage == FormationStage.STABILIZATION
        assert 'HABIT_FORMING' in result.milestone_types
        assert 'HABIT_FORMED' not in result.milestone_types

    def test_broken_streak_blocks_mastery(self, analytics_engine):
        start = AS_OF - timedelta(days=99)
        flags = [True] * 100
        flags[89] = False  # AS_OF - 10
        result = analytics_engine.analyze_habit_formation(daily_records(start, flags), start, as_of=AS_OF)
        assert result.current_streak == 10
        assert result.stage == FormationStage.STABILIZATION

    def test_streak_ending_yesterday_is_current(self, analytics_engine):
        start = AS_OF - timedelta(days=9)
        result = analytics_engine.analyze_habit_formation(daily_records(start, [True] * 9), start, as_of=AS_OF)
        assert result.current_streak == 9

    def test_stale_streak_is_zero(self, analytics_engine):
        start = AS_OF - timedelta(days=9)
        result = analytics_engine.analyze_habit_formation(daily_records(start, [True] * 7), start, as_of=AS_OF)
        assert result.current_streak == 0

    def test_progress_grows_with_time(self, analytics_engine):
        early_start = AS_OF - timedelta(days=10)
        late_start = AS_OF - timedelta(days=20)
        early = analytics_engine.analyze_habit_formation(daily_records(early_start, [True] * 11), early_start, as_of=AS_OF)
        late = analytics_engine.analyze_habit_formation(daily_records(late_start, [True] * 21), late_start, as_of=AS_OF)
        assert late.progress > early.progress

    def test_empty_completions(self, analytics_engine):
        start = AS_OF - timedelta(days=10)
        result = analytics_engine.analyze_habit_formation([], start, as_of=AS_OF)
        assert result.stage == FormationStage.INITIATION
        assert result.current_streak == 0
        assert result.progress == pytest.approx(0.3 * 10 / 66)
        assert result.milestones == []

    def test_custom_formed_threshold(self, config):
        from habits.services import HabitAnalyticsEngine
        engine = HabitAnalyticsEngine(config=config.with_overrides(habit_formed_streak_days=30))
        start = AS_OF - timedelta(days=39)
        result = engine.analyze_habit_formation(daily_records(start, [True] * 40), start, as_of=AS_OF)
        assert 'HABIT_FORMED' in result.milestone_types


class TestPatternRecognition:

    def test_empty_input(self, analytics_engine):
        result = analytics_engine.recognize_patterns([], MONDAY, day(27))
        assert result.patterns == []
        assert result.pattern_confidence == {}

    def test_weekday_habit(self, analytics_engine):
        flags = [day(i).weekday() < 5 for i in range(28)]
        result = analytics_engine.recognize_patterns(daily_records(MONDAY, flags), MONDAY, day(27))

        found = {p.pattern_type for p in result.patterns}
        assert found == {PatternType.WEEKLY_CYCLE, PatternType.STREAK_BEHAVIOR, PatternType.RECOVERY_BEHAVIOR}
        assert result.pattern_confidence['WEEKLY_CYCLE'] == pytest.approx(1.0)
        assert set(result.pattern_confidence) == {p.pattern_type.value for p in result.patterns}

    def test_uniform_habit_has_no_weekly_cycle(self, analytics_engine):
        result = analytics_engine.recognize_patterns(daily_records(MONDAY, [True] * 28), MONDAY, day(27))
        assert 'WEEKLY_CYCLE' not in result.pattern_confidence
        assert 'STREAK_BEHAVIOR' in result.pattern_confidence

    def test_seasonal_variation(self, analytics_engine):
        start, end = date(2025, 1, 1), date(2025, 4, 30)
        flags = [(start + timedelta(days=i)).month in (1, 3) for i in range((end - start).days + 1)]
        result = analytics_engine.recognize_patterns(daily_records(start, flags), start, end)
        assert result.pattern_confidence['SEASONAL_VARIATION'] == pytest.approx(1.0)

    def test_short_window_has_no_seasonal(self, analytics_engine):
        flags = [True, False] * 20
        result = analytics_engine.recognize_patterns(daily_records(MONDAY, flags), MONDAY, day(39))
        assert 'SEASONAL_VARIATION' not in result.pattern_confidence

    def test_reversed_range_rejected(self, analytics_engine):
        with pytest.raises(InvalidDateRangeError):
            analytics_engine.recognize_patterns(daily_records(MONDAY, [True] * 28), day(27), MONDAY)


class TestHabitCompletionData:

    def test_reversed_window_rejected(self):
        with pytest.raises(InvalidDateRangeError):
            HabitCompletionData(HABIT_A, day(5), MONDAY, [])

    def test_null_record_rejected(self):
        with pytest.raises(InvalidInputError):
            HabitCompletionData(HABIT_A, MONDAY, day(5), [None])

    def test_repeated_day_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            HabitCompletionData(HABIT_A, MONDAY, MONDAY, [record(MONDAY, True), record(MONDAY, False)])
        assert 'duplicate' in str(exc_info.value)

    def test_same_day_for_other_user_allowed(self):
        data = HabitCompletionData(HABIT_A, MONDAY, MONDAY, [record(MONDAY), record(MONDAY, user_id=USER_2)])
        assert len(data.completions) == 2

    def test_completions_sorted_by_date(self):
        data = HabitCompletionData(HABIT_A, MONDAY, day(5), [record(day(3)), record(day(1))])
        assert [r.date for r in data.completions] == [day(1), day(3)]
