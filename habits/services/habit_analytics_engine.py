"""
Habit Analytics Engine

Per-habit behavioral metrics computed from raw completion records:
- Success rate and week-to-week consistency
- Trend direction, trend strength and weekday/weekend splits
- Habit formation staging with streak milestones
- Structural pattern recognition (weekly cycle, streaks, seasons, recovery)

Every method is a pure function of its arguments and the frozen config.
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from habits.config import AnalyticsConfig, get_analytics_config
from habits.domain import (
    CompletionPattern, CompletionRecord, CompletionTrendAnalysis, FormationAnalysis,
    FormationMilestone, FormationStage, PatternRecognitionResult, PatternType,
    RecognizedPattern, TrendDirection, validate_date_range, validate_records,
)
from habits.exceptions import AnalyticsError, InvalidInputError
from habits.helpers.metric_helpers import clamp, compute_trend_line, population_std
from habits.services.completion_aggregator import CompletionDataAggregator
from habits.utils.constants import (
    DAYS_PER_WEEK, FORMATION_MILESTONES, FORMATION_STREAK_DAYS, FORMATION_TIME_DAYS,
    MAX_RATE_STDDEV, SEASONAL_MIN_DAYS, SEASONAL_MIN_MONTHS, WEEKEND_DAYS,
    WEEKLY_CYCLE_FULL_CONFIDENCE_DELTA,
)
from habits.utils.time_utils import days_in_range, iter_days, month_key, months_spanned, week_start

logger = logging.getLogger(__name__)


def _in_window(completions: List[CompletionRecord], start_date: date, end_date: date) -> List[CompletionRecord]:
    return [r for r in completions if start_date <= r.date <= end_date]


class HabitAnalyticsEngine:
    """Success, consistency, trend, formation and pattern analytics for one habit."""

    def __init__(self, config: Optional[AnalyticsConfig] = None):
        self.config = config or get_analytics_config()

    # =========================================================================
    # SUCCESS & CONSISTENCY
    # =========================================================================

    def calculate_success_rate(self, completions: List[CompletionRecord],
                               start_date: date, end_date: date) -> float:
        """
        Fraction of days in [start_date, end_date] with a completed record.

        Returns 0.0 for empty completions or a non-positive range length.
        """
        completions = validate_records(completions)
        total_days = days_in_range(start_date, end_date)
        if not completions or total_days <= 0:
            return 0.0

        completed_days = CompletionDataAggregator.completed_dates(_in_window(completions, start_date, end_date))
        return min(1.0, len(completed_days) / total_days)

    def calculate_consistency_score(self, completions: List[CompletionRecord],
                                    start_date: date, end_date: date) -> float:
        """
        Week-to-week stability of the completion rate.

        Days of the window are bucketed into Monday-based weeks; the score is
        1 - stddev(weekly rates) / 0.5, clamped to [0, 1].

        Raises:
            InvalidDateRangeError: if end_date < start_date
        """
        validate_date_range(start_date, end_date)
        completions = validate_records(completions)
        if not completions:
            return 0.0

        done = CompletionDataAggregator.completed_dates(completions)
        days = list(iter_days(start_date, end_date))
        frame = pd.DataFrame({
            'week': [week_start(d) for d in days],
            'completed': [1.0 if d in done else 0.0 for d in days],
        })
        weekly_rates = frame.groupby('week')['completed'].mean().to_numpy()

        if weekly_rates.mean() == 0:
            return 0.0

        return clamp(1.0 - population_std(weekly_rates) / MAX_RATE_STDDEV)

    # =========================================================================
    # TRENDS
    # =========================================================================

    def detect_completion_trends(self, completions: List[CompletionRecord],
                                 start_date: date, end_date: date) -> CompletionTrendAnalysis:
        """
        Compare the first and second half of the window.

        Returns:
            CompletionTrendAnalysis with overall_trend, trend_strength (absolute
            slope of the daily 0/1 series), a seven-day weekday map and any
            significant weekday/weekend pattern.

        Raises:
            InvalidDateRangeError: if end_date < start_date
        """
        validate_date_range(start_date, end_date)
        completions = validate_records(completions)
        window = _in_window(completions, start_date, end_date)
        day_patterns = self._day_of_week_rates(window)

        if not window:
            return CompletionTrendAnalysis(TrendDirection.STABLE, 0.0, day_patterns, [])

        total_days = days_in_range(start_date, end_date)
        if total_days < 2:
            # a single day has no halves to compare
            return CompletionTrendAnalysis(
                TrendDirection.STABLE, 0.0, day_patterns, self._weekend_weekday_patterns(window)
            )

        midpoint = start_date + timedelta(days=total_days // 2)
        first_half = self.calculate_success_rate(window, start_date, midpoint - timedelta(days=1))
        second_half = self.calculate_success_rate(window, midpoint, end_date)
        delta = second_half - first_half

        if delta > self.config.trend_threshold:
            direction = TrendDirection.IMPROVING
        elif delta < -self.config.trend_threshold:
            direction = TrendDirection.DECLINING
        else:
            direction = TrendDirection.STABLE

        done = CompletionDataAggregator.completed_dates(window)
        daily = np.array([1.0 if d in done else 0.0 for d in iter_days(start_date, end_date)])
        trend = compute_trend_line(np.arange(len(daily)), daily)

        logger.debug(f"Trend {direction.value}: first={first_half:.2f} second={second_half:.2f}")
        return CompletionTrendAnalysis(
            overall_trend=direction,
            trend_strength=abs(trend['slope']),
            day_of_week_patterns=day_patterns,
            patterns=self._weekend_weekday_patterns(window),
        )

    @staticmethod
    def _day_of_week_rates(completions: List[CompletionRecord]) -> Dict[int, float]:
        """Completion rate per weekday (0=Monday), all seven days present."""
        rates = {day: 0.0 for day in range(DAYS_PER_WEEK)}
        if not completions:
            return rates
        frame = CompletionDataAggregator.to_frame(completions)
        for day, rate in frame.groupby('weekday')['completed'].mean().items():
            rates[int(day)] = float(rate)
        return rates

    @staticmethod
    def _weekday_weekend_rates(completions: List[CompletionRecord]):
        weekday = [r.completed for r in completions if r.date.weekday() not in WEEKEND_DAYS]
        weekend = [r.completed for r in completions if r.date.weekday() in WEEKEND_DAYS]
        if not weekday or not weekend:
            return None
        return sum(weekday) / len(weekday), sum(weekend) / len(weekend)

    def _weekend_weekday_patterns(self, completions: List[CompletionRecord]) -> List[CompletionPattern]:
        rates = self._weekday_weekend_rates(completions)
        if rates is None:
            return []
        weekday_rate, weekend_rate = rates
        difference = weekday_rate - weekend_rate
        if abs(difference) <= self.config.weekend_weekday_threshold:
            return []

        stronger = 'weekdays' if difference > 0 else 'weekends'
        return [CompletionPattern(
            pattern_type='WEEKEND_WEEKDAY',
            description=f"Higher completion rate on {stronger}",
            significance=abs(difference),
        )]

    # =========================================================================
    # HABIT FORMATION
    # =========================================================================

    def analyze_habit_formation(self, completions: List[CompletionRecord],
                                habit_start_date: date, as_of: Optional[date] = None) -> FormationAnalysis:
        """
        Stage a habit by elapsed days, cumulative success rate and current streak.

        Args:
            completions: records for the habit
            habit_start_date: day the habit was started
            as_of: evaluation day (default: today)

        Raises:
            InvalidInputError: if habit_start_date is after as_of
        """
        completions = validate_records(completions)
        as_of = as_of or date.today()
        if habit_start_date > as_of:
            raise InvalidInputError('habit_start_date', f"{habit_start_date} is after {as_of}")

        elapsed = (as_of - habit_start_date).days
        history = _in_window(completions, habit_start_date, as_of)
        completed_days = CompletionDataAggregator.completed_dates(history)
        success_rate = min(1.0, len(completed_days) / (elapsed + 1))
        current_streak = CompletionDataAggregator.analyze_streaks(history, as_of=as_of).current_streak

        stage = self._formation_stage(elapsed, success_rate, current_streak)
        progress = (
            0.3 * min(1.0, elapsed / FORMATION_TIME_DAYS)
            + 0.4 * min(1.0, current_streak / FORMATION_STREAK_DAYS)
            + 0.3 * success_rate
        )

        milestones = [
            FormationMilestone(milestone_type, description, days)
            for milestone_type, description, days in self._milestone_ladder()
            if current_streak >= days
        ]

        logger.debug(f"Formation stage {stage.value} after {elapsed} days (streak={current_streak})")
        return FormationAnalysis(stage, clamp(progress), current_streak, milestones)

    def _milestone_ladder(self):
        ladder = []
        for milestone_type, description, days in FORMATION_MILESTONES:
            if milestone_type == 'HABIT_FORMED':
                days = self.config.habit_formed_streak_days
                description = f'Completed {days} days - habit formed'
            ladder.append((milestone_type, description, days))
        return ladder

    def _formation_stage(self, elapsed: int, success_rate: float, current_streak: int) -> FormationStage:
        cfg = self.config
        if elapsed < cfg.initiation_max_days or success_rate < cfg.initiation_min_success:
            return FormationStage.INITIATION
        if (elapsed >= cfg.mastery_min_days and success_rate >= cfg.mastery_min_success
                and current_streak >= cfg.habit_formed_streak_days):
            return FormationStage.MASTERY
        if elapsed >= cfg.stabilization_min_days and success_rate >= cfg.stabilization_min_success:
            return FormationStage.STABILIZATION
        if elapsed >= cfg.initiation_max_days and success_rate >= cfg.initiation_min_success:
            return FormationStage.DEVELOPMENT
        raise AnalyticsError('formation_stage', f"unclassified: elapsed={elapsed} success={success_rate}")

    # =========================================================================
    # PATTERN RECOGNITION
    # =========================================================================

    def recognize_patterns(self, completions: List[CompletionRecord],
                           start_date: date, end_date: date) -> PatternRecognitionResult:
        """
        Detect structural patterns in the window.

        Each detected pattern is listed once and its confidence is also
        reported in pattern_confidence keyed by the pattern type value.

        Raises:
            InvalidDateRangeError: if end_date < start_date
        """
        validate_date_range(start_date, end_date)
        completions = validate_records(completions)
        window = _in_window(completions, start_date, end_date)
        if not window:
            return PatternRecognitionResult([], {})

        cfg = self.config
        candidates = [
            (self._weekly_cycle(window), cfg.weekly_cycle_threshold),
            (self._streak_behavior(window), cfg.streak_pattern_threshold),
            (self._seasonal_variation(window, start_date, end_date), cfg.seasonal_pattern_threshold),
            (self._recovery_behavior(window), cfg.recovery_pattern_threshold),
        ]

        patterns = [p for p, threshold in candidates if p is not None and p.confidence > threshold]
        return PatternRecognitionResult(
            patterns=patterns,
            pattern_confidence={p.pattern_type.value: p.confidence for p in patterns},
        )

    def _weekly_cycle(self, completions: List[CompletionRecord]) -> Optional[RecognizedPattern]:
        rates = self._weekday_weekend_rates(completions)
        if rates is None:
            return None
        weekday_rate, weekend_rate = rates
        difference = abs(weekday_rate - weekend_rate)
        if difference <= self.config.weekly_cycle_threshold:
            return None

        stronger = 'weekdays' if weekday_rate > weekend_rate else 'weekends'
        return RecognizedPattern(
            PatternType.WEEKLY_CYCLE,
            f"Completion rate differs between weekdays ({weekday_rate:.0%}) and weekends "
            f"({weekend_rate:.0%}); stronger on {stronger}",
            min(1.0, difference / WEEKLY_CYCLE_FULL_CONFIDENCE_DELTA),
        )

    @staticmethod
    def _streak_behavior(completions: List[CompletionRecord]) -> Optional[RecognizedPattern]:
        streaks = CompletionDataAggregator.analyze_streaks(completions, as_of=completions[-1].date).all_streaks
        if not streaks:
            return None
        average = sum(s.length for s in streaks) / len(streaks)
        return RecognizedPattern(
            PatternType.STREAK_BEHAVIOR,
            f"Average streak length: {average:.1f} days",
            min(1.0, average / DAYS_PER_WEEK),
        )

    @staticmethod
    def _seasonal_variation(completions: List[CompletionRecord],
                            start_date: date, end_date: date) -> Optional[RecognizedPattern]:
        if (days_in_range(start_date, end_date) < SEASONAL_MIN_DAYS
                or len(months_spanned(start_date, end_date)) < SEASONAL_MIN_MONTHS):
            return None

        frame = CompletionDataAggregator.to_frame(completions)
        frame['month'] = [month_key(d) for d in frame['date']]
        monthly_rates = frame.groupby('month')['completed'].mean()
        if len(monthly_rates) < SEASONAL_MIN_MONTHS:
            return None

        return RecognizedPattern(
            PatternType.SEASONAL_VARIATION,
            f"Monthly completion rate varies across {len(monthly_rates)} months",
            min(1.0, population_std(monthly_rates.to_numpy()) / MAX_RATE_STDDEV),
        )

    @staticmethod
    def _recovery_behavior(completions: List[CompletionRecord]) -> Optional[RecognizedPattern]:
        done = sorted(CompletionDataAggregator.completed_dates(completions))
        breaks = [
            (later - earlier).days - 1
            for earlier, later in zip(done, done[1:])
            if (later - earlier).days > 1
        ]
        if not breaks:
            return None
        average = sum(breaks) / len(breaks)
        return RecognizedPattern(
            PatternType.RECOVERY_BEHAVIOR,
            f"Average recovery time: {average:.1f} days",
            max(0.0, 1.0 - average / DAYS_PER_WEEK),
        )
