"""
Optimal Timing Analyzer

Finds when in the day and week a user is most likely to complete a habit,
using the completed_at timestamps of their completion records.
"""
import logging
from datetime import date, time
from typing import Dict, List, Optional, Tuple

from habits.config import AnalyticsConfig, get_analytics_config
from habits.domain import (
    CompletionRecord, OptimalTimingResult, SuccessPredictionResult, TimeWindow,
    TimingStats, WeeklyTimingPattern,
)
from habits.exceptions import DataUnavailableError, InvalidInputError
from habits.helpers.metric_helpers import clamp
from habits.providers import CompletionDataProvider
from habits.utils.constants import DAYS_PER_WEEK, HOURS_PER_DAY, PREDICTION_CONFIDENCE_TIERS
from habits.utils.logging_utils import log_function_call

logger = logging.getLogger(__name__)


def _bucket(records: List[CompletionRecord], key) -> Dict[int, TimingStats]:
    counts: Dict[int, List[int]] = {}
    for record in records:
        total_success = counts.setdefault(key(record), [0, 0])
        total_success[0] += 1
        if record.completed:
            total_success[1] += 1
    return {k: TimingStats.from_counts(total, ok) for k, (total, ok) in counts.items()}


def _zero_filled(stats: Dict[int, TimingStats], size: int) -> Dict[int, TimingStats]:
    return {k: stats.get(k, TimingStats(0, 0, 0.0)) for k in range(size)}


class OptimalTimingAnalyzer:
    """Hour-of-day and day-of-week success statistics for a user's habit."""

    def __init__(self, data_provider: CompletionDataProvider, config: Optional[AnalyticsConfig] = None):
        self.data_provider = data_provider
        self.config = config or get_analytics_config()

    def _timed_attempts(self, user_id, habit_id, start_date: date, end_date: date) -> List[CompletionRecord]:
        """The user's records for the habit that carry a completion timestamp."""
        try:
            data = self.data_provider.collect_habit_completion_data(habit_id, start_date, end_date)
        except (DataUnavailableError, InvalidInputError):
            raise
        except Exception as e:
            raise DataUnavailableError('completion_data', f"habit {habit_id}: {e}") from e

        return [
            r for r in data.completions
            if r.user_id == user_id and r.completed_at is not None
        ]

    # =========================================================================
    # OPTIMAL TIMING
    # =========================================================================

    @log_function_call()
    def analyze_optimal_timing(self, user_id, habit_id, start_date: date, end_date: date) -> OptimalTimingResult:
        """
        Hourly and weekday stats plus the best contiguous hour range.

        No timed data ⇒ both optimal times are None and both maps are empty.
        """
        attempts = self._timed_attempts(user_id, habit_id, start_date, end_date)
        if not attempts:
            logger.debug(f"No timed completions for habit {habit_id}, user {user_id}")
            return OptimalTimingResult(habit_id, None, None, {}, {})

        hourly = _zero_filled(_bucket(attempts, lambda r: r.completed_at.hour), HOURS_PER_DAY)
        weekly = _zero_filled(_bucket(attempts, lambda r: r.date.weekday()), DAYS_PER_WEEK)

        window = self._optimal_range(hourly)
        return OptimalTimingResult(
            habit_id=habit_id,
            optimal_start_time=window.start_time if window else None,
            optimal_end_time=window.end_time if window else None,
            hourly_stats=hourly,
            day_of_week_stats=weekly,
        )

    def _optimal_range(self, hourly: Dict[int, TimingStats]) -> Optional[TimeWindow]:
        """Grow outward from the best hour across neighbours with a similar rate."""
        sampled = [(h, s) for h, s in hourly.items() if s.total_attempts > 0]
        if not sampled:
            return None
        qualifying = [(h, s) for h, s in sampled if s.total_attempts >= self.config.min_timing_sample_size]
        candidates = qualifying or sampled
        best_hour, best = max(candidates, key=lambda item: (item[1].success_rate, item[1].total_attempts, -item[0]))

        def similar(hour: int) -> bool:
            stats = hourly.get(hour)
            return (stats is not None and stats.total_attempts > 0
                    and abs(stats.success_rate - best.success_rate) <= self.config.optimal_window_tolerance)

        start_hour, end_hour = best_hour, best_hour + 1
        while start_hour > 0 and similar(start_hour - 1):
            start_hour -= 1
        while end_hour < HOURS_PER_DAY and similar(end_hour):
            end_hour += 1

        total, successful = self._sum_range(hourly, start_hour, end_hour)
        return TimeWindow.from_hours(start_hour, end_hour, successful / total, total)

    @staticmethod
    def _sum_range(hourly: Dict[int, TimingStats], start_hour: int, end_hour: int) -> Tuple[int, int]:
        cells = [hourly[h] for h in range(start_hour, end_hour) if h in hourly]
        return sum(c.total_attempts for c in cells), sum(c.successful_attempts for c in cells)

    # =========================================================================
    # PREDICTION
    # =========================================================================

    @log_function_call()
    def predict_success_for_timing(self, user_id, habit_id, proposed_time: time, day_of_week: int,
                                   start_date: date, end_date: date) -> SuccessPredictionResult:
        """
        Blend the hourly and weekday success rates for a proposed slot.

        Raises:
            InvalidInputError: if day_of_week is outside 0-6
        """
        if not isinstance(day_of_week, int) or not 0 <= day_of_week < DAYS_PER_WEEK:
            raise InvalidInputError('day_of_week', f"expected 0-6, got {day_of_week!r}")
        if proposed_time is None:
            raise InvalidInputError('proposed_time', "a time is required")

        attempts = self._timed_attempts(user_id, habit_id, start_date, end_date)
        hour_stats = _bucket(attempts, lambda r: r.completed_at.hour).get(proposed_time.hour, TimingStats(0, 0, 0.0))
        day_stats = _bucket(attempts, lambda r: r.date.weekday()).get(day_of_week, TimingStats(0, 0, 0.0))

        predicted = (self.config.hourly_prediction_weight * hour_stats.success_rate
                     + self.config.day_prediction_weight * day_stats.success_rate)
        combined_samples = hour_stats.total_attempts + day_stats.total_attempts

        return SuccessPredictionResult(
            proposed_time=proposed_time,
            day_of_week=day_of_week,
            predicted_success_rate=clamp(predicted),
            confidence=clamp(self._confidence(combined_samples)),
            hourly_success_rate=hour_stats.success_rate,
            day_success_rate=day_stats.success_rate,
        )

    @staticmethod
    def _confidence(sample_size: int) -> float:
        for minimum, confidence in PREDICTION_CONFIDENCE_TIERS:
            if sample_size >= minimum:
                return confidence
        return PREDICTION_CONFIDENCE_TIERS[-1][1]

    # =========================================================================
    # TIME WINDOWS
    # =========================================================================

    @log_function_call()
    def find_best_time_windows(self, user_id, habit_id, start_date: date, end_date: date,
                               window_count: int, window_hours: int = 1) -> List[TimeWindow]:
        """
        Best non-overlapping windows of window_hours consecutive hours.

        Windows with fewer than the minimum sample are dropped; survivors are
        ranked by success rate (ties: larger sample, then earlier start).
        """
        if window_count < 0:
            raise InvalidInputError('window_count', f"must be >= 0, got {window_count}")
        if not 1 <= window_hours <= HOURS_PER_DAY:
            raise InvalidInputError('window_hours', f"must be 1-24, got {window_hours}")
        if window_count == 0:
            return []

        attempts = self._timed_attempts(user_id, habit_id, start_date, end_date)
        hourly = _bucket(attempts, lambda r: r.completed_at.hour)

        candidates = []
        for start_hour in range(HOURS_PER_DAY - window_hours + 1):
            total, successful = self._sum_range(hourly, start_hour, start_hour + window_hours)
            if total < self.config.min_timing_sample_size:
                continue
            candidates.append((start_hour, successful / total, total))
        candidates.sort(key=lambda c: (-c[1], -c[2], c[0]))

        chosen: List[Tuple[int, float, int]] = []
        for candidate in candidates:
            start_hour = candidate[0]
            if all(start_hour + window_hours <= s or s + window_hours <= start_hour for s, _, _ in chosen):
                chosen.append(candidate)
            if len(chosen) == window_count:
                break

        return [
            TimeWindow.from_hours(start_hour, start_hour + window_hours, rate, total)
            for start_hour, rate, total in chosen
        ]

    # =========================================================================
    # WEEKLY PATTERN
    # =========================================================================

    @log_function_call()
    def analyze_weekly_timing_pattern(self, user_id, habit_id, start_date: date, end_date: date) -> WeeklyTimingPattern:
        """Full 7x24 grid of timing stats (weekday -> hour -> stats)."""
        attempts = self._timed_attempts(user_id, habit_id, start_date, end_date)
        grid: Dict[int, Dict[int, TimingStats]] = {}
        for day in range(DAYS_PER_WEEK):
            day_attempts = [r for r in attempts if r.date.weekday() == day]
            grid[day] = _zero_filled(_bucket(day_attempts, lambda r: r.completed_at.hour), HOURS_PER_DAY)

        return WeeklyTimingPattern(habit_id, grid, min_sample_size=self.config.min_timing_sample_size)
