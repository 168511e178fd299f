"""
Habit Correlation Service

Pairwise correlation across a user's habits:
- Pearson coefficient over date-aligned 0/1 completion series
- Classification including one-day-lag CAUSAL / INVERSE_CAUSAL detection
- Insert-if-absent persistence through a CorrelationStore
- Symmetric correlation matrix assembly
"""
import logging
import math
from datetime import date, timedelta
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence

from habits.config import AnalyticsConfig, get_analytics_config
from habits.domain import (
    CorrelationMatrix, CorrelationResult, CorrelationType, HabitCompletionData, make_pair_key,
    validate_date_range,
)
from habits.exceptions import AnalyticsError, DataUnavailableError, InvalidInputError
from habits.helpers.metric_helpers import pearson_correlation
from habits.providers import CompletionDataProvider, CorrelationStore
from habits.utils.logging_utils import log_function_call, log_with_context

logger = logging.getLogger(__name__)


class HabitCorrelationService:
    """Computes, classifies, stores and reads habit-pair correlations."""

    def __init__(self, data_provider: CompletionDataProvider, store: CorrelationStore,
                 config: Optional[AnalyticsConfig] = None):
        self.data_provider = data_provider
        self.store = store
        self.config = config or get_analytics_config()

    # =========================================================================
    # COEFFICIENT
    # =========================================================================

    def calculate_correlation_coefficient(self, series_a: Sequence[bool], series_b: Sequence[bool]) -> float:
        """
        Pearson correlation of two equal-length boolean series.

        Returns 0.0 for empty or zero-variance input.

        Raises:
            InvalidInputError: on None series/entries or mismatched lengths
        """
        if series_a is None or series_b is None:
            raise InvalidInputError('series', "both series are required")
        if len(series_a) != len(series_b):
            raise InvalidInputError('series', f"length mismatch: {len(series_a)} vs {len(series_b)}")
        if any(v is None for v in series_a) or any(v is None for v in series_b):
            raise InvalidInputError('series', "series contain null entries")
        if not series_a:
            return 0.0

        return pearson_correlation(
            [1.0 if v else 0.0 for v in series_a],
            [1.0 if v else 0.0 for v in series_b],
        )

    # =========================================================================
    # ANALYSIS
    # =========================================================================

    @log_function_call()
    def analyze_habit_correlations(self, user_id, start_date: date, end_date: date) -> List[CorrelationResult]:
        """
        Correlate every unordered pair of the user's habits.

        Raises:
            InvalidDateRangeError: if end_date < start_date
            DataUnavailableError: if the completion provider fails
        """
        validate_date_range(start_date, end_date)
        try:
            habits_data = self.data_provider.collect_all_user_habits_data(user_id, start_date, end_date)
        except (DataUnavailableError, InvalidInputError):
            raise
        except Exception as e:
            raise DataUnavailableError('completion_data', f"user {user_id}: {e}") from e

        series = {
            habit_id: self._daily_series(data, user_id)
            for habit_id, data in (habits_data or {}).items()
        }
        habit_ids = sorted(series, key=str)

        results = [
            self._correlate_pair(first, second, series[first], series[second])
            for first, second in combinations(habit_ids, 2)
        ]
        logger.info(f"Analyzed {len(results)} habit pairs for user {user_id}")
        return results

    @staticmethod
    def _daily_series(data: HabitCompletionData, user_id) -> Dict[date, bool]:
        return {
            r.date: bool(r.completed)
            for r in data.completions
            if r.user_id == user_id and data.start_date <= r.date <= data.end_date
        }

    def _correlate_pair(self, habit1_id, habit2_id, first: Dict[date, bool],
                        second: Dict[date, bool]) -> CorrelationResult:
        common = sorted(first.keys() & second.keys())
        confidence = min(1.0, len(common) / self.config.full_confidence_samples)

        if len(common) < self.config.min_correlation_samples:
            return CorrelationResult(habit1_id, habit2_id, 0.0, CorrelationType.NEUTRAL, confidence)

        coefficient = self.calculate_correlation_coefficient(
            [first[d] for d in common], [second[d] for d in common]
        )
        lagged = self._lagged_coefficient(first, second)
        correlation_type = self._classify(coefficient, lagged)

        return CorrelationResult(habit1_id, habit2_id, coefficient, correlation_type, confidence)

    def _lagged_coefficient(self, first: Dict[date, bool], second: Dict[date, bool]) -> float:
        """Correlation of habit1 on day d with habit2 on day d+1."""
        lag_days = sorted(d for d in first if d + timedelta(days=1) in second)
        if len(lag_days) < self.config.min_correlation_samples:
            return 0.0
        return self.calculate_correlation_coefficient(
            [first[d] for d in lag_days],
            [second[d + timedelta(days=1)] for d in lag_days],
        )

    def _classify(self, coefficient: float, lagged: float) -> CorrelationType:
        cfg = self.config
        if math.isnan(coefficient) or math.isnan(lagged):
            raise AnalyticsError('correlation_coefficient', "coefficient is NaN")

        if lagged >= cfg.causal_correlation_threshold and lagged > abs(coefficient):
            return CorrelationType.CAUSAL
        if lagged <= -cfg.causal_correlation_threshold and abs(lagged) > abs(coefficient):
            return CorrelationType.INVERSE_CAUSAL
        if coefficient >= cfg.positive_correlation_threshold:
            return CorrelationType.POSITIVE
        if coefficient <= cfg.negative_correlation_threshold:
            return CorrelationType.NEGATIVE
        if cfg.negative_correlation_threshold < coefficient < cfg.positive_correlation_threshold:
            return CorrelationType.NEUTRAL
        raise AnalyticsError('correlation_type', f"unclassified coefficient {coefficient}")

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    @log_function_call()
    def store_correlation_results(self, user_id, results: List[CorrelationResult]) -> int:
        """
        Insert each result unless its unordered pair is already stored.

        Returns:
            Number of newly created records
        """
        if results is None:
            raise InvalidInputError('results', "result list is None")

        created = 0
        for result in results:
            if result is None:
                raise InvalidInputError('results', "contains a null result")
            if self.store.save(user_id, result):
                created += 1

        log_with_context('info', 'Stored habit correlations',
                         user_id=str(user_id), submitted=len(results), created_count=created)
        return created

    def find_positive_correlations(self, user_id, threshold: Optional[float] = None) -> list:
        if threshold is None:
            threshold = self.config.positive_correlation_threshold
        return self.store.find_positive_correlations(user_id, threshold)

    def find_negative_correlations(self, user_id, threshold: Optional[float] = None) -> list:
        if threshold is None:
            threshold = self.config.negative_correlation_threshold
        return self.store.find_negative_correlations(user_id, threshold)

    def get_correlation_matrix(self, user_id, habit_ids: List[Any]) -> CorrelationMatrix:
        """
        Symmetric matrix over habit_ids; the diagonal is 1.0 and pairs
        without a stored correlation are 0.0.
        """
        if habit_ids is None:
            raise InvalidInputError('habit_ids', "habit id list is None")

        ordered = list(dict.fromkeys(habit_ids))
        stored = {
            make_pair_key(r.habit1_id, r.habit2_id): r.correlation_coefficient
            for r in self.store.get_correlation_matrix_for_user(user_id, ordered)
        }

        values = {
            row: {
                col: 1.0 if row == col else float(stored.get(make_pair_key(row, col), 0.0))
                for col in ordered
            }
            for row in ordered
        }
        return CorrelationMatrix(ordered, values)
