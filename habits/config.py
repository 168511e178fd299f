"""
Analytics configuration.

Thresholds default to habits.utils.constants and can be overridden per
deployment in settings.py:

    HABIT_ANALYTICS = {
        'habit_formed_streak_days': 60,
        'min_timing_sample_size': 5,
    }
"""
import logging
from dataclasses import dataclass, fields, replace

from django.conf import settings

from habits.exceptions import InvalidInputError
from habits.utils import constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticsConfig:
    """Immutable set of thresholds shared by all engines."""
    trend_threshold: float = constants.TREND_THRESHOLD
    weekend_weekday_threshold: float = constants.WEEKEND_WEEKDAY_THRESHOLD
    weekly_cycle_threshold: float = constants.WEEKLY_CYCLE_THRESHOLD
    streak_pattern_threshold: float = constants.STREAK_PATTERN_THRESHOLD
    seasonal_pattern_threshold: float = constants.SEASONAL_PATTERN_THRESHOLD
    recovery_pattern_threshold: float = constants.RECOVERY_PATTERN_THRESHOLD

    habit_formed_streak_days: int = constants.HABIT_FORMED_STREAK_DAYS
    mastery_min_days: int = constants.MASTERY_MIN_DAYS
    mastery_min_success: float = constants.MASTERY_MIN_SUCCESS
    stabilization_min_days: int = constants.STABILIZATION_MIN_DAYS
    stabilization_min_success: float = constants.STABILIZATION_MIN_SUCCESS
    initiation_max_days: int = constants.INITIATION_MAX_DAYS
    initiation_min_success: float = constants.INITIATION_MIN_SUCCESS

    min_timing_sample_size: int = constants.MIN_TIMING_SAMPLE_SIZE
    optimal_window_tolerance: float = constants.OPTIMAL_WINDOW_TOLERANCE
    hourly_prediction_weight: float = constants.HOURLY_PREDICTION_WEIGHT
    day_prediction_weight: float = constants.DAY_PREDICTION_WEIGHT

    positive_correlation_threshold: float = constants.POSITIVE_CORRELATION_THRESHOLD
    negative_correlation_threshold: float = constants.NEGATIVE_CORRELATION_THRESHOLD
    causal_correlation_threshold: float = constants.CAUSAL_CORRELATION_THRESHOLD
    min_correlation_samples: int = constants.MIN_CORRELATION_SAMPLES
    full_confidence_samples: int = constants.FULL_CONFIDENCE_SAMPLES

    momentum_window_days: int = constants.MOMENTUM_WINDOW_DAYS
    group_streak_member_share: float = constants.GROUP_STREAK_MEMBER_SHARE
    contribution_volume_weight: float = constants.CONTRIBUTION_VOLUME_WEIGHT
    contribution_consistency_weight: float = constants.CONTRIBUTION_CONSISTENCY_WEIGHT

    def with_overrides(self, **overrides) -> 'AnalyticsConfig':
        """Return a copy with the given thresholds replaced."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise InvalidInputError('HABIT_ANALYTICS', f"unknown keys: {', '.join(unknown)}")
        return replace(self, **overrides)


def get_analytics_config() -> AnalyticsConfig:
    """Build the config from defaults plus settings.HABIT_ANALYTICS."""
    overrides = getattr(settings, 'HABIT_ANALYTICS', None) or {}
    if overrides:
        logger.debug("Applying analytics overrides: %s", sorted(overrides))
    return AnalyticsConfig().with_overrides(**overrides)
