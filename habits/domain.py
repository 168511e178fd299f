"""
Domain types for the habit analytics engine.

Input snapshots (completion records and the per-habit / per-group windows
built from them) plus every result bundle the engines return. Everything
here is transient; only HabitCorrelation (habits.models) is persisted.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

import numpy as np

from habits.exceptions import InvalidDateRangeError, InvalidInputError


# =============================================================================
# ENUMERATIONS
# =============================================================================

class TrendDirection(Enum):
    IMPROVING = "IMPROVING"
    DECLINING = "DECLINING"
    STABLE = "STABLE"


class FormationStage(Enum):
    """Habit maturity buckets, in order."""
    INITIATION = "INITIATION"
    DEVELOPMENT = "DEVELOPMENT"
    STABILIZATION = "STABILIZATION"
    MASTERY = "MASTERY"


class PatternType(Enum):
    WEEKLY_CYCLE = "WEEKLY_CYCLE"
    STREAK_BEHAVIOR = "STREAK_BEHAVIOR"
    SEASONAL_VARIATION = "SEASONAL_VARIATION"
    RECOVERY_BEHAVIOR = "RECOVERY_BEHAVIOR"


class CorrelationType(Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"
    CAUSAL = "CAUSAL"
    INVERSE_CAUSAL = "INVERSE_CAUSAL"


class ContributorType(Enum):
    LEADER = "LEADER"
    HIGH_PERFORMER = "HIGH_PERFORMER"
    ACTIVE_PARTICIPANT = "ACTIVE_PARTICIPANT"
    CONSISTENT_CONTRIBUTOR = "CONSISTENT_CONTRIBUTOR"
    CASUAL_PARTICIPANT = "CASUAL_PARTICIPANT"


# =============================================================================
# INPUT SNAPSHOTS
# =============================================================================

@dataclass(frozen=True)
class CompletionRecord:
    """One success/fail observation for a habit, user and day."""
    habit_id: Any
    user_id: Any
    date: date
    completed: bool
    completed_at: Optional[datetime] = None


def validate_records(records, field_name: str = 'completions') -> List[CompletionRecord]:
    """
    Reject None entries and repeated (habit, user, date) observations.

    Returns the records sorted by date.
    """
    if records is None:
        raise InvalidInputError(field_name, "record list is None")
    seen = set()
    for record in records:
        if record is None:
            raise InvalidInputError(field_name, "contains a null record")
        key = (record.habit_id, record.user_id, record.date)
        if key in seen:
            raise InvalidInputError(
                field_name, f"duplicate record for habit {record.habit_id}, user {record.user_id} on {record.date}"
            )
        seen.add(key)
    return sorted(records, key=lambda r: r.date)


def make_pair_key(habit1_id, habit2_id) -> Tuple[str, str]:
    """Orientation-free key for an unordered habit pair: (lower id, higher id) as strings."""
    first, second = sorted((str(habit1_id), str(habit2_id)))
    return first, second


def validate_date_range(start_date: date, end_date: date):
    if start_date is None or end_date is None:
        raise InvalidInputError('date_range', "start and end dates are required")
    if end_date < start_date:
        raise InvalidDateRangeError(start_date, end_date)


@dataclass
class HabitCompletionData:
    """Analysis window for one habit."""
    habit_id: Any
    start_date: date
    end_date: date
    completions: List[CompletionRecord] = field(default_factory=list)

    def __post_init__(self):
        validate_date_range(self.start_date, self.end_date)
        self.completions = validate_records(self.completions)


@dataclass(frozen=True)
class GroupHabit:
    habit_id: Any
    name: str = ''


@dataclass(frozen=True)
class GroupMember:
    user_id: Any
    role: str = 'member'


@dataclass
class GroupCompletionData:
    """Analysis window for a group: completions per shared habit, all members."""
    group_id: Any
    start_date: date
    end_date: date
    group_habits: Set[GroupHabit] = field(default_factory=set)
    habit_completions: Dict[Any, List[CompletionRecord]] = field(default_factory=dict)

    def __post_init__(self):
        validate_date_range(self.start_date, self.end_date)
        self.habit_completions = {
            habit_id: validate_records(records, f'habit_completions[{habit_id}]')
            for habit_id, records in self.habit_completions.items()
        }

    def all_records(self) -> List[CompletionRecord]:
        return [r for records in self.habit_completions.values() for r in records]

    @property
    def is_empty(self) -> bool:
        return not any(self.habit_completions.values())


# =============================================================================
# HABIT ANALYTICS RESULTS
# =============================================================================

@dataclass
class CompletionPattern:
    pattern_type: str
    description: str
    significance: float


@dataclass
class CompletionTrendAnalysis:
    overall_trend: TrendDirection
    trend_strength: float
    day_of_week_patterns: Dict[int, float]
    patterns: List[CompletionPattern] = field(default_factory=list)


@dataclass
class FormationMilestone:
    milestone_type: str
    description: str
    days_required: int


@dataclass
class FormationAnalysis:
    stage: FormationStage
    progress: float
    current_streak: int
    milestones: List[FormationMilestone] = field(default_factory=list)

    @property
    def milestone_types(self) -> List[str]:
        return [m.milestone_type for m in self.milestones]


@dataclass
class RecognizedPattern:
    pattern_type: PatternType
    description: str
    confidence: float


@dataclass
class PatternRecognitionResult:
    patterns: List[RecognizedPattern] = field(default_factory=list)
    pattern_confidence: Dict[str, float] = field(default_factory=dict)


# =============================================================================
# TIMING RESULTS
# =============================================================================

@dataclass(frozen=True)
class TimingStats:
    total_attempts: int
    successful_attempts: int
    success_rate: float

    @classmethod
    def from_counts(cls, total: int, successful: int) -> 'TimingStats':
        return cls(total, successful, successful / total if total > 0 else 0.0)


@dataclass(frozen=True)
class TimeWindow:
    """Contiguous hour range; end_time is exclusive (time.max means midnight)."""
    start_time: time
    end_time: time
    success_rate: float
    sample_size: int

    @classmethod
    def from_hours(cls, start_hour: int, end_hour: int, success_rate: float, sample_size: int) -> 'TimeWindow':
        end_time = time(end_hour) if end_hour < 24 else time.max
        return cls(time(start_hour), end_time, success_rate, sample_size)


@dataclass
class OptimalTimingResult:
    habit_id: Any
    optimal_start_time: Optional[time]
    optimal_end_time: Optional[time]
    hourly_stats: Dict[int, TimingStats] = field(default_factory=dict)
    day_of_week_stats: Dict[int, TimingStats] = field(default_factory=dict)


@dataclass
class SuccessPredictionResult:
    proposed_time: time
    day_of_week: int
    predicted_success_rate: float
    confidence: float
    hourly_success_rate: float
    day_success_rate: float


@dataclass
class WeeklyTimingPattern:
    habit_id: Any
    weekly_pattern: Dict[int, Dict[int, TimingStats]]
    min_sample_size: int = 3

    def get_timing_stats(self, day: int, hour: int) -> Optional[TimingStats]:
        return self.weekly_pattern.get(day, {}).get(hour)

    def get_best_time_for_day(self, day: int) -> Optional[TimeWindow]:
        """Best qualifying hour for a weekday, or None; never a low-sample guess."""
        day_stats = self.weekly_pattern.get(day) or {}
        qualifying = [
            (hour, stats) for hour, stats in day_stats.items()
            if stats.total_attempts >= self.min_sample_size
        ]
        if not qualifying:
            return None
        hour, stats = max(qualifying, key=lambda item: (item[1].success_rate, item[1].total_attempts, -item[0]))
        return TimeWindow.from_hours(hour, hour + 1, stats.success_rate, stats.total_attempts)


# =============================================================================
# GROUP RESULTS
# =============================================================================

@dataclass
class KeyContributor:
    user_id: Any
    total_attempts: int
    successful_completions: int
    completion_rate: float
    contribution_score: float
    contributor_type: ContributorType


@dataclass
class ParticipationMetrics:
    total_members: int
    active_members: int
    participation_rate: float
    total_attempts: int
    total_completions: int
    completion_rate: float


@dataclass
class GroupDynamicsResult:
    group_id: Any
    start_date: date
    end_date: date
    momentum_score: float
    cohesion_score: float
    group_streak: int
    synergistic_score: float
    key_contributors: List[KeyContributor]
    participation_metrics: ParticipationMetrics


# =============================================================================
# CORRELATION RESULTS
# =============================================================================

@dataclass
class CorrelationResult:
    habit1_id: Any
    habit2_id: Any
    correlation_coefficient: float
    correlation_type: CorrelationType
    confidence_level: float


@dataclass
class CorrelationMatrix:
    habit_ids: List[Any]
    correlation_values: Dict[Any, Dict[Any, float]]

    def get_correlation_value(self, habit1_id, habit2_id) -> float:
        return self.correlation_values.get(habit1_id, {}).get(habit2_id, 0.0)

    def to_array(self):
        """Dense numpy matrix in habit_ids order."""
        return np.array([
            [self.get_correlation_value(a, b) for b in self.habit_ids]
            for a in self.habit_ids
        ], dtype=float)


# =============================================================================
# AGGREGATION RESULTS
# =============================================================================

@dataclass(frozen=True)
class CompletionStats:
    total: int
    completed: int
    completion_rate: float


@dataclass
class DailyAggregation:
    start_date: date
    end_date: date
    daily_stats: Dict[date, CompletionStats]

    @property
    def average_completion_rate(self) -> float:
        if not self.daily_stats:
            return 0.0
        return sum(s.completion_rate for s in self.daily_stats.values()) / len(self.daily_stats)


@dataclass(frozen=True)
class WeeklyStats:
    total: int
    completed: int
    completion_rate: float
    daily_rates: Dict[int, float]


@dataclass
class WeeklyAggregation:
    start_date: date
    end_date: date
    weekly_stats: Dict[date, WeeklyStats]


@dataclass(frozen=True)
class StreakPeriod:
    start_date: date
    end_date: date
    length: int


@dataclass
class StreakAnalysis:
    current_streak: int
    max_streak: int
    all_streaks: List[StreakPeriod] = field(default_factory=list)


@dataclass(frozen=True)
class GroupDailyStats:
    total: int
    completed: int
    completion_rate: float
    habit_participation: Dict[Any, int]
