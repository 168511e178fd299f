from marshmallow import Schema, ValidationError, fields, post_load

from habits.domain import (
    CompletionRecord, ContributorType, CorrelationType, FormationStage, PatternType, TrendDirection,
)
from habits.exceptions import InvalidInputError


# =============================================================================
# INPUT
# =============================================================================

class CompletionRecordSchema(Schema):
    habit_id = fields.Str(required=True)
    user_id = fields.Str(required=True)
    date = fields.Date(required=True)
    completed = fields.Bool(required=True)
    completed_at = fields.DateTime(load_default=None, allow_none=True)

    @post_load
    def make_record(self, data, **kwargs):
        return CompletionRecord(**data)


def load_completion_records(payload) -> list:
    """Validate a list of raw record dicts into CompletionRecord objects."""
    if payload is None:
        raise InvalidInputError('completions', "payload is None")
    try:
        return CompletionRecordSchema(many=True).load(payload)
    except ValidationError as e:
        raise InvalidInputError('completions', str(e.messages)) from e


# =============================================================================
# HABIT ANALYTICS
# =============================================================================

class CompletionPatternSchema(Schema):
    pattern_type = fields.Str()
    description = fields.Str()
    significance = fields.Float()


class CompletionTrendAnalysisSchema(Schema):
    overall_trend = fields.Enum(TrendDirection)
    trend_strength = fields.Float()
    day_of_week_patterns = fields.Dict(keys=fields.Int(), values=fields.Float())
    patterns = fields.List(fields.Nested(CompletionPatternSchema))


class FormationMilestoneSchema(Schema):
    milestone_type = fields.Str()
    description = fields.Str()
    days_required = fields.Int()


class FormationAnalysisSchema(Schema):
    stage = fields.Enum(FormationStage)
    progress = fields.Float()
    current_streak = fields.Int()
    milestones = fields.List(fields.Nested(FormationMilestoneSchema))


class RecognizedPatternSchema(Schema):
    pattern_type = fields.Enum(PatternType)
    description = fields.Str()
    confidence = fields.Float()


class PatternRecognitionResultSchema(Schema):
    patterns = fields.List(fields.Nested(RecognizedPatternSchema))
    pattern_confidence = fields.Dict(keys=fields.Str(), values=fields.Float())


# =============================================================================
# TIMING
# =============================================================================

class TimingStatsSchema(Schema):
    total_attempts = fields.Int()
    successful_attempts = fields.Int()
    success_rate = fields.Float()


class TimeWindowSchema(Schema):
    start_time = fields.Time()
    end_time = fields.Time()
    success_rate = fields.Float()
    sample_size = fields.Int()


class OptimalTimingResultSchema(Schema):
    habit_id = fields.Str()
    optimal_start_time = fields.Time(allow_none=True)
    optimal_end_time = fields.Time(allow_none=True)
    hourly_stats = fields.Dict(keys=fields.Int(), values=fields.Nested(TimingStatsSchema))
    day_of_week_stats = fields.Dict(keys=fields.Int(), values=fields.Nested(TimingStatsSchema))


class SuccessPredictionResultSchema(Schema):
    proposed_time = fields.Time()
    day_of_week = fields.Int()
    predicted_success_rate = fields.Float()
    confidence = fields.Float()
    hourly_success_rate = fields.Float()
    day_success_rate = fields.Float()


class WeeklyTimingPatternSchema(Schema):
    habit_id = fields.Str()
    weekly_pattern = fields.Dict(
        keys=fields.Int(),
        values=fields.Dict(keys=fields.Int(), values=fields.Nested(TimingStatsSchema)),
    )


# =============================================================================
# GROUP
# =============================================================================

class KeyContributorSchema(Schema):
    user_id = fields.Str()
    total_attempts = fields.Int()
    successful_completions = fields.Int()
    completion_rate = fields.Float()
    contribution_score = fields.Float()
    contributor_type = fields.Enum(ContributorType)


class ParticipationMetricsSchema(Schema):
    total_members = fields.Int()
    active_members = fields.Int()
    participation_rate = fields.Float()
    total_attempts = fields.Int()
    total_completions = fields.Int()
    completion_rate = fields.Float()


class GroupDynamicsResultSchema(Schema):
    group_id = fields.Str()
    start_date = fields.Date()
    end_date = fields.Date()
    momentum_score = fields.Float()
    cohesion_score = fields.Float()
    group_streak = fields.Int()
    synergistic_score = fields.Float()
    key_contributors = fields.List(fields.Nested(KeyContributorSchema))
    participation_metrics = fields.Nested(ParticipationMetricsSchema)


# =============================================================================
# CORRELATION
# =============================================================================

class CorrelationResultSchema(Schema):
    habit1_id = fields.Str()
    habit2_id = fields.Str()
    correlation_coefficient = fields.Float()
    correlation_type = fields.Enum(CorrelationType)
    confidence_level = fields.Float()


class StoredCorrelationSchema(Schema):
    """Dumps HabitCorrelation rows and in-memory StoredCorrelation alike."""
    user_id = fields.Str()
    habit1_id = fields.Str()
    habit2_id = fields.Str()
    correlation_coefficient = fields.Float()
    correlation_type = fields.Str()
    confidence_level = fields.Float()
    calculated_at = fields.DateTime()


class CorrelationMatrixSchema(Schema):
    habit_ids = fields.List(fields.Str())
    correlation_values = fields.Dict(
        keys=fields.Str(),
        values=fields.Dict(keys=fields.Str(), values=fields.Float()),
    )


# =============================================================================
# AGGREGATION
# =============================================================================

class CompletionStatsSchema(Schema):
    total = fields.Int()
    completed = fields.Int()
    completion_rate = fields.Float()


class DailyAggregationSchema(Schema):
    start_date = fields.Date()
    end_date = fields.Date()
    daily_stats = fields.Dict(keys=fields.Date(), values=fields.Nested(CompletionStatsSchema))
    average_completion_rate = fields.Float()


class WeeklyStatsSchema(Schema):
    total = fields.Int()
    completed = fields.Int()
    completion_rate = fields.Float()
    daily_rates = fields.Dict(keys=fields.Int(), values=fields.Float())


class WeeklyAggregationSchema(Schema):
    start_date = fields.Date()
    end_date = fields.Date()
    weekly_stats = fields.Dict(keys=fields.Date(), values=fields.Nested(WeeklyStatsSchema))


class StreakPeriodSchema(Schema):
    start_date = fields.Date()
    end_date = fields.Date()
    length = fields.Int()


class StreakAnalysisSchema(Schema):
    current_streak = fields.Int()
    max_streak = fields.Int()
    all_streaks = fields.List(fields.Nested(StreakPeriodSchema))


class GroupDailyStatsSchema(Schema):
    total = fields.Int()
    completed = fields.Int()
    completion_rate = fields.Float()
    habit_participation = fields.Dict(keys=fields.Str(), values=fields.Int())
