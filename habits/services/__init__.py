"""
Services package for the habit analytics engine.

- completion_aggregator: daily/weekly/group roll-ups and streak periods
- habit_analytics_engine: success, consistency, trends, formation, patterns
- optimal_timing_analyzer: hour/weekday stats, best windows, prediction
- group_dynamics_engine: momentum, cohesion, streak, synergy, contributors
- habit_correlation_service: pairwise correlations, storage, matrix
"""

from .completion_aggregator import CompletionDataAggregator
from .habit_analytics_engine import HabitAnalyticsEngine
from .optimal_timing_analyzer import OptimalTimingAnalyzer
from .group_dynamics_engine import GroupDynamicsEngine
from .habit_correlation_service import HabitCorrelationService

__all__ = [
    'CompletionDataAggregator',
    'HabitAnalyticsEngine',
    'OptimalTimingAnalyzer',
    'GroupDynamicsEngine',
    'HabitCorrelationService',
]
