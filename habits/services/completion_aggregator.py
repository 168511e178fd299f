"""
Completion Data Aggregator

Rolls raw completion records up into per-day, per-week and per-group
statistics and finds streak periods. Shared by the analytics engines.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from habits.domain import (
    CompletionRecord, CompletionStats, DailyAggregation, GroupDailyStats,
    StreakAnalysis, StreakPeriod, WeeklyAggregation, WeeklyStats, validate_records,
)
from habits.helpers.metric_helpers import find_runs
from habits.utils.time_utils import iter_days, week_start

logger = logging.getLogger(__name__)


class CompletionDataAggregator:
    """Aggregation helpers over lists of CompletionRecord."""

    @staticmethod
    def completed_dates(completions: List[CompletionRecord]) -> set:
        return {r.date for r in completions if r.completed}

    @staticmethod
    def to_frame(completions: List[CompletionRecord]) -> pd.DataFrame:
        """One row per record with a weekday column (Monday=0)."""
        frame = pd.DataFrame(
            [(r.habit_id, r.user_id, r.date, bool(r.completed)) for r in completions],
            columns=['habit_id', 'user_id', 'date', 'completed'],
        )
        frame['weekday'] = [d.weekday() for d in frame['date']]
        return frame

    @staticmethod
    def aggregate_daily_completions(completions: List[CompletionRecord],
                                    start_date: date, end_date: date) -> DailyAggregation:
        """
        Per-day totals for every day in the window, zero-filled.

        Records outside the window are ignored.
        """
        completions = validate_records(completions)
        counts = defaultdict(lambda: [0, 0])
        for record in completions:
            if start_date <= record.date <= end_date:
                counts[record.date][0] += 1
                if record.completed:
                    counts[record.date][1] += 1

        daily_stats = {}
        for day in iter_days(start_date, end_date):
            total, completed = counts.get(day, (0, 0))
            daily_stats[day] = CompletionStats(total, completed, completed / total if total else 0.0)

        return DailyAggregation(start_date, end_date, daily_stats)

    @staticmethod
    def aggregate_weekly_completions(completions: List[CompletionRecord],
                                     start_date: date, end_date: date) -> WeeklyAggregation:
        """Monday-keyed weekly totals with the completion rate of each weekday."""
        daily = CompletionDataAggregator.aggregate_daily_completions(completions, start_date, end_date)

        weeks: Dict[date, Dict[date, CompletionStats]] = defaultdict(dict)
        for day, stats in daily.daily_stats.items():
            weeks[week_start(day)][day] = stats

        weekly_stats = {}
        for monday in sorted(weeks):
            days = weeks[monday]
            total = sum(s.total for s in days.values())
            completed = sum(s.completed for s in days.values())
            weekly_stats[monday] = WeeklyStats(
                total=total,
                completed=completed,
                completion_rate=completed / total if total else 0.0,
                daily_rates={day.weekday(): s.completion_rate for day, s in days.items()},
            )

        return WeeklyAggregation(start_date, end_date, weekly_stats)

    @staticmethod
    def analyze_streaks(completions: List[CompletionRecord], as_of: Optional[date] = None) -> StreakAnalysis:
        """
        Find every run of consecutive completed days.

        A run is current when it ends on as_of (default today) or the day before.
        """
        completions = validate_records(completions)
        as_of = as_of or date.today()
        done = sorted(CompletionDataAggregator.completed_dates(completions))
        if not done:
            return StreakAnalysis(current_streak=0, max_streak=0, all_streaks=[])

        first = done[0]
        done_set = set(done)
        flags = [day in done_set for day in iter_days(first, done[-1])]

        periods = [
            StreakPeriod(first + timedelta(days=start), first + timedelta(days=start + length - 1), length)
            for start, length in find_runs(flags)
        ]

        current = 0
        last = periods[-1]
        if last.end_date in (as_of, as_of - timedelta(days=1)):
            current = last.length

        return StreakAnalysis(
            current_streak=current,
            max_streak=max(p.length for p in periods),
            all_streaks=periods,
        )

    @staticmethod
    def aggregate_group_completions(habit_completions: Dict[Any, List[CompletionRecord]],
                                    start_date: date, end_date: date) -> Dict[date, GroupDailyStats]:
        """
        Per-day group totals, zero-filled.

        habit_participation counts the distinct users who completed each habit that day.
        """
        totals = defaultdict(lambda: [0, 0])
        participation: Dict[date, Dict[Any, set]] = defaultdict(lambda: defaultdict(set))

        for habit_id, records in habit_completions.items():
            for record in validate_records(records, f'habit_completions[{habit_id}]'):
                if not start_date <= record.date <= end_date:
                    continue
                totals[record.date][0] += 1
                if record.completed:
                    totals[record.date][1] += 1
                    participation[record.date][habit_id].add(record.user_id)

        result = {}
        for day in iter_days(start_date, end_date):
            total, completed = totals.get(day, (0, 0))
            result[day] = GroupDailyStats(
                total=total,
                completed=completed,
                completion_rate=completed / total if total else 0.0,
                habit_participation={h: len(users) for h, users in participation.get(day, {}).items()},
            )
        logger.debug(f"Aggregated {len(habit_completions)} habits over {len(result)} days")
        return result
