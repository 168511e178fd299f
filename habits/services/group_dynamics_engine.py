"""
Group Dynamics Engine

Scores how a group is doing on its shared habits: momentum, cohesion,
group streak, synergy, key contributors and participation. Only records
of current members are counted.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from itertools import combinations
from typing import Any, Dict, List, Optional, Set

import numpy as np

from habits.config import AnalyticsConfig, get_analytics_config
from habits.domain import (
    CompletionRecord, ContributorType, GroupCompletionData, GroupDynamicsResult,
    GroupMember, KeyContributor, ParticipationMetrics, validate_date_range,
)
from habits.exceptions import AnalyticsError, DataUnavailableError, InvalidInputError
from habits.helpers.metric_helpers import clamp, find_runs, jaccard_similarity, population_std
from habits.providers import CompletionDataProvider, GroupMembershipProvider
from habits.services.completion_aggregator import CompletionDataAggregator
from habits.utils.constants import (
    ACTIVE_PARTICIPANT_FACTOR, COHESION_PARTICIPATION_BOOST, HIGH_PERFORMER_FACTOR,
    LEADER_ATTEMPTS_FACTOR, LEADER_FACTOR, MOMENTUM_DELTA_WEIGHT,
)
from habits.utils.logging_utils import log_function_call
from habits.utils.time_utils import days_in_range, iter_days

logger = logging.getLogger(__name__)


@dataclass
class _MemberStats:
    attempts: int = 0
    completions: int = 0
    active_days: Set[date] = field(default_factory=set)

    @property
    def completion_rate(self) -> float:
        return self.completions / self.attempts if self.attempts else 0.0


def _member_ids(members: List[GroupMember]) -> List[Any]:
    if members is None:
        raise InvalidInputError('members', "member list is None")
    ids = []
    for member in members:
        if member is None:
            raise InvalidInputError('members', "contains a null member")
        if member.user_id not in ids:
            ids.append(member.user_id)
    return ids


def _member_records(data: GroupCompletionData, member_ids) -> List[CompletionRecord]:
    allowed = set(member_ids)
    return [
        r for r in data.all_records()
        if r.user_id in allowed and data.start_date <= r.date <= data.end_date
    ]


def _habit_count(data: GroupCompletionData) -> int:
    return max(len(data.group_habits), len(data.habit_completions))


class GroupDynamicsEngine:
    """Multi-user scoring for a group's shared habits."""

    def __init__(self, data_provider: CompletionDataProvider, membership_provider: GroupMembershipProvider,
                 config: Optional[AnalyticsConfig] = None):
        self.data_provider = data_provider
        self.membership_provider = membership_provider
        self.config = config or get_analytics_config()

    # =========================================================================
    # ORCHESTRATION
    # =========================================================================

    @log_function_call()
    def calculate_group_dynamics(self, group_id, start_date: date, end_date: date) -> GroupDynamicsResult:
        """
        Fetch members and group data, then compute every group metric.

        Raises:
            InvalidDateRangeError: if end_date < start_date
            DataUnavailableError: if a provider fails
        """
        validate_date_range(start_date, end_date)

        try:
            members = self.membership_provider.find_members(group_id)
        except DataUnavailableError:
            raise
        except Exception as e:
            raise DataUnavailableError('group_membership', f"group {group_id}: {e}") from e
        if members is None:
            raise DataUnavailableError('group_membership', f"no member list for group {group_id}")

        try:
            data = self.data_provider.collect_group_completion_data(group_id, start_date, end_date)
        except (DataUnavailableError, InvalidInputError):
            raise
        except Exception as e:
            raise DataUnavailableError('completion_data', f"group {group_id}: {e}") from e

        logger.info(f"Calculating dynamics for group {group_id} ({len(members)} members)")
        return GroupDynamicsResult(
            group_id=group_id,
            start_date=start_date,
            end_date=end_date,
            momentum_score=self.calculate_momentum_score(data, members),
            cohesion_score=self.calculate_cohesion_score(data, members),
            group_streak=self.calculate_group_streak(data, members),
            synergistic_score=self.calculate_synergistic_score(data, members),
            key_contributors=self.identify_key_contributors(data, members),
            participation_metrics=self.calculate_participation_metrics(data, members),
        )

    # =========================================================================
    # SCORES
    # =========================================================================

    def _daily_rates(self, data: GroupCompletionData, member_ids) -> np.ndarray:
        """Group completion rate per window day: completions / (habits x members)."""
        capacity = _habit_count(data) * len(member_ids)
        by_habit = defaultdict(list)
        for record in _member_records(data, member_ids):
            by_habit[record.habit_id].append(record)

        daily = CompletionDataAggregator.aggregate_group_completions(by_habit, data.start_date, data.end_date)
        return np.array([
            min(1.0, sum(daily[day].habit_participation.values()) / capacity) if capacity else 0.0
            for day in iter_days(data.start_date, data.end_date)
        ])

    def calculate_momentum_score(self, data: GroupCompletionData, members: List[GroupMember]) -> float:
        """
        Recent completion rate pushed up or down by its change against the earlier window.

        The recent sub-window is the last min(7, n // 2) days of an n-day window.
        """
        member_ids = _member_ids(members)
        if not member_ids or data.is_empty:
            return 0.0

        rates = self._daily_rates(data, member_ids)
        if len(rates) == 1:
            return clamp(rates[0])

        recent_days = min(self.config.momentum_window_days, len(rates) // 2)
        recent = float(rates[-recent_days:].mean())
        earlier = float(rates[:-recent_days].mean())
        return clamp(recent + MOMENTUM_DELTA_WEIGHT * (recent - earlier))

    def calculate_cohesion_score(self, data: GroupCompletionData, members: List[GroupMember]) -> float:
        """Uniformity of per-member completion rates, with a small boost for overall participation."""
        member_ids = _member_ids(members)
        if not member_ids or data.is_empty:
            return 0.0

        capacity = _habit_count(data) * days_in_range(data.start_date, data.end_date)
        stats = self._member_stats(data, member_ids)
        rates = [min(1.0, stats[m].completions / capacity) if capacity else 0.0 for m in member_ids]

        mean_rate = float(np.mean(rates))
        cohesion = 1.0 - population_std(rates) + min(COHESION_PARTICIPATION_BOOST, mean_rate * COHESION_PARTICIPATION_BOOST)
        return clamp(cohesion)

    def calculate_group_streak(self, data: GroupCompletionData, members: Optional[List[GroupMember]] = None) -> int:
        """
        Longest run of consecutive days on which some shared habit was completed
        by at least the configured share of the participating users.
        """
        if data.is_empty:
            return 0

        if members is None:
            records = [r for r in data.all_records() if data.start_date <= r.date <= data.end_date]
        else:
            records = _member_records(data, _member_ids(members))

        participants = {r.user_id for r in records}
        if not participants:
            return 0

        completers: Dict[date, Dict[Any, set]] = defaultdict(lambda: defaultdict(set))
        for record in records:
            if record.completed:
                completers[record.date][record.habit_id].add(record.user_id)

        required = self.config.group_streak_member_share * len(participants)
        qualifying = [
            any(len(users) >= required for users in completers.get(day, {}).values())
            for day in iter_days(data.start_date, data.end_date)
        ]
        return max((length for _, length in find_runs(qualifying)), default=0)

    def calculate_synergistic_score(self, data: GroupCompletionData, members: List[GroupMember]) -> float:
        """Mean pairwise Jaccard overlap of the members' active days."""
        member_ids = _member_ids(members)
        if len(member_ids) < 2 or data.is_empty:
            return 0.0

        stats = self._member_stats(data, member_ids)
        overlaps = [
            jaccard_similarity(stats[a].active_days, stats[b].active_days)
            for a, b in combinations(member_ids, 2)
        ]
        return clamp(float(np.mean(overlaps)))

    # =========================================================================
    # CONTRIBUTORS & PARTICIPATION
    # =========================================================================

    def _member_stats(self, data: GroupCompletionData, member_ids) -> Dict[Any, _MemberStats]:
        stats = {m: _MemberStats() for m in member_ids}
        for record in _member_records(data, member_ids):
            member = stats[record.user_id]
            member.attempts += 1
            if record.completed:
                member.completions += 1
                member.active_days.add(record.date)
        return stats

    def identify_key_contributors(self, data: GroupCompletionData, members: List[GroupMember]) -> List[KeyContributor]:
        """
        Rank members with at least one attempt.

        contribution_score = 0.6 * volume + 0.4 * consistency, where volume is
        completions relative to the top member and consistency is the share of
        window days with a completion.
        """
        member_ids = _member_ids(members)
        if not member_ids or data.is_empty:
            return []

        stats = self._member_stats(data, member_ids)
        active = {m: s for m, s in stats.items() if s.attempts > 0}
        if not active:
            return []

        top_completions = max(s.completions for s in active.values())
        window_days = days_in_range(data.start_date, data.end_date)
        avg_rate = float(np.mean([s.completion_rate for s in active.values()]))
        avg_attempts = float(np.mean([s.attempts for s in active.values()]))

        contributors = []
        for user_id, member in active.items():
            volume = member.completions / top_completions if top_completions else 0.0
            consistency = len(member.active_days) / window_days
            score = (self.config.contribution_volume_weight * volume
                     + self.config.contribution_consistency_weight * consistency)
            contributors.append(KeyContributor(
                user_id=user_id,
                total_attempts=member.attempts,
                successful_completions=member.completions,
                completion_rate=member.completion_rate,
                contribution_score=max(0.0, score),
                contributor_type=self._contributor_type(member, avg_rate, avg_attempts),
            ))

        contributors.sort(key=lambda c: (-c.contribution_score, str(c.user_id)))
        return contributors

    @staticmethod
    def _contributor_type(member: _MemberStats, avg_rate: float, avg_attempts: float) -> ContributorType:
        rate = member.completion_rate
        if rate > avg_rate * LEADER_FACTOR and member.attempts > avg_attempts * LEADER_ATTEMPTS_FACTOR:
            return ContributorType.LEADER
        if rate > avg_rate * HIGH_PERFORMER_FACTOR:
            return ContributorType.HIGH_PERFORMER
        if member.attempts > avg_attempts * ACTIVE_PARTICIPANT_FACTOR:
            return ContributorType.ACTIVE_PARTICIPANT
        if rate > avg_rate:
            return ContributorType.CONSISTENT_CONTRIBUTOR
        if rate <= avg_rate:
            return ContributorType.CASUAL_PARTICIPANT
        raise AnalyticsError('contributor_type', f"unclassified rate {rate}")

    def calculate_participation_metrics(self, data: GroupCompletionData,
                                        members: List[GroupMember]) -> ParticipationMetrics:
        member_ids = _member_ids(members)
        stats = self._member_stats(data, member_ids)

        total_members = len(member_ids)
        active_members = sum(1 for s in stats.values() if s.attempts > 0)
        total_attempts = sum(s.attempts for s in stats.values())
        total_completions = sum(s.completions for s in stats.values())

        return ParticipationMetrics(
            total_members=total_members,
            active_members=active_members,
            participation_rate=active_members / total_members if total_members else 0.0,
            total_attempts=total_attempts,
            total_completions=total_completions,
            completion_rate=total_completions / total_attempts if total_attempts else 0.0,
        )
