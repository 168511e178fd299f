"""
Collaborator interfaces consumed by the analytics engines.

The engines never talk to the habit/group tables directly; callers inject
objects satisfying these protocols (Django query adapters in the web layer,
in-memory fakes in tests).
"""
from datetime import date
from typing import Any, Dict, List, Optional, Protocol

from habits.domain import GroupCompletionData, GroupMember, HabitCompletionData


class CompletionDataProvider(Protocol):

    def collect_habit_completion_data(self, habit_id: Any, start_date: date,
                                      end_date: date) -> HabitCompletionData:
        ...

    def collect_all_user_habits_data(self, user_id: Any, start_date: date,
                                     end_date: date) -> Dict[Any, HabitCompletionData]:
        ...

    def collect_group_completion_data(self, group_id: Any, start_date: date,
                                      end_date: date) -> GroupCompletionData:
        ...


class GroupMembershipProvider(Protocol):

    def find_members(self, group_id: Any) -> List[GroupMember]:
        ...


class CorrelationStore(Protocol):
    """
    Persistence for pairwise habit correlations.

    Pairs are unordered: (A, B) and (B, A) name the same record, and
    save() never creates a second record for an existing pair.
    """

    def exists_correlation_between_habits(self, user_id: Any, habit1_id: Any, habit2_id: Any) -> bool:
        ...

    def save(self, user_id: Any, result) -> bool:
        """Insert if absent; True when a record was created."""
        ...

    def find_positive_correlations(self, user_id: Any, threshold: float) -> list:
        ...

    def find_negative_correlations(self, user_id: Any, threshold: float) -> list:
        ...

    def get_correlation_matrix_for_user(self, user_id: Any,
                                        habit_ids: Optional[List[Any]] = None) -> list:
        ...
