"""
Correlation store implementations.

DjangoCorrelationStore persists to the habit_correlations table and relies
on the (user_id, habit_low, habit_high) unique constraint for atomic
insert-if-absent. InMemoryCorrelationStore keeps the same contract behind
a lock, for tests and for callers that do not need durability.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from habits.domain import make_pair_key
from habits.exceptions import InvalidInputError
from habits.models import HabitCorrelation
from habits.utils.constants import MAX_ID_LENGTH

logger = logging.getLogger(__name__)


def _type_value(correlation_type) -> str:
    return getattr(correlation_type, 'value', correlation_type)


def _check_id_lengths(**ids):
    for name, value in ids.items():
        if len(str(value)) > MAX_ID_LENGTH:
            raise InvalidInputError(name, f"id longer than {MAX_ID_LENGTH} characters")


# =============================================================================
# DJANGO ORM STORE
# =============================================================================

class DjangoCorrelationStore:
    """Correlation store backed by the HabitCorrelation model."""

    def exists_correlation_between_habits(self, user_id, habit1_id, habit2_id) -> bool:
        habit_low, habit_high = make_pair_key(habit1_id, habit2_id)
        return HabitCorrelation.objects.filter(
            user_id=str(user_id),
            habit_low=habit_low,
            habit_high=habit_high,
        ).exists()

    def save(self, user_id, result) -> bool:
        """
        Insert the result unless its pair is already stored. Returns True if created.

        Raises:
            InvalidInputError: if an id does not fit the id columns
        """
        _check_id_lengths(user_id=user_id, habit1_id=result.habit1_id, habit2_id=result.habit2_id)
        habit_low, habit_high = make_pair_key(result.habit1_id, result.habit2_id)
        with transaction.atomic():
            _, created = HabitCorrelation.objects.get_or_create(
                user_id=str(user_id),
                habit_low=habit_low,
                habit_high=habit_high,
                defaults={
                    'habit1_id': str(result.habit1_id),
                    'habit2_id': str(result.habit2_id),
                    'correlation_coefficient': result.correlation_coefficient,
                    'correlation_type': _type_value(result.correlation_type),
                    'confidence_level': result.confidence_level,
                    'calculated_at': timezone.now(),
                },
            )
        if not created:
            logger.debug(f"Correlation {result.habit1_id}/{result.habit2_id} already stored for {user_id}")
        return created

    def find_positive_correlations(self, user_id, threshold: float) -> List[HabitCorrelation]:
        return list(
            HabitCorrelation.objects.filter(
                user_id=str(user_id),
                correlation_coefficient__gte=threshold,
            ).order_by('-correlation_coefficient')
        )

    def find_negative_correlations(self, user_id, threshold: float) -> List[HabitCorrelation]:
        return list(
            HabitCorrelation.objects.filter(
                user_id=str(user_id),
                correlation_coefficient__lte=threshold,
            ).order_by('correlation_coefficient')
        )

    def get_correlation_matrix_for_user(self, user_id, habit_ids: Optional[List[Any]] = None) -> List[HabitCorrelation]:
        queryset = HabitCorrelation.objects.filter(user_id=str(user_id))
        if habit_ids is not None:
            ids = [str(h) for h in habit_ids]
            queryset = queryset.filter(habit1_id__in=ids, habit2_id__in=ids)
        return list(queryset)


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

@dataclass
class StoredCorrelation:
    """Plain mirror of a HabitCorrelation row."""
    user_id: str
    habit1_id: str
    habit2_id: str
    correlation_coefficient: float
    correlation_type: str
    confidence_level: float
    calculated_at: datetime = field(default_factory=timezone.now)

    @property
    def pair_key(self) -> Tuple[str, str]:
        return make_pair_key(self.habit1_id, self.habit2_id)


class InMemoryCorrelationStore:
    """Thread-safe dict-backed correlation store."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[Tuple[str, Tuple[str, str]], StoredCorrelation] = {}

    def exists_correlation_between_habits(self, user_id, habit1_id, habit2_id) -> bool:
        with self._lock:
            return (str(user_id), make_pair_key(habit1_id, habit2_id)) in self._records

    def save(self, user_id, result) -> bool:
        key = (str(user_id), make_pair_key(result.habit1_id, result.habit2_id))
        with self._lock:
            if key in self._records:
                return False
            self._records[key] = StoredCorrelation(
                user_id=str(user_id),
                habit1_id=str(result.habit1_id),
                habit2_id=str(result.habit2_id),
                correlation_coefficient=result.correlation_coefficient,
                correlation_type=_type_value(result.correlation_type),
                confidence_level=result.confidence_level,
            )
            return True

    def _for_user(self, user_id) -> List[StoredCorrelation]:
        with self._lock:
            return [r for (owner, _), r in self._records.items() if owner == str(user_id)]

    def find_positive_correlations(self, user_id, threshold: float) -> List[StoredCorrelation]:
        matches = [r for r in self._for_user(user_id) if r.correlation_coefficient >= threshold]
        return sorted(matches, key=lambda r: r.correlation_coefficient, reverse=True)

    def find_negative_correlations(self, user_id, threshold: float) -> List[StoredCorrelation]:
        matches = [r for r in self._for_user(user_id) if r.correlation_coefficient <= threshold]
        return sorted(matches, key=lambda r: r.correlation_coefficient)

    def get_correlation_matrix_for_user(self, user_id, habit_ids: Optional[List[Any]] = None) -> List[StoredCorrelation]:
        records = self._for_user(user_id)
        if habit_ids is None:
            return records
        ids = {str(h) for h in habit_ids}
        return [r for r in records if r.habit1_id in ids and r.habit2_id in ids]

    def __len__(self):
        with self._lock:
            return len(self._records)
