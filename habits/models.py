from django.db import models
import uuid

from habits.domain import make_pair_key
from habits.utils.constants import MAX_ID_LENGTH


class HabitCorrelation(models.Model):
    """Stored correlation between two of a user's habits (one row per unordered pair)"""

    CORRELATION_TYPE_CHOICES = [
        ('POSITIVE', 'Positive'),
        ('NEGATIVE', 'Negative'),
        ('NEUTRAL', 'Neutral'),
        ('CAUSAL', 'Causal'),
        ('INVERSE_CAUSAL', 'Inverse causal'),
    ]

    correlation_id = models.CharField(max_length=36, primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=MAX_ID_LENGTH)
    habit1_id = models.CharField(max_length=MAX_ID_LENGTH)
    habit2_id = models.CharField(max_length=MAX_ID_LENGTH)
    # Orientation-free identity of the pair; habit_low <= habit_high as strings
    habit_low = models.CharField(max_length=MAX_ID_LENGTH, editable=False)
    habit_high = models.CharField(max_length=MAX_ID_LENGTH, editable=False)
    correlation_coefficient = models.FloatField()
    correlation_type = models.CharField(max_length=20, choices=CORRELATION_TYPE_CHOICES, default='NEUTRAL')
    confidence_level = models.FloatField(default=0.0)
    calculated_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'habit_correlations'
        unique_together = [['user_id', 'habit_low', 'habit_high']]
        ordering = ['-correlation_coefficient']
        indexes = [
            models.Index(fields=['user_id', 'correlation_coefficient'], name='correlation_strength'),
            models.Index(fields=['user_id', 'habit1_id'], name='correlation_habit1'),
            models.Index(fields=['user_id', 'habit2_id'], name='correlation_habit2'),
        ]

    @property
    def pair_key(self):
        return self.habit_low, self.habit_high

    def save(self, *args, **kwargs):
        self.habit_low, self.habit_high = make_pair_key(self.habit1_id, self.habit2_id)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.habit1_id} ~ {self.habit2_id}: {self.correlation_coefficient:.2f} ({self.correlation_type})"
