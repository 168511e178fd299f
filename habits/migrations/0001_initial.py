import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='HabitCorrelation',
            fields=[
                ('correlation_id', models.CharField(default=uuid.uuid4, editable=False, max_length=36, primary_key=True, serialize=False)),
                ('user_id', models.CharField(max_length=255)),
                ('habit1_id', models.CharField(max_length=255)),
                ('habit2_id', models.CharField(max_length=255)),
                ('habit_low', models.CharField(editable=False, max_length=255)),
                ('habit_high', models.CharField(editable=False, max_length=255)),
                ('correlation_coefficient', models.FloatField()),
                ('correlation_type', models.CharField(choices=[('POSITIVE', 'Positive'), ('NEGATIVE', 'Negative'), ('NEUTRAL', 'Neutral'), ('CAUSAL', 'Causal'), ('INVERSE_CAUSAL', 'Inverse causal')], default='NEUTRAL', max_length=20)),
                ('confidence_level', models.FloatField(default=0.0)),
                ('calculated_at', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'habit_correlations',
                'ordering': ['-correlation_coefficient'],
                'unique_together': {('user_id', 'habit_low', 'habit_high')},
                'indexes': [
                    models.Index(fields=['user_id', 'correlation_coefficient'], name='correlation_strength'),
                    models.Index(fields=['user_id', 'habit1_id'], name='correlation_habit1'),
                    models.Index(fields=['user_id', 'habit2_id'], name='correlation_habit2'),
                ],
            },
        ),
    ]
