# habits/utils/constants.py
"""
Central constants file for the analytics thresholds.
Use these constants instead of hardcoded numbers; every value can be
overridden through settings.HABIT_ANALYTICS (see habits.config).
"""

# ============================================
# DAYS OF WEEK (date.weekday() numbering)
# ============================================
MONDAY = 0
SATURDAY = 5
SUNDAY = 6

DAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
WEEKEND_DAYS = (SATURDAY, SUNDAY)

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7

# ============================================
# HABIT ANALYTICS
# ============================================
TREND_THRESHOLD = 0.1
WEEKEND_WEEKDAY_THRESHOLD = 0.2
# Largest possible stddev of rates bounded to [0, 1]
MAX_RATE_STDDEV = 0.5

WEEKLY_CYCLE_THRESHOLD = 0.2
WEEKLY_CYCLE_FULL_CONFIDENCE_DELTA = 0.5
STREAK_PATTERN_THRESHOLD = 0.6
SEASONAL_PATTERN_THRESHOLD = 0.5
SEASONAL_MIN_DAYS = 90
SEASONAL_MIN_MONTHS = 3
RECOVERY_PATTERN_THRESHOLD = 0.6

# ============================================
# HABIT FORMATION
# ============================================
FORMATION_TIME_DAYS = 66
FORMATION_STREAK_DAYS = 21
HABIT_FORMED_STREAK_DAYS = 66
MASTERY_MIN_DAYS = 90
MASTERY_MIN_SUCCESS = 0.8
STABILIZATION_MIN_DAYS = 30
STABILIZATION_MIN_SUCCESS = 0.6
INITIATION_MAX_DAYS = 7
INITIATION_MIN_SUCCESS = 0.3

# (milestone_type, description, streak days required)
FORMATION_MILESTONES = [
    ('FIRST_STREAK', 'Completed 3 days in a row', 3),
    ('WEEK_STREAK', 'Completed 1 week consistently', 7),
    ('HABIT_FORMING', 'Completed 21 days - habit forming', 21),
    ('HABIT_FORMED', 'Completed 66 days - habit formed', HABIT_FORMED_STREAK_DAYS),
]

# ============================================
# OPTIMAL TIMING
# ============================================
MIN_TIMING_SAMPLE_SIZE = 3
OPTIMAL_WINDOW_TOLERANCE = 0.1
HOURLY_PREDICTION_WEIGHT = 0.7
DAY_PREDICTION_WEIGHT = 0.3

# (minimum combined sample size, confidence)
PREDICTION_CONFIDENCE_TIERS = [
    (30, 0.95),
    (20, 0.85),
    (10, 0.75),
    (5, 0.60),
    (0, 0.40),
]

# ============================================
# CORRELATION
# ============================================
POSITIVE_CORRELATION_THRESHOLD = 0.5
NEGATIVE_CORRELATION_THRESHOLD = -0.5
CAUSAL_CORRELATION_THRESHOLD = 0.7
MIN_CORRELATION_SAMPLES = 3
FULL_CONFIDENCE_SAMPLES = 30

# ============================================
# GROUP DYNAMICS
# ============================================
MOMENTUM_WINDOW_DAYS = 7
MOMENTUM_DELTA_WEIGHT = 0.5
COHESION_PARTICIPATION_BOOST = 0.2
GROUP_STREAK_MEMBER_SHARE = 0.5
CONTRIBUTION_VOLUME_WEIGHT = 0.6
CONTRIBUTION_CONSISTENCY_WEIGHT = 0.4
LEADER_FACTOR = 1.2
LEADER_ATTEMPTS_FACTOR = 1.2
HIGH_PERFORMER_FACTOR = 1.1
ACTIVE_PARTICIPANT_FACTOR = 1.2

# ============================================
# STORAGE
# ============================================
MAX_ID_LENGTH = 255
