"""
Pytest configuration and fixtures for the habit analytics tests.

This module provides reusable fixtures for testing.
"""
import pytest

from habits.config import AnalyticsConfig
from habits.repositories.correlation_repository import InMemoryCorrelationStore
from habits.services import HabitAnalyticsEngine
from habits.utils.logging_utils import clear_context


@pytest.fixture
def config():
    """Default thresholds, independent of settings.HABIT_ANALYTICS."""
    return AnalyticsConfig()


@pytest.fixture
def analytics_engine(config):
    return HabitAnalyticsEngine(config=config)


@pytest.fixture
def memory_store():
    return InMemoryCorrelationStore()


@pytest.fixture(autouse=True)
def reset_log_context():
    yield
    clear_context()
