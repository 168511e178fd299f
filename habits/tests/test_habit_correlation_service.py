import pytest

from habits.domain import CorrelationResult, CorrelationType
from habits.exceptions import DataUnavailableError, InvalidDateRangeError, InvalidInputError
from habits.services import HabitCorrelationService
from habits.tests.factories import (
    HABIT_A, HABIT_B, HABIT_C, HABIT_D, HABIT_E, MONDAY, USER_1, USER_2, daily_records, day,
)
from habits.tests.fakes import FakeCompletionDataProvider

END = day(9)
BASE = [True, True, False, True, False, False, True, True, True, False]


def user_habits():
    inverted = [not f for f in BASE]
    shifted = [False] + BASE[:-1]
    lag_inverted = [True] + [not f for f in BASE[:-1]]
    return {
        USER_1: {
            HABIT_A: daily_records(MONDAY, BASE, HABIT_A),
            HABIT_B: daily_records(MONDAY, BASE, HABIT_B),
            HABIT_C: daily_records(MONDAY, inverted, HABIT_C),
            HABIT_D: daily_records(MONDAY, shifted, HABIT_D),
            HABIT_E: daily_records(MONDAY, [True, False], HABIT_E),
        },
        USER_2: {
            HABIT_A: daily_records(MONDAY, BASE, HABIT_A, USER_2),
            HABIT_B: daily_records(MONDAY, lag_inverted, HABIT_B, USER_2),
        },
    }


@pytest.fixture
def service(config, memory_store):
    return HabitCorrelationService(FakeCompletionDataProvider(user_habits=user_habits()), memory_store, config=config)


def result(first, second, coefficient, correlation_type=CorrelationType.NEUTRAL, confidence=0.5):
    return CorrelationResult(first, second, coefficient, correlation_type, confidence)


class TestCorrelationCoefficient:

    def test_identical_series(self, service):
        assert service.calculate_correlation_coefficient(BASE, BASE) == pytest.approx(1.0)

    def test_inverted_series(self, service):
        inverted = [not f for f in BASE]
        assert service.calculate_correlation_coefficient(BASE, inverted) == pytest.approx(-1.0)

    def test_constant_series(self, service):
        assert service.calculate_correlation_coefficient([True] * 10, BASE) == 0.0

    def test_empty_series(self, service):
        assert service.calculate_correlation_coefficient([], []) == 0.0

    def test_mismatched_lengths(self, service):
        with pytest.raises(InvalidInputError):
            service.calculate_correlation_coefficient([True, False], [True])

    def test_null_entries(self, service):
        with pytest.raises(InvalidInputError):
            service.calculate_correlation_coefficient([True, None, False], [True, False, False])

    def test_within_bounds(self, service):
        value = service.calculate_correlation_coefficient(BASE, [False] + BASE[:-1])
        assert -1.0 <= value <= 1.0


class TestAnalyzeHabitCorrelations:

    def by_pair(self, results):
        return {(r.habit1_id, r.habit2_id): r for r in results}

    def test_all_pairs(self, service):
        results = service.analyze_habit_correlations(USER_1, MONDAY, END)
        assert len(results) == 10  # C(5, 2)
        assert len({frozenset((r.habit1_id, r.habit2_id)) for r in results}) == 10

    def test_classification(self, service):
        pairs = self.by_pair(service.analyze_habit_correlations(USER_1, MONDAY, END))

        assert pairs[(HABIT_A, HABIT_B)].correlation_type == CorrelationType.POSITIVE
        assert pairs[(HABIT_A, HABIT_B)].correlation_coefficient == pytest.approx(1.0)
        assert pairs[(HABIT_A, HABIT_C)].correlation_type == CorrelationType.NEGATIVE
        assert pairs[(HABIT_A, HABIT_D)].correlation_type == CorrelationType.CAUSAL

    def test_inverse_causal(self, service):
        results = service.analyze_habit_correlations(USER_2, MONDAY, END)
        assert len(results) == 1
        assert results[0].correlation_type == CorrelationType.INVERSE_CAUSAL

    def test_short_overlap_is_neutral(self, service):
        pair = self.by_pair(service.analyze_habit_correlations(USER_1, MONDAY, END))[(HABIT_A, HABIT_E)]
        assert pair.correlation_type == CorrelationType.NEUTRAL
        assert pair.correlation_coefficient == 0.0
        assert pair.confidence_level == pytest.approx(2 / 30)

    def test_confidence_scales_with_overlap(self, service):
        pair = self.by_pair(service.analyze_habit_correlations(USER_1, MONDAY, END))[(HABIT_A, HABIT_B)]
        assert pair.confidence_level == pytest.approx(10 / 30)

    def test_user_without_habits(self, service):
        assert service.analyze_habit_correlations('nobody', MONDAY, END) == []

    def test_reversed_dates(self, service):
        with pytest.raises(InvalidDateRangeError):
            service.analyze_habit_correlations(USER_1, END, MONDAY)

    def test_provider_failure(self, config, memory_store):
        service = HabitCorrelationService(FakeCompletionDataProvider(error=OSError("gone")), memory_store, config=config)
        with pytest.raises(DataUnavailableError):
            service.analyze_habit_correlations(USER_1, MONDAY, END)


class TestStoreCorrelationResults:

    def test_counts_new_records(self, service):
        created = service.store_correlation_results(USER_1, [
            result(HABIT_A, HABIT_B, 0.8, CorrelationType.POSITIVE),
            result(HABIT_A, HABIT_C, -0.7, CorrelationType.NEGATIVE),
        ])
        assert created == 2

    def test_reversed_pair_is_noop(self, service, memory_store):
        service.store_correlation_results(USER_1, [result(HABIT_A, HABIT_B, 0.8, CorrelationType.POSITIVE)])
        created = service.store_correlation_results(USER_1, [result(HABIT_B, HABIT_A, 0.1)])

        assert created == 0
        assert len(memory_store) == 1
        assert memory_store.exists_correlation_between_habits(USER_1, HABIT_B, HABIT_A)
        stored = service.find_positive_correlations(USER_1)
        assert stored[0].habit1_id == str(HABIT_A)
        assert stored[0].correlation_coefficient == 0.8

    def test_pairs_are_per_user(self, service, memory_store):
        service.store_correlation_results(USER_1, [result(HABIT_A, HABIT_B, 0.8)])
        assert service.store_correlation_results(USER_2, [result(HABIT_A, HABIT_B, 0.8)]) == 1

    def test_null_result_rejected(self, service):
        with pytest.raises(InvalidInputError):
            service.store_correlation_results(USER_1, [None])

    def test_store_analysis_output(self, service):
        results = service.analyze_habit_correlations(USER_1, MONDAY, END)
        assert service.store_correlation_results(USER_1, results) == 10
        assert service.store_correlation_results(USER_1, results) == 0


class TestCorrelationQueries:

    @pytest.fixture
    def stored(self, service):
        service.store_correlation_results(USER_1, [
            result(HABIT_A, HABIT_B, 0.8, CorrelationType.POSITIVE),
            result(HABIT_B, HABIT_C, 0.6, CorrelationType.POSITIVE),
            result(HABIT_A, HABIT_C, -0.7, CorrelationType.NEGATIVE),
            result(HABIT_C, HABIT_D, -0.9, CorrelationType.NEGATIVE),
            result(HABIT_A, HABIT_D, 0.1),
        ])
        return service

    def test_positive_sorted_desc(self, stored):
        found = stored.find_positive_correlations(USER_1, 0.5)
        assert [r.correlation_coefficient for r in found] == [0.8, 0.6]

    def test_negative_sorted_asc(self, stored):
        found = stored.find_negative_correlations(USER_1, -0.5)
        assert [r.correlation_coefficient for r in found] == [-0.9, -0.7]

    def test_matrix(self, stored):
        ids = [HABIT_A, HABIT_B, HABIT_C, HABIT_D, HABIT_E]
        matrix = stored.get_correlation_matrix(USER_1, ids)

        for habit_id in ids:
            assert matrix.get_correlation_value(habit_id, habit_id) == 1.0
        assert matrix.get_correlation_value(HABIT_A, HABIT_B) == 0.8
        assert matrix.get_correlation_value(HABIT_B, HABIT_A) == 0.8
        assert matrix.get_correlation_value(HABIT_D, HABIT_C) == -0.9
        assert matrix.get_correlation_value(HABIT_A, HABIT_E) == 0.0

        array = matrix.to_array()
        assert array.shape == (5, 5)
        assert (array == array.T).all()

    def test_matrix_for_unknown_user(self, stored):
        matrix = stored.get_correlation_matrix(USER_2, [HABIT_A, HABIT_B])
        assert matrix.get_correlation_value(HABIT_A, HABIT_A) == 1.0
        assert matrix.get_correlation_value(HABIT_A, HABIT_B) == 0.0
