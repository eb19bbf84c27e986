"""Тесты для src/segments/accumulator.py — FrameAccumulator."""
from __future__ import annotations

import numpy as np
import pytest

from src.segments.accumulator import FrameAccumulator
from src.segments.errors import DimensionMismatchError, UndefinedStatisticError


@pytest.fixture
def random_frames() -> np.ndarray:
    rng = np.random.default_rng(42)
    return rng.normal(size=(50, 13))


class TestAccumulate:
    def test_mean_is_arithmetic_mean(self, random_frames):
        acc = FrameAccumulator()
        for frame in random_frames:
            acc.accumulate(frame)

        assert acc.get_count() == 50
        np.testing.assert_allclose(acc.get_mean(), random_frames.mean(axis=0), atol=1e-12)

    def test_cov_and_std_match_numpy(self, random_frames):
        acc = FrameAccumulator()
        acc.accumulate_frames(random_frames)

        np.testing.assert_allclose(acc.get_cov(), random_frames.var(axis=0), atol=1e-12)
        np.testing.assert_allclose(acc.get_std(), random_frames.std(axis=0), atol=1e-12)

    def test_two_vectors(self):
        acc = FrameAccumulator()
        acc.accumulate([1.0, 2.0])
        acc.accumulate([3.0, 4.0])

        np.testing.assert_allclose(acc.get_mean(), [2.0, 3.0])
        np.testing.assert_allclose(acc.get_cov(), [1.0, 1.0])
        np.testing.assert_allclose(acc.get_std(), [1.0, 1.0])
        np.testing.assert_allclose(acc.get_sum(), [4.0, 6.0])
        np.testing.assert_allclose(acc.get_sum_sq(), [10.0, 20.0])

    def test_accumulate_frames_equals_per_frame(self, random_frames):
        per_frame = FrameAccumulator()
        for frame in random_frames:
            per_frame.accumulate(frame)
        batched = FrameAccumulator()
        batched.accumulate_frames(random_frames)

        assert batched.get_count() == per_frame.get_count()
        np.testing.assert_allclose(batched.get_sum(), per_frame.get_sum())
        np.testing.assert_allclose(batched.get_sum_sq(), per_frame.get_sum_sq())

    def test_dimension_fixed_by_first_call(self):
        acc = FrameAccumulator()
        assert acc.get_dim() is None
        acc.accumulate([1.0, 2.0, 3.0])
        assert acc.get_dim() == 3

        with pytest.raises(DimensionMismatchError) as exc_info:
            acc.accumulate([1.0, 2.0])
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2
        # Неудачный вызов не изменил состояние
        assert acc.get_count() == 1

    def test_dimension_from_constructor(self):
        acc = FrameAccumulator(dim=4)
        assert acc.get_dim() == 4
        with pytest.raises(DimensionMismatchError):
            acc.accumulate([1.0])

    def test_rejects_matrix_in_accumulate(self):
        acc = FrameAccumulator()
        with pytest.raises(DimensionMismatchError):
            acc.accumulate([[1.0, 2.0]])


class TestDeaccumulate:
    def test_round_trip_restores_sums(self, random_frames):
        acc = FrameAccumulator()
        acc.accumulate_frames(random_frames[:10])
        count, total, total_sq = acc.get_count(), acc.get_sum(), acc.get_sum_sq()

        acc.accumulate(random_frames[20])
        acc.deaccumulate(random_frames[20])

        assert acc.get_count() == count
        np.testing.assert_allclose(acc.get_sum(), total)
        np.testing.assert_allclose(acc.get_sum_sq(), total_sq)

    def test_frames_round_trip(self, random_frames):
        acc = FrameAccumulator()
        acc.accumulate_frames(random_frames)
        acc.deaccumulate_frames(random_frames[:25])

        np.testing.assert_allclose(acc.get_mean(), random_frames[25:].mean(axis=0), atol=1e-12)

    def test_unmatched_deaccumulate_is_not_validated(self):
        # Контракт не проверяется: счётчик уходит в минус
        acc = FrameAccumulator()
        acc.deaccumulate([1.0, 1.0])
        assert acc.get_count() == -1


class TestAdd:
    def test_add_sums_raw_statistics(self):
        a = FrameAccumulator()
        a.accumulate([1.0, 2.0])
        b = FrameAccumulator()
        b.accumulate([3.0, 4.0])
        b.accumulate([5.0, 6.0])

        a.add(b)

        assert a.get_count() == 3
        np.testing.assert_allclose(a.get_sum(), [9.0, 12.0])
        np.testing.assert_allclose(a.get_sum_sq(), [35.0, 56.0])

    def test_add_is_commutative(self, random_frames):
        a = FrameAccumulator()
        a.accumulate_frames(random_frames[:20])
        b = FrameAccumulator()
        b.accumulate_frames(random_frames[20:])

        ab = a.copy()
        ab.add(b)
        ba = b.copy()
        ba.add(a)

        assert ab.get_count() == ba.get_count() == 50
        np.testing.assert_allclose(ab.get_sum(), ba.get_sum())
        np.testing.assert_allclose(ab.get_sum_sq(), ba.get_sum_sq())
        np.testing.assert_allclose(ab.get_mean(), random_frames.mean(axis=0), atol=1e-12)

    def test_subtract_inverts_add(self, random_frames):
        a = FrameAccumulator()
        a.accumulate_frames(random_frames[:20])
        b = FrameAccumulator()
        b.accumulate_frames(random_frames[20:])

        a.add(b)
        a.subtract(b)

        assert a.get_count() == 20
        np.testing.assert_allclose(a.get_mean(), random_frames[:20].mean(axis=0), atol=1e-12)

    def test_add_empty_is_noop(self):
        a = FrameAccumulator()
        a.accumulate([1.0, 2.0])
        a.add(FrameAccumulator())
        assert a.get_count() == 1

    def test_add_dimension_mismatch(self):
        a = FrameAccumulator()
        a.accumulate([1.0, 2.0])
        b = FrameAccumulator()
        b.accumulate([1.0, 2.0, 3.0])
        with pytest.raises(DimensionMismatchError):
            a.add(b)


class TestDerivedStatistics:
    def test_empty_accumulator_has_no_statistics(self):
        acc = FrameAccumulator(dim=2)
        with pytest.raises(UndefinedStatisticError):
            acc.get_mean()
        with pytest.raises(UndefinedStatisticError):
            acc.get_cov()
        with pytest.raises(UndefinedStatisticError):
            acc.get_std()

    def test_statistics_undefined_after_full_removal(self):
        acc = FrameAccumulator()
        acc.accumulate([1.0, 2.0])
        acc.get_mean()
        acc.deaccumulate([1.0, 2.0])
        with pytest.raises(UndefinedStatisticError):
            acc.get_mean()

    def test_covariance_clamped_to_zero(self):
        # Сокращение больших близких чисел даёт отрицательную дисперсию без clamp
        acc = FrameAccumulator()
        for _ in range(3):
            acc.accumulate([1e8 + 0.1, 1e8 + 0.3])
        cov = acc.get_cov()
        assert (cov >= 0.0).all()
        assert (acc.get_std() >= 0.0).all()

    def test_variance_floor_from_settings(self, override_settings):
        override_settings(STATS_VARIANCE_FLOOR=0.5)
        acc = FrameAccumulator()
        acc.accumulate([1.0, 1.0])
        acc.accumulate([1.0, 3.0])
        np.testing.assert_allclose(acc.get_cov(), [0.5, 1.0])

    def test_cached_until_mutation(self):
        acc = FrameAccumulator()
        acc.accumulate([1.0, 2.0])
        mean = acc.get_mean()
        assert acc.get_mean() is mean

        acc.accumulate([3.0, 4.0])
        assert acc.get_mean() is not mean
        np.testing.assert_allclose(acc.get_mean(), [2.0, 3.0])

    def test_derived_vectors_are_read_only(self):
        acc = FrameAccumulator()
        acc.accumulate([1.0, 2.0])
        with pytest.raises(ValueError):
            acc.get_mean()[0] = 100.0

    def test_raw_sums_are_copies(self):
        acc = FrameAccumulator()
        acc.accumulate([1.0, 2.0])
        acc.get_sum()[0] = 100.0
        np.testing.assert_allclose(acc.get_sum(), [1.0, 2.0])


class TestLifecycle:
    def test_reset_keeps_dimension(self):
        acc = FrameAccumulator()
        acc.accumulate([1.0, 2.0])
        acc.reset()
        assert acc.get_count() == 0
        assert acc.get_dim() == 2
        np.testing.assert_allclose(acc.get_sum(), [0.0, 0.0])

    def test_copy_is_independent(self):
        acc = FrameAccumulator()
        acc.accumulate([1.0, 2.0])
        clone = acc.copy()
        clone.accumulate([3.0, 4.0])

        assert acc.get_count() == 1
        assert clone.get_count() == 2
        np.testing.assert_allclose(acc.get_mean(), [1.0, 2.0])

    def test_dtype(self):
        acc = FrameAccumulator(dtype="float32")
        acc.accumulate([1.0, 2.0])
        assert acc.get_sum().dtype == np.float32
