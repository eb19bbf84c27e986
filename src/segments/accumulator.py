"""FrameAccumulator — инкрементальные достаточные статистики кадров.

Хранит count, sum и sum_sq (поэлементный квадрат) и лениво выводит из них
среднее, диагональную ковариацию и стандартное отклонение.

Использование:
    acc = FrameAccumulator()
    acc.accumulate(np.array([1.0, 2.0]))
    acc.accumulate(np.array([3.0, 4.0]))
    acc.get_mean()   # array([2., 3.])
    acc.get_cov()    # array([1., 1.])

Производные векторы пересчитываются только если с последнего вычисления
был хотя бы один изменяющий вызов (флаг _computed).
"""
from __future__ import annotations

from typing import Optional

import numpy as np

from src.utils.config import settings
from src.utils.logging import get_logger

from .errors import DimensionMismatchError, UndefinedStatisticError

logger = get_logger("segments.accumulator")


class FrameAccumulator:
    """Накопитель count / sum / sum_sq с кэшем mean / cov / std.

    Args:
        dim: Размерность D. Если None — фиксируется первым accumulate/add.
        dtype: dtype хранилища (по умолчанию settings.STATS_DTYPE)
    """

    def __init__(self, dim: Optional[int] = None, dtype: Optional[str] = None):
        self._dtype = np.dtype(dtype or settings.STATS_DTYPE)
        self._count = 0
        self._sum: Optional[np.ndarray] = None
        self._sum_sq: Optional[np.ndarray] = None

        self._mean: Optional[np.ndarray] = None
        self._cov: Optional[np.ndarray] = None
        self._std: Optional[np.ndarray] = None
        self._computed = False

        if dim is not None:
            self._allocate(dim)

    # ── Размерность ─────────────────────────────

    def _allocate(self, dim: int) -> None:
        self._sum = np.zeros(dim, dtype=self._dtype)
        self._sum_sq = np.zeros(dim, dtype=self._dtype)

    def get_dim(self) -> Optional[int]:
        """Размерность D или None, если она ещё не зафиксирована."""
        return None if self._sum is None else int(self._sum.shape[0])

    def _check_dim(self, dim: int) -> None:
        if self._sum is None:
            self._allocate(dim)
        elif dim != self._sum.shape[0]:
            raise DimensionMismatchError(
                f"vector dimension {dim} != accumulator dimension {self._sum.shape[0]}",
                expected=int(self._sum.shape[0]),
                actual=dim,
            )

    def check_compatible(self, other: FrameAccumulator) -> None:
        """Проверяет, что add(other) / subtract(other) пройдут по размерности.

        Ничего не меняет; незафиксированная размерность совместима с любой.

        Raises:
            DimensionMismatchError: если обе размерности заданы и различаются
        """
        dim, other_dim = self.get_dim(), other.get_dim()
        if dim is not None and other_dim is not None and dim != other_dim:
            raise DimensionMismatchError(
                f"accumulator dimension {other_dim} != accumulator dimension {dim}",
                expected=dim,
                actual=other_dim,
            )

    def _as_frame(self, v) -> np.ndarray:
        arr = np.asarray(v, dtype=self._dtype)
        if arr.ndim != 1:
            raise DimensionMismatchError(
                f"feature vector must be 1-D, got shape {arr.shape}",
                expected=1,
                actual=arr.ndim,
            )
        self._check_dim(arr.shape[0])
        return arr

    def _as_frames(self, m) -> np.ndarray:
        arr = np.asarray(m, dtype=self._dtype)
        if arr.ndim != 2:
            raise DimensionMismatchError(
                f"frame matrix must be 2-D, got shape {arr.shape}",
                expected=2,
                actual=arr.ndim,
            )
        self._check_dim(arr.shape[1])
        return arr

    # ── Изменяющие операции ─────────────────────

    def accumulate(self, v) -> None:
        """Добавляет один вектор признаков: n += 1, sum += v, sum_sq += v*v."""
        frame = self._as_frame(v)
        self._count += 1
        self._sum += frame
        self._sum_sq += frame * frame
        self._computed = False

    def deaccumulate(self, v) -> None:
        """Удаляет ранее добавленный вектор.

        Не проверяет, что v действительно был добавлен: вызов с «чужим»
        вектором молча портит статистики.
        """
        frame = self._as_frame(v)
        self._count -= 1
        self._sum -= frame
        self._sum_sq -= frame * frame
        self._computed = False
        self._warn_if_negative()

    def accumulate_frames(self, m) -> None:
        """Добавляет все строки матрицы (N × D)."""
        frames = self._as_frames(m)
        self._count += frames.shape[0]
        self._sum += frames.sum(axis=0)
        self._sum_sq += (frames * frames).sum(axis=0)
        self._computed = False

    def deaccumulate_frames(self, m) -> None:
        """Удаляет все строки матрицы (N × D), см. deaccumulate."""
        frames = self._as_frames(m)
        self._count -= frames.shape[0]
        self._sum -= frames.sum(axis=0)
        self._sum_sq -= (frames * frames).sum(axis=0)
        self._computed = False
        self._warn_if_negative()

    def add(self, other: FrameAccumulator) -> None:
        """Сливает сырые суммы другого аккумулятора (O(D), без пересчёта кадров)."""
        if other._sum is None:
            return
        self._check_dim(int(other._sum.shape[0]))
        self._count += other._count
        self._sum += other._sum
        self._sum_sq += other._sum_sq
        self._computed = False

    def subtract(self, other: FrameAccumulator) -> None:
        """Обратная к add операция."""
        if other._sum is None:
            return
        self._check_dim(int(other._sum.shape[0]))
        self._count -= other._count
        self._sum -= other._sum
        self._sum_sq -= other._sum_sq
        self._computed = False
        self._warn_if_negative()

    def reset(self) -> None:
        """Обнуляет суммы, размерность сохраняется."""
        self._count = 0
        if self._sum is not None:
            self._sum.fill(0.0)
            self._sum_sq.fill(0.0)
        self._computed = False

    def copy(self) -> FrameAccumulator:
        """Независимая копия (кэш не копируется)."""
        clone = FrameAccumulator(dtype=self._dtype.name)
        clone._count = self._count
        if self._sum is not None:
            clone._sum = self._sum.copy()
            clone._sum_sq = self._sum_sq.copy()
        return clone

    def _warn_if_negative(self) -> None:
        if self._count < 0:
            logger.warning("accumulator_negative_count", count=self._count)

    # ── Сырые суммы ─────────────────────────────

    def get_count(self) -> int:
        return self._count

    def get_sum(self) -> np.ndarray:
        """Копия вектора sum (нули, если размерность не зафиксирована)."""
        return self._raw(self._sum)

    def get_sum_sq(self) -> np.ndarray:
        """Копия вектора sum_sq."""
        return self._raw(self._sum_sq)

    def _raw(self, vect: Optional[np.ndarray]) -> np.ndarray:
        if vect is None:
            return np.zeros(0, dtype=self._dtype)
        return vect.copy()

    # ── Производные статистики ──────────────────

    def _compute_all(self) -> None:
        if self._computed:
            return
        if self._count == 0 or self._sum is None:
            raise UndefinedStatisticError(
                f"statistics are undefined for count={self._count}"
            )
        mean = self._sum / self._count
        cov = self._sum_sq / self._count - mean * mean
        # Сокращение в плавающей точке даёт небольшие отрицательные значения
        np.maximum(cov, settings.STATS_VARIANCE_FLOOR, out=cov)

        self._mean = mean
        self._cov = cov
        self._std = np.sqrt(cov)
        for vect in (self._mean, self._cov, self._std):
            vect.setflags(write=False)
        self._computed = True

    def get_mean(self) -> np.ndarray:
        """Среднее sum / n (read-only массив).

        Raises:
            UndefinedStatisticError: если n == 0
        """
        self._compute_all()
        return self._mean

    def get_cov(self) -> np.ndarray:
        """Диагональная ковариация sum_sq / n - mean², не меньше нижней границы."""
        self._compute_all()
        return self._cov

    def get_std(self) -> np.ndarray:
        """Стандартное отклонение: sqrt(cov)."""
        self._compute_all()
        return self._std

    def __repr__(self) -> str:
        return f"FrameAccumulator(count={self._count}, dim={self.get_dim()})"
