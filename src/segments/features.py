"""Источник векторов признаков для сегментов.

Извлечение признаков (MFCC и т.п.) происходит вне этого пакета; здесь —
только доступ к уже посчитанной матрице кадров N × D.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

from .errors import DimensionMismatchError, IndexOutOfBoundsError


@runtime_checkable
class FeatureSource(Protocol):
    """Всё, что умеет отдавать кадры [begin, begin + length)."""

    @property
    def dim(self) -> int: ...

    def get_frame_count(self) -> int: ...

    def get_frames(self, begin: int, length: int) -> np.ndarray: ...


class ArrayFeatureSource:
    """FeatureSource поверх numpy-матрицы (frames × dim)."""

    def __init__(self, frames) -> None:
        arr = np.asarray(frames, dtype=np.float64)
        if arr.ndim != 2:
            raise DimensionMismatchError(
                f"feature matrix must be 2-D, got shape {arr.shape}",
                expected=2,
                actual=arr.ndim,
            )
        arr.setflags(write=False)
        self._frames = arr

    @property
    def dim(self) -> int:
        return int(self._frames.shape[1])

    def get_frame_count(self) -> int:
        return int(self._frames.shape[0])

    def get_frames(self, begin: int, length: int) -> np.ndarray:
        """Кадры сегмента (read-only срез).

        Raises:
            IndexOutOfBoundsError: если сегмент выходит за конец потока
        """
        end = begin + length
        if begin < 0 or length < 0 or end > self.get_frame_count():
            raise IndexOutOfBoundsError(
                f"frame range [{begin}, {end}) outside feature stream",
                index=end,
                limit=self.get_frame_count(),
            )
        return self._frames[begin:end]

    def __repr__(self) -> str:
        return f"ArrayFeatureSource(frames={self.get_frame_count()}, dim={self.dim})"
