"""Segment — листовой размеченный участок аудио [begin, begin + length)."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import numpy as np

from src.utils.logging import get_logger

from .accumulator import FrameAccumulator
from .base import SegmentBase
from .errors import IndexOutOfBoundsError

if TYPE_CHECKING:
    from .server import SegServer

logger = get_logger("segments.segment")


class Segment(SegmentBase):
    """Размеченный диапазон кадров.

    Вклад сегмента в кластер — его кадры, накопленные по одному.
    Если сегмент уже принадлежит кластерам, смена begin/length
    пересчитывает их аккумуляторы.
    """

    kind = "segment"

    def __init__(
        self,
        server: SegServer,
        entity_id: int,
        begin: int = 0,
        length: int = 0,
        label_code: int = 0,
        string: str = "",
        source_name: str = "",
    ) -> None:
        super().__init__(server, entity_id, label_code, string, source_name)
        self._begin = int(begin)
        self._length = int(length)

    # ── Диапазон кадров ─────────────────────────

    @property
    def begin(self) -> int:
        return self._begin

    @property
    def length(self) -> int:
        return self._length

    @property
    def end(self) -> int:
        return self._begin + self._length

    def set_begin(self, begin: int) -> None:
        self._reframe(int(begin), self._length)

    def set_length(self, length: int) -> None:
        self._reframe(self._begin, int(length))

    def _reframe(self, begin: int, length: int) -> None:
        if not self._owner_ids:
            self._begin, self._length = begin, length
            return
        old_span = (self._begin, self._length)
        old = self.contribution()
        self._begin, self._length = begin, length
        try:
            new = self.contribution()
        except IndexOutOfBoundsError:
            # Новый диапазон вне потока признаков: владельцы не тронуты
            self._begin, self._length = old_span
            raise
        self._propagate(old, -1)
        self._propagate(new, +1)
        logger.debug("segment_reframed", segment_id=self.id, begin=begin, length=length)

    # ── Признаки ────────────────────────────────

    def frames(self) -> Optional[np.ndarray]:
        """Кадры сегмента из источника признаков сервера (None без источника)."""
        source = self.get_server().feature_source
        if source is None:
            return None
        return source.get_frames(self._begin, self._length)

    def contribution(self) -> FrameAccumulator:
        acc = FrameAccumulator()
        frames = self.frames()
        if frames is not None and frames.shape[0] > 0:
            acc.accumulate_frames(frames)
        return acc

    def __repr__(self) -> str:
        return (
            f"Segment(id={self.id}, begin={self._begin}, length={self._length}, "
            f"label_code={self.label_code}, string={self.string!r})"
        )
