"""Cluster — сегментоподобный контейнер со своим аккумулятором статистик.

Каждый add/remove синхронно обновляет:
  - список членов кластера (стабильный порядок);
  - список владельцев у члена (через OwnershipKey);
  - аккумулятор кластера и, транзитивно, аккумуляторы его владельцев.

Перенос члена из A в B:
    A.remove(seg)
    B.add(seg)
Промежуточное состояние (seg ни в одном кластере) допустимо.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Optional

from src.utils.logging import get_logger

from .accumulator import FrameAccumulator
from .base import _OWNERSHIP_KEY, SegmentBase, SegmentLike
from .cursor import RewindableList
from .errors import DimensionMismatchError, OwnershipInconsistencyError

if TYPE_CHECKING:
    from .server import SegServer

logger = get_logger("segments.cluster")


class Cluster(SegmentBase):
    """Упорядоченный список членов (сегменты или кластеры) + FrameAccumulator."""

    kind = "cluster"

    def __init__(
        self,
        server: SegServer,
        entity_id: int,
        label_code: int = 0,
        string: str = "",
        source_name: str = "",
    ) -> None:
        super().__init__(server, entity_id, label_code, string, source_name)
        self._members: RewindableList[SegmentBase] = RewindableList()
        self._acc = FrameAccumulator()

    # ── Членство ────────────────────────────────

    def add(self, member: SegmentLike) -> None:
        """Добавляет член в конец списка и его вклад в статистики.

        Raises:
            OwnershipInconsistencyError: член с другого сервера, снятый с
                регистрации, сам кластер или его транзитивный владелец
            DimensionMismatchError: размерность вклада не совпадает с
                аккумулятором кластера или одного из его владельцев;
                граф при этом не меняется
        """
        self._check_member(member)
        ancestors = self.ancestor_ids()
        if member is self or member.id in ancestors:
            logger.warning("cluster_cycle_rejected", cluster_id=self.id, member_id=member.id)
            raise OwnershipInconsistencyError(
                f"adding {member.kind} {member.id} to cluster {self.id} would create a cycle"
            )

        delta = member.contribution()
        self._check_compatible(delta, ancestors)
        self._members.append(member)
        member.add_owner(_OWNERSHIP_KEY, self)
        self._apply(delta, +1)
        logger.debug(
            "cluster_member_added",
            cluster_id=self.id,
            member_id=member.id,
            member_kind=member.kind,
            count=self._members.count(),
        )

    def remove(self, member: SegmentLike) -> None:
        """Удаляет первое вхождение члена и вычитает его вклад.

        Raises:
            OwnershipInconsistencyError: если член не входит в кластер
        """
        index = self._members.index_of(member)
        if index < 0:
            logger.warning("cluster_member_missing", cluster_id=self.id, member_id=member.id)
            raise OwnershipInconsistencyError(
                f"{member.kind} {member.id} is not a member of cluster {self.id}"
            )
        self._remove_at(index)

    def remove_at(self, index: int) -> SegmentLike:
        """Удаляет член по позиции и возвращает его.

        Raises:
            IndexOutOfBoundsError: если index >= get_count()
        """
        self._members.get(index)
        return self._remove_at(index)

    def _remove_at(self, index: int) -> SegmentLike:
        member = self._members.pop(index)
        member.remove_owner(_OWNERSHIP_KEY, self)
        self._apply(member.contribution(), -1)
        logger.debug(
            "cluster_member_removed",
            cluster_id=self.id,
            member_id=member.id,
            count=self._members.count(),
        )
        return member

    def remove_all(self) -> None:
        """Удаляет всех членов (с конца, чтобы не сдвигать остальных)."""
        while self._members.count():
            self._remove_at(self._members.count() - 1)

    def contains(self, member: SegmentLike) -> bool:
        return self._members.index_of(member) >= 0

    def index_of(self, member: SegmentLike) -> int:
        return self._members.index_of(member)

    def _check_compatible(self, delta: FrameAccumulator, ancestors: set[int]) -> None:
        server = self.get_server()
        chain = [self] + [server.get_cluster_by_id(oid) for oid in sorted(ancestors)]
        for cluster in chain:
            try:
                cluster._acc.check_compatible(delta)
            except DimensionMismatchError:
                logger.warning(
                    "cluster_dimension_rejected",
                    cluster_id=self.id,
                    owner_id=cluster.id,
                    expected=cluster._acc.get_dim(),
                    actual=delta.get_dim(),
                )
                raise

    def _check_member(self, member: SegmentLike) -> None:
        server = self.get_server()
        if server.find_by_id(member.id) is not member:
            raise OwnershipInconsistencyError(
                f"{getattr(member, 'kind', 'entity')} {member.id} is not registered "
                f"on server {server.server_name!r}"
            )

    # ── Итерация ────────────────────────────────

    def rewind(self) -> None:
        """Курсор членов и курсор аннотаций — на начало."""
        self._members.rewind()
        super().rewind()

    def get(self, index: Optional[int] = None) -> Optional[SegmentLike]:
        """Член по индексу или член под курсором.

        Без индекса: член под курсором, курсор сдвигается; None в конце.
        С индексом: прямой доступ.

        Raises:
            IndexOutOfBoundsError: если index >= get_count() (index, limit)
        """
        if index is None:
            return self._members.next()
        return self._members.get(index)

    def get_count(self) -> int:
        return self._members.count()

    def __len__(self) -> int:
        return self._members.count()

    def __iter__(self) -> Iterator[SegmentLike]:
        return iter(self._members)

    def __contains__(self, member: object) -> bool:
        return self._members.index_of(member) >= 0

    # ── Статистики ──────────────────────────────

    @property
    def accumulator(self) -> FrameAccumulator:
        """Снимок статистик кластера.

        Копия: аккумулятор кластера меняется только через add/remove.
        """
        return self._acc.copy()

    def get_frame_count(self) -> int:
        """Число кадров, учтённых в аккумуляторе."""
        return self._acc.get_count()

    def contribution(self) -> FrameAccumulator:
        return self._acc.copy()

    def _apply(self, delta: FrameAccumulator, sign: int) -> None:
        """Добавляет (sign=+1) или вычитает (sign=-1) вклад и передаёт его владельцам."""
        if sign > 0:
            self._acc.add(delta)
        else:
            self._acc.subtract(delta)
        self._propagate(delta, sign)

    def __repr__(self) -> str:
        return (
            f"Cluster(id={self.id}, label_code={self.label_code}, string={self.string!r}, "
            f"members={self._members.count()}, frames={self._acc.get_count()})"
        )
