"""SegServer — реестр и фабрика сегментов и кластеров.

Сервер владеет сущностями (сильные ссылки), сущности ссылаются на сервер
через weakref, а друг на друга — через id. Удаление сущности сначала
разрывает все связи с владельцами, потом (для кластера) отпускает членов
и только затем снимает её с регистрации.

Использование:
    with SegServer("show_001", features=mfcc) as ss:
        seg = ss.create_segment(begin=0, length=100, string="spk1")
        clu = ss.create_cluster(string="S0")
        clu.add(seg)
        clu.accumulator.get_mean()
"""
from __future__ import annotations

from typing import Iterator, Optional, Union

import numpy as np

from src.utils.logging import get_logger

from .base import _OWNERSHIP_KEY, SegmentBase
from .cluster import Cluster
from .cursor import RewindableList
from .errors import IdAlreadyExistsError, OwnershipInconsistencyError
from .features import ArrayFeatureSource, FeatureSource
from .segment import Segment

logger = get_logger("segments.server")


class SegServer:
    """Граф членства: реестр Segment/Cluster с общим счётчиком id.

    Args:
        server_name: Имя сервера (обычно имя записи)
        features: Матрица признаков N × D или готовый FeatureSource
    """

    def __init__(
        self,
        server_name: str = "",
        features: Union[FeatureSource, np.ndarray, None] = None,
    ) -> None:
        self.server_name = server_name
        self._segments: RewindableList[Segment] = RewindableList()
        self._clusters: RewindableList[Cluster] = RewindableList()
        self._by_id: dict[int, SegmentBase] = {}
        self._next_id = 0

        self._feature_source: Optional[FeatureSource] = None
        if features is not None:
            self.set_feature_source(features)

    @property
    def feature_source(self) -> Optional[FeatureSource]:
        return self._feature_source

    def set_feature_source(self, features) -> None:
        """Подключает поток признаков (матрица N × D или FeatureSource).

        Вклад сегмента читается из текущего источника и при add, и при
        remove, поэтому источник нельзя менять, пока у сегментов есть владельцы.

        Raises:
            OwnershipInconsistencyError: если хотя бы один сегмент входит в кластер
        """
        owned = [seg.id for seg in self._segments if seg.owner_ids()]
        if owned:
            logger.warning("feature_source_locked", server=self.server_name, owned=len(owned))
            raise OwnershipInconsistencyError(
                f"cannot replace the feature source of server {self.server_name!r}: "
                f"{len(owned)} segment(s) belong to clusters"
            )
        if isinstance(features, FeatureSource):
            self._feature_source = features
        else:
            self._feature_source = ArrayFeatureSource(features)

    # ── Фабрика ─────────────────────────────────

    def _allocate_id(self, entity_id: Optional[int]) -> int:
        if entity_id is None:
            entity_id = self._next_id
        if entity_id in self._by_id:
            raise IdAlreadyExistsError(f"entity id {entity_id} already exists")
        self._next_id = max(self._next_id, entity_id + 1)
        return entity_id

    def create_segment(
        self,
        begin: int = 0,
        length: int = 0,
        label_code: int = 0,
        string: str = "",
        source_name: str = "",
        entity_id: Optional[int] = None,
    ) -> Segment:
        """Создаёт и регистрирует сегмент.

        Raises:
            IdAlreadyExistsError: если entity_id уже занят
        """
        seg = Segment(
            self,
            self._allocate_id(entity_id),
            begin=begin,
            length=length,
            label_code=label_code,
            string=string,
            source_name=source_name or self.server_name,
        )
        self._segments.append(seg)
        self._by_id[seg.id] = seg
        return seg

    def create_cluster(
        self,
        label_code: int = 0,
        string: str = "",
        source_name: str = "",
        entity_id: Optional[int] = None,
    ) -> Cluster:
        """Создаёт и регистрирует пустой кластер.

        Raises:
            IdAlreadyExistsError: если entity_id уже занят
        """
        clu = Cluster(
            self,
            self._allocate_id(entity_id),
            label_code=label_code,
            string=string,
            source_name=source_name or self.server_name,
        )
        self._clusters.append(clu)
        self._by_id[clu.id] = clu
        logger.debug("cluster_created", cluster_id=clu.id, string=string)
        return clu

    # ── Доступ ──────────────────────────────────

    def find_by_id(self, entity_id: int) -> Optional[SegmentBase]:
        return self._by_id.get(entity_id)

    def get_cluster_by_id(self, cluster_id: int) -> Cluster:
        """Разрешает обратную ссылку владельца.

        Raises:
            OwnershipInconsistencyError: если такого кластера нет
        """
        entity = self._by_id.get(cluster_id)
        if not isinstance(entity, Cluster):
            raise OwnershipInconsistencyError(
                f"owner id {cluster_id} does not resolve to a cluster"
            )
        return entity

    def get_segment(self, index: int) -> Segment:
        """Сегмент по индексу (IndexOutOfBoundsError за пределами)."""
        return self._segments.get(index)

    def get_cluster(self, index: int) -> Cluster:
        """Кластер по индексу (IndexOutOfBoundsError за пределами)."""
        return self._clusters.get(index)

    def get_segment_count(self) -> int:
        return self._segments.count()

    def get_cluster_count(self) -> int:
        return self._clusters.count()

    def segments(self) -> Iterator[Segment]:
        return iter(self._segments)

    def clusters(self) -> Iterator[Cluster]:
        return iter(self._clusters)

    # ── Удаление ────────────────────────────────

    def remove(self, entity: SegmentBase) -> None:
        """Уничтожает сущность: владельцы → члены → реестр.

        Raises:
            OwnershipInconsistencyError: если сущность не зарегистрирована здесь
        """
        if self._by_id.get(entity.id) is not entity:
            raise OwnershipInconsistencyError(
                f"{entity.kind} {entity.id} is not registered on server {self.server_name!r}"
            )
        entity.remove_all_owners(_OWNERSHIP_KEY)
        if isinstance(entity, Cluster):
            entity.remove_all()
            registry = self._clusters
        else:
            registry = self._segments
        registry.pop(registry.index_of(entity))
        del self._by_id[entity.id]
        logger.debug("entity_removed", kind=entity.kind, entity_id=entity.id)

    def remove_all_clusters(self) -> None:
        """Удаляет все кластеры; сегменты остаются без владельцев."""
        while self._clusters.count():
            self.remove(self._clusters.get(self._clusters.count() - 1))

    def clear(self) -> None:
        """Отбрасывает весь граф (отмена прохода кластеризации)."""
        segments, clusters = self._segments.count(), self._clusters.count()
        self.remove_all_clusters()
        while self._segments.count():
            self.remove(self._segments.get(self._segments.count() - 1))
        logger.info(
            "seg_server_cleared",
            server=self.server_name,
            segments=segments,
            clusters=clusters,
        )

    def __len__(self) -> int:
        return len(self._by_id)

    def __enter__(self) -> SegServer:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.clear()

    def __repr__(self) -> str:
        return (
            f"SegServer(name={self.server_name!r}, segments={self._segments.count()}, "
            f"clusters={self._clusters.count()})"
        )
