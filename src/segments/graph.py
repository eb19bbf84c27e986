"""Операции перераспределения членов между кластерами и проверка инвариантов.

Драйвер кластеризации переносит член из A в B двумя вызовами
(A.remove, B.add); атомарность пары не требуется.
"""
from __future__ import annotations

from collections import Counter

import numpy as np

from src.utils.logging import get_logger

from .accumulator import FrameAccumulator
from .base import SegmentLike
from .cluster import Cluster
from .errors import OwnershipInconsistencyError
from .server import SegServer

logger = get_logger("segments.graph")


def reassign(member: SegmentLike, source: Cluster, target: Cluster) -> None:
    """Переносит член из source в target."""
    source.remove(member)
    target.add(member)


def merge_clusters(target: Cluster, source: Cluster, remove_source: bool = False) -> int:
    """Переносит всех членов source в target с сохранением порядка.

    Args:
        target: Кластер-приёмник
        source: Кластер-источник (остаётся пустым)
        remove_source: Снять source с регистрации после слияния

    Returns:
        Количество перенесённых членов
    """
    if target is source:
        raise OwnershipInconsistencyError(f"cannot merge cluster {target.id} into itself")

    moved = 0
    while source.get_count():
        member = source.remove_at(0)
        target.add(member)
        moved += 1

    logger.info(
        "clusters_merged",
        target_id=target.id,
        source_id=source.id,
        moved=moved,
        frames=target.get_frame_count(),
    )
    if remove_source:
        source.destroy()
    return moved


def check_consistency(server: SegServer, rtol: float = 1e-7, atol: float = 1e-9) -> None:
    """Проверяет симметрию владельцев и согласованность аккумуляторов.

    Raises:
        OwnershipInconsistencyError: при первом найденном нарушении
    """
    expected_owners: Counter = Counter()
    for cluster in server.clusters():
        for member in cluster:
            expected_owners[(member.id, cluster.id)] += 1

    actual_owners: Counter = Counter()
    for entity in list(server.segments()) + list(server.clusters()):
        for owner_id in entity.owner_ids():
            actual_owners[(entity.id, owner_id)] += 1

    if expected_owners != actual_owners:
        diff = (expected_owners - actual_owners) + (actual_owners - expected_owners)
        member_id, cluster_id = next(iter(diff))
        raise OwnershipInconsistencyError(
            f"membership of entity {member_id} in cluster {cluster_id} is not symmetric"
        )

    for cluster in server.clusters():
        expected = FrameAccumulator()
        for member in cluster:
            expected.add(member.contribution())
        actual = cluster.accumulator
        if expected.get_count() != actual.get_count() or not (
            _close(expected.get_sum(), actual.get_sum(), rtol, atol)
            and _close(expected.get_sum_sq(), actual.get_sum_sq(), rtol, atol)
        ):
            raise OwnershipInconsistencyError(
                f"accumulator of cluster {cluster.id} differs from the sum of its members"
            )


def _close(a: np.ndarray, b: np.ndarray, rtol: float, atol: float) -> bool:
    # Пустой вектор: аккумулятор без размерности; эквивалентен нулям
    if a.size == 0:
        a = np.zeros_like(b)
    if b.size == 0:
        b = np.zeros_like(a)
    return a.shape == b.shape and bool(np.allclose(a, b, rtol=rtol, atol=atol))
