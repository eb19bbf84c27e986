"""Граф сегментов и кластеров с инкрементальными статистиками кадров.

Использование:
    from src.segments import SegServer, reassign

    ss = SegServer("show_001", features=mfcc)
    a, b = ss.create_cluster(string="S0"), ss.create_cluster(string="S1")
    seg = ss.create_segment(begin=0, length=250)
    a.add(seg)
    reassign(seg, a, b)
    b.accumulator.get_mean(), b.accumulator.get_cov()

Архитектура:
    accumulator.py — FrameAccumulator: count / sum / sum_sq, ленивые mean / cov / std
    xlist.py       — XList / XLine: строки аннотаций
    cursor.py      — RewindableList: курсорный и индексный доступ
    base.py        — SegmentBase, OwnershipKey, протоколы SegmentLike / MembershipOwner
    segment.py     — Segment: диапазон кадров
    cluster.py     — Cluster: члены + аккумулятор
    server.py      — SegServer: реестр и фабрика
    graph.py       — reassign, merge_clusters, check_consistency
    errors.py      — типизированные ошибки
"""
from .accumulator import FrameAccumulator
from .base import MembershipOwner, OwnershipKey, SegmentBase, SegmentIdentity, SegmentLike
from .cluster import Cluster
from .cursor import RewindableList
from .errors import (
    DimensionMismatchError,
    IdAlreadyExistsError,
    IndexOutOfBoundsError,
    OwnershipInconsistencyError,
    SegmentsError,
    UndefinedStatisticError,
)
from .features import ArrayFeatureSource, FeatureSource
from .graph import check_consistency, merge_clusters, reassign
from .segment import Segment
from .server import SegServer
from .xlist import XLine, XList

__all__ = [
    # statistics
    "FrameAccumulator",
    # graph
    "SegServer",
    "Segment",
    "Cluster",
    "SegmentBase",
    "SegmentIdentity",
    "SegmentLike",
    "MembershipOwner",
    "OwnershipKey",
    "reassign",
    "merge_clusters",
    "check_consistency",
    # annotations / iteration
    "XList",
    "XLine",
    "RewindableList",
    # features
    "FeatureSource",
    "ArrayFeatureSource",
    # errors
    "SegmentsError",
    "IndexOutOfBoundsError",
    "UndefinedStatisticError",
    "OwnershipInconsistencyError",
    "DimensionMismatchError",
    "IdAlreadyExistsError",
]
