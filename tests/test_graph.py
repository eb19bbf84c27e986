"""Тесты для src/segments/graph.py — перенос, слияние, проверка инвариантов."""
import numpy as np
import pytest

from src.segments import check_consistency, merge_clusters, reassign
from src.segments.errors import OwnershipInconsistencyError


@pytest.fixture
def populated(server):
    """Кластер A с тремя сегментами и пустой кластер B."""
    segs = [server.create_segment(begin=i * 2, length=2) for i in range(3)]
    a, b = server.create_cluster(string="A"), server.create_cluster(string="B")
    for seg in segs:
        a.add(seg)
    return segs, a, b


def test_reassign(populated, server):
    segs, a, b = populated
    reassign(segs[0], a, b)

    assert list(a) == segs[1:]
    assert list(b) == [segs[0]]
    np.testing.assert_allclose(b.accumulator.get_mean(), [2.0, 3.0])
    check_consistency(server)


def test_reassign_missing_member_aborts(populated):
    segs, a, b = populated
    with pytest.raises(OwnershipInconsistencyError):
        reassign(segs[0], b, a)
    # add не выполнялся
    assert a.get_count() == 3


def test_merge_clusters(populated, server):
    segs, a, b = populated
    c = server.create_cluster(string="C")
    c.add(server.create_segment(begin=0, length=6))

    moved = merge_clusters(c, a)

    assert moved == 3
    assert a.get_count() == 0
    assert list(c)[1:] == segs
    assert c.get_frame_count() == 12
    np.testing.assert_allclose(c.accumulator.get_mean(), [6.0, 7.0])
    check_consistency(server)


def test_merge_and_remove_source(populated, server):
    _, a, b = populated
    merge_clusters(b, a, remove_source=True)
    assert server.find_by_id(a.id) is None
    assert server.get_cluster_count() == 1


def test_merge_into_itself_rejected(populated):
    _, a, _ = populated
    with pytest.raises(OwnershipInconsistencyError):
        merge_clusters(a, a)


def test_check_consistency_detects_corrupted_accumulator(populated, server):
    _, a, _ = populated
    a._acc.accumulate([100.0, 100.0])
    with pytest.raises(OwnershipInconsistencyError, match="accumulator"):
        check_consistency(server)


def test_check_consistency_on_empty_graph(server):
    server.create_cluster()
    server.create_segment()
    check_consistency(server)
