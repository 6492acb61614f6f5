"""
가중 온라인 통계량 검증
"""

import numpy as np
import pytest

from trees_from_scratch import OnlineStatistics


def test_matches_numpy_weighted():
    rng = np.random.default_rng(0)
    x = rng.normal(2.0, 3.0, size=200)
    w = rng.uniform(0.1, 2.0, size=200)

    stats = OnlineStatistics()
    for xi, wi in zip(x, w):
        stats.add(xi, wi)

    mean = np.average(x, weights=w)
    var = np.average((x - mean) ** 2, weights=w)
    assert stats.sum_of_weights == pytest.approx(w.sum())
    assert stats.mean == pytest.approx(mean)
    assert stats.variance == pytest.approx(var)
    assert stats.std == pytest.approx(np.sqrt(var))
    assert stats.sum_of_squared_error == pytest.approx(var * w.sum())


def test_remove_is_inverse_of_add():
    """점을 제거하면 그 점 없이 누적한 것과 같음"""
    values = [1.0, 4.0, 2.0, 8.0, 5.0]
    stats = OnlineStatistics()
    for v in values:
        stats.add(v, 2.0)
    stats.remove(8.0, 2.0)

    expected = OnlineStatistics()
    for v in [1.0, 4.0, 2.0, 5.0]:
        expected.add(v, 2.0)

    assert stats.mean == pytest.approx(expected.mean)
    assert stats.variance == pytest.approx(expected.variance)
    assert stats.sum_of_weights == pytest.approx(8.0)


def test_remove_everything_resets():
    stats = OnlineStatistics()
    stats.add(3.0)
    stats.remove(3.0)
    assert stats.sum_of_weights == 0.0
    assert np.isnan(stats.mean)


def test_copy_is_independent():
    stats = OnlineStatistics()
    stats.add(1.0)
    stats.add(3.0)
    other = stats.copy()
    other.add(100.0)
    assert stats.mean == pytest.approx(2.0)
    assert stats.variance == pytest.approx(1.0)
    assert other.mean > 30
