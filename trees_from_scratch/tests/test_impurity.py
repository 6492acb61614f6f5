"""
불순도 누적기 검증
"""

import numpy as np
import pytest

from trees_from_scratch import ImpurityMeasure, ImpurityScore, from_arrays
from trees_from_scratch.impurity import impurity_from_counts, measure_from_name, split_gain


ALL_MEASURES = list(ImpurityMeasure)


def _score(counts, measure):
    return ImpurityScore.from_counts(np.asarray(counts, dtype=float), measure)


def test_known_values():
    """균등 2클래스의 알려진 불순도 값"""
    assert _score([1, 1], ImpurityMeasure.GINI).score == pytest.approx(0.5)
    assert _score([1, 1], ImpurityMeasure.INFORMATION_GAIN).score == pytest.approx(1.0)
    assert _score([1, 1], ImpurityMeasure.CLASSIFICATION_ERROR).score == pytest.approx(0.5)
    assert _score([1, 1, 1, 1], ImpurityMeasure.INFORMATION_GAIN).score == pytest.approx(2.0)


@pytest.mark.parametrize("measure", ALL_MEASURES)
def test_pure_node_is_zero(measure):
    """단일 클래스면 불순도 0"""
    assert _score([0, 7.5, 0], measure).score == 0.0


@pytest.mark.parametrize("measure", ALL_MEASURES)
def test_bounds(measure):
    """불순도는 [0, 최대값] 범위이고 혼합 분포에서는 양수"""
    rng = np.random.default_rng(1)
    k = 4
    upper = np.log2(k) if measure in (
        ImpurityMeasure.INFORMATION_GAIN, ImpurityMeasure.INFORMATION_GAIN_RATIO, ImpurityMeasure.NMI
    ) else 1.0 - 1.0 / k
    for _ in range(50):
        counts = rng.uniform(0.1, 5.0, size=k)
        value = _score(counts, measure).score
        assert 0.0 < value <= upper + 1e-12, f"범위 벗어남: {value}"


def test_add_remove_inverse():
    """add_point 후 remove_point 하면 원래 상태"""
    score = _score([3.0, 1.0, 2.0], ImpurityMeasure.GINI)
    before = score.score
    score.add_point(2.5, 1)
    assert score.score != pytest.approx(before)
    score.remove_point(2.5, 1)

    assert score.score == pytest.approx(before)
    assert score.sum_of_weights == pytest.approx(6.0)
    np.testing.assert_allclose(score.counts, [3.0, 1.0, 2.0])


def test_results_normalized():
    score = ImpurityScore(3, ImpurityMeasure.GINI)
    np.testing.assert_allclose(score.results(), [1 / 3, 1 / 3, 1 / 3])
    score.add_point(1.0, 0)
    score.add_point(3.0, 2)
    np.testing.assert_allclose(score.results(), [0.25, 0.0, 0.75])


def test_copy_is_independent():
    score = _score([1.0, 1.0], ImpurityMeasure.GINI)
    other = score.copy()
    other.add_point(5.0, 0)
    assert score.sum_of_weights == pytest.approx(2.0)
    assert other.sum_of_weights == pytest.approx(7.0)


def test_from_pairs_uses_weights():
    data = from_arrays(np.zeros((3, 1)), np.array([0, 1, 1]), sample_weight=[2.0, 1.0, 1.0])
    score = ImpurityScore.from_pairs(data.as_pairs(), data.n_classes, ImpurityMeasure.GINI)
    np.testing.assert_allclose(score.counts, [2.0, 2.0])
    assert score.score == pytest.approx(0.5)


def test_gain_perfect_split():
    """완전 분할의 이득"""
    expected = {
        ImpurityMeasure.INFORMATION_GAIN: 1.0,
        ImpurityMeasure.INFORMATION_GAIN_RATIO: 1.0,
        ImpurityMeasure.NMI: 1.0,
        ImpurityMeasure.GINI: 0.5,
        ImpurityMeasure.CLASSIFICATION_ERROR: 0.5,
    }
    for measure, value in expected.items():
        parent = _score([5, 5], measure)
        gain = ImpurityScore.gain(parent, _score([5, 0], measure), _score([0, 5], measure))
        assert gain == pytest.approx(value), f"{measure.name}: {gain}"


@pytest.mark.parametrize("measure", ALL_MEASURES)
def test_gain_uninformative_split(measure):
    """부모와 같은 분포로 나누면 이득 0"""
    parent = _score([6, 6], measure)
    gain = ImpurityScore.gain(parent, _score([4, 4], measure), _score([2, 2], measure))
    assert gain == pytest.approx(0.0, abs=1e-12)


def test_gain_whole_scale():
    """결측값을 뺀 비율(whole_scale)로 자식 비율을 계산"""
    measure = ImpurityMeasure.INFORMATION_GAIN_RATIO
    left, right = _score([3, 1], measure), _score([1, 3], measure)

    # 10개 중 8개만 값이 있는 경우 = 8개 전체로 분할한 경우
    scaled = ImpurityScore.gain(_score([5, 5], measure), left, right, whole_scale=0.8)
    direct = ImpurityScore.gain(_score([4, 4], measure), left, right)
    assert scaled == pytest.approx(direct)

    unscaled = ImpurityScore.gain(_score([5, 5], measure), left, right)
    assert unscaled != pytest.approx(scaled)


def test_vectorized_matches_scalar():
    """여러 후보를 한 번에 계산해도 하나씩 계산한 값과 같음"""
    parent = np.array([10.0, 6.0, 4.0])
    left = np.array([[5.0, 1.0, 0.0], [2.0, 6.0, 1.0], [10.0, 0.0, 4.0]])
    right = parent - left
    for measure in ALL_MEASURES:
        gains = split_gain(parent, [left, right], measure)
        for j in range(len(left)):
            single = ImpurityScore.gain(
                _score(parent, measure), _score(left[j], measure), _score(right[j], measure)
            )
            assert gains[j] == pytest.approx(single)


def test_impurity_from_counts_rows():
    scores = impurity_from_counts(np.array([[1.0, 1.0], [2.0, 0.0], [0.0, 0.0]]), ImpurityMeasure.GINI)
    np.testing.assert_allclose(scores, [0.5, 0.0, 0.0])


def test_measure_from_name():
    assert measure_from_name('gini') is ImpurityMeasure.GINI
    assert measure_from_name(ImpurityMeasure.NMI) is ImpurityMeasure.NMI
    with pytest.raises(ValueError):
        measure_from_name('variance')
