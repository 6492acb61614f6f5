"""
Impurity Score - 불순도 누적기
==============================

클래스별 가중치 합을 점 단위로 누적하고 불순도와 분할 이득을 계산합니다.

수학적 배경:
-----------
p_c = count_c / W  (W = Σ count_c)

엔트로피 (INFORMATION_GAIN, INFORMATION_GAIN_RATIO, NMI):
    H = -Σ p_c · log2(p_c)          (p_c = 0 항은 0으로 취급)

지니 (GINI):
    G = 1 - Σ p_c²

분류 오차 (CLASSIFICATION_ERROR):
    E = 1 - max_c p_c

분할 이득:
    Gain = (I(parent) - Σ (W_i / W) · I(child_i)) / SplitInfo

    SplitInfo = 1                        (일반)
    SplitInfo = -Σ (W_i/W) log2(W_i/W)   (INFORMATION_GAIN_RATIO, 0 이하이면 1)

NMI는 정규화 상호정보량 2·MI / (H(split) + H(class)) 를 이득으로 사용합니다.

Author: Trees From Scratch Project
"""

from enum import Enum
from typing import Sequence

import numpy as np


class ImpurityMeasure(Enum):
    """불순도 측정 방식"""
    INFORMATION_GAIN = 'information_gain'
    INFORMATION_GAIN_RATIO = 'information_gain_ratio'
    NMI = 'nmi'
    GINI = 'gini'
    CLASSIFICATION_ERROR = 'classification_error'


_ENTROPY_MEASURES = (
    ImpurityMeasure.INFORMATION_GAIN,
    ImpurityMeasure.INFORMATION_GAIN_RATIO,
    ImpurityMeasure.NMI,
)


def measure_from_name(name) -> ImpurityMeasure:
    """문자열 또는 enum을 ImpurityMeasure로 변환"""
    if isinstance(name, ImpurityMeasure):
        return name
    try:
        return ImpurityMeasure[str(name).upper()]
    except KeyError:
        raise ValueError(f"Unknown impurity measure: {name}") from None


def _xlogx(p: np.ndarray, log=np.log2) -> np.ndarray:
    """p·log(p), p = 0 이면 0"""
    safe = np.where(p > 0, p, 1.0)
    return np.where(p > 0, p * log(safe), 0.0)


def impurity_from_counts(counts: np.ndarray, measure: ImpurityMeasure) -> np.ndarray:
    """
    여러 누적기의 불순도를 한 번에 계산 (정렬 스윕용)

    Parameters
    ----------
    counts : ndarray of shape (n_rows, n_classes)
        각 행이 하나의 클래스별 가중치 벡터
    measure : ImpurityMeasure

    Returns
    -------
    scores : ndarray of shape (n_rows,)
    """
    counts = np.atleast_2d(np.asarray(counts, dtype=np.float64))
    totals = counts.sum(axis=1)
    scores = np.zeros(len(counts))
    valid = totals > 0
    if not np.any(valid):
        return scores

    p = counts[valid] / totals[valid, None]
    if measure in _ENTROPY_MEASURES:
        scores[valid] = -_xlogx(p).sum(axis=1)
    elif measure is ImpurityMeasure.GINI:
        scores[valid] = 1.0 - np.sum(p * p, axis=1)
    elif measure is ImpurityMeasure.CLASSIFICATION_ERROR:
        scores[valid] = 1.0 - p.max(axis=1)
    else:
        raise ValueError(f"Unknown impurity measure: {measure}")

    # 부동소수점 오차로 생기는 음수 정리
    return np.maximum(scores, 0.0)


def split_gain(parent_counts: np.ndarray, children: Sequence[np.ndarray],
               measure: ImpurityMeasure, whole_scale: float = 1.0) -> np.ndarray:
    """
    여러 후보 분할의 이득을 한 번에 계산

    Parameters
    ----------
    parent_counts : ndarray of shape (n_classes,)
        분할 전 클래스별 가중치
    children : sequence of ndarray of shape (n_candidates, n_classes)
        children[i][j] = 후보 j의 i번째 분할 결과 클래스별 가중치
    measure : ImpurityMeasure
    whole_scale : float
        결측값을 제외했을 때 parent 가중치에 곱할 비율

    Returns
    -------
    gains : ndarray of shape (n_candidates,)
    """
    parent_counts = np.asarray(parent_counts, dtype=np.float64)
    children = [np.atleast_2d(np.asarray(c, dtype=np.float64)) for c in children]
    n_candidates = len(children[0])
    parent_total = parent_counts.sum()
    total = whole_scale * parent_total
    if total <= 0:
        return np.zeros(n_candidates)

    if measure is ImpurityMeasure.NMI:
        return _normalized_mutual_information(parent_counts, children, total)

    parent_score = impurity_from_counts(parent_counts, measure)[0]
    split_score = np.zeros(n_candidates)
    split_info = np.zeros(n_candidates)
    for child in children:
        p = child.sum(axis=1) / total
        split_score += np.where(p > 0, p * impurity_from_counts(child, measure), 0.0)
        split_info -= _xlogx(p)

    gains = parent_score - split_score
    if measure is ImpurityMeasure.INFORMATION_GAIN_RATIO:
        split_info = np.where(split_info <= 0, 1.0, split_info)
        gains = gains / split_info
    return gains


def _normalized_mutual_information(parent_counts, children, total) -> np.ndarray:
    """2·MI / (H(split) + H(class))"""
    p_c = parent_counts / parent_counts.sum()
    class_entropy = -_xlogx(p_c, np.log).sum()
    log_p_c = np.log(np.where(p_c > 0, p_c, 1.0))

    mi = np.zeros(len(children[0]))
    split_entropy = np.zeros(len(children[0]))
    for child in children:
        p_s = child.sum(axis=1) / total
        split_entropy -= _xlogx(p_s, np.log)
        p_cs = child / total
        log_p_s = np.log(np.where(p_s > 0, p_s, 1.0))[:, None]
        log_p_cs = np.log(np.where(p_cs > 0, p_cs, 1.0))
        terms = np.where(p_cs > 0, p_cs * (log_p_cs - log_p_c - log_p_s), 0.0)
        mi += terms.sum(axis=1)

    denom = split_entropy + class_entropy
    safe = np.where(denom > 0, denom, 1.0)
    return np.where(denom > 0, 2.0 * mi / safe, 0.0)


class ImpurityScore:
    """
    클래스별 가중치 누적기

    Parameters
    ----------
    n_classes : int
        클래스 개수
    measure : ImpurityMeasure
        불순도 측정 방식

    Examples
    --------
    >>> score = ImpurityScore(2, ImpurityMeasure.GINI)
    >>> score.add_point(1.0, 0)
    >>> score.add_point(1.0, 1)
    >>> score.score
    0.5
    """

    __slots__ = ('_counts', '_sum_of_weights', '_measure')

    def __init__(self, n_classes: int, measure: ImpurityMeasure = ImpurityMeasure.GINI):
        if n_classes < 1:
            raise ValueError(f"n_classes는 1 이상이어야 합니다: {n_classes}")
        self._counts = np.zeros(n_classes)
        self._sum_of_weights = 0.0
        self._measure = measure_from_name(measure)

    @classmethod
    def from_pairs(cls, pairs, n_classes: int, measure: ImpurityMeasure) -> 'ImpurityScore':
        """(data point, class) 쌍 목록으로 누적기 생성"""
        score = cls(n_classes, measure)
        for pair in pairs:
            score.add_point(pair.point.weight, pair.target)
        return score

    @classmethod
    def from_counts(cls, counts: np.ndarray, measure: ImpurityMeasure) -> 'ImpurityScore':
        score = cls(len(counts), measure)
        score._counts = np.array(counts, dtype=np.float64)
        score._sum_of_weights = float(score._counts.sum())
        return score

    def add_point(self, weight: float, target_class: int) -> None:
        self._counts[target_class] += weight
        self._sum_of_weights += weight

    def remove_point(self, weight: float, target_class: int) -> None:
        self._counts[target_class] -= weight
        self._sum_of_weights -= weight

    @property
    def measure(self) -> ImpurityMeasure:
        return self._measure

    @property
    def sum_of_weights(self) -> float:
        return self._sum_of_weights

    @property
    def counts(self) -> np.ndarray:
        return self._counts.copy()

    @property
    def n_classes(self) -> int:
        return len(self._counts)

    @property
    def score(self) -> float:
        """현재 클래스 비율의 불순도 (항상 0 이상)"""
        if self._sum_of_weights <= 0:
            return 0.0
        return float(impurity_from_counts(self._counts, self._measure)[0])

    def results(self) -> np.ndarray:
        """정규화된 클래스 분포"""
        if self._sum_of_weights <= 0:
            return np.full(len(self._counts), 1.0 / len(self._counts))
        return self._counts / self._sum_of_weights

    def copy(self) -> 'ImpurityScore':
        other = ImpurityScore.__new__(ImpurityScore)
        other._counts = self._counts.copy()
        other._sum_of_weights = self._sum_of_weights
        other._measure = self._measure
        return other

    clone = copy

    @staticmethod
    def gain(parent: 'ImpurityScore', *children: 'ImpurityScore',
             whole_scale: float = 1.0) -> float:
        """
        분할 이득 계산

        Parameters
        ----------
        parent : ImpurityScore
            분할 전 전체 데이터
        *children : ImpurityScore
            분할 결과 각 부분 (가중치 0인 부분은 무시)
        whole_scale : float
            결측값을 제외했을 때 parent 가중치에 곱할 비율
        """
        if not children:
            raise ValueError("분할 결과가 하나 이상 필요합니다.")
        gains = split_gain(
            parent._counts,
            [child._counts[None, :] for child in children],
            children[0]._measure,
            whole_scale,
        )
        return float(gains[0])

    def __repr__(self) -> str:
        return (
            f"ImpurityScore(measure={self._measure.name}, "
            f"weight={self._sum_of_weights:.4g}, score={self.score:.4f})"
        )
