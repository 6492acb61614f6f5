"""
가중 온라인 통계량
==================

회귀 분할에서 쓰는 가중 평균/분산 누적기.

    W    = Σ w_i
    mean = Σ w_i x_i / W
    SSE  = Σ w_i (x_i - mean)²
    var  = SSE / W

점 추가/제거 모두 O(1) (West 1979 가중 업데이트).
"""

import math


class OnlineStatistics:
    """가중 평균과 분산을 점 단위로 갱신하는 누적기"""

    __slots__ = ('_weight', '_mean', '_sse')

    def __init__(self):
        self._weight = 0.0
        self._mean = 0.0
        self._sse = 0.0

    def add(self, x: float, weight: float = 1.0) -> None:
        if weight <= 0:
            return
        new_weight = self._weight + weight
        delta = x - self._mean
        r = delta * weight / new_weight
        self._mean += r
        self._sse += self._weight * delta * r
        self._weight = new_weight

    def remove(self, x: float, weight: float = 1.0) -> None:
        if weight <= 0:
            return
        new_weight = self._weight - weight
        if new_weight <= 1e-12:
            self._weight = 0.0
            self._mean = 0.0
            self._sse = 0.0
            return
        delta = x - self._mean
        r = delta * weight / new_weight
        self._mean -= r
        self._sse -= self._weight * delta * r
        self._weight = new_weight
        # 누적 오차로 아주 작은 음수가 될 수 있음
        if self._sse < 0:
            self._sse = 0.0

    @property
    def sum_of_weights(self) -> float:
        return self._weight

    @property
    def mean(self) -> float:
        if self._weight <= 0:
            return float('nan')
        return self._mean

    @property
    def sum_of_squared_error(self) -> float:
        return self._sse

    @property
    def variance(self) -> float:
        if self._weight <= 0:
            return float('nan')
        return self._sse / self._weight

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    def copy(self) -> 'OnlineStatistics':
        other = OnlineStatistics()
        other._weight = self._weight
        other._mean = self._mean
        other._sse = self._sse
        return other

    def __repr__(self) -> str:
        return (
            f"OnlineStatistics(weight={self._weight:.4g}, "
            f"mean={self.mean:.4g}, variance={self.variance:.4g})"
        )
