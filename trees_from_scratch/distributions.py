"""
클래스별 밀도 추정과 경계 탐색
==============================

PDF_INTERSECTIONS 수치형 분할에서 사용합니다.

1. 클래스마다 가중 가우시안 KDE (scipy.stats.gaussian_kde) 적합
2. 평균 순으로 정렬한 인접 클래스 쌍마다 두 밀도가 같아지는 지점 탐색

    f(x) = log p1(x) - log p2(x) = 0,   x ∈ [min(μ1, μ2), max(μ1, μ2)]

   scipy.optimize.brentq → 이분법 → 표준편차 가중 중점 순으로 시도합니다.
"""

import logging
import math
from typing import Tuple

import numpy as np
from scipy import optimize, stats

logger = logging.getLogger(__name__)


class KernelDensity:
    """
    가중 1차원 가우시안 KDE

    scipy의 frozen distribution과 같은 메서드 이름
    (pdf, logpdf, cdf, ppf, mean, std)을 제공합니다.

    Parameters
    ----------
    values : array-like
        관측값 (서로 다른 값이 2개 이상 필요)
    weights : array-like, optional
        관측 가중치
    """

    def __init__(self, values, weights=None):
        values = np.asarray(values, dtype=np.float64).ravel()
        if weights is None:
            weights = np.ones_like(values)
        weights = np.asarray(weights, dtype=np.float64).ravel()
        keep = weights > 0
        values, weights = values[keep], weights[keep]
        if len(np.unique(values)) < 2:
            raise ValueError("밀도 추정에는 서로 다른 값이 2개 이상 필요합니다.")

        self._kde = stats.gaussian_kde(values, weights=weights)
        self._values = values
        self._weights = weights / weights.sum()
        self._mean = float(np.dot(self._weights, values))
        self._var = float(np.dot(self._weights, (values - self._mean) ** 2))
        self._bandwidth = float(math.sqrt(self._kde.covariance[0, 0]))

    def pdf(self, x):
        return self._kde.pdf(np.atleast_1d(x))

    def logpdf(self, x):
        return self._kde.logpdf(np.atleast_1d(x))

    def cdf(self, x) -> float:
        return float(self._kde.integrate_box_1d(-np.inf, float(x)))

    def ppf(self, q: float) -> float:
        """역누적분포 (cdf의 근)"""
        if not 0 < q < 1:
            raise ValueError(f"q는 (0, 1) 범위여야 합니다: {q}")
        span = 10 * (self.std() + self._bandwidth)
        lo, hi = self._values.min() - span, self._values.max() + span
        return float(optimize.brentq(lambda x: self.cdf(x) - q, lo, hi))

    def mean(self) -> float:
        return self._mean

    def std(self) -> float:
        return math.sqrt(self._var)

    def __repr__(self) -> str:
        return f"KernelDensity(n={len(self._values)}, mean={self._mean:.4g}, std={self.std():.4g})"


def _logpdf_difference(d1, d2):
    def f(x):
        return float(np.squeeze(d1.logpdf(x))) - float(np.squeeze(d2.logpdf(x)))
    return f


def _bisect(f, lo: float, hi: float, max_steps: int) -> float:
    f_lo = f(lo)
    for _ in range(max_steps):
        mid = 0.5 * (lo + hi)
        f_mid = f(mid)
        if f_mid == 0 or not math.isfinite(f_mid):
            return mid
        if (f_mid > 0) == (f_lo > 0):
            lo, f_lo = mid, f_mid
        else:
            hi = mid
    return 0.5 * (lo + hi)


def threshold_split(d1, d2, max_steps: int = 100) -> Tuple[int, float]:
    """
    두 밀도가 같아지는 경계 탐색

    Parameters
    ----------
    d1, d2 : distribution
        logpdf(x), mean(), std() 를 가진 분포
        (KernelDensity 또는 scipy.stats frozen distribution)
    max_steps : int
        근 탐색 최대 반복 수

    Returns
    -------
    owner : int
        경계 왼쪽을 차지하는 분포 (d1이면 0, d2이면 1)
    boundary : float
        경계값
    """
    m1, m2 = float(d1.mean()), float(d2.mean())
    owner = 0 if m1 <= m2 else 1
    lo, hi = min(m1, m2), max(m1, m2)
    if hi - lo <= 0:
        return owner, lo

    f = _logpdf_difference(d1, d2)
    f_lo, f_hi = f(lo), f(hi)
    if math.isfinite(f_lo) and math.isfinite(f_hi) and f_lo * f_hi <= 0:
        try:
            return owner, float(optimize.brentq(f, lo, hi, maxiter=max_steps))
        except (RuntimeError, ValueError):
            logger.debug("brentq 실패, 이분법으로 재시도 (구간 [%g, %g])", lo, hi)
            return owner, _bisect(f, lo, hi, max_steps)

    # 부호 변화가 없으면 표준편차 가중 중점
    s1, s2 = float(d1.std()), float(d2.std())
    if s1 + s2 <= 0:
        return owner, 0.5 * (m1 + m2)
    return owner, (m1 * s2 + m2 * s1) / (s1 + s2)
