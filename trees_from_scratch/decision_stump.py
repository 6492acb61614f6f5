"""
Decision Stump - 단일 분할 학습기
=================================

하나의 속성으로 데이터를 여러 경로로 나누는 1단 결정 트리.
DecisionTree의 각 노드가 이 스텀프를 하나씩 학습합니다.

분류 분할 기준:
--------------
후보 속성마다 분할을 만들고 ImpurityScore.gain이 가장 큰 것을 선택

    범주형: 범주마다 하나의 경로 (fan-out) 또는 최적 이진 그룹
    수치형: BINARY_BEST_GAIN  - 정렬 후 좌/우 누적 스윕, 임계값은 인접 값의 중점
            PDF_INTERSECTIONS - 클래스별 KDE의 교차점을 경계로 여러 구간 생성

회귀 분할 기준:
--------------
가중 제곱오차 합(SSE) 감소량 최대화

    SSE = Σ w_i (y_i - ȳ)²     (누적합은 부모 가중 평균을 뺀 타겟으로 계산)
    Reduction = SSE(parent) - Σ_k SSE(part_k)

결측값:
------
점수 계산에서는 제외하고, 분할 후 각 경로에 가중치 비율만큼 나눠 넣습니다.

    w_i' = w_i · (W_path / W_total)   (w_i' ≤ 1e-13 이면 버림)

Author: Trees From Scratch Project
"""

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from .data import CategoricalData, DataPoint, DataPointPair
from .distributions import KernelDensity, threshold_split
from .exceptions import NotFittedError
from .impurity import ImpurityMeasure, impurity_from_counts, measure_from_name, split_gain

logger = logging.getLogger(__name__)

GAIN_EPSILON = 1e-9
MISSING_WEIGHT_EPSILON = 1e-13
VALUE_GAP_EPSILON = 1e-14

_LEAF = 'leaf'
_NUMERIC = 'numeric'
_CATEGORICAL = 'categorical'
_CATEGORICAL_BINARY = 'categorical_binary'


class NumericHandling(Enum):
    """수치형 속성 분할 방식"""
    PDF_INTERSECTIONS = 'pdf_intersections'
    BINARY_BEST_GAIN = 'binary_best_gain'


@dataclass
class _Candidate:
    """한 속성에 대한 분할 후보"""
    gain: float
    feature: int
    kind: str
    parts: List[List[DataPointPair]]
    missing: List[DataPointPair]
    path_weights: np.ndarray
    boundaries: List[float] = field(default_factory=list)
    left_categories: Optional[frozenset] = None
    means: Optional[np.ndarray] = None


def distribute_missing(parts: List[List[DataPointPair]], fractions: Sequence[float],
                       missing: Iterable[DataPointPair]) -> None:
    """결측값을 가진 쌍을 각 경로에 비율만큼 가중치를 줄여 추가"""
    for pair in missing:
        for i, frac in enumerate(fractions):
            new_weight = frac * pair.weight
            # NaN 비율도 여기서 걸러짐
            if not new_weight > MISSING_WEIGHT_EPSILON:
                continue
            parts[i].append(DataPointPair(pair.point.with_weight(new_weight), pair.target))


def _last_argmax(values: np.ndarray) -> int:
    return len(values) - 1 - int(np.argmax(values[::-1]))


class DecisionStump:
    """
    단일 분할 결정 스텀프 (분류 + 회귀)

    Parameters
    ----------
    gain_method : ImpurityMeasure, default=INFORMATION_GAIN_RATIO
        분류 분할 이득 측정 방식

    numeric_handling : NumericHandling, default=BINARY_BEST_GAIN
        수치형 속성 분할 방식 (회귀는 항상 이진 분할)

    min_result_split_size : int, default=10
        분할 결과 한쪽에 있어야 하는 최소 포인트 수 (> 1)

    remove_continuous_attributes : bool, default=False
        수치형 속성으로 분할한 뒤 자식 후보에서 제거할지 여부

    binary_categorical_split : bool, default=False
        범주형 속성을 범주별 fan-out 대신 최적 이진 그룹으로 분할

    predicting : CategoricalData or int, optional
        분류 대상 클래스 정보. split_c 전에 필요

    Attributes
    ----------
    splitting_attribute : int
        선택된 통합 피처 인덱스 (리프면 -1)

    number_of_paths : int
        경로 수

    path_ratio : ndarray
        경로별 학습 가중치 비율 (결측값 예측에 사용)

    Examples
    --------
    >>> stump = DecisionStump(min_result_split_size=2)
    >>> stump.train_c(dataset)
    >>> stump.classify(dataset.get_data_point(0))
    """

    def __init__(
        self,
        gain_method: ImpurityMeasure = ImpurityMeasure.INFORMATION_GAIN_RATIO,
        numeric_handling: NumericHandling = NumericHandling.BINARY_BEST_GAIN,
        min_result_split_size: int = 10,
        remove_continuous_attributes: bool = False,
        binary_categorical_split: bool = False,
        predicting: Optional[Union[CategoricalData, int]] = None
    ):
        self.gain_method = gain_method
        self.numeric_handling = numeric_handling
        self.min_result_split_size = min_result_split_size
        self.remove_continuous_attributes = remove_continuous_attributes
        self.binary_categorical_split = binary_categorical_split
        self.predicting = predicting

        # 학습 후 설정되는 상태
        self._task: Optional[str] = None
        self._kind: str = _LEAF
        self._splitting_attribute = -1
        self._n_numeric = 0
        self._category_data = ()
        self._n_paths = 0
        self._boundaries: List[float] = []
        self._left_categories: Optional[frozenset] = None
        self._results: List[np.ndarray] = []
        self._regression_results = np.zeros(0)
        self._path_ratio = np.zeros(0)

    # ------------------------------------------------------------------
    # 설정값
    # ------------------------------------------------------------------

    @property
    def gain_method(self) -> ImpurityMeasure:
        return self._gain_method

    @gain_method.setter
    def gain_method(self, value):
        self._gain_method = measure_from_name(value)

    @property
    def numeric_handling(self) -> NumericHandling:
        return self._numeric_handling

    @numeric_handling.setter
    def numeric_handling(self, value):
        if isinstance(value, str):
            try:
                value = NumericHandling[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown numeric handling: {value}") from None
        if not isinstance(value, NumericHandling):
            raise ValueError(f"Unknown numeric handling: {value}")
        self._numeric_handling = value

    @property
    def min_result_split_size(self) -> int:
        return self._min_result_split_size

    @min_result_split_size.setter
    def min_result_split_size(self, value):
        if int(value) != value or value <= 1:
            raise ValueError(f"min_result_split_size는 1보다 큰 정수여야 합니다: {value}")
        self._min_result_split_size = int(value)

    @property
    def remove_continuous_attributes(self) -> bool:
        return self._remove_continuous_attributes

    @remove_continuous_attributes.setter
    def remove_continuous_attributes(self, value):
        self._remove_continuous_attributes = bool(value)

    @property
    def binary_categorical_split(self) -> bool:
        return self._binary_categorical_split

    @binary_categorical_split.setter
    def binary_categorical_split(self, value):
        self._binary_categorical_split = bool(value)

    @property
    def predicting(self) -> Optional[CategoricalData]:
        return self._predicting

    @predicting.setter
    def predicting(self, value):
        if value is not None and not isinstance(value, CategoricalData):
            value = CategoricalData(int(value), name='target')
        self._predicting = value

    # ------------------------------------------------------------------
    # 학습 결과 조회
    # ------------------------------------------------------------------

    @property
    def splitting_attribute(self) -> int:
        return self._splitting_attribute

    @property
    def number_of_paths(self) -> int:
        return self._n_paths

    @property
    def path_ratio(self) -> np.ndarray:
        return self._path_ratio.copy()

    @property
    def boundaries(self) -> List[float]:
        return list(self._boundaries)

    @property
    def left_categories(self) -> Optional[frozenset]:
        return self._left_categories

    def is_leaf(self) -> bool:
        return self._kind == _LEAF

    def result(self, i: int) -> Union[np.ndarray, float]:
        """i번째 경로의 예측값 (분류: 확률 벡터, 회귀: 평균)"""
        if self._task is None:
            raise NotFittedError("스텀프가 학습되지 않았습니다.")
        if not 0 <= i < self._n_paths:
            raise IndexError(f"잘못된 경로 번호입니다: {i}")
        if self._task == 'classification':
            return self._results[i].copy()
        return float(self._regression_results[i])

    def which_path(self, point: DataPoint) -> int:
        """
        데이터 포인트가 향할 경로 번호

        Returns
        -------
        path : int
            결측값이거나 학습 때 보지 못한 범주면 -1
        """
        if self._task is None:
            raise NotFittedError("스텀프가 학습되지 않았습니다.")
        if self._kind == _LEAF:
            return 0

        f = self._splitting_attribute
        if self._kind == _NUMERIC:
            value = point.numeric[f]
            if np.isnan(value):
                return -1
            return int(np.searchsorted(self._boundaries, value, side='left'))

        value = int(point.categorical[f - self._n_numeric])
        if value < 0:
            return -1
        if self._kind == _CATEGORICAL_BINARY:
            return 0 if value in self._left_categories else 1
        return value if value < self._n_paths else -1

    def classify(self, point: DataPoint) -> np.ndarray:
        """클래스 확률 벡터. 결측값이면 경로 비율로 평균"""
        if self._task != 'classification':
            raise NotFittedError("스텀프가 분류용으로 학습되지 않았습니다.")
        path = self.which_path(point)
        if path >= 0:
            return self._results[path].copy()
        mixed = np.zeros_like(self._results[0])
        for ratio, res in zip(self._path_ratio, self._results):
            mixed += ratio * res
        total = mixed.sum()
        return mixed / total if total > 0 else np.full_like(mixed, 1.0 / len(mixed))

    def regress(self, point: DataPoint) -> float:
        if self._task != 'regression':
            raise NotFittedError("스텀프가 회귀용으로 학습되지 않았습니다.")
        path = self.which_path(point)
        if path >= 0:
            return float(self._regression_results[path])
        return float(np.dot(self._path_ratio, self._regression_results) / self._path_ratio.sum())

    def child_options(self, options: Iterable[int]) -> frozenset:
        """
        자식 노드가 사용할 후보 속성 집합

        범주 fan-out 으로 분할한 속성은 제거,
        remove_continuous_attributes 이면 수치형 속성도 제거합니다.
        """
        options = frozenset(options)
        if self._kind == _CATEGORICAL:
            return options - {self._splitting_attribute}
        if self._kind == _NUMERIC and self._remove_continuous_attributes:
            return options - {self._splitting_attribute}
        return options

    def clone(self) -> 'DecisionStump':
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # 단독 학습
    # ------------------------------------------------------------------

    def train_c(self, dataset, executor=None) -> 'DecisionStump':
        """ClassificationDataSet으로 분류 스텀프 학습"""
        if self._predicting is None:
            self.predicting = dataset.predicting
        self.split_c(dataset.as_pairs(), range(dataset.num_features), executor)
        return self

    def train(self, dataset, executor=None) -> 'DecisionStump':
        """RegressionDataSet으로 회귀 스텀프 학습"""
        self.split_r(dataset.as_pairs(), range(dataset.num_features), executor)
        return self

    # ------------------------------------------------------------------
    # 분류 분할
    # ------------------------------------------------------------------

    def split_c(self, pairs: Sequence[DataPointPair], options: Iterable[int],
                executor=None) -> List[List[DataPointPair]]:
        """
        분류 데이터를 가장 좋은 속성으로 분할

        Parameters
        ----------
        pairs : sequence of DataPointPair
            (포인트, 클래스 인덱스) 쌍
        options : iterable of int
            분할 후보 속성 (통합 피처 인덱스)
        executor : concurrent.futures.Executor, optional
            주어지면 속성별 평가를 병렬로 수행

        Returns
        -------
        parts : list of list of DataPointPair
            경로별 데이터 (결측값 포함)
        """
        if self._predicting is None:
            raise RuntimeError("predicting이 설정되지 않았습니다.")
        pairs = list(pairs)
        if not pairs:
            raise ValueError("분할할 데이터가 없습니다.")

        self._prepare(pairs, 'classification')
        n_classes = self._predicting.n_categories
        targets = np.fromiter((p.target for p in pairs), dtype=np.int64, count=len(pairs))
        weights = np.fromiter((p.weight for p in pairs), dtype=np.float64, count=len(pairs))
        parent_counts = np.bincount(targets, weights=weights, minlength=n_classes)
        parent_score = impurity_from_counts(parent_counts, self._gain_method)[0]

        if parent_score == 0.0 or len(pairs) < 2 * self._min_result_split_size:
            self._set_leaf_c(parent_counts)
            return [pairs]

        def evaluate(feature):
            if feature >= self._n_numeric:
                return self._categorical_candidate_c(feature, pairs, targets, weights, parent_counts)
            if self._numeric_handling is NumericHandling.PDF_INTERSECTIONS:
                return self._pdf_candidate_c(feature, pairs, targets, weights, parent_counts)
            return self._numeric_candidate_c(feature, pairs, targets, weights, parent_counts)

        best = self._select(self._evaluate(options, evaluate, executor))
        if best is None or best.gain <= GAIN_EPSILON:
            self._set_leaf_c(parent_counts)
            return [pairs]

        parts = self._apply(best)
        self._results = []
        for part in parts:
            if not part:
                self._results.append(parent_counts / parent_counts.sum())
                continue
            counts = np.zeros(n_classes)
            for pair in part:
                counts[pair.target] += pair.weight
            self._results.append(counts / counts.sum())

        logger.debug(
            "분류 분할: feature=%d, kind=%s, paths=%d, gain=%.6f",
            best.feature, best.kind, self._n_paths, best.gain,
        )
        return parts

    def _set_leaf_c(self, parent_counts: np.ndarray) -> None:
        self._kind = _LEAF
        self._splitting_attribute = -1
        self._n_paths = 1
        self._boundaries = []
        self._left_categories = None
        total = parent_counts.sum()
        if total > 0:
            self._results = [parent_counts / total]
        else:
            self._results = [np.full(len(parent_counts), 1.0 / len(parent_counts))]
        self._path_ratio = np.ones(1)

    def _categorical_candidate_c(self, feature, pairs, targets, weights, parent_counts):
        values = self._categorical_values(feature, pairs)
        present = values >= 0
        n_cat = self._category_count(feature, values)
        n_classes = len(parent_counts)

        counts = np.zeros((n_cat, n_classes))
        np.add.at(counts, (values[present], targets[present]), weights[present])
        seen = np.bincount(values[present], minlength=n_cat) > 0
        if seen.sum() <= 1:
            return None
        whole_scale = weights[present].sum() / weights.sum()

        if self._binary_categorical_split and n_cat > 2:
            # 부모의 다수 클래스 비율로 범주를 정렬한 뒤 접두 그룹을 스윕
            used = np.flatnonzero(seen)
            major = int(np.argmax(parent_counts))
            totals = counts[used].sum(axis=1)
            ratio = np.where(totals > 0, counts[used, major] / np.where(totals > 0, totals, 1.0), 0.0)
            order = used[np.argsort(ratio, kind='stable')]
            left = np.cumsum(counts[order], axis=0)[:-1]
            right = np.maximum(counts.sum(axis=0) - left, 0.0)
            gains = split_gain(parent_counts, [left, right], self._gain_method, whole_scale)
            best = int(np.argmax(gains))
            left_set = frozenset(int(c) for c in order[:best + 1])
            return self._binary_categorical_candidate(
                feature, pairs, values, gains[best], left_set,
            )

        gain = split_gain(
            parent_counts, [counts[c][None, :] for c in range(n_cat)],
            self._gain_method, whole_scale,
        )[0]
        parts = [[] for _ in range(n_cat)]
        missing = []
        for pair, v in zip(pairs, values):
            if v >= 0:
                parts[v].append(pair)
            else:
                missing.append(pair)
        return _Candidate(
            gain=float(gain), feature=feature, kind=_CATEGORICAL, parts=parts,
            missing=missing, path_weights=counts.sum(axis=1),
        )

    def _binary_categorical_candidate(self, feature, pairs, values, gain, left_set):
        parts = [[], []]
        missing = []
        path_weights = np.zeros(2)
        for pair, v in zip(pairs, values):
            if v < 0:
                missing.append(pair)
                continue
            path = 0 if v in left_set else 1
            parts[path].append(pair)
            path_weights[path] += pair.weight
        return _Candidate(
            gain=float(gain), feature=feature, kind=_CATEGORICAL_BINARY, parts=parts,
            missing=missing, path_weights=path_weights, left_categories=left_set,
        )

    def _numeric_candidate_c(self, feature, pairs, targets, weights, parent_counts):
        values = self._numeric_values(feature, pairs)
        present = ~np.isnan(values)
        v, t, w = values[present], targets[present], weights[present]
        positions = self._sweep_positions(v)
        if positions is None:
            return None
        order, idx, sorted_v = positions

        onehot = np.zeros((len(v), len(parent_counts)))
        onehot[np.arange(len(v)), t[order]] = w[order]
        cum = np.cumsum(onehot, axis=0)
        left = cum[idx]
        right = np.maximum(cum[-1] - left, 0.0)
        gains = split_gain(parent_counts, [left, right], self._gain_method, w.sum() / weights.sum())

        best = _last_argmax(gains)
        i = idx[best]
        threshold = (sorted_v[i] + sorted_v[i + 1]) / 2.0
        return self._numeric_candidate(feature, pairs, values, float(gains[best]), [threshold])

    def _pdf_candidate_c(self, feature, pairs, targets, weights, parent_counts):
        values = self._numeric_values(feature, pairs)
        present = ~np.isnan(values)
        v, t, w = values[present], targets[present], weights[present]

        densities = []
        for c in range(len(parent_counts)):
            mask = t == c
            if len(np.unique(v[mask])) < 2:
                continue
            try:
                densities.append(KernelDensity(v[mask], w[mask]))
            except (ValueError, np.linalg.LinAlgError):
                logger.debug("클래스 %d 밀도 추정 실패 (feature=%d)", c, feature)
        if len(densities) < 2:
            return None

        densities.sort(key=lambda d: d.mean())
        boundaries = [threshold_split(a, b)[1] for a, b in zip(densities[:-1], densities[1:])]
        boundaries = list(np.maximum.accumulate(boundaries))

        # 학습 데이터가 하나도 없는 구간은 이웃 구간과 합침
        while boundaries:
            occupied = np.bincount(
                np.searchsorted(boundaries, v, side='left'), minlength=len(boundaries) + 1
            ) > 0
            if occupied.all():
                break
            r = int(np.argmin(occupied))
            del boundaries[r if r < len(boundaries) else r - 1]
        if not boundaries:
            return None

        regions = np.searchsorted(boundaries, v, side='left')
        counts = np.zeros((len(boundaries) + 1, len(parent_counts)))
        np.add.at(counts, (regions, t), w)
        gain = split_gain(
            parent_counts, [row[None, :] for row in counts],
            self._gain_method, w.sum() / weights.sum(),
        )[0]
        return self._numeric_candidate(feature, pairs, values, float(gain), boundaries)

    # ------------------------------------------------------------------
    # 회귀 분할
    # ------------------------------------------------------------------

    def split_r(self, pairs: Sequence[DataPointPair], options: Iterable[int],
                executor=None) -> List[List[DataPointPair]]:
        """
        회귀 데이터를 SSE 감소가 가장 큰 속성으로 분할

        포인트 수가 2·min_result_split_size 이하이거나 감소량이 없으면
        평균값 하나를 가진 단일 경로를 반환합니다.
        """
        pairs = list(pairs)
        if not pairs:
            raise ValueError("분할할 데이터가 없습니다.")

        self._prepare(pairs, 'regression')
        targets = np.fromiter((p.target for p in pairs), dtype=np.float64, count=len(pairs))
        weights = np.fromiter((p.weight for p in pairs), dtype=np.float64, count=len(pairs))

        if len(pairs) <= 2 * self._min_result_split_size or np.ptp(targets) == 0.0:
            self._set_leaf_r(targets, weights)
            return [pairs]

        def evaluate(feature):
            if feature >= self._n_numeric:
                return self._categorical_candidate_r(feature, pairs, targets, weights)
            return self._numeric_candidate_r(feature, pairs, targets, weights)

        best = self._select(self._evaluate(options, evaluate, executor))
        if best is None or best.gain <= GAIN_EPSILON:
            self._set_leaf_r(targets, weights)
            return [pairs]

        parts = self._apply(best)
        parent_mean = np.average(targets, weights=weights) if weights.sum() > 0 else targets.mean()
        self._regression_results = np.where(np.isnan(best.means), parent_mean, best.means)

        logger.debug(
            "회귀 분할: feature=%d, kind=%s, paths=%d, sse_reduction=%.6f",
            best.feature, best.kind, self._n_paths, best.gain,
        )
        return parts

    def _set_leaf_r(self, targets, weights) -> None:
        self._kind = _LEAF
        self._splitting_attribute = -1
        self._n_paths = 1
        self._boundaries = []
        self._left_categories = None
        total = weights.sum()
        mean = np.dot(weights, targets) / total if total > 0 else targets.mean()
        self._regression_results = np.array([mean])
        self._path_ratio = np.ones(1)

    @staticmethod
    def _sse(sw, swy, swy2) -> np.ndarray:
        safe = np.where(sw > 0, sw, 1.0)
        return np.maximum(np.where(sw > 0, swy2 - swy * swy / safe, 0.0), 0.0)

    @staticmethod
    def _centered(y, w):
        """
        가중 평균을 뺀 타겟과 그 평균

        Σwy² - (Σwy)²/Σw 는 평균이 클수록 상쇄 오차가 커지므로
        누적합 전에 중심을 0으로 옮깁니다.
        """
        total = w.sum()
        center = float(np.dot(w, y) / total) if total > 0 else float(y.mean())
        return y - center, center

    def _categorical_candidate_r(self, feature, pairs, targets, weights):
        values = self._categorical_values(feature, pairs)
        present = values >= 0
        n_cat = self._category_count(feature, values)
        vp, y, w = values[present], targets[present], weights[present]
        if len(y) == 0:
            return None
        y, center = self._centered(y, w)

        seen = np.bincount(vp, minlength=n_cat) > 0
        if seen.sum() <= 1:
            return None
        sw = np.bincount(vp, weights=w, minlength=n_cat)
        swy = np.bincount(vp, weights=w * y, minlength=n_cat)
        swy2 = np.bincount(vp, weights=w * y * y, minlength=n_cat)
        parent_sse = self._sse(sw.sum(), swy.sum(), swy2.sum())

        if self._binary_categorical_split and n_cat > 2:
            # 범주별 평균 순으로 정렬하면 최적 이진 그룹은 접두 집합 중 하나
            used = np.flatnonzero(seen)
            cat_means = np.divide(swy[used], sw[used], out=np.zeros(len(used)), where=sw[used] > 0)
            order = used[np.argsort(cat_means, kind='stable')]
            lw, lwy, lwy2 = (np.cumsum(a[order])[:-1] for a in (sw, swy, swy2))
            split_sse = (self._sse(lw, lwy, lwy2)
                         + self._sse(sw.sum() - lw, swy.sum() - lwy, swy2.sum() - lwy2))
            reduction = parent_sse - split_sse
            best = int(np.argmax(reduction))
            left_set = frozenset(int(c) for c in order[:best + 1])
            cand = self._binary_categorical_candidate(
                feature, pairs, values, reduction[best], left_set,
            )
            rw = sw.sum() - lw[best]
            cand.means = np.array([
                center + lwy[best] / lw[best] if lw[best] > 0 else np.nan,
                center + (swy.sum() - lwy[best]) / rw if rw > 0 else np.nan,
            ])
            return cand

        reduction = parent_sse - self._sse(sw, swy, swy2).sum()
        parts = [[] for _ in range(n_cat)]
        missing = []
        for pair, v in zip(pairs, values):
            if v >= 0:
                parts[v].append(pair)
            else:
                missing.append(pair)
        means = np.full(n_cat, np.nan)
        means[sw > 0] = center + swy[sw > 0] / sw[sw > 0]
        return _Candidate(
            gain=float(reduction), feature=feature, kind=_CATEGORICAL, parts=parts,
            missing=missing, path_weights=sw, means=means,
        )

    def _numeric_candidate_r(self, feature, pairs, targets, weights):
        values = self._numeric_values(feature, pairs)
        present = ~np.isnan(values)
        v, y, w = values[present], targets[present], weights[present]
        positions = self._sweep_positions(v)
        if positions is None:
            return None
        order, idx, sorted_v = positions
        y, _ = self._centered(y, w)

        cw = np.cumsum(w[order])
        cwy = np.cumsum(w[order] * y[order])
        cwy2 = np.cumsum(w[order] * y[order] ** 2)
        parent_sse = self._sse(cw[-1], cwy[-1], cwy2[-1])
        lw, lwy, lwy2 = cw[idx], cwy[idx], cwy2[idx]
        split_sse = (self._sse(lw, lwy, lwy2)
                     + self._sse(cw[-1] - lw, cwy[-1] - lwy, cwy2[-1] - lwy2))
        reduction = parent_sse - split_sse

        best = _last_argmax(reduction)
        i = idx[best]
        threshold = (sorted_v[i] + sorted_v[i + 1]) / 2.0
        cand = self._numeric_candidate(feature, pairs, values, float(reduction[best]), [threshold])
        left = present & (values <= threshold)
        right = present & (values > threshold)
        cand.means = np.array([
            np.average(targets[left], weights=weights[left]) if weights[left].sum() > 0 else np.nan,
            np.average(targets[right], weights=weights[right]) if weights[right].sum() > 0 else np.nan,
        ])
        return cand

    # ------------------------------------------------------------------
    # 공통 도구
    # ------------------------------------------------------------------

    def _prepare(self, pairs, task: str) -> None:
        first = pairs[0].point
        self._task = task
        self._n_numeric = first.num_numeric_features
        self._category_data = first.categorical_data

    def _numeric_values(self, feature: int, pairs) -> np.ndarray:
        return np.fromiter((p.point.numeric[feature] for p in pairs), dtype=np.float64, count=len(pairs))

    def _categorical_values(self, feature: int, pairs) -> np.ndarray:
        j = feature - self._n_numeric
        return np.fromiter((p.point.categorical[j] for p in pairs), dtype=np.int64, count=len(pairs))

    def _category_count(self, feature: int, values: np.ndarray) -> int:
        j = feature - self._n_numeric
        observed = int(values.max(initial=-1)) + 1
        if j < len(self._category_data):
            return max(self._category_data[j].n_categories, observed)
        return max(1, observed)

    def _sweep_positions(self, v: np.ndarray):
        """
        정렬 스윕에서 검사할 분할 위치

        왼쪽이 정렬 인덱스 0..i 일 때 i ∈ [m, n-m-2], 인접 값 차이가 1e-14 이상인 곳만.
        """
        m = self._min_result_split_size
        n = len(v)
        idx = np.arange(m, n - m - 1)
        if len(idx) == 0:
            return None
        order = np.argsort(v, kind='stable')
        sorted_v = v[order]
        idx = idx[(sorted_v[idx + 1] - sorted_v[idx]) >= VALUE_GAP_EPSILON]
        if len(idx) == 0:
            return None
        return order, idx, sorted_v

    def _numeric_candidate(self, feature, pairs, values, gain, boundaries):
        n_paths = len(boundaries) + 1
        parts = [[] for _ in range(n_paths)]
        missing = []
        path_weights = np.zeros(n_paths)
        regions = np.searchsorted(boundaries, np.nan_to_num(values), side='left')
        for pair, value, region in zip(pairs, values, regions):
            if np.isnan(value):
                missing.append(pair)
                continue
            parts[region].append(pair)
            path_weights[region] += pair.weight
        return _Candidate(
            gain=gain, feature=feature, kind=_NUMERIC, parts=parts,
            missing=missing, path_weights=path_weights, boundaries=list(boundaries),
        )

    @staticmethod
    def _evaluate(options, evaluate, executor) -> List[Optional[_Candidate]]:
        features = sorted(int(f) for f in options)
        if executor is None or len(features) < 2:
            return [evaluate(f) for f in features]
        futures = [executor.submit(evaluate, f) for f in features]
        return [fut.result() for fut in futures]

    @staticmethod
    def _select(candidates) -> Optional[_Candidate]:
        """이득이 가장 큰 후보 (동점이면 앞 속성)"""
        best = None
        for cand in candidates:
            if cand is None or not np.isfinite(cand.gain):
                continue
            if best is None or cand.gain > best.gain:
                best = cand
        return best

    def _apply(self, best: _Candidate) -> List[List[DataPointPair]]:
        self._kind = best.kind
        self._splitting_attribute = best.feature
        self._n_paths = len(best.parts)
        self._boundaries = list(best.boundaries)
        self._left_categories = best.left_categories

        total = best.path_weights.sum()
        if total > 0:
            self._path_ratio = best.path_weights / total
        else:
            self._path_ratio = np.full(self._n_paths, 1.0 / self._n_paths)

        parts = [list(p) for p in best.parts]
        if best.missing:
            distribute_missing(parts, self._path_ratio, best.missing)
        return parts

    def __repr__(self) -> str:
        if self._task is None:
            return "DecisionStump(not fitted)"
        return (
            f"DecisionStump(task={self._task}, attribute={self._splitting_attribute}, "
            f"kind={self._kind}, paths={self._n_paths})"
        )
