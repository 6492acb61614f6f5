"""
Extra Tree - Extremely Randomized Tree
======================================

Geurts, Ernst & Wehenkel (2006) 의 극단적 무작위 트리.

각 노드에서:
1. 후보 속성 중 selection_count 개를 무작위로 고름
2. 속성마다 무작위 분할 하나를 만듦
   - 수치형: [min, max] 구간의 균등 난수 임계값
   - 범주형 (이진): 사용 중인 값 중 크기 [1, k-1] 의 무작위 왼쪽 집합
   - 범주형 (fan-out): 범주마다 하나의 경로, 자식에서는 해당 속성 제외
3. 이득이 가장 큰 분할 선택

분류 이득: ImpurityScore.gain (기본 NMI)
회귀 이득: 1 - Σ (W_i / W) · (Var_i / Var)

정지 조건: 샘플 수 < stop_size 또는 불순도(분산) = 0

결측값 (NaN, 음수 범주) 은 학습과 예측 모두 오른쪽 경로(1)로 보냅니다.
범주 fan-out 은 결측 범주가 있는 노드에서는 후보에서 뺍니다.

Author: Trees From Scratch Project
"""

import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .base import BaseTreeLearner, check_random_state
from .data import DataPoint, DataPointPair
from .impurity import ImpurityMeasure, impurity_from_counts, measure_from_name, split_gain
from .node import CategoricalSplitNode, LeafNode, NumericSplitNode, TreeNodeVisitor
from .statistics import OnlineStatistics

logger = logging.getLogger(__name__)

_NUMERIC = 'numeric'
_BINARY = 'binary'
_FAN_OUT = 'fan_out'

# 평균 제곱 대비 분산이 이보다 작으면 상수 타겟으로 봄
RELATIVE_VARIANCE_EPSILON = 1e-12


class _Split(NamedTuple):
    """노드 하나의 무작위 분할 후보"""
    kind: str
    feature: int
    parts: List[list]
    threshold: Optional[float] = None
    left_categories: Optional[frozenset] = None


class _ListPool:
    """분할 결과 리스트 재사용 풀 (단일 스레드 재귀 전용)"""

    def __init__(self):
        self._free: List[list] = []

    def acquire(self, n: int) -> List[list]:
        return [self._free.pop() if self._free else [] for _ in range(n)]

    def release(self, lists) -> None:
        for lst in lists:
            lst.clear()
            self._free.append(lst)

    def __len__(self) -> int:
        return len(self._free)


class ExtraTree(BaseTreeLearner):
    """
    Extremely Randomized Tree (From Scratch)

    Parameters
    ----------
    selection_count : int, default=None
        노드마다 시도할 속성 수. None이면 남은 속성 전체

    stop_size : int, default=5
        이보다 샘플이 적으면 리프

    impurity_measure : ImpurityMeasure, default=NMI
        분류 이득 측정 방식

    binary_categorical_splitting : bool, default=True
        범주형 속성을 이진 분할 (False면 범주별 fan-out, 범주 2개는 항상 이진)

    random_state : int or Generator, default=None

    Attributes
    ----------
    root_ : TreeNodeVisitor
        학습된 트리의 루트 노드
    """

    def __init__(
        self,
        selection_count: Optional[int] = None,
        stop_size: int = 5,
        impurity_measure: ImpurityMeasure = ImpurityMeasure.NMI,
        binary_categorical_splitting: bool = True,
        random_state=None
    ):
        self.selection_count = selection_count
        self.stop_size = stop_size
        self.impurity_measure = impurity_measure
        self.binary_categorical_splitting = binary_categorical_splitting
        self.random_state = random_state

        self.root_: Optional[TreeNodeVisitor] = None

    @property
    def selection_count(self) -> Optional[int]:
        return self._selection_count

    @selection_count.setter
    def selection_count(self, value):
        if value is not None and (int(value) != value or value < 1):
            raise ValueError(f"selection_count는 1 이상의 정수 또는 None이어야 합니다: {value}")
        self._selection_count = None if value is None else int(value)

    @property
    def stop_size(self) -> int:
        return self._stop_size

    @stop_size.setter
    def stop_size(self, value):
        if int(value) != value or value < 1:
            raise ValueError(f"stop_size는 1 이상의 정수여야 합니다: {value}")
        self._stop_size = int(value)

    @property
    def impurity_measure(self) -> ImpurityMeasure:
        return self._impurity_measure

    @impurity_measure.setter
    def impurity_measure(self, value):
        self._impurity_measure = measure_from_name(value)

    @property
    def binary_categorical_splitting(self) -> bool:
        return self._binary_categorical_splitting

    @binary_categorical_splitting.setter
    def binary_categorical_splitting(self, value):
        self._binary_categorical_splitting = bool(value)

    # ------------------------------------------------------------------
    # 학습
    # ------------------------------------------------------------------

    def train_c(self, dataset) -> 'ExtraTree':
        """분류 트리 학습 (ClassificationDataSet)"""
        rng = check_random_state(self.random_state)
        self._setup(dataset)
        pairs = dataset.as_pairs()
        counts = self._class_counts(pairs, dataset.n_classes)
        features = tuple(range(dataset.num_features))
        self.root_ = self._build_c(counts, pairs, features, rng, _ListPool())
        self._remember_layout(dataset, 'classification')
        return self

    def train(self, dataset) -> 'ExtraTree':
        """회귀 트리 학습 (RegressionDataSet)"""
        rng = check_random_state(self.random_state)
        self._setup(dataset)
        pairs = dataset.as_pairs()
        features = tuple(range(dataset.num_features))
        self.root_ = self._build_r(self._target_stats(pairs), pairs, features, rng, _ListPool())
        self._remember_layout(dataset, 'regression')
        return self

    def _setup(self, dataset) -> None:
        self._n_numeric = dataset.num_numeric_features
        self._category_sizes = [c.n_categories for c in dataset.categories]
        self._n_classes = getattr(dataset, 'n_classes', 0)

    @staticmethod
    def _class_counts(pairs: Sequence[DataPointPair], n_classes: int) -> np.ndarray:
        counts = np.zeros(n_classes)
        for pair in pairs:
            counts[pair.target] += pair.weight
        return counts

    @staticmethod
    def _target_stats(pairs: Sequence[DataPointPair]) -> OnlineStatistics:
        stats = OnlineStatistics()
        for pair in pairs:
            stats.add(pair.target, pair.weight)
        return stats

    def _build_c(self, counts, subset, features, rng, pool) -> Optional[TreeNodeVisitor]:
        if not subset:
            return None
        total = counts.sum()
        result = counts / total if total > 0 else np.full(len(counts), 1.0 / len(counts))
        if (len(subset) < self._stop_size
                or impurity_from_counts(counts, self._impurity_measure)[0] == 0.0):
            return LeafNode(result)

        best, best_gain, best_counts = None, -np.inf, None
        for feature in self._pick_features(features, rng):
            cand = self._random_split(feature, subset, rng, pool)
            if cand is None:
                continue
            part_counts = [self._class_counts(part, self._n_classes) for part in cand.parts]
            gain = split_gain(counts, [c[None, :] for c in part_counts], self._impurity_measure)[0]
            if gain > best_gain:
                if best is not None:
                    pool.release(best.parts)
                best, best_gain, best_counts = cand, gain, part_counts
            else:
                pool.release(cand.parts)

        if best is None:
            return LeafNode(result)

        weights = np.array([c.sum() for c in best_counts])
        node, child_features = self._make_node(best, features, result, weights)
        for i, part in enumerate(best.parts):
            node.set_path(i, self._build_c(best_counts[i], part, child_features, rng, pool))
        pool.release(best.parts)
        return node

    def _build_r(self, stats: OnlineStatistics, subset, features, rng, pool) -> Optional[TreeNodeVisitor]:
        if not subset:
            return None
        variance = stats.variance
        if (len(subset) < self._stop_size or not variance > 0.0
                or variance <= RELATIVE_VARIANCE_EPSILON * max(1.0, stats.mean ** 2)):
            return LeafNode(stats.mean)

        best, best_gain, best_stats = None, -np.inf, None
        for feature in self._pick_features(features, rng):
            cand = self._random_split(feature, subset, rng, pool)
            if cand is None:
                continue
            part_stats = [self._target_stats(part) for part in cand.parts]
            gain = 1.0
            for s in part_stats:
                if s.sum_of_weights > 0:
                    gain -= s.sum_of_weights / stats.sum_of_weights * (s.variance / variance)
            if gain > best_gain:
                if best is not None:
                    pool.release(best.parts)
                best, best_gain, best_stats = cand, gain, part_stats
            else:
                pool.release(cand.parts)

        if best is None:
            return LeafNode(stats.mean)

        weights = np.array([s.sum_of_weights for s in best_stats])
        node, child_features = self._make_node(best, features, stats.mean, weights)
        for i, part in enumerate(best.parts):
            node.set_path(i, self._build_r(best_stats[i], part, child_features, rng, pool))
        pool.release(best.parts)
        return node

    def _pick_features(self, features: Tuple[int, ...], rng) -> List[int]:
        k = len(features) if self._selection_count is None else min(self._selection_count, len(features))
        order = rng.permutation(len(features))[:k]
        return [features[i] for i in order]

    def _random_split(self, feature: int, subset, rng, pool):
        """
        무작위 분할 후보

        Returns
        -------
        _Split 또는 분할할 수 없으면 None
        """
        if feature < self._n_numeric:
            values = np.fromiter((p.point.numeric[feature] for p in subset), dtype=np.float64, count=len(subset))
            finite = values[~np.isnan(values)]
            if len(finite) == 0:
                return None
            lo, hi = finite.min(), finite.max()
            if hi <= lo:
                return None
            threshold = lo + rng.random() * (hi - lo)
            parts = pool.acquire(2)
            for pair, v in zip(subset, values):
                # NaN <= threshold 는 거짓이므로 오른쪽
                parts[0 if v <= threshold else 1].append(pair)
            if not parts[0] or not parts[1]:
                pool.release(parts)
                return None
            return _Split(_NUMERIC, feature, parts, float(threshold))

        j = feature - self._n_numeric
        values = np.fromiter((p.point.categorical[j] for p in subset), dtype=np.int64, count=len(subset))
        in_use = np.unique(values[values >= 0])
        if len(in_use) <= 1:
            return None
        n_cat = max(self._category_sizes[j], int(in_use[-1]) + 1)

        if self._binary_categorical_splitting or n_cat == 2:
            size = int(rng.integers(1, len(in_use)))
            left = frozenset(int(c) for c in rng.choice(in_use, size=size, replace=False))
            parts = pool.acquire(2)
            for pair, v in zip(subset, values):
                parts[0 if v in left else 1].append(pair)
            return _Split(_BINARY, feature, parts, left_categories=left)

        if np.any(values < 0):
            return None
        parts = pool.acquire(n_cat)
        for pair, v in zip(subset, values):
            parts[v].append(pair)
        return _Split(_FAN_OUT, feature, parts)

    def _make_node(self, split: '_Split', features, result, weights):
        """선택된 분할로 노드 생성. 자식이 쓸 후보 속성도 함께 반환"""
        total = weights.sum()
        path_weights = weights / total if total > 0 else None
        if split.kind == _NUMERIC:
            node = NumericSplitNode(split.feature, split.threshold, result, path_weights, missing_path=1)
            return node, features
        if split.kind == _BINARY:
            node = CategoricalSplitNode(
                split.feature, self._n_numeric, 2, result, split.left_categories,
                path_weights, missing_path=1,
            )
            return node, features
        node = CategoricalSplitNode(
            split.feature, self._n_numeric, len(split.parts), result, None, path_weights,
        )
        return node, tuple(f for f in features if f != split.feature)

    # ------------------------------------------------------------------
    # 예측
    # ------------------------------------------------------------------

    def classify(self, point: DataPoint) -> np.ndarray:
        self._check_fitted('classification')
        self._check_point(point)
        return self.root_.classify(point)

    def regress(self, point: DataPoint) -> float:
        self._check_fitted('regression')
        self._check_point(point)
        return self.root_.regress(point)

    def get_tree_node_visitor(self) -> TreeNodeVisitor:
        self._check_fitted()
        return self.root_

    def __repr__(self) -> str:
        if self.root_ is None:
            return "ExtraTree(not fitted)"
        return f"ExtraTree(depth={self.root_.depth()}, n_leaves={self.root_.n_leaves()})"
