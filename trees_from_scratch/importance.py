"""
피처 중요도 추론
================

학습된 트리를 TreeNodeVisitor 인터페이스로만 순회해 피처별 중요도를 계산합니다.
분할 종류(스텀프, 수치형, 범주형)와 무관하게 동작합니다.

1. MDI (Mean Decrease in Impurity):
   데이터를 트리에 흘려보내며 노드마다 불순도 감소량을 노드 가중치 비율로 누적

       MDI_j = Σ_{node가 j 사용} (W_node / W) · (I(node) - Σ_i (W_i / W_node) · I(child_i))

2. ImportanceByUses:
   피처가 분할에 쓰인 횟수. 깊이 가중 시 1 / (1 + depth)

3. MDA (Mean Decrease in Accuracy):
   피처 j를 쓰는 노드에서 포인트를 무작위의 다른 경로로 보냈을 때의 성능 하락

       분류: (acc - acc_j) / (acc + 1e-3)
       회귀: (mse_j - mse) / (mse + 1e-3)

Author: Trees From Scratch Project
"""

import logging
from typing import List, Sequence

import numpy as np

from .base import check_random_state
from .data import DataPoint, DataPointPair
from .impurity import ImpurityMeasure, impurity_from_counts, measure_from_name
from .node import TreeNodeVisitor, route_pairs

logger = logging.getLogger(__name__)


def _visitor(model) -> TreeNodeVisitor:
    if isinstance(model, TreeNodeVisitor):
        return model
    return model.get_tree_node_visitor()


def _is_classification(dataset) -> bool:
    return hasattr(dataset, 'predicting')


class MDI:
    """
    불순도 감소 기반 중요도 (분류 전용)

    Parameters
    ----------
    measure : ImpurityMeasure, default=GINI
    """

    def __init__(self, measure: ImpurityMeasure = ImpurityMeasure.GINI):
        self.measure = measure_from_name(measure)

    def get_importance_stats(self, model, dataset) -> np.ndarray:
        """
        Returns
        -------
        importances : ndarray of shape (n_features,)
            통합 피처 인덱스 순서
        """
        if not _is_classification(dataset):
            raise ValueError("MDI는 분류 데이터셋에만 사용할 수 있습니다.")
        importances = np.zeros(dataset.num_features)
        pairs = dataset.as_pairs()
        total = sum(p.weight for p in pairs)
        if total <= 0:
            return importances
        self._accumulate(_visitor(model), pairs, dataset.n_classes, total, importances)
        return importances

    def _counts(self, pairs: Sequence[DataPointPair], n_classes: int) -> np.ndarray:
        counts = np.zeros(n_classes)
        for pair in pairs:
            counts[pair.target] += pair.weight
        return counts

    def _accumulate(self, node, pairs, n_classes, total, importances) -> None:
        if node.is_leaf() or not pairs:
            return
        counts = self._counts(pairs, n_classes)
        node_weight = counts.sum()
        if node_weight <= 0:
            return

        parts = route_pairs(node, pairs)
        change = impurity_from_counts(counts, self.measure)[0]
        for part in parts:
            part_counts = self._counts(part, n_classes)
            w = part_counts.sum()
            if w > 0:
                change -= w / node_weight * impurity_from_counts(part_counts, self.measure)[0]

        for f in node.features_used():
            importances[f] += change * node_weight / total

        for i, part in enumerate(parts):
            if not node.is_path_disabled(i):
                self._accumulate(node.get_child(i), part, n_classes, total, importances)


class ImportanceByUses:
    """
    분할 사용 횟수 기반 중요도

    Parameters
    ----------
    weight_by_depth : bool, default=True
        True면 깊이 d의 사용을 1 / (1 + d)로 가중
    """

    def __init__(self, weight_by_depth: bool = True):
        self.weight_by_depth = bool(weight_by_depth)

    def get_importance_stats(self, model, dataset) -> np.ndarray:
        importances = np.zeros(dataset.num_features)
        for node, depth in _visitor(model).iter_nodes():
            if node.is_leaf():
                continue
            score = 1.0 / (1 + depth) if self.weight_by_depth else 1.0
            for f in node.features_used():
                importances[f] += score
        return importances


class MDA:
    """
    경로 교란 기반 중요도

    피처를 쓰는 노드에서 원래 경로 대신 무작위의 다른 경로를 따라가게 한 뒤
    정확도(회귀는 MSE)가 얼마나 나빠지는지 측정합니다.

    Parameters
    ----------
    random_state : int or Generator, default=None
    """

    def __init__(self, random_state=None):
        self.random_state = random_state

    def get_importance_stats(self, model, dataset) -> np.ndarray:
        rng = check_random_state(self.random_state)
        root = _visitor(model)
        regression = not _is_classification(dataset)
        pairs = dataset.as_pairs()

        base = self._score(root, pairs, None, rng, regression)
        importances = np.zeros(dataset.num_features)
        used = set()
        for node, _ in root.iter_nodes():
            used |= node.features_used()

        # 트리가 쓰지 않는 피처는 0
        for f in sorted(used):
            score = self._score(root, pairs, f, rng, regression)
            if regression:
                importances[f] = (score - base) / (base + 1e-3)
            else:
                importances[f] = (base - score) / (base + 1e-3)
        return importances

    def _score(self, root, pairs: List[DataPointPair], feature, rng, regression: bool) -> float:
        total = sum(p.weight for p in pairs)
        if total <= 0:
            return 0.0
        score = 0.0
        for pair in pairs:
            prediction = _corrupted_walk(root, pair.point, feature, rng, regression)
            if regression:
                score += pair.weight * (prediction - pair.target) ** 2
            elif int(np.argmax(prediction)) == pair.target:
                score += pair.weight
        return score / total


def _corrupted_walk(node: TreeNodeVisitor, point: DataPoint, feature, rng, regression: bool):
    """feature를 쓰는 노드에서만 경로를 무작위로 바꾸어 트리를 따라감"""
    while not node.is_leaf():
        path = node.get_path(point)
        n = node.children_count
        if path < 0:
            total, result = 0.0, None
            for i in range(n):
                if node.is_path_disabled(i):
                    continue
                w = node.get_path_weight(i)
                child = _corrupted_walk(node.get_child(i), point, feature, rng, regression)
                result = w * child if result is None else result + w * child
                total += w
            if result is None or total <= 0:
                break
            if regression:
                return result / total
            s = result.sum()
            return result / s if s > 0 else result
        if feature is not None and n > 1 and feature in node.features_used():
            path = (path + int(rng.integers(1, n))) % n
        if path >= n or node.is_path_disabled(path):
            break
        node = node.get_child(path)
    return node.local_regress(point) if regression else node.local_classify(point)
