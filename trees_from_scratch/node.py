"""
트리 노드 방문 인터페이스
========================

모든 트리 모델이 공유하는 노드 인터페이스(TreeNodeVisitor)와
ExtraTree 등에서 쓰는 구체 노드 타입.

예측 규칙:
---------
1. 루트에서 시작해 get_path(point)가 가리키는 자식으로 이동
2. 경로가 비활성화되어 있으면 현재 노드의 local_classify / local_regress 반환
3. 경로가 -1 (결측값)이면 활성화된 자식들의 예측을 경로 가중치로 평균

    ŷ = Σ_i w_i · child_i(x) / Σ_i w_i     (비활성 자식 제외)

Author: Trees From Scratch Project
"""

import copy
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Set, Tuple, Union

import numpy as np

from .data import DataPoint, DataPointPair


class TreeNodeVisitor(ABC):
    """
    트리 노드 공통 인터페이스

    자식 수는 생성 시 고정되며, 경로를 비활성화해도 번호는 바뀌지 않습니다.
    모든 자식이 비활성화된 노드는 리프입니다.
    """

    @property
    @abstractmethod
    def children_count(self) -> int:
        ...

    @abstractmethod
    def get_child(self, i: int) -> Optional['TreeNodeVisitor']:
        ...

    @abstractmethod
    def disable_path(self, i: int) -> None:
        ...

    @abstractmethod
    def is_path_disabled(self, i: int) -> bool:
        ...

    @abstractmethod
    def get_path(self, point: DataPoint) -> int:
        """이동할 자식 번호. 결측값이면 -1"""

    def set_path(self, i: int, node: 'TreeNodeVisitor') -> None:
        raise NotImplementedError(f"{type(self).__name__}은(는) set_path를 지원하지 않습니다.")

    def is_leaf(self) -> bool:
        return all(self.is_path_disabled(i) for i in range(self.children_count))

    def get_path_weight(self, i: int) -> float:
        return 1.0 / self.children_count

    def features_used(self) -> Set[int]:
        return set()

    def local_classify(self, point: DataPoint) -> np.ndarray:
        raise NotImplementedError(f"{type(self).__name__}은(는) 분류를 지원하지 않습니다.")

    def local_regress(self, point: DataPoint) -> float:
        raise NotImplementedError(f"{type(self).__name__}은(는) 회귀를 지원하지 않습니다.")

    def classify(self, point: DataPoint) -> np.ndarray:
        """트리를 따라 내려가 클래스 확률 벡터 반환 (합 = 1)"""
        node = self
        while not node.is_leaf():
            path = node.get_path(point)
            if path < 0:
                total = 0.0
                result = None
                for i in range(node.children_count):
                    if node.is_path_disabled(i):
                        continue
                    w = node.get_path_weight(i)
                    child_result = node.get_child(i).classify(point)
                    result = w * child_result if result is None else result + w * child_result
                    total += w
                if result is None or total <= 0:
                    break
                s = result.sum()
                return result / s if s > 0 else result
            if path >= node.children_count or node.is_path_disabled(path):
                break
            node = node.get_child(path)
        return node.local_classify(point)

    def regress(self, point: DataPoint) -> float:
        """트리를 따라 내려가 회귀 예측값 반환"""
        node = self
        while not node.is_leaf():
            path = node.get_path(point)
            if path < 0:
                total = 0.0
                result = 0.0
                for i in range(node.children_count):
                    if node.is_path_disabled(i):
                        continue
                    w = node.get_path_weight(i)
                    result += w * node.get_child(i).regress(point)
                    total += w
                if total <= 0:
                    break
                return result / total
            if path >= node.children_count or node.is_path_disabled(path):
                break
            node = node.get_child(path)
        return node.local_regress(point)

    def clone(self) -> 'TreeNodeVisitor':
        return copy.deepcopy(self)

    def iter_nodes(self) -> Iterator[Tuple['TreeNodeVisitor', int]]:
        """활성화된 노드를 전위 순회하며 (node, depth) 생성"""
        stack = [(self, 0)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            for i in reversed(range(node.children_count)):
                if not node.is_path_disabled(i):
                    stack.append((node.get_child(i), depth + 1))

    def depth(self) -> int:
        return max(d for _, d in self.iter_nodes())

    def n_leaves(self) -> int:
        return sum(1 for node, _ in self.iter_nodes() if node.is_leaf())


Result = Union[np.ndarray, float]


class _ResultNode(TreeNodeVisitor):
    """로컬 예측값과 자식 슬롯을 가진 노드"""

    def __init__(self, n_paths: int, result: Result, path_weights=None):
        self._children: List[Optional[TreeNodeVisitor]] = [None] * n_paths
        self.result = np.asarray(result, dtype=np.float64) if np.ndim(result) else float(result)
        if path_weights is None:
            self.path_weights = None
        else:
            self.path_weights = np.asarray(path_weights, dtype=np.float64)

    @property
    def children_count(self) -> int:
        return len(self._children)

    def get_child(self, i: int) -> Optional[TreeNodeVisitor]:
        return self._children[i]

    def set_path(self, i: int, node: Optional[TreeNodeVisitor]) -> None:
        self._children[i] = node

    def disable_path(self, i: int) -> None:
        self._children[i] = None

    def is_path_disabled(self, i: int) -> bool:
        return self._children[i] is None

    def get_path_weight(self, i: int) -> float:
        if self.path_weights is None:
            return super().get_path_weight(i)
        return float(self.path_weights[i])

    def local_classify(self, point: DataPoint) -> np.ndarray:
        if np.ndim(self.result) == 0:
            raise NotImplementedError("회귀 노드는 분류를 지원하지 않습니다.")
        return self.result.copy()

    def local_regress(self, point: DataPoint) -> float:
        if np.ndim(self.result) != 0:
            raise NotImplementedError("분류 노드는 회귀를 지원하지 않습니다.")
        return self.result


class LeafNode(_ResultNode):
    """자식이 없는 노드"""

    def __init__(self, result: Result):
        super().__init__(0, result)

    def get_path(self, point: DataPoint) -> int:
        return -1

    def __repr__(self) -> str:
        return f"LeafNode(result={self.result})"


class NumericSplitNode(_ResultNode):
    """
    수치형 이진 분할: value <= threshold 이면 0, 아니면 1

    Parameters
    ----------
    feature : int
        수치형 피처 인덱스
    threshold : float
    result : ndarray or float
        이 노드에서 멈췄을 때의 예측값
    missing_path : int, default=-1
        NaN 값이 향할 경로 (-1이면 자식 평균)
    """

    def __init__(self, feature: int, threshold: float, result: Result,
                 path_weights=None, missing_path: int = -1):
        super().__init__(2, result, path_weights)
        self.feature = int(feature)
        self.threshold = float(threshold)
        self.missing_path = int(missing_path)

    def get_path(self, point: DataPoint) -> int:
        value = point.numeric[self.feature]
        if np.isnan(value):
            return self.missing_path
        return 0 if value <= self.threshold else 1

    def features_used(self) -> Set[int]:
        return {self.feature}

    def __repr__(self) -> str:
        return f"NumericSplitNode(feature={self.feature}, threshold={self.threshold:.4g})"


class CategoricalSplitNode(_ResultNode):
    """
    범주형 분할

    left_categories가 주어지면 이진 분할 (집합 안 = 0, 밖 = 1),
    아니면 범주 값마다 하나의 경로 (fan-out).

    Parameters
    ----------
    feature : int
        통합 피처 인덱스
    n_numeric : int
        수치형 피처 수 (범주형 값 위치 계산용)
    n_paths : int
    result : ndarray or float
    left_categories : iterable of int, optional
    missing_path : int, default=-1
        결측 범주가 향할 경로 (-1이면 자식 평균)
    """

    def __init__(self, feature: int, n_numeric: int, n_paths: int, result: Result,
                 left_categories=None, path_weights=None, missing_path: int = -1):
        super().__init__(n_paths, result, path_weights)
        self.feature = int(feature)
        self.n_numeric = int(n_numeric)
        self.left_categories = (
            None if left_categories is None else frozenset(int(c) for c in left_categories)
        )
        self.missing_path = int(missing_path)

    def get_path(self, point: DataPoint) -> int:
        value = int(point.categorical[self.feature - self.n_numeric])
        if value < 0:
            return self.missing_path
        if self.left_categories is not None:
            return 0 if value in self.left_categories else 1
        return value if value < self.children_count else -1

    def features_used(self) -> Set[int]:
        return {self.feature}

    def __repr__(self) -> str:
        kind = 'binary' if self.left_categories is not None else 'fan-out'
        return f"CategoricalSplitNode(feature={self.feature}, paths={self.children_count}, {kind})"


def route_pairs(node: TreeNodeVisitor, pairs) -> List[list]:
    """
    (point, target) 쌍을 자식 경로별로 나눔

    결측값으로 경로가 -1인 포인트는 경로 가중치에 비례한 가중치로
    모든 경로에 나누어 넣습니다. 비활성화된 경로도 포함합니다.
    """
    parts: List[list] = [[] for _ in range(node.children_count)]
    for pair in pairs:
        path = node.get_path(pair.point)
        if 0 <= path < node.children_count:
            parts[path].append(pair)
            continue
        for i in range(node.children_count):
            w = node.get_path_weight(i) * pair.weight
            if w > 0:
                parts[i].append(DataPointPair(pair.point.with_weight(w), pair.target))
    return parts
