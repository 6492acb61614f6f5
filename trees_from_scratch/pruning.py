"""
트리 가지치기
=============

학습된 트리의 경로를 아래에서 위로 검사해, 부모 노드의 로컬 예측이
자식 하위 트리보다 나쁘지 않으면 그 경로를 비활성화합니다.
경로를 비활성화할 뿐 노드를 새로 만들거나 번호를 바꾸지 않습니다.
검증 데이터가 하나도 닿지 않는 경로는 그대로 둡니다.

REDUCED_ERROR:
    검증 데이터의 오분류 가중치 (회귀는 가중 제곱오차) 비교

ERROR_BASED (C4.5 비관적 오차):
    N개 중 E개 오분류인 잎의 오차 상한

        f = E / N
        U = (f + z²/2N + z·sqrt(f/N - f²/N + z²/4N²)) / (1 + z²/N)
        z = Φ⁻¹(1 - confidence)

    예상 오차 = N · U.  회귀 트리는 REDUCED_ERROR로 처리합니다.
"""

import logging
from collections import defaultdict
from enum import Enum
from typing import Dict, List, Sequence, Tuple

import numpy as np
from scipy import stats

from .data import DataPointPair
from .node import TreeNodeVisitor, route_pairs

logger = logging.getLogger(__name__)


class PruningMethod(Enum):
    """가지치기 방식"""
    NONE = 'none'
    REDUCED_ERROR = 'reduced_error'
    ERROR_BASED = 'error_based'


def pessimistic_error(errors: float, n: float, confidence: float = 0.25) -> float:
    """C4.5 비관적 오차 추정 N·U (가중치 기준)"""
    if n <= 0:
        return 0.0
    z = stats.norm.ppf(1.0 - confidence)
    f = errors / n
    z2 = z * z
    upper = (f + z2 / (2 * n) + z * np.sqrt(max(f / n - f * f / n + z2 / (4 * n * n), 0.0))) / (1 + z2 / n)
    return float(n * upper)


def _point_error(prediction, target, regression: bool) -> float:
    if regression:
        return (prediction - target) ** 2
    return 0.0 if int(np.argmax(prediction)) == target else 1.0


def _terminal_errors(node: TreeNodeVisitor, pairs, regression: bool) -> Dict[Tuple[int, int], List[float]]:
    """하위 트리에서 최종 예측이 일어나는 (노드, 경로) 별 [가중치, 오차 가중치]"""
    groups: Dict[Tuple[int, int], List[float]] = defaultdict(lambda: [0.0, 0.0])
    for pair in pairs:
        current = node
        while not current.is_leaf():
            path = current.get_path(pair.point)
            if path < 0 or path >= current.children_count or current.is_path_disabled(path):
                break
            current = current.get_child(path)
        else:
            path = 0
        key = (id(current), path)
        prediction = current.regress(pair.point) if regression else current.classify(pair.point)
        groups[key][0] += pair.weight
        groups[key][1] += pair.weight * _point_error(prediction, pair.target, regression)
    return groups


def _local_error(node: TreeNodeVisitor, pairs, regression: bool) -> float:
    total = 0.0
    for pair in pairs:
        prediction = node.local_regress(pair.point) if regression else node.local_classify(pair.point)
        total += pair.weight * _point_error(prediction, pair.target, regression)
    return total


def _subtree_error(child: TreeNodeVisitor, pairs, regression: bool) -> float:
    total = 0.0
    for pair in pairs:
        prediction = child.regress(pair.point) if regression else child.classify(pair.point)
        total += pair.weight * _point_error(prediction, pair.target, regression)
    return total


def _prune_node(node: TreeNodeVisitor, pairs, method: PruningMethod,
                regression: bool, confidence: float) -> int:
    if node.is_leaf():
        return 0
    disabled = 0
    for i, part in enumerate(route_pairs(node, pairs)):
        # 검증 데이터가 닿지 않는 경로는 유지
        if node.is_path_disabled(i) or not part:
            continue
        child = node.get_child(i)
        disabled += _prune_node(child, part, method, regression, confidence)

        if method is PruningMethod.ERROR_BASED:
            n = sum(p.weight for p in part)
            local = pessimistic_error(_local_error(node, part, regression), n, confidence)
            subtree = sum(
                pessimistic_error(err, w, confidence)
                for w, err in _terminal_errors(child, part, regression).values()
            )
        else:
            local = _local_error(node, part, regression)
            subtree = _subtree_error(child, part, regression)

        if local <= subtree:
            node.disable_path(i)
            disabled += 1
    return disabled


def prune(root: TreeNodeVisitor, method: PruningMethod, test_pairs: Sequence[DataPointPair],
          regression: bool = False, confidence: float = 0.25) -> int:
    """
    트리 가지치기

    Parameters
    ----------
    root : TreeNodeVisitor
        학습된 트리의 루트
    method : PruningMethod
    test_pairs : sequence of DataPointPair
        가지치기 판단용 데이터 (ERROR_BASED는 보통 학습 데이터 전체)
    regression : bool
        회귀 트리 여부
    confidence : float
        ERROR_BASED 신뢰 수준

    Returns
    -------
    n_disabled : int
        비활성화된 경로 수
    """
    method = PruningMethod(method)
    if method is PruningMethod.NONE or not test_pairs:
        return 0
    if not 0 < confidence < 1:
        raise ValueError(f"confidence는 (0, 1) 범위여야 합니다: {confidence}")
    if regression and method is PruningMethod.ERROR_BASED:
        method = PruningMethod.REDUCED_ERROR

    disabled = _prune_node(root, list(test_pairs), method, regression, confidence)
    logger.debug("가지치기 (%s): %d개 경로 비활성화", method.name, disabled)
    return disabled
