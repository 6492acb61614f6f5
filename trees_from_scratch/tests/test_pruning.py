"""
가지치기 검증

가지치기는 경로를 비활성화할 뿐 분할을 추가하거나 깊이를 늘리지 않습니다.
"""

import numpy as np
import pytest

from trees_from_scratch import DecisionTree, PruningMethod, from_arrays, prune
from trees_from_scratch.node import LeafNode, NumericSplitNode
from trees_from_scratch.pruning import pessimistic_error


def _noisy_data(n=500, seed=0):
    """x0 > 0 이면 클래스 1, 라벨 20%를 뒤집은 잡음 데이터"""
    rng = np.random.default_rng(seed)
    X = rng.uniform(-1, 1, size=(n, 3))
    y = (X[:, 0] > 0).astype(int)
    flip = rng.random(n) < 0.2
    y[flip] = 1 - y[flip]
    return X, y


def _enabled_paths(root):
    return sum(
        1 for node, _ in root.iter_nodes()
        for i in range(node.children_count) if not node.is_path_disabled(i)
    )


@pytest.mark.parametrize("method", [PruningMethod.REDUCED_ERROR, PruningMethod.ERROR_BASED])
def test_pruning_only_disables(method):
    X, y = _noisy_data()
    data = from_arrays(X, y)
    tree = DecisionTree(pruning_method=PruningMethod.NONE, min_samples=5,
                        min_result_split_size=2, random_state=0).train_c(data)
    root = tree.root_
    depth_before = root.depth()
    paths_before = _enabled_paths(root)
    leaves_before = root.n_leaves()

    disabled = prune(root, method, data.as_pairs())

    assert disabled > 0, "잡음 데이터의 깊은 트리는 가지치기되어야 함"
    assert _enabled_paths(root) < paths_before
    assert root.depth() <= depth_before
    assert root.n_leaves() <= leaves_before


def test_pruned_tree_generalizes():
    X, y = _noisy_data()
    X_test, y_test = _noisy_data(seed=1)
    full = DecisionTree(pruning_method=PruningMethod.NONE, min_samples=5,
                        min_result_split_size=2, random_state=0).fit(X, y)
    pruned = DecisionTree(pruning_method=PruningMethod.REDUCED_ERROR, test_proportion=0.3,
                          min_samples=5, min_result_split_size=2, random_state=0).fit(X, y)

    assert pruned.n_pruned_paths_ > 0
    assert pruned.n_leaves < full.n_leaves
    assert np.mean(pruned.predict(X_test) == y_test) > 0.65


def test_unreached_path_is_kept():
    """검증 데이터가 닿지 않는 경로는 유지"""
    root = NumericSplitNode(0, 0.0, np.array([0.5, 0.5]))
    root.set_path(0, LeafNode(np.array([1.0, 0.0])))
    root.set_path(1, LeafNode(np.array([0.0, 1.0])))

    data = from_arrays(np.array([[-1.0], [-2.0]]), np.array([0, 0]))
    prune(root, PruningMethod.REDUCED_ERROR, data.as_pairs())

    assert root.is_path_disabled(0), "부모 예측과 같은 오차면 비활성화"
    assert not root.is_path_disabled(1), "검증 데이터가 없는 경로는 유지"


def test_useful_split_is_kept():
    root = NumericSplitNode(0, 0.0, np.array([0.9, 0.1]))
    root.set_path(0, LeafNode(np.array([1.0, 0.0])))
    root.set_path(1, LeafNode(np.array([0.0, 1.0])))

    data = from_arrays(np.array([[-1.0], [1.0], [2.0]]), np.array([0, 1, 1]))
    disabled = prune(root, PruningMethod.REDUCED_ERROR, data.as_pairs())

    assert disabled == 1
    assert root.is_path_disabled(0)
    assert not root.is_path_disabled(1)


def test_none_and_empty():
    root = NumericSplitNode(0, 0.0, np.array([0.5, 0.5]))
    root.set_path(0, LeafNode(np.array([1.0, 0.0])))
    data = from_arrays(np.array([[-1.0]]), np.array([1]))
    assert prune(root, PruningMethod.NONE, data.as_pairs()) == 0
    assert prune(root, PruningMethod.REDUCED_ERROR, []) == 0
    assert not root.is_path_disabled(0)


def test_pessimistic_error():
    """C4.5 오차 상한은 관측 오차보다 크고 표본이 클수록 가까워짐"""
    small = pessimistic_error(1, 10)
    large = pessimistic_error(100, 1000)
    assert small > 1
    assert large > 100
    assert small / 10 > large / 1000
    assert pessimistic_error(0, 0) == 0.0
    assert pessimistic_error(0, 6) > 0
