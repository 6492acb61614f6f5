"""
ExtraTree 검증
"""

import numpy as np
import pytest

from trees_from_scratch import DataPoint, ExtraTree, ImpurityMeasure
from trees_from_scratch.extra_tree import _ListPool
from trees_from_scratch.node import CategoricalSplitNode, NumericSplitNode


def test_extra_tree_classification(clusters, clusters_holdout):
    X, y = clusters
    X_test, y_test = clusters_holdout
    tree = ExtraTree(random_state=0).fit(X, y)

    accuracy = np.mean(tree.predict(X_test) == y_test)
    assert accuracy >= 0.9, f"정확도 부족: {accuracy}"
    np.testing.assert_allclose(tree.predict_proba(X_test).sum(axis=1), 1.0)


def test_small_stop_size_fits_training_data(clusters):
    """stop_size=2 이면 불순한 노드는 항상 분할되므로 리프는 순수"""
    X, y = clusters
    tree = ExtraTree(stop_size=2, random_state=1).fit(X, y)
    predictions = tree.predict(X)
    assert np.mean(predictions == y) == 1.0, "완전 분리 가능한 학습 데이터는 모두 맞혀야 함"


def test_extra_tree_regression(regression_data):
    X, y = regression_data
    tree = ExtraTree(stop_size=5, random_state=0).fit(X, y)
    mse = np.mean((tree.predict(X) - y) ** 2)
    assert mse < 0.1 * np.var(y), f"MSE가 너무 큼: {mse}"


def test_reproducible_with_seed(clusters):
    X, y = clusters
    first = ExtraTree(random_state=5).fit(X, y)
    second = ExtraTree(random_state=5).fit(X, y)
    np.testing.assert_array_equal(first.predict_proba(X), second.predict_proba(X))


def test_missing_values_go_right():
    """결측값은 학습과 예측 모두 경로 1"""
    rng = np.random.default_rng(0)
    X = rng.uniform(-1, 1, size=(100, 1))
    y = (X[:, 0] > 0).astype(int)
    X[:10, 0] = np.nan
    tree = ExtraTree(stop_size=2, random_state=0).fit(X, y)

    root = tree.get_tree_node_visitor()
    assert isinstance(root, NumericSplitNode)
    assert root.missing_path == 1
    assert root.get_path(DataPoint([np.nan])) == 1
    assert tree.classify(DataPoint([np.nan])).sum() == pytest.approx(1.0)


def test_categorical_binary_and_fan_out(categorical_data):
    X, X_cat, y = categorical_data

    binary = ExtraTree(binary_categorical_splitting=True, stop_size=2, random_state=0)
    binary.fit(X, y, X_cat=X_cat, categories=[4])
    assert np.mean(binary.predict(X, X_cat) == y) == 1.0

    fan_out = ExtraTree(binary_categorical_splitting=False, selection_count=1, random_state=0)
    fan_out.fit(np.zeros((len(y), 0)), y, X_cat=X_cat, categories=[4])
    root = fan_out.get_tree_node_visitor()
    assert isinstance(root, CategoricalSplitNode)
    assert root.children_count == 4
    assert root.left_categories is None
    assert np.mean(fan_out.predict(np.zeros((len(y), 0)), X_cat) == y) == 1.0


def test_features_used_reported(clusters):
    X, y = clusters
    tree = ExtraTree(random_state=0).fit(X, y)
    used = set()
    for node, _ in tree.get_tree_node_visitor().iter_nodes():
        used |= node.features_used()
    assert 0 in used
    assert used <= {0, 1}


def test_large_constant_target_is_single_leaf():
    X = np.random.default_rng(0).normal(size=(200, 2))
    tree = ExtraTree(stop_size=2, random_state=0).fit(X, np.full(200, 1234567.1))

    assert tree.get_tree_node_visitor().is_leaf(), "상수 타겟은 분할하지 않아야 함"
    np.testing.assert_allclose(tree.predict(X), 1234567.1)


def test_constant_feature_gives_leaf():
    X = np.ones((20, 2))
    y = np.array([0, 1] * 10)
    tree = ExtraTree(random_state=0).fit(X, y)
    root = tree.get_tree_node_visitor()
    assert root.is_leaf()
    np.testing.assert_allclose(tree.classify(DataPoint([1.0, 1.0])), [0.5, 0.5])


def test_configuration():
    tree = ExtraTree(impurity_measure='gini')
    assert tree.impurity_measure is ImpurityMeasure.GINI
    with pytest.raises(ValueError):
        ExtraTree(stop_size=0)
    with pytest.raises(ValueError):
        ExtraTree(selection_count=0)


def test_list_pool_reuses_lists():
    pool = _ListPool()
    lists = pool.acquire(3)
    lists[0].append(1)
    pool.release(lists)
    assert len(pool) == 3

    again = pool.acquire(2)
    assert all(lst == [] for lst in again)
    assert len(pool) == 1
