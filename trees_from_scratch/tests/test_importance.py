"""
피처 중요도 (MDI, ImportanceByUses, MDA) 검증
"""

import numpy as np
import pytest

from trees_from_scratch import (
    MDA,
    MDI,
    DecisionTree,
    ExtraTree,
    ImportanceByUses,
    ImpurityMeasure,
    from_arrays,
)
from trees_from_scratch.node import LeafNode, NumericSplitNode


def _two_level_tree():
    """
    루트는 x0, 왼쪽 자식은 x1로 분할

          x0 <= 0
         /       \\
     x1 <= 0    [0, 1]
     /     \\
  [1, 0]  [0, 1]
    """
    left = NumericSplitNode(1, 0.0, np.array([0.5, 0.5]))
    left.set_path(0, LeafNode(np.array([1.0, 0.0])))
    left.set_path(1, LeafNode(np.array([0.0, 1.0])))
    root = NumericSplitNode(0, 0.0, np.array([0.25, 0.75]), path_weights=[0.5, 0.5])
    root.set_path(0, left)
    root.set_path(1, LeafNode(np.array([0.0, 1.0])))
    return root


def _two_level_data():
    X = np.array([[-1.0, -1.0], [-1.0, 1.0], [1.0, -1.0], [1.0, 1.0]])
    y = np.array([0, 1, 1, 1])
    return from_arrays(X, y)


def test_mdi_hand_computed():
    """
    루트: Gini [1,3] = 0.375, 왼쪽 [1,1] = 0.5, 오른쪽 0
          → (0.375 - 0.5 · 0.5) · 4/4 = 0.125
    왼쪽: Gini 0.5, 자식 모두 0 → 0.5 · 2/4 = 0.25
    """
    importances = MDI().get_importance_stats(_two_level_tree(), _two_level_data())
    np.testing.assert_allclose(importances, [0.125, 0.25])


def test_mdi_on_trained_tree(cluster_dataset):
    tree = DecisionTree(random_state=0).train_c(cluster_dataset)
    importances = MDI(ImpurityMeasure.INFORMATION_GAIN).get_importance_stats(tree, cluster_dataset)

    assert importances.shape == (2,)
    assert np.all(importances >= -1e-12)
    assert np.argmax(importances) == 0, f"x0가 가장 중요해야 함: {importances}"


def test_mdi_requires_classification(regression_dataset):
    tree = ExtraTree(random_state=0).train(regression_dataset)
    with pytest.raises(ValueError):
        MDI().get_importance_stats(tree, regression_dataset)


def test_importance_by_uses():
    root = _two_level_tree()
    data = _two_level_data()

    weighted = ImportanceByUses().get_importance_stats(root, data)
    np.testing.assert_allclose(weighted, [1.0, 0.5])

    counted = ImportanceByUses(weight_by_depth=False).get_importance_stats(root, data)
    np.testing.assert_allclose(counted, [1.0, 1.0])


def test_importance_by_uses_ignores_disabled_paths():
    root = _two_level_tree()
    root.disable_path(0)
    importances = ImportanceByUses().get_importance_stats(root, _two_level_data())
    np.testing.assert_allclose(importances, [1.0, 0.0])


def test_mda_classification():
    """이진 분할의 경로를 바꾸면 항상 반대 자식으로 감"""
    root = NumericSplitNode(0, 0.0, np.array([0.5, 0.5]))
    root.set_path(0, LeafNode(np.array([1.0, 0.0])))
    root.set_path(1, LeafNode(np.array([0.0, 1.0])))
    data = from_arrays(np.array([[-1.0, 5.0], [-2.0, 5.0], [1.0, 5.0], [2.0, 5.0]]),
                       np.array([0, 0, 1, 1]))

    importances = MDA(random_state=0).get_importance_stats(root, data)
    assert importances[0] == pytest.approx(1.0 / 1.001)
    assert importances[1] == 0.0, "트리가 쓰지 않는 피처는 0"


def test_mda_regression():
    root = NumericSplitNode(0, 0.0, 0.0)
    root.set_path(0, LeafNode(-1.0))
    root.set_path(1, LeafNode(1.0))
    data = from_arrays(np.array([[-1.0], [1.0]]), np.array([-1.0, 1.0]))

    importances = MDA(random_state=0).get_importance_stats(root, data)
    assert importances[0] == pytest.approx(4.0 / 1e-3)


def test_mda_on_trained_tree(regression_dataset):
    tree = DecisionTree(random_state=0).train(regression_dataset)
    importances = MDA(random_state=1).get_importance_stats(tree, regression_dataset)
    assert np.argmax(importances) == 0
    assert importances[0] > 0
