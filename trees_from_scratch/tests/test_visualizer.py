"""
시각화 도구 검증 (Agg 백엔드)
"""

import matplotlib.pyplot as plt
import numpy as np

from trees_from_scratch import (
    DecisionTree,
    ExtraTree,
    MDI,
    OnlineStatistics,
    RandomForest,
    TreeVisualizer,
)


def test_plot_decision_tree(clusters):
    X, y = clusters
    tree = DecisionTree(random_state=0).fit(X, y)
    viz = TreeVisualizer()

    fig = viz.plot_tree(tree, feature_names=['x0', 'x1'], max_depth=2)
    ax = fig.axes[0]
    labels = [t.get_text() for t in ax.texts]
    assert any('x0' in label for label in labels), f"루트 피처 이름이 없음: {labels}"
    plt.close(fig)


def test_plot_extra_tree_regression(regression_data):
    X, y = regression_data
    tree = ExtraTree(random_state=0).fit(X, y)

    fig = TreeVisualizer().plot_tree(tree.get_tree_node_visitor(), max_depth=1)
    # 루트 1개 + 자식 2개, 그리고 간선 번호 2개
    assert len(fig.axes[0].texts) == 5
    plt.close(fig)


def test_plot_feature_importance_from_stats(cluster_dataset):
    rf = RandomForest(forest_size=5, random_state=0).train_c(cluster_dataset)
    stats = rf.evaluate_feature_importance(cluster_dataset, MDI())
    assert all(isinstance(s, OnlineStatistics) for s in stats)

    fig = TreeVisualizer().plot_feature_importance(stats, feature_names=['x0', 'x1'])
    ax = fig.axes[0]
    assert len(ax.patches) == 2
    assert ax.get_yticklabels()[0].get_text() == 'x0'
    plt.close(fig)


def test_plot_feature_importance_top_k():
    importances = np.array([0.1, 0.5, 0.2, 0.05])
    fig = TreeVisualizer().plot_feature_importance(importances, top_k=2)
    ax = fig.axes[0]
    assert len(ax.patches) == 2
    assert [t.get_text() for t in ax.get_yticklabels()] == ['Feature 1', 'Feature 2']
    plt.close(fig)


def test_save_figure(tmp_path, clusters):
    X, y = clusters
    tree = DecisionTree(random_state=0).fit(X, y)
    viz = TreeVisualizer(dpi=50)
    fig = viz.plot_tree(tree)

    path = tmp_path / "tree.png"
    viz.save_figure(fig, str(path))
    assert path.exists() and path.stat().st_size > 0
    plt.close(fig)
