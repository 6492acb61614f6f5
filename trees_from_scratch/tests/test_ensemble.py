"""
RandomForest / ERTrees 검증

테스트 항목:
1. 트리 개수, 투표 비율 합 = 1
2. OOB 오차와 OOB 중요도
3. 회귀 예측 = 트리 예측 평균
4. 작업 스레드 수와 무관한 결과
5. 실패 전파
"""

import numpy as np
import pytest

from trees_from_scratch import (
    DataPoint,
    ERTrees,
    FailedToFitError,
    ImportanceByUses,
    NotFittedError,
    OnlineStatistics,
    RandomForest,
)
from trees_from_scratch.ensemble import ForestBase


def test_random_forest_classification(clusters, clusters_holdout):
    """두 군집 분류와 다수결 확률"""
    print("=" * 50)
    print("Test: Random Forest")
    print("=" * 50)

    X, y = clusters
    X_test, y_test = clusters_holdout
    rf = RandomForest(forest_size=15, random_state=42).fit(X, y)

    assert len(rf.trees_) == 15, f"트리 수 불일치: {len(rf.trees_)}"
    proba = rf.predict_proba(X_test)
    np.testing.assert_allclose(proba.sum(axis=1), 1.0)
    # 투표 비율은 1/M 단위
    np.testing.assert_allclose(proba * 15, np.round(proba * 15), atol=1e-9)

    accuracy = np.mean(rf.predict(X_test) == y_test)
    assert accuracy >= 0.95, f"정확도 부족: {accuracy}"

    print(f"  ✓ 트리 수: {len(rf.trees_)}")
    print(f"  ✓ 정확도: {accuracy:.2%}")


def test_out_of_bag_error(clusters):
    X, y = clusters
    rf = RandomForest(forest_size=20, use_out_of_bag_error=True, random_state=0).fit(X, y)

    assert rf.oob_error_ is not None, "OOB 오차가 계산되지 않음"
    assert 0.0 <= rf.oob_error_ < 0.1, f"OOB 오차 이상: {rf.oob_error_}"
    assert rf.oob_importances_ is None


def test_out_of_bag_importance(clusters):
    """정보가 있는 피처 x0의 중요도가 가장 큼"""
    X, y = clusters
    rf = RandomForest(forest_size=20, use_out_of_bag_importance=True, random_state=0).fit(X, y)

    assert rf.oob_importances_.shape == (2,)
    assert rf.oob_importances_[0] > rf.oob_importances_[1], f"중요도: {rf.oob_importances_}"


def test_no_bootstrap_has_no_out_of_bag(clusters):
    X, y = clusters
    rf = RandomForest(forest_size=3, bootstrap=False, use_out_of_bag_error=True,
                      random_state=0).fit(X, y)
    assert rf.oob_error_ is None


def test_evaluate_feature_importance(cluster_dataset):
    rf = RandomForest(forest_size=10, random_state=1).train_c(cluster_dataset)
    stats = rf.evaluate_feature_importance(cluster_dataset)

    assert len(stats) == 2
    assert all(isinstance(s, OnlineStatistics) for s in stats)
    assert stats[0].sum_of_weights == 10
    assert stats[0].mean > stats[1].mean

    by_uses = rf.evaluate_feature_importance(cluster_dataset, ImportanceByUses(weight_by_depth=False))
    assert by_uses[0].mean > by_uses[1].mean / 2, f"사용 횟수: {by_uses[0].mean}, {by_uses[1].mean}"


def test_random_forest_regression(regression_data, regression_dataset):
    X, y = regression_data
    rf = RandomForest(forest_size=10, feature_samples=3, use_out_of_bag_error=True,
                      random_state=0).fit(X, y)

    mse = np.mean((rf.predict(X) - y) ** 2)
    assert mse < 0.1 * np.var(y), f"MSE가 너무 큼: {mse}"
    assert rf.oob_error_ is not None and rf.oob_error_ < 0.2 * np.var(y)

    point = regression_dataset.get_data_point(0)
    expected = np.mean([tree.regress(point) for tree in rf.trees_])
    assert rf.regress(point) == pytest.approx(expected)

    stats = rf.evaluate_feature_importance(regression_dataset)
    assert stats[0].mean > stats[1].mean


def test_threads_do_not_change_result(clusters):
    X, y = clusters
    serial = RandomForest(forest_size=8, use_out_of_bag_error=True, random_state=3).fit(X, y)
    threaded = RandomForest(forest_size=8, use_out_of_bag_error=True, random_state=3,
                            n_jobs=3).fit(X, y)

    np.testing.assert_allclose(serial.predict_proba(X), threaded.predict_proba(X))
    assert serial.oob_error_ == pytest.approx(threaded.oob_error_)


def test_tree_failure_is_reported(clusters):
    X, y = clusters
    rf = RandomForest(forest_size=4, min_samples=500, n_jobs=2)
    with pytest.raises(FailedToFitError):
        rf.fit(X, y)
    assert not rf.is_fitted


def test_forest_configuration():
    rf = RandomForest(max_depth=3, min_samples=4, gain_method='gini')
    params = rf.get_params()
    assert params['max_depth'] == 3
    assert params['min_samples'] == 4
    assert params['gain_method'].name == 'GINI'

    with pytest.raises(ValueError):
        RandomForest(forest_size=0)
    with pytest.raises(ValueError):
        RandomForest(extra_samples=-1)
    with pytest.raises(ValueError):
        RandomForest(feature_samples=0)
    with pytest.raises(ValueError):
        RandomForest(min_samples=0)

    with pytest.raises(NotFittedError):
        rf.classify(DataPoint([0.0, 0.0]))
    with pytest.raises(NotImplementedError):
        rf.get_tree_node_visitor()


def test_extra_samples_grow_bootstrap(clusters):
    X, y = clusters
    rf = RandomForest(forest_size=5, extra_samples=50, random_state=0).fit(X, y)
    assert len(rf.trees_) == 5
    assert np.mean(rf.predict(X) == y) > 0.95


def test_er_trees_classification(clusters, clusters_holdout):
    X, y = clusters
    X_test, y_test = clusters_holdout
    et = ERTrees(forest_size=15, use_out_of_bag_error=True, random_state=0).fit(X, y)

    assert len(et.trees_) == 15
    assert np.mean(et.predict(X_test) == y_test) >= 0.95
    assert et.oob_error_ < 0.1
    assert et.trees_[0].stop_size == 2


def test_er_trees_regression(regression_data):
    X, y = regression_data
    et = ERTrees(forest_size=10, feature_samples=3, random_state=0).fit(X, y)

    mse = np.mean((et.predict(X) - y) ** 2)
    assert mse < 0.1 * np.var(y), f"MSE가 너무 큼: {mse}"
    assert et.trees_[0].stop_size == 5
    assert et.trees_[0].selection_count == 3


def test_er_trees_categorical(categorical_data):
    X, X_cat, y = categorical_data
    et = ERTrees(forest_size=10, feature_samples=3, random_state=0)
    et.fit(X, y, X_cat=X_cat, categories=[4])
    assert np.mean(et.predict(X, X_cat) == y) > 0.9

    with pytest.raises(ValueError):
        ERTrees(stop_size=0)


def test_forest_base_is_abstract():
    """트리 생성 방법이 없는 앙상블은 만들 수 없음"""
    with pytest.raises(TypeError):
        ForestBase()
