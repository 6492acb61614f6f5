"""
테스트 공용 데이터
"""

import matplotlib

matplotlib.use('Agg')

import numpy as np
import pytest

from trees_from_scratch import from_arrays


def make_clusters(n_per_class: int, seed: int):
    """x0로만 구분되는 두 가우시안 군집 (x1은 잡음)"""
    rng = np.random.default_rng(seed)
    X0 = np.column_stack([rng.normal(-3.0, 1.0, n_per_class), rng.normal(0.0, 1.0, n_per_class)])
    X1 = np.column_stack([rng.normal(3.0, 1.0, n_per_class), rng.normal(0.0, 1.0, n_per_class)])
    X = np.vstack([X0, X1])
    y = np.repeat([0, 1], n_per_class)
    return X, y


@pytest.fixture
def clusters():
    """학습용 100개 (클래스당 50개)"""
    return make_clusters(50, seed=42)


@pytest.fixture
def clusters_holdout():
    return make_clusters(50, seed=7)


@pytest.fixture
def cluster_dataset(clusters):
    X, y = clusters
    return from_arrays(X, y)


@pytest.fixture
def regression_data():
    rng = np.random.default_rng(0)
    X = rng.uniform(-2, 2, size=(300, 3))
    y = 3.0 * X[:, 0] + 0.1 * rng.normal(size=300)
    return X, y


@pytest.fixture
def regression_dataset(regression_data):
    X, y = regression_data
    return from_arrays(X, y)


@pytest.fixture
def categorical_data():
    """
    범주형 피처 하나(4개 범주)가 클래스를 결정하는 데이터

    범주 0, 1 → 클래스 0 / 범주 2, 3 → 클래스 1
    """
    rng = np.random.default_rng(3)
    n = 200
    X = rng.normal(size=(n, 2))
    X_cat = rng.integers(0, 4, size=(n, 1))
    y = (X_cat[:, 0] >= 2).astype(int)
    return X, X_cat, y


@pytest.fixture
def categorical_dataset(categorical_data):
    X, X_cat, y = categorical_data
    return from_arrays(X, y, X_cat=X_cat, categories=[4])
