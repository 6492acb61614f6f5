"""
데이터 모델 검증
"""

import numpy as np
import pandas as pd
import pytest

from trees_from_scratch import (
    CategoricalData,
    ClassificationDataSet,
    DataPoint,
    RegressionDataSet,
    from_arrays,
    from_frame,
)


def test_from_arrays_chooses_task():
    X = np.arange(12, dtype=float).reshape(6, 2)
    classification = from_arrays(X, np.array([0, 1, 2, 0, 1, 2]))
    regression = from_arrays(X, np.linspace(0, 1, 6))

    assert isinstance(classification, ClassificationDataSet)
    assert classification.n_classes == 3
    assert isinstance(regression, RegressionDataSet)
    assert regression.num_features == 2


def test_unified_feature_index(categorical_dataset):
    """수치형 다음에 범주형 인덱스"""
    point = categorical_dataset.get_data_point(0)
    assert categorical_dataset.num_numeric_features == 2
    assert categorical_dataset.num_categorical_features == 1
    assert point.num_features == 3
    assert categorical_dataset.categories[0].n_categories == 4


def test_missing_values():
    cats = (CategoricalData(3),)
    point = DataPoint([1.0, np.nan], [-1], cats)
    assert not point.is_missing(0)
    assert point.is_missing(1)
    assert point.is_missing(2)


def test_data_point_is_read_only():
    point = DataPoint([1.0, 2.0])
    with pytest.raises(ValueError):
        point.numeric[0] = 5.0
    with pytest.raises(ValueError):
        DataPoint([1.0], weight=-1.0)

    heavier = point.with_weight(3.0)
    assert heavier.weight == 3.0
    assert point.weight == 1.0


def test_sampled_repeats_points():
    X = np.arange(8, dtype=float).reshape(4, 2)
    data = from_arrays(X, np.array([0, 1, 0, 1]))
    sample = data.sampled([2, 0, 1, 0])

    assert len(sample) == 3
    np.testing.assert_array_equal(sample.targets, [0, 0, 0])
    np.testing.assert_array_equal(sample.numeric_matrix()[:, 0], [0.0, 0.0, 4.0])
    assert sample.categorical_matrix().shape == (3, 0)
    assert sample.n_classes == 2

    with pytest.raises(ValueError):
        data.sampled([1, 1])


def test_class_counts_weighted():
    X = np.zeros((4, 1))
    data = from_arrays(X, np.array([0, 1, 1, 0]), sample_weight=[1.0, 2.0, 3.0, 0.5])
    np.testing.assert_allclose(data.class_counts(), [1.5, 5.0])
    assert len(data.get_class_subset(1)) == 2


def test_invalid_targets():
    points = [DataPoint([0.0]), DataPoint([1.0])]
    with pytest.raises(ValueError):
        ClassificationDataSet(points, [0, 3], 2)
    with pytest.raises(ValueError):
        RegressionDataSet(points, [1.0])


def test_from_frame():
    """category/object 열은 범주형, NaN은 결측 코드 -1"""
    df = pd.DataFrame({
        'a': [1.0, 2.0, np.nan, 4.0],
        'color': ['red', 'blue', None, 'red'],
        'label': ['yes', 'no', 'yes', 'no'],
    })
    data = from_frame(df, 'label')

    assert isinstance(data, ClassificationDataSet)
    assert data.num_numeric_features == 1
    assert data.num_categorical_features == 1
    assert data.predicting.category_names == ('no', 'yes')
    assert data.get_data_point(2).is_missing(0)
    assert data.get_data_point(2).is_missing(1)
    assert data.categories[0].n_categories == 2

    with pytest.raises(ValueError):
        from_frame(df, 'missing')


def test_from_frame_regression():
    df = pd.DataFrame({'x': [0.0, 1.0, 2.0], 'y': [0.5, 1.5, 2.5]})
    data = from_frame(df, 'y')
    assert isinstance(data, RegressionDataSet)
    assert data.get_target(2) == pytest.approx(2.5)
