"""
데이터 모델
===========

트리 학습기가 공유하는 데이터 표현.

- CategoricalData: 범주형 속성 메타데이터 (범주 개수, 이름)
- DataPoint: 수치형 벡터 + 범주형 벡터 + 가중치 (불변)
- DataPointPair: 학습용 (DataPoint, target) 쌍
- ClassificationDataSet / RegressionDataSet: 점 단위 접근이 가능한 데이터셋

피처 인덱스:
-----------
수치형 피처는 0 .. n_num-1, 범주형 피처는 n_num .. n_num+n_cat-1 의
하나의 정수 공간을 사용합니다.

결측값:
------
수치형은 NaN, 범주형은 음수 값이 결측입니다.

Author: Trees From Scratch Project
"""

import dataclasses
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class CategoricalData:
    """범주형 속성 하나의 메타데이터"""

    n_categories: int
    name: Optional[str] = None
    category_names: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if int(self.n_categories) < 1:
            raise ValueError(f"범주 개수는 1 이상이어야 합니다: {self.n_categories}")
        object.__setattr__(self, 'n_categories', int(self.n_categories))
        if self.category_names is not None:
            names = tuple(str(n) for n in self.category_names)
            if len(names) != self.n_categories:
                raise ValueError(
                    f"범주 이름 수가 일치하지 않습니다: {len(names)} vs {self.n_categories}"
                )
            object.__setattr__(self, 'category_names', names)


def _frozen_array(values, dtype) -> np.ndarray:
    arr = np.array(values, dtype=dtype).ravel()
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class DataPoint:
    """
    하나의 데이터 포인트

    Parameters
    ----------
    numeric : array-like of float
        수치형 피처 (NaN = 결측)
    categorical : array-like of int
        범주형 피처 (음수 = 결측)
    categorical_data : tuple of CategoricalData
        범주형 피처 메타데이터
    weight : float
        가중치 (0 이상)
    """

    numeric: np.ndarray
    categorical: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    categorical_data: Tuple[CategoricalData, ...] = ()
    weight: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, 'numeric', _frozen_array(self.numeric, np.float64))
        object.__setattr__(self, 'categorical', _frozen_array(self.categorical, np.int64))
        object.__setattr__(self, 'categorical_data', tuple(self.categorical_data))
        weight = float(self.weight)
        if not weight >= 0:
            raise ValueError(f"가중치는 0 이상이어야 합니다: {self.weight}")
        object.__setattr__(self, 'weight', weight)
        if self.categorical_data and len(self.categorical_data) != len(self.categorical):
            raise ValueError(
                "범주형 값과 메타데이터 수가 일치하지 않습니다: "
                f"{len(self.categorical)} vs {len(self.categorical_data)}"
            )

    @property
    def num_numeric_features(self) -> int:
        return len(self.numeric)

    @property
    def num_categorical_features(self) -> int:
        return len(self.categorical)

    @property
    def num_features(self) -> int:
        return len(self.numeric) + len(self.categorical)

    def is_missing(self, feature: int) -> bool:
        """통합 피처 인덱스 기준 결측 여부"""
        n_num = len(self.numeric)
        if feature < n_num:
            return bool(np.isnan(self.numeric[feature]))
        return self.categorical[feature - n_num] < 0

    def with_weight(self, weight: float) -> 'DataPoint':
        """가중치만 바꾼 복사본"""
        return dataclasses.replace(self, weight=weight)


@dataclass(frozen=True)
class DataPointPair:
    """학습용 (데이터 포인트, 타겟) 쌍. 분류는 클래스 인덱스, 회귀는 실수."""

    point: DataPoint
    target: Union[int, float]

    @property
    def weight(self) -> float:
        return self.point.weight


class _DataSet:
    """공통 데이터셋 동작"""

    def __init__(self, points: Sequence[DataPoint], targets,
                 categories: Optional[Sequence[CategoricalData]] = None):
        self._points: List[DataPoint] = list(points)
        if len(self._points) == 0:
            raise ValueError("데이터 포인트가 하나 이상 필요합니다.")
        targets = np.asarray(targets)
        if targets.ndim != 1 or len(targets) != len(self._points):
            raise ValueError(
                f"포인트와 타겟 수가 일치하지 않습니다: {len(self._points)} vs {targets.size}"
            )

        first = self._points[0]
        self._n_numeric = first.num_numeric_features
        self._n_categorical = first.num_categorical_features
        for p in self._points:
            if (p.num_numeric_features != self._n_numeric
                    or p.num_categorical_features != self._n_categorical):
                raise ValueError("모든 포인트의 피처 구성이 같아야 합니다.")

        if categories is None:
            categories = first.categorical_data
        self._categories = tuple(categories)
        if len(self._categories) != self._n_categorical:
            raise ValueError("범주형 메타데이터 수가 범주형 피처 수와 다릅니다.")
        self._targets = targets

    def __len__(self) -> int:
        return len(self._points)

    @property
    def size(self) -> int:
        return len(self._points)

    def get_data_point(self, i: int) -> DataPoint:
        return self._points[i]

    def get_target(self, i: int):
        return self._targets[i].item()

    @property
    def points(self) -> List[DataPoint]:
        return list(self._points)

    @property
    def targets(self) -> np.ndarray:
        return self._targets.copy()

    @property
    def weights(self) -> np.ndarray:
        return np.array([p.weight for p in self._points])

    @property
    def num_numeric_features(self) -> int:
        return self._n_numeric

    @property
    def num_categorical_features(self) -> int:
        return self._n_categorical

    @property
    def num_features(self) -> int:
        return self._n_numeric + self._n_categorical

    @property
    def categories(self) -> Tuple[CategoricalData, ...]:
        return self._categories

    def numeric_matrix(self) -> np.ndarray:
        return np.array([p.numeric for p in self._points]).reshape(len(self), self._n_numeric)

    def categorical_matrix(self) -> np.ndarray:
        return np.array(
            [p.categorical for p in self._points], dtype=np.int64
        ).reshape(len(self), self._n_categorical)

    def as_pairs(self) -> List[DataPointPair]:
        return [
            DataPointPair(p, t)
            for p, t in zip(self._points, self._targets.tolist())
        ]

    def subset(self, indices):
        """주어진 인덱스의 포인트로 새 데이터셋 생성 (중복 허용)"""
        indices = np.asarray(indices, dtype=np.int64)
        return self._derive([self._points[i] for i in indices], self._targets[indices])

    def sampled(self, counts):
        """
        부트스트랩 샘플 구체화

        counts[i] 번 만큼 포인트 i를 반복합니다.
        """
        counts = np.asarray(counts, dtype=np.int64)
        if len(counts) != len(self):
            raise ValueError(f"counts 길이가 데이터셋 크기와 다릅니다: {len(counts)} vs {len(self)}")
        if np.any(counts < 0):
            raise ValueError("counts는 0 이상이어야 합니다.")
        return self.subset(np.repeat(np.arange(len(self)), counts))

    def _derive(self, points, targets):
        raise NotImplementedError


class ClassificationDataSet(_DataSet):
    """
    분류용 데이터셋

    Parameters
    ----------
    points : sequence of DataPoint
    targets : array-like of int
        클래스 인덱스 [0, n_classes)
    predicting : CategoricalData or int
        예측 대상 클래스 메타데이터 (또는 클래스 수)
    """

    def __init__(self, points, targets, predicting: Union[CategoricalData, int],
                 categories=None):
        if not isinstance(predicting, CategoricalData):
            predicting = CategoricalData(int(predicting), name='target')
        targets = np.asarray(targets)
        if targets.dtype.kind not in 'iub':
            rounded = np.asarray(targets, dtype=np.float64)
            if not np.all(np.equal(np.mod(rounded, 1), 0)):
                raise ValueError("분류 타겟은 정수 클래스 인덱스여야 합니다.")
        targets = targets.astype(np.int64)
        if targets.size and (targets.min() < 0 or targets.max() >= predicting.n_categories):
            raise ValueError(
                f"클래스 인덱스는 [0, {predicting.n_categories}) 범위여야 합니다."
            )
        super().__init__(points, targets, categories)
        self._predicting = predicting

    @property
    def predicting(self) -> CategoricalData:
        return self._predicting

    @property
    def n_classes(self) -> int:
        return self._predicting.n_categories

    def get_target(self, i: int) -> int:
        return int(self._targets[i])

    def get_class_subset(self, c: int) -> List[DataPoint]:
        return [p for p, t in zip(self._points, self._targets) if t == c]

    def class_counts(self) -> np.ndarray:
        """클래스별 가중치 합"""
        return np.bincount(self._targets, weights=self.weights, minlength=self.n_classes)

    def _derive(self, points, targets):
        return ClassificationDataSet(points, targets, self._predicting, self._categories)

    def __repr__(self) -> str:
        return (
            f"ClassificationDataSet(n={len(self)}, numeric={self._n_numeric}, "
            f"categorical={self._n_categorical}, classes={self.n_classes})"
        )


class RegressionDataSet(_DataSet):
    """회귀용 데이터셋"""

    def __init__(self, points, targets, categories=None):
        targets = np.asarray(targets, dtype=np.float64)
        super().__init__(points, targets, categories)

    def get_target(self, i: int) -> float:
        return float(self._targets[i])

    def _derive(self, points, targets):
        return RegressionDataSet(points, targets, self._categories)

    def __repr__(self) -> str:
        return (
            f"RegressionDataSet(n={len(self)}, numeric={self._n_numeric}, "
            f"categorical={self._n_categorical})"
        )


def is_classification_target(y) -> bool:
    """정수/불리언 dtype이면 분류로 취급"""
    return np.asarray(y).dtype.kind in 'iub'


def _as_categories(categories, X_cat: np.ndarray) -> Tuple[CategoricalData, ...]:
    if categories is None:
        # 관측된 최대값으로 범주 수 추정
        return tuple(
            CategoricalData(max(1, int(X_cat[:, j].max(initial=-1)) + 1), name=f"cat_{j}")
            for j in range(X_cat.shape[1])
        )
    result = []
    for j, c in enumerate(categories):
        result.append(c if isinstance(c, CategoricalData) else CategoricalData(int(c), name=f"cat_{j}"))
    if len(result) != X_cat.shape[1]:
        raise ValueError(
            f"categories 수가 범주형 열 수와 다릅니다: {len(result)} vs {X_cat.shape[1]}"
        )
    return tuple(result)


def build_points(X, X_cat=None, categories=None, sample_weight=None) -> List[DataPoint]:
    """배열을 DataPoint 목록으로 변환"""
    X = np.asarray(X, dtype=np.float64)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    n_samples = X.shape[0]

    if X_cat is None:
        X_cat = np.zeros((n_samples, 0), dtype=np.int64)
    else:
        X_cat = np.asarray(X_cat, dtype=np.int64)
        if X_cat.ndim == 1:
            X_cat = X_cat.reshape(-1, 1)
        if X_cat.shape[0] != n_samples:
            raise ValueError(
                f"X와 X_cat의 샘플 수가 일치하지 않습니다: {n_samples} vs {X_cat.shape[0]}"
            )
    cats = _as_categories(categories, X_cat)

    if sample_weight is None:
        sample_weight = np.ones(n_samples)
    sample_weight = np.asarray(sample_weight, dtype=np.float64).ravel()
    if len(sample_weight) != n_samples:
        raise ValueError(
            f"sample_weight 길이가 샘플 수와 다릅니다: {len(sample_weight)} vs {n_samples}"
        )

    return [
        DataPoint(X[i], X_cat[i], cats, sample_weight[i])
        for i in range(n_samples)
    ]


def from_arrays(X, y, X_cat=None, categories=None, sample_weight=None,
                classification: Optional[bool] = None):
    """
    numpy 배열로 데이터셋 생성

    Parameters
    ----------
    X : ndarray of shape (n_samples, n_numeric)
    y : ndarray of shape (n_samples,)
    X_cat : ndarray of shape (n_samples, n_categorical), optional
    categories : sequence of CategoricalData or int, optional
        범주형 열별 범주 수. 없으면 관측값으로 추정
    sample_weight : ndarray of shape (n_samples,), optional
    classification : bool, optional
        None이면 y의 dtype으로 결정 (정수/불리언 = 분류)

    Returns
    -------
    ClassificationDataSet or RegressionDataSet
    """
    y = np.asarray(y).ravel()
    points = build_points(X, X_cat, categories, sample_weight)
    if len(points) != len(y):
        raise ValueError(f"X와 y의 샘플 수가 일치하지 않습니다: {len(points)} vs {len(y)}")

    if classification is None:
        classification = is_classification_target(y)
    cats = points[0].categorical_data if points else ()
    if classification:
        y = y.astype(np.int64)
        n_classes = max(2, int(y.max()) + 1) if len(y) else 2
        return ClassificationDataSet(points, y, n_classes, cats)
    return RegressionDataSet(points, y.astype(np.float64), cats)


def from_frame(df: pd.DataFrame, target: str, classification: Optional[bool] = None):
    """
    pandas DataFrame으로 데이터셋 생성

    숫자가 아닌 열 (category, object, 문자열)은 범주형 피처 (NaN은 -1 코드 = 결측),
    나머지 열은 수치형 피처가 됩니다.
    """
    if target not in df.columns:
        raise ValueError(f"타겟 열이 없습니다: {target}")

    features = df.drop(columns=[target])
    cat_columns = [
        c for c in features.columns
        if not pd.api.types.is_numeric_dtype(features[c].dtype)
    ]
    num_columns = [c for c in features.columns if c not in cat_columns]

    X = features[num_columns].to_numpy(dtype=np.float64, na_value=np.nan)
    categories = []
    codes = []
    for c in cat_columns:
        cat = pd.Categorical(features[c])
        codes.append(np.asarray(cat.codes, dtype=np.int64))
        categories.append(CategoricalData(
            max(1, len(cat.categories)), name=str(c),
            category_names=tuple(str(v) for v in cat.categories) or ('missing',),
        ))
    X_cat = np.column_stack(codes) if codes else None
    points = build_points(X.reshape(len(df), len(num_columns)), X_cat, categories)

    y = df[target]
    if not pd.api.types.is_numeric_dtype(y.dtype):
        labels = pd.Categorical(y)
        if np.any(labels.codes < 0):
            raise ValueError("타겟에 결측값이 있습니다.")
        predicting = CategoricalData(
            len(labels.categories), name=str(target),
            category_names=tuple(str(v) for v in labels.categories),
        )
        return ClassificationDataSet(points, labels.codes.astype(np.int64), predicting, categories)

    values = y.to_numpy()
    if classification is None:
        classification = is_classification_target(values)
    if classification:
        values = values.astype(np.int64)
        n_classes = max(2, int(values.max()) + 1)
        return ClassificationDataSet(points, values, CategoricalData(n_classes, name=str(target)), categories)
    return RegressionDataSet(points, values.astype(np.float64), categories)
