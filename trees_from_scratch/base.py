"""
트리 학습기 공통 기반 클래스
============================

- get_params / set_params / clone: 생성자 인자 기반 설정 관리
- fit / predict / predict_proba: numpy 배열 인터페이스
- 학습 여부와 피처 구성 검사

각 학습기는 train_c(dataset), train(dataset), classify(point), regress(point)를
구현하고, 이 클래스가 배열 인터페이스를 그 위에 얹습니다.
"""

import copy
import inspect
import logging
from typing import Any, Dict, Optional

import numpy as np

from .data import DataPoint, build_points, from_arrays
from .exceptions import ModelMismatchError, NotFittedError

logger = logging.getLogger(__name__)


def check_random_state(random_state) -> np.random.Generator:
    """None / int / Generator를 Generator로 변환"""
    if isinstance(random_state, np.random.Generator):
        return random_state
    if random_state is None or isinstance(random_state, (int, np.integer)):
        return np.random.default_rng(random_state)
    raise ValueError(f"random_state는 None, int, Generator 중 하나여야 합니다: {random_state!r}")


def seed_sequence(random_state) -> np.random.SeedSequence:
    """random_state로부터 자식 시드를 만들 수 있는 SeedSequence 생성"""
    if isinstance(random_state, np.random.Generator):
        return np.random.SeedSequence(int(random_state.integers(0, 2**63 - 1)))
    if random_state is None or isinstance(random_state, (int, np.integer)):
        return np.random.SeedSequence(random_state)
    raise ValueError(f"random_state는 None, int, Generator 중 하나여야 합니다: {random_state!r}")


class BaseTreeLearner:
    """트리 학습기 공통 동작"""

    _task: Optional[str] = None

    @classmethod
    def _param_names(cls):
        signature = inspect.signature(cls.__init__)
        return [
            name for name, p in signature.parameters.items()
            if name != 'self' and p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
        ]

    def get_params(self) -> Dict[str, Any]:
        """생성자 인자 이름과 현재 값"""
        return {name: getattr(self, name) for name in self._param_names()}

    def set_params(self, **params) -> 'BaseTreeLearner':
        """설정값 변경 (각 setter가 범위를 검사)"""
        valid = set(self._param_names())
        for name, value in params.items():
            if name not in valid:
                raise ValueError(f"{type(self).__name__}에 없는 파라미터입니다: {name}")
            setattr(self, name, value)
        return self

    def clone(self):
        """학습 상태까지 포함한 깊은 복사본"""
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # 학습 상태 검사
    # ------------------------------------------------------------------

    @property
    def is_fitted(self) -> bool:
        return self._task is not None

    def _remember_layout(self, dataset, task: str) -> None:
        self._task = task
        self.n_numeric_features_ = dataset.num_numeric_features
        self.n_categorical_features_ = dataset.num_categorical_features
        self.categories_ = dataset.categories
        if task == 'classification':
            self.predicting_ = dataset.predicting
            self.n_classes_ = dataset.n_classes

    def _check_fitted(self, task: Optional[str] = None) -> None:
        if self._task is None:
            raise NotFittedError("모델이 학습되지 않았습니다. fit() 또는 train_c()/train()을 먼저 호출하세요.")
        if task is not None and self._task != task:
            raise NotFittedError(f"모델이 {self._task}용으로 학습되었습니다: {task} 예측을 할 수 없습니다.")

    def _check_point(self, point: DataPoint) -> None:
        if (point.num_numeric_features != self.n_numeric_features_
                or point.num_categorical_features != self.n_categorical_features_):
            raise ModelMismatchError(
                f"학습 때 수치형 {self.n_numeric_features_}개, 범주형 {self.n_categorical_features_}개 "
                f"피처였지만 수치형 {point.num_numeric_features}개, "
                f"범주형 {point.num_categorical_features}개가 들어왔습니다."
            )

    # ------------------------------------------------------------------
    # 배열 인터페이스
    # ------------------------------------------------------------------

    def fit(self, X: np.ndarray, y: np.ndarray, X_cat: Optional[np.ndarray] = None,
            sample_weight: Optional[np.ndarray] = None, categories=None):
        """
        배열로 학습

        Parameters
        ----------
        X : ndarray of shape (n_samples, n_numeric)
            수치형 피처 (NaN = 결측)
        y : ndarray of shape (n_samples,)
            정수/불리언 dtype이면 분류, 아니면 회귀
        X_cat : ndarray of shape (n_samples, n_categorical), optional
            범주형 피처 (음수 = 결측)
        sample_weight : ndarray of shape (n_samples,), optional
        categories : sequence of int or CategoricalData, optional
            범주형 열별 범주 수

        Returns
        -------
        self
        """
        dataset = from_arrays(X, y, X_cat, categories, sample_weight)
        if hasattr(dataset, 'predicting'):
            self.train_c(dataset)
        else:
            self.train(dataset)
        return self

    def _points(self, X, X_cat=None):
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        if X_cat is None and self.n_categorical_features_ > 0:
            raise ModelMismatchError(
                f"범주형 피처 {self.n_categorical_features_}개가 필요합니다."
            )
        return build_points(X, X_cat, self.categories_ if X_cat is not None else None)

    def predict_proba(self, X: np.ndarray, X_cat: Optional[np.ndarray] = None) -> np.ndarray:
        """
        클래스 확률 예측

        Returns
        -------
        proba : ndarray of shape (n_samples, n_classes)
        """
        self._check_fitted('classification')
        return np.array([self.classify(p) for p in self._points(X, X_cat)])

    def predict(self, X: np.ndarray, X_cat: Optional[np.ndarray] = None) -> np.ndarray:
        """
        예측 (분류: 가장 확률이 높은 클래스, 회귀: 예측값)

        Returns
        -------
        y_pred : ndarray of shape (n_samples,)
        """
        self._check_fitted()
        if self._task == 'classification':
            return np.argmax(self.predict_proba(X, X_cat), axis=1)
        return np.array([self.regress(p) for p in self._points(X, X_cat)])

    def train_c(self, dataset):
        raise NotImplementedError

    def train(self, dataset):
        raise NotImplementedError

    def classify(self, point: DataPoint) -> np.ndarray:
        raise NotImplementedError

    def regress(self, point: DataPoint) -> float:
        raise NotImplementedError
