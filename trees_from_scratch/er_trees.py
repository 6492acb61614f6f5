"""
ERTrees - Extremely Randomized Trees 앙상블
===========================================

ExtraTree 여러 개를 배깅으로 학습해 다수결/평균으로 합칩니다.
노드마다 시도할 피처 수(selection_count)는 feature_samples로 정해집니다.

Author: Trees From Scratch Project
"""

from typing import Optional

import numpy as np

from .ensemble import ForestBase
from .extra_tree import ExtraTree
from .impurity import ImpurityMeasure, measure_from_name


class ERTrees(ForestBase):
    """
    Extremely Randomized Trees (From Scratch)

    Parameters
    ----------
    forest_size : int, default=100
        트리 개수

    stop_size : int, default=None
        각 트리의 정지 샘플 수. None이면 분류 2, 회귀 5

    impurity_measure : ImpurityMeasure, default=NMI
        분류 이득 측정 방식

    binary_categorical_splitting : bool, default=True

    나머지 파라미터는 ForestBase 참고.
    """

    def __init__(
        self,
        forest_size: int = 100,
        stop_size: Optional[int] = None,
        impurity_measure: ImpurityMeasure = ImpurityMeasure.NMI,
        binary_categorical_splitting: bool = True,
        extra_samples: int = 0,
        feature_samples: Optional[int] = None,
        use_out_of_bag_error: bool = False,
        use_out_of_bag_importance: bool = False,
        bootstrap: bool = True,
        n_jobs: int = 1,
        random_state=None,
        verbose: int = 0
    ):
        super().__init__(
            forest_size=forest_size,
            extra_samples=extra_samples,
            feature_samples=feature_samples,
            use_out_of_bag_error=use_out_of_bag_error,
            use_out_of_bag_importance=use_out_of_bag_importance,
            bootstrap=bootstrap,
            n_jobs=n_jobs,
            random_state=random_state,
            verbose=verbose,
        )
        self.stop_size = stop_size
        self.impurity_measure = impurity_measure
        self.binary_categorical_splitting = binary_categorical_splitting

    @property
    def stop_size(self) -> Optional[int]:
        return self._stop_size

    @stop_size.setter
    def stop_size(self, value):
        if value is not None and (int(value) != value or value < 1):
            raise ValueError(f"stop_size는 1 이상의 정수 또는 None이어야 합니다: {value}")
        self._stop_size = None if value is None else int(value)

    @property
    def impurity_measure(self) -> ImpurityMeasure:
        return self._impurity_measure

    @impurity_measure.setter
    def impurity_measure(self, value):
        self._impurity_measure = measure_from_name(value)

    def _new_tree(self, task: str, feature_samples: int, rng: np.random.Generator) -> ExtraTree:
        stop_size = self._stop_size
        if stop_size is None:
            stop_size = 2 if task == 'classification' else 5
        return ExtraTree(
            selection_count=feature_samples,
            stop_size=stop_size,
            impurity_measure=self._impurity_measure,
            binary_categorical_splitting=self.binary_categorical_splitting,
            random_state=rng,
        )
