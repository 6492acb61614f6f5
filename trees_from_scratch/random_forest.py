"""
Random Forest - From Scratch Implementation
===========================================

배깅(Bootstrap Aggregating) + 랜덤 피처 선택을 결합한 앙상블 방법

수학적 배경:
-----------
1. 배깅 (Bootstrap Aggregating):
   - 원본 데이터에서 복원 추출로 부트스트랩 샘플 생성
   - 각 샘플로 독립적인 트리 학습
   - 분산 감소: Var(평균) = Var(개별) / n (독립인 경우)

2. 랜덤 피처 선택:
   - 각 노드에서 sqrt(d) (분류) 또는 d/3 (회귀) 개의 피처만 고려
   - 트리 간 상관관계 감소 → 앙상블 효과 증대

3. Out-of-Bag (OOB) 오차:
   - 각 트리 학습에 사용되지 않은 샘플(~37%)로 오차 추정
   - 별도의 검증 세트 없이 일반화 오차 추정 가능

각 트리는 가지치기 없는 RandomDecisionTree 입니다.

Author: Trees From Scratch Project
"""

from typing import Optional

import numpy as np

from .decision_tree import RandomDecisionTree
from .ensemble import ForestBase
from .impurity import ImpurityMeasure
from .pruning import PruningMethod


class RandomForest(ForestBase):
    """
    Random Forest (From Scratch)

    Parameters
    ----------
    forest_size : int, default=100
        트리 개수

    max_depth : int, default=None
        각 트리의 최대 깊이. None이면 완전히 확장

    min_samples : int, default=10
        노드를 만들기 위한 최소 샘플 수

    gain_method : ImpurityMeasure, default=INFORMATION_GAIN_RATIO
        노드 스텀프의 분할 기준

    나머지 파라미터는 ForestBase 참고.

    Examples
    --------
    >>> from trees_from_scratch import RandomForest
    >>> import numpy as np
    >>> X = np.random.randn(200, 5)
    >>> y = (X[:, 0] + X[:, 1] > 0).astype(int)
    >>> rf = RandomForest(forest_size=20, use_out_of_bag_error=True, random_state=0)
    >>> rf.fit(X, y)
    >>> rf.oob_error_
    """

    def __init__(
        self,
        forest_size: int = 100,
        max_depth: Optional[int] = None,
        min_samples: int = 10,
        gain_method: ImpurityMeasure = ImpurityMeasure.INFORMATION_GAIN_RATIO,
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
        # 설정 검사는 트리 학습기에 맡김
        self._template = RandomDecisionTree(pruning_method=PruningMethod.NONE)
        self.max_depth = max_depth
        self.min_samples = min_samples
        self.gain_method = gain_method

    @property
    def max_depth(self) -> Optional[int]:
        return self._template.max_depth

    @max_depth.setter
    def max_depth(self, value):
        self._template.max_depth = value

    @property
    def min_samples(self) -> int:
        return self._template.min_samples

    @min_samples.setter
    def min_samples(self, value):
        self._template.min_samples = value

    @property
    def gain_method(self) -> ImpurityMeasure:
        return self._template.gain_method

    @gain_method.setter
    def gain_method(self, value):
        self._template.gain_method = value

    def _new_tree(self, task: str, feature_samples: int, rng: np.random.Generator) -> RandomDecisionTree:
        tree = self._template.clone()
        tree.feature_samples = feature_samples
        tree.random_state = rng
        return tree
