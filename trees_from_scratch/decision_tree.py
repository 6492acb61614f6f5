"""
Decision Tree - From Scratch Implementation
===========================================

DecisionStump을 노드마다 하나씩 학습해 재귀적으로 쌓는 결정 트리.
분류와 회귀를 모두 지원하며 범주형/수치형 피처와 결측값을 처리합니다.

학습 절차:
---------
1. (가지치기 사용 시) test_proportion 비율을 검증용으로 떼어냄
2. 루트부터 스텀프를 학습해 데이터를 경로별로 분할
3. 다음 경우 자식을 만들지 않음 (경로 비활성화 → 부모 스텀프의 경로 예측 사용)
   - depth > max_depth
   - 후보 속성이 없음
   - 샘플 수 < min_samples
4. 검증 데이터로 가지치기

병렬 처리:
---------
얕은 노드 (2^depth < 2·n_jobs) 는 호출 스레드에서 실행하며 스텀프의 속성 탐색을
스레드 풀에서 병렬화하고, 깊은 노드 (2^(depth+1) ≥ 2·n_jobs) 는 자식 확장 자체를
스레드 풀에 제출합니다. 풀 작업은 다른 풀 작업을 기다리지 않으며, 카운트다운
래치로 전체 하위 트리가 완성될 때까지 루트 호출을 막습니다.

Author: Trees From Scratch Project
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Set

import numpy as np
from joblib import effective_n_jobs

from ._concurrency import ModifiableCountDownLatch
from .base import BaseTreeLearner, seed_sequence
from .data import DataPoint, DataPointPair
from .decision_stump import DecisionStump, NumericHandling
from .exceptions import FailedToFitError
from .impurity import ImpurityMeasure
from .node import TreeNodeVisitor
from .pruning import PruningMethod, prune

logger = logging.getLogger(__name__)


class StumpNode(TreeNodeVisitor):
    """
    DecisionTree의 노드: 학습된 스텀프 하나와 경로별 자식

    Attributes
    ----------
    stump : DecisionStump
    node_depth : int
        루트 = 0
    n_samples : float
        이 노드에 도달한 학습 가중치 합
    """

    def __init__(self, stump: DecisionStump, node_depth: int = 0, n_samples: float = 0.0):
        self.stump = stump
        self.node_depth = node_depth
        self.n_samples = n_samples
        self._children: List[Optional[TreeNodeVisitor]] = [None] * stump.number_of_paths
        self._path_ratio = stump.path_ratio

    @property
    def children_count(self) -> int:
        return len(self._children)

    def get_child(self, i: int) -> Optional[TreeNodeVisitor]:
        return self._children[i]

    def set_path(self, i: int, node: Optional[TreeNodeVisitor]) -> None:
        self._children[i] = node

    def disable_path(self, i: int) -> None:
        self._children[i] = None

    def is_path_disabled(self, i: int) -> bool:
        return self._children[i] is None

    def get_path(self, point: DataPoint) -> int:
        return self.stump.which_path(point)

    def get_path_weight(self, i: int) -> float:
        return float(self._path_ratio[i])

    def features_used(self) -> Set[int]:
        if self.stump.is_leaf():
            return set()
        return {self.stump.splitting_attribute}

    def local_classify(self, point: DataPoint) -> np.ndarray:
        return self.stump.classify(point)

    def local_regress(self, point: DataPoint) -> float:
        return self.stump.regress(point)

    def __repr__(self) -> str:
        return f"StumpNode(depth={self.node_depth}, n_samples={self.n_samples:.4g}, {self.stump!r})"


class DecisionTree(BaseTreeLearner):
    """
    스텀프 기반 결정 트리 (From Scratch)

    Parameters
    ----------
    max_depth : int, default=None
        트리의 최대 깊이. None이면 제한 없음.

    min_samples : int, default=10
        노드를 만들기 위한 최소 샘플 수

    pruning_method : PruningMethod, default=REDUCED_ERROR
        가지치기 방식

    test_proportion : float, default=0.1
        가지치기 검증용으로 떼어낼 비율. 1.0이면 학습 데이터 전체를 재사용

    gain_method : ImpurityMeasure, default=INFORMATION_GAIN_RATIO
    numeric_handling : NumericHandling, default=BINARY_BEST_GAIN
    min_result_split_size : int, default=10
    remove_continuous_attributes : bool, default=False
    binary_categorical_split : bool, default=False
        노드 스텀프에 그대로 전달되는 설정

    n_jobs : int, default=1
        스레드 수 (-1 = 모든 코어)

    random_state : int or Generator, default=None
        검증 데이터 추출용 시드

    verbose : int, default=0
        출력 수준

    Attributes
    ----------
    root_ : StumpNode
        학습된 트리의 루트 노드

    n_pruned_paths_ : int
        가지치기로 비활성화된 경로 수

    Examples
    --------
    >>> from trees_from_scratch import DecisionTree
    >>> import numpy as np
    >>> X = np.random.randn(200, 3)
    >>> y = (X[:, 0] > 0).astype(int)
    >>> tree = DecisionTree(max_depth=3).fit(X, y)
    >>> tree.predict(X[:5])
    """

    def __init__(
        self,
        max_depth: Optional[int] = None,
        min_samples: int = 10,
        pruning_method: PruningMethod = PruningMethod.REDUCED_ERROR,
        test_proportion: float = 0.1,
        gain_method: ImpurityMeasure = ImpurityMeasure.INFORMATION_GAIN_RATIO,
        numeric_handling: NumericHandling = NumericHandling.BINARY_BEST_GAIN,
        min_result_split_size: int = 10,
        remove_continuous_attributes: bool = False,
        binary_categorical_split: bool = False,
        n_jobs: int = 1,
        random_state=None,
        verbose: int = 0
    ):
        self._base_stump = DecisionStump()
        self.max_depth = max_depth
        self.min_samples = min_samples
        self.pruning_method = pruning_method
        self.test_proportion = test_proportion
        self.gain_method = gain_method
        self.numeric_handling = numeric_handling
        self.min_result_split_size = min_result_split_size
        self.remove_continuous_attributes = remove_continuous_attributes
        self.binary_categorical_split = binary_categorical_split
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.verbose = verbose

        # 학습 후 설정되는 속성들
        self.root_: Optional[StumpNode] = None
        self.n_pruned_paths_: int = 0

    @classmethod
    def c45(cls, **kwargs) -> 'DecisionTree':
        """C4.5 설정: 이득 비율, 최소 분할 2, 최소 샘플 3, 학습 데이터 전체로 오차 기반 가지치기"""
        params = dict(
            gain_method=ImpurityMeasure.INFORMATION_GAIN_RATIO,
            min_result_split_size=2,
            min_samples=3,
            test_proportion=1.0,
            pruning_method=PruningMethod.ERROR_BASED,
        )
        params.update(kwargs)
        return cls(**params)

    # ------------------------------------------------------------------
    # 설정값
    # ------------------------------------------------------------------

    @property
    def max_depth(self) -> Optional[int]:
        return self._max_depth

    @max_depth.setter
    def max_depth(self, value):
        if value is not None and (int(value) != value or value < 0):
            raise ValueError(f"max_depth는 0 이상의 정수 또는 None이어야 합니다: {value}")
        self._max_depth = None if value is None else int(value)

    @property
    def min_samples(self) -> int:
        return self._min_samples

    @min_samples.setter
    def min_samples(self, value):
        if int(value) != value or value < 1:
            raise ValueError(f"min_samples는 1 이상의 정수여야 합니다: {value}")
        self._min_samples = int(value)

    @property
    def pruning_method(self) -> PruningMethod:
        return self._pruning_method

    @pruning_method.setter
    def pruning_method(self, value):
        if isinstance(value, str):
            value = value.upper()
            if value not in PruningMethod.__members__:
                raise ValueError(f"Unknown pruning method: {value}")
            value = PruningMethod[value]
        if not isinstance(value, PruningMethod):
            raise ValueError(f"Unknown pruning method: {value}")
        self._pruning_method = value

    @property
    def test_proportion(self) -> float:
        return self._test_proportion

    @test_proportion.setter
    def test_proportion(self, value):
        value = float(value)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"test_proportion은 [0, 1] 범위여야 합니다: {value}")
        self._test_proportion = value

    @property
    def gain_method(self) -> ImpurityMeasure:
        return self._base_stump.gain_method

    @gain_method.setter
    def gain_method(self, value):
        self._base_stump.gain_method = value

    @property
    def numeric_handling(self) -> NumericHandling:
        return self._base_stump.numeric_handling

    @numeric_handling.setter
    def numeric_handling(self, value):
        self._base_stump.numeric_handling = value

    @property
    def min_result_split_size(self) -> int:
        return self._base_stump.min_result_split_size

    @min_result_split_size.setter
    def min_result_split_size(self, value):
        self._base_stump.min_result_split_size = value

    @property
    def remove_continuous_attributes(self) -> bool:
        return self._base_stump.remove_continuous_attributes

    @remove_continuous_attributes.setter
    def remove_continuous_attributes(self, value):
        self._base_stump.remove_continuous_attributes = value

    @property
    def binary_categorical_split(self) -> bool:
        return self._base_stump.binary_categorical_split

    @binary_categorical_split.setter
    def binary_categorical_split(self, value):
        self._base_stump.binary_categorical_split = value

    @property
    def n_jobs(self) -> int:
        return self._n_jobs

    @n_jobs.setter
    def n_jobs(self, value):
        if value is None or int(value) == 0:
            raise ValueError(f"n_jobs는 0이 아닌 정수여야 합니다: {value}")
        self._n_jobs = int(value)

    # ------------------------------------------------------------------
    # 학습
    # ------------------------------------------------------------------

    def train_c(self, dataset, options: Optional[Iterable[int]] = None) -> 'DecisionTree':
        """
        분류 트리 학습

        Parameters
        ----------
        dataset : ClassificationDataSet
        options : iterable of int, optional
            분할 후보 속성. None이면 전체

        Returns
        -------
        self : DecisionTree
        """
        return self._fit_dataset(dataset, options, 'classification')

    def train(self, dataset, options: Optional[Iterable[int]] = None) -> 'DecisionTree':
        """회귀 트리 학습 (RegressionDataSet)"""
        return self._fit_dataset(dataset, options, 'regression')

    def _fit_dataset(self, dataset, options, task: str) -> 'DecisionTree':
        if len(dataset) < self._min_samples:
            raise FailedToFitError(
                f"데이터 포인트가 {len(dataset)}개뿐입니다. "
                f"트리를 만들려면 최소 {self._min_samples}개가 필요합니다."
            )
        if options is None:
            options = range(dataset.num_features)
        options = frozenset(int(f) for f in options)

        seeds = seed_sequence(self.random_state).spawn(2)
        pairs, test_pairs = self._hold_out(dataset.as_pairs(), np.random.default_rng(seeds[0]))
        self._predicting = dataset.predicting if task == 'classification' else None

        if self.verbose > 0:
            logger.info(
                "DecisionTree 학습 시작: %d개 학습, %d개 검증 (%s)",
                len(pairs), len(test_pairs), task,
            )

        root = self._grow(pairs, options, task, seeds[1])
        self.n_pruned_paths_ = 0
        if root is None:
            # 데이터가 너무 적은 경우 같은 후보 속성으로 단일 스텀프
            stump = self._new_stump(task)
            node_options = self._node_options(options, np.random.default_rng(seeds[1]))
            if task == 'classification':
                stump.split_c(dataset.as_pairs(), node_options)
            else:
                stump.split_r(dataset.as_pairs(), node_options)
            root = StumpNode(stump, 0, float(dataset.weights.sum()))
        else:
            self.n_pruned_paths_ = prune(
                root, self._pruning_method, test_pairs, regression=(task == 'regression'),
            )

        self.root_ = root
        self._remember_layout(dataset, task)
        if self.verbose > 0:
            logger.info(
                "DecisionTree 학습 완료: 깊이 %d, 리프 %d, 가지치기 %d",
                self.depth, self.n_leaves, self.n_pruned_paths_,
            )
        return self

    def _hold_out(self, pairs: List[DataPointPair], rng: np.random.Generator):
        if self._pruning_method is PruningMethod.NONE or self._test_proportion == 0.0:
            return pairs, []
        if self._test_proportion == 1.0:
            return pairs, list(pairs)
        n_test = int(len(pairs) * self._test_proportion)
        test_idx = set(rng.choice(len(pairs), size=n_test, replace=False).tolist())
        train = [p for i, p in enumerate(pairs) if i not in test_idx]
        test = [p for i, p in enumerate(pairs) if i in test_idx]
        return train, test

    def _new_stump(self, task: str) -> DecisionStump:
        stump = self._base_stump.clone()
        if task == 'classification':
            stump.predicting = self._predicting
        return stump

    def _node_options(self, options: frozenset, rng: np.random.Generator) -> frozenset:
        """노드에서 스텀프가 평가할 후보 속성"""
        return options

    def _grow(self, pairs, options, task, seed) -> Optional[StumpNode]:
        n_workers = effective_n_jobs(self._n_jobs)
        latch = ModifiableCountDownLatch(1)
        if n_workers <= 1:
            try:
                return self._make_node(pairs, options, 0, task, seed, None, latch, 1)
            except Exception as e:
                raise FailedToFitError("트리 노드 확장에 실패했습니다.") from e

        root = None
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            try:
                root = self._make_node(pairs, options, 0, task, seed, executor, latch, n_workers)
            except Exception as e:
                logger.error("트리 노드 확장 실패", exc_info=True)
                latch.fail(e)
            else:
                latch.wait()
        if latch.error is not None:
            raise FailedToFitError("트리 노드 확장에 실패했습니다.") from latch.error
        return root

    def _make_node(self, pairs, options, depth, task, seed, executor, latch, n_workers):
        try:
            if ((self._max_depth is not None and depth > self._max_depth)
                    or not options or len(pairs) < self._min_samples):
                return None

            # 얕은 노드는 속성 탐색을, 깊은 노드는 자식 확장을 병렬화
            stump_parallel = executor is not None and (1 << depth) < 2 * n_workers
            child_parallel = executor is not None and (1 << (depth + 1)) >= 2 * n_workers

            stump = self._new_stump(task)
            node_options = self._node_options(options, np.random.default_rng(seed))
            stump_executor = executor if stump_parallel else None
            if task == 'classification':
                parts = stump.split_c(pairs, node_options, stump_executor)
            else:
                parts = stump.split_r(pairs, node_options, stump_executor)

            node = StumpNode(stump, depth, float(sum(p.weight for p in pairs)))
            if stump.number_of_paths > 1:
                child_options = stump.child_options(options)
                child_seeds = seed.spawn(len(parts))
                for i, part in enumerate(parts):
                    latch.count_up()
                    args = (node, i, part, child_options, depth + 1, task,
                            child_seeds[i], executor, latch, n_workers)
                    if child_parallel:
                        executor.submit(self._expand_child_task, *args)
                    else:
                        self._expand_child(*args)
            return node
        finally:
            latch.count_down()

    def _expand_child(self, node, i, part, options, depth, task, seed, executor, latch, n_workers):
        child = self._make_node(part, options, depth, task, seed, executor, latch, n_workers)
        if child is not None:
            node.set_path(i, child)

    def _expand_child_task(self, *args):
        try:
            self._expand_child(*args)
        except Exception as e:
            logger.error("트리 노드 확장 실패", exc_info=True)
            args[-2].fail(e)

    # ------------------------------------------------------------------
    # 예측
    # ------------------------------------------------------------------

    def classify(self, point: DataPoint) -> np.ndarray:
        """클래스 확률 벡터 (합 = 1)"""
        self._check_fitted('classification')
        self._check_point(point)
        return self.root_.classify(point)

    def regress(self, point: DataPoint) -> float:
        self._check_fitted('regression')
        self._check_point(point)
        return self.root_.regress(point)

    def get_tree_node_visitor(self) -> TreeNodeVisitor:
        self._check_fitted()
        return self.root_

    @property
    def depth(self) -> int:
        self._check_fitted()
        return self.root_.depth()

    @property
    def n_leaves(self) -> int:
        self._check_fitted()
        return self.root_.n_leaves()

    def __repr__(self) -> str:
        if self.root_ is None:
            return "DecisionTree(not fitted)"
        return f"DecisionTree(depth={self.depth}, n_leaves={self.n_leaves}, pruning={self._pruning_method.name})"


class RandomDecisionTree(DecisionTree):
    """
    노드마다 후보 속성의 무작위 부분집합만 평가하는 결정 트리 (Random Forest용)

    Parameters
    ----------
    feature_samples : int, default=1
        노드마다 평가할 속성 수

    나머지 파라미터는 DecisionTree와 동일합니다. 각 노드는 트리 시드에서
    자식 순서대로 파생된 자체 난수 생성기를 쓰므로 병렬 확장에서도 재현됩니다.
    """

    def __init__(
        self,
        feature_samples: int = 1,
        max_depth: Optional[int] = None,
        min_samples: int = 10,
        pruning_method: PruningMethod = PruningMethod.NONE,
        test_proportion: float = 0.1,
        gain_method: ImpurityMeasure = ImpurityMeasure.INFORMATION_GAIN_RATIO,
        numeric_handling: NumericHandling = NumericHandling.BINARY_BEST_GAIN,
        min_result_split_size: int = 10,
        remove_continuous_attributes: bool = False,
        binary_categorical_split: bool = False,
        n_jobs: int = 1,
        random_state=None,
        verbose: int = 0
    ):
        super().__init__(
            max_depth=max_depth,
            min_samples=min_samples,
            pruning_method=pruning_method,
            test_proportion=test_proportion,
            gain_method=gain_method,
            numeric_handling=numeric_handling,
            min_result_split_size=min_result_split_size,
            remove_continuous_attributes=remove_continuous_attributes,
            binary_categorical_split=binary_categorical_split,
            n_jobs=n_jobs,
            random_state=random_state,
            verbose=verbose,
        )
        self.feature_samples = feature_samples

    @property
    def feature_samples(self) -> int:
        return self._feature_samples

    @feature_samples.setter
    def feature_samples(self, value):
        if int(value) != value or value < 1:
            raise ValueError(f"feature_samples는 1 이상의 정수여야 합니다: {value}")
        self._feature_samples = int(value)

    def _node_options(self, options: frozenset, rng: np.random.Generator) -> frozenset:
        if len(options) <= self._feature_samples:
            return options
        chosen = rng.choice(sorted(options), size=self._feature_samples, replace=False)
        return frozenset(int(f) for f in chosen)
