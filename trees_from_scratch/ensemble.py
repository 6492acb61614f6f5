"""
트리 앙상블 공통 구현
=====================

배깅(Bootstrap Aggregating)으로 독립적인 트리 N개를 학습하고
다수결(분류) 또는 평균(회귀)으로 예측을 합칩니다.

학습 절차:
---------
1. 트리 N개를 작업 스레드 수만큼의 묶음으로 나눔
2. 각 작업이 자기 묶음의 트리를 차례로 학습
   - n + extra_samples 번 복원 추출한 부트스트랩 샘플
   - 샘플에 뽑히지 않은 포인트(OOB)로 투표/예측 누적 (행 단위 잠금)
   - (선택) OOB 포인트로 MDA 중요도 누적
3. 모든 작업이 끝나면 트리 목록을 이어 붙이고 중요도 합을 더함

   P(샘플이 선택되지 않음) = (1 - 1/n)^n ≈ e^{-1} ≈ 0.368

최종 예측:
   분류: votes_c = Σ_m 1[argmax h_m(x) = c],  p = votes / M
   회귀: ŷ = (1/M) · Σ h_m(x)

Author: Trees From Scratch Project
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs

from ._concurrency import partition_counts
from .base import BaseTreeLearner, seed_sequence
from .data import DataPoint
from .exceptions import FailedToFitError
from .importance import MDA, MDI, ImportanceByUses
from .node import TreeNodeVisitor
from .statistics import OnlineStatistics

logger = logging.getLogger(__name__)


class _OutOfBagVotes:
    """여러 작업 스레드가 공유하는 OOB 누적값. 행마다 잠금을 둠"""

    def __init__(self, n_points: int, n_classes: int):
        self._locks = [threading.Lock() for _ in range(n_points)]
        if n_classes > 0:
            self.votes = np.zeros((n_points, n_classes))
        else:
            self.sums = np.zeros(n_points)
            self.counts = np.zeros(n_points)

    def add_vote(self, i: int, c: int) -> None:
        with self._locks[i]:
            self.votes[i, c] += 1

    def add_prediction(self, i: int, value: float) -> None:
        with self._locks[i]:
            self.sums[i] += value
            self.counts[i] += 1


class ForestBase(BaseTreeLearner, ABC):
    """
    배깅 트리 앙상블 공통 동작

    Parameters
    ----------
    forest_size : int, default=100
        트리 개수

    extra_samples : int, default=0
        부트스트랩 샘플 크기 = n + extra_samples

    feature_samples : int, default=None
        노드마다 고려할 피처 수. None이면 분류는 round(sqrt(d)), 회귀는 d // 3

    use_out_of_bag_error : bool, default=False
        OOB 오차 계산 여부 (oob_error_)

    use_out_of_bag_importance : bool, default=False
        OOB 포인트로 MDA 중요도 계산 여부 (oob_importances_)

    bootstrap : bool, default=True
        False면 모든 트리가 전체 데이터로 학습 (OOB 포인트 없음)

    n_jobs : int, default=1
        작업 스레드 수 (-1 = 모든 코어)

    random_state : int or Generator, default=None

    verbose : int, default=0
        출력 수준

    Attributes
    ----------
    trees_ : list
        학습된 트리들

    oob_error_ : float or None
        분류는 오분류율, 회귀는 MSE. OOB 예측을 하나 이상 받은 포인트만 사용

    oob_importances_ : ndarray or None
        트리별 OOB MDA 중요도의 평균
    """

    def __init__(
        self,
        forest_size: int = 100,
        extra_samples: int = 0,
        feature_samples: Optional[int] = None,
        use_out_of_bag_error: bool = False,
        use_out_of_bag_importance: bool = False,
        bootstrap: bool = True,
        n_jobs: int = 1,
        random_state=None,
        verbose: int = 0
    ):
        self.forest_size = forest_size
        self.extra_samples = extra_samples
        self.feature_samples = feature_samples
        self.use_out_of_bag_error = use_out_of_bag_error
        self.use_out_of_bag_importance = use_out_of_bag_importance
        self.bootstrap = bootstrap
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.verbose = verbose

        # 학습 후 설정되는 속성들
        self.trees_: List[BaseTreeLearner] = []
        self.oob_error_: Optional[float] = None
        self.oob_importances_: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # 설정값
    # ------------------------------------------------------------------

    @property
    def forest_size(self) -> int:
        return self._forest_size

    @forest_size.setter
    def forest_size(self, value):
        if int(value) != value or value < 1:
            raise ValueError(f"forest_size는 1 이상의 정수여야 합니다: {value}")
        self._forest_size = int(value)

    @property
    def extra_samples(self) -> int:
        return self._extra_samples

    @extra_samples.setter
    def extra_samples(self, value):
        if int(value) != value or value < 0:
            raise ValueError(f"extra_samples는 0 이상의 정수여야 합니다: {value}")
        self._extra_samples = int(value)

    @property
    def feature_samples(self) -> Optional[int]:
        return self._feature_samples

    @feature_samples.setter
    def feature_samples(self, value):
        if value is not None and (int(value) != value or value < 1):
            raise ValueError(f"feature_samples는 1 이상의 정수 또는 None이어야 합니다: {value}")
        self._feature_samples = None if value is None else int(value)

    @property
    def n_jobs(self) -> int:
        return self._n_jobs

    @n_jobs.setter
    def n_jobs(self, value):
        if value is None or int(value) == 0:
            raise ValueError(f"n_jobs는 0이 아닌 정수여야 합니다: {value}")
        self._n_jobs = int(value)

    def _resolve_feature_samples(self, n_features: int, task: str) -> int:
        if self._feature_samples is not None:
            return min(self._feature_samples, max(1, n_features))
        if task == 'classification':
            return max(1, int(round(np.sqrt(n_features))))
        return max(1, n_features // 3)

    @abstractmethod
    def _new_tree(self, task: str, feature_samples: int, rng: np.random.Generator):
        """트리 하나의 학습기 생성"""

    # ------------------------------------------------------------------
    # 학습
    # ------------------------------------------------------------------

    def train_c(self, dataset) -> 'ForestBase':
        """분류 앙상블 학습 (ClassificationDataSet)"""
        return self._fit_forest(dataset, 'classification')

    def train(self, dataset) -> 'ForestBase':
        """회귀 앙상블 학습 (RegressionDataSet)"""
        return self._fit_forest(dataset, 'regression')

    def _fit_forest(self, dataset, task: str) -> 'ForestBase':
        self._task = None
        self.trees_ = []
        self.oob_error_ = None
        self.oob_importances_ = None

        n = len(dataset)
        n_classes = dataset.n_classes if task == 'classification' else 0
        feature_samples = self._resolve_feature_samples(dataset.num_features, task)
        seeds = seed_sequence(self.random_state).spawn(self._forest_size)
        oob = _OutOfBagVotes(n, n_classes) if self.use_out_of_bag_error else None

        batches = partition_counts(self._forest_size, effective_n_jobs(self._n_jobs))
        starts = np.concatenate([[0], np.cumsum(batches)[:-1]])

        if self.verbose > 0:
            logger.info(
                "%s 학습 시작: %d개 트리, 작업 %d개, 노드당 피처 %d개",
                type(self).__name__, self._forest_size, len(batches), feature_samples,
            )

        try:
            results = Parallel(n_jobs=len(batches), prefer="threads")(
                delayed(self._train_batch)(
                    dataset, task, seeds[start:start + size], feature_samples, oob,
                )
                for start, size in zip(starts.tolist(), batches)
            )
        except Exception as e:
            logger.error("%s 학습 작업 실패", type(self).__name__, exc_info=True)
            raise FailedToFitError(f"{type(self).__name__} 학습 중 작업 스레드가 실패했습니다.") from e

        trees = []
        importance_sum = np.zeros(dataset.num_features)
        importance_trees = 0
        for batch_trees, batch_importance, batch_count in results:
            trees.extend(batch_trees)
            importance_sum += batch_importance
            importance_trees += batch_count

        self.trees_ = trees
        if oob is not None:
            self.oob_error_ = self._out_of_bag_error(dataset, oob, task)
        if self.use_out_of_bag_importance and importance_trees > 0:
            self.oob_importances_ = importance_sum / importance_trees
        self._remember_layout(dataset, task)

        if self.verbose > 0:
            oob_str = f", OOB 오차 {self.oob_error_:.4f}" if self.oob_error_ is not None else ""
            logger.info("%s 학습 완료: %d개 트리%s", type(self).__name__, len(self.trees_), oob_str)
        return self

    def _train_batch(self, dataset, task, seeds, feature_samples, oob):
        """작업 하나: 트리 묶음 학습. (트리 목록, OOB 중요도 합, 중요도를 낸 트리 수) 반환"""
        n = len(dataset)
        trees = []
        importance_sum = np.zeros(dataset.num_features)
        importance_trees = 0

        for seed in seeds:
            sample_seed, tree_seed = seed.spawn(2)
            rng = np.random.default_rng(sample_seed)
            if self.bootstrap:
                draws = rng.integers(0, n, size=n + self._extra_samples)
                counts = np.bincount(draws, minlength=n)
            else:
                counts = np.ones(n, dtype=np.int64)

            tree = self._new_tree(task, feature_samples, np.random.default_rng(tree_seed))
            sample = dataset.sampled(counts)
            if task == 'classification':
                tree.train_c(sample)
            else:
                tree.train(sample)
            trees.append(tree)

            out_of_bag = np.flatnonzero(counts == 0)
            if out_of_bag.size == 0:
                continue
            if oob is not None:
                for i in out_of_bag.tolist():
                    point = dataset.get_data_point(i)
                    if task == 'classification':
                        oob.add_vote(i, int(np.argmax(tree.classify(point))))
                    else:
                        oob.add_prediction(i, tree.regress(point))
            if self.use_out_of_bag_importance:
                importance_sum += MDA(rng).get_importance_stats(tree, dataset.subset(out_of_bag))
                importance_trees += 1

            logger.debug("트리 학습 완료: OOB 포인트 %d개", out_of_bag.size)

        return trees, importance_sum, importance_trees

    @staticmethod
    def _out_of_bag_error(dataset, oob: _OutOfBagVotes, task: str) -> Optional[float]:
        weights = dataset.weights
        targets = dataset.targets
        if task == 'classification':
            seen = oob.votes.sum(axis=1) > 0
            if not np.any(seen):
                return None
            wrong = np.argmax(oob.votes[seen], axis=1) != targets[seen]
            return float(np.sum(weights[seen] * wrong) / np.sum(weights[seen]))

        seen = oob.counts > 0
        if not np.any(seen):
            return None
        predictions = oob.sums[seen] / oob.counts[seen]
        errors = (predictions - targets[seen]) ** 2
        return float(np.sum(weights[seen] * errors) / np.sum(weights[seen]))

    # ------------------------------------------------------------------
    # 예측
    # ------------------------------------------------------------------

    def classify(self, point: DataPoint) -> np.ndarray:
        """트리별 다수결 투표 비율 (합 = 1)"""
        self._check_fitted('classification')
        self._check_point(point)
        votes = np.zeros(self.n_classes_)
        for tree in self.trees_:
            votes[int(np.argmax(tree.classify(point)))] += 1
        return votes / votes.sum()

    def regress(self, point: DataPoint) -> float:
        """트리 예측의 평균"""
        self._check_fitted('regression')
        self._check_point(point)
        return float(np.mean([tree.regress(point) for tree in self.trees_]))

    def evaluate_feature_importance(self, dataset, inference=None) -> List[OnlineStatistics]:
        """
        트리별 피처 중요도의 통계

        Parameters
        ----------
        dataset : ClassificationDataSet or RegressionDataSet
        inference : MDI, ImportanceByUses, MDA, optional
            None이면 분류는 MDI (Gini), 회귀는 ImportanceByUses

        Returns
        -------
        stats : list of OnlineStatistics
            피처별 (통합 인덱스 순서) 트리 간 평균/분산
        """
        self._check_fitted()
        if inference is None:
            inference = MDI() if self._task == 'classification' else ImportanceByUses()
        stats = [OnlineStatistics() for _ in range(dataset.num_features)]
        for tree in self.trees_:
            importances = inference.get_importance_stats(tree, dataset)
            for f, value in enumerate(importances):
                stats[f].add(float(value))
        return stats

    def get_tree_node_visitor(self) -> TreeNodeVisitor:
        raise NotImplementedError(f"{type(self).__name__}은(는) 단일 트리 방문자를 제공하지 않습니다.")

    def __repr__(self) -> str:
        if not self.trees_:
            return f"{type(self).__name__}(not fitted)"
        oob_str = f", oob_error={self.oob_error_:.4f}" if self.oob_error_ is not None else ""
        return f"{type(self).__name__}(forest_size={len(self.trees_)}{oob_str})"
