"""
Trees From Scratch - 결정 트리와 트리 앙상블 직접 구현
=====================================================

범주형/수치형 피처와 결측값을 모두 다루는 결정 트리 계열 학습기를
NumPy/SciPy 위에 직접 구현합니다.

구현된 알고리즘:
- ImpurityScore: 정보 이득, 이득 비율, NMI, Gini, 분류 오차
- DecisionStump: 한 번의 분할을 찾는 단일 노드 학습기
- DecisionTree: 스텀프를 재귀적으로 쌓는 병렬 트리 (C4.5 설정 포함)
- RandomDecisionTree: 노드마다 무작위 피처 부분집합을 쓰는 트리
- ExtraTree: 극단적 무작위 트리
- RandomForest / ERTrees: 배깅 앙상블, OOB 오차와 중요도
- MDI / ImportanceByUses / MDA: 트리 방문자 기반 피처 중요도

Author: Trees From Scratch Project
"""

from .data import (
    CategoricalData,
    ClassificationDataSet,
    DataPoint,
    DataPointPair,
    RegressionDataSet,
    from_arrays,
    from_frame,
)
from .decision_stump import DecisionStump, NumericHandling
from .decision_tree import DecisionTree, RandomDecisionTree, StumpNode
from .distributions import KernelDensity, threshold_split
from .er_trees import ERTrees
from .exceptions import FailedToFitError, ModelMismatchError, NotFittedError
from .extra_tree import ExtraTree
from .importance import MDA, MDI, ImportanceByUses
from .impurity import ImpurityMeasure, ImpurityScore
from .node import TreeNodeVisitor
from .pruning import PruningMethod, prune
from .random_forest import RandomForest
from .statistics import OnlineStatistics
from .visualizer import TreeVisualizer

__all__ = [
    'CategoricalData',
    'ClassificationDataSet',
    'DataPoint',
    'DataPointPair',
    'RegressionDataSet',
    'from_arrays',
    'from_frame',
    'DecisionStump',
    'NumericHandling',
    'DecisionTree',
    'RandomDecisionTree',
    'StumpNode',
    'KernelDensity',
    'threshold_split',
    'ERTrees',
    'FailedToFitError',
    'ModelMismatchError',
    'NotFittedError',
    'ExtraTree',
    'MDA',
    'MDI',
    'ImportanceByUses',
    'ImpurityMeasure',
    'ImpurityScore',
    'TreeNodeVisitor',
    'PruningMethod',
    'prune',
    'RandomForest',
    'OnlineStatistics',
    'TreeVisualizer'
]

__version__ = '1.0.0'
