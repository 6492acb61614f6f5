"""
Tree Visualizer - 트리 모델 시각화 도구
=======================================

학습된 트리 구조와 피처 중요도를 시각화합니다.

주요 기능:
- 트리 구조 시각화 (TreeNodeVisitor만 사용하므로 모든 트리 종류 지원)
- 피처 중요도 막대 그래프 (트리 간 표준편차 오차 막대)

Author: Trees From Scratch Project
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np

from .node import TreeNodeVisitor
from .statistics import OnlineStatistics

logger = logging.getLogger(__name__)


class TreeVisualizer:
    """
    트리 모델 시각화 클래스

    Parameters
    ----------
    figsize : tuple, default=(12, 8)
        기본 Figure 크기

    dpi : int, default=100
        Figure DPI
    """

    def __init__(self, figsize: Tuple[int, int] = (12, 8), dpi: int = 100):
        self.figsize = figsize
        self.dpi = dpi

        # 색상 팔레트
        self.colors = {
            'primary': '#2E86AB',
            'secondary': '#A23B72',
            'accent': '#F18F01',
            'neutral': '#3B3B3B',
        }

    def plot_tree(
        self,
        model,
        feature_names: Optional[List[str]] = None,
        max_depth: int = 4,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Decision Tree Structure"
    ) -> plt.Figure:
        """
        트리 구조 시각화

        Parameters
        ----------
        model : 학습된 트리 모델 또는 TreeNodeVisitor
        feature_names : list, optional
            통합 피처 인덱스 순서의 이름
        max_depth : int
            표시할 최대 깊이
        figsize : tuple, optional
        title : str

        Returns
        -------
        fig : matplotlib.Figure
        """
        root = model if isinstance(model, TreeNodeVisitor) else model.get_tree_node_visitor()

        fig, ax = plt.subplots(figsize=figsize or (14, 10), dpi=self.dpi)

        positions: Dict[int, Tuple[float, float]] = {}
        self._layout(root, 0, max_depth, 0.0, 1.0, positions)
        self._draw(ax, root, 0, max_depth, positions, feature_names)

        ax.set_xlim(-0.05, 1.05)
        ax.set_ylim(-0.05, 1.05)
        ax.axis('off')
        ax.set_title(title, fontsize=14, fontweight='bold', pad=20)

        plt.tight_layout()
        return fig

    @staticmethod
    def _children(node: TreeNodeVisitor) -> List[Tuple[int, TreeNodeVisitor]]:
        return [
            (i, node.get_child(i)) for i in range(node.children_count)
            if not node.is_path_disabled(i)
        ]

    def _width(self, node: TreeNodeVisitor, depth: int, max_depth: int) -> int:
        """표시되는 하위 트리의 잎 수"""
        children = self._children(node)
        if depth >= max_depth or not children:
            return 1
        return sum(self._width(child, depth + 1, max_depth) for _, child in children)

    def _layout(self, node, depth, max_depth, left, right, positions) -> None:
        y = 0.95 - depth * (0.9 / max(max_depth, 1))
        positions[id(node)] = ((left + right) / 2, y)
        if depth >= max_depth:
            return
        children = self._children(node)
        if not children:
            return
        widths = [self._width(child, depth + 1, max_depth) for _, child in children]
        total = float(sum(widths))
        x = left
        for (_, child), w in zip(children, widths):
            span = (right - left) * w / total
            self._layout(child, depth + 1, max_depth, x, x + span, positions)
            x += span

    def _label(self, node: TreeNodeVisitor, feature_names) -> str:
        if node.is_leaf():
            result = getattr(node, 'result', None)
            if result is None:
                return f"leaf\nn={getattr(node, 'n_samples', 0):.0f}"
            if np.ndim(result) == 0:
                return f"값: {float(result):.2f}"
            return f"클래스 {int(np.argmax(result))}\np={float(np.max(result)):.2f}"

        names = []
        for f in sorted(node.features_used()):
            names.append(feature_names[f] if feature_names else f"X{f}")
        text = ", ".join(names) or "?"
        threshold = getattr(node, 'threshold', None)
        if threshold is not None:
            text += f"\n≤ {threshold:.2f}"
        n_samples = getattr(node, 'n_samples', None)
        if n_samples is not None:
            text += f"\n샘플: {n_samples:.0f}"
        return text

    def _draw(self, ax, node, depth, max_depth, positions, feature_names) -> None:
        x, y = positions[id(node)]
        if node.is_leaf():
            color = plt.cm.Greens(0.6)
        else:
            color = plt.cm.Blues(0.3 + 0.5 * (1 - depth / max(max_depth, 1)))

        bbox = dict(boxstyle='round,pad=0.3', facecolor=color, edgecolor='gray', alpha=0.9)
        ax.text(x, y, self._label(node, feature_names), ha='center', va='center',
                fontsize=8, bbox=bbox)

        if depth >= max_depth:
            return
        for i, child in self._children(node):
            cx, cy = positions[id(child)]
            ax.plot([x, cx], [y - 0.03, cy + 0.03], 'k-', linewidth=1, alpha=0.7)
            ax.text((x + cx) / 2, (y + cy) / 2, str(i), fontsize=7, color=self.colors['secondary'])
            self._draw(ax, child, depth + 1, max_depth, positions, feature_names)

    def plot_feature_importance(
        self,
        importances,
        std: Optional[Sequence[float]] = None,
        feature_names: Optional[List[str]] = None,
        top_k: int = 15,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Feature Importance"
    ) -> plt.Figure:
        """
        피처 중요도 막대 그래프

        Parameters
        ----------
        importances : array-like or list of OnlineStatistics
            OnlineStatistics 목록이면 평균을 막대로, 표준편차를 오차 막대로 표시
        std : array-like, optional
        feature_names : list, optional
        top_k : int
            표시할 상위 피처 수

        Returns
        -------
        fig : matplotlib.Figure
        """
        if len(importances) and isinstance(importances[0], OnlineStatistics):
            std = np.array([s.std for s in importances])
            importances = np.array([s.mean for s in importances])
        importances = np.asarray(importances, dtype=np.float64)

        if feature_names is None:
            feature_names = [f'Feature {i}' for i in range(len(importances))]

        indices = np.argsort(importances)[::-1][:top_k]

        fig, ax = plt.subplots(figsize=figsize or self.figsize, dpi=self.dpi)
        ax.barh(
            range(len(indices)),
            importances[indices],
            xerr=None if std is None else np.asarray(std)[indices],
            color=self.colors['primary'],
            alpha=0.8
        )
        ax.set_yticks(range(len(indices)))
        ax.set_yticklabels([feature_names[i] for i in indices])
        ax.invert_yaxis()
        ax.set_xlabel('Importance', fontsize=10)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3, axis='x')

        plt.tight_layout()
        return fig

    def save_figure(self, fig: plt.Figure, filepath: str, dpi: Optional[int] = None):
        """Figure 저장"""
        fig.savefig(filepath, dpi=dpi or self.dpi, bbox_inches='tight',
                    facecolor='white', edgecolor='none')
        logger.info("Figure saved: %s", filepath)
