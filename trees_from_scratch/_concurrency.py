"""
스레드 동기화 도구
==================

- ModifiableCountDownLatch: 증가/감소가 모두 가능한 카운트다운 래치.
  재귀적으로 작업을 제출하는 트리 확장에서 전체 하위 트리 완료를 기다릴 때 사용.
- partition_counts: 작업을 워커 수만큼 고르게 나누기
"""

import threading
from typing import List, Optional

import numpy as np


class ModifiableCountDownLatch:
    """
    카운트가 0이 될 때까지 기다리는 래치

    작업을 제출하기 전에 count_up(), 작업이 끝나면 count_down()을 호출합니다.
    작업이 실패하면 fail(exc)로 첫 예외를 기록하고 대기 중인 스레드를 깨웁니다.
    """

    def __init__(self, count: int = 0):
        if count < 0:
            raise ValueError(f"count는 0 이상이어야 합니다: {count}")
        self._count = count
        self._error: Optional[BaseException] = None
        self._cond = threading.Condition()

    def count_up(self) -> None:
        with self._cond:
            self._count += 1

    def count_down(self) -> None:
        with self._cond:
            if self._count <= 0:
                raise RuntimeError("래치 카운트가 이미 0입니다.")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def fail(self, error: BaseException) -> None:
        with self._cond:
            if self._error is None:
                self._error = error
            self._cond.notify_all()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    @property
    def error(self) -> Optional[BaseException]:
        with self._cond:
            return self._error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        카운트가 0이 되거나 실패가 기록될 때까지 대기

        Returns
        -------
        bool
            제한 시간 안에 끝났으면 True
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: self._count == 0 or self._error is not None, timeout
            )


def partition_counts(n_items: int, n_parts: int) -> List[int]:
    """n_items를 n_parts 개로 최대한 고르게 나눈 크기 목록 (빈 몫 제외)"""
    n_parts = max(1, min(n_parts, n_items))
    sizes = np.full(n_parts, n_items // n_parts)
    sizes[: n_items % n_parts] += 1
    return [int(s) for s in sizes if s > 0]
