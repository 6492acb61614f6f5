"""
트리 학습기 예외 정의
====================

- FailedToFitError: 학습 자체가 실패한 경우 (데이터 부족, 작업 스레드 실패 등)
- NotFittedError: 학습 전에 예측을 호출한 경우
- ModelMismatchError: 학습 때와 다른 형태의 데이터가 들어온 경우

설정값 범위 오류는 setter에서 바로 ValueError로 보고합니다.
"""


class FailedToFitError(RuntimeError):
    """모델 학습 실패"""


class NotFittedError(RuntimeError):
    """학습되지 않은 모델로 예측을 시도함"""


class ModelMismatchError(ValueError):
    """학습 데이터와 피처 구성이 다른 데이터 포인트"""
