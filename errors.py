#!/usr/bin/env python3
"""감시기 오류 정의 모듈"""


class WatcherError(Exception):
    """감시 파이프라인의 모든 치명적 오류의 기반 클래스"""


class ConfigError(WatcherError):
    """설정 누락 또는 잘못된 설정 (파이프라인 시작 전에 발생)"""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class OrchestratorError(WatcherError):
    """Kubernetes API 조회/목록/스트림 실패"""


class InvariantViolation(WatcherError):
    """CronJob 하나에 활성 Job이 2개 이상 보고된 경우"""

    def __init__(self, cron_job: str, active):
        self.cron_job = cron_job
        self.active = tuple(active)
        super().__init__(
            f"{cron_job}: 활성 Job은 최대 1개여야 하지만 {len(self.active)}개가 보고됨 "
            f"({', '.join(self.active)})"
        )


class SinkError(WatcherError):
    """로그/상태 파일 생성 또는 쓰기 실패"""


class WatchCancelled(Exception):
    """공유 취소 신호로 파이프라인이 중단됨 (오류 아님)"""
