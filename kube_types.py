#!/usr/bin/env python3
"""CronJob / Job / Pod 관측 데이터 타입"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

PENDING = 'Pending'
RUNNING = 'Running'
SUCCEEDED = 'Succeeded'
FAILED = 'Failed'
UNKNOWN = 'Unknown'

VALID_PHASES = [PENDING, RUNNING, SUCCEEDED, FAILED, UNKNOWN]


@dataclass(frozen=True)
class ScheduledJobRef:
    """감시 대상 CronJob (name, namespace)"""

    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ExecutionState:
    """CronJob의 현재 활성 Job 이름 목록 (poll 마다 새로 조회)"""

    active: Tuple[str, ...] = ()


@dataclass(frozen=True)
class WorkerUnit:
    """Pod 하나의 이름, phase, 직렬화된 전체 리소스"""

    name: str
    phase: str
    snapshot: Dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_running(self) -> bool:
        return self.phase == RUNNING


@dataclass(frozen=True)
class StatusRecord:
    """Pod 종료 상태 기록"""

    name: str
    phase: str
    snapshot: Dict = field(default_factory=dict, compare=False, repr=False)
    recorded_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def failed(self) -> bool:
        return self.phase == FAILED


def build_selector(labels: Dict[str, str]) -> str:
    """
    Job 라벨로 Pod label selector 생성

    Examples:
        {'job-name': 'nightly-export-27182818'} -> 'job-name=nightly-export-27182818'
    """
    return ','.join(f"{key}={labels[key]}" for key in sorted(labels))


def first_running(units: Iterable[WorkerUnit]) -> Optional[WorkerUnit]:
    """API가 돌려준 순서 그대로 첫 번째 Running Pod 반환 (없으면 None)"""
    for unit in units:
        if unit.is_running:
            return unit
    return None
