#!/usr/bin/env python3
"""CronJob 실행 감시 및 Pod 모니터링 모듈"""

import logging
import threading
from contextlib import closing
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from errors import InvariantViolation, OrchestratorError, WatchCancelled
from kube_types import (
    ExecutionState,
    ScheduledJobRef,
    StatusRecord,
    WorkerUnit,
    build_selector,
    first_running,
)
from status_sink import LogSink, StatusSink

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_WORKER_POLL_INTERVAL = 0.05


def wait_or_cancel(cancel_event: threading.Event, interval: float):
    """interval 만큼 대기, 그 사이 취소 신호가 오면 WatchCancelled"""
    if cancel_event.wait(interval):
        raise WatchCancelled()


def check_cancelled(cancel_event: threading.Event):
    if cancel_event.is_set():
        raise WatchCancelled()


class MonitorState(Enum):
    AWAITING_WORKER = 'AwaitingWorker'
    RUNNING = 'Running'
    AWAITING_TERMINAL = 'AwaitingTerminal'
    RESOLVED = 'Resolved'


class WorkerMonitor:
    """Job 하나의 Pod를 따라가며 로그와 종료 상태를 기록하는 클래스"""

    def __init__(self, orchestrator, output_dir, cancel_event: threading.Event,
                 poll_interval: float = DEFAULT_WORKER_POLL_INTERVAL):
        """
        Args:
            orchestrator: KubeOrchestrator 와 같은 API 조회 객체
            output_dir: 로그/상태 파일 저장 경로
            cancel_event: 파이프라인 공유 취소 신호
            poll_interval: Pod 목록/상태 조회 간격 (초)
        """
        self.orchestrator = orchestrator
        self.output_dir = Path(output_dir)
        self.cancel_event = cancel_event
        self.poll_interval = poll_interval
        self.state = None

    def monitor(self, ref: ScheduledJobRef, execution: str) -> StatusRecord:
        """
        Job 하나를 종료 상태까지 추적

        Args:
            ref: 감시 중인 CronJob
            execution: 활성 Job 이름

        Returns:
            저장된 StatusRecord
        """
        self.state = MonitorState.AWAITING_WORKER

        # 1. Job 라벨로 selector 생성
        labels = self.orchestrator.get_execution(ref, execution)
        if not labels:
            raise OrchestratorError(f"Job {execution} 에 라벨이 없어 Pod를 찾을 수 없습니다")
        selector = build_selector(labels)
        logger.info(f"[{ref.name}] Job {execution} Pod 대기 ({selector})")

        # 2. Running Pod 대기
        pod = self._wait_for_running(ref, selector)

        # 3. 로그 수집
        self.state = MonitorState.RUNNING
        self._tail_logs(ref, pod.name)

        # 4. 스트림이 닫혀도 Pod가 잠시 Running 으로 남아 있을 수 있음
        self.state = MonitorState.AWAITING_TERMINAL
        final = self._wait_for_terminal(ref, pod.name)

        # 5. 상태 기록
        record = StatusRecord(
            name=final.name,
            phase=final.phase,
            snapshot=final.snapshot,
            recorded_at=datetime.now(),
        )
        if record.failed:
            logger.warning(f"[{ref.name}] ✗ Pod {final.name} 실패")

        StatusSink(self.output_dir, ref.name).write(record)
        self.state = MonitorState.RESOLVED
        logger.info(f"[{ref.name}] ✓ {final.name}={final.phase}")
        return record

    def _wait_for_running(self, ref: ScheduledJobRef, selector: str) -> WorkerUnit:
        while True:
            check_cancelled(self.cancel_event)
            pod = first_running(self.orchestrator.list_worker_units(ref, selector))
            if pod is not None:
                return pod
            wait_or_cancel(self.cancel_event, self.poll_interval)

    def _tail_logs(self, ref: ScheduledJobRef, pod_name: str):
        check_cancelled(self.cancel_event)
        stream = self.orchestrator.stream_worker_output(ref, pod_name)

        with closing(stream), LogSink(self.output_dir, pod_name) as sink:
            logger.info(f"[{ref.name}] 로그 수집 시작: {sink.path}")
            for chunk in stream:
                sink.write(chunk)
                # 청크 경계에서만 취소를 확인 (읽기 중인 블록은 끊지 않음)
                check_cancelled(self.cancel_event)

        logger.info(f"[{ref.name}] 로그 스트림 종료: {pod_name} ({sink.bytes_written} bytes)")

    def _wait_for_terminal(self, ref: ScheduledJobRef, pod_name: str) -> WorkerUnit:
        while True:
            check_cancelled(self.cancel_event)
            pod = self.orchestrator.get_worker_unit(ref, pod_name)
            if not pod.is_running:
                return pod
            wait_or_cancel(self.cancel_event, self.poll_interval)


class ExecutionTracker:
    """CronJob 활성 Job 변경 감시 클래스"""

    def __init__(self, ref: ScheduledJobRef, orchestrator, monitor: WorkerMonitor,
                 cancel_event: threading.Event, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self.ref = ref
        self.orchestrator = orchestrator
        self.monitor = monitor
        self.cancel_event = cancel_event
        self.poll_interval = poll_interval

        # 마지막으로 처리한 활성 Job (파이프라인마다 하나)
        self.last_seen: Optional[str] = None
        self.handled = 0

    def poll_active_execution(self) -> ExecutionState:
        return self.orchestrator.get_scheduled_job(self.ref)

    def check(self) -> Optional[str]:
        """
        CronJob 한 번 조회

        Returns:
            새 활성 Job 이름 (변경이 없으면 None)
        """
        state = self.poll_active_execution()

        if not state.active:
            return None

        if len(state.active) > 1:
            raise InvariantViolation(self.ref.name, state.active)

        current = state.active[0]
        if current == self.last_seen:
            return None

        logger.info(f"[{self.ref.name}] 새 Job 감지: {self.last_seen} -> {current}")
        self.last_seen = current
        return current

    def run(self):
        """감시 루프 - 치명적 오류나 취소 신호가 올 때까지 반환하지 않음"""
        logger.info(f"CronJob 감시 시작: {self.ref}")

        while True:
            check_cancelled(self.cancel_event)
            execution = self.check()
            if execution is not None:
                # 다음 Job은 현재 Job 처리가 끝난 뒤에만 본다
                self.monitor.monitor(self.ref, execution)
                self.handled += 1
            wait_or_cancel(self.cancel_event, self.poll_interval)
