#!/usr/bin/env python3
"""여러 CronJob 감시 파이프라인 실행 모듈"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

from cronjob_watcher import ExecutionTracker, WorkerMonitor
from errors import ConfigError, SinkError, WatchCancelled
from kube_types import ScheduledJobRef
from watch_config import WatchSettings

logger = logging.getLogger(__name__)


class WatchSupervisor:
    """CronJob 마다 감시 파이프라인 하나를 띄우고, 첫 치명적 오류에서 전체를 중단"""

    def __init__(self, orchestrator, settings: WatchSettings,
                 cancel_event: Optional[threading.Event] = None):
        self.orchestrator = orchestrator
        self.settings = settings
        self.cancel_event = cancel_event or threading.Event()
        self.trackers: List[ExecutionTracker] = []

    def stop(self):
        """모든 파이프라인에 취소 신호 전달"""
        self.cancel_event.set()

    def build_pipeline(self, job_name: str) -> ExecutionTracker:
        ref = ScheduledJobRef(name=job_name, namespace=self.settings.namespace)
        monitor = WorkerMonitor(
            self.orchestrator,
            self.settings.output_dir,
            self.cancel_event,
            poll_interval=self.settings.worker_poll_interval,
        )
        tracker = ExecutionTracker(
            ref,
            self.orchestrator,
            monitor,
            self.cancel_event,
            poll_interval=self.settings.poll_interval,
        )
        self.trackers.append(tracker)
        return tracker

    def run(self):
        """
        모든 파이프라인 실행

        취소 신호로 끝나면 정상 반환하고, 파이프라인 하나라도 치명적 오류로
        끝나면 나머지를 멈춘 뒤 그 첫 번째 오류를 다시 발생시킨다.
        """
        if not self.settings.jobs:
            raise ConfigError("감시할 CronJob 이름이 없습니다")

        try:
            self.settings.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SinkError(f"출력 디렉토리 생성 실패: {self.settings.output_dir} - {e}") from e

        jobs = self.settings.jobs
        pipelines = [self.build_pipeline(name) for name in jobs]
        first_error = None

        with ThreadPoolExecutor(max_workers=len(pipelines), thread_name_prefix='watch') as pool:
            futures = {pool.submit(tracker.run): tracker.ref for tracker in pipelines}
            try:
                for future in as_completed(futures):
                    ref = futures[future]
                    try:
                        future.result()
                    except WatchCancelled:
                        logger.info(f"감시 중단: {ref}")
                    except Exception as e:
                        if first_error is None:
                            first_error = e
                            logger.error(f"감시 중 오류 발생: {ref} - {e}")
                            self.stop()
                        else:
                            logger.warning(f"중단 중 추가 오류: {ref} - {e}")
                    else:
                        logger.info(f"감시 종료: {ref}")
            except KeyboardInterrupt:
                logger.info("감시 종료 (사용자 중단)")
                self.stop()

        if first_error is not None:
            raise first_error
