#!/usr/bin/env python3
"""Pod 로그 / 종료 상태 저장 모듈"""

import json
from datetime import datetime
from pathlib import Path
from typing import Tuple

from errors import SinkError
from kube_types import StatusRecord


class LogSink:
    """Pod 로그 파일 (<pod>.logs) - 스트림 바이트를 그대로 기록"""

    SUFFIX = '.logs'

    def __init__(self, output_dir: Path, pod_name: str):
        self.path = Path(output_dir) / f"{pod_name}{self.SUFFIX}"
        self._file = None
        self.bytes_written = 0

    def __enter__(self):
        try:
            self._file = open(self.path, 'wb')
        except OSError as e:
            raise SinkError(f"로그 파일 생성 실패: {self.path} - {e}") from e
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._file is not None:
            self._file.close()
            self._file = None
        return False

    def write(self, chunk: bytes):
        try:
            self._file.write(chunk)
            self._file.flush()
        except OSError as e:
            raise SinkError(f"로그 파일 쓰기 실패: {self.path} - {e}") from e
        self.bytes_written += len(chunk)


class StatusSink:
    """
    종료 상태 기록

    CronJob 마다 <cronjob>.status 파일에 '<pod>=<phase>' 한 줄을 추가하고,
    Pod 마다 전체 리소스를 담은 <pod>.json 파일을 만든다.
    """

    LINE_SUFFIX = '.status'
    SNAPSHOT_SUFFIX = '.json'

    def __init__(self, output_dir: Path, cron_job: str):
        self.output_dir = Path(output_dir)
        self.line_file = self.output_dir / f"{cron_job}{self.LINE_SUFFIX}"

    def snapshot_path(self, pod_name: str) -> Path:
        return self.output_dir / f"{pod_name}{self.SNAPSHOT_SUFFIX}"

    def write(self, record: StatusRecord) -> Path:
        """
        상태 기록 저장

        Args:
            record: 저장할 StatusRecord

        Returns:
            스냅샷 파일 경로
        """
        snapshot_file = self.snapshot_path(record.name)
        recorded_at = record.recorded_at or datetime.now()

        payload = {
            'name': record.name,
            'phase': record.phase,
            'recorded_at': recorded_at.isoformat(),
            'pod': record.snapshot,
        }

        try:
            with open(snapshot_file, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)

            with open(self.line_file, 'a', encoding='utf-8') as f:
                f.write(format_status_line(record) + '\n')
        except OSError as e:
            raise SinkError(f"상태 파일 쓰기 실패: {record.name} - {e}") from e

        return snapshot_file


def format_status_line(record: StatusRecord) -> str:
    return f"{record.name}={record.phase}"


def parse_status_line(line: str) -> Tuple[str, str]:
    """
    '<pod>=<phase>' 한 줄 파싱

    Returns:
        (pod_name, phase)
    """
    name, sep, phase = line.strip().rpartition('=')
    if not sep or not name or not phase:
        raise ValueError(f"상태 줄 형식이 잘못되었습니다: {line!r}")
    return name, phase


def load_status_record(path: Path) -> StatusRecord:
    """<pod>.json 스냅샷 파일을 StatusRecord 로 복원"""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    return StatusRecord(
        name=data['name'],
        phase=data['phase'],
        snapshot=data.get('pod') or {},
        recorded_at=datetime.fromisoformat(data['recorded_at']) if data.get('recorded_at') else None,
    )
