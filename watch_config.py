#!/usr/bin/env python3
"""감시기 설정 파일 검증 모듈"""

import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from cronjob_watcher import DEFAULT_POLL_INTERVAL, DEFAULT_WORKER_POLL_INTERVAL
from errors import ConfigError

DEFAULT_LOG_FILE = Path.home() / 'cronjob-watcher.log'


@dataclass
class WatchSettings:
    """YAML 설정과 명령행 인자를 합친 최종 설정"""

    namespace: str
    jobs: List[str]
    output_dir: Path = Path('.')
    poll_interval: float = DEFAULT_POLL_INTERVAL
    worker_poll_interval: float = DEFAULT_WORKER_POLL_INTERVAL
    kubeconfig: Optional[str] = None
    in_cluster: bool = False
    log_file: Path = field(default_factory=lambda: DEFAULT_LOG_FILE)


class WatchConfigValidator:
    """감시기 설정 검증 클래스"""

    # Kubernetes 리소스 이름 규칙 (DNS-1123 subdomain)
    NAME_PATTERN = re.compile(r'^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$')
    MAX_NAME_LENGTH = 253

    KNOWN_FIELDS = [
        'namespace', 'jobs', 'output_dir', 'poll_interval',
        'worker_poll_interval', 'kubeconfig', 'in_cluster', 'log_file',
    ]

    def __init__(self):
        self.errors = []

    def validate(self, config_file: Path) -> Tuple[bool, List[str], dict]:
        """
        설정 파일 검증

        Args:
            config_file: 검증할 YAML 설정 파일 경로

        Returns:
            (is_valid, error_messages, parsed_data)
        """
        self.errors = []

        # 1. 파일 존재 확인
        if not config_file.exists():
            self.errors.append(f"설정 파일이 존재하지 않습니다: {config_file}")
            return False, self.errors, {}

        # 2. YAML 파싱
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self.errors.append(f"YAML 파싱 오류: {e}")
            return False, self.errors, {}
        except OSError as e:
            self.errors.append(f"파일 읽기 오류: {e}")
            return False, self.errors, {}

        # 빈 파일은 빈 설정
        if data is None:
            data = {}

        if not isinstance(data, dict):
            self.errors.append("설정 파일은 딕셔너리 형태여야 합니다")
            return False, self.errors, {}

        # 3. 필드 값 검증
        if not self.validate_data(data):
            return False, self.errors, data

        return True, [], data

    def validate_data(self, data: dict) -> bool:
        """필드 값 검증 (모든 필드는 선택사항, 필수 여부는 build_settings 에서 확인)"""

        unknown = [key for key in data if key not in self.KNOWN_FIELDS]
        if unknown:
            self.errors.append(f"알 수 없는 필드: {', '.join(sorted(map(str, unknown)))}")

        # namespace 검증
        if 'namespace' in data and not self._valid_name(data['namespace']):
            self.errors.append("namespace는 Kubernetes 이름 규칙을 따르는 문자열이어야 합니다")

        # jobs 검증
        if 'jobs' in data:
            jobs = data['jobs']
            if not isinstance(jobs, list) or not jobs:
                self.errors.append("jobs는 비어있지 않은 리스트여야 합니다")
            else:
                for job in jobs:
                    if not self._valid_name(job):
                        self.errors.append(f"CronJob 이름이 잘못되었습니다: {job!r}")

        # 조회 간격 검증
        for key in ('poll_interval', 'worker_poll_interval'):
            if key in data:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)) \
                        or not math.isfinite(value) or value <= 0:
                    self.errors.append(f"{key}는 0보다 큰 유한한 숫자여야 합니다")

        # 경로 검증
        for key in ('output_dir', 'kubeconfig', 'log_file'):
            if key in data and not (isinstance(data[key], str) and data[key]):
                self.errors.append(f"{key}는 비어있지 않은 문자열이어야 합니다")

        if 'in_cluster' in data and not isinstance(data['in_cluster'], bool):
            self.errors.append("in_cluster는 true/false 여야 합니다")

        return not self.errors

    def _valid_name(self, name) -> bool:
        return (
            isinstance(name, str)
            and len(name) <= self.MAX_NAME_LENGTH
            and bool(self.NAME_PATTERN.match(name))
        )


def build_settings(args) -> WatchSettings:
    """
    명령행 인자와 (선택) YAML 설정을 합쳐 WatchSettings 생성

    명령행 값이 YAML 값보다 우선한다. job 이름이나 namespace가 없으면
    ConfigError.
    """
    validator = WatchConfigValidator()
    data = {}

    if getattr(args, 'config', None):
        is_valid, errors, data = validator.validate(Path(args.config))
        if not is_valid:
            raise ConfigError(errors)

    # 명령행 인자로 덮어쓰기
    overrides = {
        'namespace': getattr(args, 'namespace', None),
        'jobs': getattr(args, 'jobs', None) or None,
        'output_dir': getattr(args, 'output_dir', None),
        'poll_interval': getattr(args, 'poll_interval', None),
        'worker_poll_interval': getattr(args, 'worker_poll_interval', None),
        'kubeconfig': getattr(args, 'kubeconfig', None),
        'log_file': getattr(args, 'log_file', None),
    }
    merged = dict(data)
    merged.update({key: value for key, value in overrides.items() if value is not None})
    if getattr(args, 'in_cluster', False):
        merged['in_cluster'] = True

    validator.errors = []
    if not validator.validate_data(merged):
        raise ConfigError(validator.errors)

    # 필수 값 확인
    missing = []
    if not merged.get('jobs'):
        missing.append("CronJob 이름(-j)이 하나 이상 필요합니다")
    if not merged.get('namespace'):
        missing.append("namespace(-n)가 필요합니다")
    if missing:
        raise ConfigError(missing)

    settings = WatchSettings(namespace=merged['namespace'], jobs=list(merged['jobs']))
    if 'output_dir' in merged:
        settings.output_dir = Path(merged['output_dir'])
    if 'poll_interval' in merged:
        settings.poll_interval = float(merged['poll_interval'])
    if 'worker_poll_interval' in merged:
        settings.worker_poll_interval = float(merged['worker_poll_interval'])
    if 'kubeconfig' in merged:
        settings.kubeconfig = merged['kubeconfig']
    if 'log_file' in merged:
        settings.log_file = Path(merged['log_file'])
    settings.in_cluster = merged.get('in_cluster', False)

    return settings
