#!/usr/bin/env python3
"""CronJob Watcher 실행 스크립트"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from errors import ConfigError
from kube_client import DEFAULT_KUBECONFIG, load_orchestrator
from supervisor import WatchSupervisor
from watch_config import build_settings


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="CronJob이 만드는 Job의 Pod 로그와 종료 상태를 기록합니다."
    )
    parser.add_argument('--kubeconfig', default=None,
                        help=f"kubeconfig 파일 경로 (기본값: {DEFAULT_KUBECONFIG})")
    parser.add_argument('--in-cluster', action='store_true',
                        help="Pod 안에서 service account 설정으로 접속")
    parser.add_argument('-j', '--job', dest='jobs', action='append', default=[],
                        help="CronJob 이름 (필수, 여러 번 지정 가능)")
    parser.add_argument('-n', '--namespace', default=None,
                        help="Kubernetes namespace (필수)")
    parser.add_argument('-c', '--config', default=None,
                        help="YAML 설정 파일 (명령행 값이 우선)")
    parser.add_argument('-o', '--output-dir', default=None,
                        help="로그/상태 파일 저장 경로 (기본값: 현재 디렉토리)")
    parser.add_argument('--poll-interval', type=float, default=None,
                        help="CronJob 조회 간격 (초, 기본값: 5)")
    parser.add_argument('--worker-poll-interval', type=float, default=None,
                        help="Pod 조회 간격 (초, 기본값: 0.05)")
    parser.add_argument('--log-file', default=None,
                        help="감시기 로그 파일 (기본값: ~/cronjob-watcher.log)")
    return parser.parse_args(argv)


def setup_logging(log_file: Path):
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        settings = build_settings(args)
    except ConfigError as e:
        print(f"설정 오류: {e}", file=sys.stderr)
        return 2

    print("=" * 60)
    print("CronJob Watcher 시작")
    print("=" * 60)
    print(f"namespace:     {settings.namespace}")
    print(f"감시 대상:     {', '.join(settings.jobs)}")
    print(f"출력 디렉토리: {settings.output_dir}")
    print("=" * 60)
    print("종료: Ctrl+C\n")

    try:
        setup_logging(settings.log_file)
    except OSError as e:
        print(f"설정 오류: 로그 파일을 열 수 없습니다: {settings.log_file} - {e}", file=sys.stderr)
        return 2
    logger = logging.getLogger('run_watcher')

    try:
        orchestrator = load_orchestrator(settings.kubeconfig, settings.in_cluster)
    except ConfigError as e:
        logger.error(f"설정 오류: {e}")
        return 2

    supervisor = WatchSupervisor(orchestrator, settings)
    signal.signal(signal.SIGTERM, lambda signum, frame: supervisor.stop())

    try:
        supervisor.run()
    except Exception as e:
        logger.error(f"오류 발생: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
