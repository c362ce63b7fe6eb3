#!/usr/bin/env python3
"""Kubernetes API 조회 모듈 (CronJob / Job / Pod / Pod 로그)"""

from pathlib import Path
from typing import Dict, Iterator, List, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException

from errors import ConfigError, OrchestratorError
from kube_types import ExecutionState, ScheduledJobRef, UNKNOWN, WorkerUnit


DEFAULT_KUBECONFIG = Path.home() / '.kube' / 'config'


def load_orchestrator(kubeconfig: Optional[str] = None, in_cluster: bool = False) -> 'KubeOrchestrator':
    """
    kubeconfig 또는 in-cluster 설정으로 API 클라이언트 생성

    Args:
        kubeconfig: kubeconfig 파일 경로 (None이면 기본 경로)
        in_cluster: Pod 안에서 service account로 접속할지 여부

    Returns:
        KubeOrchestrator
    """
    try:
        if in_cluster:
            config.load_incluster_config()
        else:
            config.load_kube_config(config_file=kubeconfig or str(DEFAULT_KUBECONFIG))
    except (ConfigException, OSError) as e:
        raise ConfigError(f"Kubernetes 접속 설정을 불러올 수 없습니다: {e}") from e

    return KubeOrchestrator()


class KubeOrchestrator:
    """감시 파이프라인이 사용하는 API 호출 모음"""

    LOG_CHUNK_SIZE = 4096

    def __init__(self, batch_api=None, core_api=None):
        self.batch_api = batch_api or client.BatchV1Api()
        self.core_api = core_api or client.CoreV1Api()
        self.serializer = client.ApiClient()

    def get_scheduled_job(self, ref: ScheduledJobRef) -> ExecutionState:
        """CronJob의 status.active 에서 활성 Job 이름 목록 조회"""
        try:
            cron_job = self.batch_api.read_namespaced_cron_job(ref.name, ref.namespace)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise OrchestratorError(f"CronJob 조회 실패 ({ref}): {e}") from e

        active = (cron_job.status and cron_job.status.active) or []
        return ExecutionState(active=tuple(obj.name for obj in active))

    def get_execution(self, ref: ScheduledJobRef, name: str) -> Dict[str, str]:
        """Job 라벨 조회"""
        try:
            job = self.batch_api.read_namespaced_job(name, ref.namespace)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise OrchestratorError(f"Job 조회 실패 ({ref.namespace}/{name}): {e}") from e

        return dict(job.metadata.labels or {})

    def list_worker_units(self, ref: ScheduledJobRef, selector: str) -> List[WorkerUnit]:
        try:
            pods = self.core_api.list_namespaced_pod(ref.namespace, label_selector=selector)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise OrchestratorError(f"Pod 목록 조회 실패 ({selector}): {e}") from e

        return [self._to_worker_unit(pod) for pod in pods.items]

    def get_worker_unit(self, ref: ScheduledJobRef, name: str) -> WorkerUnit:
        try:
            pod = self.core_api.read_namespaced_pod(name, ref.namespace)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise OrchestratorError(f"Pod 조회 실패 ({ref.namespace}/{name}): {e}") from e

        return self._to_worker_unit(pod)

    def stream_worker_output(self, ref: ScheduledJobRef, name: str) -> Iterator[bytes]:
        """
        Pod 로그를 follow 모드로 열어 바이트 청크 단위로 반환

        스트림은 Pod가 종료되거나 API 서버가 연결을 끊으면 끝난다.
        """
        try:
            response = self.core_api.read_namespaced_pod_log(
                name, ref.namespace, follow=True, _preload_content=False
            )
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise OrchestratorError(f"로그 스트림 열기 실패 ({ref.namespace}/{name}): {e}") from e

        finished = False
        try:
            for chunk in response.stream(self.LOG_CHUNK_SIZE, decode_content=False):
                yield chunk
            finished = True
        except urllib3.exceptions.HTTPError as e:
            raise OrchestratorError(f"로그 스트림 읽기 실패 ({ref.namespace}/{name}): {e}") from e
        finally:
            # EOF 전에 끝나면 follow 연결을 풀에 돌려주지 않고 닫는다
            if not finished:
                response.close()
            response.release_conn()

    def _to_worker_unit(self, pod) -> WorkerUnit:
        phase = (pod.status and pod.status.phase) or UNKNOWN
        return WorkerUnit(
            name=pod.metadata.name,
            phase=phase,
            snapshot=self.serializer.sanitize_for_serialization(pod),
        )
