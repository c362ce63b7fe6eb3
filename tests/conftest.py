import threading

import pytest

from kube_types import ExecutionState, WorkerUnit


def pod(name, phase):
    return WorkerUnit(name=name, phase=phase, snapshot={'metadata': {'name': name}, 'status': {'phase': phase}})


class FakeOrchestrator:
    """
    스크립트된 응답을 순서대로 돌려주는 API 대역

    CronJob 응답을 모두 소비한 뒤 다시 조회되면 취소 신호를 보내고 마지막
    응답을 반복한다. Pod 목록/조회 응답은 마지막 값을 계속 반복한다.
    """

    def __init__(self, cancel_event, cron_states=(), labels=None, pod_lists=(), pod_gets=(), log_chunks=()):
        self.cancel_event = cancel_event
        self.cron_states = list(cron_states)
        self.labels = labels if labels is not None else {}
        self.pod_lists = list(pod_lists)
        self.pod_gets = list(pod_gets)
        self.log_chunks = list(log_chunks)
        self.calls = []

    def _take(self, script, name):
        count = sum(1 for call in self.calls if call[0] == name)
        if count <= len(script):
            value = script[count - 1]
        else:
            value = script[-1]
        if isinstance(value, Exception):
            raise value
        return value

    def get_scheduled_job(self, ref):
        self.calls.append(('get_scheduled_job', ref.name))
        if len([c for c in self.calls if c[0] == 'get_scheduled_job']) > len(self.cron_states):
            self.cancel_event.set()
        return ExecutionState(active=tuple(self._take(self.cron_states, 'get_scheduled_job')))

    def get_execution(self, ref, name):
        self.calls.append(('get_execution', name))
        return dict(self.labels)

    def list_worker_units(self, ref, selector):
        self.calls.append(('list_worker_units', selector))
        return list(self._take(self.pod_lists, 'list_worker_units'))

    def get_worker_unit(self, ref, name):
        self.calls.append(('get_worker_unit', name))
        return self._take(self.pod_gets, 'get_worker_unit')

    def stream_worker_output(self, ref, name):
        self.calls.append(('stream_worker_output', name))
        for chunk in self.log_chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def call_names(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def cancel_event():
    return threading.Event()
