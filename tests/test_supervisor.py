import threading

import pytest

from conftest import FakeOrchestrator, pod
from errors import ConfigError, InvariantViolation, OrchestratorError
from kube_types import ExecutionState
from supervisor import WatchSupervisor
from watch_config import WatchSettings


def make_settings(tmp_path, jobs):
    return WatchSettings(
        namespace='batch',
        jobs=jobs,
        output_dir=tmp_path / 'out',
        poll_interval=0.01,
        worker_poll_interval=0,
    )


class PerJobOrchestrator:
    """CronJob 이름별로 다른 응답을 주는 대역"""

    def __init__(self, failures):
        self.failures = failures
        self.polls = {}
        self.lock = threading.Lock()

    def get_scheduled_job(self, ref):
        with self.lock:
            count = self.polls[ref.name] = self.polls.get(ref.name, 0) + 1
        failure = self.failures.get(ref.name)
        if failure is not None and count >= 3:
            raise failure
        return ExecutionState(active=())


def test_end_to_end_nightly_export(tmp_path):
    cancel_event = threading.Event()
    pod_name = 'nightly-export-27182818-xk92p'
    orchestrator = FakeOrchestrator(
        cancel_event,
        cron_states=[[], ['nightly-export-27182818']],
        labels={'job-name': 'nightly-export-27182818'},
        pod_lists=[[pod(pod_name, 'Pending')], [pod(pod_name, 'Running')]],
        pod_gets=[pod(pod_name, 'Running'), pod(pod_name, 'Succeeded')],
        log_chunks=[b'exporting 1/3\n', b'exporting 2/3\n', b'exporting 3/3\n'],
    )
    supervisor = WatchSupervisor(
        orchestrator, make_settings(tmp_path, ['nightly-export']), cancel_event=cancel_event
    )

    supervisor.run()

    out = tmp_path / 'out'
    logs = (out / f'{pod_name}.logs').read_text().splitlines()
    assert logs == ['exporting 1/3', 'exporting 2/3', 'exporting 3/3']
    assert (out / 'nightly-export.status').read_text() == f'{pod_name}=Succeeded\n'
    assert supervisor.trackers[0].handled == 1


def test_first_error_cancels_siblings(tmp_path):
    orchestrator = PerJobOrchestrator({'broken': OrchestratorError('api down')})
    supervisor = WatchSupervisor(orchestrator, make_settings(tmp_path, ['healthy', 'broken', 'other']))

    with pytest.raises(OrchestratorError, match='api down'):
        supervisor.run()

    assert supervisor.cancel_event.is_set()
    assert orchestrator.polls['broken'] == 3


def test_invariant_violation_is_reported_distinctly(tmp_path):
    orchestrator = PerJobOrchestrator({'dup': InvariantViolation('dup', ['a', 'b'])})
    supervisor = WatchSupervisor(orchestrator, make_settings(tmp_path, ['dup', 'healthy']))

    with pytest.raises(InvariantViolation):
        supervisor.run()


def test_duplicate_names_run_redundant_pipelines(tmp_path):
    orchestrator = PerJobOrchestrator({})
    supervisor = WatchSupervisor(orchestrator, make_settings(tmp_path, ['same', 'same']))

    timer = threading.Timer(0.2, supervisor.stop)
    timer.start()
    try:
        supervisor.run()
    finally:
        timer.cancel()

    assert len(supervisor.trackers) == 2
    assert orchestrator.polls['same'] >= 2


def test_stop_returns_cleanly(tmp_path):
    orchestrator = PerJobOrchestrator({})
    supervisor = WatchSupervisor(orchestrator, make_settings(tmp_path, ['a', 'b']))
    supervisor.stop()

    supervisor.run()

    assert orchestrator.polls == {}


def test_empty_job_list_is_config_error(tmp_path):
    supervisor = WatchSupervisor(PerJobOrchestrator({}), make_settings(tmp_path, []))

    with pytest.raises(ConfigError):
        supervisor.run()

    assert supervisor.trackers == []
