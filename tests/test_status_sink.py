from datetime import datetime

import pytest

from errors import SinkError
from kube_types import StatusRecord
from status_sink import LogSink, StatusSink, load_status_record, parse_status_line


def test_status_line_round_trip(tmp_path):
    sink = StatusSink(tmp_path, 'job-x')
    sink.write(StatusRecord(name='job-x-abc12', phase='Succeeded'))

    lines = sink.line_file.read_text(encoding='utf-8').splitlines()
    assert lines == ['job-x-abc12=Succeeded']
    assert parse_status_line(lines[0]) == ('job-x-abc12', 'Succeeded')


def test_snapshot_round_trip(tmp_path):
    recorded_at = datetime(2026, 10, 19, 3, 0, 0)
    snapshot = {'metadata': {'name': 'job-x-abc12'}, 'status': {'phase': 'Succeeded'}}
    sink = StatusSink(tmp_path, 'job-x')

    path = sink.write(StatusRecord('job-x-abc12', 'Succeeded', snapshot, recorded_at))
    record = load_status_record(path)

    assert path == tmp_path / 'job-x-abc12.json'
    assert record.name == 'job-x-abc12'
    assert record.phase == 'Succeeded'
    assert record.snapshot == snapshot
    assert record.recorded_at == recorded_at


def test_status_lines_are_appended(tmp_path):
    sink = StatusSink(tmp_path, 'job-x')
    sink.write(StatusRecord('job-x-1', 'Succeeded'))
    sink.write(StatusRecord('job-x-2', 'Failed'))

    assert sink.line_file.read_text(encoding='utf-8') == 'job-x-1=Succeeded\njob-x-2=Failed\n'


@pytest.mark.parametrize('line', ['', 'no-separator', '=Succeeded', 'job-x='])
def test_parse_status_line_rejects_malformed(line):
    with pytest.raises(ValueError):
        parse_status_line(line)


def test_status_sink_io_error(tmp_path):
    sink = StatusSink(tmp_path / 'missing', 'job-x')

    with pytest.raises(SinkError):
        sink.write(StatusRecord('job-x-1', 'Succeeded'))


def test_log_sink_counts_bytes(tmp_path):
    with LogSink(tmp_path, 'job-x-1') as sink:
        sink.write(b'abc')
        sink.write(b'de\n')

    assert sink.path == tmp_path / 'job-x-1.logs'
    assert sink.bytes_written == 6
    assert sink.path.read_bytes() == b'abcde\n'


def test_log_sink_create_failure(tmp_path):
    with pytest.raises(SinkError):
        with LogSink(tmp_path / 'missing', 'job-x-1'):
            pass
