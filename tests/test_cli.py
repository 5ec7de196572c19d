"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from mediabench.cli import cli, format_result, format_size
from mediabench.bench import BenchmarkResult, IterationFailure


@pytest.fixture
def runner(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ['MEDIABENCH_PORT', 'MEDIABENCH_PROTOCOL', 'MEDIABENCH_ITERATIONS',
                'MEDIABENCH_REMOTE_IP', 'MEDIABENCH_LOG_LEVEL']:
        monkeypatch.delenv(key, raising=False)
    return CliRunner()


class TestCommands:
    """Test command wiring."""

    def test_config_shows_defaults(self, runner):
        result = runner.invoke(cli, ['config'])

        assert result.exit_code == 0
        assert '"protocol": "checksum"' in result.output
        assert '1144' in result.output

    def test_config_reads_file(self, runner, tmp_path):
        path = tmp_path / 'bench.json'
        path.write_text(json.dumps({'protocol': 'echo', 'port': 2222}))

        result = runner.invoke(cli, ['--config', str(path), 'config'])

        assert result.exit_code == 0
        assert '"protocol": "echo"' in result.output
        assert '2222' in result.output

    def test_example_config(self, runner):
        result = runner.invoke(cli, ['config', '--example'])

        assert result.exit_code == 0
        assert 'max_connections' in result.output

    def test_benchmark_read_only(self, runner, tmp_path):
        media = tmp_path / 'clip.mkv'
        media.write_bytes(b'\x01\x02\x04' * 1001)

        result = runner.invoke(cli, [
            'benchmark', str(media), '-n', '2', '--skip-transcode', '--skip-transfer',
        ])

        assert result.exit_code == 0, result.output
        assert 'Read file in' in result.output
        assert 'Read file again in' in result.output
        assert '0x07' in result.output

    def test_benchmark_failure_sets_exit_status(self, runner, tmp_path):
        media = tmp_path / 'clip.mkv'
        media.write_bytes(b'data')

        # Port 1 on loopback: nothing listens there
        result = runner.invoke(cli, [
            'benchmark', str(media), '-n', '1', '--skip-transcode', '--port', '1',
        ])

        assert result.exit_code == 1
        assert 'ConnectError' in result.output

    def test_benchmark_requires_existing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ['benchmark', str(tmp_path / 'missing.mkv')])

        assert result.exit_code == 2

    def test_benchmark_rejects_zero_iterations(self, runner, tmp_path):
        media = tmp_path / 'clip.mkv'
        media.write_bytes(b'data')

        result = runner.invoke(cli, ['benchmark', str(media), '-n', '0'])

        assert result.exit_code == 2

    def test_server_rejects_unknown_protocol(self, runner):
        result = runner.invoke(cli, ['server', '--protocol', 'carrier-pigeon'])

        assert result.exit_code == 2


class TestFormatting:
    """Test result rendering."""

    def test_format_result_with_stdev(self):
        result = BenchmarkResult(label='Read file', iterations=3,
                                 samples=[1.0, 2.0, 3.0], mean=2.0, stdev=1.0,
                                 last_output=0x3f)

        assert format_result(result) == 'Read file in 2.0 ± 1.0 s (got 0x3f)'

    def test_format_result_single_sample(self):
        result = BenchmarkResult(label='Read file', iterations=1,
                                 samples=[1.24], mean=1.24, stdev=None,
                                 last_output=0)

        assert format_result(result) == 'Read file in 1.2 ± undefined s (got 0x00)'

    def test_format_result_after_failed_final_run(self):
        result = BenchmarkResult(label='Transcoded file', iterations=2,
                                 samples=[1.0], mean=1.0, stdev=None,
                                 last_output=None,
                                 failures=[IterationFailure(1, OSError('gone'))])

        assert format_result(result) == 'Transcoded file in 1.0 ± undefined s (last run failed)'

    def test_format_size(self):
        assert format_size(512) == '512.0 B'
        assert format_size(1536) == '1.5 KB'
