"""Integration tests for the per-file benchmark plan."""

import asyncio
import socket

import pytest

from mediabench.file import xor_fold
from mediabench.runner import BenchmarkRunner, BenchmarkSettings
from mediabench.transfer import TransferProtocol

TIMEOUT = 60


def get_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.mark.asyncio
async def test_all_paths_agree_on_checksum(checksum_server, make_payload_file,
                                           fake_transcoder):
    path, data = make_payload_file(200_000, seed=11)
    program, args = fake_transcoder(stderr_kb=4)
    settings = BenchmarkSettings(
        iterations=2,
        transcode_seconds=5.0,
        port=checksum_server.bound_port,
        remote_ip='127.0.0.1',
        ffmpeg=program,
        ffmpeg_args=args,
    )
    seen = []

    report = await asyncio.wait_for(
        BenchmarkRunner(settings).benchmark_file(
            path, on_result=lambda p, r: seen.append(r.label)
        ),
        TIMEOUT,
    )

    labels = [r.label for r in report.results]
    assert labels == [
        "Read file",
        "Read file again",
        "Transcoded file",
        "Transferred data locally",
        "Transferred data in LAN",
    ]
    assert seen == labels
    assert report.ok
    assert report.size == len(data)
    for result in report.results:
        assert result.last_output == xor_fold(data)
        assert len(result.samples) == 2
        assert result.stdev is not None


@pytest.mark.asyncio
async def test_echo_protocol_run(echo_server, make_payload_file):
    path, data = make_payload_file(100_000, seed=12)
    settings = BenchmarkSettings(
        iterations=2,
        port=echo_server.bound_port,
        protocol=TransferProtocol.ECHO,
        run_transcode=False,
    )

    report = await asyncio.wait_for(
        BenchmarkRunner(settings).benchmark_file(path), TIMEOUT
    )

    assert report.ok
    assert [r.last_output for r in report.results] == [xor_fold(data)] * 3


@pytest.mark.asyncio
async def test_failing_path_is_reported_by_label(make_payload_file):
    path, data = make_payload_file(1000, seed=13)
    settings = BenchmarkSettings(
        iterations=2,
        port=get_free_port(),
        ffmpeg='/nonexistent/bin/ffmpeg-mediabench',
    )

    report = await asyncio.wait_for(
        BenchmarkRunner(settings).benchmark_file(path), TIMEOUT
    )

    by_label = {r.label: r for r in report.results}
    assert by_label["Read file"].ok
    assert by_label["Read file"].last_output == xor_fold(data)
    assert len(by_label["Transcoded file"].failures) == 2
    assert "ProcessSpawnError" in by_label["Transcoded file"].failures[0].detail
    assert len(by_label["Transferred data locally"].failures) == 2
    assert "ConnectError" in by_label["Transferred data locally"].failures[0].detail
    assert "Transferred data in LAN" not in by_label
    assert not report.ok


@pytest.mark.asyncio
async def test_run_covers_every_input(make_payload_file):
    first, first_data = make_payload_file(10, seed=1)
    second, second_data = make_payload_file(20, seed=2)
    settings = BenchmarkSettings(iterations=1, run_transcode=False, run_transfer=False)

    reports = await BenchmarkRunner(settings).run([first, second])

    assert [r.path for r in reports] == [first, second]
    assert reports[0].results[0].last_output == xor_fold(first_data)
    assert reports[1].results[0].last_output == xor_fold(second_data)
    assert reports[0].results[0].stdev is None


@pytest.mark.asyncio
async def test_missing_input_does_not_stop_later_inputs(make_payload_file, tmp_path):
    missing = tmp_path / 'gone.mkv'
    good, good_data = make_payload_file(500, seed=3)
    settings = BenchmarkSettings(iterations=2, run_transcode=False,
                                 run_transfer=False)

    reports = await asyncio.wait_for(
        BenchmarkRunner(settings).run([missing, good]), TIMEOUT
    )

    assert [r.path for r in reports] == [missing, good]

    gone = {r.label: r for r in reports[0].results}
    assert reports[0].size is None
    assert not reports[0].ok
    assert len(gone["Read file"].failures) == 2
    assert gone["Read file"].failures[0].detail.startswith("StreamIOError")

    read = reports[1].results[0]
    assert reports[1].size == len(good_data)
    assert read.ok
    assert read.last_output == xor_fold(good_data)
