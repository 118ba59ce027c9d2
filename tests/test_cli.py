"""Tests for the command line interface."""

from __future__ import annotations

import json

import numpy as np
from typer.testing import CliRunner

from audiotricks import cli
from audiotricks.data.models import JobStatus, ProcessingJob
from audiotricks.errors import JobNotFoundError
from audiotricks.utils.audio import encode_wave

runner = CliRunner()


def _write_wave(path) -> None:
    path.write_bytes(encode_wave(np.zeros((8000, 1), dtype=np.float32), 8000))


def test_transcribe_with_dummy_backend(tmp_path) -> None:
    audio_path = tmp_path / "clip.wav"
    _write_wave(audio_path)

    result = runner.invoke(cli.app, ["transcribe", str(audio_path), "--backend", "dummy"])

    assert result.exit_code == 0, result.output
    assert "Dummy transcript for clip.wav" in result.output
    assert "1 chunk(s)" in result.output


def test_transcribe_json_output_includes_summary(tmp_path) -> None:
    audio_path = tmp_path / "clip.wav"
    _write_wave(audio_path)

    result = runner.invoke(
        cli.app,
        ["transcribe", str(audio_path), "--backend", "dummy", "--summary", "dummy", "--json"],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["transcript"]["chunk_count"] == 1
    assert payload["transcript"]["failed_chunks"] == []
    assert payload["summary"]["summary"].startswith("Dummy transcript")


def test_transcribe_rejects_unknown_backend(tmp_path) -> None:
    audio_path = tmp_path / "clip.wav"
    _write_wave(audio_path)

    result = runner.invoke(cli.app, ["transcribe", str(audio_path), "--backend", "carrier-pigeon"])

    assert result.exit_code == 2


def test_transcribe_reports_pipeline_errors(tmp_path) -> None:
    audio_path = tmp_path / "notes.txt"
    audio_path.write_text("not audio")

    result = runner.invoke(cli.app, ["transcribe", str(audio_path), "--backend", "dummy"])

    assert result.exit_code == 1
    assert "Invalid audio file" in result.output


class _FakeJobClient:
    def __init__(self, jobs) -> None:
        self.jobs = list(jobs)
        self.closed = False

    async def get_job(self, job_id: str) -> ProcessingJob:
        job = self.jobs.pop(0)
        if isinstance(job, Exception):
            raise job
        return job

    async def aclose(self) -> None:
        self.closed = True


def test_poll_prints_progress_and_result(monkeypatch) -> None:
    client = _FakeJobClient(
        [ProcessingJob(job_id="job-9", status=JobStatus.COMPLETED, progress=100, result={"text": "hi"})]
    )
    monkeypatch.setattr(cli, "HttpJobStatusClient", lambda: client)

    result = runner.invoke(cli.app, ["poll", "job-9", "--interval", "0.01"])

    assert result.exit_code == 0, result.output
    assert "completed: 100%" in result.output
    assert '"text": "hi"' in result.output
    assert client.closed


def test_poll_exits_with_error_for_missing_job(monkeypatch) -> None:
    monkeypatch.setattr(cli, "HttpJobStatusClient", lambda: _FakeJobClient([JobNotFoundError()]))

    result = runner.invoke(cli.app, ["poll", "missing"])

    assert result.exit_code == 1
    assert "Processing job not found" in result.output


def test_settings_command_masks_secrets(monkeypatch) -> None:
    monkeypatch.setenv("AUDIOTRICKS_PROXY_TOKEN", "tok-secret")
    monkeypatch.setenv("AUDIOTRICKS_OPENAI_API_KEY", "sk-secret")

    result = runner.invoke(cli.app, ["settings"])

    assert result.exit_code == 0
    assert "AUDIOTRICKS_PROXY_TOKEN=***" in result.output
    assert "AUDIOTRICKS_OPENAI_API_KEY=***" in result.output
    assert "sk-secret" not in result.output
    assert "tok-secret" not in result.output
    assert "AUDIOTRICKS_MAX_CHUNK_BYTES=25165824" in result.output


def test_transcribe_closes_summary_service(tmp_path, monkeypatch) -> None:
    from audiotricks.services.notes.dummy import DummySummaryService

    class ClosingSummaryService(DummySummaryService):
        closed = False

        async def aclose(self) -> None:
            ClosingSummaryService.closed = True

    monkeypatch.setattr(cli, "resolve_summary_backend", lambda name: ClosingSummaryService())
    audio_path = tmp_path / "clip.wav"
    _write_wave(audio_path)

    result = runner.invoke(cli.app, ["transcribe", str(audio_path), "--backend", "dummy", "--summary", "openai"])

    assert result.exit_code == 0, result.output
    assert ClosingSummaryService.closed
