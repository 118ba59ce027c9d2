import numpy as np
import pytest

from audiotricks.config import MEGABYTE
from audiotricks.core.cancellation import CancellationToken
from audiotricks.core.pipeline.orchestrator import TranscriptionOrchestrator, build_orchestrator
from audiotricks.data.models import AudioFile, ChunkTranscriptionResult, TranscriptSegment
from audiotricks.errors import (
    AuthError,
    CancelledError,
    ChunkTooLargeError,
    DecodeError,
    EmptyFileError,
    TranscriptionFailedError,
    TransientAPIError,
)
from audiotricks.services.transcription import (
    ChunkTranscriber,
    DummyTranscriptionTransport,
    TranscriptionTransport,
)
from audiotricks.utils.audio import AudioSplitter, DecodedAudio
from audiotricks.utils.retry import RetryPolicy

THRESHOLD = 25 * MEGABYTE


class PartTransport(TranscriptionTransport):
    """Answers ``partN`` for chunk N and fails the chunks it is told to."""

    def __init__(self, failing=(), error=None, segments=False) -> None:
        self.failing = set(failing)
        self.error = error or TransientAPIError("500 Internal Server Error", status_code=500)
        self.segments = segments
        self.calls: list[str] = []

    async def transcribe(self, data, filename, content_type):
        self.calls.append(filename)
        index = int(filename.split("_")[1].split(".")[0]) if filename.startswith("chunk_") else 0
        if index in self.failing:
            raise self.error
        segments = [TranscriptSegment(start=2.0, end=3.0, text=f"part{index}")] if self.segments else []
        return ChunkTranscriptionResult(text=f"part{index}", segments=segments)


def _decoder(seconds: float = 90.0, sample_rate: int = 8000):
    decoded = DecodedAudio(
        samples=np.zeros((int(seconds * sample_rate), 1), dtype=np.float32),
        sample_rate=sample_rate,
    )
    return lambda audio: decoded


def _orchestrator(transport, *, max_attempts: int = 3, decoder=None) -> TranscriptionOrchestrator:
    splitter = AudioSplitter(THRESHOLD, decoder=decoder or _decoder())
    transcriber = ChunkTranscriber(transport, RetryPolicy(max_attempts=max_attempts, delay=0))
    return TranscriptionOrchestrator(transcriber, splitter=splitter)


def _large_file(megabytes: int = 60) -> AudioFile:
    return AudioFile(data=bytes(megabytes * MEGABYTE), filename="lecture.mp3", content_type="audio/mpeg")


@pytest.mark.asyncio
async def test_large_file_is_split_transcribed_and_merged() -> None:
    transport = PartTransport()
    progress: list[tuple[int, int]] = []

    merged = await _orchestrator(transport).transcribe(
        _large_file(), on_progress=lambda current, total: progress.append((current, total))
    )

    assert transport.calls == ["chunk_000.wav", "chunk_001.wav", "chunk_002.wav"]
    assert merged.text == "part0 part1 part2"
    assert merged.duration == pytest.approx(30.0 + 30.0 + 30.0)
    assert merged.chunk_count == 3
    assert merged.failed_chunks == []
    assert progress == [(1, 3), (2, 3), (3, 3)]


@pytest.mark.asyncio
async def test_chunk_segments_land_on_global_timeline() -> None:
    merged = await _orchestrator(PartTransport(segments=True)).transcribe(_large_file())

    assert [segment.start for segment in merged.segments] == [2.0, 32.0, 62.0]
    assert [segment.text for segment in merged.segments] == ["part0", "part1", "part2"]


@pytest.mark.asyncio
async def test_small_file_is_transcribed_directly() -> None:
    transport = PartTransport(segments=True)
    audio = AudioFile(data=b"small audio", filename="memo.m4a", content_type="audio/x-m4a")
    progress: list[tuple[int, int]] = []

    merged = await _orchestrator(transport, decoder=lambda _: pytest.fail("must not decode")).transcribe(
        audio, on_progress=lambda current, total: progress.append((current, total))
    )
    direct = await ChunkTranscriber(PartTransport(segments=True)).transcribe(audio)

    assert transport.calls == ["memo.m4a"]
    assert merged.chunk_count == 1
    assert merged.text == direct.text
    assert merged.segments == direct.segments
    assert progress == [(1, 1)]


@pytest.mark.asyncio
async def test_file_at_threshold_is_not_split() -> None:
    transport = PartTransport()
    audio = AudioFile(data=bytes(THRESHOLD), filename="edge.wav")

    merged = await _orchestrator(transport).transcribe(audio)

    assert transport.calls == ["edge.wav"]
    assert merged.chunk_count == 1


@pytest.mark.asyncio
async def test_exhausted_chunk_becomes_placeholder() -> None:
    for _ in range(2):
        transport = PartTransport(failing={1})

        merged = await _orchestrator(transport).transcribe(_large_file())

        assert merged.text == "part0 [Chunk 2 failed to process] part2"
        assert merged.failed_chunks == [2]
        assert transport.calls.count("chunk_001.wav") == 3
        assert merged.duration == pytest.approx(90.0)


@pytest.mark.asyncio
async def test_every_chunk_failing_raises() -> None:
    transport = PartTransport(failing={0, 1, 2})

    with pytest.raises(TranscriptionFailedError):
        await _orchestrator(transport, max_attempts=2).transcribe(_large_file())

    assert len(transport.calls) == 6


@pytest.mark.asyncio
async def test_auth_error_aborts_remaining_chunks() -> None:
    transport = PartTransport(failing={1}, error=AuthError())

    with pytest.raises(AuthError):
        await _orchestrator(transport).transcribe(_large_file())

    assert transport.calls == ["chunk_000.wav", "chunk_001.wav"]


@pytest.mark.asyncio
async def test_cancellation_after_first_chunk_stops_processing() -> None:
    transport = PartTransport()
    token = CancellationToken()

    def on_progress(current: int, total: int) -> None:
        if current == 1:
            token.cancel()

    with pytest.raises(CancelledError):
        await _orchestrator(transport).transcribe(_large_file(), cancellation=token, on_progress=on_progress)

    assert transport.calls == ["chunk_000.wav"]


@pytest.mark.asyncio
async def test_decode_failure_aborts_before_any_call() -> None:
    transport = PartTransport()

    def broken_decoder(audio):
        raise DecodeError()

    with pytest.raises(DecodeError):
        await _orchestrator(transport, decoder=broken_decoder).transcribe(_large_file())

    assert transport.calls == []


@pytest.mark.asyncio
async def test_unfittable_chunk_aborts_before_any_call() -> None:
    transport = PartTransport()
    splitter = AudioSplitter(1000, decoder=_decoder())
    orchestrator = TranscriptionOrchestrator(ChunkTranscriber(transport), splitter=splitter)

    with pytest.raises(ChunkTooLargeError):
        await orchestrator.transcribe(AudioFile(data=bytes(3000), filename="long.mp3"))

    assert transport.calls == []


@pytest.mark.asyncio
async def test_empty_file_is_rejected() -> None:
    with pytest.raises(EmptyFileError):
        await _orchestrator(PartTransport()).transcribe(AudioFile(data=b"", filename="empty.wav"))


@pytest.mark.asyncio
async def test_build_orchestrator_uses_settings() -> None:
    from audiotricks.config import get_settings

    settings = get_settings().model_copy(
        update={"max_chunk_bytes": 1024, "retry_max_attempts": 4, "split_sample_rate": None}
    )

    orchestrator = build_orchestrator(DummyTranscriptionTransport(), settings)

    assert orchestrator.max_chunk_bytes == 1024
    assert orchestrator.splitter.max_chunk_bytes == 1024
    assert orchestrator.splitter.target_sample_rate is None
    assert orchestrator.transcriber.retry_policy.max_attempts == 4
