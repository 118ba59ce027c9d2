"""Data models used by AudioTricks."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass
class AudioFile:
    """An uploaded audio file held in memory."""

    data: bytes
    filename: str = "audio.wav"
    content_type: str = "audio/wav"

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> "AudioFile":
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            data=path.read_bytes(),
            filename=path.name,
            content_type=content_type or "application/octet-stream",
        )


_CHUNK_EXTENSIONS = {"audio/wav": "wav", "audio/mpeg": "mp3"}


@dataclass
class AudioChunk:
    """One slice of a larger recording, tagged with its offset into the original."""

    data: bytes
    start_time: float
    end_time: float
    index: int = 0
    total_chunks: int = 1
    content_type: str = "audio/wav"

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def filename(self) -> str:
        extension = _CHUNK_EXTENSIONS.get(self.content_type, "wav")
        return f"chunk_{self.index:03d}.{extension}"


@dataclass
class SplitResult:
    chunks: List[AudioChunk]
    total_duration: float
    original_size: int = 0


class TranscriptSegment(BaseModel):
    start: float
    end: float
    text: str

    def shifted(self, offset: float) -> "TranscriptSegment":
        return self.model_copy(update={"start": self.start + offset, "end": self.end + offset})


class ChunkTranscriptionResult(BaseModel):
    """Transcription of a single chunk; segment timestamps are chunk relative."""

    text: str = ""
    segments: List[TranscriptSegment] = Field(default_factory=list)
    duration: Optional[float] = None
    language: Optional[str] = None
    failed: bool = False


class MergedTranscript(BaseModel):
    text: str
    segments: List[TranscriptSegment] = Field(default_factory=list)
    duration: float = 0.0
    language: Optional[str] = None
    chunk_count: int = 1
    failed_chunks: List[int] = Field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_chunks)


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class ProcessingJob(BaseModel):
    """State of a server-side processing job as reported by the jobs API."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: JobStatus
    progress: float = 0.0
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value: Any) -> float:
        if value is None:
            return 0.0
        return min(max(float(value), 0.0), 100.0)


class KeyMoment(BaseModel):
    timestamp: str
    title: str
    description: str = ""
    importance: str = "medium"


class SummaryDocument(BaseModel):
    summary: str
    takeaways: List[str] = Field(default_factory=list)
    key_moments: List[KeyMoment] = Field(default_factory=list)
    language: str = "en"
    total_duration: float = 0.0
    word_count: int = 0


@dataclass
class ProcessingOutcome:
    transcript: MergedTranscript
    summary: Optional[SummaryDocument] = None
    processing_time: float = 0.0
    stages: List[str] = field(default_factory=list)


__all__ = [
    "AudioChunk",
    "AudioFile",
    "ChunkTranscriptionResult",
    "JobStatus",
    "KeyMoment",
    "MergedTranscript",
    "ProcessingJob",
    "ProcessingOutcome",
    "SplitResult",
    "SummaryDocument",
    "TranscriptSegment",
]
