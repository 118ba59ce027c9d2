"""Error taxonomy shared by the transcription pipeline and the job poller.

Every error carries a message that can be shown to an end user as-is.
"""

from __future__ import annotations

from typing import Optional


class AudioTricksError(RuntimeError):
    """Base class for all errors raised by AudioTricks."""

    default_message = "Audio processing failed."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class DecodeError(AudioTricksError):
    default_message = (
        "Failed to decode audio file. Please ensure the file is a valid audio format and try again."
    )


class EmptyFileError(AudioTricksError):
    default_message = "File is empty."


class UnsupportedAudioError(AudioTricksError):
    default_message = "Invalid audio file. Supported: MP3, WAV, M4A, FLAC, OGG, OPUS, WEBM."


class EncodeError(AudioTricksError):
    default_message = "Failed to prepare an audio chunk for upload."


class ChunkTooLargeError(AudioTricksError):
    """A chunk cannot be brought under the upload limit, even compressed."""

    default_message = (
        "Audio chunk is too large to upload even after compression. "
        "Try a shorter recording or raise the chunk size limit."
    )


class TranscriptionError(AudioTricksError):
    default_message = "Transcription failed."


class TransientAPIError(TranscriptionError):
    """Rate limits, server errors and network failures. Safe to retry."""

    default_message = "The transcription service is temporarily unavailable. Please try again later."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class AuthError(TranscriptionError):
    default_message = "Invalid API key. Please check your API key and try again."


class TranscriptionRequestError(TranscriptionError):
    """The service rejected the request itself; retrying cannot help."""

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TranscriptionFailedError(TranscriptionError):
    default_message = "Failed to process the audio file. Every chunk failed to transcribe."


class CancelledError(AudioTricksError):
    default_message = "Transcription was cancelled."


class JobError(AudioTricksError):
    default_message = "Processing failed."


class JobFailedError(JobError):
    pass


class JobNotFoundError(JobError):
    default_message = "Processing job not found."


class JobTimeoutError(JobError, TimeoutError):
    default_message = "Timed out waiting for the processing job to finish."


__all__ = [
    "AudioTricksError",
    "AuthError",
    "CancelledError",
    "ChunkTooLargeError",
    "DecodeError",
    "EmptyFileError",
    "EncodeError",
    "JobError",
    "JobFailedError",
    "JobNotFoundError",
    "JobTimeoutError",
    "TranscriptionError",
    "TranscriptionFailedError",
    "TranscriptionRequestError",
    "TransientAPIError",
    "UnsupportedAudioError",
]
