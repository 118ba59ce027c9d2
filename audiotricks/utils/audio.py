"""Audio decoding, encoding and splitting utilities."""

from __future__ import annotations

import io
import math
import struct
import subprocess
import wave
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from ..data.models import AudioChunk, AudioFile, SplitResult
from ..errors import ChunkTooLargeError, DecodeError, EmptyFileError, EncodeError
from ..logging import get_logger

LOGGER = get_logger(__name__)

_DTYPE_FOR_WIDTH = {
    1: np.uint8,
    2: np.int16,
    4: np.int32,
}

_SCALE_FOR_WIDTH = {
    1: 128.0,
    2: 32768.0,
    4: 2147483648.0,
}


@dataclass
class DecodedAudio:
    """Float32 samples shaped ``(frames, channels)`` in the range [-1, 1]."""

    samples: np.ndarray
    sample_rate: int

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / float(self.sample_rate)


def is_wave(data: bytes) -> bool:
    return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WAVE"


def read_wave(data: bytes) -> DecodedAudio:
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            sample_rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError, struct.error) as exc:
        raise DecodeError() from exc

    dtype = _DTYPE_FOR_WIDTH.get(sample_width)
    if dtype is None:
        raise DecodeError(f"Unsupported WAV sample width: {sample_width * 8} bits")
    usable = len(frames) - len(frames) % (sample_width * channels)
    array = np.frombuffer(frames[:usable], dtype=dtype).astype(np.float32)
    if sample_width == 1:
        array -= 128.0
    array /= _SCALE_FOR_WIDTH[sample_width]
    return DecodedAudio(samples=array.reshape(-1, channels), sample_rate=sample_rate)


def encode_wave(samples: np.ndarray, sample_rate: int) -> bytes:
    if samples.ndim == 1:
        samples = samples[:, np.newaxis]
    clipped = np.clip(samples, -1.0, 1.0)
    int16 = (clipped * 32767.0).astype(np.int16)
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(int16.shape[1])
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(int16.tobytes())
    return buffer.getvalue()


def decode_with_ffmpeg(
    data: bytes,
    *,
    ffmpeg_binary: str = "ffmpeg",
    sample_rate: int = 44_100,
    channels: int = 2,
) -> DecodedAudio:
    """Decode any container ffmpeg understands into 16-bit PCM."""

    command = [
        ffmpeg_binary,
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        "pipe:0",
        "-f",
        "s16le",
        "-acodec",
        "pcm_s16le",
        "-ac",
        str(channels),
        "-ar",
        str(sample_rate),
        "pipe:1",
    ]
    try:
        completed = subprocess.run(command, input=data, capture_output=True, check=False)
    except FileNotFoundError as exc:
        raise DecodeError(
            f"FFmpeg executable '{ffmpeg_binary}' was not found; it is required to decode "
            "non-WAV audio. Install FFmpeg or upload a WAV file."
        ) from exc
    if completed.returncode != 0:
        LOGGER.debug("ffmpeg stderr: %s", completed.stderr.decode(errors="replace"))
        raise DecodeError()

    raw = completed.stdout
    usable = len(raw) - len(raw) % (2 * channels)
    array = np.frombuffer(raw[:usable], dtype=np.int16).astype(np.float32) / 32768.0
    return DecodedAudio(samples=array.reshape(-1, channels), sample_rate=sample_rate)


def encode_with_ffmpeg(
    samples: np.ndarray,
    sample_rate: int,
    *,
    bitrate_kbps: int,
    ffmpeg_binary: str = "ffmpeg",
) -> bytes:
    """Compress float samples to MP3 at a constant bitrate."""

    if samples.ndim == 1:
        samples = samples[:, np.newaxis]
    pcm = (np.clip(samples, -1.0, 1.0) * 32767.0).astype(np.int16)
    command = [
        ffmpeg_binary,
        "-hide_banner",
        "-loglevel",
        "error",
        "-f",
        "s16le",
        "-ar",
        str(sample_rate),
        "-ac",
        str(pcm.shape[1]),
        "-i",
        "pipe:0",
        "-codec:a",
        "libmp3lame",
        "-b:a",
        f"{bitrate_kbps}k",
        "-f",
        "mp3",
        "pipe:1",
    ]
    try:
        completed = subprocess.run(command, input=pcm.tobytes(), capture_output=True, check=False)
    except FileNotFoundError as exc:
        raise EncodeError(
            f"FFmpeg executable '{ffmpeg_binary}' was not found; it is required to compress "
            "audio chunks that exceed the upload limit."
        ) from exc
    if completed.returncode != 0:
        LOGGER.debug("ffmpeg stderr: %s", completed.stderr.decode(errors="replace"))
        raise EncodeError()
    return completed.stdout


def decode_audio(
    audio: AudioFile,
    *,
    ffmpeg_binary: str = "ffmpeg",
    fallback_sample_rate: int = 44_100,
    fallback_channels: int = 2,
) -> DecodedAudio:
    decoded: Optional[DecodedAudio] = None
    if is_wave(audio.data):
        try:
            decoded = read_wave(audio.data)
        except DecodeError as exc:
            # Sample formats the wave module cannot read are left to ffmpeg.
            LOGGER.info("Decoding %s with ffmpeg: %s", audio.filename, exc)
    if decoded is None:
        decoded = decode_with_ffmpeg(
            audio.data,
            ffmpeg_binary=ffmpeg_binary,
            sample_rate=fallback_sample_rate,
            channels=fallback_channels,
        )
    if decoded.frames == 0 or decoded.sample_rate <= 0:
        raise DecodeError("Audio file contains no decodable samples.")
    return decoded


def ensure_mono(data: np.ndarray) -> np.ndarray:
    if data.ndim == 1 or data.shape[1] == 1:
        return data.reshape(-1, 1)
    return data.mean(axis=1, keepdims=True)


def resample(array: np.ndarray, sr: int, target_sr: int) -> np.ndarray:
    """Linear interpolation resampler, applied channel by channel."""

    if sr == target_sr:
        return array
    length = array.shape[0]
    if length == 0:
        return array.reshape(0, array.shape[1])
    target_length = max(int(round(length * target_sr / sr)), 1)
    if target_length == 1:
        return array[:1].copy()
    original_positions = np.linspace(0, length - 1, num=length)
    target_positions = np.linspace(0, length - 1, num=target_length)
    channels = [
        np.interp(target_positions, original_positions, array[:, channel])
        for channel in range(array.shape[1])
    ]
    return np.stack(channels, axis=1).astype(array.dtype, copy=False)


Decoder = Callable[[AudioFile], DecodedAudio]

# Bitrates valid for MPEG-2 layer III at 16 kHz; speech does not need more.
MP3_BITRATES_KBPS = (8, 16, 24, 32, 40, 48, 56, 64)
COMPRESSED_SAMPLE_RATE = 16_000
# Room for MP3 frame headers and padding.
_COMPRESSION_HEADROOM = 0.95


class AudioSplitter:
    """Split audio that exceeds ``max_chunk_bytes`` into contiguous chunks.

    The number of chunks is ``ceil(size / max_chunk_bytes)`` and every chunk
    covers the same share of the decoded duration; the final chunk ends
    exactly at the end of the recording. Chunks are re-encoded as 16-bit PCM
    WAV, optionally down-mixed and resampled. A slice whose WAV would exceed
    the threshold, as happens for compressed uploads, is sent as mono 16 kHz
    MP3 at the highest bitrate that fits instead.
    """

    def __init__(
        self,
        max_chunk_bytes: int,
        *,
        decoder: Optional[Decoder] = None,
        target_sample_rate: Optional[int] = None,
        mono: bool = False,
        ffmpeg_binary: str = "ffmpeg",
    ) -> None:
        if max_chunk_bytes <= 0:
            raise ValueError("max_chunk_bytes must be a positive integer")
        self.max_chunk_bytes = max_chunk_bytes
        self.target_sample_rate = target_sample_rate
        self.mono = mono
        self.ffmpeg_binary = ffmpeg_binary
        self._decoder = decoder or self._default_decoder

    def _default_decoder(self, audio: AudioFile) -> DecodedAudio:
        return decode_audio(
            audio,
            ffmpeg_binary=self.ffmpeg_binary,
            fallback_sample_rate=self.target_sample_rate or 44_100,
            fallback_channels=1 if self.mono else 2,
        )

    def chunk_count(self, size: int) -> int:
        return max(math.ceil(size / self.max_chunk_bytes), 1)

    def split(self, audio: AudioFile) -> SplitResult:
        if audio.size == 0:
            raise EmptyFileError()

        decoded = self._decoder(audio)
        total_duration = decoded.duration
        total_chunks = self.chunk_count(audio.size)

        if total_chunks == 1:
            chunk = AudioChunk(
                data=audio.data,
                start_time=0.0,
                end_time=total_duration,
                content_type=audio.content_type,
            )
            return SplitResult(chunks=[chunk], total_duration=total_duration, original_size=audio.size)

        chunk_duration = total_duration / total_chunks
        chunks: List[AudioChunk] = []
        for index in range(total_chunks):
            last = index == total_chunks - 1
            start_time = index * chunk_duration
            end_time = total_duration if last else (index + 1) * chunk_duration

            start_sample = int(math.floor(start_time * decoded.sample_rate))
            end_sample = decoded.frames if last else int(math.floor(end_time * decoded.sample_rate))
            data, content_type = self._encode(
                decoded.samples[start_sample:end_sample], decoded.sample_rate
            )
            chunks.append(
                AudioChunk(
                    data=data,
                    start_time=start_time,
                    end_time=end_time,
                    index=index,
                    total_chunks=total_chunks,
                    content_type=content_type,
                )
            )

        return SplitResult(chunks=chunks, total_duration=total_duration, original_size=audio.size)

    def _encode(self, samples: np.ndarray, sample_rate: int) -> Tuple[bytes, str]:
        if self.mono:
            samples = ensure_mono(samples)
        if self.target_sample_rate and self.target_sample_rate != sample_rate:
            samples = resample(samples, sample_rate, self.target_sample_rate)
            sample_rate = self.target_sample_rate
        data = encode_wave(samples, sample_rate)
        if len(data) <= self.max_chunk_bytes:
            return data, "audio/wav"
        return self._compress(samples, sample_rate), "audio/mpeg"

    def _compress(self, samples: np.ndarray, sample_rate: int) -> bytes:
        samples = ensure_mono(samples)
        if sample_rate != COMPRESSED_SAMPLE_RATE:
            samples = resample(samples, sample_rate, COMPRESSED_SAMPLE_RATE)
        duration = max(samples.shape[0] / COMPRESSED_SAMPLE_RATE, 1e-3)

        budget_kbps = self.max_chunk_bytes * 8 * _COMPRESSION_HEADROOM / duration / 1000
        fitting = [rate for rate in MP3_BITRATES_KBPS if rate <= budget_kbps]
        if not fitting:
            raise ChunkTooLargeError(
                f"A {duration:.0f}s chunk cannot fit in {self.max_chunk_bytes} bytes, "
                "even at the lowest MP3 bitrate."
            )

        data = encode_with_ffmpeg(
            samples,
            COMPRESSED_SAMPLE_RATE,
            bitrate_kbps=fitting[-1],
            ffmpeg_binary=self.ffmpeg_binary,
        )
        if len(data) > self.max_chunk_bytes:
            raise ChunkTooLargeError()
        LOGGER.info(
            "Compressed %.1fs chunk to %.2fMB MP3 at %dkbps",
            duration,
            len(data) / 1024 / 1024,
            fitting[-1],
        )
        return data


__all__ = [
    "AudioSplitter",
    "DecodedAudio",
    "MP3_BITRATES_KBPS",
    "decode_audio",
    "decode_with_ffmpeg",
    "encode_wave",
    "encode_with_ffmpeg",
    "ensure_mono",
    "is_wave",
    "read_wave",
    "resample",
]
