"""Merge per-chunk transcriptions into one transcript."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ...data.models import AudioChunk, ChunkTranscriptionResult, MergedTranscript, TranscriptSegment


def merge_transcription_results(
    pairs: Sequence[Tuple[AudioChunk, ChunkTranscriptionResult]],
) -> MergedTranscript:
    """Join chunk texts in order and move segments onto the global timeline.

    Each segment is shifted by its chunk's ``start_time``. Chunks that came
    back without segments only contribute text. A single pair is passed
    through untouched so that an unsplit file matches a direct transcription.
    """

    if not pairs:
        return MergedTranscript(text="", chunk_count=0)

    failed = [index + 1 for index, (_, result) in enumerate(pairs) if result.failed]

    if len(pairs) == 1:
        chunk, result = pairs[0]
        duration = result.duration if result.duration is not None else chunk.duration
        return MergedTranscript(
            text=result.text,
            segments=[segment.shifted(chunk.start_time) for segment in result.segments],
            duration=duration,
            language=result.language,
            chunk_count=1,
            failed_chunks=failed,
        )

    texts: List[str] = []
    segments: List[TranscriptSegment] = []
    language: Optional[str] = None
    duration = 0.0
    for chunk, result in pairs:
        text = result.text.strip()
        if text:
            texts.append(text)
        segments.extend(segment.shifted(chunk.start_time) for segment in result.segments)
        if language is None and result.language:
            language = result.language
        duration += chunk.duration

    # Stable, so chunk order wins for equal start times.
    segments.sort(key=lambda segment: segment.start)

    return MergedTranscript(
        text=" ".join(texts),
        segments=segments,
        duration=duration,
        language=language,
        chunk_count=len(pairs),
        failed_chunks=failed,
    )


__all__ = ["merge_transcription_results"]
