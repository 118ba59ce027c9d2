"""OpenAI-powered transcript summaries."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from openai import OpenAIError

from ...config import get_settings
from ...data.models import KeyMoment, MergedTranscript, SummaryDocument
from ...logging import get_logger
from ..openai_support import build_async_client, map_openai_error
from .base import SummaryService

LOGGER = get_logger(__name__)

MAX_TRANSCRIPT_CHARS = 2500
HEAD_CHARS = 1800
TAIL_CHARS = 700

STYLE_INSTRUCTIONS = {
    "formal": "professional and formal",
    "casual": "friendly and conversational",
    "technical": "precise and technical",
    "creative": "engaging and creative",
}

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "ja": "Japanese",
    "zh": "Chinese",
    "ko": "Korean",
}

SYSTEM_PROMPT = (
    "You are an expert content analyst specializing in audio content. Extract maximum value "
    "from transcripts by creating comprehensive summaries, actionable takeaways and key "
    "moments with exact timestamps. Always respond with valid, well-formatted JSON."
)


def truncate_transcript(text: str) -> str:
    """Keep the opening and closing of long transcripts."""

    if len(text) <= MAX_TRANSCRIPT_CHARS:
        return text
    return f"{text[:HEAD_CHARS]}\n\n[...middle section omitted...]\n\n{text[-TAIL_CHARS:]}"


def format_timestamp(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def build_summary_prompt(transcript: MergedTranscript, style: str, language_name: str) -> str:
    has_segments = bool(transcript.segments)
    if has_segments:
        body = "\n".join(
            f"[{format_timestamp(segment.start)}] {segment.text}" for segment in transcript.segments
        )
        body = truncate_transcript(body)
    else:
        body = truncate_transcript(transcript.text)
    timestamp_hint = (
        "Use exact times from the timestamped segments (MM:SS)"
        if has_segments
        else "Estimate times if possible (MM:SS)"
    )
    tone = STYLE_INSTRUCTIONS.get(style, STYLE_INSTRUCTIONS["formal"])
    return (
        f"Analyze this audio transcript and write a comprehensive summary in {language_name} "
        f"using a {tone} tone.\n\n"
        "Respond with a JSON object with the keys:\n"
        '- "summary": 2-3 paragraphs on who speaks, what is discussed and why it matters\n'
        '- "takeaways": 8-12 actionable bullet points\n'
        f'- "key_moments": 5-8 objects with "timestamp" ({timestamp_hint}), "title", '
        '"description" and "importance" ("high", "medium" or "low")\n\n'
        f"{'TIMESTAMPED TRANSCRIPT' if has_segments else 'TRANSCRIPT'}:\n{body}"
    )


def parse_summary_response(
    content: Optional[str], transcript: MergedTranscript, language: str
) -> SummaryDocument:
    word_count = len(transcript.text.split())
    try:
        parsed: Dict[str, Any] = json.loads(content or "")
    except json.JSONDecodeError:
        LOGGER.warning("Summary response was not valid JSON; using raw text")
        return SummaryDocument(
            summary=content or "Summary generation failed",
            language=language,
            total_duration=transcript.duration,
            word_count=word_count,
        )
    if not isinstance(parsed, dict):
        parsed = {"summary": content}

    moments: List[KeyMoment] = []
    for moment in parsed.get("key_moments") or []:
        if not isinstance(moment, dict):
            continue
        moments.append(
            KeyMoment(
                timestamp=str(moment.get("timestamp") or "00:00"),
                title=str(moment.get("title") or "Key Moment"),
                description=str(moment.get("description") or ""),
                importance=str(moment.get("importance") or "medium"),
            )
        )
    return SummaryDocument(
        summary=str(parsed.get("summary") or "Summary generation failed"),
        takeaways=[str(item) for item in parsed.get("takeaways") or []],
        key_moments=moments,
        language=language,
        total_duration=transcript.duration,
        word_count=word_count,
    )


class OpenAISummaryService(SummaryService):
    def __init__(
        self,
        client: Any = None,
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2500,
    ) -> None:
        settings = get_settings()
        self.model = model or settings.openai_summary_model
        self.default_style = settings.summary_style
        self.default_language = settings.summary_language
        self.temperature = temperature
        self.max_tokens = min(max_tokens, 2500)
        self.client = client if client is not None else build_async_client(settings)

    async def summarize(
        self,
        transcript: MergedTranscript,
        *,
        style: Optional[str] = None,
        language: Optional[str] = None,
    ) -> SummaryDocument:
        style = style or self.default_style
        language = language or self.default_language
        prompt = build_summary_prompt(transcript, style, LANGUAGE_NAMES.get(language, "English"))
        LOGGER.info("Requesting OpenAI summary (%d transcript characters)", len(transcript.text))
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            raise map_openai_error(exc) from exc
        content = response.choices[0].message.content
        return parse_summary_response(content, transcript, language)

    async def aclose(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()


__all__ = [
    "OpenAISummaryService",
    "build_summary_prompt",
    "parse_summary_response",
    "truncate_transcript",
]
