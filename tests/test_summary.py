import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from audiotricks.data.models import MergedTranscript, TranscriptSegment
from audiotricks.errors import TransientAPIError
from audiotricks.services.notes.dummy import DummySummaryService
from audiotricks.services.notes.openai_notes import (
    OpenAISummaryService,
    build_summary_prompt,
    format_timestamp,
    parse_summary_response,
    truncate_transcript,
)


class FakeCompletions:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        message = SimpleNamespace(content=self.outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _chat_client(outcome):
    completions = FakeCompletions(outcome)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def _transcript(**kwargs) -> MergedTranscript:
    kwargs.setdefault("text", "We agreed to ship on Friday after the review.")
    kwargs.setdefault("duration", 95.0)
    return MergedTranscript(**kwargs)


def test_truncate_keeps_head_and_tail() -> None:
    text = "a" * 1800 + "b" * 1000 + "c" * 700

    truncated = truncate_transcript(text)

    assert truncated.startswith("a" * 1800)
    assert truncated.endswith("c" * 700)
    assert "middle section omitted" in truncated
    assert "b" not in truncated
    assert truncate_transcript("short") == "short"


def test_format_timestamp() -> None:
    assert format_timestamp(0) == "00:00"
    assert format_timestamp(65.9) == "01:05"
    assert format_timestamp(3600) == "60:00"


def test_prompt_uses_segment_timestamps_when_available() -> None:
    transcript = _transcript(
        segments=[
            TranscriptSegment(start=0.0, end=4.0, text="Welcome everyone"),
            TranscriptSegment(start=75.0, end=80.0, text="Decision time"),
        ]
    )

    prompt = build_summary_prompt(transcript, "casual", "Spanish")

    assert "[00:00] Welcome everyone" in prompt
    assert "[01:15] Decision time" in prompt
    assert "TIMESTAMPED TRANSCRIPT" in prompt
    assert "friendly and conversational" in prompt
    assert "in Spanish" in prompt


def test_prompt_without_segments_asks_for_estimates() -> None:
    prompt = build_summary_prompt(_transcript(), "unknown-style", "English")

    assert "Estimate times" in prompt
    assert "professional and formal" in prompt
    assert prompt.endswith("We agreed to ship on Friday after the review.")


def test_parse_summary_response_reads_json() -> None:
    content = json.dumps(
        {
            "summary": "A short planning meeting.",
            "takeaways": ["Ship on Friday", "Review first"],
            "key_moments": [
                {"timestamp": "00:42", "title": "Decision", "description": "Ship date", "importance": "high"},
                {"title": "Untimed"},
                "not a moment",
            ],
        }
    )

    document = parse_summary_response(content, _transcript(), "en")

    assert document.summary == "A short planning meeting."
    assert document.takeaways == ["Ship on Friday", "Review first"]
    assert [moment.timestamp for moment in document.key_moments] == ["00:42", "00:00"]
    assert document.key_moments[1].importance == "medium"
    assert document.word_count == 9
    assert document.total_duration == 95.0


def test_parse_summary_response_falls_back_to_raw_text() -> None:
    document = parse_summary_response("Plain prose summary", _transcript(), "fr")

    assert document.summary == "Plain prose summary"
    assert document.language == "fr"
    assert document.takeaways == []


@pytest.mark.asyncio
async def test_openai_summary_requests_json_object() -> None:
    client, completions = _chat_client(json.dumps({"summary": "Done", "takeaways": ["One"]}))
    service = OpenAISummaryService(client=client, model="gpt-4o-mini", max_tokens=9000)

    document = await service.summarize(_transcript(), style="technical", language="de")

    request = completions.requests[0]
    assert request["model"] == "gpt-4o-mini"
    assert request["max_tokens"] == 2500
    assert request["response_format"] == {"type": "json_object"}
    assert request["messages"][0]["role"] == "system"
    assert "in German" in request["messages"][1]["content"]
    assert "precise and technical" in request["messages"][1]["content"]
    assert document.summary == "Done"
    assert document.language == "de"


@pytest.mark.asyncio
async def test_openai_summary_maps_errors() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.InternalServerError("boom", response=httpx.Response(500, request=request), body=None)
    client, _ = _chat_client(error)

    with pytest.raises(TransientAPIError):
        await OpenAISummaryService(client=client).summarize(_transcript())


@pytest.mark.asyncio
async def test_dummy_summary_truncates_long_text() -> None:
    transcript = _transcript(text="word " * 100)

    document = await DummySummaryService().summarize(transcript, language="es")

    assert len(document.summary) == 283
    assert document.summary.endswith("...")
    assert document.word_count == 100
    assert document.language == "es"


@pytest.mark.asyncio
async def test_openai_summary_closes_its_client() -> None:
    closed = []

    async def close() -> None:
        closed.append(True)

    client, _ = _chat_client("{}")
    client.close = close

    await OpenAISummaryService(client=client).aclose()

    assert closed == [True]
