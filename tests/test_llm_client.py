"""Tests for generation engines with mocked HTTP responses."""
import threading

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
import httpx

from visitor_assistant.config import LLMConfig
from visitor_assistant.exceptions import GenerationError
from visitor_assistant.llm import (
    HttpGenerationEngine,
    ThreadedGenerationEngine,
    build_chat_prompt,
    clean_generation,
)


def _mock_client(json_body):
    mock_response = MagicMock()
    mock_response.json.return_value = json_body
    mock_response.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client.post.return_value = mock_response
    return mock_client


@pytest.mark.asyncio
async def test_ollama_generate_sends_system_message():
    """Ollama receives prompt and system message separately."""
    mock_client = _mock_client({"response": "Alex visited unit 505.<|end|>"})
    config = LLMConfig(provider="ollama", model="phi3.5", base_url="http://localhost:11434/")

    with patch("httpx.AsyncClient", return_value=mock_client):
        text = await HttpGenerationEngine(config).generate("Who visited?", "You are a helpful assistant.")

    assert text == "Alex visited unit 505."
    url = mock_client.post.call_args.args[0]
    body = mock_client.post.call_args.kwargs["json"]
    assert url == "http://localhost:11434/api/generate"
    assert body["prompt"] == "Who visited?"
    assert body["system"] == "You are a helpful assistant."
    assert body["stream"] is False


@pytest.mark.asyncio
async def test_vllm_generate_uses_chat_template():
    mock_client = _mock_client({"choices": [{"text": " Hello "}]})
    config = LLMConfig(provider="vllm", model="phi-3", base_url="http://localhost:8000", api_key="k")

    with patch("httpx.AsyncClient", return_value=mock_client):
        text = await HttpGenerationEngine(config).generate("Hi", "System")

    assert text == "Hello"
    body = mock_client.post.call_args.kwargs["json"]
    assert body["prompt"] == build_chat_prompt("Hi", "System")
    assert mock_client.post.call_args.kwargs["headers"] == {"Authorization": "Bearer k"}


@pytest.mark.asyncio
async def test_openai_generate_sends_chat_messages():
    mock_client = _mock_client({"choices": [{"message": {"content": "Done."}}]})
    config = LLMConfig(provider="openai", model="gpt-4o-mini", base_url="https://api.openai.com", api_key="sk")

    with patch("httpx.AsyncClient", return_value=mock_client):
        text = await HttpGenerationEngine(config).generate("Q", "S")

    assert text == "Done."
    body = mock_client.post.call_args.kwargs["json"]
    assert body["messages"] == [
        {"role": "system", "content": "S"},
        {"role": "user", "content": "Q"},
    ]


@pytest.mark.asyncio
async def test_generate_http_error_raises_generation_error():
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client.post.side_effect = httpx.ConnectError("refused")

    with patch("httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(GenerationError):
            await HttpGenerationEngine(LLMConfig(provider="ollama")).generate("Q", "S")


@pytest.mark.asyncio
async def test_generate_empty_response_raises_generation_error():
    mock_client = _mock_client({"response": ""})

    with patch("httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(GenerationError, match="empty response"):
            await HttpGenerationEngine(LLMConfig(provider="ollama")).generate("Q", "S")


@pytest.mark.asyncio
async def test_threaded_engine_runs_off_event_loop_thread():
    loop_thread = threading.get_ident()
    seen = {}

    def blocking_generate(prompt, system_message):
        seen["thread"] = threading.get_ident()
        return f"{system_message}|{prompt}<|end|>"

    text = await ThreadedGenerationEngine(blocking_generate).generate("p", "s")

    assert text == "s|p"
    assert seen["thread"] != loop_thread


def test_clean_generation_strips_end_markers():
    assert clean_generation("  answer<|end|>\n") == "answer"
    assert clean_generation("a<|end|>b") == "ab"
