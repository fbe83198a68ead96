"""Generation engine adapters.

The orchestrator only needs ``await engine.generate(prompt, system_message)``.
Two adapters are provided:

- HttpGenerationEngine talks to an ollama, vLLM or OpenAI-compatible server.
- ThreadedGenerationEngine wraps a blocking, CPU-bound callable (for example
  an in-process model) and runs it in a worker thread so the event loop keeps
  accepting requests.

Usage:
    from visitor_assistant.llm import create_engine

    engine = create_engine(config.llm)
    text = await engine.generate("Who visited unit 505?", "You are a helpful assistant.")
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Callable, Protocol

import httpx

from visitor_assistant.config import LLMConfig
from visitor_assistant.exceptions import GenerationError

logger = logging.getLogger(__name__)

END_TOKEN = "<|end|>"


class GenerationEngine(Protocol):
    async def generate(self, prompt: str, system_message: str) -> str:
        ...


def build_chat_prompt(prompt: str, system_message: str) -> str:
    """Render a single-turn chat in the phi-3 template for raw completion APIs."""
    return f"<|system|>\n{system_message}{END_TOKEN}\n<|user|>\n{prompt}{END_TOKEN}\n<|assistant|>"


def clean_generation(text: str) -> str:
    """Drop end-of-turn markers and surrounding whitespace."""
    return text.replace(END_TOKEN, "").strip()


class HttpGenerationEngine:
    """Generation over HTTP against the configured provider."""

    def __init__(self, config: LLMConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    async def generate(self, prompt: str, system_message: str) -> str:
        """Generate a completion.

        Args:
            prompt: User turn
            system_message: System persona / instructions

        Returns:
            Generated text with end markers removed

        Raises:
            GenerationError: If the provider call fails or returns nothing
        """
        config = self.config
        base_url = config.base_url.rstrip('/')

        logger.debug(f"Calling {config.provider}/{config.model}")

        try:
            async with httpx.AsyncClient(timeout=config.timeout, transport=self._transport) as client:
                if config.provider == "ollama":
                    response = await client.post(
                        f"{base_url}/api/generate",
                        json={
                            "model": config.model,
                            "prompt": prompt,
                            "system": system_message,
                            "stream": False,
                            "options": {
                                "temperature": config.temperature,
                                "num_predict": config.max_tokens
                            }
                        }
                    )
                    response.raise_for_status()
                    text = response.json().get("response", "")

                elif config.provider == "vllm":
                    api_key = config.api_key or os.getenv("VLLM_API_KEY", "local-key")
                    response = await client.post(
                        f"{base_url}/v1/completions",
                        headers={"Authorization": f"Bearer {api_key}"},
                        json={
                            "model": config.model,
                            "prompt": build_chat_prompt(prompt, system_message),
                            "max_tokens": config.max_tokens,
                            "temperature": config.temperature,
                            "stop": [END_TOKEN]
                        }
                    )
                    response.raise_for_status()
                    choices = response.json().get("choices", [])
                    text = choices[0].get("text", "") if choices else ""

                else:
                    # OpenAI-compatible chat completions API
                    api_key = config.api_key or os.getenv("OPENAI_API_KEY", "")
                    response = await client.post(
                        f"{base_url}/v1/chat/completions",
                        headers={"Authorization": f"Bearer {api_key}"},
                        json={
                            "model": config.model,
                            "messages": [
                                {"role": "system", "content": system_message},
                                {"role": "user", "content": prompt}
                            ],
                            "max_tokens": config.max_tokens,
                            "temperature": config.temperature
                        }
                    )
                    response.raise_for_status()
                    choices = response.json().get("choices", [])
                    text = choices[0].get("message", {}).get("content", "") if choices else ""

        except httpx.HTTPError as e:
            logger.warning(f"LLM call failed ({config.provider}/{config.model}): {e}")
            raise GenerationError(f"LLM call failed ({config.provider}/{config.model}): {e}") from e
        except ValueError as e:
            raise GenerationError(f"LLM returned an undecodable body: {e}") from e

        if not text:
            raise GenerationError(f"LLM returned an empty response ({config.provider}/{config.model})")

        return clean_generation(text)


class ThreadedGenerationEngine:
    """Runs a blocking generate(prompt, system_message) callable off the event loop."""

    def __init__(self, generate_fn: Callable[[str, str], str]):
        self._generate_fn = generate_fn

    async def generate(self, prompt: str, system_message: str) -> str:
        text = await asyncio.to_thread(self._generate_fn, prompt, system_message)
        return clean_generation(text)


def create_engine(config: LLMConfig, transport: httpx.AsyncBaseTransport | None = None) -> HttpGenerationEngine:
    logger.info(f"Using generation engine {config.provider}/{config.model} at {config.base_url}")
    return HttpGenerationEngine(config, transport=transport)
