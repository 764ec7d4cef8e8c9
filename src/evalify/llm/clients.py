"""Chat-style LLM client wrappers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Protocol

import requests
from requests import RequestException

SYSTEM_PROMPT = "You are an HR analytics AI. Return only valid JSON."


class LLMClientError(RuntimeError):
    """The text-generation service could not produce a response."""


class MissingCredentialError(LLMClientError):
    """No API key is configured for the text-generation service."""


class BaseLLMClient(Protocol):
    def generate(self, prompt: str) -> str:
        """Generate text from a prompt."""
        ...


def _message_content(data: Any) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


@dataclass
class OpenAICompatibleClient:
    endpoint: str
    model: str
    api_key: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    timeout_seconds: float = 30

    def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise MissingCredentialError("No API key configured for the text-generation service.")

        url = f"{self.endpoint.rstrip('/')}/chat/completions"
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.max_tokens:
            payload["max_tokens"] = self.max_tokens
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout_seconds)
            response.raise_for_status()
        except RequestException as exc:
            raise LLMClientError(f"Text-generation request to {url} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMClientError("Invalid response from text-generation service.") from exc
        return _message_content(data)


@dataclass
class OllamaClient:
    model: str
    endpoint: str
    temperature: float = 0.0
    timeout_seconds: float = 120

    def generate(self, prompt: str) -> str:
        url = f"{self.endpoint.rstrip('/')}/api/chat"
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        try:
            response = requests.post(url, json=payload, timeout=self.timeout_seconds)
            response.raise_for_status()
        except RequestException as exc:
            raise LLMClientError(
                f"Unable to reach Ollama at {self.endpoint}. Ensure the service is running."
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMClientError("Invalid response from Ollama") from exc
        message = data.get("message") if isinstance(data, dict) else None
        return (message or {}).get("content", "") or ""


def build_llm_client(scorer_cfg: Dict[str, Any]) -> BaseLLMClient:
    provider = scorer_cfg.get("provider", "openai_compatible")
    if provider in {"openai_compatible", "gateway"}:
        api_key_env = scorer_cfg.get("api_key_env", "EVALIFY_AI_API_KEY")
        return OpenAICompatibleClient(
            endpoint=scorer_cfg.get("endpoint", "https://ai.gateway.lovable.dev/v1"),
            model=scorer_cfg.get("model", "google/gemini-2.5-flash"),
            api_key=scorer_cfg.get("api_key") or os.environ.get(api_key_env),
            temperature=scorer_cfg.get("temperature"),
            max_tokens=scorer_cfg.get("max_tokens"),
            timeout_seconds=scorer_cfg.get("timeout_seconds", 30),
        )
    if provider == "ollama":
        return OllamaClient(
            model=scorer_cfg.get("model", "llama3.1:8b"),
            endpoint=scorer_cfg.get("endpoint", "http://localhost:11434"),
            temperature=scorer_cfg.get("temperature", 0.0),
            timeout_seconds=scorer_cfg.get("timeout_seconds", 120),
        )
    raise ValueError(f"Unsupported LLM provider: {provider}")
