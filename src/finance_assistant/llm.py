"""Completion provider interface and HTTP implementations.

Defines the CompletionClient protocol -- an opaque ``complete(messages) ->
text`` capability -- plus two implementations over httpx:

- OpenAIAdapter: sends the conversation to the OpenAI Chat Completions API.
- AnthropicAdapter: sends it to the Anthropic Messages API, lifting system
  messages into the top-level ``system`` field.

Every failure (missing API key, timeout, network error, HTTP error, a body
without text) is raised as :class:`~finance_assistant.errors.CompletionError`.
Nothing here retries; retries are the caller's decision.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Protocol

import httpx

from finance_assistant.errors import CompletionError
from finance_assistant.models import AppConfig

logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_API_VERSION = "2023-06-01"

ROLES = ("system", "user", "assistant")


class CompletionClient(Protocol):
    """Protocol for a chat-completion provider.

    The assigner and the assistant accept any object conforming to this
    protocol; tests use a small fake.
    """

    def complete(self, messages: list[dict]) -> str:
        """Send an ordered conversation and return the reply text.

        Args:
            messages: List of ``{"role": ..., "content": ...}`` dicts with
                role ``system``, ``user`` or ``assistant``.

        Returns:
            The text of the model's reply.

        Raises:
            CompletionError: If the provider cannot produce a reply.
        """
        ...


def normalize_messages(messages: list[dict]) -> list[dict]:
    """Lowercase roles and map anything unknown to ``user``."""
    normalized: list[dict] = []
    for message in messages:
        role = str(message.get("role", "user")).lower()
        if role not in ROLES:
            role = "user"
        normalized.append({"role": role, "content": str(message.get("content", ""))})
    return normalized


class _HttpAdapter:
    """Shared request plumbing: key lookup, POST, error classification."""

    provider = ""

    def __init__(
        self,
        model: str,
        api_key_env: str,
        max_tokens: int = 1024,
        timeout: float = 60.0,
    ) -> None:
        self.model = model
        self.api_key_env = api_key_env
        self.max_tokens = max_tokens
        self.timeout = timeout

    def _api_key(self) -> str:
        api_key = os.environ.get(self.api_key_env, "")
        if not api_key:
            raise CompletionError(
                f"{self.provider} API key not found in environment variable "
                f"'{self.api_key_env}'"
            )
        return api_key

    def _post(self, url: str, body: dict, headers: dict) -> dict:
        try:
            response = httpx.post(url, json=body, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("%s request timed out", self.provider)
            raise CompletionError(f"{self.provider} request timed out") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "%s API returned HTTP %d: %s",
                self.provider,
                exc.response.status_code,
                exc.response.text[:200],
            )
            raise CompletionError(
                f"Failed to get chat completion: HTTP {exc.response.status_code} "
                f"{_error_message(exc.response)}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s request failed: %s", self.provider, exc)
            raise CompletionError(f"{self.provider} request failed: {exc}") from exc

        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise CompletionError(f"{self.provider} returned a non-JSON body") from exc


class OpenAIAdapter(_HttpAdapter):
    """Completion client for the OpenAI Chat Completions API.

    Args:
        model: Model identifier, e.g. "gpt-4".
        api_key_env: Name of the environment variable containing the API key.
        max_tokens: Maximum tokens in the reply. Default: 1024.
        timeout: HTTP request timeout in seconds. Default: 60.
    """

    provider = "OpenAI"

    def complete(self, messages: list[dict]) -> str:
        headers = {
            "Authorization": f"Bearer {self._api_key()}",
            "content-type": "application/json",
        }
        request_body = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": normalize_messages(messages),
        }
        body = self._post(OPENAI_API_URL, request_body, headers)

        try:
            text = body["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise CompletionError(f"Unexpected OpenAI response shape: {exc}") from exc
        if not isinstance(text, str):
            raise CompletionError("Unexpected OpenAI response shape: content is not text")
        return text


class AnthropicAdapter(_HttpAdapter):
    """Completion client for the Anthropic Messages API.

    System messages are joined into the request's ``system`` field since
    the Messages API accepts only user and assistant turns.

    Args:
        model: Model identifier, e.g. "claude-sonnet-4-20250514".
        api_key_env: Name of the environment variable containing the API key.
        max_tokens: Maximum tokens in the reply. Default: 1024.
        timeout: HTTP request timeout in seconds. Default: 60.
    """

    provider = "Anthropic"

    def complete(self, messages: list[dict]) -> str:
        headers = {
            "x-api-key": self._api_key(),
            "anthropic-version": ANTHROPIC_API_VERSION,
            "content-type": "application/json",
        }

        normalized = normalize_messages(messages)
        system_parts = [m["content"] for m in normalized if m["role"] == "system"]
        turns = [m for m in normalized if m["role"] != "system"]

        request_body: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": turns,
        }
        if system_parts:
            request_body["system"] = "\n\n".join(system_parts)

        body = self._post(ANTHROPIC_API_URL, request_body, headers)

        # Extract text from the Anthropic content blocks
        try:
            text_parts = [
                block["text"] for block in body.get("content", []) if block.get("type") == "text"
            ]
            return "\n".join(text_parts)
        except (KeyError, TypeError, AttributeError) as exc:
            raise CompletionError(f"Unexpected Anthropic response shape: {exc}") from exc


PROVIDERS: dict[str, type[_HttpAdapter]] = {
    "openai": OpenAIAdapter,
    "anthropic": AnthropicAdapter,
}


def build_adapter(config: AppConfig) -> CompletionClient:
    """Create the completion client named by ``config.llm_provider``.

    Raises:
        KeyError: If the provider name is not registered.
    """
    adapter_cls = PROVIDERS[config.llm_provider]
    return adapter_cls(
        model=config.llm_model,
        api_key_env=config.llm_api_key_env,
        timeout=config.llm_timeout,
    )


def _error_message(response: httpx.Response) -> str:
    """Pull the provider's error message out of an error body, if any."""
    try:
        error = response.json().get("error")
    except (json.JSONDecodeError, AttributeError):
        return response.text[:200]
    if isinstance(error, dict):
        return str(error.get("message", ""))
    return str(error or "")
