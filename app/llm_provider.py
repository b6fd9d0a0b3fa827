#!/usr/bin/env python3
"""
LLM Provider Module

Chat-completion access to OpenAI-compatible providers (OpenAI, OpenRouter),
used by the LLM translation backend. Both providers are reached through the
OpenAI Python SDK with a provider-specific base URL.
"""

import json
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from errors import TranslationError

logger = logging.getLogger(__name__)


# Uses strict: True for guaranteed schema compliance (OpenAI Structured Outputs)
TRANSLATE_STRING_TOOL = {
    "type": "function",
    "function": {
        "name": "translate_string",
        "description": "Translate a single Android UI string to the target language",
        "strict": True,
        "parameters": {
            "type": "object",
            "properties": {
                "translation": {
                    "type": "string",
                    "description": "The translated text in the target language",
                }
            },
            "required": ["translation"],
            "additionalProperties": False,
        },
    },
}


class LLMProvider(Enum):
    """Supported LLM providers."""

    OPENAI = "openai"
    OPENROUTER = "openrouter"


@dataclass
class LLMConfig:
    """
    Configuration for LLM API access.

    Attributes:
        provider: The LLM provider to use (OpenAI or OpenRouter)
        api_key: API key for authentication
        model: Model identifier (e.g., "gpt-4o-mini")
        site_url: Optional site URL sent to OpenRouter
        site_name: Optional site name sent to OpenRouter
    """

    provider: LLMProvider
    api_key: str
    model: str
    site_url: Optional[str] = None
    site_name: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.provider, str):
            self.provider = LLMProvider(self.provider.lower())

        if not self.api_key:
            raise ValueError("API key is required")

        if not self.model:
            raise ValueError("Model name is required")


class LLMClient:
    """
    Client for interacting with LLM APIs.

    Supports both OpenAI and OpenRouter with a unified interface.
    """

    BASE_URLS = {
        LLMProvider.OPENAI: "https://api.openai.com/v1",
        LLMProvider.OPENROUTER: "https://openrouter.ai/api/v1",
    }

    def __init__(self, config: LLMConfig, client: Any = None):
        self.config = config
        self.client = client if client is not None else self._create_client()

        logger.info(
            f"Initialized LLM client with provider={config.provider.value}, "
            f"model={config.model}"
        )

    def _create_client(self):
        try:
            from openai import OpenAI
        except ImportError:
            logger.error(
                "OpenAI package not installed. Please install it using 'pip install openai'."
            )
            raise

        base_url = self.BASE_URLS[self.config.provider]
        logger.debug(f"Creating OpenAI client with base_url={base_url}")
        return OpenAI(api_key=self.config.api_key, base_url=base_url)

    def _get_extra_headers(self) -> Dict[str, str]:
        """OpenRouter ranking headers; empty for other providers."""
        if self.config.provider != LLMProvider.OPENROUTER:
            return {}

        headers = {}
        if self.config.site_url:
            headers["HTTP-Referer"] = self.config.site_url
        if self.config.site_name:
            headers["X-Title"] = self.config.site_name
        return headers

    def call_tool(self, messages: list, tool: dict, temperature: float = 0) -> Dict[str, Any]:
        """
        Send a chat completion that must answer through ``tool``.

        Returns:
            The parsed function arguments

        Raises:
            TranslationError: For API errors or a response without a tool call
        """
        api_params = {
            "model": self.config.model,
            "messages": messages,
            "temperature": temperature,
            "tools": [tool],
            "tool_choice": "required",
            # Structured outputs require parallel_tool_calls: false
            "parallel_tool_calls": False,
        }
        extra_headers = self._get_extra_headers()
        if extra_headers:
            api_params["extra_headers"] = extra_headers

        logger.debug(
            f"Sending chat completion request to {self.config.provider.value} "
            f"(model: {self.config.model})"
        )

        try:
            response = self.client.chat.completions.create(**api_params)
        except Exception as e:
            logger.error(f"Error calling {self.config.provider.value} API: {e}")
            raise TranslationError(
                f"{self.config.provider.value} request failed: {e}"
            ) from e

        message = response.choices[0].message
        if not message.tool_calls:
            raise TranslationError(
                "Model did not return any tool calls despite tool_choice='required'"
            )

        arguments_str = message.tool_calls[0].function.arguments
        logger.debug(f"Raw function arguments string: {arguments_str}")
        try:
            return json.loads(arguments_str)
        except json.JSONDecodeError as e:
            raise TranslationError(f"Model returned malformed arguments: {e}") from e


def translate_with_llm(
    text: str, system_message: str, user_prompt: str, client: LLMClient
) -> str:
    """
    Translate text using the configured LLM provider with function calling.

    Uses temperature=0 for deterministic, consistent translations.
    """
    if not text or not text.strip():
        return ""

    messages = [
        {"role": "system", "content": system_message},
        {"role": "user", "content": user_prompt},
    ]
    result = client.call_tool(messages, TRANSLATE_STRING_TOOL, temperature=0)

    translation = result.get("translation")
    if not isinstance(translation, str):
        raise TranslationError("Model response has no 'translation' field")
    return translation
