#!/usr/bin/env python3
"""
Translation backends.

Every backend offers the same capability, ``translate(text, language_code)``,
so the reconciler never needs to know which service is behind it:

- ``GoogleCloudTranslator``: Cloud Translation v3 with Application Default
  Credentials and a Google Cloud project id.
- ``GoogleApiKeyTranslator``: Translation v2 REST endpoint with an API key.
- ``LLMTranslator``: OpenAI or OpenRouter chat completions.
"""

import html
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from errors import ConfigurationError, TranslationError
from llm_provider import LLMClient, LLMConfig, LLMProvider, translate_with_llm
from locale_utils import get_language_name

logger = logging.getLogger(__name__)

GOOGLE_TRANSLATE_V2_URL = "https://translation.googleapis.com/language/translate/v2"
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_LOCATION = "global"

SYSTEM_MESSAGE_TEMPLATE = """\
You are a professional translator translating textual UI elements within an Android app from English into {target_language}.
"""

TRANSLATION_GUIDELINES = """\
Translate the text after the dashed line for an Android application's UI.
- Use concise, natural language consistent with standard Android UI conventions.
- Keep all placeholders (e.g. %d, %s, %1$s) exactly as in the source.
- Keep HTML or XML markup intact and translate only the textual content.
- Keep brand names, proper nouns and technical terms in their original form.
- Return only the translated text, without quotes or the surrounding <string> tag.
Target language: {target_language}
----------
{text}"""


class Translator(ABC):
    """A service that translates one text into one target language."""

    name = "translator"

    @abstractmethod
    def translate(self, text: str, language_code: str) -> str:
        """
        Translate ``text`` into ``language_code``.

        Raises:
            TranslationError: If the service fails or returns no translation
        """


class GoogleCloudTranslator(Translator):
    """Cloud Translation v3 using Application Default Credentials."""

    name = "google-cloud"

    def __init__(
        self, project_id: str, location: str = DEFAULT_LOCATION, client: Any = None
    ) -> None:
        if not project_id:
            raise ConfigurationError("A Google Cloud project id is required")
        self.parent = f"projects/{project_id}/locations/{location}"
        self.client = client if client is not None else self._create_client()

    def _create_client(self):
        try:
            from google.cloud import translate_v3
        except ImportError:
            logger.error(
                "google-cloud-translate not installed. Install it using 'pip install google-cloud-translate'."
            )
            raise
        return translate_v3.TranslationServiceClient()

    def translate(self, text: str, language_code: str) -> str:
        try:
            response = self.client.translate_text(
                request={
                    "parent": self.parent,
                    "contents": [text],
                    "mime_type": "text/plain",
                    "target_language_code": language_code,
                }
            )
        except Exception as e:
            raise TranslationError(f"Cloud Translation request failed: {e}") from e

        if not response.translations:
            raise TranslationError("Cloud Translation returned no translations")
        return response.translations[0].translated_text


class GoogleApiKeyTranslator(Translator):
    """Translation v2 REST API authenticated with an API key."""

    name = "google-api-key"

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("A Google Translate API key is required")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def translate(self, text: str, language_code: str) -> str:
        params = {
            "q": text,
            "target": language_code,
            "key": self.api_key,
            "format": "text",
        }
        try:
            resp = self.session.post(
                GOOGLE_TRANSLATE_V2_URL, params=params, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise TranslationError(f"Google Translate request failed: {e}") from e

        if resp.status_code != 200:
            raise TranslationError(
                f"Google API Error ({resp.status_code}): {resp.text[:200]}"
            )

        try:
            translated = resp.json()["data"]["translations"][0]["translatedText"]
        except (ValueError, KeyError, IndexError) as e:
            raise TranslationError(f"Unexpected API response: {e}") from e
        return html.unescape(translated)


class LLMTranslator(Translator):
    """Chat-completion translation through OpenAI or OpenRouter."""

    name = "llm"

    def __init__(
        self, llm_config: LLMConfig, project_context: str = "", client: Any = None
    ) -> None:
        self.llm_config = llm_config
        self.project_context = project_context
        self.client = LLMClient(llm_config, client=client)

    def translate(self, text: str, language_code: str) -> str:
        language_name = get_language_name(f"values-{language_code}")
        system_message = SYSTEM_MESSAGE_TEMPLATE.format(target_language=language_name)
        if self.project_context:
            system_message += f"\nProject context: {self.project_context}"
        user_prompt = TRANSLATION_GUIDELINES.format(
            target_language=language_name, text=text
        )
        return translate_with_llm(text, system_message, user_prompt, self.client)


BACKENDS = ("google-cloud", "google-api-key", "openai", "openrouter")


def create_translator(
    backend: str,
    project_id: Optional[str] = None,
    location: str = DEFAULT_LOCATION,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    project_context: str = "",
    site_url: Optional[str] = None,
    site_name: Optional[str] = None,
) -> Translator:
    """
    Build the translator selected by ``backend``.

    Raises:
        ConfigurationError: For an unknown backend or missing credentials
    """
    if backend == "google-cloud":
        return GoogleCloudTranslator(project_id, location=location)
    if backend == "google-api-key":
        return GoogleApiKeyTranslator(api_key)
    if backend in ("openai", "openrouter"):
        try:
            llm_config = LLMConfig(
                provider=LLMProvider(backend),
                api_key=api_key,
                model=model,
                site_url=site_url,
                site_name=site_name,
            )
        except ValueError as e:
            raise ConfigurationError(f"Error creating LLM configuration: {e}") from e
        return LLMTranslator(llm_config, project_context=project_context)
    raise ConfigurationError(
        f"Unknown translation backend '{backend}'. Choose one of: {', '.join(BACKENDS)}"
    )
