"""Response pipeline: one Gemini round trip per submitted utterance."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import httpx

from errors import EmptyResponseError, ParseError, PipelineError, TransportError, message_for
from locales import LocaleConfig
from models import AssistantTurn, PipelineResult

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-2.5-flash"
REPLY_FIELDS = ("shloka", "meaning", "guidance")

REFUSAL = "I am Vanya, here only to guide your soul. Please ask me about your heart's burdens."

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def build_system_instruction(locale: LocaleConfig) -> str:
    language = locale.language_name
    return f"""
You are Vanya, a dedicated spiritual guide. Your sole purpose is to provide wisdom from Hindu
Mythology, specifically the Ramayana and the Bhagavad Gita, regarding life problems, emotional
struggles, and spiritual growth.

CRITICAL INSTRUCTION:
If the user asks about anything UNRELATED to spirituality, mental health, or life guidance
(e.g., coding, math, general knowledge, news), you MUST politely refuse. Say: "{REFUSAL}"

If the query is relevant:
1. Analyze the user's situation.
2. Select a relevant Sanskrit Shloka (from Gita/Puranas) OR a Chaupai (from Ramcharitmanas).
3. Provide its meaning.
4. Give compassionate, practical advice based on the teachings of Lord Rama (Dharma/Duty)
   or Lord Krishna (Karma/Wisdom).

Return JSON ONLY:
{{
  "shloka": "Sanskrit Shloka or Chaupai text",
  "meaning": "Meaning in {language}",
  "guidance": "Advice in {language}."
}}
""".strip()


def build_request_body(text: str, locale: LocaleConfig) -> dict:
    return {
        "contents": [{"parts": [{"text": f'User Said: "{text}"'}]}],
        "systemInstruction": {"parts": [{"text": build_system_instruction(locale)}]},
        "generationConfig": {"responseMimeType": "application/json"},
    }


def extract_text(envelope: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise EmptyResponseError."""
    try:
        text = envelope["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise EmptyResponseError("response has no generated text") from None
    if not isinstance(text, str) or not text.strip():
        raise EmptyResponseError("generated text is empty")
    return text


def strip_code_fence(raw: str) -> str:
    return _FENCE.sub("", raw).strip()


def parse_reply(raw: str, locale: LocaleConfig) -> AssistantTurn:
    try:
        data = json.loads(strip_code_fence(raw))
    except json.JSONDecodeError as exc:
        raise ParseError(f"reply is not JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError("reply is not a JSON object")

    values = {}
    for name in REPLY_FIELDS:
        value = data.get(name)
        if not isinstance(value, str):
            raise ParseError(f"reply field {name!r} is missing or not a string")
        values[name] = value
    return AssistantTurn(locale=locale.code, **values)


class GeminiResponsePipeline:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        endpoint: str = GEMINI_ENDPOINT,
        timeout_s: float = 60.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_key = api_key
        self._url = endpoint.format(model=model)
        self._timeout_s = timeout_s
        self._client = client

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key

    def respond(self, text: str, locale: LocaleConfig) -> PipelineResult:
        """Run one attempt; every failure becomes an error result in ``locale``."""
        try:
            envelope = self._post(build_request_body(text, locale))
            reply = parse_reply(extract_text(envelope), locale)
        except PipelineError as exc:
            logger.warning("Backend request failed (%s): %s", exc.code, exc)
            return PipelineResult(error_code=exc.code, message=message_for(exc.code, locale.code))
        return PipelineResult(reply=reply)

    def _post(self, body: dict) -> Any:
        if not self._api_key:
            raise TransportError("no Gemini API key configured")

        client = self._client or httpx.Client(timeout=self._timeout_s)
        try:
            response = client.post(
                self._url,
                params={"key": self._api_key},
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"request failed: {exc}") from exc
        finally:
            if self._client is None:
                client.close()

        if not response.is_success:
            raise TransportError(f"backend returned HTTP {response.status_code}", status=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise EmptyResponseError(f"response envelope is not JSON: {exc}") from exc
