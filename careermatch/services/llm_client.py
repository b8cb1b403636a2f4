"""
LLM API Client

The provider (DeepSeek by default) speaks the OpenAI API, so we use the
openai library with a custom base_url.

WHERE AI IS USED:
- Fitment scoring (student vs job)
- Career recommendations
- Student profile summaries
- Parsing recruiter voice transcripts into job fields

Every caller has a deterministic fallback. The client never decides what
happens on failure; it raises LLMError and the caller falls back.
"""
import json
import logging
import re
from typing import Any, Optional

from openai import OpenAI, OpenAIError

from careermatch.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Provider call failed or returned something unusable."""


class LLMClient:
    """
    Wrapper for the text-generation provider.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 model: Optional[str] = None):
        self.api_key = settings.llm_api_key if api_key is None else api_key
        self.model = model or settings.llm_model
        self.client = None
        if self.is_configured:
            self.client = OpenAI(
                api_key=self.api_key,
                base_url=base_url or settings.llm_base_url
            )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 1000,
                  temperature: float = 0.1) -> str:
        """
        Internal method to call the provider.
        Returns raw text response.
        """
        if self.client is None:
            raise LLMError("LLM provider is not configured")
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content}
                ],
                max_tokens=max_tokens,
                temperature=temperature
            )
        except OpenAIError as e:
            raise LLMError(str(e)) from e
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError("Empty response from LLM provider")
        return content

    def _extract_json(self, text: str) -> Any:
        """
        Extract JSON from API response.
        Handles cases where model wraps JSON in markdown code blocks.
        """
        # Remove markdown code blocks if present
        text = text.strip()
        if text.startswith("```json"):
            text = text[7:]
        if text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]
        try:
            return json.loads(text.strip())
        except ValueError as e:
            raise LLMError(f"Response is not valid JSON: {e}") from e

    def _extract_json_object(self, text: str) -> dict:
        """
        Pull the first brace-delimited object out of a reply that may have
        prose around it.
        """
        match = re.search(r"\{[\s\S]*\}", text or "")
        if not match:
            raise LLMError("No JSON object found in response")
        try:
            data = json.loads(match.group(0))
        except ValueError as e:
            raise LLMError(f"Response is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise LLMError("Expected a JSON object")
        return data

    def complete_json(self, system_prompt: str, user_content: str, max_tokens: int = 1000,
                      temperature: float = 0.1) -> Any:
        response = self._call_api(system_prompt, user_content, max_tokens, temperature)
        return self._extract_json(response)

    def complete_text(self, system_prompt: str, user_content: str, max_tokens: int = 300,
                      temperature: float = 0.7) -> str:
        return self._call_api(system_prompt, user_content, max_tokens, temperature).strip()

    def test_connection(self) -> bool:
        """Test if the provider is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10
            )
            return "OK" in response.upper()
        except LLMError as e:
            logger.warning("LLM connection failed: %s", e)
            return False


# Singleton instance
_llm_client: LLMClient = None


def get_llm_client() -> LLMClient:
    """Get or create LLM client (singleton pattern)"""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client
