"""Perplexity provider over its OpenAI-compatible chat API.

Perplexity answers with live web search, which is how narrative reports pick
up current water temperature and wind.
"""

from ..base import LLMAuthError, LLMError, LLMProvider, LLMRateLimitError

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"


def _handle_openai_error(e: Exception):
    from openai import APIError, AuthenticationError, RateLimitError

    if isinstance(e, AuthenticationError):
        raise LLMAuthError(f"Perplexity auth failed: {e}") from e
    if isinstance(e, RateLimitError):
        raise LLMRateLimitError(f"Perplexity rate limit: {e}") from e
    if isinstance(e, APIError):
        raise LLMError(f"Perplexity API error: {e}") from e
    raise LLMError(f"Perplexity error: {e}") from e


class PerplexityProvider(LLMProvider):
    """Perplexity sonar models via the openai SDK."""

    provider_name = "perplexity"

    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        self.model = model or "sonar-pro"

        if client:
            self.client = client
            return

        try:
            from openai import OpenAI
        except ImportError:
            raise LLMError("openai package not installed. Run: pip install openai")

        try:
            self.client = OpenAI(api_key=api_key, base_url=PERPLEXITY_BASE_URL)
        except Exception as e:
            raise LLMError(f"Perplexity client setup failed: {e}") from e

    def generate(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1200,
        temperature: float | None = 0.2,
    ) -> str:
        full_messages = []
        if system:
            full_messages.append({"role": "system", "content": system})
        full_messages.extend(messages)

        kwargs = {"model": self.model, "max_tokens": max_tokens, "messages": full_messages}
        if temperature is not None:
            kwargs["temperature"] = temperature
        try:
            response = self.client.chat.completions.create(**kwargs)
        except Exception as e:
            _handle_openai_error(e)
        content = response.choices[0].message.content
        if not content:
            raise LLMError("Perplexity returned an empty response")
        return content
