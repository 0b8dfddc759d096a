"""
LLM Client - Provider-neutral text completion

Wraps the Anthropic and OpenAI async SDKs behind a single complete() call.
Anthropic is used when an Anthropic key is configured, OpenAI otherwise.

Every failure (missing key, transport error, empty completion) is raised as
LLMUnavailableError so callers can switch to their local fallback with a
single except clause.
"""

import logging
from typing import Any, Optional

from app.config import Settings, get_settings
from app.exceptions import LLMUnavailableError

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Async text completion client.

    Attributes:
        provider: "anthropic", "openai", or None when no key is configured
        model: Model name for the selected provider
    """

    def __init__(self, settings: Optional[Settings] = None, client: Any = None):
        """
        Args:
            settings: Application settings (defaults to get_settings())
            client: Pre-built SDK client, mainly for tests
        """
        self.settings = settings or get_settings()
        self.timeout = self.settings.llm_timeout_seconds

        if self.settings.anthropic_api_key:
            self.provider: Optional[str] = "anthropic"
            self.model = self.settings.anthropic_model
        elif self.settings.openai_api_key:
            self.provider = "openai"
            self.model = self.settings.openai_model
        else:
            self.provider = None
            self.model = None

        self._client = client

    def is_available(self) -> bool:
        return self.provider is not None

    def _get_client(self) -> Any:
        if self._client is None:
            if self.provider == "anthropic":
                from anthropic import AsyncAnthropic

                self._client = AsyncAnthropic(
                    api_key=self.settings.anthropic_api_key, timeout=self.timeout
                )
            else:
                from openai import AsyncOpenAI

                self._client = AsyncOpenAI(
                    api_key=self.settings.openai_api_key, timeout=self.timeout
                )
        return self._client

    async def complete(self, prompt: str, max_tokens: int = 1000) -> str:
        """
        Send a single-turn prompt and return the completion text.

        Raises:
            LLMUnavailableError: No provider configured or the call failed
        """
        if not self.is_available():
            raise LLMUnavailableError("No AI API key configured")

        try:
            if self.provider == "anthropic":
                text = await self._complete_anthropic(prompt, max_tokens)
            else:
                text = await self._complete_openai(prompt, max_tokens)
        except LLMUnavailableError:
            raise
        except Exception as e:
            logger.error(f"LLM API call failed ({self.provider}): {e}")
            raise LLMUnavailableError(str(e)) from e

        if not text:
            raise LLMUnavailableError("Empty response from AI")
        return text

    async def _complete_anthropic(self, prompt: str, max_tokens: int) -> str:
        response = await self._get_client().messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )

    async def _complete_openai(self, prompt: str, max_tokens: int) -> str:
        response = await self._get_client().chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=0.7,
        )
        return response.choices[0].message.content or ""
