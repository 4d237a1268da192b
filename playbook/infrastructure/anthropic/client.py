"""
Anthropic Claude API client wrapper.

This module provides a thin wrapper around the Anthropic SDK that:
1. Implements our TextGenerationClient protocol
2. Translates SDK errors into the core's ServiceRateLimited /
   ServiceUnavailable errors
3. Enables easy mocking for tests

Retries are owned by InsightService, so the SDK's own retry loop is
switched off; otherwise a rate-limited call would be retried by both.
"""

import logging
from dataclasses import dataclass

import anthropic
from anthropic import APIError, RateLimitError

from ...core.errors import ServiceRateLimited, ServiceUnavailable
from ...core.insights.service import TextGenerationClient


logger = logging.getLogger(__name__)


DEFAULT_MODEL = "claude-sonnet-4-20250514"


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic client."""
    api_key: str
    model: str = DEFAULT_MODEL
    max_tokens: int = 1024  # Insights are a paragraph and a few bullets
    temperature: float = 0.5

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("API key is required")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if not 0 <= self.temperature <= 1:
            raise ValueError("temperature must be between 0 and 1")


class AnthropicTextClient(TextGenerationClient):
    """
    Implementation of TextGenerationClient using Claude.

    Knows Anthropic's API format but nothing about players or programs.
    """

    def __init__(self, config: AnthropicConfig) -> None:
        self._config = config
        self._client = anthropic.AsyncAnthropic(api_key=config.api_key, max_retries=0)

    async def generate(self, prompt: str, system_prompt: str) -> str:
        if not prompt.strip():
            raise ServiceUnavailable("Prompt is required")

        try:
            response = await self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": prompt}],
            )
        except RateLimitError as e:
            logger.warning("Rate limit hit", extra={"error": str(e)})
            raise ServiceRateLimited("Text generation rate limit exceeded") from e
        except APIError as e:
            logger.error(
                "API error",
                extra={"error": str(e), "status": getattr(e, "status_code", None)},
            )
            raise ServiceUnavailable(f"Text generation failed: {e.message}") from e

        return self._extract_text_response(response)

    def _extract_text_response(self, response) -> str:
        """Extract text content from API response."""
        if not response.content:
            return ""

        text_blocks = [
            block.text
            for block in response.content
            if hasattr(block, 'text')
        ]

        return "\n".join(text_blocks)

