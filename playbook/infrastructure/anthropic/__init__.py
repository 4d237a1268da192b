"""
Anthropic Claude API client wrapper.

Implements the TextGenerationClient protocol from core.insights.
"""

from .client import AnthropicConfig, AnthropicTextClient

__all__ = ["AnthropicConfig", "AnthropicTextClient"]
