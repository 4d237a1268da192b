"""
Best-effort narrative insights over a player's analytics.
"""

from .service import (
    UNAVAILABLE_PLACEHOLDER,
    InsightService,
    TextGenerationClient,
    build_report_prompt,
)

__all__ = [
    "UNAVAILABLE_PLACEHOLDER",
    "InsightService",
    "TextGenerationClient",
    "build_report_prompt",
]
