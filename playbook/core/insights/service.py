"""
Narrative insights from a player's reports.

This is a best-effort feature layered on top of the analytics. It asks
a text-generation model to summarize wellness and throwing trends. If
the model is rate limited we back off and retry a few times; if it
still can't answer, the caller gets a fixed placeholder string. Nothing
here ever raises into program editing or logging.

The prompts live here, not in config, because they decide what the
feature says. Review changes to them like code.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

from ..analytics.series import Reports
from ..errors import ServiceRateLimited, ServiceUnavailable


logger = logging.getLogger(__name__)


UNAVAILABLE_PLACEHOLDER = "AI insights are currently unavailable."

NOT_ENOUGH_DATA = "Not enough data yet. Log a few wellness check-ins and throwing days first."

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY_SECONDS = 1.0

# Keep prompts small; the most recent entries are the interesting ones
MAX_PROMPT_ENTRIES = 30


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class TextGenerationClient(Protocol):
    """
    Interface for text-generation clients.

    Implementations raise ServiceRateLimited when the provider asks us
    to slow down and ServiceUnavailable for any other failure.
    """

    async def generate(self, prompt: str, system_prompt: str) -> str:
        """Return the model's text response for a prompt."""
        ...


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """You are an experienced baseball throwing and strength coach reviewing a player's daily logs.

- Be specific: refer to dates and numbers from the data.
- Point out relationships between sleep, how the body feels and how throwing felt.
- Flag warning signs (falling arm or shoulder feel, short sleep) plainly but without alarm.
- Keep it to one short paragraph followed by at most three bullet-point recommendations."""


REPORT_PROMPT_TEMPLATE = """Here are a player's recent logs.

Wellness check-ins (date: overall/arm/shoulder/back/legs feel out of 10, sleep hours):
{wellness_lines}

Days with both a check-in and a throwing session (date: sleep hours, arm feel during throwing out of 10):
{combined_lines}

Summarize the trends and what the player should pay attention to this week."""


# ---------------------------------------------------------------------------
# Insight Service
# ---------------------------------------------------------------------------

Sleep = Callable[[float], Awaitable[None]]


class InsightService:
    """
    Generates narrative insights with bounded retry.

    Retry policy: a rate-limited call is retried up to max_retries
    times, waiting initial_delay seconds before the first retry and
    doubling the wait each time (1s, 2s, 4s with the defaults).
    """

    def __init__(
        self,
        client: Optional[TextGenerationClient],
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY_SECONDS,
        sleep: Optional[Sleep] = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries can't be negative")
        if initial_delay < 0:
            raise ValueError("initial_delay can't be negative")
        self._client = client
        self._max_retries = max_retries
        self._initial_delay = initial_delay
        self._sleep = sleep or asyncio.sleep

    async def generate(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> str:
        """Return generated text, or the placeholder if the service can't answer."""
        if self._client is None:
            return UNAVAILABLE_PLACEHOLDER

        delay = self._initial_delay
        attempt = 0

        while True:
            try:
                return await self._client.generate(prompt, system_prompt)
            except ServiceRateLimited as e:
                if attempt >= self._max_retries:
                    logger.warning(
                        "Insight generation still rate limited, giving up",
                        extra={"attempts": attempt + 1, "error": str(e)},
                    )
                    return UNAVAILABLE_PLACEHOLDER
                logger.info(
                    "Insight generation rate limited, retrying",
                    extra={"attempt": attempt + 1, "delay_seconds": delay},
                )
                await self._sleep(delay)
                delay *= 2
                attempt += 1
            except ServiceUnavailable as e:
                logger.warning("Insight generation failed", extra={"error": str(e)})
                return UNAVAILABLE_PLACEHOLDER
            except Exception:
                logger.exception("Unexpected error from text generation client")
                return UNAVAILABLE_PLACEHOLDER

    async def summarize_reports(self, reports: Reports) -> str:
        """Narrative summary of a player's wellness and sleep/arm series."""
        if not reports.wellness_series and not reports.combined_sleep_arm_series:
            return NOT_ENOUGH_DATA
        return await self.generate(build_report_prompt(reports))


def build_report_prompt(reports: Reports) -> str:
    wellness = reports.wellness_series[-MAX_PROMPT_ENTRIES:]
    combined = reports.combined_sleep_arm_series[-MAX_PROMPT_ENTRIES:]

    wellness_lines = "\n".join(
        f"- {w.date.isoformat()}: {w.overall_feel}/{w.arm_feel}/{w.shoulder_feel}/"
        f"{w.back_feel}/{w.legs_feel}, {w.sleep_hours:g}h"
        for w in wellness
    ) or "- none"
    combined_lines = "\n".join(
        f"- {p.date.isoformat()}: {p.sleep:g}h, arm {p.arm_feel}"
        for p in combined
    ) or "- none"

    return REPORT_PROMPT_TEMPLATE.format(
        wellness_lines=wellness_lines,
        combined_lines=combined_lines,
    )
