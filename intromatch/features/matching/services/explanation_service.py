"""
AI explanations for top match suggestions.

Writes a short rationale for why an introduction would help both sides.
The service is inert when no OpenAI key is configured.
"""

import asyncio

import openai
from openai import AsyncOpenAI

from intromatch.config import settings
from intromatch.features.matching.domain.models import (
    ContactProfile,
    ConversationSignals,
    ScoredMatch,
)
from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ExplanationError(Exception):
    """Raised when an explanation could not be generated for one suggestion."""

    def __init__(self, message: str, contact_id: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.contact_id = contact_id
        self.recoverable = recoverable


class ExplanationService:
    MAX_TOKENS = 100
    TEMPERATURE = 0.7
    MAX_RETRIES = 2
    MAX_TOPICS = 10
    BIO_PREVIEW_CHARS = 200

    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None):
        self.model = model or settings.OPENAI_MODEL
        self.client = client
        if self.client is None and settings.explanations_enabled():
            self.client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
            )
            logger.info("OpenAI client initialized for explanations", model=self.model)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None

    def build_prompt(
        self, signals: ConversationSignals, contact: ContactProfile, match: ScoredMatch
    ) -> str:
        topics = ", ".join(signals.tags[: self.MAX_TOPICS]) or "various business topics"
        lines = [
            "You are an expert connector who helps facilitate warm introductions between "
            "professionals.",
            "",
            "Given this conversation context and a potential connection, write a brief, "
            "compelling 1-2 sentence explanation of why this introduction would be valuable "
            "for both parties.",
            "",
            "CONVERSATION CONTEXT:",
            f"Topics discussed: {topics}",
        ]
        if signals.investor_types:
            lines.append(f"Fundraising: Looking for {', '.join(signals.investor_types)}")

        lines.extend(["", "POTENTIAL CONNECTION:", f"Name: {contact.name}"])
        if contact.title:
            lines.append(f"Role: {contact.title}")
        if contact.company:
            lines.append(f"Company: {contact.company}")
        if contact.bio:
            lines.append(f"About: {contact.bio[: self.BIO_PREVIEW_CHARS]}")
        lines.append(f"Match reasons: {', '.join(match.reasons)}")
        lines.extend(
            [
                "",
                "Write a warm, professional explanation (1-2 sentences) of why connecting these "
                "parties would be mutually beneficial. Focus on specific value, not generic "
                'statements. Do not use phrases like "perfect fit" or "ideal match".',
            ]
        )
        return "\n".join(lines)

    async def explain(
        self, signals: ConversationSignals, contact: ContactProfile, match: ScoredMatch
    ) -> str | None:
        """
        Generate an explanation for one match.

        Returns:
            The explanation text, or None when explanations are disabled

        Raises:
            ExplanationError: If the API call fails after retries
        """
        if not self.enabled:
            return None

        prompt = self.build_prompt(signals, contact, match)
        last_error: Exception | None = None

        for attempt in range(self.MAX_RETRIES + 1):
            try:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=self.MAX_TOKENS,
                    temperature=self.TEMPERATURE,
                )
                content = response.choices[0].message.content if response.choices else None
                if not content or not content.strip():
                    raise ExplanationError("Empty response from OpenAI API", contact_id=contact.id)

                logger.debug(
                    "Explanation generated",
                    contact_id=contact.id,
                    usage_tokens=response.usage.total_tokens if response.usage else 0,
                )
                return content.strip()

            except openai.RateLimitError as e:
                last_error = e
                wait_time = min(2**attempt, 30)
                logger.warning(
                    "OpenAI rate limit hit, retrying",
                    contact_id=contact.id,
                    attempt=attempt + 1,
                    wait_time=wait_time,
                )
                if attempt < self.MAX_RETRIES:
                    await asyncio.sleep(wait_time)

            except openai.APITimeoutError as e:
                last_error = e
                logger.warning(
                    "OpenAI API timeout, retrying", contact_id=contact.id, attempt=attempt + 1
                )

            except openai.APIError as e:
                last_error = e
                status_code = getattr(e, "status_code", None)
                if status_code is not None and 400 <= status_code < 500:
                    logger.error(
                        "OpenAI client error (not retrying)", contact_id=contact.id, error=str(e)
                    )
                    break
                logger.warning(
                    "OpenAI API error, retrying", contact_id=contact.id, attempt=attempt + 1
                )

        raise ExplanationError(
            f"Explanation failed after {self.MAX_RETRIES + 1} attempts: {last_error}",
            contact_id=contact.id,
        ) from last_error
