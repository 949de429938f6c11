"""
OpenAI-compatible client for intent classification and reply generation.

Uses the async OpenAI client with a configurable base URL, so any
OpenAI-compatible provider can be used.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from pipeline.models import ClassificationOutcome
from pipeline.prompts import REPLY_SYSTEM_PROMPT, build_intent_prompt

from .base import IntentClassifierCapability, ReplyGeneratorCapability

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 10


class OpenAIClient(IntentClassifierCapability, ReplyGeneratorCapability):
    """AI capability backed by an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[AsyncOpenAI] = None
    ):
        """
        Initialize the OpenAI client.

        Args:
            api_key: Provider API key
            model: Model identifier
            base_url: Optional OpenAI-compatible endpoint
            timeout: Request timeout in seconds
            client: Optional preconfigured AsyncOpenAI instance
        """
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def classify_intents(self, message: str, labels: List[str]) -> ClassificationOutcome:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": build_intent_prompt(message, labels)}],
                temperature=0.3,
                max_tokens=50,
            )
        except Exception as e:
            logger.warning(f"AI intent request failed: {e}")
            return ClassificationOutcome.failure(f"request failed: {e}")

        text = (completion.choices[0].message.content or "").strip() if completion.choices else ""
        if not text:
            return ClassificationOutcome.failure("empty response")

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse AI intents: {text[:100]}")
            return ClassificationOutcome.failure("response was not valid JSON")

        if not isinstance(parsed, list):
            return ClassificationOutcome.failure("response was not a JSON array")

        return ClassificationOutcome.success([str(label) for label in parsed])

    async def generate_reply(
        self,
        message: str,
        history: Optional[List[Dict[str, Any]]] = None
    ) -> str:
        """
        Generate a reply to a customer message.

        Args:
            message: Customer message
            history: Prior messages with 'sender_type' or 'role' and 'content'

        Returns:
            Reply text
        """
        messages = [{"role": "system", "content": REPLY_SYSTEM_PROMPT}]
        for entry in (history or [])[-HISTORY_WINDOW:]:
            sender = entry.get("sender_type") or entry.get("role")
            role = "user" if sender == "user" else "assistant"
            messages.append({"role": role, "content": entry.get("content") or ""})
        messages.append({"role": "user", "content": message})

        completion = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=0.7,
            max_tokens=500,
        )
        return (completion.choices[0].message.content or "").strip()

    async def verify_connection(self) -> bool:
        try:
            await self.client.models.list()
        except Exception as e:
            logger.warning(f"AI connection check failed: {e}")
            return False
        return True

    async def aclose(self) -> None:
        await self.client.close()
