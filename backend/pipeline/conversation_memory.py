"""
Ephemeral per-conversation memory.

Holds what has been collected so far in a conversation (active intent,
pending slot, email, order numbers) so that follow-up messages such as
"it's john@example.com" can be resolved as continuations.

Entries expire after a period of inactivity. Expiry is checked on read and
the whole store is swept on every write; there is no background timer.
"""

import copy
import logging
import time
from typing import Callable, Dict, List, Optional

from .models import CollectedData, ConversationContext, Intent, WaitingFor

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 8 * 60

# Sentinel for "caller did not supply this field"
_UNSET = object()


class ConversationMemoryStore:
    """In-memory conversation context store with TTL expiry."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize memory store.

        Args:
            ttl_seconds: Inactivity period after which a context is dropped
            clock: Function returning the current time in seconds
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._contexts: Dict[str, ConversationContext] = {}

    def get(self, conversation_id: Optional[str]) -> Optional[ConversationContext]:
        """
        Get live context for a conversation.

        Args:
            conversation_id: Conversation identifier

        Returns:
            Copy of the stored context, or None if missing or expired
        """
        if not conversation_id:
            return None

        context = self._contexts.get(conversation_id)
        if context is None:
            return None

        if self._is_expired(context, self._clock()):
            logger.info(f"Context expired for conversation: {conversation_id}")
            del self._contexts[conversation_id]
            return None

        return copy.deepcopy(context)

    def set(
        self,
        conversation_id: Optional[str],
        active_intent=_UNSET,
        waiting_for=_UNSET,
        collected_data: Optional[CollectedData] = None
    ) -> Optional[ConversationContext]:
        """
        Merge a partial update into a conversation's context.

        Fields that are passed overwrite the stored value (an explicit None
        clears it). Collected data merges field by field: a stored email or
        order number list is only replaced by a non-empty value.

        Args:
            conversation_id: Conversation identifier
            active_intent: Intent the conversation is pursuing
            waiting_for: Slot the conversation is waiting on, or None
            collected_data: Newly collected customer data

        Returns:
            Copy of the updated context, or None when no id was given
        """
        if not conversation_id:
            return None

        now = self._clock()
        existing = self._contexts.get(conversation_id)
        if existing is None or self._is_expired(existing, now):
            existing = ConversationContext(conversation_id=conversation_id)

        if active_intent is not _UNSET:
            existing.active_intent = Intent(active_intent) if active_intent else None
        if waiting_for is not _UNSET:
            existing.waiting_for = WaitingFor(waiting_for) if waiting_for else None
        if collected_data is not None:
            if collected_data.email:
                existing.collected_data.email = collected_data.email
            if collected_data.order_numbers:
                existing.collected_data.order_numbers = list(collected_data.order_numbers)

        existing.timestamp = now
        existing.message_count += 1
        self._contexts[conversation_id] = existing

        logger.info(
            f"Updated conversation context: {conversation_id} "
            f"(messages={existing.message_count}, "
            f"has_email={bool(existing.collected_data.email)})"
        )

        self._sweep(now)
        return copy.deepcopy(existing)

    def delete(self, conversation_id: str) -> bool:
        """Drop a conversation's context. Returns True if one existed."""
        return self._contexts.pop(conversation_id, None) is not None

    def _sweep(self, now: float) -> List[str]:
        expired = [
            conv_id for conv_id, ctx in self._contexts.items()
            if self._is_expired(ctx, now)
        ]
        for conv_id in expired:
            logger.info(f"Cleaning expired context for conversation: {conv_id}")
            del self._contexts[conv_id]
        return expired

    def _is_expired(self, context: ConversationContext, now: float) -> bool:
        return now - context.timestamp > self.ttl_seconds

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._contexts
