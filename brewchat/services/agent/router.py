"""Agent mode routing."""
import logging
import re
from typing import Iterable, List

from brewchat.services.agent.constants import (
    ORDERING_INTENT_INDICATORS,
    RECOMMENDATION_INDICATORS,
)
from brewchat.services.agent.modes import AgentMode
from brewchat.services.catalog.repository import CatalogRepository
from brewchat.services.session.models import Session

logger = logging.getLogger(__name__)


def _patterns(phrases: Iterable[str]) -> List[re.Pattern]:
    return [re.compile(rf"\b{re.escape(phrase)}\b") for phrase in phrases]


_ORDERING_PATTERNS = _patterns(ORDERING_INTENT_INDICATORS)
_RECOMMENDATION_PATTERNS = _patterns(RECOMMENDATION_INDICATORS)


def normalize_message(message: str) -> str:
    return message.lower().replace("’", "'").strip()


class ModeRouter:
    """Decides which agent mode handles a turn."""

    def __init__(self, catalog: CatalogRepository):
        self.catalog = catalog

    async def mentions_beverage(self, text: str) -> bool:
        """Check if the message names a beverage on the menu."""
        for beverage in await self.catalog.list_all():
            names = {beverage.name.lower(), beverage.id.lower().replace("-", " ")}
            if any(re.search(rf"\b{re.escape(name)}\b", text) for name in names):
                return True
        return False

    async def has_ordering_intent(self, message: str) -> bool:
        """
        Check if the customer is asking to order.

        An ordering phrase counts when the customer also names a drink, or when
        nothing in the message suggests they are still asking for advice
        ("can I get something sweet?" stays a recommendation).
        """
        text = normalize_message(message)
        if not any(pattern.search(text) for pattern in _ORDERING_PATTERNS):
            return False
        if await self.mentions_beverage(text):
            return True
        return not any(pattern.search(text) for pattern in _RECOMMENDATION_PATTERNS)

    async def route(self, session: Session, message: str) -> AgentMode:
        """Pick the mode for this turn; the caller records any switch on the session."""
        ordering_intent = await self.has_ordering_intent(message)

        if session.mode == AgentMode.RECOMMENDATION:
            if ordering_intent:
                logger.info(f"[ROUTER] Ordering intent detected - Session: {session.id}")
                return AgentMode.ORDERING
            return AgentMode.RECOMMENDATION

        # Stay in ordering while a draft is open or the customer keeps ordering
        if session.active_draft is not None or ordering_intent:
            return AgentMode.ORDERING
        text = normalize_message(message)
        if any(pattern.search(text) for pattern in _RECOMMENDATION_PATTERNS):
            logger.info(f"[ROUTER] Back to recommendations - Session: {session.id}")
            return AgentMode.RECOMMENDATION
        return AgentMode.ORDERING
