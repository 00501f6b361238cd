"""Read-only recommendation tools."""
import logging
import re
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from brewchat.core.errors import InfrastructureError
from brewchat.services.catalog.base import Beverage
from brewchat.services.catalog.repository import CatalogRepository
from brewchat.services.ordering.validator import LineItemValidator
from brewchat.services.persistence.orders import SubmittedOrderStore

logger = logging.getLogger(__name__)

# Words that say nothing about what the customer wants
STOPWORDS = {
    "a", "an", "and", "the", "i", "i'd", "i'm", "me", "my", "some", "something",
    "want", "like", "would", "with", "for", "of", "drink", "drinks", "please",
    "to", "is", "it", "that", "but", "or", "really", "very", "kind", "today",
    "too", "so", "much", "any", "anything",
}

# The next meaningful word names something the customer does not want
NEGATIONS = {"no", "not", "without", "non"}

NAME_WEIGHT = 3.0
TAG_WEIGHT = 2.0
CATEGORY_WEIGHT = 2.0
DESCRIPTION_WEIGHT = 1.0
OPTION_WEIGHT = 1.0
HISTORY_WEIGHT = 1.5


class Suggestion(BaseModel):
    """One recommended beverage."""

    beverage_id: str
    name: str
    price: float
    rationale: str


def _terms(hints: List[str]) -> Tuple[List[str], List[str]]:
    """Split hints into wanted terms and excluded terms ("no coffee", "non-dairy")."""
    terms: List[str] = []
    excluded: List[str] = []
    for hint in hints:
        hint_lower = hint.lower().strip()
        if not hint_lower:
            continue
        words: List[str] = []
        negate = False
        for word in re.findall(r"[a-z0-9'-]+", hint_lower):
            if word in NEGATIONS:
                negate = True
                continue
            if word.startswith("non-") and len(word) > 4:
                word = word[4:]
                negate = True
            if word in STOPWORDS:
                continue
            if negate:
                excluded.append(word)
                negate = False
            else:
                words.append(word)
        if len(words) > 1:
            terms.append(" ".join(words))
        terms.extend(words)
    # Keep order, drop duplicates
    return list(dict.fromkeys(terms)), list(dict.fromkeys(excluded))


def _mentions(text: str, term: str) -> bool:
    return re.search(rf"\b{re.escape(term)}\b", text) is not None


class RecommendationTools:
    """Catalog queries that never touch the draft."""

    def __init__(
        self,
        catalog: CatalogRepository,
        order_store: Optional[SubmittedOrderStore] = None,
        validator: Optional[LineItemValidator] = None,
    ):
        self.catalog = catalog
        self.order_store = order_store
        self.validator = validator or LineItemValidator(catalog)

    async def suggest(
        self, owner: Optional[str], preference_hints: List[str], limit: int = 3
    ) -> List[Suggestion]:
        """
        Rank available beverages against the customer's preferences.

        Args:
            owner: Principal whose past orders boost familiar drinks
            preference_hints: Free-form hints, e.g. ["sweet", "iced", "no coffee"]
            limit: Maximum number of suggestions

        Returns:
            Suggestions, best first; empty when nothing matches
        """
        beverages = await self.catalog.list_all()
        history = await self._order_counts(owner)
        terms, excluded = _terms(preference_hints)

        scored = []
        for position, beverage in enumerate(beverages):
            if self._excluded(beverage, excluded):
                continue
            score, reasons = self._score(beverage, terms)
            if terms and score == 0:
                continue
            times = history.get(beverage.id, 0)
            if times:
                score += HISTORY_WEIGHT
                reasons.append(f"you've ordered it {times} time{'s' if times > 1 else ''} before")
            if not terms and not reasons:
                reasons.append("a house favorite")
            scored.append((-score, position, beverage, reasons))

        scored.sort(key=lambda entry: (entry[0], entry[1]))
        suggestions = [
            Suggestion(
                beverage_id=beverage.id,
                name=beverage.name,
                price=beverage.base_price,
                rationale="; ".join(reasons),
            )
            for _, _, beverage, reasons in scored[:limit]
        ]
        logger.info(
            f"[RECOMMENDATIONS] suggest - Hints: {preference_hints}, "
            f"Excluded: {excluded}, Results: {[s.beverage_id for s in suggestions]}"
        )
        return suggestions

    async def describe_beverage(self, beverage_id: str) -> Dict[str, Any]:
        """Full description of one beverage with its options."""
        beverage = await self.validator.resolve_beverage(beverage_id)
        return {
            "beverage_id": beverage.id,
            "name": beverage.name,
            "description": beverage.description,
            "category": beverage.category,
            "base_price": beverage.base_price,
            "options": [
                {
                    "name": axis.name,
                    "values": axis.values,
                    "required": axis.required,
                    "default": axis.default,
                    "upcharges": axis.upcharges,
                }
                for axis in beverage.customizations
            ],
        }

    @staticmethod
    def _score(beverage: Beverage, terms: List[str]):
        score = 0.0
        reasons: List[str] = []
        name = beverage.name.lower()
        tags = [tag.lower() for tag in beverage.tags]
        description = (beverage.description or "").lower()
        category = (beverage.category or "").lower()
        option_values = {value for axis in beverage.customizations for value in axis.values}

        for term in terms:
            if term in name or name in term:
                score += NAME_WEIGHT
                reasons.append(f"it's a {beverage.name}")
            elif term in tags:
                score += TAG_WEIGHT
                reasons.append(term)
            elif term == category:
                score += CATEGORY_WEIGHT
                reasons.append(f"a {category} drink")
            elif term in option_values:
                score += OPTION_WEIGHT
                reasons.append(f"available {term}")
            elif _mentions(description, term):
                score += DESCRIPTION_WEIGHT
                reasons.append(f"described as {term}")
        return score, list(dict.fromkeys(reasons))

    @staticmethod
    def _excluded(beverage: Beverage, excluded: List[str]) -> bool:
        tags = [tag.lower() for tag in beverage.tags]
        for term in excluded:
            if (
                _mentions(beverage.name.lower(), term)
                or term in tags
                or term == (beverage.category or "").lower()
                or _mentions((beverage.description or "").lower(), term)
            ):
                return True
        return False

    async def _order_counts(self, owner: Optional[str]) -> Counter:
        counts: Counter = Counter()
        if not owner or self.order_store is None:
            return counts
        try:
            orders = await self.order_store.list_for_owner(owner)
        except InfrastructureError:
            # History only boosts ranking; suggestions still work without it
            logger.warning(f"[RECOMMENDATIONS] Order history unavailable for {owner}")
            return counts
        for order in orders:
            for item in order.items:
                counts[item.beverage_id] += item.quantity
        return counts
