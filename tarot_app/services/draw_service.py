# tarot_app/services/draw_service.py
import logging
import random
from typing import Iterable, List, Optional

from tarot_app.core.exceptions import SelectionExhaustedError
from tarot_app.data.tarot import TarotCatalog
from tarot_app.models.tarot_models import DrawnCard

logger = logging.getLogger(__name__)

REVERSED_PROBABILITY = 0.3
MAX_DRAW_ATTEMPTS = 100
CARDS_PER_READING = 3


class DrawEngine:
    """
    Draws cards without replacement from the catalog.

    Each draw samples the whole deck and retries when it hits a card that is
    already in the reading; after `max_attempts` misses it samples the
    remaining cards directly. Orientation is decided once per card.
    """

    def __init__(
        self,
        catalog: TarotCatalog,
        rng: Optional[random.Random] = None,
        reversed_probability: float = REVERSED_PROBABILITY,
        max_attempts: int = MAX_DRAW_ATTEMPTS,
    ):
        if not 0.0 <= reversed_probability <= 1.0:
            raise ValueError("reversed_probability must be in [0, 1]")
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.reversed_probability = reversed_probability
        self.max_attempts = max_attempts

    def draw_card(self, already_drawn: Iterable[str] = ()) -> DrawnCard:
        already_drawn = set(already_drawn)
        population = self.catalog.all_cards()
        if not population:
            raise SelectionExhaustedError("The card catalog is empty.")

        picked = None
        for _ in range(self.max_attempts):
            card = self.rng.choice(population)
            if card.id not in already_drawn:
                picked = card
                break

        if picked is None:
            # Nearly exhausted deck: pick directly from what is left.
            remaining = [card for card in population if card.id not in already_drawn]
            if not remaining:
                raise SelectionExhaustedError(
                    f"No unused card left after {self.max_attempts} attempts "
                    f"({len(already_drawn)} of {len(population)} cards already drawn)."
                )
            picked = self.rng.choice(remaining)

        is_reversed = self.rng.random() < self.reversed_probability
        logger.debug(f"Drew {picked.id} ({'reversed' if is_reversed else 'upright'})")
        return DrawnCard(card_id=picked.id, is_reversed=is_reversed)

    def draw_spread(self, count: int = CARDS_PER_READING) -> List[DrawnCard]:
        """Draw `count` distinct cards in one go."""
        if count < 1 or count > len(self.catalog):
            raise ValueError(f"Cannot draw {count} cards from a deck of {len(self.catalog)}")
        drawn: List[DrawnCard] = []
        for _ in range(count):
            drawn.append(self.draw_card(card.card_id for card in drawn))
        return drawn
