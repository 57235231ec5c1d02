# tarot_app/services/storage/base.py
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from tarot_app.core.exceptions import InvalidCardError, ValidationError
from tarot_app.data.categories import get_category
from tarot_app.data.tarot import TarotCatalog
from tarot_app.models.tarot_models import AIInterpretation, Reading

MAX_CARDS_PER_READING = 3


def generate_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReadingStore(ABC):
    """
    Persistence contract for readings.

    Every variant must behave the same from the caller's side: `get` returns
    None for unknown ids, `list` is newest first, `update_interpretation`
    merges into the stored record and `delete` is idempotent. Backing-store
    errors surface as PersistenceFailure.
    """

    def __init__(self, catalog: Optional[TarotCatalog] = None):
        self.catalog = catalog

    def build_reading(
        self,
        category: str,
        cards: Sequence[str],
        orientations: Optional[Sequence[bool]] = None,
        user_id: Optional[str] = None,
    ) -> Reading:
        """Validate the input and stamp a new Reading; nothing is written here."""
        category = get_category(category)
        cards = list(cards)
        if not 1 <= len(cards) <= MAX_CARDS_PER_READING:
            raise ValidationError(f"A reading needs between 1 and {MAX_CARDS_PER_READING} cards, got {len(cards)}")
        if len(set(cards)) != len(cards):
            raise ValidationError("A reading cannot contain the same card twice")
        if self.catalog is not None:
            for card_id in cards:
                if card_id not in self.catalog:
                    raise InvalidCardError(card_id)

        if orientations is None:
            orientations = [False] * len(cards)
        orientations = [bool(value) for value in orientations]
        if len(orientations) != len(cards):
            raise ValidationError("cardOrientations must have the same length as cards")

        return Reading(
            id=generate_id(),
            category=category,
            cards=cards,
            card_orientations=orientations,
            user_id=user_id,
            created_at=utc_now(),
        )

    @abstractmethod
    async def create(
        self,
        category: str,
        cards: Sequence[str],
        orientations: Optional[Sequence[bool]] = None,
        user_id: Optional[str] = None,
    ) -> Reading:
        ...

    @abstractmethod
    async def get(self, reading_id: str) -> Optional[Reading]:
        ...

    @abstractmethod
    async def list(self, user_id: Optional[str] = None) -> List[Reading]:
        ...

    @abstractmethod
    async def update_interpretation(self, reading_id: str, interpretation: AIInterpretation) -> Optional[Reading]:
        ...

    @abstractmethod
    async def delete(self, reading_id: str) -> None:
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Remove every reading. Development and test use only."""

    async def close(self) -> None:
        pass
