# tarot_app/data/tarot.py
import json
import logging
import os
from typing import Dict, Iterator, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from tarot_app.core.exceptions import CatalogError
from tarot_app.models.tarot_models import Card

logger = logging.getLogger(__name__)

DEFAULT_TAROT_DATA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "tarot_cards.json")

MAJOR_IMAGE_FILES = {
    "the-fool": "RWS_Tarot_00_Fool.jpg",
    "the-magician": "RWS_Tarot_01_Magician.jpg",
    "the-high-priestess": "RWS_Tarot_02_High_Priestess.jpg",
    "the-empress": "RWS_Tarot_03_Empress.jpg",
    "the-emperor": "RWS_Tarot_04_Emperor.jpg",
    "the-hierophant": "RWS_Tarot_05_Hierophant.jpg",
    "the-lovers": "RWS_Tarot_06_Lovers.jpg",
    "the-chariot": "RWS_Tarot_07_Chariot.jpg",
    "strength": "RWS_Tarot_08_Strength.jpg",
    "the-hermit": "RWS_Tarot_09_Hermit.jpg",
    "wheel-of-fortune": "RWS_Tarot_10_Wheel_of_Fortune.jpg",
    "justice": "RWS_Tarot_11_Justice.jpg",
    "the-hanged-man": "RWS_Tarot_12_Hanged_Man.jpg",
    "death": "RWS_Tarot_13_Death.jpg",
    "temperance": "RWS_Tarot_14_Temperance.jpg",
    "the-devil": "RWS_Tarot_15_Devil.jpg",
    "the-tower": "RWS_Tarot_16_Tower.jpg",
    "the-star": "RWS_Tarot_17_Star.jpg",
    "the-moon": "RWS_Tarot_18_Moon.jpg",
    "the-sun": "RWS_Tarot_19_Sun.jpg",
    "judgement": "RWS_Tarot_20_Judgement.jpg",
    "the-world": "RWS_Tarot_21_World.jpg",
}

MINOR_IMAGE_PREFIX = {
    "Cups": "Cups",
    "Pentacles": "Pents",
    "Swords": "Swords",
    "Wands": "Wands",
}


class TarotCatalog:
    """Read-only card catalog. Card order is the file order and is the draw population."""

    def __init__(self, cards):
        self._cards: Tuple[Card, ...] = tuple(cards)
        self._by_id: Dict[str, Card] = {}
        for card in self._cards:
            if card.id in self._by_id:
                raise CatalogError(f"Duplicate card id in catalog: {card.id}")
            self._by_id[card.id] = card

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)

    def __contains__(self, card_id) -> bool:
        return card_id in self._by_id

    def get_card_by_id(self, card_id: str) -> Optional[Card]:
        return self._by_id.get(card_id)

    def all_cards(self) -> Tuple[Card, ...]:
        return self._cards

    def image_path(self, card: Card) -> str:
        """
        Static image path for a card, as served by the front-end.

        Major arcana use a fixed file map; minor arcana are numbered per suit
        (Ace=01 ... King=14).
        """
        if card.arcana == "Major":
            file_name = MAJOR_IMAGE_FILES.get(card.id)
            if not file_name:
                logger.warning(f"Major card image not found for id: {card.id}")
                return "/images/tarot/major/default.jpg"
            return f"/images/tarot/major/{file_name}"

        if card.suit:
            return f"/images/tarot/{card.suit.lower()}/{MINOR_IMAGE_PREFIX[card.suit]}{card.number:02d}.jpg"

        logger.warning(f"Card image path could not be determined for: {card.id}")
        return "/images/tarot/default.jpg"


def load_tarot_data(filepath: Optional[str] = None) -> TarotCatalog:
    """
    Load the tarot card catalog from a JSON file.

    The file holds {"cards": [...]} with one entry per card; each entry is
    validated into a Card.
    """
    filepath = filepath or DEFAULT_TAROT_DATA_PATH
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise CatalogError(f"Tarot data file not found at {filepath}.")
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Error reading tarot data file: {e}")

    try:
        cards = [Card.model_validate(card) for card in data["cards"]]
    except (KeyError, TypeError, PydanticValidationError) as e:
        raise CatalogError(f"Malformed tarot data file {filepath}: {e}")

    catalog = TarotCatalog(cards)
    logger.info(f"Loaded {len(catalog)} tarot cards from {filepath}")
    return catalog
