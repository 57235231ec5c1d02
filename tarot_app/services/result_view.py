# tarot_app/services/result_view.py
import logging
from typing import Any, Dict, List, Optional

from tarot_app.data.categories import CATEGORY_CONFIG
from tarot_app.data.tarot import TarotCatalog
from tarot_app.models.tarot_models import Reading

logger = logging.getLogger(__name__)


def build_result_view(reading: Reading, catalog: TarotCatalog) -> Dict[str, Any]:
    """
    Everything the result page needs for one reading.

    Each card carries its templated text for the reading's category and
    orientation; `aiInterpretation` is added when the stored interpretation
    covers that card. Readings without an AI interpretation (timeouts, old
    single-card readings) therefore still render in full.
    """
    ai_texts: Dict[str, str] = {}
    if reading.ai_interpretation:
        ai_texts = {entry.card_id: entry.interpretation for entry in reading.ai_interpretation.individual_cards}

    cards: List[Dict[str, Any]] = []
    for position, drawn in enumerate(reading.drawn_cards, start=1):
        card = catalog.get_card_by_id(drawn.card_id)
        if card is None:
            logger.warning(f"Reading {reading.id} references unknown card {drawn.card_id}")
            continue
        interpretation = card.interpretation(drawn.is_reversed)
        cards.append(
            {
                "position": position,
                "cardId": card.id,
                "name": card.name,
                "localizedName": card.localized_name,
                "arcana": card.arcana,
                "suit": card.suit,
                "keywords": card.keywords,
                "isReversed": drawn.is_reversed,
                "imagePath": catalog.image_path(card),
                "interpretation": interpretation.for_category(reading.category),
                "advice": interpretation.advice,
                "aiInterpretation": ai_texts.get(card.id),
            }
        )

    combination: Optional[Dict[str, Any]] = None
    if reading.ai_interpretation:
        combination = reading.ai_interpretation.combination.model_dump(mode="json", by_alias=True, exclude_none=True)

    config = CATEGORY_CONFIG[reading.category]
    return {
        "id": reading.id,
        "category": {"id": reading.category.value, **config},
        "createdAt": reading.created_at.isoformat(),
        "isLegacy": reading.is_legacy,
        "cards": cards,
        "combination": combination,
        "interpretationGeneratedAt": (
            reading.interpretation_generated_at.isoformat() if reading.interpretation_generated_at else None
        ),
    }
