# tarot_app/services/tarot_services.py
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import quote_plus

from pydantic import ValidationError as PydanticValidationError

from tarot_app.core.exceptions import InvalidCategoryError, InvalidRequestError, MissingCredentialsError
from tarot_app.data.categories import ReadingCategory, category_title, get_category
from tarot_app.data.tarot import TarotCatalog
from tarot_app.models.tarot_models import (
    AIInterpretation,
    Card,
    CombinationInterpretation,
    IndividualCardInterpretation,
    MusicRecommendation,
)
from tarot_app.services.llm.llm_utils import DEFAULT_MODEL, GENERATION_TIMEOUT_SECONDS, query_genai_api

logger = logging.getLogger(__name__)

CARDS_PER_INTERPRETATION = 3
SUMMARY_PREFIX_LENGTH = 200
YOUTUBE_SEARCH_URL = "https://www.youtube.com/results?search_query="

language_prompts = {
    "ko": {
        "intro": "다음 3장의 타로 카드에 대해 {category} 관점에서 해석해주세요:",
        "card_label": "카드",
        "keywords_label": "키워드",
        "base_label": "기본 해석",
        "reversed_tag": " [역방향]",
        "instructions": (
            "위 3장의 카드를 {category} 관점에서 해석해주세요. 각 카드의 개별 의미와 3장이 함께 나타낼 때의 "
            "조합된 의미를 제공해주세요. [역방향]으로 표시된 카드는 역위(Reversed) 의미로 해석하고, "
            "표시되지 않은 카드는 정위(Upright) 의미로 해석해주세요."
        ),
        "default_summary": "3장의 카드가 함께 나타내는 의미",
        "default_detailed": "AI 해석을 생성했습니다.",
        "system_instruction": (
            "You are an expert tarot card reader specializing in interpreting tarot cards for the year 2026. "
            "Consider the traditional meanings of each card, relate them to 2026 and new beginnings, and give "
            "practical, actionable insight. For combinations, explain how the cards interact. Be positive but "
            "realistic. Write in Korean. Use plain text only: no markdown such as **bold**, *italic* or # headers."
        ),
    },
    "en": {
        "intro": "Interpret the following 3 tarot cards from the perspective of {category}:",
        "card_label": "Card",
        "keywords_label": "Keywords",
        "base_label": "Base meaning",
        "reversed_tag": " [Reversed]",
        "instructions": (
            "Interpret the 3 cards above from the perspective of {category}. Give the meaning of each card and "
            "the combined meaning of the three together. Cards tagged [Reversed] take their reversed meaning; "
            "untagged cards are upright."
        ),
        "default_summary": "What the three cards say together",
        "default_detailed": "The AI interpretation was generated.",
        "system_instruction": (
            "You are an expert tarot card reader specializing in interpreting tarot cards for the year 2026. "
            "Consider the traditional meanings of each card, relate them to 2026 and new beginnings, and give "
            "practical, actionable insight. For combinations, explain how the cards interact. Be positive but "
            "realistic. Write in English. Use plain text only: no markdown such as **bold**, *italic* or # headers."
        ),
    },
}

RESPONSE_FORMAT = """Respond with JSON only, using exactly this structure (plain text inside every string, no markdown):
{
  "individualCards": [
    {"cardId": "card-id", "cardName": "Card Name", "interpretation": "Interpretation of this card"}
  ],
  "combination": {
    "summary": "Overall meaning of the three cards together",
    "detailed": "Detailed explanation of how the three cards work together in 2026",
    "musicRecommendations": [
      {"title": "Artist - Song Title", "youtubeSearchUrl": "https://www.youtube.com/results?search_query=Artist+Song+Title", "type": "korean"},
      {"title": "Artist - Song Title", "youtubeSearchUrl": "https://www.youtube.com/results?search_query=Artist+Song+Title", "type": "global"}
    ]
  }
}
Recommend exactly 2 songs that match the energy of the combination: 1 Korean song (type "korean") and 1 international song (type "global")."""


@dataclass(frozen=True)
class ResolvedCard:
    card: Card
    is_reversed: bool
    base_interpretation: str


# Outcome of one interpretation attempt.

@dataclass(frozen=True)
class Parsed:
    interpretation: AIInterpretation
    extracted: bool = False


@dataclass(frozen=True)
class Fallback:
    interpretation: AIInterpretation
    reason: str


@dataclass(frozen=True)
class Failed:
    kind: str
    message: str


InterpretationResult = Union[Parsed, Fallback, Failed]


# --- text helpers ---

_MARKDOWN_PATTERNS = [
    (re.compile(r"\*\*(.+?)\*\*", re.S), r"\1"),
    (re.compile(r"__(.+?)__", re.S), r"\1"),
    (re.compile(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])"), r"\1"),
    (re.compile(r"^\s{0,3}#{1,6}\s+", re.M), ""),
    (re.compile(r"`"), ""),
]


def strip_markdown(text: str) -> str:
    for pattern, replacement in _MARKDOWN_PATTERNS:
        text = pattern.sub(replacement, text)
    return text.strip()


def youtube_search_url(title: str) -> str:
    query = " ".join(part.strip() for part in title.split(" - ") if part.strip())
    return YOUTUBE_SEARCH_URL + quote_plus(query)


def _extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """First brace-delimited JSON object embedded in `text`, if any decodes."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
            if isinstance(value, dict):
                return value
        except json.JSONDecodeError:
            pass
        start = text.find("{", start + 1)
    return None


# --- parsing ---

def _normalize(raw: AIInterpretation, cards: Sequence[ResolvedCard]) -> AIInterpretation:
    """
    Line the model's per-card answers up with the drawn cards.

    The result always has one entry per drawn card, in draw order. Entries are
    matched by cardId first, then by position for entries without a known
    cardId; cards the model skipped get their base interpretation.
    """
    by_id = {entry.card_id: entry for entry in raw.individual_cards}
    drawn_ids = {resolved.card.id for resolved in cards}
    individual = []
    for index, resolved in enumerate(cards):
        entry = by_id.get(resolved.card.id)
        if entry is None and index < len(raw.individual_cards):
            positional = raw.individual_cards[index]
            entry = positional if positional.card_id not in drawn_ids else None
        text = strip_markdown(entry.interpretation) if entry and entry.interpretation.strip() else ""
        individual.append(
            IndividualCardInterpretation(
                card_id=resolved.card.id,
                card_name=resolved.card.localized_name,
                interpretation=text or resolved.base_interpretation,
            )
        )

    music = None
    if raw.combination.music_recommendations:
        music = [
            MusicRecommendation(
                title=strip_markdown(item.title),
                youtube_search_url=item.youtube_search_url or youtube_search_url(item.title),
                type=item.type,
            )
            for item in raw.combination.music_recommendations
            if item.title.strip()
        ] or None

    return AIInterpretation(
        individual_cards=individual,
        combination=CombinationInterpretation(
            summary=strip_markdown(raw.combination.summary),
            detailed=strip_markdown(raw.combination.detailed),
            music_recommendations=music,
        ),
    )


def build_fallback_interpretation(
    text: str, cards: Sequence[ResolvedCard], language: str = "ko"
) -> AIInterpretation:
    """Minimal interpretation from raw model text plus each card's base meaning."""
    prompt_data = language_prompts.get(language, language_prompts["ko"])
    text = (text or "").strip()
    return AIInterpretation(
        individual_cards=[
            IndividualCardInterpretation(
                card_id=resolved.card.id,
                card_name=resolved.card.localized_name,
                interpretation=resolved.base_interpretation,
            )
            for resolved in cards
        ],
        combination=CombinationInterpretation(
            summary=text[:SUMMARY_PREFIX_LENGTH] or prompt_data["default_summary"],
            detailed=text or prompt_data["default_detailed"],
        ),
    )


def parse_interpretation_response(
    text: str, cards: Sequence[ResolvedCard], language: str = "ko"
) -> Union[Parsed, Fallback]:
    """
    Turn the model's answer into an AIInterpretation. Never raises.

    Tries a direct JSON decode, then the first JSON object embedded in the
    text, and finally wraps the raw text in a fallback interpretation.
    """
    logger.debug(f"Parsing response, first 200 chars: {text[:200]!r}")

    candidates = []
    try:
        candidates.append((json.loads(text), False))
    except (json.JSONDecodeError, TypeError):
        extracted = _extract_json_object(text or "")
        if extracted is not None:
            candidates.append((extracted, True))

    for data, extracted in candidates:
        try:
            raw = AIInterpretation.model_validate(data)
        except PydanticValidationError as e:
            logger.error(f"AI response JSON has an unexpected shape: {e}")
            continue
        interpretation = _normalize(raw, cards)
        if interpretation.combination.detailed:
            logger.info(f"Successfully parsed {'extracted ' if extracted else ''}JSON response")
            return Parsed(interpretation=interpretation, extracted=extracted)

    reason = "no JSON object found" if not candidates else "JSON did not match the interpretation shape"
    logger.info(f"Using text as detailed interpretation: {reason}")
    return Fallback(interpretation=build_fallback_interpretation(text, cards, language), reason=reason)


# --- service ---

def build_prompt(category: ReadingCategory, cards: Sequence[ResolvedCard], language: str = "ko") -> str:
    prompt_data = language_prompts.get(language, language_prompts["ko"])
    title = category_title(category, language)

    prompt = prompt_data["intro"].format(category=title) + "\n\n"
    for index, resolved in enumerate(cards, start=1):
        card = resolved.card
        tag = prompt_data["reversed_tag"] if resolved.is_reversed else ""
        prompt += (
            f"{prompt_data['card_label']} {index}: {card.localized_name} ({card.name}){tag}\n"
            f"cardId: {card.id}\n"
            f"{prompt_data['keywords_label']}: {', '.join(card.keywords)}\n"
            f"{prompt_data['base_label']}: {resolved.base_interpretation}\n\n"
        )
    prompt += prompt_data["instructions"].format(category=title)
    prompt += "\n\n" + RESPONSE_FORMAT
    return prompt


class InterpretationService:
    """Builds the prompt for a 3-card reading, calls Gemini and parses the answer."""

    def __init__(
        self,
        catalog: TarotCatalog,
        client=None,
        model: str = DEFAULT_MODEL,
        timeout: float = GENERATION_TIMEOUT_SECONDS,
        language: str = "ko",
    ):
        self.catalog = catalog
        self.client = client
        self.model = model
        self.timeout = timeout
        self.language = language if language in language_prompts else "ko"

    @property
    def configured(self) -> bool:
        return self.client is not None

    def resolve_cards(
        self, card_ids: Sequence[str], category, orientations: Optional[Sequence[bool]] = None
    ) -> List[ResolvedCard]:
        """Validate the request and attach each card's base text for its orientation and category."""
        if not isinstance(card_ids, (list, tuple)) or len(card_ids) != CARDS_PER_INTERPRETATION:
            raise InvalidRequestError(f"Exactly {CARDS_PER_INTERPRETATION} cards are required.")
        if not all(isinstance(card_id, str) for card_id in card_ids):
            raise InvalidRequestError("Card ids must be strings.")
        if orientations is not None and not isinstance(orientations, (list, tuple)):
            raise InvalidRequestError("cardOrientations must be a list.")
        if len(set(card_ids)) != len(card_ids):
            raise InvalidRequestError("The same card cannot appear twice in a reading.")
        try:
            category = get_category(category)
        except InvalidCategoryError:
            raise InvalidRequestError(f"Invalid category: {category}")

        resolved = []
        for index, card_id in enumerate(card_ids):
            card = self.catalog.get_card_by_id(card_id)
            if card is None:
                raise InvalidRequestError(f"Invalid card id: {card_id}")
            is_reversed = bool(orientations[index]) if orientations and index < len(orientations) else False
            resolved.append(
                ResolvedCard(
                    card=card,
                    is_reversed=is_reversed,
                    base_interpretation=card.interpretation(is_reversed).for_category(category),
                )
            )
        return resolved

    async def interpret(
        self, card_ids: Sequence[str], category, orientations: Optional[Sequence[bool]] = None
    ) -> Union[Parsed, Fallback]:
        if not self.configured:
            raise MissingCredentialsError("AI service is not configured. Check GOOGLE_GENERATIVE_AI_API_KEY.")

        cards = self.resolve_cards(card_ids, category, orientations)
        prompt = build_prompt(get_category(category), cards, self.language)
        text = await query_genai_api(
            self.client,
            prompt,
            model=self.model,
            system_instruction=language_prompts[self.language]["system_instruction"],
            timeout=self.timeout,
        )
        return parse_interpretation_response(text, cards, self.language)

    async def generate(
        self,
        reading_id: Optional[str],
        card_ids: Sequence[str],
        category,
        orientations: Optional[Sequence[bool]] = None,
    ) -> AIInterpretation:
        """
        Generate the AI interpretation for a reading.

        Raises MissingCredentialsError, InvalidRequestError,
        GenerationTimeoutError or UpstreamError; once the model has answered
        it always returns a structurally valid interpretation. Storing the
        result is up to the caller.
        """
        result = await self.interpret(card_ids, category, orientations)
        if isinstance(result, Fallback):
            logger.warning(f"Reading {reading_id}: AI response could not be parsed ({result.reason}), using fallback")
        return result.interpretation
