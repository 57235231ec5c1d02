# tarot_app/models/tarot_models.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from tarot_app.data.categories import ReadingCategory


class CamelModel(BaseModel):
    """Models whose wire/persistence form uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Card catalog ---

class CardInterpretation(BaseModel):
    model_config = ConfigDict(frozen=True)

    general: str
    career: Optional[str] = None
    wealth: Optional[str] = None
    love: Optional[str] = None
    relationships: Optional[str] = None
    health: Optional[str] = None
    avoid_2026: Optional[str] = None
    attract_2026: Optional[str] = None
    advice: Optional[str] = None

    def for_category(self, category: ReadingCategory) -> str:
        """Category-specific text, or the general text when the card has none for it."""
        text = getattr(self, ReadingCategory(category).value, None)
        return text or self.general


class Card(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    localized_name: str
    number: int
    arcana: Literal["Major", "Minor"]
    suit: Optional[Literal["Wands", "Cups", "Swords", "Pentacles"]] = None
    keywords: List[str]
    upright: CardInterpretation
    reversed: CardInterpretation

    def interpretation(self, is_reversed: bool) -> CardInterpretation:
        return self.reversed if is_reversed else self.upright


class DrawnCard(CamelModel):
    card_id: str
    is_reversed: bool = False


# --- AI interpretation ---

class MusicRecommendation(CamelModel):
    title: str
    youtube_search_url: str = ""
    type: Literal["korean", "global"] = "global"

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        value = str(value or "").strip().lower()
        return "korean" if value in ("korean", "kr", "k-pop", "kpop") else "global"


class IndividualCardInterpretation(CamelModel):
    card_id: str = ""
    card_name: str = ""
    interpretation: str


class CombinationInterpretation(CamelModel):
    summary: str
    detailed: str
    music_recommendations: Optional[List[MusicRecommendation]] = None


class AIInterpretation(CamelModel):
    individual_cards: List[IndividualCardInterpretation]
    combination: CombinationInterpretation


# --- Readings ---

class Reading(CamelModel):
    id: str
    category: ReadingCategory
    cards: List[str] = Field(min_length=1, max_length=3)
    card_orientations: List[bool] = Field(default_factory=list)
    user_id: Optional[str] = None
    created_at: datetime
    ai_interpretation: Optional[AIInterpretation] = None
    interpretation_generated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _default_orientations(cls, data: Any) -> Any:
        # Records written by the single-card flow carry no orientations; they were always upright.
        if isinstance(data, dict):
            orientations = data.get("cardOrientations", data.get("card_orientations"))
            if orientations is None and isinstance(data.get("cards"), list):
                data = {**data, "cardOrientations": [False] * len(data["cards"])}
        return data

    @field_validator("created_at", "interpretation_generated_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Timestamps written without an offset (other writers, SQLite) are UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_parallel_lists(self) -> "Reading":
        if len(self.card_orientations) != len(self.cards):
            raise ValueError("cardOrientations must have the same length as cards")
        return self

    @property
    def is_legacy(self) -> bool:
        return len(self.cards) == 1

    @property
    def drawn_cards(self) -> List[DrawnCard]:
        return [
            DrawnCard(card_id=card_id, is_reversed=is_reversed)
            for card_id, is_reversed in zip(self.cards, self.card_orientations)
        ]

    def to_record(self) -> Dict[str, Any]:
        """Flat persistence record with camelCase keys and ISO-8601 timestamps."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Reading":
        return cls.model_validate(record)


# --- API requests / responses ---

class CreateReadingRequest(CamelModel):
    category: str
    cards: List[str]
    card_orientations: Optional[List[bool]] = None
    user_id: Optional[str] = None


class InterpretationRequest(CamelModel):
    # Shapes are checked by InterpretationService.resolve_cards so malformed
    # input gets the interpretation error envelope instead of a 422.
    card_ids: Optional[Any] = None
    category: Optional[Any] = None
    card_orientations: Optional[Any] = None


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class CreateSessionRequest(CamelModel):
    category: str
    user_id: Optional[str] = None


class SelectCardRequest(CamelModel):
    touched_index: Optional[int] = None
