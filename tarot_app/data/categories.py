# tarot_app/data/categories.py
from enum import Enum
from typing import Dict, List

from tarot_app.core.exceptions import InvalidCategoryError


class ReadingCategory(str, Enum):
    GENERAL = "general"
    CAREER = "career"
    WEALTH = "wealth"
    LOVE = "love"
    RELATIONSHIPS = "relationships"
    HEALTH = "health"
    AVOID_2026 = "avoid_2026"
    ATTRACT_2026 = "attract_2026"


# Titles are what the prompt and the result page show; colours and icons are opaque to the backend.
CATEGORY_CONFIG: Dict[ReadingCategory, Dict[str, str]] = {
    ReadingCategory.GENERAL: {
        "title": "일반 운세",
        "title_en": "General Fortune",
        "description": "2026년 전반적인 운세",
        "color": "purple",
        "emoji": "✨",
    },
    ReadingCategory.CAREER: {
        "title": "커리어",
        "title_en": "Career",
        "description": "직장과 경력 발전",
        "color": "blue",
        "emoji": "🚀",
    },
    ReadingCategory.WEALTH: {
        "title": "재물",
        "title_en": "Wealth",
        "description": "금전운과 재정 상태",
        "color": "green",
        "emoji": "💎",
    },
    ReadingCategory.LOVE: {
        "title": "연애",
        "title_en": "Love",
        "description": "사랑과 로맨스",
        "color": "pink",
        "emoji": "💕",
    },
    ReadingCategory.RELATIONSHIPS: {
        "title": "인간관계",
        "title_en": "Relationships",
        "description": "가족, 친구, 동료 관계",
        "color": "orange",
        "emoji": "👥",
    },
    ReadingCategory.HEALTH: {
        "title": "건강",
        "title_en": "Health",
        "description": "신체적, 정신적 건강",
        "color": "teal",
        "emoji": "💪",
    },
    ReadingCategory.AVOID_2026: {
        "title": "2026년 피해야 할 것",
        "title_en": "What to Avoid in 2026",
        "description": "조심하고 멀리해야 할 것",
        "color": "red",
        "emoji": "🚫",
    },
    ReadingCategory.ATTRACT_2026: {
        "title": "2026년 끌어와야 할 것",
        "title_en": "What to Attract in 2026",
        "description": "가까이하고 키워야 할 것",
        "color": "yellow",
        "emoji": "🌟",
    },
}


def get_category(slug) -> ReadingCategory:
    """Resolve a category id, raising InvalidCategoryError for anything outside the enumeration."""
    if isinstance(slug, ReadingCategory):
        return slug
    try:
        return ReadingCategory(slug)
    except (ValueError, TypeError):
        raise InvalidCategoryError(slug)


def category_title(category: ReadingCategory, language: str = "ko") -> str:
    config = CATEGORY_CONFIG[category]
    return config["title"] if language == "ko" else config["title_en"]


def list_categories() -> List[Dict[str, str]]:
    return [{"id": category.value, **config} for category, config in CATEGORY_CONFIG.items()]
