"""
Shared fixtures for the tarot reading tests.
"""

import json
import random
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from tarot_app.data.database import create_engine, create_session_factory, create_tables
from tarot_app.data.tarot import load_tarot_data
from tarot_app.services.database.tarot_database_services import DatabaseReadingStore
from tarot_app.services.draw_service import DrawEngine
from tarot_app.services.storage.local_storage import LocalReadingStore
from tarot_app.services.tarot_services import InterpretationService

THREE_CARDS = ["the-fool", "the-magician", "the-high-priestess"]


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def catalog():
    return load_tarot_data()


@pytest.fixture
def engine(catalog):
    return DrawEngine(catalog, rng=random.Random(2026))


@pytest.fixture
def local_store(tmp_path, catalog):
    return LocalReadingStore(str(tmp_path / "tarot-readings.json"), catalog=catalog)


@pytest.fixture
async def database_store(tmp_path, catalog):
    db_engine = create_engine(f"sqlite:///{tmp_path / 'tarot.db'}")
    await create_tables(db_engine)
    store = DatabaseReadingStore(create_session_factory(db_engine), catalog=catalog, engine=db_engine)
    yield store
    await store.close()


@pytest.fixture(params=["local", "database"])
async def reading_store(request, tmp_path, catalog):
    """Both store variants, so the contract tests run against each."""
    if request.param == "local":
        yield LocalReadingStore(str(tmp_path / "tarot-readings.json"), catalog=catalog)
        return
    db_engine = create_engine(f"sqlite:///{tmp_path / 'tarot.db'}")
    await create_tables(db_engine)
    store = DatabaseReadingStore(create_session_factory(db_engine), catalog=catalog, engine=db_engine)
    yield store
    await store.close()


def make_ai_payload(card_ids=THREE_CARDS):
    return {
        "individualCards": [
            {"cardId": card_id, "cardName": card_id, "interpretation": f"**{card_id}** points the way."}
            for card_id in card_ids
        ],
        "combination": {
            "summary": "A bold new cycle begins.",
            "detailed": "Together the cards describe a year of **confident** beginnings.",
            "musicRecommendations": [
                {"title": "IU - Blueming", "type": "korean"},
                {"title": "Coldplay - Yellow", "youtubeSearchUrl": "https://example.test/yellow", "type": "Global"},
            ],
        },
    }


def make_genai_client(text=None, side_effect=None):
    """Stand-in for google.genai.Client exposing only client.aio.models.generate_content."""
    client = MagicMock()
    if side_effect is not None:
        client.aio.models.generate_content = AsyncMock(side_effect=side_effect)
    else:
        client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text=text, candidates=None))
    return client


@pytest.fixture
def ai_response_text():
    return json.dumps(make_ai_payload())


@pytest.fixture
def genai_client(ai_response_text):
    return make_genai_client(ai_response_text)


@pytest.fixture
def interpreter(catalog, genai_client):
    return InterpretationService(catalog, client=genai_client, language="ko")


@pytest.fixture
def client_factory():
    return make_genai_client


@pytest.fixture
def payload_factory():
    return make_ai_payload
