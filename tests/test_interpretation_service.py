"""
Tests for prompt building, response parsing and the interpretation service.
"""

import asyncio
import json

import pytest

from tarot_app.core.exceptions import (
    GenerationTimeoutError,
    InvalidRequestError,
    MissingCredentialsError,
    UpstreamError,
)
from tarot_app.data.categories import ReadingCategory
from tarot_app.services.llm.llm_utils import create_genai_client, extract_text
from tarot_app.services.tarot_services import (
    Fallback,
    InterpretationService,
    Parsed,
    build_prompt,
    parse_interpretation_response,
    strip_markdown,
    youtube_search_url,
)

THREE_CARDS = ["the-fool", "the-magician", "the-high-priestess"]


@pytest.fixture
def resolved(catalog):
    service = InterpretationService(catalog)
    return service.resolve_cards(THREE_CARDS, "love", [False, True, False])


class TestTextHelpers:
    """Markdown stripping and music links."""

    def test_strip_markdown(self):
        assert strip_markdown("**Bold** and *italic* and __under__") == "Bold and italic and under"
        assert strip_markdown("## Heading\ntext") == "Heading\ntext"

    def test_strip_markdown_keeps_plain_asterisks(self):
        assert strip_markdown("5 * 3 = 15") == "5 * 3 = 15"

    def test_youtube_search_url(self):
        assert youtube_search_url("IU - Blueming") == "https://www.youtube.com/results?search_query=IU+Blueming"


class TestResolveCards:
    """Request validation before anything is sent to the model."""

    def test_base_text_follows_orientation_and_category(self, catalog, resolved):
        magician = catalog.get_card_by_id("the-magician")
        assert resolved[1].is_reversed
        assert resolved[1].base_interpretation == magician.reversed.for_category(ReadingCategory.LOVE)
        assert not resolved[0].is_reversed

    def test_orientations_default_to_upright(self, catalog):
        cards = InterpretationService(catalog).resolve_cards(THREE_CARDS, "general")
        assert [card.is_reversed for card in cards] == [False, False, False]

    @pytest.mark.parametrize(
        "card_ids,category",
        [
            (["the-fool", "the-magician"], "love"),
            (THREE_CARDS + ["the-sun"], "love"),
            (["the-fool", "the-fool", "the-sun"], "love"),
            (["the-fool", "the-joker", "the-sun"], "love"),
            (THREE_CARDS, "lottery"),
            (THREE_CARDS, ""),
            ([1, 2, 3], "love"),
            ("the-fool", "love"),
            (THREE_CARDS, None),
        ],
    )
    def test_invalid_requests(self, catalog, card_ids, category):
        with pytest.raises(InvalidRequestError):
            InterpretationService(catalog).resolve_cards(card_ids, category)


class TestPrompt:
    """The prompt sent to the model."""

    def test_prompt_lists_cards_and_marks_reversed(self, resolved):
        prompt = build_prompt(ReadingCategory.LOVE, resolved, "ko")
        assert "연애" in prompt
        assert "카드 1: 바보 (The Fool)\n" in prompt
        assert "[역방향]" in prompt.split("카드 2:")[1].split("\n")[0]
        assert "cardId: the-high-priestess" in prompt
        assert '"musicRecommendations"' in prompt

    def test_english_prompt(self, resolved):
        prompt = build_prompt(ReadingCategory.LOVE, resolved, "en")
        assert "Love" in prompt
        assert "[Reversed]" in prompt


class TestParseResponse:
    """Parsing always ends in a usable interpretation."""

    def test_direct_json(self, resolved, payload_factory):
        result = parse_interpretation_response(json.dumps(payload_factory()), resolved)
        assert isinstance(result, Parsed)
        assert not result.extracted

        interpretation = result.interpretation
        assert [entry.card_id for entry in interpretation.individual_cards] == THREE_CARDS
        assert interpretation.individual_cards[0].card_name == "바보"
        assert interpretation.individual_cards[0].interpretation == "the-fool points the way."
        assert "**" not in interpretation.combination.detailed

        music = interpretation.combination.music_recommendations
        assert [item.type for item in music] == ["korean", "global"]
        assert music[0].youtube_search_url == youtube_search_url("IU - Blueming")
        assert music[1].youtube_search_url == "https://example.test/yellow"

    def test_json_embedded_in_prose(self, resolved, payload_factory):
        text = "Here is your reading:\n```json\n" + json.dumps(payload_factory()) + "\n```\nEnjoy!"
        result = parse_interpretation_response(text, resolved)
        assert isinstance(result, Parsed)
        assert result.extracted

    def test_plain_text_falls_back(self, resolved):
        text = "The Fool, the Magician and the High Priestess speak of a brave start. " * 10
        result = parse_interpretation_response(text, resolved)
        assert isinstance(result, Fallback)

        interpretation = result.interpretation
        assert len(interpretation.individual_cards) == 3
        assert interpretation.individual_cards[1].interpretation == resolved[1].base_interpretation
        assert interpretation.combination.detailed == text.strip()
        assert interpretation.combination.summary == text.strip()[:200]

    def test_wrong_shape_falls_back(self, resolved):
        result = parse_interpretation_response(json.dumps({"answer": "yes"}), resolved)
        assert isinstance(result, Fallback)
        assert result.interpretation.combination.detailed

    def test_missing_cards_are_filled_in_order(self, resolved):
        payload = {
            "individualCards": [{"cardId": "the-high-priestess", "interpretation": "Listen inward."}],
            "combination": {"summary": "s", "detailed": "d"},
        }
        result = parse_interpretation_response(json.dumps(payload), resolved)
        cards = result.interpretation.individual_cards
        assert [entry.card_id for entry in cards] == THREE_CARDS
        assert cards[2].interpretation == "Listen inward."
        assert cards[0].interpretation == resolved[0].base_interpretation
        assert cards[1].interpretation == resolved[1].base_interpretation
        assert result.interpretation.combination.music_recommendations is None

    def test_entries_without_ids_match_by_position(self, resolved):
        payload = {
            "individualCards": [{"interpretation": f"Card {n}"} for n in range(1, 4)],
            "combination": {"summary": "s", "detailed": "d"},
        }
        result = parse_interpretation_response(json.dumps(payload), resolved)
        assert [entry.interpretation for entry in result.interpretation.individual_cards] == ["Card 1", "Card 2", "Card 3"]

    def test_empty_text(self, resolved):
        result = parse_interpretation_response("", resolved)
        assert isinstance(result, Fallback)
        assert result.interpretation.combination.detailed


class TestExtractText:
    """Reading text out of SDK responses."""

    def test_candidates_are_joined(self):
        class Part:
            def __init__(self, text):
                self.text = text

        class Content:
            parts = [Part("hello"), Part("world")]

        class Candidate:
            content = Content()

        class Response:
            text = None
            candidates = [Candidate()]

        assert extract_text(Response()) == "hello\nworld"

    def test_no_key_means_no_client(self):
        assert create_genai_client(None) is None


@pytest.mark.anyio
class TestInterpretationService:
    """End-to-end generation against a stubbed Gemini client."""

    async def test_generate(self, interpreter, genai_client):
        interpretation = await interpreter.generate("r1", THREE_CARDS, "love", [False, True, False])
        assert len(interpretation.individual_cards) == 3

        call = genai_client.aio.models.generate_content.await_args
        assert call.kwargs["model"] == interpreter.model
        assert "[역방향]" in call.kwargs["contents"]
        assert call.kwargs["config"].response_mime_type == "application/json"

    async def test_missing_credentials(self, catalog):
        service = InterpretationService(catalog, client=None)
        assert not service.configured
        with pytest.raises(MissingCredentialsError):
            await service.generate(None, THREE_CARDS, "love")

    async def test_missing_credentials_checked_first(self, catalog):
        with pytest.raises(MissingCredentialsError):
            await InterpretationService(catalog).generate(None, [], "")

    async def test_invalid_request_makes_no_call(self, interpreter, genai_client):
        with pytest.raises(InvalidRequestError):
            await interpreter.generate(None, ["the-fool"], "love")
        genai_client.aio.models.generate_content.assert_not_awaited()

    async def test_timeout(self, catalog, client_factory):
        async def never_answers(**kwargs):
            await asyncio.sleep(10)

        service = InterpretationService(catalog, client=client_factory(side_effect=never_answers), timeout=0.05)
        with pytest.raises(GenerationTimeoutError):
            await service.generate(None, THREE_CARDS, "love")

    async def test_empty_answer(self, catalog, client_factory):
        service = InterpretationService(catalog, client=client_factory(text=""))
        with pytest.raises(UpstreamError):
            await service.generate(None, THREE_CARDS, "love")

    async def test_unparseable_answer_still_returns(self, catalog, client_factory):
        service = InterpretationService(catalog, client=client_factory(text="Just vibes."))
        interpretation = await service.generate(None, THREE_CARDS, "career")
        assert interpretation.combination.detailed == "Just vibes."
        assert len(interpretation.individual_cards) == 3

    async def test_error_status_codes(self):
        assert MissingCredentialsError.status_code == 500
        assert InvalidRequestError.status_code == 400
        assert UpstreamError.status_code == 502
        assert GenerationTimeoutError.status_code == 504
