"""
Tests for the draw engine.
"""

import random

import pytest

from tarot_app.core.exceptions import SelectionExhaustedError
from tarot_app.data.tarot import TarotCatalog
from tarot_app.services.draw_service import DrawEngine


class TestDrawEngine:
    """Drawing without replacement and orientation."""

    def test_draw_whole_deck_without_duplicates(self, catalog, engine):
        drawn = []
        for _ in range(len(catalog)):
            drawn.append(engine.draw_card(drawn).card_id)
        assert len(set(drawn)) == len(catalog)

    def test_exhausted_deck(self, catalog, engine):
        with pytest.raises(SelectionExhaustedError):
            engine.draw_card([card.id for card in catalog])

    def test_small_deck_exhaustion(self, catalog):
        small = TarotCatalog(list(catalog)[:2])
        engine = DrawEngine(small, rng=random.Random(1))
        first = engine.draw_card()
        second = engine.draw_card([first.card_id])
        assert {first.card_id, second.card_id} == {card.id for card in small}
        with pytest.raises(SelectionExhaustedError):
            engine.draw_card([first.card_id, second.card_id])

    def test_reversed_rate(self, catalog):
        engine = DrawEngine(catalog, rng=random.Random(7))
        draws = 5000
        reversed_count = sum(engine.draw_card().is_reversed for _ in range(draws))
        assert 0.26 < reversed_count / draws < 0.34

    def test_never_reversed(self, catalog):
        engine = DrawEngine(catalog, rng=random.Random(3), reversed_probability=0.0)
        assert not any(engine.draw_card().is_reversed for _ in range(200))

    def test_invalid_probability(self, catalog):
        with pytest.raises(ValueError):
            DrawEngine(catalog, reversed_probability=1.5)

    def test_seeded_draws_are_reproducible(self, catalog):
        first = DrawEngine(catalog, rng=random.Random(42)).draw_spread()
        second = DrawEngine(catalog, rng=random.Random(42)).draw_spread()
        assert first == second

    def test_draw_spread(self, engine):
        spread = engine.draw_spread()
        assert len(spread) == 3
        assert len({card.card_id for card in spread}) == 3

    def test_draw_spread_count(self, engine):
        with pytest.raises(ValueError):
            engine.draw_spread(0)
