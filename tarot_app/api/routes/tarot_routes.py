# tarot_app/api/routes/tarot_routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from tarot_app.core.dependencies import (
    get_catalog,
    get_draw_engine,
    get_interpretation_service,
    get_reading_store,
)
from tarot_app.core.exceptions import InterpretationError, PersistenceFailure, SelectionExhaustedError
from tarot_app.core.security import get_current_user_id_from_cookie
from tarot_app.data.categories import list_categories
from tarot_app.data.tarot import TarotCatalog
from tarot_app.models.tarot_models import CreateReadingRequest
from tarot_app.services.draw_service import DrawEngine
from tarot_app.services.result_view import build_result_view
from tarot_app.services.storage.base import ReadingStore
from tarot_app.services.tarot_services import InterpretationService
from tarot_app.api.routes.interpretation_routes import interpretation_error_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/categories")
async def get_categories():
    return list_categories()


@router.get("/cards")
async def get_cards(catalog: TarotCatalog = Depends(get_catalog)):
    return [card.model_dump(by_alias=True) for card in catalog.all_cards()]


@router.get("/cards/{card_id}")
async def get_card(card_id: str, catalog: TarotCatalog = Depends(get_catalog)):
    card = catalog.get_card_by_id(card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Card not found")
    return {**card.model_dump(by_alias=True), "imagePath": catalog.image_path(card)}


@router.get("/draw")
async def draw_cards(count: int = Query(3, ge=1, le=3), engine: DrawEngine = Depends(get_draw_engine)):
    """Draw a spread in one call, without a session."""
    try:
        return [card.model_dump(by_alias=True) for card in engine.draw_spread(count)]
    except SelectionExhaustedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/readings", status_code=201)
async def create_reading(
    request: CreateReadingRequest,
    user_id: Optional[str] = Depends(get_current_user_id_from_cookie),
    store: ReadingStore = Depends(get_reading_store),
):
    """Save a completed draw."""
    try:
        reading = await store.create(
            request.category, request.cards, request.card_orientations, user_id or request.user_id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=f"Could not save the reading: {e}")
    except Exception as e:
        logger.exception(f"Error saving reading: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return reading.to_record()


@router.get("/readings")
async def get_reading_history(
    user_id: Optional[str] = Query(None, alias="userId"),
    cookie_user_id: Optional[str] = Depends(get_current_user_id_from_cookie),
    store: ReadingStore = Depends(get_reading_store),
):
    """Fetch reading history, newest first."""
    try:
        readings = await store.list(cookie_user_id or user_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [reading.to_record() for reading in readings]


@router.get("/readings/{reading_id}")
async def get_reading(reading_id: str, store: ReadingStore = Depends(get_reading_store)):
    try:
        reading = await store.get(reading_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not reading:
        raise HTTPException(status_code=404, detail="Reading not found")
    return reading.to_record()


@router.get("/readings/{reading_id}/result")
async def get_reading_result(
    reading_id: str,
    store: ReadingStore = Depends(get_reading_store),
    catalog: TarotCatalog = Depends(get_catalog),
):
    """Reading plus per-card templated and AI text, ready for the result page."""
    try:
        reading = await store.get(reading_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not reading:
        raise HTTPException(status_code=404, detail="Reading not found")
    return build_result_view(reading, catalog)


@router.post("/readings/{reading_id}/interpretation")
async def generate_reading_interpretation(
    reading_id: str,
    store: ReadingStore = Depends(get_reading_store),
    interpreter: InterpretationService = Depends(get_interpretation_service),
):
    """Generate (or regenerate) the AI interpretation of a saved reading and store it."""
    try:
        reading = await store.get(reading_id)
        if not reading:
            raise HTTPException(status_code=404, detail="Reading not found")
        interpretation = await interpreter.generate(
            reading.id, reading.cards, reading.category, reading.card_orientations
        )
        updated = await store.update_interpretation(reading.id, interpretation)
    except InterpretationError as e:
        logger.error(f"Error generating interpretation for reading {reading_id}: {e}")
        return interpretation_error_response(e)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not updated:
        raise HTTPException(status_code=404, detail="Reading not found")
    return updated.to_record()


@router.delete("/readings/{reading_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reading(reading_id: str, store: ReadingStore = Depends(get_reading_store)):
    """Delete a reading. Deleting an unknown id is not an error."""
    try:
        await store.delete(reading_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
