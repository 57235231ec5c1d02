# tarot_app/core/dependencies.py
from fastapi import Request

from tarot_app.data.tarot import TarotCatalog
from tarot_app.services.draw_service import DrawEngine
from tarot_app.services.reading_session import SessionRegistry
from tarot_app.services.storage.base import ReadingStore
from tarot_app.services.tarot_services import InterpretationService


def get_catalog(request: Request) -> TarotCatalog:
    return request.app.state.catalog


def get_reading_store(request: Request) -> ReadingStore:
    return request.app.state.reading_store


def get_interpretation_service(request: Request) -> InterpretationService:
    return request.app.state.interpreter


def get_draw_engine(request: Request) -> DrawEngine:
    return request.app.state.draw_engine


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions
