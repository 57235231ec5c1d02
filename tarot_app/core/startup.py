# tarot_app/core/startup.py
import logging
import random

from fastapi import FastAPI

from tarot_app.config import Settings
from tarot_app.data.database import create_engine, create_session_factory, create_tables
from tarot_app.data.tarot import TarotCatalog, load_tarot_data
from tarot_app.services.database.tarot_database_services import DatabaseReadingStore
from tarot_app.services.draw_service import DrawEngine
from tarot_app.services.llm.llm_utils import create_genai_client
from tarot_app.services.reading_session import SessionRegistry
from tarot_app.services.storage.base import ReadingStore
from tarot_app.services.storage.local_storage import LocalReadingStore
from tarot_app.services.tarot_services import InterpretationService

logger = logging.getLogger(__name__)


async def build_reading_store(settings: Settings, catalog: TarotCatalog) -> ReadingStore:
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "local":
        logger.info(f"Using local reading storage at {settings.LOCAL_STORAGE_PATH}")
        return LocalReadingStore(settings.LOCAL_STORAGE_PATH, catalog=catalog)
    if backend == "database":
        if not settings.DATABASE_URL:
            raise RuntimeError("DATABASE_URL must be set when STORAGE_BACKEND is 'database'.")
        engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        if engine.dialect.name == "sqlite":
            await create_tables(engine)
        logger.info("Using database reading storage")
        return DatabaseReadingStore(create_session_factory(engine), catalog=catalog, engine=engine)
    raise RuntimeError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")


async def startup_event(app: FastAPI, settings: Settings) -> None:
    """
    Build the application's long-lived objects and hang them on app.state.
    """
    try:
        catalog = load_tarot_data()
        logger.info("Tarot data loaded successfully.")

        store = await build_reading_store(settings, catalog)
        interpreter = InterpretationService(
            catalog,
            client=create_genai_client(settings.GOOGLE_GENERATIVE_AI_API_KEY),
            model=settings.GEMINI_MODEL,
            timeout=settings.GENERATION_TIMEOUT_SECONDS,
            language=settings.INTERPRETATION_LANGUAGE,
        )
        engine = DrawEngine(catalog, rng=random.Random(), reversed_probability=settings.REVERSED_PROBABILITY)
        sessions = SessionRegistry(
            engine,
            store,
            interpreter,
            shuffle_delay=settings.SHUFFLE_DELAY_SECONDS,
            min_interpretation_wait=settings.MIN_INTERPRETATION_WAIT_SECONDS,
            interpretation_timeout=settings.INTERPRETATION_TIMEOUT_SECONDS,
        )
    except Exception as e:
        logger.exception(f"Failed to startup: {e}")
        raise

    app.state.settings = settings
    app.state.catalog = catalog
    app.state.reading_store = store
    app.state.interpreter = interpreter
    app.state.draw_engine = engine
    app.state.sessions = sessions


async def shutdown_event(app: FastAPI) -> None:
    store = getattr(app.state, "reading_store", None)
    if store is not None:
        await store.close()
