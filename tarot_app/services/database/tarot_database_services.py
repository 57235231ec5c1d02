# tarot_app/services/database/tarot_database_services.py
import logging
from typing import List, Optional, Sequence

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from tarot_app.core.exceptions import PersistenceFailure
from tarot_app.data.tarot import TarotCatalog
from tarot_app.models.database_models.tarot_reading_history import TarotReadingHistory
from tarot_app.models.tarot_models import AIInterpretation, Reading
from tarot_app.services.storage.base import ReadingStore, utc_now

logger = logging.getLogger(__name__)


def row_to_reading(row: TarotReadingHistory) -> Reading:
    return Reading(
        id=row.id,
        category=row.category,
        cards=list(row.cards),
        card_orientations=list(row.card_orientations) if row.card_orientations is not None else [False] * len(row.cards),
        user_id=row.user_id,
        created_at=row.created_at,
        ai_interpretation=row.ai_interpretation,
        interpretation_generated_at=row.interpretation_generated_at,
    )


class DatabaseReadingStore(ReadingStore):
    """Multi-user reading store backed by the tarot_readings table."""

    def __init__(self, session_factory: async_sessionmaker, catalog: Optional[TarotCatalog] = None, engine=None):
        super().__init__(catalog)
        self.session_factory = session_factory
        self.engine = engine

    async def create(
        self,
        category: str,
        cards: Sequence[str],
        orientations: Optional[Sequence[bool]] = None,
        user_id: Optional[str] = None,
    ) -> Reading:
        reading = self.build_reading(category, cards, orientations, user_id)
        row = TarotReadingHistory(
            id=reading.id,
            user_id=reading.user_id,
            category=reading.category.value,
            cards=reading.cards,
            card_orientations=reading.card_orientations,
            created_at=reading.created_at,
        )
        async with self.session_factory() as db:
            try:
                db.add(row)
                await db.commit()
            except (SQLAlchemyError, OSError) as e:
                await db.rollback()
                logger.exception(f"Error during database operation: {e}")
                raise PersistenceFailure(f"Could not save reading: {e}") from e
        logger.info(f"Saved reading {reading.id} ({reading.category.value}, {len(reading.cards)} cards)")
        return reading

    async def get(self, reading_id: str) -> Optional[Reading]:
        async with self.session_factory() as db:
            try:
                result = await db.execute(select(TarotReadingHistory).where(TarotReadingHistory.id == reading_id))
                row = result.scalars().first()
            except (SQLAlchemyError, OSError) as e:
                logger.exception(f"Error fetching reading {reading_id}: {e}")
                raise PersistenceFailure(f"Could not fetch reading: {e}") from e
        return row_to_reading(row) if row else None

    async def list(self, user_id: Optional[str] = None) -> List[Reading]:
        query = select(TarotReadingHistory)
        if user_id:
            query = query.where(TarotReadingHistory.user_id == user_id)
        query = query.order_by(desc(TarotReadingHistory.created_at))

        async with self.session_factory() as db:
            try:
                result = await db.execute(query)
                rows = result.scalars().all()
            except (SQLAlchemyError, OSError) as e:
                logger.exception(f"Error fetching reading history: {e}")
                raise PersistenceFailure(f"Could not fetch reading history: {e}") from e
        return [row_to_reading(row) for row in rows]

    async def update_interpretation(self, reading_id: str, interpretation: AIInterpretation) -> Optional[Reading]:
        async with self.session_factory() as db:
            try:
                result = await db.execute(select(TarotReadingHistory).where(TarotReadingHistory.id == reading_id))
                row = result.scalars().first()
                if not row:
                    logger.warning(f"Cannot store interpretation: reading {reading_id} not found")
                    return None
                row.ai_interpretation = interpretation.model_dump(mode="json", by_alias=True, exclude_none=True)
                row.interpretation_generated_at = utc_now()
                await db.commit()
                await db.refresh(row)
            except (SQLAlchemyError, OSError) as e:
                await db.rollback()
                logger.exception(f"Error storing interpretation for reading {reading_id}: {e}")
                raise PersistenceFailure(f"Could not store interpretation: {e}") from e
            logger.info(f"Stored AI interpretation for reading {reading_id}")
            return row_to_reading(row)

    async def delete(self, reading_id: str) -> None:
        async with self.session_factory() as db:
            try:
                await db.execute(delete(TarotReadingHistory).where(TarotReadingHistory.id == reading_id))
                await db.commit()
            except (SQLAlchemyError, OSError) as e:
                await db.rollback()
                logger.exception(f"Error deleting reading {reading_id}: {e}")
                raise PersistenceFailure(f"Could not delete reading: {e}") from e

    async def clear(self) -> None:
        async with self.session_factory() as db:
            try:
                await db.execute(delete(TarotReadingHistory))
                await db.commit()
            except (SQLAlchemyError, OSError) as e:
                await db.rollback()
                raise PersistenceFailure(f"Could not clear readings: {e}") from e

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
