# tarot_app/services/storage/local_storage.py
import json
import logging
import os
import tempfile
from typing import Any, Dict, List, Optional, Sequence

import anyio
from pydantic import ValidationError as PydanticValidationError

from tarot_app.core.exceptions import PersistenceFailure
from tarot_app.data.tarot import TarotCatalog
from tarot_app.models.tarot_models import AIInterpretation, Reading
from tarot_app.services.storage.base import ReadingStore, utc_now

logger = logging.getLogger(__name__)

STORAGE_KEY = "tarot-readings"


class LocalReadingStore(ReadingStore):
    """
    Single-device store: one JSON file holding every reading record under a
    single key, the way the browser front-end keeps them in local storage.

    Each write replaces the whole file through a temporary file, so a reader
    never sees a half-written list. File access runs in a worker thread and
    read-modify-write cycles are serialized by a lock.
    """

    def __init__(self, path: str, catalog: Optional[TarotCatalog] = None):
        super().__init__(catalog)
        self.path = path
        self._lock = anyio.Lock()

    # --- raw record access ---

    def _load_records(self, strict: bool) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            records = data.get(STORAGE_KEY, []) if isinstance(data, dict) else None
            if not isinstance(records, list):
                raise ValueError(f"'{STORAGE_KEY}' is not a list")
            return records
        except (OSError, ValueError) as e:
            if strict:
                raise PersistenceFailure(f"Could not read reading storage at {self.path}: {e}") from e
            logger.error(f"Error reading from local storage {self.path}: {e}")
            return []

    def _write_records(self, records: List[Dict[str, Any]]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".tarot-", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump({STORAGE_KEY: records}, f, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.exception(f"Error saving to local storage {self.path}: {e}")
            raise PersistenceFailure(f"Could not write reading storage at {self.path}: {e}") from e

    def _to_readings(self, records: List[Dict[str, Any]]) -> List[Reading]:
        readings = []
        for record in records:
            try:
                readings.append(Reading.from_record(record))
            except PydanticValidationError as e:
                logger.warning(f"Skipping unreadable reading record {record.get('id')!r}: {e}")
        return readings

    async def _read(self, strict: bool) -> List[Dict[str, Any]]:
        return await anyio.to_thread.run_sync(self._load_records, strict)

    async def _write(self, records: List[Dict[str, Any]]) -> None:
        await anyio.to_thread.run_sync(self._write_records, records)

    def _remove_file(self) -> None:
        try:
            if os.path.exists(self.path):
                os.remove(self.path)
        except OSError as e:
            logger.error(f"Error clearing local storage {self.path}: {e}")

    # --- ReadingStore ---

    async def create(
        self,
        category: str,
        cards: Sequence[str],
        orientations: Optional[Sequence[bool]] = None,
        user_id: Optional[str] = None,
    ) -> Reading:
        reading = self.build_reading(category, cards, orientations, user_id)
        async with self._lock:
            records = await self._read(strict=True)
            records.append(reading.to_record())
            await self._write(records)
        logger.info(f"Saved reading {reading.id} ({reading.category.value}, {len(reading.cards)} cards)")
        return reading

    async def get(self, reading_id: str) -> Optional[Reading]:
        for record in await self._read(strict=False):
            if record.get("id") == reading_id:
                readings = self._to_readings([record])
                return readings[0] if readings else None
        return None

    async def list(self, user_id: Optional[str] = None) -> List[Reading]:
        records = await self._read(strict=False)
        if user_id:
            records = [record for record in records if record.get("userId") == user_id]
        readings = self._to_readings(records)
        readings.sort(key=lambda reading: reading.created_at, reverse=True)
        return readings

    async def update_interpretation(self, reading_id: str, interpretation: AIInterpretation) -> Optional[Reading]:
        async with self._lock:
            records = await self._read(strict=True)
            for index, record in enumerate(records):
                if record.get("id") == reading_id:
                    updated = Reading.from_record(record).model_copy(
                        update={"ai_interpretation": interpretation, "interpretation_generated_at": utc_now()}
                    )
                    records[index] = {**record, **updated.to_record()}
                    await self._write(records)
                    logger.info(f"Stored AI interpretation for reading {reading_id}")
                    return updated

        logger.warning(f"Cannot store interpretation: reading {reading_id} not found")
        return None

    async def delete(self, reading_id: str) -> None:
        async with self._lock:
            records = await self._read(strict=True)
            remaining = [record for record in records if record.get("id") != reading_id]
            if len(remaining) != len(records):
                await self._write(remaining)
                logger.info(f"Deleted reading {reading_id}")

    async def clear(self) -> None:
        async with self._lock:
            await anyio.to_thread.run_sync(self._remove_file)
