# tarot_app/services/reading_session.py
import asyncio
import logging
import time
import uuid
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from tarot_app.core.exceptions import InterpretationError, PersistenceFailure
from tarot_app.data.categories import get_category
from tarot_app.models.tarot_models import AIInterpretation, DrawnCard
from tarot_app.services.draw_service import CARDS_PER_READING, DrawEngine
from tarot_app.services.storage.base import ReadingStore
from tarot_app.services.tarot_services import Failed, InterpretationService

logger = logging.getLogger(__name__)

SHUFFLE_DELAY_SECONDS = 2.0
MIN_INTERPRETATION_WAIT_SECONDS = 5.0
INTERPRETATION_TIMEOUT_SECONDS = 35.0
SESSION_EXPIRY_TIME = timedelta(hours=1)


class SessionState(str, Enum):
    SHUFFLING = "shuffling"
    SELECTING = "selecting"
    FINALIZING = "finalizing"
    INTERPRETING = "interpreting"
    DONE = "done"
    ERROR = "error"


class ReadingSession:
    """
    Controller for one draw: shuffle, pick three cards, save, interpret.

    The session only holds transient state. The reading itself belongs to the
    store once it is created; a persistence failure rolls the selection back
    so the user can draw again, while interpretation failures are logged and
    the session still finishes with a navigable reading.
    """

    def __init__(
        self,
        category,
        engine: DrawEngine,
        store: ReadingStore,
        interpreter: InterpretationService,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
        shuffle_delay: float = SHUFFLE_DELAY_SECONDS,
        min_interpretation_wait: float = MIN_INTERPRETATION_WAIT_SECONDS,
        interpretation_timeout: float = INTERPRETATION_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.id = session_id or str(uuid.uuid4())
        self.category = get_category(category)
        self.engine = engine
        self.store = store
        self.interpreter = interpreter
        self.user_id = user_id
        self.shuffle_delay = shuffle_delay
        self.min_interpretation_wait = min_interpretation_wait
        self.interpretation_timeout = interpretation_timeout
        self._clock = clock
        self._sleep = sleep

        self.selected_cards: List[str] = []
        self.card_orientations: List[bool] = []
        self.is_saving = False
        self.is_generating = False
        self.touched_index: Optional[int] = None
        self.reading_id: Optional[str] = None
        self.interpretation: Optional[AIInterpretation] = None
        self.interpretation_failure: Optional[Failed] = None
        self.last_error: Optional[str] = None

        self._state = SessionState.SHUFFLING
        self._shuffle_started: Optional[float] = None
        self.last_used = clock()

    # --- state ---

    @property
    def state(self) -> SessionState:
        if self._state is SessionState.SHUFFLING and self._shuffle_started is not None:
            if self._clock() - self._shuffle_started >= self.shuffle_delay:
                self._set_state(SessionState.SELECTING)
        return self._state

    @property
    def is_shuffling(self) -> bool:
        return self.state is SessionState.SHUFFLING

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug(f"Session {self.id}: {self._state.value} -> {state.value}")
            self._state = state

    def _touch(self) -> None:
        self.last_used = self._clock()

    # --- operations ---

    def start_shuffle(self) -> None:
        """Begin the shuffle; selection stays closed until the delay has passed."""
        self._clear_selection()
        self.reading_id = None
        self._shuffle_started = self._clock()
        self._state = SessionState.SHUFFLING
        self._touch()

    async def wait_for_shuffle(self) -> None:
        if self._shuffle_started is None:
            self.start_shuffle()
        remaining = self.shuffle_delay - (self._clock() - self._shuffle_started)
        if remaining > 0:
            await self._sleep(remaining)
        if self._state is SessionState.SHUFFLING:
            self._set_state(SessionState.SELECTING)

    async def select_next(self, touched_index: Optional[int] = None) -> Optional[DrawnCard]:
        """
        Draw the next card.

        Returns None without drawing while shuffling, while a save or
        interpretation is in flight, or once three cards are selected. The
        third card runs the save + interpret pipeline before returning.
        """
        state = self.state
        if state not in (SessionState.SELECTING, SessionState.ERROR):
            return None
        if self.is_saving or self.is_generating:
            return None
        if len(self.selected_cards) >= CARDS_PER_READING:
            return None

        self._touch()
        if state is SessionState.ERROR:
            self._set_state(SessionState.SELECTING)
            self.last_error = None

        drawn = self.engine.draw_card(self.selected_cards)
        self.selected_cards.append(drawn.card_id)
        self.card_orientations.append(drawn.is_reversed)
        self.touched_index = touched_index

        if len(self.selected_cards) == CARDS_PER_READING:
            await self._finalize()
        return drawn

    def reset(self) -> None:
        """Drop the current selection and flags and reopen card selection."""
        self._clear_selection()
        self.reading_id = None
        self.last_error = None
        self._set_state(SessionState.SELECTING)

    def _clear_selection(self) -> None:
        self.selected_cards = []
        self.card_orientations = []
        self.is_saving = False
        self.is_generating = False
        self.touched_index = None
        self.interpretation = None
        self.interpretation_failure = None

    # --- pipeline ---

    async def _finalize(self) -> None:
        self._set_state(SessionState.FINALIZING)
        self.is_saving = True
        self.is_generating = True

        try:
            reading = await self.store.create(
                self.category, list(self.selected_cards), list(self.card_orientations), self.user_id
            )
        except Exception as e:
            logger.exception(f"Failed to save reading for session {self.id}: {e}")
            self.reset()
            self.last_error = str(e) or type(e).__name__
            self._set_state(SessionState.ERROR)
            if isinstance(e, PersistenceFailure):
                raise
            raise PersistenceFailure(f"Could not save reading: {e}") from e

        self.reading_id = reading.id
        self.is_saving = False
        self._set_state(SessionState.INTERPRETING)

        try:
            await self._interpret(reading)
        finally:
            self.is_generating = False
            self._set_state(SessionState.DONE)
            self._touch()

    async def _interpret(self, reading) -> None:
        """Generate and store the interpretation. Failures are logged, never raised."""
        started = self._clock()
        try:
            interpretation = await asyncio.wait_for(
                self.interpreter.generate(
                    reading.id, reading.cards, reading.category, reading.card_orientations
                ),
                timeout=self.interpretation_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"AI interpretation for reading {reading.id} timed out")
            self.interpretation_failure = Failed(kind="GenerationTimeoutError", message="timed out")
            return
        except InterpretationError as e:
            logger.error(f"AI interpretation for reading {reading.id} failed: {e}")
            self.interpretation_failure = Failed(kind=type(e).__name__, message=str(e))
            return
        except Exception as e:
            logger.exception(f"Unexpected error generating interpretation for reading {reading.id}: {e}")
            self.interpretation_failure = Failed(kind=type(e).__name__, message=str(e))
            return

        self.interpretation = interpretation
        try:
            await self.store.update_interpretation(reading.id, interpretation)
        except PersistenceFailure as e:
            logger.error(f"Could not store interpretation for reading {reading.id}: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error storing interpretation for reading {reading.id}: {e}")

        elapsed = self._clock() - started
        if elapsed < self.min_interpretation_wait:
            await self._sleep(self.min_interpretation_wait - elapsed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.id,
            "category": self.category.value,
            "state": self.state.value,
            "selectedCards": list(self.selected_cards),
            "cardOrientations": list(self.card_orientations),
            "isSaving": self.is_saving,
            "isGenerating": self.is_generating,
            "touchedIndex": self.touched_index,
            "readingId": self.reading_id,
            "hasAiInterpretation": self.interpretation is not None,
            "error": self.last_error,
        }


class SessionRegistry:
    """In-process map of live sessions, evicting ones idle for longer than SESSION_EXPIRY_TIME."""

    def __init__(
        self,
        engine: DrawEngine,
        store: ReadingStore,
        interpreter: InterpretationService,
        expiry: timedelta = SESSION_EXPIRY_TIME,
        clock: Callable[[], float] = time.monotonic,
        **session_options,
    ):
        self.engine = engine
        self.store = store
        self.interpreter = interpreter
        self.expiry = expiry
        self._clock = clock
        self.session_options = session_options
        self._sessions: Dict[str, ReadingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, category, user_id: Optional[str] = None) -> ReadingSession:
        self.cleanup_expired_sessions()
        session = ReadingSession(
            category,
            self.engine,
            self.store,
            self.interpreter,
            user_id=user_id,
            clock=self._clock,
            **self.session_options,
        )
        session.start_shuffle()
        self._sessions[session.id] = session
        logger.debug(f"Started session {session.id} for category {session.category.value}")
        return session

    def get(self, session_id: str) -> Optional[ReadingSession]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def cleanup_expired_sessions(self) -> int:
        now = self._clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_used > self.expiry.total_seconds()
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions.")
        return len(expired)
