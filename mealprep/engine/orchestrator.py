"""
Guide orchestrator: parses recipes, streams the combined guide and kicks off
ingredient consolidation exactly once per session.

Session lifecycle:

    PARSING -> STREAMING -> DONE
                         -> FAILED

Parsing is all-or-nothing and happens before any event is produced, so a
bad source surfaces as a plain request error. Once streaming starts, every
outcome is reported as a terminal event (done or error) and nothing follows it.

Consolidation has two candidate trigger points: right after the metadata
event (when some recipe has ingredients) and after the guide finishes.
A OnceGuard decides which one fires; the other becomes a no-op. The started
task is registered under the session id so clients can fetch the shopping
list with a separate request after the stream ends.
"""

import asyncio
import logging
import uuid
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Generic, List, Optional, Sequence, Set, TypeVar

from mealprep.engine.combiner import RecipeCombiner
from mealprep.engine.consolidator import IngredientConsolidator
from mealprep.engine.extraction.extractor import SourceExtractor
from mealprep.engine.session_registry import ConsolidationRegistry
from mealprep.errors import (
    ConsolidationNotFoundError,
    InvalidInputError,
    MealPrepError,
    PersistenceError,
)
from mealprep.models.schemas import (
    ChunkEvent,
    ConsolidatedIngredient,
    DoneEvent,
    ErrorEvent,
    MetadataEvent,
    ParsedRecipe,
    RecipeSource,
    StreamEvent,
)
from mealprep.services.guide_service import GuideSaver

logger = logging.getLogger(__name__)

T = TypeVar("T")

GENERIC_GENERATION_ERROR = "Failed to generate meal prep guide"


class OnceGuard(Generic[T]):
    """
    Single-assignment cell.

    The first try_set() stores its value and returns True; every later call
    returns False and leaves the value alone. try_set() never suspends, so on
    one event loop the check and the set cannot interleave with another caller.
    """

    def __init__(self):
        self._is_set = False
        self._value: Optional[T] = None

    @property
    def is_set(self) -> bool:
        return self._is_set

    @property
    def value(self) -> Optional[T]:
        return self._value

    def try_set(self, value: T) -> bool:
        if self._is_set:
            return False
        self._is_set = True
        self._value = value
        return True


class SessionState(str, Enum):
    PARSING = "parsing"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    SessionState.PARSING: {SessionState.STREAMING, SessionState.FAILED},
    SessionState.STREAMING: {SessionState.DONE, SessionState.FAILED},
    SessionState.DONE: set(),
    SessionState.FAILED: set(),
}


@dataclass
class GuideSession:
    """
    State for one combine request.

    Lives only as long as the request; nothing here is shared between sessions.
    """

    recipes: List[ParsedRecipe]
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: SessionState = SessionState.PARSING
    chunks: List[str] = field(default_factory=list)
    consolidation_trigger: OnceGuard[List[ParsedRecipe]] = field(default_factory=OnceGuard)
    consolidation_task: Optional["asyncio.Task[List[ConsolidatedIngredient]]"] = None
    saved_filename: Optional[str] = None
    error: Optional[str] = None

    @property
    def guide_text(self) -> str:
        return "".join(self.chunks)

    @property
    def finished(self) -> bool:
        return self.state in (SessionState.DONE, SessionState.FAILED)

    def transition(self, new_state: SessionState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid session transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    def append_chunk(self, chunk: str) -> None:
        self.chunks.append(chunk)

    def fail(self, message: str) -> None:
        self.error = message
        self.transition(SessionState.FAILED)

    async def wait_for_consolidation(self) -> List[ConsolidatedIngredient]:
        """Await the consolidation task, if one was started."""
        if self.consolidation_task is None:
            return []
        return await self.consolidation_task


class GuideOrchestrator:
    """
    Coordinates extraction, guide generation, consolidation and persistence.

    Example:
        >>> session = await orchestrator.open_session(sources)
        >>> async for event in orchestrator.stream(session):
        ...     print(event.to_sse(), end="")
        >>> shopping_list = await session.wait_for_consolidation()
    """

    def __init__(
        self,
        extractor: SourceExtractor,
        combiner: RecipeCombiner,
        consolidator: IngredientConsolidator,
        saver: Optional[GuideSaver] = None,
        registry: Optional[ConsolidationRegistry] = None,
    ):
        self._extractor = extractor
        self._combiner = combiner
        self._consolidator = consolidator
        self._saver = saver
        self._registry = registry
        # Strong references to running consolidation tasks
        self._tasks: Set[asyncio.Task] = set()

    async def open_session(self, sources: Sequence[RecipeSource]) -> GuideSession:
        """
        Parse every source and start a session.

        Raises:
            InvalidInputError: No sources, or a malformed source.
            SourceUnreachableError: A URL could not be fetched.
        """
        if not sources:
            raise InvalidInputError("Please provide at least one recipe")

        recipes = await self._extractor.extract_all(sources)
        logger.info(f"Parsed {len(recipes)} recipes")
        return GuideSession(recipes=recipes)

    async def stream(self, session: GuideSession) -> AsyncIterator[StreamEvent]:
        """
        Stream session events: metadata, chunks, then exactly one done or error.

        Each chunk is yielded as soon as the generative service delivers it.
        If the consumer stops early (client disconnect) the generation call
        and any running consolidation are abandoned.
        """
        session.transition(SessionState.STREAMING)
        try:
            yield MetadataEvent(
                session_id=session.session_id,
                recipes=[recipe.metadata() for recipe in session.recipes],
            )

            if any(recipe.ingredients for recipe in session.recipes):
                self.trigger_consolidation(session)

            try:
                async with aclosing(self._combiner.stream(session.recipes)) as fragments:
                    async for fragment in fragments:
                        session.append_chunk(fragment)
                        yield ChunkEvent(chunk=fragment)
            except MealPrepError as e:
                logger.error(f"Guide generation failed: {e.message}")
                session.fail(e.message)
                yield ErrorEvent(error=e.message)
                return
            except Exception:
                logger.exception("Unexpected error while streaming meal prep guide")
                session.fail(GENERIC_GENERATION_ERROR)
                yield ErrorEvent(error=GENERIC_GENERATION_ERROR)
                return

            self.trigger_consolidation(session)
            session.saved_filename = await self._persist(session)
            session.transition(SessionState.DONE)
            yield DoneEvent(saved_filename=session.saved_filename)
        finally:
            if not session.finished:
                logger.info("Guide stream closed before completion; abandoning session")
                self._abandon(session)

    async def combine(self, sources: Sequence[RecipeSource]) -> GuideSession:
        """
        Non-streaming variant: parse, generate the whole guide, persist.

        Raises:
            InvalidInputError, SourceUnreachableError: While parsing.
            GenerativeServiceError: If guide generation fails.
        """
        session = await self.open_session(sources)
        session.transition(SessionState.STREAMING)
        try:
            guide = await self._combiner.combine(session.recipes)
        except MealPrepError as e:
            logger.error(f"Guide generation failed: {e.message}")
            session.fail(e.message)
            raise

        session.append_chunk(guide)
        self.trigger_consolidation(session)
        session.saved_filename = await self._persist(session)
        session.transition(SessionState.DONE)
        return session

    def trigger_consolidation(self, session: GuideSession) -> bool:
        """
        Start consolidation for the session unless it already started.

        Returns:
            True if this call started consolidation.
        """
        if not session.consolidation_trigger.try_set(list(session.recipes)):
            return False
        task = asyncio.create_task(self._consolidate(session.consolidation_trigger.value))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        session.consolidation_task = task
        if self._registry is not None:
            self._registry.register(session.session_id, task)
        return True

    async def consolidation_result(self, session_id: str) -> List[ConsolidatedIngredient]:
        """
        Hand out a session's shopping list, waiting for it if still running.

        The result can be fetched once; the entry is removed afterwards.

        Raises:
            ConsolidationNotFoundError: Unknown or expired session, a session
                whose consolidation never started, or an abandoned one.
        """
        task = self._registry.get(session_id) if self._registry is not None else None
        if task is None:
            raise ConsolidationNotFoundError(session_id)

        try:
            # The shared task outlives a caller that stops waiting
            consolidated = await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            self._registry.discard(session_id)
            raise ConsolidationNotFoundError(session_id)

        self._registry.discard(session_id)
        return consolidated

    async def _consolidate(self, recipes: List[ParsedRecipe]) -> List[ConsolidatedIngredient]:
        try:
            consolidated = await self._consolidator.consolidate(recipes)
        except Exception:
            # Runs detached from the guide stream; a failure here must not reach it
            logger.exception("Ingredient consolidation failed")
            return []
        logger.info(f"Consolidated {len(consolidated)} ingredients from {len(recipes)} recipes")
        return consolidated

    async def _persist(self, session: GuideSession) -> Optional[str]:
        if self._saver is None:
            return None
        try:
            return await asyncio.to_thread(self._saver.save, session.guide_text, session.recipes)
        except PersistenceError as e:
            logger.warning(f"Failed to save guide to file: {e.message}")
            return None

    @staticmethod
    def _abandon(session: GuideSession) -> None:
        session.error = "Stream closed before completion"
        session.state = SessionState.FAILED
        task = session.consolidation_task
        if task is not None and not task.done():
            task.cancel()
