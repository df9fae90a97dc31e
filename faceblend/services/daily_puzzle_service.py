"""Assembles the daily puzzle payload served to every player."""
import asyncio
import logging
from typing import Optional, Sequence

from faceblend.config import Settings, get_settings
from faceblend.schemas.identity import Identity
from faceblend.schemas.puzzle import DailyPuzzleResponse
from faceblend.services.fused_image_service import FusedImageService
from faceblend.services.game_state_machine import MAX_GUESSES
from faceblend.services.metadata_service import IdentityHints, MetadataEnricher
from faceblend.services.puzzle_selector import PuzzleSelection, select_puzzle
from faceblend.utils.cache import SimpleCache
from faceblend.utils.datetime_helpers import day_key as current_day_key

logger = logging.getLogger(__name__)

# Longer than any civil day; a new day key evicts earlier entries anyway
HINTS_MEMO_TTL_SECONDS = 26 * 60 * 60


class DailyPuzzleService:
    """Combine the day's selection, hints and fused image into one response."""

    def __init__(
            self,
            pool: Sequence[Identity],
            enricher: MetadataEnricher,
            fused_image_service: FusedImageService,
            settings: Settings | None = None,
            hints_cache: SimpleCache | None = None,
    ):
        self.pool = pool
        self.enricher = enricher
        self.fused_image_service = fused_image_service
        self.settings = settings or get_settings()
        self.hints_cache = hints_cache or SimpleCache(default_ttl=HINTS_MEMO_TTL_SECONDS)

    def today(self) -> str:
        return current_day_key(tz=self.settings.day_zone)

    def selection_for(self, day_key: str) -> PuzzleSelection:
        return select_puzzle(day_key, self.pool)

    async def _enrich_both(self, selection: PuzzleSelection) -> tuple[IdentityHints, IdentityHints]:
        first, second = selection.answer_identities
        first_hints, second_hints = await asyncio.gather(
            self.enricher.enrich(first), self.enricher.enrich(second))
        return first_hints, second_hints

    def _forget_failed(self, cache_key: str, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is None:
            return
        if self.hints_cache.get(cache_key) is task:
            self.hints_cache.delete(cache_key)

    async def hints_for(self, selection: PuzzleSelection) -> tuple[IdentityHints, IdentityHints]:
        """
        Enriched hints for both answers, shared by every request for the day.

        The memo holds the enrichment task rather than its result, so requests
        that arrive while the first lookup is still running wait on it instead
        of rolling their own notable-works shuffle.
        """
        cache_key = f"hints:{selection.day_key}"
        task = self.hints_cache.get(cache_key)
        if task is None:
            self.hints_cache.invalidate_except_day(selection.day_key)
            task = asyncio.create_task(self._enrich_both(selection))
            task.add_done_callback(lambda done: self._forget_failed(cache_key, done))
            self.hints_cache.set(cache_key, task)

        # A caller giving up must not cancel the lookup other requests share
        return await asyncio.shield(task)

    async def get_puzzle(self, day_key: Optional[str] = None) -> DailyPuzzleResponse:
        """
        Build the puzzle for ``day_key`` (today when omitted).

        Raises:
            InsufficientPoolError: If the pool cannot fill nine options
            GenerationFailedError: If the fused image cannot be produced
        """
        day_key = day_key or self.today()
        selection = self.selection_for(day_key)
        first, second = selection.answer_identities
        logger.info(f"Puzzle for {day_key}: {len(selection.option_list)} options")

        # Hints and the image are independent; fetch them side by side
        hints_task = asyncio.create_task(self.hints_for(selection))
        try:
            fused_image_url = await self.fused_image_service.get_or_generate(day_key, first, second)
        except BaseException:
            hints_task.cancel()
            raise
        first_hints, second_hints = await hints_task

        return DailyPuzzleResponse(
            day_key=day_key,
            fused_image_url=fused_image_url,
            answer_options=list(selection.option_list),
            correct_answers=selection.correct_answers,
            identity1_hints=first_hints.as_list(),
            identity2_hints=second_hints.as_list(),
            identity1_portrait=first_hints.portrait_ref,
            identity2_portrait=second_hints.portrait_ref,
            max_guesses=MAX_GUESSES,
        )
