"""
Resumable Generation Sequencer

Drives one GenerationRun through its lifecycle:

    IDLE -> OUTLINE_PENDING -> OUTLINE_READY -> CHAPTER_IN_PROGRESS (i) ... -> COMPLETE

ERRORED is reachable from any in-flight step. Chapters are generated
strictly in order, one explicit step at a time, and every completed chapter
is persisted before the next one starts.

Usage:
    sequencer = GenerationSequencer(orchestrator, run_store=store, on_snapshot=save)
    run = await sequencer.start(options)
    await sequencer.run_to_completion()
    book = sequencer.assemble()
"""

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio
import inspect
import logging

from .config import GeneratorConfig
from .exceptions import EbookGeneratorError, InvalidStateError, PersistenceWarning
from .models import ChapterContent, GeneratedBook, GenerationOptions, GenerationRun, RunState
from .orchestrator import FallbackOrchestrator
from .persistence import NullRunStore, RunStore


SnapshotCallback = Callable[[Dict[str, Any]], Any]
ProgressCallback = Callable[[str, str, float], Any]


class GenerationSequencer:
    """
    Explicit state machine over a single generation run.

    The run object is owned by the sequencer; persistence (run store and
    snapshot callback) is best-effort and never aborts generation.
    """

    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        config: Optional[GeneratorConfig] = None,
        run_store: Optional[RunStore] = None,
        on_snapshot: Optional[SnapshotCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        run: Optional[GenerationRun] = None,
    ):
        self.orchestrator = orchestrator
        self.config = config or GeneratorConfig()
        self.run_store = run_store or NullRunStore()
        self.on_snapshot = on_snapshot
        self.on_progress = on_progress
        self._sleep = sleep or asyncio.sleep
        self.run = run
        self.logger = logging.getLogger("EbookGenerator.Sequencer")

    @classmethod
    def restore(
        cls,
        snapshot: Dict[str, Any],
        orchestrator: FallbackOrchestrator,
        **kwargs,
    ) -> "GenerationSequencer":
        """Rebuild a sequencer from a persisted snapshot."""
        run = GenerationRun.from_snapshot(snapshot)
        if run.state == RunState.OUTLINE_PENDING:
            # Outline call was interrupted; nothing to resume
            run.state = RunState.ERRORED
            run.error = run.error or "Outline generation was interrupted"
        return cls(orchestrator, run=run, **kwargs)

    @property
    def needs_resume(self) -> bool:
        """True when the run was interrupted in the middle of the chapter loop."""
        return (
            self.run is not None
            and self.run.state == RunState.CHAPTER_IN_PROGRESS
            and not self.run.is_complete
        )

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def start(self, options: GenerationOptions) -> GenerationRun:
        """Create a new run and generate its outline."""
        if self.run is not None and self.run.state not in (RunState.IDLE, RunState.ERRORED, RunState.COMPLETE):
            raise InvalidStateError(f"Run {self.run.id} is already {self.run.state.value}")

        self.run = GenerationRun(options=options)
        self.logger.info(f"Starting run {self.run.id}: {options.topic}")
        await self._generate_outline()
        return self.run

    async def step(self) -> ChapterContent:
        """Generate exactly one chapter (the next missing one)."""
        run = self._require_run()
        if run.outline is None:
            raise InvalidStateError("Run has no outline")
        if run.state not in (RunState.OUTLINE_READY, RunState.CHAPTER_IN_PROGRESS):
            raise InvalidStateError(f"Cannot generate chapters while {run.state.value}")
        if run.is_complete:
            raise InvalidStateError("All chapters are already generated")

        index = run.next_index
        total = run.total_chapters
        meta = run.outline.chapters[index]

        self._transition(RunState.CHAPTER_IN_PROGRESS)
        await self._progress(f"Writing chapter {index + 1} of {total}: {meta.title}", run.progress_percentage)

        book_info = {"title": run.outline.title, "subtitle": run.outline.subtitle}
        try:
            content = await self.orchestrator.generate_chapter(
                run.options, book_info, meta, index, total
            )
        except EbookGeneratorError as e:
            self._fail(f"Chapter {index + 1} failed: {e}")
            raise

        chapter = ChapterContent(title=meta.title, content=content)
        run.chapters.append(chapter)
        self._persist("append_chapter", self.run_store.append_chapter, run.store_id, chapter, index, meta.description)
        self._emit_snapshot()
        self.logger.info(f"Run {run.id}: chapter {index + 1}/{total} done ({chapter.word_count} words)")

        if run.is_complete:
            await self._complete()
        else:
            await self._progress(f"Chapter {index + 1} of {total} complete", run.progress_percentage)
        return chapter

    async def run_to_completion(self) -> GeneratedBook:
        """Generate every remaining chapter, pausing between calls."""
        run = self._require_run()
        first = True
        while not run.is_complete:
            if not first and self.config.chapter_delay > 0:
                await self._sleep(self.config.chapter_delay)
            await self.step()
            first = False
        return self.assemble()

    async def resume(self) -> GeneratedBook:
        """
        Continue an errored or interrupted run from the first missing chapter.

        Completed chapters are never regenerated.
        """
        run = self.ensure_resumable()
        self.logger.info(f"Resuming run {run.id} at chapter {run.next_index + 1}/{run.total_chapters}")
        run.error = None
        self._transition(RunState.CHAPTER_IN_PROGRESS)
        return await self.run_to_completion()

    def ensure_resumable(self) -> GenerationRun:
        """Raise InvalidStateError unless resume() would be accepted."""
        run = self._require_run()
        if run.state == RunState.COMPLETE:
            raise InvalidStateError("Run is already complete")
        if run.outline is None:
            raise InvalidStateError("Run has no outline; restart it instead")
        if run.state not in (RunState.ERRORED, RunState.CHAPTER_IN_PROGRESS, RunState.OUTLINE_READY):
            raise InvalidStateError(f"Cannot resume while {run.state.value}")
        return run

    async def restart(self) -> GenerationRun:
        """Discard outline and chapters, then regenerate the outline."""
        run = self._require_run()
        if run.state == RunState.OUTLINE_PENDING:
            raise InvalidStateError("Outline generation already in progress")

        self.logger.info(f"Restarting run {run.id}")
        run.outline = None
        run.chapters = []
        run.store_id = None
        run.error = None
        await self._generate_outline()
        return run

    def assemble(self) -> GeneratedBook:
        """Assembled book; only available once every chapter has content."""
        run = self._require_run()
        if run.state != RunState.COMPLETE:
            raise InvalidStateError(f"Book is not complete ({run.state.value})")
        return run.to_book()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _generate_outline(self) -> None:
        run = self.run
        self._transition(RunState.OUTLINE_PENDING)
        await self._progress("Generating outline...", 0)

        run.store_id = self._persist("create_run", self.run_store.create_run, run.options)
        if run.store_id is None:
            self.logger.debug(f"Run {run.id}: no run store id, continuing locally")

        try:
            outline = await self.orchestrator.generate_outline(run.options)
        except EbookGeneratorError as e:
            self._fail(f"Outline failed: {e}")
            raise

        run.outline = outline
        self._persist("attach_outline", self.run_store.attach_outline, run.store_id, outline)
        self._transition(RunState.OUTLINE_READY)
        await self._progress(f"Outline ready: {outline.chapter_count} chapters", 0)

    async def _complete(self) -> None:
        run = self.run
        self._persist("mark_complete", self.run_store.mark_complete, run.store_id)
        self._transition(RunState.COMPLETE)
        self.logger.info(f"Run {run.id} complete: {len(run.chapters)} chapters")
        await self._progress("Book complete", 100)

    def _fail(self, message: str) -> None:
        run = self.run
        run.error = message
        self.logger.error(f"Run {run.id}: {message}")
        self._persist("mark_failed", self.run_store.mark_failed, run.store_id)
        self._transition(RunState.ERRORED)

    def _transition(self, state: RunState) -> None:
        run = self.run
        if run.state != state:
            self.logger.debug(f"Run {run.id}: {run.state.value} -> {state.value}")
        run.state = state
        self._emit_snapshot()

    def _emit_snapshot(self) -> None:
        self.run.updated_at = datetime.now()
        if self.on_snapshot is None:
            return
        try:
            self.on_snapshot(self.run.to_snapshot())
        except Exception as e:
            self.logger.warning(str(PersistenceWarning("snapshot", e)))

    def _persist(self, operation: str, func: Callable, *args) -> Any:
        """Call a run store method; failures are logged, never raised."""
        if operation != "create_run" and args and args[0] is None:
            return None
        try:
            return func(*args)
        except Exception as e:
            self.logger.warning(str(PersistenceWarning(operation, e)))
            return None

    async def _progress(self, message: str, percentage: float) -> None:
        if self.on_progress is None:
            return
        try:
            result = self.on_progress(self.run.id, message, percentage)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.logger.warning(f"Progress callback error: {e}")

    def _require_run(self) -> GenerationRun:
        if self.run is None:
            raise InvalidStateError("No run started")
        return self.run
