"""
eBook Generator Service Layer

Handles business logic between API and the generation core: one sequencer
per run, background chapter tasks, snapshot persistence and startup resume.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from config.settings import Settings, settings as default_settings
from core.ebook_generator import (
    BookOutline,
    ChapterOutline,
    CoverImage,
    EbookGeneratorError,
    FallbackOrchestrator,
    GenerationOptions,
    GenerationRun,
    GenerationSequencer,
    GeneratorConfig,
    InvalidStateError,
    JsonSnapshotStore,
    NullRunStore,
    ProgressTracker,
    RunState,
    RunStore,
    SizeTier,
    SQLiteRunStore,
    build_providers,
)
from core.ebook_generator.config import ExportFormat
from core.export import MEDIA_TYPES, export_book, safe_filename


logger = logging.getLogger("EbookGenerator.Service")


class EbookService:
    """
    Service layer for the eBook generator.

    Owns every run's sequencer, its background generation task and its
    optional cover image.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        orchestrator: Optional[FallbackOrchestrator] = None,
        run_store: Optional[RunStore] = None,
        snapshot_store: Optional[JsonSnapshotStore] = None,
        config: Optional[GeneratorConfig] = None,
        sleep: Any = None,
    ):
        self.settings = settings or default_settings
        self.config = config or GeneratorConfig.from_settings(self.settings)

        if orchestrator is None:
            orchestrator = FallbackOrchestrator(
                text_providers=build_providers(self.config.text_providers, self.settings, self.config),
                image_providers=build_providers(self.config.image_providers, self.settings, self.config),
            )
        self.orchestrator = orchestrator
        self.run_store = run_store or self._default_run_store()
        self.snapshot_store = snapshot_store or JsonSnapshotStore(self.settings.snapshot_dir)
        self.progress = ProgressTracker()
        self._sleep = sleep

        self._sessions: Dict[str, GenerationSequencer] = {}
        self._running_tasks: Dict[str, asyncio.Task] = {}
        self._covers: Dict[str, CoverImage] = {}
        self._deleted: Set[str] = set()

    def _default_run_store(self) -> RunStore:
        if not self.settings.run_store_enabled:
            return NullRunStore()
        try:
            return SQLiteRunStore(self.settings.database_path)
        except Exception as e:
            logger.warning(f"Run store unavailable, continuing without it: {e}")
            return NullRunStore()

    def _new_sequencer(self, run: Optional[GenerationRun] = None) -> GenerationSequencer:
        return GenerationSequencer(
            self.orchestrator,
            config=self.config,
            run_store=self.run_store,
            on_snapshot=self._save_snapshot,
            on_progress=self.progress.update,
            sleep=self._sleep,
            run=run,
        )

    def _save_snapshot(self, snapshot: Dict[str, Any]) -> None:
        # An outline call still in flight must not bring a deleted run back
        if snapshot.get("id") in self._deleted:
            logger.debug(f"Dropping snapshot for deleted run {snapshot.get('id')}")
            return
        self.snapshot_store.save(snapshot)

    # ------------------------------------------------------------------
    # Direct provider calls
    # ------------------------------------------------------------------

    async def generate_outline(self, options: GenerationOptions) -> BookOutline:
        return await self.orchestrator.generate_outline(options)

    async def generate_chapter(
        self,
        options: GenerationOptions,
        book_info: Dict[str, str],
        chapter: ChapterOutline,
        index: int,
        total: int,
    ) -> str:
        return await self.orchestrator.generate_chapter(options, book_info, chapter, index, total)

    async def generate_cover(
        self, prompt: str, size: SizeTier = SizeTier.SMALL, run_id: Optional[str] = None
    ) -> CoverImage:
        self._check_cover_target(run_id)
        cover = await self.orchestrator.generate_cover_image(prompt, size)
        if run_id:
            self._covers[run_id] = cover
        return cover

    async def edit_cover(
        self, image: CoverImage, prompt: str, run_id: Optional[str] = None
    ) -> CoverImage:
        self._check_cover_target(run_id)
        cover = await self.orchestrator.edit_cover_image(image, prompt)
        if run_id:
            self._covers[run_id] = cover
        return cover

    def _check_cover_target(self, run_id: Optional[str]) -> None:
        if run_id and run_id not in self._sessions:
            raise KeyError(run_id)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    async def create_run(self, options: GenerationOptions) -> GenerationRun:
        """Create a run and generate its outline (awaited)."""
        sequencer = self._new_sequencer()
        try:
            await sequencer.start(options)
        finally:
            if sequencer.run is not None:
                self._sessions[sequencer.run.id] = sequencer
        return sequencer.run

    def get_run(self, run_id: str) -> Optional[GenerationRun]:
        sequencer = self._sessions.get(run_id)
        return sequencer.run if sequencer else None

    def list_runs(self) -> List[GenerationRun]:
        runs = [s.run for s in self._sessions.values() if s.run is not None]
        return sorted(runs, key=lambda r: r.updated_at, reverse=True)

    def is_running(self, run_id: str) -> bool:
        task = self._running_tasks.get(run_id)
        return task is not None and not task.done()

    def has_cover(self, run_id: str) -> bool:
        return run_id in self._covers

    def get_progress(self, run_id: str) -> Optional[dict]:
        return self.progress.get_latest(run_id)

    async def start_generation(self, run_id: str) -> Optional[GenerationRun]:
        """Start chapter generation for a run whose outline is ready."""
        sequencer = self._sessions.get(run_id)
        if sequencer is None:
            return None
        self._ensure_idle(run_id)
        if sequencer.run.state != RunState.OUTLINE_READY:
            raise InvalidStateError(
                f"Run is {sequencer.run.state.value}; only a run with a fresh outline can be generated"
            )
        self._spawn(run_id, sequencer.run_to_completion())
        return sequencer.run

    async def resume_run(self, run_id: str) -> Optional[GenerationRun]:
        """Resume from the first missing chapter in the background."""
        sequencer = self._sessions.get(run_id)
        if sequencer is None:
            return None
        self._ensure_idle(run_id)
        sequencer.ensure_resumable()
        self._spawn(run_id, sequencer.resume())
        return sequencer.run

    async def restart_run(self, run_id: str) -> Optional[GenerationRun]:
        """Discard outline and chapters and regenerate the outline (awaited)."""
        sequencer = self._sessions.get(run_id)
        if sequencer is None:
            return None
        self._ensure_idle(run_id)
        self._covers.pop(run_id, None)
        await sequencer.restart()
        return sequencer.run

    async def delete_run(self, run_id: str) -> bool:
        """Delete a run (cancel if running)."""
        task = self._running_tasks.pop(run_id, None)
        if task is not None and not task.done():
            task.cancel()

        found = self._sessions.pop(run_id, None) is not None
        if found:
            self._deleted.add(run_id)
        self._covers.pop(run_id, None)
        self.progress.clear_history(run_id)
        try:
            found = self.snapshot_store.delete(run_id) or found
        except OSError as e:
            logger.warning(f"Could not delete snapshot for {run_id}: {e}")
        return found

    async def export_run(self, run_id: str, fmt: ExportFormat) -> Optional[Tuple[bytes, str, str]]:
        """Export a completed run. Returns (data, filename, media_type)."""
        sequencer = self._sessions.get(run_id)
        if sequencer is None:
            return None
        book = sequencer.assemble()
        fmt = ExportFormat(fmt)

        data = await asyncio.to_thread(
            export_book,
            book,
            fmt,
            sequencer.run.options.author_name or self.settings.default_author,
            self.settings.publisher_name,
            self.settings.book_language,
            self._covers.get(run_id),
        )
        return data, safe_filename(book.title, fmt.value), MEDIA_TYPES[fmt]

    # ------------------------------------------------------------------
    # Startup / shutdown
    # ------------------------------------------------------------------

    async def restore_sessions(self) -> int:
        """Load every snapshot and resume runs interrupted mid-generation."""
        resumed = 0
        for snapshot in self.snapshot_store.load_all():
            try:
                sequencer = GenerationSequencer.restore(
                    snapshot,
                    self.orchestrator,
                    config=self.config,
                    run_store=self.run_store,
                    on_snapshot=self._save_snapshot,
                    on_progress=self.progress.update,
                    sleep=self._sleep,
                )
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping invalid snapshot {snapshot.get('id')}: {e}")
                continue

            run = sequencer.run
            self._sessions[run.id] = sequencer
            if sequencer.needs_resume:
                logger.info(f"Resuming run {run.id} at chapter {run.next_index + 1}/{run.total_chapters}")
                self._spawn(run.id, sequencer.resume())
                resumed += 1
        return resumed

    async def shutdown(self) -> None:
        for task in list(self._running_tasks.values()):
            task.cancel()
        self._running_tasks.clear()

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def _ensure_idle(self, run_id: str) -> None:
        if self.is_running(run_id):
            raise InvalidStateError("Generation is already running for this run")

    def _spawn(self, run_id: str, coro) -> asyncio.Task:
        task = asyncio.create_task(self._run_in_background(run_id, coro))
        self._running_tasks[run_id] = task
        return task

    async def _run_in_background(self, run_id: str, coro) -> None:
        """Run generation in background task."""
        try:
            await coro
        except EbookGeneratorError as e:
            # Sequencer already recorded the error on the run
            logger.error(f"Generation stopped for {run_id}: {e}")
        except asyncio.CancelledError:
            logger.info(f"Generation cancelled for {run_id}")
            raise
        except Exception as e:
            logger.exception(f"Unexpected generation error for {run_id}: {e}")
        finally:
            if self._running_tasks.get(run_id) is asyncio.current_task():
                self._running_tasks.pop(run_id, None)


# Singleton
_service: Optional[EbookService] = None


def get_ebook_service() -> EbookService:
    """Get or create the global service instance."""
    global _service
    if _service is None:
        _service = EbookService()
    return _service


def set_ebook_service(service: Optional[EbookService]) -> None:
    """Replace the global service instance (tests, custom wiring)."""
    global _service
    _service = service
