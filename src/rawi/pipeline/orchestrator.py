"""Pipeline orchestrator: drives story -> images -> voice -> music -> editing -> export."""

import asyncio
import logging
import math
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from rawi.client.service import ServiceClient
from rawi.config import Settings, get_settings
from rawi.models.errors import (
    AlreadyRunningError,
    InvalidInputError,
    PipelineError,
    RawiError,
    RunCancelledError,
)
from rawi.models.output import GenerationOutput
from rawi.models.pipeline import (
    ErrorInfo,
    PipelineStage,
    PipelineState,
    RunStatus,
    StageStatus,
)
from rawi.models.story import Story
from rawi.pipeline.assembly import AssemblyService, PlaceholderAssembly
from rawi.pipeline.events import (
    STAGE_COMPLETED_MESSAGES,
    STAGE_STARTED_MESSAGES,
    EventLevel,
    PipelineEvent,
    PipelineEventType,
)
from rawi.pipeline.normalizer import normalize_story
from rawi.pipeline.retry import RetryPolicy, Sleep, call_with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[PipelineEvent], None]


class CancellationToken:
    """Cooperative cancellation flag checked before each stage and each scene call."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RunCancelledError()


@dataclass
class _RunContext:
    run_id: str
    title: str
    duration_minutes: float
    token: CancellationToken
    story: Story | None = None


StageHandler = Callable[[_RunContext], Awaitable[str | None]]


class PipelineOrchestrator:
    """Runs one generation at a time and publishes immutable snapshots of its progress.

    Observers register with ``subscribe``; every stage transition, per-scene
    completion, retry and terminal outcome is delivered as a ``PipelineEvent``.
    """

    def __init__(
        self,
        client: ServiceClient | None = None,
        assembly: AssemblyService | None = None,
        retry_policy: RetryPolicy | None = None,
        settings: Settings | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.client = client or ServiceClient()
        self.assembly = assembly or PlaceholderAssembly(
            self.settings.editing_delay_seconds, self.settings.export_delay_seconds, sleep=sleep
        )
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings)
        self._sleep = sleep
        self._listeners: list[Listener] = []
        self._state = PipelineState()
        self._output = GenerationOutput()
        self._running = False
        self._token: CancellationToken | None = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def output(self) -> GenerationOutput:
        return self._output

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def reset(self) -> None:
        """Restore every stage to Pending and clear the output.

        A run still in flight is cancelled; its remaining writes are discarded.
        """
        if self._token is not None:
            self._token.cancel()
        self._reset_state()
        self._emit(None, PipelineEventType.RESET, message="Pipeline reset")

    def cancel(self) -> bool:
        """Request cancellation of the in-flight run. Returns False when idle."""
        if self._token is None:
            return False
        self._token.cancel()
        logger.info(f"Cancellation requested for run {self._state.run_id}")
        return True

    def ensure_idle(self) -> None:
        if self._running:
            raise AlreadyRunningError()

    def validate_request(self, title: Any, duration: Any) -> tuple[str, float]:
        """Check run inputs; returns the stripped title and duration in minutes."""
        if not isinstance(title, str) or not title.strip():
            raise InvalidInputError("Title must be a non-empty string")
        title = title.strip()
        if len(title) > self.settings.max_title_length:
            raise InvalidInputError(
                f"Title too long: {len(title)} characters (max {self.settings.max_title_length})",
                details={"length": len(title), "max": self.settings.max_title_length},
            )
        if isinstance(duration, bool) or not isinstance(duration, int | float):
            raise InvalidInputError("Duration must be a number of minutes")
        low, high = self.settings.min_duration_minutes, self.settings.max_duration_minutes
        try:
            duration = float(duration)
        except OverflowError:
            raise InvalidInputError(
                f"Duration must be between {low:g} and {high:g} minutes",
                details={"min": low, "max": high},
            ) from None
        if not math.isfinite(duration) or duration < low or duration > high:
            raise InvalidInputError(
                f"Duration must be between {low:g} and {high:g} minutes, got {duration:g}",
                details={"duration": duration, "min": low, "max": high},
            )
        return title, duration

    def claim(self, title: Any, duration: Any) -> tuple[str, float]:
        """Validate inputs and reserve the orchestrator for one run.

        The reservation is taken before returning, so a second ``claim`` or
        ``run`` fails with AlreadyRunning until the claimed run finishes or
        ``release`` is called. Pass ``claimed=True`` to ``run`` to take it over.
        """
        self.ensure_idle()
        title, duration = self.validate_request(title, duration)
        self._running = True
        self._token = CancellationToken()
        return title, duration

    def release(self) -> None:
        """Drop a reservation whose run will never start."""
        self._running = False
        self._token = None

    async def run(
        self,
        title: str,
        duration: float,
        token: CancellationToken | None = None,
        claimed: bool = False,
    ) -> GenerationOutput:
        """Execute the full pipeline for ``title`` at ``duration`` minutes.

        Returns the final output snapshot. On failure the failing stage is
        marked Failed, earlier output stays available on ``output``, and the
        triggering error is raised unchanged. With ``claimed`` the run takes
        over a reservation made by ``claim``.
        """
        if claimed:
            if not self._running:
                raise PipelineError("No claimed run to take over")
            try:
                title, duration = self.validate_request(title, duration)
            except RawiError:
                self.release()
                raise
        else:
            title, duration = self.claim(title, duration)

        self._token = token or self._token or CancellationToken()
        self._reset_state()
        ctx = _RunContext(
            run_id=str(uuid.uuid4()),
            title=title,
            duration_minutes=duration,
            token=self._token,
        )
        self._state = PipelineState(
            run_id=ctx.run_id, title=title, duration_minutes=duration
        ).with_status(RunStatus.RUNNING)
        logger.info(f"Run {ctx.run_id} started: '{title}' ({duration:g} min)")
        self._emit(ctx, PipelineEventType.RUN_STARTED, message=f"Generating '{title}'")

        try:
            for stage, handler in self._stage_plan():
                await self._run_stage(ctx, stage, handler)
        except RunCancelledError as exc:
            self._terminate(ctx, RunStatus.CANCELLED, exc)
            raise
        except asyncio.CancelledError:
            interrupted = RunCancelledError("Generation run was interrupted")
            self._terminate(ctx, RunStatus.CANCELLED, interrupted)
            raise
        except RawiError as exc:
            self._terminate(ctx, RunStatus.FAILED, exc)
            raise
        except Exception as e:
            logger.exception(f"Run {ctx.run_id} crashed")
            error = PipelineError(f"Pipeline failed: {e}")
            self._terminate(ctx, RunStatus.FAILED, error)
            raise error
        finally:
            self._running = False
            self._token = None

        self._commit_state(ctx, self._state.with_status(RunStatus.COMPLETED))
        logger.info(f"Run {ctx.run_id} completed")
        self._emit(
            ctx,
            PipelineEventType.RUN_COMPLETED,
            level=EventLevel.SUCCESS,
            message="Generation complete!",
        )
        return self._output

    # -- stage plan ---------------------------------------------------------

    def _stage_plan(self) -> list[tuple[PipelineStage, StageHandler]]:
        return [
            (PipelineStage.STORY_GENERATION, self._story_stage),
            (PipelineStage.IMAGE_GENERATION, self._image_stage),
            (PipelineStage.VOICE_OVER, self._voice_stage),
            (PipelineStage.MUSIC, self._music_stage),
            (PipelineStage.EDITING, self._editing_stage),
            (PipelineStage.EXPORT, self._export_stage),
        ]

    async def _run_stage(
        self, ctx: _RunContext, stage: PipelineStage, handler: StageHandler
    ) -> None:
        ctx.token.raise_if_cancelled()
        self._transition(ctx, stage, StageStatus.ACTIVE)
        logger.info(f"Run {ctx.run_id}: {stage.value} started")
        self._emit(
            ctx, PipelineEventType.STAGE_STARTED, stage=stage, message=STAGE_STARTED_MESSAGES[stage]
        )
        message = await handler(ctx)
        self._transition(ctx, stage, StageStatus.COMPLETED)
        logger.info(f"Run {ctx.run_id}: {stage.value} completed")
        self._emit(
            ctx,
            PipelineEventType.STAGE_COMPLETED,
            level=EventLevel.SUCCESS,
            stage=stage,
            message=message or STAGE_COMPLETED_MESSAGES[stage],
        )

    async def _story_stage(self, ctx: _RunContext) -> str:
        raw = await self._call(
            ctx,
            PipelineStage.STORY_GENERATION,
            lambda: self.client.request_story(ctx.title, ctx.duration_minutes),
        )
        story = normalize_story(raw, ctx.title)
        ctx.story = story
        self._merge(ctx, lambda out: out.with_story(story))
        return f"Story generated: {story.word_count} words in {len(story.scenes)} scene(s)"

    async def _image_stage(self, ctx: _RunContext) -> None:
        prompts = [scene.image_prompt for scene in ctx.story.scenes]
        urls = await self._per_scene(
            ctx, PipelineStage.IMAGE_GENERATION, prompts, self.client.request_image
        )
        self._merge(ctx, lambda out: out.with_scene_images(urls))

    async def _voice_stage(self, ctx: _RunContext) -> None:
        texts = [scene.text for scene in ctx.story.scenes]
        voiceovers = await self._per_scene(
            ctx, PipelineStage.VOICE_OVER, texts, self.client.request_voiceover
        )
        refs = [voiceover.to_data_url() for voiceover in voiceovers]
        self._merge(ctx, lambda out: out.with_scene_voiceovers(refs))

    async def _music_stage(self, ctx: _RunContext) -> None:
        seconds = ctx.duration_minutes * 60
        music = await self._call(
            ctx, PipelineStage.MUSIC, lambda: self.client.request_music(seconds)
        )
        self._merge(ctx, lambda out: out.with_music(music))

    async def _editing_stage(self, ctx: _RunContext) -> None:
        await self.assembly.edit(self._output)

    async def _export_stage(self, ctx: _RunContext) -> None:
        await self.assembly.export(self._output)

    # -- remote calls -------------------------------------------------------

    async def _call(
        self,
        ctx: _RunContext,
        stage: PipelineStage,
        operation: Callable[[], Awaitable[T]],
        scene_index: int | None = None,
    ) -> T:
        async def attempt() -> T:
            ctx.token.raise_if_cancelled()
            return await operation()

        def on_retry(attempt_number: int, exc: RawiError) -> None:
            self._emit(
                ctx,
                PipelineEventType.RETRYING,
                level=EventLevel.WARNING,
                stage=stage,
                scene_index=scene_index,
                attempt=attempt_number,
                message=f"Retrying after {exc.kind.value}: {exc.message}",
            )

        return await call_with_retry(attempt, self.retry_policy, self._sleep, on_retry)

    async def _per_scene(
        self,
        ctx: _RunContext,
        stage: PipelineStage,
        inputs: Sequence[str],
        request: Callable[[str], Awaitable[T]],
    ) -> list[T]:
        """Call ``request`` once per scene; results keep scene order.

        Any scene exhausting its retries aborts the rest of the stage.
        """
        total = len(inputs)
        results: list[Any] = [None] * total

        async def one(index: int) -> None:
            ctx.token.raise_if_cancelled()
            results[index] = await self._call(
                ctx, stage, lambda: request(inputs[index]), scene_index=index
            )
            self._emit(
                ctx,
                PipelineEventType.SCENE_COMPLETED,
                stage=stage,
                scene_index=index,
                message=f"Scene {index + 1}/{total} done",
            )

        concurrency = max(1, self.settings.scene_concurrency)
        if concurrency == 1:
            for index in range(total):
                await one(index)
            return results

        semaphore = asyncio.Semaphore(concurrency)

        async def bounded(index: int) -> None:
            async with semaphore:
                await one(index)

        try:
            async with asyncio.TaskGroup() as group:
                for index in range(total):
                    group.create_task(bounded(index))
        except ExceptionGroup as eg:
            raise _first_error(eg)
        return results

    # -- state bookkeeping --------------------------------------------------

    def _reset_state(self) -> None:
        self._state = PipelineState()
        self._output = GenerationOutput()

    def _is_current(self, ctx: _RunContext | None) -> bool:
        return ctx is None or self._state.run_id == ctx.run_id

    def _commit_state(self, ctx: _RunContext, state: PipelineState) -> None:
        if self._is_current(ctx):
            self._state = state

    def _transition(self, ctx: _RunContext, stage: PipelineStage, status: StageStatus) -> None:
        if self._is_current(ctx):
            self._state = self._state.with_stage(stage, status)

    def _merge(
        self, ctx: _RunContext, update: Callable[[GenerationOutput], GenerationOutput]
    ) -> None:
        if self._is_current(ctx):
            self._output = update(self._output)

    def _terminate(self, ctx: _RunContext, status: RunStatus, exc: RawiError) -> None:
        if not self._is_current(ctx):
            logger.info(f"Run {ctx.run_id} ended after reset ({exc.kind.value})")
            return
        stage = self._state.active_stage
        if stage is not None:
            self._transition(ctx, stage, StageStatus.FAILED)
            self._emit(
                ctx,
                PipelineEventType.STAGE_FAILED,
                level=EventLevel.ERROR,
                stage=stage,
                message=f"{stage.value} failed: {exc.message}",
                error=ErrorInfo.from_exception(exc, stage),
            )
        error = ErrorInfo.from_exception(exc, stage)
        self._commit_state(ctx, self._state.with_status(status, error))

        if status == RunStatus.CANCELLED:
            logger.info(f"Run {ctx.run_id} cancelled during {stage.value if stage else 'setup'}")
            event_type, level = PipelineEventType.RUN_CANCELLED, EventLevel.WARNING
            message = "Generation cancelled"
        else:
            logger.error(f"Run {ctx.run_id} failed ({exc.kind.value}): {exc.message}")
            event_type, level = PipelineEventType.RUN_FAILED, EventLevel.ERROR
            message = f"Generation failed: {exc.message}"
        self._emit(ctx, event_type, level=level, stage=stage, message=message, error=error)

    def _emit(
        self,
        ctx: _RunContext | None,
        event_type: PipelineEventType,
        **fields: Any,
    ) -> None:
        if not self._is_current(ctx) or not self._listeners:
            return
        event = PipelineEvent(type=event_type, state=self._state, output=self._output, **fields)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Event listener error: {e}")


def _first_error(group: BaseExceptionGroup) -> BaseException:
    """First leaf of an exception group, preferring pipeline errors."""
    leaves: list[BaseException] = []

    def collect(eg: BaseExceptionGroup) -> None:
        for exc in eg.exceptions:
            if isinstance(exc, BaseExceptionGroup):
                collect(exc)
            else:
                leaves.append(exc)

    collect(group)
    for exc in leaves:
        if isinstance(exc, RawiError):
            return exc
    return leaves[0]
