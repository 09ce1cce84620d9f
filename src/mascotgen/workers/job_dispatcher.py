"""Job dispatcher: acknowledges triggers and runs image jobs in the background.

Per-job state machine:

    Received → Validated → Acknowledged → Admitted → Executing → {Delivered, Failed}

Everything up to ``Admitted`` runs inside ``submit()`` so the caller learns
about validation errors and saturation right away. From ``Admitted`` on the
job runs as a detached asyncio task; the caller never awaits it. Retries only
happen inside the backoff executor around the provider call; a job that
reaches ``Failed`` is never retried at this layer.

Error funnel:
    - ValidationError: ephemeral reply (commands) or thread message (mentions)
    - AdmissionRejected: "too many requests" message in the ack thread
    - Provider / template / delivery errors: ❌ message in the ack thread
    - A failure to post that message is logged and swallowed
"""

import asyncio
import time
from collections.abc import Callable, Coroutine
from dataclasses import replace
from typing import Any, Protocol

import structlog

from mascotgen.models.job import (
    AspectRatio,
    Destination,
    DispatchOutcome,
    Job,
    JobLifecycle,
    JobStatus,
    ReferenceImage,
    TriggerKind,
    TriggerRequest,
)
from mascotgen.services.dispatch.admission_gate import AdmissionGate
from mascotgen.services.dispatch.backoff import BackoffExecutor
from mascotgen.services.dispatch.event_dedup import EventDeduplicator
from mascotgen.services.exceptions import (
    AdmissionRejected,
    DeliveryError,
    ValidationError,
    describe_failure,
)
from mascotgen.services.image_generation.personas import Persona, get_persona
from mascotgen.services.image_generation.prompts import parse_prompt_with_flags, validate_prompt
from mascotgen.services.image_generation.templates import TemplateLibrary
from mascotgen.services.slack.slack_client import DISPLAY_NAME_FALLBACK
from mascotgen.services.storage import StoredImage

logger = structlog.get_logger(__name__)

ERROR_PREFIX = "❌ "


class ImageProvider(Protocol):
    async def generate(
        self,
        prompt: str,
        reference_images: list[ReferenceImage],
        aspect_ratio: AspectRatio,
    ) -> bytes: ...


class Notifier(Protocol):
    async def post_message(
        self, channel_id: str, text: str, thread_ts: str | None = None
    ) -> str: ...

    async def post_file(
        self,
        channel_id: str,
        content: bytes,
        filename: str,
        title: str,
        initial_comment: str,
        thread_ts: str | None = None,
    ) -> None: ...

    async def lookup_display_name(self, user_id: str) -> str: ...


class ImageStorage(Protocol):
    async def persist(self, content: bytes, suggested_name: str) -> StoredImage: ...


class JobDispatcher:
    """Owns the admission gate and the event deduplicator for the process."""

    def __init__(
        self,
        *,
        provider: ImageProvider,
        notifier: Notifier,
        storage: ImageStorage,
        templates: TemplateLibrary,
        executor: BackoffExecutor,
        max_concurrent_jobs: int = 20,
        seen_events_capacity: int = 100,
        persona_lookup: Callable[[str], Persona] = get_persona,
    ):
        self._provider = provider
        self._notifier = notifier
        self._storage = storage
        self._templates = templates
        self._executor = executor
        self._gate = AdmissionGate(max_concurrent_jobs)
        self._seen_events = EventDeduplicator(seen_events_capacity)
        self._persona_lookup = persona_lookup
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        """Jobs currently holding an admission slot."""
        return self._gate.in_flight

    @property
    def ceiling(self) -> int:
        return self._gate.ceiling

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def is_duplicate_event(self, key: str) -> bool:
        """Record an inbound event key; True means it was already seen."""
        return self._seen_events.is_duplicate(key)

    async def submit(self, trigger: TriggerRequest) -> DispatchOutcome:
        """Validate, acknowledge and admit a trigger, then start it in the background.

        Never raises for expected failures; the returned outcome tells the
        routing layer what (if anything) to answer inline.
        """
        lifecycle = JobLifecycle()
        log = logger.bind(
            kind=trigger.kind.value,
            persona=trigger.persona,
            channel_id=trigger.destination_id,
            user_id=trigger.requester_id,
        )

        # Received → Validated
        try:
            persona, job = self._validate(trigger)
        except ValidationError as e:
            lifecycle.fail()
            log.info("job.validation_failed", error=str(e))
            return await self._reject_invalid(trigger, e)

        lifecycle.job_id = job.job_id
        lifecycle.advance(JobStatus.VALIDATED)
        log = log.bind(job_id=job.job_id, aspect_ratio=job.aspect_ratio.value)

        # Validated → Acknowledged
        display_name = await self._display_name(trigger.requester_id)
        try:
            ack_ts = await self._notifier.post_message(
                trigger.destination_id,
                persona.working_message(display_name),
                trigger.thread_ref,
            )
        except DeliveryError as e:
            lifecycle.fail()
            log.error("job.acknowledgement_failed", error=str(e))
            reply = None
            if trigger.kind is TriggerKind.COMMAND:
                reply = f"{ERROR_PREFIX}An unexpected error occurred: {e}"
            return DispatchOutcome(JobStatus.FAILED, reply=reply, job_id=job.job_id)

        # Later messages go to the trigger's thread, or start one under the ack
        job = replace(
            job, destination=Destination(trigger.destination_id, trigger.thread_ref or ack_ts)
        )
        lifecycle.advance(JobStatus.ACKNOWLEDGED)
        log.info("job.acknowledged", thread_ts=job.destination.thread_ts)

        # Acknowledged → Admitted
        if not self._gate.try_admit():
            lifecycle.fail()
            await self._notify_failure(job, AdmissionRejected())
            return DispatchOutcome(JobStatus.FAILED, job_id=job.job_id)

        lifecycle.advance(JobStatus.ADMITTED)
        log.info("job.admitted", in_flight=self._gate.in_flight, ceiling=self._gate.ceiling)
        try:
            self._spawn(self._run(job, persona, lifecycle))
        except BaseException:
            self._gate.release()
            raise
        return DispatchOutcome(JobStatus.ADMITTED, job_id=job.job_id)

    def _validate(self, trigger: TriggerRequest) -> tuple[Persona, Job]:
        """Parse flags and check the prompt.

        Raises:
            ValidationError: Empty/oversized prompt or unknown persona
        """
        try:
            persona = self._persona_lookup(trigger.persona)
        except KeyError as e:
            raise ValidationError(str(e)) from e

        parsed = parse_prompt_with_flags(trigger.text or "")
        try:
            prompt = validate_prompt(parsed.prompt)
        except ValidationError as e:
            if not parsed.prompt.strip():
                raise ValidationError(persona.usage_text(AspectRatio.tokens())) from e
            raise

        job = Job(
            persona=persona.key,
            prompt=prompt,
            aspect_ratio=parsed.aspect_ratio,
            destination=Destination(trigger.destination_id, trigger.thread_ref),
            requester_id=trigger.requester_id,
            attachments=tuple(trigger.attachments),
        )
        return persona, job

    async def _reject_invalid(
        self, trigger: TriggerRequest, error: ValidationError
    ) -> DispatchOutcome:
        text = f"{ERROR_PREFIX}{error}"
        if trigger.kind is TriggerKind.COMMAND:
            return DispatchOutcome(JobStatus.FAILED, reply=text)

        # Mentions have no inline response; answer in the mention's thread
        try:
            await self._notifier.post_message(trigger.destination_id, text, trigger.thread_ref)
        except DeliveryError as e:
            logger.error(
                "job.delivery_failed",
                channel_id=trigger.destination_id,
                stage="validation",
                error=str(e),
            )
        return DispatchOutcome(JobStatus.FAILED)

    async def _display_name(self, user_id: str) -> str:
        """Requester name for the acknowledgement; never fails the job."""
        try:
            return await self._notifier.lookup_display_name(user_id)
        except Exception as e:
            logger.warning(
                "job.display_name_lookup_failed",
                user_id=user_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return DISPLAY_NAME_FALLBACK

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, job: Job, persona: Persona, lifecycle: JobLifecycle) -> None:
        """Executing → {Delivered, Failed}. Never lets an exception escape."""
        start_time = time.monotonic()
        log = logger.bind(job_id=job.job_id, persona=job.persona)

        with self._gate.occupied():
            lifecycle.advance(JobStatus.EXECUTING)
            log.info("job.executing")
            try:
                templates = await self._templates.load(persona)
                references = templates + list(job.attachments)
                prompt = persona.render(job.prompt)

                image = await self._executor.execute(
                    lambda: self._provider.generate(prompt, references, job.aspect_ratio)
                )

                stored = await self._storage.persist(
                    image, f"{persona.file_prefix}-{job.prompt}"
                )
                await self._notifier.post_file(
                    job.destination.channel_id,
                    image,
                    filename=stored.filename,
                    title=f"{persona.subject} {job.prompt} ({job.aspect_ratio.value})",
                    initial_comment=(
                        f"✨ Generated {persona.subject} {job.prompt} "
                        f"with {job.aspect_ratio.value} aspect ratio"
                    ),
                    thread_ts=job.destination.thread_ts,
                )
                lifecycle.advance(JobStatus.DELIVERED)
                log.info(
                    "job.delivered",
                    filename=stored.filename,
                    url=stored.url,
                    duration_seconds=round(time.monotonic() - start_time, 3),
                )
            except Exception as e:
                lifecycle.fail()
                log.error(
                    "job.failed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    duration_seconds=round(time.monotonic() - start_time, 3),
                )
                await self._notify_failure(job, e)

    async def _notify_failure(self, job: Job, error: BaseException) -> None:
        """Best-effort error message in the job's thread."""
        try:
            await self._notifier.post_message(
                job.destination.channel_id,
                f"{ERROR_PREFIX}{describe_failure(error)}",
                job.destination.thread_ts,
            )
        except Exception as e:
            logger.error(
                "job.delivery_failed",
                job_id=job.job_id,
                stage="failure_notice",
                error_type=type(e).__name__,
                error=str(e),
            )

    async def drain(self) -> None:
        """Wait until every detached job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
