"""Job entities - one image generation request and its lifecycle."""

from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4


class AspectRatio(str, Enum):
    """Aspect ratios accepted by the image provider."""

    SQUARE = "1:1"
    PORTRAIT = "3:4"
    TALL_PORTRAIT = "9:16"
    LANDSCAPE = "4:3"
    WIDE_LANDSCAPE = "16:9"

    @classmethod
    def default(cls) -> "AspectRatio":
        return cls.WIDE_LANDSCAPE

    @classmethod
    def tokens(cls) -> list[str]:
        return [ratio.value for ratio in cls]


class TriggerKind(str, Enum):
    """Inbound trigger shapes."""

    COMMAND = "command"  # slash command, answered in the HTTP response
    MENTION = "mention"  # app_mention event, answered via message post


class JobStatus(str, Enum):
    """Job lifecycle status."""

    RECEIVED = "received"
    VALIDATED = "validated"
    ACKNOWLEDGED = "acknowledged"
    ADMITTED = "admitted"
    EXECUTING = "executing"
    DELIVERED = "delivered"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.DELIVERED, JobStatus.FAILED})

_NEXT_STATUS = {
    JobStatus.RECEIVED: JobStatus.VALIDATED,
    JobStatus.VALIDATED: JobStatus.ACKNOWLEDGED,
    JobStatus.ACKNOWLEDGED: JobStatus.ADMITTED,
    JobStatus.ADMITTED: JobStatus.EXECUTING,
    JobStatus.EXECUTING: JobStatus.DELIVERED,
}


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid job state transition."""

    pass


@dataclass(frozen=True)
class ReferenceImage:
    """Binary image sent to the provider alongside the prompt."""

    data: bytes
    mime_type: str = "image/png"
    name: str = ""


@dataclass(frozen=True)
class Destination:
    """Conversation (and optional thread) that receives job messages."""

    channel_id: str
    thread_ts: str | None = None


@dataclass(frozen=True)
class TriggerRequest:
    """Structured inbound trigger handed over by the routing layer."""

    kind: TriggerKind
    persona: str
    text: str
    destination_id: str
    requester_id: str
    thread_ref: str | None = None
    attachments: tuple[ReferenceImage, ...] = ()


@dataclass(frozen=True)
class Job:
    """Immutable description of one accepted generation request."""

    persona: str
    prompt: str
    aspect_ratio: AspectRatio
    destination: Destination
    requester_id: str
    attachments: tuple[ReferenceImage, ...] = ()
    job_id: str = field(default_factory=lambda: uuid4().hex)


@dataclass
class JobLifecycle:
    """Tracks a job through Received -> ... -> {Delivered, Failed}.

    Steps are strictly sequential; ``fail`` is allowed from any non-terminal
    state.
    """

    job_id: str | None = None
    status: JobStatus = JobStatus.RECEIVED
    history: list[JobStatus] = field(default_factory=lambda: [JobStatus.RECEIVED])

    def advance(self, target: JobStatus) -> None:
        """Move to the next state in the happy path.

        Raises:
            InvalidStateTransition: If ``target`` does not follow the current state
        """
        expected = _NEXT_STATUS.get(self.status)
        if target != expected:
            raise InvalidStateTransition(
                f"Cannot move job from {self.status.value} to {target.value}. "
                f"Expected next state: {expected.value if expected else 'none (terminal)'}."
            )
        self.status = target
        self.history.append(target)

    def fail(self) -> None:
        """Transition from any non-terminal state to failed.

        Raises:
            InvalidStateTransition: If the job already reached a terminal state
        """
        if self.is_terminal:
            raise InvalidStateTransition(
                f"Cannot mark failed from terminal state {self.status.value}."
            )
        self.status = JobStatus.FAILED
        self.history.append(JobStatus.FAILED)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class DispatchOutcome:
    """What the synchronous part of a dispatch produced.

    ``reply`` is only set when the trigger expects an inline answer (slash
    command validation errors and unexpected failures).
    """

    status: JobStatus
    reply: str | None = None
    job_id: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status == JobStatus.ADMITTED
