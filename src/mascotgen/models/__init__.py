"""Job entities shared between the API layer and the dispatcher."""

from mascotgen.models.job import (
    AspectRatio,
    Destination,
    DispatchOutcome,
    InvalidStateTransition,
    Job,
    JobLifecycle,
    JobStatus,
    ReferenceImage,
    TriggerKind,
    TriggerRequest,
)

__all__ = [
    "AspectRatio",
    "Destination",
    "DispatchOutcome",
    "InvalidStateTransition",
    "Job",
    "JobLifecycle",
    "JobStatus",
    "ReferenceImage",
    "TriggerKind",
    "TriggerRequest",
]
