"""Job pipeline primitives: admission control, event dedup, retry with backoff."""

from mascotgen.services.dispatch.admission_gate import AdmissionGate
from mascotgen.services.dispatch.backoff import (
    AttemptOutcome,
    BackoffExecutor,
    RetryAttempt,
    is_retryable,
)
from mascotgen.services.dispatch.event_dedup import EventDeduplicator, idempotency_key

__all__ = [
    "AdmissionGate",
    "AttemptOutcome",
    "BackoffExecutor",
    "EventDeduplicator",
    "RetryAttempt",
    "idempotency_key",
    "is_retryable",
]
