"""Background job execution."""

from mascotgen.workers.job_dispatcher import JobDispatcher

__all__ = ["JobDispatcher"]
