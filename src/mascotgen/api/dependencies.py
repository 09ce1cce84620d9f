"""FastAPI dependencies for accessing application-scoped services."""

from fastapi import Request

from mascotgen.core.config import Settings
from mascotgen.services.slack.slack_client import SlackClient
from mascotgen.workers.job_dispatcher import JobDispatcher


def get_settings(request: Request) -> Settings:
    """Get application settings stored by the lifespan handler."""
    return request.app.state.settings


def get_dispatcher(request: Request) -> JobDispatcher:
    """Get the process-wide job dispatcher from app state.

    Example:
        >>> @router.post("/endpoint")
        >>> async def endpoint(dispatcher: JobDispatcher = Depends(get_dispatcher)):
        ...     outcome = await dispatcher.submit(trigger)
    """
    return request.app.state.dispatcher


def get_slack_client(request: Request) -> SlackClient:
    """Get the Slack client used for attachment downloads."""
    return request.app.state.slack_client
