"""Slack slash command endpoints.

Slack expects an answer within three seconds, so these handlers only validate,
acknowledge and admit the job; generation continues in the background and the
HTTP response body stays empty.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import JSONResponse, Response

from mascotgen.api.dependencies import get_dispatcher
from mascotgen.models.job import TriggerKind, TriggerRequest
from mascotgen.services.image_generation.personas import IAN, TMAI, Persona, persona_for_command
from mascotgen.workers.job_dispatcher import JobDispatcher

logger = structlog.get_logger()
router = APIRouter()


async def handle_slash_command(
    endpoint_persona: Persona,
    dispatcher: JobDispatcher,
    command: str,
    text: str,
    channel_id: str,
    user_id: str,
) -> Response:
    """Submit one slash command received on ``endpoint_persona``'s endpoint.

    HTTP Status Codes:
        200: Job accepted (empty body) or user-facing error (ephemeral JSON)
        400: Command does not belong to this endpoint
        500: Unexpected error while dispatching
    """
    persona = persona_for_command(command)
    if persona is None or persona.key != endpoint_persona.key:
        logger.warning("command.unknown", command=command, endpoint=endpoint_persona.key)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Unknown command"}
        )

    logger.info("command.received", command=command, channel_id=channel_id, user_id=user_id)

    trigger = TriggerRequest(
        kind=TriggerKind.COMMAND,
        persona=persona.key,
        text=text,
        destination_id=channel_id,
        requester_id=user_id,
    )

    try:
        outcome = await dispatcher.submit(trigger)
    except Exception as e:
        logger.error(
            "command.dispatch_error", command=command, error=str(e), error_type=type(e).__name__
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "text": "❌ An error occurred while processing your command.",
                "response_type": "ephemeral",
            },
        )

    if not outcome.accepted and outcome.reply:
        return JSONResponse(content={"text": outcome.reply, "response_type": "ephemeral"})

    # Empty body avoids a duplicate message next to the acknowledgement post
    return Response(status_code=status.HTTP_200_OK)


@router.post("/image-gen")
async def tmai_command(
    command: Annotated[str, Form()],
    channel_id: Annotated[str, Form()],
    user_id: Annotated[str, Form()],
    text: Annotated[str, Form()] = "",
    dispatcher: JobDispatcher = Depends(get_dispatcher),
) -> Response:
    """Handle ``/tmai`` and ``/test-tmai``."""
    return await handle_slash_command(TMAI, dispatcher, command, text, channel_id, user_id)


@router.post("/ian-gen")
async def ian_command(
    command: Annotated[str, Form()],
    channel_id: Annotated[str, Form()],
    user_id: Annotated[str, Form()],
    text: Annotated[str, Form()] = "",
    dispatcher: JobDispatcher = Depends(get_dispatcher),
) -> Response:
    """Handle ``/ian`` and ``/test-ian``."""
    return await handle_slash_command(IAN, dispatcher, command, text, channel_id, user_id)
