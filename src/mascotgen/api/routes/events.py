"""Slack Events API endpoint for app mentions.

Slack redelivers an event when it does not get a 200 fast enough, so the
handler records every mention in the dispatcher's deduplicator before anything
else and does the real work in a background task after responding.
"""

import json

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status

from mascotgen.api.dependencies import get_dispatcher, get_settings, get_slack_client
from mascotgen.core.config import Settings
from mascotgen.models.job import ReferenceImage, TriggerKind, TriggerRequest
from mascotgen.services.dispatch.event_dedup import idempotency_key
from mascotgen.services.exceptions import DeliveryError
from mascotgen.services.image_generation.prompts import strip_mentions
from mascotgen.services.slack.slack_client import SlackClient
from mascotgen.workers.job_dispatcher import JobDispatcher

logger = structlog.get_logger()
router = APIRouter()


async def collect_image_attachments(event: dict, slack: SlackClient) -> list[ReferenceImage]:
    """Download image files attached to a mention.

    Non-image files are ignored. A file that fails to download is skipped
    so the job still runs with the remaining references.
    """
    images = []
    for file_info in event.get("files") or []:
        mimetype = file_info.get("mimetype") or ""
        url = file_info.get("url_private_download") or file_info.get("url_private")
        if not mimetype.startswith("image/") or not url:
            continue
        try:
            data = await slack.download_file(url)
        except DeliveryError as e:
            logger.warning(
                "events.attachment_download_failed", file_id=file_info.get("id"), error=str(e)
            )
            continue
        images.append(
            ReferenceImage(data=data, mime_type=mimetype, name=file_info.get("name") or "")
        )
    return images


async def process_mention(
    event: dict, dispatcher: JobDispatcher, slack: SlackClient, persona: str
) -> None:
    """Turn an app_mention event into a job submission."""
    channel_id = event.get("channel", "")
    user_id = event.get("user", "")
    # Replies stay in the thread the mention lives in
    thread_ref = event.get("thread_ts") or event.get("ts")

    try:
        attachments = await collect_image_attachments(event, slack)
        trigger = TriggerRequest(
            kind=TriggerKind.MENTION,
            persona=persona,
            text=strip_mentions(event.get("text") or ""),
            destination_id=channel_id,
            requester_id=user_id,
            thread_ref=thread_ref,
            attachments=tuple(attachments),
        )
        outcome = await dispatcher.submit(trigger)
        logger.info(
            "events.mention_processed",
            channel_id=channel_id,
            job_id=outcome.job_id,
            status=outcome.status.value,
            accepted=outcome.accepted,
            attachments=len(attachments),
        )
    except Exception as e:
        # Background task: nothing upstream would observe this error
        logger.error(
            "events.mention_failed",
            channel_id=channel_id,
            user_id=user_id,
            error=str(e),
            error_type=type(e).__name__,
        )


@router.post("/events")
async def receive_slack_event(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    dispatcher: JobDispatcher = Depends(get_dispatcher),
    slack: SlackClient = Depends(get_slack_client),
):
    """Receive Slack Events API callbacks.

    Handles:
        - url_verification: echoes the challenge
        - event_callback/app_mention: dedupes, then processes in background

    HTTP Status Codes:
        200: Event accepted, ignored, or recognised as a duplicate
        400: Body is not a JSON object
    """
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError as e:
        logger.error("events.invalid_json", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload"
        ) from e

    if not isinstance(payload, dict):
        logger.error("events.invalid_payload", payload_type=type(payload).__name__)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Payload must be a JSON object"
        )

    payload_type = payload.get("type")
    if payload_type == "url_verification":
        logger.info("events.url_verification")
        return {"challenge": payload.get("challenge")}

    if payload_type != "event_callback":
        logger.debug("events.ignored", type=payload_type)
        return {"ok": True}

    event = payload.get("event") or {}
    if event.get("type") != "app_mention":
        logger.debug("events.ignored", event_type=event.get("type"))
        return {"ok": True}

    if event.get("bot_id"):
        logger.debug("events.bot_message_ignored", bot_id=event.get("bot_id"))
        return {"ok": True}

    key = idempotency_key(event.get("channel", ""), event.get("user", ""), event.get("ts", ""))
    if dispatcher.is_duplicate_event(key):
        logger.info("events.duplicate_ignored", event_key=key)
        return {"ok": True}

    logger.info(
        "events.mention_received",
        channel_id=event.get("channel"),
        user_id=event.get("user"),
        event_key=key,
    )
    background_tasks.add_task(
        process_mention, event, dispatcher, slack, settings.mention_persona
    )
    return {"ok": True}
