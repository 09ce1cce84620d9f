"""Slack Web API client for posting job messages and images."""

import json
from typing import Any

import httpx
import structlog

from mascotgen.services.exceptions import DeliveryError

logger = structlog.get_logger(__name__)

DISPLAY_NAME_FALLBACK = "there"


class SlackClient:
    """Thin async wrapper over the Slack Web API methods the relay needs."""

    def __init__(
        self,
        bot_token: str,
        api_base: str = "https://slack.com/api",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Slack client.

        Args:
            bot_token: Bot User OAuth token (from SLACK_BOT_TOKEN env var)
            api_base: Web API base URL
            timeout: HTTP timeout per request in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.bot_token = bot_token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.headers = {"Authorization": f"Bearer {bot_token}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _call(
        self,
        method: str,
        *,
        json_body: dict[str, Any] | None = None,
        form: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Call a Web API method and return its payload.

        Raises:
            DeliveryError: Network failure, non-200 status, or ``ok: false`` payload
        """
        url = f"{self.api_base}/{method}"
        try:
            async with self._client() as client:
                if json_body is not None:
                    response = await client.post(url, headers=self.headers, json=json_body)
                elif form is not None:
                    response = await client.post(url, headers=self.headers, data=form)
                else:
                    response = await client.get(url, headers=self.headers, params=params)
        except httpx.TimeoutException as e:
            raise DeliveryError(f"Slack {method} timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise DeliveryError(f"Slack {method} network error: {e}") from e

        if response.status_code != 200:
            raise DeliveryError(f"Slack {method} failed ({response.status_code}): {response.text}")

        try:
            payload = response.json()
        except ValueError as e:
            raise DeliveryError(f"Slack {method} returned invalid JSON") from e

        if not payload.get("ok"):
            raise DeliveryError(f"Slack {method} error: {payload.get('error', 'unknown_error')}")
        return payload

    async def post_message(self, channel_id: str, text: str, thread_ts: str | None = None) -> str:
        """Post a text message.

        Returns:
            Message timestamp, usable as ``thread_ts`` for replies
        """
        body: dict[str, Any] = {"channel": channel_id, "text": text}
        if thread_ts:
            body["thread_ts"] = thread_ts
        payload = await self._call("chat.postMessage", json_body=body)
        logger.debug("slack.message_posted", channel_id=channel_id, thread_ts=thread_ts)
        return payload["ts"]

    async def post_file(
        self,
        channel_id: str,
        content: bytes,
        filename: str,
        title: str,
        initial_comment: str,
        thread_ts: str | None = None,
    ) -> None:
        """Upload a file into a channel/thread using the external upload flow.

        Steps: files.getUploadURLExternal → POST bytes to upload URL →
        files.completeUploadExternal (shares the file to the channel).
        """
        ticket = await self._call(
            "files.getUploadURLExternal", form={"filename": filename, "length": len(content)}
        )
        upload_url = ticket["upload_url"]
        file_id = ticket["file_id"]

        try:
            async with self._client() as client:
                upload = await client.post(
                    upload_url,
                    headers=self.headers,
                    files={"file": (filename, content, "application/octet-stream")},
                )
        except httpx.HTTPError as e:
            raise DeliveryError(f"Slack file upload network error: {e}") from e
        if upload.status_code != 200:
            raise DeliveryError(f"Slack file upload failed ({upload.status_code}): {upload.text}")

        form: dict[str, Any] = {
            "files": json.dumps([{"id": file_id, "title": title}]),
            "channel_id": channel_id,
            "initial_comment": initial_comment,
        }
        if thread_ts:
            form["thread_ts"] = thread_ts
        await self._call("files.completeUploadExternal", form=form)
        logger.info(
            "slack.file_uploaded",
            channel_id=channel_id,
            thread_ts=thread_ts,
            file_id=file_id,
            size_bytes=len(content),
        )

    async def lookup_display_name(self, user_id: str) -> str:
        """Return the user's real name, falling back to a generic placeholder."""
        try:
            payload = await self._call("users.info", params={"user": user_id})
        except DeliveryError as e:
            logger.info("slack.user_lookup_failed", user_id=user_id, error=str(e))
            return DISPLAY_NAME_FALLBACK

        user = payload.get("user") or {}
        return user.get("real_name") or user.get("name") or DISPLAY_NAME_FALLBACK

    async def download_file(self, url: str) -> bytes:
        """Download a private Slack file (e.g. an image attached to a mention).

        Raises:
            DeliveryError: If the file cannot be fetched
        """
        try:
            async with self._client() as client:
                response = await client.get(url, headers=self.headers, follow_redirects=True)
        except httpx.HTTPError as e:
            raise DeliveryError(f"Slack file download failed: {e}") from e
        if response.status_code != 200:
            raise DeliveryError(f"Slack file download failed ({response.status_code})")
        return response.content
