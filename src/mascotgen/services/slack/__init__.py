"""Slack integration (message posting, file upload, user lookup)."""

from mascotgen.services.slack.slack_client import DISPLAY_NAME_FALLBACK, SlackClient

__all__ = ["DISPLAY_NAME_FALLBACK", "SlackClient"]
