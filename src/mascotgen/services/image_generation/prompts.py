"""Prompt parsing and validation for image generation.

Splits ``--flag value`` options out of the user's text and validates what is
left before it is sent to the provider.
"""

import re
from dataclasses import dataclass

import structlog

from mascotgen.models.job import AspectRatio
from mascotgen.services.exceptions import ValidationError

logger = structlog.get_logger(__name__)

MAX_PROMPT_LENGTH = 1000

_RATIO_FLAG = re.compile(r"--ratio\s+(\S+)")
_ANY_FLAG = re.compile(r"--\w+\s*(\S*)?")
_USER_MENTION = re.compile(r"<@[A-Z0-9]+(?:\|[^>]*)?>")


@dataclass(frozen=True)
class ParsedPrompt:
    prompt: str
    aspect_ratio: AspectRatio


def parse_prompt_with_flags(text: str) -> ParsedPrompt:
    """Extract ``--ratio`` and strip all flags from the prompt text.

    Unsupported ratios fall back to the default with a warning, never an error.
    """
    ratio = AspectRatio.default()

    match = _RATIO_FLAG.search(text)
    if match:
        requested = match.group(1)
        try:
            ratio = AspectRatio(requested)
        except ValueError:
            logger.warning(
                "prompt.unsupported_ratio", requested=requested, fallback=ratio.value
            )

    clean = _ANY_FLAG.sub("", text).strip()
    return ParsedPrompt(prompt=clean, aspect_ratio=ratio)


def strip_mentions(text: str) -> str:
    """Remove ``<@U123>`` user mentions from an event's text."""
    return " ".join(_USER_MENTION.sub(" ", text).split())


def validate_prompt(prompt: str) -> str:
    """Validate prompt text for image generation.

    Returns:
        Validated prompt (unchanged if valid)

    Raises:
        ValidationError: If prompt is empty or exceeds MAX_PROMPT_LENGTH characters
    """
    if not prompt or not prompt.strip():
        raise ValidationError("Prompt cannot be empty")

    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValidationError(
            f"Prompt exceeds maximum length of {MAX_PROMPT_LENGTH} characters (got {len(prompt)})"
        )

    return prompt
