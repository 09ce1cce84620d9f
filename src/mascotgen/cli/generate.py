"""CLI command for generating a persona image without Slack.

Usage:
    python -m mascotgen.cli "PROMPT" [OPTIONS]

Examples:
    # Mascot image with the default 16:9 ratio
    python -m mascotgen.cli "riding a rocket to the moon"

    # Ian persona, square image
    python -m mascotgen.cli "presenting at a conference" --persona ian --ratio 1:1

    # Custom output directory with verbose logging
    python -m mascotgen.cli "surfing a bitcoin wave" --output-dir ./out -v
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace

import structlog
from pydantic import ValidationError as SettingsError

from mascotgen.core.config import Settings, configure_logging
from mascotgen.models.job import AspectRatio
from mascotgen.services.dispatch.backoff import BackoffExecutor
from mascotgen.services.exceptions import RelayError
from mascotgen.services.image_generation.gemini_client import GeminiClient
from mascotgen.services.image_generation.personas import PERSONAS, get_persona
from mascotgen.services.image_generation.prompts import validate_prompt
from mascotgen.services.image_generation.templates import TemplateLibrary
from mascotgen.services.storage import LocalImageStorage

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Generate a persona image with the configured image provider",
        epilog="Reads GEMINI_API_KEY and the other settings from the environment / .env",
    )

    parser.add_argument("prompt", help="Scene description, e.g. 'riding a rocket'")

    parser.add_argument(
        "--persona",
        choices=sorted(PERSONAS),
        default="tmai",
        help="Persona to render (default: tmai)",
    )

    parser.add_argument(
        "--ratio",
        choices=AspectRatio.tokens(),
        default=AspectRatio.default().value,
        help=f"Aspect ratio (default: {AspectRatio.default().value})",
    )

    parser.add_argument(
        "--output-dir",
        help="Directory for the generated image (default: OUTPUT_DIR setting)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error), 130 (interrupted)
    """
    args = parse_args(argv)

    try:
        settings = Settings()  # type: ignore[call-arg]
    except SettingsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        settings.log_level = "DEBUG"

    configure_logging(settings)

    persona = get_persona(args.persona)
    aspect_ratio = AspectRatio(args.ratio)
    output_dir = args.output_dir or settings.output_dir

    logger.info(
        "cli.started",
        persona=persona.key,
        aspect_ratio=aspect_ratio.value,
        output_dir=output_dir,
        model=settings.gemini_model,
    )

    provider = GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        api_base=settings.gemini_api_base,
        request_timeout=settings.gemini_request_timeout_seconds,
    )
    executor = BackoffExecutor(
        max_attempts=settings.generation_max_attempts,
        base_delay=settings.generation_base_delay_seconds,
        per_attempt_timeout=settings.generation_timeout_seconds,
        max_jitter=settings.generation_jitter_seconds,
    )
    templates = TemplateLibrary(settings.template_dir)
    storage = LocalImageStorage(output_dir, settings.public_image_prefix)

    try:
        prompt = validate_prompt(args.prompt)
        references = await templates.load(persona)
        rendered = persona.render(prompt)

        image = await executor.execute(
            lambda: provider.generate(rendered, references, aspect_ratio)
        )
        stored = await storage.persist(image, f"{persona.file_prefix}-{prompt}")

        print(f"Saved {persona.subject} image ({aspect_ratio.value}) to {stored.path}")
        logger.info("cli.success", path=str(stored.path), size_bytes=len(image))
        return 0

    except RelayError as e:
        logger.error("cli.generation_failed", error=str(e), error_type=type(e).__name__)
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nGeneration interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger.error(
            "cli.unexpected_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))
