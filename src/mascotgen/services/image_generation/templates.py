"""Loads persona template images from disk."""

import asyncio
from pathlib import Path

import structlog

from mascotgen.models.job import ReferenceImage
from mascotgen.services.exceptions import TemplateLoadError
from mascotgen.services.image_generation.personas import Persona

logger = structlog.get_logger(__name__)


class TemplateLibrary:
    """Reads and caches the template images each persona sends to the provider."""

    def __init__(self, template_dir: str | Path):
        self.template_dir = Path(template_dir)
        self._cache: dict[str, tuple[ReferenceImage, ...]] = {}

    def missing_files(self, personas: list[Persona]) -> list[Path]:
        """Template paths that do not exist (checked at startup)."""
        missing = []
        for persona in personas:
            for filename in persona.template_files:
                path = self.template_dir / filename
                if not path.is_file():
                    missing.append(path)
        return missing

    async def load(self, persona: Persona) -> list[ReferenceImage]:
        """Return the persona's template images in prompt order.

        Raises:
            TemplateLoadError: If a template file cannot be read
        """
        cached = self._cache.get(persona.key)
        if cached is not None:
            return list(cached)

        images = []
        for filename in persona.template_files:
            path = self.template_dir / filename
            try:
                data = await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                logger.error(
                    "templates.load_failed", persona=persona.key, path=str(path), error=str(e)
                )
                raise TemplateLoadError(f"Failed to load template image {path}: {e}") from e
            images.append(ReferenceImage(data=data, mime_type="image/png", name=filename))

        self._cache[persona.key] = tuple(images)
        logger.debug("templates.loaded", persona=persona.key, count=len(images))
        return images
