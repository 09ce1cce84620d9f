"""Local disk storage for generated images."""

import asyncio
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class StoredImage:
    """Result of persisting one image."""

    filename: str
    path: Path
    url: str  # path under the public static mount, e.g. /images/<filename>


def safe_prefix(name: str) -> str:
    """Reduce a suggested name to a filesystem-safe slug."""
    slug = _UNSAFE_CHARS.sub("-", name.lower()).strip("-")
    return slug[:40].rstrip("-") or "image"


class LocalImageStorage:
    """Writes generated images into OUTPUT_DIR."""

    def __init__(self, output_dir: str | Path, public_prefix: str = "/images/"):
        self.output_dir = Path(output_dir)
        self.public_prefix = public_prefix if public_prefix.endswith("/") else public_prefix + "/"

    def ensure_directory(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)

    async def persist(self, content: bytes, suggested_name: str) -> StoredImage:
        """Write ``content`` to a new file named after ``suggested_name``.

        Filenames carry a UTC timestamp and a short random suffix, so jobs that
        finish in the same millisecond do not overwrite each other.
        """
        timestamp = datetime.now(UTC).isoformat(timespec="milliseconds")
        timestamp = re.sub(r"[:.+]", "-", timestamp)
        filename = f"{safe_prefix(suggested_name)}-{timestamp}-{uuid4().hex[:8]}.png"
        path = self.output_dir / filename

        def _write() -> None:
            self.ensure_directory()
            path.write_bytes(content)

        await asyncio.to_thread(_write)
        logger.info("storage.image_saved", filename=filename, size_bytes=len(content))
        return StoredImage(filename=filename, path=path, url=f"{self.public_prefix}{filename}")
