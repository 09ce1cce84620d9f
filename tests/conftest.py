"""pytest fixtures for mascotgen tests.

Provides:
- test_env: Autouse fixture forcing APP_ENV=test (skips credential validation)
- FakeProvider / FakeNotifier / FakeStorage: in-memory collaborators
- template_dir: Temporary directory holding every persona template image
- dispatcher: JobDispatcher wired to the fakes with a no-op backoff sleep
"""

import asyncio
import os
from pathlib import Path

# Must be set before mascotgen.app builds its Settings at import time
os.environ.setdefault("APP_ENV", "test")

import pytest

from mascotgen.models.job import AspectRatio, ReferenceImage
from mascotgen.services.dispatch.backoff import BackoffExecutor
from mascotgen.services.exceptions import DeliveryError
from mascotgen.services.image_generation.personas import PERSONAS
from mascotgen.services.image_generation.templates import TemplateLibrary
from mascotgen.services.storage import StoredImage
from mascotgen.workers.job_dispatcher import JobDispatcher

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


class FakeProvider:
    """Image provider returning canned results in order.

    Each entry of ``results`` is either bytes (returned) or an exception
    (raised). Once exhausted, the last entry repeats. When ``gate`` is set,
    every call waits for it first.
    """

    def __init__(self, results=None, gate: asyncio.Event | None = None):
        self.results = list(results) if results is not None else [PNG_BYTES]
        self.gate = gate
        self.calls: list[tuple[str, list[ReferenceImage], AspectRatio]] = []

    async def generate(self, prompt, reference_images, aspect_ratio):
        self.calls.append((prompt, list(reference_images), aspect_ratio))
        if self.gate is not None:
            await self.gate.wait()
        index = min(len(self.calls), len(self.results)) - 1
        result = self.results[index]
        if isinstance(result, BaseException):
            raise result
        return result


class FakeNotifier:
    """Records Slack traffic.

    ``fail_posts_after`` makes later message posts fail, ``upload_error`` is
    raised by every file upload and ``lookup_error`` by every name lookup.
    """

    def __init__(
        self,
        display_name: str = "Alice",
        fail_posts_after: int | None = None,
        upload_error: Exception | None = None,
        lookup_error: Exception | None = None,
    ):
        self.display_name = display_name
        self.fail_posts_after = fail_posts_after
        self.upload_error = upload_error
        self.lookup_error = lookup_error
        self.messages: list[tuple[str, str, str | None]] = []
        self.files: list[dict] = []
        self.downloads: dict[str, bytes] = {}
        self._post_attempts = 0

    async def post_message(self, channel_id, text, thread_ts=None):
        self._post_attempts += 1
        if self.fail_posts_after is not None and self._post_attempts > self.fail_posts_after:
            raise DeliveryError("Slack chat.postMessage error: channel_not_found")
        self.messages.append((channel_id, text, thread_ts))
        return f"1700000000.{self._post_attempts:06d}"

    async def post_file(
        self, channel_id, content, filename, title, initial_comment, thread_ts=None
    ):
        if self.upload_error is not None:
            raise self.upload_error
        self.files.append(
            {
                "channel_id": channel_id,
                "content": content,
                "filename": filename,
                "title": title,
                "initial_comment": initial_comment,
                "thread_ts": thread_ts,
            }
        )

    async def lookup_display_name(self, user_id):
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.display_name

    async def download_file(self, url):
        if url not in self.downloads:
            raise DeliveryError(f"Slack file download failed (404): {url}")
        return self.downloads[url]


class FakeStorage:
    def __init__(self):
        self.persisted: list[tuple[bytes, str]] = []

    async def persist(self, content, suggested_name):
        self.persisted.append((content, suggested_name))
        filename = f"{suggested_name}-{len(self.persisted)}.png"
        return StoredImage(filename=filename, path=Path(filename), url=f"/images/{filename}")


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Keep Settings() in test mode regardless of the developer's shell."""
    monkeypatch.setenv("APP_ENV", "test")


@pytest.fixture
def template_dir(tmp_path) -> Path:
    """Directory containing a placeholder PNG for every persona template."""
    directory = tmp_path / "templates"
    directory.mkdir()
    for persona in PERSONAS.values():
        for filename in persona.template_files:
            (directory / filename).write_bytes(PNG_BYTES + filename.encode())
    return directory


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the backoff executor."""
    return []


@pytest.fixture
def executor(sleeps) -> BackoffExecutor:
    """Backoff executor that records delays instead of sleeping."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return BackoffExecutor(
        max_attempts=3,
        base_delay=2.0,
        per_attempt_timeout=5.0,
        max_jitter=1.0,
        sleep=fake_sleep,
        random_fn=lambda low, high: 0.5,
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def dispatcher(provider, notifier, storage, template_dir, executor) -> JobDispatcher:
    """Dispatcher with the default ceiling of 20 wired to in-memory fakes."""
    return JobDispatcher(
        provider=provider,
        notifier=notifier,
        storage=storage,
        templates=TemplateLibrary(template_dir),
        executor=executor,
        max_concurrent_jobs=20,
        seen_events_capacity=100,
    )
