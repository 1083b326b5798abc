"""
Image transform — bounded, recompressed JPEG derivatives via Pillow.

A raw upload at ``images/<name>`` becomes ``images/derived/<stem>.jpg``:
longest side at most ``IMAGE_MAX_DIMENSION``, never upscaled, aspect ratio
kept, re-encoded at ``IMAGE_QUALITY``. Rendering runs in a worker thread with
a bounded timeout and never leaves a partial output behind.
"""

import logging
import os
import threading
from pathlib import Path, PurePosixPath

import anyio
from PIL import Image

from travel_diary.config import Settings
from travel_diary.errors import MediaTransformError
from travel_diary.services.storage import DERIVED_IMAGES, MediaStore

logger = logging.getLogger(__name__)


def derived_ref_for(raw_ref: str) -> str:
    """Deterministic derivative location for a raw image ref."""
    return f"{DERIVED_IMAGES}/{PurePosixPath(raw_ref).stem}.jpg"


class _RenderJob:
    """Hand-off between the render thread and the awaiting task.

    Publishing the output and abandoning the job are serialized by a lock, so
    a timed-out render can never drop a file after its caller gave up.
    """

    def __init__(self, dest: Path):
        self.dest = dest
        self.tmp = dest.with_name(dest.name + ".part")
        self._lock = threading.Lock()
        self._abandoned = False

    def publish(self) -> None:
        with self._lock:
            if self._abandoned:
                self.tmp.unlink(missing_ok=True)
                return
            os.replace(self.tmp, self.dest)

    def abandon(self) -> None:
        with self._lock:
            self._abandoned = True
            self.dest.unlink(missing_ok=True)


class ImageTransformer:
    def __init__(self, settings: Settings, store: MediaStore):
        self.store = store
        self.max_dimension = settings.IMAGE_MAX_DIMENSION
        self.quality = settings.IMAGE_QUALITY
        self.timeout = settings.TRANSFORM_TIMEOUT_SECONDS

    async def transform(self, raw_ref: str) -> str:
        """Render the derivative of ``raw_ref`` and return its ref."""
        dest_ref = derived_ref_for(raw_ref)
        src = self.store.path_for(raw_ref)
        job = _RenderJob(self.store.path_for(dest_ref))
        job.dest.parent.mkdir(parents=True, exist_ok=True)

        try:
            with anyio.fail_after(self.timeout):
                await anyio.to_thread.run_sync(
                    self._render, src, job, abandon_on_cancel=True
                )
        except TimeoutError as e:
            job.abandon()
            logger.warning(f"Image transform timed out for {raw_ref}")
            raise MediaTransformError(f"Timed out processing image {raw_ref}") from e
        except BaseException:
            job.abandon()
            raise
        return dest_ref

    def _render(self, src: Path, job: _RenderJob) -> None:
        try:
            with Image.open(src) as img:
                out = img.convert("RGB")
                out.thumbnail((self.max_dimension, self.max_dimension))
                out.save(job.tmp, format="JPEG", optimize=True, quality=self.quality)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            job.tmp.unlink(missing_ok=True)
            logger.warning(f"Image transform failed for {src.name}: {e}")
            raise MediaTransformError(f"Could not process image {src.name}") from e
        job.publish()
