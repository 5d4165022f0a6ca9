"""Random image selection from the public directory."""
from __future__ import annotations

import logging
import random
import re
from pathlib import Path

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

IMAGE_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif)$", re.IGNORECASE)


class GalleryUnavailableError(RuntimeError):
    """Raised when the image directory cannot be listed."""


def list_images(directory: Path) -> list[str]:
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise GalleryUnavailableError(f"Cannot read image directory {directory}") from exc
    return sorted(entry.name for entry in entries if entry.is_file() and IMAGE_PATTERN.search(entry.name))


async def pick_random_image(directory: Path, rng: random.Random | None = None) -> str | None:
    images = await run_in_threadpool(list_images, directory)
    if not images:
        logger.warning("No images found in %s", directory)
        return None
    return (rng or random).choice(images)
