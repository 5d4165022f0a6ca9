import asyncio
import random

import pytest

from memberhub.services.gallery import GalleryUnavailableError, list_images, pick_random_image


def test_list_images_filters_by_extension(public_dir):
    (public_dir / "photo.JPEG").write_bytes(b"x")
    (public_dir / "archive.png.zip").write_bytes(b"x")
    (public_dir / "nested.png").mkdir()

    assert list_images(public_dir) == ["cat.gif", "dog.GIF", "photo.JPEG"]


def test_list_images_raises_when_directory_is_unreadable(tmp_path):
    with pytest.raises(GalleryUnavailableError):
        list_images(tmp_path / "missing")


def test_pick_random_image_returns_listed_file(public_dir):
    image = asyncio.run(pick_random_image(public_dir, rng=random.Random(7)))
    assert image in {"cat.gif", "dog.GIF"}


def test_pick_random_image_covers_every_image(public_dir):
    rng = random.Random(1)
    seen = {asyncio.run(pick_random_image(public_dir, rng=rng)) for _ in range(50)}
    assert seen == {"cat.gif", "dog.GIF"}


def test_pick_random_image_with_no_images(tmp_path):
    (tmp_path / "readme.txt").write_text("hi", encoding="utf-8")
    assert asyncio.run(pick_random_image(tmp_path)) is None
