"""
Shared test fixtures.

Images are synthetic numpy arrays (written to disk with OpenCV where a file
is needed) so the tests do not depend on any dataset.
"""

import json
from pathlib import Path

import cv2
import numpy as np
import pytest

from augmenter.core.constants import TransformKind
from augmenter.catalog import TransformSpec
from augmenter.models import BoundingBox, ImageSource, LabeledImage


def make_pixels(width: int = 160, height: int = 120, seed: int = 0) -> np.ndarray:
    """BGR image with a gradient background and two solid blocks."""
    rng = np.random.default_rng(seed)
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :, 0] = np.linspace(0, 255, width, dtype=np.uint8)[None, :]
    img[:, :, 1] = np.linspace(0, 255, height, dtype=np.uint8)[:, None]
    img[:, :, 2] = rng.integers(0, 64, (height, width), dtype=np.uint8)
    img[20:50, 30:70] = (0, 0, 255)
    img[60:100, 90:140] = (255, 255, 255)
    return img


def make_box(box_id: str, x: float, y: float, w: float, h: float, class_name: str = "car") -> BoundingBox:
    return BoundingBox(id=box_id, x=x, y=y, width=w, height=h, class_name=class_name)


@pytest.fixture
def project_root() -> Path:
    """Project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sample_pixels() -> np.ndarray:
    return make_pixels()


@pytest.fixture
def make_image():
    """
    Factory for in-memory labeled images.

    Usage:
        image = make_image("img1", boxes=[("car", 10, 10, 20, 20)])
    """
    def _make(image_id="img", boxes=(("car", 30, 20, 40, 30),), width=160, height=120,
              file_name=None, seed=0):
        bboxes = [
            make_box(f"{image_id}-{i}", x, y, w, h, class_name)
            for i, (class_name, x, y, w, h) in enumerate(boxes)
        ]
        return LabeledImage(
            id=image_id,
            file_name=file_name or f"{image_id}.png",
            source=ImageSource.from_array(make_pixels(width, height, seed)),
            boxes=bboxes,
        )

    return _make


@pytest.fixture
def labeled_images(make_image):
    """Three labeled images with two classes in a known first-seen order."""
    return [
        make_image("a", boxes=[("car", 30, 20, 40, 30), ("person", 90, 60, 50, 40)], seed=1),
        make_image("b", boxes=[("person", 10, 10, 30, 60)], seed=2),
        make_image("c", boxes=[("car", 100, 50, 40, 40)], seed=3),
    ]


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    """PNG file on disk."""
    path = tmp_path / "photo.png"
    cv2.imwrite(str(path), make_pixels())
    return path


@pytest.fixture
def manifest(tmp_path: Path) -> Path:
    """JSON manifest referencing two PNG files next to it."""
    images_dir = tmp_path / "photos"
    images_dir.mkdir()
    entries = []
    for i, boxes in enumerate([
        [{"x": 30, "y": 20, "width": 40, "height": 30, "class_name": "car"}],
        [{"x": 90, "y": 60, "width": 50, "height": 40, "className": "person"},
         {"x": 5, "y": 5, "width": 20, "height": 20, "class_name": "car"}],
    ]):
        cv2.imwrite(str(images_dir / f"shot{i}.png"), make_pixels(seed=i))
        entries.append({"id": f"shot{i}", "file": f"photos/shot{i}.png", "boxes": boxes})

    path = tmp_path / "manifest.json"
    path.write_text(json.dumps({"images": entries}), encoding="utf-8")
    return path


@pytest.fixture
def basic_specs():
    """Rotation x2, horizontal flip, brightness x1: four derived images per source."""
    return (
        TransformSpec(TransformKind.ROTATION, min=-10, max=10, sample_count=2),
        TransformSpec(TransformKind.FLIP_HORIZONTAL),
        TransformSpec(TransformKind.BRIGHTNESS, min=1.2, max=1.2, sample_count=1),
        TransformSpec(TransformKind.GAUSSIAN_BLUR, enabled=False),
    )
