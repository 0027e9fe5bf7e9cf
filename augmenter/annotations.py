"""
Annotation handling shared by the executor and the exporters.

This module provides:
- Class list discovery (first-seen order across the whole image set)
- Label counting and eligibility filtering
- Bounds verification of bounding boxes
- Loading labeled images from a JSON input manifest
"""

import json
from pathlib import Path
from typing import Iterable, Sequence

from .core.constants import ValidationMessages
from .core.exceptions import ValidationError
from .core.logger import get_logger
from .models.annotations import BoundingBox, LabeledImage
from .models.image_info import ImageSource

logger = get_logger(__name__)


def build_class_list(images: Iterable[LabeledImage]) -> list[str]:
    """
    Distinct class names in first-seen order.

    Walks images in order and, inside each image, boxes in order. The
    position of a name in the returned list is its class id.
    """
    seen: dict[str, None] = {}
    for image in images:
        for bbox in image.boxes:
            if bbox.class_name not in seen:
                seen[bbox.class_name] = None
    return list(seen)


def create_categories(class_list: Sequence[str], supercategory: str = "object") -> list[dict]:
    """
    Create COCO categories list.

    Returns:
        List of category dictionaries, id = index in ``class_list``
    """
    return [
        {"id": class_id, "name": name, "supercategory": supercategory}
        for class_id, name in enumerate(class_list)
    ]


def labeled_only(images: Iterable[LabeledImage]) -> list[LabeledImage]:
    """Images that carry at least one bounding box."""
    return [image for image in images if image.is_labeled]


def count_labels(images: Iterable[LabeledImage]) -> int:
    return sum(len(image.boxes) for image in images)


def verify_boxes_within_bounds(image: LabeledImage) -> list[str]:
    """
    Check every box of an image against its frame.

    Returns:
        Human-readable issues, empty if all boxes are valid
    """
    if not image.has_size:
        return [f"{image.id}: image size unknown"]

    issues = []
    for bbox in image.boxes:
        if not bbox.is_within(image.width, image.height):
            issues.append(
                f"{image.id}: box {bbox.id} ({bbox.x:.1f}, {bbox.y:.1f}, "
                f"{bbox.width:.1f}, {bbox.height:.1f}) outside {image.width}x{image.height}"
            )
    return issues


def load_labeled_images(manifest_path) -> list[LabeledImage]:
    """
    Load original labeled images from a JSON manifest.

    Manifest layout::

        {"images": [{"id": "img1", "file": "photos/a.jpg",
                     "boxes": [{"x": 10, "y": 20, "width": 50, "height": 40,
                                "class_name": "car"}]}]}

    Image paths are resolved relative to the manifest. Pixels are not decoded
    here.

    Raises:
        ValidationError: If the manifest is missing or malformed
    """
    path = Path(manifest_path)
    if not path.exists():
        raise ValidationError(ValidationMessages.FILE_NOT_FOUND.format(path=path))

    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    images = []
    try:
        for index, entry in enumerate(data['images']):
            file_path = Path(entry['file'])
            if not file_path.is_absolute():
                file_path = path.parent / file_path
            image_id = str(entry.get('id', file_path.stem))
            boxes = tuple(
                BoundingBox.from_dict(box_data, default_id=f"{image_id}-{box_index}")
                for box_index, box_data in enumerate(entry.get('boxes', []))
            )
            images.append(LabeledImage(
                id=image_id,
                file_name=entry.get('file_name', file_path.name),
                source=ImageSource.from_path(file_path),
                boxes=boxes,
                width=entry.get('width'),
                height=entry.get('height'),
            ))
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Malformed input manifest {path}: {e}") from e

    logger.info(f"Loaded {len(images)} images ({count_labels(images)} labels) from {path}")
    return images
