"""
YOLO format annotation writer.

This module handles:
- Box to YOLO conversion (normalized center format)
- Per-image label files (.txt)
- Bundle-level classes.txt and dataset.yaml

YOLO bbox format:
    class_id x_center y_center width height (normalized 0-1, 6 decimals)
"""

from typing import Sequence

import yaml

from ..core.constants import (
    CLASSES_FILE,
    DATASET_YAML_FILE,
    IMAGES_DIR,
    LABELS_DIR,
    SPLIT_ORDER,
    YOLO_PRECISION,
    ExportFormat,
)
from ..models.annotations import BoundingBox, LabeledImage
from ..splits import DatasetSplit
from .base import Artifact, DatasetWriter


def yolo_line(class_id: int, bbox: BoundingBox, image_width: int, image_height: int) -> str:
    """
    Format one box as a YOLO label line.

    Args:
        class_id: Index of the box's class in the class list
        bbox: Box in pixel coordinates
        image_width: Image width in pixels
        image_height: Image height in pixels
    """
    values = bbox.to_yolo_normalized(image_width, image_height)
    coords = ' '.join(f"{v:.{YOLO_PRECISION}f}" for v in values)
    return f"{class_id} {coords}"


def parse_yolo_line(line: str, image_width: int, image_height: int) -> tuple[int, list[float]]:
    """
    Inverse of ``yolo_line``.

    Returns:
        (class_id, [x, y, width, height]) in pixels
    """
    parts = line.split()
    class_id = int(parts[0])
    x_center, y_center, width, height = (float(p) for p in parts[1:5])
    w = width * image_width
    h = height * image_height
    return class_id, [x_center * image_width - w / 2, y_center * image_height - h / 2, w, h]


class YOLOWriter(DatasetWriter):
    """
    Writes ``{split}/labels/{stem}.txt`` per image.

    Bundle structure:
    - classes.txt     : class names, one per line, order = class_id
    - dataset.yaml    : dataset configuration for training
    - {split}/images/ : images
    - {split}/labels/ : one .txt per image
    """

    format = ExportFormat.YOLO

    def export(self, split: DatasetSplit, class_list: Sequence[str]) -> list[Artifact]:
        artifacts = []
        for image in split.images:
            lines = [
                yolo_line(self.class_id(class_list, bbox, image), bbox, image.width, image.height)
                for bbox in image.boxes
            ]
            path = f"{split.name.value}/{LABELS_DIR}/{image.stem}.txt"
            artifacts.append(Artifact.from_text(path, '\n'.join(lines) + '\n' if lines else ''))

        self.logger.debug(f"YOLO: {len(artifacts)} label files for {split.name.value}")
        return artifacts

    def export_globals(self, class_list: Sequence[str]) -> list[Artifact]:
        return [
            Artifact.from_text(CLASSES_FILE, '\n'.join(class_list)),
            Artifact.from_text(DATASET_YAML_FILE, self.dataset_yaml(class_list)),
        ]

    @staticmethod
    def dataset_yaml(class_list: Sequence[str]) -> str:
        """Training configuration with paths relative to the bundle root."""
        config = {'path': '.'}
        for split_name in SPLIT_ORDER:
            config[split_name.value] = f"{split_name.value}/{IMAGES_DIR}"
        config['nc'] = len(class_list)
        config['names'] = {class_id: name for class_id, name in enumerate(class_list)}

        header = "# YOLO Dataset Configuration\n# Paths are relative to this file\n\n"
        return header + yaml.safe_dump(config, sort_keys=False, allow_unicode=True)


def read_yolo_labels(text: str, image: LabeledImage, class_list: Sequence[str]) -> list[BoundingBox]:
    """Parse a label file back into boxes (used to verify exports)."""
    boxes = []
    for index, line in enumerate(line for line in text.splitlines() if line.strip()):
        class_id, (x, y, w, h) = parse_yolo_line(line, image.width, image.height)
        boxes.append(BoundingBox(
            id=f"{image.id}-{index}",
            x=x, y=y, width=w, height=h,
            class_name=class_list[class_id],
        ))
    return boxes
