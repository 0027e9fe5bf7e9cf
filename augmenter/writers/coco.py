"""
COCO format annotation writer.

One ``annotations.json`` per split. Image ids are 1-based positions in the
split; annotation ids start at 1 and strictly increase within the split.
"""

import json
from typing import Any, Sequence

from ..annotations import create_categories
from ..core.constants import (
    COCO_ANNOTATIONS_FILE,
    COCO_SUPERCATEGORY,
    DATASET_CONTRIBUTOR,
    DATASET_DESCRIPTION,
    ExportFormat,
)
from ..models.image_info import ImageInfo
from ..splits import DatasetSplit
from .base import Artifact, DatasetWriter


class COCOWriter(DatasetWriter):
    """Writes ``{split}/annotations.json``."""

    format = ExportFormat.COCO

    def build_document(self, split: DatasetSplit, class_list: Sequence[str]) -> dict[str, Any]:
        images = []
        annotations = []
        annotation_id = 1

        for image_id, image in enumerate(split.images, start=1):
            images.append(ImageInfo(
                image_id=image_id,
                file_name=image.file_name,
                width=image.width,
                height=image.height,
            ).to_coco_dict())

            for bbox in image.boxes:
                annotations.append({
                    "id": annotation_id,
                    "image_id": image_id,
                    "category_id": self.class_id(class_list, bbox, image),
                    "bbox": bbox.to_list(),
                    "area": bbox.area,
                    "iscrowd": 0,
                })
                annotation_id += 1

        return {
            "info": {
                "description": f"{DATASET_DESCRIPTION} ({split.name.value})",
                "version": "1.0",
                "contributor": DATASET_CONTRIBUTOR,
            },
            "licenses": [],
            "images": images,
            "categories": create_categories(class_list, COCO_SUPERCATEGORY),
            "annotations": annotations,
        }

    def export(self, split: DatasetSplit, class_list: Sequence[str]) -> list[Artifact]:
        document = self.build_document(split, class_list)
        self.logger.debug(
            f"COCO: {len(document['images'])} images, "
            f"{len(document['annotations'])} annotations for {split.name.value}"
        )
        path = f"{split.name.value}/{COCO_ANNOTATIONS_FILE}"
        return [Artifact.from_text(path, json.dumps(document, indent=2, ensure_ascii=False))]
