"""
PascalVOC format annotation writer.

One ``{split}/labels/{stem}.xml`` per image. Box corners are rounded half-up
to integer pixels.
"""

import xml.etree.ElementTree as ET
from typing import Sequence

from ..core.constants import IMAGE_DEPTH, IMAGES_DIR, LABELS_DIR, VOC_DATABASE, ExportFormat
from ..models.annotations import LabeledImage
from ..splits import DatasetSplit
from .base import Artifact, DatasetWriter


def _text(parent: ET.Element, tag: str, value) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = str(value)
    return element


class PascalVOCWriter(DatasetWriter):
    """Writes ``{split}/labels/{stem}.xml``."""

    format = ExportFormat.PASCAL_VOC

    def build_annotation(self, image: LabeledImage, class_list: Sequence[str]) -> ET.Element:
        root = ET.Element("annotation")
        _text(root, "folder", IMAGES_DIR)
        _text(root, "filename", image.file_name)
        _text(root, "path", image.file_name)

        source = ET.SubElement(root, "source")
        _text(source, "database", VOC_DATABASE)

        size = ET.SubElement(root, "size")
        _text(size, "width", image.width)
        _text(size, "height", image.height)
        _text(size, "depth", IMAGE_DEPTH)

        _text(root, "segmented", 0)

        for bbox in image.boxes:
            # Unknown classes are rejected even though VOC stores names
            self.class_id(class_list, bbox, image)

            obj = ET.SubElement(root, "object")
            _text(obj, "name", bbox.class_name)
            _text(obj, "pose", "Unspecified")
            _text(obj, "truncated", 0)
            _text(obj, "difficult", 0)

            xmin, ymin, xmax, ymax = bbox.to_voc_bndbox()
            bndbox = ET.SubElement(obj, "bndbox")
            _text(bndbox, "xmin", xmin)
            _text(bndbox, "ymin", ymin)
            _text(bndbox, "xmax", xmax)
            _text(bndbox, "ymax", ymax)

        return root

    def export(self, split: DatasetSplit, class_list: Sequence[str]) -> list[Artifact]:
        artifacts = []
        for image in split.images:
            root = self.build_annotation(image, class_list)
            ET.indent(root, space="  ")
            data = ET.tostring(root, encoding="utf-8", xml_declaration=True)
            artifacts.append(Artifact(f"{split.name.value}/{LABELS_DIR}/{image.stem}.xml", data))

        self.logger.debug(f"PascalVOC: {len(artifacts)} label files for {split.name.value}")
        return artifacts
