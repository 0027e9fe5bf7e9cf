"""
Dataset writers.

Each writer converts a split into label artifacts for one output format.
"""

from ..core.constants import ExportFormat, ValidationMessages
from ..core.exceptions import ValidationError
from .base import Artifact, DatasetWriter
from .coco import COCOWriter
from .voc import PascalVOCWriter
from .yolo import YOLOWriter, parse_yolo_line, read_yolo_labels, yolo_line

_WRITERS = {
    ExportFormat.YOLO: YOLOWriter,
    ExportFormat.COCO: COCOWriter,
    ExportFormat.PASCAL_VOC: PascalVOCWriter,
}


def get_writer(export_format) -> DatasetWriter:
    """
    Writer instance for a format name or ExportFormat.

    Raises:
        ValidationError: If the format is unknown
    """
    try:
        export_format = ExportFormat(export_format)
    except ValueError:
        raise ValidationError(ValidationMessages.INVALID_FORMAT.format(
            format=export_format,
            options=', '.join(f.value for f in ExportFormat),
        )) from None
    return _WRITERS[export_format]()


__all__ = [
    'Artifact',
    'DatasetWriter',
    'YOLOWriter',
    'COCOWriter',
    'PascalVOCWriter',
    'get_writer',
    'yolo_line',
    'parse_yolo_line',
    'read_yolo_labels',
]
