"""
Common writer interface.

Writers are pure: they turn one split plus the global class list into named
byte artifacts and never touch the filesystem. The archive builder decides
where the artifacts end up.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from ..core.constants import IMAGES_DIR, ExportFormat, SplitName
from ..core.exceptions import EncodeError
from ..core.logger import LoggerMixin
from ..models.annotations import BoundingBox, LabeledImage
from ..splits import DatasetSplit


@dataclass(frozen=True)
class Artifact:
    """A file to be placed in the bundle, path relative to the bundle root."""
    path: str
    data: bytes

    @classmethod
    def from_text(cls, path: str, text: str) -> 'Artifact':
        return cls(path=path, data=text.encode('utf-8'))


class DatasetWriter(ABC, LoggerMixin):
    """Base class for the YOLO, COCO and PascalVOC writers."""

    format: ExportFormat

    @abstractmethod
    def export(self, split: DatasetSplit, class_list: Sequence[str]) -> list[Artifact]:
        """Label artifacts for one split."""

    def export_globals(self, class_list: Sequence[str]) -> list[Artifact]:
        """Artifacts placed once at the bundle root (none by default)."""
        return []

    def image_path(self, split_name: SplitName, image: LabeledImage) -> str:
        return f"{SplitName(split_name).value}/{IMAGES_DIR}/{image.file_name}"

    def class_id(self, class_list: Sequence[str], bbox: BoundingBox, image: LabeledImage) -> int:
        try:
            return list(class_list).index(bbox.class_name)
        except ValueError:
            raise EncodeError(
                f"Class '{bbox.class_name}' is not in the class list",
                image_id=image.id,
            ) from None
