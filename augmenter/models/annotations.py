"""
Annotation data models.

Data classes for bounding boxes and the labeled images that carry them.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

import numpy as np

from .image_info import ImageSource


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned bounding box in pixel space.

    Format: [x, y, width, height]
    - x, y: top-left corner
    - width, height: box dimensions
    """
    id: str
    x: float
    y: float
    width: float
    height: float
    class_name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_id: str = "") -> 'BoundingBox':
        """Create from a dictionary (``className`` is accepted as an alias)."""
        class_name = data.get('class_name', data.get('className'))
        if class_name is None:
            raise KeyError("Bounding box is missing 'class_name'")
        return cls(
            id=str(data.get('id', default_id)),
            x=float(data['x']),
            y=float(data['y']),
            width=float(data['width']),
            height=float(data['height']),
            class_name=str(class_name),
        )

    @classmethod
    def from_corners(
        cls,
        template: 'BoundingBox',
        x_min: float,
        y_min: float,
        x_max: float,
        y_max: float
    ) -> 'BoundingBox':
        """Copy ``template`` (id, class) onto a new corner-defined rectangle."""
        return replace(template, x=x_min, y=y_min, width=x_max - x_min, height=y_max - y_min)

    def to_list(self) -> list[float]:
        """Convert to COCO format list."""
        return [self.x, self.y, self.width, self.height]

    def corners(self) -> np.ndarray:
        """
        Return the four corners as a (4, 2) array.

        Order: top-left, top-right, bottom-right, bottom-left.
        """
        x2 = self.x + self.width
        y2 = self.y + self.height
        return np.array([
            [self.x, self.y],
            [x2, self.y],
            [x2, y2],
            [self.x, y2],
        ], dtype=np.float64)

    def to_yolo_normalized(self, image_width: int, image_height: int) -> list[float]:
        """
        Convert to YOLO normalized format.

        YOLO format: [x_center, y_center, width, height] (all 0-1)

        Args:
            image_width: Image width in pixels
            image_height: Image height in pixels

        Returns:
            [x_center, y_center, width, height] normalized to 0-1
        """
        x_center = (self.x + self.width / 2) / image_width
        y_center = (self.y + self.height / 2) / image_height
        width_norm = self.width / image_width
        height_norm = self.height / image_height

        # Clamp to [0, 1]
        return [
            max(0.0, min(1.0, x_center)),
            max(0.0, min(1.0, y_center)),
            max(0.0, min(1.0, width_norm)),
            max(0.0, min(1.0, height_norm))
        ]

    def to_voc_bndbox(self) -> tuple[int, int, int, int]:
        """Integer (xmin, ymin, xmax, ymax), rounded half-up."""
        return (
            _round_half_up(self.x),
            _round_half_up(self.y),
            _round_half_up(self.x + self.width),
            _round_half_up(self.y + self.height),
        )

    def clamped(self, image_width: int, image_height: int) -> Optional['BoundingBox']:
        """
        Clamp the box to the image frame.

        Returns:
            The clamped box, or None if nothing of it remains inside the frame
        """
        x_min = min(max(self.x, 0.0), float(image_width))
        y_min = min(max(self.y, 0.0), float(image_height))
        x_max = min(max(self.x + self.width, 0.0), float(image_width))
        y_max = min(max(self.y + self.height, 0.0), float(image_height))

        if x_max - x_min <= 0 or y_max - y_min <= 0:
            return None
        return BoundingBox.from_corners(self, x_min, y_min, x_max, y_max)

    def is_within(self, image_width: int, image_height: int, tolerance: float = 1e-6) -> bool:
        """Check the bounds invariant against an image size."""
        return (
            self.width > 0 and
            self.height > 0 and
            self.x >= -tolerance and
            self.y >= -tolerance and
            self.x + self.width <= image_width + tolerance and
            self.y + self.height <= image_height + tolerance
        )

    @property
    def area(self) -> float:
        """Calculate bounding box area."""
        return self.width * self.height


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


@dataclass(frozen=True)
class Provenance:
    """Where a derived image came from."""
    source_id: str
    transform: str
    value: Optional[float]
    sample_index: int


@dataclass
class LabeledImage:
    """
    An image plus its ordered bounding boxes.

    Originals come from the labeling front end; derived images are produced by
    the augmentation executor and carry a ``provenance``.
    """
    id: str
    file_name: str
    source: ImageSource
    boxes: tuple[BoundingBox, ...] = field(default_factory=tuple)
    width: Optional[int] = None
    height: Optional[int] = None
    is_derived: bool = False
    provenance: Optional[Provenance] = None

    def __post_init__(self):
        self.boxes = tuple(self.boxes)
        box_ids = [b.id for b in self.boxes]
        if len(set(box_ids)) != len(box_ids):
            raise ValueError(f"Duplicate bounding box ids in image {self.id}")
        if self.width is None and self.source.array is not None:
            self.height, self.width = self.source.array.shape[:2]

    @property
    def is_labeled(self) -> bool:
        return len(self.boxes) > 0

    @property
    def stem(self) -> str:
        return self.file_name.rsplit('.', 1)[0] if '.' in self.file_name else self.file_name

    @property
    def extension(self) -> str:
        return '.' + self.file_name.rsplit('.', 1)[1].lower() if '.' in self.file_name else ''

    @property
    def has_size(self) -> bool:
        return self.width is not None and self.height is not None

    def resolve_size(self, timeout: Optional[float] = None) -> tuple[int, int]:
        """
        Make sure width/height are known, probing the source if needed.

        Returns:
            (width, height)
        """
        if not self.has_size:
            self.width, self.height = self.source.probe_size(timeout=timeout)
        return self.width, self.height

    def load(self, timeout: Optional[float] = None) -> np.ndarray:
        """Decode the pixels; also fixes width/height to the decoded size."""
        pixels = self.source.load(timeout=timeout, image_id=self.id)
        self.height, self.width = pixels.shape[:2]
        return pixels
