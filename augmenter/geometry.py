"""
Label geometry for augmentations.

This module provides:
- Affine matrices for rotation, scaling and translation (continuous coords)
- Conversion of those matrices to OpenCV's pixel-index convention
- Bounding box propagation under flips and affine maps, with clipping
  to the image frame

Box coordinates are continuous: pixel column ``i`` covers ``[i, i+1)``, so an
image of width W spans ``[0, W]``. OpenCV addresses pixel centres instead,
which is why the matrices handed to ``cv2.warpAffine`` go through
``to_pixel_matrix`` first.
"""

from typing import Iterable, Optional

import cv2
import numpy as np
from shapely.geometry import MultiPoint, box

from .core.constants import TransformFamily, TransformKind
from .models.annotations import BoundingBox


def rotation_matrix(angle: float, width: int, height: int) -> np.ndarray:
    """Counter-clockwise rotation by ``angle`` degrees about the image centre."""
    center = (width / 2.0, height / 2.0)
    return cv2.getRotationMatrix2D(center, angle, 1.0)


def scaling_matrix(factor: float, width: int, height: int) -> np.ndarray:
    """Zoom by ``factor`` about the image centre, keeping the canvas size."""
    cx, cy = width / 2.0, height / 2.0
    return np.array([
        [factor, 0.0, cx * (1.0 - factor)],
        [0.0, factor, cy * (1.0 - factor)],
    ], dtype=np.float64)


def translation_matrix(fraction: float, width: int, height: int) -> np.ndarray:
    """Shift right by ``fraction`` of the width and down by ``fraction`` of the height."""
    return np.array([
        [1.0, 0.0, fraction * width],
        [0.0, 1.0, fraction * height],
    ], dtype=np.float64)


_MATRIX_BUILDERS = {
    TransformKind.ROTATION: rotation_matrix,
    TransformKind.SCALING: scaling_matrix,
    TransformKind.TRANSLATION: translation_matrix,
}


def affine_matrix(kind: TransformKind, value: float, width: int, height: int) -> np.ndarray:
    """
    2x3 affine matrix (continuous coordinates) for a geometric kind.

    Raises:
        ValueError: If ``kind`` is not an affine transform
    """
    try:
        builder = _MATRIX_BUILDERS[TransformKind(kind)]
    except KeyError as e:
        raise ValueError(f"{kind} is not an affine transform") from e
    return builder(value, width, height)


def to_pixel_matrix(matrix: np.ndarray) -> np.ndarray:
    """
    Re-express a continuous-coordinate affine map in pixel-index coordinates.

    With ``u = i + 0.5``: ``i' = A i + (A @ [0.5, 0.5] + t - 0.5)``.
    """
    linear = matrix[:, :2]
    offset = matrix[:, 2] + linear @ np.array([0.5, 0.5]) - 0.5
    return np.column_stack([linear, offset])


def transform_points(points: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Apply a 2x3 affine matrix to an (N, 2) array of points."""
    points_homogeneous = np.column_stack([points, np.ones(len(points))])
    return (matrix @ points_homogeneous.T).T


def transform_box(
    bbox: BoundingBox,
    matrix: np.ndarray,
    image_width: int,
    image_height: int
) -> Optional[BoundingBox]:
    """
    Map a box through an affine transform.

    All four corners are transformed, the enclosing axis-aligned rectangle is
    taken and then clipped to the image frame.

    Returns:
        The transformed box, or None if it ends up entirely outside the frame
    """
    corners = transform_points(bbox.corners(), matrix)
    enclosing = box(*MultiPoint([tuple(p) for p in corners]).bounds)
    clipped = enclosing.intersection(box(0, 0, image_width, image_height))

    if clipped.is_empty or clipped.area <= 0:
        return None

    x_min, y_min, x_max, y_max = clipped.bounds
    return BoundingBox.from_corners(bbox, x_min, y_min, x_max, y_max).clamped(image_width, image_height)


def flip_box_horizontal(bbox: BoundingBox, image_width: int, image_height: int) -> Optional[BoundingBox]:
    """Mirror across the vertical centre line: ``x' = W - x - width``."""
    flipped = BoundingBox.from_corners(
        bbox,
        image_width - bbox.x - bbox.width,
        bbox.y,
        image_width - bbox.x,
        bbox.y + bbox.height,
    )
    return flipped.clamped(image_width, image_height)


def flip_box_vertical(bbox: BoundingBox, image_width: int, image_height: int) -> Optional[BoundingBox]:
    """Mirror across the horizontal centre line: ``y' = H - y - height``."""
    flipped = BoundingBox.from_corners(
        bbox,
        bbox.x,
        image_height - bbox.y - bbox.height,
        bbox.x + bbox.width,
        image_height - bbox.y,
    )
    return flipped.clamped(image_width, image_height)


def propagate_boxes(
    kind: TransformKind,
    family: TransformFamily,
    boxes: Iterable[BoundingBox],
    value: Optional[float],
    image_width: int,
    image_height: int
) -> list[BoundingBox]:
    """
    Carry bounding boxes over to a derived image.

    Pixel-only families (color, filter, occlusion, weather) keep the boxes
    as they are; flips mirror them; geometric kinds follow the affine map.
    Boxes pushed completely out of the frame are dropped.
    """
    if family == TransformFamily.FLIP:
        flip = flip_box_horizontal if kind == TransformKind.FLIP_HORIZONTAL else flip_box_vertical
        moved = [flip(b, image_width, image_height) for b in boxes]
    elif family == TransformFamily.GEOMETRIC:
        matrix = affine_matrix(kind, value, image_width, image_height)
        moved = [transform_box(b, matrix, image_width, image_height) for b in boxes]
    else:
        moved = [b.clamped(image_width, image_height) for b in boxes]

    return [b for b in moved if b is not None]
