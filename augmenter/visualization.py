"""
Visualization utilities.

This module provides:
- Box drawing on BGR images (OpenCV)
- Debug overlay comparing a source image with one of its derived images
"""

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-GUI backend to avoid tkinter threading issues
import matplotlib.pyplot as plt
import cv2

from .core.logger import get_logger

logger = get_logger(__name__)


def _class_colors(class_list):
    colors = plt.cm.Set3(np.linspace(0, 1, max(len(class_list), 1)))
    return {name: colors[i] for i, name in enumerate(class_list)}


def draw_boxes(image, boxes, class_list, thickness=2):
    """
    Draw boxes and class names on a copy of a BGR image.

    Args:
        image: BGR uint8 array
        boxes: BoundingBox sequence
        class_list: Class names, used for consistent colors

    Returns:
        New BGR array with the boxes drawn
    """
    canvas = image.copy()
    colors = _class_colors(class_list)

    for bbox in boxes:
        rgba = colors.get(bbox.class_name, (1.0, 0.0, 0.0, 1.0))
        color = tuple(int(c * 255) for c in rgba[2::-1])  # RGBA -> BGR
        x1, y1 = int(round(bbox.x)), int(round(bbox.y))
        x2, y2 = int(round(bbox.x + bbox.width)), int(round(bbox.y + bbox.height))
        cv2.rectangle(canvas, (x1, y1), (x2, y2), color, thickness)
        cv2.putText(canvas, bbox.class_name, (x1, max(y1 - 4, 10)),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.4, color, 1, cv2.LINE_AA)

    return canvas


def create_debug_annotation_overlay(source_pixels, source, derived_pixels, derived, class_list, output_path):
    """Save a side-by-side view of a source image and a derived image with their boxes."""
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(16, 8))

    panels = [
        (ax1, source_pixels, source, f"{source.id} ({len(source.boxes)} boxes)"),
        (ax2, derived_pixels, derived, f"{derived.id} ({len(derived.boxes)} boxes)"),
    ]
    colors = _class_colors(class_list)

    for ax, pixels, image, title in panels:
        ax.imshow(cv2.cvtColor(pixels, cv2.COLOR_BGR2RGB))
        ax.set_title(title)
        for idx, bbox in enumerate(image.boxes):
            color = colors.get(bbox.class_name, 'red')
            rect = plt.Rectangle((bbox.x, bbox.y), bbox.width, bbox.height,
                                 fill=False, edgecolor=color, linewidth=2, alpha=0.9)
            ax.add_patch(rect)
            ax.text(bbox.x + bbox.width / 2, bbox.y + bbox.height / 2, f"{idx}:{bbox.class_name}",
                    ha='center', va='center', fontsize=8,
                    bbox=dict(boxstyle="round,pad=0.2", facecolor='white', alpha=0.8))
        ax.set_xlim(0, pixels.shape[1])
        ax.set_ylim(pixels.shape[0], 0)
        ax.set_aspect('equal')
        ax.axis('off')

    plt.tight_layout()
    try:
        plt.savefig(str(output_path), dpi=100, bbox_inches='tight', facecolor='white')
        logger.debug(f"Saved debug overlay: {output_path}")
    finally:
        plt.close(fig)
