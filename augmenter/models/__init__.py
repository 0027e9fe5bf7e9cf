"""
Data models for the dataset augmenter.

This package contains dataclasses and type definitions for
annotations, image metadata, and pixel sources.
"""

from .annotations import BoundingBox, LabeledImage, Provenance
from .image_info import ImageInfo, ImageSource

__all__ = [
    "BoundingBox",
    "LabeledImage",
    "Provenance",
    "ImageInfo",
    "ImageSource",
]
