"""
Constants and enumerations for the dataset augmenter.

This module contains all magic strings, numbers, and enums used throughout
the application to ensure consistency and type safety.
"""

from enum import Enum
from typing import Final


# ============================================================================
# Enumerations
# ============================================================================

class ExportFormat(str, Enum):
    """Supported output dataset formats."""
    YOLO = "yolo"
    COCO = "coco"
    PASCAL_VOC = "pascal_voc"


class TransformFamily(str, Enum):
    """Groups of transforms that share a label-adjustment rule."""
    GEOMETRIC = "geometric"
    FLIP = "flip"
    COLOR = "color"
    FILTER = "filter"
    OCCLUSION = "occlusion"
    WEATHER = "weather"


class TransformKind(str, Enum):
    """Every augmentation the catalog knows about."""
    # Geometric
    ROTATION = "rotation"
    SCALING = "scaling"
    TRANSLATION = "translation"
    FLIP_HORIZONTAL = "flip_horizontal"
    FLIP_VERTICAL = "flip_vertical"
    # Color
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATION = "saturation"
    HUE = "hue"
    GAMMA = "gamma"
    # Noise / filter
    GAUSSIAN_BLUR = "gaussian_blur"
    GAUSSIAN_NOISE = "gaussian_noise"
    SALT_PEPPER_NOISE = "salt_pepper_noise"
    SHARPEN = "sharpen"
    # Occlusion
    CUTOUT = "cutout"
    # Weather
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"


class ParameterMode(str, Enum):
    """How a transform's parameter values are produced."""
    RANGE = "range"
    TOGGLE = "toggle"
    INTENSITY = "intensity"


class SplitName(str, Enum):
    """Dataset partitions."""
    TRAIN = "train"
    VAL = "val"
    TEST = "test"


class InterpolationMethod(str, Enum):
    """Image interpolation methods."""
    NEAREST = "nearest"
    BILINEAR = "bilinear"
    CUBIC = "cubic"


# ============================================================================
# File and Path Constants
# ============================================================================

DEFAULT_CONFIG_PATH: Final[str] = "configs/default.yaml"
DEFAULT_OUTPUT_PATH: Final[str] = "output/dataset.zip"

# Bundle entries
IMAGES_DIR: Final[str] = "images"
LABELS_DIR: Final[str] = "labels"
CLASSES_FILE: Final[str] = "classes.txt"
DATASET_YAML_FILE: Final[str] = "dataset.yaml"
COCO_ANNOTATIONS_FILE: Final[str] = "annotations.json"
DATASET_INFO_FILE: Final[str] = "dataset_info.json"
README_FILE: Final[str] = "README.md"

# File extensions
SUPPORTED_IMAGE_FORMATS: Final[tuple] = ('.png', '.jpg', '.jpeg', '.bmp', '.tiff', '.webp')
DEFAULT_IMAGE_FORMAT: Final[str] = '.jpg'

SPLIT_ORDER: Final[tuple] = (SplitName.TRAIN, SplitName.VAL, SplitName.TEST)


# ============================================================================
# Processing Constants
# ============================================================================

DEFAULT_DECODE_TIMEOUT: Final[float] = 10.0
DEFAULT_MAX_WORKERS: Final[int] = 1
DEFAULT_JPEG_QUALITY: Final[int] = 90
DEFAULT_FILL_VALUE: Final[int] = 0

DEFAULT_SPLIT_PERCENTS: Final[tuple] = (70, 20, 10)

# Dataset metadata
DATASET_DESCRIPTION: Final[str] = "Augmented object detection dataset"
DATASET_CONTRIBUTOR: Final[str] = "dataset-augmenter"
VOC_DATABASE: Final[str] = "dataset-augmenter"
COCO_SUPERCATEGORY: Final[str] = "object"
IMAGE_DEPTH: Final[int] = 3

# Coordinate normalization
YOLO_PRECISION: Final[int] = 6


# ============================================================================
# Validation Messages
# ============================================================================

class ValidationMessages:
    """Standard validation error messages."""
    INVALID_FORMAT = "Invalid export format: {format}. Must be one of: {options}"
    INVALID_TRANSFORM = "Invalid transform kind: {kind}. Must be one of: {options}"
    INVALID_PERCENT = "Split percentage '{name}' must be between 0 and 100, got: {value}"
    INVALID_PERCENT_SUM = "Split percentages must sum to 100, got: {total}"
    INVALID_PERCENT_TYPE = "Split percentage '{name}' must be a whole number, got: {value!r}"
    INVALID_SAMPLE_COUNT = "sample_count must be at least 1, got: {count}"
    INVALID_RANGE = "{kind}: min ({min}) must not exceed max ({max})"
    OUT_OF_DOMAIN = "{kind}: value {value} outside allowed domain [{low}, {high}]"
    NO_ENABLED_TRANSFORMS = "At least one augmentation must be enabled"
    NO_ELIGIBLE_IMAGES = "No labeled images available for processing"
    RUN_IN_PROGRESS = "Another augmentation or export run is already active"
    FILE_NOT_FOUND = "File not found: {path}"
    INVALID_WORKERS = "max_workers must be positive, got: {count}"
    INVALID_TIMEOUT = "decode_timeout must be positive, got: {timeout}"


# ============================================================================
# Logging Configuration
# ============================================================================

LOG_FORMAT: Final[str] = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT: Final[str] = '%Y-%m-%d %H:%M:%S'
DEFAULT_LOG_LEVEL: Final[str] = 'INFO'
