"""
Labeled Image Dataset Augmenter.

This package turns a set of images annotated with bounding boxes into a
larger augmented dataset and exports it as a YOLO, COCO or PascalVOC bundle.

Module Structure:
    catalog.py       - Transform catalog, specs and parameter sampling
    geometry.py      - Affine matrices and bounding box propagation
    image.py         - Pixel transforms, encoding
    pipeline.py      - Augmentation executor, run context, run guard
    splits.py        - Train/val/test partitioning
    annotations.py   - Class list, label checks, input manifest loading
    archive.py       - Bundle assembly (ZIP or directory)
    visualization.py - Debug overlays

    writers/         - Format-specific label writers
        yolo.py      - YOLO txt + classes.txt + dataset.yaml
        coco.py      - COCO annotations.json
        voc.py       - PascalVOC xml

    core/            - Core infrastructure
        config.py    - Dataclass-based configuration
        constants.py - Enums and constant values
        exceptions.py - Error taxonomy
        logger.py    - Logging utilities

    models/          - Data models
        annotations.py - BoundingBox, LabeledImage, Provenance
        image_info.py  - ImageSource, ImageInfo
"""

__version__ = "1.0.0"

from .core import (
    Config,
    load_config,
    setup_logger,
    get_logger,
    ExportFormat,
    TransformKind,
    SplitName,
    AugmenterError,
    ValidationError,
    RunInProgressError,
    DecodeError,
    EncodeError,
    FatalError,
)

from .models import (
    BoundingBox,
    LabeledImage,
    Provenance,
    ImageSource,
)

from .catalog import (
    TRANSFORM_CATALOG,
    TransformSpec,
    sample_values,
    total_operations,
)

from .annotations import (
    build_class_list,
    load_labeled_images,
)

from .pipeline import (
    AugmentationExecutor,
    RunConfig,
    RunContext,
    RunReport,
    CancellationToken,
    CallbackProgressSink,
    TqdmProgressSink,
)

from .splits import (
    SplitRatio,
    DatasetSplit,
    partition_dataset,
)

from .archive import (
    ArchiveBuilder,
    ExportReport,
    export_dataset,
)

from .writers import get_writer

__all__ = [
    "__version__",
    # Core
    "Config",
    "load_config",
    "setup_logger",
    "get_logger",
    "ExportFormat",
    "TransformKind",
    "SplitName",
    # Exceptions
    "AugmenterError",
    "ValidationError",
    "RunInProgressError",
    "DecodeError",
    "EncodeError",
    "FatalError",
    # Models
    "BoundingBox",
    "LabeledImage",
    "Provenance",
    "ImageSource",
    # Catalog
    "TRANSFORM_CATALOG",
    "TransformSpec",
    "sample_values",
    "total_operations",
    # Annotations
    "build_class_list",
    "load_labeled_images",
    # Pipeline
    "AugmentationExecutor",
    "RunConfig",
    "RunContext",
    "RunReport",
    "CancellationToken",
    "CallbackProgressSink",
    "TqdmProgressSink",
    # Splits
    "SplitRatio",
    "DatasetSplit",
    "partition_dataset",
    # Export
    "ArchiveBuilder",
    "ExportReport",
    "export_dataset",
    "get_writer",
]
