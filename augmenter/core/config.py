"""
Configuration management with validation.

Loads and validates YAML configuration files, providing type-safe
access to configuration parameters.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
import yaml

from .constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_DECODE_TIMEOUT,
    DEFAULT_FILL_VALUE,
    DEFAULT_JPEG_QUALITY,
    DEFAULT_MAX_WORKERS,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_SPLIT_PERCENTS,
    SUPPORTED_IMAGE_FORMATS,
    ExportFormat,
    InterpolationMethod,
    ValidationMessages,
)
from .exceptions import ValidationError
from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class OutputConfig:
    """Output bundle configuration."""
    format: ExportFormat = ExportFormat.YOLO
    path: str = DEFAULT_OUTPUT_PATH
    keep_partial: bool = False
    reencode: bool = False
    image_format: Optional[str] = None
    jpeg_quality: int = DEFAULT_JPEG_QUALITY

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'OutputConfig':
        """Create from dictionary."""
        export_format = data.get('format', 'yolo')
        try:
            export_format = ExportFormat(export_format)
        except ValueError:
            raise ValidationError(ValidationMessages.INVALID_FORMAT.format(
                format=export_format, options=', '.join(f.value for f in ExportFormat)
            )) from None

        image_format = data.get('image_format')
        if image_format and not image_format.startswith('.'):
            image_format = f".{image_format}"

        return cls(
            format=export_format,
            path=data.get('path', DEFAULT_OUTPUT_PATH),
            keep_partial=data.get('keep_partial', False),
            reencode=data.get('reencode', False),
            image_format=image_format.lower() if image_format else None,
            jpeg_quality=data.get('jpeg_quality', DEFAULT_JPEG_QUALITY),
        )

    def validate(self) -> None:
        if self.image_format and self.image_format not in SUPPORTED_IMAGE_FORMATS:
            raise ValidationError(
                f"Unsupported image_format {self.image_format}, expected one of {SUPPORTED_IMAGE_FORMATS}"
            )
        if not 0 <= self.jpeg_quality <= 100:
            raise ValidationError(f"jpeg_quality must be between 0 and 100, got {self.jpeg_quality}")


@dataclass
class SplitConfig:
    """Train/val/test split configuration (integer percentages)."""
    train: int = DEFAULT_SPLIT_PERCENTS[0]
    val: int = DEFAULT_SPLIT_PERCENTS[1]
    test: int = DEFAULT_SPLIT_PERCENTS[2]
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'SplitConfig':
        """Create from dictionary."""
        return cls(
            train=data.get('train', DEFAULT_SPLIT_PERCENTS[0]),
            val=data.get('val', DEFAULT_SPLIT_PERCENTS[1]),
            test=data.get('test', DEFAULT_SPLIT_PERCENTS[2]),
            seed=data.get('seed'),
        )

    def to_ratio(self):
        """SplitRatio for the partitioner (validates the percentages)."""
        from ..splits import SplitRatio
        return SplitRatio(train=self.train, val=self.val, test=self.test)


@dataclass
class PerformanceConfig:
    """Performance configuration."""
    max_workers: int = DEFAULT_MAX_WORKERS
    decode_timeout: Optional[float] = DEFAULT_DECODE_TIMEOUT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'PerformanceConfig':
        """Create from dictionary."""
        max_workers = data.get('max_workers', DEFAULT_MAX_WORKERS)
        if max_workers <= 0:
            raise ValidationError(ValidationMessages.INVALID_WORKERS.format(count=max_workers))
        decode_timeout = data.get('decode_timeout', DEFAULT_DECODE_TIMEOUT)
        if decode_timeout is not None and decode_timeout <= 0:
            raise ValidationError(ValidationMessages.INVALID_TIMEOUT.format(timeout=decode_timeout))
        return cls(max_workers=max_workers, decode_timeout=decode_timeout)


@dataclass
class AugmentationConfig:
    """Transform list plus rendering options shared by all transforms."""
    transforms: list = field(default_factory=list)
    seed: Optional[int] = None
    interpolation: InterpolationMethod = InterpolationMethod.BILINEAR
    fill_value: int = DEFAULT_FILL_VALUE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'AugmentationConfig':
        """Create from dictionary."""
        from ..catalog import specs_from_config
        return cls(
            transforms=specs_from_config(data.get('transforms', [])),
            seed=data.get('seed'),
            interpolation=InterpolationMethod(data.get('interpolation', 'bilinear')),
            fill_value=data.get('fill_value', DEFAULT_FILL_VALUE),
        )


@dataclass
class Config:
    """Main configuration class."""
    input_manifest: Optional[str] = None
    output: OutputConfig = field(default_factory=OutputConfig)
    split: SplitConfig = field(default_factory=SplitConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    augmentation: AugmentationConfig = field(default_factory=AugmentationConfig)
    preview_dir: Optional[str] = None

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ValidationError: If any section is invalid
        """
        self.output.validate()
        self.split.to_ratio()

        if self.input_manifest is not None and not Path(self.input_manifest).exists():
            raise ValidationError(ValidationMessages.FILE_NOT_FOUND.format(path=self.input_manifest))

        if not any(spec.enabled for spec in self.augmentation.transforms):
            logger.warning("No augmentation is enabled; only originals can be exported")

        logger.info("Configuration validated successfully")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Config':
        """Create Config from dictionary."""
        config = cls(
            input_manifest=data.get('input_manifest'),
            output=OutputConfig.from_dict(data.get('output') or {}),
            split=SplitConfig.from_dict(data.get('split') or {}),
            performance=PerformanceConfig.from_dict(data.get('performance') or {}),
            augmentation=AugmentationConfig.from_dict(data.get('augmentation') or {}),
            preview_dir=data.get('preview_dir'),
        )
        config.validate()
        return config

    def to_run_config(self):
        """Immutable snapshot handed to the augmentation executor."""
        from ..pipeline import RunConfig
        return RunConfig(
            specs=tuple(self.augmentation.transforms),
            seed=self.augmentation.seed,
            decode_timeout=self.performance.decode_timeout,
            max_workers=self.performance.max_workers,
            interpolation=self.augmentation.interpolation,
            fill_value=self.augmentation.fill_value,
            image_format=self.output.image_format,
            jpeg_quality=self.output.jpeg_quality,
            keep_partial=self.output.keep_partial,
        )


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Validated Config object

    Raises:
        ValidationError: If the file is missing or the configuration is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise ValidationError(ValidationMessages.FILE_NOT_FOUND.format(path=config_path))

    logger.info(f"Loading configuration from: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError(f"Configuration {config_path} must be a mapping, got {type(data).__name__}")

    # Relative manifest paths are resolved against the config file
    manifest = data.get('input_manifest')
    if manifest and not Path(manifest).is_absolute():
        data['input_manifest'] = str(path.parent / manifest)

    config = Config.from_dict(data)
    enabled = sum(1 for spec in config.augmentation.transforms if spec.enabled)
    logger.info(f"Configuration loaded: {enabled} enabled transforms, "
                f"format {config.output.format.value}")

    return config
