"""
Augmentation pipeline.

This is the main processing module that turns original labeled images into
derived labeled images:

1. Validate the run (at least one enabled transform, at least one labeled image)
2. For every eligible image: decode (bounded by a timeout), render each sample
   of each enabled transform into a new buffer, carry the boxes over, encode
3. Report progress after every image, stop early on cancellation

Only one augmentation or export run may be active at a time; see
``exclusive_run``. Failures are local: an image that cannot be decoded, or a
sample that cannot be rendered/encoded, is logged and skipped.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Optional

import cv2
import numpy as np
from tqdm import tqdm

from .catalog import TransformSpec, enabled_specs, sample_count, sample_values, total_operations
from .core.constants import (
    DEFAULT_DECODE_TIMEOUT,
    DEFAULT_FILL_VALUE,
    DEFAULT_IMAGE_FORMAT,
    DEFAULT_JPEG_QUALITY,
    DEFAULT_MAX_WORKERS,
    SUPPORTED_IMAGE_FORMATS,
    InterpolationMethod,
    TransformKind,
    ValidationMessages,
)
from .core.exceptions import (
    DecodeError,
    EncodeError,
    FatalError,
    RunInProgressError,
    ValidationError,
)
from .core.logger import LoggerMixin
from .geometry import propagate_boxes
from .image import encode_image, render_transform
from .models.annotations import LabeledImage, Provenance
from .models.image_info import ImageSource


# =============================================================================
# Run guard
# =============================================================================

_run_lock = threading.Lock()


@contextmanager
def exclusive_run():
    """
    Hold the process-wide run slot for the duration of the block.

    Raises:
        RunInProgressError: If another augmentation or export run is active
    """
    if not _run_lock.acquire(blocking=False):
        raise RunInProgressError(ValidationMessages.RUN_IN_PROGRESS)
    try:
        yield
    finally:
        _run_lock.release()


def is_run_active() -> bool:
    return _run_lock.locked()


# =============================================================================
# Run context
# =============================================================================

class CancellationToken:
    """Cooperative cancellation flag, checked between images."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class ProgressSink:
    """Receives monotonically increasing ``(completed, total)`` updates."""

    def start(self, total: int) -> None:
        pass

    def update(self, completed: int, total: int) -> None:
        pass

    def close(self) -> None:
        pass


class CallbackProgressSink(ProgressSink):
    """Forwards progress as a percentage (0-100) to a callback."""

    def __init__(self, on_progress: Callable[[float], None]):
        self.on_progress = on_progress

    def update(self, completed: int, total: int) -> None:
        percent = 100.0 if total == 0 else completed / total * 100.0
        self.on_progress(percent)


class TqdmProgressSink(ProgressSink):
    """Progress bar for command-line runs."""

    def __init__(self, desc: str = "Augmenting", unit: str = "img"):
        self.desc = desc
        self.unit = unit
        self._bar = None

    def start(self, total: int) -> None:
        self._bar = tqdm(total=total, desc=self.desc, unit=self.unit)

    def update(self, completed: int, total: int) -> None:
        if self._bar is not None:
            self._bar.update(completed - self._bar.n)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


@dataclass(frozen=True)
class RunConfig:
    """
    Immutable snapshot of everything a run reads.

    Attributes:
        specs: Transform specs (disabled ones are ignored)
        seed: Seed for stochastic transforms; None draws fresh entropy
        decode_timeout: Seconds allowed per image decode (None = unbounded)
        max_workers: Images processed concurrently
        interpolation: Interpolation for geometric warps
        fill_value: Fill for pixels uncovered by warps or cutout
        image_format: Extension for derived images; None keeps the source's
        jpeg_quality: JPEG quality for derived images
        keep_partial: Hand back already derived images if the run aborts
    """
    specs: tuple[TransformSpec, ...] = ()
    seed: Optional[int] = None
    decode_timeout: Optional[float] = DEFAULT_DECODE_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    interpolation: InterpolationMethod = InterpolationMethod.BILINEAR
    fill_value: int = DEFAULT_FILL_VALUE
    image_format: Optional[str] = None
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    keep_partial: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'specs', tuple(self.specs))
        object.__setattr__(self, 'interpolation', InterpolationMethod(self.interpolation))
        if self.max_workers < 1:
            raise ValidationError(ValidationMessages.INVALID_WORKERS.format(count=self.max_workers))
        if self.decode_timeout is not None and self.decode_timeout <= 0:
            raise ValidationError(ValidationMessages.INVALID_TIMEOUT.format(timeout=self.decode_timeout))


@dataclass
class RunContext:
    """Configuration snapshot, cancellation token and progress sink for one run."""
    config: RunConfig
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    progress: ProgressSink = field(default_factory=ProgressSink)


@dataclass(frozen=True)
class Failure:
    """Diagnostic for one skipped image or derived output."""
    image_id: str
    stage: str
    message: str
    transform: Optional[str] = None


@dataclass
class RunReport:
    """Outcome of an augmentation run."""
    originals: list[LabeledImage] = field(default_factory=list)
    derived: list[LabeledImage] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)
    total_operations: int = 0
    completed_operations: int = 0
    processed_images: int = 0
    cancelled: bool = False

    @property
    def images(self) -> list[LabeledImage]:
        """Combined set: decodable eligible originals followed by derived images."""
        return self.originals + self.derived

    @property
    def failed_images(self) -> int:
        return sum(1 for f in self.failures if f.stage == "decode")

    @property
    def skipped_outputs(self) -> int:
        return sum(1 for f in self.failures if f.stage == "encode")

    @property
    def progress_percent(self) -> float:
        if self.total_operations == 0:
            return 100.0
        return self.completed_operations / self.total_operations * 100.0

    def summary(self) -> str:
        status = "cancelled" if self.cancelled else "complete"
        return (
            f"Augmentation {status}: {len(self.derived)} derived images from "
            f"{self.processed_images - self.failed_images}/{len(self.originals) + self.failed_images} source images, "
            f"{self.failed_images} images failed, {self.skipped_outputs} outputs skipped"
        )


@dataclass
class _ImageResult:
    image: LabeledImage
    derived: list[LabeledImage]
    failures: list[Failure]
    operations: int


# =============================================================================
# Naming
# =============================================================================

def derived_image_id(source_id: str, kind: TransformKind, sample_index: int) -> str:
    """Deterministic id for (source image, transform kind, sample index)."""
    return f"{source_id}__{TransformKind(kind).value}__{sample_index}"


def derived_file_name(image: LabeledImage, kind: TransformKind, sample_index: int, ext: str) -> str:
    return f"{image.stem}_{TransformKind(kind).value}_{sample_index}{ext}"


def _image_rng(seed: Optional[int], index: int) -> np.random.Generator:
    # One generator per source image keeps parallel runs reproducible
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng([seed, index])


# =============================================================================
# Executor
# =============================================================================

class AugmentationExecutor(LoggerMixin):
    """
    Applies enabled transforms to labeled images.

    ``augment`` handles one image; ``run`` handles a whole batch under a
    ``RunContext`` with validation, progress, cancellation and the
    single-run guard.
    """

    def __init__(self, config: Optional[RunConfig] = None):
        self.config = config or RunConfig()

    def augment(
        self,
        image: LabeledImage,
        specs: Optional[Iterable[TransformSpec]] = None,
        rng: Optional[np.random.Generator] = None
    ) -> list[LabeledImage]:
        """
        Derive new labeled images from one source image.

        One image is produced per sample of every enabled spec; kinds are not
        composed with each other. Samples that fail to render or encode are
        logged and skipped.

        Raises:
            DecodeError: If the source image cannot be decoded
        """
        specs = enabled_specs(self.config.specs if specs is None else specs)
        rng = rng if rng is not None else _image_rng(self.config.seed, 0)
        derived, _ = self._augment_image(image, specs, rng, self.config)
        return derived

    def _augment_image(
        self,
        image: LabeledImage,
        specs: list[TransformSpec],
        rng: np.random.Generator,
        config: RunConfig
    ) -> tuple[list[LabeledImage], list[Failure]]:
        pixels = image.load(timeout=config.decode_timeout)

        derived = []
        failures = []
        for spec in specs:
            for sample_index, value in enumerate(sample_values(spec)):
                try:
                    derived.append(self._render_sample(image, pixels, spec, sample_index, value, rng, config))
                except EncodeError as e:
                    self.logger.warning(f"Skipping {spec.kind.value}[{sample_index}] of {image.id}: {e.message}")
                    failures.append(Failure(image.id, "encode", e.message, spec.kind.value))
        return derived, failures

    def _render_sample(
        self,
        image: LabeledImage,
        pixels: np.ndarray,
        spec: TransformSpec,
        sample_index: int,
        value: Optional[float],
        rng: np.random.Generator,
        config: RunConfig
    ) -> LabeledImage:
        kind = spec.kind
        height, width = pixels.shape[:2]

        try:
            rendered = render_transform(pixels, kind, value, rng, config.interpolation, config.fill_value)
        except (cv2.error, ValueError) as e:
            raise EncodeError(f"Rendering failed: {e}", image_id=image.id, transform=kind.value) from e

        boxes = propagate_boxes(kind, spec.family, image.boxes, value, width, height)
        if len(boxes) < len(image.boxes):
            self.logger.debug(
                f"{image.id} {kind.value}[{sample_index}]: {len(image.boxes) - len(boxes)} boxes left the frame"
            )

        ext = (config.image_format or image.extension or DEFAULT_IMAGE_FORMAT).lower()
        if ext not in SUPPORTED_IMAGE_FORMATS:
            ext = DEFAULT_IMAGE_FORMAT

        try:
            data = encode_image(rendered, ext, config.jpeg_quality)
        except EncodeError as e:
            raise EncodeError(e.message, image_id=image.id, transform=kind.value) from e

        return LabeledImage(
            id=derived_image_id(image.id, kind, sample_index),
            file_name=derived_file_name(image, kind, sample_index, ext),
            source=ImageSource.from_bytes(data),
            boxes=tuple(boxes),
            width=width,
            height=height,
            is_derived=True,
            provenance=Provenance(image.id, kind.value, value, sample_index),
        )

    def _process(
        self,
        image: LabeledImage,
        index: int,
        specs: list[TransformSpec],
        context: RunContext
    ) -> Optional[_ImageResult]:
        # Cancellation is only honoured before an image starts
        if context.cancel_token.is_cancelled:
            return None

        operations = sum(sample_count(spec) for spec in specs)
        rng = _image_rng(context.config.seed, index)
        try:
            derived, failures = self._augment_image(image, specs, rng, context.config)
        except DecodeError as e:
            self.logger.warning(f"Skipping image {image.id}: {e.message}")
            return _ImageResult(image, [], [Failure(image.id, "decode", e.message)], operations)
        return _ImageResult(image, derived, failures, operations)

    def _iter_results(
        self,
        images: list[LabeledImage],
        specs: list[TransformSpec],
        context: RunContext
    ) -> Iterator[Optional[_ImageResult]]:
        if context.config.max_workers == 1:
            for index, image in enumerate(images):
                result = self._process(image, index, specs, context)
                if result is None:
                    return
                yield result
            return

        with ThreadPoolExecutor(max_workers=context.config.max_workers, thread_name_prefix="augment") as pool:
            futures = [
                pool.submit(self._process, image, index, specs, context)
                for index, image in enumerate(images)
            ]
            try:
                # Collected in submission order so output order is deterministic
                for future in futures:
                    yield future.result()
            finally:
                for future in futures:
                    future.cancel()

    def run(self, images: Iterable[LabeledImage], context: RunContext) -> RunReport:
        """
        Augment every eligible image under ``context``.

        Eligible images are originals with at least one bounding box.

        Raises:
            ValidationError: No enabled transforms or no eligible images
            RunInProgressError: Another run is active
            FatalError: Unexpected failure; ``partial`` carries the report so
                        far when ``config.keep_partial`` is set
        """
        config = context.config
        specs = enabled_specs(config.specs)
        if not specs:
            raise ValidationError(ValidationMessages.NO_ENABLED_TRANSFORMS)

        eligible = [image for image in images if image.is_labeled and not image.is_derived]
        if not eligible:
            raise ValidationError(ValidationMessages.NO_ELIGIBLE_IMAGES)

        with exclusive_run():
            report = RunReport(
                originals=list(eligible),
                total_operations=total_operations(specs, len(eligible)),
            )
            seen_ids = {image.id for image in eligible}

            self.logger.info(
                f"Augmenting {len(eligible)} images with {len(specs)} transforms "
                f"({report.total_operations} derived images planned)"
            )
            context.progress.start(report.total_operations)
            try:
                for result in self._iter_results(eligible, specs, context):
                    if result is None:
                        continue
                    for derived in result.derived:
                        if derived.id in seen_ids:
                            self.logger.debug(f"Duplicate derived image {derived.id} ignored")
                            continue
                        seen_ids.add(derived.id)
                        report.derived.append(derived)
                    report.failures.extend(result.failures)
                    if any(f.stage == "decode" for f in result.failures):
                        # Undecodable originals are not part of the combined set
                        report.originals = [i for i in report.originals if i is not result.image]
                    report.processed_images += 1
                    report.completed_operations += result.operations
                    context.progress.update(report.completed_operations, report.total_operations)
            except Exception as e:
                self.logger.error(f"Augmentation run aborted: {e}", exc_info=True)
                raise FatalError(
                    f"Augmentation run aborted: {e}",
                    partial_kept=config.keep_partial,
                    partial=report if config.keep_partial else None,
                ) from e
            finally:
                context.progress.close()

            report.cancelled = report.processed_images < len(eligible)
            if report.cancelled:
                self.logger.warning(
                    f"Run cancelled after {report.processed_images}/{len(eligible)} images; "
                    f"keeping {len(report.derived)} derived images"
                )
            self.logger.info(report.summary())
            return report
