"""
Bundle assembly.

Collects, per split, the image files and the label artifacts produced by a
format writer, plus the format's global artifacts, a ``dataset_info.json``
manifest and a ``README.md`` summary, into one output bundle:

- a ZIP archive when the output path ends in ``.zip``
- a directory tree otherwise

Images are handled one at a time so only a single decoded buffer is alive.
A ZIP bundle is written to ``<path>.tmp`` and renamed into place once
complete.
"""

import json
import os
import random
import shutil
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Sequence

from tqdm import tqdm

from .annotations import build_class_list, count_labels
from .core.constants import (
    CLASSES_FILE,
    COCO_ANNOTATIONS_FILE,
    DATASET_INFO_FILE,
    DATASET_YAML_FILE,
    DEFAULT_DECODE_TIMEOUT,
    DEFAULT_JPEG_QUALITY,
    IMAGES_DIR,
    LABELS_DIR,
    README_FILE,
    SPLIT_ORDER,
    ExportFormat,
    SplitName,
)
from .core.exceptions import DecodeError, EncodeError, FatalError, ValidationError
from .core.logger import LoggerMixin
from .image import encode_image
from .models.annotations import LabeledImage
from .pipeline import exclusive_run
from .splits import DatasetSplit, SplitRatio, partition_dataset
from .writers import get_writer


# =============================================================================
# Sinks
# =============================================================================

class _ZipSink:
    def __init__(self, output_path: Path):
        self.output_path = output_path
        self.temp_path = output_path.with_name(output_path.name + '.tmp')
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self._zip = zipfile.ZipFile(self.temp_path, 'w', compression=zipfile.ZIP_DEFLATED)

    def write(self, path: str, data: bytes) -> None:
        self._zip.writestr(path, data)

    def commit(self) -> None:
        self._zip.close()
        os.replace(self.temp_path, self.output_path)

    def discard(self) -> None:
        self._zip.close()
        self.temp_path.unlink(missing_ok=True)


class _DirectorySink:
    def __init__(self, output_path: Path):
        self.output_path = output_path
        self._created_root = not output_path.exists()
        self._written: list[Path] = []
        output_path.mkdir(parents=True, exist_ok=True)

    def write(self, path: str, data: bytes) -> None:
        target = self.output_path / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        self._written.append(target)

    def commit(self) -> None:
        pass

    def discard(self) -> None:
        if self._created_root:
            shutil.rmtree(self.output_path, ignore_errors=True)
            return
        # Only remove what this bundle wrote into a pre-existing directory
        for target in self._written:
            target.unlink(missing_ok=True)
        for split_name in SPLIT_ORDER:
            split_dir = self.output_path / split_name.value
            for sub in (split_dir / IMAGES_DIR, split_dir / LABELS_DIR, split_dir):
                if sub.is_dir() and not any(sub.iterdir()):
                    sub.rmdir()


# =============================================================================
# Reports
# =============================================================================

@dataclass
class SkippedImage:
    image_id: str
    split: str
    reason: str


@dataclass
class ExportReport:
    """Outcome of a bundle export."""
    output_path: Path
    export_format: ExportFormat
    class_list: list[str] = field(default_factory=list)
    written_images: dict[str, int] = field(default_factory=dict)
    written_labels: int = 0
    skipped: list[SkippedImage] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)

    @property
    def total_images(self) -> int:
        return sum(self.written_images.values())

    @property
    def skipped_images(self) -> int:
        return len(self.skipped)

    def summary(self) -> str:
        splits = ', '.join(f"{name}={count}" for name, count in self.written_images.items())
        return (
            f"Exported {self.total_images} images ({splits}), {self.written_labels} labels, "
            f"{len(self.class_list)} classes as {self.export_format.value} to {self.output_path}; "
            f"{self.skipped_images} images skipped"
        )


# =============================================================================
# Builder
# =============================================================================

class ArchiveBuilder(LoggerMixin):
    """
    Writes a complete dataset bundle for one export format.

    Usage:
        builder = ArchiveBuilder("out/dataset.zip", ExportFormat.YOLO, SplitRatio(70, 20, 10))
        report = builder.build(partition_dataset(images, builder.ratio))
    """

    def __init__(
        self,
        output_path,
        export_format=ExportFormat.YOLO,
        ratio: Optional[SplitRatio] = None,
        keep_partial: bool = False,
        reencode: bool = False,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
        decode_timeout: Optional[float] = DEFAULT_DECODE_TIMEOUT,
        show_progress: bool = True
    ):
        """
        Args:
            output_path: ``*.zip`` for an archive, anything else for a directory
            export_format: Label format of the bundle
            ratio: Split percentages recorded in dataset_info.json
            keep_partial: Leave a partially written bundle in place on failure
            reencode: Decode and re-encode every image instead of copying its bytes
            jpeg_quality: JPEG quality when (re-)encoding
            decode_timeout: Seconds allowed per image decode or header probe
            show_progress: Show a tqdm progress bar
        """
        self.output_path = Path(output_path)
        self.writer = get_writer(export_format)
        self.export_format = self.writer.format
        self.ratio = ratio or SplitRatio()
        self.keep_partial = keep_partial
        self.reencode = reencode
        self.jpeg_quality = jpeg_quality
        self.decode_timeout = decode_timeout
        self.show_progress = show_progress

    @property
    def is_zip(self) -> bool:
        return self.output_path.suffix.lower() == '.zip'

    def _open_sink(self):
        if self.is_zip:
            return _ZipSink(self.output_path)
        return _DirectorySink(self.output_path)

    def _image_bytes(self, image: LabeledImage) -> bytes:
        """Encoded bytes for an image, sized as a side effect."""
        source = image.source
        if self.reencode or source.array is not None:
            pixels = image.load(timeout=self.decode_timeout)
            data = encode_image(pixels, image.extension or '.png', self.jpeg_quality)
            del pixels
            return data

        image.resolve_size(timeout=self.decode_timeout)
        try:
            return source.read_bytes()
        except OSError as e:
            raise DecodeError(f"Failed to read {source!r}: {e}", image_id=image.id) from e

    @staticmethod
    def _check_file_names(splits: dict[SplitName, DatasetSplit]) -> None:
        for split in splits.values():
            names = [image.file_name for image in split.images]
            duplicates = sorted({name for name in names if names.count(name) > 1})
            if duplicates:
                raise ValidationError(
                    f"Duplicate file names in split '{split.name.value}': {', '.join(duplicates)}"
                )

    def build(
        self,
        splits: dict[SplitName, DatasetSplit],
        class_list: Optional[Sequence[str]] = None
    ) -> ExportReport:
        """
        Write the bundle.

        Args:
            splits: Output of ``partition_dataset``
            class_list: Class names in id order; built from ``splits`` when omitted

        Returns:
            ExportReport

        Raises:
            ValidationError: Duplicate file names inside a split
            RunInProgressError: Another run is active
            FatalError: Unexpected failure; the partial bundle is removed
                        unless ``keep_partial`` was set
        """
        self._check_file_names(splits)
        if class_list is None:
            class_list = build_class_list(
                image for name in SPLIT_ORDER for image in splits[name].images
            )
        class_list = list(class_list)

        report = ExportReport(
            output_path=self.output_path,
            export_format=self.export_format,
            class_list=class_list,
        )

        with exclusive_run():
            sink = self._open_sink()
            try:
                self._write_bundle(sink, splits, class_list, report)
            except KeyboardInterrupt:
                self._abandon(sink)
                raise
            except Exception as e:
                self.logger.error(f"Export aborted: {e}", exc_info=True)
                self._abandon(sink)
                raise FatalError(
                    f"Export aborted: {e}",
                    partial_kept=self.keep_partial,
                    partial=report if self.keep_partial else None,
                ) from e
            sink.commit()

        self.logger.info(report.summary())
        return report

    def _abandon(self, sink) -> None:
        if self.keep_partial:
            self.logger.warning(f"Keeping partial bundle at {self.output_path}")
            sink.commit()
        else:
            self.logger.warning("Discarding partial bundle")
            sink.discard()

    def _write_bundle(
        self,
        sink,
        splits: dict[SplitName, DatasetSplit],
        class_list: list[str],
        report: ExportReport
    ) -> None:
        total = sum(len(splits[name]) for name in SPLIT_ORDER)
        progress = tqdm(total=total, desc="Exporting", unit="img", disable=not self.show_progress)

        try:
            for name in SPLIT_ORDER:
                split = splits[name]
                written = []
                for image in split.images:
                    try:
                        data = self._image_bytes(image)
                    except (DecodeError, EncodeError) as e:
                        self.logger.warning(f"Skipping image {image.id} in {name.value}: {e.message}")
                        report.skipped.append(SkippedImage(image.id, name.value, e.message))
                    else:
                        path = self.writer.image_path(name, image)
                        sink.write(path, data)
                        report.artifacts.append(path)
                        written.append(image)
                    progress.update(1)

                exported = DatasetSplit(name=name, images=tuple(written), target_percent=split.target_percent)
                for artifact in self.writer.export(exported, class_list):
                    sink.write(artifact.path, artifact.data)
                    report.artifacts.append(artifact.path)

                report.written_images[name.value] = len(written)
                report.written_labels += count_labels(written)
        finally:
            progress.close()

        for artifact in self.writer.export_globals(class_list):
            sink.write(artifact.path, artifact.data)
            report.artifacts.append(artifact.path)

        info = self.dataset_info(report)
        sink.write(DATASET_INFO_FILE, json.dumps(info, indent=2, ensure_ascii=False).encode('utf-8'))
        sink.write(README_FILE, self.readme(report).encode('utf-8'))
        report.artifacts.extend([DATASET_INFO_FILE, README_FILE])

    def dataset_info(self, report: ExportReport) -> dict:
        return {
            "format": self.export_format.value,
            "total_images": report.total_images,
            "total_labels": report.written_labels,
            "classes": report.class_list,
            "split_ratio": self.ratio.to_dict(),
            "created_at": datetime.now().isoformat(timespec='seconds'),
            "splits": dict(report.written_images),
        }

    def readme(self, report: ExportReport) -> str:
        lines = [
            "# Augmented Dataset",
            "",
            f"Format: **{self.export_format.value}**",
            "",
            "## Splits",
            "",
            "| Split | Images | Target |",
            "|-------|--------|--------|",
        ]
        for name in SPLIT_ORDER:
            lines.append(
                f"| {name.value} | {report.written_images.get(name.value, 0)} | {self.ratio.percent(name)}% |"
            )
        lines += [
            "",
            f"Total: {report.total_images} images, {report.written_labels} labels",
            "",
            "## Classes",
            "",
            "| ID | Name |",
            "|----|------|",
        ]
        lines += [f"| {class_id} | {name} |" for class_id, name in enumerate(report.class_list)]
        lines += ["", "## Structure", "", "```"]
        lines += self._folder_tree()
        lines += ["```", ""]
        return '\n'.join(lines)

    def _folder_tree(self) -> list[str]:
        tree = []
        if self.export_format == ExportFormat.YOLO:
            tree += [CLASSES_FILE, DATASET_YAML_FILE]
        for name in SPLIT_ORDER:
            tree.append(f"{name.value}/")
            tree.append(f"  {IMAGES_DIR}/")
            if self.export_format == ExportFormat.COCO:
                tree.append(f"  {COCO_ANNOTATIONS_FILE}")
            else:
                ext = 'txt' if self.export_format == ExportFormat.YOLO else 'xml'
                tree.append(f"  {LABELS_DIR}/  (*.{ext})")
        tree += [DATASET_INFO_FILE, README_FILE]
        return tree


def export_dataset(
    images: Iterable[LabeledImage],
    output_path,
    export_format=ExportFormat.YOLO,
    ratio: Optional[SplitRatio] = None,
    seed: Optional[int] = None,
    **builder_options
) -> ExportReport:
    """Partition ``images`` and write them as one bundle."""
    ratio = ratio or SplitRatio()
    builder = ArchiveBuilder(output_path, export_format, ratio, **builder_options)
    images = list(images)
    splits = partition_dataset(images, ratio, random.Random(seed))
    return builder.build(splits, class_list=build_class_list(images))
