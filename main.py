#!/usr/bin/env python3
"""
Labeled Image Dataset Augmenter - Main Entry Point

Reads images annotated with bounding boxes, derives augmented copies with
adjusted boxes, partitions everything into train/val/test and writes a
YOLO, COCO or PascalVOC bundle.

Usage:
    python main.py [--config path/to/config.yaml] [--input manifest.json] [--verbose]

Features:
    - 18 transforms (geometric, flip, color, filter, occlusion, weather)
    - Bounding boxes carried through every transform
    - YOLO, COCO and PascalVOC output as a ZIP or a directory
    - Deterministic runs with --seed
"""

import sys
import argparse
import random
from collections import OrderedDict
from pathlib import Path
from typing import Optional

from augmenter import __version__
from augmenter.annotations import build_class_list, load_labeled_images, verify_boxes_within_bounds
from augmenter.archive import ArchiveBuilder, ExportReport
from augmenter.core import (
    Config,
    load_config,
    setup_logger,
    get_logger,
    ExportFormat,
    DEFAULT_CONFIG_PATH,
    ValidationError,
    FatalError,
    DecodeError,
)
from augmenter.image import unicode_safe_imwrite
from augmenter.pipeline import AugmentationExecutor, RunContext, RunReport, TqdmProgressSink
from augmenter.splits import partition_dataset
from augmenter.visualization import create_debug_annotation_overlay, draw_boxes


class DatasetAugmenter:
    """
    Main augmentation orchestrator.

    Handles the end-to-end process: load the labeled images, augment them,
    partition the combined set and export the bundle.
    """

    def __init__(self, config: Config, verbose: bool = False):
        """
        Initialize the augmenter.

        Args:
            config: Validated configuration
            verbose: Enable verbose logging
        """
        self.config = config
        self.verbose = verbose
        self.logger = get_logger("augmenter.DatasetAugmenter")

        self.report: Optional[RunReport] = None
        self.export_report: Optional[ExportReport] = None

    def load_images(self):
        if not self.config.input_manifest:
            raise ValidationError("No input manifest given (use --input or input_manifest in the config)")
        return load_labeled_images(self.config.input_manifest)

    def augment(self, images) -> RunReport:
        context = RunContext(
            config=self.config.to_run_config(),
            progress=TqdmProgressSink(desc="Augmenting", unit="img"),
        )
        executor = AugmentationExecutor(context.config)
        return executor.run(images, context)

    def export(self, images) -> ExportReport:
        output = self.config.output
        ratio = self.config.split.to_ratio()
        splits = partition_dataset(images, ratio, random.Random(self.config.split.seed))

        builder = ArchiveBuilder(
            output.path,
            output.format,
            ratio,
            keep_partial=output.keep_partial,
            reencode=output.reencode,
            jpeg_quality=output.jpeg_quality,
            decode_timeout=self.config.performance.decode_timeout,
        )
        return builder.build(splits, class_list=build_class_list(images))

    def save_previews(self, report: RunReport) -> None:
        """Save a debug overlay of the first derived image of each transform kind."""
        preview_dir = Path(self.config.preview_dir)
        preview_dir.mkdir(parents=True, exist_ok=True)

        sources = {image.id: image for image in report.originals}
        firsts = OrderedDict()
        for derived in report.derived:
            firsts.setdefault(derived.provenance.transform, derived)

        class_list = build_class_list(report.images)
        timeout = self.config.performance.decode_timeout

        for kind, derived in firsts.items():
            source = sources[derived.provenance.source_id]
            try:
                source_pixels = source.load(timeout=timeout)
                derived_pixels = derived.load(timeout=timeout)
            except DecodeError as e:
                self.logger.warning(f"Preview for {kind} skipped: {e.message}")
                continue

            create_debug_annotation_overlay(
                source_pixels, source, derived_pixels, derived, class_list,
                preview_dir / f"{derived.stem}_debug.png",
            )
            unicode_safe_imwrite(
                str(preview_dir / f"{derived.stem}_boxes.png"),
                draw_boxes(derived_pixels, derived.boxes, class_list),
            )

        self.logger.info(f"Saved {len(firsts)} previews to {preview_dir}")

    def verify_output(self, report: RunReport) -> None:
        """Check every box of the combined set against its image bounds."""
        self.logger.info("=" * 70)
        self.logger.info("VERIFICATION")
        self.logger.info("=" * 70)

        issues = []
        for image in report.images:
            if image.has_size:
                issues.extend(verify_boxes_within_bounds(image))

        if issues:
            self.logger.warning(f"Found {len(issues)} boxes outside their image bounds")
            for issue in issues[:5]:
                self.logger.warning(f"  - {issue}")
        else:
            self.logger.info("[OK] All boxes lie inside their images")

    def print_summary(self) -> None:
        """Print final processing summary."""
        self.logger.info("=" * 70)
        self.logger.info("FINAL SUMMARY")
        self.logger.info("=" * 70)

        report = self.report
        self.logger.info(f"Source images: {len(report.originals)}")
        self.logger.info(f"Derived images: {len(report.derived)}")
        self.logger.info(f"Failed images: {report.failed_images}")
        self.logger.info(f"Skipped outputs: {report.skipped_outputs}")
        if report.cancelled:
            self.logger.info("Augmentation was cancelled before all images were processed")

        export = self.export_report
        self.logger.info(f"Output format: {export.export_format.value.upper()}")
        for split_name, count in export.written_images.items():
            self.logger.info(f"  - {split_name}: {count} images")
        self.logger.info(f"Classes ({len(export.class_list)}): {', '.join(export.class_list)}")
        self.logger.info(f"Output: {Path(export.output_path).absolute()}")

    def run(self) -> int:
        """
        Run the complete pipeline.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            self.logger.info("Starting Dataset Augmenter")
            self.logger.info("=" * 70)

            images = self.load_images()
            self.report = self.augment(images)

            if self.config.preview_dir:
                self.save_previews(self.report)

            self.verify_output(self.report)
            self.export_report = self.export(self.report.images)

            self.print_summary()

            self.logger.info("=" * 70)
            self.logger.info("[SUCCESS] Dataset augmentation completed successfully!")
            return 0

        except ValidationError as e:
            self.logger.error(f"Invalid input: {e}")
            return 2
        except KeyboardInterrupt:
            self.logger.warning("Process interrupted by user (Ctrl+C)")
            return 130
        except FatalError as e:
            kept = "kept" if e.partial_kept else "discarded"
            self.logger.error(f"Fatal error: {e} (partial output {kept})")
            return 1
        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Labeled Image Dataset Augmenter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Use default configuration
  python main.py --input data/manifest.json

  # Export COCO into a directory instead of a ZIP
  python main.py --input data/manifest.json --format coco --output out/coco_dataset

  # Reproducible run with previews
  python main.py -c configs/custom.yaml --seed 7 --preview previews/
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=Path,
        default=None,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument(
        '--input', '-i',
        type=Path,
        default=None,
        help="JSON manifest of labeled images (overrides input_manifest)"
    )
    parser.add_argument(
        '--output', '-o',
        default=None,
        help="Output bundle: *.zip for an archive, anything else for a directory"
    )
    parser.add_argument(
        '--format', '-f',
        choices=[f.value for f in ExportFormat],
        default=None,
        help="Label format (overrides output.format)"
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help="Seed for augmentation and split shuffling"
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help="Images augmented concurrently"
    )
    parser.add_argument(
        '--preview',
        type=Path,
        default=None,
        help="Directory for debug overlays of the first derived image of each transform"
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help="Enable verbose (DEBUG level) logging"
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'Dataset Augmenter v{__version__}'
    )

    return parser.parse_args(argv)


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command-line overrides on top of the loaded configuration."""
    if args.input is not None:
        config.input_manifest = str(args.input)
    if args.output is not None:
        config.output.path = args.output
    if args.format is not None:
        config.output.format = ExportFormat(args.format)
    if args.seed is not None:
        config.augmentation.seed = args.seed
        config.split.seed = args.seed
    if args.workers is not None:
        config.performance.max_workers = args.workers
    if args.preview is not None:
        config.preview_dir = str(args.preview)
    config.validate()
    return config


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    logger = setup_logger(
        name="augmenter",
        level="DEBUG" if args.verbose else "INFO",
        console=True
    )

    try:
        config = load_config(str(args.config or DEFAULT_CONFIG_PATH))
        config = apply_overrides(config, args)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    augmenter = DatasetAugmenter(config, verbose=args.verbose)
    return augmenter.run()


if __name__ == "__main__":
    sys.exit(main())
