"""Tests for bundle assembly."""

import json
import random
import zipfile

import pytest

from augmenter.annotations import build_class_list
from augmenter.archive import ArchiveBuilder, export_dataset
from augmenter.core.constants import ExportFormat
from augmenter.core.exceptions import FatalError, RunInProgressError, ValidationError
from augmenter.models import ImageSource, LabeledImage
from augmenter.pipeline import exclusive_run
from augmenter.splits import SplitRatio, partition_dataset

from conftest import make_box


def _splits(images, ratio=SplitRatio(60, 20, 20), seed=0):
    return partition_dataset(images, ratio, random.Random(seed))


@pytest.fixture
def five_images(make_image):
    return [
        make_image(f"img{i}", boxes=[("car" if i % 2 else "person", 10 + i, 10, 30, 20)], seed=i)
        for i in range(5)
    ]


class TestZipBundle:
    """YOLO bundle written as a ZIP archive."""

    def test_layout(self, tmp_path, five_images):
        output = tmp_path / "dataset.zip"
        builder = ArchiveBuilder(output, ExportFormat.YOLO, SplitRatio(60, 20, 20), show_progress=False)

        report = builder.build(_splits(five_images), class_list=build_class_list(five_images))

        assert output.exists()
        assert not (tmp_path / "dataset.zip.tmp").exists()
        with zipfile.ZipFile(output) as archive:
            names = set(archive.namelist())
            assert {"classes.txt", "dataset.yaml", "dataset_info.json", "README.md"} <= names
            assert archive.read("classes.txt").decode() == "person\ncar"

            info = json.loads(archive.read("dataset_info.json"))
            assert info["format"] == "yolo"
            assert info["total_images"] == 5
            assert info["total_labels"] == 5
            assert info["splits"] == {"train": 3, "val": 1, "test": 1}
            assert info["split_ratio"] == {"train": 60, "val": 20, "test": 20}

            image_entries = [n for n in names if "/images/" in n]
            label_entries = [n for n in names if "/labels/" in n]
            assert len(image_entries) == 5
            assert len(label_entries) == 5

        assert report.total_images == 5
        assert report.skipped_images == 0

    def test_readme_lists_classes_and_splits(self, tmp_path, five_images):
        output = tmp_path / "bundle.zip"
        ArchiveBuilder(output, "yolo", show_progress=False).build(
            _splits(five_images), class_list=build_class_list(five_images)
        )
        with zipfile.ZipFile(output) as archive:
            readme = archive.read("README.md").decode()
        assert "| 0 | person |" in readme
        assert "| train |" in readme


class TestDirectoryBundle:
    """COCO and PascalVOC bundles written as directories."""

    def test_coco(self, tmp_path, five_images):
        output = tmp_path / "coco_out"
        ArchiveBuilder(output, ExportFormat.COCO, show_progress=False).build(_splits(five_images))

        for split in ("train", "val", "test"):
            document = json.loads((output / split / "annotations.json").read_text(encoding="utf-8"))
            for entry in document["images"]:
                assert (output / split / "images" / entry["file_name"]).exists()
        assert (output / "dataset_info.json").exists()
        assert not (output / "classes.txt").exists()

    def test_voc(self, tmp_path, five_images):
        output = tmp_path / "voc_out"
        ArchiveBuilder(output, ExportFormat.PASCAL_VOC, show_progress=False).build(_splits(five_images))
        assert len(list(output.glob("*/labels/*.xml"))) == 5

    def test_file_sources_copied_verbatim(self, tmp_path, image_file):
        image = LabeledImage(
            id="disk",
            file_name=image_file.name,
            source=ImageSource.from_path(image_file),
            boxes=[make_box("d0", 5, 5, 20, 20)],
        )
        output = tmp_path / "copy_out"
        splits = _splits([image], SplitRatio(100, 0, 0))

        ArchiveBuilder(output, ExportFormat.YOLO, show_progress=False).build(splits)

        assert (output / "train" / "images" / image_file.name).read_bytes() == image_file.read_bytes()
        assert image.width == 160


class TestFailures:
    """Skipped images, fatal errors and validation."""

    def test_unreadable_image_is_skipped(self, tmp_path, five_images):
        missing = LabeledImage(
            id="missing",
            file_name="missing.png",
            source=ImageSource.from_path(tmp_path / "nowhere.png"),
            boxes=[make_box("m0", 1, 1, 5, 5)],
        )
        output = tmp_path / "partial.zip"

        report = ArchiveBuilder(output, "coco", SplitRatio(100, 0, 0), show_progress=False).build(
            _splits(five_images + [missing], SplitRatio(100, 0, 0))
        )

        assert report.skipped_images == 1
        assert report.skipped[0].image_id == "missing"
        assert report.total_images == 5
        with zipfile.ZipFile(output) as archive:
            document = json.loads(archive.read("train/annotations.json"))
        assert len(document["images"]) == 5

    @pytest.mark.parametrize("keep_partial", [False, True])
    def test_fatal_error(self, tmp_path, five_images, monkeypatch, keep_partial):
        output = tmp_path / "broken.zip"
        builder = ArchiveBuilder(output, "yolo", keep_partial=keep_partial, show_progress=False)

        def explode(split, class_list):
            raise RuntimeError("writer crashed")

        monkeypatch.setattr(builder.writer, "export", explode)

        with pytest.raises(FatalError) as excinfo:
            builder.build(_splits(five_images))

        assert excinfo.value.partial_kept is keep_partial
        assert output.exists() is keep_partial
        assert not (tmp_path / "broken.zip.tmp").exists()

    def test_fatal_error_removes_new_directory(self, tmp_path, five_images, monkeypatch):
        output = tmp_path / "fresh_dir"
        builder = ArchiveBuilder(output, "pascal_voc", show_progress=False)
        monkeypatch.setattr(builder.writer, "export_globals", lambda class_list: 1 / 0)

        with pytest.raises(FatalError):
            builder.build(_splits(five_images))
        assert not output.exists()

    def test_duplicate_file_names(self, tmp_path, make_image):
        images = [make_image("x1", file_name="same.png"), make_image("x2", file_name="same.png")]
        with pytest.raises(ValidationError):
            ArchiveBuilder(tmp_path / "dup.zip", show_progress=False).build(_splits(images, SplitRatio(100, 0, 0)))

    def test_run_guard(self, tmp_path, five_images):
        with exclusive_run():
            with pytest.raises(RunInProgressError):
                ArchiveBuilder(tmp_path / "x.zip", show_progress=False).build(_splits(five_images))


def test_export_dataset(tmp_path, five_images):
    report = export_dataset(five_images, tmp_path / "quick.zip", "coco", SplitRatio(80, 20, 0), seed=3,
                            show_progress=False)
    assert report.written_images == {"train": 4, "val": 1, "test": 0}
