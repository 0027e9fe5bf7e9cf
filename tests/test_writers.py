"""Tests for the YOLO, COCO and PascalVOC writers."""

import json
import xml.etree.ElementTree as ET

import pytest
import yaml

from augmenter.annotations import build_class_list
from augmenter.core.constants import ExportFormat, SplitName
from augmenter.core.exceptions import EncodeError, ValidationError
from augmenter.splits import DatasetSplit
from augmenter.writers import (
    COCOWriter,
    PascalVOCWriter,
    YOLOWriter,
    get_writer,
    read_yolo_labels,
    yolo_line,
)

from conftest import make_box


@pytest.fixture
def train_split(labeled_images):
    return DatasetSplit(name=SplitName.TRAIN, images=tuple(labeled_images), target_percent=70)


@pytest.fixture
def class_list(labeled_images):
    return build_class_list(labeled_images)


def _by_path(artifacts):
    return {artifact.path: artifact.data for artifact in artifacts}


class TestYOLO:
    """YOLO label files and globals."""

    def test_class_order_and_ids(self, train_split, class_list):
        assert class_list == ["car", "person"]

        writer = YOLOWriter()
        globals_ = _by_path(writer.export_globals(class_list))
        assert globals_["classes.txt"] == b"car\nperson"

        labels = _by_path(writer.export(train_split, class_list))
        for image in train_split.images:
            lines = labels[f"train/labels/{image.id}.txt"].decode().splitlines()
            for line, bbox in zip(lines, image.boxes):
                expected_id = 0 if bbox.class_name == "car" else 1
                assert line.split()[0] == str(expected_id)

    def test_line_format(self):
        line = yolo_line(0, make_box("b", 100, 100, 200, 150), 800, 600)
        assert line == "0 0.250000 0.291667 0.250000 0.250000"

    def test_round_trip(self, train_split, class_list):
        labels = _by_path(YOLOWriter().export(train_split, class_list))
        for image in train_split.images:
            parsed = read_yolo_labels(labels[f"train/labels/{image.id}.txt"].decode(), image, class_list)
            assert len(parsed) == len(image.boxes)
            for got, expected in zip(parsed, image.boxes):
                assert got.class_name == expected.class_name
                for axis, size in (("x", image.width), ("width", image.width),
                                   ("y", image.height), ("height", image.height)):
                    assert abs(getattr(got, axis) - getattr(expected, axis)) / size <= 1e-3

    def test_dataset_yaml(self, class_list):
        text = YOLOWriter.dataset_yaml(class_list)
        config = yaml.safe_load(text)
        assert config["nc"] == 2
        assert config["names"] == {0: "car", 1: "person"}
        assert config["train"] == "train/images"
        assert config["test"] == "test/images"

    def test_unknown_class(self, train_split):
        with pytest.raises(EncodeError):
            YOLOWriter().export(train_split, ["car"])


class TestCOCO:
    """COCO document structure."""

    def test_ids_and_categories(self, train_split, class_list):
        document = COCOWriter().build_document(train_split, class_list)

        assert [image["id"] for image in document["images"]] == [1, 2, 3]
        assert document["images"][0]["width"] == 160
        assert document["images"][0]["height"] == 120

        annotation_ids = [a["id"] for a in document["annotations"]]
        assert annotation_ids == list(range(1, len(annotation_ids) + 1))
        assert len(annotation_ids) == 4

        category_ids = {c["id"] for c in document["categories"]}
        image_ids = {image["id"] for image in document["images"]}
        for annotation in document["annotations"]:
            assert annotation["category_id"] in category_ids
            assert annotation["image_id"] in image_ids
            assert annotation["iscrowd"] == 0
            x, y, w, h = annotation["bbox"]
            assert annotation["area"] == pytest.approx(w * h)

    def test_artifact_is_json(self, train_split, class_list):
        (artifact,) = COCOWriter().export(train_split, class_list)
        assert artifact.path == "train/annotations.json"
        assert json.loads(artifact.data)["categories"][1]["name"] == "person"

    def test_byte_reproducible(self, train_split, class_list):
        writer = COCOWriter()
        assert writer.export(train_split, class_list) == writer.export(train_split, class_list)

    def test_empty_split(self, class_list):
        split = DatasetSplit(name=SplitName.TEST)
        document = COCOWriter().build_document(split, class_list)
        assert document["images"] == []
        assert document["annotations"] == []


class TestPascalVOC:
    """PascalVOC XML documents."""

    def test_document(self, make_image):
        image = make_image("v", boxes=[("car", 10.5, 20.4, 30.0, 40.6)])
        split = DatasetSplit(name=SplitName.VAL, images=(image,))

        (artifact,) = PascalVOCWriter().export(split, ["car"])
        assert artifact.path == "val/labels/v.xml"

        root = ET.fromstring(artifact.data)
        assert root.findtext("filename") == "v.png"
        assert root.findtext("size/width") == "160"
        assert root.findtext("size/depth") == "3"
        assert root.findtext("segmented") == "0"

        obj = root.find("object")
        assert obj.findtext("name") == "car"
        assert obj.findtext("difficult") == "0"
        assert [obj.findtext(f"bndbox/{tag}") for tag in ("xmin", "ymin", "xmax", "ymax")] == [
            "11", "20", "41", "61",
        ]


class TestGetWriter:

    def test_known_formats(self):
        assert isinstance(get_writer("yolo"), YOLOWriter)
        assert isinstance(get_writer(ExportFormat.COCO), COCOWriter)
        assert isinstance(get_writer("pascal_voc"), PascalVOCWriter)

    def test_unknown_format(self):
        with pytest.raises(ValidationError):
            get_writer("tfrecord")
