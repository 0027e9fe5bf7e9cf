"""End-to-end tests of the command-line entry point."""

import json
import zipfile

import pytest

from main import main, parse_arguments


@pytest.fixture
def default_config(project_root):
    return str(project_root / "configs" / "default.yaml")


class TestMain:

    def test_zip_run(self, tmp_path, default_config, manifest):
        output = tmp_path / "out.zip"

        code = main(["--config", default_config, "--input", str(manifest),
                     "--output", str(output), "--seed", "1"])

        assert code == 0
        with zipfile.ZipFile(output) as archive:
            info = json.loads(archive.read("dataset_info.json"))
            assert archive.read("classes.txt").decode() == "car\nperson"
        # rotation x3, horizontal flip, brightness x2, gaussian noise x1
        assert info["total_images"] == 2 + 2 * 7

    def test_directory_run_with_previews(self, tmp_path, default_config, manifest):
        output = tmp_path / "voc"
        previews = tmp_path / "previews"

        code = main(["-c", default_config, "-i", str(manifest), "-o", str(output),
                     "-f", "pascal_voc", "--preview", str(previews)])

        assert code == 0
        assert list(output.glob("train/labels/*.xml"))
        assert list(previews.glob("*_debug.png"))
        assert list(previews.glob("*_boxes.png"))

    def test_missing_config(self, tmp_path):
        assert main(["--config", str(tmp_path / "absent.yaml")]) == 2

    def test_malformed_config(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("split: {train: 70", encoding="utf-8")
        assert main(["--config", str(path)]) == 2

    def test_missing_manifest_argument(self, tmp_path, default_config):
        assert main(["--config", default_config, "--output", str(tmp_path / "x.zip")]) == 2


def test_parse_arguments():
    args = parse_arguments(["--format", "coco", "--workers", "4", "-v"])
    assert args.format == "coco"
    assert args.workers == 4
    assert args.verbose
