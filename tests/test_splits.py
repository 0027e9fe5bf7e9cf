"""Tests for train/val/test partitioning."""

import random

import pytest

from augmenter.core.constants import SplitName
from augmenter.core.exceptions import ValidationError
from augmenter.splits import SplitRatio, partition_dataset


@pytest.fixture
def ten_images(make_image):
    return [make_image(f"img{i}", width=32, height=32, boxes=[("car", 1, 1, 8, 8)]) for i in range(10)]


class TestSplitRatio:
    """Ratio validation."""

    def test_defaults(self):
        assert SplitRatio().to_dict() == {"train": 70, "val": 20, "test": 10}

    @pytest.mark.parametrize("train,val,test", [(70, 20, 20), (50, 20, 20), (101, 0, -1), (-10, 60, 50)])
    def test_invalid(self, train, val, test):
        with pytest.raises(ValidationError):
            SplitRatio(train, val, test)

    @pytest.mark.parametrize("train,val,test", [(70.5, 19.5, 10), ("70", 20, 10), (True, 89, 10)])
    def test_fractional_or_non_numeric_rejected(self, train, val, test):
        with pytest.raises(ValidationError):
            SplitRatio(train, val, test)

    def test_whole_floats_coerced(self, ten_images):
        ratio = SplitRatio(70.0, 20.0, 10.0)
        assert ratio.to_dict() == {"train": 70, "val": 20, "test": 10}
        assert all(isinstance(v, int) for v in ratio.to_dict().values())

        splits = partition_dataset(ten_images, ratio, random.Random(0))
        assert [len(s.images) for s in splits.values()] == [7, 2, 1]

    def test_from_dict(self):
        assert SplitRatio.from_dict({"train": 80, "val": 10, "test": 10}).train == 80


class TestPartition:
    """Partition sizes and membership."""

    def test_ten_images_70_20_10(self, ten_images):
        splits = partition_dataset(ten_images, SplitRatio(70, 20, 10), random.Random(0))

        assert [len(splits[name]) for name in SplitName] == [7, 2, 1]
        ids = [image.id for split in splits.values() for image in split.images]
        assert sorted(ids) == sorted(image.id for image in ten_images)

    @pytest.mark.parametrize("ratio", [(70, 20, 10), (33, 33, 34), (100, 0, 0), (0, 0, 100), (80, 15, 5)])
    @pytest.mark.parametrize("count", [0, 1, 2, 3, 7, 10])
    def test_sizes_sum_without_duplicates(self, make_image, ratio, count):
        images = [make_image(f"i{n}", width=16, height=16, boxes=[("car", 0, 0, 4, 4)]) for n in range(count)]
        splits = partition_dataset(images, SplitRatio(*ratio), random.Random(count))

        train, val, test = (len(splits[name]) for name in SplitName)
        assert train == count * ratio[0] // 100
        assert val == count * ratio[1] // 100
        assert train + val + test == count
        ids = [image.id for split in splits.values() for image in split.images]
        assert len(set(ids)) == count

    def test_unlabeled_images_excluded(self, ten_images, make_image):
        unlabeled = make_image("blank", boxes=())
        splits = partition_dataset(ten_images + [unlabeled], SplitRatio(), random.Random(1))
        assert sum(len(split) for split in splits.values()) == 10
        assert all(image.id != "blank" for split in splits.values() for image in split.images)

    def test_seeded_shuffle_is_reproducible(self, ten_images):
        first = partition_dataset(ten_images, SplitRatio(), random.Random(42))
        second = partition_dataset(ten_images, SplitRatio(), random.Random(42))
        for name in SplitName:
            assert [i.id for i in first[name].images] == [i.id for i in second[name].images]

    def test_target_percent_recorded(self, ten_images):
        splits = partition_dataset(ten_images, SplitRatio(60, 30, 10), random.Random(0))
        assert splits[SplitName.VAL].target_percent == 30
        assert splits[SplitName.TRAIN].label_count == 6
