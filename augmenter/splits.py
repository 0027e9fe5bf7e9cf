"""
Train/val/test partitioning.

The full image set (originals plus derived images) is shuffled once and cut
into three contiguous slices. Train and val sizes are floored; test takes
whatever is left, so every eligible image lands in exactly one split.
"""

import random
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .core.constants import SPLIT_ORDER, SplitName, ValidationMessages
from .core.exceptions import ValidationError
from .core.logger import get_logger
from .models.annotations import LabeledImage

logger = get_logger(__name__)


def _whole_percent(name: str, value: Any) -> int:
    # YAML may hand over 70.0; anything fractional or non-numeric is rejected
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(ValidationMessages.INVALID_PERCENT_TYPE.format(name=name, value=value))
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(ValidationMessages.INVALID_PERCENT_TYPE.format(name=name, value=value))
    return int(value)


@dataclass(frozen=True)
class SplitRatio:
    """Integer percentages for the three splits; must sum to 100."""
    train: int = 70
    val: int = 20
    test: int = 10

    def __post_init__(self):
        for name in ('train', 'val', 'test'):
            value = _whole_percent(name, getattr(self, name))
            object.__setattr__(self, name, value)
            if not 0 <= value <= 100:
                raise ValidationError(ValidationMessages.INVALID_PERCENT.format(name=name, value=value))
        total = self.train + self.val + self.test
        if total != 100:
            raise ValidationError(ValidationMessages.INVALID_PERCENT_SUM.format(total=total))

    def percent(self, split: SplitName) -> int:
        return getattr(self, SplitName(split).value)

    def to_dict(self) -> dict[str, int]:
        return {"train": self.train, "val": self.val, "test": self.test}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'SplitRatio':
        return cls(
            train=data.get('train', 70),
            val=data.get('val', 20),
            test=data.get('test', 10),
        )


@dataclass(frozen=True)
class DatasetSplit:
    """One partition of the dataset."""
    name: SplitName
    images: tuple[LabeledImage, ...] = field(default_factory=tuple)
    target_percent: int = 0

    def __len__(self) -> int:
        return len(self.images)

    @property
    def label_count(self) -> int:
        return sum(len(image.boxes) for image in self.images)


def partition_dataset(
    images: Iterable[LabeledImage],
    ratio: SplitRatio,
    rng: Optional[random.Random] = None
) -> dict[SplitName, DatasetSplit]:
    """
    Shuffle labeled images and assign each one to exactly one split.

    Images without boxes are not eligible and are left out. Sizes are
    ``floor(N * train / 100)`` and ``floor(N * val / 100)``; test absorbs the
    rounding remainder.

    Args:
        images: Candidate images (originals and derived)
        ratio: Validated split percentages
        rng: Random source; pass a seeded ``random.Random`` for reproducible
             splits. Defaults to an unseeded one.

    Returns:
        Mapping of split name to DatasetSplit, in train/val/test order
    """
    rng = rng if rng is not None else random.Random()

    eligible = [image for image in images if image.is_labeled]
    shuffled = list(eligible)
    rng.shuffle(shuffled)

    n_total = len(shuffled)
    n_train = n_total * ratio.train // 100
    n_val = n_total * ratio.val // 100

    slices = {
        SplitName.TRAIN: shuffled[:n_train],
        SplitName.VAL: shuffled[n_train:n_train + n_val],
        SplitName.TEST: shuffled[n_train + n_val:],
    }

    splits = {
        name: DatasetSplit(name=name, images=tuple(slices[name]), target_percent=ratio.percent(name))
        for name in SPLIT_ORDER
    }
    log_split_statistics(splits)
    return splits


def log_split_statistics(splits: dict[SplitName, DatasetSplit]) -> None:
    """Log how many images ended up in each split."""
    total = sum(len(split) for split in splits.values())
    if total == 0:
        logger.info("Dataset split: no labeled images to partition")
        return

    logger.info("Dataset split:")
    for name in SPLIT_ORDER:
        count = len(splits[name])
        logger.info(f"  {name.value:5s}: {count:4d} images ({count / total * 100:5.1f}%)")
