"""
Transform catalog and parameter sampling.

Every augmentation kind is described once, in ``TRANSFORM_CATALOG``: the
family it belongs to (which decides how bounding boxes follow the pixels),
how its parameter values are produced, the default values offered to users
and the domain a value must stay inside.

Parameter modes:
- range:     ``sample_count`` equally spaced values covering [min, max]
- toggle:    exactly one derived image (flips)
- intensity: ``sample_count`` stochastic regenerations at a fixed intensity
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

import numpy as np

from .core.constants import (
    TransformFamily,
    TransformKind,
    ParameterMode,
    ValidationMessages,
)
from .core.exceptions import ValidationError


@dataclass(frozen=True)
class CatalogEntry:
    """Static description of one transform kind."""
    kind: TransformKind
    family: TransformFamily
    mode: ParameterMode
    domain: tuple[float, float] = (0.0, 0.0)
    default_range: tuple[float, float] = (0.0, 0.0)
    default_intensity: float = 0.0
    default_count: int = 1
    unit: str = ""


TRANSFORM_CATALOG: dict[TransformKind, CatalogEntry] = {
    entry.kind: entry for entry in (
        # Geometric: boxes follow the affine map
        CatalogEntry(TransformKind.ROTATION, TransformFamily.GEOMETRIC, ParameterMode.RANGE,
                     domain=(-180.0, 180.0), default_range=(-15.0, 15.0), default_count=3, unit="degrees"),
        CatalogEntry(TransformKind.SCALING, TransformFamily.GEOMETRIC, ParameterMode.RANGE,
                     domain=(0.1, 4.0), default_range=(0.8, 1.2), default_count=3, unit="factor"),
        CatalogEntry(TransformKind.TRANSLATION, TransformFamily.GEOMETRIC, ParameterMode.RANGE,
                     domain=(-0.5, 0.5), default_range=(-0.1, 0.1), default_count=3, unit="fraction of size"),
        CatalogEntry(TransformKind.FLIP_HORIZONTAL, TransformFamily.FLIP, ParameterMode.TOGGLE),
        CatalogEntry(TransformKind.FLIP_VERTICAL, TransformFamily.FLIP, ParameterMode.TOGGLE),
        # Color: boxes unchanged
        CatalogEntry(TransformKind.BRIGHTNESS, TransformFamily.COLOR, ParameterMode.RANGE,
                     domain=(0.0, 3.0), default_range=(0.5, 1.5), default_count=3, unit="factor"),
        CatalogEntry(TransformKind.CONTRAST, TransformFamily.COLOR, ParameterMode.RANGE,
                     domain=(0.0, 3.0), default_range=(0.5, 1.5), default_count=3, unit="factor"),
        CatalogEntry(TransformKind.SATURATION, TransformFamily.COLOR, ParameterMode.RANGE,
                     domain=(0.0, 3.0), default_range=(0.5, 1.5), default_count=3, unit="factor"),
        CatalogEntry(TransformKind.HUE, TransformFamily.COLOR, ParameterMode.RANGE,
                     domain=(-180.0, 180.0), default_range=(-20.0, 20.0), default_count=3, unit="degrees"),
        CatalogEntry(TransformKind.GAMMA, TransformFamily.COLOR, ParameterMode.RANGE,
                     domain=(0.1, 5.0), default_range=(0.7, 1.5), default_count=3, unit="gamma"),
        # Noise / filter: boxes unchanged
        CatalogEntry(TransformKind.GAUSSIAN_BLUR, TransformFamily.FILTER, ParameterMode.RANGE,
                     domain=(0.0, 20.0), default_range=(0.0, 5.0), default_count=3, unit="sigma px"),
        CatalogEntry(TransformKind.SHARPEN, TransformFamily.FILTER, ParameterMode.RANGE,
                     domain=(0.0, 5.0), default_range=(0.5, 2.0), default_count=2, unit="amount"),
        CatalogEntry(TransformKind.GAUSSIAN_NOISE, TransformFamily.FILTER, ParameterMode.INTENSITY,
                     domain=(0.0, 1.0), default_intensity=0.1, default_count=2, unit="std / 255"),
        CatalogEntry(TransformKind.SALT_PEPPER_NOISE, TransformFamily.FILTER, ParameterMode.INTENSITY,
                     domain=(0.0, 1.0), default_intensity=0.05, default_count=2, unit="pixel fraction"),
        # Occlusion: boxes unchanged
        CatalogEntry(TransformKind.CUTOUT, TransformFamily.OCCLUSION, ParameterMode.INTENSITY,
                     domain=(0.0, 1.0), default_intensity=0.2, default_count=2, unit="fraction of side"),
        # Weather: boxes unchanged
        CatalogEntry(TransformKind.RAIN, TransformFamily.WEATHER, ParameterMode.INTENSITY,
                     domain=(0.0, 1.0), default_intensity=0.5, default_count=2, unit="density"),
        CatalogEntry(TransformKind.SNOW, TransformFamily.WEATHER, ParameterMode.INTENSITY,
                     domain=(0.0, 1.0), default_intensity=0.5, default_count=2, unit="density"),
        CatalogEntry(TransformKind.FOG, TransformFamily.WEATHER, ParameterMode.INTENSITY,
                     domain=(0.0, 1.0), default_intensity=0.5, default_count=2, unit="strength"),
    )
}


def get_entry(kind) -> CatalogEntry:
    """Look up a catalog entry by kind (enum or string value)."""
    try:
        return TRANSFORM_CATALOG[TransformKind(kind)]
    except ValueError as e:
        raise ValidationError(ValidationMessages.INVALID_TRANSFORM.format(
            kind=kind, options=[k.value for k in TransformKind]
        )) from e


@dataclass(frozen=True)
class TransformSpec:
    """
    One configured augmentation.

    Which fields matter depends on the kind's parameter mode: ``min``/``max``
    for range kinds, ``intensity`` for intensity kinds, nothing for toggles.
    ``sample_count`` is the number of derived images per source image for
    range and intensity kinds; toggles always produce one.
    """
    kind: TransformKind
    enabled: bool = True
    min: Optional[float] = None
    max: Optional[float] = None
    intensity: Optional[float] = None
    sample_count: int = 1

    def __post_init__(self):
        entry = get_entry(self.kind)
        object.__setattr__(self, 'kind', entry.kind)

        if entry.mode == ParameterMode.RANGE:
            if self.min is None or self.max is None:
                object.__setattr__(self, 'min', self.min if self.min is not None else entry.default_range[0])
                object.__setattr__(self, 'max', self.max if self.max is not None else entry.default_range[1])
            if self.min > self.max:
                raise ValidationError(ValidationMessages.INVALID_RANGE.format(
                    kind=self.kind.value, min=self.min, max=self.max
                ))
            self._check_domain(entry, self.min)
            self._check_domain(entry, self.max)
        elif entry.mode == ParameterMode.INTENSITY:
            if self.intensity is None:
                object.__setattr__(self, 'intensity', entry.default_intensity)
            self._check_domain(entry, self.intensity)

        if entry.mode != ParameterMode.TOGGLE and self.sample_count < 1:
            raise ValidationError(ValidationMessages.INVALID_SAMPLE_COUNT.format(count=self.sample_count))

    def _check_domain(self, entry: CatalogEntry, value: float) -> None:
        low, high = entry.domain
        if not low <= value <= high:
            raise ValidationError(ValidationMessages.OUT_OF_DOMAIN.format(
                kind=self.kind.value, value=value, low=low, high=high
            ))

    @property
    def entry(self) -> CatalogEntry:
        return TRANSFORM_CATALOG[self.kind]

    @property
    def family(self) -> TransformFamily:
        return self.entry.family

    @property
    def mode(self) -> ParameterMode:
        return self.entry.mode

    @classmethod
    def default(cls, kind, enabled: bool = True) -> 'TransformSpec':
        """Spec populated with the catalog's default values."""
        entry = get_entry(kind)
        return cls(
            kind=entry.kind,
            enabled=enabled,
            min=entry.default_range[0] if entry.mode == ParameterMode.RANGE else None,
            max=entry.default_range[1] if entry.mode == ParameterMode.RANGE else None,
            intensity=entry.default_intensity if entry.mode == ParameterMode.INTENSITY else None,
            sample_count=entry.default_count,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'TransformSpec':
        """
        Create from a configuration dictionary.

        Accepts ``range: [min, max]`` as shorthand and ``count`` as an alias
        for ``sample_count``.
        """
        entry = get_entry(data['kind'])
        value_range = data.get('range')
        low = data.get('min', value_range[0] if value_range else None)
        high = data.get('max', value_range[1] if value_range else None)
        return cls(
            kind=entry.kind,
            enabled=data.get('enabled', True),
            min=None if low is None else float(low),
            max=None if high is None else float(high),
            intensity=None if data.get('intensity') is None else float(data['intensity']),
            sample_count=int(data.get('sample_count', data.get('count', entry.default_count))),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"kind": self.kind.value, "enabled": self.enabled}
        if self.mode == ParameterMode.RANGE:
            result.update({"min": self.min, "max": self.max, "sample_count": self.sample_count})
        elif self.mode == ParameterMode.INTENSITY:
            result.update({"intensity": self.intensity, "sample_count": self.sample_count})
        return result


def flip_specs(horizontal: bool = True, vertical: bool = False) -> list[TransformSpec]:
    """Expand a two-axis flip toggle into one spec per axis."""
    return [
        TransformSpec(TransformKind.FLIP_HORIZONTAL, enabled=horizontal),
        TransformSpec(TransformKind.FLIP_VERTICAL, enabled=vertical),
    ]


def specs_from_config(entries: Iterable[dict[str, Any]]) -> list[TransformSpec]:
    """
    Build specs from YAML entries.

    ``kind: flip`` with ``horizontal``/``vertical`` booleans is expanded into
    the two per-axis flip kinds.
    """
    specs = []
    for data in entries:
        if data.get('kind') == 'flip':
            enabled = data.get('enabled', True)
            specs.extend(flip_specs(
                horizontal=enabled and data.get('horizontal', True),
                vertical=enabled and data.get('vertical', False),
            ))
        else:
            specs.append(TransformSpec.from_dict(data))
    return specs


def sample_count(spec: TransformSpec) -> int:
    """Number of derived images the spec yields for one source image."""
    if not spec.enabled:
        return 0
    if spec.mode == ParameterMode.TOGGLE:
        return 1
    return spec.sample_count


def sample_values(spec: TransformSpec) -> list[Optional[float]]:
    """
    Parameter value for each derived image.

    Range kinds: N equally spaced values covering [min, max] inclusive, or
    the midpoint when N = 1. Intensity kinds: the intensity repeated N times
    (each regeneration draws fresh randomness). Toggles: a single None.
    """
    if not spec.enabled:
        return []
    if spec.mode == ParameterMode.TOGGLE:
        return [None]
    if spec.mode == ParameterMode.INTENSITY:
        return [spec.intensity] * spec.sample_count

    if spec.sample_count == 1:
        return [(spec.min + spec.max) / 2]
    return [float(v) for v in np.linspace(spec.min, spec.max, spec.sample_count)]


def enabled_specs(specs: Iterable[TransformSpec]) -> list[TransformSpec]:
    return [spec for spec in specs if spec.enabled and sample_count(spec) > 0]


def total_operations(specs: Iterable[TransformSpec], image_count: int) -> int:
    """Derived images a run will attempt: sum of per-spec samples times images."""
    return sum(sample_count(spec) for spec in specs) * image_count
