"""Tests for the transform catalog and parameter sampling."""

import pytest

from augmenter.catalog import (
    TRANSFORM_CATALOG,
    TransformSpec,
    enabled_specs,
    get_entry,
    sample_count,
    sample_values,
    specs_from_config,
    total_operations,
)
from augmenter.core.constants import ParameterMode, TransformFamily, TransformKind
from augmenter.core.exceptions import ValidationError


class TestCatalog:
    """Catalog coverage."""

    def test_every_kind_has_an_entry(self):
        assert set(TRANSFORM_CATALOG) == set(TransformKind)

    def test_families(self):
        assert get_entry("rotation").family == TransformFamily.GEOMETRIC
        assert get_entry("flip_horizontal").family == TransformFamily.FLIP
        assert get_entry("hue").family == TransformFamily.COLOR
        assert get_entry("gaussian_noise").family == TransformFamily.FILTER
        assert get_entry("cutout").family == TransformFamily.OCCLUSION
        assert get_entry("fog").family == TransformFamily.WEATHER

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            get_entry("posterize")

    def test_defaults_are_inside_domains(self):
        for kind in TransformKind:
            spec = TransformSpec.default(kind)
            assert spec.kind == kind


class TestSampling:
    """Parameter value generation per mode."""

    def test_range_spans_min_to_max(self):
        spec = TransformSpec(TransformKind.ROTATION, min=-10, max=10, sample_count=3)
        assert sample_values(spec) == pytest.approx([-10.0, 0.0, 10.0])

    def test_range_single_sample_is_midpoint(self):
        spec = TransformSpec(TransformKind.BRIGHTNESS, min=0.5, max=1.5, sample_count=1)
        assert sample_values(spec) == pytest.approx([1.0])

    def test_intensity_repeats(self):
        spec = TransformSpec(TransformKind.GAUSSIAN_NOISE, intensity=0.2, sample_count=4)
        assert sample_values(spec) == [0.2] * 4

    def test_toggle_yields_one(self):
        spec = TransformSpec(TransformKind.FLIP_VERTICAL, sample_count=5)
        assert spec.mode == ParameterMode.TOGGLE
        assert sample_values(spec) == [None]
        assert sample_count(spec) == 1

    def test_disabled_yields_nothing(self):
        spec = TransformSpec(TransformKind.ROTATION, enabled=False)
        assert sample_values(spec) == []
        assert sample_count(spec) == 0

    def test_total_operations(self):
        specs = [
            TransformSpec(TransformKind.ROTATION, min=-5, max=5, sample_count=3),
            TransformSpec(TransformKind.FLIP_HORIZONTAL),
            TransformSpec(TransformKind.RAIN, intensity=0.3, sample_count=2),
            TransformSpec(TransformKind.FOG, enabled=False),
        ]
        assert total_operations(specs, 4) == (3 + 1 + 2) * 4
        assert len(enabled_specs(specs)) == 3


class TestValidation:
    """Spec validation."""

    def test_min_above_max(self):
        with pytest.raises(ValidationError):
            TransformSpec(TransformKind.SCALING, min=1.5, max=1.0)

    def test_out_of_domain(self):
        with pytest.raises(ValidationError):
            TransformSpec(TransformKind.ROTATION, min=-200, max=0)
        with pytest.raises(ValidationError):
            TransformSpec(TransformKind.CUTOUT, intensity=1.5)

    def test_zero_sample_count(self):
        with pytest.raises(ValidationError):
            TransformSpec(TransformKind.HUE, min=-5, max=5, sample_count=0)

    def test_missing_values_take_defaults(self):
        spec = TransformSpec(TransformKind.GAMMA)
        entry = get_entry(TransformKind.GAMMA)
        assert (spec.min, spec.max) == entry.default_range


class TestFromConfig:
    """YAML entry parsing."""

    def test_range_and_count_aliases(self):
        spec = TransformSpec.from_dict({"kind": "rotation", "range": [-20, 20], "count": 5})
        assert spec.min == -20.0
        assert spec.max == 20.0
        assert spec.sample_count == 5

    def test_round_trip_through_dict(self):
        spec = TransformSpec(TransformKind.SHARPEN, min=0.5, max=1.5, sample_count=2)
        assert TransformSpec.from_dict(spec.to_dict()) == spec

    def test_flip_entry_expands_to_two_kinds(self):
        specs = specs_from_config([{"kind": "flip", "horizontal": True, "vertical": False}])
        assert [s.kind for s in specs] == [TransformKind.FLIP_HORIZONTAL, TransformKind.FLIP_VERTICAL]
        assert [s.enabled for s in specs] == [True, False]

    def test_disabled_flip_entry(self):
        specs = specs_from_config([{"kind": "flip", "enabled": False, "horizontal": True}])
        assert not any(s.enabled for s in specs)
