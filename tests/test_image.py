"""Tests for pixel transforms, encoding and image sources."""

import time

import numpy as np
import pytest

from augmenter.catalog import TransformSpec, sample_values
from augmenter.core.constants import TransformKind
from augmenter.core.exceptions import DecodeError
from augmenter.image import (
    adjust_brightness,
    adjust_gamma,
    encode_image,
    gaussian_blur,
    render_transform,
)
from augmenter.models import ImageSource
from augmenter.models.image_info import run_with_timeout


class TestRenderTransform:
    """Every kind renders into a new buffer of the same shape."""

    @pytest.mark.parametrize("kind", list(TransformKind))
    def test_shape_dtype_and_source_untouched(self, kind, sample_pixels):
        before = sample_pixels.copy()
        value = sample_values(TransformSpec.default(kind))[0]

        out = render_transform(sample_pixels, kind, value, np.random.default_rng(0))

        assert out.shape == sample_pixels.shape
        assert out.dtype == np.uint8
        assert out is not sample_pixels
        np.testing.assert_array_equal(sample_pixels, before)

    def test_identity_parameters(self, sample_pixels):
        np.testing.assert_array_equal(adjust_brightness(sample_pixels, 1.0), sample_pixels)
        np.testing.assert_array_equal(adjust_gamma(sample_pixels, 1.0), sample_pixels)
        np.testing.assert_array_equal(gaussian_blur(sample_pixels, 0.0), sample_pixels)

    def test_brightness_darkens(self, sample_pixels):
        assert adjust_brightness(sample_pixels, 0.5).mean() < sample_pixels.mean()

    def test_gamma_above_one_brightens(self, sample_pixels):
        assert adjust_gamma(sample_pixels, 2.0).mean() > sample_pixels.mean()

    @pytest.mark.parametrize("kind", [
        TransformKind.GAUSSIAN_NOISE, TransformKind.SALT_PEPPER_NOISE,
        TransformKind.CUTOUT, TransformKind.RAIN, TransformKind.SNOW, TransformKind.FOG,
    ])
    def test_stochastic_kinds_follow_the_generator(self, kind, sample_pixels):
        a = render_transform(sample_pixels, kind, 0.5, np.random.default_rng(7))
        b = render_transform(sample_pixels, kind, 0.5, np.random.default_rng(7))
        c = render_transform(sample_pixels, kind, 0.5, np.random.default_rng(8))
        np.testing.assert_array_equal(a, b)
        assert not np.array_equal(a, c)


class TestEncoding:
    """Encoding and decoding through ImageSource."""

    def test_png_round_trip_is_lossless(self, sample_pixels):
        data = encode_image(sample_pixels, '.png')
        decoded = ImageSource.from_bytes(data).load()
        np.testing.assert_array_equal(decoded, sample_pixels)

    def test_jpeg_round_trip_keeps_size(self, sample_pixels):
        data = encode_image(sample_pixels, '.jpg', jpeg_quality=80)
        assert ImageSource.from_bytes(data).probe_size() == (160, 120)

    def test_grayscale_is_promoted_to_bgr(self):
        gray = np.full((10, 12), 128, dtype=np.uint8)
        decoded = ImageSource.from_bytes(encode_image(gray, '.png')).load()
        assert decoded.shape == (10, 12, 3)


class TestImageSource:
    """Failure modes of decoding."""

    def test_garbage_bytes(self):
        with pytest.raises(DecodeError):
            ImageSource.from_bytes(b"definitely not an image").load()

    def test_missing_file(self, tmp_path):
        with pytest.raises(DecodeError):
            ImageSource.from_path(tmp_path / "missing.png").load()

    def test_probe_reads_header(self, image_file):
        assert ImageSource.from_path(image_file).probe_size() == (160, 120)

    def test_needs_exactly_one_source(self):
        with pytest.raises(ValueError):
            ImageSource()

    def test_timeout(self):
        with pytest.raises(TimeoutError):
            run_with_timeout(lambda: time.sleep(1.0), timeout=0.05)

    def test_no_timeout_runs_inline(self):
        assert run_with_timeout(lambda: 42, timeout=None) == 42
