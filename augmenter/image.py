"""
Image processing and augmentation utilities.

This module provides:
- Image encoding (Unicode-safe file writing)
- Geometric warps (rotation, scaling, translation, flips)
- Color adjustments (brightness, contrast, HSV saturation/hue, gamma)
- Filters and noise generation (blur, sharpen, Gaussian, salt-and-pepper)
- Occlusion (cutout) and weather effects (rain, snow, fog)

All functions take a BGR uint8 image and return a newly allocated array; the
input is never modified in place. Stochastic effects draw from the
``numpy.random.Generator`` they are given.
"""

import os
from typing import Optional

import cv2
import numpy as np
from scipy import ndimage
from skimage import color

from .core.constants import (
    DEFAULT_FILL_VALUE,
    DEFAULT_JPEG_QUALITY,
    InterpolationMethod,
    TransformKind,
)
from .core.exceptions import EncodeError
from .geometry import affine_matrix, to_pixel_matrix


_INTERPOLATION_FLAGS = {
    InterpolationMethod.NEAREST: cv2.INTER_NEAREST,
    InterpolationMethod.BILINEAR: cv2.INTER_LINEAR,
    InterpolationMethod.CUBIC: cv2.INTER_CUBIC,
}


# =============================================================================
# Encoding
# =============================================================================

def encode_image(image: np.ndarray, ext: str = '.jpg', jpeg_quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """
    Encode an image to bytes in the format implied by ``ext``.

    Raises:
        EncodeError: If OpenCV cannot encode the image
    """
    ext = ext.lower()
    if ext not in ['.png', '.jpg', '.jpeg', '.bmp', '.tiff', '.webp']:
        ext = '.png'  # Default to PNG

    params = []
    if ext in ('.jpg', '.jpeg'):
        params = [cv2.IMWRITE_JPEG_QUALITY, int(jpeg_quality)]

    try:
        success, encoded_img = cv2.imencode(ext, image, params)
    except cv2.error as e:
        raise EncodeError(f"Failed to encode image as {ext}: {e}") from e
    if not success:
        raise EncodeError(f"Failed to encode image as {ext}")
    return encoded_img.tobytes()


def unicode_safe_imwrite(filepath, img, jpeg_quality: int = DEFAULT_JPEG_QUALITY):
    """
    Unicode-safe version of cv2.imwrite for Windows compatibility.
    Uses cv2.imencode + file writing to handle Unicode filenames.

    Returns:
        (width, height) of the written image
    """
    height, width = img.shape[:2]
    data = encode_image(img, os.path.splitext(str(filepath))[1], jpeg_quality)
    with open(filepath, 'wb') as f:
        f.write(data)
    return width, height


# =============================================================================
# Geometric
# =============================================================================

def warp_affine(
    image: np.ndarray,
    matrix: np.ndarray,
    interpolation: InterpolationMethod = InterpolationMethod.BILINEAR,
    fill_value: int = DEFAULT_FILL_VALUE
) -> np.ndarray:
    """Warp with a continuous-coordinate matrix onto a canvas of the same size."""
    height, width = image.shape[:2]
    return cv2.warpAffine(
        image,
        to_pixel_matrix(matrix),
        (width, height),
        flags=_INTERPOLATION_FLAGS[InterpolationMethod(interpolation)],
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(fill_value, fill_value, fill_value),
    )


def flip_horizontal(image: np.ndarray) -> np.ndarray:
    return cv2.flip(image, 1)


def flip_vertical(image: np.ndarray) -> np.ndarray:
    return cv2.flip(image, 0)


# =============================================================================
# Color
# =============================================================================

def adjust_brightness(image: np.ndarray, factor: float) -> np.ndarray:
    """Multiply every channel by ``factor``."""
    return np.clip(image.astype(np.float32) * factor, 0, 255).astype(np.uint8)


def adjust_contrast(image: np.ndarray, factor: float) -> np.ndarray:
    """Stretch values around the mean gray level."""
    mean = float(cv2.cvtColor(image, cv2.COLOR_BGR2GRAY).mean())
    adjusted = (image.astype(np.float32) - mean) * factor + mean
    return np.clip(adjusted, 0, 255).astype(np.uint8)


def apply_hue_augmentation(image, hue_shift=0.0, saturation_factor=1.0, value_factor=1.0):
    """Apply hue, saturation, and value augmentation to a BGR image."""
    rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    hsv_image = color.rgb2hsv(rgb)

    # Apply hue shift (wrap around at 0 and 1)
    hsv_image[:, :, 0] = (hsv_image[:, :, 0] + hue_shift) % 1.0

    # Apply saturation scaling (clamp to [0, 1])
    hsv_image[:, :, 1] = np.clip(hsv_image[:, :, 1] * saturation_factor, 0, 1)

    # Apply value/brightness scaling (clamp to [0, 1])
    hsv_image[:, :, 2] = np.clip(hsv_image[:, :, 2] * value_factor, 0, 1)

    augmented_rgb = color.hsv2rgb(hsv_image)
    augmented_uint8 = np.clip(np.rint(augmented_rgb * 255), 0, 255).astype(np.uint8)

    return cv2.cvtColor(augmented_uint8, cv2.COLOR_RGB2BGR)


def adjust_saturation(image: np.ndarray, factor: float) -> np.ndarray:
    return apply_hue_augmentation(image, saturation_factor=factor)


def shift_hue(image: np.ndarray, degrees: float) -> np.ndarray:
    return apply_hue_augmentation(image, hue_shift=degrees / 360.0)


def adjust_gamma(image: np.ndarray, gamma: float) -> np.ndarray:
    """Gamma correction through a lookup table (gamma > 1 brightens)."""
    table = np.array([((i / 255.0) ** (1.0 / gamma)) * 255 for i in range(256)])
    return cv2.LUT(image, np.clip(np.rint(table), 0, 255).astype(np.uint8))


# =============================================================================
# Filters and noise
# =============================================================================

def gaussian_blur(image: np.ndarray, sigma: float) -> np.ndarray:
    if sigma <= 0:
        return image.copy()
    return cv2.GaussianBlur(image, (0, 0), sigmaX=sigma, sigmaY=sigma)


def sharpen(image: np.ndarray, amount: float) -> np.ndarray:
    """Unsharp mask: ``(1 + amount) * image - amount * blurred``."""
    blurred = cv2.GaussianBlur(image, (0, 0), sigmaX=1.0)
    return cv2.addWeighted(image, 1.0 + amount, blurred, -amount, 0)


def generate_noise(shape, noise_type, intensity, rng: np.random.Generator):
    """Generate additive noise (int16) of the given type."""
    if noise_type == 'salt_pepper':
        noise = np.zeros(shape, dtype=np.int16)
        draw = rng.random(shape[:2])
        noise[draw < intensity * 0.5] = 255
        noise[draw > 1.0 - intensity * 0.5] = -255
        return noise

    return rng.normal(0, intensity * 255, shape).astype(np.int16)


def add_gaussian_noise(image: np.ndarray, intensity: float, rng: np.random.Generator) -> np.ndarray:
    noise = generate_noise(image.shape, 'gaussian', intensity, rng)
    return np.clip(image.astype(np.int16) + noise, 0, 255).astype(np.uint8)


def add_salt_pepper_noise(image: np.ndarray, intensity: float, rng: np.random.Generator) -> np.ndarray:
    noise = generate_noise(image.shape, 'salt_pepper', intensity, rng)
    return np.clip(image.astype(np.int16) + noise, 0, 255).astype(np.uint8)


# =============================================================================
# Occlusion and weather
# =============================================================================

def cutout(
    image: np.ndarray,
    intensity: float,
    rng: np.random.Generator,
    fill_value: int = DEFAULT_FILL_VALUE
) -> np.ndarray:
    """Blank out one square patch whose side is ``intensity`` of the shorter side."""
    height, width = image.shape[:2]
    side = int(round(min(height, width) * intensity))
    result = image.copy()
    if side <= 0:
        return result

    cx = int(rng.integers(0, width))
    cy = int(rng.integers(0, height))
    x1, x2 = max(0, cx - side // 2), min(width, cx + side - side // 2)
    y1, y2 = max(0, cy - side // 2), min(height, cy + side - side // 2)
    result[y1:y2, x1:x2] = fill_value
    return result


def add_rain(image: np.ndarray, intensity: float, rng: np.random.Generator) -> np.ndarray:
    """Slanted light streaks over a slightly darkened image."""
    height, width = image.shape[:2]
    drops = int(intensity * width * height / 600)
    streaks = np.zeros((height, width), dtype=np.uint8)
    slant = int(rng.integers(-4, 5))

    for _ in range(drops):
        x = int(rng.integers(0, width))
        y = int(rng.integers(0, height))
        length = int(rng.integers(8, 20))
        cv2.line(streaks, (x, y), (x + slant, y + length), 200, 1)

    streaks = cv2.blur(streaks, (3, 3))
    darkened = image.astype(np.float32) * (1.0 - 0.15 * intensity)
    alpha = (streaks.astype(np.float32) / 255.0)[:, :, None]
    rained = darkened * (1.0 - alpha) + 200.0 * alpha
    return np.clip(rained, 0, 255).astype(np.uint8)


def add_snow(image: np.ndarray, intensity: float, rng: np.random.Generator) -> np.ndarray:
    """Soft white flakes scattered over the image."""
    height, width = image.shape[:2]
    flakes = (rng.random((height, width)) < intensity * 0.02).astype(np.float32)
    flakes = ndimage.gaussian_filter(flakes, sigma=1.0)
    if flakes.max() > 0:
        flakes = flakes / flakes.max()
    alpha = np.clip(flakes * 1.5, 0, 1)[:, :, None]
    snowed = image.astype(np.float32) * (1.0 - alpha) + 255.0 * alpha
    return np.clip(snowed, 0, 255).astype(np.uint8)


def add_fog(image: np.ndarray, intensity: float, rng: np.random.Generator) -> np.ndarray:
    """Blend towards light gray with a smooth, spatially varying density."""
    height, width = image.shape[:2]
    field = ndimage.gaussian_filter(rng.random((height, width)), sigma=max(height, width) / 16.0)
    spread = field.max() - field.min()
    field = (field - field.min()) / spread if spread > 0 else np.zeros_like(field)
    alpha = (intensity * (0.5 + 0.5 * field)).astype(np.float32)[:, :, None]
    fogged = image.astype(np.float32) * (1.0 - alpha) + 220.0 * alpha
    return np.clip(fogged, 0, 255).astype(np.uint8)


# =============================================================================
# Dispatch
# =============================================================================

def render_transform(
    image: np.ndarray,
    kind: TransformKind,
    value: Optional[float],
    rng: np.random.Generator,
    interpolation: InterpolationMethod = InterpolationMethod.BILINEAR,
    fill_value: int = DEFAULT_FILL_VALUE
) -> np.ndarray:
    """
    Render one transform sample into a new array.

    Args:
        image: Source BGR image (left untouched)
        kind: Transform kind
        value: Sampled parameter (None for flips)
        rng: Random generator for stochastic kinds
        interpolation: Interpolation for geometric warps
        fill_value: Fill for uncovered pixels (warps, cutout)

    Returns:
        The transformed image, same size as the input
    """
    kind = TransformKind(kind)
    height, width = image.shape[:2]

    if kind in (TransformKind.ROTATION, TransformKind.SCALING, TransformKind.TRANSLATION):
        return warp_affine(image, affine_matrix(kind, value, width, height), interpolation, fill_value)
    if kind == TransformKind.FLIP_HORIZONTAL:
        return flip_horizontal(image)
    if kind == TransformKind.FLIP_VERTICAL:
        return flip_vertical(image)
    if kind == TransformKind.BRIGHTNESS:
        return adjust_brightness(image, value)
    if kind == TransformKind.CONTRAST:
        return adjust_contrast(image, value)
    if kind == TransformKind.SATURATION:
        return adjust_saturation(image, value)
    if kind == TransformKind.HUE:
        return shift_hue(image, value)
    if kind == TransformKind.GAMMA:
        return adjust_gamma(image, value)
    if kind == TransformKind.GAUSSIAN_BLUR:
        return gaussian_blur(image, value)
    if kind == TransformKind.SHARPEN:
        return sharpen(image, value)
    if kind == TransformKind.GAUSSIAN_NOISE:
        return add_gaussian_noise(image, value, rng)
    if kind == TransformKind.SALT_PEPPER_NOISE:
        return add_salt_pepper_noise(image, value, rng)
    if kind == TransformKind.CUTOUT:
        return cutout(image, value, rng, fill_value)
    if kind == TransformKind.RAIN:
        return add_rain(image, value, rng)
    if kind == TransformKind.SNOW:
        return add_snow(image, value, rng)
    if kind == TransformKind.FOG:
        return add_fog(image, value, rng)

    raise ValueError(f"No renderer for transform kind: {kind}")
