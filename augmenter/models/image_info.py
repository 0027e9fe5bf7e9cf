"""
Image metadata models.

Data classes for representing image information and pixel sources.
"""

import io
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from ..core.exceptions import DecodeError

T = TypeVar("T")


@dataclass
class ImageInfo:
    """
    Image metadata for dataset export.

    Compatible with COCO format image entries.
    """
    image_id: int
    file_name: str
    width: int
    height: int

    def to_coco_dict(self) -> dict[str, Any]:
        """
        Convert to COCO format dictionary.

        Returns:
            COCO image dictionary
        """
        return {
            "id": self.image_id,
            "file_name": self.file_name,
            "width": self.width,
            "height": self.height,
        }


def run_with_timeout(func: Callable[[], T], timeout: Optional[float]) -> T:
    """
    Run ``func`` on a helper thread and wait at most ``timeout`` seconds.

    The helper thread is not killed on timeout; its result is discarded.

    Raises:
        TimeoutError: If the call did not finish in time
    """
    if timeout is None:
        return func()

    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="decode")
    try:
        future = pool.submit(func)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout as e:
            raise TimeoutError(f"Timed out after {timeout:.1f}s") from e
    finally:
        pool.shutdown(wait=False)


class ImageSource:
    """
    Handle on an image's pixel data.

    Exactly one of ``path``, ``data`` (encoded bytes) or ``array`` (decoded
    BGR pixels) is set. Decoding is deferred until ``load()`` is called so that
    at most one decoded buffer needs to be alive per image being processed.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        data: Optional[bytes] = None,
        array: Optional[np.ndarray] = None
    ):
        provided = [v is not None for v in (path, data, array)]
        if sum(provided) != 1:
            raise ValueError("ImageSource needs exactly one of path, data or array")
        self.path = Path(path) if path is not None else None
        self.data = data
        self.array = array

    @classmethod
    def from_path(cls, path) -> 'ImageSource':
        return cls(path=Path(path))

    @classmethod
    def from_bytes(cls, data: bytes) -> 'ImageSource':
        return cls(data=data)

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'ImageSource':
        return cls(array=array)

    def __repr__(self) -> str:
        if self.path is not None:
            return f"ImageSource(path={str(self.path)!r})"
        if self.data is not None:
            return f"ImageSource(data=<{len(self.data)} bytes>)"
        return f"ImageSource(array={self.array.shape})"

    def read_bytes(self) -> bytes:
        """Raw encoded bytes (path or bytes sources only)."""
        if self.data is not None:
            return self.data
        if self.path is not None:
            return self.path.read_bytes()
        raise ValueError("In-memory array sources have no encoded bytes")

    def _decode(self) -> Optional[np.ndarray]:
        if self.array is not None:
            return self.array

        if self.path is not None:
            if not self.path.exists():
                raise FileNotFoundError(f"Image file not found: {self.path}")
            # np.fromfile + imdecode handles non-ASCII paths on Windows
            buffer = np.fromfile(str(self.path), dtype=np.uint8)
        else:
            buffer = np.frombuffer(self.data, dtype=np.uint8)

        if buffer.size == 0:
            return None
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        return image

    def load(self, timeout: Optional[float] = None, image_id: Optional[str] = None) -> np.ndarray:
        """
        Decode to a BGR uint8 array.

        Args:
            timeout: Maximum seconds to spend decoding (None = unbounded)
            image_id: Id used in error details

        Raises:
            DecodeError: If the image cannot be decoded or decoding timed out
        """
        try:
            image = run_with_timeout(self._decode, timeout)
        except TimeoutError as e:
            raise DecodeError(f"Decoding timed out for {self!r}", image_id=image_id) from e
        except (OSError, ValueError, cv2.error) as e:
            raise DecodeError(f"Failed to read {self!r}: {e}", image_id=image_id) from e

        if image is None:
            raise DecodeError(f"Failed to decode {self!r}", image_id=image_id)
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        return image

    def probe_size(self, timeout: Optional[float] = None) -> tuple[int, int]:
        """
        Read (width, height) from the image header without decoding pixels.

        Raises:
            DecodeError: If the header cannot be read
        """
        if self.array is not None:
            height, width = self.array.shape[:2]
            return width, height

        def _probe():
            stream = self.path if self.path is not None else io.BytesIO(self.data)
            with Image.open(stream) as img:
                return img.size

        try:
            return run_with_timeout(_probe, timeout)
        except TimeoutError as e:
            raise DecodeError(f"Size probe timed out for {self!r}") from e
        except (OSError, UnidentifiedImageError) as e:
            raise DecodeError(f"Failed to read header of {self!r}: {e}") from e
