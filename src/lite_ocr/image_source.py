"""Image source collaborator: decode, resize and crop into RGB buffers.

The pipeline only talks to the :class:`ImageSource` protocol. The bundled
:class:`PILImageSource` decodes with Pillow and resizes with OpenCV.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, Tuple, Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, InvalidGeometry
from .results import BoundingBox
from .tensor import PixelBuffer

ImageLike = Union[str, Path, Image.Image, np.ndarray]


@dataclass(frozen=True)
class ImageDescriptor:
    """A resized or cropped image: its actual size and an opaque handle."""
    width: int
    height: int
    handle: Any


class ImageSource(Protocol):
    def open(self, source: Any) -> Any:
        ...

    def size(self, image: Any) -> Tuple[int, int]:
        ...

    def resize(self, image: Any, width: int, height: int) -> ImageDescriptor:
        ...

    def crop(self, image: Any, box: BoundingBox, width: int, height: int) -> ImageDescriptor:
        ...

    def decode(self, descriptor: ImageDescriptor) -> PixelBuffer:
        ...


class PILImageSource:
    """Images from files, PIL images or (H, W, 3) RGB arrays."""

    def __init__(self, interpolation: int = cv2.INTER_LINEAR):
        self.interpolation = interpolation

    def open(self, source: ImageLike) -> np.ndarray:
        """Decode ``source`` once into an RGB uint8 array.

        Raises:
            DecodeError: if the file is missing or not a readable image
        """
        if isinstance(source, np.ndarray):
            img = source
        elif isinstance(source, Image.Image):
            img = np.array(source.convert("RGB"))
        else:
            try:
                with Image.open(source) as pil_image:
                    img = np.array(pil_image.convert("RGB"))
            except (OSError, UnidentifiedImageError) as e:
                raise DecodeError(f"Cannot decode image {source}: {e}") from e

        if img.ndim != 3 or img.shape[2] != 3 or img.dtype != np.uint8:
            raise DecodeError(f"Expected an (H, W, 3) uint8 RGB image, got {img.shape} {img.dtype}")
        if img.shape[0] == 0 or img.shape[1] == 0:
            raise InvalidGeometry(f"Image has no pixels: {img.shape[1]}x{img.shape[0]}")
        return img

    def size(self, image: ImageLike) -> Tuple[int, int]:
        h, w = self.open(image).shape[:2]
        return w, h

    def resize(self, image: ImageLike, width: int, height: int) -> ImageDescriptor:
        if width <= 0 or height <= 0:
            raise InvalidGeometry(f"Resize target must be positive, got {width}x{height}")
        img = self.open(image)
        resized = cv2.resize(img, (width, height), interpolation=self.interpolation)
        return ImageDescriptor(width=width, height=height, handle=resized)

    def crop(self, image: ImageLike, box: BoundingBox, width: int, height: int) -> ImageDescriptor:
        """Cut ``box`` out of the image and resize it to ``width`` x ``height``."""
        img = self.open(image)
        x1, y1, x2, y2 = box.to_xyxy()
        patch = img[y1:y2, x1:x2]
        if patch.size == 0:
            raise InvalidGeometry(
                f"Box {box.as_tuple()} lies outside image of size {img.shape[1]}x{img.shape[0]}"
            )
        return self.resize(patch, width, height)

    def decode(self, descriptor: ImageDescriptor) -> PixelBuffer:
        handle = descriptor.handle
        if not isinstance(handle, np.ndarray):
            raise DecodeError(f"Cannot decode handle of type {type(handle).__name__}")
        buffer = PixelBuffer.from_array(handle)
        if (buffer.width, buffer.height) != (descriptor.width, descriptor.height):
            raise DecodeError(
                f"Decoded {buffer.width}x{buffer.height}, "
                f"descriptor says {descriptor.width}x{descriptor.height}"
            )
        return buffer
