"""Utility functions for OCR pipeline."""

import math
from typing import Optional, Tuple

from .errors import InvalidGeometry
from .results import BoundingBox

Size = Tuple[int, int]  # (width, height)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _check_size(size: Size, what: str) -> None:
    width, height = size
    if width <= 0 or height <= 0:
        raise InvalidGeometry(f"{what} size must be positive, got {width}x{height}")


def map_box_to_original(
    box: BoundingBox,
    mask_size: Size,
    resized_size: Optional[Size],
    original_size: Size,
) -> BoundingBox:
    """Rescale a box from detector-mask space to original-image space.

    The mask is usually smaller than the resized detector input by the
    detector's stride; scaling straight from mask to original folds that
    stride in, so ``resized_size`` is only validated.

    Args:
        box: Box in mask coordinates
        mask_size: (width, height) of the detection mask
        resized_size: (width, height) the detector ran on, or None
        original_size: (width, height) of the source image

    Returns:
        Box in original-image coordinates, clamped inside the image

    Raises:
        InvalidGeometry: if any dimension is zero or negative
    """
    _check_size(mask_size, "mask")
    _check_size(original_size, "original image")
    if resized_size is not None:
        _check_size(resized_size, "resized image")

    mask_w, mask_h = mask_size
    orig_w, orig_h = original_size
    sx = orig_w / mask_w
    sy = orig_h / mask_h

    x = min(max(round_half_up(box.x * sx), 0), orig_w - 1)
    y = min(max(round_half_up(box.y * sy), 0), orig_h - 1)
    width = min(max(round_half_up(box.width * sx), 1), orig_w - x)
    height = min(max(round_half_up(box.height * sy), 1), orig_h - y)

    return BoundingBox(x=x, y=y, width=width, height=height)
