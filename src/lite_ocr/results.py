"""Result types produced by the detection and recognition stages."""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .errors import OCRError


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned integer box. Mask or image space depending on the caller."""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.x < 0 or self.y < 0 or self.width < 1 or self.height < 1:
            raise ValueError(f"Invalid box {self.as_tuple()}")

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    def to_xyxy(self) -> Tuple[int, int, int, int]:
        """Return [x1, y1, x2, y2] with exclusive right/bottom edges."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class DetectionMap:
    """Thresholded text/link masks, flat row-major of length H*W."""
    text_mask: np.ndarray
    link_mask: np.ndarray
    out_height: int
    out_width: int

    def __post_init__(self):
        for name in ("text_mask", "link_mask"):
            mask = np.asarray(getattr(self, name), dtype=bool).reshape(-1).copy()
            mask.flags.writeable = False
            object.__setattr__(self, name, mask)

    def combined_mask(self) -> np.ndarray:
        """Text mask OR link mask, joining characters into words."""
        return self.text_mask | self.link_mask


@dataclass(frozen=True)
class RecognizedText:
    text: str
    box: BoundingBox
    confidence: float = 0.0


@dataclass(frozen=True)
class BoxResult:
    """Outcome of recognizing one detected box: a text or an error."""
    index: int
    box: BoundingBox
    text: Optional[RecognizedText] = None
    error: Optional[OCRError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
