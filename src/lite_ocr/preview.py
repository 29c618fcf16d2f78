"""
Preview image generator: draws detected boxes and their recognized text on
top of the source image, built entirely with Pillow.
"""

from typing import List, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .results import BoxResult

_OK_COLOR: Tuple[int, int, int] = (56, 142, 60)      # green
_FAILED_COLOR: Tuple[int, int, int] = (211, 47, 47)  # red

# Border width in pixels
_BORDER_WIDTH = 2
# Max chars for the label above each box
_MAX_LABEL_CHARS = 40


def _truncate(text: str, max_chars: int = _MAX_LABEL_CHARS) -> str:
    """Truncate text and add ellipsis if too long."""
    text = text.replace("\n", " ").strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def _label(result: BoxResult) -> str:
    if result.ok:
        return _truncate(result.text.text)
    return f"[{type(result.error).__name__}]"


def draw_results(image, results: List[BoxResult]) -> Image.Image:
    """Draw every box with its text (or error kind) onto a copy of ``image``.

    Args:
        image: PIL Image or (H, W, 3) RGB array
        results: Output of :class:`~lite_ocr.pipeline.OCRPipeline`

    Returns:
        New RGB PIL Image
    """
    if isinstance(image, np.ndarray):
        canvas = Image.fromarray(image).convert("RGB")
    else:
        canvas = image.convert("RGB")

    draw = ImageDraw.Draw(canvas)
    font = ImageFont.load_default()

    for result in results:
        color = _OK_COLOR if result.ok else _FAILED_COLOR
        x1, y1, x2, y2 = result.box.to_xyxy()
        draw.rectangle([x1, y1, x2 - 1, y2 - 1], outline=color, width=_BORDER_WIDTH)

        label = _label(result)
        if label:
            draw.text((x1, max(y1 - 12, 0)), label, fill=color, font=font)

    return canvas
