"""
High-level OCR Pipeline
Combines detection and recognition into a single detect-then-read call
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, List, Optional, Union

from .config import PipelineConfig
from .errors import OCRError
from .hooks import LoggingHooks, PipelineHooks
from .image_source import ImageSource, PILImageSource
from .onnx_base import InferenceEngine
from .results import BoundingBox, BoxResult, RecognizedText
from .text_detector import TextDetector
from .text_recognizer import TextRecognizer

logger = logging.getLogger(__name__)

ModelLike = Union[str, Path, InferenceEngine]


class OCRPipeline:
    """
    Complete OCR pipeline combining detection and recognition.

    Workflow:
    1. Resize the image to the detector input and find text boxes
    2. Crop every box at the recognizer input size
    3. Recognize each crop independently

    Usage:
        ocr = OCRPipeline("det.onnx", "rec.onnx")
        for item in ocr.ocr("receipt.jpg"):
            print(item.box, item.text)
    """

    def __init__(
        self,
        det_model: ModelLike,
        rec_model: ModelLike,
        config: Optional[PipelineConfig] = None,
        image_source: Optional[ImageSource] = None,
        hooks: Optional[PipelineHooks] = None,
    ):
        """
        Initialize OCR pipeline

        Args:
            det_model: Detection model path or engine
            rec_model: Recognition model path or engine
            config: Stage and concurrency settings (defaults if None)
            image_source: Decodes, resizes and crops images (Pillow/OpenCV if None)
            hooks: Diagnostics sink shared by every stage
        """
        if config is None:
            config = PipelineConfig()

        self.config = config
        self.hooks = hooks or LoggingHooks(logger)
        self.image_source = image_source or PILImageSource()
        self.text_detector = TextDetector(det_model, config.detector, self.hooks)
        self.text_recognizer = TextRecognizer(rec_model, config.recognizer, self.hooks)

    def __call__(self, source: Any) -> List[BoxResult]:
        """
        Run detection and recognition on one image

        Args:
            source: Anything the image source can open (path, PIL image, array)

        Returns:
            One BoxResult per detected box, in detection order. A box whose
            recognition failed carries the error instead of a text.

        Raises:
            OCRError: if decoding the image or the detection stage fails
        """
        src = self.image_source
        image = src.open(source)
        original_size = src.size(image)

        det_w, det_h = self.text_detector.input_size
        pixels = src.decode(src.resize(image, det_w, det_h))
        boxes = self.text_detector.detect_single(pixels, original_size)

        if not boxes:
            logger.info("No text regions found")
            return []

        logger.info("Recognizing %d text regions", len(boxes))
        if self.config.max_workers > 1 and len(boxes) > 1:
            return self._recognize_parallel(image, boxes)
        return [self._recognize_box(image, i, box) for i, box in enumerate(boxes)]

    def ocr(self, source: Any) -> List[RecognizedText]:
        """Recognized texts only, skipping boxes that failed."""
        return [result.text for result in self(source) if result.ok]

    def _recognize_parallel(self, image, boxes: List[BoundingBox]) -> List[BoxResult]:
        # Pre-allocate so results keep box order whatever finishes first
        results: List[Optional[BoxResult]] = [None] * len(boxes)
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            future_to_index = {
                executor.submit(self._recognize_box, image, i, box): i
                for i, box in enumerate(boxes)
            }
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        return results

    def _recognize_box(self, image, index: int, box: BoundingBox) -> BoxResult:
        """Crop, normalize, recognize and decode one box; capture stage errors."""
        rec_w, rec_h = self.text_recognizer.input_size
        try:
            patch = self.image_source.crop(image, box, rec_w, rec_h)
            pixels = self.image_source.decode(patch)
            text = self.text_recognizer.recognize_single(pixels, box)
        except OCRError as e:
            logger.warning("Box %d %s failed: %s", index, box.as_tuple(), e)
            self.hooks.emit("box.failed", index=index, box=box.as_tuple(),
                            error=type(e).__name__)
            return BoxResult(index=index, box=box, error=e)
        return BoxResult(index=index, box=box, text=text)

    def __repr__(self):
        return (
            f"OCRPipeline(\n"
            f"  detector={self.text_detector},\n"
            f"  recognizer={self.text_recognizer}\n"
            f")"
        )
