"""
Text Detection Module - Stage 1 of OCR Pipeline

Runs a CRAFT-style detector (text + link score maps) and turns its output
into axis-aligned text boxes in original-image coordinates.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

from .config import DetectorConfig
from .errors import InvalidTensorSpec
from .hooks import LoggingHooks, PipelineHooks
from .onnx_base import InferenceEngine, load_engine
from .postprocess import DetectionPostProcess, find_connected_boxes
from .preprocess import normalize_image
from .results import BoundingBox, DetectionMap
from .tensor import PixelBuffer, Tensor, resolve_input
from .utils import map_box_to_original

logger = logging.getLogger(__name__)


class TextDetector:
    """Text detection module.

    This is a standalone module that can be used independently.
    Takes a pixel buffer already resized to :attr:`input_size` and returns
    text boxes mapped back to the original image.
    """

    def __init__(
        self,
        model: Union[str, Path, InferenceEngine],
        config: DetectorConfig = None,
        hooks: Optional[PipelineHooks] = None,
    ):
        """Initialize text detector.

        Args:
            model: Path to detection ONNX model, or a loaded engine
            config: Detector configuration (uses defaults if None)
            hooks: Diagnostics sink (logs at DEBUG if None)
        """
        if config is None:
            config = DetectorConfig()

        self.config = config
        self.hooks = hooks or LoggingHooks(logger)
        self.engine = load_engine(model, config)

        # Layout is resolved once and reused for every image
        self.input = resolve_input(self.engine.inputs[0], config.layout_hint)

        self.postprocess_op = DetectionPostProcess(
            text_threshold=config.text_threshold,
            link_threshold=config.link_threshold,
            hooks=self.hooks,
        )

    @property
    def input_size(self) -> Tuple[int, int]:
        """(width, height) the image must be resized to."""
        return self.input.width, self.input.height

    def preprocess(self, pixels: PixelBuffer) -> Tensor:
        tensor = normalize_image(pixels, self.input, self.config.normalize)
        self.hooks.emit(
            "detector.input",
            shape=list(tensor.shape),
            layout=tensor.layout.value,
            dtype=tensor.dtype.value,
            head=tensor.data[:10].tolist(),
        )
        return tensor

    def detect_map(self, pixels: PixelBuffer) -> DetectionMap:
        """Run the model and threshold its score maps."""
        tensor = self.preprocess(pixels)
        output = np.asarray(self.engine.run(tensor))
        return self.postprocess_op(output, *self._output_dims(output))

    def detect_single(
        self,
        pixels: PixelBuffer,
        original_size: Tuple[int, int],
    ) -> List[BoundingBox]:
        """Detect text in a single image.

        Args:
            pixels: Image resized to :attr:`input_size`
            original_size: (width, height) of the image before resizing

        Returns:
            Boxes in original-image coordinates, in discovery order
        """
        detection = self.detect_map(pixels)
        mask = detection.combined_mask() if self.config.use_link_mask else detection.text_mask

        mask_boxes = find_connected_boxes(
            mask,
            detection.out_width,
            detection.out_height,
            min_area=self.config.min_area,
        )
        self.hooks.emit("detector.boxes", count=len(mask_boxes))

        mask_size = (detection.out_width, detection.out_height)
        return [
            map_box_to_original(box, mask_size, self.input_size, original_size)
            for box in mask_boxes
        ]

    __call__ = detect_single

    def _output_dims(self, output: np.ndarray) -> Tuple[int, int, int]:
        """(H, W, C) of a channel-last output, from the array or the model."""
        shape = output.shape if output.ndim == 4 else self.engine.output_shapes[0]
        if len(shape) != 4 or not all(isinstance(d, (int, np.integer)) for d in shape[1:]):
            raise InvalidTensorSpec(f"Cannot read detector output dims from shape {list(shape)}")
        _, height, width, channels = shape
        return int(height), int(width), int(channels)

    def __repr__(self):
        return f"TextDetector(input={self.input.layout.value} {self.input_size})"
