"""
Text Recognition Module - Stage 2 of OCR Pipeline

Recognizes text from one cropped text region at a time.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from .config import RecognizerConfig
from .errors import InvalidTensorSpec
from .hooks import LoggingHooks, PipelineHooks
from .onnx_base import InferenceEngine, load_engine
from .postprocess import CTCLabelDecode
from .preprocess import normalize_image
from .results import BoundingBox, RecognizedText
from .tensor import PixelBuffer, Tensor, resolve_input

logger = logging.getLogger(__name__)


class TextRecognizer:
    """Text recognition module.

    This is a standalone module that can be used independently.
    Takes a text patch already resized to :attr:`input_size` and returns
    the recognized string.
    """

    def __init__(
        self,
        model: Union[str, Path, InferenceEngine],
        config: RecognizerConfig = None,
        hooks: Optional[PipelineHooks] = None,
    ):
        """Initialize text recognizer.

        Args:
            model: Path to recognition ONNX model, or a loaded engine
            config: Recognizer configuration (uses defaults if None)
            hooks: Diagnostics sink (logs at DEBUG if None)
        """
        if config is None:
            config = RecognizerConfig()

        self.config = config
        self.hooks = hooks or LoggingHooks(logger)
        self.engine = load_engine(model, config)
        self.input = resolve_input(self.engine.inputs[0], config.layout_hint)

        # Setup postprocessing (CTC decoder)
        self.postprocess_op = CTCLabelDecode(
            alphabet=config.alphabet,
            character_dict_path=config.char_dict_path,
            use_space_char=config.use_space_char,
        )
        self._check_classes()

    @property
    def input_size(self) -> Tuple[int, int]:
        """(width, height) every text patch must be resized to."""
        return self.input.width, self.input.height

    def _check_classes(self):
        shapes = self.engine.output_shapes
        declared = shapes[0][-1] if shapes and shapes[0] else None
        if isinstance(declared, int) and declared != self.postprocess_op.num_classes:
            logger.warning(
                "Recognizer declares %d classes but the alphabet has %d (+1 blank); "
                "extra classes decode to nothing",
                declared, self.postprocess_op.num_classes,
            )

    def preprocess(self, pixels: PixelBuffer) -> Tensor:
        return normalize_image(pixels, self.input, self.config.normalize)

    def recognize_single(
        self,
        pixels: PixelBuffer,
        box: BoundingBox,
    ) -> RecognizedText:
        """Recognize text in a single patch.

        Args:
            pixels: Patch resized to :attr:`input_size`
            box: Where the patch came from, in original-image coordinates

        Returns:
            Recognized text tagged with its box
        """
        tensor = self.preprocess(pixels)
        output = np.asarray(self.engine.run(tensor))
        text, confidence = self.postprocess_op(output, *self._output_dims(output))
        self.hooks.emit("recognizer.text", box=box.as_tuple(), text=text,
                        confidence=round(confidence, 4))
        return RecognizedText(text=text, box=box, confidence=confidence)

    __call__ = recognize_single

    def _output_dims(self, output: np.ndarray) -> Tuple[Optional[int], Optional[int]]:
        """(T, C) for a flat output, taken from the declared output shape."""
        if output.ndim >= 2:
            return None, None
        shape = self.engine.output_shapes[0]
        if len(shape) < 2 or not all(isinstance(d, int) for d in shape[-2:]):
            raise InvalidTensorSpec(f"Cannot read recognizer output dims from shape {list(shape)}")
        return shape[-2], shape[-1]

    def __repr__(self):
        return (
            f"TextRecognizer(input={self.input.layout.value} {self.input_size}, "
            f"classes={self.postprocess_op.num_classes})"
        )
