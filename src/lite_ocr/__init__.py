"""
LiteOCR
Two-stage OCR support library: tensor preparation, text-box extraction and
CTC decoding around a detector/recognizer model pair

Stages:
- TextDetector: Finds text boxes (sigmoid threshold + connected components)
- TextRecognizer: Reads one cropped box into a string (greedy CTC decode)

High-level interface:
- OCRPipeline: Detection + per-box recognition
"""

from .config import (
    DetectorConfig,
    NormalizeConfig,
    PipelineConfig,
    RecognizerConfig,
    UNIT_RANGE,
    ZERO_CENTERED,
)
from .errors import (
    AmbiguousLayout,
    DecodeError,
    InferenceError,
    InvalidGeometry,
    InvalidTensorSpec,
    OCRError,
    OutputSizeMismatch,
    SizeMismatch,
)
from .hooks import LoggingHooks, PipelineHooks, RecordingHooks
from .image_source import ImageDescriptor, PILImageSource
from .pipeline import OCRPipeline
from .results import BoundingBox, BoxResult, DetectionMap, RecognizedText
from .tensor import DType, Layout, PixelBuffer, Quantization, Tensor, TensorSpec, resolve_input
from .text_detector import TextDetector
from .text_recognizer import TextRecognizer

__version__ = "0.1.0"
__all__ = [
    "OCRPipeline",
    "TextDetector",
    "TextRecognizer",
    "DetectorConfig",
    "RecognizerConfig",
    "PipelineConfig",
    "NormalizeConfig",
    "UNIT_RANGE",
    "ZERO_CENTERED",
    "TensorSpec",
    "Tensor",
    "PixelBuffer",
    "DType",
    "Layout",
    "Quantization",
    "resolve_input",
    "BoundingBox",
    "DetectionMap",
    "RecognizedText",
    "BoxResult",
    "ImageDescriptor",
    "PILImageSource",
    "PipelineHooks",
    "LoggingHooks",
    "RecordingHooks",
    "OCRError",
    "InvalidTensorSpec",
    "AmbiguousLayout",
    "SizeMismatch",
    "OutputSizeMismatch",
    "InvalidGeometry",
    "DecodeError",
    "InferenceError",
]
