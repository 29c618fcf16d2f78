"""Configuration classes for OCR modules."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple, Union

from .tensor import Layout, Quantization

# Character set of the EasyOCR latin detector/recognizer pair.
EASYOCR_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz.,- /_"

LUMA_BT601 = (0.299, 0.587, 0.114)


@dataclass(frozen=True)
class NormalizeConfig:
    """Per-model pixel normalization: ``(value - mean) * scale``.

    The formula is part of each model's training contract; feeding a model
    the wrong one degrades accuracy without raising anything.
    """
    mean: float = 0.0  # Subtracted from raw 0..255 values
    scale: float = 1.0 / 255.0
    luma_weights: Tuple[float, float, float] = LUMA_BT601  # Used for 1-channel inputs

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        if len(self.luma_weights) != 3:
            raise ValueError("luma_weights needs exactly three R, G, B weights")


UNIT_RANGE = NormalizeConfig()
ZERO_CENTERED = NormalizeConfig(mean=127.0)


def _check_model_opts(input_shape, quantization):
    if input_shape is not None and len(input_shape) != 4:
        raise ValueError(f"input_shape must have 4 dims, got {input_shape}")
    if quantization is not None and not isinstance(quantization, Quantization):
        raise ValueError("quantization must be a Quantization(scale, zero_point)")


@dataclass
class DetectorConfig:
    """Configuration for text detection stage."""
    text_threshold: float = 0.5  # Sigmoid probability above which a cell is text
    link_threshold: float = 0.5  # Same for the character-link channel
    min_area: int = 10  # Smallest blob (in mask cells) kept as a box
    use_link_mask: bool = False  # OR link mask into text mask before labeling
    normalize: NormalizeConfig = UNIT_RANGE
    quantization: Optional[Quantization] = None  # Required for uint8 models
    layout_hint: Optional[Layout] = None  # Breaks ties like [1, 3, 3, 3]
    input_shape: Optional[Tuple[int, int, int, int]] = None  # Fills symbolic dims
    use_gpu: bool = False  # Enable CUDA GPU acceleration
    use_tensorrt: bool = False  # Enable TensorRT acceleration

    def __post_init__(self):
        for name in ("text_threshold", "link_threshold"):
            value = getattr(self, name)
            if not 0.0 < value < 1.0:
                raise ValueError(f"{name} must be in (0, 1), got {value}")
        if self.min_area < 1:
            raise ValueError(f"min_area must be >= 1, got {self.min_area}")
        _check_model_opts(self.input_shape, self.quantization)


@dataclass
class RecognizerConfig:
    """Configuration for text recognition stage."""
    alphabet: str = EASYOCR_ALPHABET  # Class i maps to alphabet[i - 1]; 0 is blank
    char_dict_path: Optional[Union[str, Path]] = None  # One char per line, overrides alphabet
    use_space_char: bool = False  # Append " " to a dictionary-file alphabet
    normalize: NormalizeConfig = UNIT_RANGE
    quantization: Optional[Quantization] = None
    layout_hint: Optional[Layout] = None
    input_shape: Optional[Tuple[int, int, int, int]] = None
    use_gpu: bool = False
    use_tensorrt: bool = False

    def __post_init__(self):
        if self.char_dict_path is None and not self.alphabet:
            raise ValueError("Recognizer needs an alphabet or a char_dict_path")
        _check_model_opts(self.input_shape, self.quantization)


@dataclass
class PipelineConfig:
    """Configuration for the detect-then-recognize pipeline."""
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    recognizer: RecognizerConfig = field(default_factory=RecognizerConfig)
    max_workers: int = 1  # >1 recognizes boxes on a thread pool

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
