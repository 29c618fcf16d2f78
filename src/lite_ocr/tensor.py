"""Tensor specs, layouts and buffers exchanged with the inference engine.

A model's declared input shape is resolved into a layout exactly once
(:func:`resolve_input`) and the result is threaded through preprocessing,
so no stage has to re-derive which dimension holds the channels.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import AmbiguousLayout, DecodeError, InvalidTensorSpec, SizeMismatch

CHANNEL_COUNTS = (1, 3)


class DType(str, Enum):
    FLOAT32 = "float32"
    UINT8 = "uint8"

    @property
    def numpy(self):
        return np.float32 if self is DType.FLOAT32 else np.uint8


class Layout(str, Enum):
    HWC = "hwc"  # row-major, channel last
    CHW = "chw"  # row-major, channel first


@dataclass(frozen=True)
class Quantization:
    """Affine uint8 quantization: ``q = round(v / scale + zero_point)``."""
    scale: float
    zero_point: int

    def __post_init__(self):
        if not self.scale > 0:
            raise InvalidTensorSpec(f"Quantization scale must be positive, got {self.scale}")


@dataclass(frozen=True)
class TensorSpec:
    """Shape, dtype and quantization a model declares for one input/output."""
    shape: Tuple[int, int, int, int]
    dtype: DType = DType.FLOAT32
    quantization: Optional[Quantization] = None

    def __post_init__(self):
        shape = tuple(self.shape)
        if len(shape) != 4:
            raise InvalidTensorSpec(f"Expected a 4-D shape, got {list(shape)}")
        if not all(isinstance(d, (int, np.integer)) and d > 0 for d in shape):
            raise InvalidTensorSpec(f"Shape dims must be positive integers, got {list(shape)}")
        object.__setattr__(self, "shape", tuple(int(d) for d in shape))
        object.__setattr__(self, "dtype", DType(self.dtype))

        if self.dtype is DType.UINT8 and self.quantization is None:
            raise InvalidTensorSpec("Quantized uint8 spec requires scale/zero_point")
        if self.dtype is DType.FLOAT32 and self.quantization is not None:
            raise InvalidTensorSpec("Float32 spec must not carry quantization")

    @property
    def size(self) -> int:
        return int(np.prod(self.shape))


@dataclass(frozen=True)
class ResolvedInput:
    """A TensorSpec together with its inferred layout and spatial size."""
    spec: TensorSpec
    layout: Layout
    height: int
    width: int
    channels: int

    @property
    def size(self) -> int:
        return self.channels * self.height * self.width


def resolve_input(spec: TensorSpec, hint: Optional[Layout] = None) -> ResolvedInput:
    """Infer HWC/CHW layout and target size from a 4-D input spec.

    Exactly one of ``shape[1]`` / ``shape[3]`` must be a channel count (1 or
    3). When both qualify (e.g. a 3x3 image) the shape alone is ambiguous and
    only ``hint`` can decide; otherwise the hint is ignored.

    Raises:
        AmbiguousLayout: if the layout cannot be determined
    """
    _, d1, d2, d3 = spec.shape
    last_ok = d3 in CHANNEL_COUNTS
    first_ok = d1 in CHANNEL_COUNTS

    if last_ok and first_ok:
        layout = hint
    elif last_ok:
        layout = Layout.HWC
    elif first_ok:
        layout = Layout.CHW
    else:
        layout = None

    if layout is Layout.HWC and last_ok:
        return ResolvedInput(spec, Layout.HWC, height=d1, width=d2, channels=d3)
    if layout is Layout.CHW and first_ok:
        return ResolvedInput(spec, Layout.CHW, height=d2, width=d3, channels=d1)
    raise AmbiguousLayout(spec.shape)


@dataclass
class PixelBuffer:
    """Interleaved R,G,B bytes of a decoded image."""
    data: np.ndarray
    width: int
    height: int

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=np.uint8).reshape(-1)
        expected = self.width * self.height * 3
        if self.data.size != expected:
            raise SizeMismatch(expected, self.data.size)

    @classmethod
    def from_array(cls, image: np.ndarray) -> "PixelBuffer":
        """Wrap an (H, W, 3) RGB uint8 array."""
        if image.ndim != 3 or image.shape[2] != 3:
            raise DecodeError(f"Expected an (H, W, 3) RGB array, got shape {image.shape}")
        h, w = image.shape[:2]
        return cls(np.ascontiguousarray(image, dtype=np.uint8), width=w, height=h)

    def to_array(self) -> np.ndarray:
        return self.data.reshape(self.height, self.width, 3)


@dataclass
class Tensor:
    """Flat model input buffer in a resolved layout."""
    data: np.ndarray
    shape: Tuple[int, ...]
    layout: Layout
    dtype: DType

    def __len__(self) -> int:
        return int(self.data.size)

    def as_batch(self) -> np.ndarray:
        """Reshape the flat buffer to the declared (batch of one) shape."""
        shape: Sequence[int] = (1,) + tuple(self.shape[1:])
        return self.data.reshape(shape)
