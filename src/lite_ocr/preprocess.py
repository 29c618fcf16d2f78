"""Preprocessing operations for OCR.

Turns an interleaved RGB pixel buffer into the flat tensor a model declares:
normalization, optional luminance, HWC -> CHW transpose and uint8
quantization, applied as a chain of small operators.
"""

from typing import Dict, List

import numpy as np

from .config import NormalizeConfig, UNIT_RANGE
from .errors import SizeMismatch
from .tensor import DType, Layout, PixelBuffer, Quantization, ResolvedInput, Tensor


class NormalizeImage:
    """Map raw 0..255 channel values through ``(v - mean) * scale``."""

    def __init__(self, mean=0.0, scale=1.0 / 255.0, **kwargs):
        self.mean = float(mean)
        self.scale = float(scale)

    def __call__(self, data: Dict) -> Dict:
        # float64 until the final cast so 255 maps to exactly 1.0
        img = data['image'].astype('float64')
        data['image'] = (img - self.mean) * self.scale
        return data


class ToGrayImage:
    """Collapse HWC RGB into a single luminance channel (H, W, 1)."""

    def __init__(self, weights=(0.299, 0.587, 0.114), **kwargs):
        self.weights = np.array(weights, dtype='float64')

    def __call__(self, data: Dict) -> Dict:
        img = data['image']
        data['image'] = (img @ self.weights)[:, :, np.newaxis]
        return data


class ToCHWImage:
    """Convert image from HWC to CHW format."""

    def __call__(self, data: Dict) -> Dict:
        img = data['image']
        data['image'] = img.transpose((2, 0, 1))
        return data


class QuantizeImage:
    """Affine uint8 quantization, rounding half up and clamping to 0..255."""

    def __init__(self, scale, zero_point, **kwargs):
        self.scale = float(scale)
        self.zero_point = int(zero_point)

    def __call__(self, data: Dict) -> Dict:
        img = data['image'].astype('float64')
        q = np.floor(img / self.scale + self.zero_point + 0.5)
        data['image'] = np.clip(q, 0, 255).astype(np.uint8)
        return data


def create_operators(op_param_list: List[Dict]):
    """Create preprocessing operators from config list.

    Args:
        op_param_list: List of dicts like [{"OpName": {params}}]

    Returns:
        List of operator instances
    """
    ops = []
    for operator in op_param_list:
        assert isinstance(operator, dict) and len(operator) == 1
        op_name = list(operator)[0]
        param = {} if operator[op_name] is None else operator[op_name]
        op = globals()[op_name](**param)
        ops.append(op)
    return ops


def transform(data: Dict, ops: List) -> Dict:
    """Apply preprocessing operators sequentially."""
    for op in ops:
        data = op(data)
    return data


def build_operators(resolved: ResolvedInput, contract: NormalizeConfig = UNIT_RANGE):
    """Operator chain that produces ``resolved``'s tensor from RGB pixels."""
    op_list = [{"NormalizeImage": {"mean": contract.mean, "scale": contract.scale}}]
    if resolved.channels == 1:
        op_list.append({"ToGrayImage": {"weights": contract.luma_weights}})
    if resolved.layout is Layout.CHW:
        op_list.append({"ToCHWImage": None})

    quant = resolved.spec.quantization
    if resolved.spec.dtype is DType.UINT8:
        op_list.append({
            "QuantizeImage": {"scale": quant.scale, "zero_point": quant.zero_point}
        })
    return create_operators(op_list)


def normalize_image(
    pixels: PixelBuffer,
    resolved: ResolvedInput,
    contract: NormalizeConfig = UNIT_RANGE,
) -> Tensor:
    """Convert a decoded RGB buffer into the model's input tensor.

    The buffer must already be resized to the model's input size; resizing
    belongs to the image source.

    Args:
        pixels: Interleaved RGB bytes
        resolved: Input spec with its layout resolved
        contract: Model-specific normalization

    Returns:
        Flat tensor of length channels * height * width

    Raises:
        SizeMismatch: if the buffer is not height * width * 3 bytes
    """
    expected = resolved.width * resolved.height * 3
    if pixels.width != resolved.width or pixels.height != resolved.height \
            or pixels.data.size != expected:
        raise SizeMismatch(expected, pixels.data.size)

    data = {"image": pixels.to_array()}
    data = transform(data, build_operators(resolved, contract))

    flat = np.ascontiguousarray(data["image"]).reshape(-1).astype(resolved.spec.dtype.numpy)
    return Tensor(
        data=flat,
        shape=resolved.spec.shape,
        layout=resolved.layout,
        dtype=resolved.spec.dtype,
    )


def dequantize(values: np.ndarray, quant: Quantization) -> np.ndarray:
    """Inverse of :class:`QuantizeImage` (up to rounding)."""
    return ((values.astype('float32') - quant.zero_point) * quant.scale).astype('float32')


def hwc_to_chw(flat: np.ndarray, height: int, width: int, channels: int) -> np.ndarray:
    return flat.reshape(height, width, channels).transpose((2, 0, 1)).reshape(-1)


def chw_to_hwc(flat: np.ndarray, height: int, width: int, channels: int) -> np.ndarray:
    return flat.reshape(channels, height, width).transpose((1, 2, 0)).reshape(-1)
