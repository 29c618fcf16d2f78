"""Tests for the image normalizer."""

import numpy as np
import pytest

from lite_ocr.config import NormalizeConfig, ZERO_CENTERED
from lite_ocr.errors import SizeMismatch
from lite_ocr.preprocess import (
    chw_to_hwc,
    dequantize,
    hwc_to_chw,
    normalize_image,
)
from lite_ocr.tensor import DType, Layout, PixelBuffer, Quantization, TensorSpec, resolve_input


def _pixels(rng, width, height):
    data = rng.integers(0, 256, size=width * height * 3, dtype=np.uint8)
    return PixelBuffer(data, width=width, height=height)


def _solid(width, height, rgb):
    data = np.tile(np.array(rgb, dtype=np.uint8), width * height)
    return PixelBuffer(data, width=width, height=height)


class TestNormalizeFloat:
    def test_hwc_length_and_range(self, rng):
        resolved = resolve_input(TensorSpec((1, 4, 5, 3)))
        tensor = normalize_image(_pixels(rng, 5, 4), resolved)
        assert len(tensor) == 3 * 4 * 5
        assert tensor.dtype is DType.FLOAT32
        assert tensor.data.dtype == np.float32
        assert tensor.data.min() >= 0.0
        assert tensor.data.max() <= 1.0

    def test_hwc_preserves_interleave(self, rng):
        pixels = _pixels(rng, 5, 4)
        tensor = normalize_image(pixels, resolve_input(TensorSpec((1, 4, 5, 3))))
        np.testing.assert_allclose(tensor.data, pixels.data / 255.0, rtol=1e-6)

    def test_extremes_map_to_unit_bounds(self):
        resolved = resolve_input(TensorSpec((1, 2, 2, 3)))
        assert normalize_image(_solid(2, 2, (255, 255, 255)), resolved).data.max() == 1.0
        assert normalize_image(_solid(2, 2, (0, 0, 0)), resolved).data.min() == 0.0

    def test_chw_is_transpose_of_hwc(self, rng):
        pixels = _pixels(rng, 5, 4)
        hwc = normalize_image(pixels, resolve_input(TensorSpec((1, 4, 5, 3))))
        chw = normalize_image(pixels, resolve_input(TensorSpec((1, 3, 4, 5))))
        assert chw.layout is Layout.CHW
        np.testing.assert_array_equal(chw.data, hwc_to_chw(hwc.data, 4, 5, 3))
        np.testing.assert_array_equal(chw_to_hwc(chw.data, 4, 5, 3), hwc.data)

    def test_chw_index_arithmetic(self, rng):
        H, W, C = 4, 5, 3
        pixels = _pixels(rng, W, H)
        chw = normalize_image(pixels, resolve_input(TensorSpec((1, C, H, W))))
        for c, h, w in [(0, 0, 0), (2, 3, 4), (1, 2, 1)]:
            src = h * W * C + w * C + c
            assert chw.data[c * H * W + h * W + w] == pytest.approx(pixels.data[src] / 255.0, rel=1e-6)

    def test_grayscale_uses_luma_weights(self):
        resolved = resolve_input(TensorSpec((1, 1, 2, 2)))
        tensor = normalize_image(_solid(2, 2, (255, 0, 0)), resolved)
        assert len(tensor) == 4
        np.testing.assert_allclose(tensor.data, 0.299, rtol=1e-6)

    def test_grayscale_white_is_one(self):
        resolved = resolve_input(TensorSpec((1, 4, 2, 1)))
        tensor = normalize_image(_solid(2, 4, (255, 255, 255)), resolved)
        assert tensor.layout is Layout.HWC
        np.testing.assert_allclose(tensor.data, 1.0, rtol=1e-6)
        assert tensor.data.max() <= 1.0

    def test_custom_luma_weights(self):
        contract = NormalizeConfig(luma_weights=(0.2989, 0.5870, 0.1140))
        resolved = resolve_input(TensorSpec((1, 1, 1, 2)))
        tensor = normalize_image(_solid(2, 1, (0, 255, 0)), resolved, contract)
        np.testing.assert_allclose(tensor.data, [0.5870, 0.5870], rtol=1e-6)

    def test_zero_centered_contract(self):
        resolved = resolve_input(TensorSpec((1, 2, 2, 3)))
        mid = normalize_image(_solid(2, 2, (127, 127, 127)), resolved, ZERO_CENTERED)
        top = normalize_image(_solid(2, 2, (255, 255, 255)), resolved, ZERO_CENTERED)
        np.testing.assert_allclose(mid.data, 0.0, atol=1e-7)
        np.testing.assert_allclose(top.data, 128 / 255, rtol=1e-6)

    def test_as_batch_matches_declared_shape(self, rng):
        resolved = resolve_input(TensorSpec((1, 3, 4, 5)))
        tensor = normalize_image(_pixels(rng, 5, 4), resolved)
        assert tensor.as_batch().shape == (1, 3, 4, 5)


class TestNormalizeQuantized:
    def test_unit_scale_recovers_bytes(self, rng):
        spec = TensorSpec((1, 4, 5, 3), dtype=DType.UINT8,
                          quantization=Quantization(scale=1 / 255, zero_point=0))
        pixels = _pixels(rng, 5, 4)
        tensor = normalize_image(pixels, resolve_input(spec))
        assert tensor.data.dtype == np.uint8
        np.testing.assert_array_equal(tensor.data, pixels.data)

    def test_round_trip_within_one_step(self, rng):
        quant = Quantization(scale=0.02, zero_point=10)
        spec = TensorSpec((1, 3, 4, 5), dtype=DType.UINT8, quantization=quant)
        pixels = _pixels(rng, 5, 4)

        values = normalize_image(pixels, resolve_input(TensorSpec((1, 3, 4, 5)))).data
        q = normalize_image(pixels, resolve_input(spec)).data
        assert np.all(np.abs(dequantize(q, quant) - values) <= quant.scale)

    def test_clamps_to_uint8_range(self):
        spec = TensorSpec((1, 2, 1, 3), dtype=DType.UINT8,
                          quantization=Quantization(scale=0.001, zero_point=0))
        tensor = normalize_image(_solid(1, 2, (255, 0, 255)), resolve_input(spec))
        assert tensor.data.tolist() == [255, 0, 255, 255, 0, 255]

    def test_negative_values_clamp_to_zero(self):
        spec = TensorSpec((1, 1, 1, 2), dtype=DType.UINT8,
                          quantization=Quantization(scale=0.01, zero_point=0))
        tensor = normalize_image(_solid(2, 1, (0, 0, 0)), resolve_input(spec), ZERO_CENTERED)
        assert tensor.data.tolist() == [0, 0]

    def test_rounds_half_up(self):
        # 1.0 / 2.0 = 0.5 rounds to 1, not to the even 0
        spec = TensorSpec((1, 1, 1, 2), dtype=DType.UINT8,
                          quantization=Quantization(scale=2.0, zero_point=0))
        contract = NormalizeConfig(scale=1.0, luma_weights=(1.0, 0.0, 0.0))
        tensor = normalize_image(_solid(2, 1, (1, 0, 0)), resolve_input(spec), contract)
        assert tensor.data.tolist() == [1, 1]


class TestSizeChecks:
    def test_wrong_dimensions_rejected(self, rng):
        resolved = resolve_input(TensorSpec((1, 4, 5, 3)))
        with pytest.raises(SizeMismatch):
            normalize_image(_pixels(rng, 4, 4), resolved)

    def test_transposed_dimensions_rejected(self, rng):
        resolved = resolve_input(TensorSpec((1, 4, 5, 3)))
        with pytest.raises(SizeMismatch):
            normalize_image(_pixels(rng, 4, 5), resolved)
