"""Tests for the ONNX Runtime engine adapter that do not need a model file."""

from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

from lite_ocr.config import DetectorConfig
from lite_ocr.errors import InferenceError, InvalidTensorSpec
from lite_ocr.onnx_base import ONNXInferenceBase, load_engine
from lite_ocr.tensor import DType, Layout, Quantization, Tensor

from conftest import FakeEngine


def _node(shape, type_="tensor(float)", name="input"):
    return SimpleNamespace(name=name, type=type_, shape=shape)


class TestInputSpec:
    def test_symbolic_batch_becomes_one(self):
        spec = ONNXInferenceBase._input_spec(_node(["N", 3, 608, 800]), None, None)
        assert spec.shape == (1, 3, 608, 800)
        assert spec.dtype is DType.FLOAT32

    def test_symbolic_spatial_dims_need_config(self):
        with pytest.raises(InvalidTensorSpec):
            ONNXInferenceBase._input_spec(_node([1, 1, 64, "width"]), None, None)

    def test_configured_shape_wins(self):
        spec = ONNXInferenceBase._input_spec(_node([1, 1, 64, "width"]), None, (1, 1, 64, 256))
        assert spec.shape == (1, 1, 64, 256)

    def test_uint8_input_takes_quantization(self):
        quant = Quantization(scale=1 / 255, zero_point=0)
        spec = ONNXInferenceBase._input_spec(_node([1, 320, 320, 3], "tensor(uint8)"), quant, None)
        assert spec.dtype is DType.UINT8
        assert spec.quantization == quant

    def test_uint8_input_without_quantization(self):
        with pytest.raises(InvalidTensorSpec):
            ONNXInferenceBase._input_spec(_node([1, 320, 320, 3], "tensor(uint8)"), None, None)

    def test_unsupported_type(self):
        with pytest.raises(InvalidTensorSpec):
            ONNXInferenceBase._input_spec(_node([1, 3, 8, 8], "tensor(int64)"), None, None)


class TestRun:
    def _engine(self, session):
        engine = ONNXInferenceBase.__new__(ONNXInferenceBase)
        engine.model_path = Path("det.onnx")
        engine.session = session
        engine.input_names = ["input"]
        engine.output_names = ["out"]
        return engine

    def test_feeds_batched_tensor(self):
        fed = {}

        def run(output_names, input_feed):
            fed.update(input_feed)
            return [np.ones((1, 2, 2, 2), dtype=np.float32)]

        engine = self._engine(SimpleNamespace(run=run))
        tensor = Tensor(np.zeros(12, dtype=np.float32), (1, 3, 2, 2), Layout.CHW, DType.FLOAT32)
        out = engine.run(tensor)

        assert fed["input"].shape == (1, 3, 2, 2)
        assert out.shape == (1, 2, 2, 2)

    def test_runtime_failure_becomes_inference_error(self):
        def run(output_names, input_feed):
            raise RuntimeError("bad input")

        engine = self._engine(SimpleNamespace(run=run))
        tensor = Tensor(np.zeros(12, dtype=np.float32), (1, 3, 2, 2), Layout.CHW, DType.FLOAT32)
        with pytest.raises(InferenceError, match="bad input"):
            engine.run(tensor)


class TestLoadEngine:
    def test_engine_passes_through(self):
        engine = FakeEngine((1, 8, 8, 3), np.zeros((1, 4, 4, 2)))
        assert load_engine(engine, DetectorConfig()) is engine

    def test_missing_model_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_engine(tmp_path / "missing.onnx", DetectorConfig())
