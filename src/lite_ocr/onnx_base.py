"""Inference engine contract and its ONNX Runtime implementation."""

from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np
import onnxruntime
from onnxruntime.capi import _pybind_state as C

from .errors import InferenceError, InvalidTensorSpec
from .tensor import DType, Quantization, Tensor, TensorSpec

_ONNX_DTYPES = {
    "tensor(float)": DType.FLOAT32,
    "tensor(uint8)": DType.UINT8,
}


class InferenceEngine(Protocol):
    """What the pipeline needs from a loaded model."""

    inputs: List[TensorSpec]
    output_shapes: List[Tuple]

    def run(self, tensor: Tensor) -> np.ndarray:
        ...


class ONNXInferenceBase:
    """ONNX Runtime session exposing declared input specs and ``run``."""

    def __init__(
        self,
        model_path: Union[str, Path],
        use_gpu: bool = False,
        use_tensorrt: bool = False,
        quantization: Optional[Quantization] = None,
        input_shape: Optional[Sequence[int]] = None,
    ):
        """Initialize ONNX Runtime session.

        Args:
            model_path: Path to ONNX model file
            use_gpu: Enable CUDA GPU acceleration
            use_tensorrt: Enable TensorRT acceleration (requires TensorRT)
            quantization: Scale/zero point for a uint8 input
            input_shape: Concrete 4-D input shape for models with symbolic dims
        """
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(f"Model not found: {model_path}")

        # Setup providers (TensorRT > CUDA > CPU)
        providers = self._get_providers(use_gpu, use_tensorrt)

        self.session = onnxruntime.InferenceSession(
            str(self.model_path),
            None,
            providers=providers
        )

        input_nodes = self.session.get_inputs()
        output_nodes = self.session.get_outputs()
        self.input_names = [node.name for node in input_nodes]
        self.output_names = [node.name for node in output_nodes]

        self.inputs = [
            self._input_spec(input_nodes[0], quantization, input_shape)
        ]
        self.output_shapes = [tuple(node.shape) for node in output_nodes]

    def _get_providers(self, use_gpu: bool, use_tensorrt: bool) -> List:
        """Get execution providers based on hardware availability.

        Priority: TensorRT > CUDA > CPU
        """
        available_providers = C.get_available_providers()
        providers = []

        if use_tensorrt and "TensorrtExecutionProvider" in available_providers:
            providers.append(('TensorrtExecutionProvider', {}))

        if use_gpu and "CUDAExecutionProvider" in available_providers:
            providers.append((
                'CUDAExecutionProvider',
                {"cudnn_conv_algo_search": "DEFAULT"}
            ))

        # CPU (always available as fallback)
        providers.append('CPUExecutionProvider')

        return providers

    @staticmethod
    def _input_spec(node, quantization, input_shape) -> TensorSpec:
        """Build a TensorSpec from an ONNX input node.

        A symbolic batch dim becomes 1; any other symbolic dim has to come
        from ``input_shape``.
        """
        if node.type not in _ONNX_DTYPES:
            raise InvalidTensorSpec(f"Unsupported input type {node.type} for '{node.name}'")
        dtype = _ONNX_DTYPES[node.type]

        if input_shape is not None:
            shape = tuple(input_shape)
        else:
            shape = tuple(node.shape)
            if len(shape) == 4 and not isinstance(shape[0], int):
                shape = (1,) + shape[1:]
            if not all(isinstance(d, int) for d in shape):
                raise InvalidTensorSpec(
                    f"Input '{node.name}' has symbolic dims {list(shape)}; "
                    f"set input_shape in the model config"
                )

        return TensorSpec(
            shape=shape,
            dtype=dtype,
            quantization=quantization if dtype is DType.UINT8 else None,
        )

    def run(self, tensor: Tensor) -> np.ndarray:
        """Run inference on one tensor and return the first output."""
        input_feed = {self.input_names[0]: tensor.as_batch()}
        try:
            outputs = self.session.run(self.output_names, input_feed=input_feed)
        except Exception as e:
            raise InferenceError(f"{self.model_path.name}: {e}") from e
        return outputs[0]

    def __repr__(self):
        return f"ONNXInferenceBase({self.model_path.name}, inputs={self.inputs})"


def load_engine(model: Union[str, Path, InferenceEngine], config) -> InferenceEngine:
    """Open an ONNX model from a path using a stage config, or pass an engine through."""
    if isinstance(model, (str, Path)):
        return ONNXInferenceBase(
            model,
            use_gpu=config.use_gpu,
            use_tensorrt=config.use_tensorrt,
            quantization=config.quantization,
            input_shape=config.input_shape,
        )
    return model
