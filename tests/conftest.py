"""Shared fakes for the OCR tests: in-memory engines and score builders."""

import numpy as np
import pytest

from lite_ocr.tensor import DType, TensorSpec

OFF = -10.0  # logit far below any threshold
ON = 10.0


class FakeEngine:
    """Stands in for an inference engine; records every tensor it is given."""

    def __init__(self, input_shape, output, output_shape=None, dtype=DType.FLOAT32,
                 quantization=None):
        self.inputs = [TensorSpec(shape=input_shape, dtype=dtype, quantization=quantization)]
        self._output = output
        if output_shape is None:
            output_shape = np.asarray(output).shape if not callable(output) else ()
        self.output_shapes = [tuple(output_shape)]
        self.calls = []

    def run(self, tensor):
        self.calls.append(tensor)
        if callable(self._output):
            return self._output(tensor)
        return self._output


def detector_logits(height, width, on_cells=(), link_cells=()):
    """(1, H, W, 2) channel-last logits with the given (y, x) cells switched on."""
    out = np.full((1, height, width, 2), OFF, dtype=np.float32)
    for y, x in on_cells:
        out[0, y, x, 0] = ON
    for y, x in link_cells:
        out[0, y, x, 1] = ON
    return out


def square(x, y, w, h):
    """(y, x) cells of a filled rectangle."""
    return [(yy, xx) for yy in range(y, y + h) for xx in range(x, x + w)]


def one_hot_scores(predictions, num_classes):
    """(1, T, C) scores whose per-step arg-max is ``predictions``."""
    scores = np.zeros((1, len(predictions), num_classes), dtype=np.float32)
    for t, cls in enumerate(predictions):
        scores[0, t, cls] = 1.0
    return scores


@pytest.fixture
def rng():
    return np.random.default_rng(0)
