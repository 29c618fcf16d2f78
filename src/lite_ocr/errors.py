"""Exception types raised by the OCR pipeline stages."""


class OCRError(Exception):
    """Base class for every failure raised by a pipeline stage."""
    pass


class InvalidTensorSpec(OCRError):
    """A model declared an input/output spec the pipeline cannot use."""
    pass


class AmbiguousLayout(OCRError):
    """Channel layout cannot be inferred from a 4-D shape."""

    def __init__(self, shape):
        self.shape = tuple(shape)
        super().__init__(
            f"Cannot infer layout from shape {list(self.shape)}: "
            f"expected exactly one of dims 1 or 3 to be a channel count (1 or 3)"
        )


class SizeMismatch(OCRError):
    """Decoded pixel buffer does not match the requested width/height."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Pixel buffer has {actual} bytes, expected {expected}")


class OutputSizeMismatch(OCRError):
    """Model output is shorter than its declared shape implies."""

    def __init__(self, expected: int, actual: int, what: str = "model output"):
        self.expected = expected
        self.actual = actual
        super().__init__(f"{what} has {actual} values, expected at least {expected}")


class InvalidGeometry(OCRError):
    """Image or mask dimensions are zero or negative."""
    pass


class DecodeError(OCRError):
    """An image handle could not be decoded into RGB pixels."""
    pass


class InferenceError(OCRError):
    """The inference engine failed while running a model."""
    pass
