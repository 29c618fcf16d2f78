"""Postprocessing modules for OCR outputs."""

from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

from .errors import InvalidGeometry, InvalidTensorSpec, OutputSizeMismatch
from .hooks import PipelineHooks, array_stats
from .results import BoundingBox, DetectionMap


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Logistic function ``1 / (1 + e^-x)``, quiet on overflow."""
    x = np.asarray(x, dtype=np.float64)
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


def _output_dims(pred: np.ndarray, out_height, out_width, channels):
    """Fill spatial dims from a (1, H, W, C) array when not given."""
    if pred.ndim == 4 and None in (out_height, out_width, channels):
        _, out_height, out_width, channels = pred.shape
    if None in (out_height, out_width, channels):
        raise InvalidTensorSpec(
            f"Detector output of shape {pred.shape} needs explicit height/width/channels"
        )
    return int(out_height), int(out_width), int(channels)


class DetectionPostProcess:
    """Post-processing for text/link score maps of a CRAFT-style detector.

    Converts channel-last logits into boolean text and link masks.
    """

    def __init__(
        self,
        text_threshold: float = 0.5,
        link_threshold: float = 0.5,
        hooks: Optional[PipelineHooks] = None,
    ):
        """Initialize detection post-processor.

        Args:
            text_threshold: Probability above which a cell counts as text
            link_threshold: Probability above which a cell counts as a link
            hooks: Receives score range and mask statistics
        """
        for name, value in (("text_threshold", text_threshold),
                            ("link_threshold", link_threshold)):
            if not 0.0 < value < 1.0:
                raise ValueError(f"{name} must be in (0, 1), got {value}")
        self.text_threshold = text_threshold
        self.link_threshold = link_threshold
        self.hooks = hooks or PipelineHooks()

    def __call__(
        self,
        pred: np.ndarray,
        out_height: Optional[int] = None,
        out_width: Optional[int] = None,
        channels: Optional[int] = None,
    ) -> DetectionMap:
        """Threshold detector logits into masks.

        Args:
            pred: Raw output, flat or (1, H, W, C); channel 0 is the text
                logit and channel 1 the link logit
            out_height, out_width, channels: Output dims, read from
                ``pred.shape`` when omitted

        Returns:
            DetectionMap with row-major masks of length H * W
        """
        pred = np.asarray(pred)
        out_height, out_width, channels = _output_dims(pred, out_height, out_width, channels)
        if out_height <= 0 or out_width <= 0:
            raise InvalidGeometry(f"Detector output size {out_width}x{out_height}")
        if channels < 2:
            raise InvalidTensorSpec(f"Detector output needs >= 2 channels, got {channels}")

        expected = out_height * out_width * channels
        flat = pred.reshape(-1)
        if flat.size < expected:
            raise OutputSizeMismatch(expected, flat.size, "detector output")

        cells = flat[:expected].reshape(out_height * out_width, channels)
        text_prob = sigmoid(cells[:, 0])
        link_prob = sigmoid(cells[:, 1])

        detection = DetectionMap(
            text_mask=text_prob > self.text_threshold,
            link_mask=link_prob > self.link_threshold,
            out_height=out_height,
            out_width=out_width,
        )

        self.hooks.emit("detector.text_scores", **array_stats(text_prob))
        self.hooks.emit(
            "detector.masks",
            height=out_height,
            width=out_width,
            text_cells=int(detection.text_mask.sum()),
            link_cells=int(detection.link_mask.sum()),
        )
        return detection


def find_connected_boxes(
    mask: np.ndarray,
    width: int,
    height: int,
    min_area: int = 10,
) -> List[BoundingBox]:
    """Label 4-connected blobs of a row-major mask and box each one.

    Seeds are taken in row-major order and each blob is flood-filled with an
    explicit stack, so boxes come out in the order their first cell appears
    scanning top-to-bottom, left-to-right.

    Args:
        mask: Flat boolean mask of length width * height
        width: Mask width
        height: Mask height
        min_area: Blobs with fewer cells are dropped

    Returns:
        Boxes in mask coordinates, possibly empty
    """
    if width <= 0 or height <= 0:
        raise InvalidGeometry(f"Mask size {width}x{height}")
    mask = np.asarray(mask, dtype=bool).reshape(-1)
    n = width * height
    if mask.size != n:
        raise OutputSizeMismatch(n, mask.size, "mask")

    cells = mask.tolist()
    visited = bytearray(n)
    boxes = []

    for seed in np.flatnonzero(mask).tolist():
        if visited[seed]:
            continue
        visited[seed] = 1
        stack = [seed]
        area = 0
        min_x, min_y = width, height
        max_x = max_y = -1

        while stack:
            idx = stack.pop()
            area += 1
            y, x = divmod(idx, width)
            if x < min_x:
                min_x = x
            if x > max_x:
                max_x = x
            if y < min_y:
                min_y = y
            if y > max_y:
                max_y = y

            if x > 0 and cells[idx - 1] and not visited[idx - 1]:
                visited[idx - 1] = 1
                stack.append(idx - 1)
            if x < width - 1 and cells[idx + 1] and not visited[idx + 1]:
                visited[idx + 1] = 1
                stack.append(idx + 1)
            if y > 0 and cells[idx - width] and not visited[idx - width]:
                visited[idx - width] = 1
                stack.append(idx - width)
            if y < height - 1 and cells[idx + width] and not visited[idx + width]:
                visited[idx + width] = 1
                stack.append(idx + width)

        if area >= min_area:
            boxes.append(BoundingBox(
                x=min_x,
                y=min_y,
                width=max_x - min_x + 1,
                height=max_y - min_y + 1,
            ))

    return boxes


class CTCLabelDecode:
    """CTC decoding for text recognition."""

    def __init__(
        self,
        alphabet: Optional[str] = None,
        character_dict_path: Optional[Union[str, Path]] = None,
        use_space_char: bool = False,
    ):
        """Initialize CTC decoder.

        Args:
            alphabet: Characters for classes 1..N (class 0 is the blank)
            character_dict_path: Dictionary file, one character per line;
                takes precedence over ``alphabet``
            use_space_char: Append a space to a dictionary-file alphabet
        """
        if character_dict_path is not None:
            self.character_str = []
            with open(character_dict_path, "rb") as fin:
                for line in fin.readlines():
                    line = line.decode("utf-8").strip("\n").strip("\r\n")
                    self.character_str.append(line)
            if use_space_char:
                self.character_str.append(" ")
        elif alphabet:
            self.character_str = list(alphabet)
        else:
            raise ValueError("CTCLabelDecode needs an alphabet or a character_dict_path")

        # Add blank token for CTC
        self.character = ["blank"] + list(self.character_str)

    @property
    def num_classes(self) -> int:
        return len(self.character)

    def __call__(
        self,
        preds: np.ndarray,
        time_steps: Optional[int] = None,
        num_classes: Optional[int] = None,
    ) -> Tuple[str, float]:
        """Greedy-decode one sequence of per-timestep class scores.

        Args:
            preds: Scores, flat or shaped (..., T, C)
            time_steps, num_classes: Required when ``preds`` is flat

        Returns:
            Tuple of (text, confidence)
        """
        preds = np.asarray(preds)
        if preds.ndim >= 2 and None in (time_steps, num_classes):
            time_steps, num_classes = preds.shape[-2:]
        if None in (time_steps, num_classes):
            raise InvalidTensorSpec("Flat recognizer output needs time_steps and num_classes")

        expected = int(time_steps) * int(num_classes)
        flat = preds.reshape(-1)
        if flat.size < expected:
            raise OutputSizeMismatch(expected, flat.size, "recognizer output")

        scores = flat[:expected].reshape(1, time_steps, num_classes)
        # argmax keeps the first maximum on ties
        preds_idx = scores.argmax(axis=2)
        preds_prob = scores.max(axis=2)
        return self.decode(preds_idx, preds_prob, is_remove_duplicate=True)[0]

    def decode(self, text_index, text_prob=None, is_remove_duplicate=False):
        """Convert text indices to strings."""
        result_list = []
        ignored_tokens = [0]  # CTC blank token
        batch_size = len(text_index)

        for batch_idx in range(batch_size):
            indices = np.asarray(text_index[batch_idx])
            selection = np.ones(len(indices), dtype=bool)

            if is_remove_duplicate:
                selection[1:] = indices[1:] != indices[:-1]

            for ignored_token in ignored_tokens:
                selection &= indices != ignored_token

            char_list = [self._char(text_id) for text_id in indices[selection]]

            if text_prob is not None:
                conf_list = np.asarray(text_prob[batch_idx])[selection]
            else:
                conf_list = [1] * int(selection.sum())

            if len(conf_list) == 0:
                conf_list = [0]

            text = "".join(char_list)
            result_list.append((text, float(np.mean(conf_list))))

        return result_list

    def _char(self, text_id) -> str:
        # Classes past the alphabet decode to nothing rather than failing
        text_id = int(text_id)
        if 0 < text_id < len(self.character):
            return self.character[text_id]
        return ""
