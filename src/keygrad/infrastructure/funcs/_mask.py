"""
Fixed masking operation.

`Mask` replaces every position selected by a boolean mask with a constant,
e.g. ``-inf`` before a softmax to build a causal attention pattern. The
mask covers the trailing dimensions of the input and is applied to every
leading slice.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

import numpy as np

from ...domain._errors import ShapeMismatchError, TensorError
from ...domain._function import Function


class Mask(Function):
    """
    Replace masked positions with a constant.

    Implements:

        out = where(mask, value, x)

    Backward:

        d(out)/dx = 0 where mask is set, 1 elsewhere

    Parameters
    ----------
    mask : array-like of bool
        Positions to overwrite. Its shape must equal the trailing dimensions
        of the input.
    value : float
        Replacement value.
    """

    def __init__(self, mask: Any, value: float) -> None:
        self.mask = np.array(mask, dtype=bool, copy=True)
        self.value = float(value)
        self._keep = ~self.mask

    def _check(self, x: np.ndarray) -> None:
        k = self.mask.ndim
        if x.ndim < k or x.shape[x.ndim - k :] != self.mask.shape:
            raise ShapeMismatchError(self.mask.shape, x.shape[max(x.ndim - k, 0) :])

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        if len(inputs) != 1:
            raise TensorError(f"Mask expects 1 input, got {len(inputs)}")
        x = np.asarray(inputs[0])
        self._check(x)
        return np.where(self.mask, np.asarray(self.value, dtype=x.dtype), x)

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        return [out_grad * self._keep]

    def get_config(self) -> Dict[str, Any]:
        return {"mask": self.mask.tolist(), "value": self.value}
