"""
Matrix multiplication and transposition.

`MatMul` follows ``numpy.matmul`` semantics, including batching: either
operand may carry leading batch dimensions that broadcast against the
other's. A typical use is a batch of activations ``(B, T, K)`` multiplied
by a shared weight ``(K, N)``; the weight's gradient then comes back as
``(B, K, N)`` and the graph sums it over the batch when accumulating.

Both operands must be at least 2-D.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from ...domain._errors import ShapeMismatchError, TensorError
from ...domain._function import Function
from ..tensor._tensor import broadcast_shapes, collapse_broadcast_axes


def _swap_last(x: np.ndarray) -> np.ndarray:
    return np.swapaxes(x, -1, -2)


class MatMul(Function):
    """
    Batched matrix product.

    Implements:

        out = a @ b

    Backward:

        dL/da = g @ b^T
        dL/db = a^T @ g
    """

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        if len(inputs) != 2:
            raise TensorError(f"MatMul expects 2 inputs, got {len(inputs)}")
        a, b = (np.asarray(x) for x in inputs)
        if a.ndim < 2 or b.ndim < 2:
            raise TensorError(
                f"MatMul operands must be at least 2-D, got {a.shape} and {b.shape}"
            )
        if a.shape[-1] != b.shape[-2]:
            raise ShapeMismatchError((a.shape[-1],), (b.shape[-2],))
        broadcast_shapes(a.shape[:-2], b.shape[:-2])
        return a @ b

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        a, b = (np.asarray(x) for x in inputs)
        grad_a = out_grad @ _swap_last(b)
        grad_b = _swap_last(a) @ out_grad
        return [
            collapse_broadcast_axes(grad_a, a.shape),
            collapse_broadcast_axes(grad_b, b.shape),
        ]


class Transpose(Function):
    """
    Swap the last two axes of the input.
    """

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        if len(inputs) != 1:
            raise TensorError(f"Transpose expects 1 input, got {len(inputs)}")
        x = np.asarray(inputs[0])
        if x.ndim < 2:
            raise TensorError(f"Transpose needs at least 2 dimensions, got {x.shape}")
        return _swap_last(x).copy()

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        return [_swap_last(out_grad).copy()]
