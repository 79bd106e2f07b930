"""
Elementwise arithmetic operations.

This module implements the binary arithmetic operations (`Add`, `Sub`,
`Mul`) and scalar scaling (`Coeff`) as `Function` subclasses.

Broadcasting
------------
Binary operations follow NumPy broadcasting in `run`. In `grad`, each
operand's gradient is passed through `collapse_broadcast_axes`, which sums
over the equal-rank axes the operand was stretched along. Extra leading
dimensions are kept; the graph sums them when accumulating.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

import numpy as np

from ...domain._errors import TensorError
from ...domain._function import Function
from ..tensor._tensor import broadcast_shapes, collapse_broadcast_axes


def _binary_operands(inputs: Sequence[np.ndarray], op: str) -> tuple[np.ndarray, np.ndarray]:
    if len(inputs) != 2:
        raise TensorError(f"{op} expects 2 inputs, got {len(inputs)}")
    a, b = (np.asarray(x) for x in inputs)
    broadcast_shapes(a.shape, b.shape)
    return a, b


class Add(Function):
    """
    Elementwise addition.

    Implements:

        out = a + b

    Backward:

        d(out)/da = 1,  d(out)/db = 1
    """

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        a, b = _binary_operands(inputs, "Add")
        return a + b

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        a, b = (np.asarray(x) for x in inputs)
        return [
            collapse_broadcast_axes(out_grad, a.shape),
            collapse_broadcast_axes(out_grad, b.shape),
        ]


class Sub(Function):
    """
    Elementwise subtraction ``out = a - b``.
    """

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        a, b = _binary_operands(inputs, "Sub")
        return a - b

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        a, b = (np.asarray(x) for x in inputs)
        return [
            collapse_broadcast_axes(out_grad, a.shape),
            collapse_broadcast_axes(-out_grad, b.shape),
        ]


class Mul(Function):
    """
    Elementwise (Hadamard) product.

    Implements:

        out = a * b

    Backward:

        d(out)/da = b,  d(out)/db = a
    """

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        a, b = _binary_operands(inputs, "Mul")
        return a * b

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        a, b = (np.asarray(x) for x in inputs)
        return [
            collapse_broadcast_axes(out_grad * b, a.shape),
            collapse_broadcast_axes(out_grad * a, b.shape),
        ]


class Coeff(Function):
    """
    Multiplication by a fixed scalar coefficient.

    Implements:

        out = coeff * x

    Backward:

        d(out)/dx = coeff

    Parameters
    ----------
    coeff : float
        The constant multiplier. It is part of the operation's immutable
        configuration.
    """

    def __init__(self, coeff: float) -> None:
        self.coeff = float(coeff)

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        if len(inputs) != 1:
            raise TensorError(f"Coeff expects 1 input, got {len(inputs)}")
        return np.asarray(inputs[0]) * self.coeff

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        return [out_grad * self.coeff]

    def get_config(self) -> Dict[str, Any]:
        return {"coeff": self.coeff}


__all__ = [
    Add.__name__,
    Sub.__name__,
    Mul.__name__,
    Coeff.__name__,
]
