"""
Elementwise activation functions and softmax.

Every operation here takes a single input. Derivatives are computed from
the current input value passed to `grad`, not from values cached by `run`,
so the same instance can be replayed any number of times between backward
passes.

Implemented:
- Relu
- Sigmoid
- Gelu (tanh approximation)
- Softmax (over the last axis)
"""

from __future__ import annotations

import math
from typing import List, Sequence

import numpy as np

from ...domain._errors import TensorError
from ...domain._function import Function


def _single(inputs: Sequence[np.ndarray], op: str) -> np.ndarray:
    if len(inputs) != 1:
        raise TensorError(f"{op} expects 1 input, got {len(inputs)}")
    return np.asarray(inputs[0])


def _sigmoid(x: np.ndarray) -> np.ndarray:
    # Split on sign so exp never overflows.
    out = np.empty_like(x)
    pos = x >= 0
    out[pos] = 1.0 / (1.0 + np.exp(-x[pos]))
    e = np.exp(x[~pos])
    out[~pos] = e / (1.0 + e)
    return out


class Relu(Function):
    """
    Rectified linear unit ``max(x, 0)``.

    The derivative at exactly zero is taken as 0.
    """

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        x = _single(inputs, "Relu")
        return np.maximum(x, 0)

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        x = np.asarray(inputs[0])
        return [out_grad * (x > 0)]


class Sigmoid(Function):
    """
    Logistic sigmoid.

    Implements:

        y = 1 / (1 + exp(-x))

    Backward:

        dy/dx = y * (1 - y)
    """

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        return _sigmoid(_single(inputs, "Sigmoid"))

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        y = _sigmoid(np.asarray(inputs[0]))
        return [out_grad * y * (1.0 - y)]


class Gelu(Function):
    """
    Gaussian error linear unit, tanh approximation.

    Implements:

        u = sqrt(2 / pi) * (x + 0.044715 * x^3)
        y = 0.5 * x * (1 + tanh(u))

    Backward:

        dy/dx = 0.5 * (1 + tanh(u))
                + 0.5 * x * (1 - tanh(u)^2) * sqrt(2 / pi) * (1 + 3 * 0.044715 * x^2)
    """

    _C = math.sqrt(2.0 / math.pi)
    _A = 0.044715

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        x = _single(inputs, "Gelu")
        return 0.5 * x * (1.0 + np.tanh(self._C * (x + self._A * x**3)))

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        x = np.asarray(inputs[0])
        t = np.tanh(self._C * (x + self._A * x**3))
        dudx = self._C * (1.0 + 3.0 * self._A * x**2)
        dydx = 0.5 * (1.0 + t) + 0.5 * x * (1.0 - t * t) * dudx
        return [out_grad * dydx]


class Softmax(Function):
    """
    Softmax over the last axis.

    Implements:

        y_i = exp(x_i - max(x)) / sum_j exp(x_j - max(x))

    Backward (Jacobian-vector product):

        dL/dx = y * (g - sum(g * y, axis=-1))

    Notes
    -----
    Masked positions set to ``-inf`` (see `Mask`) come out as exact zeros,
    provided at least one position per row is finite.
    """

    @staticmethod
    def _softmax(x: np.ndarray) -> np.ndarray:
        shifted = x - np.max(x, axis=-1, keepdims=True)
        e = np.exp(shifted)
        return e / np.sum(e, axis=-1, keepdims=True)

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        x = _single(inputs, "Softmax")
        if x.ndim == 0:
            raise TensorError("Softmax needs at least 1 dimension")
        return self._softmax(x)

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        y = self._softmax(np.asarray(inputs[0]))
        dot = np.sum(out_grad * y, axis=-1, keepdims=True)
        return [y * (out_grad - dot)]
