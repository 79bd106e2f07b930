"""
Finite-difference verification of operation gradients.

Every `Function` must satisfy the numerical-gradient law: perturbing one
input element by a small ``eps`` and re-running the operation changes the
output by the amount its `grad` predicts. This module checks that law with
central differences so that built-in and user-defined operations can be
verified the same way.

The check contracts the output with a fixed weight tensor ``w``:

    L(inputs) = sum(w * run(inputs))

so that ``grad(inputs, w)`` must equal ``dL/d(input)`` for every input.
Analytic gradients are reduced to each input's shape with the graph's own
accumulation rule (`reduce_leading`) before comparison.

Notes
-----
- Inputs are promoted to float64 to keep the truncation error of central
  differences well below the tolerances.
- Operations are run in inference mode by default; randomized training
  behaviour (dropout) cannot be checked this way.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import numpy as np

from ...domain._function import Function
from ..tensor._tensor import reduce_leading


def numerical_gradient(
    func: Function,
    inputs: Sequence[Any],
    index: int,
    weights: np.ndarray,
    *,
    eps: float = 1e-6,
    training: bool = False,
) -> np.ndarray:
    """
    Estimate ``d sum(weights * run(inputs)) / d inputs[index]``.

    Parameters
    ----------
    func : Function
        Operation under test.
    inputs : Sequence[Any]
        Input values; converted to float64 copies.
    index : int
        Which input to differentiate with respect to.
    weights : np.ndarray
        Weights contracted with the output; shaped like the output.
    eps : float, optional
        Perturbation size. Defaults to 1e-6.
    training : bool, optional
        Training flag passed to `run`. Defaults to False.

    Returns
    -------
    np.ndarray
        Numerical gradient, shaped like ``inputs[index]``.
    """
    xs = [np.array(x, dtype=np.float64, copy=True) for x in inputs]
    target = xs[index]
    out = np.zeros_like(target)

    it = np.nditer(target, flags=["multi_index"])
    while not it.finished:
        idx = it.multi_index
        orig = target[idx]

        target[idx] = orig + eps
        plus = float(np.sum(weights * func.run(xs, training)))
        target[idx] = orig - eps
        minus = float(np.sum(weights * func.run(xs, training)))
        target[idx] = orig

        out[idx] = (plus - minus) / (2.0 * eps)
        it.iternext()
    return out


def gradient_errors(
    func: Function,
    inputs: Sequence[Any],
    *,
    eps: float = 1e-6,
    seed: int = 0,
    weights: Optional[np.ndarray] = None,
    training: bool = False,
) -> List[float]:
    """
    Return the max absolute error between analytic and numerical gradients.

    Parameters
    ----------
    func : Function
        Operation under test.
    inputs : Sequence[Any]
        Input values.
    eps : float, optional
        Perturbation size.
    seed : int, optional
        Seed of the random weights used when `weights` is not given.
    weights : np.ndarray, optional
        Explicit output weights.
    training : bool, optional
        Training flag passed to `run`.

    Returns
    -------
    list[float]
        One error per input, in input order.
    """
    xs = [np.array(x, dtype=np.float64, copy=True) for x in inputs]
    out = np.asarray(func.run(xs, training))
    if weights is None:
        weights = np.random.default_rng(seed).standard_normal(out.shape)
    weights = np.asarray(weights, dtype=np.float64)

    analytic = list(func.grad(xs, weights))
    errors = []
    for i, x in enumerate(xs):
        ana = reduce_leading(np.asarray(analytic[i], dtype=np.float64), x.shape)
        num = numerical_gradient(func, xs, i, weights, eps=eps, training=training)
        errors.append(float(np.max(np.abs(ana - num))) if x.size else 0.0)
    return errors


def check_gradients(
    func: Function,
    inputs: Sequence[Any],
    *,
    atol: float = 1e-5,
    eps: float = 1e-6,
    seed: int = 0,
    training: bool = False,
) -> bool:
    """
    Return True if every analytic gradient matches within `atol`.
    """
    errors = gradient_errors(func, inputs, eps=eps, seed=seed, training=training)
    return all(e <= atol for e in errors)
