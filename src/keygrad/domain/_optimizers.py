"""
Domain-level optimizer contract for keygrad.

This module defines the `IOptimizer` protocol, the minimal interface the
graph requires from optimizer implementations (e.g., SGD, Adam).

Notes
-----
- Domain contracts are backend-agnostic and must not depend on NumPy or
  infrastructure implementations.
- The graph, not the optimizer, owns parameters and gradients. On every
  step it hands the optimizer two lists that correspond index-for-index and
  are ordered by ascending tensor id, so stateful optimizers may key their
  per-parameter accumulators by position.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from .types._array import NDArrayLike


@runtime_checkable
class IOptimizer(Protocol):
    """
    Optimizer interface contract.

    Required methods
    ----------------
    - `step(params, grads, learning_rate)` updates every parameter in place.
    """

    def step(
        self,
        params: Sequence[NDArrayLike],
        grads: Sequence[NDArrayLike],
        learning_rate: float,
    ) -> None:
        """
        Apply one optimization step.

        Parameters
        ----------
        params : Sequence[NDArrayLike]
            Parameter arrays, mutated in place.
        grads : Sequence[NDArrayLike]
            Gradients matching `params` index-for-index.
        learning_rate : float
            Step size for this update.
        """
        ...
