"""
Domain-level loss contract for keygrad.

A loss is the terminal step of a backward pass: it consumes the value of the
graph output and produces both an unreduced loss tensor and the gradient of
that loss with respect to the output. The graph performs the mean reduction
itself by scaling the gradient with ``1 / loss.size``.
"""

from __future__ import annotations

from typing import Protocol, Tuple, runtime_checkable

from .types._array import NDArrayLike


@runtime_checkable
class ILoss(Protocol):
    """
    Loss interface contract.

    Required methods
    ----------------
    - `run(output)` returns ``(loss, grad)`` where ``grad.shape`` equals
      ``output.shape`` and ``loss`` can be mean-reduced to a scalar.
    """

    def run(self, output: NDArrayLike) -> Tuple[NDArrayLike, NDArrayLike]: ...
