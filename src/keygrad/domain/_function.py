"""
Operation capability interface.

This module defines the abstract base class for differentiable operations
recorded by the computation graph. A concrete `Function` supplies:

- a forward rule (`run`) computing the output value from input values,
- a local-derivative rule (`grad`) mapping the output gradient to one
  gradient per input,
- `clone`, a value-semantics duplicate used when a whole graph is copied.

Unlike tape systems that stash intermediates in a per-call context, the
graph keeps the operation instance itself and calls `grad` with the current
input values. An instance therefore holds only immutable configuration
(a coefficient, a mask); the single exception is randomized behaviour that
the training flag allows, such as the dropout mask sampled by the latest
training-mode `run`.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence

from .types._array import NDArrayLike


class Function(ABC):
    """
    Abstract base class for graph operations.

    Subclasses implement `run` and `grad`. Both receive input values in the
    order they were passed to `Graph.call`.

    Notes
    -----
    - `grad` must be the exact derivative of `run`; this is checked for every
      built-in variant with finite differences (see `utils.gradcheck`).
    - A returned gradient may carry extra leading dimensions compared to its
      input (the result of an implicit forward broadcast). The graph sums
      those away when accumulating. Size-1 axes of equal rank must be
      collapsed by the operation itself.
    """

    @abstractmethod
    def run(self, inputs: Sequence[NDArrayLike], training: bool) -> NDArrayLike:
        """
        Compute the output value.

        Parameters
        ----------
        inputs : Sequence[NDArrayLike]
            Current input values, in recorded order.
        training : bool
            Whether the graph runs in training mode. Operations with
            stochastic regularization branch on this flag.

        Returns
        -------
        NDArrayLike
            The output value.

        Raises
        ------
        TensorError
            If the inputs have incompatible shapes.
        """
        ...

    @abstractmethod
    def grad(
        self, inputs: Sequence[NDArrayLike], out_grad: NDArrayLike
    ) -> Sequence[NDArrayLike]:
        """
        Compute gradients with respect to each input.

        Parameters
        ----------
        inputs : Sequence[NDArrayLike]
            Current input values, in recorded order.
        out_grad : NDArrayLike
            Accumulated gradient of the loss with respect to the output.

        Returns
        -------
        Sequence[NDArrayLike]
            Exactly one gradient per input, in the same order.
        """
        ...

    def get_config(self) -> Dict[str, Any]:
        """
        Return the immutable configuration of this operation.

        Returns
        -------
        Dict[str, Any]
            Plain dictionary of constructor arguments. Stateless operations
            return an empty dictionary.
        """
        return {}

    def clone(self) -> "Function":
        """
        Return an independent copy of this operation.

        The default performs a deep copy so that array-valued configuration
        is re-owned by the copy.
        """
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        cfg = ", ".join(f"{k}={v!r}" for k, v in self.get_config().items())
        return f"{type(self).__name__}({cfg})"
