"""
Computation graph interface definitions.

This module defines `IGraph`, the structural contract of a computation
graph: an append-only arena of tensor values and gradients addressed by
`TensorId`, plus the operations that build, replay and invert the record of
which `Function` produced each derived tensor.

Notes
-----
- Ids are handed out in allocation order and never reused, so ascending id
  order is a valid topological order of the recorded computations.
- Accessors raise `TensorNotFoundError` for ids outside the arena.
"""

from __future__ import annotations

from typing import AbstractSet, Optional, Protocol, Sequence, runtime_checkable

from ._function import Function
from ._losses import ILoss
from ._optimizers import IOptimizer
from .types._array import NDArrayLike, TensorId


@runtime_checkable
class IGraph(Protocol):
    """
    Computation graph interface.

    Implementations own the tensor, gradient and name arenas. The methods
    below are the complete surface needed to build a model, train it, and
    snapshot or restore its numeric state from outside.
    """

    def alloc(self, value: NDArrayLike, name: str = "") -> TensorId:
        """
        Allocate a leaf tensor and a zero gradient of the same shape.
        """
        ...

    def load(self, tensor_id: TensorId, value: NDArrayLike) -> None: ...

    def load_grad(self, tensor_id: TensorId, value: NDArrayLike) -> None: ...

    def zero_grad(self) -> None: ...

    def get(self, tensor_id: TensorId) -> NDArrayLike: ...

    def get_grad(self, tensor_id: TensorId) -> NDArrayLike: ...

    def name_of(self, tensor_id: TensorId) -> str: ...

    def call(self, func: Function, input_ids: Sequence[TensorId]) -> TensorId:
        """
        Evaluate `func` on the given inputs and record the computation.
        """
        ...

    def forward(self, training: bool = True) -> None:
        """
        Replay every recorded computation in creation order.
        """
        ...

    def backward_all(
        self, tensor_id: TensorId, loss: ILoss, limit: Optional[int] = None
    ) -> float:
        """
        Seed the gradient of `tensor_id` from `loss` and propagate it back
        through at most `limit` recorded computations.
        """
        ...

    def optimize(
        self,
        optimizer: IOptimizer,
        params: AbstractSet[TensorId],
        learning_rate: float,
    ) -> None: ...
