"""
Arena-based computation graph with reverse-mode differentiation.

This module provides `Graph`, the orchestrator of keygrad. A graph owns three
parallel arenas indexed by `TensorId`:

- tensor values,
- accumulated gradients (same shapes as the values at rest),
- optional diagnostic names,

plus an insertion-ordered mapping from each derived tensor's id to the
`Computation` (input ids + `Function`) that produced it.

Design notes
------------
- The arena is append-only. Ids are assigned in allocation order and never
  reused, and a computation can only reference tensors that already exist,
  so ascending id order is a topological order. `forward` and
  `backward_all` rely on this instead of sorting the graph. Any future
  support for deleting or reordering records must replace the id-order
  iteration with an explicit topological sort.
- Gradients are always summed into their slot. A tensor consumed by several
  operations therefore receives the sum of all downstream contributions.
- Passes are not atomic. The first failing operation aborts a pass; slots
  processed before it keep their new values.
- `embed` is a non-differentiable lookup: it records nothing, so no
  gradient reaches the embedding table through it.
"""

from __future__ import annotations

import itertools
import logging
from typing import AbstractSet, Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ...domain._errors import (
    GradientArityError,
    ShapeMismatchError,
    TensorError,
    TensorNotFoundError,
)
from ...domain._function import Function
from ...domain._graph import IGraph
from ...domain._losses import ILoss
from ...domain._optimizers import IOptimizer
from ...domain.types._array import TensorId
from ..tensor._tensor import (
    DEFAULT_DTYPE,
    as_tensor,
    rand,
    reduce_leading,
    take_rows,
    zeros,
)
from ._computation import Computation

logger = logging.getLogger(__name__)


class Graph(IGraph):
    """
    Append-only computation graph.

    Parameters
    ----------
    dtype : Any, optional
        Element type of every tensor and gradient slot. Defaults to float32.

    Notes
    -----
    - The graph is single-threaded. Callers must not mutate arrays returned
      by `get`/`get_grad` while a pass is running; use `clone()` to hand an
      independent copy to other code.
    - Values passed to `alloc`, `load` and `load_grad` are copied.
    """

    def __init__(self, *, dtype: Any = DEFAULT_DTYPE) -> None:
        self._dtype = np.dtype(dtype)
        if not np.issubdtype(self._dtype, np.floating):
            raise ValueError(f"dtype must be a floating point type, got {self._dtype}")
        self._tensors: List[np.ndarray] = []
        self._grads: List[np.ndarray] = []
        self._names: List[str] = []
        self._computations: Dict[TensorId, Computation] = {}

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def num_computations(self) -> int:
        """
        Number of recorded computations (derived tensors).
        """
        return len(self._computations)

    def __len__(self) -> int:
        return len(self._tensors)

    def __repr__(self) -> str:
        return (
            f"Graph(tensors={len(self._tensors)}, "
            f"computations={len(self._computations)}, dtype={self._dtype})"
        )

    def _check_id(self, tensor_id: TensorId) -> None:
        if not 0 <= tensor_id < len(self._tensors):
            raise TensorNotFoundError(tensor_id, len(self._tensors))

    def is_leaf(self, tensor_id: TensorId) -> bool:
        """
        Return True if `tensor_id` has no computation record.

        Raises
        ------
        TensorNotFoundError
            If `tensor_id` is outside the arena.
        """
        self._check_id(tensor_id)
        return tensor_id not in self._computations

    def inputs_of(self, tensor_id: TensorId) -> Tuple[TensorId, ...]:
        """
        Return the input ids recorded for `tensor_id` (empty for leaves).
        """
        self._check_id(tensor_id)
        comp = self._computations.get(tensor_id)
        return () if comp is None else tuple(comp.inputs)

    # ------------------------------------------------------------------
    # Allocation and state
    # ------------------------------------------------------------------
    def alloc(self, value: Any, name: str = "") -> TensorId:
        """
        Allocate a leaf tensor.

        Appends a copy of `value`, a zero gradient of the same shape and
        `name` to the arenas. No computation is recorded.

        Parameters
        ----------
        value : Any
            Initial value (array-like).
        name : str, optional
            Diagnostic label. Defaults to an empty string.

        Returns
        -------
        TensorId
            The id of the new slot.

        Raises
        ------
        TensorError
            If `value` cannot be converted to a numeric array.
        """
        t = as_tensor(value, self._dtype)
        self._grads.append(zeros(t.shape, self._dtype))
        self._tensors.append(t)
        self._names.append(str(name))
        return len(self._tensors) - 1

    def alloc_rand(
        self,
        rng: np.random.Generator,
        shape: Sequence[int],
        name: str = "",
        *,
        scale: float = 1.0,
    ) -> TensorId:
        """
        Allocate a leaf tensor sampled uniformly from ``[-scale, scale)``.

        Parameters
        ----------
        rng : np.random.Generator
            Source of randomness; pass a seeded generator for reproducibility.
        shape : Sequence[int]
            Shape of the new tensor.
        name : str, optional
            Diagnostic label.
        scale : float, optional
            Half-width of the sampling interval. Defaults to 1.0.
        """
        return self.alloc(rand(rng, shape, scale, self._dtype), name)

    def load(self, tensor_id: TensorId, value: Any) -> None:
        """
        Overwrite the value of a slot.

        Used to inject batch data into input leaves or restore parameters.
        If the new value changes the slot's shape, its gradient is reset to
        zeros of the new shape so value and gradient shapes stay aligned.

        Raises
        ------
        TensorNotFoundError
            If `tensor_id` is outside the arena.
        """
        self._check_id(tensor_id)
        t = as_tensor(value, self._dtype)
        if t.shape != self._tensors[tensor_id].shape:
            logger.debug(
                "Slot %d reshaped from %s to %s; gradient reset",
                tensor_id,
                self._tensors[tensor_id].shape,
                t.shape,
            )
            self._grads[tensor_id] = zeros(t.shape, self._dtype)
        self._tensors[tensor_id] = t

    def load_grad(self, tensor_id: TensorId, value: Any) -> None:
        """
        Overwrite the gradient of a slot.

        Raises
        ------
        TensorNotFoundError
            If `tensor_id` is outside the arena.
        ShapeMismatchError
            If `value` is not shaped like the slot's tensor.
        """
        self._check_id(tensor_id)
        g = as_tensor(value, self._dtype)
        expected = self._tensors[tensor_id].shape
        if g.shape != expected:
            raise ShapeMismatchError(expected, g.shape)
        self._grads[tensor_id] = g

    def zero_grad(self) -> None:
        """
        Reset every gradient slot to zeros shaped like its tensor.

        Structure (values, names, records) is left untouched.
        """
        self._grads = [zeros(t.shape, self._dtype) for t in self._tensors]

    def add_grad(self, tensor_id: TensorId, grad: Any) -> None:
        """
        Accumulate `grad` into the gradient slot of `tensor_id`.

        The gradient is summed into the slot, never written over it. If it
        carries extra leading dimensions (rank at least one more than the
        slot), it is first summed over those leading slices, the
        backward-side inverse of an implicit forward broadcast.

        Parameters
        ----------
        tensor_id : TensorId
            Receiving slot.
        grad : Any
            Incoming gradient contribution.

        Raises
        ------
        TensorNotFoundError
            If `tensor_id` is outside the arena.
        ShapeMismatchError
            If `grad` cannot be reduced to the slot's shape.
        """
        self._check_id(tensor_id)
        shape = self._tensors[tensor_id].shape
        slot = self._grads[tensor_id]
        if slot.shape != shape:
            raise ShapeMismatchError(shape, slot.shape)
        g = reduce_leading(np.asarray(grad), shape)
        self._grads[tensor_id] = (slot + g).astype(self._dtype, copy=False)

    def embed(self, out_id: TensorId, table_id: TensorId, indices: Any) -> None:
        """
        Copy rows of an embedding table into a slot.

        For every scalar index in `indices`, the matching row of the tensor
        at `table_id` is written to `out_id`; the result has shape
        ``indices.shape + table.shape[1:]``.

        Notes
        -----
        This lookup is not differentiable: nothing is recorded, so
        `backward_all` never produces a gradient for the table through this
        path.

        Raises
        ------
        TensorNotFoundError
            If either id is outside the arena.
        ScalarIndexError
            If an index does not name a row of the table.
        """
        table = self.get(table_id)
        self._check_id(out_id)
        self.load(out_id, take_rows(table, indices))

    def get(self, tensor_id: TensorId) -> np.ndarray:
        """
        Return the current value of a slot.

        Raises
        ------
        TensorNotFoundError
            If `tensor_id` is outside the arena.
        """
        self._check_id(tensor_id)
        return self._tensors[tensor_id]

    def get_grad(self, tensor_id: TensorId) -> np.ndarray:
        """
        Return the accumulated gradient of a slot.

        Raises
        ------
        TensorNotFoundError
            If `tensor_id` is outside the arena.
        """
        self._check_id(tensor_id)
        return self._grads[tensor_id]

    def name_of(self, tensor_id: TensorId) -> str:
        self._check_id(tensor_id)
        return self._names[tensor_id]

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------
    def call(self, func: Function, input_ids: Sequence[TensorId]) -> TensorId:
        """
        Evaluate an operation and record it.

        Resolves every input id, runs `func` in inference mode, allocates an
        unnamed slot for the result and records ``(input_ids, func)`` under
        the new id.

        Parameters
        ----------
        func : Function
            Operation instance. It is kept as-is and reused by `forward` and
            `backward_all`.
        input_ids : Sequence[TensorId]
            Ids of the inputs, in the order `func` expects them.

        Returns
        -------
        TensorId
            Id of the derived tensor.

        Raises
        ------
        TensorNotFoundError
            If any input id is outside the arena. Nothing is allocated.
        TensorError
            If the operation rejects its inputs. Nothing is allocated.
        """
        ids = tuple(input_ids)
        inputs = [self.get(i) for i in ids]
        out = func.run(inputs, False)
        out_id = self.alloc(out)
        self._computations[out_id] = Computation(inputs=ids, func=func)
        logger.debug("Recorded %r -> tensor %d from inputs %s", func, out_id, ids)
        return out_id

    def forward(self, training: bool = True) -> None:
        """
        Recompute every derived tensor from the current leaf values.

        Records are replayed in ascending id order, which is creation order.
        Since every input of a record was allocated before its output, each
        record sees already refreshed inputs. A derived slot whose shape
        changes (e.g. a new batch size) gets a zero gradient of the new shape.

        Parameters
        ----------
        training : bool, optional
            Training-mode flag passed to every operation. Defaults to True.

        Raises
        ------
        GraphError
            Propagated from the first failing operation. Earlier slots keep
            their refreshed values; later slots keep stale ones.
        """
        for out_id, comp in self._computations.items():
            inputs = [self._tensors[i] for i in comp.inputs]
            out = as_tensor(comp.func.run(inputs, training), self._dtype)
            if out.shape != self._grads[out_id].shape:
                logger.debug(
                    "Slot %d reshaped from %s to %s; gradient reset",
                    out_id,
                    self._grads[out_id].shape,
                    out.shape,
                )
                self._grads[out_id] = zeros(out.shape, self._dtype)
            self._tensors[out_id] = out
        logger.debug(
            "Forward replayed %d computations (training=%s)",
            len(self._computations),
            training,
        )

    def backward_all(
        self, tensor_id: TensorId, loss: ILoss, limit: Optional[int] = None
    ) -> float:
        """
        Backpropagate a loss from `tensor_id` through the recorded graph.

        Steps
        -----
        1. Run `loss` on the output value to get the unreduced loss and its
           gradient.
        2. Scale the gradient by ``1 / loss.size`` (mean reduction) and
           accumulate it into the output's gradient slot.
        3. Visit records in descending id order, at most `limit` of them.
        4. For each record, call its operation's `grad` with the current
           input values and the output's accumulated gradient, and
           accumulate each result into the matching input slot.

        Parameters
        ----------
        tensor_id : TensorId
            Output tensor the loss is computed on.
        loss : ILoss
            Loss capability.
        limit : int, optional
            Truncation depth: number of most recently created records to
            visit. ``None`` visits all of them.

        Returns
        -------
        float
            The mean of the loss tensor.

        Raises
        ------
        TensorNotFoundError
            If `tensor_id` is outside the arena.
        ShapeMismatchError
            If the loss gradient is not shaped like the output.
        GradientArityError
            If an operation returns the wrong number of gradients.
        ValueError
            If `limit` is negative.
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")

        output = self.get(tensor_id)
        loss_value, grad = loss.run(output)
        loss_value = np.asarray(loss_value)
        grad = np.asarray(grad)
        if grad.shape != output.shape:
            raise ShapeMismatchError(output.shape, grad.shape)
        if loss_value.size == 0:
            raise TensorError("Loss tensor is empty")

        mean_coeff = 1.0 / loss_value.size
        self.add_grad(tensor_id, grad * mean_coeff)

        records = reversed(self._computations.items())
        if limit is not None:
            records = itertools.islice(records, limit)

        visited = 0
        for out_id, comp in records:
            inputs = [self._tensors[i] for i in comp.inputs]
            grads = list(comp.func.grad(inputs, self._grads[out_id]))
            if len(grads) != len(comp.inputs):
                raise GradientArityError(
                    type(comp.func).__name__, len(comp.inputs), len(grads)
                )
            for in_id, g in zip(comp.inputs, grads):
                self.add_grad(in_id, g)
            visited += 1

        mean_loss = float(loss_value.mean())
        logger.debug(
            "Backward from tensor %d visited %d/%d computations, loss=%.6f",
            tensor_id,
            visited,
            len(self._computations),
            mean_loss,
        )
        return mean_loss

    def optimize(
        self,
        optimizer: IOptimizer,
        params: AbstractSet[TensorId],
        learning_rate: float,
    ) -> None:
        """
        Apply one optimizer step to a subset of slots.

        Parameters and their gradients are handed to the optimizer in
        ascending id order, so stateful optimizers can key per-parameter
        state by position across steps.

        Parameters
        ----------
        optimizer : IOptimizer
            Optimizer capability; mutates parameter arrays in place.
        params : AbstractSet[TensorId]
            Ids of the parameters to update.
        learning_rate : float
            Step size.

        Raises
        ------
        TensorNotFoundError
            If any id in `params` is outside the arena. The optimizer is not
            invoked.
        """
        ids = sorted(set(params))
        for i in ids:
            self._check_id(i)
        tensors = [self._tensors[i] for i in ids]
        grads = [self._grads[i] for i in ids]
        optimizer.step(tensors, grads, float(learning_rate))
        logger.debug("Optimizer %s updated %d parameters", type(optimizer).__name__, len(ids))

    # ------------------------------------------------------------------
    # Duplication
    # ------------------------------------------------------------------
    def clone(self) -> "Graph":
        """
        Return an independent deep copy of this graph.

        Every array is copied and every operation instance is cloned, so the
        copy can be used as a checkpoint or handed to other code without
        sharing mutable state.
        """
        other = Graph(dtype=self._dtype)
        other._tensors = [t.copy() for t in self._tensors]
        other._grads = [g.copy() for g in self._grads]
        other._names = list(self._names)
        other._computations = {k: c.clone() for k, c in self._computations.items()}
        return other

    def __deepcopy__(self, memo: dict) -> "Graph":
        return self.clone()
