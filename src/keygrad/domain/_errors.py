"""
Graph and tensor exceptions for keygrad.

This module defines the closed error taxonomy raised by the autodiff core.
Every fallible entry point of the graph (accessors, `call`, `forward`,
`backward_all`, `optimize`) signals failure by raising one of these types;
nothing is silently replaced by a default value.

Hierarchy
---------
- `GraphError`
    - `TensorError`
        - `ShapeMismatchError`
        - `BroadcastError`
        - `ScalarIndexError`
        - `RawBufferLengthError`
    - `TensorNotFoundError`
    - `GradientArityError`

All errors keep the values that caused them as attributes so that callers
can inspect the failure without parsing the message.
"""

from __future__ import annotations

from typing import Sequence


def _fmt_shape(shape: Sequence[int]) -> str:
    return "(" + ", ".join(str(int(d)) for d in shape) + ")"


class GraphError(RuntimeError):
    """
    Base class of every error raised by the computation graph.

    Callers that want to handle any core failure uniformly can catch this
    type; the subclasses narrow the cause.
    """


class TensorError(GraphError):
    """
    Raised when a tensor-level operation cannot be carried out.

    This covers malformed shapes and buffers as well as arithmetic that the
    underlying array library rejected.
    """


class ShapeMismatchError(TensorError):
    """
    Raised when two shapes that must agree do not.

    Attributes
    ----------
    expected : tuple[int, ...]
        The shape required by the receiving slot or operand.
    actual : tuple[int, ...]
        The shape that was supplied.
    """

    def __init__(self, expected: Sequence[int], actual: Sequence[int]) -> None:
        """
        Initialize the ShapeMismatchError.

        Parameters
        ----------
        expected : Sequence[int]
            Required shape.
        actual : Sequence[int]
            Supplied shape.
        """
        super().__init__(
            f"Shape mismatch: expected {_fmt_shape(expected)}, got {_fmt_shape(actual)}."
        )
        self.expected = tuple(int(d) for d in expected)
        self.actual = tuple(int(d) for d in actual)


class BroadcastError(TensorError):
    """
    Raised when shapes cannot be broadcast against each other.

    Attributes
    ----------
    shapes : tuple[tuple[int, ...], ...]
        The operand shapes involved in the failed broadcast.
    """

    def __init__(self, *shapes: Sequence[int]) -> None:
        super().__init__(
            "Cannot broadcast shapes " + " and ".join(_fmt_shape(s) for s in shapes) + "."
        )
        self.shapes = tuple(tuple(int(d) for d in s) for s in shapes)


class ScalarIndexError(TensorError):
    """
    Raised when a scalar index falls outside the indexed dimension.

    Attributes
    ----------
    index : int
        The offending index.
    length : int
        Size of the dimension being indexed.
    """

    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"Index {index} is out of range for dimension of size {length}.")
        self.index = int(index)
        self.length = int(length)


class RawBufferLengthError(TensorError):
    """
    Raised when a flat buffer does not hold exactly the elements of a shape.

    Attributes
    ----------
    shape : tuple[int, ...]
        Requested shape.
    length : int
        Number of elements supplied.
    """

    def __init__(self, shape: Sequence[int], length: int) -> None:
        super().__init__(
            f"Buffer of length {length} cannot fill a tensor of shape {_fmt_shape(shape)}."
        )
        self.shape = tuple(int(d) for d in shape)
        self.length = int(length)


class TensorNotFoundError(GraphError):
    """
    Raised when a tensor id does not name a slot of the graph.

    Attributes
    ----------
    tensor_id : int
        The id that was looked up.
    size : int
        Arena length at the time of the lookup.
    """

    def __init__(self, tensor_id: int, size: int) -> None:
        super().__init__(f"Tensor with id {tensor_id} not found (graph holds {size} tensors).")
        self.tensor_id = tensor_id
        self.size = int(size)


class GradientArityError(GraphError):
    """
    Raised when an operation's `grad` returns the wrong number of gradients.

    Attributes
    ----------
    func : str
        Name of the offending operation type.
    expected : int
        Number of inputs recorded for the computation.
    actual : int
        Number of gradients returned.
    """

    def __init__(self, func: str, expected: int, actual: int) -> None:
        super().__init__(
            f"{func}.grad returned {actual} gradients for {expected} inputs."
        )
        self.func = func
        self.expected = int(expected)
        self.actual = int(actual)
