"""
NumPy-backed tensor value helpers.

Tensor values in keygrad are plain ``numpy.ndarray`` objects. This module
wraps the handful of array manipulations the graph and the built-in
operations need so that failures surface as the framework's `TensorError`
types rather than raw NumPy exceptions.

It also hosts the two halves of gradient-side unbroadcasting:

- `collapse_broadcast_axes` sums over equal-rank axes that an operand
  broadcast from size 1. Operations call it in their `grad`.
- `reduce_leading` sums over extra leading dimensions a gradient carries
  relative to its target. The graph applies it on every accumulation.

Design notes
------------
- Values are stored as float32 by default; helpers accept a `dtype` so that
  finite-difference checks can run in float64.
- Helpers always return new arrays; slots are never aliased with caller
  memory.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from ...domain._errors import (
    BroadcastError,
    RawBufferLengthError,
    ScalarIndexError,
    ShapeMismatchError,
    TensorError,
)

DEFAULT_DTYPE = np.float32
"""Element type used for graph slots unless configured otherwise."""


def as_tensor(value: Any, dtype: Any = DEFAULT_DTYPE) -> np.ndarray:
    """
    Copy `value` into a new array of the given dtype.

    Parameters
    ----------
    value : Any
        Array-like value (ndarray, nested list, scalar).
    dtype : Any, optional
        Target element type. Defaults to float32.

    Returns
    -------
    np.ndarray
        A freshly owned array.

    Raises
    ------
    TensorError
        If `value` cannot be converted to a numeric array.
    """
    try:
        return np.array(value, dtype=dtype, copy=True)
    except (TypeError, ValueError) as e:
        raise TensorError(f"Cannot convert {type(value).__name__} to a tensor: {e}") from e


def zeros(shape: Sequence[int], dtype: Any = DEFAULT_DTYPE) -> np.ndarray:
    """
    Allocate a zero-filled array.

    Raises
    ------
    TensorError
        If `shape` contains negative dimensions.
    """
    shape = tuple(int(d) for d in shape)
    if any(d < 0 for d in shape):
        raise TensorError(f"Negative dimensions are not allowed: {shape}")
    return np.zeros(shape, dtype=dtype)


def raw(shape: Sequence[int], data: Sequence[float], dtype: Any = DEFAULT_DTYPE) -> np.ndarray:
    """
    Build a tensor of `shape` from a flat buffer in row-major order.

    Parameters
    ----------
    shape : Sequence[int]
        Target shape.
    data : Sequence[float]
        Flat values; must hold exactly ``prod(shape)`` elements.

    Returns
    -------
    np.ndarray
        The reshaped tensor.

    Raises
    ------
    RawBufferLengthError
        If the buffer length does not match the shape.
    """
    shape = tuple(int(d) for d in shape)
    if any(d < 0 for d in shape):
        raise TensorError(f"Negative dimensions are not allowed: {shape}")
    flat = as_tensor(data, dtype).reshape(-1)
    if flat.size != int(np.prod(shape, dtype=np.int64)):
        raise RawBufferLengthError(shape, flat.size)
    return flat.reshape(shape)


def rand(
    rng: np.random.Generator,
    shape: Sequence[int],
    scale: float = 1.0,
    dtype: Any = DEFAULT_DTYPE,
) -> np.ndarray:
    """
    Sample a tensor uniformly from ``[-scale, scale)``.
    """
    shape = tuple(int(d) for d in shape)
    if any(d < 0 for d in shape):
        raise TensorError(f"Negative dimensions are not allowed: {shape}")
    return ((rng.random(shape) * 2.0 - 1.0) * scale).astype(dtype)


def scalar(t: np.ndarray) -> float:
    """
    Extract the single value of a one-element tensor.

    Raises
    ------
    ShapeMismatchError
        If `t` holds more or fewer than one element.
    """
    t = np.asarray(t)
    if t.size != 1:
        raise ShapeMismatchError((), t.shape)
    return float(t.reshape(-1)[0])


def take_rows(table: np.ndarray, indices: Any) -> np.ndarray:
    """
    Gather rows of `table` for every scalar in `indices`.

    The result has shape ``indices.shape + table.shape[1:]``.

    Raises
    ------
    TensorError
        If `table` is a scalar or `indices` are not integral.
    ScalarIndexError
        If any index lies outside ``[0, table.shape[0])``.
    """
    table = np.asarray(table)
    if table.ndim == 0:
        raise TensorError("Cannot gather rows from a 0-d tensor")
    idx = np.asarray(indices)
    if idx.size and not np.issubdtype(idx.dtype, np.integer):
        raise TensorError(f"Indices must be integers, got dtype {idx.dtype}")
    idx = idx.astype(np.int64, copy=False)
    n = table.shape[0]
    bad = idx[(idx < 0) | (idx >= n)]
    if bad.size:
        raise ScalarIndexError(int(bad.reshape(-1)[0]), n)
    return table[idx].copy()


def broadcast_shapes(*shapes: Sequence[int]) -> tuple[int, ...]:
    """
    Return the broadcast result of `shapes` under NumPy rules.

    Raises
    ------
    BroadcastError
        If the shapes are incompatible.
    """
    try:
        return tuple(int(d) for d in np.broadcast_shapes(*[tuple(s) for s in shapes]))
    except ValueError as e:
        raise BroadcastError(*shapes) from e


def collapse_broadcast_axes(grad: np.ndarray, shape: Sequence[int]) -> np.ndarray:
    """
    Sum a gradient over the size-1 axes an operand was broadcast along.

    `shape` is right-aligned against the trailing dimensions of `grad`. Every
    aligned axis where `shape` has size 1 but `grad` does not is summed with
    ``keepdims=True``. Extra leading dimensions of `grad` are left untouched;
    the graph removes them when it accumulates.

    Parameters
    ----------
    grad : np.ndarray
        Gradient in the broadcast (output) shape.
    shape : Sequence[int]
        Shape of the operand the gradient belongs to.

    Returns
    -------
    np.ndarray
        Gradient whose trailing dimensions equal `shape`, possibly with
        leading batch dimensions.

    Raises
    ------
    BroadcastError
        If `shape` could not have been broadcast to ``grad.shape``.
    """
    shape = tuple(int(d) for d in shape)
    if len(shape) > grad.ndim:
        # Operand has extra leading unit dims; nothing was summed over.
        return grad
    pad = grad.ndim - len(shape)
    axes = []
    for i, td in enumerate(shape):
        gd = grad.shape[pad + i]
        if td == gd:
            continue
        if td != 1:
            raise BroadcastError(shape, grad.shape)
        axes.append(pad + i)
    if axes:
        grad = grad.sum(axis=tuple(axes), keepdims=True)
    return grad


def reduce_leading(grad: np.ndarray, shape: Sequence[int]) -> np.ndarray:
    """
    Reduce a gradient to `shape` for accumulation into a slot.

    If the gradient's rank is at least one more than the target rank, it is
    viewed as a stack of slices of the target's trailing shape and the slices
    are summed. Otherwise it must already match `shape`, up to a view that
    only adds or drops leading unit dimensions (e.g. ``(1, 3)`` against
    ``(3,)``).

    Parameters
    ----------
    grad : np.ndarray
        Incoming gradient.
    shape : Sequence[int]
        Shape of the receiving slot.

    Returns
    -------
    np.ndarray
        Gradient of exactly `shape`.

    Raises
    ------
    ShapeMismatchError
        If no reduction or view maps `grad` onto `shape`.
    """
    shape = tuple(int(d) for d in shape)
    grad = np.asarray(grad)
    rank = len(shape)
    if grad.ndim >= rank + 1:
        trailing = grad.shape[grad.ndim - rank :]
        grad = grad.reshape((-1,) + trailing).sum(axis=0)
    if grad.shape == shape:
        return grad
    if _strip_leading_ones(grad.shape) == _strip_leading_ones(shape):
        return grad.reshape(shape)
    raise ShapeMismatchError(shape, grad.shape)


def _strip_leading_ones(shape: Sequence[int]) -> tuple[int, ...]:
    dims = tuple(int(d) for d in shape)
    start = 0
    while start < len(dims) and dims[start] == 1:
        start += 1
    return dims[start:]
