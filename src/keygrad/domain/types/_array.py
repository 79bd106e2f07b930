"""
Domain-level structural typing for tensor values and handles.

The domain layer describes graph contracts without importing NumPy. Tensor
values are typed with :class:`NDArrayLike`, a Protocol modelling the small
part of the ``numpy.ndarray`` surface the contracts rely on, and tensor
handles with the :data:`TensorId` alias.

Typical implementers of :class:`NDArrayLike` include ``numpy.ndarray`` and
array views returned by the infrastructure layer.
"""

from __future__ import annotations

from typing import Any, Protocol, Tuple, runtime_checkable

TensorId = int
"""Opaque, monotonically increasing handle of one graph slot."""


@runtime_checkable
class NDArrayLike(Protocol):
    """
    Structural interface for objects that behave like NumPy ndarrays.

    Notes
    -----
    - This is a *Protocol*, not a base class.
    - Only attributes used by domain contracts are modelled; the concrete
      backend is free to offer more.
    """

    @property
    def shape(self) -> Tuple[int, ...]:
        """
        Shape of the array as a tuple of dimension sizes.
        """
        ...

    @property
    def ndim(self) -> int:
        """
        Number of dimensions of the array.
        """
        ...

    @property
    def size(self) -> int:
        """
        Total number of elements in the array.
        """
        ...

    @property
    def dtype(self) -> Any: ...

    def reshape(self, *shape: int) -> NDArrayLike: ...

    def copy(self) -> NDArrayLike: ...

    def sum(self, axis: int | None = None, keepdims: bool = False) -> Any: ...

    def mean(self, axis: int | None = None, keepdims: bool = False) -> Any: ...

    def __array__(self, dtype: Any = ...) -> Any:
        """
        Return a backend-native array representation.

        This enables ``np.asarray(obj)`` interoperability without importing
        NumPy in the domain layer.
        """
        ...
