"""
Built-in graph operations.

Exports
-------
- Add, Sub, Mul, Coeff: elementwise arithmetic with broadcasting.
- Mask: constant fill of masked positions.
- MatMul, Transpose: batched matrix product and last-two-axes swap.
- Relu, Sigmoid, Gelu, Softmax: activations.
- Dropout: inverted dropout driven by the graph's training flag.

Every operation satisfies the `Function` contract and is checked against
finite differences in the test suite.
"""

from ._arithmetic import Add, Coeff, Mul, Sub
from ._mask import Mask
from ._matmul import MatMul, Transpose
from ._activations import Gelu, Relu, Sigmoid, Softmax
from ._dropout import Dropout

__all__ = [
    Add.__name__,
    Sub.__name__,
    Mul.__name__,
    Coeff.__name__,
    Mask.__name__,
    MatMul.__name__,
    Transpose.__name__,
    Relu.__name__,
    Sigmoid.__name__,
    Gelu.__name__,
    Softmax.__name__,
    Dropout.__name__,
]
