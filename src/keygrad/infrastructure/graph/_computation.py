from dataclasses import dataclass
from typing import Tuple

from ...domain._function import Function
from ...domain.types._array import TensorId


@dataclass
class Computation:
    """
    Record of how a derived tensor was produced.

    Attributes
    ----------
    inputs : tuple[TensorId, ...]
        Ids of the operation's inputs, in call order. Every id is smaller
        than the id of the tensor this record produces.
    func : Function
        The operation instance, kept verbatim for forward replay and backward.
    """

    inputs: Tuple[TensorId, ...]
    func: Function

    def clone(self) -> "Computation":
        """
        Return a copy that owns a cloned operation instance.
        """
        return Computation(inputs=tuple(self.inputs), func=self.func.clone())
