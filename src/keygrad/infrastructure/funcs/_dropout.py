"""
Dropout regularization operation.

This module implements inverted dropout as a graph operation. During
training, elements are zeroed with probability `p` and the survivors are
scaled by ``1 / (1 - p)`` to preserve the expected activation. Outside
training it is the identity.

Design notes
------------
- This is the one built-in operation whose `run` is not a pure function of
  its inputs: in training mode it samples a fresh mask on every call.
- The mask sampled by the latest training-mode `run` is kept on the
  instance and reused by `grad`, so a backward pass must follow the forward
  pass it belongs to.
- Randomness comes from a per-instance `numpy.random.Generator`; pass a
  `seed` for reproducible masks.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ...domain._errors import ShapeMismatchError, TensorError
from ...domain._function import Function


class Dropout(Function):
    """
    Inverted dropout.

    Behavior
    --------
    - Training mode:
        y = x * mask / (1 - p), where mask ~ Bernoulli(1 - p)
    - Inference mode:
        y = x

    Parameters
    ----------
    p : float, optional
        Probability of zeroing an element. Must satisfy ``0 <= p < 1``.
        Defaults to 0.5.
    seed : int, optional
        Seed of the instance's random generator.
    """

    def __init__(self, p: float = 0.5, seed: Optional[int] = None) -> None:
        if not 0.0 <= p < 1.0:
            raise ValueError("Dropout probability p must be in [0, 1).")
        self.p = float(p)
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        self._mask: Optional[np.ndarray] = None

    def run(self, inputs: Sequence[np.ndarray], training: bool) -> np.ndarray:
        if len(inputs) != 1:
            raise TensorError(f"Dropout expects 1 input, got {len(inputs)}")
        x = np.asarray(inputs[0])
        if not training or self.p == 0.0:
            self._mask = None
            return x.copy()

        keep_prob = 1.0 - self.p
        mask = (self._rng.random(x.shape) < keep_prob).astype(x.dtype) / keep_prob
        self._mask = mask
        return x * mask

    def grad(self, inputs: Sequence[np.ndarray], out_grad: np.ndarray) -> List[np.ndarray]:
        if self._mask is None:
            return [out_grad]
        if self._mask.shape != out_grad.shape:
            raise ShapeMismatchError(self._mask.shape, out_grad.shape)
        return [out_grad * self._mask]

    def get_config(self) -> Dict[str, Any]:
        return {"p": self.p, "seed": self.seed}
