"""
Stochastic Gradient Descent (SGD) optimizer implementation.

This module provides a minimal SGD optimizer for keygrad. The optimizer
receives parameter arrays and their gradients from `Graph.optimize` and
updates the parameters in place, optionally applying classical L2
regularization (coupled weight decay).

Design notes
------------
- The graph owns parameters and gradients; the optimizer only sees the two
  index-aligned lists for the duration of `step`.
- The learning rate is supplied per step so that training loops can run a
  schedule without rebuilding the optimizer.
- This implementation intentionally omits momentum, Nesterov, and other SGD
  variants to keep the core optimizer minimal and easy to reason about.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ...domain._errors import ShapeMismatchError


def _check_lists(params: Sequence[np.ndarray], grads: Sequence[np.ndarray]) -> None:
    if len(params) != len(grads):
        raise ValueError(
            f"params and grads must have the same length, got {len(params)} and {len(grads)}"
        )
    for p, g in zip(params, grads):
        if p.shape != g.shape:
            raise ShapeMismatchError(p.shape, g.shape)


@dataclass
class SGD:
    """
    Stochastic Gradient Descent (SGD) optimizer.

    Update rule
    -----------
    For each parameter ``p`` with gradient ``g``:

    - If ``weight_decay > 0`` (classical L2 regularization):
        ``g <- g + weight_decay * p``
    - Parameter update:
        ``p <- p - lr * g``

    Parameters
    ----------
    weight_decay : float, optional
        Classical L2 weight decay coefficient (coupled). Must be non-negative.
        Defaults to 0.0.
    """

    weight_decay: float = 0.0

    def __init__(self, *, weight_decay: float = 0.0) -> None:
        """
        Construct an SGD optimizer.

        Raises
        ------
        ValueError
            If ``weight_decay < 0``.
        """
        self.weight_decay = float(weight_decay)
        if self.weight_decay < 0.0:
            raise ValueError(f"weight_decay must be >= 0, got {self.weight_decay}")

    def step(
        self,
        params: Sequence[np.ndarray],
        grads: Sequence[np.ndarray],
        learning_rate: float,
    ) -> None:
        """
        Apply one SGD update step in place.

        Raises
        ------
        ValueError
            If the lists differ in length or ``learning_rate < 0``.
        ShapeMismatchError
            If a gradient is not shaped like its parameter.
        """
        lr = float(learning_rate)
        if lr < 0.0:
            raise ValueError(f"learning_rate must be >= 0, got {lr}")
        _check_lists(params, grads)

        for p, g in zip(params, grads):
            # Optional L2 weight decay (decoupled is AdamW; this is classical)
            if self.weight_decay != 0.0:
                g = g + self.weight_decay * p

            # In-place update: p <- p - lr * g
            p -= (lr * g).astype(p.dtype, copy=False)
