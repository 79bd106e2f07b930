"""
Adam and AdamW optimizer implementations.

This module provides keygrad-native implementations of the Adam
optimization algorithm and its decoupled-weight-decay variant AdamW. Both
update parameter arrays in place and maintain first- and second-moment
estimates per parameter.

Design notes
------------
- Per-parameter state is keyed by position. `Graph.optimize` always passes
  parameters in ascending id order, so position ``i`` refers to the same
  parameter on every step as long as the same id set is optimized.
- State is created lazily on the first step. A later step with a different
  number of parameters, or a parameter whose shape changed, is rejected
  instead of silently reusing mismatched moments.
- The moment arrays (`m`, `v`) and step counter (`t`) are public so an
  external serializer can snapshot and restore them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from ...domain._errors import ShapeMismatchError
from ._sgd import _check_lists


@dataclass
class Adam:
    """
    Adam optimizer.

    Adam maintains exponentially decaying averages of past gradients (first
    moment) and past squared gradients (second moment), and applies bias
    correction to both estimates.

    Update rule
    -----------
    Let ``g_t`` be the gradient at step ``t``:

        m_t = beta1 * m_{t-1} + (1 - beta1) * g_t
        v_t = beta2 * v_{t-1} + (1 - beta2) * (g_t ** 2)

        m_hat = m_t / (1 - beta1^t)
        v_hat = v_t / (1 - beta2^t)

        p <- p - lr * m_hat / (sqrt(v_hat) + eps)

    If ``weight_decay > 0`` (classical L2 regularization):

        g_t <- g_t + weight_decay * p

    Parameters
    ----------
    betas : tuple[float, float], optional
        Exponential decay rates for the first and second moments.
        Each must be in (0, 1). Defaults to (0.9, 0.999).
    eps : float, optional
        Numerical stability epsilon added to the denominator. Must be positive.
        Defaults to 1e-8.
    weight_decay : float, optional
        Regularization coefficient. Must be non-negative. Defaults to 0.0.
    """

    betas: Tuple[float, float] = (0.9, 0.999)
    eps: float = 1e-8
    weight_decay: float = 0.0

    def __init__(
        self,
        *,
        betas: Tuple[float, float] = (0.9, 0.999),
        eps: float = 1e-8,
        weight_decay: float = 0.0,
    ) -> None:
        """
        Construct the optimizer.

        Raises
        ------
        ValueError
            If any hyperparameter is outside its valid range.
        """
        self.betas = (float(betas[0]), float(betas[1]))
        self.eps = float(eps)
        self.weight_decay = float(weight_decay)

        b1, b2 = self.betas
        if not (0.0 < b1 < 1.0) or not (0.0 < b2 < 1.0):
            raise ValueError(f"betas must be in (0,1), got {self.betas}")
        if self.eps <= 0.0:
            raise ValueError(f"eps must be > 0, got {self.eps}")
        if self.weight_decay < 0.0:
            raise ValueError(f"weight_decay must be >= 0, got {self.weight_decay}")

        self.t: int = 0
        self.m: List[np.ndarray] = []
        self.v: List[np.ndarray] = []

    def _ensure_state(self, params: Sequence[np.ndarray]) -> None:
        if not self.m:
            self.m = [np.zeros_like(p) for p in params]
            self.v = [np.zeros_like(p) for p in params]
            return
        if len(self.m) != len(params):
            raise ValueError(
                f"Optimizer state holds {len(self.m)} parameters, step received {len(params)}"
            )
        for m, p in zip(self.m, params):
            if m.shape != p.shape:
                raise ShapeMismatchError(m.shape, p.shape)

    def _decay(self, p: np.ndarray, g: np.ndarray, lr: float) -> np.ndarray:
        # Classical L2 weight decay (coupled): g <- g + wd * p
        if self.weight_decay != 0.0:
            return g + self.weight_decay * p
        return g

    def step(
        self,
        params: Sequence[np.ndarray],
        grads: Sequence[np.ndarray],
        learning_rate: float,
    ) -> None:
        """
        Apply one update step to every parameter, in place.

        Raises
        ------
        ValueError
            If ``learning_rate < 0``, the lists differ in length, or the
            number of parameters changed since the first step.
        ShapeMismatchError
            If a gradient or stored moment does not match its parameter.
        """
        lr = float(learning_rate)
        if lr < 0.0:
            raise ValueError(f"learning_rate must be >= 0, got {lr}")
        _check_lists(params, grads)
        self._ensure_state(params)

        b1, b2 = self.betas
        self.t += 1
        t = self.t

        for i, (p, g) in enumerate(zip(params, grads)):
            g_eff = self._decay(p, g, lr)

            # m = b1*m + (1-b1)*g
            # v = b2*v + (1-b2)*(g*g)
            self.m[i] = b1 * self.m[i] + (1.0 - b1) * g_eff
            self.v[i] = b2 * self.v[i] + (1.0 - b2) * (g_eff * g_eff)

            # bias correction
            m_hat = self.m[i] / (1.0 - b1**t)
            v_hat = self.v[i] / (1.0 - b2**t)

            # p <- p - lr * m_hat / (sqrt(v_hat) + eps)
            p -= (lr * m_hat / (np.sqrt(v_hat) + self.eps)).astype(p.dtype, copy=False)


class AdamW(Adam):
    """
    Adam with decoupled weight decay.

    The decay is applied directly to the parameter before the Adam update
    and does not enter the moment estimates:

        p <- p - lr * weight_decay * p
        (then the Adam update with the raw gradient)

    Parameters
    ----------
    betas : tuple[float, float], optional
        Defaults to (0.9, 0.999).
    eps : float, optional
        Defaults to 1e-8.
    weight_decay : float, optional
        Decoupled decay coefficient. Defaults to 0.01.
    """

    def __init__(
        self,
        *,
        betas: Tuple[float, float] = (0.9, 0.999),
        eps: float = 1e-8,
        weight_decay: float = 0.01,
    ) -> None:
        super().__init__(betas=betas, eps=eps, weight_decay=weight_decay)

    def _decay(self, p: np.ndarray, g: np.ndarray, lr: float) -> np.ndarray:
        if self.weight_decay != 0.0:
            p -= np.asarray(lr * self.weight_decay * p, dtype=p.dtype)
        return g
