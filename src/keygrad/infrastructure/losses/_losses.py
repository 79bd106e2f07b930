"""
Loss functions for keygrad.

Losses are the terminal step of `Graph.backward_all`. Each loss implements
the `ILoss` contract: `run(output)` returns the unreduced loss tensor and the
gradient of that loss with respect to `output`. The graph takes the mean of
the loss and scales the gradient by ``1 / loss.size`` itself, so losses
return per-element (or per-row) values and matching raw gradients.

Currently implemented losses:
- IdentityLoss : the output itself is the loss
- MSELoss : squared error against a fixed target
- CrossEntropyLoss : softmax cross-entropy against integer class targets

Design notes
------------
- Targets are part of the loss instance. A training loop builds a new loss
  per batch (they are cheap) or calls `set_target`.
- Losses are not recorded in the graph; they never receive gradients.
"""

from __future__ import annotations

from typing import Any, Tuple

import numpy as np

from ...domain._errors import ScalarIndexError, ShapeMismatchError, TensorError


class IdentityLoss:
    """
    Treat the output value itself as the loss.

    Computes:

        loss = output
        d(loss)/d(output) = 1

    Useful to backpropagate from a tensor that already holds a loss, and to
    seed a unit gradient in tests.
    """

    def run(self, output: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        output = np.asarray(output)
        return output.copy(), np.ones_like(output)


class MSELoss:
    """
    Elementwise squared error.

    Computes:

        loss = (output - target)^2
        d(loss)/d(output) = 2 * (output - target)

    After the graph's mean reduction this is the Mean Squared Error.

    Parameters
    ----------
    target : array-like
        Ground-truth values; must have the same shape as the output.
    """

    def __init__(self, target: Any) -> None:
        self.set_target(target)

    def set_target(self, target: Any) -> None:
        self.target = np.array(target, dtype=np.float64, copy=True)

    def run(self, output: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        output = np.asarray(output)
        if output.shape != self.target.shape:
            raise ShapeMismatchError(self.target.shape, output.shape)
        diff = output - self.target.astype(output.dtype)
        return diff * diff, 2.0 * diff


class CrossEntropyLoss:
    """
    Softmax cross-entropy over the last axis.

    The output holds unnormalized logits of shape ``(..., C)``; targets hold
    one class index per row, shape ``(...)``.

    Computes, per row:

        p = softmax(logits)
        loss = -log(p[target])
        d(loss)/d(logits) = p - one_hot(target)

    Parameters
    ----------
    targets : array-like of int
        Class index for every row of the output.
    """

    def __init__(self, targets: Any) -> None:
        self.set_target(targets)

    def set_target(self, targets: Any) -> None:
        t = np.asarray(targets)
        if t.size and not np.issubdtype(t.dtype, np.integer):
            raise TensorError(f"Targets must be integers, got dtype {t.dtype}")
        self.targets = t.astype(np.int64, copy=True)

    def run(self, output: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        logits = np.asarray(output)
        if logits.ndim < 1 or logits.shape[:-1] != self.targets.shape:
            raise ShapeMismatchError(self.targets.shape, logits.shape[:-1])
        n_classes = logits.shape[-1]
        bad = self.targets[(self.targets < 0) | (self.targets >= n_classes)]
        if bad.size:
            raise ScalarIndexError(int(bad.reshape(-1)[0]), n_classes)

        shifted = logits - np.max(logits, axis=-1, keepdims=True)
        log_norm = np.log(np.sum(np.exp(shifted), axis=-1, keepdims=True))
        log_probs = shifted - log_norm

        picked = np.take_along_axis(log_probs, self.targets[..., None], axis=-1)
        loss = -picked[..., 0]

        grad = np.exp(log_probs)
        np.put_along_axis(
            grad,
            self.targets[..., None],
            np.take_along_axis(grad, self.targets[..., None], axis=-1) - 1.0,
            axis=-1,
        )
        return loss, grad
