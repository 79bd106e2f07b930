from __future__ import annotations

import argparse
import logging
import os
import sys

import numpy as np

THIS_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT_DIR = os.path.abspath(os.path.join(THIS_DIR, ".."))
SRC_DIR = os.path.join(ROOT_DIR, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


def main() -> None:
    from keygrad.infrastructure.graph._graph import Graph
    from keygrad.infrastructure.funcs import Add, Gelu, MatMul
    from keygrad.infrastructure.losses._losses import MSELoss
    from keygrad.infrastructure.optimizers._adam import AdamW

    parser = argparse.ArgumentParser(description="Fit y = sin(x) with a tiny MLP.")
    parser.add_argument("--steps", type=int, default=500)
    parser.add_argument("--batch", type=int, default=32)
    parser.add_argument("--hidden", type=int, default=16)
    parser.add_argument("--lr", type=float, default=1e-2)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    rng = np.random.default_rng(args.seed)
    g = Graph()

    x = g.alloc(np.zeros((args.batch, 1)), "x")
    w1 = g.alloc_rand(rng, (1, args.hidden), "w1")
    b1 = g.alloc(np.zeros(args.hidden), "b1")
    w2 = g.alloc_rand(rng, (args.hidden, 1), "w2", scale=1.0 / np.sqrt(args.hidden))
    b2 = g.alloc(np.zeros(1), "b2")
    params = {w1, b1, w2, b2}

    h = g.call(Gelu(), [g.call(Add(), [g.call(MatMul(), [x, w1]), b1])])
    y = g.call(Add(), [g.call(MatMul(), [h, w2]), b2])

    opt = AdamW(weight_decay=0.0)
    for step in range(args.steps):
        xs = rng.uniform(-np.pi, np.pi, size=(args.batch, 1))
        g.load(x, xs)
        g.zero_grad()
        g.forward(training=True)
        loss = g.backward_all(y, MSELoss(np.sin(xs)))
        g.optimize(opt, params, args.lr)
        if step % 50 == 0 or step == args.steps - 1:
            print(f"step {step:4d}  loss {loss:.5f}")


if __name__ == "__main__":
    main()
