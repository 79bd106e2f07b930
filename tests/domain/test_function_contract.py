import unittest

import numpy as np

from keygrad.domain._function import Function
from keygrad.domain._graph import IGraph
from keygrad.domain._losses import ILoss
from keygrad.domain._optimizers import IOptimizer
from keygrad.domain.types._array import NDArrayLike
from keygrad.infrastructure.graph._graph import Graph
from keygrad.infrastructure.losses._losses import IdentityLoss, MSELoss
from keygrad.infrastructure.optimizers._adam import Adam
from keygrad.infrastructure.optimizers._sgd import SGD


class Square(Function):
    def run(self, inputs, training):
        return inputs[0] * inputs[0]

    def grad(self, inputs, out_grad):
        return [2.0 * inputs[0] * out_grad]


class Scale(Function):
    def __init__(self, table):
        self.table = np.asarray(table)

    def run(self, inputs, training):
        return inputs[0] * self.table

    def grad(self, inputs, out_grad):
        return [out_grad * self.table]

    def get_config(self):
        return {"table": self.table.tolist()}


class TestFunctionBase(unittest.TestCase):
    def test_cannot_instantiate_abstract_function(self):
        with self.assertRaises(TypeError):
            Function()  # type: ignore[abstract]

    def test_subclass_missing_grad_is_abstract(self):
        class OnlyRun(Function):
            def run(self, inputs, training):
                return inputs[0]

        with self.assertRaises(TypeError):
            OnlyRun()  # type: ignore[abstract]

    def test_default_config_is_empty(self):
        self.assertEqual(Square().get_config(), {})

    def test_clone_returns_independent_copy(self):
        f = Scale([1.0, 2.0])
        c = f.clone()
        self.assertIsNot(c, f)
        self.assertIsInstance(c, Scale)
        c.table[0] = 100.0
        self.assertEqual(f.table[0], 1.0)

    def test_repr_lists_config(self):
        self.assertEqual(repr(Square()), "Square()")
        self.assertIn("table=", repr(Scale([1.0])))


class TestProtocols(unittest.TestCase):
    def test_graph_satisfies_igraph(self):
        self.assertIsInstance(Graph(), IGraph)

    def test_losses_satisfy_iloss(self):
        self.assertIsInstance(IdentityLoss(), ILoss)
        self.assertIsInstance(MSELoss([1.0]), ILoss)

    def test_optimizers_satisfy_ioptimizer(self):
        self.assertIsInstance(SGD(), IOptimizer)
        self.assertIsInstance(Adam(), IOptimizer)

    def test_ndarray_is_ndarray_like(self):
        self.assertIsInstance(np.zeros((2, 2)), NDArrayLike)


if __name__ == "__main__":
    unittest.main()
