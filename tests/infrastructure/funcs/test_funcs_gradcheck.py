import unittest

import numpy as np

from keygrad.infrastructure.funcs import (
    Add,
    Coeff,
    Dropout,
    Gelu,
    Mask,
    MatMul,
    Mul,
    Relu,
    Sigmoid,
    Softmax,
    Sub,
    Transpose,
)
from keygrad.infrastructure.utils._gradcheck import (
    check_gradients,
    gradient_errors,
    numerical_gradient,
)

ATOL = 1e-5


def _rand(rng, *shape):
    return rng.standard_normal(shape)


class TestNumericalGradientHelper(unittest.TestCase):
    def test_numerical_gradient_of_coeff(self):
        x = np.array([[1.0, -2.0, 0.5]])
        weights = np.ones_like(x)
        num = numerical_gradient(Coeff(4.0), [x], 0, weights)
        np.testing.assert_allclose(num, np.full_like(x, 4.0), atol=1e-6)

    def test_inputs_are_not_mutated(self):
        x = np.array([1.0, 2.0])
        numerical_gradient(Coeff(2.0), [x], 0, np.ones(2))
        np.testing.assert_array_equal(x, [1.0, 2.0])

    def test_detects_wrong_gradient(self):
        class WrongGrad(Coeff):
            def grad(self, inputs, out_grad):
                return [out_grad * (self.coeff + 1.0)]

        x = np.array([1.0, 2.0, 3.0])
        self.assertFalse(check_gradients(WrongGrad(2.0), [x]))
        self.assertTrue(check_gradients(Coeff(2.0), [x]))


class TestElementwiseGradients(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(0)

    def _assert_ok(self, func, inputs):
        errors = gradient_errors(func, inputs)
        for i, e in enumerate(errors):
            self.assertLessEqual(e, ATOL, f"{func!r} input {i}: error {e}")

    def test_add_same_shape(self):
        self._assert_ok(Add(), [_rand(self.rng, 3, 4), _rand(self.rng, 3, 4)])

    def test_add_broadcast_row_vector(self):
        self._assert_ok(Add(), [_rand(self.rng, 3, 4), _rand(self.rng, 4)])

    def test_add_broadcast_unit_axis(self):
        self._assert_ok(Add(), [_rand(self.rng, 2, 3, 4), _rand(self.rng, 2, 1, 4)])

    def test_sub(self):
        self._assert_ok(Sub(), [_rand(self.rng, 2, 5), _rand(self.rng, 1, 5)])

    def test_mul(self):
        self._assert_ok(Mul(), [_rand(self.rng, 3, 4), _rand(self.rng, 3, 4)])

    def test_mul_broadcast(self):
        self._assert_ok(Mul(), [_rand(self.rng, 2, 3, 4), _rand(self.rng, 3, 1)])

    def test_coeff(self):
        self._assert_ok(Coeff(-1.5), [_rand(self.rng, 4, 2)])

    def test_mask(self):
        mask = np.array([[False, True, True], [False, False, True], [False, False, False]])
        self._assert_ok(Mask(mask, -1e4), [_rand(self.rng, 2, 3, 3)])


class TestMatrixGradients(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(1)

    def _assert_ok(self, func, inputs):
        for e in gradient_errors(func, inputs):
            self.assertLessEqual(e, ATOL)

    def test_matmul_2d(self):
        self._assert_ok(MatMul(), [_rand(self.rng, 3, 4), _rand(self.rng, 4, 2)])

    def test_matmul_batched_activations_shared_weight(self):
        self._assert_ok(MatMul(), [_rand(self.rng, 2, 3, 4), _rand(self.rng, 4, 5)])

    def test_matmul_both_batched(self):
        self._assert_ok(MatMul(), [_rand(self.rng, 2, 3, 4), _rand(self.rng, 2, 4, 3)])

    def test_matmul_unit_batch_broadcast(self):
        self._assert_ok(MatMul(), [_rand(self.rng, 1, 3, 4), _rand(self.rng, 2, 4, 2)])

    def test_transpose(self):
        self._assert_ok(Transpose(), [_rand(self.rng, 2, 3, 4)])


class TestActivationGradients(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(2)

    def _assert_ok(self, func, inputs):
        for e in gradient_errors(func, inputs):
            self.assertLessEqual(e, ATOL)

    def test_relu_away_from_kink(self):
        x = _rand(self.rng, 4, 5)
        x = np.where(np.abs(x) < 0.1, 0.5, x)
        self._assert_ok(Relu(), [x])

    def test_sigmoid(self):
        self._assert_ok(Sigmoid(), [_rand(self.rng, 3, 4) * 3.0])

    def test_sigmoid_is_stable_for_large_inputs(self):
        out = Sigmoid().run([np.array([-1000.0, 0.0, 1000.0])], False)
        self.assertTrue(np.all(np.isfinite(out)))
        np.testing.assert_allclose(out, [0.0, 0.5, 1.0], atol=1e-12)

    def test_gelu(self):
        self._assert_ok(Gelu(), [_rand(self.rng, 3, 4) * 2.0])

    def test_softmax(self):
        self._assert_ok(Softmax(), [_rand(self.rng, 2, 3, 5)])

    def test_softmax_after_mask(self):
        mask = np.triu(np.ones((4, 4), dtype=bool), k=1)
        x = Mask(mask, -np.inf).run([_rand(self.rng, 4, 4)], False)
        y = Softmax().run([x], False)
        np.testing.assert_allclose(y.sum(axis=-1), np.ones(4))
        np.testing.assert_array_equal(y[mask], 0.0)

    def test_dropout_inference_is_identity(self):
        self._assert_ok(Dropout(0.3, seed=0), [_rand(self.rng, 3, 3)])


if __name__ == "__main__":
    unittest.main()
