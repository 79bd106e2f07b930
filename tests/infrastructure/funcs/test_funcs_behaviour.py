import copy
import unittest

import numpy as np

from keygrad.domain._errors import (
    BroadcastError,
    ShapeMismatchError,
    TensorError,
)
from keygrad.infrastructure.funcs import (
    Add,
    Coeff,
    Dropout,
    Mask,
    MatMul,
    Relu,
    Softmax,
    Transpose,
)


class TestArithmeticValidation(unittest.TestCase):
    def test_add_wrong_arity(self):
        with self.assertRaises(TensorError):
            Add().run([np.ones(2)], False)

    def test_add_incompatible_shapes(self):
        with self.assertRaises(BroadcastError):
            Add().run([np.ones((2, 3)), np.ones((3, 2))], False)

    def test_coeff_config_and_repr(self):
        c = Coeff(2)
        self.assertEqual(c.get_config(), {"coeff": 2.0})
        self.assertEqual(repr(c), "Coeff(coeff=2.0)")

    def test_coeff_wrong_arity(self):
        with self.assertRaises(TensorError):
            Coeff(1.0).run([np.ones(1), np.ones(1)], False)


class TestMatMulValidation(unittest.TestCase):
    def test_inner_dimension_mismatch(self):
        with self.assertRaises(ShapeMismatchError) as cm:
            MatMul().run([np.ones((2, 3)), np.ones((4, 2))], False)
        self.assertEqual(cm.exception.expected, (3,))
        self.assertEqual(cm.exception.actual, (4,))

    def test_rejects_vectors(self):
        with self.assertRaises(TensorError):
            MatMul().run([np.ones(3), np.ones((3, 2))], False)

    def test_incompatible_batch_dims(self):
        with self.assertRaises(BroadcastError):
            MatMul().run([np.ones((2, 3, 4)), np.ones((3, 4, 5))], False)

    def test_batched_product(self):
        a = np.arange(24.0).reshape(2, 3, 4)
        b = np.arange(8.0).reshape(4, 2)
        np.testing.assert_allclose(MatMul().run([a, b], False), a @ b)

    def test_transpose_needs_matrix(self):
        with self.assertRaises(TensorError):
            Transpose().run([np.ones(3)], False)


class TestMask(unittest.TestCase):
    def setUp(self):
        self.mask = np.array([[False, True], [False, False]])

    def test_fills_masked_positions_in_every_slice(self):
        x = np.arange(8.0).reshape(2, 2, 2)
        out = Mask(self.mask, -1.0).run([x], False)
        np.testing.assert_array_equal(out[:, 0, 1], [-1.0, -1.0])
        np.testing.assert_array_equal(out[:, 1, :], x[:, 1, :])

    def test_gradient_blocked_at_masked_positions(self):
        g = np.ones((2, 2))
        (dx,) = Mask(self.mask, 0.0).grad([np.zeros((2, 2))], g)
        np.testing.assert_array_equal(dx, [[1.0, 0.0], [1.0, 1.0]])

    def test_rejects_wrong_trailing_shape(self):
        with self.assertRaises(ShapeMismatchError):
            Mask(self.mask, 0.0).run([np.ones((2, 3))], False)
        with self.assertRaises(ShapeMismatchError):
            Mask(self.mask, 0.0).run([np.ones(2)], False)

    def test_config_round_trips_through_constructor(self):
        m = Mask(self.mask, -np.inf)
        rebuilt = Mask(**m.get_config())
        np.testing.assert_array_equal(rebuilt.mask, self.mask)
        self.assertEqual(rebuilt.value, -np.inf)

    def test_mask_is_copied(self):
        src = self.mask.copy()
        m = Mask(src, 0.0)
        src[0, 0] = True
        self.assertFalse(m.mask[0, 0])


class TestActivations(unittest.TestCase):
    def test_relu_zero_has_zero_gradient(self):
        (dx,) = Relu().grad([np.array([-1.0, 0.0, 2.0])], np.ones(3))
        np.testing.assert_array_equal(dx, [0.0, 0.0, 1.0])

    def test_softmax_rows_sum_to_one(self):
        x = np.random.default_rng(0).standard_normal((3, 5)) * 10.0
        y = Softmax().run([x], False)
        np.testing.assert_allclose(y.sum(axis=-1), np.ones(3))

    def test_softmax_rejects_scalar(self):
        with self.assertRaises(TensorError):
            Softmax().run([np.array(1.0)], False)


class TestDropout(unittest.TestCase):
    def test_invalid_probability(self):
        for p in (-0.1, 1.0, 1.5):
            with self.assertRaises(ValueError):
                Dropout(p)

    def test_inference_is_identity_copy(self):
        x = np.arange(6.0)
        d = Dropout(0.5, seed=0)
        out = d.run([x], False)
        np.testing.assert_array_equal(out, x)
        self.assertIsNot(out, x)
        (dx,) = d.grad([x], np.ones(6))
        np.testing.assert_array_equal(dx, np.ones(6))

    def test_training_scales_survivors(self):
        x = np.ones((1000,))
        out = Dropout(0.25, seed=3).run([x], True)
        survivors = out[out != 0.0]
        np.testing.assert_allclose(survivors, 1.0 / 0.75)
        self.assertAlmostEqual(float(np.mean(out != 0.0)), 0.75, delta=0.06)

    def test_gradient_reuses_training_mask(self):
        d = Dropout(0.5, seed=7)
        x = np.ones((50,))
        out = d.run([x], True)
        (dx,) = d.grad([x], np.ones(50))
        np.testing.assert_array_equal(dx, out)

    def test_same_seed_same_mask(self):
        x = np.ones((20,))
        a = Dropout(0.5, seed=11).run([x], True)
        b = Dropout(0.5, seed=11).run([x], True)
        np.testing.assert_array_equal(a, b)

    def test_zero_probability_is_identity_in_training(self):
        x = np.arange(4.0)
        np.testing.assert_array_equal(Dropout(0.0).run([x], True), x)

    def test_config(self):
        self.assertEqual(Dropout(0.2, seed=5).get_config(), {"p": 0.2, "seed": 5})

    def test_clone_has_independent_generator(self):
        d = Dropout(0.5, seed=1)
        c = d.clone()
        x = np.ones((30,))
        np.testing.assert_array_equal(d.run([x], True), c.run([x], True))
        d.run([x], True)
        self.assertIsNone(copy.deepcopy(Dropout(0.5))._mask)


if __name__ == "__main__":
    unittest.main()
