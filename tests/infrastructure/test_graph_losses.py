import unittest

import numpy as np

from keygrad.domain._errors import ScalarIndexError, ShapeMismatchError, TensorError
from keygrad.infrastructure.funcs import Softmax
from keygrad.infrastructure.losses._losses import CrossEntropyLoss, IdentityLoss, MSELoss


def _finite_diff_grad(loss, x, eps=1e-6):
    """Gradient of sum(loss.run(x)[0]) by central differences."""
    x = np.array(x, dtype=np.float64, copy=True)
    out = np.zeros_like(x)
    for idx in np.ndindex(x.shape):
        orig = x[idx]
        x[idx] = orig + eps
        plus = float(np.sum(loss.run(x)[0]))
        x[idx] = orig - eps
        minus = float(np.sum(loss.run(x)[0]))
        x[idx] = orig
        out[idx] = (plus - minus) / (2.0 * eps)
    return out


class TestIdentityLoss(unittest.TestCase):
    def test_returns_output_and_ones(self):
        x = np.array([[1.0, -2.0]])
        loss, grad = IdentityLoss().run(x)
        np.testing.assert_array_equal(loss, x)
        np.testing.assert_array_equal(grad, np.ones_like(x))
        self.assertIsNot(loss, x)


class TestMSELoss(unittest.TestCase):
    def test_values(self):
        loss, grad = MSELoss([1.0, 1.0]).run(np.array([3.0, 0.0]))
        np.testing.assert_allclose(loss, [4.0, 1.0])
        np.testing.assert_allclose(grad, [4.0, -2.0])

    def test_gradient_matches_finite_differences(self):
        rng = np.random.default_rng(0)
        target = rng.standard_normal((3, 2))
        x = rng.standard_normal((3, 2))
        loss = MSELoss(target)
        _, grad = loss.run(x)
        np.testing.assert_allclose(grad, _finite_diff_grad(loss, x), atol=1e-5)

    def test_shape_mismatch(self):
        with self.assertRaises(ShapeMismatchError):
            MSELoss(np.zeros(3)).run(np.zeros(4))

    def test_set_target_replaces_target(self):
        loss = MSELoss([0.0])
        loss.set_target([2.0])
        value, _ = loss.run(np.array([2.0]))
        np.testing.assert_array_equal(value, [0.0])


class TestCrossEntropyLoss(unittest.TestCase):
    def test_uniform_logits(self):
        loss, grad = CrossEntropyLoss([2]).run(np.zeros((1, 4)))
        np.testing.assert_allclose(loss, [np.log(4.0)])
        np.testing.assert_allclose(grad, [[0.25, 0.25, -0.75, 0.25]])

    def test_gradient_is_softmax_minus_one_hot(self):
        logits = np.random.default_rng(1).standard_normal((2, 3, 5))
        targets = np.array([[0, 4, 2], [1, 1, 3]])
        _, grad = CrossEntropyLoss(targets).run(logits)
        expected = Softmax().run([logits], False)
        for idx in np.ndindex(targets.shape):
            expected[idx + (targets[idx],)] -= 1.0
        np.testing.assert_allclose(grad, expected, atol=1e-12)

    def test_gradient_matches_finite_differences(self):
        logits = np.random.default_rng(2).standard_normal((4, 3))
        loss = CrossEntropyLoss([0, 2, 1, 1])
        _, grad = loss.run(logits)
        np.testing.assert_allclose(grad, _finite_diff_grad(loss, logits), atol=1e-5)

    def test_stable_for_large_logits(self):
        loss, grad = CrossEntropyLoss([0]).run(np.array([[1000.0, 0.0]]))
        self.assertTrue(np.all(np.isfinite(loss)))
        self.assertTrue(np.all(np.isfinite(grad)))
        self.assertAlmostEqual(float(loss[0]), 0.0, places=6)

    def test_target_out_of_range(self):
        with self.assertRaises(ScalarIndexError) as cm:
            CrossEntropyLoss([0, 3]).run(np.zeros((2, 3)))
        self.assertEqual(cm.exception.index, 3)
        self.assertEqual(cm.exception.length, 3)

    def test_row_count_mismatch(self):
        with self.assertRaises(ShapeMismatchError):
            CrossEntropyLoss([0, 1, 2]).run(np.zeros((2, 3)))

    def test_float_targets_rejected(self):
        with self.assertRaises(TensorError):
            CrossEntropyLoss([0.5, 1.0])


if __name__ == "__main__":
    unittest.main()
