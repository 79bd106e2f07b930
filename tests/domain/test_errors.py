import unittest

from keygrad.domain._errors import (
    BroadcastError,
    GradientArityError,
    GraphError,
    RawBufferLengthError,
    ScalarIndexError,
    ShapeMismatchError,
    TensorError,
    TensorNotFoundError,
)


class TestErrorHierarchy(unittest.TestCase):
    def test_tensor_errors_are_graph_errors(self):
        for cls in (ShapeMismatchError, BroadcastError, ScalarIndexError, RawBufferLengthError):
            self.assertTrue(issubclass(cls, TensorError))
            self.assertTrue(issubclass(cls, GraphError))

    def test_not_found_and_arity_are_graph_errors_but_not_tensor_errors(self):
        for cls in (TensorNotFoundError, GradientArityError):
            self.assertTrue(issubclass(cls, GraphError))
            self.assertFalse(issubclass(cls, TensorError))

    def test_graph_error_is_runtime_error(self):
        self.assertTrue(issubclass(GraphError, RuntimeError))


class TestErrorAttributes(unittest.TestCase):
    def test_shape_mismatch_keeps_shapes(self):
        e = ShapeMismatchError((2, 3), [3, 2])
        self.assertEqual(e.expected, (2, 3))
        self.assertEqual(e.actual, (3, 2))
        self.assertIn("(2, 3)", str(e))

    def test_broadcast_error_keeps_all_shapes(self):
        e = BroadcastError((2, 3), (4,))
        self.assertEqual(e.shapes, ((2, 3), (4,)))

    def test_scalar_index_error(self):
        e = ScalarIndexError(7, 5)
        self.assertEqual((e.index, e.length), (7, 5))

    def test_raw_buffer_length_error(self):
        e = RawBufferLengthError((2, 2), 3)
        self.assertEqual(e.shape, (2, 2))
        self.assertEqual(e.length, 3)

    def test_not_found_reports_id_and_size(self):
        e = TensorNotFoundError(10, 4)
        self.assertEqual(e.tensor_id, 10)
        self.assertEqual(e.size, 4)
        self.assertIn("10", str(e))

    def test_gradient_arity_error(self):
        e = GradientArityError("Add", 2, 1)
        self.assertEqual((e.func, e.expected, e.actual), ("Add", 2, 1))


if __name__ == "__main__":
    unittest.main()
