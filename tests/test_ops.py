"""Tests for the Add, Product and MatMul nodes."""

import numpy as np
import pytest

from aad_tensor import (
    DimensionalityMismatchError,
    EngineConfig,
    Leaf,
    ShapeMismatchError,
    add,
    matmul,
    product,
)
from aad_tensor.ops import as_matrix


def _cycle(root):
    root.zero_grad()
    root.forward()
    root.seed_grad()
    root.backward()


class TestAdd:
    def test_values_and_grads(self):
        x = Leaf.from_array(np.full(10, 10.0))
        y = Leaf.from_array(np.full(10, 5.0))
        z = add(x, y)
        _cycle(z)
        np.testing.assert_array_equal(z.value, np.full(10, 15.0))
        np.testing.assert_array_equal(x.grad, np.ones(10))
        np.testing.assert_array_equal(y.grad, np.ones(10))

    def test_any_shape(self):
        x = Leaf.from_array(np.full((2, 3, 4), 10.0))
        y = Leaf.from_array(np.full((2, 3, 4), 5.0))
        z = add(x, y)
        _cycle(z)
        assert z.shape == (2, 3, 4)
        np.testing.assert_array_equal(z.value, np.full((2, 3, 4), 15.0))
        np.testing.assert_array_equal(y.grad, np.ones((2, 3, 4)))

    def test_shape_mismatch(self):
        x = Leaf.zeros((3,))
        y = Leaf.zeros((4,))
        with pytest.raises(ShapeMismatchError) as info:
            add(x, y)
        assert info.value.expected == (3,)
        assert info.value.actual == (4,)

    def test_no_broadcasting(self):
        x = Leaf.zeros((3,))
        y = Leaf.zeros(())
        with pytest.raises(ShapeMismatchError):
            add(x, y)

    def test_overwrites_value(self):
        x = Leaf.from_array([1.0, 2.0])
        y = Leaf.from_array([3.0, 4.0])
        z = add(x, y)
        z.forward()
        z.forward()
        np.testing.assert_array_equal(z.value, [4.0, 6.0])


class TestProduct:
    def test_values_and_grads(self):
        x = Leaf.from_array(np.full(10, 2.0))
        y = Leaf.from_array(np.full(10, 5.0))
        z = product(x, y)
        _cycle(z)
        np.testing.assert_array_equal(z.value, np.full(10, 10.0))
        np.testing.assert_array_equal(x.grad, np.full(10, 5.0))
        np.testing.assert_array_equal(y.grad, np.full(10, 2.0))

    def test_non_uniform(self):
        x = Leaf.from_array([1.0, 2.0, 3.0])
        y = Leaf.from_array([4.0, 5.0, 6.0])
        z = product(x, y)
        _cycle(z)
        np.testing.assert_array_equal(z.value, [4.0, 10.0, 18.0])
        np.testing.assert_array_equal(x.grad, [4.0, 5.0, 6.0])
        np.testing.assert_array_equal(y.grad, [1.0, 2.0, 3.0])

    def test_square_same_child(self):
        x = Leaf.from_array([3.0, -1.0])
        z = product(x, x)
        _cycle(z)
        np.testing.assert_array_equal(z.value, [9.0, 1.0])
        # d(x^2)/dx = 2x, one contribution per edge
        np.testing.assert_array_equal(x.grad, [6.0, -2.0])

    def test_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            product(Leaf.zeros((2, 2)), Leaf.zeros((2, 3)))


class TestMatMul:
    def setup_method(self):
        self.x = Leaf.from_array([[1.0, 2.0, 3.0]])
        self.y = Leaf.from_array(np.tile([1.0, 2.0, 3.0, 4.0, 5.0], (3, 1)))

    def test_forward(self):
        z = matmul(self.x, self.y, (1, 5))
        z.forward()
        np.testing.assert_allclose(z.value, [[6.0, 12.0, 18.0, 24.0, 30.0]])

    def test_backward(self):
        z = matmul(self.x, self.y, (1, 5))
        _cycle(z)
        dz = np.ones((1, 5))
        np.testing.assert_allclose(self.x.grad, dz @ np.asarray(self.y.value).T)
        np.testing.assert_allclose(self.y.grad, np.asarray(self.x.value).T @ dz)
        np.testing.assert_allclose(self.x.grad, [[15.0, 15.0, 15.0]])
        np.testing.assert_allclose(self.y.grad, np.repeat([[1.0], [2.0], [3.0]], 5, axis=1))

    def test_general_shapes(self):
        rng = np.random.default_rng(0)
        a = rng.standard_normal((4, 3))
        b = rng.standard_normal((3, 2))
        x = Leaf.from_array(a)
        y = Leaf.from_array(b)
        z = matmul(x, y, [4, 2])
        _cycle(z)
        np.testing.assert_allclose(z.value, a @ b)
        np.testing.assert_allclose(x.grad, np.ones((4, 2)) @ b.T)
        np.testing.assert_allclose(y.grad, a.T @ np.ones((4, 2)))

    def test_forward_accumulates(self):
        z = matmul(self.x, self.y, (1, 5))
        z.forward()
        z.forward()
        np.testing.assert_allclose(z.value, [[12.0, 24.0, 36.0, 48.0, 60.0]])

    def test_reset_value_between_passes(self):
        z = matmul(self.x, self.y, (1, 5))
        z.forward()
        z.reset_value()
        z.forward()
        np.testing.assert_allclose(z.value, [[6.0, 12.0, 18.0, 24.0, 30.0]])

    def test_overwrite_mode(self):
        z = matmul(self.x, self.y, (1, 5), config=EngineConfig(matmul_accumulate=False))
        z.forward()
        z.forward()
        np.testing.assert_allclose(z.value, [[6.0, 12.0, 18.0, 24.0, 30.0]])

    def test_float32(self):
        cfg = EngineConfig(dtype=np.float32)
        x = Leaf.from_array(np.array([[1.0, 2.0]], dtype=np.float32), config=cfg)
        y = Leaf.from_array(np.array([[3.0], [4.0]], dtype=np.float32), config=cfg)
        z = matmul(x, y, (1, 1))
        _cycle(z)
        assert z.value.dtype == np.float32
        np.testing.assert_allclose(z.value, [[11.0]])
        np.testing.assert_allclose(x.grad, [[3.0, 4.0]])

    def test_empty_inner_dimension(self):
        x = Leaf.zeros((2, 0))
        y = Leaf.zeros((0, 3))
        z = matmul(x, y, (2, 3))
        _cycle(z)
        np.testing.assert_array_equal(z.value, np.zeros((2, 3)))
        assert x.grad.shape == (2, 0)

    def test_requires_2d(self):
        with pytest.raises(DimensionalityMismatchError) as info:
            matmul(Leaf.zeros((3,)), self.y, (1, 5))
        assert info.value.expected_ndim == 2
        assert info.value.actual_ndim == 1

    def test_inner_dimension_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            matmul(self.x, Leaf.zeros((4, 5)), (1, 5))

    def test_output_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError) as info:
            matmul(self.x, self.y, (5, 1))
        assert info.value.expected == (1, 5)

    def test_output_shape_wrong_rank(self):
        # a declared output of the wrong rank is a shape mismatch, not an operand error
        with pytest.raises(ShapeMismatchError) as info:
            matmul(self.x, self.y, (5,))
        assert not isinstance(info.value, DimensionalityMismatchError)
        assert info.value.expected == (1, 5)
        assert info.value.actual == (5,)

    def test_as_matrix(self):
        assert as_matrix(np.zeros((2, 3))).shape == (2, 3)
        with pytest.raises(DimensionalityMismatchError):
            as_matrix(np.zeros((2, 3, 4)))
