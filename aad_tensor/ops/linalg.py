# aad_tensor/ops/linalg.py
"""
Matrix multiply node.

The products go through the BLAS gemm routine matching the operands' dtype
(scipy.linalg.get_blas_funcs), which computes

    C <- alpha * op(A) @ op(B) + beta * C

so the forward accumulation (beta = 1) and the transposed backward products
(trans_a / trans_b) need no temporaries for the transposes.
"""

from typing import Optional, Sequence, Tuple

import numpy as np
from scipy.linalg import get_blas_funcs

from ..core.buffer import Buffer
from ..core.config import EngineConfig
from ..core.errors import DimensionalityMismatchError, ShapeMismatchError
from ..core.node import Node, OpKind, inherit_config


def as_matrix(arr: np.ndarray, what: str = "operand") -> np.ndarray:
    """View `arr` as a 2-D matrix; any other rank is a DimensionalityMismatchError."""
    arr = np.asarray(arr)
    if arr.ndim != 2:
        raise DimensionalityMismatchError(
            f"matmul {what} must be 2-D, got shape {arr.shape}",
            expected_ndim=2, actual_ndim=arr.ndim,
        )
    return arr


def _check_shapes(x_shape, y_shape, output_shape) -> None:
    # operand rank is a dimensionality error; a wrong declared output (of any
    # rank) is a shape mismatch against the computed (m, n), checked below
    for what, shape in (("x", x_shape), ("y", y_shape)):
        if len(shape) != 2:
            raise DimensionalityMismatchError(
                f"matmul {what} must be 2-D, got shape {shape}",
                expected_ndim=2, actual_ndim=len(shape),
            )
    (m, k), (k2, n) = x_shape, y_shape
    if k != k2:
        raise ShapeMismatchError(
            f"matmul inner dimensions differ: {x_shape} @ {y_shape}",
            expected=(k, n), actual=y_shape,
        )
    if tuple(output_shape) != (m, n):
        raise ShapeMismatchError(
            f"matmul output_shape {tuple(output_shape)} does not match computed shape {(m, n)}",
            expected=(m, n), actual=output_shape,
        )


def matmul(x: Node, y: Node, output_shape: Sequence[int], name: Optional[str] = None,
           config: Optional[EngineConfig] = None) -> Node:
    """
    z = x @ y for x [m, k], y [k, n].

    `output_shape` must be given and equal (m, n); it is checked, not inferred.
    """
    output_shape = tuple(int(s) for s in output_shape)
    _check_shapes(x.shape, y.shape, output_shape)
    out = Buffer(output_shape, dtype=np.result_type(x.out.dtype, y.out.dtype))
    return Node(op_tag=OpKind.MATMUL, out=out, children=(x, y),
                config=inherit_config(config, x, y), name=name)


def _gemm(a: np.ndarray, b: np.ndarray, *, c: Optional[np.ndarray] = None,
          trans_a: bool = False, trans_b: bool = False) -> np.ndarray:
    """op(a) @ op(b) (+ c when given)."""
    if a.size == 0 or b.size == 0:
        # BLAS is not guaranteed to accept zero-sized operands
        prod = np.matmul(a.T if trans_a else a, b.T if trans_b else b)
        return prod if c is None else c + prod
    gemm, = get_blas_funcs(("gemm",), (a, b) if c is None else (a, b, c))
    if c is None:
        return gemm(1.0, a, b, trans_a=int(trans_a), trans_b=int(trans_b))
    return gemm(1.0, a, b, beta=1.0, c=c, trans_a=int(trans_a), trans_b=int(trans_b))


def matmul_forward(node: Node) -> None:
    x, y = node.children
    a = as_matrix(x.value, "x")
    b = as_matrix(y.value, "y")
    if node.config.matmul_accumulate:
        # z.value += x @ y; callers clear z (reset_value) between unrelated passes
        result = _gemm(a, b, c=np.array(as_matrix(node.value, "output"), order="F"))
    else:
        result = _gemm(a, b)
    if result.shape != node.shape:
        raise ShapeMismatchError(
            f"matmul result shape {result.shape} does not match output shape {node.shape}",
            expected=node.shape, actual=result.shape,
        )
    node.out.assign_value(result)


def matmul_local_grads(node: Node, dz: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # dx = dz @ y^T, dy = x^T @ dz
    x, y = node.children
    a = as_matrix(x.value, "x")
    b = as_matrix(y.value, "y")
    g = as_matrix(dz, "gradient")
    return _gemm(g, b, trans_b=True), _gemm(a, g, trans_a=True)
