# aad_tensor/ops/arithmetic.py
from typing import Optional, Tuple

import numpy as np

from ..core.buffer import Buffer
from ..core.config import EngineConfig
from ..core.errors import ShapeMismatchError
from ..core.node import Node, OpKind, inherit_config


def _elementwise(x: Node, y: Node, op_tag: OpKind, name: Optional[str],
                 config: Optional[EngineConfig]) -> Node:
    """
    Generic elementwise binary node:
      - checks x.shape == y.shape (no broadcasting)
      - allocates the output buffer with the operands' shape
    """
    if x.shape != y.shape:
        raise ShapeMismatchError(
            f"{op_tag.value}: operand shapes differ, {x.shape} vs {y.shape}",
            expected=x.shape, actual=y.shape,
        )
    out = Buffer(x.shape, dtype=np.result_type(x.out.dtype, y.out.dtype))
    return Node(op_tag=op_tag, out=out, children=(x, y),
                config=inherit_config(config, x, y), name=name)


def add(x: Node, y: Node, name: Optional[str] = None,
        config: Optional[EngineConfig] = None) -> Node:
    """z = x + y (elementwise)."""
    return _elementwise(x, y, OpKind.ADD, name, config)


def product(x: Node, y: Node, name: Optional[str] = None,
            config: Optional[EngineConfig] = None) -> Node:
    """z = x ⊙ y (elementwise / Hadamard)."""
    return _elementwise(x, y, OpKind.PRODUCT, name, config)


# ------------------------------------------------------------- forward rules
# Children are already forwarded when these run; each overwrites z.value.

def add_forward(node: Node) -> None:
    x, y = node.children
    node.out.assign_value(np.add(x.value, y.value))


def product_forward(node: Node) -> None:
    x, y = node.children
    node.out.assign_value(np.multiply(x.value, y.value))


# ------------------------------------------------------------ backward rules
# Given upstream dz (same shape as z), return the contributions (dx, dy).

def add_local_grads(node: Node, dz: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # ∂z/∂x = ∂z/∂y = 1
    return dz, dz


def product_local_grads(node: Node, dz: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # ∂z/∂x = y, ∂z/∂y = x; both values are read before any gradient is written
    x, y = node.children
    x_val = x.value
    y_val = y.value
    return np.multiply(dz, y_val), np.multiply(dz, x_val)
