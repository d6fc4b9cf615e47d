# aad_tensor/core/node.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from .buffer import Buffer
from .config import DEFAULT_CONFIG, EngineConfig
from .errors import GraphError


class OpKind(Enum):
    """The closed set of node variants. The engine dispatches on these tags."""
    LEAF = "leaf"
    ADD = "add"
    PRODUCT = "product"
    MATMUL = "matmul"


ARITY = {
    OpKind.LEAF: 0,
    OpKind.ADD: 2,
    OpKind.PRODUCT: 2,
    OpKind.MATMUL: 2,
}


@dataclass(eq=False, repr=False)
class Node:
    """
    One element of the computation graph.

    Attributes
    ----------
    op_tag   : OpKind
        Which variant this node is.
    out      : Buffer
        The output buffer. Owned by this node, except for a Leaf, which wraps a
        buffer supplied by the caller.
    children : tuple of Node
        Operand nodes, in order (x, y). Referenced, never owned; empty for a Leaf.
    config   : EngineConfig
        Evaluation settings (traversal strategy, MatMul accumulation, ...).
    name     : str, optional
        Debug/pretty-print name.

    Nodes hash and compare by identity; the same node may appear as a child of
    several parents, or twice as a child of one parent (e.g. x * x).
    """
    op_tag: OpKind
    out: Buffer
    children: Tuple["Node", ...] = ()
    config: EngineConfig = field(default=DEFAULT_CONFIG)
    name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.op_tag, OpKind):
            raise GraphError(f"Unknown op_tag {self.op_tag!r}")
        self.children = tuple(self.children)
        if len(self.children) != ARITY[self.op_tag]:
            raise GraphError(
                f"{self.op_tag.value} node takes {ARITY[self.op_tag]} children, "
                f"got {len(self.children)}"
            )
        for child in self.children:
            if not isinstance(child, Node):
                raise TypeError(f"Children must be Node instances, got {type(child)}")

    # --------------------------------------------------------------- read side
    @property
    def shape(self) -> Tuple[int, ...]:
        return self.out.shape

    @property
    def value(self) -> np.ndarray:
        """Read-only view of the current output value."""
        return self.out.value

    @property
    def grad(self) -> np.ndarray:
        """Read-only view of the current output gradient."""
        return self.out.grad

    @property
    def is_leaf(self) -> bool:
        return self.op_tag is OpKind.LEAF

    # ---------------------------------------------------------------- protocol
    def forward(self) -> None:
        from .engine import forward
        forward(self, stacklevel=2)

    def backward(self) -> None:
        from .engine import backward
        backward(self, stacklevel=2)

    def zero_grad(self) -> None:
        from .engine import zero_grad
        zero_grad(self)

    def seed_grad(self) -> None:
        self.out.seed_grad()

    def reset_grad(self) -> None:
        """Zero this node's own gradient only (children untouched)."""
        self.out.reset_grad()

    def reset_value(self) -> None:
        """Zero this node's own value, e.g. to clear an accumulating MatMul output."""
        self.out.reset_value()

    def __repr__(self):
        label = f", name={self.name!r}" if self.name is not None else ""
        return f"Node({self.op_tag.value}, shape={self.shape}{label})"


class Leaf(Node):
    """
    Graph input or parameter: a Node with no children wrapping a persistent Buffer.

    forward/backward are no-ops on a leaf; its gradient is where backward
    contributions end up.
    """

    def __init__(self, buffer: Buffer, name: Optional[str] = None,
                 config: Optional[EngineConfig] = None):
        if not isinstance(buffer, Buffer):
            raise TypeError(f"Leaf wraps a Buffer, got {type(buffer)}")
        super().__init__(op_tag=OpKind.LEAF, out=buffer, children=(),
                         config=config or DEFAULT_CONFIG, name=name)

    @classmethod
    def from_array(cls, array: Any, name: Optional[str] = None,
                   config: Optional[EngineConfig] = None,
                   dtype: Optional[Any] = None) -> "Leaf":
        """
        Leaf holding a copy of `array`.

        dtype precedence: explicit `dtype`, then `config.dtype`, then the
        array's own float dtype (float64 for anything else).
        """
        if dtype is None and config is not None:
            dtype = config.dtype
        return cls(Buffer.from_array(array, dtype=dtype), name=name, config=config)

    @classmethod
    def zeros(cls, shape: Sequence[int], name: Optional[str] = None,
              config: Optional[EngineConfig] = None) -> "Leaf":
        cfg = config or DEFAULT_CONFIG
        return cls(Buffer(shape, dtype=cfg.dtype), name=name, config=config)

    def set_value(self, array: Any) -> None:
        """Overwrite the leaf's value in place; the shape must match exactly."""
        self.out.assign_value(array)

    def __repr__(self):
        label = f", name={self.name!r}" if self.name is not None else ""
        return f"Leaf(shape={self.shape}{label})"


def inherit_config(config: Optional[EngineConfig], *children: Node) -> EngineConfig:
    """Explicit config wins; otherwise take the first child's."""
    if config is not None:
        return config
    return children[0].config if children else DEFAULT_CONFIG
