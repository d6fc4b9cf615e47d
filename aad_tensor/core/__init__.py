# aad_tensor/core/__init__.py

"""
Core public API for the aad_tensor package.

Exports:
    Buffer        : Value/gradient storage owned by one node.
    Node, Leaf    : Graph elements; Leaf wraps a persistent input Buffer.
    OpKind        : The closed set of node variants.
    EngineConfig  : Evaluation settings (traversal, MatMul accumulation, dtype).
    forward, backward, zero_grad, seed_grad : The traversal protocol.
    evaluate      : Convenience: one full zero → forward → seed → backward cycle.
    grad, value   : Convenience: copies of a node's gradient / value.
"""

from .buffer import Buffer
from .config import DEFAULT_CONFIG, EngineConfig
from .engine import backward, forward, seed_grad, zero_grad
from .errors import (
    DimensionalityMismatchError,
    GraphError,
    PathExplosionWarning,
    ShapeMismatchError,
)
from .node import Leaf, Node, OpKind
from .seeds import evaluate, grad, value

__all__ = [
    "Buffer",
    "Node", "Leaf", "OpKind",
    "EngineConfig", "DEFAULT_CONFIG",
    "forward", "backward", "zero_grad", "seed_grad",
    "evaluate", "grad", "value",
    "GraphError", "ShapeMismatchError", "DimensionalityMismatchError",
    "PathExplosionWarning",
]
