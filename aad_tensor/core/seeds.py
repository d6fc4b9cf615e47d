# aad_tensor/core/seeds.py

#-----------------------------------------------------------------------------
# We "plant" a seed (d root / d root = 1) at the root and let gradients grow
# backwards through the graph.
#-----------------------------------------------------------------------------
from __future__ import annotations
from typing import Any

import numpy as np

from .engine import backward, forward, seed_grad, zero_grad
from .node import Node


def value(x: Any) -> Any:
    """Copy of a node's current value; plain numbers pass through unchanged."""
    return np.array(x.value) if isinstance(x, Node) else x


def grad(x: Node) -> np.ndarray:
    """Copy of a node's current gradient."""
    return np.array(x.grad)


def evaluate(root: Node, reset: bool = True) -> np.ndarray:
    """
    Run one full cycle on `root`: zero_grad (if `reset`) → forward → seed → backward.

    Returns a copy of the root value. Leaf gradients are read afterwards with
    `grad(leaf)`. With reset=False, gradients from earlier cycles are kept and
    this cycle's contributions are added on top.
    """
    if reset:
        zero_grad(root)
    forward(root, stacklevel=2)
    seed_grad(root)
    backward(root, stacklevel=2)
    return value(root)
