# aad_tensor/core/engine.py
"""
Graph traversal protocol.

One evaluation cycle, driven entirely by the caller:

    root.zero_grad()   # optional; skipping it accumulates across passes
    root.forward()     # bottom-up recomputation of every reachable value
    root.seed_grad()   # d(root)/d(root) = 1
    root.backward()    # top-down chain rule into every reachable gradient

Two traversal strategies are available through `EngineConfig.traversal`:

'paths' (default)
    Depth-first, x before y, with no visited set. A node reached along N
    root-to-leaf paths is forwarded N times and receives N separate backward
    contributions, each propagated further along its own path. Cost is
    proportional to the number of paths, which grows combinatorially for
    stacked diamonds (see graph_utils.count_paths).

'topological'
    Each node visited once in (reverse) topological order; backward sums the
    pending contributions for a node before propagating them. Same gradients,
    linear cost, different floating-point summation order.

In both modes every gradient write is `Buffer.accumulate_grad`, so two
backward passes without zero_grad in between double every gradient.
"""

from __future__ import annotations
import logging
import warnings
from typing import Dict, Tuple

import numpy as np

from .errors import GraphError, PathExplosionWarning
from .graph_utils import count_paths, iter_nodes, topological_order
from .node import Node, OpKind

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ dispatch
def _forward_one(node: Node) -> None:
    """Recompute `node`'s own value from its children's current values."""
    from ..ops import arithmetic, linalg  # local import to avoid cycles

    tag = node.op_tag
    if tag is OpKind.LEAF:
        return
    if tag is OpKind.ADD:
        arithmetic.add_forward(node)
    elif tag is OpKind.PRODUCT:
        arithmetic.product_forward(node)
    elif tag is OpKind.MATMUL:
        linalg.matmul_forward(node)
    else:
        raise GraphError(f"No forward rule for {tag!r}")


def _local_grads(node: Node, dz: np.ndarray) -> Tuple[np.ndarray, ...]:
    """Contributions to each child's gradient given upstream `dz`."""
    from ..ops import arithmetic, linalg

    tag = node.op_tag
    if tag is OpKind.LEAF:
        return ()
    if tag is OpKind.ADD:
        return arithmetic.add_local_grads(node, dz)
    if tag is OpKind.PRODUCT:
        return arithmetic.product_local_grads(node, dz)
    if tag is OpKind.MATMUL:
        return linalg.matmul_local_grads(node, dz)
    raise GraphError(f"No backward rule for {tag!r}")


# ------------------------------------------------------------ path warning
def _check_paths(root: Node, phase: str, stacklevel: int) -> int:
    """
    Count root-to-leaf paths and warn when a 'paths' pass would exceed the
    configured threshold. `stacklevel` is relative to the caller of the public
    entry point (1 = whoever called forward/backward).
    """
    n_paths = count_paths(root)
    threshold = root.config.path_warning_threshold
    if n_paths > threshold:
        warnings.warn(
            f"{phase} pass will follow {n_paths:,} root-to-leaf paths "
            f"(threshold {threshold:,}); consider EngineConfig(traversal='topological')",
            PathExplosionWarning,
            # + this helper's frame + the entry point's frame
            stacklevel=stacklevel + 2,
        )
    return n_paths


# ------------------------------------------------------------------- forward
def forward(root: Node, *, stacklevel: int = 1) -> None:
    """
    Recompute every value reachable from `root`, children before parents.

    `stacklevel` only affects where a PathExplosionWarning is attributed;
    wrappers calling forward on a user's behalf pass 2.
    """
    if root.is_leaf:
        return
    if root.config.traversal == "topological":
        order = topological_order(root)
        for node in order:
            _forward_one(node)
        logger.debug("forward %r: %d node evaluations (topological)", root, len(order))
        return

    n_paths = _check_paths(root, "Forward", stacklevel)

    # paths: post-order DFS without a visited set; a shared subgraph is
    # recomputed once per path that reaches it
    visits = 0
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if node.is_leaf:
            continue
        if expanded:
            _forward_one(node)
            visits += 1
            continue
        stack.append((node, True))
        stack.extend((child, False) for child in reversed(node.children))
    logger.debug("forward %r: %d node evaluations over %d paths", root, visits, n_paths)


# ------------------------------------------------------------------ backward
def backward(root: Node, *, stacklevel: int = 1) -> None:
    """
    Propagate `root`'s current gradient into every reachable gradient.

    The root's own gradient is the starting adjoint and is left untouched;
    seed it (seed_grad) or set it beforehand. Contributions are *added* into
    child gradients. `stacklevel` as for forward.
    """
    if root.is_leaf:
        return
    dz = np.array(root.grad)
    if root.config.traversal == "topological":
        _backward_topological(root, dz)
    else:
        n_paths = _check_paths(root, "Backward", stacklevel)
        _backward_paths(root, dz, n_paths)


def _backward_paths(root: Node, dz: np.ndarray, n_paths: int) -> None:
    # Depth-first, x subtree before y subtree. Each stack entry carries the
    # contribution that arrived along one edge; it is the upstream for that
    # node's local rule, independent of what other paths add to the node.
    visits = 0
    stack = [(root, dz)]
    while stack:
        node, upstream = stack.pop()
        visits += 1
        deltas = _local_grads(node, upstream)
        for child, delta in zip(node.children, deltas):
            child.out.accumulate_grad(delta)
        for child, delta in reversed(list(zip(node.children, deltas))):
            if not child.is_leaf:
                stack.append((child, delta))
    logger.debug("backward %r: %d node visits over %d paths", root, visits, n_paths)


def _backward_topological(root: Node, dz: np.ndarray) -> None:
    pending: Dict[int, np.ndarray] = {id(root): dz}
    order = topological_order(root)
    for node in reversed(order):
        upstream = pending.pop(id(node), None)
        if upstream is None or node.is_leaf:
            continue
        for child, delta in zip(node.children, _local_grads(node, upstream)):
            child.out.accumulate_grad(delta)
            prev = pending.get(id(child))
            pending[id(child)] = delta if prev is None else prev + delta
    logger.debug("backward %r: %d nodes (topological)", root, len(order))


# --------------------------------------------------------------- zero / seed
def zero_grad(root: Node) -> None:
    """
    Zero the gradient of `root` and of every node reachable from it.

    Zeroing is idempotent, so each node is reset once regardless of traversal.
    """
    count = 0
    for node in iter_nodes(root):
        node.out.reset_grad()
        count += 1
    logger.debug("zero_grad %r: %d buffers", root, count)


def seed_grad(root: Node) -> None:
    root.out.seed_grad()
