# aad_tensor/__init__.py
# Reverse-mode automatic differentiation over numpy arrays

from .core.buffer import Buffer
from .core.config import DEFAULT_CONFIG, EngineConfig
from .core.engine import backward, forward, seed_grad, zero_grad
from .core.errors import (
    DimensionalityMismatchError,
    GraphError,
    PathExplosionWarning,
    ShapeMismatchError,
)
from .core.node import Leaf, Node, OpKind
from .core.seeds import evaluate, grad, value
from .ops import add, matmul, product

# Graph utilities
from .core import graph_utils

__version__ = "0.1.0"

__all__ = [
    # Core
    'Buffer',
    'Node',
    'Leaf',
    'OpKind',
    'EngineConfig',
    'DEFAULT_CONFIG',
    # Ops
    'add',
    'product',
    'matmul',
    # Engine
    'forward',
    'backward',
    'zero_grad',
    'seed_grad',
    'evaluate',
    'grad',
    'value',
    # Errors
    'GraphError',
    'ShapeMismatchError',
    'DimensionalityMismatchError',
    'PathExplosionWarning',
    # Utilities
    'graph_utils',
]
