# aad_tensor/core/config.py
"""
Engine configuration.

A frozen dataclass handed to nodes at construction time. Operation nodes
inherit the configuration of their first child unless one is given explicitly,
so a graph built from a single set of leaves shares one configuration.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np

TRAVERSALS = ("paths", "topological")
FLOAT_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))


def float_dtype(dtype) -> np.dtype:
    """Normalise `dtype` and check it is one the matrix kernels support."""
    dtype = np.dtype(dtype)
    if dtype not in FLOAT_DTYPES:
        raise TypeError(f"dtype must be float32 or float64, got {dtype}")
    return dtype


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for graph evaluation."""
    # Buffers
    dtype: Any = np.float64  # default dtype for new buffers (float32 or float64)

    # MatMul forward adds into its existing output (True) or overwrites it (False)
    matmul_accumulate: bool = True

    # Traversal
    traversal: str = "paths"  # 'paths' (one visit per root-to-leaf path), 'topological'
    path_warning_threshold: int = 100_000  # warn before a 'paths' backward above this

    def __post_init__(self):
        # normalise so that equal configs compare equal
        object.__setattr__(self, "dtype", float_dtype(self.dtype))

        if self.traversal not in TRAVERSALS:
            raise ValueError(
                f"Unknown traversal {self.traversal!r}, expected one of {TRAVERSALS}"
            )
        if self.path_warning_threshold < 0:
            raise ValueError(
                f"path_warning_threshold must be non-negative, got {self.path_warning_threshold}"
            )


DEFAULT_CONFIG = EngineConfig()
