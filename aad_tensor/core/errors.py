# aad_tensor/core/errors.py
"""
Typed failures raised by the engine.

Every error here is a structural (programmer) error: a graph that raises one
will raise it again on every evaluation, so nothing is retried.
"""

from typing import Optional, Sequence


class GraphError(Exception):
    """Base class for all engine failures."""


class ShapeMismatchError(GraphError, ValueError):
    """
    Operand shapes disagree.

    Raised when elementwise operands differ, MatMul inner dimensions differ,
    a declared output shape differs from the computed one, or a buffer write
    receives an array of the wrong shape.
    """

    def __init__(self, message: str, *, expected: Optional[Sequence[int]] = None,
                 actual: Optional[Sequence[int]] = None):
        super().__init__(message)
        self.expected = tuple(expected) if expected is not None else None
        self.actual = tuple(actual) if actual is not None else None


class DimensionalityMismatchError(GraphError, ValueError):
    """An array of the wrong rank was used where a fixed rank is required."""

    def __init__(self, message: str, *, expected_ndim: int, actual_ndim: int):
        super().__init__(message)
        self.expected_ndim = expected_ndim
        self.actual_ndim = actual_ndim


class PathExplosionWarning(UserWarning):
    """A path-multiplicity traversal is about to visit a very large number of paths."""
