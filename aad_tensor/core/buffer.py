# aad_tensor/core/buffer.py
from __future__ import annotations
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, float_dtype
from .errors import ShapeMismatchError


def _as_shape(shape: Any) -> Tuple[int, ...]:
    if isinstance(shape, (int, np.integer)):
        shape = (shape,)
    shape = tuple(int(s) for s in shape)
    if any(s < 0 for s in shape):
        raise ValueError(f"Axis sizes must be non-negative, got {shape}")
    return shape


def _read_only(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.flags.writeable = False
    return view


class Buffer:
    """
    Value/gradient storage for one graph node.

    Attributes
    ----------
    value : np.ndarray
        Read-only view of the forward (primal) value.
    grad : np.ndarray
        Read-only view of the gradient accumulator; same shape and dtype as value.
    shape : tuple of int
        Fixed at construction.

    Both arrays are allocated once and only ever mutated in place, through the
    `assign_value` / `accumulate_value` / `accumulate_grad` / `reset_*` /
    `seed_grad` entry points. The views handed out are not writable, so every
    write to a buffer goes through its owner.
    """

    __slots__ = ("_shape", "_value", "_grad")

    def __init__(self, shape: Sequence[int], dtype: Optional[Any] = None):
        self._shape = _as_shape(shape)
        dtype = float_dtype(DEFAULT_CONFIG.dtype if dtype is None else dtype)
        self._value = np.zeros(self._shape, dtype=dtype)
        self._grad = np.zeros(self._shape, dtype=dtype)

    @classmethod
    def from_array(cls, array: Any, dtype: Optional[Any] = None) -> "Buffer":
        """Buffer whose value is a copy of `array` (lists, scalars and ndarrays accepted)."""
        if not isinstance(array, (int, float, list, tuple, np.ndarray, np.number)):
            raise TypeError(
                f"Buffer only accepts numeric types (int, float, list, tuple, ndarray), "
                f"but got {type(array)}"
            )
        arr = np.asarray(array)
        # complex or object input would be cast to a real buffer lossily
        if arr.dtype.kind not in "biuf":
            raise TypeError(
                f"Buffer only accepts real numeric data, but got dtype {arr.dtype}"
            )
        if dtype is None:
            dtype = arr.dtype if arr.dtype.kind == "f" else DEFAULT_CONFIG.dtype
        buf = cls(arr.shape, dtype=dtype)
        buf.assign_value(arr)
        return buf

    # -------------------------------------------------------------- accessors
    @property
    def shape(self) -> Tuple[int, ...]:
        return self._shape

    @property
    def dtype(self) -> np.dtype:
        return self._value.dtype

    @property
    def size(self) -> int:
        return self._value.size

    @property
    def value(self) -> np.ndarray:
        return _read_only(self._value)

    @property
    def grad(self) -> np.ndarray:
        return _read_only(self._grad)

    # ---------------------------------------------------------------- writers
    def _check(self, array: Any, what: str) -> np.ndarray:
        arr = np.asarray(array)
        if arr.shape != self._shape:
            raise ShapeMismatchError(
                f"Cannot {what} array of shape {arr.shape} into buffer of shape {self._shape}",
                expected=self._shape, actual=arr.shape,
            )
        return arr

    def assign_value(self, array: Any) -> None:
        """Overwrite the value in place. No broadcasting: shapes must match exactly."""
        self._value[...] = self._check(array, "assign")

    def accumulate_value(self, array: Any) -> None:
        """value += array, in place."""
        np.add(self._value, self._check(array, "accumulate"), out=self._value)

    def accumulate_grad(self, delta: Any) -> None:
        """grad += delta, in place. The one way a parent writes into a child's gradient."""
        np.add(self._grad, self._check(delta, "accumulate gradient"), out=self._grad)

    def reset_grad(self) -> None:
        self._grad.fill(0.0)

    def reset_value(self) -> None:
        self._value.fill(0.0)

    def seed_grad(self) -> None:
        # d(root)/d(root) = 1
        self._grad.fill(1.0)

    def __repr__(self):
        return f"Buffer(shape={self._shape}, dtype={self.dtype})"
