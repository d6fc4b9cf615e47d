# aad_tensor/ops/__init__.py

# Node constructors: from aad_tensor.ops import add, product, matmul
from .arithmetic import add, product
from .linalg import as_matrix, matmul

__all__ = [
    "add", "product", "matmul",
    "as_matrix",
]
