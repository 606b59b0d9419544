from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import LinearOperator

from vdim.errors import ElementTypeMismatch

Array = Any

__all__ = [
    "IntegralOperator",
    "DenseOperator",
    "LinearOperatorAdapter",
    "as_operator",
    "block_size_from_shape",
    "check_operators",
]


@runtime_checkable
class IntegralOperator(Protocol):
    """Linear map from source-indexed to target-indexed vectors."""

    shape: tuple[int, int]
    dtype: np.dtype
    block_shape: tuple[int, int]

    def mul_add(self, v: Array, out: np.ndarray, alpha: Any = 1.0) -> np.ndarray:
        """``out += alpha * (self @ v)`` in place; returns ``out``."""
        ...

    def __getitem__(self, idx: tuple[Array, Array]) -> np.ndarray:
        ...


class DenseOperator:
    """Operator backed by a numpy array or a scipy sparse matrix."""

    def __init__(self, matrix: Any, *, block_shape: tuple[int, int] = (1, 1)) -> None:
        if sp.issparse(matrix):
            self.matrix = sp.csr_matrix(matrix)
        else:
            self.matrix = np.asarray(matrix)
        if self.matrix.ndim != 2:
            raise ValueError(f"Expected a 2D matrix, got shape {self.matrix.shape}")
        self.block_shape = tuple(int(s) for s in block_shape)

    @property
    def shape(self) -> tuple[int, int]:
        return self.matrix.shape

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.matrix.dtype)

    def mul_add(self, v: Array, out: np.ndarray, alpha: Any = 1.0) -> np.ndarray:
        y = self.matrix @ np.asarray(v)
        if alpha == 1:
            out += y
        else:
            out += alpha * y
        return out

    def __getitem__(self, idx: tuple[Array, Array]) -> np.ndarray:
        rows, cols = idx
        rows = np.atleast_1d(np.asarray(rows))
        cols = np.atleast_1d(np.asarray(cols))
        block = self.matrix[np.ix_(rows, cols)]
        return block.toarray() if sp.issparse(block) else np.asarray(block)


class LinearOperatorAdapter:
    """Operator backed by a :class:`scipy.sparse.linalg.LinearOperator`.

    Sub-blocks are extracted by applying the operator to unit vectors, so they
    are meant for diagnostics only.
    """

    def __init__(self, op: LinearOperator, *, block_shape: tuple[int, int] = (1, 1)) -> None:
        self.op = op
        self.block_shape = tuple(int(s) for s in block_shape)

    @property
    def shape(self) -> tuple[int, int]:
        return self.op.shape

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.op.dtype)

    def mul_add(self, v: Array, out: np.ndarray, alpha: Any = 1.0) -> np.ndarray:
        y = self.op.matvec(np.asarray(v))
        out += alpha * np.asarray(y).reshape(-1)
        return out

    def __getitem__(self, idx: tuple[Array, Array]) -> np.ndarray:
        rows, cols = idx
        rows = np.atleast_1d(np.asarray(rows))
        cols = np.atleast_1d(np.asarray(cols))
        block = np.empty((rows.size, cols.size), dtype=self.dtype)
        e = np.zeros(self.shape[1], dtype=self.dtype)
        for k, j in enumerate(cols):
            e[j] = 1
            block[:, k] = np.asarray(self.op.matvec(e)).reshape(-1)[rows]
            e[j] = 0
        return block


def as_operator(obj: Any) -> IntegralOperator:
    """Wrap arrays, sparse matrices and LinearOperators as operator handles."""
    if isinstance(obj, (DenseOperator, LinearOperatorAdapter)):
        return obj
    if isinstance(obj, LinearOperator):
        return LinearOperatorAdapter(obj)
    if isinstance(obj, np.ndarray) or sp.issparse(obj):
        return DenseOperator(obj)
    if isinstance(obj, IntegralOperator):
        return obj
    raise TypeError(f"Cannot use an object of type {type(obj).__name__} as an integral operator")


def block_size_from_shape(block_shape: tuple[int, ...]) -> int:
    """Multiplicity of a block element type: its row count.

    Raises
    ------
    ElementTypeMismatch
        If the block is not square.
    """
    shape = tuple(int(s) for s in block_shape)
    if len(shape) != 2 or shape[0] != shape[1]:
        raise ElementTypeMismatch(f"operator blocks must be square; got block shape {shape}")
    return shape[0]


def check_operators(S: IntegralOperator, D: IntegralOperator, V: IntegralOperator, *, block_size: int = 1) -> np.dtype:
    """Validate the element types of the three operators and return their dtype."""
    dtypes = {np.dtype(op.dtype) for op in (S, D, V)}
    if len(dtypes) != 1:
        names = ", ".join(f"{n}={np.dtype(op.dtype)}" for n, op in zip("SDV", (S, D, V)))
        raise ElementTypeMismatch(f"eltype of S, D and V must match; got {names}")
    for name, op in zip("SDV", (S, D, V)):
        bs = block_size_from_shape(getattr(op, "block_shape", (1, 1)))
        if bs != int(block_size):
            raise ElementTypeMismatch(
                f"operator {name} has block size {bs} but block_size={block_size} was configured"
            )
    return dtypes.pop()
