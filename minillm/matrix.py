"""
Dense Matrix Primitives

This module implements the small linear-algebra toolkit the rest of the model
is built on. Everything downstream (embeddings, positional encodings,
attention) is expressed in terms of these operations.

A Matrix is a rectangular 2-D block of float64 values backed by a single
NumPy buffer with explicit (rows, cols) metadata. Rows can never be ragged:
rectangularity is checked once, when the Matrix is built. The buffer is
read-only, so every operation returns a new Matrix instead of mutating its
inputs.

Shape problems fail fast with a descriptive error instead of being padded or
truncated:
    - ValueError for incompatible shapes (matmul, add, concatenate_columns)
    - IndexError for out-of-range indices (slice_matrix, take_rows)
    - TypeError for non-integer row indices (take_rows)

Classes:
    Matrix: Immutable rectangular matrix of floats

Functions:
    initialize_matrix: Random matrix from a normal distribution
    matmul: Matrix product
    add: Elementwise sum
    transpose: Swap rows and columns
    slice_matrix: Half-open submatrix
    apply_function: Apply a unary function to every entry
    softmax: Row-wise softmax
    concatenate_columns: Join matrices side by side
    take_rows: Gather rows by index
"""

from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np


class Matrix:
    """
    Immutable rectangular matrix of float64 values.

    Attributes:
        rows: Number of rows
        cols: Number of columns
        shape: (rows, cols)
        data: Read-only 2-D NumPy view of the values

    Example:
        >>> m = Matrix([[1.0, 2.0], [3.0, 4.0]])
        >>> m.shape
        (2, 2)
        >>> m[1, 0]
        3.0
    """

    __slots__ = ("_data",)

    def __init__(self, values):
        """
        Build a Matrix from nested rows or a 2-D array.

        Args:
            values: Nested sequence of rows, or a 2-D array-like. The values
                    are copied, so later changes to the source do not leak in.

        Raises:
            ValueError: If the rows have different lengths or the input is
                        not two-dimensional
        """
        if isinstance(values, Matrix):
            values = values.data

        try:
            data = np.array(values, dtype=np.float64)
        except ValueError as error:
            raise ValueError(
                f"Matrix values must form a rectangular numeric array: {error}"
            ) from error

        if data.ndim != 2:
            raise ValueError(
                f"Matrix requires 2-D input, got {data.ndim}-D input of shape {data.shape}"
            )

        data.flags.writeable = False
        self._data = data

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "Matrix":
        """Create a (rows x cols) Matrix filled with zeros."""
        _check_dimensions(rows, cols)
        return cls(np.zeros((rows, cols)))

    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def cols(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._data.shape

    @property
    def data(self) -> np.ndarray:
        """Read-only view of the underlying buffer."""
        return self._data

    def __getitem__(self, index: Tuple[int, int]) -> float:
        row, col = index
        return float(self._data[row, col])

    def __len__(self) -> int:
        return self.rows

    def __iter__(self):
        for row in self._data:
            yield row.tolist()

    def __repr__(self) -> str:
        return f"Matrix(rows={self.rows}, cols={self.cols})"

    def row(self, index: int) -> List[float]:
        """Return one row as a list of floats."""
        return self._data[index].tolist()

    def to_numpy(self) -> np.ndarray:
        """Return a writable copy of the values."""
        return self._data.copy()

    def tolist(self) -> List[List[float]]:
        return self._data.tolist()

    def allclose(self, other: "Matrix", atol: float = 1e-8) -> bool:
        """True if both matrices have the same shape and nearly equal entries."""
        return self.shape == other.shape and bool(
            np.allclose(self._data, other._data, atol=atol)
        )


def is_integer_index(value) -> bool:
    """True for Python or NumPy integers; bool and float do not count."""
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _check_dimensions(rows: int, cols: int) -> None:
    if rows <= 0 or cols <= 0:
        raise ValueError(
            f"Matrix dimensions must be positive, got ({rows}, {cols})"
        )


def initialize_matrix(
    rows: int,
    cols: int,
    scale: float = 1.0,
    rng: Optional[np.random.Generator] = None,
) -> Matrix:
    """
    Create a (rows x cols) Matrix of random values.

    Values are drawn from a normal distribution N(0, 1) and multiplied by
    `scale`. Used for weight and embedding initialization.

    Args:
        rows: Number of rows (must be positive)
        cols: Number of columns (must be positive)
        scale: Standard deviation of the values
        rng: Random generator; a fresh unseeded one is used when omitted

    Returns:
        Random Matrix of shape (rows, cols)
    """
    _check_dimensions(rows, cols)
    if rng is None:
        rng = np.random.default_rng()

    return Matrix(rng.standard_normal((rows, cols)) * scale)


def matmul(a: Matrix, b: Matrix) -> Matrix:
    """
    Matrix product A @ B.

    Entry (i, j) of the result is the dot product of row i of A and
    column j of B.

    Args:
        a: Left matrix, shape (n, k)
        b: Right matrix, shape (k, m)

    Returns:
        Product of shape (n, m)

    Raises:
        ValueError: If the inner dimensions differ
    """
    if a.cols != b.rows:
        raise ValueError(
            f"Cannot multiply {a.rows}x{a.cols} by {b.rows}x{b.cols}: "
            f"inner dimensions {a.cols} and {b.rows} differ"
        )

    return Matrix(a.data @ b.data)


def add(a: Matrix, b: Matrix) -> Matrix:
    """
    Elementwise sum A + B.

    Raises:
        ValueError: If the shapes are not identical (no broadcasting)
    """
    if a.shape != b.shape:
        raise ValueError(f"Cannot add matrices of shapes {a.shape} and {b.shape}")

    return Matrix(a.data + b.data)


def transpose(matrix: Matrix) -> Matrix:
    """Return the (cols x rows) transpose, where entry (i, j) = matrix(j, i)."""
    return Matrix(matrix.data.T)


def slice_matrix(
    matrix: Matrix, row_start: int, row_end: int, col_start: int, col_end: int
) -> Matrix:
    """
    Extract the submatrix covering rows [row_start, row_end) and
    columns [col_start, col_end).

    Unlike Python slicing, indices are never clamped or wrapped: negative
    indices, indices past the edge, and reversed ranges are errors.

    Raises:
        IndexError: If either range falls outside the matrix
    """
    if not 0 <= row_start <= row_end <= matrix.rows:
        raise IndexError(
            f"Row range [{row_start}, {row_end}) out of bounds for {matrix.rows} rows"
        )
    if not 0 <= col_start <= col_end <= matrix.cols:
        raise IndexError(
            f"Column range [{col_start}, {col_end}) out of bounds for {matrix.cols} columns"
        )

    return Matrix(matrix.data[row_start:row_end, col_start:col_end])


def apply_function(matrix: Matrix, func: Callable[[float], float]) -> Matrix:
    """
    Apply a unary function independently to every entry.

    Args:
        matrix: Input matrix
        func: Any callable taking and returning a number, including NumPy
              ufuncs such as np.exp

    Returns:
        Matrix of the same shape

    Example:
        >>> doubled = apply_function(Matrix([[1.0, -2.0]]), lambda x: 2 * x)
        >>> doubled.tolist()
        [[2.0, -4.0]]
    """
    elementwise = np.vectorize(func, otypes=[np.float64])
    return Matrix(elementwise(matrix.data))


def softmax(matrix: Matrix) -> Matrix:
    """
    Row-wise softmax.

    Each row is turned into an independent probability distribution:
        softmax(x)_j = exp(x_j - max(x)) / sum_k(exp(x_k - max(x)))

    Subtracting the row maximum leaves the result unchanged but keeps every
    exponent <= 0, so exp() cannot overflow.

    Args:
        matrix: Matrix of scores (logits)

    Returns:
        Matrix of the same shape whose rows are non-negative and sum to 1
    """
    if matrix.cols == 0:
        raise ValueError(
            f"Cannot apply softmax to a matrix with no columns, got shape {matrix.shape}"
        )

    logits = matrix.data

    # Step 1: Subtract each row's maximum for numerical stability
    max_logit = np.max(logits, axis=-1, keepdims=True)
    stable_logits = logits - max_logit

    # Step 2: Exponentiate (every value is now in (0, 1])
    exponentials = np.exp(stable_logits)

    # Step 3: Normalize each row
    sum_of_exponentials = np.sum(exponentials, axis=-1, keepdims=True)
    return Matrix(exponentials / sum_of_exponentials)


def concatenate_columns(blocks: Sequence[Matrix]) -> Matrix:
    """
    Join matrices side by side, left to right.

    Used to put attention heads back together after they were computed on
    separate column slices.

    Raises:
        ValueError: If no blocks are given or their row counts differ
    """
    if not blocks:
        raise ValueError("concatenate_columns requires at least one matrix")

    row_counts = {block.rows for block in blocks}
    if len(row_counts) != 1:
        raise ValueError(
            f"Cannot concatenate matrices with different row counts: {sorted(row_counts)}"
        )

    return Matrix(np.concatenate([block.data for block in blocks], axis=1))


def take_rows(matrix: Matrix, indices: Sequence[int]) -> Matrix:
    """
    Gather rows by index: row i of the result is matrix row indices[i].

    Raises:
        TypeError: If any index is not an integer
        IndexError: If any index is outside [0, matrix.rows)
    """
    for index in indices:
        if not is_integer_index(index):
            raise TypeError(f"Row index must be an integer, got {index!r}")
        if not 0 <= index < matrix.rows:
            raise IndexError(
                f"Row index {index} out of range [0, {matrix.rows})"
            )

    return Matrix(matrix.data[np.asarray(indices, dtype=np.int64)].reshape(-1, matrix.cols))


# =============================================================================
# EDUCATIONAL DEMO
# Run with: python -m minillm.matrix
# =============================================================================
if __name__ == "__main__":
    print("=" * 70)
    print("MATRIX PRIMITIVES DEMO")
    print("=" * 70)
    print()

    rng = np.random.default_rng(42)
    a = initialize_matrix(2, 3, rng=rng)
    b = initialize_matrix(3, 4, rng=rng)

    print(f"A: {a}, B: {b}")
    print(f"matmul(A, B): {matmul(a, b)}")
    print(f"transpose(A): {transpose(a)}")
    print()

    scores = Matrix([[1.0, 2.0, 3.0], [1000.0, 1000.0, 1000.0]])
    probabilities = softmax(scores)
    print("Row-wise softmax (second row would overflow without max-subtraction):")
    for row in probabilities:
        print("  " + "  ".join(f"{value:.3f}" for value in row))
    print()

    print("Each row sums to:", probabilities.data.sum(axis=1).round(6))
