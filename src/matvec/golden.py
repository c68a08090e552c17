"""
Golden reference model for the matrix-vector pipeline.

Computes R = A × B with numpy, wrapped to the accumulator width so that it
matches the hardware bit for bit even outside the supported operand range.
"""

import numpy as np


def reference_matvec(matrix, vector, acc_bits: int = 24) -> np.ndarray:
    """
    Compute the expected accumulator contents for A × B.

    Args:
        matrix: 2D array-like of unsigned elements
        vector: 1D array-like of unsigned elements
        acc_bits: Accumulator width in bits

    Returns:
        1D uint32 array, one wrapped dot product per matrix row
    """
    a = np.asarray(matrix, dtype=np.int64)
    b = np.asarray(vector, dtype=np.int64)
    exact = a @ b
    return (exact & ((1 << acc_bits) - 1)).astype(np.uint32)


def fits_accumulator(matrix, vector, acc_bits: int = 24) -> bool:
    """Return True if every exact dot product fits in acc_bits without wrapping."""
    a = np.asarray(matrix, dtype=np.int64)
    b = np.asarray(vector, dtype=np.int64)
    return bool(np.all(a @ b <= (1 << acc_bits) - 1))


def hex_pattern(rows: int = 8, cols: int = 8) -> tuple[np.ndarray, np.ndarray]:
    """
    Hex-packed reference operands.

    A[i][j] = 0x(i)(j+1), e.g. row 0 = 01 02 .. 08, row 7 = 71 72 .. 78.
    B[j] = 0x81 + j, i.e. 81 82 .. 88.
    """
    a = np.array([[(i << 4) | (j + 1) for j in range(cols)] for i in range(rows)], dtype=np.int64)
    b = np.array([0x81 + j for j in range(cols)], dtype=np.int64)
    return a, b


def ramp_pattern(rows: int = 8, cols: int = 8) -> tuple[np.ndarray, np.ndarray]:
    """Ramp operands: A[i][j] = i + j + 1, B[j] = j + 1."""
    a = np.array([[i + j + 1 for j in range(cols)] for i in range(rows)], dtype=np.int64)
    b = np.arange(1, cols + 1, dtype=np.int64)
    return a, b


def random_pattern(
    rows: int = 8,
    cols: int = 8,
    element_bits: int = 8,
    seed: int | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Uniformly random unsigned operands."""
    rng = np.random.default_rng(seed)
    high = 1 << element_bits
    a = rng.integers(0, high, size=(rows, cols), dtype=np.int64)
    b = rng.integers(0, high, size=cols, dtype=np.int64)
    return a, b
