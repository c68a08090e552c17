"""
Operand packing for the matvec storage device.

The storage device holds one packed row per word. Elements are packed
big-endian by element: the first element of a row occupies the most
significant byte of the word, the last element the least significant byte.

    Row [0x01, 0x02, ..., 0x08]  ->  word 0x0102030405060708

Storage layout for a rows x cols problem:
    word 0 .. rows-1 : matrix rows
    word rows        : the vector
"""

import numpy as np

from ..config import MatVecConfig


def pack_row(elements, element_bits: int = 8) -> int:
    """
    Pack a sequence of elements into one storage word.

    Args:
        elements: Iterable of unsigned element values
        element_bits: Width of each element in bits

    Returns:
        Packed word with elements[0] in the most significant position

    Example:
        >>> hex(pack_row([0x81, 0x82, 0x83, 0x84]))
        '0x81828384'
    """
    mask = (1 << element_bits) - 1
    word = 0
    for value in elements:
        word = (word << element_bits) | (int(value) & mask)
    return word


def unpack_row(word: int, count: int, element_bits: int = 8) -> list[int]:
    """
    Unpack a storage word back into its elements (inverse of pack_row).

    Args:
        word: Packed storage word
        count: Number of elements in the word
        element_bits: Width of each element in bits

    Returns:
        List of element values, most significant first
    """
    mask = (1 << element_bits) - 1
    return [(word >> ((count - 1 - i) * element_bits)) & mask for i in range(count)]


def pack_operands(matrix, vector, config: MatVecConfig) -> list[int]:
    """
    Pack a matrix and vector into the storage device image.

    Args:
        matrix: rows x cols array-like of unsigned elements
        vector: cols-element array-like of unsigned elements
        config: Pipeline configuration

    Returns:
        List of config.mem_rows words (matrix rows, then the vector)

    Raises:
        ValueError: If shapes do not match the configuration or an element is
            outside [0, 2**element_bits)
    """
    a = np.asarray(matrix, dtype=np.int64)
    b = np.asarray(vector, dtype=np.int64)

    if a.shape != (config.rows, config.cols):
        raise ValueError(f"Matrix shape {a.shape} does not match ({config.rows}, {config.cols})")
    if b.shape != (config.cols,):
        raise ValueError(f"Vector shape {b.shape} does not match ({config.cols},)")

    for name, values in (("Matrix", a), ("Vector", b)):
        if values.size and (values.min() < 0 or values.max() > config.max_element):
            raise ValueError(
                f"{name} elements must be in [0, {config.max_element}], "
                f"got range [{values.min()}, {values.max()}]"
            )

    words = [pack_row(row, config.element_bits) for row in a]
    words.append(pack_row(b, config.element_bits))
    return words
