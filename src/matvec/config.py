"""
Matvec Configuration Module

This module defines the configuration dataclass for the matrix-vector pipeline.
All hardware parameters are specified here and propagate through the design.

The pipeline computes R = A × B where A is a rows × cols matrix and B is a
cols-element vector. The matrix rows and the vector are held in one storage
device, one packed row per memory word, with the vector stored after the
last matrix row.
"""

from dataclasses import dataclass


@dataclass
class MatVecConfig:
    """
    Configuration for the matrix-vector pipeline.

    Example:
        >>> config = MatVecConfig()
        >>> print(config.word_bits)  # 64 (8 * 8 bits)
        >>> print(config.load_cycles)  # 199
    """

    # =========================================================================
    # Problem Dimensions
    # =========================================================================
    rows: int = 8
    """Number of matrix rows (one accumulator stage per row)."""

    cols: int = 8
    """Number of matrix columns, equal to the vector length."""

    # =========================================================================
    # Data Types (bit widths)
    # =========================================================================
    element_bits: int = 8
    """Bit width of matrix and vector elements (unsigned)."""

    acc_bits: int = 24
    """Bit width of each accumulator. Sums wrap silently past this width."""

    # =========================================================================
    # Buffers
    # =========================================================================
    buffer_depth: int = 8
    """Capacity of each row buffer in elements."""

    # =========================================================================
    # Storage Device Timing
    # =========================================================================
    mem_wait_cycles: int = 10
    """Cycles spent in the storage device wait counter before responding."""

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def word_bits(self) -> int:
        """Storage word width in bits (one packed row)."""
        return self.cols * self.element_bits

    @property
    def mem_rows(self) -> int:
        """Number of storage words: matrix rows plus the vector."""
        return self.rows + 1

    @property
    def vector_row(self) -> int:
        """Storage index of the vector."""
        return self.rows

    @property
    def row_index_bits(self) -> int:
        """Bits needed to address every storage word."""
        return max(1, (self.mem_rows - 1).bit_length())

    @property
    def max_element(self) -> int:
        """Largest representable element value."""
        return (1 << self.element_bits) - 1

    @property
    def max_result(self) -> int:
        """Largest representable accumulator value."""
        return (1 << self.acc_bits) - 1

    @property
    def mem_latency(self) -> int:
        """Cycles from request acceptance to the response pulse (inclusive)."""
        # address settle + register settle + wait counter + respond
        return 2 + self.mem_wait_cycles + 1

    @property
    def row_fetch_cycles(self) -> int:
        """Cycles the fetch sequencer spends on one storage row."""
        return 1 + self.mem_latency + self.cols

    @property
    def load_cycles(self) -> int:
        """Cycles from the start pulse until fetch completes."""
        return 1 + self.mem_rows * self.row_fetch_cycles

    @property
    def chain_cycles(self) -> int:
        """Cycles the systolic chain runs: vector fill plus pipeline drain."""
        return self.cols + self.rows - 1

    @property
    def total_cycles(self) -> int:
        """Cycles from the start pulse until done is asserted."""
        # +1 for the LOADING -> COMPUTING handoff, +1 for COMPUTING -> DONE
        return self.load_cycles + 1 + self.chain_cycles + 1

    def __post_init__(self):
        """Validate configuration parameters."""
        assert self.rows > 0, "rows must be positive"
        assert self.cols > 0, "cols must be positive"
        assert self.element_bits > 0, "element_bits must be positive"
        assert self.acc_bits >= 2 * self.element_bits, (
            "acc_bits should be >= 2 * element_bits to hold a single product"
        )
        assert self.buffer_depth >= self.cols, "buffer_depth must hold a full row"
        assert self.mem_wait_cycles > 0, "mem_wait_cycles must be positive"


# Pre-defined configurations
DEFAULT_CONFIG = MatVecConfig()
"""Reference configuration: 8x8 INT8 operands, 24-bit accumulators, 10-cycle wait."""

FAST_CONFIG = MatVecConfig(mem_wait_cycles=1)
"""Reference problem size with a short memory wait for faster simulation."""
