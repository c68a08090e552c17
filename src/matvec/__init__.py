"""
Matvec - A systolic matrix-vector pipeline in Amaranth HDL.

This package models an 8x8 INT8 matrix times 8-element vector product as a
cycle-stepped hardware pipeline: a variable-latency storage device, a fetch
sequencer, per-row elastic buffers and a skewed chain of MAC stages.
"""

from .config import DEFAULT_CONFIG, FAST_CONFIG, MatVecConfig

__version__ = "0.1.0"
__all__ = ["MatVecConfig", "DEFAULT_CONFIG", "FAST_CONFIG", "__version__"]
