"""
Core compute components.

This module contains the compute building blocks:
- MacStage: Gated unsigned multiply-accumulate stage
- SystolicChain: Skewed chain of MAC stages with its controller
"""

from .chain import SystolicChain
from .mac import MacStage

__all__ = ["MacStage", "SystolicChain"]
