"""Utility modules for the matvec pipeline."""

from .packing import pack_operands, pack_row, unpack_row
from .states import ChainState, FetchState, Phase, StorageState

__all__ = [
    # Operand packing
    "pack_row",
    "unpack_row",
    "pack_operands",
    # State encodings
    "StorageState",
    "FetchState",
    "ChainState",
    "Phase",
]
