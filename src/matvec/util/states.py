"""
State encodings for the matvec pipeline.

Every controller in the pipeline exposes its current state on a debug port.
These enums give the numeric encodings driven on those ports so that
testbenches and trace printers can decode them.

    Component           Port      Enum
    StorageDevice       state     StorageState
    FetchSequencer      state     FetchState
    SystolicChain       state     ChainState
    MatVecTop           phase     Phase
"""

from enum import IntEnum


class StorageState(IntEnum):
    """Storage device request/response sequence."""

    IDLE = 0  # No request outstanding
    ADDR_SETTLE = 1  # Row address applied to the array
    REG_SETTLE = 2  # Word captured into the response register
    WAIT = 3  # Decrementing wait counter
    RESPOND = 4  # Single-cycle response pulse


class FetchState(IntEnum):
    """Fetch sequencer states."""

    IDLE = 0
    REQUEST = 1  # Issue a read for the current row
    AWAIT = 2  # Hold the request until the response pulse
    UNPACK = 3  # One byte per cycle into the target buffer
    DONE = 4  # All rows fetched


class ChainState(IntEnum):
    """Systolic chain controller states."""

    IDLE = 0
    RUNNING = 1
    FINISHED = 2


class Phase(IntEnum):
    """Top-level orchestration phase."""

    IDLE = 0
    LOADING = 1
    COMPUTING = 2
    DONE = 3
