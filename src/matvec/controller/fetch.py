"""
FetchSequencer - Orchestrates storage -> row buffer transfers.

The FetchSequencer loads every storage row into its buffer by:
1. Issuing one read per row (matrix rows first, the vector last)
2. Waiting for the variable-latency response
3. Unpacking the row one element per cycle into the target buffer
4. Signaling completion after the vector row

State Machine:
    IDLE -> REQUEST -> AWAIT -> UNPACK -> (REQUEST ... | DONE)

Data Flow:
    StorageDevice --> FetchSequencer --> RowBuffer[row]

Byte Order:
    The most significant element of the payload is column 0. Unpacking
    shifts the latched payload left by one element per cycle and writes the
    top element, so columns arrive in order 0, 1, ..., cols-1.

Unpacking deliberately takes one cycle per element even though the payload
arrives all at once: each buffer accepts a single write per cycle.
"""

from amaranth import Module, Signal, unsigned
from amaranth.lib.wiring import Component, In, Out

from ..config import MatVecConfig
from ..util.states import FetchState


class FetchSequencer(Component):
    """
    Fetch sequencer for storage -> buffer transfers.

    Ports:
        Control:
            start: Begin fetching (pulse, honoured in IDLE only)

        Storage Interface:
            mem_req: Read request (held until mem_resp_valid)
            mem_row: Row index being requested
            mem_resp_valid: Response pulse from storage
            mem_resp_data: Packed row payload

        Buffer Interface:
            buf_write_0..N: Write strobe for buffer i (N = vector row)
            buf_data: Element to write (shared by all buffers)

        Status:
            busy: Fetch in progress
            unpacking: An element write is in flight this cycle
            done: Every row has been written to its buffer
            row: Row index currently being fetched
            state: Current FetchState (debug)
    """

    def __init__(self, config: MatVecConfig):
        self.config = config

        ports = {
            # Control
            "start": In(1),
            # Storage interface
            "mem_req": Out(1),
            "mem_row": Out(unsigned(config.row_index_bits)),
            "mem_resp_valid": In(1),
            "mem_resp_data": In(unsigned(config.word_bits)),
            # Buffer interface
            "buf_data": Out(unsigned(config.element_bits)),
            # Status
            "busy": Out(1),
            "unpacking": Out(1),
            "done": Out(1),
            "row": Out(unsigned(config.row_index_bits)),
            "state": Out(3),
        }

        # One write strobe per storage row
        for i in range(config.mem_rows):
            ports[f"buf_write_{i}"] = Out(1)

        super().__init__(ports)

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config

        # Row counter and pending request registers
        row = Signal(unsigned(cfg.row_index_bits))
        target_row = Signal(unsigned(cfg.row_index_bits))
        payload = Signal(unsigned(cfg.word_bits))
        cursor = Signal(range(cfg.cols))

        unpacking = Signal()

        m.d.comb += [
            self.mem_req.eq(0),
            self.mem_row.eq(row),
            self.buf_data.eq(payload[cfg.word_bits - cfg.element_bits :]),
            self.unpacking.eq(unpacking),
            self.row.eq(row),
        ]

        # Route element writes to the buffer named by the latched row
        for i in range(cfg.mem_rows):
            m.d.comb += getattr(self, f"buf_write_{i}").eq(unpacking & (target_row == i))

        with m.FSM(init="IDLE"):
            # ---------------------------------------------------------
            # IDLE: Wait for start
            # ---------------------------------------------------------
            with m.State("IDLE"):
                m.d.comb += self.state.eq(FetchState.IDLE)

                with m.If(self.start):
                    m.d.sync += row.eq(0)
                    m.next = "REQUEST"

            # ---------------------------------------------------------
            # REQUEST: Issue the read for the current row
            # ---------------------------------------------------------
            with m.State("REQUEST"):
                m.d.comb += [
                    self.state.eq(FetchState.REQUEST),
                    self.busy.eq(1),
                    self.mem_req.eq(1),
                ]
                m.next = "AWAIT"

            # ---------------------------------------------------------
            # AWAIT: Hold the request until the response pulse
            # ---------------------------------------------------------
            with m.State("AWAIT"):
                m.d.comb += [
                    self.state.eq(FetchState.AWAIT),
                    self.busy.eq(1),
                    self.mem_req.eq(1),
                ]

                with m.If(self.mem_resp_valid):
                    m.d.sync += [
                        payload.eq(self.mem_resp_data),
                        target_row.eq(row),
                        cursor.eq(0),
                    ]
                    m.next = "UNPACK"

            # ---------------------------------------------------------
            # UNPACK: One element per cycle into the target buffer
            # ---------------------------------------------------------
            with m.State("UNPACK"):
                m.d.comb += [
                    self.state.eq(FetchState.UNPACK),
                    self.busy.eq(1),
                    unpacking.eq(1),
                ]
                m.d.sync += [
                    payload.eq(payload << cfg.element_bits),
                    cursor.eq(cursor + 1),
                ]

                with m.If(cursor == cfg.cols - 1):
                    with m.If(target_row == cfg.vector_row):
                        m.next = "DONE"
                    with m.Else():
                        m.d.sync += row.eq(row + 1)
                        m.next = "REQUEST"

            # ---------------------------------------------------------
            # DONE: All rows fetched, hold until reset
            # ---------------------------------------------------------
            with m.State("DONE"):
                m.d.comb += [
                    self.state.eq(FetchState.DONE),
                    self.done.eq(1),
                ]

        return m
