"""
StorageDevice - Variable-latency read-only row store.

The storage device holds the packed matrix rows and the vector, one row per
word, and answers row reads through a request/response channel with a
multi-cycle latency:

    Cycle 0:          IDLE         request accepted, row latched
    Cycle 1:          ADDR_SETTLE  row address applied to the array
    Cycle 2:          REG_SETTLE   word captured into the response register
    Cycle 3..3+W-1:   WAIT         decrementing wait counter (W cycles)
    Cycle 3+W:        RESPOND      resp_valid pulse with the payload

busy is high from ADDR_SETTLE through RESPOND. The requester keeps req
asserted (with the same row) until it sees resp_valid; only one request may
be outstanding. A request for a different row while busy is ignored and
flagged on the violation output.
"""

from amaranth import Module, Mux, Signal, unsigned
from amaranth.lib.memory import Memory
from amaranth.lib.wiring import Component, In, Out

from ..config import MatVecConfig
from ..util.states import StorageState


class StorageDevice(Component):
    """
    Read-only row store with an injected multi-cycle response latency.

    Ports:
        req: Read request (held until resp_valid)
        req_row: Row index to read
        resp_valid: Single-cycle response pulse
        resp_data: Packed row payload (valid with resp_valid)
        busy: A request is in flight
        violation: A conflicting request was seen while busy
        state: Current StorageState (debug)

    Parameters:
        config: MatVecConfig with word width and wait cycles
        contents: Packed storage words, one per row (missing rows read as 0)
    """

    def __init__(self, config: MatVecConfig, contents=()):
        self.config = config
        self.contents = [int(word) for word in contents]

        assert len(self.contents) <= config.mem_rows, (
            f"{len(self.contents)} words do not fit in {config.mem_rows} storage rows"
        )

        super().__init__(
            {
                # Request channel
                "req": In(1),
                "req_row": In(unsigned(config.row_index_bits)),
                # Response channel
                "resp_valid": Out(1),
                "resp_data": Out(unsigned(config.word_bits)),
                "busy": Out(1),
                # Status
                "violation": Out(1),
                "state": Out(3),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config

        mem = Memory(shape=unsigned(cfg.word_bits), depth=cfg.mem_rows, init=self.contents)
        m.submodules.mem = mem
        rd_port = mem.read_port()

        # Latched request and captured payload
        addr_reg = Signal(unsigned(cfg.row_index_bits))
        in_range = Signal()
        data_reg = Signal(unsigned(cfg.word_bits))
        wait_count = Signal(range(cfg.mem_wait_cycles + 1))

        m.d.comb += [
            # Out-of-range rows never address the array
            rd_port.addr.eq(Mux(in_range, addr_reg, 0)),
            rd_port.en.eq(0),
            self.resp_valid.eq(0),
            self.resp_data.eq(data_reg),
            self.busy.eq(0),
        ]

        with m.FSM(init="IDLE"):
            with m.State("IDLE"):
                m.d.comb += self.state.eq(StorageState.IDLE)

                with m.If(self.req):
                    m.d.sync += [
                        addr_reg.eq(self.req_row),
                        in_range.eq(self.req_row < cfg.mem_rows),
                    ]
                    m.next = "ADDR_SETTLE"

            with m.State("ADDR_SETTLE"):
                m.d.comb += [
                    self.state.eq(StorageState.ADDR_SETTLE),
                    self.busy.eq(1),
                    rd_port.en.eq(1),
                ]
                m.next = "REG_SETTLE"

            with m.State("REG_SETTLE"):
                m.d.comb += [
                    self.state.eq(StorageState.REG_SETTLE),
                    self.busy.eq(1),
                ]
                # Out-of-range rows answer with an all-zero payload
                with m.If(in_range):
                    m.d.sync += data_reg.eq(rd_port.data)
                with m.Else():
                    m.d.sync += data_reg.eq(0)
                m.d.sync += wait_count.eq(cfg.mem_wait_cycles - 1)
                m.next = "WAIT"

            with m.State("WAIT"):
                m.d.comb += [
                    self.state.eq(StorageState.WAIT),
                    self.busy.eq(1),
                ]
                with m.If(wait_count == 0):
                    m.next = "RESPOND"
                with m.Else():
                    m.d.sync += wait_count.eq(wait_count - 1)

            with m.State("RESPOND"):
                m.d.comb += [
                    self.state.eq(StorageState.RESPOND),
                    self.busy.eq(1),
                    self.resp_valid.eq(1),
                ]
                m.next = "IDLE"

        # A held request for the in-flight row is the normal handshake;
        # anything else while busy is a second outstanding request.
        m.d.comb += self.violation.eq(self.busy & self.req & (self.req_row != addr_reg))

        return m
