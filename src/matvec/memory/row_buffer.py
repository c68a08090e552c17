"""
RowBuffer - Fixed-capacity elastic queue between fetch and compute.

Each buffer is a single-producer/single-consumer ring of bytes:

         w_en/w_data                          r_en/r_data
    fetch ──────────→ [ ][ ][ ][ ][ ][ ][ ][ ] ──────────→ systolic chain
                       ↑ wr_ptr        ↑ rd_ptr

- write succeeds iff not full; read succeeds iff not empty
- both cursors advance modulo the capacity
- a simultaneous successful write and read leaves the level unchanged
- the read side is first-word fall-through: r_data shows the element at the
  read cursor in the same cycle and r_en consumes it at the clock edge

Rejected operations never touch the ring. They raise overflow/underflow for
one cycle so a testbench can treat them as contract violations.
"""

from amaranth import Module, Signal, unsigned
from amaranth.lib.memory import Memory
from amaranth.lib.wiring import Component, In, Out


class RowBuffer(Component):
    """
    Array-backed ring buffer with full/empty handshake flags.

    Ports:
        w_en: Write request
        w_data: Element to write
        r_en: Read request (consumes r_data)
        r_data: Element at the read cursor
        full: Occupancy equals capacity
        empty: Occupancy is zero
        level: Current occupancy
        overflow: Write requested while full (rejected)
        underflow: Read requested while empty (rejected)

    Parameters:
        depth: Capacity in elements
        data_width: Width of each element in bits
    """

    def __init__(self, depth: int = 8, data_width: int = 8):
        assert depth > 0, "depth must be positive"
        self.depth = depth
        self.data_width = data_width

        super().__init__(
            {
                # Producer side
                "w_en": In(1),
                "w_data": In(unsigned(data_width)),
                # Consumer side
                "r_en": In(1),
                "r_data": Out(unsigned(data_width)),
                # Status
                "full": Out(1),
                "empty": Out(1),
                "level": Out(range(depth + 1)),
                "overflow": Out(1),
                "underflow": Out(1),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        depth = self.depth

        mem = Memory(shape=unsigned(self.data_width), depth=depth, init=[])
        m.submodules.mem = mem
        wr_port = mem.write_port()
        rd_port = mem.read_port(domain="comb")

        wr_ptr = Signal(range(depth))
        rd_ptr = Signal(range(depth))
        count = Signal(range(depth + 1))

        do_write = Signal()
        do_read = Signal()

        m.d.comb += [
            self.full.eq(count == depth),
            self.empty.eq(count == 0),
            self.level.eq(count),
            do_write.eq(self.w_en & ~self.full),
            do_read.eq(self.r_en & ~self.empty),
            self.overflow.eq(self.w_en & self.full),
            self.underflow.eq(self.r_en & self.empty),
        ]

        # Write side
        m.d.comb += [
            wr_port.addr.eq(wr_ptr),
            wr_port.data.eq(self.w_data),
            wr_port.en.eq(do_write),
        ]
        with m.If(do_write):
            with m.If(wr_ptr == depth - 1):
                m.d.sync += wr_ptr.eq(0)
            with m.Else():
                m.d.sync += wr_ptr.eq(wr_ptr + 1)

        # Read side (fall-through)
        m.d.comb += [
            rd_port.addr.eq(rd_ptr),
            self.r_data.eq(rd_port.data),
        ]
        with m.If(do_read):
            with m.If(rd_ptr == depth - 1):
                m.d.sync += rd_ptr.eq(0)
            with m.Else():
                m.d.sync += rd_ptr.eq(rd_ptr + 1)

        # Occupancy
        with m.If(do_write & ~do_read):
            m.d.sync += count.eq(count + 1)
        with m.Elif(do_read & ~do_write):
            m.d.sync += count.eq(count - 1)

        return m
