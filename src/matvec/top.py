"""
MatVecTop - Top-level integration of the matrix-vector pipeline.

This module wires together all major subsystems:
- StorageDevice: Variable-latency store holding the matrix rows and vector
- FetchSequencer: Orchestrates Storage → RowBuffers
- RowBuffer x (rows + 1): One elastic queue per matrix row plus the vector
- SystolicChain: Drains the buffers through a skewed chain of MAC stages

External Interfaces:
- start pulse and synchronous reset
- result vector with done flag
- phase indicator and protocol error flag for monitoring

Phase Sequence:
    IDLE ──start──→ LOADING ──fetch done──→ COMPUTING ──chain done──→ DONE

The accumulators are cleared only on the IDLE → LOADING transition, so they
never clear mid-computation. DONE is terminal until reset; start pulses
outside IDLE are ignored.
"""

from amaranth import Cat, Module, ResetInserter, Signal, unsigned
from amaranth.lib.wiring import Component, In, Out

from .config import MatVecConfig
from .controller.fetch import FetchSequencer
from .core.chain import SystolicChain
from .memory.row_buffer import RowBuffer
from .memory.storage import StorageDevice
from .util.states import Phase


class MatVecTop(Component):
    """
    Top-level matrix-vector pipeline.

    Ports:
        Control:
            start: Begin one load + compute pass (pulse)
            reset: Synchronous reset of every register in the pipeline

        Results:
            result_0..N: Dot product of matrix row i with the vector
            done: Results are final (stable until reset)

        Monitoring:
            phase: Current Phase
            fetch_done: Every row has been loaded into its buffer
            buffers_empty: All buffers are empty
            protocol_error: Sticky flag for rejected buffer/storage operations

    Parameters:
        config: MatVecConfig
        contents: Packed storage image (see util.packing.pack_operands)
    """

    def __init__(self, config: MatVecConfig, contents=()):
        self.config = config
        self.contents = list(contents)

        ports = {
            # Control
            "start": In(1),
            "reset": In(1),
            # Results
            "done": Out(1),
            # Monitoring
            "phase": Out(2),
            "fetch_done": Out(1),
            "buffers_empty": Out(1),
            "protocol_error": Out(1),
        }

        for i in range(config.rows):
            ports[f"result_{i}"] = Out(unsigned(config.acc_bits))

        super().__init__(ports)

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config

        # Everything below is re-initialised by the soft reset
        core = Module()

        # =================================================================
        # Subsystems
        # =================================================================

        storage = StorageDevice(cfg, self.contents)
        fetch = FetchSequencer(cfg)
        chain = SystolicChain(cfg)
        buffers = [RowBuffer(cfg.buffer_depth, cfg.element_bits) for _ in range(cfg.mem_rows)]

        core.submodules.storage = storage
        core.submodules.fetch = fetch
        core.submodules.chain = chain
        for i, buf in enumerate(buffers):
            core.submodules[f"buf_{i}"] = buf

        # =================================================================
        # Fetch <-> Storage
        # =================================================================

        core.d.comb += [
            storage.req.eq(fetch.mem_req),
            storage.req_row.eq(fetch.mem_row),
            fetch.mem_resp_valid.eq(storage.resp_valid),
            fetch.mem_resp_data.eq(storage.resp_data),
        ]

        # =================================================================
        # Fetch -> Buffers (write side)
        # =================================================================

        for i, buf in enumerate(buffers):
            core.d.comb += [
                buf.w_en.eq(getattr(fetch, f"buf_write_{i}")),
                buf.w_data.eq(fetch.buf_data),
            ]

        # =================================================================
        # Buffers -> Chain (read side)
        # =================================================================

        vec_buf = buffers[cfg.vector_row]
        core.d.comb += [
            vec_buf.r_en.eq(chain.vec_read),
            chain.vec_data.eq(vec_buf.r_data),
        ]
        for i in range(cfg.rows):
            core.d.comb += [
                buffers[i].r_en.eq(getattr(chain, f"row_read_{i}")),
                getattr(chain, f"row_data_{i}").eq(buffers[i].r_data),
                getattr(self, f"result_{i}").eq(getattr(chain, f"result_{i}")),
            ]

        # =================================================================
        # Status
        # =================================================================

        error_seen = Signal()
        error_now = Signal()

        violations = [storage.violation]
        for buf in buffers:
            violations += [buf.overflow, buf.underflow]

        core.d.comb += error_now.eq(Cat(*violations).any())

        with core.If(error_now):
            core.d.sync += error_seen.eq(1)

        core.d.comb += [
            self.fetch_done.eq(fetch.done),
            self.buffers_empty.eq(Cat(*[buf.empty for buf in buffers]).all()),
            self.protocol_error.eq(error_seen | error_now),
        ]

        # =================================================================
        # Phase State Machine
        # =================================================================

        with core.FSM(init="IDLE"):
            with core.State("IDLE"):
                core.d.comb += self.phase.eq(Phase.IDLE)

                with core.If(self.start):
                    core.d.comb += [
                        chain.clear.eq(1),
                        fetch.start.eq(1),
                    ]
                    core.next = "LOADING"

            with core.State("LOADING"):
                core.d.comb += self.phase.eq(Phase.LOADING)

                with core.If(fetch.done & ~fetch.unpacking):
                    core.d.comb += chain.start.eq(1)
                    core.next = "COMPUTING"

            with core.State("COMPUTING"):
                core.d.comb += self.phase.eq(Phase.COMPUTING)

                with core.If(chain.done):
                    core.next = "DONE"

            with core.State("DONE"):
                core.d.comb += [
                    self.phase.eq(Phase.DONE),
                    self.done.eq(1),
                ]

        m.submodules.core = ResetInserter(self.reset)(core)

        return m
