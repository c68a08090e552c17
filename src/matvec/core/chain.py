"""
SystolicChain - Skewed chain of MAC stages computing R = A × B.

Stage i owns result row i and reads matrix-row buffer i directly. The vector
buffer has a single read point at stage 0; the vector element and its enable
travel down the chain through a delay line, one stage per cycle:

      vec buffer
          │ b, en
          ▼
      ┌───────┐  ┌───┐  ┌───────┐  ┌───┐  ┌───────┐         ┌───────┐
      │ MAC 0 │─→│REG│─→│ MAC 1 │─→│REG│─→│ MAC 2 │─→ ... ─→│ MAC 7 │
      └───────┘  └───┘  └───────┘  └───┘  └───────┘         └───────┘
          ▲                 ▲                 ▲                 ▲
       buf A0            buf A1            buf A2            buf A7

Timing (cycles counted from entering RUNNING):
    Cycle j:       vector element j is read and enters stage 0
    Cycle i + j:   stage i pairs B[j] with the j-th element of buffer i
    Cycle cols-1:  last vector element read (source enable drops)
    Cycle cols+rows-2: last stage consumes its last element

So the chain runs cols fill cycles plus rows-1 drain cycles. Each stage
consumes its buffer in lock-step with the vector element that has travelled
exactly as many hops as its index, so no per-stage handshaking is needed.
"""

from amaranth import Cat, Module, Signal, unsigned
from amaranth.lib.wiring import Component, In, Out

from ..config import MatVecConfig
from ..util.states import ChainState
from .mac import MacStage


class SystolicChain(Component):
    """
    Systolic chain controller with a row of MAC stages.

    Ports:
        Control:
            start: Begin draining the buffers (pulse, honoured in IDLE only)
            clear: Clear every accumulator and the delay line

        Vector Buffer Interface:
            vec_read: Consume the element at the vector read point
            vec_data: Element at the vector read point

        Matrix Buffer Interface:
            row_read_0..N: Consume the head of matrix-row buffer i
            row_data_0..N: Head of matrix-row buffer i

        Results:
            result_0..N: Accumulated dot product for row i

        Status:
            busy: Chain is running
            done: Results are final
            stage_active: Per-stage enable vector (bit i = stage i)
            state: Current ChainState (debug)
    """

    def __init__(self, config: MatVecConfig):
        self.config = config

        ports = {
            # Control
            "start": In(1),
            "clear": In(1),
            # Vector buffer
            "vec_read": Out(1),
            "vec_data": In(unsigned(config.element_bits)),
            # Status
            "busy": Out(1),
            "done": Out(1),
            "stage_active": Out(config.rows),
            "state": Out(2),
        }

        for i in range(config.rows):
            ports[f"row_read_{i}"] = Out(1)
            ports[f"row_data_{i}"] = In(unsigned(config.element_bits))
            ports[f"result_{i}"] = Out(unsigned(config.acc_bits))

        super().__init__(ports)

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config
        n = cfg.rows

        # =================================================================
        # Cycle Counter and Source Enable
        # =================================================================

        count = Signal(range(cfg.chain_cycles + 1))
        source_en = Signal()
        running = Signal()

        m.d.comb += source_en.eq(running & (count < cfg.cols))

        # =================================================================
        # Delay Line (enable + vector operand)
        # =================================================================

        en_pipe = [Signal(name=f"en_pipe_{k}") for k in range(n - 1)]
        b_pipe = [Signal(unsigned(cfg.element_bits), name=f"b_pipe_{k}") for k in range(n - 1)]

        stage_en = [source_en] + en_pipe
        stage_b = [self.vec_data] + b_pipe

        for k in range(n - 1):
            with m.If(self.clear):
                m.d.sync += [
                    en_pipe[k].eq(0),
                    b_pipe[k].eq(0),
                ]
            with m.Else():
                m.d.sync += [
                    en_pipe[k].eq(stage_en[k]),
                    b_pipe[k].eq(stage_b[k]),
                ]

        m.d.comb += [
            self.vec_read.eq(source_en),
            self.stage_active.eq(Cat(*stage_en)),
        ]

        # =================================================================
        # MAC Stages
        # =================================================================

        for i in range(n):
            mac = MacStage(cfg)
            m.submodules[f"mac_{i}"] = mac

            m.d.comb += [
                mac.enable.eq(stage_en[i]),
                mac.clear.eq(self.clear),
                mac.in_a.eq(getattr(self, f"row_data_{i}")),
                mac.in_b.eq(stage_b[i]),
                getattr(self, f"row_read_{i}").eq(stage_en[i]),
                getattr(self, f"result_{i}").eq(mac.out_c),
            ]

        # =================================================================
        # State Machine
        # =================================================================

        with m.FSM(init="IDLE"):
            with m.State("IDLE"):
                m.d.comb += self.state.eq(ChainState.IDLE)

                with m.If(self.start):
                    m.d.sync += count.eq(0)
                    m.next = "RUNNING"

            with m.State("RUNNING"):
                m.d.comb += [
                    self.state.eq(ChainState.RUNNING),
                    self.busy.eq(1),
                    running.eq(1),
                ]
                m.d.sync += count.eq(count + 1)

                with m.If(count == cfg.chain_cycles - 1):
                    m.next = "FINISHED"

            with m.State("FINISHED"):
                m.d.comb += [
                    self.state.eq(ChainState.FINISHED),
                    self.done.eq(1),
                ]

        return m
