"""
MacStage - One multiply-accumulate stage of the systolic chain.

Each stage performs an unsigned MAC into a private accumulator:
    acc <= acc + (in_a * in_b)    when enable
    acc <= 0                      when clear (takes priority)

The sum wraps silently at acc_bits. out_c is the accumulator register
itself, so an update becomes visible one cycle after the enable that
produced it.
"""

from amaranth import Module, Signal, unsigned
from amaranth.lib.wiring import Component, In, Out

from ..config import MatVecConfig


class MacStage(Component):
    """
    Accumulator stage - gated unsigned MAC with synchronous clear.

    Ports:
        enable: Accumulate in_a * in_b this cycle
        clear: Reset the accumulator to zero
        in_a: Matrix operand
        in_b: Vector operand
        out_c: Accumulated result (registered)

    Parameters:
        config: MatVecConfig with element and accumulator widths
    """

    def __init__(self, config: MatVecConfig):
        self.config = config

        super().__init__(
            {
                "enable": In(1),
                "clear": In(1),
                "in_a": In(unsigned(config.element_bits)),
                "in_b": In(unsigned(config.element_bits)),
                "out_c": Out(unsigned(config.acc_bits)),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config

        acc = Signal(unsigned(cfg.acc_bits), name="acc")

        product = Signal(unsigned(2 * cfg.element_bits), name="product")
        m.d.comb += product.eq(self.in_a * self.in_b)

        with m.If(self.clear):
            m.d.sync += acc.eq(0)
        with m.Elif(self.enable):
            # Truncation on assignment wraps at acc_bits
            m.d.sync += acc.eq(acc + product)

        m.d.comb += self.out_c.eq(acc)

        return m
