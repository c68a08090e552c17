"""
Simulation harness for the matrix-vector pipeline.

Drives MatVecTop through one full pass in the Amaranth simulator:

1. Pack the operands into the storage image
2. Pulse start and step the clock until done (with a watchdog bound)
3. Optionally keep stepping to check that the results hold
4. Collect results, cycle counts and the phase trace

Example usage:
    a, b = hex_pattern()
    run = run_matvec(a, b)
    assert run.matches_reference()
    print(run.cycles, run.result)

Strict mode stands in for a debug build: any rejected buffer or storage
operation reported by the core raises ProtocolViolation. With strict=False
the flag is only recorded, matching the core's no-op behaviour.
"""

from dataclasses import dataclass, field

import numpy as np
from amaranth.sim import Simulator

from .config import DEFAULT_CONFIG, MatVecConfig
from .golden import reference_matvec
from .top import MatVecTop
from .util.packing import pack_operands
from .util.states import Phase


class SimulationTimeout(RuntimeError):
    """The pipeline did not reach DONE within the watchdog bound."""


class ProtocolViolation(AssertionError):
    """The core rejected a buffer or storage operation (logic defect)."""


@dataclass
class MatVecRun:
    """
    Outcome of one simulated load + compute pass.

    Attributes:
        config: Configuration the pipeline was built with
        matrix: Matrix operand
        vector: Vector operand
        result: Accumulator outputs sampled when done was first seen
        cycles: Clock ticks from the start pulse until done
        load_cycles: Clock ticks from the start pulse until fetch completed
        phases: Phase observed in every cycle, starting with the start cycle
        protocol_error: Core reported a rejected operation
        stable: Results and done held for every extra hold cycle
    """

    config: MatVecConfig
    matrix: np.ndarray
    vector: np.ndarray
    result: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.uint32))
    cycles: int = 0
    load_cycles: int | None = None
    phases: list[Phase] = field(default_factory=list)
    protocol_error: bool = False
    stable: bool = True

    @property
    def expected(self) -> np.ndarray:
        """Golden reference for the operands."""
        return reference_matvec(self.matrix, self.vector, self.config.acc_bits)

    def matches_reference(self) -> bool:
        """Return True if the simulated result equals the golden reference."""
        return bool(np.array_equal(self.result, self.expected))

    def phase_spans(self) -> list[tuple[Phase, int, int]]:
        """
        Collapse the phase trace into (phase, first_cycle, length) spans.

        Returns:
            One entry per contiguous run of the same phase
        """
        spans: list[tuple[Phase, int, int]] = []
        for cycle, phase in enumerate(self.phases):
            if spans and spans[-1][0] == phase:
                prev_phase, first, length = spans[-1]
                spans[-1] = (prev_phase, first, length + 1)
            else:
                spans.append((phase, cycle, 1))
        return spans


def run_matvec(
    matrix,
    vector,
    config: MatVecConfig | None = None,
    *,
    max_cycles: int | None = None,
    hold_cycles: int = 0,
    strict: bool = True,
    vcd_path: str | None = None,
) -> MatVecRun:
    """
    Simulate one full pass of the pipeline.

    Args:
        matrix: rows x cols array-like of unsigned elements
        vector: cols-element array-like of unsigned elements
        config: Pipeline configuration (DEFAULT_CONFIG if None)
        max_cycles: Watchdog bound in cycles (default 4 * config.total_cycles)
        hold_cycles: Extra cycles to step after done while checking stability
        strict: Raise ProtocolViolation if the core reports a rejected operation
        vcd_path: Write a VCD waveform to this path

    Returns:
        MatVecRun with results, cycle counts and the phase trace

    Raises:
        ValueError: If the operands do not fit the configuration
        SimulationTimeout: If done is not reached within max_cycles
        ProtocolViolation: If strict and the core reported a rejected operation
    """
    cfg = config or DEFAULT_CONFIG
    contents = pack_operands(matrix, vector, cfg)
    limit = max_cycles if max_cycles is not None else 4 * cfg.total_cycles

    run = MatVecRun(
        config=cfg,
        matrix=np.asarray(matrix, dtype=np.int64),
        vector=np.asarray(vector, dtype=np.int64),
    )
    status = {"timed_out": False}

    dut = MatVecTop(cfg, contents)
    results = [getattr(dut, f"result_{i}") for i in range(cfg.rows)]

    def observe(ctx, cycle):
        run.phases.append(Phase(ctx.get(dut.phase)))
        if run.load_cycles is None and ctx.get(dut.fetch_done):
            run.load_cycles = cycle
        if ctx.get(dut.protocol_error):
            run.protocol_error = True

    async def testbench(ctx):
        observe(ctx, 0)
        ctx.set(dut.start, 1)
        await ctx.tick()
        ctx.set(dut.start, 0)

        cycle = 1
        observe(ctx, cycle)
        while not ctx.get(dut.done):
            if cycle >= limit:
                status["timed_out"] = True
                return
            await ctx.tick()
            cycle += 1
            observe(ctx, cycle)

        run.cycles = cycle
        run.result = np.array([ctx.get(r) for r in results], dtype=np.uint32)

        for _ in range(hold_cycles):
            await ctx.tick()
            cycle += 1
            observe(ctx, cycle)
            held = [ctx.get(r) for r in results]
            if not ctx.get(dut.done) or held != run.result.tolist():
                run.stable = False

    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(testbench)

    if vcd_path:
        with sim.write_vcd(vcd_path):
            sim.run()
    else:
        sim.run()

    if status["timed_out"]:
        raise SimulationTimeout(
            f"done not asserted within {limit} cycles (last phase {run.phases[-1].name})"
        )
    if strict and run.protocol_error:
        raise ProtocolViolation("core rejected a buffer or storage operation")

    return run
