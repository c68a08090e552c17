#!/usr/bin/env python3
"""
Matrix-Vector Pipeline Demo.

Runs one R = A × B pass through the RTL pipeline in the Amaranth simulator
and checks the result against the NumPy reference. It shows:

1. Problem Setup
   - Pick operands (hex-packed, ramp or random)
   - Pack them into the storage image, one word per row

2. Execution (RTL Simulation)
   - Pulse start and step the clock until done
   - Record the phase of every cycle

3. Verification
   - Compare the accumulator outputs with the golden model
   - Report load, compute and total cycle counts

Usage:
    python run_matvec.py [--pattern hex|ramp|random] [--seed N]
                         [--wait-cycles N] [--vcd FILE] [--max-cycles N]
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np

from matvec.config import MatVecConfig
from matvec.golden import hex_pattern, random_pattern, ramp_pattern
from matvec.harness import ProtocolViolation, SimulationTimeout, run_matvec
from matvec.util.packing import pack_operands


def make_operands(pattern: str, config: MatVecConfig, seed: int | None):
    """Build the operands for the selected pattern."""
    if pattern == "hex":
        return hex_pattern(config.rows, config.cols)
    if pattern == "ramp":
        return ramp_pattern(config.rows, config.cols)
    return random_pattern(config.rows, config.cols, config.element_bits, seed)


def print_operands(a: np.ndarray, b: np.ndarray, config: MatVecConfig):
    words = pack_operands(a, b, config)
    digits = config.word_bits // 4

    print("\n2. Storage Image")
    print("-" * 50)
    for i, word in enumerate(words):
        label = "B   " if i == config.vector_row else f"A[{i}]"
        print(f"   word {i}: {label} = 0x{word:0{digits}X}")


def print_timeline(run):
    """Print the phase timeline as (phase, first cycle, length) spans."""
    print("\n4. Phase Timeline")
    print("-" * 50)
    for phase, first, length in run.phase_spans():
        print(f"   {phase.name:<10} cycle {first:>5}  x{length}")


def run_demo(
    pattern: str,
    seed: int | None,
    wait_cycles: int,
    vcd_path: str | None,
    max_cycles: int | None,
) -> bool:
    """
    Run the matrix-vector demonstration.

    Returns:
        True if the pipeline result matches the reference
    """
    config = MatVecConfig(mem_wait_cycles=wait_cycles)
    a, b = make_operands(pattern, config, seed)

    print("=" * 70)
    print("Matrix-Vector Pipeline Demo")
    print("=" * 70)

    print("\n1. Problem Setup")
    print("-" * 50)
    print(f"   A: {config.rows} x {config.cols}, B: {config.cols}, {config.element_bits}-bit unsigned")
    print(f"   Pattern: {pattern}" + (f" (seed {seed})" if pattern == "random" else ""))
    print(f"   Memory wait: {wait_cycles} cycles (latency {config.mem_latency})")
    print(f"\n   A =\n{a}")
    print(f"\n   B = {b}")

    print_operands(a, b, config)

    print("\n3. RTL Simulation")
    print("-" * 50)
    try:
        run = run_matvec(a, b, config, max_cycles=max_cycles, vcd_path=vcd_path)
    except SimulationTimeout as e:
        print(f"   TIMEOUT: {e}")
        return False
    except ProtocolViolation as e:
        print(f"   PROTOCOL ERROR: {e}")
        return False

    print(f"   Load cycles:    {run.load_cycles} (expected {config.load_cycles})")
    print(f"   Compute cycles: {run.cycles - run.load_cycles}")
    print(f"   Total cycles:   {run.cycles} (expected {config.total_cycles})")
    if vcd_path:
        print(f"   Waveform written to {vcd_path}")

    print_timeline(run)

    print("\n5. Verification")
    print("-" * 50)
    expected = run.expected
    for i in range(config.rows):
        mark = "OK" if run.result[i] == expected[i] else "MISMATCH"
        print(f"   R[{i}] = 0x{int(run.result[i]):06X}  expected 0x{int(expected[i]):06X}  {mark}")

    passed = run.matches_reference()

    print("\n" + "=" * 70)
    if passed:
        print("Demo completed successfully!")
    else:
        print("Demo completed with mismatches - please investigate.")
    print("=" * 70)

    return passed


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Matrix-Vector Pipeline Demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--pattern",
        choices=["hex", "ramp", "random"],
        default="hex",
        help="Operand pattern (default: hex)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for --pattern random",
    )
    parser.add_argument(
        "--wait-cycles",
        type=int,
        default=10,
        metavar="N",
        help="Storage device wait cycles (default: 10)",
    )
    parser.add_argument(
        "--vcd",
        type=str,
        default=None,
        metavar="FILE",
        help="Write a VCD waveform to FILE",
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=None,
        metavar="N",
        help="Watchdog bound in cycles (default: 4x the expected total)",
    )

    args = parser.parse_args()

    success = run_demo(
        pattern=args.pattern,
        seed=args.seed,
        wait_cycles=args.wait_cycles,
        vcd_path=args.vcd,
        max_cycles=args.max_cycles,
    )
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
