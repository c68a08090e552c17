"""
Unit tests for the RowBuffer module.

These tests verify:
1. First-word fall-through reads in FIFO order
2. full/empty/level flags
3. Rejected writes when full and reads when empty
4. Simultaneous write and read
5. Cursor wrap-around
6. Occupancy bounds under random interleavings
"""

import random
from collections import deque

import pytest
from amaranth.sim import Simulator

from matvec.memory.row_buffer import RowBuffer


class TestRowBufferInstantiation:
    """Test suite for RowBuffer construction."""

    def test_instantiation(self):
        """Test that RowBuffer can be instantiated."""
        buf = RowBuffer(depth=8, data_width=8)
        assert buf.depth == 8
        assert buf.data_width == 8

    def test_ports(self):
        """Test that the handshake ports exist."""
        buf = RowBuffer()
        for port in ("w_en", "w_data", "r_en", "r_data", "full", "empty", "level"):
            assert hasattr(buf, port)
        assert hasattr(buf, "overflow")
        assert hasattr(buf, "underflow")

    def test_zero_depth_rejected(self):
        """Test that a zero-capacity buffer is rejected."""
        with pytest.raises(AssertionError):
            RowBuffer(depth=0)


class TestRowBufferOperations:
    """Test suite for basic write/read behaviour."""

    @pytest.fixture
    def buf(self):
        return RowBuffer(depth=8, data_width=8)

    def test_reset_state(self, buf):
        """Test that a fresh buffer is empty."""
        results = {}

        async def testbench(ctx):
            results["empty"] = ctx.get(buf.empty)
            results["full"] = ctx.get(buf.full)
            results["level"] = ctx.get(buf.level)

        sim = Simulator(buf)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert results == {"empty": 1, "full": 0, "level": 0}

    def test_fifo_order(self, buf):
        """Test that elements come out in the order they were written."""
        values = [0x11, 0x22, 0x33, 0x44]
        read_back = []

        async def testbench(ctx):
            ctx.set(buf.w_en, 1)
            for value in values:
                ctx.set(buf.w_data, value)
                await ctx.tick()
            ctx.set(buf.w_en, 0)

            ctx.set(buf.r_en, 1)
            for _ in values:
                # Fall-through: head is visible before it is consumed
                read_back.append(ctx.get(buf.r_data))
                await ctx.tick()
            ctx.set(buf.r_en, 0)

        sim = Simulator(buf)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert read_back == values

    def test_fill_to_full(self, buf):
        """Test that full asserts exactly at capacity."""
        full_history = []
        level_history = []

        async def testbench(ctx):
            ctx.set(buf.w_en, 1)
            for i in range(buf.depth):
                ctx.set(buf.w_data, i)
                await ctx.tick()
                full_history.append(ctx.get(buf.full))
                level_history.append(ctx.get(buf.level))

        sim = Simulator(buf)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert full_history == [0] * (buf.depth - 1) + [1]
        assert level_history == list(range(1, buf.depth + 1))

    def test_write_when_full_is_rejected(self, buf):
        """Test that a write to a full buffer is a flagged no-op."""
        results = {}

        async def testbench(ctx):
            ctx.set(buf.w_en, 1)
            for i in range(buf.depth):
                ctx.set(buf.w_data, 0xA0 + i)
                await ctx.tick()

            # One write too many
            ctx.set(buf.w_data, 0xFF)
            results["overflow"] = ctx.get(buf.overflow)
            await ctx.tick()
            ctx.set(buf.w_en, 0)
            results["overflow_after"] = ctx.get(buf.overflow)
            results["level"] = ctx.get(buf.level)

            # Contents are untouched
            ctx.set(buf.r_en, 1)
            drained = []
            for _ in range(buf.depth):
                drained.append(ctx.get(buf.r_data))
                await ctx.tick()
            results["drained"] = drained

        sim = Simulator(buf)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert results["overflow"] == 1
        assert results["overflow_after"] == 0
        assert results["level"] == buf.depth
        assert results["drained"] == [0xA0 + i for i in range(buf.depth)]

    def test_read_when_empty_is_rejected(self, buf):
        """Test that a read from an empty buffer is a flagged no-op."""
        results = {}

        async def testbench(ctx):
            ctx.set(buf.r_en, 1)
            results["underflow"] = ctx.get(buf.underflow)
            await ctx.tick()
            ctx.set(buf.r_en, 0)
            results["level"] = ctx.get(buf.level)
            results["empty"] = ctx.get(buf.empty)

            # Cursor did not move: the next write is the next read
            ctx.set(buf.w_en, 1)
            ctx.set(buf.w_data, 0x5A)
            await ctx.tick()
            ctx.set(buf.w_en, 0)
            results["head"] = ctx.get(buf.r_data)

        sim = Simulator(buf)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert results["underflow"] == 1
        assert results["level"] == 0
        assert results["empty"] == 1
        assert results["head"] == 0x5A

    def test_simultaneous_write_and_read(self, buf):
        """Test that a write and a read in the same cycle keep the level."""
        results = {}

        async def testbench(ctx):
            ctx.set(buf.w_en, 1)
            for value in (1, 2, 3):
                ctx.set(buf.w_data, value)
                await ctx.tick()

            ctx.set(buf.r_en, 1)
            ctx.set(buf.w_data, 4)
            results["head"] = ctx.get(buf.r_data)
            await ctx.tick()
            ctx.set(buf.w_en, 0)
            ctx.set(buf.r_en, 0)
            results["level"] = ctx.get(buf.level)
            results["next_head"] = ctx.get(buf.r_data)

        sim = Simulator(buf)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert results["head"] == 1
        assert results["level"] == 3
        assert results["next_head"] == 2

    def test_cursor_wrap_around(self, buf):
        """Test that both cursors wrap modulo the capacity."""
        read_back = []

        async def testbench(ctx):
            # Three passes of fill-then-drain to wrap both cursors
            expected_value = 0
            for _ in range(3):
                ctx.set(buf.w_en, 1)
                for _ in range(5):
                    ctx.set(buf.w_data, expected_value)
                    expected_value += 1
                    await ctx.tick()
                ctx.set(buf.w_en, 0)
                ctx.set(buf.r_en, 1)
                for _ in range(5):
                    read_back.append(ctx.get(buf.r_data))
                    await ctx.tick()
                ctx.set(buf.r_en, 0)

        sim = Simulator(buf)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert read_back == list(range(15))


class TestRowBufferInvariants:
    """Randomised interleavings against a software queue."""

    @pytest.mark.parametrize("seed", [1, 7, 42])
    @pytest.mark.parametrize("depth", [3, 8])
    def test_random_interleaving(self, seed, depth):
        """Test occupancy bounds and data order for random write/read patterns."""
        buf = RowBuffer(depth=depth, data_width=8)
        rng = random.Random(seed)
        mismatches = []
        levels = []

        async def testbench(ctx):
            model = deque()
            for cycle in range(200):
                w_en = rng.random() < 0.55
                r_en = rng.random() < 0.45
                w_data = rng.randrange(256)

                ctx.set(buf.w_en, w_en)
                ctx.set(buf.r_en, r_en)
                ctx.set(buf.w_data, w_data)

                if ctx.get(buf.level) != len(model):
                    mismatches.append((cycle, "level", ctx.get(buf.level), len(model)))
                if ctx.get(buf.full) != (len(model) == depth):
                    mismatches.append((cycle, "full"))
                if ctx.get(buf.empty) != (len(model) == 0):
                    mismatches.append((cycle, "empty"))

                can_read = len(model) > 0
                can_write = len(model) < depth
                if r_en and can_read:
                    head = model.popleft()
                    if ctx.get(buf.r_data) != head:
                        mismatches.append((cycle, "data", ctx.get(buf.r_data), head))
                if w_en and can_write:
                    model.append(w_data)

                await ctx.tick()
                levels.append(ctx.get(buf.level))

        sim = Simulator(buf)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert mismatches == []
        assert all(0 <= level <= depth for level in levels)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
