"""
Unit tests for the StorageDevice module.

These tests verify:
1. Response latency and the single-cycle response pulse
2. busy covering the whole request/response window
3. Payload contents per row
4. Conflicting requests while busy are ignored and flagged
5. Out-of-range rows answer with zero
"""

import pytest
from amaranth.sim import Simulator

from matvec.config import MatVecConfig
from matvec.memory.storage import StorageDevice
from matvec.util.states import StorageState


def make_contents(config):
    """Distinct, easily recognisable words for every storage row."""
    return [0x1111111111111111 * (i + 1) for i in range(config.mem_rows)]


class TestStorageDeviceInstantiation:
    """Test suite for StorageDevice construction and ports."""

    @pytest.fixture
    def config(self):
        return MatVecConfig(mem_wait_cycles=3)

    def test_instantiation(self, config):
        """Test that StorageDevice can be instantiated."""
        storage = StorageDevice(config, make_contents(config))
        assert storage.config == config
        assert len(storage.contents) == config.mem_rows

    def test_ports(self, config):
        """Test that the request/response channel exists."""
        storage = StorageDevice(config)
        for port in ("req", "req_row", "resp_valid", "resp_data", "busy", "violation", "state"):
            assert hasattr(storage, port)

    def test_too_many_words_rejected(self, config):
        """Test that an image larger than the store is rejected."""
        with pytest.raises(AssertionError):
            StorageDevice(config, [0] * (config.mem_rows + 1))


class TestStorageDeviceTiming:
    """Test suite for request/response timing."""

    @pytest.fixture(params=[1, 3, 10])
    def config(self, request):
        return MatVecConfig(mem_wait_cycles=request.param)

    def test_response_latency(self, config):
        """Test that the response arrives exactly mem_latency cycles after the request."""
        contents = make_contents(config)
        storage = StorageDevice(config, contents)
        results = {"busy": [], "valid_cycles": []}

        async def testbench(ctx):
            ctx.set(storage.req, 1)
            ctx.set(storage.req_row, 3)
            results["busy_at_request"] = ctx.get(storage.busy)

            for cycle in range(1, config.mem_latency + 4):
                await ctx.tick()
                results["busy"].append(ctx.get(storage.busy))
                if ctx.get(storage.resp_valid):
                    results["valid_cycles"].append(cycle)
                    results["data"] = ctx.get(storage.resp_data)
                    # Requester drops the request once the response is seen
                    ctx.set(storage.req, 0)

        sim = Simulator(storage)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert results["busy_at_request"] == 0
        assert results["valid_cycles"] == [config.mem_latency], "single response pulse"
        assert results["data"] == contents[3]
        # busy from the first cycle after the request through the response
        assert all(results["busy"][: config.mem_latency])
        assert not any(results["busy"][config.mem_latency :])

    def test_state_sequence(self, config):
        """Test the internal setup, wait and respond sequence."""
        storage = StorageDevice(config, make_contents(config))
        states = []

        async def testbench(ctx):
            ctx.set(storage.req, 1)
            ctx.set(storage.req_row, 0)
            states.append(ctx.get(storage.state))
            for _ in range(config.mem_latency + 1):
                await ctx.tick()
                states.append(ctx.get(storage.state))
                if ctx.get(storage.resp_valid):
                    ctx.set(storage.req, 0)

        sim = Simulator(storage)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        expected = (
            [StorageState.IDLE, StorageState.ADDR_SETTLE, StorageState.REG_SETTLE]
            + [StorageState.WAIT] * config.mem_wait_cycles
            + [StorageState.RESPOND, StorageState.IDLE]
        )
        assert states == expected

    def test_back_to_back_rows(self, config):
        """Test that every row can be read in turn after each response."""
        contents = make_contents(config)
        storage = StorageDevice(config, contents)
        payloads = []

        async def testbench(ctx):
            for row in range(config.mem_rows):
                ctx.set(storage.req, 1)
                ctx.set(storage.req_row, row)
                await ctx.tick()
                while not ctx.get(storage.resp_valid):
                    await ctx.tick()
                payloads.append(ctx.get(storage.resp_data))
                ctx.set(storage.req, 0)
                await ctx.tick()

        sim = Simulator(storage)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert payloads == contents


class TestStorageDeviceProtocol:
    """Test suite for protocol violations and edge cases."""

    @pytest.fixture
    def config(self):
        return MatVecConfig(mem_wait_cycles=4)

    def test_held_request_is_not_a_violation(self, config):
        """Test that holding the same request while busy is the normal handshake."""
        storage = StorageDevice(config, make_contents(config))
        violations = []

        async def testbench(ctx):
            ctx.set(storage.req, 1)
            ctx.set(storage.req_row, 5)
            for _ in range(config.mem_latency):
                await ctx.tick()
                violations.append(ctx.get(storage.violation))

        sim = Simulator(storage)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert not any(violations)

    def test_second_request_ignored_and_flagged(self, config):
        """Test that a request for another row while busy is ignored."""
        contents = make_contents(config)
        storage = StorageDevice(config, contents)
        results = {}

        async def testbench(ctx):
            ctx.set(storage.req, 1)
            ctx.set(storage.req_row, 1)
            await ctx.tick()
            await ctx.tick()

            # Conflicting request mid-flight
            ctx.set(storage.req_row, 6)
            results["violation"] = ctx.get(storage.violation)
            await ctx.tick()
            ctx.set(storage.req_row, 1)
            results["violation_after"] = ctx.get(storage.violation)

            cycle = 3
            while not ctx.get(storage.resp_valid):
                await ctx.tick()
                cycle += 1
            results["cycle"] = cycle
            results["data"] = ctx.get(storage.resp_data)

        sim = Simulator(storage)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert results["violation"] == 1
        assert results["violation_after"] == 0
        # Original request completes on schedule with the original row
        assert results["cycle"] == config.mem_latency
        assert results["data"] == contents[1]

    def test_out_of_range_row_reads_zero(self, config):
        """Test that a row beyond the store answers with a zero payload."""
        storage = StorageDevice(config, make_contents(config))
        results = {}

        async def testbench(ctx):
            ctx.set(storage.req, 1)
            ctx.set(storage.req_row, config.mem_rows + 2)
            await ctx.tick()
            while not ctx.get(storage.resp_valid):
                await ctx.tick()
            results["data"] = ctx.get(storage.resp_data)

        sim = Simulator(storage)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert results["data"] == 0

    def test_missing_rows_read_zero(self, config):
        """Test that rows not present in a short image read as zero."""
        storage = StorageDevice(config, [0xDEADBEEF])
        results = {}

        async def testbench(ctx):
            ctx.set(storage.req, 1)
            ctx.set(storage.req_row, 4)
            await ctx.tick()
            while not ctx.get(storage.resp_valid):
                await ctx.tick()
            results["data"] = ctx.get(storage.resp_data)

        sim = Simulator(storage)
        sim.add_clock(1e-6)
        sim.add_testbench(testbench)
        sim.run()

        assert results["data"] == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
